"""
Parsers for .env files feeding container environment entries.
"""
from typing import Dict, List, Optional
from dotenv import dotenv_values

class EnvParser:
    """
    Parser for .env files.
    """
    @staticmethod
    def parse(env_path: str) -> Dict[str, Optional[str]]:
        """
        Parses an .env file from a path.

        Args:
            env_path (str): Path to the .env file.

        Returns:
            Dict[str, Optional[str]]: Variables in file order. Keys declared
            without a value map to None.
        """
        return dict(dotenv_values(env_path))

    @staticmethod
    def to_entries(env: Dict[str, Optional[str]]) -> List[str]:
        """
        Converts parsed variables into container env entries.
        Keys without a value become bare entries inherited from the caller.
        """
        entries = []
        for key, value in env.items():
            if value is None:
                entries.append(key)
            else:
                entries.append(f"{key}={value}")
        return entries
