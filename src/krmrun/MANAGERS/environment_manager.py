"""
Serialization of declared environment entries for each backend.
"""
import os
from typing import List, Mapping, Optional, Sequence, Tuple
from ..MODELS.pod_overrides import EnvVar

class EnvironmentSerializer:
    """
    Resolves KEY=VALUE and bare KEY entries against the caller's environment
    and renders them as docker flags or Kubernetes env vars.
    """
    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Initializes the serializer.

        :param environ: The environment bare keys are inherited from. Defaults to os.environ.
        """
        self.environ = os.environ if environ is None else environ

    def resolve(self, entries: Sequence[str]) -> List[Tuple[str, str]]:
        """
        Resolves entries into (key, value) pairs, preserving declared order.

        :param entries: KEY=VALUE entries, or bare KEY entries to inherit.
        :return: The resolved pairs. Unset inherited keys resolve to an empty value.
        """
        resolved = []
        for entry in entries:
            if '=' in entry:
                key, value = entry.split('=', 1)
            else:
                key, value = entry, self.environ.get(entry, "")
            resolved.append((key, value))
        return resolved

    def docker_flags(self, entries: Sequence[str]) -> List[str]:
        """
        Builds one `-e KEY=VALUE` flag pair per entry.
        """
        flags = []
        for key, value in self.resolve(entries):
            flags.extend(["-e", f"{key}={value}"])
        return flags

    def kubernetes_env(self, entries: Sequence[str]) -> List[EnvVar]:
        """
        Builds the container env list for a pod override.
        """
        return [EnvVar(name=key, value=value) for key, value in self.resolve(entries)]
