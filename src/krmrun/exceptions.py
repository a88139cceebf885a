"""
Exception hierarchy for krmrun.

All errors raised by the invocation builder and the exec layer derive from
KrmRunError so callers can catch them with a single except clause.
"""
from typing import Optional


class KrmRunError(Exception):
    """
    Base exception for all krmrun errors.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class WorkingDirectoryError(KrmRunError):
    """
    Raised when no working directory was supplied and the current one
    cannot be resolved.
    """
    pass


class InvocationAlreadyBuiltError(KrmRunError):
    """
    Raised when something tries to replace an invocation that was already built.
    """
    def __init__(self, image: str):
        self.image = image
        super().__init__(f"Invocation for {image} is already built")


class FunctionExecutionError(KrmRunError):
    """
    Raised when the spawned function process fails.
    """
    def __init__(self, command: str, exit_code: Optional[int] = None, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr

        if exit_code is None:
            message = f"Failed to run {command}"
        else:
            message = f"{command} exited with code {exit_code}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)
