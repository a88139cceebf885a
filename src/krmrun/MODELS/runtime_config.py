"""
Runtime settings for spawning function containers.
"""
import os
from typing import Mapping, Optional
from pydantic import BaseModel
from dotenv import load_dotenv
from .container_spec import Backend

ENV_PREFIX = "KRMRUN_"
TRUTHY = {"1", "true", "yes", "on"}

class RuntimeConfig(BaseModel):
    """
    Settings shared by every function invocation in a run.
    """
    docker_path: str = "docker"
    kubectl_path: str = "kubectl"
    backend: Backend = Backend.LOCAL_ENGINE
    uid_gid: str = "nobody"
    defer_failure: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls,
                 env_file: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None) -> "RuntimeConfig":
        """
        Builds the settings from KRMRUN_* environment variables.

        :param env_file: Optional .env file loaded into the process environment first.
            Variables that are already set win.
        :param environ: Mapping to read instead of os.environ.
        :return: The resolved settings.
        """
        if env_file:
            load_dotenv(env_file, override=False)
        if environ is None:
            environ = os.environ

        values = {}
        for field, var in (("docker_path", "DOCKER_PATH"),
                           ("kubectl_path", "KUBECTL_PATH"),
                           ("uid_gid", "UID_GID"),
                           ("log_level", "LOG_LEVEL")):
            value = environ.get(ENV_PREFIX + var)
            if value:
                values[field] = value

        if _is_truthy(environ.get(ENV_PREFIX + "ENABLE_KUBERNETES")):
            values["backend"] = Backend.ORCHESTRATOR
        if _is_truthy(environ.get(ENV_PREFIX + "DEFER_FAILURE")):
            values["defer_failure"] = True

        return cls(**values)

    def executable_for(self, backend: Backend) -> str:
        """
        Returns the CLI executable used for a backend.
        """
        if backend == Backend.ORCHESTRATOR:
            return self.kubectl_path
        return self.docker_path

def _is_truthy(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in TRUTHY
