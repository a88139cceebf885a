"""
Builders that turn a ContainerSpec into the command spawning the function container.
"""
import posixpath
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, Type
from ..MODELS.container_spec import Backend, BuiltInvocation, ContainerSpec
from ..MODELS.pod_overrides import ContainerOverride, PodOverride, PodSpec
from ..MODELS.runtime_config import RuntimeConfig
from ..MANAGERS.environment_manager import EnvironmentSerializer
from ..MANAGERS.volume_manager import StorageMountTranslator
from ..ISOLATION.security_context import SecurityContextBuilder

class CommandBuilder(ABC):
    """
    Builds the executable and arguments for one backend.
    """
    backend: Backend

    def __init__(self,
                 executable: str,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Initializes the builder.

        :param executable: The backend CLI to invoke.
        :param environ: Environment bare env entries are inherited from. Defaults to os.environ.
        """
        self.executable = executable
        self.env_serializer = EnvironmentSerializer(environ)
        self.security_builder = SecurityContextBuilder()

    @abstractmethod
    def build_args(self, spec: ContainerSpec, working_dir: str, uid_gid: str) -> List[str]:
        """
        Builds the argument vector for the backend executable.
        """

    def build(self, spec: ContainerSpec, working_dir: str, uid_gid: str = "") -> BuiltInvocation:
        """
        Builds the full invocation.

        :param spec: The function container definition.
        :param working_dir: Absolute directory relative mount sources resolve against.
        :param uid_gid: Identity the container runs as.
        :return: The built invocation.
        """
        args = self.build_args(spec, working_dir, uid_gid)
        return BuiltInvocation(path=self.executable, args=args, working_dir=working_dir)

class LocalEngineCommandBuilder(CommandBuilder):
    """
    Runs the function with the docker CLI, so registry auth matches `docker run`.
    """
    backend = Backend.LOCAL_ENGINE

    def build_args(self, spec: ContainerSpec, working_dir: str, uid_gid: str) -> List[str]:
        security = self.security_builder.build(uid_gid, network=spec.network)
        mounts = StorageMountTranslator(working_dir)

        args = [
            "run",
            "--rm",
            "-i", "-a", "STDIN", "-a", "STDOUT", "-a", "STDERR",
        ]
        args.extend(security.docker_flags())
        args.extend(mounts.docker_flags(spec.storage_mounts))
        args.extend(self.env_serializer.docker_flags(spec.env))
        args.append(spec.image)
        return args

class OrchestratorCommandBuilder(CommandBuilder):
    """
    Runs the function as an ephemeral pod with `kubectl run`.
    """
    backend = Backend.ORCHESTRATOR

    @staticmethod
    def pod_name(image: str) -> str:
        """
        Derives the pod name from the image basename, without its tag.
        """
        return posixpath.basename(image).split(":")[0]

    def build_overrides(self, spec: ContainerSpec, working_dir: str, uid_gid: str) -> PodOverride:
        """
        Builds the single-container pod override for the function.
        """
        security = self.security_builder.build(uid_gid, network=spec.network)
        volumes, volume_mounts = StorageMountTranslator(working_dir).kubernetes_volumes(spec.storage_mounts)

        container = ContainerOverride(
            image=spec.image,
            env=self.env_serializer.kubernetes_env(spec.env),
            volume_mounts=volume_mounts,
        )
        return PodOverride(
            spec=PodSpec(
                containers=[container],
                security_context=security.to_pod_security_context(),
                host_network=security.host_network,
                volumes=volumes,
            )
        )

    def build_args(self, spec: ContainerSpec, working_dir: str, uid_gid: str) -> List[str]:
        overrides = self.build_overrides(spec, working_dir, uid_gid)
        return [
            "run", self.pod_name(spec.image),
            "--rm", "--stdin", "--quiet",
            "--image", spec.image,
            "--restart=Never",
            "--overrides", overrides.to_json(),
        ]

BUILDERS: Dict[Backend, Type[CommandBuilder]] = {
    Backend.LOCAL_ENGINE: LocalEngineCommandBuilder,
    Backend.ORCHESTRATOR: OrchestratorCommandBuilder,
}

def get_command_builder(backend: Backend,
                        config: Optional[RuntimeConfig] = None,
                        environ: Optional[Mapping[str, str]] = None) -> CommandBuilder:
    """
    Returns the builder for a backend.

    :param backend: The selected backend.
    :param config: Runtime settings providing the executable names.
    :param environ: Environment bare env entries are inherited from.
    :return: A builder for the backend.
    """
    config = config or RuntimeConfig()
    builder_cls = BUILDERS[Backend(backend)]
    return builder_cls(config.executable_for(builder_cls.backend), environ=environ)
