# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Containerized function filter.

The container must start a process that reads a ResourceList from stdin and
writes the transformed ResourceList to stdout, exiting non-zero on failure.
The full environment of the parent process is passed to the spawned CLI.
The command is built once, on first use, and reused for the lifetime of the filter.
"""
import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Protocol

from ..exceptions import InvocationAlreadyBuiltError, WorkingDirectoryError
from ..BUILDERS.command_builder import get_command_builder
from ..MODELS.container_spec import Backend, BuiltInvocation, ContainerSpec, InvocationState
from ..MODELS.runtime_config import RuntimeConfig
from .exec_filter import ExecFilter

logger = logging.getLogger(__name__)


class Exec(Protocol):
    """Runs a built command over a list of resources."""

    path: str
    args: List[str]
    working_dir: str
    defer_failure: bool

    def filter(self, documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]: ...

    def get_exit(self) -> Optional[Exception]: ...


class ContainerFilter:
    """
    Runs a function container over resources through an Exec collaborator.

    Not safe to build from several threads; use one filter per function step.
    """

    def __init__(
        self,
        spec: ContainerSpec,
        uid_gid: str = "",
        backend: Backend = Backend.LOCAL_ENGINE,
        exec_filter: Optional[Exec] = None,
        config: Optional[RuntimeConfig] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the container filter.

        Args:
            spec: The function container definition.
            uid_gid: Identity the container runs as ("", "nobody" or "uid:gid").
            backend: Backend used to spawn the container.
            exec_filter: Collaborator running the built command. Defaults to ExecFilter.
            config: Runtime settings providing executable names.
            environ: Environment bare env entries are inherited from. Defaults to os.environ.
        """
        self.spec = spec
        self.uid_gid = uid_gid
        self.backend = Backend(backend)
        self.exec = exec_filter if exec_filter is not None else ExecFilter()
        self.config = config or RuntimeConfig()
        self.environ = environ
        self._state = InvocationState.UNINITIALIZED
        self._invocation: Optional[BuiltInvocation] = None

    @property
    def state(self) -> InvocationState:
        """Build state of the invocation."""
        return self._state

    @property
    def invocation(self) -> Optional[BuiltInvocation]:
        """The built invocation, None until built."""
        return self._invocation

    def ensure_built(self) -> BuiltInvocation:
        """
        Build the invocation if it has not been built yet.

        Returns:
            The cached invocation.

        Raises:
            WorkingDirectoryError: If no working directory was set and the
                current one cannot be resolved.
        """
        if self._state == InvocationState.BUILT:
            return self._invocation

        working_dir = self._resolve_working_dir()
        builder = get_command_builder(self.backend, self.config, self.environ)
        invocation = builder.build(self.spec, working_dir, self.uid_gid)
        logger.debug("Built %s invocation for %s", self.backend.value, self.spec.image)
        self.set_invocation(invocation)
        return invocation

    def set_invocation(self, invocation: BuiltInvocation) -> None:
        """
        Cache an invocation and hand it to the Exec collaborator.

        Raises:
            InvocationAlreadyBuiltError: If an invocation was already built.
        """
        if self._state == InvocationState.BUILT:
            raise InvocationAlreadyBuiltError(self.spec.image)

        self.exec.path = invocation.path
        self.exec.args = list(invocation.args)
        self.exec.working_dir = invocation.working_dir
        self._invocation = invocation
        self._state = InvocationState.BUILT

    def filter(self, documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Run the function over the documents.

        Args:
            documents: Resources already scoped to this function.

        Returns:
            The resources written back by the function.
        """
        self.ensure_built()
        return self.exec.filter(documents)

    def get_exit(self) -> Optional[Exception]:
        """Return the deferred failure of the last run, without running anything."""
        return self.exec.get_exit()

    @property
    def results(self) -> List[Any]:
        """ResourceList results reported by the last run, empty if the Exec keeps none."""
        return list(getattr(self.exec, "results", []))

    def _resolve_working_dir(self) -> str:
        try:
            if not self.exec.working_dir:
                return os.getcwd()
            return os.path.abspath(self.exec.working_dir)
        except OSError as e:
            raise WorkingDirectoryError(f"Unable to resolve working directory: {e}") from e

    def __str__(self) -> str:
        if self.exec.defer_failure:
            return f"{self.spec.image} deferFailure: {self.exec.defer_failure}"
        return self.spec.image

    def __repr__(self) -> str:
        return f"ContainerFilter({self.spec.image}, {self.backend.value}, {self._state.value})"


def new_container(
    spec: ContainerSpec,
    uid_gid: str = "",
    backend: Backend = Backend.LOCAL_ENGINE,
    defer_failure: bool = False,
    working_dir: str = "",
    function_config: Optional[Dict[str, Any]] = None,
    config: Optional[RuntimeConfig] = None,
) -> ContainerFilter:
    """
    Create a container filter backed by the default ExecFilter.
    """
    exec_filter = ExecFilter(
        working_dir=working_dir,
        defer_failure=defer_failure,
        function_config=function_config,
    )
    return ContainerFilter(spec, uid_gid=uid_gid, backend=backend, exec_filter=exec_filter, config=config)
