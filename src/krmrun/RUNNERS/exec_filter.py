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
Execution of a function process exchanging a ResourceList over stdin/stdout.
"""
import logging
import os
import shlex
import subprocess
from typing import Any, Dict, List, Optional

import yaml

from ..exceptions import FunctionExecutionError
from ..PARSERS.resource_parser import (
    dump_documents,
    is_resource_list,
    parse_documents,
    unwrap_resource_list,
    wrap_resource_list,
)

logger = logging.getLogger(__name__)

class ExecFilter:
    """
    Runs a built command as a function over a list of resources.
    """
    def __init__(self,
                 path: str = "",
                 args: Optional[List[str]] = None,
                 working_dir: str = "",
                 defer_failure: bool = False,
                 function_config: Optional[Dict[str, Any]] = None,
                 env: Optional[Dict[str, str]] = None):
        """
        Initializes the exec filter.

        Args:
            path (str): Executable to run.
            args (Optional[List[str]]): Arguments for the executable.
            working_dir (str): Directory the process starts in.
            defer_failure (bool): Record a failing exit instead of raising it.
            function_config (Optional[Dict[str, Any]]): Sent as the ResourceList functionConfig.
            env (Optional[Dict[str, str]]): Process environment. Defaults to the full
                current environment at run time.
        """
        self.path = path
        self.args = list(args or [])
        self.working_dir = working_dir
        self.defer_failure = defer_failure
        self.function_config = function_config
        self.env = env
        self.results: List[Any] = []
        self._exit_error: Optional[FunctionExecutionError] = None

    @property
    def command(self) -> List[str]:
        return [self.path] + self.args

    def filter(self, documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Sends the documents to the process and returns the documents it writes back.

        Args:
            documents (List[Dict[str, Any]]): Input resources.

        Returns:
            List[Dict[str, Any]]: Output resources.

        Raises:
            FunctionExecutionError: If the process cannot start or exits non-zero
                while failures are not deferred, or writes unparsable output.
        """
        self.results = []
        self._exit_error = None
        payload = dump_documents([wrap_resource_list(documents, self.function_config)])
        stdout = self._run(payload)
        return self._read_output(stdout)

    def get_exit(self) -> Optional[FunctionExecutionError]:
        """
        Gets the failure recorded while failures were deferred.

        Returns:
            Optional[FunctionExecutionError]: The deferred error, None if the run succeeded.
        """
        return self._exit_error

    def _run(self, payload: str) -> str:
        env = dict(os.environ) if self.env is None else self.env
        command_line = shlex.join(self.command)
        logger.debug("Running function: %s", command_line)

        try:
            completed = subprocess.run(
                self.command,
                input=payload,
                env=env,
                cwd=self.working_dir or None,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                # Avoid shell=True for security reasons (CWE-78)
                shell=False,
            )
        except OSError as e:
            error = FunctionExecutionError(command_line, stderr=str(e))
            error.__cause__ = e
            if not self.defer_failure:
                logger.error("Failed to start %s: %s", command_line, e)
                raise error
            logger.warning("Deferring failure: %s", error)
            self._exit_error = error
            return ""

        logger.debug("Function %s exited with code %d", command_line, completed.returncode)
        if completed.returncode != 0:
            error = FunctionExecutionError(command_line, completed.returncode, completed.stderr)
            if not self.defer_failure:
                logger.error("%s", error)
                raise error
            logger.warning("Deferring failure: %s", error)
            self._exit_error = error
        return completed.stdout

    def _read_output(self, stdout: str) -> List[Dict[str, Any]]:
        if not stdout.strip():
            return []
        documents = []
        try:
            for doc in parse_documents(stdout):
                if is_resource_list(doc):
                    self.results.extend(doc.get("results") or [])
                    documents.extend(unwrap_resource_list(doc))
                else:
                    documents.append(doc)
        except (yaml.YAMLError, ValueError) as e:
            raise FunctionExecutionError(
                shlex.join(self.command),
                stderr=f"invalid function output: {e}",
            ) from e
        return documents
