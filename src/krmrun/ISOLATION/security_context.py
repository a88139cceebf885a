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
Least-privilege security settings for function containers.
Derives the numeric identity a container runs as and the hardening flags
applied to every invocation.
"""

from dataclasses import dataclass
from typing import List

from ..MODELS.pod_overrides import PodSecurityContext


NOBODY_ID = 65534
NOBODY = "nobody"


@dataclass(frozen=True)
class SecurityContext:
    """Identity and hardening settings for one function container."""

    uid: int = NOBODY_ID
    gid: int = NOBODY_ID

    # Hardening, always on
    privileged: bool = False
    allow_privilege_escalation: bool = False
    no_new_privileges: bool = True

    # Network is isolated unless explicitly shared
    host_network: bool = False

    @property
    def user(self) -> str:
        """The identity in uid:gid form."""
        return f"{self.uid}:{self.gid}"

    @property
    def network_mode(self) -> str:
        """The docker network mode."""
        return "host" if self.host_network else "none"

    def docker_flags(self) -> List[str]:
        """Build the docker flags enforcing this context."""
        flags = ["--network", self.network_mode, "--user", self.user]
        if self.no_new_privileges:
            flags.append("--security-opt=no-new-privileges")
        # the root filesystem stays writable, functions may need temp files
        return flags

    def to_pod_security_context(self) -> PodSecurityContext:
        """Build the pod-level securityContext for a pod override."""
        return PodSecurityContext(
            run_as_user=self.uid,
            run_as_group=self.gid,
            privileged=self.privileged,
            allow_privilege_escalation=self.allow_privilege_escalation,
        )


class SecurityContextBuilder:
    """
    Parses declarative identity strings into a SecurityContext.

    Accepted identities are "", "nobody" and "<uid>:<gid>". Anything else
    falls back to nobody (65534:65534) rather than failing.
    """

    @staticmethod
    def parse_identity(uid_gid: str) -> tuple:
        """
        Parse an identity string into a numeric (uid, gid) pair.

        Args:
            uid_gid: Identity string.

        Returns:
            The parsed pair, or (65534, 65534) when absent or malformed.
        """
        if not uid_gid or uid_gid == NOBODY:
            return NOBODY_ID, NOBODY_ID

        parts = uid_gid.split(":")
        if len(parts) != 2:
            return NOBODY_ID, NOBODY_ID
        try:
            return int(parts[0]), int(parts[1])
        except ValueError:
            return NOBODY_ID, NOBODY_ID

    def build(self, uid_gid: str = "", network: bool = False) -> SecurityContext:
        """
        Build the security context for a function container.

        Args:
            uid_gid: Identity string the container runs as.
            network: Whether the container shares the host network.

        Returns:
            The hardened security context.
        """
        uid, gid = self.parse_identity(uid_gid)
        return SecurityContext(uid=uid, gid=gid, host_network=network)
