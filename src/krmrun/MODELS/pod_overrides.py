"""
Typed schema for the pod override payload passed to `kubectl run --overrides`.

Field aliases carry the camelCase names the Kubernetes API expects, so a
model dumped with ``by_alias=True`` is the wire payload.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

FUNCTION_CONTAINER_NAME = "krm-function"

class _OverrideModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

class EnvVar(_OverrideModel):
    name: str
    value: str = ""

class VolumeMountOverride(_OverrideModel):
    name: str
    mount_path: str = Field(alias="mountPath")
    read_only: Optional[bool] = Field(default=None, alias="readOnly")

class HostPathSource(_OverrideModel):
    path: str

class EmptyDirSource(_OverrideModel):
    medium: str = "Memory"

class PersistentVolumeClaimSource(_OverrideModel):
    claim_name: str = Field(alias="claimName")

class Volume(_OverrideModel):
    """
    A pod-level volume. Exactly one source must be set.
    """
    name: str
    host_path: Optional[HostPathSource] = Field(default=None, alias="hostPath")
    empty_dir: Optional[EmptyDirSource] = Field(default=None, alias="emptyDir")
    persistent_volume_claim: Optional[PersistentVolumeClaimSource] = Field(
        default=None, alias="persistentVolumeClaim"
    )

    @model_validator(mode="after")
    def _check_single_source(self) -> "Volume":
        sources = [self.host_path, self.empty_dir, self.persistent_volume_claim]
        if sum(source is not None for source in sources) != 1:
            raise ValueError(f"volume {self.name} must declare exactly one source")
        return self

class ContainerOverride(_OverrideModel):
    name: str = FUNCTION_CONTAINER_NAME
    image: str
    stdin: bool = True
    stdin_once: bool = Field(default=True, alias="stdinOnce")
    env: List[EnvVar] = []
    volume_mounts: List[VolumeMountOverride] = Field(default=[], alias="volumeMounts")

class PodSecurityContext(_OverrideModel):
    run_as_user: int = Field(alias="runAsUser")
    run_as_group: int = Field(alias="runAsGroup")
    privileged: bool = False
    allow_privilege_escalation: bool = Field(default=False, alias="allowPrivilegeEscalation")

class PodSpec(_OverrideModel):
    containers: List[ContainerOverride]
    security_context: PodSecurityContext = Field(alias="securityContext")
    host_network: bool = Field(default=False, alias="hostNetwork")
    volumes: List[Volume] = []

    @model_validator(mode="after")
    def _check_mounts_reference_volumes(self) -> "PodSpec":
        names = {volume.name for volume in self.volumes}
        for container in self.containers:
            for mount in container.volume_mounts:
                if mount.name not in names:
                    raise ValueError(f"volume mount {mount.name} has no matching volume")
        return self

class PodOverride(_OverrideModel):
    """
    Single-container pod override for an ephemeral function pod.
    """
    api_version: str = Field(default="v1", alias="apiVersion")
    spec: PodSpec

    def to_json(self) -> str:
        """
        Serializes the override to the JSON string kubectl expects.
        """
        return self.model_dump_json(by_alias=True, exclude_none=True)
