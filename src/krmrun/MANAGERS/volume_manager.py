"""
Translation of declared storage mounts into backend-native mount syntax.
"""
import hashlib
import logging
import os
from typing import List, Optional, Sequence, Tuple
from ..MODELS.container_spec import MountType, StorageMount
from ..MODELS.pod_overrides import (
    EmptyDirSource,
    HostPathSource,
    PersistentVolumeClaimSource,
    Volume,
    VolumeMountOverride,
)

logger = logging.getLogger(__name__)

VOLUME_NAME_LENGTH = 32

class StorageMountTranslator:
    """
    Converts StorageMount declarations into docker --mount descriptors or
    Kubernetes volume / volumeMount pairs.
    """
    def __init__(self, working_dir: str):
        """
        Initializes the translator.

        :param working_dir: The directory relative mount sources are resolved against.
        """
        self.working_dir = working_dir

    def resolve_source(self, source: str) -> str:
        """
        Resolves the source path of a mount.

        :param source: The declared source path.
        :return: The source joined onto the working directory when relative.
        """
        if os.path.isabs(source):
            return source
        return os.path.join(self.working_dir, source)

    @staticmethod
    def volume_name(mount: StorageMount) -> str:
        """
        Derives a stable volume name from the declared mount descriptor.

        :param mount: The declared mount, before source resolution.
        :return: A 32 character hex identifier.
        """
        digest = hashlib.sha256(mount.descriptor().encode("utf-8")).hexdigest()
        return digest[:VOLUME_NAME_LENGTH]

    def to_docker_mount(self, mount: StorageMount) -> Optional[str]:
        """
        Translates a mount into a docker --mount value.

        :param mount: The declared mount.
        :return: The mount descriptor, or None when the mount type is unknown.
        """
        if not self._is_supported(mount):
            return None
        resolved = mount.model_copy(update={"src": self.resolve_source(mount.src)})
        return resolved.descriptor()

    def to_kubernetes_volume(self, mount: StorageMount) -> Optional[Tuple[Volume, VolumeMountOverride]]:
        """
        Translates a mount into a pod volume and the matching container volume mount.

        :param mount: The declared mount.
        :return: The (volume, volume mount) pair, or None when the mount type is unknown.
        """
        if not self._is_supported(mount):
            return None

        name = self.volume_name(mount)
        mount_type = MountType(mount.mount_type)
        if mount_type == MountType.BIND:
            volume = Volume(name=name, host_path=HostPathSource(path=self.resolve_source(mount.src)))
        elif mount_type == MountType.TMPFS:
            volume = Volume(name=name, empty_dir=EmptyDirSource(medium="Memory"))
        else:
            # persistent volume claims are referenced by name, never resolved
            volume = Volume(name=name, persistent_volume_claim=PersistentVolumeClaimSource(claim_name=mount.src))

        volume_mount = VolumeMountOverride(
            name=name,
            mount_path=mount.dst,
            read_only=True if mount.read_only else None,
        )
        return volume, volume_mount

    def docker_flags(self, mounts: Sequence[StorageMount]) -> List[str]:
        """
        Builds the --mount flags for all mounts, in declared order.
        """
        flags = []
        for mount in mounts:
            descriptor = self.to_docker_mount(mount)
            if descriptor is not None:
                flags.extend(["--mount", descriptor])
        return flags

    def kubernetes_volumes(self, mounts: Sequence[StorageMount]) -> Tuple[List[Volume], List[VolumeMountOverride]]:
        """
        Builds pod volumes and container volume mounts for all mounts, in declared order.
        """
        volumes = []
        volume_mounts = []
        for mount in mounts:
            translated = self.to_kubernetes_volume(mount)
            if translated is None:
                continue
            volume, volume_mount = translated
            volumes.append(volume)
            volume_mounts.append(volume_mount)
        return volumes, volume_mounts

    def _is_supported(self, mount: StorageMount) -> bool:
        if MountType.is_known(mount.mount_type):
            return True
        logger.warning("Ignoring storage mount %s: unsupported mount type %r",
                       mount.descriptor(), mount.mount_type)
        return False
