"""
Parser for storage mount declarations written in docker --mount syntax.
"""
from ..MODELS.container_spec import MountType, StorageMount

SOURCE_KEYS = ("src", "source")
TARGET_KEYS = ("dst", "target", "destination")

class MountParser:
    """
    Parses `type=bind,src=cfg,dst=/cfg[,readonly]` strings into StorageMounts.
    """
    @staticmethod
    def parse(value: str) -> StorageMount:
        """
        Parses one mount declaration.

        Args:
            value (str): Comma separated key=value fields.

        Returns:
            StorageMount: The declared mount. Unknown types are kept as written.

        Raises:
            ValueError: If the source or destination is missing.
        """
        fields = {}
        read_only = False
        for part in value.split(','):
            part = part.strip()
            if not part:
                continue
            if '=' not in part:
                if part in ("readonly", "ro"):
                    read_only = True
                    continue
                raise ValueError(f"Invalid mount field {part!r} in {value!r}")
            key, field_value = part.split('=', 1)
            fields[key.strip().lower()] = field_value.strip()

        if fields.get("readonly", "").lower() in ("true", "1"):
            read_only = True

        src = next((fields[k] for k in SOURCE_KEYS if k in fields), "")
        dst = next((fields[k] for k in TARGET_KEYS if k in fields), "")
        if not src:
            raise ValueError(f"Mount {value!r} has no source")
        if not dst:
            raise ValueError(f"Mount {value!r} has no destination")

        return StorageMount(
            src=src,
            dst=dst,
            mount_type=fields.get("type", MountType.BIND.value),
            read_only=read_only,
        )
