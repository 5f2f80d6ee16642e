"""Santa client configuration records, global and per machine."""

from __future__ import annotations

from dataclasses import dataclass, field

from .records import PrimaryKey
from .types import ClientMode, DataType

MACHINE_CONFIGURATION_PK_PREFIX = "Machine#"
GLOBAL_CONFIGURATION_PK = "GlobalConfig"
CURRENT_SK = "Config"
ALLOW_GLOBAL_LOCKDOWN = False
DEFAULT_FULL_SYNC_INTERVAL = 600
DEFAULT_BATCH_SIZE = 50


@dataclass
class MachineConfiguration:
    """Configuration sent to a Santa client, without its database key."""

    client_mode: ClientMode | None = field(default=None, metadata={"attribute": "ClientMode"})
    blocked_path_regex: str = field(default="", metadata={"attribute": "BlockedPathRegex"})
    allowed_path_regex: str = field(default="", metadata={"attribute": "AllowedPathRegex"})
    batch_size: int = field(default=0, metadata={"attribute": "BatchSize"})
    enable_bundles: bool = field(default=False, metadata={"attribute": "EnableBundles"})
    enabled_transitive_rules: bool = field(
        default=False, metadata={"attribute": "EnableTransitiveRules"}
    )
    clean_sync: bool = field(
        default=False, metadata={"attribute": "CleanSync", "omitempty": True}
    )
    full_sync_interval: int = field(
        default=0, metadata={"attribute": "FullSyncInterval", "omitempty": True}
    )
    upload_logs_url: str = field(
        default="", metadata={"attribute": "UploadLogsUrl", "omitempty": True}
    )
    data_type: DataType | None = field(
        default=None, metadata={"attribute": "DataType", "omitempty": True}
    )


@dataclass
class MachineConfigurationRow:
    """A configuration stored in the database under its key."""

    key: PrimaryKey = field(default_factory=PrimaryKey)
    config: MachineConfiguration = field(default_factory=MachineConfiguration)


@dataclass
class ConfigUpdateRequest:
    """A partial configuration change; fields left as None are not changed."""

    client_mode: ClientMode | None = None
    blocked_path_regex: str | None = None
    allowed_path_regex: str | None = None
    batch_size: int | None = None
    enable_bundles: bool | None = None
    enable_transitive_rules: bool | None = None
    clean_sync: bool | None = None
    full_sync_interval: int | None = None
    upload_logs_url: str | None = None


def machine_configuration_pk(machine_id: str) -> str:
    """Return the partition key of a machine's configuration."""
    return f"{MACHINE_CONFIGURATION_PK_PREFIX}{machine_id}"


def universal_default_config() -> MachineConfiguration:
    """Return the configuration used when neither machine nor global config exists."""
    return MachineConfiguration(
        client_mode=ClientMode.MONITOR,
        blocked_path_regex="",
        allowed_path_regex="",
        batch_size=DEFAULT_BATCH_SIZE,
        enable_bundles=False,
        enabled_transitive_rules=False,
        clean_sync=False,
        full_sync_interval=DEFAULT_FULL_SYNC_INTERVAL,
        upload_logs_url="",
        data_type=DataType.GLOBAL_CONFIG,
    )