"""Writing whole configurations, global or per machine."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from .config_cache import CACHE_KEY_GLOBAL, ConfigCache
from .config_model import (
    ALLOW_GLOBAL_LOCKDOWN,
    CURRENT_SK,
    DEFAULT_BATCH_SIZE,
    GLOBAL_CONFIGURATION_PK,
    MachineConfiguration,
    MachineConfigurationRow,
    machine_configuration_pk,
)
from .records import PrimaryKey
from .types import ClientMode, DataType

log = logging.getLogger(__name__)

GLOBAL_LOCKDOWN_DISABLED = "global lockdown configuration is disabled right now"


class _Clock(Protocol):
    def now(self) -> datetime: ...


class _Putter(Protocol):
    def put_item(self, item: Any) -> Any: ...


class _Cache(Protocol):
    def set(self, key: str, config: MachineConfiguration | None) -> bool: ...


def _check_global_mode(client_mode: ClientMode | None) -> None:
    # Guards against switching every machine into lockdown by accident.
    if not ALLOW_GLOBAL_LOCKDOWN and client_mode == ClientMode.LOCKDOWN:
        raise ValueError(GLOBAL_LOCKDOWN_DISABLED)


def build_config(
    pk: str,
    client_mode: ClientMode | None,
    blocked_path_regex: str,
    allowed_path_regex: str,
    batch_size: int,
    enable_bundles: bool,
    enable_transitive_rules: bool,
    clean_sync: bool,
    full_sync_interval: int,
    upload_logs_url: str,
) -> MachineConfigurationRow:
    """Build a configuration row for the global or a machine partition key."""
    if batch_size <= 0:
        batch_size = DEFAULT_BATCH_SIZE
    kind = DataType.GLOBAL_CONFIG if pk == GLOBAL_CONFIGURATION_PK else DataType.MACHINE_CONFIG
    config = MachineConfiguration(
        client_mode=client_mode,
        blocked_path_regex=blocked_path_regex,
        allowed_path_regex=allowed_path_regex,
        batch_size=batch_size,
        enable_bundles=enable_bundles,
        enabled_transitive_rules=enable_transitive_rules,
        clean_sync=clean_sync,
        full_sync_interval=full_sync_interval,
        upload_logs_url=upload_logs_url,
        data_type=kind,
    )
    return MachineConfigurationRow(key=PrimaryKey(pk, CURRENT_SK), config=config)


def _row_from(pk: str, config: MachineConfiguration) -> MachineConfigurationRow:
    return build_config(
        pk,
        config.client_mode,
        config.blocked_path_regex,
        config.allowed_path_regex,
        config.batch_size,
        config.enable_bundles,
        config.enabled_transitive_rules,
        config.clean_sync,
        config.full_sync_interval,
        config.upload_logs_url,
    )


def set_global_config(
    client: _Putter,
    client_mode: ClientMode | None,
    blocked_path_regex: str,
    allowed_path_regex: str,
    batch_size: int,
    enable_bundles: bool,
    enable_transitive_rules: bool,
    full_sync_interval: int,
    upload_logs_url: str,
) -> None:
    """Write the global configuration; lockdown mode is refused."""
    _check_global_mode(client_mode)
    row = build_config(
        GLOBAL_CONFIGURATION_PK,
        client_mode,
        blocked_path_regex,
        allowed_path_regex,
        batch_size,
        enable_bundles,
        enable_transitive_rules,
        False,
        full_sync_interval,
        upload_logs_url,
    )
    try:
        client.put_item(row)
    except Exception as exc:
        log.error("setting global config failed: %s", exc)
        raise


def set_machine_config(
    client: _Putter,
    machine_id: str,
    client_mode: ClientMode | None,
    blocked_path_regex: str,
    allowed_path_regex: str,
    batch_size: int,
    enable_bundles: bool,
    enable_transitive_rules: bool,
    clean_sync: bool,
    full_sync_interval: int,
    upload_logs_url: str,
) -> None:
    """Write the configuration of one machine."""
    row = build_config(
        machine_configuration_pk(machine_id),
        client_mode,
        blocked_path_regex,
        allowed_path_regex,
        batch_size,
        enable_bundles,
        enable_transitive_rules,
        clean_sync,
        full_sync_interval,
        upload_logs_url,
    )
    try:
        client.put_item(row)
    except Exception as exc:
        log.error("setting machine config failed: %s", exc)
        raise


class ConfigurationSetter:
    """Replaces the whole global or machine configuration.

    Write failures are logged rather than raised; the new global
    configuration is placed in the cache either way.
    """

    def __init__(self, client: _Putter, cache: _Cache) -> None:
        self._client = client
        self._cache = cache

    def set_global_config(self, config: MachineConfiguration) -> None:
        """Write config as the global configuration; lockdown mode is refused."""
        _check_global_mode(config.client_mode)
        try:
            self._client.put_item(_row_from(GLOBAL_CONFIGURATION_PK, config))
        except Exception as exc:
            log.error("setting global config failed: %s", exc)
        self._cache.set(CACHE_KEY_GLOBAL, config)

    def set_machine_config(self, machine_id: str, config: MachineConfiguration) -> None:
        """Write config as the configuration of machine_id."""
        try:
            self._client.put_item(_row_from(machine_configuration_pk(machine_id), config))
        except Exception as exc:
            log.error("setting machine config failed: %s", exc)


def get_configuration_setter(client: _Putter, time_provider: _Clock) -> ConfigurationSetter:
    """Return a setter with its own global configuration cache."""
    return ConfigurationSetter(client, ConfigCache(time_provider))