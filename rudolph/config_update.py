"""Partial updates of stored configurations, global or per machine."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Protocol

from .config_cache import CACHE_KEY_GLOBAL, ConfigCache
from .config_fetch import ConfigurationFetcher
from .config_model import (
    CURRENT_SK,
    GLOBAL_CONFIGURATION_PK,
    ConfigUpdateRequest,
    MachineConfiguration,
    machine_configuration_pk,
)
from .config_set import GLOBAL_LOCKDOWN_DISABLED
from .records import PrimaryKey, from_item
from .types import ClientMode

log = logging.getLogger(__name__)

MIN_FULL_SYNC_INTERVAL = 60


class _Clock(Protocol):
    def now(self) -> datetime: ...


class _Updater(Protocol):
    def update_item(self, key: PrimaryKey, item: Any) -> Mapping[str, Any] | None: ...


class _Cache(Protocol):
    def set(self, key: str, config: MachineConfiguration | None) -> bool: ...


@dataclass
class _UpdateClientMode:
    client_mode: ClientMode | None = field(default=None, metadata={"attribute": "ClientMode"})


def _update_client_mode(client: _Updater, key: PrimaryKey, new_client_mode: ClientMode, scope: str) -> None:
    try:
        client.update_item(key, _UpdateClientMode(client_mode=new_client_mode))
    except Exception as exc:
        log.error("setting %s config failed: %s", scope, exc)
        raise


def update_machine_config_client_mode(
    client: _Updater, machine_id: str, new_client_mode: ClientMode
) -> None:
    """Change only the client mode of a machine's configuration."""
    key = PrimaryKey(machine_configuration_pk(machine_id), CURRENT_SK)
    _update_client_mode(client, key, new_client_mode, "machine")


def update_global_config_client_mode(client: _Updater, new_client_mode: ClientMode) -> None:
    """Change only the client mode of the global configuration."""
    key = PrimaryKey(GLOBAL_CONFIGURATION_PK, CURRENT_SK)
    _update_client_mode(client, key, new_client_mode, "global")


def _apply(
    current: MachineConfiguration, request: ConfigUpdateRequest, *, global_scope: bool
) -> tuple[MachineConfiguration, bool]:
    """Return the configuration with the request applied and whether anything changed."""
    new = dataclasses.replace(current)
    changed = False

    if request.client_mode is not None and request.client_mode != current.client_mode:
        if global_scope and request.client_mode == ClientMode.LOCKDOWN:
            raise ValueError(GLOBAL_LOCKDOWN_DISABLED)
        new.client_mode = request.client_mode
        changed = True

    if (
        request.allowed_path_regex is not None
        and request.allowed_path_regex != current.allowed_path_regex
    ):
        new.allowed_path_regex = request.allowed_path_regex
        changed = True

    if (
        request.blocked_path_regex is not None
        and request.blocked_path_regex != current.blocked_path_regex
    ):
        # The global update has always written this value into the allowed-path field.
        if global_scope:
            new.allowed_path_regex = request.blocked_path_regex
        else:
            new.blocked_path_regex = request.blocked_path_regex
        changed = True

    if (
        request.batch_size is not None
        and request.batch_size != current.batch_size
        and request.batch_size > 0
    ):
        new.batch_size = request.batch_size
        changed = True

    if request.enable_bundles is not None and request.enable_bundles != current.enable_bundles:
        new.enable_bundles = request.enable_bundles
        changed = True

    if (
        request.enable_transitive_rules is not None
        and request.enable_transitive_rules != current.enabled_transitive_rules
    ):
        new.enabled_transitive_rules = request.enable_transitive_rules
        changed = True

    if (
        request.full_sync_interval is not None
        and request.full_sync_interval != current.full_sync_interval
        and request.full_sync_interval >= MIN_FULL_SYNC_INTERVAL
    ):
        new.full_sync_interval = request.full_sync_interval
        changed = True

    if request.clean_sync is not None:
        new.clean_sync = request.clean_sync
        changed = True

    return new, changed


def _store(
    client: _Updater, key: PrimaryKey, config: MachineConfiguration, failure: str
) -> MachineConfiguration:
    try:
        output = client.update_item(key, config)
    except Exception as exc:
        raise RuntimeError(f"{failure}: {exc}") from exc
    attributes = (output or {}).get("Attributes") or {}
    try:
        return from_item(MachineConfiguration, attributes)
    except ValueError as exc:
        raise ValueError(
            f"succeeded UpdateItem but failed to unmarshalMap into MachineConfiguration: {exc}"
        ) from exc


class ConfigurationUpdater:
    """Applies partial changes to the global or a machine's configuration.

    Each update starts from the currently intended configuration, so a
    machine without its own override gets one built from the fallback.
    Nothing is written when the request changes nothing.
    """

    def __init__(self, client: _Updater, fetcher: ConfigurationFetcher, cache: _Cache) -> None:
        self._client = client
        self._fetcher = fetcher
        self._cache = cache

    def update_global_config(self, request: ConfigUpdateRequest) -> MachineConfiguration:
        """Apply request to the global configuration and return the result."""
        current, _ = self._fetcher.intended_global_config()
        new, changed = _apply(current, request, global_scope=True)
        if not changed:
            return new
        updated = _store(
            self._client,
            PrimaryKey(GLOBAL_CONFIGURATION_PK, CURRENT_SK),
            new,
            "updating global configuration failed",
        )
        self._cache.set(CACHE_KEY_GLOBAL, new)
        return updated

    def update_machine_config(
        self, machine_id: str, request: ConfigUpdateRequest
    ) -> MachineConfiguration:
        """Apply request to the configuration of machine_id and return the result."""
        current = self._fetcher.intended_config(machine_id)
        new, changed = _apply(current, request, global_scope=False)
        if not changed:
            return new
        return _store(
            self._client,
            PrimaryKey(machine_configuration_pk(machine_id), CURRENT_SK),
            new,
            "updating machine configuration failed",
        )


def get_configuration_updater(
    client: _Updater, fetcher: ConfigurationFetcher, time_provider: _Clock
) -> ConfigurationUpdater:
    """Return an updater with its own global configuration cache."""
    return ConfigurationUpdater(client, fetcher, ConfigCache(time_provider))