"""Resolution of the configuration intended for a machine.

A machine's configuration is looked up in this order: its own override, then
the global configuration, then the hard-coded universal default.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Any, Mapping, Protocol

from .config_cache import CACHE_KEY_GLOBAL, ConfigCache
from .config_model import (
    CURRENT_SK,
    GLOBAL_CONFIGURATION_PK,
    MachineConfiguration,
    machine_configuration_pk,
    universal_default_config,
)
from .records import PrimaryKey, from_item

log = logging.getLogger(__name__)


class _Clock(Protocol):
    def now(self) -> datetime: ...


class _Getter(Protocol):
    def get_item(self, key: PrimaryKey, consistent_read: bool) -> Mapping[str, Any]: ...


class _Cache(Protocol):
    def has(self, key: str) -> bool: ...

    def get(self, key: str) -> MachineConfiguration | None: ...

    def set(self, key: str, config: MachineConfiguration | None) -> bool: ...


def _get_item_as_machine_configuration(
    client: _Getter, partition_key: str, sort_key: str
) -> MachineConfiguration | None:
    output = client.get_item(PrimaryKey(partition_key, sort_key), False)
    item = output.get("Item") if output else None
    if not item:
        return None
    try:
        return from_item(MachineConfiguration, item)
    except ValueError as exc:
        raise ValueError(
            "succeeded GetItem but failed to unmarshalMap into MachineConfiguration: "
            f"{exc}"
        ) from exc


def _copy(config: MachineConfiguration) -> MachineConfiguration:
    return dataclasses.replace(config)


class GlobalConfigurationFetcher:
    """Fetches the global configuration, optionally through a cache.

    The global configuration changes rarely, so caching it saves reads. A
    missing configuration (None) is cached as well.
    """

    def __init__(self, client: _Getter, cache: _Cache | None = None) -> None:
        self._client = client
        self._cache = cache

    def get_global_config(self) -> MachineConfiguration | None:
        """Return the stored global configuration, or None if there is none."""
        if self._cache is not None and self._cache.has(CACHE_KEY_GLOBAL):
            return self._cache.get(CACHE_KEY_GLOBAL)
        try:
            config = _get_item_as_machine_configuration(
                self._client, GLOBAL_CONFIGURATION_PK, CURRENT_SK
            )
        except Exception as exc:
            raise RuntimeError(f"failed to get global config: {exc}") from exc
        if self._cache is not None:
            self._cache.set(CACHE_KEY_GLOBAL, config)
        return config


class MachineConfigurationFetcher:
    """Fetches the configuration override stored for one machine."""

    def __init__(self, client: _Getter) -> None:
        self._client = client

    def get_machine_specific_config(self, machine_id: str) -> MachineConfiguration | None:
        """Return the machine's own configuration, or None if it has none."""
        return _get_item_as_machine_configuration(
            self._client, machine_configuration_pk(machine_id), CURRENT_SK
        )


class ConfigurationFetcher:
    """Resolves configurations through machine overrides, global config and defaults."""

    def __init__(
        self,
        global_fetcher: GlobalConfigurationFetcher,
        machine_fetcher: MachineConfigurationFetcher,
    ) -> None:
        self._global = global_fetcher
        self._machine = machine_fetcher

    def intended_config(self, machine_id: str) -> MachineConfiguration:
        """Return the configuration that machine_id should run with."""
        try:
            config = self._machine.get_machine_specific_config(machine_id)
        except Exception as exc:
            raise RuntimeError(f"failed to get machine config: {exc}") from exc
        if config is None:
            try:
                config = self._global.get_global_config()
            except Exception as exc:
                raise RuntimeError(f"failed to get fallback global config: {exc}") from exc
        if config is None:
            return universal_default_config()
        return _copy(config)

    def intended_global_config(self) -> tuple[MachineConfiguration, bool]:
        """Return the global configuration and whether it is the universal default."""
        try:
            config = self._global.get_global_config()
        except Exception as exc:
            raise RuntimeError(f"failed to get fallback global config: {exc}") from exc
        if config is None:
            return universal_default_config(), True
        return _copy(config), False


def get_configuration_fetcher(client: _Getter, time_provider: _Clock) -> ConfigurationFetcher:
    """Return a fetcher whose global configuration lookups are cached."""
    return ConfigurationFetcher(
        GlobalConfigurationFetcher(client, ConfigCache(time_provider)),
        MachineConfigurationFetcher(client),
    )


def get_uncached_configuration_fetcher(
    client: _Getter, time_provider: _Clock
) -> ConfigurationFetcher:
    """Return a fetcher that reads the global configuration on every call."""
    return ConfigurationFetcher(
        GlobalConfigurationFetcher(client, None),
        MachineConfigurationFetcher(client),
    )


def get_machine_specific_config(client: _Getter, machine_id: str) -> MachineConfiguration | None:
    """Return the machine's own configuration, or None."""
    return _get_item_as_machine_configuration(
        client, machine_configuration_pk(machine_id), CURRENT_SK
    )


def get_global_config(client: _Getter) -> MachineConfiguration | None:
    """Return the stored global configuration, or None."""
    return _get_item_as_machine_configuration(client, GLOBAL_CONFIGURATION_PK, CURRENT_SK)


def get_intended_config(client: _Getter, machine_id: str) -> MachineConfiguration:
    """Resolve the configuration for machine_id without any caching."""
    try:
        config = get_machine_specific_config(client, machine_id)
    except Exception as exc:
        raise RuntimeError(f"failed to get machine config: {exc}") from exc

    if config is None:
        log.info("no config items found for %s", machine_id)
        log.info("Retrieving global config")
        try:
            config = get_global_config(client)
        except Exception as exc:
            raise RuntimeError(f"failed to get global config: {exc}") from exc

    if config is None:
        log.warning("GLOBAL CONFIG ITEM NOT FOUND; DEFAULTING TO HARDCODED DEFAULT CONFIG.")
        return universal_default_config()
    return config