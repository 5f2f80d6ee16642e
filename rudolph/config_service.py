"""One entry point for reading, writing, updating and deleting configurations."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from .config_delete import ConfigurationDeleter
from .config_fetch import (
    ConfigurationFetcher,
    get_configuration_fetcher,
    get_uncached_configuration_fetcher,
)
from .config_model import ConfigUpdateRequest, MachineConfiguration
from .config_set import ConfigurationSetter, get_configuration_setter
from .config_update import ConfigurationUpdater, get_configuration_updater


class _Clock(Protocol):
    def now(self) -> datetime: ...


class MachineConfigurationService:
    """All configuration access methods over one database client."""

    def __init__(
        self,
        fetcher: ConfigurationFetcher,
        setter: ConfigurationSetter,
        updater: ConfigurationUpdater,
        deleter: ConfigurationDeleter,
    ) -> None:
        self._fetcher = fetcher
        self._setter = setter
        self._updater = updater
        self._deleter = deleter

    def get_intended_config(self, machine_id: str) -> MachineConfiguration:
        """Return the configuration machine_id should run with."""
        return self._fetcher.intended_config(machine_id)

    def get_intended_global_config(self) -> tuple[MachineConfiguration, bool]:
        """Return the global configuration and whether it is the universal default."""
        return self._fetcher.intended_global_config()

    def set_global_config(self, config: MachineConfiguration) -> None:
        """Replace the global configuration."""
        self._setter.set_global_config(config)

    def set_machine_config(self, machine_id: str, config: MachineConfiguration) -> None:
        """Replace the configuration of machine_id."""
        self._setter.set_machine_config(machine_id, config)

    def update_global_config(self, request: ConfigUpdateRequest) -> MachineConfiguration:
        """Apply a partial change to the global configuration."""
        return self._updater.update_global_config(request)

    def update_machine_config(
        self, machine_id: str, request: ConfigUpdateRequest
    ) -> MachineConfiguration:
        """Apply a partial change to the configuration of machine_id."""
        return self._updater.update_machine_config(machine_id, request)

    def delete_global_config(self) -> None:
        """Delete the global configuration."""
        self._deleter.delete_global_config()

    def delete_machine_config(self, machine_id: str) -> None:
        """Delete the configuration of machine_id."""
        self._deleter.delete_machine_config(machine_id)


def get_machine_configuration_service(client: Any, time_provider: _Clock) -> MachineConfigurationService:
    """Return a service whose global configuration reads are cached."""
    return MachineConfigurationService(
        fetcher=get_configuration_fetcher(client, time_provider),
        setter=get_configuration_setter(client, time_provider),
        updater=get_configuration_updater(
            client, get_configuration_fetcher(client, time_provider), time_provider
        ),
        deleter=ConfigurationDeleter(client),
    )


def get_uncached_machine_configuration_service(
    client: Any, time_provider: _Clock
) -> MachineConfigurationService:
    """Return a service that reads the global configuration on every request."""
    return MachineConfigurationService(
        fetcher=get_uncached_configuration_fetcher(client, time_provider),
        setter=get_configuration_setter(client, time_provider),
        updater=get_configuration_updater(
            client, get_configuration_fetcher(client, time_provider), time_provider
        ),
        deleter=ConfigurationDeleter(client),
    )