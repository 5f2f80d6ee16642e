"""Deletion of stored configurations."""

from __future__ import annotations

from typing import Any, Protocol

from .config_model import CURRENT_SK, GLOBAL_CONFIGURATION_PK, machine_configuration_pk
from .records import PrimaryKey


class _Deleter(Protocol):
    def delete_item(self, key: PrimaryKey) -> Any: ...


class ConfigurationDeleter:
    """Deletes the global configuration or a machine's configuration."""

    def __init__(self, client: _Deleter) -> None:
        self._client = client

    def delete_global_config(self) -> None:
        """Delete the global configuration."""
        self._client.delete_item(PrimaryKey(GLOBAL_CONFIGURATION_PK, CURRENT_SK))

    def delete_machine_config(self, machine_id: str) -> None:
        """Delete the configuration of one machine."""
        self._client.delete_item(PrimaryKey(machine_configuration_pk(machine_id), CURRENT_SK))