"""In-memory, time-limited cache of configurations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

from .config_model import MachineConfiguration

CACHE_KEY_GLOBAL = "global"
DEFAULT_CACHE_DURATION = timedelta(hours=1)


class _Clock(Protocol):
    def now(self) -> datetime: ...


@dataclass
class _Entry:
    item: MachineConfiguration | None
    expires: datetime


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class ConfigCache:
    """Caches configurations (including None for "not set") for a fixed duration."""

    def __init__(self, time_provider: _Clock, duration: timedelta = DEFAULT_CACHE_DURATION) -> None:
        self._clock = time_provider
        self._duration = duration
        self._entries: dict[str, _Entry] = {}

    def has(self, key: str) -> bool:
        """Return whether key holds an entry that has not yet expired."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        return entry.expires > _as_utc(self._clock.now())

    def get(self, key: str) -> MachineConfiguration | None:
        """Return the cached configuration for key, expired or not, or None."""
        entry = self._entries.get(key)
        return entry.item if entry is not None else None

    def set(self, key: str, config: MachineConfiguration | None) -> bool:
        """Cache config under key; always succeeds."""
        self._entries[key] = _Entry(config, _as_utc(self._clock.now()) + self._duration)
        return True