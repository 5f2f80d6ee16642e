"""Per-machine sync state tracked across preflight, rule download and postflight."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Protocol

from .records import PrimaryKey, format_rfc3339, from_item, unix_timestamp
from .types import DataType

MACHINE_INFO_PK_PREFIX = "Machine#"
SYNC_STATE_SK = "SyncState"
SYNC_STATE_EXPIRES_AFTER_DAYS = 90

# Postflight saves a cursor this far before the end of the sync so that the
# next rule download overscans slightly and cannot miss feed rules that were
# not yet visible under eventual consistency.
FEED_CURSOR_OVERSCAN = timedelta(minutes=10)


class _Clock(Protocol):
    def now(self) -> datetime: ...


class _Getter(Protocol):
    def get_item(self, key: PrimaryKey, consistent_read: bool) -> Mapping[str, Any]: ...


class _Putter(Protocol):
    def put_item(self, item: Any) -> Any: ...


class _Updater(Protocol):
    def update_item(self, key: PrimaryKey, item: Any) -> Any: ...


@dataclass
class SyncStateRow:
    """The sync state row of one machine."""

    key: PrimaryKey = field(default_factory=PrimaryKey)
    machine_id: str = field(default="", metadata={"attribute": "MachineID"})
    batch_size: int = field(default=0, metadata={"attribute": "BatchSize"})
    clean_sync: bool = field(default=False, metadata={"attribute": "CleanSync"})
    last_clean_sync: str = field(default="", metadata={"attribute": "LastCleanSync"})
    feed_sync_cursor: str = field(default="", metadata={"attribute": "FeedSyncCursor"})
    preflight_at: str = field(default="", metadata={"attribute": "PreflightAt"})
    ruledownload_started_at: str = field(
        default="", metadata={"attribute": "RuledownloadStartedAt"}
    )
    ruledownload_finished_at: str = field(
        default="", metadata={"attribute": "RuledownloadFinishedAt"}
    )
    postflight_at: str = field(default="", metadata={"attribute": "PostflightAt"})
    expires_after: int = field(
        default=0, metadata={"attribute": "ExpiresAfter", "omitempty": True}
    )
    data_type: DataType | None = field(default=None, metadata={"attribute": "DataType"})


@dataclass
class _UpdatePostflightItem:
    postflight_at: str = field(default="", metadata={"attribute": "PostflightAt"})
    feed_sync_cursor: str = field(default="", metadata={"attribute": "FeedSyncCursor"})
    expires_after: int = field(
        default=0, metadata={"attribute": "ExpiresAfter", "omitempty": True}
    )


@dataclass
class _UpdateRuledownloadStartedAt:
    ruledownload_started_at: str = field(
        default="", metadata={"attribute": "RuledownloadStartedAt"}
    )


@dataclass
class _UpdateRuledownloadFinishedAt:
    ruledownload_finished_at: str = field(
        default="", metadata={"attribute": "RuledownloadFinishedAt"}
    )


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def sync_state_pk(machine_id: str) -> str:
    """Return the partition key of a machine's sync state."""
    return f"{MACHINE_INFO_PK_PREFIX}{machine_id}"


def _sync_state_key(machine_id: str) -> PrimaryKey:
    return PrimaryKey(partition_key=sync_state_pk(machine_id), sort_key=SYNC_STATE_SK)


def sync_state_expires_after(time_provider: _Clock) -> int:
    """Return the expiry timestamp for a sync state written now."""
    expires = _as_utc(time_provider.now()) + timedelta(days=SYNC_STATE_EXPIRES_AFTER_DAYS)
    return unix_timestamp(expires)


def data_type() -> DataType:
    """Return the data type of sync state rows."""
    return DataType.SYNC_STATE


def create_sync_state(
    time_provider: _Clock,
    machine_id: str,
    request_clean_sync: bool,
    last_clean_sync: str,
    batch_size: int,
    feed_sync_cursor: str,
) -> SyncStateRow:
    """Build a fresh sync state for a machine starting preflight now."""
    return SyncStateRow(
        key=_sync_state_key(machine_id),
        machine_id=machine_id,
        clean_sync=request_clean_sync,
        batch_size=batch_size,
        last_clean_sync=last_clean_sync,
        preflight_at=format_rfc3339(time_provider.now()),
        feed_sync_cursor=feed_sync_cursor,
        expires_after=sync_state_expires_after(time_provider),
        data_type=data_type(),
    )


def archive(client: _Putter, sync_state: SyncStateRow) -> None:
    """Store a copy of sync_state under a unique, time-stamped sort key."""
    stamp = format_rfc3339(datetime.now(timezone.utc))
    clone = dataclasses.replace(
        sync_state,
        key=PrimaryKey(
            partition_key=sync_state.key.partition_key,
            sort_key=f"{sync_state.key.sort_key}@{stamp}",
        ),
    )
    client.put_item(clone)


def get_by_machine_id(client: _Getter, machine_id: str) -> SyncStateRow | None:
    """Return the machine's current sync state, or None."""
    # Read consistently: preflight writes this row and rule download reads it
    # back immediately.
    output = client.get_item(_sync_state_key(machine_id), True)
    item = output.get("Item")
    if not item:
        return None
    try:
        return from_item(SyncStateRow, item)
    except ValueError as exc:
        raise ValueError(
            f"succeeded GetItem but failed to unmarshalMap into SyncState: {exc}"
        ) from exc


def _update(client: _Updater, machine_id: str, fragment: Any) -> None:
    try:
        client.update_item(_sync_state_key(machine_id), fragment)
    except Exception as exc:
        raise RuntimeError(f"failed to update item: {exc}") from exc


def update_postflight_date(time_provider: _Clock, client: _Updater, machine_id: str) -> None:
    """Record postflight time and move the feed cursor to slightly before it."""
    now = time_provider.now()
    _update(
        client,
        machine_id,
        _UpdatePostflightItem(
            postflight_at=format_rfc3339(now),
            feed_sync_cursor=format_rfc3339(now - FEED_CURSOR_OVERSCAN),
            expires_after=sync_state_expires_after(time_provider),
        ),
    )


def update_ruledownload_started_at(
    time_provider: _Clock, client: _Updater, machine_id: str
) -> None:
    """Record when rule download started."""
    _update(
        client,
        machine_id,
        _UpdateRuledownloadStartedAt(ruledownload_started_at=format_rfc3339(time_provider.now())),
    )


def update_ruledownload_finished_at(
    time_provider: _Clock, client: _Updater, machine_id: str
) -> None:
    """Record when rule download finished."""
    _update(
        client,
        machine_id,
        _UpdateRuledownloadFinishedAt(
            ruledownload_finished_at=format_rfc3339(time_provider.now())
        ),
    )