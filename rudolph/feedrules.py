"""Time-ordered feed of rule changes that sensors download incrementally."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Protocol

from .records import (
    PrimaryKey,
    SantaRule,
    format_rfc3339,
    from_item,
    rule_sort_key,
    to_item,
    unix_timestamp,
)
from .types import DataType

log = logging.getLogger(__name__)

FEED_RULES_PK = "RulesFeed"
FEED_RULES_EXPIRES_AFTER_DAYS = 90


class _Clock(Protocol):
    def now(self) -> datetime: ...


class _Querier(Protocol):
    def query(self, query_input: dict[str, Any]) -> Mapping[str, Any]: ...


@dataclass
class FeedRuleRow:
    """A rule entry on the feed."""

    key: PrimaryKey = field(default_factory=PrimaryKey)
    rule: SantaRule = field(default_factory=SantaRule)
    expires_after: int = field(
        default=0, metadata={"attribute": "ExpiresAfter", "omitempty": True}
    )
    data_type: DataType | None = field(default=None, metadata={"attribute": "DataType"})


def _utc_now(time_provider: _Clock) -> datetime:
    moment = time_provider.now()
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def feed_rule_expires_after(time_provider: _Clock) -> int:
    """Return the expiry timestamp for a feed rule created now."""
    expires = _utc_now(time_provider) + timedelta(days=FEED_RULES_EXPIRES_AFTER_DAYS)
    return unix_timestamp(expires)


def data_type() -> DataType:
    """Return the data type of feed rows."""
    return DataType.RULES_FEED


def construct_feed_rule(time_provider: _Clock, rule: SantaRule) -> FeedRuleRow:
    """Build a feed row for rule, keyed by creation time and rule identity."""
    # Sorting by creation time, then by rule, lets syncs seek changes over time.
    sort_key = "{}#{}".format(
        format_rfc3339(time_provider.now()),
        rule_sort_key(rule.sha256, rule.rule_type),
    )
    return FeedRuleRow(
        key=PrimaryKey(partition_key=FEED_RULES_PK, sort_key=sort_key),
        rule=dataclasses.replace(rule),
        expires_after=feed_rule_expires_after(time_provider),
        data_type=data_type(),
    )


def feed_sync_start_key(feed_sync_cursor: str) -> PrimaryKey:
    """Return the key that resumes reading the feed from a saved cursor."""
    return PrimaryKey(partition_key=FEED_RULES_PK, sort_key=feed_sync_cursor)


def get_paginated_feed_rules(
    client: _Querier, limit: int, exclusive_start_key: PrimaryKey | None = None
) -> tuple[list[FeedRuleRow], PrimaryKey | None]:
    """Return up to limit feed rules and the key to continue from, or None at the end."""
    partition_key = FEED_RULES_PK
    if limit <= 0:
        raise ValueError("Invalid limit/batchsize specified")

    query_input: dict[str, Any] = {
        "ConsistentRead": False,
        "ExpressionAttributeValues": {":pk": {"S": partition_key}},
        "KeyConditionExpression": "PK = :pk",
        "Limit": limit,
    }
    if exclusive_start_key is not None:
        query_input["ExclusiveStartKey"] = to_item(exclusive_start_key)

    try:
        result = client.query(query_input)
    except Exception as exc:
        raise RuntimeError(
            f'failed to read feed rules from DynamoDB for partitionKey "{partition_key}": {exc}'
        ) from exc

    last_evaluated_key = None
    raw_last_key = result.get("LastEvaluatedKey")
    if raw_last_key is not None:
        try:
            last_evaluated_key = from_item(PrimaryKey, raw_last_key)
        except ValueError as exc:
            raise ValueError(f"failed to unmarshall LastEvaluatedKey: {exc}") from exc
        log.info("    lastEvaluatedKey: %r", last_evaluated_key)

    try:
        items = [from_item(FeedRuleRow, item) for item in result.get("Items") or []]
    except ValueError as exc:
        raise ValueError(f"failed to unmarshal result from DynamoDB: {exc}") from exc
    return items, last_evaluated_key