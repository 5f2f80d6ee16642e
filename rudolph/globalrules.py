"""Rules that apply to every machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from .records import PrimaryKey, SantaRule, from_item, rule_sort_key, to_item

GLOBAL_RULES_PK = "GlobalRules"


class _Getter(Protocol):
    def get_item(self, key: PrimaryKey, consistent_read: bool) -> Mapping[str, Any]: ...


class _Querier(Protocol):
    def query(self, query_input: dict[str, Any]) -> Mapping[str, Any]: ...


@dataclass
class GlobalRuleRow:
    """A global rule row."""

    key: PrimaryKey = field(default_factory=PrimaryKey)
    rule: SantaRule = field(default_factory=SantaRule)
    description: str = field(
        default="", metadata={"attribute": "Description", "omitempty": True}
    )


def global_rule_sort_key(sha256: str, rule_type: int) -> str:
    """Return the sort key of a global rule."""
    return rule_sort_key(sha256, rule_type)


def _get_global_rule(client: _Getter, partition_key: str, sort_key: str) -> GlobalRuleRow | None:
    output = client.get_item(PrimaryKey(partition_key, sort_key), False)
    item = output.get("Item")
    if not item:
        return None
    try:
        return from_item(GlobalRuleRow, item)
    except ValueError as exc:
        raise ValueError(
            f"succeeded GetItem but failed to unmarshalMap into GlobalRuleRow: {exc}"
        ) from exc


def get_global_rule_by_sort_key(client: _Getter, rule_sort_key: str) -> GlobalRuleRow | None:
    """Return the global rule with the given sort key, or None."""
    return _get_global_rule(client, GLOBAL_RULES_PK, rule_sort_key)


def get_global_rule_by_sha_type(
    client: _Getter, sha256: str, rule_type: int
) -> GlobalRuleRow | None:
    """Return the global rule for a hash and rule type, or None."""
    return _get_global_rule(client, GLOBAL_RULES_PK, global_rule_sort_key(sha256, rule_type))


def get_paginated_global_rules(
    client: _Querier, limit: int, exclusive_start_key: PrimaryKey | None = None
) -> tuple[list[GlobalRuleRow], PrimaryKey | None]:
    """Return up to limit global rules and the key to continue from, or None at the end."""
    partition_key = GLOBAL_RULES_PK
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
            f'failed to read rules from DynamoDB for partitionKey "{partition_key}": {exc}'
        ) from exc

    last_evaluated_key = None
    raw_last_key = result.get("LastEvaluatedKey")
    if raw_last_key is not None:
        try:
            last_evaluated_key = from_item(PrimaryKey, raw_last_key)
        except ValueError as exc:
            raise ValueError(f"failed to unmarshall LastEvaluatedKey: {exc}") from exc

    try:
        items = [from_item(GlobalRuleRow, item) for item in result.get("Items") or []]
    except ValueError as exc:
        raise ValueError(f"failed to unmarshal result from DynamoDB: {exc}") from exc
    return items, last_evaluated_key


def ping_database(client: _Querier) -> None:
    """Run a minimal query; raise if the table cannot be read."""
    get_paginated_global_rules(client, 1, None)