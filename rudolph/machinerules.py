"""Rules that apply to a single machine, overriding the global rules."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Protocol

from .globalrules import get_global_rule_by_sort_key
from .records import PrimaryKey, SantaRule, from_item, rule_sort_key, unix_timestamp
from .types import (
    Policy,
    policy_to_text,
    rule_type_to_text,
    validate_machine_id,
    validate_sha256,
)

log = logging.getLogger(__name__)

MACHINE_RULE_DEFAULT_EXPIRATION_HOURS = 24
MACHINE_RULES_PK_PREFIX = "MachineRules#"

_ZERO_TIME = datetime(1, 1, 1)


class _Clock(Protocol):
    def now(self) -> datetime: ...


class _Getter(Protocol):
    def get_item(self, key: PrimaryKey, consistent_read: bool) -> Mapping[str, Any]: ...


class _Putter(Protocol):
    def put_item(self, item: Any) -> Any: ...


class _Updater(Protocol):
    def update_item(self, key: PrimaryKey, item: Any) -> Any: ...


class _Querier(Protocol):
    def query(self, query_input: dict[str, Any]) -> Mapping[str, Any]: ...


@dataclass
class MachineRuleRow:
    """A rule row scoped to one machine."""

    key: PrimaryKey = field(default_factory=PrimaryKey)
    rule: SantaRule = field(default_factory=SantaRule)
    description: str = field(
        default="", metadata={"attribute": "Description", "omitempty": True}
    )
    delete_on_next_sync: bool = field(
        default=False, metadata={"attribute": "DeleteOnNextSync", "omitempty": True}
    )
    expires_after: int = field(
        default=0, metadata={"attribute": "ExpiresAfter", "omitempty": True}
    )
    # Not reliably populated; do not depend on it.
    machine_id: str = field(default="", metadata={"attribute": "MachineID", "omitempty": True})


@dataclass
class _RuleRemovalRequest:
    policy: Policy | None = field(default=None, metadata={"attribute": "Policy"})
    delete_on_next_sync: bool = field(
        default=False, metadata={"attribute": "DeleteOnNextSync"}
    )


@dataclass
class _UpdateRulePolicyRequest:
    policy: Policy | None = field(
        default=None, metadata={"attribute": "Policy", "omitempty": True}
    )
    expires_after: int = field(
        default=0, metadata={"attribute": "ExpiresAfter", "omitempty": True}
    )
    description: str = field(
        default="", metadata={"attribute": "Description", "omitempty": True}
    )


def machine_rule_pk(machine_id: str) -> str:
    """Return the partition key holding a machine's rules."""
    return f"{MACHINE_RULES_PK_PREFIX}{machine_id}"


def machine_rule_sk(sha256: str, rule_type: int) -> str:
    """Return the sort key of a machine rule."""
    return rule_sort_key(sha256, rule_type)


def _validate(
    machine_id: str, sha256: str, rule_type: int, policy: int, expires: datetime | None
) -> None:
    validate_machine_id(machine_id)
    validate_sha256(sha256)
    rule_type_to_text(rule_type)
    policy_to_text(policy)
    if expires is None or expires.replace(tzinfo=None) == _ZERO_TIME:
        raise ValueError("expires time is not a positive time")


def add_machine_rule(
    client: _Putter,
    machine_id: str,
    sha256: str,
    rule_type: int,
    policy: int,
    description: str,
    expires: datetime | None,
) -> None:
    """Validate and store a new rule for one machine."""
    _validate(machine_id, sha256, rule_type, policy, expires)
    row = MachineRuleRow(
        key=PrimaryKey(
            partition_key=machine_rule_pk(machine_id),
            sort_key=machine_rule_sk(sha256, rule_type),
        ),
        rule=SantaRule(rule_type=rule_type, policy=policy, sha256=sha256),
        description=description,
        expires_after=unix_timestamp(expires),
    )
    client.put_item(row)


def _get_machine_rule(
    client: _Getter, partition_key: str, sort_key: str
) -> MachineRuleRow | None:
    output = client.get_item(PrimaryKey(partition_key, sort_key), False)
    item = output.get("Item")
    if not item:
        return None
    try:
        return from_item(MachineRuleRow, item)
    except ValueError as exc:
        raise ValueError(
            f"succeeded GetItem but failed to unmarshalMap into GlobalRuleRow: {exc}"
        ) from exc


def get_machine_rule_by_sha_type(
    client: _Getter, machine_id: str, sha256: str, rule_type: int
) -> MachineRuleRow | None:
    """Return the machine's rule for a hash and rule type, or None."""
    return _get_machine_rule(
        client, machine_rule_pk(machine_id), machine_rule_sk(sha256, rule_type)
    )


def get_keys_marked_for_deletion(client: _Querier, machine_id: str) -> list[PrimaryKey]:
    """Return the keys of the machine's rules flagged for deletion on next sync."""
    query_input: dict[str, Any] = {
        "ConsistentRead": False,
        "KeyConditionExpression": "PK = :pk",
        "ExpressionAttributeValues": {
            ":pk": {"S": machine_rule_pk(machine_id)},
            ":boo": {"BOOL": True},
        },
        "FilterExpression": "DeleteOnNextSync = :boo",
        "ProjectionExpression": "PK, SK",
    }
    output = client.query(query_input)
    return [from_item(PrimaryKey, item) for item in output.get("Items") or []]


def get_machine_rules(client: _Querier, machine_id: str) -> list[MachineRuleRow]:
    """Return every rule stored for machine_id."""
    partition_key = machine_rule_pk(machine_id)
    query_input: dict[str, Any] = {
        "ConsistentRead": False,
        "ExpressionAttributeValues": {":pk": {"S": partition_key}},
        "KeyConditionExpression": "PK = :pk",
    }
    try:
        result = client.query(query_input)
    except Exception as exc:
        raise RuntimeError(
            f'failed to read rules from DynamoDB for partitionKey "{partition_key}": {exc}'
        ) from exc
    try:
        return [from_item(MachineRuleRow, item) for item in result.get("Items") or []]
    except ValueError as exc:
        raise ValueError(f"failed to unmarshal result from DynamoDB: {exc}") from exc


def remove_machine_rule(
    getter: _Getter, updater: _Updater, machine_id: str, rule_sort_key: str
) -> None:
    """Mark a machine rule for removal on the machine's next sync.

    If a global rule covers the same binary or certificate, the machine rule
    takes on the global policy instead of becoming a removal. A missing
    machine rule is left alone.
    """
    try:
        rule = _get_machine_rule(getter, machine_rule_pk(machine_id), rule_sort_key)
    except Exception as exc:
        raise RuntimeError(f"failed to retrieve existing rule: {exc}") from exc
    if rule is None:
        log.warning("no such rule exists")
        return

    try:
        global_rule = get_global_rule_by_sort_key(getter, rule_sort_key)
    except Exception as exc:
        raise RuntimeError(
            f"something went wrong during pulling global rule: {exc}"
        ) from exc

    if global_rule is not None:
        log.info("There is a global rule that this machine-rule overwrites. Inheriting...")
        new_policy = global_rule.rule.policy
    else:
        new_policy = Policy.REMOVE

    request = _RuleRemovalRequest(policy=new_policy, delete_on_next_sync=True)
    try:
        updater.update_item(rule.key, request)
    except Exception as exc:
        raise RuntimeError(
            f"Something went wrong changing this rule to a remove rule: {exc}"
        ) from exc
    log.info("Successfully marked as 'remove'.")


def update_machine_rule(
    client: _Updater,
    machine_id: str,
    sha256: str,
    rule_type: int,
    rule_policy: int,
    expires: datetime,
) -> None:
    """Change the policy and expiry of a machine rule."""
    key = PrimaryKey(
        partition_key=machine_rule_pk(machine_id),
        sort_key=machine_rule_sk(sha256, rule_type),
    )
    request = _UpdateRulePolicyRequest(
        policy=rule_policy, expires_after=unix_timestamp(expires)
    )
    try:
        client.update_item(key, request)
    except Exception as exc:
        raise RuntimeError(f"failed to update machine rule: {exc}") from exc


@dataclass
class MachineRulesUpdater:
    """Updates machine rule policies with the default expiry."""

    updater: _Updater
    time_provider: _Clock

    def update_machine_rule_policy(
        self, machine_id: str, sha256: str, rule_type: int, rule_policy: int
    ) -> None:
        """Set a rule's policy, expiring it after the default number of hours."""
        expires = self.time_provider.now() + timedelta(
            hours=MACHINE_RULE_DEFAULT_EXPIRATION_HOURS
        )
        if expires.tzinfo is not None:
            expires = expires.astimezone(timezone.utc)
        update_machine_rule(self.updater, machine_id, sha256, rule_type, rule_policy, expires)


@dataclass
class RuleRemovalService:
    """Removes machine rules."""

    getter: _Getter
    updater: _Updater

    def remove_machine_rule(self, machine_id: str, rule_sort_key: str) -> None:
        """Mark a machine rule for removal."""
        remove_machine_rule(self.getter, self.updater, machine_id, rule_sort_key)


class MachineRulesService:
    """All access to machine rules through one database client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def get(self, machine_id: str, sha256: str, rule_type: int) -> MachineRuleRow | None:
        """Return a machine rule, or None."""
        return get_machine_rule_by_sha_type(self._client, machine_id, sha256, rule_type)

    def add(
        self,
        machine_id: str,
        sha256: str,
        rule_type: int,
        policy: int,
        description: str,
        expires: datetime | None,
    ) -> None:
        """Add a machine rule."""
        add_machine_rule(
            self._client, machine_id, sha256, rule_type, policy, description, expires
        )

    def update(
        self,
        machine_id: str,
        sha256: str,
        rule_type: int,
        rule_policy: int,
        expires: datetime,
    ) -> None:
        """Update a machine rule's policy and expiry."""
        update_machine_rule(self._client, machine_id, sha256, rule_type, rule_policy, expires)

    def remove(self, machine_id: str, sha256: str, rule_type: int) -> None:
        """Mark the machine rule for a hash and rule type for removal."""
        remove_machine_rule(
            self._client, self._client, machine_id, machine_rule_sk(sha256, rule_type)
        )

    def remove_by_sort_key(self, machine_id: str, rule_sort_key: str) -> None:
        """Mark the machine rule with the given sort key for removal."""
        remove_machine_rule(self._client, self._client, machine_id, rule_sort_key)

    def get_machine_rules(self, machine_id: str) -> list[MachineRuleRow]:
        """Return every rule stored for the machine."""
        return get_machine_rules(self._client, machine_id)