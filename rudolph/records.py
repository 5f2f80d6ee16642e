"""Rule records, sort keys, time formatting and DynamoDB item conversion.

Records are dataclasses. A field's DynamoDB attribute name comes from the
``attribute`` entry of its metadata (the field name otherwise); an
``omitempty`` entry drops empty values when encoding. Fields whose type is
itself a dataclass are embedded: their attributes are flattened into the item.
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
import math
import types as _pytypes
import typing
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Mapping, TypeVar

from .types import (
    ClientMode,
    DataType,
    Policy,
    RuleType,
    data_type_from_attribute,
    data_type_to_attribute,
    policy_from_attribute,
    policy_to_attribute,
    rule_type_from_attribute,
    rule_type_to_attribute,
)

log = logging.getLogger(__name__)

BINARY_RULE_SK_PREFIX = "Binary#"
CERTIFICATE_RULE_SK_PREFIX = "Cert#"

_SORT_KEY_PREFIXES = {
    RuleType.BINARY: BINARY_RULE_SK_PREFIX,
    RuleType.CERTIFICATE: CERTIFICATE_RULE_SK_PREFIX,
}

T = TypeVar("T")
Item = dict[str, dict[str, Any]]


@dataclass
class PrimaryKey:
    """Partition and sort key of a DynamoDB row."""

    partition_key: str = field(default="", metadata={"attribute": "PK"})
    sort_key: str = field(default="", metadata={"attribute": "SK"})


@dataclass
class SantaRule:
    """Fields shared by global, feed and machine rules."""

    rule_type: RuleType | None = field(default=None, metadata={"attribute": "RuleType"})
    policy: Policy | None = field(default=None, metadata={"attribute": "Policy"})
    sha256: str = field(default="", metadata={"attribute": "SHA256"})
    custom_message: str = field(
        default="", metadata={"attribute": "CustomMessage", "omitempty": True}
    )


def rule_sort_key(sha256: str, rule_type: int) -> str:
    """Return the sort key for a rule, or "" when sha256 or rule_type is invalid."""
    if len(sha256) != 64:
        log.error("error (recovered): invalid sha256: (%s)", sha256)
        return ""
    prefix = _SORT_KEY_PREFIXES.get(rule_type) if isinstance(rule_type, int) else None
    if prefix is None:
        log.error("error (recovered): encountered unknown ruleType: (%r)", rule_type)
        return ""
    return f"{prefix}{sha256}"


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_rfc3339(moment: datetime) -> str:
    """Format a moment as an RFC 3339 UTC timestamp with second precision."""
    return _as_utc(moment).strftime("%Y-%m-%dT%H:%M:%SZ")


def unix_timestamp(moment: datetime) -> int:
    """Return whole seconds since the Unix epoch; naive moments count as UTC."""
    return math.floor(_as_utc(moment).timestamp())


# ---- Item conversion ----


def _is_record(value: object) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _is_empty(value: object) -> bool:
    if isinstance(value, (bool, int, float, str, list, tuple, dict)):
        return not value
    return False


def _encode(value: Any) -> dict[str, Any]:
    if isinstance(value, bool):
        return {"BOOL": value}
    if isinstance(value, Policy):
        return policy_to_attribute(value)
    if isinstance(value, RuleType):
        return rule_type_to_attribute(value)
    if isinstance(value, DataType):
        return data_type_to_attribute(value)
    if isinstance(value, int):
        return {"N": str(int(value))}
    if isinstance(value, float):
        return {"N": repr(value)}
    if isinstance(value, str):
        return {"S": value}
    if isinstance(value, (list, tuple)):
        return {"L": [_encode(element) for element in value]}
    if isinstance(value, Mapping):
        return {"M": {str(key): _encode(element) for key, element in value.items()}}
    if _is_record(value):
        return {"M": to_item(value)}
    raise TypeError(f"cannot encode {type(value).__name__} as a DynamoDB attribute")


def to_item(record: Any) -> Item:
    """Encode a record dataclass as a DynamoDB attribute map."""
    if not _is_record(record):
        raise TypeError(f"expected a dataclass instance, got {type(record).__name__}")
    item: Item = {}
    for spec in dataclasses.fields(record):
        value = getattr(record, spec.name)
        if _is_record(value):
            item.update(to_item(value))
            continue
        if value is None:
            continue
        if spec.metadata.get("omitempty") and _is_empty(value):
            continue
        item[spec.metadata.get("attribute", spec.name)] = _encode(value)
    return item


_BUILTIN_KINDS: dict[str, type] = {"bool": bool, "int": int, "float": float, "str": str}

_KNOWN_KINDS: dict[str, type] = {
    "ClientMode": ClientMode,
    "DataType": DataType,
    "Policy": Policy,
    "RuleType": RuleType,
    "PrimaryKey": PrimaryKey,
    "SantaRule": SantaRule,
}


def _unwrap_optional(kind: Any) -> Any:
    if typing.get_origin(kind) in (typing.Union, _pytypes.UnionType):
        args = [arg for arg in typing.get_args(kind) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return kind


def _lookup_name(cls: type, text: str) -> Any:
    """Resolve a string annotation naming a single (optionally optional) type."""
    parts = [part.strip().strip("'\"") for part in text.strip().split("|")]
    parts = [part for part in parts if part != "None"]
    if len(parts) != 1:
        return None
    name = parts[0]
    for prefix in ("typing.Optional[", "Optional["):
        if name.startswith(prefix) and name.endswith("]"):
            name = name[len(prefix):-1].strip().strip("'\"")
            break
    if name in _BUILTIN_KINDS:
        return _BUILTIN_KINDS[name]
    target: Any = inspect.getmodule(cls)
    for part in name.split("."):
        if target is None:
            break
        target = getattr(target, part, None)
    if isinstance(target, type):
        return target
    return _KNOWN_KINDS.get(name.rsplit(".", 1)[-1])


def _field_kind(cls: type, spec: dataclasses.Field) -> Any:
    kind = spec.type
    if isinstance(kind, str):
        kind = _lookup_name(cls, kind)
    if kind is None:
        if spec.default_factory is not dataclasses.MISSING:
            kind = type(spec.default_factory())
        elif spec.default is not dataclasses.MISSING and spec.default is not None:
            kind = type(spec.default)
    return _unwrap_optional(kind)


def _zero(kind: Any) -> Any:
    if kind is bool:
        return False
    if kind is int:
        return 0
    if kind is float:
        return 0.0
    if kind is str:
        return ""
    return None


def _decode(kind: Any, attribute: Mapping[str, Any], name: str) -> Any:
    if attribute.get("NULL"):
        return None
    if not isinstance(kind, type):
        return attribute
    try:
        if kind is bool:
            return bool(attribute["BOOL"])
        if kind is Policy:
            return policy_from_attribute(attribute)
        if kind is RuleType:
            return rule_type_from_attribute(attribute)
        if kind is DataType:
            return data_type_from_attribute(attribute)
        if issubclass(kind, IntEnum):
            return kind(int(attribute["N"]))
        if issubclass(kind, Enum):
            return kind(attribute["S"])
        if kind is int:
            return int(attribute["N"])
        if kind is float:
            return float(attribute["N"])
        if kind is str:
            return attribute["S"]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"cannot decode attribute {name!r} as {kind.__name__}") from exc
    except ValueError as exc:
        raise ValueError(f"cannot decode attribute {name!r}: {exc}") from exc
    return attribute


def from_item(cls: type[T], item: Mapping[str, Mapping[str, Any]]) -> T:
    """Decode a DynamoDB attribute map into an instance of the record class cls."""
    values: dict[str, Any] = {}
    for spec in dataclasses.fields(cls):
        if not spec.init:
            continue
        kind = _field_kind(cls, spec)
        if isinstance(kind, type) and dataclasses.is_dataclass(kind):
            values[spec.name] = from_item(kind, item)
            continue
        name = spec.metadata.get("attribute", spec.name)
        if name in item:
            values[spec.name] = _decode(kind, item[name], name)
        elif spec.default is dataclasses.MISSING and spec.default_factory is dataclasses.MISSING:
            values[spec.name] = _zero(kind)
    return cls(**values)