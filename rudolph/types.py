"""Enumerations and validators shared by the Santa sync server models."""

from __future__ import annotations

import json
import re
from enum import Enum, IntEnum
from typing import Any, Mapping, Union

Text = Union[str, bytes]
Attribute = Mapping[str, Any]


class ClientMode(IntEnum):
    """Mode in which the Santa client evaluates rules."""

    MONITOR = 1
    LOCKDOWN = 2


class DataType(str, Enum):
    """Kind of row stored in the DynamoDB table."""

    SENSOR_DATA = "SensorData"
    SYNC_STATE = "SyncState"
    GLOBAL_CONFIG = "GlobalConfig"
    MACHINE_CONFIG = "MachineConfig"
    RULES_FEED = "RulesFeed"

    def __str__(self) -> str:
        return self.value


class Policy(IntEnum):
    """Santa rule policy."""

    ALLOWLIST = 1
    BLOCKLIST = 2
    SILENT_BLOCKLIST = 3
    # Sent by the server to tell the sensor to delete the associated rule.
    REMOVE = 4
    # Transitive allowlist for binaries created by a given compiler.
    ALLOWLIST_COMPILER = 5
    # Created by the sensor itself, never by the server.
    ALLOWLIST_TRANSITIVE = 6


class RuleType(IntEnum):
    """Santa rule type."""

    BINARY = 1
    CERTIFICATE = 2


def _text(text: Text) -> str:
    return text.decode("utf-8") if isinstance(text, bytes) else text


def _quote(value: object) -> str:
    return json.dumps(str(value), ensure_ascii=False)


def _show(value: object) -> object:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return int(value)
    return value


def _member(enum_cls, value):
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


# ---- ClientMode ----

_CLIENT_MODE_TEXT = {ClientMode.MONITOR: "MONITOR", ClientMode.LOCKDOWN: "LOCKDOWN"}
_CLIENT_MODE_FROM_TEXT = {text: mode for mode, text in _CLIENT_MODE_TEXT.items()}


def client_mode_to_text(value: int) -> str:
    """Return the wire name of a client mode."""
    mode = _member(ClientMode, value)
    if mode is None:
        raise ValueError(f"unknown client_mode {_show(value)}")
    return _CLIENT_MODE_TEXT[mode]


def client_mode_from_text(text: Text) -> ClientMode:
    """Parse a client mode from its wire name."""
    name = _text(text)
    try:
        return _CLIENT_MODE_FROM_TEXT[name]
    except KeyError:
        raise ValueError(f"unknown client_mode value {_quote(name)}") from None


# ---- DataType ----

_DATA_TYPE_TEXT = {
    DataType.SENSOR_DATA: "SENSORDATA",
    DataType.SYNC_STATE: "SYNCSTATE",
    DataType.MACHINE_CONFIG: "MACHINECONFIG",
    DataType.GLOBAL_CONFIG: "GLOBALCONFIG",
    DataType.RULES_FEED: "RULESFEED",
}

_DATA_TYPE_FROM_TEXT = {
    "SENSOR_DATA": DataType.SENSOR_DATA,
    "SENSORDATA": DataType.SENSOR_DATA,
    "RULES_FEED": DataType.RULES_FEED,
    "RULESFEED": DataType.RULES_FEED,
    "SYNC_STATE": DataType.SYNC_STATE,
    "SYNCSTATE": DataType.SYNC_STATE,
    # Machine config names resolve to the global config kind.
    "MACHINE_CONFIG": DataType.GLOBAL_CONFIG,
    "MACHINECONFIG": DataType.GLOBAL_CONFIG,
    "GLOBAL_CONFIG": DataType.GLOBAL_CONFIG,
    "GLOBALCONFIG": DataType.GLOBAL_CONFIG,
}

_DATA_TYPE_FROM_NUMBER = {
    "1": DataType.SENSOR_DATA,
    "SENSOR_DATA": DataType.SENSOR_DATA,
    "SENSORDATA": DataType.SENSOR_DATA,
    "2": DataType.SYNC_STATE,
    "SYNC_STATE": DataType.SYNC_STATE,
    "SYNCSTATE": DataType.SYNC_STATE,
    "3": DataType.MACHINE_CONFIG,
    "MACHINE_CONFIG": DataType.MACHINE_CONFIG,
}


def data_type_to_text(value: str) -> str:
    """Return the wire name of a data type."""
    data_type = _member(DataType, value)
    if data_type is None:
        raise ValueError(f"unknown data_type {value}")
    return _DATA_TYPE_TEXT[data_type]


def data_type_from_text(text: Text) -> DataType:
    """Parse a data type from its wire name."""
    name = _text(text)
    try:
        return _DATA_TYPE_FROM_TEXT[name]
    except KeyError:
        raise ValueError(f"unknown data_type value {_quote(name)}") from None


def data_type_to_attribute(value: str) -> dict[str, str]:
    """Encode a data type as a DynamoDB string attribute."""
    data_type = _member(DataType, value)
    if data_type is None:
        raise ValueError(f"unknown data_type value {_quote(value)}")
    return {"S": data_type.value}


def data_type_from_attribute(attribute: Attribute) -> DataType:
    """Decode a data type from a DynamoDB attribute."""
    if "N" not in attribute and "S" in attribute:
        stored = attribute["S"]
        data_type = _member(DataType, stored)
        if data_type is None:
            raise ValueError(f"unknown data_type value {_quote(stored)}")
        return data_type
    number = attribute.get("N") or ""
    try:
        return _DATA_TYPE_FROM_NUMBER[number]
    except KeyError:
        raise ValueError(f"unknown data_type value {_quote(number)}") from None


# ---- Policy ----

_POLICY_TEXT = {
    Policy.ALLOWLIST: "ALLOWLIST",
    Policy.BLOCKLIST: "BLOCKLIST",
    Policy.SILENT_BLOCKLIST: "SILENT_BLOCKLIST",
    Policy.REMOVE: "REMOVE",
    Policy.ALLOWLIST_COMPILER: "ALLOWLIST_COMPILER",
    Policy.ALLOWLIST_TRANSITIVE: "ALLOWLIST_TRANSITIVE",
}
_POLICY_FROM_TEXT = {text: policy for policy, text in _POLICY_TEXT.items()}
_POLICY_FROM_ATTRIBUTE = {
    **{str(int(policy)): policy for policy in Policy},
    **_POLICY_FROM_TEXT,
}


def policy_to_text(value: int) -> str:
    """Return the wire name of a rule policy."""
    policy = _member(Policy, value)
    if policy is None:
        raise ValueError(f"unknown policy {_show(value)}")
    return _POLICY_TEXT[policy]


def policy_from_text(text: Text) -> Policy:
    """Parse a rule policy from its wire name."""
    name = _text(text)
    try:
        return _POLICY_FROM_TEXT[name]
    except KeyError:
        raise ValueError(f"unknown policy value {_quote(name)}") from None


def policy_to_attribute(value: int) -> dict[str, str]:
    """Encode a rule policy as a DynamoDB number attribute."""
    policy = _member(Policy, value)
    if policy is None:
        raise ValueError(f"unknown policy value {_quote(_show(value))}")
    return {"N": str(int(policy))}


def policy_from_attribute(attribute: Attribute) -> Policy:
    """Decode a rule policy from a DynamoDB number attribute."""
    number = attribute.get("N") or ""
    try:
        return _POLICY_FROM_ATTRIBUTE[number]
    except KeyError:
        raise ValueError(f"unknown policy value {_quote(number)}") from None


# ---- RuleType ----

_RULE_TYPE_TEXT = {RuleType.BINARY: "BINARY", RuleType.CERTIFICATE: "CERTIFICATE"}
_RULE_TYPE_FROM_TEXT = {text: kind for kind, text in _RULE_TYPE_TEXT.items()}
_RULE_TYPE_FROM_ATTRIBUTE = {
    **{str(int(kind)): kind for kind in RuleType},
    **_RULE_TYPE_FROM_TEXT,
}


def rule_type_to_text(value: int) -> str:
    """Return the wire name of a rule type."""
    kind = _member(RuleType, value)
    if kind is None:
        raise ValueError(f"unknown rule_type {_show(value)}")
    return _RULE_TYPE_TEXT[kind]


def rule_type_from_text(text: Text) -> RuleType:
    """Parse a rule type from its wire name."""
    name = _text(text)
    try:
        return _RULE_TYPE_FROM_TEXT[name]
    except KeyError:
        raise ValueError(f"unknown rule_type value {_quote(name)}") from None


def rule_type_to_attribute(value: int) -> dict[str, str]:
    """Encode a rule type as a DynamoDB number attribute."""
    kind = _member(RuleType, value)
    if kind is None:
        raise ValueError(f"unknown rule_type value {_quote(_show(value))}")
    return {"N": str(int(kind))}


def rule_type_from_attribute(attribute: Attribute) -> RuleType:
    """Decode a rule type from a DynamoDB number attribute."""
    number = attribute.get("N") or ""
    try:
        return _RULE_TYPE_FROM_ATTRIBUTE[number]
    except KeyError:
        raise ValueError(f"unknown rule_type value {_quote(number)}") from None


# ---- Validators ----

_MACHINE_ID = re.compile(r"[A-F0-9]{8}-[A-F0-9]{4}-[A-F0-9]{4}-[A-F0-9]{4}-[A-F0-9]{12}")
_SHA256 = re.compile(r"[a-f0-9]{64}")


def validate_machine_id(machine_id: str) -> None:
    """Raise ValueError unless machine_id is an upper-case UUID string."""
    if not _MACHINE_ID.fullmatch(machine_id):
        raise ValueError(f"invalid machineID: {machine_id}")


def validate_sha256(sha256: str) -> None:
    """Raise ValueError unless sha256 is 64 lower-case hex digits."""
    if not _SHA256.fullmatch(sha256):
        raise ValueError(f"invalid sha256: {sha256}")