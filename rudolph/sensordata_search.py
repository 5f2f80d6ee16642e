"""Lookup of machine IDs among recently reported sensor data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from .records import from_item
from .sensordata import data_type

MACHINE_ID_DATA_TYPE_GSI = "DataType_MachineID"
SERIAL_NUM_DATA_TYPE_MACHINE_ID_GSI = "SerialNum_DataType_MachineID"


class _Querier(Protocol):
    def query(self, query_input: dict[str, Any]) -> Mapping[str, Any]: ...


@dataclass
class _MachineIDItem:
    machine_id: str = field(default="", metadata={"attribute": "MachineID"})


class _Expression:
    """Collects attribute name and value placeholders for one query."""

    def __init__(self) -> None:
        self.names: dict[str, str] = {}
        self.values: dict[str, dict[str, Any]] = {}

    def name(self, attribute: str) -> str:
        for alias, existing in self.names.items():
            if existing == attribute:
                return alias
        alias = f"#{len(self.names)}"
        self.names[alias] = attribute
        return alias

    def value(self, text: str) -> str:
        alias = f":{len(self.values)}"
        self.values[alias] = {"S": text}
        return alias

    def equal(self, attribute: str, text: str) -> str:
        return f"{self.name(attribute)} = {self.value(text)}"

    def begins_with(self, attribute: str, text: str) -> str:
        return f"begins_with ({self.name(attribute)}, {self.value(text)})"


class SensorDataFinder:
    """Searches sensor data for machine IDs, for example to drive type-ahead."""

    def __init__(self, queryapi: _Querier) -> None:
        self._queryapi = queryapi

    def _run(self, expr: _Expression, key_condition: str, index: str, limit: int) -> list[str]:
        projection = expr.name("MachineID")
        query_input: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ExpressionAttributeValues": expr.values,
            "ProjectionExpression": projection,
            "ExpressionAttributeNames": expr.names,
            "IndexName": index,
            "Limit": limit,
            "ConsistentRead": False,
        }
        output = self._queryapi.query(query_input)
        return [from_item(_MachineIDItem, item).machine_id for item in output.get("Items") or []]

    def machine_ids_starting_with(self, prefix: str, limit: int) -> list[str]:
        """Return up to limit machine IDs that start with prefix (all when prefix is empty)."""
        expr = _Expression()
        kind = expr.equal("DataType", data_type().value)
        if prefix:
            key_condition = f"({kind}) AND ({expr.begins_with('MachineID', prefix)})"
        else:
            key_condition = kind
        return self._run(expr, key_condition, MACHINE_ID_DATA_TYPE_GSI, limit)

    def machine_ids_for_serial_number(self, serial_number: str, limit: int) -> list[str]:
        """Return up to limit machine IDs that reported the given serial number."""
        expr = _Expression()
        serial = expr.equal("SerialNum", serial_number)
        kind = expr.equal("DataType", data_type().value)
        key_condition = f"({serial}) AND ({kind})"
        return self._run(expr, key_condition, SERIAL_NUM_DATA_TYPE_MACHINE_ID_GSI, limit)