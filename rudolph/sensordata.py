"""Sensor data uploaded by machines during preflight."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Protocol

from .records import PrimaryKey, format_rfc3339, from_item, unix_timestamp
from .types import DataType

SENSOR_DATA_PK_PREFIX = "Machine#"
SENSOR_DATA_DEFAULT_SK = "Current"
SENSOR_DATA_EXPIRES_AFTER_DAYS = 90


class _Clock(Protocol):
    def now(self) -> datetime: ...


class _Getter(Protocol):
    def get_item(self, key: PrimaryKey, consistent_read: bool) -> Mapping[str, Any]: ...


@dataclass
class SensorData:
    """Row holding the latest data a sensor reported."""

    key: PrimaryKey = field(default_factory=PrimaryKey)
    machine_id: str = field(default="", metadata={"attribute": "MachineID"})
    serial_num: str = field(default="", metadata={"attribute": "SerialNum"})
    os_version: str = field(default="", metadata={"attribute": "OSVersion"})
    os_build: str = field(default="", metadata={"attribute": "OSBuild"})
    request_clean_sync: bool = field(default=False, metadata={"attribute": "RequestCleanSync"})
    primary_user: str = field(default="", metadata={"attribute": "PrimaryUser"})
    rule_count: int = field(default=0, metadata={"attribute": "RuleCount"})
    certificate_rule_count: int = field(default=0, metadata={"attribute": "CertificateRuleCount"})
    binary_rule_count: int = field(default=0, metadata={"attribute": "BinaryRuleCount"})
    compiler_rule_count: int = field(default=0, metadata={"attribute": "CompilerRuleCount"})
    transitive_rule_count: int = field(default=0, metadata={"attribute": "TransitiveRuleCount"})
    time: str = field(default="", metadata={"attribute": "Time"})
    expires_after: int = field(
        default=0, metadata={"attribute": "ExpiresAfter", "omitempty": True}
    )
    data_type: DataType | None = field(default=None, metadata={"attribute": "DataType"})


def sensor_data_pk(machine_id: str) -> str:
    """Return the partition key for a machine's sensor data."""
    return f"{SENSOR_DATA_PK_PREFIX}{machine_id}"


def machine_id_sensor_data_keys(machine_id: str) -> tuple[str, str]:
    """Return the partition and sort keys for a machine's sensor data."""
    return sensor_data_pk(machine_id), SENSOR_DATA_DEFAULT_SK


def sensor_data_expires_after(time_provider: _Clock) -> int:
    """Return the expiry timestamp for sensor data written now."""
    moment = time_provider.now()
    moment = (
        moment.replace(tzinfo=timezone.utc)
        if moment.tzinfo is None
        else moment.astimezone(timezone.utc)
    )
    return unix_timestamp(moment + timedelta(days=SENSOR_DATA_EXPIRES_AFTER_DAYS))


def data_type() -> DataType:
    """Return the data type of sensor data rows."""
    return DataType.SENSOR_DATA


def new_sensor_data(
    time_provider: _Clock,
    machine_id: str,
    serial_number: str,
    os_version: str,
    os_build: str,
    request_clean_sync: bool,
    primary_user: str,
    cert_rule_count: int,
    binary_rule_count: int,
    compiler_rule_count: int,
    transitive_rule_count: int,
) -> SensorData:
    """Build a sensor data row stamped with the current time."""
    pk, sk = machine_id_sensor_data_keys(machine_id)
    return SensorData(
        key=PrimaryKey(partition_key=pk, sort_key=sk),
        machine_id=machine_id,
        serial_num=serial_number,
        os_version=os_version,
        os_build=os_build,
        request_clean_sync=request_clean_sync,
        primary_user=primary_user,
        rule_count=cert_rule_count + binary_rule_count + compiler_rule_count + transitive_rule_count,
        certificate_rule_count=cert_rule_count,
        binary_rule_count=binary_rule_count,
        compiler_rule_count=compiler_rule_count,
        transitive_rule_count=transitive_rule_count,
        time=format_rfc3339(time_provider.now()),
        expires_after=sensor_data_expires_after(time_provider),
        data_type=data_type(),
    )


def get_sensor_data(client: _Getter, machine_id: str) -> SensorData | None:
    """Return the stored sensor data for machine_id, or None."""
    pk, sk = machine_id_sensor_data_keys(machine_id)
    output = client.get_item(PrimaryKey(partition_key=pk, sort_key=sk), False)
    item = output.get("Item")
    if not item:
        return None
    try:
        return from_item(SensorData, item)
    except ValueError as exc:
        raise ValueError(
            f"succeeded GetItem but failed to unmarshalMap into output interface: {exc}"
        ) from exc