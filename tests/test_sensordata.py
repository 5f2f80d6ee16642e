from datetime import datetime, timedelta, timezone

import pytest

from rudolph.records import PrimaryKey, format_rfc3339, to_item, unix_timestamp
from rudolph.sensordata import (
    SensorData,
    data_type,
    get_sensor_data,
    machine_id_sensor_data_keys,
    new_sensor_data,
    sensor_data_expires_after,
    sensor_data_pk,
)
from rudolph.types import DataType, data_type_to_attribute

MACHINE_ID = "AAAAAAAA-A00A-1234-1234-5864377B4831"
SERIAL = "TESTSERIAL01"
NOW = datetime(2021, 6, 1, 12, 30, 0, tzinfo=timezone.utc)


class _Frozen:
    def now(self):
        return NOW


class _FakeGetter:
    def __init__(self, items):
        self.items = items
        self.calls = []

    def get_item(self, key, consistent_read):
        self.calls.append((key, consistent_read))
        item = self.items.get((key.partition_key, key.sort_key))
        return {"Item": item} if item else {}


def test_keys():
    pk, sk = machine_id_sensor_data_keys(MACHINE_ID)
    assert pk == "Machine#" + MACHINE_ID
    assert sk == "Current"
    assert sensor_data_pk(MACHINE_ID) == pk


def test_data_type():
    assert data_type() is DataType.SENSOR_DATA


def test_new_sensor_data():
    pk, sk = machine_id_sensor_data_keys(MACHINE_ID)
    sensor = new_sensor_data(
        _Frozen(), MACHINE_ID, SERIAL, "12.34", "20A21", False, "john_doe", 3, 4, 1, 2
    )
    assert sensor.machine_id == MACHINE_ID
    assert sensor.serial_num == SERIAL
    assert sensor.request_clean_sync is False
    assert sensor.os_build == "20A21"
    assert sensor.os_version == "12.34"
    assert sensor.binary_rule_count == 4
    assert sensor.certificate_rule_count == 3
    assert sensor.compiler_rule_count == 1
    assert sensor.transitive_rule_count == 2
    assert sensor.rule_count == 10
    assert sensor.primary_user == "john_doe"
    assert sensor.key.partition_key == pk
    assert sensor.key.sort_key == sk
    assert sensor.data_type is DataType.SENSOR_DATA
    assert sensor.time == format_rfc3339(NOW)
    assert sensor.expires_after == unix_timestamp(NOW + timedelta(days=90))


def test_expires_after():
    assert sensor_data_expires_after(_Frozen()) == unix_timestamp(NOW + timedelta(days=90))


def test_get_sensor_data():
    pk, sk = machine_id_sensor_data_keys(MACHINE_ID)
    expected_time = format_rfc3339(NOW)
    expected_expires = unix_timestamp(NOW + timedelta(days=90))
    item = {
        "PK": {"S": pk},
        "SK": {"S": sk},
        "MachineID": {"S": MACHINE_ID},
        "SerialNum": {"S": SERIAL},
        "OSVersion": {"S": "12.34"},
        "OSBuild": {"S": "20A21"},
        "RequestCleanSync": {"BOOL": False},
        "PrimaryUser": {"S": "john_doe"},
        "RuleCount": {"N": "10"},
        "CertificateRuleCount": {"N": "3"},
        "BinaryRuleCount": {"N": "4"},
        "CompilerRuleCount": {"N": "1"},
        "TransitiveRuleCount": {"N": "2"},
        "Time": {"S": expected_time},
        "ExpiresAfter": {"N": str(expected_expires)},
        "DataType": data_type_to_attribute(DataType.SENSOR_DATA),
    }
    getter = _FakeGetter({(pk, sk): item})

    sensor = get_sensor_data(getter, MACHINE_ID)

    assert sensor.machine_id == MACHINE_ID
    assert sensor.serial_num == SERIAL
    assert sensor.request_clean_sync is False
    assert sensor.os_build == "20A21"
    assert sensor.os_version == "12.34"
    assert sensor.binary_rule_count == 4
    assert sensor.certificate_rule_count == 3
    assert sensor.compiler_rule_count == 1
    assert sensor.transitive_rule_count == 2
    assert sensor.rule_count == 10
    assert sensor.primary_user == "john_doe"
    assert sensor.key.partition_key == pk
    assert sensor.key.sort_key == sk
    assert sensor.data_type is DataType.SENSOR_DATA
    assert sensor.time == expected_time
    assert sensor.expires_after == expected_expires
    assert getter.calls == [(PrimaryKey(pk, sk), False)]


def test_get_sensor_data_round_trip():
    sensor = new_sensor_data(
        _Frozen(), MACHINE_ID, SERIAL, "12.34", "20A21", True, "john_doe", 3, 4, 1, 2
    )
    getter = _FakeGetter({(sensor.key.partition_key, sensor.key.sort_key): to_item(sensor)})
    assert get_sensor_data(getter, MACHINE_ID) == sensor


def test_get_sensor_data_missing():
    assert get_sensor_data(_FakeGetter({}), MACHINE_ID) is None


def test_get_sensor_data_propagates_error():
    class _Broken:
        def get_item(self, key, consistent_read):
            raise ConnectionError("no table")

    with pytest.raises(ConnectionError, match="no table"):
        get_sensor_data(_Broken(), MACHINE_ID)


def test_get_sensor_data_bad_item():
    pk, sk = machine_id_sensor_data_keys(MACHINE_ID)
    getter = _FakeGetter({(pk, sk): {"RuleCount": {"S": "ten"}}})
    with pytest.raises(ValueError, match="unmarshalMap"):
        get_sensor_data(getter, MACHINE_ID)


def test_default_sensor_data_is_empty():
    assert SensorData().rule_count == 0