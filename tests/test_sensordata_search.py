import re

import pytest

from rudolph.sensordata_search import SensorDataFinder

MACHINE_A = "AAAAAAAA-A00A-1234-1234-5864377B4831"
MACHINE_B = "858CBF28-5EAA-58A3-A155-BB4E90C3B5DD"


class FakeQuerier:
    def __init__(self, items=None, error=None):
        self.items = items or []
        self.error = error
        self.inputs = []

    def query(self, query_input):
        self.inputs.append(query_input)
        if self.error:
            raise self.error
        return {"Items": self.items}


def _placeholders_resolve(query_input):
    names = query_input["ExpressionAttributeNames"]
    values = query_input["ExpressionAttributeValues"]
    text = query_input["KeyConditionExpression"] + " " + query_input["ProjectionExpression"]
    return all(alias in names for alias in re.findall(r"#\d+", text)) and all(
        alias in values for alias in re.findall(r":\d+", text)
    )


def test_machine_ids_starting_with_returns_ids():
    querier = FakeQuerier(items=[{"MachineID": {"S": MACHINE_A}}, {"MachineID": {"S": MACHINE_B}}])
    result = SensorDataFinder(querier).machine_ids_starting_with("AAAA", 5)
    assert result == [MACHINE_A, MACHINE_B]
    query_input = querier.inputs[0]
    assert query_input["IndexName"] == "DataType_MachineID"
    assert query_input["Limit"] == 5
    assert query_input["ConsistentRead"] is False
    assert {"S": "SensorData"} in query_input["ExpressionAttributeValues"].values()
    assert {"S": "AAAA"} in query_input["ExpressionAttributeValues"].values()
    assert "begins_with" in query_input["KeyConditionExpression"]
    assert query_input["ExpressionAttributeNames"][query_input["ProjectionExpression"]] == "MachineID"
    assert _placeholders_resolve(query_input)


def test_machine_ids_starting_with_empty_prefix():
    querier = FakeQuerier()
    assert SensorDataFinder(querier).machine_ids_starting_with("", 3) == []
    query_input = querier.inputs[0]
    assert list(query_input["ExpressionAttributeValues"].values()) == [{"S": "SensorData"}]
    assert "begins_with" not in query_input["KeyConditionExpression"]
    assert _placeholders_resolve(query_input)


def test_machine_ids_for_serial_number():
    querier = FakeQuerier(items=[{"MachineID": {"S": MACHINE_B}}])
    result = SensorDataFinder(querier).machine_ids_for_serial_number("SERIAL-PLACEHOLDER", 2)
    assert result == [MACHINE_B]
    query_input = querier.inputs[0]
    assert query_input["IndexName"] == "SerialNum_DataType_MachineID"
    assert query_input["Limit"] == 2
    assert set(query_input["ExpressionAttributeNames"].values()) == {
        "SerialNum",
        "DataType",
        "MachineID",
    }
    assert {"S": "SERIAL-PLACEHOLDER"} in query_input["ExpressionAttributeValues"].values()
    assert _placeholders_resolve(query_input)


def test_query_error_propagates():
    finder = SensorDataFinder(FakeQuerier(error=RuntimeError("query failed")))
    with pytest.raises(RuntimeError, match="query failed"):
        finder.machine_ids_for_serial_number("SERIAL-PLACEHOLDER", 1)