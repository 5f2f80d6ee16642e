import json
from http import HTTPStatus

import pytest

from rudolph.request import InvalidRequestError, get_machine_id, is_valid_uuid

MACHINE_ID = "858CBF28-5EAA-58A3-A155-BB4E90C3B5DD"


@pytest.mark.parametrize(
    "value",
    [
        MACHINE_ID,
        MACHINE_ID.lower(),
        "{" + MACHINE_ID + "}",
        "urn:uuid:" + MACHINE_ID,
        "URN:UUID:" + MACHINE_ID,
        MACHINE_ID.replace("-", ""),
    ],
)
def test_valid_uuids(value):
    assert is_valid_uuid(value) is True


@pytest.mark.parametrize(
    "value",
    [
        "",
        MACHINE_ID + "S",
        MACHINE_ID[:-1],
        MACHINE_ID.replace("-", "", 1) + "-",
        MACHINE_ID.replace("5", "G"),
        "{" + MACHINE_ID,
        "not-a-uuid",
    ],
)
def test_invalid_uuids(value):
    assert is_valid_uuid(value) is False


def test_get_machine_id_returns_value():
    request = {"pathParameters": {"machine_id": MACHINE_ID}}
    assert get_machine_id(request) == MACHINE_ID


@pytest.mark.parametrize(
    "request_event",
    [{}, {"pathParameters": None}, {"pathParameters": {}}, {"pathParameters": {"machine_id": ""}}],
)
def test_get_machine_id_blank(request_event):
    with pytest.raises(InvalidRequestError) as excinfo:
        get_machine_id(request_event)
    response = excinfo.value.response
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert json.loads(response.body) == {"error": "No path parameter"}


def test_get_machine_id_invalid():
    with pytest.raises(InvalidRequestError) as excinfo:
        get_machine_id({"pathParameters": {"machine_id": MACHINE_ID + "S"}})
    response = excinfo.value.response
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert json.loads(response.body) == {"error": "Invalid path parameter"}
    assert response.headers == {"Content-Type": "application/json"}