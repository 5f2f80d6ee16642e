"""Request helpers for API gateway proxy events."""

from __future__ import annotations

import logging
import re
from http import HTTPStatus
from typing import Any, Mapping

from .response import (
    ERR_BLANK_PATH_PARAMETER,
    ERR_INVALID_PATH_PARAMETER,
    APIResponse,
    api_response,
)

log = logging.getLogger(__name__)

_HEX = "[0-9a-fA-F]"
_DASHED = f"{_HEX}{{8}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{12}}"
_UUID = re.compile(
    "(?:"
    + _DASHED
    + "|(?i:urn:uuid:)"
    + _DASHED
    + r"|\{"
    + _DASHED
    + r"\}|"
    + f"{_HEX}{{32}}"
    + ")"
)


class InvalidRequestError(Exception):
    """Raised for a bad request; carries the response to send back."""

    def __init__(self, response: APIResponse) -> None:
        super().__init__(response.body)
        self.response = response


def is_valid_uuid(machine_id: str) -> bool:
    """Return whether machine_id is a well-formed UUID string."""
    return _UUID.fullmatch(machine_id) is not None


def get_machine_id(request: Mapping[str, Any]) -> str:
    """Return the machine_id path parameter of a proxy request, validated as a UUID."""
    params = request.get("pathParameters") or {}
    machine_id = params.get("machine_id") or ""

    if not machine_id:
        log.error("ASSERTION FAILED: Received blank {machine_id}")
        raise InvalidRequestError(api_response(HTTPStatus.BAD_REQUEST, ERR_BLANK_PATH_PARAMETER))

    if not is_valid_uuid(machine_id):
        log.error("ASSERTION FAILED: Received invalid {machine_id}")
        raise InvalidRequestError(
            api_response(HTTPStatus.BAD_REQUEST, ERR_INVALID_PATH_PARAMETER)
        )

    return machine_id