"""JSON responses for the API gateway handlers."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ErrorResponse:
    """Body of an error response."""

    error: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the JSON object for this error, omitting an empty message."""
        return {"error": self.error} if self.error else {}


ERR_INVALID_PATH_PARAMETER = ErrorResponse("Invalid path parameter")
ERR_BLANK_PATH_PARAMETER = ErrorResponse("No path parameter")
ERR_INVALID_CONTENT_TYPE = ErrorResponse("Invalid request content-type")
ERR_INVALID_MEDIA_TYPE = ErrorResponse("Invalid mediatype")
ERR_INVALID_BODY = ErrorResponse("Invalid request body")
ERR_INVALID_BODY_NO_SERIAL = ErrorResponse("No serial number provided")
ERR_INTERNAL_SERVER_ERROR = ErrorResponse("Internal server error")

SERIALIZATION_FAILURE_BODY = "value could not be serialized to JSON"


def _json_headers() -> dict[str, str]:
    return {"Content-Type": "application/json"}


@dataclass
class APIResponse:
    """An API gateway proxy response."""

    status_code: int
    body: str
    headers: dict[str, str] = field(default_factory=_json_headers)


class SerializationError(Exception):
    """Raised when a body cannot be encoded; carries the fallback 500 response."""

    def __init__(self, message: str, response: APIResponse) -> None:
        super().__init__(message)
        self.response = response


def _default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"unsupported type: {type(obj).__name__}")


_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _escape(text: str) -> str:
    return "".join(_HTML_ESCAPES.get(char, char) for char in text)


def api_response(status: int, body: Any) -> APIResponse:
    """Build a JSON response; raise SerializationError if body is not encodable."""
    try:
        text = json.dumps(
            body,
            default=_default,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        fallback = APIResponse(status_code=500, body=SERIALIZATION_FAILURE_BODY)
        raise SerializationError(str(exc), fallback) from exc
    return APIResponse(status_code=status, body=_escape(text))