"""Validation of task request bodies."""

from __future__ import annotations

import json
from typing import Any, Union

from taskapi.model import Task

_JSON_WHITESPACE = " \t\n\r"
_JSON_KINDS = {list: "array", str: "string", int: "number", float: "number", bool: "bool"}


class ValidationError(ValueError):
    """Raised when a task request body is malformed or incomplete."""


def _reject_constant(token: str) -> Any:
    raise ValueError(f"invalid character {token!r} looking for beginning of value")


def _parse_object(body: Union[bytes, str]) -> dict[str, Any]:
    """Decode the first JSON value in the body, which must be an object or null."""
    text = body.decode("utf-8", "replace") if isinstance(body, (bytes, bytearray)) else body
    text = text.lstrip(_JSON_WHITESPACE)
    if not text:
        raise ValidationError("invalid JSON: EOF")
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    try:
        value, _ = decoder.raw_decode(text)
    except ValueError as exc:
        raise ValidationError(f"invalid JSON: {exc}") from exc
    if value is None:
        return {}
    if not isinstance(value, dict):
        kind = _JSON_KINDS.get(type(value), "value")
        raise ValidationError(f"invalid JSON: cannot unmarshal {kind} into an object")
    return value


def validate_task_request(body: Union[bytes, str]) -> Task:
    """Parse a JSON request body into a task without an identifier.

    Both "name" and "status" must be present; the name must be a string
    that is not blank and the status a number between 0 and 1.
    """
    raw = _parse_object(body)

    if "name" not in raw:
        raise ValidationError("name is required")
    if "status" not in raw:
        raise ValidationError("status is required")

    name = raw["name"]
    if not isinstance(name, str):
        raise ValidationError("name must be a string")
    if not name.strip():
        raise ValidationError("name cannot be empty")

    status = raw["status"]
    if isinstance(status, bool) or not isinstance(status, (int, float)):
        raise ValidationError("status must be a number")
    if status < 0 or status > 1:
        raise ValidationError("status must be 0 or 1")

    return Task(name=name, status=int(status))