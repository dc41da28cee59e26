"""HTTP-level task operations producing status codes and JSON bodies."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Optional, Union

from taskapi.storage import PaginationParams, Storage, TaskNotFoundError
from taskapi.validator import ValidationError, validate_task_request

_PAGE_PATTERN = re.compile(r"[+-]?[0-9]+")
_ESCAPES = {
    ord("<"): "\\u003c",
    ord(">"): "\\u003e",
    ord("&"): "\\u0026",
    0x2028: "\\u2028",
    0x2029: "\\u2029",
}


@dataclass(frozen=True)
class Response:
    """An HTTP status code with the value to send as its JSON body."""

    status: int
    payload: Any

    def body(self) -> str:
        """The payload encoded as compact JSON with HTML-sensitive characters escaped."""
        text = json.dumps(self.payload, ensure_ascii=False, separators=(",", ":"))
        return text.translate(_ESCAPES)


def _parse_page(page: Union[str, int, None]) -> int:
    if page is None:
        return 1
    if isinstance(page, int) and not isinstance(page, bool):
        number = page
    elif isinstance(page, str) and _PAGE_PATTERN.fullmatch(page):
        number = int(page)
    else:
        return 1
    return number if number >= 1 else 1


class TaskHandler:
    """Serves task requests against a storage backend."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def list_tasks(self, page: Union[str, int, None] = None) -> Response:
        """List one page of tasks; an absent or unusable page means page 1."""
        params = PaginationParams.for_page(_parse_page(page))
        try:
            result = self.storage.list(params)
        except Exception as exc:
            return Response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": str(exc)})
        return Response(HTTPStatus.OK, result.to_dict())

    def get_task(self, task_id: str) -> Response:
        """Return a single task."""
        try:
            task = self.storage.get(task_id)
        except TaskNotFoundError:
            return Response(HTTPStatus.NOT_FOUND, {"error": "Task not found"})
        except Exception:
            return Response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": "Internal server error"})
        return Response(HTTPStatus.OK, None if task is None else task.to_dict())

    def create_task(self, body: Union[bytes, str]) -> Response:
        """Create a task from a JSON request body."""
        try:
            task = validate_task_request(body)
        except ValidationError as exc:
            return Response(HTTPStatus.BAD_REQUEST, {"error": str(exc)})
        try:
            self.storage.create(task)
        except Exception:
            return Response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": "failed to create task"})
        return Response(HTTPStatus.CREATED, task.to_dict())

    def update_task(self, task_id: str, body: Union[bytes, str]) -> Response:
        """Replace a task with the contents of a JSON request body."""
        try:
            task = validate_task_request(body)
        except ValidationError as exc:
            return Response(HTTPStatus.BAD_REQUEST, {"error": str(exc)})
        try:
            self.storage.update(task_id, task)
        except TaskNotFoundError:
            return Response(HTTPStatus.NOT_FOUND, {"error": "task not found"})
        except Exception:
            return Response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": "failed to update task"})
        return Response(HTTPStatus.OK, task.to_dict())

    def delete_task(self, task_id: str) -> Response:
        """Delete a single task."""
        try:
            self.storage.delete(task_id)
        except TaskNotFoundError:
            return Response(HTTPStatus.NOT_FOUND, {"error": "task not found"})
        except Exception:
            return Response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": "failed to delete task"})
        return Response(HTTPStatus.OK, {"message": "task deleted successfully"})

    def delete_all_tasks(self) -> Response:
        """Delete every task."""
        try:
            self.storage.delete_all()
        except Exception as exc:
            return Response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": str(exc)})
        return Response(HTTPStatus.OK, {"message": "All tasks deleted successfully"})


def _unused(_: Optional[Any] = None) -> None:  # pragma: no cover
    return None