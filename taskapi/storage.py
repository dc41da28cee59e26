"""Task storage: the storage interface and a thread-safe in-memory store."""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any

from taskapi.model import Task

DEFAULT_LIMIT = 100


class TaskNotFoundError(LookupError):
    """Raised when a task with the requested identifier does not exist."""

    def __init__(self, message: str = "task not found") -> None:
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0] if self.args else "task not found"


@dataclass(frozen=True)
class PaginationParams:
    """Which page to list and how many tasks a page holds."""

    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def for_page(cls, page: int) -> "PaginationParams":
        """Parameters for the given page at the fixed limit of 100 per page."""
        return cls(page=max(page, 1), limit=DEFAULT_LIMIT)


@dataclass
class PaginationInfo:
    """Paging details that accompany a listed page."""

    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool

    def to_dict(self) -> dict[str, Any]:
        """Return the paging details as a JSON-ready mapping."""
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


@dataclass
class PaginationResult:
    """One page of tasks together with its paging details."""

    data: list[Task] = field(default_factory=list)
    pagination: PaginationInfo = field(
        default_factory=lambda: PaginationInfo(1, DEFAULT_LIMIT, 0, 0, False, False)
    )

    def to_dict(self) -> dict[str, Any]:
        """Return the page as a JSON-ready mapping."""
        return {
            "data": [task.to_dict() for task in self.data],
            "pagination": self.pagination.to_dict(),
        }


class Storage(ABC):
    """Interface every task store implements."""

    @abstractmethod
    def list(self, params: PaginationParams) -> PaginationResult:
        """Return one page of tasks."""

    @abstractmethod
    def get(self, task_id: str) -> Task | None:
        """Return the task with the given identifier."""

    @abstractmethod
    def create(self, task: Task) -> None:
        """Store a new task, assigning it a fresh identifier."""

    @abstractmethod
    def update(self, task_id: str, task: Task) -> None:
        """Replace the task with the given identifier."""

    @abstractmethod
    def delete(self, task_id: str) -> None:
        """Remove the task with the given identifier."""

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every task."""


class MemoryStorage(Storage):
    """In-memory store keeping tasks in insertion order with an id index.

    Deleting a task moves the last task into its slot, so order is kept
    only until the first deletion.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: list[Task] = []
        self._index: dict[str, int] = {}

    def list(self, params: PaginationParams) -> PaginationResult:
        page = params.page if params.page >= 1 else 1
        limit = params.limit if params.limit >= 1 else DEFAULT_LIMIT
        with self._lock:
            total = len(self._tasks)
            offset = (page - 1) * limit
            data = [replace(task) for task in self._tasks[offset:offset + limit]]
        pages = -(-total // limit)
        info = PaginationInfo(
            page=page,
            limit=limit,
            total=total,
            pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        )
        return PaginationResult(data=data, pagination=info)

    def get(self, task_id: str) -> Task:
        with self._lock:
            try:
                return replace(self._tasks[self._index[task_id]])
            except KeyError:
                raise TaskNotFoundError() from None

    def create(self, task: Task) -> None:
        with self._lock:
            task.id = str(uuid.uuid4())
            self._tasks.append(replace(task))
            self._index[task.id] = len(self._tasks) - 1

    def update(self, task_id: str, task: Task) -> None:
        with self._lock:
            try:
                position = self._index[task_id]
            except KeyError:
                raise TaskNotFoundError() from None
            task.id = task_id
            self._tasks[position] = replace(task)

    def delete(self, task_id: str) -> None:
        with self._lock:
            try:
                position = self._index.pop(task_id)
            except KeyError:
                raise TaskNotFoundError() from None
            last = self._tasks.pop()
            if position < len(self._tasks):
                self._tasks[position] = last
                self._index[last.id] = position

    def delete_all(self) -> None:
        with self._lock:
            self._tasks = []
            self._index = {}