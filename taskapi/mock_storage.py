"""A configurable storage double for exercising handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from taskapi.model import Task
from taskapi.storage import PaginationInfo, PaginationParams, PaginationResult, Storage


@dataclass
class MockStorage(Storage):
    """Storage whose behaviour is supplied per operation by callables.

    An operation without a callable succeeds and does nothing; listing
    then returns an empty page.
    """

    list_func: Optional[Callable[[PaginationParams], PaginationResult]] = None
    get_func: Optional[Callable[[str], Optional[Task]]] = None
    create_func: Optional[Callable[[Task], None]] = None
    update_func: Optional[Callable[[str, Task], None]] = None
    delete_func: Optional[Callable[[str], None]] = None
    delete_all_func: Optional[Callable[[], None]] = None

    def list(self, params: PaginationParams) -> PaginationResult:
        if self.list_func is not None:
            return self.list_func(params)
        return PaginationResult(
            data=[],
            pagination=PaginationInfo(
                page=params.page,
                limit=params.limit,
                total=0,
                pages=0,
                has_next=False,
                has_prev=False,
            ),
        )

    def get(self, task_id: str) -> Optional[Task]:
        if self.get_func is not None:
            return self.get_func(task_id)
        return None

    def create(self, task: Task) -> None:
        if self.create_func is not None:
            self.create_func(task)

    def update(self, task_id: str, task: Task) -> None:
        if self.update_func is not None:
            self.update_func(task_id, task)

    def delete(self, task_id: str) -> None:
        if self.delete_func is not None:
            self.delete_func(task_id)

    def delete_all(self) -> None:
        if self.delete_all_func is not None:
            self.delete_all_func()