"""Task data model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class Task:
    """A task item: an identifier, a name and a status (0 or 1)."""

    id: str = ""
    name: str = ""
    status: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the task as a JSON-ready mapping, keys in wire order."""
        return {"id": self.id, "name": self.name, "status": self.status}