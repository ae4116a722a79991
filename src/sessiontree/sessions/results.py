# sessiontree/sessions/results.py

from dataclasses import dataclass
from typing import Optional

from .models import SessionNode


@dataclass(slots=True)
class OperationResult:
    """Outcome of a user-level tree operation."""

    success: bool
    message: str = ""
    item: Optional[SessionNode] = None

    def __bool__(self) -> bool:
        return self.success
