"""Result type returned by every reconciliation and task operation.

A successful local write followed by a failed remote write is still a success:
the remote problem travels in ``warning`` so callers can show the saved data
with a soft banner instead of an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class ActionResult(Generic[T]):
    data: T | None = None
    warning: str | None = None
    errors: dict[str, str] = field(default_factory=dict)  # field name -> message
    not_found: bool = False
    message: str | None = None

    @property
    def ok(self) -> bool:
        return not self.errors and not self.not_found

    @classmethod
    def invalid(cls, errors: dict[str, str]) -> ActionResult:
        return cls(errors=dict(errors))

    @classmethod
    def missing(cls, what: str) -> ActionResult:
        return cls(not_found=True, message=f"{what} not found")
