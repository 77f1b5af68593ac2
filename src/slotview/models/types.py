"""Small shared types for the tree model."""

from __future__ import annotations

from enum import Enum
from typing import Callable, TypeVar

T = TypeVar("T")

KeyOf = Callable[[T], str]


class Tristate(Enum):
    """Requested collapse state: force on, force off, or flip."""

    YES = "yes"
    NO = "no"
    TOGGLE = "toggle"

    def resolve(self, current: bool) -> bool:
        if self is Tristate.YES:
            return True
        if self is Tristate.NO:
            return False
        return not current
