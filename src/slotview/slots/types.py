"""Slot records making up the flattened, visible projection of a tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from ..config import GROUP_PATH_SEPARATOR

if TYPE_CHECKING:  # pragma: no cover - import only for type checking
    from ..aggregation import AggregateResult
    from ..models.node import Node


def _label_for(group_id: str) -> str:
    return group_id.rsplit(GROUP_PATH_SEPARATOR, 1)[-1]


@dataclass(slots=True, eq=True)
class Slot:
    """A position in the flattened array.

    ``index`` is rewritten in place whenever the array shifts.  ``depth`` is
    set when the slot is created and is read-only afterwards; assigning it
    raises ``AttributeError``.
    """

    index: int
    depth: int

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "depth" and hasattr(self, "depth"):
            raise AttributeError(f"{type(self).__name__}.depth is read-only")
        object.__setattr__(self, name, value)

    @property
    def is_header(self) -> bool:
        return False


@dataclass(slots=True, eq=True)
class ItemSlot(Slot):
    """One visible occurrence of an item.

    Multi-value grouping may show the same item (same ``key``) in several
    item slots at once.
    """

    key: str
    item: Any

    def __repr__(self) -> str:
        return f"ItemSlot({self.index}, key={self.key!r}, depth={self.depth})"


@dataclass(slots=True, eq=True)
class GroupHeaderSlot(Slot):
    """Header row for a group or natural tree node.

    ``node`` points into the tree without owning it.  ``is_collapsed``,
    ``item_count``, ``total_count`` and ``aggregates`` are refreshed in place
    during incremental collapse/expand.
    """

    node: "Node"
    is_collapsed: bool
    item_count: int
    total_count: int
    group_option_id: Optional[str] = None
    aggregates: Optional["AggregateResult"] = None

    @property
    def is_header(self) -> bool:
        return True

    @property
    def group_id(self) -> str:
        return self.node.id

    @property
    def label(self) -> str:
        return _label_for(self.node.id)

    @property
    def is_tree_node(self) -> bool:
        return self.group_option_id is None

    @property
    def is_group_header(self) -> bool:
        return self.group_option_id is not None

    def __repr__(self) -> str:
        return (
            f"GroupHeaderSlot({self.index}, id={self.group_id!r}, depth={self.depth}, "
            f"collapsed={self.is_collapsed}, items={self.item_count})"
        )


@dataclass(frozen=True, slots=True)
class GroupInfo:
    """Read-only view of a group handed to bulk collapse/expand predicates."""

    node: "Node"
    depth: int
    item_count: int
    total_count: int

    @property
    def group_id(self) -> str:
        return self.node.id

    @property
    def label(self) -> str:
        return _label_for(self.node.id)

    @property
    def is_collapsed(self) -> bool:
        return self.node.is_collapsed
