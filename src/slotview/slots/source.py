"""Storage strategies for the flattened slot array.

Both strategies are filled by the same traversal in ``SlotManager``:

- ``PrebuiltSlotSource`` keeps fully materialized ``Slot`` objects and
  re-indexes them in place when the array shifts.
- ``OnDemandSlotSource`` keeps small ``SlotLocation`` records and builds a
  fresh ``Slot`` for every access, trading allocations per read for a lower
  steady-state footprint.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, List, Optional, TypeVar

from ..models.node import Node
from .types import GroupHeaderSlot, ItemSlot, Slot

E = TypeVar("E")

# Builds a header slot for ``(node, depth, index)`` including its aggregates.
HeaderFactory = Callable[[Node, int, int], GroupHeaderSlot]


class SlotRangeView(Sequence):
    """Read-only window onto the live slot list; no copy is made.

    The view reflects the list as it is when read, so it should be consumed
    before the next collapse, expand or rebuild.
    """

    __slots__ = ("_backing", "_start", "_stop")

    def __init__(self, backing: List[Slot], start: int, stop: int) -> None:
        self._backing = backing
        self._start = start
        self._stop = stop

    def __len__(self) -> int:
        return self._stop - self._start

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return [self[position] for position in range(*index.indices(len(self)))]
        if index < 0:
            index += len(self)
        if index < 0 or index >= len(self):
            raise IndexError("slot range index out of range")
        return self._backing[self._start + index]

    def __repr__(self) -> str:
        return f"SlotRangeView({self._start}:{self._stop})"


@dataclass(frozen=True, slots=True)
class SlotLocation:
    """Where a slot's data lives: a header for ``node`` or ``node[key]``."""

    node: Node
    depth: int
    key: Optional[str] = None

    @property
    def is_header(self) -> bool:
        return self.key is None


class SlotSource(ABC, Generic[E]):
    """Ordered slot entries plus the accessors ``SlotManager`` relies on.

    Accessors take an index the caller has already bounds-checked.
    """

    def __init__(self, header_factory: HeaderFactory) -> None:
        self._make_header = header_factory
        self._entries: List[E] = []

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def append(self, entry: E) -> None:
        self._entries.append(entry)

    def insert_run(self, start: int, run: List[E]) -> None:
        """Insert *run* before *start* and re-index the shifted tail."""
        self._entries[start:start] = run
        self._reindex(start)

    def remove_run(self, start: int, count: int) -> None:
        """Delete *count* entries from *start* and re-index the shifted tail."""
        del self._entries[start : start + count]
        self._reindex(start)

    def _reindex(self, start: int) -> None:
        """Hook for strategies whose entries carry their own index."""

    def refresh_header(self, index: int, node: Node) -> None:
        """Hook for strategies caching header state on the entry."""

    def header_index(self, node: Node) -> int:
        """Current index of *node*'s header, or ``-1`` when not visible."""
        for index in range(len(self._entries)):
            if self.is_header(index) and self.node(index) is node:
                return index
        return -1

    def keys(self) -> Iterator[str]:
        for index in range(len(self._entries)):
            key = self.key(index)
            if key is not None:
                yield key

    @abstractmethod
    def header_entry(self, node: Node, depth: int, index: int) -> E: ...

    @abstractmethod
    def item_entry(self, node: Node, key: str, item: Any, depth: int, index: int) -> E: ...

    @abstractmethod
    def slot(self, index: int) -> Slot: ...

    @abstractmethod
    def is_header(self, index: int) -> bool: ...

    @abstractmethod
    def item(self, index: int) -> Any: ...

    @abstractmethod
    def key(self, index: int) -> Optional[str]: ...

    @abstractmethod
    def depth(self, index: int) -> int: ...

    @abstractmethod
    def node(self, index: int) -> Node: ...

    @abstractmethod
    def range(self, start: int, stop: int) -> Sequence: ...


class PrebuiltSlotSource(SlotSource[Slot]):
    """Keeps materialized slots; reads are plain list access."""

    def header_entry(self, node: Node, depth: int, index: int) -> Slot:
        return self._make_header(node, depth, index)

    def item_entry(self, node: Node, key: str, item: Any, depth: int, index: int) -> Slot:
        return ItemSlot(index=index, depth=depth, key=key, item=item)

    def _reindex(self, start: int) -> None:
        entries = self._entries
        for index in range(start, len(entries)):
            entries[index].index = index

    def refresh_header(self, index: int, node: Node) -> None:
        header = self._entries[index]
        if not isinstance(header, GroupHeaderSlot):
            return
        header.is_collapsed = node.is_collapsed
        header.item_count = len(node)
        header.total_count = node.flattened_length

    def header_index(self, node: Node) -> int:
        for index, slot in enumerate(self._entries):
            if isinstance(slot, GroupHeaderSlot) and slot.node is node:
                return index
        return -1

    def slot(self, index: int) -> Slot:
        return self._entries[index]

    def is_header(self, index: int) -> bool:
        return isinstance(self._entries[index], GroupHeaderSlot)

    def item(self, index: int) -> Any:
        slot = self._entries[index]
        return slot.item if isinstance(slot, ItemSlot) else None

    def key(self, index: int) -> Optional[str]:
        slot = self._entries[index]
        return slot.key if isinstance(slot, ItemSlot) else None

    def depth(self, index: int) -> int:
        return self._entries[index].depth

    def node(self, index: int) -> Node:
        slot = self._entries[index]
        if isinstance(slot, GroupHeaderSlot):
            return slot.node
        raise TypeError(f"slot {index} is not a header")

    def range(self, start: int, stop: int) -> SlotRangeView:
        return SlotRangeView(self._entries, start, stop)


class OnDemandSlotSource(SlotSource[SlotLocation]):
    """Keeps location records; every read materializes a new slot."""

    def header_entry(self, node: Node, depth: int, index: int) -> SlotLocation:
        return SlotLocation(node=node, depth=depth)

    def item_entry(self, node: Node, key: str, item: Any, depth: int, index: int) -> SlotLocation:
        return SlotLocation(node=node, depth=depth, key=key)

    def slot(self, index: int) -> Slot:
        location = self._entries[index]
        if location.is_header:
            return self._make_header(location.node, location.depth, index)
        return ItemSlot(
            index=index,
            depth=location.depth,
            key=location.key,
            item=location.node.get(location.key),
        )

    def is_header(self, index: int) -> bool:
        return self._entries[index].is_header

    def item(self, index: int) -> Any:
        location = self._entries[index]
        if location.is_header:
            return None
        return location.node.get(location.key)

    def key(self, index: int) -> Optional[str]:
        return self._entries[index].key

    def depth(self, index: int) -> int:
        return self._entries[index].depth

    def node(self, index: int) -> Node:
        return self._entries[index].node

    def range(self, start: int, stop: int) -> List[Slot]:
        return [self.slot(index) for index in range(start, stop)]
