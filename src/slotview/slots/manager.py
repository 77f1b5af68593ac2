"""Flat, randomly addressable projection of the visible part of a tree.

``SlotManager`` turns a ``Node`` tree into an array of ``GroupHeaderSlot`` and
``ItemSlot`` entries suitable for a virtualized list view.  Upstream changes
(items, filter, aggregation configuration) trigger a full rebuild.  Toggling a
single group is incremental: only the run of slots below that group's header
is removed or inserted and the shifted tail is re-indexed in place.

Slot order at every level is "groups before items": a node's child nodes (each
as a header followed by its visible contents) come first, then the node's own
items that pass the active filter.  The root emits no header; its children
and items sit at depth ``0``.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Generic, Iterator, List, Optional, Sequence, Tuple

from ..aggregation import AggregationManager
from ..config import DEFAULT_PREBUILT_SLOTS
from ..controller import TreeSource
from ..errors import InvariantViolationError
from ..events.signal import Listenable
from ..grouping import GroupOption
from ..models.node import Node
from ..models.types import T, Tristate
from .source import OnDemandSlotSource, PrebuiltSlotSource, SlotSource
from .types import GroupHeaderSlot, GroupInfo, Slot

logger = logging.getLogger(__name__)

GroupPredicate = Callable[[GroupInfo], bool]


class SlotManager(Listenable, Generic[T]):
    """Maintains the slot array for a ``TreeSource`` and notifies on change.

    Queries are total: out-of-range indices and unknown keys or group ids
    produce ``None``, ``False`` or ``-1``.  After ``dispose()`` every call is a
    silent no-op and the manager reports an empty projection.
    """

    def __init__(
        self,
        source: TreeSource,
        *,
        aggregations: Optional[AggregationManager[T]] = None,
        prebuilt: bool = DEFAULT_PREBUILT_SLOTS,
    ) -> None:
        self._source = source
        self._aggregations = aggregations
        self._prebuilt = prebuilt
        self._slots: SlotSource = self._new_slot_source()
        self._node_cache: Dict[str, Node[T]] = {}
        self._unique_item_count: Optional[int] = None
        self._version = 0
        self._disposed = False

        self._build()
        source.add_change_listener(self._on_upstream_changed)
        if aggregations is not None:
            aggregations.add_change_listener(self._on_upstream_changed)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def source(self) -> TreeSource:
        return self._source

    @property
    def aggregations(self) -> Optional[AggregationManager[T]]:
        return self._aggregations

    @property
    def prebuilt(self) -> bool:
        return self._prebuilt

    @property
    def total_slots(self) -> int:
        return len(self._slots)

    @property
    def is_empty(self) -> bool:
        return len(self._slots) == 0

    @property
    def version(self) -> int:
        """Incremented on every rebuild and every effective collapse/expand."""
        return self._version

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def unique_item_count(self) -> int:
        """Number of distinct item keys among the visible item slots."""
        if self._unique_item_count is None:
            self._unique_item_count = len(set(self._slots.keys()))
        return self._unique_item_count

    def __iter__(self) -> Iterator[Slot]:
        for index in range(len(self._slots)):
            yield self._slots.slot(index)

    def __repr__(self) -> str:
        mode = "prebuilt" if self._prebuilt else "on-demand"
        return f"SlotManager(slots={len(self._slots)}, version={self._version}, {mode})"

    # ------------------------------------------------------------------
    # Slot access
    # ------------------------------------------------------------------
    def get_slot(self, index: int) -> Optional[Slot]:
        if 0 <= index < len(self._slots):
            return self._slots.slot(index)
        return None

    def is_header(self, index: int) -> bool:
        return 0 <= index < len(self._slots) and self._slots.is_header(index)

    def get_item(self, index: int) -> Optional[T]:
        if 0 <= index < len(self._slots):
            return self._slots.item(index)
        return None

    def get_slot_range(self, start: int, count: int) -> Sequence[Slot]:
        """Slots ``[start, start + count)`` clamped to the array bounds."""
        total = len(self._slots)
        stop = min(max(start + count, 0), total)
        start = min(max(start, 0), total)
        return self._slots.range(start, max(stop, start))

    def index_of_key(self, key: str) -> int:
        """Index of the first visible slot showing *key*, or ``-1``."""
        if self._disposed:
            return -1
        node = self._source.root.find_node_by_key(key)
        if node is None:
            return -1
        item_filter = self._active_filter()
        if item_filter is not None and not item_filter(node.get(key)):
            return -1
        slots = self._slots
        for index in range(len(slots)):
            if slots.key(index) == key:
                return index
        return -1

    def next_item_after(self, index: int) -> Optional[T]:
        slots = self._slots
        if not 0 <= index < len(slots):
            return None
        for position in range(index + 1, len(slots)):
            if not slots.is_header(position):
                return slots.item(position)
        return None

    def prev_item_before(self, index: int) -> Optional[T]:
        slots = self._slots
        if not 0 <= index < len(slots):
            return None
        for position in range(index - 1, -1, -1):
            if not slots.is_header(position):
                return slots.item(position)
        return None

    def adjacent_item(self, key: str) -> Optional[T]:
        """Visible item after *key*'s slot, else the one before it."""
        index = self.index_of_key(key)
        if index < 0:
            return None
        item = self.next_item_after(index)
        if item is None:
            item = self.prev_item_before(index)
        return item

    # ------------------------------------------------------------------
    # Single-group collapse / expand (incremental)
    # ------------------------------------------------------------------
    def collapse(self, group_id: str) -> bool:
        """Collapse *group_id*; returns ``True`` when anything changed."""
        return self._set_collapsed(group_id, True)

    def expand(self, group_id: str) -> bool:
        return self._set_collapsed(group_id, False)

    def toggle_collapse(self, group_id: str) -> bool:
        node = self._resolve_group(group_id)
        if node is None:
            return False
        return self._set_collapsed(group_id, not node.is_collapsed)

    def _set_collapsed(self, group_id: str, collapsed: bool) -> bool:
        node = self._resolve_group(group_id)
        if node is None or node.is_collapsed == collapsed:
            return False
        state = Tristate.YES if collapsed else Tristate.NO

        header_index = self._slots.header_index(node)
        if header_index < 0:
            # An ancestor is collapsed; the new state shows once it expands.
            node.collapse(state, notify=False)
            logger.debug("Group %r is hidden; collapsed=%s recorded on the node only", group_id, collapsed)
            self._changed()
            return True

        if collapsed:
            node.collapse(state, notify=False)
            removed = self._remove_descendants(header_index)
            logger.debug("Collapsed %r at slot %d: removed %d slots", group_id, header_index, removed)
        else:
            # Flips the flag only once the run has been walked.
            inserted = self._insert_descendants(header_index, node)
            logger.debug("Expanded %r at slot %d: inserted %d slots", group_id, header_index, inserted)
        self._slots.refresh_header(header_index, node)
        self._changed()
        return True

    def _remove_descendants(self, header_index: int) -> int:
        slots = self._slots
        header_depth = slots.depth(header_index)
        end = header_index + 1
        total = len(slots)
        while end < total and slots.depth(end) > header_depth:
            end += 1
        count = end - header_index - 1
        if count:
            slots.remove_run(header_index + 1, count)
        return count

    def _insert_descendants(self, header_index: int, node: Node[T]) -> int:
        slots = self._slots
        header_depth = slots.depth(header_index)
        following = header_index + 1
        if following < len(slots) and slots.depth(following) > header_depth:
            raise InvariantViolationError(
                f"collapsed header {node.id!r} at slot {header_index} is followed by descendant slots"
            )
        node_cache: Dict[str, Node[T]] = {}
        run = list(self._walk(node, header_depth + 1, following, slots, node_cache))
        node.collapse(Tristate.NO, notify=False)
        self._node_cache.update(node_cache)
        if run:
            slots.insert_run(following, run)
        return len(run)

    # ------------------------------------------------------------------
    # Bulk collapse / expand (one rebuild, one notification)
    # ------------------------------------------------------------------
    def collapse_all(self) -> bool:
        return self._apply_bulk(lambda node, depth: True)

    def expand_all(self) -> bool:
        return self._apply_bulk(lambda node, depth: False)

    def collapse_to_level(self, level: int) -> bool:
        """Expand groups at depth below *level* and collapse the rest.

        Depth is the header depth: the root's children are at depth ``0``, so
        ``collapse_to_level(1)`` shows only the top-level groups expanded with
        every nested group collapsed.
        """
        return self._apply_bulk(lambda node, depth: depth >= level)

    def collapse_where(self, predicate: GroupPredicate) -> bool:
        """Collapse every group, visible or not, whose ``GroupInfo`` matches."""
        return self._apply_bulk(
            lambda node, depth: True if predicate(self._group_info(node, depth)) else None
        )

    def expand_where(self, predicate: GroupPredicate) -> bool:
        return self._apply_bulk(
            lambda node, depth: False if predicate(self._group_info(node, depth)) else None
        )

    def _apply_bulk(self, target_for: Callable[[Node[T], int], Optional[bool]]) -> bool:
        """Set each group's flag to ``target_for(node, depth)`` (``None`` keeps it)."""
        if self._disposed:
            return False
        changed = 0
        for node, depth in self._groups():
            target = target_for(node, depth)
            if target is None or target == node.is_collapsed:
                continue
            node.collapse(Tristate.YES if target else Tristate.NO, notify=False)
            changed += 1
        if not changed:
            return False
        logger.debug("Bulk collapse state change on %d groups", changed)
        self.rebuild()
        return True

    def _groups(self) -> Iterator[Tuple[Node[T], int]]:
        """Every group node below the root in pre-order, with its header depth."""
        stack: List[Tuple[Node[T], int]] = [
            (child, 0) for child in reversed(self._source.root.children)
        ]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            stack.extend((child, depth + 1) for child in reversed(node.children))

    @staticmethod
    def _group_info(node: Node[T], depth: int) -> GroupInfo:
        return GroupInfo(
            node=node,
            depth=depth,
            item_count=len(node),
            total_count=node.flattened_length,
        )

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def rebuild(self) -> None:
        """Regenerate the whole slot array from the tree and notify once."""
        if self._disposed:
            return
        self._build()
        self._changed()
        logger.debug("Rebuilt %d slots (version %d)", len(self._slots), self._version)

    def _new_slot_source(self) -> SlotSource:
        if self._prebuilt:
            return PrebuiltSlotSource(self._make_header)
        return OnDemandSlotSource(self._make_header)

    def _build(self) -> None:
        """Fill a fresh slot array and swap it in once the walk completes.

        If the filter or an aggregation raises, the previous array, node cache
        and version stay in place and the exception propagates.
        """
        slots = self._new_slot_source()
        node_cache: Dict[str, Node[T]] = {}
        for entry in self._walk(self._source.root, 0, 0, slots, node_cache):
            slots.append(entry)
        self._slots = slots
        self._node_cache = node_cache
        self._unique_item_count = None

    def _walk(
        self,
        parent: Node[T],
        depth: int,
        start: int,
        slots: SlotSource,
        node_cache: Dict[str, Node[T]],
    ) -> Iterator:
        """Slot entries for the visible contents of *parent*, in slot order.

        *depth* is the depth of *parent*'s own children and items; *start* is
        the index the first entry will occupy.  Group nodes met on the way are
        recorded in *node_cache*.  *parent*'s collapse flag is not consulted,
        which is what makes the root always open.
        """
        item_filter = self._active_filter()
        index = start
        stack: List[Tuple[Node[T], int, Iterator[Node[T]]]] = [
            (parent, depth, iter(parent.children))
        ]
        while stack:
            node, node_depth, pending = stack[-1]
            child = next(pending, None)
            if child is not None:
                node_cache[child.id] = child
                yield slots.header_entry(child, node_depth, index)
                index += 1
                if not child.is_collapsed:
                    stack.append((child, node_depth + 1, iter(child.children)))
                continue
            stack.pop()
            for key, item in node.keyed_items():
                if item_filter is None or item_filter(item):
                    yield slots.item_entry(node, key, item, node_depth, index)
                    index += 1

    def _make_header(self, node: Node[T], depth: int, index: int) -> GroupHeaderSlot:
        extra = node.extra
        aggregates = None
        if self._aggregations is not None and not self._aggregations.is_empty:
            aggregates = self._aggregations.aggregate(list(node.flattened_items))
        return GroupHeaderSlot(
            index=index,
            depth=depth,
            node=node,
            is_collapsed=node.is_collapsed,
            item_count=len(node),
            total_count=node.flattened_length,
            group_option_id=extra.id if isinstance(extra, GroupOption) else None,
            aggregates=aggregates,
        )

    def _active_filter(self) -> Optional[Callable[[T], bool]]:
        item_filter = self._source.filter
        if item_filter is None or not item_filter.is_not_empty:
            return None
        return item_filter.apply

    def _resolve_group(self, group_id: str) -> Optional[Node[T]]:
        if self._disposed:
            return None
        root = self._source.root
        node = self._node_cache.get(group_id)
        if node is None or node.root is not root:
            node = root.find_node(group_id)
            if node is None or node is root:
                return None
            self._node_cache[group_id] = node
        return node

    def _changed(self) -> None:
        self._unique_item_count = None
        self._version += 1
        self.notify_changed()

    def _on_upstream_changed(self) -> None:
        self.rebuild()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def check_invariants(self) -> None:
        """Raise ``InvariantViolationError`` if the slot array is inconsistent.

        Checks that every slot's ``index`` matches its position, that depth
        only grows by one directly after a header, that collapsed headers own
        no slots, and that headers inside a run descend from the run's header.
        """
        slots = self._slots
        total = len(slots)
        for index in range(total):
            slot = slots.slot(index)
            if slot.index != index:
                raise InvariantViolationError(f"slot at position {index} reports index {slot.index}")
            if index == 0:
                if slot.depth != 0:
                    raise InvariantViolationError(f"first slot has depth {slot.depth}")
                continue
            previous_depth = slots.depth(index - 1)
            limit = previous_depth + 1 if slots.is_header(index - 1) else previous_depth
            if slot.depth > limit:
                raise InvariantViolationError(
                    f"slot {index} at depth {slot.depth} does not follow its header"
                )

        for index in range(total):
            if not slots.is_header(index):
                continue
            node = slots.node(index)
            header_depth = slots.depth(index)
            end = index + 1
            while end < total and slots.depth(end) > header_depth:
                if slots.is_header(end) and not node.is_ancestor_of(slots.node(end)):
                    raise InvariantViolationError(
                        f"header {slots.node(end).id!r} at slot {end} is outside group {node.id!r}"
                    )
                end += 1
            if node.is_collapsed and end > index + 1:
                raise InvariantViolationError(f"collapsed group {node.id!r} owns {end - index - 1} slots")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._source.remove_change_listener(self._on_upstream_changed)
        if self._aggregations is not None:
            self._aggregations.remove_change_listener(self._on_upstream_changed)
        self._slots.clear()
        self._node_cache.clear()
        self._unique_item_count = None
        logger.debug("Slot manager disposed")
        super().dispose()
