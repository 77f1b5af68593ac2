"""Mutable ownership tree holding keyed items and child nodes.

A ``Node`` is either a group/tree container or a leaf holding items.  Items
are stored in insertion order together with a ``key -> item`` index so that
look-ups, replacements and removals by key are O(1).  Child nodes are owned
by their parent; the child keeps only a weak back-reference.

Every tree walk in this module uses an explicit stack, so degenerate trees
(long single-child chains) never run into Python's recursion limit.
"""

from __future__ import annotations

import weakref
from collections import deque
from itertools import islice
from typing import Any, Callable, Dict, Generic, ItemsView, Iterable, Iterator, List, Optional

from ..events.signal import Listenable
from .types import KeyOf, T, Tristate


class Node(Listenable, Generic[T]):
    """A tree node owning an ordered, keyed item sequence and child nodes."""

    def __init__(
        self,
        id: str,
        key_of: KeyOf,
        *,
        extra: Any = None,
        items: Optional[Iterable[T]] = None,
        children: Optional[Iterable["Node[T]"]] = None,
    ) -> None:
        self.id = id
        self.key_of = key_of
        # Opaque metadata; grouping rules store their ``GroupOption`` here.
        self.extra = extra

        self._items: Dict[str, T] = {}
        self._children: Dict[str, Node[T]] = {}
        self._parent_ref: Optional[weakref.ReferenceType[Node[T]]] = None
        self._depth = 0
        self._version = 0
        self._is_collapsed = False
        self._cached_height: Optional[int] = None

        if items is not None:
            self.add_all(items, notify=False)
        if children is not None:
            for child in children:
                self.add_child(child, notify=False)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------
    def __iter__(self) -> Iterator[T]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        # A node without direct items is still a node.
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __repr__(self) -> str:
        return f"Node({self.id!r}, items={len(self._items)}, children={len(self._children)})"

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def version(self) -> int:
        """Modification counter, bumped on every item, child or state change."""
        return self._version

    def notify_changed(self) -> None:
        """Notify this node's listeners, then those of every ancestor.

        Listeners on the root therefore see changes made anywhere in the tree.
        """
        node: Optional[Node[T]] = self
        while node is not None:
            Listenable.notify_changed(node)
            node = node.parent

    def _touch(self, notify: bool) -> None:
        self._version += 1
        if notify:
            self.notify_changed()

    # ------------------------------------------------------------------
    # Item operations
    # ------------------------------------------------------------------
    def add(self, item: T, *, notify: bool = True) -> bool:
        """Insert *item* by key.

        Re-adding an existing key overwrites the stored value in place without
        moving it.  Returns ``True`` when the key was new.
        """
        key = self.key_of(item)
        is_new = key not in self._items
        self._items[key] = item
        self._touch(notify)
        return is_new

    def add_all(self, items: Iterable[T], *, notify: bool = True) -> int:
        """Insert every item; returns how many keys were new."""
        added = 0
        touched = False
        for item in items:
            key = self.key_of(item)
            if key not in self._items:
                added += 1
            self._items[key] = item
            touched = True
        if touched:
            self._touch(notify)
        return added

    def insert(self, index: int, item: T, *, notify: bool = True) -> bool:
        """Insert *item* at *index*; refuses keys that are already present."""
        key = self.key_of(item)
        if key in self._items:
            return False
        entries = list(self._items.items())
        index = max(0, min(index, len(entries)))
        entries.insert(index, (key, item))
        self._items = dict(entries)
        self._touch(notify)
        return True

    def remove(self, key: str, *, notify: bool = True) -> Optional[T]:
        """Remove and return the item stored under *key*; ``None`` if absent."""
        if key not in self._items:
            return None
        item = self._items.pop(key)
        self._touch(notify)
        return item

    def remove_item(self, item: T, *, notify: bool = True) -> Optional[T]:
        return self.remove(self.key_of(item), notify=notify)

    def remove_where(self, predicate: Callable[[T], bool], *, notify: bool = True) -> List[T]:
        removed_keys = [key for key, item in self._items.items() if predicate(item)]
        removed = [self._items.pop(key) for key in removed_keys]
        if removed:
            self._touch(notify)
        return removed

    def replace_key(self, old_key: str, item: T, *, notify: bool = True) -> bool:
        """Swap the item under *old_key* for *item*, keeping its position.

        The new item may carry a different key.  Returns ``False`` when
        *old_key* is unknown.
        """
        if old_key not in self._items:
            return False
        new_key = self.key_of(item)
        rebuilt: Dict[str, T] = {}
        for key, value in self._items.items():
            if key == old_key:
                rebuilt[new_key] = item
            elif key != new_key:
                rebuilt[key] = value
        self._items = rebuilt
        self._touch(notify)
        return True

    def clear(self, *, notify: bool = True) -> bool:
        if not self._items:
            return False
        self._items.clear()
        self._touch(notify)
        return True

    def sort(
        self,
        key: Optional[Callable[[T], Any]] = None,
        *,
        reverse: bool = False,
        notify: bool = True,
    ) -> None:
        """Reorder direct items; *key* defaults to the item key."""
        if key is None:
            ordered = sorted(self._items.items(), key=lambda entry: entry[0], reverse=reverse)
        else:
            ordered = sorted(self._items.items(), key=lambda entry: key(entry[1]), reverse=reverse)
        self._items = dict(ordered)
        self._touch(notify)

    # ------------------------------------------------------------------
    # Item queries
    # ------------------------------------------------------------------
    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        return self._items.get(key, default)

    def item_at(self, index: int) -> Optional[T]:
        if index < 0 or index >= len(self._items):
            return None
        return next(islice(self._items.values(), index, None))

    def index_of(self, key: str) -> int:
        if key not in self._items:
            return -1
        for position, candidate in enumerate(self._items):
            if candidate == key:
                return position
        return -1

    def next_item(self, key: str) -> Optional[T]:
        index = self.index_of(key)
        if index == -1:
            return None
        return self.item_at(index + 1)

    def prev_item(self, key: str) -> Optional[T]:
        index = self.index_of(key)
        if index <= 0:
            return None
        return self.item_at(index - 1)

    @property
    def keys(self) -> List[str]:
        return list(self._items)

    @property
    def items(self) -> List[T]:
        return list(self._items.values())

    def keyed_items(self) -> ItemsView[str, T]:
        """Live ``(key, item)`` view in iteration order."""
        return self._items.items()

    # ------------------------------------------------------------------
    # Child operations
    # ------------------------------------------------------------------
    def add_child(self, child: "Node[T]", *, notify: bool = True) -> None:
        """Append *child* (or replace the child with the same id in place)."""
        self._attach(child)
        self._version += 1
        self._invalidate_height()
        if notify:
            self.notify_changed()

    def add_children(self, children: Iterable["Node[T]"], *, notify: bool = True) -> int:
        count = 0
        for child in children:
            self._attach(child)
            count += 1
        if count:
            self._version += 1
            self._invalidate_height()
            if notify:
                self.notify_changed()
        return count

    def insert_child_at(self, index: int, child: "Node[T]", *, notify: bool = True) -> None:
        self._attach(child)
        entries = [(cid, node) for cid, node in self._children.items() if cid != child.id]
        index = max(0, min(index, len(entries)))
        entries.insert(index, (child.id, child))
        self._children = dict(entries)
        self._version += 1
        self._invalidate_height()
        if notify:
            self.notify_changed()

    def remove_child(self, child_id: str, *, notify: bool = True) -> Optional["Node[T]"]:
        child = self._children.pop(child_id, None)
        if child is None:
            return None
        child._parent_ref = None
        child._update_depth(0)
        self._version += 1
        self._invalidate_height()
        if notify:
            self.notify_changed()
        return child

    def clear_children(self, *, notify: bool = True) -> bool:
        if not self._children:
            return False
        for child in self._children.values():
            child._parent_ref = None
            child._update_depth(0)
        self._children.clear()
        self._version += 1
        self._invalidate_height()
        if notify:
            self.notify_changed()
        return True

    def _attach(self, child: "Node[T]") -> None:
        previous_parent = child.parent
        if previous_parent is not None and previous_parent is not self:
            previous_parent._children.pop(child.id, None)
            previous_parent._version += 1
            previous_parent._invalidate_height()
        replaced = self._children.get(child.id)
        if replaced is not None and replaced is not child:
            replaced._parent_ref = None
            replaced._update_depth(0)
        child._parent_ref = weakref.ref(self)
        self._children[child.id] = child
        child._update_depth(self._depth + 1)

    def child(self, child_id: str) -> Optional["Node[T]"]:
        return self._children.get(child_id)

    def child_at(self, index: int) -> Optional["Node[T]"]:
        if index < 0 or index >= len(self._children):
            return None
        return next(islice(self._children.values(), index, None))

    @property
    def children(self) -> List["Node[T]"]:
        return list(self._children.values())

    @property
    def child_ids(self) -> List[str]:
        return list(self._children)

    @property
    def child_count(self) -> int:
        return len(self._children)

    @property
    def has_children(self) -> bool:
        return bool(self._children)

    @property
    def is_leaf(self) -> bool:
        return not self._children

    @property
    def child_index(self) -> int:
        parent = self.parent
        if parent is None:
            return -1
        for position, child_id in enumerate(parent._children):
            if child_id == self.id:
                return position
        return -1

    # ------------------------------------------------------------------
    # Tree navigation
    # ------------------------------------------------------------------
    @property
    def parent(self) -> Optional["Node[T]"]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def has_parent(self) -> bool:
        return self.parent is not None

    @property
    def depth(self) -> int:
        """Distance from the tree root (the root itself is ``0``)."""
        return self._depth

    @property
    def height(self) -> int:
        """Length of the longest downward path to a leaf; cached."""
        if self._cached_height is not None:
            return self._cached_height
        heights: Dict[int, int] = {}
        for node in reversed(list(self.descendants(depth_first=True))):
            if node._cached_height is not None:
                heights[id(node)] = node._cached_height
                continue
            best = -1
            for child in node._children.values():
                best = max(best, heights[id(child)])
            node._cached_height = best + 1
            heights[id(node)] = node._cached_height
        return heights[id(self)]

    def _invalidate_height(self) -> None:
        node: Optional[Node[T]] = self
        while node is not None:
            node._cached_height = None
            node = node.parent

    def _update_depth(self, depth: int) -> None:
        stack = [(self, depth)]
        while stack:
            node, node_depth = stack.pop()
            node._depth = node_depth
            for child in node._children.values():
                stack.append((child, node_depth + 1))

    @property
    def root(self) -> "Node[T]":
        node = self
        parent = node.parent
        while parent is not None:
            node = parent
            parent = node.parent
        return node

    @property
    def ancestors(self) -> Iterator["Node[T]"]:
        """Parents from the nearest up to the root."""
        parent = self.parent
        while parent is not None:
            yield parent
            parent = parent.parent

    @property
    def path_from_root(self) -> List["Node[T]"]:
        path = [self, *self.ancestors]
        path.reverse()
        return path

    @property
    def siblings(self) -> Iterator["Node[T]"]:
        parent = self.parent
        if parent is None:
            return
        for child in parent._children.values():
            if child is not self:
                yield child

    def is_ancestor_of(self, other: "Node[T]") -> bool:
        return any(ancestor is self for ancestor in other.ancestors)

    def is_descendant_of(self, other: "Node[T]") -> bool:
        return other.is_ancestor_of(self)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def find_node(self, node_id: str) -> Optional["Node[T]"]:
        """Depth-first search for *node_id* in this subtree (self included)."""
        for node in self.descendants(depth_first=True):
            if node.id == node_id:
                return node
        return None

    def find_node_by_key(self, key: str) -> Optional["Node[T]"]:
        """First node (depth-first) whose direct items contain *key*."""
        for node in self.descendants(depth_first=True):
            if key in node._items:
                return node
        return None

    def find_node_by_item(self, item: T) -> Optional["Node[T]"]:
        return self.find_node_by_key(self.key_of(item))

    def find_nodes(self, predicate: Callable[["Node[T]"], bool]) -> Iterator["Node[T]"]:
        for node in self.descendants():
            if predicate(node):
                yield node

    def find_first_item(self, predicate: Callable[[T], bool]) -> Optional[T]:
        for item in self.flattened_items:
            if predicate(item):
                return item
        return None

    # ------------------------------------------------------------------
    # Tree manipulation
    # ------------------------------------------------------------------
    def detach(self, *, notify: bool = True) -> None:
        parent = self.parent
        if parent is None:
            return
        parent.remove_child(self.id, notify=notify)

    def move_to(self, new_parent: "Node[T]", *, notify: bool = True) -> bool:
        """Re-parent this node; refuses to move under itself or a descendant."""
        if new_parent is self or self.is_ancestor_of(new_parent):
            return False
        old_parent = self.parent
        new_parent.add_child(self, notify=False)
        if notify:
            if old_parent is not None and old_parent is not new_parent:
                old_parent.notify_changed()
            new_parent.notify_changed()
        return True

    # ------------------------------------------------------------------
    # Collapse state
    # ------------------------------------------------------------------
    @property
    def is_collapsed(self) -> bool:
        return self._is_collapsed

    @property
    def is_expanded(self) -> bool:
        return not self._is_collapsed

    def collapse(self, state: Tristate = Tristate.TOGGLE, *, notify: bool = True) -> bool:
        """Set this node's own collapse flag; returns the resulting state.

        Descendants keep their own flags.  Nothing happens (no version bump,
        no notification) when the flag already has the requested value.
        """
        target = state.resolve(self._is_collapsed)
        if target == self._is_collapsed:
            return self._is_collapsed
        self._is_collapsed = target
        self._touch(notify)
        return self._is_collapsed

    def toggle(self, *, notify: bool = True) -> bool:
        return self.collapse(Tristate.TOGGLE, notify=notify)

    def expand_to_this(self, *, notify: bool = True) -> None:
        """Expand every collapsed ancestor so this node becomes reachable."""
        changed = []
        for ancestor in self.ancestors:
            if ancestor._is_collapsed:
                ancestor._is_collapsed = False
                ancestor._version += 1
                changed.append(ancestor)
        if changed and notify:
            # The nearest changed ancestor reaches the rest on its way up.
            changed[0].notify_changed()

    def collapse_to_level(self, level: int, *, notify: bool = True) -> None:
        """Expand nodes above *level* and collapse the rest.

        Levels are counted from this node, which sits at level ``0``.
        """
        self._set_collapsed_where(lambda node, node_level: node_level >= level, notify)

    def expand_all(self, *, notify: bool = True) -> None:
        self._set_collapsed_where(lambda node, node_level: False, notify)

    def collapse_all(self, *, notify: bool = True) -> None:
        self._set_collapsed_where(lambda node, node_level: True, notify)

    def _set_collapsed_where(
        self,
        should_collapse: Callable[["Node[T]", int], bool],
        notify: bool,
    ) -> None:
        changed = False
        stack: List[tuple[Node[T], int]] = [(self, 0)]
        while stack:
            node, node_level = stack.pop()
            target = should_collapse(node, node_level)
            if node._is_collapsed != target:
                node._is_collapsed = target
                node._version += 1
                changed = True
            for child in node._children.values():
                stack.append((child, node_level + 1))
        if changed and notify:
            self.notify_changed()

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------
    def descendants(self, *, depth_first: bool = False) -> Iterator["Node[T]"]:
        """This node and every node below it.

        Breadth-first by default; ``depth_first=True`` yields pre-order.
        """
        if depth_first:
            stack: List[Node[T]] = [self]
            while stack:
                node = stack.pop()
                yield node
                stack.extend(reversed(node._children.values()))
            return
        queue: deque[Node[T]] = deque([self])
        while queue:
            node = queue.popleft()
            yield node
            queue.extend(node._children.values())

    def visible_descendants(self, *, depth_first: bool = False) -> Iterator["Node[T]"]:
        """Like ``descendants`` but without entering collapsed nodes."""
        if depth_first:
            stack: List[Node[T]] = [self]
            while stack:
                node = stack.pop()
                yield node
                if not node._is_collapsed:
                    stack.extend(reversed(node._children.values()))
            return
        queue: deque[Node[T]] = deque([self])
        while queue:
            node = queue.popleft()
            yield node
            if not node._is_collapsed:
                queue.extend(node._children.values())

    @property
    def flattened_items(self) -> Iterator[T]:
        """Every item in this subtree, depth-first.

        Child nodes are visited before a node's own direct items, the same
        "groups before items" order the slot projection uses.
        """
        for node in self._post_order():
            yield from node._items.values()

    @property
    def flattened_keys(self) -> Iterator[str]:
        for node in self._post_order():
            yield from node._items

    @property
    def flattened_length(self) -> int:
        return sum(len(node._items) for node in self.descendants())

    def _post_order(self) -> Iterator["Node[T]"]:
        stack: List[tuple[Node[T], Iterator[Node[T]]]] = [(self, iter(self._children.values()))]
        while stack:
            node, pending = stack[-1]
            child = next(pending, None)
            if child is not None:
                stack.append((child, iter(child._children.values())))
                continue
            stack.pop()
            yield node

    @property
    def leaves(self) -> Iterator["Node[T]"]:
        for node in self.descendants(depth_first=True):
            if not node._children:
                yield node

    def nodes_at_depth(self, depth: int) -> Iterator["Node[T]"]:
        """Nodes *depth* levels below this one (``0`` yields this node)."""
        level: List[Node[T]] = [self]
        for _ in range(depth):
            level = [child for node in level for child in node._children.values()]
        yield from level

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def dispose(self) -> None:
        """Release items, children and listeners of the whole subtree."""
        stack: List[Node[T]] = [self]
        while stack:
            node = stack.pop()
            stack.extend(node._children.values())
            node._items.clear()
            node._children.clear()
            node._parent_ref = None
            Listenable.dispose(node)
