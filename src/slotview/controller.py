"""Tree source contracts and a minimal controller implementing them.

``SlotManager`` reads its tree through the ``TreeSource`` protocol: a
``root`` node, an optional item ``filter`` and change notification.  The
``TreeController`` here is the simplest owner satisfying that contract; real
applications may plug in their own controller as long as it exposes the
same surface.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Generic, Optional, Protocol, runtime_checkable

from .config import ROOT_NODE_ID
from .events.signal import Listenable, Listener
from .models.node import Node
from .models.types import KeyOf, T

logger = logging.getLogger(__name__)


@runtime_checkable
class ItemFilter(Protocol):
    """Item-level predicate consulted while flattening the tree."""

    @property
    def is_not_empty(self) -> bool: ...

    def apply(self, item) -> bool: ...


@runtime_checkable
class TreeSource(Protocol):
    """What ``SlotManager`` needs from the owner of the tree."""

    @property
    def root(self) -> Node: ...

    @property
    def filter(self) -> Optional[ItemFilter]: ...

    def add_change_listener(self, listener: Listener) -> None: ...

    def remove_change_listener(self, listener: Listener) -> None: ...


class FilterSet(Listenable, Generic[T]):
    """Named item predicates; an item passes when every predicate accepts it."""

    def __init__(self, predicates: Optional[Dict[str, Callable[[T], bool]]] = None) -> None:
        self._predicates: Dict[str, Callable[[T], bool]] = dict(predicates or {})

    def __len__(self) -> int:
        return len(self._predicates)

    def __contains__(self, filter_id: object) -> bool:
        return filter_id in self._predicates

    @property
    def is_empty(self) -> bool:
        return not self._predicates

    @property
    def is_not_empty(self) -> bool:
        return bool(self._predicates)

    def add(self, filter_id: str, predicate: Callable[[T], bool]) -> None:
        """Install *predicate* under *filter_id*, replacing any previous one."""
        self._predicates[filter_id] = predicate
        self.notify_changed()

    def remove(self, filter_id: str) -> bool:
        if self._predicates.pop(filter_id, None) is None:
            return False
        self.notify_changed()
        return True

    def clear(self) -> None:
        if self._predicates:
            self._predicates.clear()
            self.notify_changed()

    def apply(self, item: T) -> bool:
        return all(predicate(item) for predicate in self._predicates.values())


class TreeController(Listenable, Generic[T]):
    """Owns a tree root plus an optional filter and re-broadcasts their changes.

    Nodes pass their notifications up to the root, so a change on any node
    of the tree reaches listeners here.  Mutations made with ``notify=False``
    are not seen; call ``notify_changed()`` once after such a batch.
    """

    def __init__(
        self,
        root: Optional[Node[T]] = None,
        *,
        key_of: Optional[KeyOf] = None,
        filter: Optional[ItemFilter] = None,
    ) -> None:
        if root is None:
            if key_of is None:
                raise ValueError("TreeController needs a root node or a key_of function")
            root = Node(ROOT_NODE_ID, key_of)
        self._root: Node[T] = root
        self._filter: Optional[ItemFilter] = filter
        self._root.add_change_listener(self._on_upstream_changed)
        if isinstance(filter, Listenable):
            filter.add_change_listener(self._on_upstream_changed)

    @property
    def root(self) -> Node[T]:
        return self._root

    @property
    def filter(self) -> Optional[ItemFilter]:
        return self._filter

    def set_root(self, root: Node[T]) -> None:
        """Swap in a rebuilt tree and notify once."""
        if root is self._root:
            return
        self._root.remove_change_listener(self._on_upstream_changed)
        self._root = root
        self._root.add_change_listener(self._on_upstream_changed)
        logger.debug("Tree root replaced: %r", root)
        self.notify_changed()

    def set_filter(self, item_filter: Optional[ItemFilter]) -> None:
        if item_filter is self._filter:
            return
        if isinstance(self._filter, Listenable):
            self._filter.remove_change_listener(self._on_upstream_changed)
        self._filter = item_filter
        if isinstance(item_filter, Listenable):
            item_filter.add_change_listener(self._on_upstream_changed)
        self.notify_changed()

    def get(self, key: str) -> Optional[T]:
        """Look up an item anywhere in the tree by key."""
        node = self._root.find_node_by_key(key)
        if node is None:
            return None
        return node.get(key)

    def _on_upstream_changed(self) -> None:
        self.notify_changed()

    def dispose(self) -> None:
        self._root.remove_change_listener(self._on_upstream_changed)
        if isinstance(self._filter, Listenable):
            self._filter.remove_change_listener(self._on_upstream_changed)
        super().dispose()
