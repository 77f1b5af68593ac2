"""Grouping rules and the helper that turns a flat item list into a tree.

Which rules are active, and in what order, is decided by the caller.  This
module only knows how to apply a list of ``GroupOption`` rules: every rule
adds one nesting level, items without a group key stay at their parent's
level, and multi-value rules may place one item into several groups.

The resulting group nodes carry their ``GroupOption`` in ``Node.extra``,
which is how ``SlotManager`` tells grouping-rule products apart from natural
tree nodes.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Sequence

from .config import GROUP_PATH_SEPARATOR, ROOT_NODE_ID
from .models.node import Node
from .models.types import KeyOf, T


class GroupOption(Generic[T]):
    """One grouping rule.

    Pass ``value_for`` for single-value grouping or ``values_for`` for
    multi-value grouping (for example tags).  ``key_builder`` converts a group
    value into its string key; ``str()`` is used otherwise.  A value (or key)
    of ``None`` means "no group".
    """

    def __init__(
        self,
        id: str,
        *,
        value_for: Optional[Callable[[T], Any]] = None,
        values_for: Optional[Callable[[T], Optional[Iterable[Any]]]] = None,
        label: str = "",
        key_builder: Optional[Callable[[Any], Optional[str]]] = None,
    ) -> None:
        if (value_for is None) == (values_for is None):
            raise ValueError("GroupOption needs exactly one of value_for or values_for")
        self.id = id
        self.label = label
        self._value_for = value_for
        self._values_for = values_for
        self._key_builder = key_builder

    @property
    def is_multi_value(self) -> bool:
        return self._values_for is not None

    def _key(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        if self._key_builder is not None:
            return self._key_builder(value)
        return str(value)

    def group_keys_for(self, item: T) -> List[str]:
        """Keys of every group *item* belongs to under this rule."""
        if self._values_for is not None:
            values = self._values_for(item)
            if values is None:
                return []
            keys = []
            for value in values:
                key = self._key(value)
                if key is not None and key not in keys:
                    keys.append(key)
            return keys
        key = self._key(self._value_for(item))
        return [] if key is None else [key]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, GroupOption) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        kind = "multi" if self.is_multi_value else "single"
        return f"GroupOption(id={self.id!r}, {kind})"


def build_group_tree(
    items: Iterable[T],
    key_of: KeyOf,
    options: Sequence[GroupOption[T]],
    *,
    root_id: str = ROOT_NODE_ID,
) -> Node[T]:
    """Build a fresh tree grouping *items* by *options*, outermost rule first.

    Group ids are the path of group keys below the root, joined with
    ``GROUP_PATH_SEPARATOR``.  Groups appear in the order their first member
    was seen.  The tree is built without emitting any notification.
    """
    root: Node[T] = Node(root_id, key_of)
    _group_into(root, list(items), key_of, options, 0, is_root=True)
    return root


def _group_into(
    parent: Node[T],
    items: List[T],
    key_of: KeyOf,
    options: Sequence[GroupOption[T]],
    option_index: int,
    *,
    is_root: bool,
) -> None:
    if option_index >= len(options):
        parent.add_all(items, notify=False)
        return

    option = options[option_index]
    groups: Dict[str, List[T]] = {}
    direct: List[T] = []
    for item in items:
        keys = option.group_keys_for(item)
        if not keys:
            direct.append(item)
            continue
        for key in keys:
            groups.setdefault(key, []).append(item)

    for key, members in groups.items():
        group_id = key if is_root else f"{parent.id}{GROUP_PATH_SEPARATOR}{key}"
        group: Node[T] = Node(group_id, key_of, extra=option)
        parent.add_child(group, notify=False)
        _group_into(group, members, key_of, options, option_index + 1, is_root=False)

    if direct:
        parent.add_all(direct, notify=False)
