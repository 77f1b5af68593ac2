"""slotview: a mutable item tree and its flat, collapsible slot projection."""

from .aggregation import AggregateResult, Aggregation, AggregationManager
from .controller import FilterSet, ItemFilter, TreeController, TreeSource
from .errors import InvariantViolationError, SlotViewError
from .events import Listenable, Signal
from .grouping import GroupOption, build_group_tree
from .models import KeyOf, Node, Tristate
from .slots import GroupHeaderSlot, GroupInfo, ItemSlot, Slot, SlotManager

__all__ = [
    "AggregateResult",
    "Aggregation",
    "AggregationManager",
    "FilterSet",
    "GroupHeaderSlot",
    "GroupInfo",
    "GroupOption",
    "InvariantViolationError",
    "ItemFilter",
    "ItemSlot",
    "KeyOf",
    "Listenable",
    "Node",
    "Signal",
    "Slot",
    "SlotManager",
    "SlotViewError",
    "Tristate",
    "TreeController",
    "TreeSource",
    "build_group_tree",
]
