"""Flattened slot projection of a node tree."""

from .manager import GroupPredicate, SlotManager
from .source import OnDemandSlotSource, PrebuiltSlotSource, SlotLocation, SlotRangeView, SlotSource
from .types import GroupHeaderSlot, GroupInfo, ItemSlot, Slot

__all__ = [
    "GroupHeaderSlot",
    "GroupInfo",
    "GroupPredicate",
    "ItemSlot",
    "OnDemandSlotSource",
    "PrebuiltSlotSource",
    "Slot",
    "SlotLocation",
    "SlotManager",
    "SlotRangeView",
    "SlotSource",
]
