"""Qt adapter exposing slot managers to item views."""

from .roles import SlotRoles, role_names
from .slot_list_model import SlotListModel

__all__ = ["SlotListModel", "SlotRoles", "role_names"]
