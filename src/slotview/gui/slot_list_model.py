"""Qt list model presenting a ``SlotManager`` to item views."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from PySide6.QtCore import QAbstractListModel, QModelIndex, QObject, Qt

from ..slots.manager import SlotManager
from ..slots.types import GroupHeaderSlot, ItemSlot, Slot
from .roles import SlotRoles, role_names

logger = logging.getLogger(__name__)


class SlotListModel(QAbstractListModel):
    """One row per visible slot.

    The model keeps no copy of the slots; every ``data`` call reads straight
    from the manager.  Whenever the manager's version moves the model is reset
    once, which is cheap because rows are never cached here.
    """

    def __init__(self, manager: SlotManager, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._manager: Optional[SlotManager] = manager
        self._seen_version = manager.version
        manager.add_change_listener(self._on_manager_changed)

    @property
    def manager(self) -> Optional[SlotManager]:
        return self._manager

    # ------------------------------------------------------------------
    # QAbstractListModel API
    # ------------------------------------------------------------------
    def rowCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        if parent is not None and parent.isValid():  # pragma: no cover - tree fallback
            return 0
        if self._manager is None:
            return 0
        return self._manager.total_slots

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if self._manager is None or not index.isValid():
            return None
        slot = self._manager.get_slot(index.row())
        if slot is None:
            return None
        if role == Qt.DisplayRole:
            return self._display_text(slot)
        if role == SlotRoles.IS_HEADER:
            return slot.is_header
        if role == SlotRoles.DEPTH:
            return slot.depth
        if isinstance(slot, ItemSlot):
            return self._item_data(slot, role)
        if isinstance(slot, GroupHeaderSlot):
            return self._header_data(slot, role)
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return role_names(super().roleNames())

    def flags(self, index: QModelIndex) -> Qt.ItemFlag:  # noqa: N802
        if not index.isValid():
            return Qt.ItemFlag.NoItemFlags
        if self._manager is not None and self._manager.is_header(index.row()):
            return Qt.ItemFlag.ItemIsEnabled
        return Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    def toggle_row(self, row: int) -> bool:
        """Toggle the group whose header sits at *row*."""
        if self._manager is None:
            return False
        slot = self._manager.get_slot(row)
        if not isinstance(slot, GroupHeaderSlot):
            return False
        return self._manager.toggle_collapse(slot.group_id)

    def row_for_key(self, key: str) -> int:
        if self._manager is None:
            return -1
        return self._manager.index_of_key(key)

    def dispose(self) -> None:
        if self._manager is None:
            return
        self._manager.remove_change_listener(self._on_manager_changed)
        self.beginResetModel()
        self._manager = None
        self.endResetModel()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _on_manager_changed(self) -> None:
        if self._manager is None or self._manager.version == self._seen_version:
            return
        self._seen_version = self._manager.version
        logger.debug(
            "SlotListModel: resetting to %d rows (version %d)",
            self._manager.total_slots,
            self._seen_version,
        )
        self.beginResetModel()
        self.endResetModel()

    @staticmethod
    def _display_text(slot: Slot) -> str:
        if isinstance(slot, GroupHeaderSlot):
            return slot.label
        if isinstance(slot, ItemSlot):
            return str(slot.item)
        return ""

    @staticmethod
    def _item_data(slot: ItemSlot, role: int) -> Any:
        if role == SlotRoles.KEY:
            return slot.key
        if role == SlotRoles.ITEM:
            return slot.item
        return None

    @staticmethod
    def _header_data(slot: GroupHeaderSlot, role: int) -> Any:
        if role == SlotRoles.GROUP_ID:
            return slot.group_id
        if role == SlotRoles.GROUP_OPTION_ID:
            return slot.group_option_id
        if role == SlotRoles.IS_COLLAPSED:
            return slot.is_collapsed
        if role == SlotRoles.ITEM_COUNT:
            return slot.item_count
        if role == SlotRoles.TOTAL_COUNT:
            return slot.total_count
        if role == SlotRoles.LABEL:
            return slot.label
        if role == SlotRoles.AGGREGATES:
            return None if slot.aggregates is None else slot.aggregates.to_dict()
        return None
