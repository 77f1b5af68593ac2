"""Role definitions exposed by the slot list model."""

from __future__ import annotations

from enum import IntEnum
from typing import Dict

from PySide6.QtCore import Qt


class SlotRoles(IntEnum):
    """Custom roles exposed to QML or widgets."""

    KEY = Qt.UserRole + 1
    ITEM = Qt.UserRole + 2
    IS_HEADER = Qt.UserRole + 3
    DEPTH = Qt.UserRole + 4
    GROUP_ID = Qt.UserRole + 5
    GROUP_OPTION_ID = Qt.UserRole + 6
    IS_COLLAPSED = Qt.UserRole + 7
    ITEM_COUNT = Qt.UserRole + 8
    TOTAL_COUNT = Qt.UserRole + 9
    AGGREGATES = Qt.UserRole + 10
    LABEL = Qt.UserRole + 11


def role_names(base: Dict[int, bytes] | None = None) -> Dict[int, bytes]:
    """Return a mapping of Qt role numbers to byte names."""

    mapping: Dict[int, bytes] = {} if base is None else dict(base)
    mapping.update(
        {
            SlotRoles.KEY: b"key",
            SlotRoles.ITEM: b"item",
            SlotRoles.IS_HEADER: b"isHeader",
            SlotRoles.DEPTH: b"depth",
            SlotRoles.GROUP_ID: b"groupId",
            SlotRoles.GROUP_OPTION_ID: b"groupOptionId",
            SlotRoles.IS_COLLAPSED: b"isCollapsed",
            SlotRoles.ITEM_COUNT: b"itemCount",
            SlotRoles.TOTAL_COUNT: b"totalCount",
            SlotRoles.AGGREGATES: b"aggregates",
            SlotRoles.LABEL: b"label",
        }
    )
    return mapping
