"""Default configuration values for slotview."""

from __future__ import annotations

from typing import Final

# Identifier given to the synthetic root created by ``TreeController`` and
# ``build_group_tree``.  The root never produces a slot of its own, so the id
# only matters for ``Node.find_node`` look-ups and for building group paths.
ROOT_NODE_ID: Final[str] = "root"

# Nested groups are identified by the path of group keys leading to them, e.g.
# ``"electronics/phones"``.  Header labels show the last path segment.
GROUP_PATH_SEPARATOR: Final[str] = "/"

# ``SlotManager`` keeps materialized slot objects by default.  On-demand mode
# stores lightweight location records instead and builds slots per access.
DEFAULT_PREBUILT_SLOTS: Final[bool] = True
