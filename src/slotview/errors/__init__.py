"""Custom exception hierarchy for slotview.

Look-ups that find nothing are not errors here: they answer ``None``, ``-1``
or ``False``.  Exceptions are reserved for defects in the slot bookkeeping
itself.
"""

from __future__ import annotations


class SlotViewError(Exception):
    """Base class for all custom errors raised by slotview."""


class InvariantViolationError(SlotViewError):
    """Raised when the flattened slot array no longer matches its tree.

    Examples are a slot whose ``index`` differs from its position, an item
    slot that escaped its header's contiguous run, or an incremental update
    that resolved a header index pointing at an item slot.
    """
