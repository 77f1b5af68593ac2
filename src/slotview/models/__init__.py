"""Tree model: keyed item containers arranged in a collapsible hierarchy."""

from .node import Node
from .types import KeyOf, Tristate

__all__ = ["KeyOf", "Node", "Tristate"]
