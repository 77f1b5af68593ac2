"""Per-group summary values shown on group headers.

An ``AggregationManager`` holds named ``Aggregation`` definitions and turns a
list of items into an ``AggregateResult``.  ``SlotManager`` feeds it the full
flattened member list of every group header and rebuilds whenever the
manager's configuration changes.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Sequence

import numpy as np

from .events.signal import Listenable
from .models.types import T

logger = logging.getLogger(__name__)

AggregateFunction = Callable[[Sequence[Any]], Any]
NumericValueGetter = Callable[[Any], Optional[float]]


def _numeric_values(items: Sequence[Any], value_getter: NumericValueGetter) -> np.ndarray:
    """Collect ``value_getter`` results as float64, with ``None`` mapped to NaN."""

    def _value(item: Any) -> float:
        value = value_getter(item)
        return np.nan if value is None else float(value)

    return np.fromiter((_value(item) for item in items), dtype=np.float64, count=len(items))


class Aggregation(Generic[T]):
    """A named reduction over a group's items."""

    def __init__(
        self,
        id: str,
        aggregate: AggregateFunction,
        *,
        label: Optional[str] = None,
        initial_value: Any = None,
    ) -> None:
        self.id = id
        self.label = label
        self.aggregate = aggregate
        self.initial_value = initial_value

    def compute(self, items: Sequence[T]) -> Any:
        if not items and self.initial_value is not None:
            return self.initial_value
        return self.aggregate(items)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Aggregation) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Aggregation(id={self.id!r})"

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def count(cls, id: str, *, label: Optional[str] = None) -> "Aggregation[T]":
        return cls(id, len, label=label, initial_value=0)

    @classmethod
    def sum(
        cls, id: str, value_getter: NumericValueGetter, *, label: Optional[str] = None
    ) -> "Aggregation[T]":
        def _sum(items: Sequence[T]) -> float:
            return float(np.nansum(_numeric_values(items, value_getter)))

        return cls(id, _sum, label=label, initial_value=0.0)

    @classmethod
    def average(
        cls, id: str, value_getter: NumericValueGetter, *, label: Optional[str] = None
    ) -> "Aggregation[T]":
        def _average(items: Sequence[T]) -> Optional[float]:
            values = _numeric_values(items, value_getter)
            present = values[~np.isnan(values)]
            if present.size == 0:
                return None
            return float(present.mean())

        return cls(id, _average, label=label)

    @classmethod
    def min(
        cls, id: str, value_getter: Callable[[T], Any], *, label: Optional[str] = None
    ) -> "Aggregation[T]":
        def _min(items: Sequence[T]) -> Any:
            values = [value for value in map(value_getter, items) if value is not None]
            return min(values) if values else None

        return cls(id, _min, label=label)

    @classmethod
    def max(
        cls, id: str, value_getter: Callable[[T], Any], *, label: Optional[str] = None
    ) -> "Aggregation[T]":
        def _max(items: Sequence[T]) -> Any:
            values = [value for value in map(value_getter, items) if value is not None]
            return max(values) if values else None

        return cls(id, _max, label=label)

    @classmethod
    def first(
        cls, id: str, value_getter: Callable[[T], Any], *, label: Optional[str] = None
    ) -> "Aggregation[T]":
        return cls(id, lambda items: value_getter(items[0]) if items else None, label=label)

    @classmethod
    def last(
        cls, id: str, value_getter: Callable[[T], Any], *, label: Optional[str] = None
    ) -> "Aggregation[T]":
        return cls(id, lambda items: value_getter(items[-1]) if items else None, label=label)

    @classmethod
    def distinct(
        cls, id: str, value_getter: Callable[[T], Any], *, label: Optional[str] = None
    ) -> "Aggregation[T]":
        def _distinct(items: Sequence[T]) -> int:
            return len({value for value in map(value_getter, items) if value is not None})

        return cls(id, _distinct, label=label, initial_value=0)

    @classmethod
    def percentage(
        cls, id: str, predicate: Callable[[T], bool], *, label: Optional[str] = None
    ) -> "Aggregation[T]":
        """Share of items matching *predicate*, in percent."""

        def _percentage(items: Sequence[T]) -> float:
            if not items:
                return 0.0
            matches = np.fromiter((bool(predicate(item)) for item in items), dtype=bool, count=len(items))
            return float(np.count_nonzero(matches) * 100.0 / len(items))

        return cls(id, _percentage, label=label, initial_value=0.0)


class AggregateResult(Mapping):
    """Read-only ``aggregation id -> value`` mapping cached on a header."""

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Dict[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(values or {})

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def __repr__(self) -> str:
        return f"AggregateResult({self._values!r})"


class AggregationManager(Listenable, Generic[T]):
    """Ordered registry of aggregations with change notification."""

    def __init__(self, aggregations: Optional[Iterable[Aggregation[T]]] = None) -> None:
        self._aggregations: Dict[str, Aggregation[T]] = {}
        for aggregation in aggregations or ():
            self._aggregations[aggregation.id] = aggregation

    def __len__(self) -> int:
        return len(self._aggregations)

    def __contains__(self, aggregation_id: object) -> bool:
        return aggregation_id in self._aggregations

    @property
    def is_empty(self) -> bool:
        return not self._aggregations

    @property
    def is_not_empty(self) -> bool:
        return bool(self._aggregations)

    @property
    def aggregations(self) -> List[Aggregation[T]]:
        return list(self._aggregations.values())

    def get(self, aggregation_id: str) -> Optional[Aggregation[T]]:
        return self._aggregations.get(aggregation_id)

    def add(self, aggregation: Aggregation[T]) -> None:
        """Register *aggregation*, replacing one with the same id."""
        self._aggregations[aggregation.id] = aggregation
        self.notify_changed()

    def add_all(self, aggregations: Iterable[Aggregation[T]]) -> None:
        for aggregation in aggregations:
            self._aggregations[aggregation.id] = aggregation
        self.notify_changed()

    def remove(self, aggregation_id: str) -> Optional[Aggregation[T]]:
        removed = self._aggregations.pop(aggregation_id, None)
        if removed is not None:
            self.notify_changed()
        return removed

    def clear(self) -> None:
        if self._aggregations:
            self._aggregations.clear()
            self.notify_changed()

    def aggregate(self, items: Sequence[T]) -> AggregateResult:
        if not self._aggregations:
            return AggregateResult()
        return AggregateResult(
            {aggregation.id: aggregation.compute(items) for aggregation in self._aggregations.values()}
        )

    def aggregate_groups(self, groups: Mapping[str, Sequence[T]]) -> Dict[str, AggregateResult]:
        return {group_id: self.aggregate(items) for group_id, items in groups.items()}

    def compute_one(self, aggregation_id: str, items: Sequence[T]) -> Any:
        aggregation = self._aggregations.get(aggregation_id)
        if aggregation is None:
            return None
        return aggregation.compute(items)

    def dispose(self) -> None:
        logger.debug("Disposing aggregation manager with %d aggregations", len(self._aggregations))
        self._aggregations.clear()
        super().dispose()

    def __repr__(self) -> str:
        return f"AggregationManager(aggregations={len(self._aggregations)})"
