"""Tests for aggregation definitions and the aggregation manager."""

from dataclasses import dataclass
from typing import Optional

import pytest

from slotview.aggregation import AggregateResult, Aggregation, AggregationManager


@dataclass
class Sale:
    id: str
    amount: Optional[float]
    region: str = "eu"
    refunded: bool = False


SALES = [
    Sale("s1", 10.0, "eu"),
    Sale("s2", 30.0, "us", refunded=True),
    Sale("s3", None, "us"),
    Sale("s4", 20.0, "apac"),
]


class TestAggregation:
    def test_count(self):
        assert Aggregation.count("n").compute(SALES) == 4
        assert Aggregation.count("n").compute([]) == 0

    def test_sum_ignores_missing_values(self):
        total = Aggregation.sum("total", lambda sale: sale.amount)
        assert total.compute(SALES) == pytest.approx(60.0)
        assert total.compute([]) == 0.0

    def test_average(self):
        average = Aggregation.average("avg", lambda sale: sale.amount)
        assert average.compute(SALES) == pytest.approx(20.0)
        assert average.compute([Sale("x", None)]) is None
        assert average.compute([]) is None

    def test_min_max(self):
        assert Aggregation.min("lo", lambda sale: sale.amount).compute(SALES) == 10.0
        assert Aggregation.max("hi", lambda sale: sale.amount).compute(SALES) == 30.0
        assert Aggregation.max("hi", lambda sale: sale.amount).compute([]) is None

    def test_first_last(self):
        assert Aggregation.first("first", lambda sale: sale.id).compute(SALES) == "s1"
        assert Aggregation.last("last", lambda sale: sale.id).compute(SALES) == "s4"
        assert Aggregation.first("first", lambda sale: sale.id).compute([]) is None

    def test_distinct(self):
        assert Aggregation.distinct("regions", lambda sale: sale.region).compute(SALES) == 3

    def test_percentage(self):
        refunded = Aggregation.percentage("refunded", lambda sale: sale.refunded)
        assert refunded.compute(SALES) == pytest.approx(25.0)
        assert refunded.compute([]) == 0.0

    def test_custom_function_and_initial_value(self):
        longest = Aggregation("longest", lambda items: max(len(s.id) for s in items), initial_value=0)
        assert longest.compute(SALES) == 2
        assert longest.compute([]) == 0

    def test_identity_by_id(self):
        assert Aggregation.count("n") == Aggregation.count("n", label="Count")
        assert len({Aggregation.count("n"), Aggregation.count("n")}) == 1


class TestAggregateResult:
    def test_mapping_behaviour(self):
        result = AggregateResult({"n": 2, "total": 5.0})
        assert result["n"] == 2
        assert result.get("missing") is None
        assert dict(result) == {"n": 2, "total": 5.0}
        assert result.to_dict() == {"n": 2, "total": 5.0}
        assert result == AggregateResult({"total": 5.0, "n": 2})
        assert len(AggregateResult()) == 0


class TestAggregationManager:
    def test_aggregate_runs_every_definition(self):
        manager = AggregationManager(
            [Aggregation.count("n"), Aggregation.sum("total", lambda sale: sale.amount)]
        )
        result = manager.aggregate(SALES)
        assert result.to_dict() == {"n": 4, "total": pytest.approx(60.0)}

    def test_empty_manager_returns_empty_result(self):
        manager = AggregationManager()
        assert manager.is_empty
        assert len(manager.aggregate(SALES)) == 0

    def test_configuration_changes_notify(self):
        manager = AggregationManager()
        calls = []
        manager.add_change_listener(lambda: calls.append(len(manager)))

        manager.add(Aggregation.count("n"))
        manager.add_all([Aggregation.count("m"), Aggregation.count("k")])
        assert manager.remove("m") is not None
        assert manager.remove("m") is None
        manager.clear()
        manager.clear()

        assert calls == [1, 3, 2, 0]

    def test_add_replaces_same_id(self):
        manager = AggregationManager([Aggregation.count("n")])
        manager.add(Aggregation.sum("n", lambda sale: sale.amount))
        assert len(manager) == 1
        assert manager.aggregate(SALES)["n"] == pytest.approx(60.0)

    def test_lookup_helpers(self):
        manager = AggregationManager([Aggregation.count("n")])
        assert "n" in manager
        assert manager.get("n").id == "n"
        assert manager.get("x") is None
        assert manager.compute_one("n", SALES) == 4
        assert manager.compute_one("x", SALES) is None
        assert [aggregation.id for aggregation in manager.aggregations] == ["n"]

    def test_aggregate_groups(self):
        manager = AggregationManager([Aggregation.count("n")])
        groups = {"us": [s for s in SALES if s.region == "us"], "eu": SALES[:1]}
        results = manager.aggregate_groups(groups)
        assert results["us"]["n"] == 2
        assert results["eu"]["n"] == 1

    def test_failing_aggregation_propagates(self):
        manager = AggregationManager([Aggregation("boom", lambda items: 1 / 0)])
        with pytest.raises(ZeroDivisionError):
            manager.aggregate(SALES)

    def test_dispose_drops_listeners(self):
        manager = AggregationManager([Aggregation.count("n")])
        calls = []
        manager.add_change_listener(lambda: calls.append(1))
        manager.dispose()
        manager.add(Aggregation.count("m"))
        assert calls == []
