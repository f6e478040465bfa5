"""
Tests for the exhaustive combination search.
"""
import pytest

from schedule_engine.services.combination_searcher import CombinationSearcher, combination_signature
from schedule_engine.services.overlap_detector import has_internal_overlap


def _title_sets(result):
    return [frozenset(c.titles) for c in result]


class TestCombinationSearch:

    def test_two_maximal_combinations(self, scenario_pool):
        result = CombinationSearcher().search(scenario_pool, 5)

        assert set(_title_sets(result)) == {frozenset({"A", "C"}), frozenset({"B", "C"})}
        assert len(result) == 2
        assert not result.exhausted
        assert result.stop_reason is None

    def test_every_combination_is_overlap_free(self, make_block):
        pool = [
            make_block(f"S{i}", [day], f"{9 + i % 3:02d}:00", f"{10 + i % 3:02d}:30")
            for i, day in enumerate(["MON", "MON", "MON", "TUE", "TUE", "WED", "WED", "WED"])
        ]
        result = CombinationSearcher().search(pool, 20)

        assert len(result) > 0
        for combination in result:
            assert not has_internal_overlap(combination.blocks)

    def test_sorted_by_size_descending(self, make_block):
        pool = [
            make_block("Long", ["MON"], "09:00", "12:00"),
            make_block("Early", ["MON"], "09:00", "10:00"),
            make_block("Mid", ["MON"], "10:00", "11:00"),
            make_block("Late", ["MON"], "11:00", "12:00"),
        ]
        result = CombinationSearcher().search(pool, 5)

        sizes = [c.size for c in result]
        assert sizes == sorted(sizes, reverse=True)
        assert _title_sets(result)[0] == frozenset({"Early", "Mid", "Late"})
        assert frozenset({"Long"}) in _title_sets(result)

    def test_max_results_truncates(self, make_block):
        pool = [make_block(f"Slot{i}", ["MON"], "09:00", "10:00") for i in range(6)]
        result = CombinationSearcher().search(pool, 3)
        assert len(result) == 3
        assert all(c.size == 1 for c in result)

    def test_duplicates_are_collapsed(self, make_block):
        pool = [
            make_block("Math", ["MON"], "09:00", "10:00"),
            make_block("Math", ["MON"], "09:00", "10:00"),
            make_block("Art", ["TUE"], "09:00", "10:00"),
        ]
        result = CombinationSearcher().search(pool, 5)
        assert len(result) == 1
        assert sorted(result[0].titles) == ["Art", "Math"]

    def test_empty_pool(self):
        result = CombinationSearcher().search([], 5)
        assert len(result) == 0
        assert not result.exhausted


class TestSearchCaps:

    @pytest.mark.slow
    def test_iteration_cap_stops_search(self, make_block):
        days = ["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]
        pool = [make_block(f"B{i}", [days[i % 7]], f"{8 + i // 7:02d}:00", f"{9 + i // 7:02d}:00") for i in range(21)]
        searcher = CombinationSearcher(max_iterations=50, results_multiplier=1000)
        result = searcher.search(pool, 5)

        assert result.exhausted
        assert result.stop_reason == "iteration_cap"
        assert result.iterations == 50
        assert len(result) > 0
        for combination in result:
            assert not has_internal_overlap(combination.blocks)

    def test_result_cap_stops_search(self, make_block):
        pool = [make_block(f"B{i}", ["MON"], f"{8 + i:02d}:00", f"{9 + i:02d}:00") for i in range(8)]
        result = CombinationSearcher(results_multiplier=1).search(pool, 2)

        assert result.exhausted
        assert result.stop_reason == "result_cap"
        assert result.recorded == 2
        assert len(result) <= 2

    def test_zero_iterations_is_respected(self, scenario_pool):
        searcher = CombinationSearcher(max_iterations=0)
        result = searcher.search(scenario_pool, 5)

        assert searcher.max_iterations == 0
        assert result.stop_reason == "iteration_cap"
        assert len(result) == 0

    def test_to_dict(self, scenario_pool):
        data = CombinationSearcher().search(scenario_pool, 5).to_dict()
        assert data["exhausted"] is False
        assert len(data["combinations"]) == 2
        assert data["combinations"][0]["size"] == 2


class TestSignature:

    def test_signature_is_order_independent(self, scenario_pool):
        a, _, c = scenario_pool
        assert combination_signature([a, c]) == combination_signature([c, a])
