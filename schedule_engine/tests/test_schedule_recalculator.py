"""
Tests for the day recalculator: travel-adjusted start times, placement
validation and structural changes.
"""
import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock

from schedule_engine.models import BlockedWindow, PlacementReason, TravelMode
from schedule_engine.services.schedule_recalculator import ScheduleRecalculator, blocks_for_date
from schedule_engine.services.travel_time_engine import TravelTimeEngine


MONDAY = date(2024, 1, 8)
TUESDAY = date(2024, 1, 9)


@pytest.fixture
def fake_engine() -> MagicMock:
    """Engine that answers 20 minutes for every located hop."""
    engine = MagicMock(spec=TravelTimeEngine)
    engine.travel_minutes = AsyncMock(return_value=20)
    return engine


@pytest.fixture
def recalculator(fake_engine) -> ScheduleRecalculator:
    return ScheduleRecalculator(fake_engine)


# ============================================================
# RECALCULATE DAY
# ============================================================

class TestRecalculateDay:

    @pytest.mark.asyncio
    async def test_actual_start_is_idempotent(self, engine, ok_provider, make_block, home, gym):
        block = make_block("Swim", ["MON"], "14:00", "15:00", location=gym)
        recalculator = ScheduleRecalculator(engine)

        first = await recalculator.recalculate_day([block], home, TravelMode.TRANSIT)
        second = await recalculator.recalculate_day(first.blocks, home, TravelMode.TRANSIT)

        for simulation in (first, second):
            adjusted = simulation.blocks[0]
            assert simulation.entries[0].actual_start_time == "13:35"
            assert adjusted.actual_start_time == "13:35"
            assert adjusted.start_time == "14:00"
            assert adjusted.original_start_time == "14:00"
            assert adjusted.original_end_time == "15:00"
            assert adjusted.adjusted_for_travel_time
        assert ok_provider.fetch_duration.await_count == 1

    @pytest.mark.asyncio
    async def test_inputs_are_not_mutated(self, recalculator, make_block, home, gym):
        block = make_block("Swim", ["MON"], "14:00", "15:00", location=gym)
        await recalculator.recalculate_day([block], home)

        assert block.actual_start_time is None
        assert block.original_start_time is None
        assert not block.adjusted_for_travel_time

    @pytest.mark.asyncio
    async def test_actual_start_is_clamped_at_midnight(self, recalculator, make_block, home, gym):
        block = make_block("Early", ["MON"], "00:10", "01:00", location=gym)
        simulation = await recalculator.recalculate_day([block], home)
        assert simulation.entries[0].actual_start_time == "00:00"

    @pytest.mark.asyncio
    async def test_blocks_are_processed_in_start_order(self, recalculator, fake_engine, make_block, home, gym, academy):
        late = make_block("Late", ["MON"], "16:00", "17:00", location=gym)
        early = make_block("Early", ["MON"], "14:00", "15:00", location=academy)

        simulation = await recalculator.recalculate_day([late, early], home)

        assert [b.title for b in simulation.blocks] == ["Early", "Late"]
        hops = [call.args[:2] for call in fake_engine.travel_minutes.await_args_list]
        assert hops == [(home, academy), (academy, gym)]
        assert simulation.entries[1].previous_location == academy
        assert simulation.total_travel_minutes == 40

    @pytest.mark.asyncio
    async def test_location_less_block_keeps_cursor(self, recalculator, fake_engine, make_block, home, gym, academy):
        first = make_block("Piano", ["MON"], "13:00", "14:00", location=academy)
        online = make_block("Online class", ["MON"], "14:00", "15:00")
        last = make_block("Swim", ["MON"], "16:00", "17:00", location=gym)

        simulation = await recalculator.recalculate_day([first, online, last], home)

        entry = simulation.entries[1]
        assert entry.travel_time_before == 0
        assert entry.actual_start_time == "14:00"
        assert not entry.block.adjusted_for_travel_time
        assert fake_engine.travel_minutes.await_args_list[-1].args[:2] == (academy, gym)

    @pytest.mark.asyncio
    async def test_normal_mode_skips_travel(self, recalculator, fake_engine, make_block, home, gym):
        block = make_block("Swim", ["MON"], "14:00", "15:00", location=gym)
        simulation = await recalculator.recalculate_day([block], home, TravelMode.NORMAL)

        assert simulation.entries[0].actual_start_time == "14:00"
        assert simulation.entries[0].travel_time_before == 0
        fake_engine.travel_minutes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_to_dict(self, recalculator, make_block, home, gym):
        block = make_block("Swim", ["MON"], "14:00", "15:00", location=gym)
        data = (await recalculator.recalculate_day([block], home, date=MONDAY)).to_dict()

        assert data["date"] == "2024-01-08"
        assert data["slots"][0]["actual_start_time"] == "13:40"
        assert data["slots"][0]["original_start_time"] == "14:00"


# ============================================================
# PLACEMENT VALIDATION
# ============================================================

class TestValidatePlacement:

    @pytest.mark.asyncio
    async def test_all_checks_passed(self, recalculator, make_block, home, gym, academy):
        day = [make_block("Math", ["MON"], "09:00", "10:00", location=gym)]
        new = make_block("Piano", ["MON"], "11:00", "12:00", location=academy)

        result = await recalculator.validate_placement(day, new, home)

        assert result.valid
        assert result.reason == PlacementReason.ALL_CHECKS_PASSED
        assert result.details == {"travel_time_before": 20, "actual_start_time": "10:40"}

    @pytest.mark.asyncio
    async def test_blocked_window(self, recalculator, make_block, home, gym, academy):
        day = [make_block("Math", ["MON"], "09:00", "10:00", location=gym)]
        new = make_block("Piano", ["MON"], "11:00", "12:00", location=academy)
        lunch = BlockedWindow(start_time="10:30", end_time="11:00", label="rest")

        result = await recalculator.validate_placement(day, new, home, blocked_windows=[lunch])

        assert not result.valid
        assert result.reason == PlacementReason.BLOCKED_TIME_CONFLICT
        assert result.details["blocked_window"]["label"] == "rest"

    @pytest.mark.asyncio
    async def test_window_end_is_exclusive(self, recalculator, make_block, home, academy):
        new = make_block("Piano", ["MON"], "11:20", "12:00", location=academy)
        window = BlockedWindow(start_time="10:00", end_time="11:00")

        result = await recalculator.validate_placement([], new, home, blocked_windows=[window])
        assert result.valid

    @pytest.mark.asyncio
    async def test_previous_slot_conflict(self, recalculator, make_block, home, gym, academy):
        day = [make_block("Math", ["MON"], "09:00", "10:00", location=gym)]
        new = make_block("Piano", ["MON"], "10:10", "11:00", location=academy)

        result = await recalculator.validate_placement(day, new, home)

        assert not result.valid
        assert result.reason == PlacementReason.PREVIOUS_SLOT_CONFLICT
        assert result.details["actual_start_time"] == "09:50"

    @pytest.mark.asyncio
    async def test_next_slot_conflict(self, recalculator, make_block, home, gym, academy):
        day = [make_block("Swim", ["MON"], "12:00", "13:00", location=gym)]
        new = make_block("Piano", ["MON"], "11:00", "11:50", location=academy)

        result = await recalculator.validate_placement(day, new, home)

        assert not result.valid
        assert result.reason == PlacementReason.NEXT_SLOT_CONFLICT
        assert result.details["next_actual_start_time"] == "11:40"

    @pytest.mark.asyncio
    async def test_fits_exactly_before_next(self, recalculator, make_block, home, gym, academy):
        day = [make_block("Swim", ["MON"], "12:00", "13:00", location=gym)]
        new = make_block("Piano", ["MON"], "11:00", "11:40", location=academy)

        result = await recalculator.validate_placement(day, new, home)
        assert result.valid


# ============================================================
# STRUCTURAL CHANGES
# ============================================================

class TestStructuralChanges:

    @pytest.mark.asyncio
    async def test_insert_block(self, recalculator, make_block, home, gym, academy):
        day = [make_block("Swim", ["MON"], "16:00", "17:00", location=gym)]
        new = make_block("Piano", ["MON"], "14:00", "15:00", location=academy)

        simulation = await recalculator.insert_block(day, new, home)
        assert [b.title for b in simulation.blocks] == ["Piano", "Swim"]

    @pytest.mark.asyncio
    async def test_remove_block(self, recalculator, make_block, home, gym, academy):
        piano = make_block("Piano", ["MON"], "14:00", "15:00", location=academy)
        swim = make_block("Swim", ["MON"], "16:00", "17:00", location=gym)

        simulation = await recalculator.remove_block([piano, swim], piano.id, home)

        assert [b.title for b in simulation.blocks] == ["Swim"]
        assert simulation.entries[0].previous_location == home

    @pytest.mark.asyncio
    async def test_remove_unknown_block(self, recalculator, make_block, home):
        with pytest.raises(KeyError):
            await recalculator.remove_block([make_block("Piano")], "missing", home)

    @pytest.mark.asyncio
    async def test_swap_blocks(self, recalculator, fake_engine, make_block, home, gym, academy):
        math = make_block("Math", ["MON"], "09:00", "10:00", location=gym)
        piano = make_block("Piano", ["MON"], "11:00", "12:30", location=academy)

        simulation = await recalculator.swap_blocks([math, piano], math.id, piano.id, home)

        assert [b.title for b in simulation.blocks] == ["Piano", "Math"]
        swapped_math = simulation.blocks[1]
        assert (swapped_math.start_time, swapped_math.end_time) == ("11:00", "12:30")
        assert swapped_math.location == gym
        assert swapped_math.original_start_time == "11:00"
        hops = [call.args[:2] for call in fake_engine.travel_minutes.await_args_list]
        assert hops == [(home, academy), (academy, gym)]

    @pytest.mark.asyncio
    async def test_swap_unknown_block(self, recalculator, make_block, home):
        block = make_block("Piano")
        with pytest.raises(KeyError):
            await recalculator.swap_blocks([block], block.id, "missing", home)


# ============================================================
# MULTIPLE DATES
# ============================================================

class TestMultipleDates:

    def test_dated_block_overrides_recurring_of_same_source(self, make_block):
        weekly = make_block("Math", ["MON"], "09:00", "10:00", source_group_id="school")
        exam = make_block("Exam", start="10:00", end="11:00", specific_date=MONDAY, source_group_id="school")
        piano = make_block("Piano", ["MON"], "15:00", "16:00", source_group_id="piano")

        monday = blocks_for_date([weekly, exam, piano], MONDAY)
        next_monday = blocks_for_date([weekly, exam, piano], date(2024, 1, 15))

        assert [b.title for b in monday] == ["Exam", "Piano"]
        assert [b.title for b in next_monday] == ["Math", "Piano"]

    @pytest.mark.asyncio
    async def test_recalculate_multiple_dates(self, recalculator, make_block, home, gym, academy):
        blocks = [
            make_block("Math", ["MON"], "09:00", "10:00", location=gym),
            make_block("Piano", ["MON", "TUE"], "15:00", "16:00", location=academy),
        ]
        result = await recalculator.recalculate_multiple_dates(blocks, [MONDAY, TUESDAY], home)

        assert result.total_dates == 2
        assert result.total_recalculated == 3
        assert [r.success for r in result.results] == [True, True]
        assert [r.recalculated_count for r in result.results] == [2, 1]

    @pytest.mark.asyncio
    async def test_failure_is_reported_per_date(self, fake_engine, make_block, home, gym, academy):
        async def travel(origin, destination, mode=None):
            if destination == academy:
                raise RuntimeError("boom")
            return 20

        fake_engine.travel_minutes = AsyncMock(side_effect=travel)
        recalculator = ScheduleRecalculator(fake_engine)
        blocks = [
            make_block("Piano", ["MON"], "15:00", "16:00", location=academy),
            make_block("Swim", ["TUE"], "15:00", "16:00", location=gym),
        ]

        result = await recalculator.recalculate_multiple_dates(blocks, [MONDAY, TUESDAY], home)

        monday, tuesday = result.results
        assert not monday.success
        assert monday.error == "boom"
        assert tuesday.success
        assert result.total_recalculated == 1
