"""
Pytest configuration and shared fixtures for schedule_engine tests.
"""
import pytest
from typing import Callable, List
from unittest.mock import AsyncMock, MagicMock

from schedule_engine.models import Coordinates, Location, ProviderResponse, SourceGroup, TimeBlock
from schedule_engine.services.distance_provider import DistanceProvider, ProviderError
from schedule_engine.services.travel_time_cache import InMemoryTravelTimeCache
from schedule_engine.services.travel_time_engine import TravelTimeEngine


# ============================================================
# FIXTURES FOR BLOCKS
# ============================================================

@pytest.fixture
def make_block() -> Callable[..., TimeBlock]:
    """Factory for TimeBlocks with sensible defaults."""
    def _make(title="Block", days=None, start="09:00", end="10:00", **kwargs) -> TimeBlock:
        if days is None:
            days = () if "specific_date" in kwargs else ("MON",)
        return TimeBlock(title=title, days=list(days), start_time=start, end_time=end, **kwargs)
    return _make


@pytest.fixture
def scenario_pool(make_block) -> List[TimeBlock]:
    """A Mon 09-10, B Mon 09:30-10:30, C Tue 09-10."""
    return [
        make_block("A", ["MON"], "09:00", "10:00"),
        make_block("B", ["MON"], "09:30", "10:30"),
        make_block("C", ["TUE"], "09:00", "10:00"),
    ]


@pytest.fixture
def dance_group(make_block) -> SourceGroup:
    """Exclusive dance academy with a 3x and a 5x weekly variant."""
    return SourceGroup(
        id="dance",
        title="Dance Studio",
        blocks=[
            make_block("Dance 3x/week", ["MON", "WED", "FRI"], "17:00", "18:00", source_group_id="dance"),
            make_block("Dance 5x/week", ["MON", "TUE", "WED", "THU", "FRI"], "17:00", "18:00", source_group_id="dance"),
        ],
    )


# ============================================================
# FIXTURES FOR LOCATIONS
# ============================================================

@pytest.fixture
def home() -> Location:
    return Location(kind="coordinates", coordinates=Coordinates(lat=37.5665, lng=126.9780), label="Home")


@pytest.fixture
def academy() -> Location:
    # ~1 km north of home
    return Location(kind="coordinates", coordinates=Coordinates(lat=37.5755, lng=126.9780), label="Academy")


@pytest.fixture
def gym() -> Location:
    return Location(address="Seoul Gym, Mapo-gu", label="Gym")


# ============================================================
# FIXTURES FOR TRAVEL
# ============================================================

@pytest.fixture
def memory_cache() -> InMemoryTravelTimeCache:
    return InMemoryTravelTimeCache(max_size=None, ttl_seconds=None)


def _provider(**fetch_kwargs) -> MagicMock:
    provider = MagicMock(spec=DistanceProvider)
    provider.fetch_duration = AsyncMock(**fetch_kwargs)
    provider.close = AsyncMock()
    return provider


@pytest.fixture
def ok_provider() -> MagicMock:
    """Provider that always answers 25 minutes."""
    return _provider(return_value=ProviderResponse(status="OK", duration_seconds=1500, distance_meters=4000))


@pytest.fixture
def failing_provider() -> MagicMock:
    """Provider that is unreachable."""
    return _provider(side_effect=ProviderError("unreachable"))


@pytest.fixture
def engine(memory_cache, ok_provider) -> TravelTimeEngine:
    return TravelTimeEngine(cache=memory_cache, provider=ok_provider)


@pytest.fixture
def offline_engine(memory_cache, failing_provider) -> TravelTimeEngine:
    return TravelTimeEngine(cache=memory_cache, provider=failing_provider)
