from .time_utils import (
    DAY_ORDER,
    MINUTES_PER_DAY,
    add_minutes,
    extract_weekly_frequency,
    is_time_in_range,
    is_valid_time,
    minutes_to_time,
    normalize_day,
    normalize_days,
    strip_frequency,
    subtract_minutes,
    time_to_minutes,
    weekday_code,
)

__all__ = [
    "DAY_ORDER",
    "MINUTES_PER_DAY",
    "add_minutes",
    "extract_weekly_frequency",
    "is_time_in_range",
    "is_valid_time",
    "minutes_to_time",
    "normalize_day",
    "normalize_days",
    "strip_frequency",
    "subtract_minutes",
    "time_to_minutes",
    "weekday_code",
]
