"""
Utilidades de tiempo y dias de la semana.

Los horarios se manejan como cadenas "HH:MM" (hora de pared) y se comparan
en minutos desde medianoche.
"""

import re
from datetime import date
from typing import Iterable, List, Optional, Union

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^(?:([01]?\d|2[0-3]):([0-5]\d)|24:00)$")

# Orden canonico: lunes primero
DAY_ORDER = ["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]

# Convencion 0 = domingo ... 6 = sabado (la que usan los extractores)
_SUNDAY_FIRST = ["SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"]

_DAY_ALIASES = {
    "MON": "MON", "MONDAY": "MON", "월": "MON", "월요일": "MON",
    "TUE": "TUE", "TUES": "TUE", "TUESDAY": "TUE", "화": "TUE", "화요일": "TUE",
    "WED": "WED", "WEDNESDAY": "WED", "수": "WED", "수요일": "WED",
    "THU": "THU", "THUR": "THU", "THURS": "THU", "THURSDAY": "THU", "목": "THU", "목요일": "THU",
    "FRI": "FRI", "FRIDAY": "FRI", "금": "FRI", "금요일": "FRI",
    "SAT": "SAT", "SATURDAY": "SAT", "토": "SAT", "토요일": "SAT",
    "SUN": "SUN", "SUNDAY": "SUN", "일": "SUN", "일요일": "SUN",
}

_WEEKLY_PATTERNS = [
    re.compile(r"주\s*(\d+)\s*회"),
    re.compile(r"(\d+)\s*x\s*/?\s*(?:a\s+)?(?:per\s+)?week", re.IGNORECASE),
    re.compile(r"(\d+)\s*times?\s*(?:a|per|/)\s*week", re.IGNORECASE),
    re.compile(r"(\d+)\s*/\s*week", re.IGNORECASE),
]


def is_valid_time(value: str) -> bool:
    """Indica si la cadena tiene formato HH:MM valido."""
    return isinstance(value, str) and bool(_TIME_PATTERN.match(value.strip()))


def time_to_minutes(value: str) -> int:
    """Convierte "HH:MM" a minutos desde medianoche."""
    hours, minutes = value.strip().split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    """Convierte minutos desde medianoche a "HH:MM" (acotado al dia)."""
    minutes = max(0, min(int(minutes), MINUTES_PER_DAY))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def subtract_minutes(value: str, minutes: int) -> str:
    """Resta minutos a un horario; nunca baja de 00:00."""
    return minutes_to_time(max(0, time_to_minutes(value) - minutes))


def add_minutes(value: str, minutes: int) -> str:
    return minutes_to_time(time_to_minutes(value) + minutes)


def is_time_in_range(value: str, range_start: str, range_end: str) -> bool:
    """Rango semiabierto [inicio, fin)."""
    minute = time_to_minutes(value)
    return time_to_minutes(range_start) <= minute < time_to_minutes(range_end)


def normalize_day(value: Union[str, int]) -> Optional[str]:
    """
    Normaliza un dia a su codigo de tres letras (MON..SUN).

    Acepta codigos y nombres en ingles, nombres coreanos y enteros con la
    convencion 0 = domingo. Devuelve None si no se reconoce.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        if 0 <= value <= 6:
            return _SUNDAY_FIRST[value]
        return None
    if hasattr(value, "value"):
        value = value.value
    key = str(value).strip().upper()
    return _DAY_ALIASES.get(key) or _DAY_ALIASES.get(str(value).strip())


def normalize_days(values: Iterable[Union[str, int]]) -> List[str]:
    """Normaliza, deduplica y ordena (lunes primero). Ignora valores desconocidos."""
    codes = {code for code in (normalize_day(v) for v in values) if code}
    return [day for day in DAY_ORDER if day in codes]


def weekday_code(value: date) -> str:
    """Codigo de dia para una fecha concreta."""
    return DAY_ORDER[value.weekday()]


def extract_weekly_frequency(title: Optional[str]) -> Optional[int]:
    """
    Extrae la frecuencia semanal de un titulo ("주3회", "3x/week", "3 times a week").
    """
    if not title:
        return None
    for pattern in _WEEKLY_PATTERNS:
        match = pattern.search(title)
        if match:
            count = int(match.group(1))
            if 1 <= count <= 7:
                return count
    return None


def strip_frequency(title: Optional[str]) -> str:
    """Titulo sin la marca de frecuencia, usado para agrupar variantes."""
    if not title:
        return ""
    stripped = title
    for pattern in _WEEKLY_PATTERNS:
        stripped = pattern.sub("", stripped)
    return re.sub(r"\s+", " ", stripped).strip(" -()")
