"""
Deteccion de solapamientos entre bloques de tiempo.

Dos bloques se solapan si comparten al menos un dia aplicable y sus
intervalos en minutos se intersectan (semantica semiabierta).
"""

from typing import Iterable, List, Sequence, Set, Tuple

from ..models.time_block import TimeBlock
from ..utils.time_utils import weekday_code


def shared_days(a: TimeBlock, b: TimeBlock) -> Set[str]:
    """
    Dias aplicables comunes a dos bloques.

    - ambos recurrentes: interseccion de dias
    - ambos puntuales: la fecha, si coincide
    - mixto: el dia de la fecha si el recurrente lo incluye
    """
    if a.specific_date is not None and b.specific_date is not None:
        if a.specific_date == b.specific_date:
            return {weekday_code(a.specific_date)}
        return set()
    if a.specific_date is not None:
        day = weekday_code(a.specific_date)
        return {day} if day in b.day_codes else set()
    if b.specific_date is not None:
        day = weekday_code(b.specific_date)
        return {day} if day in a.day_codes else set()
    return set(a.day_codes) & set(b.day_codes)


def intervals_intersect(start1: int, end1: int, start2: int, end2: int) -> bool:
    return start1 < end2 and start2 < end1


def overlaps(a: TimeBlock, b: TimeBlock) -> bool:
    """True si los bloques comparten dia y sus horarios se intersectan."""
    if not shared_days(a, b):
        return False
    return intervals_intersect(a.start_minutes, a.end_minutes, b.start_minutes, b.end_minutes)


def overlaps_any(block: TimeBlock, others: Iterable[TimeBlock]) -> bool:
    return any(overlaps(block, other) for other in others)


def group_overlaps(blocks: Iterable[TimeBlock], others: Sequence[TimeBlock]) -> bool:
    """True si algun bloque del grupo choca con alguno de `others`."""
    return any(overlaps_any(block, others) for block in blocks)


def find_overlapping_pairs(blocks: Sequence[TimeBlock]) -> List[Tuple[TimeBlock, TimeBlock]]:
    pairs = []
    for i in range(len(blocks)):
        for j in range(i + 1, len(blocks)):
            if overlaps(blocks[i], blocks[j]):
                pairs.append((blocks[i], blocks[j]))
    return pairs


def has_internal_overlap(blocks: Sequence[TimeBlock]) -> bool:
    for i in range(len(blocks)):
        for j in range(i + 1, len(blocks)):
            if overlaps(blocks[i], blocks[j]):
                return True
    return False
