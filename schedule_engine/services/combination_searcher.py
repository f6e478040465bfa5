"""
Busqueda exhaustiva con poda de combinaciones sin solapamientos.

Recorre el pool en profundidad, extendiendo siempre desde el indice actual en
adelante. Los limites (iteraciones, resultados acumulados y plazo opcional)
cortan la busqueda y se devuelve lo encontrado hasta ese momento.
"""

import logging
import time
from typing import List, Optional, Sequence

from ..config.search import search_config
from ..models.results import SearchResult
from ..models.time_block import Combination, TimeBlock
from .overlap_detector import overlaps, overlaps_any

logger = logging.getLogger(__name__)


def combination_signature(blocks: Sequence[TimeBlock]) -> str:
    """Firma por contenido: titulo, inicio y dias (o fecha), ordenados."""
    parts = []
    for block in blocks:
        when = block.specific_date.isoformat() if block.specific_date else ",".join(block.day_codes)
        parts.append(f"{block.title}_{block.semantic_start}_{when}")
    return "|".join(sorted(parts))


class _SearchLimitReached(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class CombinationSearcher:
    """
    Genera combinaciones maximales sin solapamientos.

    Garantiza que cada combinacion devuelta no tiene solapamientos; no
    garantiza el optimo global cuando se alcanza algun limite.
    """

    def __init__(
        self,
        max_iterations: Optional[int] = None,
        results_multiplier: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
    ):
        self.max_iterations = max_iterations if max_iterations is not None else search_config.MAX_ITERATIONS
        self.results_multiplier = results_multiplier if results_multiplier is not None else search_config.RESULTS_MULTIPLIER
        self.deadline_seconds = deadline_seconds if deadline_seconds is not None else search_config.DEADLINE_SECONDS

    def search(self, pool: Sequence[TimeBlock], max_results: Optional[int] = None) -> SearchResult:
        """
        Buscar combinaciones sin solapamientos.

        Args:
            pool: Bloques candidatos
            max_results: Numero maximo de combinaciones a devolver

        Returns:
            SearchResult ordenado por tamano descendente
        """
        max_results = max_results or search_config.DEFAULT_MAX_RESULTS
        pool = list(pool)
        result_cap = max_results * self.results_multiplier
        deadline = time.monotonic() + self.deadline_seconds if self.deadline_seconds else None

        recorded: List[List[TimeBlock]] = []
        iterations = 0

        def extend(current: List[TimeBlock], start: int) -> None:
            nonlocal iterations
            iterations += 1
            if iterations > self.max_iterations:
                raise _SearchLimitReached("iteration_cap")
            if deadline is not None and time.monotonic() > deadline:
                raise _SearchLimitReached("deadline")
            if len(recorded) >= result_cap:
                raise _SearchLimitReached("result_cap")

            if current:
                recorded.append(list(current))

            for i in range(start, len(pool)):
                candidate = pool[i]
                if overlaps_any(candidate, current):
                    continue
                current.append(candidate)
                extend(current, i + 1)
                current.pop()

        stop_reason = None
        try:
            extend([], 0)
        except _SearchLimitReached as e:
            stop_reason = e.reason
            logger.info(
                f"[Search] Limite alcanzado ({stop_reason}): "
                f"{iterations} iteraciones, {len(recorded)} combinaciones registradas"
            )

        combinations = self._post_process(recorded, pool, max_results, partial=stop_reason is not None)
        logger.debug(f"[Search] pool={len(pool)} -> {len(combinations)} combinaciones")

        return SearchResult(
            combinations=combinations,
            iterations=min(iterations, self.max_iterations),
            recorded=len(recorded),
            exhausted=stop_reason is not None,
            stop_reason=stop_reason,
        )

    def _post_process(
        self,
        recorded: List[List[TimeBlock]],
        pool: Sequence[TimeBlock],
        max_results: int,
        partial: bool = False,
    ) -> List[Combination]:
        seen = set()
        unique: List[Combination] = []
        leftovers: List[List[TimeBlock]] = []
        for blocks in recorded:
            if not self._is_maximal(blocks, pool):
                leftovers.append(blocks)
                continue
            self._add_unique(blocks, seen, unique)

        # Busqueda cortada: se completa con las combinaciones parciales
        if partial and len(unique) < max_results:
            for blocks in leftovers:
                self._add_unique(blocks, seen, unique)

        unique.sort(key=lambda c: c.size, reverse=True)
        return unique[:max_results]

    @staticmethod
    def _add_unique(blocks: List[TimeBlock], seen: set, unique: List[Combination]) -> None:
        signature = combination_signature(blocks)
        if signature in seen:
            return
        seen.add(signature)
        unique.append(Combination(blocks=blocks, signature=signature))

    @staticmethod
    def _is_maximal(blocks: List[TimeBlock], pool: Sequence[TimeBlock]) -> bool:
        members = {id(b) for b in blocks}
        for candidate in pool:
            if id(candidate) in members:
                continue
            if not any(overlaps(candidate, b) for b in blocks):
                return False
        return True


def search_combinations(pool: Sequence[TimeBlock], max_results: Optional[int] = None) -> SearchResult:
    return CombinationSearcher().search(pool, max_results)
