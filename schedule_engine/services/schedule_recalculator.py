"""
Recalculo secuencial de un dia considerando tiempos de viaje.

Los bloques se recorren por inicio semantico ascendente partiendo de la
ubicacion base. Para cada bloque con ubicacion se calcula el viaje desde la
ubicacion anterior y su inicio real (inicio semantico - viaje, minimo 00:00).
start_time / end_time nunca se modifican, por lo que repetir el recalculo da
el mismo resultado.
"""

import asyncio
import logging
from datetime import date
from typing import List, Optional, Sequence

from ..config.travel import travel_config
from ..models.results import (
    BlockedWindow,
    DateRecalculation,
    DaySimulation,
    MultiDateRecalculation,
    PlacementReason,
    PlacementResult,
    SimulatedBlock,
)
from ..models.time_block import Location, TimeBlock
from ..models.travel import TravelMode
from ..utils.time_utils import is_time_in_range, subtract_minutes, time_to_minutes
from .travel_time_engine import TravelTimeEngine, get_travel_time_engine

logger = logging.getLogger(__name__)


def blocks_for_date(blocks: Sequence[TimeBlock], target: date) -> List[TimeBlock]:
    """
    Bloques que aplican en una fecha.

    Los bloques puntuales de esa fecha reemplazan a los recurrentes del mismo
    origen.
    """
    dated = [b for b in blocks if b.specific_date == target]
    dated_sources = {b.source_group_id for b in dated}
    recurring = [
        b for b in blocks
        if b.specific_date is None
        and b.applies_on(target)
        and b.source_group_id not in dated_sources
    ]
    return sorted(dated + recurring, key=lambda b: b.start_minutes)


def _find_index(blocks: Sequence[TimeBlock], block_id: str) -> int:
    for i, block in enumerate(blocks):
        if block.id == block_id:
            return i
    raise KeyError(block_id)


class ScheduleRecalculator:
    """Simulacion de un dia y validacion de cambios estructurales."""

    def __init__(self, engine: Optional[TravelTimeEngine] = None):
        self._engine = engine

    @property
    def engine(self) -> TravelTimeEngine:
        if self._engine is None:
            self._engine = get_travel_time_engine()
        return self._engine

    async def recalculate_day(
        self,
        blocks: Sequence[TimeBlock],
        base_location: Optional[Location],
        mode=None,
        date: Optional[date] = None,
    ) -> DaySimulation:
        """
        Recalcular el inicio real de cada bloque del dia.

        Args:
            blocks: Bloques del dia (no se modifican)
            base_location: Ubicacion de partida (p. ej. casa)
            mode: Modo de transporte
            date: Fecha simulada (informativa)

        Returns:
            DaySimulation con copias de los bloques
        """
        mode = TravelMode(mode or travel_config.DEFAULT_MODE)
        ordered = sorted(blocks, key=lambda b: b.start_minutes)

        cursor = base_location
        entries: List[SimulatedBlock] = []
        for block in ordered:
            semantic_start = block.semantic_start

            if block.location is None or mode == TravelMode.NORMAL:
                updated = block.model_copy(update={
                    "actual_start_time": semantic_start,
                    "adjusted_for_travel_time": False,
                })
                entries.append(SimulatedBlock(
                    block=updated,
                    travel_time_before=0,
                    actual_start_time=semantic_start,
                    previous_location=cursor,
                ))
                if block.location is not None:
                    cursor = block.location
                continue

            travel = await self.engine.travel_minutes(cursor, block.location, mode)
            actual_start = subtract_minutes(semantic_start, travel)

            update = {"actual_start_time": actual_start, "adjusted_for_travel_time": True}
            if block.original_start_time is None:
                update["original_start_time"] = block.start_time
                update["original_end_time"] = block.end_time
            updated = block.model_copy(update=update)

            entries.append(SimulatedBlock(
                block=updated,
                travel_time_before=travel,
                actual_start_time=actual_start,
                previous_location=cursor,
            ))
            logger.debug(f"[Recalc] {block.title}: {semantic_start} -> {actual_start} (viaje {travel} min)")
            cursor = block.location

        simulation = DaySimulation(date=date, mode=mode, base_location=base_location, entries=entries)
        logger.info(
            f"[Recalc] {len(entries)} bloques recalculados"
            f"{' para ' + date.isoformat() if date else ''}, viaje total {simulation.total_travel_minutes} min"
        )
        return simulation

    async def validate_placement(
        self,
        day_blocks: Sequence[TimeBlock],
        new_block: TimeBlock,
        base_location: Optional[Location],
        mode=None,
        blocked_windows: Sequence[BlockedWindow] = (),
    ) -> PlacementResult:
        """
        Validar si un bloque nuevo cabe en el dia considerando el viaje.

        Comprobaciones, en orden: franja prohibida, bloque anterior, bloque
        siguiente.
        """
        simulation = await self.recalculate_day(list(day_blocks) + [new_block], base_location, mode)
        index = simulation.index_of(new_block.id)
        entry = simulation.entries[index]
        actual_start = entry.actual_start_time

        for window in blocked_windows:
            if is_time_in_range(actual_start, window.start_time, window.end_time):
                logger.info(f"[Recalc] {new_block.title}: inicio real {actual_start} en franja prohibida")
                return PlacementResult(
                    valid=False,
                    reason=PlacementReason.BLOCKED_TIME_CONFLICT,
                    details={
                        "actual_start_time": actual_start,
                        "travel_time_before": entry.travel_time_before,
                        "blocked_window": window.model_dump(),
                    },
                    simulation=simulation,
                )

        if index > 0:
            previous = simulation.entries[index - 1].block
            if time_to_minutes(actual_start) < previous.end_minutes:
                return PlacementResult(
                    valid=False,
                    reason=PlacementReason.PREVIOUS_SLOT_CONFLICT,
                    details={
                        "actual_start_time": actual_start,
                        "travel_time_before": entry.travel_time_before,
                        "previous_block_id": previous.id,
                        "previous_end_time": previous.semantic_end,
                    },
                    simulation=simulation,
                )

        if index < len(simulation.entries) - 1:
            following = simulation.entries[index + 1]
            next_actual_start = following.actual_start_time
            if new_block.end_minutes > time_to_minutes(next_actual_start):
                return PlacementResult(
                    valid=False,
                    reason=PlacementReason.NEXT_SLOT_CONFLICT,
                    details={
                        "end_time": new_block.semantic_end,
                        "next_block_id": following.block.id,
                        "next_actual_start_time": next_actual_start,
                        "next_travel_time_before": following.travel_time_before,
                    },
                    simulation=simulation,
                )

        return PlacementResult(
            valid=True,
            reason=PlacementReason.ALL_CHECKS_PASSED,
            details={"travel_time_before": entry.travel_time_before, "actual_start_time": actual_start},
            simulation=simulation,
        )

    # ------------------------------------------------------------------
    # Cambios estructurales
    # ------------------------------------------------------------------

    async def insert_block(
        self,
        day_blocks: Sequence[TimeBlock],
        new_block: TimeBlock,
        base_location: Optional[Location],
        mode=None,
        date: Optional[date] = None,
    ) -> DaySimulation:
        return await self.recalculate_day(list(day_blocks) + [new_block], base_location, mode, date)

    async def remove_block(
        self,
        day_blocks: Sequence[TimeBlock],
        block_id: str,
        base_location: Optional[Location],
        mode=None,
        date: Optional[date] = None,
    ) -> DaySimulation:
        """Quitar un bloque y recalcular. KeyError si el id no existe."""
        blocks = list(day_blocks)
        del blocks[_find_index(blocks, block_id)]
        return await self.recalculate_day(blocks, base_location, mode, date)

    async def swap_blocks(
        self,
        day_blocks: Sequence[TimeBlock],
        first_id: str,
        second_id: str,
        base_location: Optional[Location],
        mode=None,
        date: Optional[date] = None,
    ) -> DaySimulation:
        """
        Intercambiar los horarios de dos bloques.

        Cada bloque conserva su ubicacion, asi que la cadena de viajes se
        recalcula. KeyError si algun id no existe.
        """
        blocks = list(day_blocks)
        i = _find_index(blocks, first_id)
        j = _find_index(blocks, second_id)
        first, second = blocks[i], blocks[j]

        blocks[i] = self._move_to(first, second.semantic_start, second.semantic_end)
        blocks[j] = self._move_to(second, first.semantic_start, first.semantic_end)
        logger.info(f"[Recalc] Intercambio {first.title} <-> {second.title}")
        return await self.recalculate_day(blocks, base_location, mode, date)

    @staticmethod
    def _move_to(block: TimeBlock, start_time: str, end_time: str) -> TimeBlock:
        return block.model_copy(update={
            "start_time": start_time,
            "end_time": end_time,
            "original_start_time": None,
            "original_end_time": None,
            "actual_start_time": None,
            "adjusted_for_travel_time": False,
        })

    # ------------------------------------------------------------------
    # Varias fechas
    # ------------------------------------------------------------------

    async def recalculate_multiple_dates(
        self,
        blocks: Sequence[TimeBlock],
        dates: Sequence[date],
        base_location: Optional[Location],
        mode=None,
    ) -> MultiDateRecalculation:
        """Recalcular cada fecha por separado; un fallo no detiene al resto."""

        async def recalculate_one(target: date) -> DateRecalculation:
            try:
                simulation = await self.recalculate_day(blocks_for_date(blocks, target), base_location, mode, target)
                return DateRecalculation(
                    date=target,
                    success=True,
                    recalculated_count=len(simulation.entries),
                    simulation=simulation,
                )
            except Exception as e:
                logger.error(f"[Recalc] Error recalculando {target.isoformat()}: {e}")
                return DateRecalculation(date=target, success=False, error=str(e))

        results = await asyncio.gather(*(recalculate_one(d) for d in dates))
        return MultiDateRecalculation(
            total_dates=len(dates),
            total_recalculated=sum(r.recalculated_count for r in results),
            results=list(results),
        )
