"""
Modelos de resultados del motor de horarios.

Este modulo define las estructuras devueltas por la busqueda de
combinaciones, el optimizador por categorias y el recalculador diario.
"""

from dataclasses import dataclass, field
from datetime import date as Date
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.time_utils import is_valid_time, time_to_minutes
from .time_block import Combination, Location, TimeBlock
from .travel import TravelMode


# =============================================================================
# Busqueda de combinaciones
# =============================================================================

@dataclass
class SearchResult:
    """
    Resultado de CombinationSearcher.search.

    Se comporta como una lista de Combination; exhausted / stop_reason indican
    si la busqueda se corto por algun limite (no es un error).
    """
    combinations: List[Combination] = field(default_factory=list)
    iterations: int = 0
    recorded: int = 0
    exhausted: bool = False
    stop_reason: Optional[str] = None

    def __iter__(self) -> Iterator[Combination]:
        return iter(self.combinations)

    def __len__(self) -> int:
        return len(self.combinations)

    def __getitem__(self, index):
        return self.combinations[index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "combinations": [c.to_dict() for c in self.combinations],
            "iterations": self.iterations,
            "recorded": self.recorded,
            "exhausted": self.exhausted,
            "stop_reason": self.stop_reason,
        }


# =============================================================================
# Optimizador por categorias
# =============================================================================

class PinConflict(BaseModel):
    """Bloques del pool desplazados por un bloque fijado."""

    pinned: TimeBlock
    conflicting: List[TimeBlock] = Field(default_factory=list)


class PinConflictCheck(BaseModel):
    """Resultado de comprobar un nuevo bloque fijado contra los existentes."""

    has_conflict: bool
    conflicts: List[TimeBlock] = Field(default_factory=list)


class OptimizationStats(BaseModel):
    input: int = Field(0, description="Candidatos recibidos en el pool")
    total: int = Field(0, description="Bloques seleccionados")
    fixed: int = Field(0, description="Bloques fijados incluidos")
    removed: int = Field(0, description="Candidatos eliminados por choque con fijados")
    backfilled: int = Field(0, description="Candidatos repuestos desde el pool completo")
    groups: int = Field(0, description="Grupos de origen procesados")


class SelectionLogEntry(BaseModel):
    source_group_id: str
    source_title: str = ""
    group_type: str
    category: str
    priority: int
    selected: Optional[str] = None
    count: int = 0


class OptimizationResult(BaseModel):
    """Seleccion final del optimizador por categorias."""

    selected: List[TimeBlock] = Field(default_factory=list)
    stats: OptimizationStats = Field(default_factory=OptimizationStats)
    pin_conflicts: List[PinConflict] = Field(default_factory=list)
    selection_log: List[SelectionLogEntry] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "selected": [b.model_dump(mode="json") for b in self.selected],
            "stats": self.stats.model_dump(),
            "pin_conflicts": [
                {
                    "pinned": c.pinned.describe(),
                    "conflicting": [b.describe() for b in c.conflicting],
                }
                for c in self.pin_conflicts
            ],
        }


# =============================================================================
# Simulacion diaria y validacion de ubicacion
# =============================================================================

class SimulatedBlock(BaseModel):
    """Un paso de la simulacion del dia."""

    block: TimeBlock
    travel_time_before: int = Field(0, ge=0, description="Minutos de viaje desde la ubicacion anterior")
    actual_start_time: str = Field(..., description="Inicio real (HH:MM)")
    previous_location: Optional[Location] = None


class DaySimulation(BaseModel):
    """Secuencia ordenada de un dia; efimera, no se persiste directamente."""

    date: Optional[Date] = None
    mode: TravelMode = TravelMode.TRANSIT
    base_location: Optional[Location] = None
    entries: List[SimulatedBlock] = Field(default_factory=list)

    @property
    def total_travel_minutes(self) -> int:
        return sum(e.travel_time_before for e in self.entries)

    @property
    def blocks(self) -> List[TimeBlock]:
        return [e.block for e in self.entries]

    def index_of(self, block_id: str) -> int:
        for i, entry in enumerate(self.entries):
            if entry.block.id == block_id:
                return i
        return -1

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat() if self.date else None,
            "mode": self.mode.value,
            "recalculated_count": len(self.entries),
            "total_travel_minutes": self.total_travel_minutes,
            "slots": [
                {
                    "block_id": e.block.id,
                    "title": e.block.title,
                    "original_start_time": e.block.original_start_time or e.block.start_time,
                    "start_time": e.block.start_time,
                    "end_time": e.block.end_time,
                    "actual_start_time": e.actual_start_time,
                    "travel_time_before": e.travel_time_before,
                    "previous_location": e.previous_location.describe() if e.previous_location else None,
                }
                for e in self.entries
            ],
        }


class BlockedWindow(BaseModel):
    """Franja prohibida configurada (p. ej. horario de descanso)."""

    start_time: str
    end_time: str
    label: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, v):
        if not is_valid_time(v):
            raise ValueError(f"Hora invalida: {v!r}")
        return v

    @field_validator("end_time")
    @classmethod
    def validate_end_time(cls, v, info):
        values = info.data
        if "start_time" in values and time_to_minutes(v) <= time_to_minutes(values["start_time"]):
            raise ValueError("end_time debe ser posterior a start_time")
        return v


class PlacementReason(str, Enum):
    ALL_CHECKS_PASSED = "all_checks_passed"
    BLOCKED_TIME_CONFLICT = "blocked_time_conflict"
    PREVIOUS_SLOT_CONFLICT = "previous_slot_conflict"
    NEXT_SLOT_CONFLICT = "next_slot_conflict"


class PlacementResult(BaseModel):
    """Resultado de validar la ubicacion de un bloque nuevo."""

    valid: bool
    reason: PlacementReason
    details: Dict[str, Any] = Field(default_factory=dict)
    simulation: Optional[DaySimulation] = None

    def to_dict(self) -> dict:
        return {"valid": self.valid, "reason": self.reason.value, "details": self.details}


class DateRecalculation(BaseModel):
    date: Date
    success: bool
    recalculated_count: int = 0
    simulation: Optional[DaySimulation] = None
    error: Optional[str] = None


class MultiDateRecalculation(BaseModel):
    total_dates: int
    total_recalculated: int
    results: List[DateRecalculation] = Field(default_factory=list)


# =============================================================================
# Entrada del extractor
# =============================================================================

class RejectedRecord(BaseModel):
    """Registro crudo descartado antes de entrar al motor."""

    index: int
    record: Dict[str, Any] = Field(default_factory=dict)
    reason: str
