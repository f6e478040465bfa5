"""
Modelos Pydantic para bloques de tiempo y ubicaciones.

Un TimeBlock es un intervalo candidato o confirmado de actividad, recurrente
(dias de la semana) o puntual (fecha concreta).
"""

from datetime import date
from enum import Enum
from typing import List, Literal, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.time_utils import (
    DAY_ORDER,
    is_valid_time,
    normalize_day,
    time_to_minutes,
    weekday_code,
)


# Origen asignado a los bloques sin documento declarado
DEFAULT_SOURCE_GROUP = "default"


class DayCode(str, Enum):
    """Dias de la semana normalizados (lunes primero)."""
    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"


class Coordinates(BaseModel):
    """Coordenadas geograficas (latitud, longitud)."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitud en grados decimales")
    lng: float = Field(..., ge=-180, le=180, description="Longitud en grados decimales")


class Location(BaseModel):
    """
    Ubicacion asociada a un bloque. Inmutable: solo se usa como clave
    para consultar tiempos de viaje.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["address", "coordinates"] = Field("address", description="Tipo de ubicacion")
    address: Optional[str] = Field(None, description="Direccion textual")
    coordinates: Optional[Coordinates] = Field(None, description="Coordenadas (lat, lng)")
    label: Optional[str] = Field(None, description="Etiqueta legible")

    @model_validator(mode="after")
    def _check_lookup_key(self) -> "Location":
        if self.coordinates is None and not (self.address and self.address.strip()):
            raise ValueError("La ubicacion necesita direccion o coordenadas")
        if self.kind == "coordinates" and self.coordinates is None:
            raise ValueError("kind='coordinates' requiere coordenadas")
        return self

    def cache_key(self) -> str:
        """Clave de cache: coordenadas si existen, si no la direccion."""
        if self.coordinates is not None:
            return f"{self.coordinates.lat},{self.coordinates.lng}"
        return self.address.strip()

    def describe(self) -> str:
        return self.label or self.address or self.cache_key()


class TimeBlock(BaseModel):
    """
    Bloque de tiempo candidato o confirmado.

    Los campos actual_start_time / adjusted_for_travel_time / original_* se
    derivan del recalculo por tiempos de viaje; start_time y end_time son
    siempre los horarios semanticos (antes del viaje).
    """

    id: str = Field(default_factory=lambda: uuid4().hex[:12], description="ID unico del bloque")
    title: str = Field(..., min_length=1, description="Titulo de la actividad")
    category: Optional[str] = Field(None, description="Categoria sugerida por el extractor")
    priority: int = Field(5, ge=1, le=5, description="Prioridad (1 = mas protegido)")
    days: List[DayCode] = Field(default_factory=list, description="Dias recurrentes")
    specific_date: Optional[date] = Field(None, description="Fecha concreta (bloque puntual)")
    start_time: str = Field(..., description="Hora de inicio HH:MM")
    end_time: str = Field(..., description="Hora de termino HH:MM")
    source_group_id: str = Field(DEFAULT_SOURCE_GROUP, description="Documento de origen")
    location: Optional[Location] = Field(None, description="Ubicacion del bloque")
    is_fixed: bool = Field(False, description="Bloque fijado por el usuario")
    frequency: Optional[int] = Field(None, ge=1, le=7, description="Veces por semana")

    original_start_time: Optional[str] = Field(None, description="Inicio antes del primer ajuste")
    original_end_time: Optional[str] = Field(None, description="Termino antes del primer ajuste")
    actual_start_time: Optional[str] = Field(None, description="Inicio real incluyendo el viaje")
    adjusted_for_travel_time: bool = Field(False, description="Se aplico ajuste por viaje")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError("title no puede estar vacio")
        return v

    @field_validator("days", mode="before")
    @classmethod
    def validate_days(cls, v):
        if v is None:
            return []
        if isinstance(v, (str, int)):
            v = [v]
        codes = set()
        for raw in v:
            code = normalize_day(raw)
            if code is None:
                raise ValueError(f"Dia desconocido: {raw!r}")
            codes.add(code)
        return [day for day in DAY_ORDER if day in codes]

    @field_validator("start_time", "end_time", "original_start_time", "original_end_time", "actual_start_time")
    @classmethod
    def validate_time_format(cls, v):
        if v is None:
            return v
        if not is_valid_time(v):
            raise ValueError(f"Hora invalida: {v!r} (se espera HH:MM)")
        hours, minutes = v.strip().split(":")
        return f"{int(hours):02d}:{minutes}"

    @field_validator("end_time")
    @classmethod
    def validate_end_time(cls, v, info):
        values = info.data
        if "start_time" in values:
            if time_to_minutes(v) <= time_to_minutes(values["start_time"]):
                raise ValueError("end_time debe ser posterior a start_time")
        return v

    @model_validator(mode="after")
    def _check_schedule(self) -> "TimeBlock":
        if not self.days and self.specific_date is None:
            raise ValueError("El bloque necesita dias recurrentes o una fecha concreta")
        return self

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def semantic_start(self) -> str:
        """Inicio antes del viaje (el original si ya fue ajustado)."""
        return self.original_start_time or self.start_time

    @property
    def semantic_end(self) -> str:
        return self.original_end_time or self.end_time

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.semantic_start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.semantic_end)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    @property
    def day_codes(self) -> List[str]:
        return [d.value for d in self.days]

    def applicable_days(self) -> List[str]:
        """Dias en los que aplica el bloque (el de la fecha si es puntual)."""
        if self.specific_date is not None:
            return [weekday_code(self.specific_date)]
        return self.day_codes

    def applies_on(self, target: date) -> bool:
        if self.specific_date is not None:
            return self.specific_date == target
        return weekday_code(target) in self.day_codes

    def content_key(self) -> Tuple:
        """Identidad por contenido (titulo, horario, dias/fecha)."""
        return (
            self.title,
            self.semantic_start,
            self.semantic_end,
            tuple(self.day_codes),
            self.specific_date.isoformat() if self.specific_date else None,
        )

    def describe(self) -> str:
        when = self.specific_date.isoformat() if self.specific_date else ",".join(self.day_codes)
        return f"{self.title} ({when} {self.semantic_start}-{self.semantic_end})"


class SourceGroup(BaseModel):
    """Documento de origen (p. ej. una imagen de horario) con sus bloques."""

    id: str = Field(..., description="ID del grupo de origen")
    title: str = Field("", description="Titulo del documento de origen")
    blocks: List[TimeBlock] = Field(default_factory=list, description="Bloques extraidos")
    kind: Optional[Literal["indivisible", "exclusive"]] = Field(
        None, description="Forzar el tipo de grupo; si falta lo decide el clasificador"
    )


class Combination(BaseModel):
    """Subconjunto sin solapamientos del pool de candidatos."""

    blocks: List[TimeBlock] = Field(default_factory=list)
    signature: str = Field("", description="Firma de contenido para deduplicar")

    @property
    def size(self) -> int:
        return len(self.blocks)

    @property
    def titles(self) -> List[str]:
        return [b.title for b in self.blocks]

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "signature": self.signature,
            "blocks": [b.model_dump(mode="json") for b in self.blocks],
        }
