"""
Modelos para el calculo de tiempos de viaje.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TravelMode(str, Enum):
    """Modo de transporte. NORMAL desactiva el calculo de viaje."""
    NORMAL = "normal"
    DRIVING = "driving"
    TRANSIT = "transit"
    WALKING = "walking"
    BICYCLING = "bicycling"


# Modos que entiende el proveedor externo, en el orden de consulta del fallback
PROVIDER_MODES = (
    TravelMode.TRANSIT,
    TravelMode.DRIVING,
    TravelMode.BICYCLING,
    TravelMode.WALKING,
)


class TravelSource(str, Enum):
    """Origen del valor devuelto por el motor."""
    NONE = "none"
    CACHE = "cache"
    PROVIDER = "provider"
    CROSS_MODE = "cross_mode"
    GEOMETRY = "geometry"
    DEFAULT = "default"


class TravelCacheEntry(BaseModel):
    """Entrada de cache de tiempos de viaje."""

    origin_key: str = Field(..., description="Clave del origen")
    destination_key: str = Field(..., description="Clave del destino")
    mode: TravelMode = Field(..., description="Modo de transporte")
    minutes: int = Field(..., ge=0, description="Minutos de viaje")
    timestamp: float = Field(..., description="Timestamp de creacion")


class ProviderResponse(BaseModel):
    """Respuesta normalizada del proveedor de distancias."""

    status: str = Field(..., description="Estado: OK, ZERO_RESULTS, NOT_FOUND, ...")
    duration_seconds: Optional[float] = Field(None, ge=0)
    distance_meters: Optional[float] = Field(None, ge=0)

    @property
    def ok(self) -> bool:
        return self.status == "OK" and self.duration_seconds is not None


@dataclass
class TravelTimeResult:
    """Resultado detallado de una consulta de tiempo de viaje."""
    minutes: int
    source: TravelSource
    mode: TravelMode
    distance_km: Optional[float] = None

    @property
    def from_cache(self) -> bool:
        return self.source == TravelSource.CACHE

    @property
    def from_fallback(self) -> bool:
        return self.source in (TravelSource.CROSS_MODE, TravelSource.GEOMETRY, TravelSource.DEFAULT)
