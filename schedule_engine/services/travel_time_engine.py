"""
Motor de tiempos de viaje entre ubicaciones.

Cadena de resolucion para (origen, destino, modo):
1. Cache
2. Proveedor externo (Distance Matrix)
3. Misma ruta con otro modo desde la cache
4. Distancia de gran circulo / velocidad del modo, redondeada a 10 minutos
5. Valor por defecto (30 minutos)

Los llamadores nunca reciben excepciones del proveedor.
"""

import asyncio
import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from ..config.travel import travel_config
from ..models.time_block import Coordinates, Location
from ..models.travel import TravelMode, TravelSource, TravelTimeResult
from .distance_provider import DistanceProvider, GoogleDistanceMatrixProvider
from .travel_time_cache import TravelTimeCache, get_travel_cache

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371


def haversine_km(start: Coordinates, end: Coordinates) -> float:
    """Distancia Haversine en km."""
    lat1 = math.radians(start.lat)
    lat2 = math.radians(end.lat)
    dlat = math.radians(end.lat - start.lat)
    dlng = math.radians(end.lng - start.lng)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def round_up_to_step(minutes: float, step: int) -> int:
    """Redondear hacia arriba al multiplo de `step` (1 km en coche -> 10)."""
    if minutes <= 0:
        return 0
    return int(math.ceil(minutes / step) * step)


class TravelTimeEngine:
    """Calculo de tiempos de viaje con cache y fallbacks."""

    def __init__(
        self,
        cache: Optional[TravelTimeCache] = None,
        provider: Optional[DistanceProvider] = None,
        max_concurrent: Optional[int] = None,
        default_minutes: Optional[int] = None,
    ):
        self.cache = cache if cache is not None else get_travel_cache()
        self.provider = provider if provider is not None else GoogleDistanceMatrixProvider()
        self.default_minutes = default_minutes if default_minutes is not None else travel_config.DEFAULT_TRAVEL_MINUTES
        self._semaphore = asyncio.Semaphore(max_concurrent or travel_config.MAX_CONCURRENT_REQUESTS)
        # Un lock por ruta en curso; se libera cuando no quedan corrutinas esperando
        self._route_locks: Dict[str, asyncio.Lock] = {}
        self._route_waiters: Dict[str, int] = {}
        self._stats = {
            'requests': 0,
            'cache_hits': 0,
            'provider_successes': 0,
            'cross_mode_fallbacks': 0,
            'geometry_fallbacks': 0,
            'defaults': 0,
            'errors': 0,
        }

    async def travel_minutes(
        self,
        origin: Optional[Location],
        destination: Optional[Location],
        mode=None,
    ) -> int:
        """Minutos de viaje de origen a destino (siempre un entero >= 0)."""
        result = await self.get_travel_time(origin, destination, mode)
        return result.minutes

    async def get_travel_time(
        self,
        origin: Optional[Location],
        destination: Optional[Location],
        mode=None,
    ) -> TravelTimeResult:
        """Obtener tiempo de viaje con el origen del valor."""
        mode = TravelMode(mode or travel_config.DEFAULT_MODE)
        self._stats['requests'] += 1

        if origin is None or destination is None:
            logger.warning(f"[TravelEngine] Ubicacion ausente, usando {self.default_minutes} min por defecto")
            self._stats['defaults'] += 1
            return TravelTimeResult(minutes=self.default_minutes, source=TravelSource.DEFAULT, mode=mode)

        if mode == TravelMode.NORMAL:
            return TravelTimeResult(minutes=0, source=TravelSource.NONE, mode=mode)

        origin_key = origin.cache_key()
        destination_key = destination.cache_key()
        if origin_key == destination_key:
            return TravelTimeResult(minutes=0, source=TravelSource.NONE, mode=mode)

        cached = self.cache.get(origin_key, destination_key, mode)
        if cached is not None:
            self._stats['cache_hits'] += 1
            return TravelTimeResult(minutes=cached, source=TravelSource.CACHE, mode=mode)

        route_key = f"{origin_key}|{destination_key}|{mode.value}"
        lock = self._route_locks.setdefault(route_key, asyncio.Lock())
        self._route_waiters[route_key] = self._route_waiters.get(route_key, 0) + 1
        try:
            async with lock:
                # Otra corrutina pudo resolver la misma ruta mientras esperabamos
                cached = self.cache.get(origin_key, destination_key, mode)
                if cached is not None:
                    self._stats['cache_hits'] += 1
                    return TravelTimeResult(minutes=cached, source=TravelSource.CACHE, mode=mode)
                return await self._resolve_miss(origin, destination, origin_key, destination_key, mode)
        finally:
            self._route_waiters[route_key] -= 1
            if not self._route_waiters[route_key]:
                del self._route_waiters[route_key]
                del self._route_locks[route_key]

    async def _resolve_miss(
        self,
        origin: Location,
        destination: Location,
        origin_key: str,
        destination_key: str,
        mode: TravelMode,
    ) -> TravelTimeResult:
        response = None
        async with self._semaphore:
            try:
                response = await self.provider.fetch_duration(origin_key, destination_key, mode)
            except Exception as e:
                self._stats['errors'] += 1
                logger.warning(f"[TravelEngine] Proveedor fallo ({origin.describe()} -> {destination.describe()}): {e}")

        if response is not None and response.ok:
            minutes = int(math.ceil(response.duration_seconds / 60))
            self.cache.set(origin_key, destination_key, mode, minutes)
            self._stats['provider_successes'] += 1
            distance_km = response.distance_meters / 1000 if response.distance_meters else None
            return TravelTimeResult(minutes=minutes, source=TravelSource.PROVIDER, mode=mode, distance_km=distance_km)

        if response is not None:
            logger.warning(f"[TravelEngine] Respuesta no valida del proveedor: {response.status}")

        other = self.cache.get_any_mode(origin_key, destination_key, exclude_mode=mode)
        if other is not None:
            other_mode, minutes = other
            self.cache.set(origin_key, destination_key, mode, minutes)
            self._stats['cross_mode_fallbacks'] += 1
            logger.warning(f"[TravelEngine] Usando valor de {other_mode.value} para {mode.value}: {minutes} min")
            return TravelTimeResult(minutes=minutes, source=TravelSource.CROSS_MODE, mode=mode)

        if origin.coordinates is not None and destination.coordinates is not None:
            distance_km = haversine_km(origin.coordinates, destination.coordinates)
            speed = travel_config.speed_for(mode.value)
            minutes = round_up_to_step((distance_km / speed) * 60, travel_config.FALLBACK_ROUNDING_MINUTES)
            self.cache.set(origin_key, destination_key, mode, minutes)
            self._stats['geometry_fallbacks'] += 1
            logger.warning(f"[TravelEngine] Fallback por distancia: {distance_km:.2f}km a {speed}km/h -> {minutes} min")
            return TravelTimeResult(minutes=minutes, source=TravelSource.GEOMETRY, mode=mode, distance_km=distance_km)

        self._stats['defaults'] += 1
        logger.warning(
            f"[TravelEngine] Todos los fallbacks fallaron ({origin.describe()} -> {destination.describe()}), "
            f"usando {self.default_minutes} min"
        )
        return TravelTimeResult(minutes=self.default_minutes, source=TravelSource.DEFAULT, mode=mode)

    async def travel_minutes_many(
        self,
        pairs: Sequence[Tuple[Optional[Location], Optional[Location]]],
        mode=None,
    ) -> List[int]:
        """Consultar varias rutas en paralelo (mismo orden que `pairs`)."""
        return list(await asyncio.gather(*(self.travel_minutes(o, d, mode) for o, d in pairs)))

    def get_stats(self) -> Dict[str, int]:
        stats = self._stats.copy()
        stats['cache_size'] = self.cache.size
        return stats

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("[TravelEngine] Cache cleared")

    async def close(self) -> None:
        await self.provider.close()


_travel_time_engine: Optional[TravelTimeEngine] = None


def get_travel_time_engine() -> TravelTimeEngine:
    global _travel_time_engine
    if _travel_time_engine is None:
        _travel_time_engine = TravelTimeEngine()
    return _travel_time_engine


async def close_travel_time_engine() -> None:
    global _travel_time_engine
    if _travel_time_engine:
        await _travel_time_engine.close()
        _travel_time_engine = None
