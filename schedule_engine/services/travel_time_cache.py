"""
Cache de tiempos de viaje.

Interfaz estrecha (get / set / get_any_mode / clear / size) con dos
implementaciones: en memoria (LRU opcional, TTL opcional, snapshot JSON) y
Redis para despliegues con varios procesos.
"""

import json
import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Iterable, Optional, Tuple

import redis

from ..config import config, travel_config
from ..models.travel import PROVIDER_MODES, TravelCacheEntry, TravelMode

logger = logging.getLogger(__name__)

_UNSET = object()


def _mode_value(mode) -> str:
    return mode.value if isinstance(mode, TravelMode) else str(mode)


class TravelTimeCache(ABC):
    """Cache de minutos de viaje por (origen, destino, modo)."""

    @abstractmethod
    def get(self, origin_key: str, destination_key: str, mode) -> Optional[int]:
        ...

    @abstractmethod
    def set(self, origin_key: str, destination_key: str, mode, minutes: int) -> None:
        ...

    def get_any_mode(
        self,
        origin_key: str,
        destination_key: str,
        exclude_mode=None,
        modes: Iterable[TravelMode] = PROVIDER_MODES,
    ) -> Optional[Tuple[TravelMode, int]]:
        """Misma ruta con otro modo; devuelve (modo, minutos) o None."""
        excluded = _mode_value(exclude_mode) if exclude_mode is not None else None
        for mode in modes:
            if mode.value == excluded:
                continue
            minutes = self.get(origin_key, destination_key, mode)
            if minutes is not None:
                return mode, minutes
        return None

    @abstractmethod
    def clear(self) -> None:
        ...

    @property
    @abstractmethod
    def size(self) -> int:
        ...


class InMemoryTravelTimeCache(TravelTimeCache):
    """
    Cache en memoria protegida con RLock.

    max_size=None y ttl_seconds=None equivalen a una cache sin limites.
    """

    def __init__(self, max_size=_UNSET, ttl_seconds=_UNSET):
        self.max_size: Optional[int] = travel_config.CACHE_MAX_SIZE if max_size is _UNSET else max_size
        self.ttl_seconds: Optional[float] = travel_config.CACHE_TTL_SECONDS if ttl_seconds is _UNSET else ttl_seconds
        self._cache: "OrderedDict[str, TravelCacheEntry]" = OrderedDict()
        self._lock = threading.RLock()

    @staticmethod
    def _get_key(origin_key: str, destination_key: str, mode) -> str:
        return f"{origin_key}|{destination_key}|{_mode_value(mode)}"

    def _expired(self, entry: TravelCacheEntry) -> bool:
        return self.ttl_seconds is not None and time.time() - entry.timestamp > self.ttl_seconds

    def get(self, origin_key: str, destination_key: str, mode) -> Optional[int]:
        key = self._get_key(origin_key, destination_key, mode)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if self._expired(entry):
                del self._cache[key]
                return None
            self._cache.move_to_end(key)
            return entry.minutes

    def set(self, origin_key: str, destination_key: str, mode, minutes: int) -> None:
        key = self._get_key(origin_key, destination_key, mode)
        entry = TravelCacheEntry(
            origin_key=origin_key,
            destination_key=destination_key,
            mode=_mode_value(mode),
            minutes=int(minutes),
            timestamp=time.time(),
        )
        with self._lock:
            self._cache[key] = entry
            self._cache.move_to_end(key)
            if self.max_size is not None:
                while len(self._cache) > self.max_size:
                    self._cache.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._cache)

    def save(self, path: Optional[str] = None) -> None:
        """Guardar un snapshot JSON de la cache."""
        path = path or travel_config.CACHE_FILE
        with self._lock:
            data = [entry.model_dump(mode="json") for entry in self._cache.values()]
        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False)
            logger.debug(f"[TravelCache] Saved {len(data)} entries")
        except OSError as e:
            logger.error(f"[TravelCache] Error saving: {e}")

    def load(self, path: Optional[str] = None) -> int:
        """Cargar un snapshot JSON; las entradas caducadas se descartan."""
        path = path or travel_config.CACHE_FILE
        if not os.path.exists(path):
            return 0
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"[TravelCache] Error loading: {e}")
            return 0

        loaded = 0
        with self._lock:
            for raw in data:
                try:
                    entry = TravelCacheEntry.model_validate(raw)
                except ValueError as e:
                    logger.warning(f"[TravelCache] Entrada invalida ignorada: {e}")
                    continue
                if self._expired(entry):
                    continue
                key = self._get_key(entry.origin_key, entry.destination_key, entry.mode)
                self._cache[key] = entry
                loaded += 1
            if self.max_size is not None:
                while len(self._cache) > self.max_size:
                    self._cache.popitem(last=False)
        logger.info(f"[TravelCache] Loaded {loaded} entries")
        return loaded


class RedisTravelTimeCache(TravelTimeCache):
    """Cache compartida en Redis (SET con expiracion opcional)."""

    def __init__(
        self,
        client: Optional[Any] = None,
        url: Optional[str] = None,
        prefix: Optional[str] = None,
        ttl_seconds=_UNSET,
    ):
        self.client = client or redis.Redis.from_url(url or config.REDIS_URL, decode_responses=True)
        self.prefix = prefix or config.REDIS_KEY_PREFIX
        self.ttl_seconds = travel_config.CACHE_TTL_SECONDS if ttl_seconds is _UNSET else ttl_seconds

    def _get_key(self, origin_key: str, destination_key: str, mode) -> str:
        return f"{self.prefix}:{origin_key}|{destination_key}|{_mode_value(mode)}"

    def get(self, origin_key: str, destination_key: str, mode) -> Optional[int]:
        try:
            raw = self.client.get(self._get_key(origin_key, destination_key, mode))
        except redis.RedisError as e:
            logger.warning(f"[TravelCache] Redis get error: {e}")
            return None
        if raw is None:
            return None
        return int(raw)

    def set(self, origin_key: str, destination_key: str, mode, minutes: int) -> None:
        key = self._get_key(origin_key, destination_key, mode)
        try:
            if self.ttl_seconds:
                self.client.set(key, int(minutes), ex=int(self.ttl_seconds))
            else:
                self.client.set(key, int(minutes))
        except redis.RedisError as e:
            logger.warning(f"[TravelCache] Redis set error: {e}")

    def clear(self) -> None:
        try:
            keys = list(self.client.scan_iter(match=f"{self.prefix}:*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"[TravelCache] Redis clear error: {e}")

    @property
    def size(self) -> int:
        try:
            return sum(1 for _ in self.client.scan_iter(match=f"{self.prefix}:*"))
        except redis.RedisError as e:
            logger.warning(f"[TravelCache] Redis size error: {e}")
            return 0


def get_travel_cache(backend: Optional[str] = None) -> TravelTimeCache:
    """Crear la cache configurada ("memory" o "redis")."""
    backend = (backend or config.TRAVEL_CACHE_BACKEND).strip().lower()
    if backend == "redis":
        return RedisTravelTimeCache()
    if backend == "memory":
        return InMemoryTravelTimeCache()
    raise ValueError(f"Backend de cache desconocido: {backend!r}")
