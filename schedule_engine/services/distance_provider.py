"""
Proveedor externo de duraciones de viaje (Google Distance Matrix).
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ..config.travel import travel_config
from ..models.travel import ProviderResponse, TravelMode

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Fallo de transporte o configuracion del proveedor de distancias."""


class DistanceProvider(ABC):
    """Fuente externa de duraciones entre dos ubicaciones."""

    @abstractmethod
    async def fetch_duration(
        self,
        origin_key: str,
        destination_key: str,
        mode: TravelMode,
        language: Optional[str] = None,
    ) -> ProviderResponse:
        ...

    async def close(self) -> None:
        return None


class GoogleDistanceMatrixProvider(DistanceProvider):
    """Cliente asincrono de la API Distance Matrix."""

    SUPPORTED_MODES = {TravelMode.DRIVING, TravelMode.TRANSIT, TravelMode.WALKING, TravelMode.BICYCLING}

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else travel_config.API_KEY
        self.base_url = base_url or travel_config.PROVIDER_URL
        self._http_client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=travel_config.TIMEOUT_SECONDS,
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10)
            )
        return self._http_client

    async def fetch_duration(
        self,
        origin_key: str,
        destination_key: str,
        mode: TravelMode,
        language: Optional[str] = None,
    ) -> ProviderResponse:
        """
        Consultar la duracion de origen a destino.

        Returns:
            ProviderResponse con el estado del elemento (OK, ZERO_RESULTS, ...)

        Raises:
            ProviderError: sin API key, modo no soportado o fallo de transporte
        """
        if not self.api_key:
            raise ProviderError("GOOGLE_MAPS_API_KEY no configurada")
        mode = TravelMode(mode)
        if mode not in self.SUPPORTED_MODES:
            raise ProviderError(f"Modo no soportado por el proveedor: {mode.value}")

        params = {
            "origins": origin_key,
            "destinations": destination_key,
            "mode": mode.value,
            "language": language or travel_config.LANGUAGE,
            "key": self.api_key,
        }

        last_error = "sin respuesta"
        for attempt in range(travel_config.MAX_RETRIES):
            try:
                client = await self._get_client()
                response = await client.get(self.base_url, params=params)

                if response.status_code == 200:
                    return self._parse(response.json())
                if response.status_code == 429:
                    last_error = "HTTP 429"
                    logger.warning(f"[Distance] Rate limited (attempt {attempt + 1})")
                    await asyncio.sleep(travel_config.RETRY_DELAY_SECONDS * (2 ** attempt))
                    continue
                last_error = f"HTTP {response.status_code}"
                logger.warning(f"[Distance] {last_error} (attempt {attempt + 1})")
            except httpx.TimeoutException:
                last_error = "timeout"
                logger.warning(f"[Distance] Timeout (attempt {attempt + 1})")
            except (httpx.HTTPError, ValueError) as e:
                last_error = str(e)
                logger.error(f"[Distance] Error: {e}")

            if attempt < travel_config.MAX_RETRIES - 1:
                await asyncio.sleep(travel_config.RETRY_DELAY_SECONDS * (attempt + 1))

        raise ProviderError(f"Proveedor no disponible: {last_error}")

    @staticmethod
    def _parse(data: dict) -> ProviderResponse:
        status = data.get("status", "UNKNOWN_ERROR")
        if status != "OK":
            return ProviderResponse(status=status)
        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError):
            return ProviderResponse(status="INVALID_RESPONSE")

        element_status = element.get("status", "UNKNOWN_ERROR")
        if element_status != "OK":
            return ProviderResponse(status=element_status)
        duration = (element.get("duration") or {}).get("value")
        distance = (element.get("distance") or {}).get("value")
        if duration is None:
            return ProviderResponse(status="INVALID_RESPONSE")
        return ProviderResponse(status="OK", duration_seconds=duration, distance_meters=distance)

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
