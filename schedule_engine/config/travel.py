"""
Configuracion especifica para el calculo de tiempos de viaje.
"""

import os
from typing import Dict, Optional


def _optional_int(name: str, default: str = "") -> Optional[int]:
    raw = os.getenv(name, default).strip()
    if not raw or int(raw) <= 0:
        return None
    return int(raw)


class TravelConfig:
    """Configuration class for the distance provider and travel-time engine."""

    PROVIDER_URL: str = os.getenv(
        "DISTANCE_PROVIDER_URL",
        "https://maps.googleapis.com/maps/api/distancematrix/json"
    )
    API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    LANGUAGE: str = os.getenv("DISTANCE_PROVIDER_LANGUAGE", "ko")

    TIMEOUT_SECONDS: float = float(os.getenv("DISTANCE_PROVIDER_TIMEOUT", "5.0"))
    MAX_RETRIES: int = int(os.getenv("DISTANCE_PROVIDER_MAX_RETRIES", "3"))
    RETRY_DELAY_SECONDS: float = float(os.getenv("DISTANCE_PROVIDER_RETRY_DELAY", "0.5"))
    MAX_CONCURRENT_REQUESTS: int = int(os.getenv("DISTANCE_PROVIDER_MAX_CONCURRENT", "10"))

    DEFAULT_MODE: str = os.getenv("TRAVEL_DEFAULT_MODE", "transit")
    DEFAULT_TRAVEL_MINUTES: int = int(os.getenv("TRAVEL_DEFAULT_MINUTES", "30"))
    FALLBACK_ROUNDING_MINUTES: int = int(os.getenv("TRAVEL_FALLBACK_ROUNDING", "10"))

    # Velocidad media asumida (km/h) para el fallback por distancia
    FALLBACK_SPEEDS_KMH: Dict[str, float] = {
        "driving": float(os.getenv("TRAVEL_SPEED_DRIVING", "40")),
        "transit": float(os.getenv("TRAVEL_SPEED_TRANSIT", "30")),
        "bicycling": float(os.getenv("TRAVEL_SPEED_BICYCLING", "15")),
        "walking": float(os.getenv("TRAVEL_SPEED_WALKING", "5")),
    }
    FALLBACK_SPEED_KMH: float = float(os.getenv("TRAVEL_SPEED_DEFAULT", "30"))

    CACHE_MAX_SIZE: Optional[int] = _optional_int("TRAVEL_CACHE_MAX_SIZE", "10000")
    CACHE_TTL_SECONDS: Optional[int] = _optional_int("TRAVEL_CACHE_TTL")
    CACHE_FILE: str = os.getenv("TRAVEL_CACHE_FILE", "travel_time_cache.json")

    @classmethod
    def speed_for(cls, mode: str) -> float:
        return cls.FALLBACK_SPEEDS_KMH.get(mode, cls.FALLBACK_SPEED_KMH)

    @classmethod
    def get_config_dict(cls) -> dict:
        return {
            "PROVIDER_URL": cls.PROVIDER_URL,
            "API_KEY_SET": bool(cls.API_KEY),
            "LANGUAGE": cls.LANGUAGE,
            "TIMEOUT_SECONDS": cls.TIMEOUT_SECONDS,
            "MAX_RETRIES": cls.MAX_RETRIES,
            "MAX_CONCURRENT_REQUESTS": cls.MAX_CONCURRENT_REQUESTS,
            "DEFAULT_MODE": cls.DEFAULT_MODE,
            "DEFAULT_TRAVEL_MINUTES": cls.DEFAULT_TRAVEL_MINUTES,
            "FALLBACK_SPEEDS_KMH": dict(cls.FALLBACK_SPEEDS_KMH),
            "CACHE_MAX_SIZE": cls.CACHE_MAX_SIZE,
            "CACHE_TTL_SECONDS": cls.CACHE_TTL_SECONDS,
            "CACHE_FILE": cls.CACHE_FILE,
        }


travel_config = TravelConfig()
