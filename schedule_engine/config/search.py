"""
Configuracion de la busqueda de combinaciones.
"""

import os
from typing import Optional


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


class SearchConfig:
    """Limites de la busqueda exhaustiva con poda."""

    MAX_ITERATIONS: int = int(os.getenv("SEARCH_MAX_ITERATIONS", "10000"))
    RESULTS_MULTIPLIER: int = int(os.getenv("SEARCH_RESULTS_MULTIPLIER", "10"))
    DEFAULT_MAX_RESULTS: int = int(os.getenv("SEARCH_DEFAULT_MAX_RESULTS", "5"))
    DEADLINE_SECONDS: Optional[float] = _optional_float("SEARCH_DEADLINE_SECONDS")

    @classmethod
    def get_config_dict(cls) -> dict:
        return {
            "MAX_ITERATIONS": cls.MAX_ITERATIONS,
            "RESULTS_MULTIPLIER": cls.RESULTS_MULTIPLIER,
            "DEFAULT_MAX_RESULTS": cls.DEFAULT_MAX_RESULTS,
            "DEADLINE_SECONDS": cls.DEADLINE_SECONDS,
        }


search_config = SearchConfig()
