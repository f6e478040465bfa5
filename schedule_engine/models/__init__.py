"""
Modelos de datos del motor de horarios.
"""

from .time_block import (
    Combination,
    Coordinates,
    DEFAULT_SOURCE_GROUP,
    DayCode,
    Location,
    SourceGroup,
    TimeBlock,
)
from .travel import (
    PROVIDER_MODES,
    ProviderResponse,
    TravelCacheEntry,
    TravelMode,
    TravelSource,
    TravelTimeResult,
)
from .results import (
    BlockedWindow,
    DateRecalculation,
    DaySimulation,
    MultiDateRecalculation,
    OptimizationResult,
    OptimizationStats,
    PinConflict,
    PinConflictCheck,
    PlacementReason,
    PlacementResult,
    RejectedRecord,
    SearchResult,
    SelectionLogEntry,
    SimulatedBlock,
)

__all__ = [
    # Bloques y ubicaciones
    'Combination',
    'Coordinates',
    'DEFAULT_SOURCE_GROUP',
    'DayCode',
    'Location',
    'SourceGroup',
    'TimeBlock',
    # Viaje
    'PROVIDER_MODES',
    'ProviderResponse',
    'TravelCacheEntry',
    'TravelMode',
    'TravelSource',
    'TravelTimeResult',
    # Resultados
    'BlockedWindow',
    'DateRecalculation',
    'DaySimulation',
    'MultiDateRecalculation',
    'OptimizationResult',
    'OptimizationStats',
    'PinConflict',
    'PinConflictCheck',
    'PlacementReason',
    'PlacementResult',
    'RejectedRecord',
    'SearchResult',
    'SelectionLogEntry',
    'SimulatedBlock',
]
