"""
Servicios del motor de horarios.
"""

from .category_optimizer import CategoryOptimizer, check_pin_conflicts, find_conflicting_blocks
from .classifier import Category, Classification, Classifier, LLMClassifier, RuleBasedClassifier, get_classifier
from .combination_searcher import CombinationSearcher
from .distance_provider import DistanceProvider, GoogleDistanceMatrixProvider, ProviderError
from .overlap_detector import find_overlapping_pairs, has_internal_overlap, overlaps, overlaps_any, shared_days
from .record_validator import validate_records
from .schedule_recalculator import ScheduleRecalculator, blocks_for_date
from .travel_time_cache import InMemoryTravelTimeCache, RedisTravelTimeCache, TravelTimeCache, get_travel_cache
from .travel_time_engine import TravelTimeEngine, close_travel_time_engine, get_travel_time_engine

__all__ = [
    'CategoryOptimizer',
    'check_pin_conflicts',
    'find_conflicting_blocks',
    'Category',
    'Classification',
    'Classifier',
    'LLMClassifier',
    'RuleBasedClassifier',
    'get_classifier',
    'CombinationSearcher',
    'DistanceProvider',
    'GoogleDistanceMatrixProvider',
    'ProviderError',
    'find_overlapping_pairs',
    'has_internal_overlap',
    'overlaps',
    'overlaps_any',
    'shared_days',
    'validate_records',
    'ScheduleRecalculator',
    'blocks_for_date',
    'InMemoryTravelTimeCache',
    'RedisTravelTimeCache',
    'TravelTimeCache',
    'get_travel_cache',
    'TravelTimeEngine',
    'close_travel_time_engine',
    'get_travel_time_engine',
]
