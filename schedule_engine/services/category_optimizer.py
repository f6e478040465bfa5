"""
Optimizador de horarios por categorias.

Selecciona bloques agrupados por documento de origen siguiendo este orden:

1. Fijados: se incluyen siempre; los candidatos que chocan con ellos se
   eliminan y se registran.
2. Categorias: cada grupo se clasifica (colegio, academia, hoja de estudio,
   artes/deportes, otros). Los grupos indivisibles se aceptan enteros o nada;
   los exclusivos aportan como mucho una opcion (la primera sin choques,
   priorizando mayor frecuencia semanal).
3. Reposicion: los huecos dejados por los fijados se cubren desde el pool
   completo, primero con el mismo origen y mayor frecuencia.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..models.results import (
    OptimizationResult,
    OptimizationStats,
    PinConflict,
    PinConflictCheck,
    SelectionLogEntry,
)
from ..models.time_block import DEFAULT_SOURCE_GROUP, SourceGroup, TimeBlock
from ..utils.time_utils import extract_weekly_frequency, strip_frequency
from .classifier import (
    FALLBACK_CLASSIFICATION,
    Category,
    Classification,
    Classifier,
    RuleBasedClassifier,
    is_placeholder,
)
from .overlap_detector import group_overlaps, overlaps

logger = logging.getLogger(__name__)

INDIVISIBLE = "indivisible"
EXCLUSIVE = "exclusive"

PLACEHOLDER_OPTION_PRIORITY = 999
DEFAULT_OPTION_PRIORITY = 100
GRADE_LEVEL_OPTION_PRIORITY = 0

_GRADE_LEVEL_WORDS = ("초등부", "중등부", "고등부")


def block_frequency(block: TimeBlock) -> Optional[int]:
    """Frecuencia semanal declarada o extraida del titulo."""
    if block.frequency:
        return block.frequency
    return extract_weekly_frequency(block.title)


def option_priority_for(block: TimeBlock) -> int:
    """
    Prioridad de opcion dentro de un grupo exclusivo (menor = antes).

    5x/semana -> 1 ... 1x/semana -> 5; sin frecuencia -> 100;
    placeholders -> 999; titulos de nivel escolar -> 0.
    """
    if is_placeholder(block.title):
        return PLACEHOLDER_OPTION_PRIORITY
    frequency = block_frequency(block)
    if frequency:
        return max(1, 6 - frequency)
    if any(word in block.title for word in _GRADE_LEVEL_WORDS):
        return GRADE_LEVEL_OPTION_PRIORITY
    return DEFAULT_OPTION_PRIORITY


@dataclass
class GroupOption:
    """Una alternativa de un grupo exclusivo (una variante horaria)."""
    name: str
    blocks: List[TimeBlock]
    option_priority: int
    frequency_group: Optional[str] = None


@dataclass
class _GroupPlan:
    source_group_id: str
    title: str
    kind: str
    category: Category
    priority: int
    placeholder_only: bool = False
    options: List[GroupOption] = field(default_factory=list)


@dataclass(frozen=True)
class SelectionState:
    """Acumulador inmutable de la seleccion; cada paso devuelve uno nuevo."""
    blocks: Tuple[TimeBlock, ...] = ()
    log: Tuple[SelectionLogEntry, ...] = ()
    represented_groups: frozenset = frozenset()

    def conflicts_with(self, blocks: Iterable[TimeBlock]) -> bool:
        return group_overlaps(blocks, self.blocks)

    def contains(self, block: TimeBlock) -> bool:
        key = block.content_key()
        return any(b.content_key() == key for b in self.blocks)

    def add(
        self,
        blocks: Sequence[TimeBlock],
        entry: Optional[SelectionLogEntry] = None,
        group_id: Optional[str] = None,
    ) -> "SelectionState":
        groups = self.represented_groups | {group_id} if group_id else self.represented_groups
        return SelectionState(
            blocks=self.blocks + tuple(blocks),
            log=self.log + ((entry,) if entry else ()),
            represented_groups=groups,
        )


def find_conflicting_blocks(pin: TimeBlock, pool: Sequence[TimeBlock]) -> List[TimeBlock]:
    """Candidatos del pool que chocan con un bloque fijado."""
    key = pin.content_key()
    return [b for b in pool if b.content_key() != key and overlaps(pin, b)]


def check_pin_conflicts(new_pin: TimeBlock, existing_pins: Sequence[TimeBlock]) -> PinConflictCheck:
    """Comprobar si un nuevo bloque fijado choca con los ya fijados."""
    conflicts = [p for p in existing_pins if p.id != new_pin.id and overlaps(new_pin, p)]
    return PinConflictCheck(has_conflict=bool(conflicts), conflicts=conflicts)


class CategoryOptimizer:
    """Seleccion voraz por categorias con fijados, exclusividad y reposicion."""

    def __init__(self, classifier: Optional[Classifier] = None):
        self.classifier = classifier or RuleBasedClassifier()

    def optimize(
        self,
        pool: Sequence[TimeBlock],
        source_groups: Optional[Sequence[SourceGroup]] = None,
        pinned: Optional[Sequence[TimeBlock]] = None,
    ) -> OptimizationResult:
        """
        Optimizar la seleccion de bloques.

        Args:
            pool: Candidatos de trabajo
            source_groups: Documentos de origen; sus bloques completan el pool
                usado en la reposicion
            pinned: Bloques fijados por el usuario

        Returns:
            OptimizationResult con la seleccion, estadisticas y conflictos
        """
        source_groups = list(source_groups or [])
        pinned = [p if p.is_fixed else p.model_copy(update={"is_fixed": True}) for p in (pinned or [])]
        groups_by_id = {g.id: g for g in source_groups}

        pin_keys = {p.content_key() for p in pinned}
        working = [b for b in self._merge(pool, []) if b.content_key() not in pin_keys]
        full_pool = [b for b in self._merge(pool, source_groups) if b.content_key() not in pin_keys]

        # Fase 1: fijados
        removed: List[TimeBlock] = []
        pin_conflicts: List[PinConflict] = []
        for pin in pinned:
            conflicting = find_conflicting_blocks(pin, working)
            if conflicting:
                pin_conflicts.append(PinConflict(pinned=pin, conflicting=conflicting))
                for block in conflicting:
                    if all(block is not r for r in removed):
                        removed.append(block)
        if removed:
            logger.info(f"[Optimizer] {len(removed)} candidatos eliminados por choque con fijados")

        removed_ids = {id(b) for b in removed}
        candidates = [b for b in working if id(b) not in removed_ids]

        # Un fijado ocupa el hueco de su grupo de origen
        pinned_groups = frozenset(
            p.source_group_id for p in pinned if p.source_group_id != DEFAULT_SOURCE_GROUP
        )
        state = SelectionState(blocks=tuple(pinned), represented_groups=pinned_groups)

        # Fase 2: categorias
        plans = self._build_plans(full_pool, candidates, groups_by_id)
        ordered = sorted(
            (p for p in plans.values() if p.options),
            key=lambda p: (p.priority, p.placeholder_only),
        )
        for plan in ordered:
            state = self._select_group(plan, state)

        # Fase 3: reposicion
        backfilled = 0
        if removed:
            selected_count = len(state.blocks) - len(pinned)
            shortfall = min(len(removed), len(full_pool) - selected_count)
            state, backfilled = self._backfill(full_pool, removed, plans, state, shortfall)

        stats = OptimizationStats(
            input=len(full_pool) + len(pinned),
            total=len(state.blocks),
            fixed=len(pinned),
            removed=len(removed),
            backfilled=backfilled,
            groups=len(ordered),
        )
        logger.info(
            f"[Optimizer] Seleccionados {stats.total} de {stats.input} "
            f"(fijados={stats.fixed}, eliminados={stats.removed}, repuestos={stats.backfilled})"
        )
        return OptimizationResult(
            selected=list(state.blocks),
            stats=stats,
            pin_conflicts=pin_conflicts,
            selection_log=list(state.log),
        )

    # ------------------------------------------------------------------
    # Construccion de grupos
    # ------------------------------------------------------------------

    @staticmethod
    def _merge(pool: Sequence[TimeBlock], source_groups: Sequence[SourceGroup]) -> List[TimeBlock]:
        merged: List[TimeBlock] = []
        seen: Set[str] = set()
        for block in pool:
            if block.id not in seen:
                seen.add(block.id)
                merged.append(block)
        for group in source_groups:
            for block in group.blocks:
                if block.id in seen:
                    continue
                seen.add(block.id)
                if block.source_group_id != group.id:
                    block = block.model_copy(update={"source_group_id": group.id})
                merged.append(block)
        return merged

    def _classify_group(self, blocks: List[TimeBlock], title: str) -> List[Classification]:
        try:
            classifications = self.classifier.classify_batch(blocks, title)
            if len(classifications) != len(blocks):
                raise ValueError(f"{len(classifications)} clasificaciones para {len(blocks)} bloques")
            return classifications
        except Exception as e:
            logger.warning(f"[Optimizer] Clasificador fallo para '{title}': {e}; usando OTHER/5")
            return [FALLBACK_CLASSIFICATION for _ in blocks]

    def _build_plans(
        self,
        full_pool: List[TimeBlock],
        candidates: List[TimeBlock],
        groups_by_id: Dict[str, SourceGroup],
    ) -> Dict[str, _GroupPlan]:
        by_group: Dict[str, List[TimeBlock]] = {}
        for block in full_pool:
            by_group.setdefault(block.source_group_id, []).append(block)

        candidate_ids = {id(b) for b in candidates}
        plans: Dict[str, _GroupPlan] = {}
        for group_id, blocks in by_group.items():
            group = groups_by_id.get(group_id)
            title = group.title if group and group.title else group_id
            classifications = self._classify_group(blocks, title)

            # La prioridad declarada en el bloque puede proteger mas que la categoria
            priorities = [min(b.priority, c.priority) for b, c in zip(blocks, classifications)]
            best = min(range(len(blocks)), key=lambda i: priorities[i])
            category = classifications[best].category
            priority = priorities[best]

            if group is not None and group.kind:
                kind = group.kind
            elif category == Category.SCHOOL or any(c.indivisible for c in classifications):
                kind = INDIVISIBLE
            else:
                kind = EXCLUSIVE

            plan = _GroupPlan(
                source_group_id=group_id,
                title=title,
                kind=kind,
                category=category,
                priority=priority,
                placeholder_only=all(is_placeholder(b.title) for b in blocks),
            )
            group_candidates = [b for b in blocks if id(b) in candidate_ids]
            if group_candidates:
                if kind == INDIVISIBLE:
                    plan.options = [GroupOption(name=f"{title} (completo)", blocks=group_candidates, option_priority=0)]
                else:
                    plan.options = self.build_options(group_candidates)
            plans[group_id] = plan
            logger.debug(
                f"[Optimizer] Grupo '{title}': {kind}, {category.value}/{priority}, "
                f"{len(plan.options)} opciones"
            )
        return plans

    @staticmethod
    def build_options(blocks: Sequence[TimeBlock]) -> List[GroupOption]:
        """
        Expandir un grupo exclusivo en opciones ordenadas.

        Los bloques con el mismo titulo base, frecuencia y horario forman una
        sola variante aunque el extractor los haya separado por dia.
        """
        variants: Dict[tuple, GroupOption] = {}
        for block in blocks:
            frequency = block_frequency(block)
            if frequency:
                key = ("freq", strip_frequency(block.title), frequency, block.semantic_start, block.semantic_end)
                frequency_group = f"weekly_{frequency}"
            else:
                key = ("title", block.title, block.semantic_start, block.semantic_end)
                frequency_group = None

            option = variants.get(key)
            if option is None:
                when = block.specific_date.isoformat() if block.specific_date else ",".join(block.day_codes)
                option = GroupOption(
                    name=f"{block.title} ({when} {block.semantic_start}-{block.semantic_end})",
                    blocks=[],
                    option_priority=option_priority_for(block),
                    frequency_group=frequency_group,
                )
                variants[key] = option
            option.blocks.append(block)

        return sorted(variants.values(), key=lambda o: o.option_priority)

    # ------------------------------------------------------------------
    # Seleccion
    # ------------------------------------------------------------------

    @staticmethod
    def _log_entry(plan: _GroupPlan, option: GroupOption) -> SelectionLogEntry:
        return SelectionLogEntry(
            source_group_id=plan.source_group_id,
            source_title=plan.title,
            group_type=plan.kind,
            category=plan.category.value,
            priority=plan.priority,
            selected=option.name,
            count=len(option.blocks),
        )

    def _select_group(self, plan: _GroupPlan, state: SelectionState) -> SelectionState:
        if plan.kind == EXCLUSIVE and plan.source_group_id in state.represented_groups:
            logger.info(f"[Optimizer] Grupo exclusivo '{plan.title}' ya cubierto por un fijado")
            return state

        if plan.kind == INDIVISIBLE:
            option = plan.options[0]
            if state.conflicts_with(option.blocks):
                logger.info(f"[Optimizer] Grupo indivisible '{plan.title}' descartado por choques")
                return state
            return state.add(option.blocks, self._log_entry(plan, option), plan.source_group_id)

        for option in plan.options:
            if state.conflicts_with(option.blocks):
                continue
            logger.debug(f"[Optimizer] '{plan.title}': elegida {option.name}")
            return state.add(option.blocks, self._log_entry(plan, option), plan.source_group_id)

        logger.info(f"[Optimizer] Grupo exclusivo '{plan.title}' sin opcion compatible")
        return state

    def _backfill(
        self,
        full_pool: List[TimeBlock],
        removed: List[TimeBlock],
        plans: Dict[str, _GroupPlan],
        state: SelectionState,
        shortfall: int,
    ) -> Tuple[SelectionState, int]:
        removed_ids = {id(b) for b in removed}
        removed_keys = {b.content_key() for b in removed}
        removed_sources = {b.source_group_id for b in removed}

        candidates = [
            b for b in full_pool
            if id(b) not in removed_ids
            and b.content_key() not in removed_keys
            and not state.contains(b)
        ]
        candidates.sort(key=lambda b: (
            0 if b.source_group_id in removed_sources else 1,
            is_placeholder(b.title),
            -(block_frequency(b) or 0),
        ))

        added = 0
        for block in candidates:
            if added >= shortfall:
                break
            plan = plans.get(block.source_group_id)
            # Los grupos indivisibles no se reponen por piezas
            if plan is not None and plan.kind == INDIVISIBLE:
                continue
            exclusive = plan is None or plan.kind == EXCLUSIVE
            if exclusive and block.source_group_id in state.represented_groups:
                continue
            if state.conflicts_with([block]):
                continue

            entry = None
            if plan is not None:
                entry = SelectionLogEntry(
                    source_group_id=plan.source_group_id,
                    source_title=plan.title,
                    group_type=f"{plan.kind}_backfill",
                    category=plan.category.value,
                    priority=plan.priority,
                    selected=block.describe(),
                    count=1,
                )
            state = state.add([block], entry, block.source_group_id)
            added += 1
            logger.debug(f"[Optimizer] Repuesto {block.describe()}")

        if added < shortfall:
            logger.info(f"[Optimizer] Reposicion incompleta: {added}/{shortfall}")
        return state, added


def optimize_schedule(
    pool: Sequence[TimeBlock],
    source_groups: Optional[Sequence[SourceGroup]] = None,
    pinned: Optional[Sequence[TimeBlock]] = None,
    classifier: Optional[Classifier] = None,
) -> OptimizationResult:
    return CategoryOptimizer(classifier).optimize(pool, source_groups, pinned)
