"""
Clasificacion de bloques por categoria y prioridad.

El optimizador solo depende de la interfaz Classifier; la implementacion por
defecto es determinista (reglas por palabras clave) y existe una alternativa
basada en un LLM (OpenAI chat completions).
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import openai
from pydantic import BaseModel, Field

from ..config import config
from ..models.time_block import TimeBlock

logger = logging.getLogger(__name__)


class Category(str, Enum):
    """Categorias de actividad; el orden refleja la prioridad por defecto."""
    SCHOOL = "school"
    ACADEMY = "academy"
    STUDY_SHEET = "study_sheet"
    ARTS_SPORTS = "arts_sports"
    OTHER = "other"


DEFAULT_PRIORITY: Dict[Category, int] = {
    Category.SCHOOL: 1,
    Category.ACADEMY: 2,
    Category.STUDY_SHEET: 3,
    Category.ARTS_SPORTS: 4,
    Category.OTHER: 5,
}

# Etiquetas que usan los extractores y el LLM
_CATEGORY_ALIASES: Dict[str, Category] = {
    "school": Category.SCHOOL,
    "학교": Category.SCHOOL,
    "academy": Category.ACADEMY,
    "study_academy": Category.ACADEMY,
    "공부학원": Category.ACADEMY,
    "학원": Category.ACADEMY,
    "study_sheet": Category.STUDY_SHEET,
    "worksheet": Category.STUDY_SHEET,
    "학습지": Category.STUDY_SHEET,
    "arts_sports": Category.ARTS_SPORTS,
    "arts": Category.ARTS_SPORTS,
    "sports": Category.ARTS_SPORTS,
    "예체능": Category.ARTS_SPORTS,
    "other": Category.OTHER,
    "기타": Category.OTHER,
}


def parse_category(value: Optional[str]) -> Optional[Category]:
    """Convierte una etiqueta libre a Category; None si no se reconoce."""
    if value is None:
        return None
    if isinstance(value, Category):
        return value
    key = str(value).strip()
    return _CATEGORY_ALIASES.get(key.lower()) or _CATEGORY_ALIASES.get(key)


class Classification(BaseModel):
    """Resultado de clasificar un bloque."""

    category: Category = Field(Category.OTHER, description="Categoria asignada")
    priority: int = Field(5, ge=1, le=5, description="Prioridad (1 = mas protegido)")
    indivisible: bool = Field(False, description="El grupo se acepta entero o nada")

    @classmethod
    def for_category(cls, category: Category, priority: Optional[int] = None) -> "Classification":
        if priority is None or not 1 <= priority <= 5:
            priority = DEFAULT_PRIORITY[category]
        return cls(category=category, priority=priority, indivisible=category == Category.SCHOOL)


FALLBACK_CLASSIFICATION = Classification(category=Category.OTHER, priority=5)


# =============================================================================
# Placeholders
# =============================================================================

_PLACEHOLDER_TITLES = {"O", "X", "0"}
_PLACEHOLDER_PATTERN = re.compile(
    r"수업\s*준비|오프닝|정리\s*정돈|\bclass\s+prep\b|\bbreak\b|\blunch\b",
    re.IGNORECASE,
)


def is_placeholder(title: Optional[str]) -> bool:
    """Titulos centinela (O, X, 0) o etiquetas administrativas sin clase."""
    if not title:
        return True
    stripped = title.strip()
    return stripped.upper() in _PLACEHOLDER_TITLES or bool(_PLACEHOLDER_PATTERN.search(stripped))


# =============================================================================
# Interfaz
# =============================================================================

class Classifier(ABC):
    """Asigna categoria y prioridad a los bloques de un documento de origen."""

    @abstractmethod
    def classify(self, block: TimeBlock, source_title: str = "") -> Classification:
        ...

    def classify_batch(self, blocks: Sequence[TimeBlock], source_title: str = "") -> List[Classification]:
        return [self.classify(block, source_title) for block in blocks]


# =============================================================================
# Reglas deterministas
# =============================================================================

class RuleBasedClassifier(Classifier):
    """
    Clasificador por palabras clave.

    Orden de evaluacion:
    1. Placeholders -> OTHER/5
    2. Categoria sugerida por el extractor
    3. Titulo del documento con patron de colegio (sin palabra de academia) -> SCHOOL/1
    4. Programas de hojas de estudio -> STUDY_SHEET/3
    5. Artes y deportes -> ARTS_SPORTS/4
    6. Materias de estudio -> ACADEMY/2
    7. Resto -> OTHER/5
    """

    SCHOOL_PATTERNS = [
        re.compile(r"(초|중|고)$"),
        re.compile(r"초등학교|중학교|고등학교"),
        re.compile(r"\d+\s*학년\s*\d+\s*반"),
        re.compile(r"\b(elementary|middle|high)\s+school\b", re.IGNORECASE),
    ]
    ACADEMY_WORDS = re.compile(r"학원|아카데미|스튜디오|\bacademy\b|\bstudio\b", re.IGNORECASE)
    STUDY_SHEET_WORDS = re.compile(r"눈높이|구몬|학습지|\bkumon\b|\bworksheet\b", re.IGNORECASE)
    ARTS_SPORTS_WORDS = re.compile(
        r"피아노|축구|풋볼|농구|수영|댄스|발레|힙합|케이팝|필라테스|요가|태권도|유도|검도|미술|그림|음악|"
        r"바이올린|드럼|체육|"
        r"\b(piano|soccer|football|basketball|swim\w*|dance|ballet|hip\s?hop|k-?pop|pilates|yoga|"
        r"taekwondo|judo|art|music|violin|drums?|pt|gym)\b",
        re.IGNORECASE,
    )
    STUDY_WORDS = re.compile(
        r"영어|수학|국어|과학|사회|코딩|논술|"
        r"\b(english|math\w*|korean|science|coding|programming|tutoring)\b",
        re.IGNORECASE,
    )

    def classify(self, block: TimeBlock, source_title: str = "") -> Classification:
        if is_placeholder(block.title):
            return FALLBACK_CLASSIFICATION

        hinted = parse_category(block.category)
        if hinted is not None:
            return Classification.for_category(hinted, min(block.priority, DEFAULT_PRIORITY[hinted]))

        source_title = (source_title or "").strip()
        if self._is_school_source(source_title):
            return Classification.for_category(Category.SCHOOL)

        text = f"{source_title} {block.title}"
        if self.STUDY_SHEET_WORDS.search(text):
            return Classification.for_category(Category.STUDY_SHEET)
        if self.ARTS_SPORTS_WORDS.search(text):
            return Classification.for_category(Category.ARTS_SPORTS)
        if self.STUDY_WORDS.search(text):
            return Classification.for_category(Category.ACADEMY)
        return FALLBACK_CLASSIFICATION

    def _is_school_source(self, source_title: str) -> bool:
        if not source_title or self.ACADEMY_WORDS.search(source_title):
            return False
        return any(p.search(source_title) for p in self.SCHOOL_PATTERNS)


# =============================================================================
# LLM (OpenAI)
# =============================================================================

_LLM_PROMPT = """You classify a student's timetable entries.

Source document title: {source_title}

Entries:
{entries}

Categories (priority):
1. school (1): regular classes of an elementary, middle or high school
   (titles like "...초", "...중", "...고", "초등학교", "1학년 3반").
   If the title clearly says academy/학원/studio it is NOT a school.
2. academy (2): study academies (English, math, Korean, science...)
3. study_sheet (3): worksheet programs (눈높이, 구몬, Kumon...)
4. arts_sports (4): piano, soccer, dance, pilates, yoga, K-POP, PT...
5. other (5)

Return ONLY a JSON array, no explanation:
[{{"index": 0, "category": "school", "priority": 1}}, ...]
"""


class LLMClassifier(Classifier):
    """
    Clasificador por lotes con la API de chat completions de OpenAI.

    Cualquier fallo (red, respuesta sin JSON, entrada ausente) degrada a
    OTHER/5 para el bloque afectado.
    """

    def __init__(self, client: Any = None, model: Optional[str] = None, temperature: Optional[float] = None):
        self._client = client
        self.model = model or config.LLM_MODEL
        self.temperature = config.LLM_TEMPERATURE if temperature is None else temperature

    @property
    def client(self):
        if self._client is None:
            self._client = openai.OpenAI(api_key=config.OPENAI_API_KEY or None)
        return self._client

    def classify(self, block: TimeBlock, source_title: str = "") -> Classification:
        return self.classify_batch([block], source_title)[0]

    def classify_batch(self, blocks: Sequence[TimeBlock], source_title: str = "") -> List[Classification]:
        if not blocks:
            return []

        try:
            text = self._complete(self._build_prompt(blocks, source_title))
        except Exception as e:
            logger.warning(f"[Classifier] Error del LLM para '{source_title}': {e}")
            return [FALLBACK_CLASSIFICATION for _ in blocks]

        parsed = self._parse_response(text)
        if parsed is None:
            logger.warning(f"[Classifier] Respuesta sin JSON valido para '{source_title}'")
            return [FALLBACK_CLASSIFICATION for _ in blocks]

        results = []
        for index, block in enumerate(blocks):
            if is_placeholder(block.title):
                results.append(FALLBACK_CLASSIFICATION)
                continue
            item = parsed.get(index)
            category = parse_category(item.get("category")) if item else None
            if category is None:
                results.append(FALLBACK_CLASSIFICATION)
                continue
            priority = item.get("priority")
            results.append(Classification.for_category(category, priority if isinstance(priority, int) else None))
        return results

    def _build_prompt(self, blocks: Sequence[TimeBlock], source_title: str) -> str:
        entries = "\n".join(
            f"{i}. {b.title} ({','.join(b.applicable_days())} {b.start_time}-{b.end_time})"
            for i, b in enumerate(blocks)
        )
        return _LLM_PROMPT.format(source_title=source_title or "-", entries=entries)

    def _complete(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
        )
        return (response.choices[0].message.content or "").strip()

    @staticmethod
    def _parse_response(text: str) -> Optional[Dict[int, Dict[str, Any]]]:
        match = re.search(r"\[[\s\S]*\]", text or "")
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
        if not isinstance(data, list):
            return None
        return {
            item["index"]: item
            for item in data
            if isinstance(item, dict) and isinstance(item.get("index"), int)
        }


def get_classifier(name: Optional[str] = None) -> Classifier:
    """Crear el clasificador configurado ("rules" o "llm")."""
    name = (name or config.CLASSIFIER_BACKEND).strip().lower()
    if name in ("rules", "rule", "default"):
        return RuleBasedClassifier()
    if name in ("llm", "openai"):
        return LLMClassifier()
    raise ValueError(f"Clasificador desconocido: {name!r}")
