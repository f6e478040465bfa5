"""
Validacion de registros crudos del extractor de horarios.

Los registros mal formados se descartan con un motivo registrado; nunca se
fuerzan a un horario por defecto.
"""

import logging
from typing import Any, Dict, Iterable, List, Tuple

from pydantic import ValidationError

from ..models.results import RejectedRecord
from ..models.time_block import TimeBlock
from ..utils.time_utils import extract_weekly_frequency

logger = logging.getLogger(__name__)


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ())) or "record"
        parts.append(f"{loc}: {error.get('msg')}")
    return "; ".join(parts)


def validate_records(records: Iterable[Dict[str, Any]]) -> Tuple[List[TimeBlock], List[RejectedRecord]]:
    """
    Construir TimeBlocks a partir de registros del extractor.

    Si el registro no trae frecuencia se intenta extraer del titulo
    ("주3회", "3x/week").

    Returns:
        (bloques validos, registros rechazados)
    """
    blocks: List[TimeBlock] = []
    rejected: List[RejectedRecord] = []

    for index, record in enumerate(records):
        if not isinstance(record, dict):
            rejected.append(RejectedRecord(index=index, reason="El registro no es un objeto"))
            logger.warning(f"[Records] #{index} descartado: no es un objeto")
            continue

        data = dict(record)
        if data.get("frequency") is None:
            frequency = extract_weekly_frequency(data.get("title"))
            if frequency is not None:
                data["frequency"] = frequency

        try:
            blocks.append(TimeBlock.model_validate(data))
        except ValidationError as e:
            reason = _format_errors(e)
            rejected.append(RejectedRecord(index=index, record=record, reason=reason))
            logger.warning(f"[Records] #{index} descartado ({record.get('title')!r}): {reason}")

    if rejected:
        logger.info(f"[Records] {len(blocks)} validos, {len(rejected)} descartados")
    return blocks, rejected
