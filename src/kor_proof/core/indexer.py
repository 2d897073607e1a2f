from __future__ import annotations

import logging
from typing import Iterator, List, Sequence

from .models import Correction, Occurrence

logger = logging.getLogger(__name__)


def make_unique_id(correction_ref: int, ordinal: int) -> str:
    """
    Стабильный идентификатор вхождения: "{индекс исправления}_{порядковый номер}".
    """
    return f"{correction_ref}_{ordinal}"


def iter_matches(text: str, needle: str) -> Iterator[int]:
    """
    Все позиции вхождения needle в text, включая перекрывающиеся.
    Следующий поиск начинается сразу после начала предыдущего совпадения.
    """
    if not needle:
        return
    pos = text.find(needle)
    while pos != -1:
        yield pos
        pos = text.find(needle, pos + 1)


def find_occurrences(text: str, corrections: Sequence[Correction]) -> List[Occurrence]:
    """
    Находит все вхождения `original` каждого исправления в исходном (необрезанном) тексте.

    Совпадение — точная подстрока, без проверки границ слова: исправление может
    найтись внутри более длинного слова. Исправление без вхождений просто
    пропускается. Результат отсортирован по позиции, затем по индексу исправления.
    """
    occurrences: List[Occurrence] = []

    for ref, correction in enumerate(corrections):
        ordinal = 0
        for pos in iter_matches(text, correction.original):
            occurrences.append(
                Occurrence(
                    correction_ref=ref,
                    absolute_position=pos,
                    length=len(correction.original),
                    unique_id=make_unique_id(ref, ordinal),
                    text=correction.original,
                )
            )
            ordinal += 1
        if ordinal == 0:
            logger.debug("Correction %d (%r) not found in text, dropped", ref, correction.original)

    occurrences.sort(key=lambda o: (o.absolute_position, o.correction_ref))
    logger.debug("Indexed %d occurrences for %d corrections", len(occurrences), len(corrections))
    return occurrences
