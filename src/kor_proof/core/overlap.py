from __future__ import annotations

import logging
from itertools import groupby
from typing import Callable, List, Sequence, Tuple

from .models import Correction, Occurrence, OccurrenceGroup

logger = logging.getLogger(__name__)

# Порядок важен: первая совпавшая категория определяет приоритет
_HELP_KEYWORDS: Tuple[Tuple[int, Tuple[str, ...]], ...] = (
    (3, ("문법", "grammar")),
    (2, ("맞춤법", "spelling", "spell", "오타")),
    (1, ("띄어쓰기", "띄어", "spacing")),
)


def help_priority(help_text: str) -> int:
    """
    Приоритет пояснения: грамматика (3) > орфография (2) > пробелы (1) > прочее (0).
    Классификация по вхождению ключевого слова, без учёта регистра.
    """
    low = (help_text or "").lower()
    for score, keywords in _HELP_KEYWORDS:
        if any(k in low for k in keywords):
            return score
    return 0


def _contains_either(a: Occurrence, b: Occurrence) -> bool:
    return a.text in b.text or b.text in a.text


def group_occurrences(occurrences: Sequence[Occurrence]) -> List[List[Occurrence]]:
    """
    Группирует вхождения с одинаковой начальной позицией, тексты которых
    содержат друг друга (транзитивно). Вхождения с разными позициями всегда
    попадают в разные группы, даже при частичном перекрытии.
    """
    order = {o.unique_id: i for i, o in enumerate(occurrences)}
    groups: List[List[Occurrence]] = []
    ordered = sorted(occurrences, key=lambda o: o.absolute_position)

    for _, same_start in groupby(ordered, key=lambda o: o.absolute_position):
        bucket: List[List[Occurrence]] = []
        for occ in same_start:
            linked = [g for g in bucket if any(_contains_either(occ, m) for m in g)]
            # Новое вхождение может связать несколько групп в одну
            merged = [occ] + [m for g in linked for m in g]
            bucket = [g for g in bucket if not any(g is other for other in linked)]
            merged.sort(key=lambda o: order[o.unique_id])
            bucket.append(merged)
        bucket.sort(key=lambda g: order[g[0].unique_id])
        groups.extend(bucket)
    return groups


def pick_representative(group: Sequence[Occurrence], corrections: Sequence[Correction]) -> Occurrence:
    """
    Выбор представителя группы, строго по порядку правил:
      1. минимальная позиция (внутри группы совпадает у всех);
      2. наибольшее число различных вариантов исправления;
      3. наибольший приоритет пояснения (help_priority);
      4. первый кандидат в исходном порядке.
    Каждое правило сужает набор; остановка, как только остался один кандидат.
    """
    rules: List[Callable[[Occurrence], int]] = [
        lambda o: -o.absolute_position,
        lambda o: len(corrections[o.correction_ref].distinct_corrected),
        lambda o: help_priority(corrections[o.correction_ref].help),
    ]

    candidates = list(group)
    for rule in rules:
        if len(candidates) == 1:
            break
        best = max(rule(c) for c in candidates)
        candidates = [c for c in candidates if rule(c) == best]
    return candidates[0]


def build_groups(occurrences: Sequence[Occurrence], corrections: Sequence[Correction]) -> List[OccurrenceGroup]:
    out: List[OccurrenceGroup] = []
    for members in group_occurrences(occurrences):
        rep = pick_representative(members, corrections)
        out.append(OccurrenceGroup(position=rep.absolute_position, members=members, representative=rep))
        if len(members) > 1:
            logger.debug(
                "Overlap at %d: %s -> representative %s",
                rep.absolute_position,
                [m.unique_id for m in members],
                rep.unique_id,
            )
    return out


def resolve_overlaps(occurrences: Sequence[Occurrence], corrections: Sequence[Correction]) -> List[Occurrence]:
    """
    Один представитель на каждую группу, отсортированный по позиции.
    """
    reps = [g.representative for g in build_groups(occurrences, corrections)]
    reps.sort(key=lambda o: (o.absolute_position, o.correction_ref))
    return reps
