from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Sequence

from .models import Correction, unique_suggestions

logger = logging.getLogger(__name__)

_HANGUL_RE = re.compile(r"[가-힣]")
_ASCII_ALNUM_RE = re.compile(r"[0-9a-zA-Z]")
_ASCII_SYMBOL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?~`]")

# Часто путаемые однобуквенные исправления, которые всегда оставляем
_COMMON_SINGLE_CHAR: Dict[str, frozenset] = {
    "되": frozenset({"된", "됨", "돼"}),
    "돼": frozenset({"된", "되"}),
    "안": frozenset({"않"}),
    "않": frozenset({"안"}),
    "의": frozenset({"에", "을", "를"}),
    "에": frozenset({"의", "을"}),
    "을": frozenset({"를", "의"}),
    "를": frozenset({"을", "의"}),
    "이": frozenset({"가", "히"}),
    "가": frozenset({"이", "가"}),
    "히": frozenset({"이", "게"}),
    "게": frozenset({"히", "에"}),
}


def is_meaningful_single_char(original: str, suggestion: str) -> bool:
    """
    Оставлять ли однобуквенное исправление original → suggestion.
    """
    if _ASCII_ALNUM_RE.search(original) and _HANGUL_RE.search(suggestion):
        return True
    if _ASCII_SYMBOL_RE.search(original) and _HANGUL_RE.search(suggestion):
        return True
    if suggestion in _COMMON_SINGLE_CHAR.get(original, ()):
        return True
    return len(suggestion) > 1


def _valid_suggestions(original: str, suggestions: Iterable[str]) -> List[str]:
    return [
        s
        for s in unique_suggestions(list(suggestions))
        if s and s != original and s.strip() != original.strip() and "\ufffd" not in s
    ]


def prepare_corrections(
    corrections: Sequence[Correction],
    *,
    filter_single_char_errors: bool = False,
) -> List[Correction]:
    """
    Подготовка списка исправлений от сервиса проверки перед индексацией:

    - исправления с одинаковым `original` объединяются (help берётся у первого);
    - убираются пустые варианты, варианты, совпадающие с оригиналом, и битые (U+FFFD);
    - дубликаты вариантов удаляются с сохранением порядка;
    - при включённом фильтре отбрасываются бессмысленные однобуквенные замены;
    - исправления без единого варианта удаляются.
    """
    merged: Dict[str, Correction] = {}
    for correction in corrections:
        suggestions = _valid_suggestions(correction.original, correction.corrected)
        if filter_single_char_errors and len(correction.original) == 1:
            kept = [s for s in suggestions if is_meaningful_single_char(correction.original, s)]
            if len(kept) != len(suggestions):
                logger.debug(
                    "Single-char filter on %r: %d -> %d suggestions",
                    correction.original,
                    len(suggestions),
                    len(kept),
                )
            suggestions = kept

        existing = merged.get(correction.original)
        if existing is None:
            merged[correction.original] = Correction(
                original=correction.original,
                corrected=tuple(suggestions),
                help=correction.help,
            )
        else:
            merged[correction.original] = Correction(
                original=existing.original,
                corrected=tuple(unique_suggestions([*existing.corrected, *suggestions])),
                help=existing.help,
            )

    out = [c for c in merged.values() if c.corrected]
    dropped = len(merged) - len(out)
    if dropped:
        logger.debug("Dropped %d corrections without usable suggestions", dropped)
    return out
