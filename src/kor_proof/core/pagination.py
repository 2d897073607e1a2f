"""Splitting long documents into display pages.

RU: Разбиение длинного текста на страницы по естественным границам
(конец предложения, перевод строки, запятая, пробел) и привязка
вхождений к страницам.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .config import SessionConfig
from .models import Occurrence, Page, PageCorrection

logger = logging.getLogger(__name__)

# (pattern, base score); on equal total score the earlier entry wins, so the
# order matters: comma/semicolon is tried before newline despite its lower base
BREAK_PATTERNS: Tuple[Tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"[.!?]\s+"), 100),  # sentence end + whitespace
    (re.compile(r"[.!?]\Z"), 95),  # sentence end at end of text
    (re.compile(r"[.!?]"), 90),  # bare sentence end
    (re.compile(r"[,;]\s+"), 80),  # comma / semicolon + whitespace
    (re.compile(r"\n\s*"), 85),  # newline
    (re.compile(r"\s{2,}"), 70),  # run of spaces
    (re.compile(r"\s+"), 60),  # single whitespace
)

PROXIMITY_BONUS = 50


def _scan_start(text: str, lo: int) -> int:
    """
    Offset from which a scan yields the same matches ending at or after `lo`
    as a scan of the whole text.

    Every break match is at most one non-whitespace character followed by
    whitespace, so no match crosses a non-whitespace character it does not
    start with.
    """
    start = max(0, lo - 1)
    while start > 0 and text[start - 1].isspace():
        start -= 1
    return max(0, start - 1)


def _match_ends(pattern: re.Pattern[str], text: str, start: int, hi: int) -> Iterator[int]:
    if pattern.pattern.endswith(r"\Z"):
        # anchored at the real end of text; an endpos would move the anchor
        match = pattern.search(text, max(start, len(text) - 1))
        if match is not None and match.end() <= hi:
            yield match.end()
        return
    # matches truncated by endpos end at hi + 1 and are rejected anyway
    for match in pattern.finditer(text, start, min(len(text), hi + 1)):
        yield match.end()


def find_break_point(text: str, target: int, tolerance: int = 200) -> int:
    """
    Best place to end a page of roughly `target` characters.

    Every pattern match whose end falls in [target - tolerance, target + tolerance]
    scores `base + max(0, 50 - |end - target|)`; the single best end offset wins.
    Without any candidate the page is cut exactly at `target`.

    RU: Лучшая точка разрыва около `target`; без кандидатов — жёсткий разрыв в `target`.
    """
    if len(text) <= target:
        return len(text)

    lo = max(0, target - tolerance)
    hi = min(len(text), target + tolerance)

    start = _scan_start(text, lo)

    best_point = target
    best_score = -1
    for pattern, base in BREAK_PATTERNS:
        for end in _match_ends(pattern, text, start, hi):
            if end < lo or end > hi:
                continue
            score = base + max(0, PROXIMITY_BONUS - abs(end - target))
            if score > best_score:
                best_score = score
                best_point = end
    return best_point


def paginate(
    text: str,
    target_chars_per_page: int,
    *,
    single_page_threshold: int = 1000,
    tolerance: int = 200,
) -> List[Page]:
    """
    Partition the trimmed text into pages.

    Text not longer than `single_page_threshold` (or than the target) is one page.
    Otherwise break points are applied to the remaining suffix until it fits.
    """
    if target_chars_per_page < 1:
        raise ValueError("target_chars_per_page must be >= 1")

    total = len(text)
    if total <= single_page_threshold or total <= target_chars_per_page:
        return [Page(index=0, start_offset=0, end_offset=total)]

    pages: List[Page] = []
    pos = 0
    # one char past the search window keeps end-of-text candidates out of range
    window = target_chars_per_page + tolerance + 1
    while pos < total:
        if total - pos <= target_chars_per_page:
            end = total
        else:
            end = pos + find_break_point(text[pos:pos + window], target_chars_per_page, tolerance)
        pages.append(Page(index=len(pages), start_offset=pos, end_offset=end))
        pos = end

    logger.debug(
        "Paginated %d chars into %d pages (target=%d)", total, len(pages), target_chars_per_page
    )
    return pages


def leading_offset(text: str) -> int:
    """Length of the whitespace that `str.strip()` removes from the front."""
    return len(text) - len(text.lstrip())


def map_occurrences_to_pages(
    occurrences: Sequence[Occurrence],
    pages: Sequence[Page],
    *,
    trim_offset: int = 0,
) -> List[PageCorrection]:
    """
    Join each occurrence to the page holding its start.

    Occurrence positions refer to the untrimmed document; `trim_offset` is the
    number of leading characters removed before paginating.
    """
    out: List[PageCorrection] = []
    if not pages:
        return out

    for occ in sorted(occurrences, key=lambda o: (o.absolute_position, o.correction_ref)):
        local = occ.absolute_position - trim_offset
        for page in pages:
            if page.contains(local):
                out.append(
                    PageCorrection(
                        occurrence=occ,
                        page_index=page.index,
                        position_in_page=local - page.start_offset,
                    )
                )
                break
    return out


def page_error_counts(page_corrections: Sequence[PageCorrection], pages: Sequence[Page]) -> Dict[int, int]:
    counts = {page.index: 0 for page in pages}
    for pc in page_corrections:
        counts[pc.page_index] = counts.get(pc.page_index, 0) + 1
    return counts


def chars_per_page_for_viewport(
    available_height: Optional[float],
    error_panel_expanded: bool = False,
    config: Optional[SessionConfig] = None,
) -> int:
    """
    Page size derived from the preview height.

    RU: Размер страницы по высоте области предпросмотра; при развёрнутой
    панели ошибок страницы меньше.
    """
    cfg = config or SessionConfig()
    if not available_height or available_height <= 0:
        return cfg.default_chars_per_page

    lines = math.floor(available_height / cfg.line_height)
    chars = lines * cfg.avg_chars_per_line
    if error_panel_expanded:
        return max(cfg.expanded_min_chars, min(cfg.expanded_max_chars, chars))
    return max(cfg.collapsed_min_chars, min(cfg.collapsed_max_chars, chars))


class Paginator:
    """Pages of one document plus the page currently shown.

    Owns no rendering state; call `repaginate` whenever the target size changes.
    """

    def __init__(self, text: str, config: Optional[SessionConfig] = None) -> None:
        self.config = config or SessionConfig()
        self.text = text
        self.trimmed = text.strip()
        self.trim_offset = leading_offset(text)
        self.chars_per_page = self.config.default_chars_per_page
        self.current_page = 0
        self.pages: List[Page] = []
        self._occurrences: List[Occurrence] = []
        self._page_corrections: List[PageCorrection] = []
        self.repaginate(self.chars_per_page)

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def is_single_page(self) -> bool:
        return len(self.pages) == 1

    def repaginate(self, chars_per_page: int) -> List[Page]:
        self.chars_per_page = chars_per_page
        self.pages = paginate(
            self.trimmed,
            chars_per_page,
            single_page_threshold=self.config.single_page_threshold,
            tolerance=self.config.break_tolerance,
        )
        if self.current_page >= len(self.pages):
            self.current_page = max(0, len(self.pages) - 1)
        self._remap()
        return self.pages

    def attach(self, occurrences: Sequence[Occurrence]) -> None:
        self._occurrences = list(occurrences)
        self._remap()

    def _remap(self) -> None:
        self._page_corrections = map_occurrences_to_pages(
            self._occurrences, self.pages, trim_offset=self.trim_offset
        )

    # ------------- navigation -------------

    def go_to_page(self, index: int) -> bool:
        if index < 0 or index >= len(self.pages):
            logger.debug("Page index %d out of range (total=%d)", index, len(self.pages))
            return False
        self.current_page = index
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.current_page + 1)

    def previous_page(self) -> bool:
        return self.go_to_page(self.current_page - 1)

    # ------------- views -------------

    def page_text(self, index: Optional[int] = None) -> str:
        page = self.pages[self.current_page if index is None else index]
        return self.trimmed[page.start_offset:page.end_offset]

    @property
    def page_corrections(self) -> List[PageCorrection]:
        return list(self._page_corrections)

    def corrections_on_page(self, index: int) -> List[PageCorrection]:
        return [pc for pc in self._page_corrections if pc.page_index == index]

    def current_page_corrections(self) -> List[PageCorrection]:
        return self.corrections_on_page(self.current_page)

    def error_counts(self) -> Dict[int, int]:
        return page_error_counts(self._page_corrections, self.pages)
