"""
================================================================================
EN: Correction session engine
RU: Движок сессии корректуры
================================================================================

EN: One session = one document + one list of corrections. The flow is:
RU: Одна сессия = один документ + один список исправлений. Порядок работы:

    index occurrences → resolve overlaps → init states → paginate
    → user actions (advance / retreat / explicit / edit) → reconstruct

EN: A session is an explicitly constructed object; nothing is shared between
    sessions and everything is discarded together with the object.
RU: Сессия создаётся явно; между сессиями ничего не разделяется, всё
    удаляется вместе с объектом.
================================================================================
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, List, Optional, Sequence

from .config import SessionConfig
from .diagnostics import (
    OccurrenceDiagnostics,
    SessionDiagnostics,
    count_resolutions,
    utc_timestamp,
    write_session_log,
)
from .indexer import find_occurrences
from .models import (
    AIAnalysisResult,
    Correction,
    DisplayClass,
    Occurrence,
    OccurrenceGroup,
    PageCorrection,
    ReconstructionResult,
    ResolutionKind,
)
from .overlap import build_groups
from .pagination import Paginator, chars_per_page_for_viewport
from .reconstruct import reconstruct_text
from .state_machine import CorrectionStateMachine, InvalidSelectionError, Transition

logger = logging.getLogger(__name__)


class CorrectionSession:
    """All state of one correction session."""

    def __init__(
        self,
        text: str,
        corrections: Sequence[Correction],
        *,
        ignored_words: Iterable[str] = (),
        config: Optional[SessionConfig] = None,
        chars_per_page: Optional[int] = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.text = text
        self.corrections: List[Correction] = list(corrections)
        self.ignored_words = frozenset(ignored_words)
        self._started = time.perf_counter()

        # EN: Step 1-2: every occurrence, then one representative per group
        # RU: Шаги 1-2: все вхождения, затем по одному представителю на группу
        self.occurrences: List[Occurrence] = find_occurrences(text, self.corrections)
        self.groups: List[OccurrenceGroup] = build_groups(self.occurrences, self.corrections)
        self.representatives: List[Occurrence] = sorted(
            (g.representative for g in self.groups),
            key=lambda o: (o.absolute_position, o.correction_ref),
        )

        # EN: Step 3: state per representative, seeded from the ignore list
        # RU: Шаг 3: состояние для каждого представителя с учётом списка игнорируемых слов
        self.states = CorrectionStateMachine(self.corrections)
        for occ in self.representatives:
            self.states.initialize(occ, self.corrections[occ.correction_ref].original in self.ignored_words)

        # EN: Step 4: pages over the trimmed text
        # RU: Шаг 4: страницы по обрезанному тексту
        self.paginator = Paginator(text, self.config)
        self.paginator.attach(self.representatives)
        if chars_per_page is not None:
            self.paginator.repaginate(chars_per_page)

        logger.info(
            "Session ready: corrections=%d occurrences=%d representatives=%d pages=%d",
            len(self.corrections),
            len(self.occurrences),
            len(self.representatives),
            self.paginator.total_pages,
        )

    # ------------- per-occurrence actions -------------

    def advance(self, unique_id: str) -> Transition:
        return self.states.advance(unique_id)

    def retreat(self, unique_id: str) -> Transition:
        return self.states.retreat(unique_id)

    def set_explicit(self, unique_id: str, value: str, resolution: ResolutionKind) -> Transition:
        return self.states.set_explicit(unique_id, value, resolution)

    def set_user_edited(self, unique_id: str, value: str) -> Transition:
        return self.states.set_user_edited(unique_id, value)

    def classify(self, unique_id: str) -> ResolutionKind:
        return self.states.classify(unique_id)

    def display_class(self, unique_id: str) -> DisplayClass:
        return self.states.display_class(unique_id)

    # ------------- batch actions -------------

    def _page_ids(self, ids: Optional[Iterable[str]]) -> List[str]:
        if ids is not None:
            return list(ids)
        return [pc.occurrence.unique_id for pc in self.paginator.current_page_corrections()]

    def advance_all(self, ids: Optional[Iterable[str]] = None) -> int:
        """Advance every representative of the current page (or the given ids)."""
        targets = self._page_ids(ids)
        for uid in targets:
            self.states.advance(uid)
        logger.debug("Batch advance: %d items", len(targets))
        return len(targets)

    def retreat_all(self, ids: Optional[Iterable[str]] = None) -> int:
        targets = self._page_ids(ids)
        for uid in targets:
            self.states.retreat(uid)
        logger.debug("Batch retreat: %d items", len(targets))
        return len(targets)

    def apply_ai_results(self, results: Iterable[AIAnalysisResult]) -> int:
        """
        EN: Apply AI selections to every representative of the referenced correction.
        RU: Применяет выбор ИИ ко всем представителям указанного исправления.

        Returns the number of state updates made; unusable results are logged and skipped.
        """
        by_ref: Dict[int, List[Occurrence]] = {}
        for occ in self.representatives:
            by_ref.setdefault(occ.correction_ref, []).append(occ)

        applied = 0
        for result in results:
            if not 0 <= result.correction_index < len(self.corrections):
                logger.warning("AI result for unknown correction index %d skipped", result.correction_index)
                continue
            correction = self.corrections[result.correction_index]

            if result.is_exception_processed:
                value, kind = correction.original, ResolutionKind.EXCEPTION_PROCESSED
            elif result.is_original_kept:
                value, kind = correction.original, ResolutionKind.ORIGINAL_KEPT
            elif result.selected_value == correction.original:
                value, kind = correction.original, ResolutionKind.ERROR
            else:
                value, kind = result.selected_value, ResolutionKind.CORRECTED

            for occ in by_ref.get(result.correction_index, []):
                try:
                    self.states.set_explicit(occ.unique_id, value, kind)
                except InvalidSelectionError as exc:
                    logger.warning("AI result for %s skipped: %s", occ.unique_id, exc)
                    continue
                applied += 1
        return applied

    # ------------- counts -------------

    def error_count(self, *, current_page_only: bool = False) -> int:
        ids = self._page_ids(None) if current_page_only else None
        return self.states.count(ResolutionKind.ERROR, ids)

    # ------------- pagination -------------

    def repaginate(
        self,
        chars_per_page: Optional[int] = None,
        *,
        available_height: Optional[float] = None,
        error_panel_expanded: bool = False,
    ) -> int:
        if chars_per_page is None:
            chars_per_page = chars_per_page_for_viewport(available_height, error_panel_expanded, self.config)
        self.paginator.repaginate(chars_per_page)
        return self.paginator.total_pages

    def page_corrections(self, page_index: Optional[int] = None) -> List[PageCorrection]:
        if page_index is None:
            return self.paginator.current_page_corrections()
        return self.paginator.corrections_on_page(page_index)

    # ------------- output -------------

    def reconstruct(self, strategy: Optional[str] = None) -> ReconstructionResult:
        return reconstruct_text(self.text, self.states.items(), strategy or self.config.reconstruct_strategy)

    def diagnostics(self, result: Optional[ReconstructionResult] = None) -> SessionDiagnostics:
        pages: Dict[str, int] = {
            pc.occurrence.unique_id: pc.page_index for pc in self.paginator.page_corrections
        }
        items = [
            OccurrenceDiagnostics.from_state(occ, corr, state, page_index=pages.get(occ.unique_id))
            for occ, corr, state in self.states.items()
        ]
        return SessionDiagnostics(
            text_length=len(self.text),
            corrections=len(self.corrections),
            occurrences=len(self.occurrences),
            representatives=len(self.representatives),
            pages=self.paginator.total_pages,
            chars_per_page=self.paginator.chars_per_page,
            strategy=self.config.reconstruct_strategy,
            timestamp_utc=utc_timestamp(),
            duration_ms=(time.perf_counter() - self._started) * 1000.0,
            resolution_counts=count_resolutions([state for _, _, state in self.states.items()]),
            exception_originals=self.states.exception_originals(),
            items=items,
            issues=list(result.issues) if result else [],
        )

    def finish(self, strategy: Optional[str] = None, *, log_dir: Optional[str] = None) -> ReconstructionResult:
        """Reconstruct the text and, when a log directory is configured, append the session log."""

        result = self.reconstruct(strategy)
        directory = log_dir or self.config.session_log_dir
        if directory:
            diag = self.diagnostics(result)
            if strategy:
                diag.strategy = strategy
            path = write_session_log(diag, directory)
            logger.info("Session log written: %s", path)
        return result
