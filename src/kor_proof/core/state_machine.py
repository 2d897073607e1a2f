"""Per-occurrence resolution state and the click cycle.

RU: Состояние каждого вхождения и цикл переключения по клику.

Forward cycle for a regular word:
    Error -> Corrected(s1) -> ... -> Corrected(sn) -> ExceptionProcessed -> Error
For a word from the ignore list the cycle passes through Ignored:
    Ignored -> Error -> ... -> ExceptionProcessed -> Ignored
`retreat` walks the same cycle backwards.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    DISPLAY_CLASSES,
    Correction,
    CorrectionState,
    DisplayClass,
    Occurrence,
    ResolutionKind,
)

logger = logging.getLogger(__name__)

Transition = Tuple[str, ResolutionKind]


class UnknownOccurrenceError(KeyError):
    """Per-occurrence call with an id the state table does not hold (UI/state desync)."""


class InvalidSelectionError(ValueError):
    """Explicit selection that breaks the value/resolution invariant."""


# Resolutions whose value must be the untouched original text
_ORIGINAL_VALUED = frozenset(
    {
        ResolutionKind.ERROR,
        ResolutionKind.EXCEPTION_PROCESSED,
        ResolutionKind.ORIGINAL_KEPT,
        ResolutionKind.IGNORED,
    }
)


class CorrectionStateMachine:
    """State table keyed by occurrence `unique_id`.

    Not internally synchronized: callers serialize access per session.
    """

    def __init__(self, corrections: Sequence[Correction]) -> None:
        self._corrections = list(corrections)
        self._occurrences: Dict[str, Occurrence] = {}
        self._states: Dict[str, CorrectionState] = {}

    # ------------- setup -------------

    def initialize(self, occurrence: Occurrence, is_in_ignore_list: bool) -> CorrectionState:
        correction = self._corrections[occurrence.correction_ref]
        state = CorrectionState(
            current_value=correction.original,
            resolution=ResolutionKind.IGNORED if is_in_ignore_list else ResolutionKind.ERROR,
            was_initially_ignored=is_in_ignore_list,
        )
        self._occurrences[occurrence.unique_id] = occurrence
        self._states[occurrence.unique_id] = state
        logger.debug(
            "Initialized %s (%r) as %s", occurrence.unique_id, correction.original, state.resolution.value
        )
        return state

    # ------------- lookup -------------

    def __contains__(self, unique_id: object) -> bool:
        return unique_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    @property
    def ids(self) -> List[str]:
        return list(self._states)

    def state(self, unique_id: str) -> CorrectionState:
        try:
            return self._states[unique_id]
        except KeyError:
            raise UnknownOccurrenceError(unique_id) from None

    def occurrence(self, unique_id: str) -> Occurrence:
        self.state(unique_id)
        return self._occurrences[unique_id]

    def correction(self, unique_id: str) -> Correction:
        return self._corrections[self.occurrence(unique_id).correction_ref]

    def suggestions(self, unique_id: str) -> List[str]:
        return self.correction(unique_id).suggestions

    def items(self) -> Iterable[Tuple[Occurrence, Correction, CorrectionState]]:
        for uid, state in self._states.items():
            occ = self._occurrences[uid]
            yield occ, self._corrections[occ.correction_ref], state

    # ------------- transitions -------------

    def advance(self, unique_id: str) -> Transition:
        state = self.state(unique_id)
        correction = self.correction(unique_id)
        value, resolution = self._next(state, correction)
        return self._commit(unique_id, state, value, resolution, "advance")

    def retreat(self, unique_id: str) -> Transition:
        state = self.state(unique_id)
        correction = self.correction(unique_id)
        value, resolution = self._prev(state, correction)
        return self._commit(unique_id, state, value, resolution, "retreat")

    def set_explicit(self, unique_id: str, value: str, resolution: ResolutionKind) -> Transition:
        """Direct overwrite (AI analysis, suggestion buttons)."""

        state = self.state(unique_id)
        correction = self.correction(unique_id)
        resolution = ResolutionKind(resolution)

        if resolution is ResolutionKind.USER_EDITED:
            raise InvalidSelectionError("use set_user_edited() for free-form values")
        if resolution in _ORIGINAL_VALUED and value != correction.original:
            raise InvalidSelectionError(
                f"{resolution.value} requires the original value {correction.original!r}, got {value!r}"
            )
        if resolution is ResolutionKind.CORRECTED and value not in correction.distinct_corrected:
            raise InvalidSelectionError(f"{value!r} is not a suggestion for {correction.original!r}")

        return self._commit(unique_id, state, value, resolution, "set")

    def set_user_edited(self, unique_id: str, value: str) -> Transition:
        state = self.state(unique_id)
        return self._commit(unique_id, state, value, ResolutionKind.USER_EDITED, "edit")

    def _commit(
        self,
        unique_id: str,
        state: CorrectionState,
        value: str,
        resolution: ResolutionKind,
        action: str,
    ) -> Transition:
        logger.debug(
            "[%s] %s: %s(%r) -> %s(%r)",
            action,
            unique_id,
            state.resolution.value,
            state.current_value,
            resolution.value,
            value,
        )
        state.current_value = value
        state.resolution = resolution
        return value, resolution

    @staticmethod
    def _position(state: CorrectionState, suggestions: List[str], missing: int) -> int:
        try:
            return suggestions.index(state.current_value)
        except ValueError:
            return missing

    @staticmethod
    def _land(suggestions: List[str], i: int) -> Transition:
        if i == 0:
            return suggestions[0], ResolutionKind.ERROR
        return suggestions[i], ResolutionKind.CORRECTED

    def _next(self, state: CorrectionState, correction: Correction) -> Transition:
        original = correction.original
        kind = state.resolution

        if kind is ResolutionKind.IGNORED:
            return original, ResolutionKind.ERROR
        if kind is ResolutionKind.EXCEPTION_PROCESSED:
            if state.was_initially_ignored:
                return original, ResolutionKind.IGNORED
            return original, ResolutionKind.ERROR

        # Error / Corrected, and UserEdited / OriginalKept re-entering the cycle
        suggestions = correction.suggestions
        i = self._position(state, suggestions, missing=-1) + 1
        if i >= len(suggestions):
            return original, ResolutionKind.EXCEPTION_PROCESSED
        return self._land(suggestions, i)

    def _prev(self, state: CorrectionState, correction: Correction) -> Transition:
        original = correction.original
        kind = state.resolution
        suggestions = correction.suggestions

        if kind is ResolutionKind.IGNORED:
            return original, ResolutionKind.EXCEPTION_PROCESSED
        if kind is ResolutionKind.EXCEPTION_PROCESSED:
            return self._land(suggestions, len(suggestions) - 1)

        i = self._position(state, suggestions, missing=len(suggestions)) - 1
        if i < 0:
            if state.was_initially_ignored:
                return original, ResolutionKind.IGNORED
            return original, ResolutionKind.EXCEPTION_PROCESSED
        return self._land(suggestions, i)

    # ------------- projections -------------

    def classify(self, unique_id: str) -> ResolutionKind:
        """Render class, taken from the resolution, never from value comparison."""
        return self.state(unique_id).resolution

    def display_class(self, unique_id: str) -> DisplayClass:
        return DISPLAY_CLASSES[self.classify(unique_id)]

    def is_selected(self, unique_id: str, value: str) -> bool:
        """Whether the suggestion button for `value` is highlighted."""

        state = self.state(unique_id)
        if value == self.correction(unique_id).original:
            return state.resolution is ResolutionKind.EXCEPTION_PROCESSED
        return state.current_value == value and state.resolution in (
            ResolutionKind.CORRECTED,
            ResolutionKind.USER_EDITED,
        )

    def count(self, resolution: ResolutionKind, ids: Optional[Iterable[str]] = None) -> int:
        keys = self._states if ids is None else ids
        return sum(1 for uid in keys if self.state(uid).resolution is resolution)

    def exception_originals(self) -> List[str]:
        out: List[str] = []
        ordered = sorted(self.items(), key=lambda item: item[0].absolute_position)
        for _, correction, state in ordered:
            if state.resolution is ResolutionKind.EXCEPTION_PROCESSED and correction.original not in out:
                out.append(correction.original)
        return out
