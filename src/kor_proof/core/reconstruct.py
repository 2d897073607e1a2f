"""Writing the final selections back into the document.

RU: Сборка итогового текста из выбранных значений.

Two strategies:
  * ``last_index`` walks representatives right to left and replaces the
    rightmost remaining occurrence of ``original`` in the partially edited
    text. This is the behavior users have always seen; with repeated identical
    flagged text it can edit a different copy than the one selected.
  * ``offsets`` rebuilds the text once from the offsets recorded at indexing
    time, so each edit lands exactly where its occurrence was found.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from .models import (
    Correction,
    CorrectionState,
    Occurrence,
    ReconstructionIssue,
    ReconstructionResult,
    ResolutionKind,
)

logger = logging.getLogger(__name__)

Entry = Tuple[Occurrence, Correction, CorrectionState]

STRATEGIES = ("last_index", "offsets")


def _rightmost_first(entries: Iterable[Entry]) -> List[Entry]:
    return sorted(entries, key=lambda e: (e[0].absolute_position, e[0].correction_ref), reverse=True)


def _collect_exceptions(ordered: Sequence[Entry]) -> List[str]:
    out: List[str] = []
    for _, correction, state in ordered:
        if state.resolution is ResolutionKind.EXCEPTION_PROCESSED and correction.original not in out:
            out.append(correction.original)
    return out


def _pending_edits(original_text: str, ordered: Sequence[Entry], issues: List[ReconstructionIssue]) -> List[Entry]:
    """Entries that change text and whose recorded offset still holds `original`."""

    edits: List[Entry] = []
    for occ, correction, state in ordered:
        if state.resolution is ResolutionKind.EXCEPTION_PROCESSED:
            continue
        if state.current_value == correction.original:
            continue
        if original_text[occ.absolute_position:occ.end] != correction.original:
            issues.append(
                ReconstructionIssue(
                    unique_id=occ.unique_id,
                    original=correction.original,
                    selected_value=state.current_value,
                    reason="text at recorded offset no longer matches original",
                    position=occ.absolute_position,
                )
            )
            continue
        edits.append((occ, correction, state))
    return edits


def reconstruct(original_text: str, entries: Iterable[Entry]) -> ReconstructionResult:
    """Right-to-left replacement of the rightmost remaining match."""

    ordered = _rightmost_first(entries)
    issues: List[ReconstructionIssue] = []
    final_text = original_text

    for occ, correction, state in _pending_edits(original_text, ordered, issues):
        idx = final_text.rfind(correction.original)
        if idx == -1:
            issues.append(
                ReconstructionIssue(
                    unique_id=occ.unique_id,
                    original=correction.original,
                    selected_value=state.current_value,
                    reason="original text not found in partially edited text",
                    position=occ.absolute_position,
                )
            )
            continue
        if idx != occ.absolute_position:
            logger.debug(
                "%s: replacing %r at %d instead of recorded %d",
                occ.unique_id,
                correction.original,
                idx,
                occ.absolute_position,
            )
        final_text = final_text[:idx] + state.current_value + final_text[idx + len(correction.original):]

    for issue in issues:
        logger.warning("Skipped %s (%r): %s", issue.unique_id, issue.original, issue.reason)

    return ReconstructionResult(
        final_text=final_text,
        exception_originals=_collect_exceptions(ordered),
        issues=issues,
    )


def reconstruct_by_offsets(original_text: str, entries: Iterable[Entry]) -> ReconstructionResult:
    """Single left-to-right rebuild keyed by the recorded original offsets."""

    ordered = _rightmost_first(entries)
    issues: List[ReconstructionIssue] = []
    edits = sorted(
        _pending_edits(original_text, ordered, issues),
        key=lambda e: (e[0].absolute_position, e[0].correction_ref),
    )

    pieces: List[str] = []
    cursor = 0
    for occ, correction, state in edits:
        if occ.absolute_position < cursor:
            issues.append(
                ReconstructionIssue(
                    unique_id=occ.unique_id,
                    original=correction.original,
                    selected_value=state.current_value,
                    reason="overlaps an edit already applied",
                    position=occ.absolute_position,
                )
            )
            continue
        pieces.append(original_text[cursor:occ.absolute_position])
        pieces.append(state.current_value)
        cursor = occ.end
    pieces.append(original_text[cursor:])

    for issue in issues:
        logger.warning("Skipped %s (%r): %s", issue.unique_id, issue.original, issue.reason)

    return ReconstructionResult(
        final_text="".join(pieces),
        exception_originals=_collect_exceptions(ordered),
        issues=issues,
    )


def reconstruct_text(original_text: str, entries: Iterable[Entry], strategy: str = "last_index") -> ReconstructionResult:
    if strategy == "last_index":
        return reconstruct(original_text, entries)
    if strategy == "offsets":
        return reconstruct_by_offsets(original_text, entries)
    raise ValueError(f"unknown reconstruct strategy {strategy!r}, expected one of {STRATEGIES}")
