"""Data model of a correction session.

RU: Модель данных сессии корректуры: исправления, вхождения, состояния, страницы.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


def unique_suggestions(values: Sequence[str]) -> List[str]:
    """Order-preserving de-duplication."""

    seen = set()
    out: List[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


@dataclass(frozen=True)
class Correction:
    """A flagged span reported by the grammar checker plus its suggestions."""

    original: str
    corrected: Tuple[str, ...]
    help: str = ""

    def __post_init__(self) -> None:
        # Accept any sequence (lists from JSON) but store a tuple
        object.__setattr__(self, "corrected", tuple(self.corrected))

    @property
    def suggestions(self) -> List[str]:
        """`[original, *corrected]` without duplicates; index 0 is always `original`."""
        return unique_suggestions([self.original, *self.corrected])

    @property
    def distinct_corrected(self) -> List[str]:
        return self.suggestions[1:]

    def to_dict(self) -> Dict[str, Any]:
        return {"original": self.original, "corrected": list(self.corrected), "help": self.help}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Correction":
        if not isinstance(payload, dict) or "original" not in payload:
            raise ValueError(f"correction payload must be a mapping with 'original': {payload!r}")
        corrected = payload.get("corrected") or []
        if isinstance(corrected, str):
            corrected = [corrected]
        return cls(
            original=str(payload["original"]),
            corrected=tuple(str(c) for c in corrected),
            help=str(payload.get("help") or ""),
        )


@dataclass(frozen=True)
class Occurrence:
    """One concrete appearance of a correction's `original` inside the document."""

    correction_ref: int
    absolute_position: int
    length: int
    unique_id: str
    text: str

    @property
    def end(self) -> int:
        return self.absolute_position + self.length


@dataclass
class OccurrenceGroup:
    """Occurrences sharing a start position whose texts contain one another."""

    position: int
    members: List[Occurrence]
    representative: Occurrence

    @property
    def suppressed(self) -> List[Occurrence]:
        return [m for m in self.members if m is not self.representative]


class ResolutionKind(str, Enum):
    ERROR = "error"
    CORRECTED = "corrected"
    EXCEPTION_PROCESSED = "exception-processed"
    ORIGINAL_KEPT = "original-kept"
    IGNORED = "ignored"
    USER_EDITED = "user-edited"


# CSS classes used by the preview renderer
class DisplayClass(str, Enum):
    ERROR = "spell-error"
    CORRECTED = "spell-corrected"
    EXCEPTION_PROCESSED = "spell-exception-processed"
    ORIGINAL_KEPT = "spell-original-kept"
    IGNORED = "spell-ignored"
    USER_EDITED = "spell-user-edited"


DISPLAY_CLASSES: Dict[ResolutionKind, DisplayClass] = {
    ResolutionKind.ERROR: DisplayClass.ERROR,
    ResolutionKind.CORRECTED: DisplayClass.CORRECTED,
    ResolutionKind.EXCEPTION_PROCESSED: DisplayClass.EXCEPTION_PROCESSED,
    ResolutionKind.ORIGINAL_KEPT: DisplayClass.ORIGINAL_KEPT,
    ResolutionKind.IGNORED: DisplayClass.IGNORED,
    ResolutionKind.USER_EDITED: DisplayClass.USER_EDITED,
}


@dataclass
class CorrectionState:
    """Mutable per-representative state."""

    current_value: str
    resolution: ResolutionKind
    was_initially_ignored: bool = False


@dataclass(frozen=True)
class Page:
    """Half-open slice `[start_offset, end_offset)` of the trimmed document."""

    index: int
    start_offset: int
    end_offset: int

    @property
    def size(self) -> int:
        return self.end_offset - self.start_offset

    def contains(self, offset: int) -> bool:
        return self.start_offset <= offset < self.end_offset


@dataclass(frozen=True)
class PageCorrection:
    """A representative occurrence joined to the page that holds its start."""

    occurrence: Occurrence
    page_index: int
    position_in_page: int


@dataclass(frozen=True)
class AIAnalysisResult:
    """Selection proposed by the AI-reasoning service for one correction."""

    correction_index: int
    selected_value: str
    is_exception_processed: bool = False
    is_original_kept: bool = False
    confidence: int = 0
    reasoning: str = ""

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AIAnalysisResult":
        # The service answers in camelCase, files written by hand may use snake_case
        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in payload:
                    return payload[key]
            return default

        index = pick("correctionIndex", "correction_index")
        if index is None:
            raise ValueError(f"AI result without correction index: {payload!r}")
        return cls(
            correction_index=int(index),
            selected_value=str(pick("selectedValue", "selected_value", default="")),
            is_exception_processed=bool(pick("isExceptionProcessed", "is_exception_processed", default=False)),
            is_original_kept=bool(pick("isOriginalKept", "is_original_kept", default=False)),
            confidence=int(pick("confidence", default=0) or 0),
            reasoning=str(pick("reasoning", default="") or ""),
        )


@dataclass
class ReconstructionIssue:
    """A selection that could not be written back into the text."""

    unique_id: str
    original: str
    selected_value: str
    reason: str
    position: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unique_id": self.unique_id,
            "original": self.original,
            "selected_value": self.selected_value,
            "reason": self.reason,
            "position": self.position,
        }


@dataclass
class ReconstructionResult:
    final_text: str
    exception_originals: List[str] = field(default_factory=list)
    issues: List[ReconstructionIssue] = field(default_factory=list)
