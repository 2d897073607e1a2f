from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .models import CorrectionState, Correction, Occurrence, ReconstructionIssue, ResolutionKind


def _safe_preview(text: str, limit: int = 80) -> str:
    value = (text or "").strip()
    if len(value) <= limit:
        return value
    return value[:limit].rstrip() + "…"


@dataclass
class OccurrenceDiagnostics:
    """
    Snapshot of one representative at the end of a session.
    """

    unique_id: str
    position: int
    original: str
    selected_value: str
    resolution: str
    help: str = ""
    page_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unique_id": self.unique_id,
            "position": self.position,
            "original": self.original,
            "selected_value": self.selected_value,
            "resolution": self.resolution,
            "help": self.help,
            "page_index": self.page_index,
        }

    @classmethod
    def from_state(
        cls,
        occurrence: Occurrence,
        correction: Correction,
        state: CorrectionState,
        *,
        page_index: Optional[int] = None,
    ) -> "OccurrenceDiagnostics":
        return cls(
            unique_id=occurrence.unique_id,
            position=occurrence.absolute_position,
            original=correction.original,
            selected_value=state.current_value,
            resolution=state.resolution.value,
            help=_safe_preview(correction.help),
            page_index=page_index,
        )


@dataclass
class SessionDiagnostics:
    """
    Aggregated diagnostics for a single correction session.
    """

    text_length: int
    corrections: int
    occurrences: int
    representatives: int
    pages: int
    chars_per_page: int
    strategy: str
    timestamp_utc: str
    duration_ms: Optional[float]
    resolution_counts: Dict[str, int] = field(default_factory=dict)
    exception_originals: List[str] = field(default_factory=list)
    items: List[OccurrenceDiagnostics] = field(default_factory=list)
    issues: List[ReconstructionIssue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text_length": self.text_length,
            "corrections": self.corrections,
            "occurrences": self.occurrences,
            "representatives": self.representatives,
            "pages": self.pages,
            "chars_per_page": self.chars_per_page,
            "strategy": self.strategy,
            "timestamp_utc": self.timestamp_utc,
            "duration_ms": self.duration_ms,
            "resolution_counts": dict(self.resolution_counts),
            "exception_originals": list(self.exception_originals),
            "items": [i.to_dict() for i in self.items],
            "issues": [i.to_dict() for i in self.issues],
        }


def count_resolutions(states: Sequence[CorrectionState]) -> Dict[str, int]:
    counts = {kind.value: 0 for kind in ResolutionKind}
    for state in states:
        counts[state.resolution.value] += 1
    return counts


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def write_session_log(diagnostics: SessionDiagnostics, directory: str | Path) -> Path:
    """
    Append diagnostics as JSONL into <directory>/YYYY-MM-DD.jsonl.
    """

    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc)
    log_path = out_dir / f"{ts:%Y-%m-%d}.jsonl"
    payload = diagnostics.to_dict()

    with log_path.open("a", encoding="utf-8") as fp:
        fp.write(json.dumps(payload, ensure_ascii=False) + "\n")

    return log_path
