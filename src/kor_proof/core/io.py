"""
File input/output for the correction session.
Файловый ввод/вывод для сессии корректуры.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .models import AIAnalysisResult, Correction


def read_text(path: str | Path) -> str:
    """
    Read a UTF-8 document without touching its whitespace.
    Читает документ в UTF-8, не изменяя пробелы.
    """
    return Path(path).read_text(encoding="utf-8")


def save_text(text: str, out_path: str | Path) -> None:
    """
    Save text to a file.
    Сохраняет текст в файл.
    """
    out_p = Path(out_path)
    # Create parent directories if they don't exist
    # Создаем родительские директории, если их нет
    out_p.parent.mkdir(parents=True, exist_ok=True)
    out_p.write_text(text, encoding="utf-8")


def save_jsonl(rows: Iterable[Dict], out_path: str | Path) -> None:
    """
    Save data as JSON Lines format (one JSON object per line).
    Сохраняет данные в формате JSON Lines (один JSON объект на строку).
    """
    out_p = Path(out_path)
    out_p.parent.mkdir(parents=True, exist_ok=True)

    with out_p.open("w", encoding="utf-8") as f:
        for row in rows:
            # ensure_ascii=False keeps Hangul readable
            # ensure_ascii=False сохраняет хангыль читаемым
            f.write(json.dumps(row, ensure_ascii=False) + "\n")


def _read_records(path: str | Path) -> List[Dict[str, Any]]:
    """
    JSON array, JSON object with a list under "corrections"/"results", or JSONL.
    JSON-массив, JSON-объект со списком в "corrections"/"results" или JSONL.
    """
    p = Path(path)
    raw = p.read_text(encoding="utf-8").strip()
    if not raw:
        return []

    if p.suffix.lower() != ".jsonl":
        data = json.loads(raw)
        if isinstance(data, dict):
            for key in ("corrections", "results"):
                if isinstance(data.get(key), list):
                    return data[key]
            raise ValueError(f"{p}: expected a list under 'corrections' or 'results'")
        if not isinstance(data, list):
            raise ValueError(f"{p}: expected a JSON array")
        return data

    rows: List[Dict[str, Any]] = []
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        rows.append(json.loads(line))
    return rows


def load_corrections(path: str | Path) -> List[Correction]:
    return [Correction.from_dict(row) for row in _read_records(path)]


def load_ai_results(path: str | Path) -> List[AIAnalysisResult]:
    return [AIAnalysisResult.from_dict(row) for row in _read_records(path)]
