from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.markup import escape
from rich.table import Table

from kor_proof.core.config import DEFAULT_CONFIG_PATH, SessionConfig, load_session_config
from kor_proof.core.io import load_ai_results, load_corrections, read_text, save_text
from kor_proof.core.normalize import prepare_corrections
from kor_proof.core.pagination import Paginator, chars_per_page_for_viewport
from kor_proof.core.reconstruct import STRATEGIES
from kor_proof.core.session import CorrectionSession
from kor_proof.core.state_machine import UnknownOccurrenceError

app = typer.Typer(no_args_is_help=True, add_completion=False)

_STATE_STYLES = {
    "error": "red",
    "corrected": "green",
    "exception-processed": "blue",
    "original-kept": "magenta",
    "ignored": "yellow",
    "user-edited": "cyan",
}


def _setup(config: Path, verbose: bool) -> SessionConfig:
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    return load_session_config(config)


def _open_session(
    text_path: Path,
    corrections_path: Path,
    cfg: SessionConfig,
    *,
    prepare: bool,
    ignored: Optional[List[str]] = None,
    chars_per_page: Optional[int] = None,
) -> CorrectionSession:
    corrections = load_corrections(corrections_path)
    if prepare:
        corrections = prepare_corrections(corrections, filter_single_char_errors=cfg.filter_single_char_errors)
    return CorrectionSession(
        read_text(text_path),
        corrections,
        ignored_words=ignored or [],
        config=cfg,
        chars_per_page=chars_per_page,
    )


def _preview(text: str, limit: int = 60) -> str:
    value = text.replace("\n", " ").strip()
    if len(value) > limit:
        value = value[:limit].rstrip() + "…"
    return value or "—"


def _state_table(session: CorrectionSession, title: str) -> Table:
    table = Table(title=title)
    table.add_column("id", style="cyan")
    table.add_column("pos", justify="right")
    table.add_column("page", justify="right")
    table.add_column("original")
    table.add_column("suggestions")
    table.add_column("help")
    table.add_column("state")

    pages = {pc.occurrence.unique_id: pc.page_index for pc in session.paginator.page_corrections}
    for occ, correction, state in session.states.items():
        style = _STATE_STYLES.get(state.resolution.value, "white")
        page = pages.get(occ.unique_id)
        table.add_row(
            occ.unique_id,
            str(occ.absolute_position),
            str(page + 1) if page is not None else "—",
            escape(correction.original),
            escape(" | ".join(correction.distinct_corrected)) or "—",
            escape(_preview(correction.help, 40)),
            f"[{style}]{state.resolution.value}[/{style}] {escape(repr(state.current_value))}",
        )
    return table


@app.command("scan")
def scan_cmd(
    text_path: Path = typer.Argument(..., help="Text document (UTF-8)"),
    corrections: Path = typer.Option(..., "--corrections", "-c", help="JSON/JSONL with corrections"),
    ignored: List[str] = typer.Option([], "--ignored", help="Previously ignored word (repeatable)"),
    prepare: bool = typer.Option(True, "--prepare/--no-prepare", help="Merge and filter corrections first"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to session.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    cfg = _setup(config, verbose)
    session = _open_session(text_path, corrections, cfg, prepare=prepare, ignored=ignored)

    print(_state_table(session, title=f"Occurrences in {text_path.name}"))
    suppressed = [m.unique_id for g in session.groups for m in g.suppressed]
    print(
        f"[dim]corrections={len(session.corrections)} occurrences={len(session.occurrences)} "
        f"representatives={len(session.representatives)} pages={session.paginator.total_pages}[/dim]"
    )
    if suppressed:
        print(f"[dim]suppressed by overlap: {', '.join(suppressed)}[/dim]")


@app.command("pages")
def pages_cmd(
    text_path: Path = typer.Argument(..., help="Text document (UTF-8)"),
    chars_per_page: Optional[int] = typer.Option(None, "--chars-per-page", "-n", help="Target page size"),
    height: Optional[float] = typer.Option(None, "--height", help="Preview height in pixels"),
    expanded: bool = typer.Option(False, "--expanded", help="Error panel is expanded"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to session.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    cfg = _setup(config, verbose)
    if chars_per_page is None:
        chars_per_page = chars_per_page_for_viewport(height, expanded, cfg)
    if chars_per_page < 1:
        typer.secho("--chars-per-page must be at least 1.", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    paginator = Paginator(read_text(text_path), cfg)
    paginator.repaginate(chars_per_page)

    table = Table(title=f"Pages ({chars_per_page} chars/page)")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("start", justify="right")
    table.add_column("end", justify="right")
    table.add_column("size", justify="right")
    table.add_column("ends with")
    for page in paginator.pages:
        tail = paginator.trimmed[max(page.start_offset, page.end_offset - 30):page.end_offset]
        table.add_row(
            str(page.index + 1),
            str(page.start_offset),
            str(page.end_offset),
            str(page.size),
            escape(_preview(tail)),
        )
    print(table)


@app.command("apply")
def apply_cmd(
    text_path: Path = typer.Argument(..., help="Text document (UTF-8)"),
    corrections: Path = typer.Option(..., "--corrections", "-c", help="JSON/JSONL with corrections"),
    ignored: List[str] = typer.Option([], "--ignored", help="Previously ignored word (repeatable)"),
    advance: List[str] = typer.Option([], "--advance", "-a", help="Occurrence id to advance (repeatable)"),
    retreat: List[str] = typer.Option([], "--retreat", "-r", help="Occurrence id to step back (repeatable)"),
    ai_results: Optional[Path] = typer.Option(None, "--ai-results", help="JSON/JSONL with AI selections"),
    strategy: Optional[str] = typer.Option(None, "--strategy", help="last_index | offsets"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the edited text here"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Append a JSONL session log"),
    prepare: bool = typer.Option(True, "--prepare/--no-prepare", help="Merge and filter corrections first"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to session.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    if strategy is not None and strategy not in STRATEGIES:
        typer.secho(f"Unknown strategy {strategy!r}; expected one of {', '.join(STRATEGIES)}.", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    cfg = _setup(config, verbose)
    session = _open_session(text_path, corrections, cfg, prepare=prepare, ignored=ignored)

    if ai_results is not None:
        applied = session.apply_ai_results(load_ai_results(ai_results))
        print(f"[green]AI selections applied[/green]: {applied}")

    try:
        for uid in advance:
            session.advance(uid)
        for uid in retreat:
            session.retreat(uid)
    except UnknownOccurrenceError as exc:
        typer.secho(f"Unknown occurrence id: {exc.args[0]}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    result = session.finish(strategy, log_dir=str(log_dir) if log_dir else None)

    print(_state_table(session, title="Final selections"))
    if out is not None:
        save_text(result.final_text, out)
        print(f"[green]Text saved[/green]: {out}")
    else:
        print("[bold cyan]Result[/bold cyan]:")
        typer.echo(result.final_text)

    if result.exception_originals:
        print(f"[blue]Exception words[/blue]: {escape(', '.join(result.exception_originals))}")
    for issue in result.issues:
        print(f"[yellow]Skipped[/yellow] {issue.unique_id} ({escape(repr(issue.original))}): {issue.reason}")


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
