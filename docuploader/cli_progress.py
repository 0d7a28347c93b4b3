"""Console rendering and progress helpers for docuploader CLI."""
from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table

from .models import Completed, Deleting, OutcomeKind, UploadOutcome, Uploading
from .orchestrator.core import UploadSession

console = Console()

_PALETTE = {
    OutcomeKind.SUCCESS: ("DONE", "green"),
    OutcomeKind.ERROR: ("FAIL", "red"),
    OutcomeKind.SKIPPED: ("SKIP", "yellow"),
    OutcomeKind.PROCESSING: ("...", "cyan"),
}


def _echo(message: str) -> None:
    console.print(message)


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]docs-up[/bold green]",
        subtitle="[dim]docuploader CLI[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_sections(folder: Path, sections: Sequence[str], patterns: Dict[str, Sequence[str]]) -> None:
    if not sections:
        _echo(f"[yellow]No sections defined for[/yellow] {folder}")
        return
    table = Table(title=f"Sections in {folder}")
    table.add_column("Section", style="bold cyan")
    table.add_column("Patterns")
    for section in sections:
        table.add_row(section, "\n".join(patterns.get(section, [])) or "[dim](none)[/dim]")
    console.print(table)


def render_file_list(root: Path, files: Iterable[Path]) -> int:
    count = 0
    for path in files:
        try:
            label = path.relative_to(root).as_posix()
        except ValueError:
            label = str(path)
        _echo(f"  {label}")
        count += 1
    _echo(f"[bold]{count}[/bold] eligible files")
    return count


def render_history(history: Sequence[UploadOutcome], only_problems: bool = False) -> None:
    """Render the per-file outcome list of a finished run."""
    table = Table(show_lines=False)
    table.add_column("Status", no_wrap=True)
    table.add_column("File", style="bold")
    table.add_column("Details", overflow="fold")

    rows = 0
    for outcome in history:
        if outcome.kind is OutcomeKind.PROCESSING:
            continue
        if only_problems and outcome.kind is OutcomeKind.SUCCESS:
            continue
        label, color = _PALETTE[outcome.kind]
        table.add_row(f"[{color}]{label}[/{color}]", outcome.name, outcome.reason or "")
        rows += 1

    if rows:
        console.print(table)


class RunProgressDisplay:
    """Polling-driven progress bar for an UploadSession run."""

    def __init__(self, verbose: bool = False):
        self._verbose = verbose
        self._seen = 0
        self._task_id: Optional[TaskID] = None
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=36),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            expand=False,
            console=console,
        )
        self._live: Optional[Live] = None

    def start(self) -> None:
        if self._live is not None:
            return
        self._live = Live(self._progress, console=console, refresh_per_second=8)
        self._live.start()
        self._task_id = self._progress.add_task("run", label="Starting", total=1, completed=0, detail="")

    def stop(self) -> None:
        if self._live is None:
            return
        self._live.stop()
        self._live = None

    def _emit_timeline(self, outcome: UploadOutcome) -> None:
        label, color = _PALETTE[outcome.kind]
        stamp = time.strftime("%H:%M:%S")
        cause = f" cause={outcome.reason}" if outcome.reason else ""
        self._progress.console.print(f"[dim]{stamp}[/dim] [{color}]{label:<4}[/{color}] {outcome.name}{cause}")

    def update(self, session: UploadSession) -> None:
        self.start()
        aggregator = session.progress
        state = aggregator.state

        for outcome in aggregator.history[self._seen:]:
            if outcome.kind is OutcomeKind.ERROR or (self._verbose and outcome.is_terminal):
                self._emit_timeline(outcome)
        self._seen = len(aggregator.history)

        if isinstance(state, Uploading):
            label, completed, total = "Uploading", state.current, state.total
        elif isinstance(state, Deleting):
            label, completed, total = "Deleting", state.current, state.total
        elif isinstance(state, Completed):
            label, completed, total = "Finished", state.total, state.total
        else:
            return

        self._progress.update(
            self._task_id,
            label=label,
            completed=completed,
            total=max(total, 1),
            detail=(aggregator.current_file or "")[:60],
        )

    def finish(self, session: UploadSession) -> None:
        self.update(session)
        self.stop()
        aggregator = session.progress
        color = "red" if aggregator.has_errors else "green"
        _echo(f"[bold {color}]{aggregator.status_text}[/bold {color}]")
        if aggregator.error_message:
            _echo(f"[red]{aggregator.error_message}[/red]")
