"""Rich progress bars for clone and export phases."""

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

PHASE_LABELS = {
    "drop": "Dropping",
    "structure": "Structure",
    "fetch": "Fetching",
    "write": "Writing",
    "export": "Exporting",
}


class RichCloneProgress:
    """``CloneProgress`` implementation backed by ``rich.progress``.

    Use as a context manager so the live display is stopped on errors:

        with RichCloneProgress(console) as progress:
            await clone_database(source, dest, config, progress=progress)
    """

    def __init__(self, console: Console) -> None:
        self._progress = Progress(
            TextColumn("  {task.description:<10}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("[dim]{task.fields[label]}[/dim]"),
            TimeElapsedColumn(),
            console=console,
        )
        self._tasks: dict[str, TaskID] = {}

    def __enter__(self) -> "RichCloneProgress":
        self._progress.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self._progress.stop()

    def start(self, phase: str, total: int) -> None:
        self._tasks[phase] = self._progress.add_task(
            PHASE_LABELS.get(phase, phase), total=total, label=""
        )

    def advance(self, phase: str, label: str = "") -> None:
        task = self._tasks.get(phase)
        if task is not None:
            self._progress.update(task, advance=1, label=label[:20])

    def finish(self, phase: str) -> None:
        task = self._tasks.get(phase)
        if task is not None:
            self._progress.update(task, label="done")
