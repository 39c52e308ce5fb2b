"""Console logging and progress helpers shared by the indexer and searcher."""

from typing import Any, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .debug import DebugLogger
from .symbols import SYMBOLS

# stderr keeps stdout free for callers that pipe search results as JSON
console = Console(stderr=True, legacy_windows=False)
error_console = Console(stderr=True, legacy_windows=False)


def create_progress_bar(description: str = "Processing", total: Optional[int] = None) -> tuple[Progress, TaskID]:
    """Create a progress bar for one indexing phase (chunking, embedding).

    The caller enters the returned Progress as a context manager and advances
    the task as files or chunks are processed.

    Returns:
        Tuple of (Progress instance, TaskID)
    """
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    )
    return progress, progress.add_task(description, total=total)


def update_progress(
    progress: Progress,
    task_id: TaskID,
    advance: int = 1,
    description: Optional[str] = None,
) -> None:
    """Advance a progress bar, optionally replacing its description."""
    if description:
        progress.update(task_id, description=description)
    progress.advance(task_id, advance)


def _emit(target: Console, style: str, symbol: str, message: str, **kwargs: Any) -> None:
    target.print(f"[{style}]{SYMBOLS[symbol]}[/{style}] {message}", **kwargs)


def log_info(message: str, **kwargs: Any) -> None:
    """Log an info message; extra kwargs go to ``Console.print``."""
    _emit(console, "blue", "info", message, **kwargs)


def log_warning(message: str, **kwargs: Any) -> None:
    _emit(console, "yellow", "warning", message, **kwargs)


def log_error(message: str, **kwargs: Any) -> None:
    _emit(error_console, "red", "error", message, **kwargs)


def log_success(message: str, **kwargs: Any) -> None:
    _emit(console, "green", "success", message, **kwargs)


def log_debug(message: str) -> None:
    """Print a dimmed line, only when debug logging is enabled."""
    if DebugLogger.is_enabled():
        console.print(f"[dim]debug: {message}[/dim]")
