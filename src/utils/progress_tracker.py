"""
Progress Tracker Module

Wraps rich library for the batch progress bar and holds the single
(completed, total, message) progress triple that reporting layers read.

Example Usage:
    from src.utils.progress_tracker import ProgressTracker

    tracker = ProgressTracker(on_progress=lambda c, t, m: print(c, t, m))

    # Start phase
    tracker.start_phase("Perturbation testing", total_items=16)

    # Advance after each run
    tracker.increment(message="STEM Student: removal")

    # Complete phase
    tracker.complete_phase()
"""

from typing import Callable, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

ProgressCallback = Callable[[int, int, str], None]


class ProgressTracker:
    """Tracks batch progress and optionally renders it with rich."""

    def __init__(
        self,
        show: bool = True,
        on_progress: Optional[ProgressCallback] = None,
        console: Optional[Console] = None,
    ) -> None:
        """
        Initialize ProgressTracker.

        Args:
            show: Render a rich progress bar (disable for tests and headless runs)
            on_progress: Called with (completed, total, message) on every change
            console: Console to render to (default: new rich Console)
        """
        self.console = console or Console()
        self.show = show
        self.on_progress = on_progress
        self.progress: Optional[Progress] = None
        self.task_id: Optional[TaskID] = None
        self.phase_name: str = ""
        self.total_items: int = 0
        self.completed_items: int = 0
        self.message: str = ""
        self._active = False

    def snapshot(self) -> tuple[int, int, str]:
        """Current (completed, total, message) triple."""
        return self.completed_items, self.total_items, self.message

    def _notify(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.completed_items, self.total_items, self.message)

    def start_phase(self, phase_name: str, total_items: int) -> None:
        """
        Reset progress for a new phase.

        Args:
            phase_name: Name of the phase (e.g., "Perturbation testing")
            total_items: Total number of runs in this phase
        """
        self.phase_name = phase_name
        self.total_items = total_items
        self.completed_items = 0
        self.message = f"{phase_name}: starting"
        self._active = True

        if self.show:
            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                TextColumn("({task.completed}/{task.total})"),
                TimeElapsedColumn(),
                console=self.console,
            )
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=phase_name, total=total_items
            )

        self._notify()

    def update(self, completed: int, message: Optional[str] = None) -> None:
        """
        Set the completed count.

        Args:
            completed: Number of items completed (absolute count, not increment)
            message: Optional status message
        """
        if not self._active:
            return

        increment = completed - self.completed_items
        self.completed_items = completed
        if message is not None:
            self.message = message

        if self.progress is not None and self.task_id is not None:
            self.progress.update(
                self.task_id, advance=increment, description=self.message
            )

        self._notify()

    def increment(self, amount: int = 1, message: Optional[str] = None) -> None:
        """
        Increment progress by a relative amount.

        Args:
            amount: Number of items to increment by (default: 1)
            message: Optional status message
        """
        self.update(self.completed_items + amount, message)

    def set_description(self, description: str) -> None:
        """Update the status message without advancing."""
        if not self._active:
            return

        self.message = description
        if self.progress is not None and self.task_id is not None:
            self.progress.update(self.task_id, description=description)

        self._notify()

    def complete_phase(self, summary: Optional[str] = None) -> None:
        """
        Stop the progress display and print a summary.

        Args:
            summary: Final status message (default: "{phase} complete")
        """
        if not self._active:
            return

        self.message = summary or f"{self.phase_name} complete"

        if self.progress is not None and self.task_id is not None:
            self.progress.stop()
            self.console.print(
                f"[bold green]{self.message}:[/bold green] "
                f"{self.completed_items}/{self.total_items} runs processed"
            )

        self._notify()

        self.progress = None
        self.task_id = None
        self._active = False

    def is_active(self) -> bool:
        """
        Check if progress tracker is currently active.

        Returns:
            True if a phase is in progress, False otherwise
        """
        return self._active
