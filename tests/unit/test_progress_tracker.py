"""
Unit tests for progress_tracker module.
"""

from unittest.mock import MagicMock, patch

from rich.console import Console

from src.utils.progress_tracker import ProgressTracker


class TestProgressTracker:
    """Test cases for ProgressTracker class."""

    def test_initialization(self):
        """Test that ProgressTracker initializes correctly."""
        # Arrange & Act
        tracker = ProgressTracker()

        # Assert
        assert tracker.progress is None
        assert tracker.task_id is None
        assert tracker.phase_name == ""
        assert tracker.snapshot() == (0, 0, "")
        assert not tracker.is_active()

    @patch("src.utils.progress_tracker.Progress")
    def test_start_phase_creates_progress_bar(self, mock_progress_class):
        """Test that start_phase creates progress bar."""
        # Arrange
        mock_progress_instance = MagicMock()
        mock_progress_class.return_value = mock_progress_instance
        mock_progress_instance.add_task.return_value = 123  # TaskID

        tracker = ProgressTracker()

        # Act
        tracker.start_phase("Perturbation testing", total_items=16)

        # Assert
        assert tracker.is_active()
        assert tracker.snapshot() == (0, 16, "Perturbation testing: starting")
        mock_progress_instance.start.assert_called_once()
        mock_progress_instance.add_task.assert_called_once_with(
            description="Perturbation testing", total=16
        )

    @patch("src.utils.progress_tracker.Progress")
    def test_update_advances_progress_bar(self, mock_progress_class):
        """Test that update advances by the difference from the last count."""
        # Arrange
        mock_progress_instance = MagicMock()
        mock_progress_class.return_value = mock_progress_instance
        mock_progress_instance.add_task.return_value = 123

        tracker = ProgressTracker()
        tracker.start_phase("Perturbation testing", total_items=100)

        # Act
        tracker.update(completed=20)

        # Assert
        assert tracker.completed_items == 20
        mock_progress_instance.update.assert_called_with(
            123, advance=20, description="Perturbation testing: starting"
        )

    @patch("src.utils.progress_tracker.Progress")
    def test_complete_phase_stops_progress_bar(self, mock_progress_class):
        """Test that complete_phase stops the bar and deactivates the tracker."""
        # Arrange
        mock_progress_instance = MagicMock()
        mock_progress_class.return_value = mock_progress_instance
        console = Console(record=True, width=120)

        tracker = ProgressTracker(console=console)
        tracker.start_phase("Perturbation testing", total_items=4)
        tracker.increment(amount=4)

        # Act
        tracker.complete_phase()

        # Assert
        mock_progress_instance.stop.assert_called_once()
        assert not tracker.is_active()
        assert tracker.progress is None
        assert "4/4 runs processed" in console.export_text()

    def test_headless_tracker_reports_through_callback(self):
        """Test that a hidden tracker still reports every change."""
        # Arrange
        updates = []
        tracker = ProgressTracker(show=False, on_progress=lambda *args: updates.append(args))

        # Act
        tracker.start_phase("Perturbation testing", total_items=2)
        tracker.increment(message="STEM Student: original")
        tracker.set_description("waiting")
        tracker.increment(message="STEM Student: removal")
        tracker.complete_phase("Done")

        # Assert
        assert tracker.progress is None
        assert updates == [
            (0, 2, "Perturbation testing: starting"),
            (1, 2, "STEM Student: original"),
            (1, 2, "waiting"),
            (2, 2, "STEM Student: removal"),
            (2, 2, "Done"),
        ]

    def test_updates_ignored_when_inactive(self):
        """Test that update before start_phase is a no-op."""
        # Arrange
        callback = MagicMock()
        tracker = ProgressTracker(show=False, on_progress=callback)

        # Act
        tracker.update(5, message="ignored")
        tracker.complete_phase()

        # Assert
        assert tracker.snapshot() == (0, 0, "")
        callback.assert_not_called()
