"""
Tests for Rich console configuration and output helpers.

Tests the console setup, progress bar creation, and styled output functions.
"""

import pytest
import logging

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rich_console import (
    console,
    RIBBON_THEME,
    setup_rich_logging,
    create_render_progress,
    print_banner,
    print_config_summary,
    print_phase,
    print_path_table,
    print_crossing_list,
    print_completion_summary,
    print_error,
)
from crossings import compute_all_crossings, unique_crossings


class TestConsoleSetup:
    """Tests for console initialization."""

    def test_console_exists(self):
        """Console should be initialized."""
        assert console is not None

    def test_theme_has_required_styles(self):
        """Theme should have required style definitions."""
        required_styles = ["info", "warning", "error", "success", "highlight", "path", "crossing"]
        for style in required_styles:
            assert style in RIBBON_THEME.styles, f"Missing style: {style}"


class TestLogging:
    """Tests for Rich logging setup."""

    def test_setup_creates_logger(self):
        """Setup should configure root logger with WARNING level by default."""
        setup_rich_logging(verbose=False)
        logger = logging.getLogger()
        assert logger.level == logging.WARNING

    def test_verbose_sets_debug(self):
        """Verbose flag should set DEBUG level."""
        setup_rich_logging(verbose=True)
        logger = logging.getLogger()
        assert logger.level == logging.DEBUG


class TestProgressBars:
    """Tests for progress bar creation."""

    def test_create_render_progress(self):
        """Render progress should track completed ribbons."""
        progress = create_render_progress()
        assert progress is not None
        with progress:
            task_id = progress.add_task("Rendering", total=3)
            progress.update(task_id, completed=2)
            assert progress.tasks[0].completed == 2


class TestOutputFunctions:
    """Tests for styled output functions."""

    def test_print_banner_no_error(self):
        """Print banner should not raise errors."""
        print_banner("1.0.0")

    def test_print_config_summary_no_error(self):
        """Print config summary should not raise errors."""
        print_config_summary(
            path_count=3,
            output_file="ribbons.png",
            viewport_width=1200,
            map_zoom=15,
            tile_zoom=16,
            tile_url="https://tiles.test/{z}/{x}/{y}.png",
            alignment="40.00000000,-74.00000000",
        )

    def test_print_phase_no_error(self):
        """Print phase should not raise errors."""
        print_phase(1, 3, "Testing phase")

    def test_print_path_table_no_error(self, horizontal_path, vertical_path):
        """Path table should print every path."""
        crossings = compute_all_crossings([horizontal_path, vertical_path])
        print_path_table([horizontal_path, vertical_path],
                         {tid: len(events) for tid, events in crossings.items()})

    def test_print_crossing_list_no_error(self, horizontal_path, figure_eight_path):
        """Crossing list should print pair and self crossings."""
        crossings = compute_all_crossings([horizontal_path, figure_eight_path])
        print_crossing_list(unique_crossings(crossings))

    def test_print_crossing_list_empty(self):
        """An empty crossing list prints a placeholder."""
        print_crossing_list([])

    def test_print_completion_summary_no_error(self):
        """Print completion summary should not raise errors."""
        print_completion_summary(
            output_file="ribbons.png",
            ribbon_count=3,
            canvas_width=1450,
            crossing_count=2,
            scroll_target=125.0,
        )

    def test_print_completion_summary_optional_args(self):
        """Completion summary should work without optional args."""
        print_completion_summary(
            output_file="ribbons.png",
            ribbon_count=3,
        )

    def test_print_error_no_error(self):
        """Print error should not raise errors."""
        print_error("Test error message")

    def test_print_error_with_hint(self):
        """Print error with hint should not raise errors."""
        print_error("Test error", hint="Try this instead")
