"""
Rich console configuration for TimeRibbons.

Provides terminal output with progress bars, panels, and styled logging.
"""

import logging
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme
from rich.panel import Panel
from rich.table import Table
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
    TimeElapsedColumn,
    MofNCompleteColumn,
)

from data_models import Trajectory
from ribbon_layout import format_distance

RIBBON_THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "highlight": "bold magenta",
    "muted": "dim",
    "path": "bold blue",
    "distance": "bold cyan",
    "crossing": "green",
})

# Global console instance
console = Console(theme=RIBBON_THEME)


def setup_rich_logging(verbose: bool = False) -> None:
    """
    Configure logging to use Rich handler.

    Args:
        verbose: Enable DEBUG level logging with full details
    """
    level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console,
                show_time=verbose,
                show_path=verbose,
                rich_tracebacks=True,
                tracebacks_show_locals=verbose,
                markup=True,
            )
        ],
        force=True,  # Override any existing configuration
    )


def create_render_progress() -> Progress:
    """
    Create a progress bar for ribbon rendering.

    Returns:
        Configured Progress instance
    """
    return Progress(
        SpinnerColumn("dots"),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(bar_width=40, style="cyan", complete_style="green"),
        TaskProgressColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )


def print_banner(version: str = "1.0.0") -> None:
    """
    Print a styled startup banner.

    Args:
        version: Version string to display
    """
    console.print("\n[bold cyan]━━━ TimeRibbons ━━━[/]")
    console.print("[dim]Unwrap map paths into comparable ribbons[/]")
    console.print(f"[muted]Version {version}[/]\n")


def print_config_summary(
    path_count: int,
    output_file: str,
    viewport_width: int,
    map_zoom: int,
    tile_zoom: int,
    tile_url: str,
    alignment: Optional[str] = None,
) -> None:
    """
    Print a styled configuration summary panel.

    Args:
        path_count: Number of paths loaded
        output_file: Output image path
        viewport_width: Ribbon viewport width in pixels
        map_zoom: Map zoom level
        tile_zoom: Zoom level tiles are fetched at
        tile_url: Tile URL template
        alignment: Crossing key the ribbons are aligned on, if any
    """
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Paths", f"[highlight]{path_count}[/]")
    table.add_row("Output", f"[green]{output_file}[/]")
    table.add_row("Viewport", f"{viewport_width}px")
    table.add_row("Zoom", f"map {map_zoom} / tiles {tile_zoom}")
    table.add_row("Tiles", tile_url)
    table.add_row("Alignment", f"[crossing]{alignment}[/]" if alignment else "[dim]none[/]")

    panel = Panel(
        table,
        title="[bold]Configuration[/]",
        border_style="cyan",
        padding=(1, 2),
    )
    console.print(panel)
    console.print()


def print_phase(phase_num: int, total_phases: int, description: str) -> None:
    """
    Print a phase header for multi-step processing.

    Args:
        phase_num: Current phase number (1-indexed)
        total_phases: Total number of phases
        description: Description of this phase
    """
    console.print(
        f"\n[bold cyan]Step {phase_num}/{total_phases}:[/] [bold]{description}[/]"
    )


def print_path_table(trajectories: Sequence[Trajectory], crossing_counts: dict) -> None:
    """
    Print one row per path: name, points, length and crossings.

    Args:
        trajectories: Saved paths
        crossing_counts: Number of crossing entries per trajectory id
    """
    table = Table(box=None, padding=(0, 2))
    table.add_column("Id", style="dim")
    table.add_column("Path", style="path")
    table.add_column("Points", justify="right")
    table.add_column("Length", style="distance", justify="right")
    table.add_column("Crossings", style="crossing", justify="right")

    for t in trajectories:
        table.add_row(
            str(t.id),
            f"[{t.color}]■[/] {t.name}",
            str(t.point_count),
            format_distance(t.total_distance, precision=1, separator=" "),
            str(crossing_counts.get(t.id, 0)),
        )
    console.print(table)


def print_crossing_list(crossings: Sequence) -> None:
    """
    Print distinct crossing points with the key used for --align.

    Args:
        crossings: Crossing events, one per distinct point
    """
    if not crossings:
        console.print("[muted]No crossings found.[/]")
        return

    table = Table(box=None, padding=(0, 2))
    table.add_column("Key", style="crossing")
    table.add_column("Path", justify="right")
    table.add_column("Other", justify="right")
    table.add_column("Kind", style="dim")
    for event in crossings:
        kind = "self" if event.is_self_crossing else "pair"
        table.add_row(event.key, str(event.trajectory_id), str(event.other_id), kind)
    console.print(table)


def print_completion_summary(
    output_file: str,
    ribbon_count: int,
    canvas_width: Optional[int] = None,
    crossing_count: Optional[int] = None,
    scroll_target: Optional[float] = None,
) -> None:
    """
    Print a styled completion summary.

    Args:
        output_file: Path to output file
        ribbon_count: Number of ribbons rendered
        canvas_width: Width of the ribbon canvas (optional)
        crossing_count: Distinct crossings found (optional)
        scroll_target: Scroll offset that centers the alignment crossing (optional)
    """
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold green")

    table.add_row("Ribbons", str(ribbon_count))
    if canvas_width:
        table.add_row("Canvas Width", f"{canvas_width:,}px")
    if crossing_count is not None:
        table.add_row("Crossings", str(crossing_count))
    if scroll_target:
        table.add_row("Scroll Target", f"{scroll_target:.0f}px")
    table.add_row("Output", output_file)

    panel = Panel(
        table,
        title="[bold green]Complete[/]",
        border_style="green",
        padding=(1, 2),
    )
    console.print()
    console.print(panel)


def print_error(message: str, hint: Optional[str] = None) -> None:
    """
    Print a styled error message.

    Args:
        message: Error message
        hint: Optional hint for resolution
    """
    console.print(f"\n[error]Error:[/] {message}")
    if hint:
        console.print(f"[muted]Hint: {hint}[/]")
