#!/usr/bin/env python3
"""
Command line front end: render saved paths as stacked ribbons into one image.

Usage:
    python main.py paths.json ribbons.png
    python main.py paths.json ribbons.png --list-crossings
    python main.py paths.json ribbons.png --align 40.71280000,-74.00600000 --anchor 1
"""

import argparse
import asyncio
import json
import sys
from typing import Callable, List, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw
from pydantic import BaseModel, Field, ValidationError

from constants import (
    COLORS,
    DEFAULT_MAP_ZOOM, DEFAULT_TILE_URL, DEFAULT_VIEWPORT_WIDTH,
    RIBBON_HEADER_HEIGHT, TILE_SUBDOMAINS,
)
from crossings import unique_crossings
from ribbon_layout import format_distance
from ribbon_renderer import RenderResult, RibbonRenderer, get_font
from rich_console import (
    console,
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
from session import ComparisonSession, InsufficientTrajectoryLength
from tile_cache import HttpTileSource, TileCache
from tile_compositor import tile_zoom


class PathEntry(BaseModel):
    name: Optional[str] = None
    points: List[Tuple[float, float]]


class RibbonConfig(BaseModel):
    paths: List[PathEntry]
    output_file: str
    viewport_width: int = Field(default=DEFAULT_VIEWPORT_WIDTH, ge=100)
    map_zoom: int = Field(default=DEFAULT_MAP_ZOOM, ge=0, le=22)
    tile_url: str = DEFAULT_TILE_URL
    align: Optional[str] = None
    anchor: Optional[int] = None
    list_crossings: bool = False
    verbose: bool = False


def load_paths(input_path: str) -> List[PathEntry]:
    """Read paths from JSON.

    Accepts ``{"paths": [...]}`` or a bare list. Each entry is either
    ``{"name": ..., "points": [[lat, lng], ...]}`` or a plain list of points.
    """
    with open(input_path, 'r') as f:
        data = json.load(f)

    entries = data.get("paths", []) if isinstance(data, dict) else data
    paths = []
    for entry in entries:
        if isinstance(entry, dict):
            paths.append(PathEntry(**entry))
        else:
            paths.append(PathEntry(points=entry))
    return paths


def template_url_for(template: str) -> Callable[[int, int, int], str]:
    """Tile URL function for a ``{s}/{z}/{x}/{y}`` template."""
    def url_for(x: int, y: int, z: int) -> str:
        s = TILE_SUBDOMAINS[abs(x + y) % len(TILE_SUBDOMAINS)]
        return template.format(s=s, x=x, y=y, z=z)
    return url_for


def build_session(paths: List[PathEntry], tile_cache: TileCache) -> ComparisonSession:
    """Add every path to a new session; paths that are too short are reported and skipped."""
    session = ComparisonSession(tile_cache=tile_cache)
    for i, entry in enumerate(paths, start=1):
        try:
            session = session.add_path(entry.points, name=entry.name)
        except InsufficientTrajectoryLength as e:
            print_error(f"Path #{i} skipped: {e}")
    return session


def compose_output(result: RenderResult) -> Image.Image:
    """Stack rendered ribbons vertically, each under a name/length header."""
    ribbons = result.ribbons
    width = max(r.size[0] for r in ribbons)
    row_height = RIBBON_HEADER_HEIGHT + max(r.size[1] for r in ribbons)

    canvas = Image.new('RGB', (width, row_height * len(ribbons)), COLORS.RIBBON_BACKGROUND)
    draw = ImageDraw.Draw(canvas)
    font = get_font(12)

    for row, ribbon in enumerate(ribbons):
        trajectory = result.session.get(ribbon.trajectory_id)
        y = row * row_height
        draw.rectangle([12, y + 8, 20, y + 16], fill=ImageColor.getrgb(trajectory.color))
        header = f"{trajectory.name}   {format_distance(trajectory.total_distance, precision=2, separator=' ')}"
        draw.text((28, y + 5), header, fill=COLORS.WHITE, font=font)
        canvas.paste(ribbon.image, (0, y + RIBBON_HEADER_HEIGHT))

    return canvas


async def run(config: RibbonConfig) -> int:
    tile_cache = TileCache(HttpTileSource(template_url_for(config.tile_url)),
                           source_id=config.tile_url)

    print_phase(1, 3, "Loading paths")
    session = build_session(config.paths, tile_cache)
    if not session.trajectories:
        print_error("No usable paths found.", hint="Each path needs at least 6 points.")
        return 1

    crossings = session.crossings()
    print_path_table(session.trajectories, {tid: len(ev) for tid, ev in crossings.items()})

    print_phase(2, 3, "Finding crossings")
    distinct = unique_crossings(crossings)
    console.print(f"[crossing]{len(distinct)}[/] distinct crossing(s)")
    if config.list_crossings:
        print_crossing_list(distinct)

    anchor = config.anchor
    if config.align:
        if anchor is None:
            match = next((e for e in distinct if e.key == config.align and not e.is_self_crossing), None)
            anchor = match.trajectory_id if match else session.trajectories[0].id
        session = session.align_to_intersection(config.align, anchor)

    print_phase(3, 3, f"Rendering {len(session.trajectories)} ribbon(s)")
    renderer = RibbonRenderer(tile_cache)
    with create_render_progress() as progress:
        task = progress.add_task("Rendering", total=len(session.trajectories))
        result = await renderer.render_all(
            session, config.viewport_width, config.map_zoom,
            progress_callback=lambda done, total: progress.update(task, completed=done),
        )

    if config.align and result.session.alignment is None:
        print_error(f"Crossing {config.align} not found on path {anchor}; "
                    "rendered without alignment.",
                    hint="Use --list-crossings to see valid keys.")

    compose_output(result).save(config.output_file)

    print_completion_summary(
        config.output_file,
        ribbon_count=len(result.ribbons),
        canvas_width=int(result.layout.total_canvas_width),
        crossing_count=len(distinct),
        scroll_target=result.layout.scroll_target,
    )
    return 0


def parse_args(argv: Optional[List[str]] = None) -> RibbonConfig:
    parser = argparse.ArgumentParser(description="Unwrap map paths into comparable ribbons.")
    parser.add_argument("input_path", help="JSON file with paths as [[lat, lng], ...] point lists")
    parser.add_argument("output_file", help="Path to output PNG")
    parser.add_argument("--viewport-width", type=int, default=DEFAULT_VIEWPORT_WIDTH,
                        help="Width the longest ribbon is scaled to (px)")
    parser.add_argument("--map-zoom", type=int, default=DEFAULT_MAP_ZOOM,
                        help="Map zoom level; tiles are fetched one level deeper")
    parser.add_argument("--tile-url", default=DEFAULT_TILE_URL,
                        help="Tile URL template with {s}, {z}, {x}, {y}")
    parser.add_argument("--align", metavar="KEY", help="Crossing key to align ribbons on")
    parser.add_argument("--anchor", type=int, help="Path id the alignment is anchored to")
    parser.add_argument("--list-crossings", action="store_true", help="Print every crossing key")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    try:
        return RibbonConfig(
            paths=load_paths(args.input_path),
            output_file=args.output_file,
            viewport_width=args.viewport_width,
            map_zoom=args.map_zoom,
            tile_url=args.tile_url,
            align=args.align,
            anchor=args.anchor,
            list_crossings=args.list_crossings,
            verbose=args.verbose,
        )
    except (OSError, ValueError, ValidationError) as e:
        print_error(f"Configuration error: {e}")
        sys.exit(1)


def main(argv: Optional[List[str]] = None) -> int:
    config = parse_args(argv)
    setup_rich_logging(config.verbose)
    print_banner()
    print_config_summary(
        path_count=len(config.paths),
        output_file=config.output_file,
        viewport_width=config.viewport_width,
        map_zoom=config.map_zoom,
        tile_zoom=tile_zoom(config.map_zoom),
        tile_url=config.tile_url,
        alignment=config.align,
    )
    return asyncio.run(run(config))


if __name__ == "__main__":
    sys.exit(main())
