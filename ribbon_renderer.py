"""
Ribbon renderer for TimeRibbons.

Provides RibbonRenderer, which turns a trajectory into a straightened ribbon
of map imagery: sample points are composited into rotated strips and laid
side by side, then annotated with the path line, crossing markers and
distance labels.

Key design principles:
- The direction of travel ALWAYS points right on the ribbon
- One pixel represents the same distance on every ribbon of a render pass
- A render pass that has been superseded never draws onto a canvas
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from constants import (
    COLORS,
    RIBBON_HEIGHT, RIBBON_STRIP_MARGIN,
    PATH_LINE_WIDTH, PATH_GLOW_WIDTH, CROSSING_MARKER_RADIUS,
)
from data_models import CrossingEvent, LayoutOptions, RibbonImage, Trajectory
from ribbon_layout import LayoutResult, distance_markers, ribbon_width
from ribbon_sampler import sample, segment_count
from session import ComparisonSession
from tile_cache import TileCache
from tile_compositor import NEIGHBOR_OFFSETS, TileCompositor, tile_zoom

logger = logging.getLogger(__name__)


# Font cache
_font_cache: dict = {}
_font_path: Optional[str] = None


def get_font(size: float = 9) -> ImageFont.FreeTypeFont:
    """Get a cached font instance."""
    global _font_path

    int_size = int(size)

    if int_size in _font_cache:
        return _font_cache[int_size]

    if _font_path is None:
        for font_name in ["DejaVuSansMono.ttf", "DejaVuSans.ttf", "Arial.ttf",
                          "/System/Library/Fonts/Menlo.ttc"]:
            try:
                ImageFont.truetype(font_name, 12)
                _font_path = font_name
                break
            except (OSError, IOError):
                continue

    try:
        if _font_path:
            font = ImageFont.truetype(_font_path, int_size)
        else:
            font = ImageFont.load_default()
    except (OSError, IOError):
        font = ImageFont.load_default()

    _font_cache[int_size] = font
    return font


def _rgb(color: str) -> Tuple[int, int, int]:
    return ImageColor.getrgb(color)[:3]


def _blend_color(color: Tuple[int, int, int], fade: float) -> Tuple[int, int, int]:
    """Blend a color toward the ribbon background (0=full color, 1=background)."""
    bg = COLORS.RIBBON_BACKGROUND
    return tuple(int(c * (1 - fade) + b * fade) for c, b in zip(color, bg))


@dataclass
class RenderResult:
    """Every ribbon of one render pass, with the state it was rendered from."""
    session: ComparisonSession
    crossings: Dict[int, List[CrossingEvent]]
    layout: LayoutResult
    ribbons: List[RibbonImage]
    generation: int


class RibbonRenderer:
    """Renders straightened map ribbons for trajectories.

    Each call to render_all() starts a new generation. Ribbons still being
    rendered for an older generation are discarded once their tiles arrive.

    Args:
        tile_cache: Shared tile cache used for all imagery
        ribbon_height: Height of each ribbon canvas in pixels
    """

    def __init__(self, tile_cache: TileCache, ribbon_height: int = RIBBON_HEIGHT):
        self.compositor = TileCompositor(tile_cache)
        self.height = ribbon_height
        self.strip_height = ribbon_height - 2 * RIBBON_STRIP_MARGIN
        self._font = get_font(9)
        self._generation = 0
        self._warned_no_tiles = False

    @property
    def generation(self) -> int:
        return self._generation

    def invalidate(self) -> int:
        """Supersede any in-flight render pass. Returns the new generation."""
        self._generation += 1
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def render_all(self, session: ComparisonSession, viewport_width: float,
                         map_zoom: int, hover_key: Optional[str] = None,
                         progress_callback: Optional[Callable[[int, int], None]] = None
                         ) -> Optional[RenderResult]:
        """Render every ribbon of a session.

        Crossings and layout are computed up front, then all ribbons are
        rendered concurrently. A stale alignment is dropped from the returned
        session.

        Args:
            session: Trajectories and alignment to render
            viewport_width: Visible width in pixels
            map_zoom: Zoom of the map view; tiles are fetched one level deeper
            hover_key: Crossing to highlight, if any
            progress_callback: Optional callable(completed, total)

        Returns:
            RenderResult, or None if a newer render pass started meanwhile
        """
        generation = self.invalidate()
        crossings = session.crossings()
        session = session.resolved(crossings)
        layout = session.layout(viewport_width, crossings)
        zoom = tile_zoom(map_zoom)

        total = len(session.trajectories)
        completed = 0

        async def render_one(trajectory: Trajectory) -> Optional[RibbonImage]:
            nonlocal completed
            ribbon = await self.render_ribbon(
                trajectory,
                layout.max_distance,
                crossings.get(trajectory.id, []),
                layout.options_for(trajectory.id, hover_key=hover_key),
                zoom,
                generation=generation,
            )
            completed += 1
            if progress_callback is not None:
                progress_callback(completed, total)
            return ribbon

        ribbons = await asyncio.gather(*(render_one(t) for t in session.trajectories))

        if not self.is_current(generation):
            logger.debug(f"Render pass {generation} superseded by {self._generation}")
            return None

        return RenderResult(
            session=session,
            crossings=crossings,
            layout=layout,
            ribbons=list(ribbons),
            generation=generation,
        )

    async def render_ribbon(self, trajectory: Trajectory, max_distance: float,
                            crossings: Sequence[CrossingEvent], options: LayoutOptions,
                            zoom: int, generation: Optional[int] = None) -> Optional[RibbonImage]:
        """Render one trajectory as a ribbon.

        Args:
            trajectory: Path to straighten
            max_distance: Length of the longest path in this pass (sets the scale)
            crossings: Crossing events owned by this trajectory
            options: Placement from the layout pass
            zoom: Tile zoom level
            generation: Render pass this ribbon belongs to (defaults to the current one)

        Returns:
            RibbonImage, or None if the render pass was superseded
        """
        if generation is None:
            generation = self._generation
        started = time.monotonic()

        width = ribbon_width(trajectory.total_distance, max_distance,
                             options.viewport_width, options.padding)
        num_segments = segment_count(width)
        segment_width = max(1, int(math.ceil(width / num_segments)))
        samples = sample(trajectory, num_segments)

        strips = await asyncio.gather(*(
            self.compositor.strip_for(point, zoom, segment_width, self.strip_height)
            for point in samples
        ))

        if not self.is_current(generation):
            logger.debug(f"Discarding superseded ribbon for path {trajectory.id}")
            return None

        canvas_width = max(1, int(math.ceil(options.total_canvas_width)))
        img = Image.new('RGB', (canvas_width, self.height), COLORS.RIBBON_BACKGROUND)
        left = options.effective_padding

        # Strip i starts at its own fraction of the ribbon; rounded-up widths overlap slightly
        step = width / num_segments
        tiles_missing = 0
        for i, (strip, missing) in enumerate(strips):
            x = int(round(left + i * step))
            img.paste(strip, (x, RIBBON_STRIP_MARGIN), strip)
            tiles_missing += missing

        if samples and tiles_missing == len(samples) * len(NEIGHBOR_OFFSETS):
            if not self._warned_no_tiles:
                logger.warning("No map tiles could be fetched; ribbons will show the path only.")
                self._warned_no_tiles = True

        draw = ImageDraw.Draw(img)
        self._draw_path_line(draw, _rgb(trajectory.color), left, width)
        if options.crossing_dist is not None and trajectory.total_distance > 0:
            self._draw_alignment_line(draw, left + options.crossing_dist / trajectory.total_distance * width)
        self._draw_distance_markers(draw, trajectory.total_distance, width, options)
        self._draw_crossings(draw, crossings, left, width, options.hover_key)

        logger.debug(f"Rendered ribbon for path {trajectory.id}: {num_segments} strips "
                     f"x {segment_width}px, {tiles_missing} tiles missing, "
                     f"{time.monotonic() - started:.2f}s")

        return RibbonImage(
            trajectory_id=trajectory.id,
            image=img,
            ribbon_width=width,
            effective_padding=left,
            segment_width=segment_width,
            num_segments=num_segments,
            tiles_missing=tiles_missing,
        )

    def _draw_path_line(self, draw: ImageDraw.ImageDraw, color: Tuple[int, int, int],
                        left: float, width: float) -> None:
        """Draw the straightened path along the ribbon center with a soft glow."""
        cy = self.height // 2
        start, end = (int(round(left)), cy), (int(round(left + width)), cy)

        # Glow: wider, dimmer lines behind the main line
        for glow_width, fade in [(PATH_GLOW_WIDTH, 0.75), (PATH_LINE_WIDTH + 2, 0.45)]:
            draw.line([start, end], fill=_blend_color(color, fade), width=glow_width)

        draw.line([start, end], fill=color, width=PATH_LINE_WIDTH)

    def _draw_alignment_line(self, draw: ImageDraw.ImageDraw, x: float) -> None:
        """Vertical guide through the crossing all ribbons are aligned on."""
        ix = int(round(x))
        draw.line([(ix, RIBBON_STRIP_MARGIN), (ix, self.height - RIBBON_STRIP_MARGIN)],
                  fill=_blend_color(COLORS.ANCHOR_LINE, 0.5), width=1)

    def _draw_distance_markers(self, draw: ImageDraw.ImageDraw, total_distance: float,
                               width: float, options: LayoutOptions) -> None:
        """Ticks along the bottom edge, labelled from the start or from the crossing."""
        for x, label in distance_markers(total_distance, width, options):
            ix = int(round(x))
            draw.rectangle([ix, self.height - 8, ix, self.height - 5], fill=COLORS.MARKER_TICK)
            if label is None:
                continue
            bbox = draw.textbbox((0, 0), label, font=self._font)
            text_h = bbox[3] - bbox[1]
            draw.text((ix + 3, self.height - 3 - text_h - bbox[1]), label,
                      fill=COLORS.LABEL_TEXT, font=self._font)

    def _draw_crossings(self, draw: ImageDraw.ImageDraw, crossings: Sequence[CrossingEvent],
                        left: float, width: float, hover_key: Optional[str]) -> None:
        """Draw a marker for every crossing on the ribbon center line.

        Crossings with other paths are filled with the other path's color;
        self-crossings are drawn as hollow rings.
        """
        cy = self.height // 2
        r = CROSSING_MARKER_RADIUS

        for event in crossings:
            cx = int(round(left + event.dist_fraction_a * width))
            box = [cx - r, cy - r, cx + r, cy + r]

            if event.key == hover_key:
                hr = r + 4
                draw.ellipse([cx - hr, cy - hr, cx + hr, cy + hr],
                             outline=COLORS.HOVER_RING, width=2)

            if event.is_self_crossing:
                draw.ellipse(box, outline=COLORS.SELF_CROSSING, width=2)
            else:
                draw.ellipse(box, fill=_rgb(event.other_color), outline=COLORS.BLACK, width=1)
