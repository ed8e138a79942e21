"""
Ribbon layout: widths, alignment offsets, canvas size and scroll target.

All ribbons share one distance-per-pixel scale, so the longest trajectory
fills the viewport and shorter ones are proportionally narrower. When an
alignment crossing is selected, every ribbon that passes through it is shifted
so that the crossing sits at the same x on every ribbon.

Key invariants:
- Matched crossings land on the same pixel column on every aligned ribbon
- No ribbon starts at a negative x (a uniform global shift is applied)
- Same inputs always produce the same layout
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from constants import RIBBON_PADDING, DISTANCE_MARKER_COUNT
from crossings import find_crossing
from data_models import AlignmentState, CrossingEvent, LayoutOptions, Trajectory

logger = logging.getLogger(__name__)


@dataclass
class RibbonLayout:
    """Placement of one ribbon within the shared canvas."""
    trajectory_id: int
    ribbon_width: float
    total_distance: float
    draw_offset: float = 0.0
    global_shift: float = 0.0
    crossing_fraction: Optional[float] = None
    is_anchor: bool = False
    padding: float = RIBBON_PADDING

    @property
    def effective_padding(self) -> float:
        return self.padding + self.draw_offset + self.global_shift

    @property
    def left_edge(self) -> float:
        return self.effective_padding

    @property
    def right_edge(self) -> float:
        return self.effective_padding + self.ribbon_width

    @property
    def matched(self) -> bool:
        return self.crossing_fraction is not None

    @property
    def crossing_dist(self) -> Optional[float]:
        """Distance from the start to the alignment crossing, in meters."""
        if self.crossing_fraction is None:
            return None
        return self.crossing_fraction * self.total_distance

    @property
    def crossing_x(self) -> Optional[float]:
        """Pixel column of the alignment crossing on this ribbon."""
        if self.crossing_fraction is None:
            return None
        return self.effective_padding + self.crossing_fraction * self.ribbon_width


@dataclass
class LayoutResult:
    """Outcome of one layout pass over all visible ribbons."""
    ribbons: Dict[int, RibbonLayout]
    max_distance: float
    viewport_width: float
    total_canvas_width: float
    scroll_target: float = 0.0
    alignment: Optional[AlignmentState] = None
    alignment_cleared: bool = False
    padding: float = RIBBON_PADDING
    order: List[int] = field(default_factory=list)

    @property
    def aligned(self) -> bool:
        return self.alignment is not None

    def options_for(self, trajectory_id: int, hover_key: Optional[str] = None) -> LayoutOptions:
        """Render options for one ribbon; the global shift is folded into draw_offset."""
        ribbon = self.ribbons[trajectory_id]
        return LayoutOptions(
            draw_offset=ribbon.draw_offset + ribbon.global_shift,
            total_canvas_width=self.total_canvas_width,
            viewport_width=self.viewport_width,
            crossing_dist=ribbon.crossing_dist,
            is_anchor=ribbon.is_anchor,
            padding=ribbon.padding,
            hover_key=hover_key,
        )


def ribbon_width(total_distance: float, max_distance: float,
                 viewport_width: float, padding: float = RIBBON_PADDING) -> float:
    """Pixel width of a ribbon at the shared distance-per-pixel scale."""
    if max_distance <= 0:
        return 0.0
    available = max(0.0, viewport_width - 2 * padding)
    return total_distance / max_distance * available


def compute_layout(trajectories: Sequence[Trajectory],
                   crossings: Mapping[int, List[CrossingEvent]],
                   viewport_width: float,
                   alignment: Optional[AlignmentState] = None,
                   padding: float = RIBBON_PADDING) -> LayoutResult:
    """Lay out every ribbon, aligning on ``alignment`` when it is set.

    An alignment whose anchor crossing cannot be found (e.g. a path was
    deleted) is dropped and the unaligned layout is returned with
    ``alignment_cleared`` set.

    Args:
        trajectories: Visible trajectories in display order
        crossings: Crossing events per trajectory id
        viewport_width: Visible width in pixels
        alignment: Crossing to align on, or None
        padding: Base left/right padding of each ribbon

    Returns:
        LayoutResult with per-ribbon placement, canvas width and scroll target
    """
    max_distance = max((t.total_distance for t in trajectories), default=0.0)
    ribbons = {
        t.id: RibbonLayout(
            trajectory_id=t.id,
            ribbon_width=ribbon_width(t.total_distance, max_distance, viewport_width, padding),
            total_distance=t.total_distance,
            padding=padding,
        )
        for t in trajectories
    }
    result = LayoutResult(
        ribbons=ribbons,
        max_distance=max_distance,
        viewport_width=viewport_width,
        total_canvas_width=viewport_width,
        padding=padding,
        order=[t.id for t in trajectories],
    )

    if alignment is None:
        return result

    anchor_event = None
    if alignment.anchor_id in ribbons:
        anchor_event = find_crossing(crossings.get(alignment.anchor_id, []), alignment.crossing_key)
    if anchor_event is None:
        logger.info(f"Alignment crossing {alignment.crossing_key} no longer exists; clearing alignment")
        result.alignment_cleared = True
        return result

    anchor = ribbons[alignment.anchor_id]
    anchor_x = padding + anchor_event.dist_fraction_a * anchor.ribbon_width

    for ribbon in ribbons.values():
        if ribbon.trajectory_id == alignment.anchor_id:
            event = anchor_event
            ribbon.is_anchor = True
        else:
            event = find_crossing(crossings.get(ribbon.trajectory_id, []), alignment.crossing_key)
        if event is None:
            continue
        ribbon.crossing_fraction = event.dist_fraction_a
        ribbon.draw_offset = anchor_x - (padding + event.dist_fraction_a * ribbon.ribbon_width)

    min_left = min(r.left_edge for r in ribbons.values())
    max_right = max(r.right_edge for r in ribbons.values())
    global_shift = -min_left if min_left < 0 else 0.0
    for ribbon in ribbons.values():
        ribbon.global_shift = global_shift

    result.alignment = alignment
    result.total_canvas_width = max(viewport_width, max_right + global_shift + padding)
    result.scroll_target = max(0.0, anchor_x + global_shift - viewport_width / 2)
    return result


def format_distance(meters: float, precision: int = 1, separator: str = "") -> str:
    """Format a distance as meters below 1 km and kilometers above."""
    if meters >= 1000:
        return f"{meters / 1000:.{precision}f}{separator}km"
    return f"{round(meters)}{separator}m"


def format_relative_distance(meters: float) -> str:
    """Signed distance from the alignment crossing, e.g. '+250m' or '-1.2km'."""
    magnitude = abs(meters)
    if round(magnitude) == 0:
        return "0m"
    sign = "-" if meters < 0 else "+"
    return sign + format_distance(magnitude)


def distance_markers(total_distance: float, ribbon_width: float,
                     options: LayoutOptions,
                     count: int = DISTANCE_MARKER_COUNT) -> List[Tuple[float, Optional[str]]]:
    """Tick positions and labels along a ribbon.

    The final tick at the ribbon's end carries no label. Ribbons aligned on a
    crossing (other than the anchor) label distances relative to it.
    """
    markers = []
    for i in range(count + 1):
        fraction = i / count
        x = options.effective_padding + fraction * ribbon_width
        if i == count:
            markers.append((x, None))
            continue
        dist = fraction * total_distance
        if options.relative_labels:
            label = format_relative_distance(dist - options.crossing_dist)
        else:
            label = format_distance(dist)
        markers.append((x, label))
    return markers
