"""
Mapping between ribbon pixels and positions along trajectories.

Translates pointer coordinates on a rendered ribbon into semantic events
(hovered crossing, align-on-crossing, reset) without owning any UI wiring.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Union

from constants import HIT_RADIUS, RIBBON_HEIGHT
from data_models import AlignmentState, CrossingEvent
from ribbon_layout import LayoutResult


def pixel_to_fraction(x: float, padding: float, ribbon_width: float) -> float:
    """Arc-length fraction under pixel column ``x``, clamped to [0, 1]."""
    if ribbon_width <= 0:
        return 0.0
    return min(1.0, max(0.0, (x - padding) / ribbon_width))


def crossing_to_pixel(fraction: float, padding: float, ribbon_width: float) -> float:
    """Pixel column of an arc-length fraction."""
    return padding + fraction * ribbon_width


def hit_test(x: float, y: float, crossings: Iterable[CrossingEvent],
             padding: float, ribbon_width: float, center_y: float,
             radius: float = HIT_RADIUS) -> Optional[CrossingEvent]:
    """First crossing marker within ``radius`` pixels of (x, y), or None."""
    for event in crossings:
        mx = crossing_to_pixel(event.dist_fraction_a, padding, ribbon_width)
        if math.hypot(x - mx, y - center_y) <= radius:
            return event
    return None


@dataclass(frozen=True)
class HoverChanged:
    """The hovered crossing changed; ``crossing_key`` is None when nothing is hovered."""
    crossing_key: Optional[str]


@dataclass(frozen=True)
class AlignRequested:
    """Align every ribbon on ``crossing_key`` as seen from ``anchor_id``."""
    crossing_key: str
    anchor_id: int

    def to_alignment(self) -> AlignmentState:
        return AlignmentState(crossing_key=self.crossing_key, anchor_id=self.anchor_id)


@dataclass(frozen=True)
class AlignmentResetRequested:
    """Drop the current alignment."""


InteractionEvent = Union[HoverChanged, AlignRequested, AlignmentResetRequested]


class InteractionMapper:
    """Turns pointer positions on rendered ribbons into interaction events.

    The hover state spans all ribbons: because crossings share a coordinate
    key, hovering a crossing on one ribbon highlights it on every ribbon.

    Args:
        layout: Layout pass the ribbons were rendered with
        crossings: Crossing events per trajectory id
        ribbon_height: Height of each ribbon canvas; markers sit on its center line
    """

    def __init__(self, layout: LayoutResult, crossings: Mapping[int, List[CrossingEvent]],
                 ribbon_height: int = RIBBON_HEIGHT):
        self.layout = layout
        self.crossings = crossings
        self.center_y = ribbon_height / 2
        self.hover_key: Optional[str] = None

    def fraction_at(self, trajectory_id: int, x: float) -> float:
        ribbon = self.layout.ribbons[trajectory_id]
        return pixel_to_fraction(x, ribbon.effective_padding, ribbon.ribbon_width)

    def distance_at(self, trajectory_id: int, x: float) -> float:
        """Meters from the start of the trajectory under pixel column ``x``."""
        ribbon = self.layout.ribbons[trajectory_id]
        return self.fraction_at(trajectory_id, x) * ribbon.total_distance

    def crossing_at(self, trajectory_id: int, x: float, y: float) -> Optional[CrossingEvent]:
        ribbon = self.layout.ribbons.get(trajectory_id)
        if ribbon is None:
            return None
        return hit_test(x, y, self.crossings.get(trajectory_id, []),
                        ribbon.effective_padding, ribbon.ribbon_width, self.center_y)

    def pointer_move(self, trajectory_id: int, x: float, y: float) -> Optional[HoverChanged]:
        """Report a hover change, or None when the hovered crossing is unchanged."""
        event = self.crossing_at(trajectory_id, x, y)
        key = event.key if event is not None else None
        if key == self.hover_key:
            return None
        self.hover_key = key
        return HoverChanged(key)

    def pointer_leave(self) -> Optional[HoverChanged]:
        if self.hover_key is None:
            return None
        self.hover_key = None
        return HoverChanged(None)

    def click(self, trajectory_id: int, x: float, y: float) -> InteractionEvent:
        """Align on a clicked crossing; self-crossings and empty space reset."""
        event = self.crossing_at(trajectory_id, x, y)
        if event is None or event.is_self_crossing:
            return AlignmentResetRequested()
        return AlignRequested(crossing_key=event.key, anchor_id=trajectory_id)
