"""
Comparison session: the explicit state of one ribbon comparison.

A session owns the saved trajectories, the current alignment and the tile
cache. It is immutable; every operation returns a new session. The tile cache
is shared by reference between a session and the sessions derived from it.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from constants import MIN_SAVED_POINTS, PATH_COLORS, RIBBON_PADDING
from crossings import compute_all_crossings, find_crossing
from data_models import AlignmentState, CrossingEvent, Trajectory
from interaction import AlignRequested, AlignmentResetRequested, InteractionEvent
from ribbon_layout import LayoutResult, compute_layout
from tile_cache import TileCache

logger = logging.getLogger(__name__)


class InsufficientTrajectoryLength(ValueError):
    """Raised when a path with too few points is saved."""

    def __init__(self, point_count: int, minimum: int = MIN_SAVED_POINTS):
        self.point_count = point_count
        self.minimum = minimum
        super().__init__(f"Draw a longer path ({point_count} points, at least {minimum} needed)")


@dataclass(frozen=True)
class ComparisonSession:
    """Saved trajectories, the active alignment and the shared tile cache."""
    tile_cache: TileCache
    trajectories: Tuple[Trajectory, ...] = ()
    alignment: Optional[AlignmentState] = None
    next_id: int = 1

    def get(self, trajectory_id: int) -> Optional[Trajectory]:
        for trajectory in self.trajectories:
            if trajectory.id == trajectory_id:
                return trajectory
        return None

    def add_path(self, points: Sequence[Sequence[float]],
                 name: Optional[str] = None) -> "ComparisonSession":
        """Save a drawn path. Colors cycle through the palette by path id.

        Raises:
            InsufficientTrajectoryLength: If the path has fewer than 6 points
        """
        if len(points) < MIN_SAVED_POINTS:
            raise InsufficientTrajectoryLength(len(points))

        trajectory_id = self.next_id
        trajectory = Trajectory(
            id=trajectory_id,
            name=name or f"Path {len(self.trajectories) + 1}",
            color=PATH_COLORS[(trajectory_id - 1) % len(PATH_COLORS)],
            points=[(float(p[0]), float(p[1])) for p in points],
        )
        logger.debug(f"Saved {trajectory.name}: {trajectory.point_count} points, "
                     f"{trajectory.total_distance:.0f} m")
        return replace(self, trajectories=self.trajectories + (trajectory,),
                       next_id=trajectory_id + 1)

    def delete_path(self, trajectory_id: int) -> "ComparisonSession":
        """Remove a path. An alignment that depended on it is cleared on the next resolve."""
        remaining = tuple(t for t in self.trajectories if t.id != trajectory_id)
        if len(remaining) == len(self.trajectories):
            return self
        return replace(self, trajectories=remaining)

    def clear(self) -> "ComparisonSession":
        """Remove every path and the alignment. Ids keep counting up."""
        return replace(self, trajectories=(), alignment=None)

    def crossings(self) -> Dict[int, List[CrossingEvent]]:
        return compute_all_crossings(self.trajectories)

    def align_to_intersection(self, crossing_key: str, anchor_id: int) -> "ComparisonSession":
        return replace(self, alignment=AlignmentState(crossing_key=crossing_key, anchor_id=anchor_id))

    def reset_alignment(self) -> "ComparisonSession":
        if self.alignment is None:
            return self
        return replace(self, alignment=None)

    def resolved(self, crossings: Optional[Dict[int, List[CrossingEvent]]] = None) -> "ComparisonSession":
        """This session with a stale alignment silently dropped."""
        if self.alignment is None:
            return self
        if crossings is None:
            crossings = self.crossings()
        anchor = find_crossing(crossings.get(self.alignment.anchor_id, []), self.alignment.crossing_key)
        if anchor is None:
            logger.info(f"Alignment crossing {self.alignment.crossing_key} no longer exists; clearing alignment")
            return self.reset_alignment()
        return self

    def layout(self, viewport_width: float,
               crossings: Optional[Dict[int, List[CrossingEvent]]] = None,
               padding: float = RIBBON_PADDING) -> LayoutResult:
        if crossings is None:
            crossings = self.crossings()
        return compute_layout(self.trajectories, crossings, viewport_width,
                              alignment=self.alignment, padding=padding)

    def apply(self, event: InteractionEvent) -> "ComparisonSession":
        """Apply a click event from the interaction mapper. Hover events leave the session as is."""
        if isinstance(event, AlignRequested):
            return self.align_to_intersection(event.crossing_key, event.anchor_id)
        if isinstance(event, AlignmentResetRequested):
            return self.reset_alignment()
        return self

    def set_tile_source(self, source_id: str, fetcher=None) -> "ComparisonSession":
        """Point the shared tile cache at a new source (clears it when the source changes)."""
        self.tile_cache.set_source(source_id, fetcher)
        return self
