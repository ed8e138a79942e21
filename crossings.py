"""
Crossing detection between trajectories.

Every segment of one trajectory is tested against every segment of another
(or of itself). Hits are reported with their position along each trajectory
as a fraction of that trajectory's total arc length.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from data_models import CrossingEvent, Trajectory
from geometry import cumulative_distances, segment_intersection

logger = logging.getLogger(__name__)


def _arc_fraction(distances: List[float], segment: int, t: float) -> float:
    """Convert a position ``t`` within ``segment`` to an arc-length fraction."""
    total = distances[-1]
    if total <= 0:
        return 0.0
    start = distances[segment]
    along = start + t * (distances[segment + 1] - start)
    return min(1.0, max(0.0, along / total))


def find_crossings(traj_a: Trajectory, traj_b: Trajectory) -> List[CrossingEvent]:
    """Find every intersection between segments of two trajectories.

    Events are expressed from ``traj_a``'s point of view. Passing the same
    trajectory twice finds self-crossings; neighboring segments always touch
    at their shared vertex, so segment ``j`` starts at ``i + 2``.
    """
    is_self = traj_a.id == traj_b.id
    points_a = traj_a.points
    points_b = traj_b.points
    dist_a = cumulative_distances(points_a)
    dist_b = dist_a if is_self else cumulative_distances(points_b)

    events = []
    for i in range(len(points_a) - 1):
        j_start = i + 2 if is_self else 0
        for j in range(j_start, len(points_b) - 1):
            hit = segment_intersection(points_a[i], points_a[i + 1],
                                       points_b[j], points_b[j + 1])
            if hit is None:
                continue
            events.append(CrossingEvent(
                lat=hit.lat,
                lng=hit.lng,
                dist_fraction_a=_arc_fraction(dist_a, i, hit.t),
                dist_fraction_b=_arc_fraction(dist_b, j, hit.u),
                trajectory_id=traj_a.id,
                other_id=traj_b.id,
                other_color=traj_b.color,
            ))
    return events


def _mirrored(event: CrossingEvent, owner: Trajectory, other: Trajectory) -> CrossingEvent:
    """The same crossing seen from the other trajectory."""
    return CrossingEvent(
        lat=event.lat,
        lng=event.lng,
        dist_fraction_a=event.dist_fraction_b,
        dist_fraction_b=event.dist_fraction_a,
        trajectory_id=owner.id,
        other_id=other.id,
        other_color=other.color,
    )


def compute_all_crossings(trajectories: Sequence[Trajectory]) -> Dict[int, List[CrossingEvent]]:
    """Crossings for every trajectory, keyed by trajectory id.

    Each unordered pair (including a trajectory with itself) is tested once.
    A crossing between two different trajectories appears in both lists; a
    self-crossing appears twice in its own list, once per arm.
    """
    result: Dict[int, List[CrossingEvent]] = {t.id: [] for t in trajectories}

    for i, traj_a in enumerate(trajectories):
        for traj_b in trajectories[i:]:
            for event in find_crossings(traj_a, traj_b):
                if traj_a.id == traj_b.id:
                    result[traj_a.id].append(event)
                    result[traj_a.id].append(_mirrored(event, traj_a, traj_a))
                else:
                    result[traj_a.id].append(event)
                    result[traj_b.id].append(_mirrored(event, traj_b, traj_a))

    total = sum(len(events) for events in result.values())
    logger.debug(f"Found {total} crossing entries across {len(trajectories)} paths")
    return result


def find_crossing(events: Iterable[CrossingEvent], key: str) -> Optional[CrossingEvent]:
    """First event whose coordinates match ``key``, or None."""
    for event in events:
        if event.key == key:
            return event
    return None


def unique_crossings(crossings: Dict[int, List[CrossingEvent]]) -> List[CrossingEvent]:
    """One event per distinct crossing point, in discovery order."""
    seen = set()
    unique = []
    for events in crossings.values():
        for event in events:
            if event.key in seen:
                continue
            seen.add(event.key)
            unique.append(event)
    return unique
