"""
Geometry and distance utilities for trajectories.

Distances are great-circle (haversine). Segment intersection works in a
flat frame that uses (lat, lng) directly as (x, y), a small-region
approximation that holds at city scale.
"""

import math
from typing import List, NamedTuple, Optional, Sequence, Tuple

from constants import EARTH_RADIUS_M, PARALLEL_EPSILON, CROSSING_KEY_DECIMALS

GeoPoint = Tuple[float, float]


class Intersection(NamedTuple):
    """Planar intersection of two segments.

    ``t`` is the fractional position along the first segment, ``u`` along the
    second one.
    """
    lat: float
    lng: float
    t: float
    u: float


def haversine(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def cumulative_distances(points: Sequence[GeoPoint]) -> List[float]:
    """Distance from the first point to every point along the path.

    Returns an empty list for an empty path; otherwise ``result[0] == 0`` and
    ``result[-1]`` is the total path length.
    """
    if not points:
        return []

    distances = [0.0]
    for i in range(1, len(points)):
        lat1, lng1 = points[i - 1]
        lat2, lng2 = points[i]
        distances.append(distances[-1] + haversine(lat1, lng1, lat2, lng2))
    return distances


def path_distance(points: Sequence[GeoPoint]) -> float:
    """Total great-circle length of a path in meters."""
    if len(points) < 2:
        return 0.0
    return cumulative_distances(points)[-1]


def segment_intersection(p1: GeoPoint, p2: GeoPoint,
                         p3: GeoPoint, p4: GeoPoint) -> Optional[Intersection]:
    """Intersect segment p1->p2 with segment p3->p4 in the flat (lat, lng) frame.

    Returns None for parallel or coincident segments and when the crossing
    lies outside either segment.
    """
    d1_x, d1_y = p2[0] - p1[0], p2[1] - p1[1]
    d2_x, d2_y = p4[0] - p3[0], p4[1] - p3[1]

    denom = d1_x * d2_y - d1_y * d2_x
    if abs(denom) < PARALLEL_EPSILON:
        return None

    off_x, off_y = p3[0] - p1[0], p3[1] - p1[1]
    t = (off_x * d2_y - off_y * d2_x) / denom
    u = (off_x * d1_y - off_y * d1_x) / denom

    if t < 0 or t > 1 or u < 0 or u > 1:
        return None

    return Intersection(
        lat=p1[0] + t * d1_x,
        lng=p1[1] + t * d1_y,
        t=t,
        u=u,
    )


def crossing_key(lat: float, lng: float) -> str:
    """Identity of a crossing point: coordinates rounded to 8 decimals."""
    return f"{lat:.{CROSSING_KEY_DECIMALS}f},{lng:.{CROSSING_KEY_DECIMALS}f}"
