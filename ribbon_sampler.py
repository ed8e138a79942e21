"""
Distance-parameterized sampling of trajectories.

Produces evenly spaced sample points along a path's arc length, each with the
heading of the segment it falls on. Headings use ``atan2(d_lng, d_lat)``: this
is not a compass bearing but the convention the compositor's rotation is built
around, so the argument order must not be swapped.
"""

import math
from typing import List, Sequence

import numpy as np

from constants import (
    MIN_SEGMENTS, MAX_SEGMENTS, PIXELS_PER_SEGMENT, HEADING_SMOOTH_WEIGHTS,
)
from data_models import SamplePoint, Trajectory
from geometry import cumulative_distances


def segment_count(ribbon_width: float) -> int:
    """Number of strips for a ribbon of the given pixel width (~8 px each)."""
    return min(MAX_SEGMENTS, max(MIN_SEGMENTS, int(math.floor(ribbon_width / PIXELS_PER_SEGMENT))))


def smooth_headings(headings: Sequence[float]) -> List[float]:
    """Weighted circular mean of each interior heading with its neighbors.

    Angles are averaged through their sine/cosine components so that headings
    on either side of +/-pi do not cancel out. First and last are unchanged.
    """
    w_prev, w_cur, w_next = HEADING_SMOOTH_WEIGHTS
    smoothed = list(headings)
    for i in range(1, len(headings) - 1):
        prev, cur, nxt = headings[i - 1], headings[i], headings[i + 1]
        sin_sum = w_prev * math.sin(prev) + w_cur * math.sin(cur) + w_next * math.sin(nxt)
        cos_sum = w_prev * math.cos(prev) + w_cur * math.cos(cur) + w_next * math.cos(nxt)
        smoothed[i] = math.atan2(sin_sum, cos_sum)
    return smoothed


def sample(trajectory: Trajectory, num_segments: int) -> List[SamplePoint]:
    """Sample ``num_segments`` points evenly spaced by distance along a trajectory.

    Args:
        trajectory: Path with at least two points
        num_segments: Number of samples (one per ribbon strip)

    Returns:
        Sample points from start to end, headings smoothed
    """
    points = np.asarray(trajectory.points, dtype=float)
    distances = np.asarray(cumulative_distances(trajectory.points))
    targets = np.linspace(0.0, 1.0, num_segments) * distances[-1]

    # Segment holding each target; the last one when past the end
    seg = np.clip(np.searchsorted(distances, targets, side='left') - 1, 0, len(points) - 2)
    seg_start = distances[seg]
    seg_len = distances[seg + 1] - seg_start
    t = np.divide(targets - seg_start, seg_len, out=np.zeros_like(targets), where=seg_len > 0)
    t = np.clip(t, 0.0, 1.0)

    starts = points[seg]
    deltas = points[seg + 1] - starts
    coords = starts + t[:, None] * deltas
    headings = smooth_headings(np.arctan2(deltas[:, 1], deltas[:, 0]).tolist())

    return [SamplePoint(float(lat), float(lng), heading)
            for (lat, lng), heading in zip(coords, headings)]
