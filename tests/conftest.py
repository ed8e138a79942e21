"""
Pytest configuration and fixtures for TimeRibbons tests.

Provides reusable trajectories, crossing layouts, and an in-memory tile
source so no test touches the network.
"""

import math

import pytest
from PIL import Image

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from constants import TILE_SIZE
from data_models import Trajectory
from tile_cache import TileCache


class FakeTileSource:
    """Async tile fetcher serving solid-color tiles and counting calls.

    Tiles listed in ``failing`` return None; ``colors`` overrides the color of
    specific (x, y) tiles.
    """

    def __init__(self, color=(60, 90, 120, 255), colors=None, failing=None):
        self.color = color
        self.colors = colors or {}
        self.failing = set(failing or ())
        self.calls = []

    async def __call__(self, x, y, zoom):
        self.calls.append((zoom, x, y))
        if (x, y) in self.failing:
            return None
        return Image.new('RGBA', (TILE_SIZE, TILE_SIZE), self.colors.get((x, y), self.color))


def straight_points(start_lat, start_lng, d_lat, d_lng, count=8):
    """Evenly spaced points on a straight line."""
    return [(start_lat + i * d_lat, start_lng + i * d_lng) for i in range(count)]


def figure_eight_points(count=20, center=(40.0, -74.0), scale=0.01):
    """Open lemniscate of Gerono; its two lobes cross once near the center."""
    t0, t1 = 0.15, 2 * math.pi - 0.25
    points = []
    for k in range(count):
        t = t0 + k * (t1 - t0) / (count - 1)
        points.append((center[0] + scale * math.cos(t),
                       center[1] + scale * math.sin(t) * math.cos(t)))
    return points


@pytest.fixture
def fake_tile_source():
    """Fixture providing a counting in-memory tile source."""
    return FakeTileSource()


@pytest.fixture
def tile_cache(fake_tile_source):
    """Fixture providing a tile cache backed by the fake source."""
    return TileCache(fake_tile_source, timeout=1.0, source_id="fake")


@pytest.fixture
def horizontal_path():
    """West-to-east path through (40.0, -74.0)."""
    return Trajectory(id=1, name="Path 1", color="#00d4aa",
                      points=straight_points(40.0, -74.005, 0.0, 0.0015, count=8))


@pytest.fixture
def vertical_path():
    """South-to-north path through (40.0, -74.0), crossing horizontal_path."""
    return Trajectory(id=2, name="Path 2", color="#ff6b6b",
                      points=straight_points(39.9975, -74.0, 0.0010, 0.0, count=8))


@pytest.fixture
def diagonal_path():
    """Southwest-to-northeast path also passing close to (40.0, -74.0)."""
    return Trajectory(id=3, name="Path 3", color="#4ecdc4",
                      points=straight_points(39.997, -74.003, 0.0009, 0.0011, count=8))


@pytest.fixture
def figure_eight_path():
    """Self-crossing 20-point figure eight."""
    return Trajectory(id=4, name="Path 4", color="#ffe66d", points=figure_eight_points())


@pytest.fixture
def sample_points():
    """Plain list of (lat, lng) points long enough to save."""
    return straight_points(37.7749, -122.4194, 0.0002, 0.0003, count=10)
