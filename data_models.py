"""
Data models for the TimeRibbons comparison engine.

Pydantic models for the values that cross module boundaries (trajectories,
crossings, alignment and render options) and light dataclasses for the
ephemeral values produced inside one render pass.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, model_validator

from constants import PATH_COLORS, RIBBON_PADDING
from geometry import crossing_key, path_distance


class Trajectory(BaseModel):
    """
    A saved path: an ordered, immutable sequence of (lat, lng) points.

    ``total_distance`` is the great-circle length in meters. A caller that
    already knows it may pass it in; otherwise it is derived from the points.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Identity of the path within a session")
    name: str = Field(default="", description="Display name, e.g. 'Path 3'")
    color: str = Field(default=PATH_COLORS[0], description="Display color as a CSS hex string")
    points: Tuple[Tuple[float, float], ...] = Field(
        min_length=2, description="(lat, lng) pairs in drawing order"
    )
    total_distance: float = Field(ge=0, description="Path length in meters")

    @model_validator(mode="before")
    @classmethod
    def _derive_total_distance(cls, data):
        if isinstance(data, dict) and data.get("total_distance") is None and "points" in data:
            data = dict(data)
            data["total_distance"] = path_distance([tuple(p) for p in data["points"]])
        return data

    @property
    def point_count(self) -> int:
        return len(self.points)


class CrossingEvent(BaseModel):
    """
    A point where a segment of ``trajectory_id`` intersects another segment.

    ``dist_fraction_a`` is the position along the owning trajectory and
    ``dist_fraction_b`` the position along the other one. For a self-crossing
    ``other_id == trajectory_id``.
    """
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    dist_fraction_a: float = Field(description="Arc-length fraction on the owning trajectory")
    dist_fraction_b: float = Field(description="Arc-length fraction on the other trajectory")
    trajectory_id: int
    other_id: int
    other_color: str

    @property
    def key(self) -> str:
        return crossing_key(self.lat, self.lng)

    @property
    def is_self_crossing(self) -> bool:
        return self.other_id == self.trajectory_id


class AlignmentState(BaseModel):
    """The crossing all ribbons are aligned on, and the ribbon that defines it."""
    model_config = ConfigDict(frozen=True)

    crossing_key: str
    anchor_id: int


class LayoutOptions(BaseModel):
    """Per-ribbon placement handed from the layout pass to the renderer.

    ``draw_offset`` already includes the layout's global shift, so the
    ribbon's effective padding is ``padding + draw_offset``.
    """
    model_config = ConfigDict(frozen=True)

    draw_offset: float = 0.0
    total_canvas_width: float = Field(gt=0)
    viewport_width: float = Field(gt=0)
    crossing_dist: Optional[float] = Field(
        default=None, description="Distance from start to the alignment crossing (m)"
    )
    is_anchor: bool = False
    padding: float = RIBBON_PADDING
    hover_key: Optional[str] = None

    @property
    def effective_padding(self) -> float:
        return self.padding + self.draw_offset

    @property
    def relative_labels(self) -> bool:
        """Matched, non-anchor ribbons label distances relative to the crossing."""
        return self.crossing_dist is not None and not self.is_anchor


@dataclass(frozen=True)
class SamplePoint:
    """A point on a trajectory at a given arc length, with travel heading in radians."""
    lat: float
    lng: float
    heading: float


@dataclass(frozen=True)
class TilePixel:
    """Tile containing a point and the point's pixel offset inside that tile."""
    tile_x: int
    tile_y: int
    pixel_x: float
    pixel_y: float


@dataclass
class RibbonImage:
    """A rendered ribbon and the geometry needed to interact with it."""
    trajectory_id: int
    image: Image.Image
    ribbon_width: float
    effective_padding: float
    segment_width: int
    num_segments: int
    tiles_missing: int = 0

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size
