"""
Constants for the TimeRibbons path comparison engine.

Centralized definitions for ribbon dimensions, colors, tile settings and
interaction thresholds.
"""

from typing import Tuple
from dataclasses import dataclass


# =============================================================================
# Geodesy
# =============================================================================

EARTH_RADIUS_M = 6371000
PARALLEL_EPSILON = 1e-12  # Cross products below this are treated as parallel
CROSSING_KEY_DECIMALS = 8  # ~1.1 mm at the equator


# =============================================================================
# Colors (RGB format for Pillow)
# =============================================================================

@dataclass(frozen=True)
class Colors:
    """Common colors in RGB format."""
    WHITE: Tuple[int, int, int] = (255, 255, 255)
    BLACK: Tuple[int, int, int] = (0, 0, 0)

    # Ribbon canvas
    RIBBON_BACKGROUND: Tuple[int, int, int] = (13, 13, 21)   # #0d0d15
    MARKER_TICK: Tuple[int, int, int] = (110, 110, 115)      # 40% white on background
    LABEL_TEXT: Tuple[int, int, int] = (110, 110, 115)
    ANCHOR_LINE: Tuple[int, int, int] = (255, 255, 255)
    HOVER_RING: Tuple[int, int, int] = (255, 255, 255)
    SELF_CROSSING: Tuple[int, int, int] = (200, 200, 205)


COLORS = Colors()

# Palette assigned to saved paths in creation order
PATH_COLORS = (
    "#00d4aa",
    "#ff6b6b",
    "#4ecdc4",
    "#ffe66d",
    "#95e1d3",
    "#f38181",
    "#aa96da",
    "#fcbad3",
)


# =============================================================================
# Ribbon Dimensions
# =============================================================================

RIBBON_PADDING = 20        # Left/right padding of every ribbon (px)
RIBBON_HEIGHT = 120        # Full ribbon canvas height (px)
RIBBON_STRIP_MARGIN = 10   # Imagery is inset this much at top and bottom
RIBBON_STRIP_HEIGHT = RIBBON_HEIGHT - 2 * RIBBON_STRIP_MARGIN
RIBBON_HEADER_HEIGHT = 24  # Name/distance header above each ribbon in the CLI output

PATH_LINE_WIDTH = 3
PATH_GLOW_WIDTH = 9
CROSSING_MARKER_RADIUS = 6
DISTANCE_MARKER_COUNT = 4  # Ticks at 0, 1/4, 1/2, 3/4, 1 of the ribbon


# =============================================================================
# Sampling
# =============================================================================

MIN_SEGMENTS = 20
MAX_SEGMENTS = 80
PIXELS_PER_SEGMENT = 8
HEADING_SMOOTH_WEIGHTS = (0.25, 0.5, 0.25)  # prev, current, next

MIN_SAVED_POINTS = 6  # Shorter paths are rejected when saved


# =============================================================================
# Map Tile Settings
# =============================================================================

TILE_SIZE = 256                    # Standard web map tile size
COMPOSITE_RADIUS = 1               # 3x3 neighbor grid
COMPOSITE_SIZE = (2 * COMPOSITE_RADIUS + 1) * TILE_SIZE  # 768px
MAX_TILE_ZOOM = 17
TILE_FETCH_TIMEOUT = 10.0          # Seconds before a fetch counts as failed
TILE_USER_AGENT = "TimeRibbons/1.0"

DEFAULT_TILE_URL = "https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}.png"
TILE_SUBDOMAINS = ("a", "b", "c", "d")


# =============================================================================
# Interaction
# =============================================================================

HIT_RADIUS = 10  # Crossing marker hit-test radius (px)


# =============================================================================
# CLI Defaults
# =============================================================================

DEFAULT_VIEWPORT_WIDTH = 1200
DEFAULT_MAP_ZOOM = 15
