"""
Tests for RibbonConfig validation and the command line front end.

Tests path file loading, tile URL templates, session building, argument
parsing and a full offline run.
"""

import json

import pytest
from unittest.mock import patch
import tempfile
import os

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from PIL import Image

from constants import DEFAULT_TILE_URL, DEFAULT_VIEWPORT_WIDTH, RIBBON_HEADER_HEIGHT, RIBBON_HEIGHT
from main import (
    PathEntry,
    RibbonConfig,
    load_paths,
    template_url_for,
    build_session,
    parse_args,
    run,
)
from tests.conftest import FakeTileSource, straight_points

HORIZONTAL = straight_points(40.0, -74.005, 0.0, 0.0015)
VERTICAL = straight_points(39.9975, -74.0, 0.0010, 0.0)


def _write_json(tmpdir, data, name="paths.json"):
    path = os.path.join(tmpdir, name)
    with open(path, 'w') as f:
        json.dump(data, f)
    return path


class TestLoadPaths:
    """Tests for reading paths from JSON."""

    def test_named_entries(self):
        """Entries with names and points are read as-is."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_json(tmpdir, {"paths": [{"name": "Run", "points": HORIZONTAL}]})
            paths = load_paths(path)

        assert len(paths) == 1
        assert paths[0].name == "Run"
        assert paths[0].points[0] == HORIZONTAL[0]

    def test_bare_point_lists(self):
        """A bare list of point lists is accepted."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_json(tmpdir, [HORIZONTAL, VERTICAL])
            paths = load_paths(path)

        assert len(paths) == 2
        assert paths[1].name is None

    def test_missing_paths_key(self):
        """An object without "paths" yields no paths."""
        with tempfile.TemporaryDirectory() as tmpdir:
            assert load_paths(_write_json(tmpdir, {"other": 1})) == []

    def test_malformed_point_raises(self):
        """Points that are not (lat, lng) pairs are rejected."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_json(tmpdir, [[["north", "west"]]])
            with pytest.raises(ValueError):
                load_paths(path)


class TestRibbonConfig:
    """Tests for RibbonConfig pydantic model."""

    def test_defaults(self):
        """Unspecified options fall back to the defaults."""
        config = RibbonConfig(paths=[PathEntry(points=HORIZONTAL)], output_file="out.png")
        assert config.viewport_width == DEFAULT_VIEWPORT_WIDTH
        assert config.tile_url == DEFAULT_TILE_URL
        assert config.align is None

    def test_viewport_minimum(self):
        """Viewport narrower than 100px should raise."""
        with pytest.raises(ValueError):
            RibbonConfig(paths=[], output_file="out.png", viewport_width=50)

    def test_zoom_range(self):
        """Zoom outside 0-22 should raise."""
        with pytest.raises(ValueError):
            RibbonConfig(paths=[], output_file="out.png", map_zoom=30)


class TestTemplateUrl:
    """Tests for tile URL templates."""

    def test_fills_coordinates(self):
        """x, y and z are substituted."""
        url_for = template_url_for("https://tiles.test/{z}/{x}/{y}.png")
        assert url_for(3, 5, 7) == "https://tiles.test/7/3/5.png"

    def test_subdomains_rotate(self):
        """Subdomains are spread across tiles."""
        url_for = template_url_for("https://{s}.tiles.test/{z}/{x}/{y}.png")
        hosts = {url_for(x, 0, 10).split(".")[0] for x in range(4)}
        assert len(hosts) > 1


class TestBuildSession:
    """Tests for building a session from loaded paths."""

    def test_short_paths_skipped(self, tile_cache):
        """Paths below the minimum length are skipped, others kept."""
        paths = [
            PathEntry(name="Too short", points=HORIZONTAL[:3]),
            PathEntry(name="Long enough", points=HORIZONTAL),
        ]
        session = build_session(paths, tile_cache)
        assert [t.name for t in session.trajectories] == ["Long enough"]

    def test_default_names(self, tile_cache):
        """Unnamed paths get numbered names."""
        session = build_session([PathEntry(points=HORIZONTAL), PathEntry(points=VERTICAL)], tile_cache)
        assert [t.name for t in session.trajectories] == ["Path 1", "Path 2"]


class TestParseArgs:
    """Tests for command line parsing."""

    def test_parses_options(self):
        """Options map onto the config model."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_json(tmpdir, [HORIZONTAL])
            config = parse_args([path, "out.png", "--viewport-width", "800",
                                 "--map-zoom", "14", "--align", "1.0,2.0", "--anchor", "2", "-v"])

        assert config.viewport_width == 800
        assert config.map_zoom == 14
        assert config.align == "1.0,2.0"
        assert config.anchor == 2
        assert config.verbose
        assert len(config.paths) == 1

    def test_missing_file_exits(self):
        """An unreadable input file exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["/nonexistent/paths.json", "out.png"])
        assert exc_info.value.code == 1


class TestRun:
    """Tests for a full offline run."""

    @pytest.mark.asyncio
    async def test_writes_stacked_image(self):
        """Each ribbon is written under its own header into one PNG."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output = os.path.join(tmpdir, "ribbons.png")
            config = RibbonConfig(
                paths=[PathEntry(points=HORIZONTAL), PathEntry(points=VERTICAL)],
                output_file=output,
                viewport_width=600,
            )
            with patch('main.HttpTileSource', return_value=FakeTileSource()):
                assert await run(config) == 0

            with Image.open(output) as img:
                assert img.size == (600, 2 * (RIBBON_HEADER_HEIGHT + RIBBON_HEIGHT))

    @pytest.mark.asyncio
    async def test_aligned_run_widens_canvas(self):
        """Aligning on the shared crossing widens the output."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output = os.path.join(tmpdir, "ribbons.png")
            config = RibbonConfig(
                paths=[PathEntry(points=HORIZONTAL), PathEntry(points=VERTICAL)],
                output_file=output,
                viewport_width=600,
                align="40.00000000,-74.00000000",
            )
            with patch('main.HttpTileSource', return_value=FakeTileSource()):
                assert await run(config) == 0

            with Image.open(output) as img:
                assert img.size[0] > 600

    @pytest.mark.asyncio
    async def test_no_usable_paths(self):
        """A run with only short paths fails without writing output."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output = os.path.join(tmpdir, "ribbons.png")
            config = RibbonConfig(paths=[PathEntry(points=HORIZONTAL[:2])], output_file=output)
            with patch('main.HttpTileSource', return_value=FakeTileSource()):
                assert await run(config) == 1
            assert not os.path.exists(output)
