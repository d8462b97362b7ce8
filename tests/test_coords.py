"""Tests for coordinate mapping and hit-testing."""

import pytest

from scancrop.editing.coords import CoordinateMapper, ElementBox, ViewTransform
from scancrop.editing.corners import CornerSet, Point, init_default
from scancrop.editing.hit_test import CORNER, EDGE, DragTarget, hit_radius, hit_test


def _mapper(
    natural=(1000, 800),
    box=(0, 0, 1000, 800),
    zoom=1.0,
    pan=(0.0, 0.0),
) -> CoordinateMapper:
    view = ViewTransform(zoom=zoom, pan_x=pan[0], pan_y=pan[1])
    return CoordinateMapper(natural[0], natural[1], ElementBox(*box), view)


class TestCoordinateMapper:
    """Test screen <-> natural conversion."""

    def test_identity_at_unit_scale(self) -> None:
        mapper = _mapper()
        assert mapper.scale == 1.0
        assert mapper.screen_to_natural(120, 45) == Point(120, 45)

    def test_scale_from_rendered_width(self) -> None:
        # 1000px image rendered 500px wide
        mapper = _mapper(box=(20, 10, 500, 400))
        assert mapper.scale == 2.0
        assert mapper.screen_to_natural(20, 10) == Point(0, 0)
        assert mapper.screen_to_natural(270, 210) == Point(500, 400)

    def test_zoom_and_pan(self) -> None:
        mapper = _mapper(box=(0, 0, 500, 400), zoom=2.0, pan=(30, -10))
        # screen = pan + client * zoom, natural = client * 2
        assert mapper.screen_to_natural(30 + 100, -10 + 60) == Point(100, 60)

    def test_round_trip(self) -> None:
        mapper = _mapper(box=(13, 7, 640, 512), zoom=1.7, pan=(4, 9))
        point = Point(321.5, 77.25)
        sx, sy = mapper.natural_to_screen(point)
        back = mapper.screen_to_natural(sx, sy)
        assert back.x == pytest.approx(point.x)
        assert back.y == pytest.approx(point.y)

    def test_delta_scaled_by_zoom(self) -> None:
        mapper = _mapper(zoom=2.0)
        dx, dy = mapper.screen_delta_to_natural((100, 100), (150, 80))
        assert dx == pytest.approx(25)
        assert dy == pytest.approx(-10)

    def test_zero_width_box(self) -> None:
        mapper = _mapper(box=(0, 0, 0, 0))
        assert mapper.scale == 1.0


class TestHitTest:
    """Test handle hit-testing."""

    def test_hits_corner(self) -> None:
        corners = init_default(1000, 800)
        assert hit_test(100, 80, corners, _mapper()) == DragTarget(CORNER, 0)
        assert hit_test(905, 715, corners, _mapper()) == DragTarget(CORNER, 2)

    def test_hits_edge_midpoint(self) -> None:
        corners = init_default(1000, 800)
        assert hit_test(500, 85, corners, _mapper()) == DragTarget(EDGE, 0)
        assert hit_test(100, 400, corners, _mapper()) == DragTarget(EDGE, 3)

    def test_miss(self) -> None:
        corners = init_default(1000, 800)
        assert hit_test(500, 400, corners, _mapper()) is None

    def test_radius_is_strict(self) -> None:
        corners = init_default(1000, 800)
        assert hit_test(100 + 24.9, 80, corners, _mapper()) == DragTarget(CORNER, 0)
        assert hit_test(100 + 25, 80, corners, _mapper()) is None

    def test_corner_priority_over_edge(self) -> None:
        corners = CornerSet([[100, 100], [120, 100], [120, 120], [100, 120]], 1000, 800)
        # Closer to the top edge midpoint (110, 100) but within reach of TL
        assert hit_test(108, 100, corners, _mapper()) == DragTarget(CORNER, 0)

    def test_visual_radius_constant_under_zoom(self) -> None:
        corners = init_default(1000, 800)
        mapper = _mapper(box=(0, 0, 500, 400), zoom=2.0)
        sx, sy = mapper.natural_to_screen(corners[0])
        assert (sx, sy) == (100, 80)
        assert hit_test(sx + 20, sy, corners, mapper) == DragTarget(CORNER, 0)
        assert hit_test(sx + 30, sy, corners, mapper) is None

    def test_natural_radius_grows_when_zoomed_out(self) -> None:
        assert hit_radius(0.5) == pytest.approx(50)
        assert hit_radius(2.0) == pytest.approx(12.5)

    def test_invalid_target(self) -> None:
        with pytest.raises(ValueError):
            DragTarget("middle", 0)
        with pytest.raises(ValueError):
            DragTarget(CORNER, 4)
