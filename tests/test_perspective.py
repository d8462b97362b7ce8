"""Tests for the perspective warp engine.

The homography method is the default; the triangle method is checked on
shapes where both mappings agree exactly.
"""

import cv2
import numpy as np
import pytest

from scancrop.editing.corners import CornerSet
from scancrop.errors import DegenerateGeometry
from scancrop.warp.perspective import (
    check_geometry,
    compute_homography,
    compute_output_dimensions,
    warp,
)


def _random_image(height: int, width: int, seed: int = 0) -> np.ndarray:
    rng = np.random.RandomState(seed)
    return rng.rand(height, width, 3).astype(np.float32)


class TestComputeOutputDimensions:
    """Test output dimension computation from corners."""

    def test_rectangle(self) -> None:
        corners = np.array([[0, 0], [100, 0], [100, 50], [0, 50]], dtype=np.float32)
        assert compute_output_dimensions(corners) == (100, 50)

    def test_uses_longer_opposite_side(self) -> None:
        # Top edge 60 wide, bottom edge 100 wide; both sides ~53.85 tall
        corners = np.array([[20, 0], [80, 0], [100, 50], [0, 50]], dtype=np.float32)
        w, h = compute_output_dimensions(corners)
        assert w == 100
        assert h == round(np.hypot(20, 50))

    def test_accepts_corner_set(self) -> None:
        corners = CornerSet.from_rect(10, 10, 30, 20, 100, 100)
        assert compute_output_dimensions(corners) == (30, 20)


class TestCheckGeometry:
    """Test degenerate corner rejection."""

    def test_valid_quad(self) -> None:
        check_geometry(np.array([[35, 60], [380, 20], [420, 510], [15, 470]]))

    def test_three_collinear(self) -> None:
        corners = np.array([[0, 0], [50, 0], [100, 0], [0, 100]], dtype=np.float64)
        with pytest.raises(DegenerateGeometry):
            check_geometry(corners)

    def test_duplicate_corners(self) -> None:
        corners = np.array([[0, 0], [0, 0], [100, 100], [0, 100]], dtype=np.float64)
        with pytest.raises(DegenerateGeometry):
            check_geometry(corners)

    def test_self_intersecting(self) -> None:
        # TL, TR, BL, BR: a bow-tie
        corners = np.array([[0, 0], [100, 0], [0, 100], [100, 100]], dtype=np.float64)
        with pytest.raises(DegenerateGeometry):
            check_geometry(corners)

    def test_concave(self) -> None:
        corners = np.array([[0, 0], [100, 0], [30, 30], [0, 100]], dtype=np.float64)
        with pytest.raises(DegenerateGeometry):
            check_geometry(corners)

    def test_mirrored_order(self) -> None:
        corners = np.array([[0, 0], [0, 100], [100, 100], [100, 0]], dtype=np.float64)
        with pytest.raises(DegenerateGeometry):
            check_geometry(corners)

    def test_degenerate_error_is_value_error(self) -> None:
        assert issubclass(DegenerateGeometry, ValueError)


class TestComputeHomography:
    """Test the projective solve."""

    def test_maps_corners_to_rectangle(self) -> None:
        src = np.array([[35, 60], [380, 20], [420, 510], [15, 470]], dtype=np.float64)
        w, h = compute_output_dimensions(src)
        matrix = compute_homography(src, w, h)

        mapped = cv2.perspectiveTransform(src.reshape(-1, 1, 2), matrix).reshape(4, 2)
        np.testing.assert_allclose(mapped, [[0, 0], [w, 0], [w, h], [0, h]], atol=1e-3)


class TestWarp:
    """Test warp rasterization."""

    @pytest.mark.parametrize("method", ["homography", "triangles"])
    def test_exact_rectangle_is_identity(self, method: str) -> None:
        image = _random_image(80, 120)
        corners = CornerSet([[0, 0], [120, 0], [120, 80], [0, 80]], 120, 80)

        result = warp(image, corners, method=method)
        assert result.shape == (80, 120, 3)
        np.testing.assert_allclose(result, image, atol=1e-4)

    @pytest.mark.parametrize("method", ["homography", "triangles"])
    def test_sub_region(self, method: str) -> None:
        image = _random_image(200, 300, seed=1)
        corners = CornerSet.from_rect(50, 40, 200, 100, 300, 200)

        result = warp(image, corners, method=method)
        assert result.shape == (100, 200, 3)
        np.testing.assert_allclose(result, image[40:140, 50:250], atol=1e-4)

    def test_skewed_quad_size(self) -> None:
        image = _random_image(600, 500, seed=2)
        corners = CornerSet([[35, 60], [380, 20], [420, 510], [15, 470]], 500, 600)
        result = warp(image, corners)
        assert (result.shape[1], result.shape[0]) == compute_output_dimensions(corners)
        assert result.dtype == np.float32

    def test_methods_agree_on_parallelogram(self) -> None:
        image = np.tile(np.linspace(0, 1, 200, dtype=np.float32), (150, 1))
        image = np.dstack([image, image.T[:150, :150].repeat(2, axis=1)[:, :200], image])
        corners = CornerSet([[40, 20], [160, 30], [150, 130], [30, 120]], 200, 150)

        by_homography = warp(image, corners, method="homography")
        by_triangles = warp(image, corners, method="triangles")
        assert by_homography.shape == by_triangles.shape
        # Interior only; the borders differ by interpolation at the clip edge
        inner = (slice(2, -2), slice(2, -2))
        np.testing.assert_allclose(by_homography[inner], by_triangles[inner], atol=2e-2)

    def test_value_range_preserved(self) -> None:
        image = _random_image(100, 100, seed=3)
        corners = CornerSet([[10, 12], [90, 8], [94, 90], [6, 88]], 100, 100)
        result = warp(image, corners)
        assert result.min() >= 0.0
        assert result.max() <= 1.0

    def test_adjustments_applied_before_sampling(self) -> None:
        image = np.full((50, 60, 3), 0.8, dtype=np.float32)
        corners = CornerSet.from_rect(0, 0, 60, 50, 60, 50)
        result = warp(image, corners, brightness=50)
        np.testing.assert_allclose(result, 0.4, atol=1e-5)

    def test_source_not_modified(self) -> None:
        image = _random_image(60, 60, seed=4)
        original = image.copy()
        warp(image, CornerSet.from_rect(5, 5, 40, 40, 60, 60), brightness=130, contrast=70)
        np.testing.assert_array_equal(image, original)

    def test_collinear_corners_rejected(self) -> None:
        image = _random_image(200, 200)
        corners = CornerSet([[0, 0], [50, 0], [100, 0], [0, 100]], 200, 200)
        with pytest.raises(DegenerateGeometry):
            warp(image, corners)

    def test_collapsed_corners_rejected(self) -> None:
        image = _random_image(200, 200)
        # Every corner dragged past the same image border
        corners = CornerSet([[250, 0], [260, 0], [260, 10], [250, 10]], 200, 200)
        with pytest.raises(DegenerateGeometry):
            warp(image, corners, method="triangles")

    def test_unknown_method(self) -> None:
        image = _random_image(20, 20)
        with pytest.raises(ValueError, match="Unknown warp method"):
            warp(image, CornerSet.from_rect(0, 0, 10, 10, 20, 20), method="mesh")
