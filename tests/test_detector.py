"""Tests for document corner auto-detection."""

import cv2
import numpy as np
import pytest

from scancrop.config import EditorConfig
from scancrop.detection.backend import OpenCVBackend
from scancrop.detection.detector import (
    detect_corners,
    draw_corner_overlay,
    select_quadrilateral,
)
from scancrop.editing.corners import init_default
from scancrop.errors import BackendUnavailable

# 800 x 500 working image
WORK_AREA = 400000.0


def _create_synthetic_page_image(
    width: int = 800,
    height: int = 600,
    page_margin: int = 80,
    bg_color: float = 0.3,
    page_color: float = 0.85,
) -> np.ndarray:
    """Create a synthetic image with a lighter rectangle (page) on a dark background.

    Returns:
        Float32 RGB image [0, 1] with shape (height, width, 3).
    """
    image = np.full((height, width, 3), bg_color, dtype=np.float32)

    y1, y2 = page_margin, height - page_margin
    x1, x2 = page_margin, width - page_margin
    image[y1:y2, x1:x2] = page_color

    return image


def _rect_contour(x: int, y: int, w: int, h: int) -> np.ndarray:
    return np.array([[x, y], [x + w, y], [x + w, y + h], [x, y + h]], dtype=np.int32).reshape(-1, 1, 2)


def _circle_contour(cx: int, cy: int, r: int) -> np.ndarray:
    pts = cv2.ellipse2Poly((cx, cy), (r, r), 0, 0, 360, 5)
    return pts.astype(np.int32).reshape(-1, 1, 2)


class _FailingBackend(OpenCVBackend):
    def canny(self, gray, low, high):
        raise RuntimeError("edge stage crashed")


class _ColdBackend(OpenCVBackend):
    def ready(self) -> bool:
        return False


class TestSelectQuadrilateral:
    """Test contour selection rules."""

    def test_above_area_threshold(self) -> None:
        # 302 x 200 = 15.1%
        candidate = select_quadrilateral([_rect_contour(10, 10, 302, 200)], WORK_AREA)
        assert candidate is not None
        assert candidate.exact
        assert candidate.area == pytest.approx(60400)

    def test_below_area_threshold(self) -> None:
        # 298 x 200 = 14.9%
        assert select_quadrilateral([_rect_contour(10, 10, 298, 200)], WORK_AREA) is None

    def test_empty(self) -> None:
        assert select_quadrilateral([], WORK_AREA) is None

    def test_exact_quad_beats_larger_fallback(self) -> None:
        contours = [
            _circle_contour(400, 250, 200),      # ~31%, not a quad
            _rect_contour(20, 20, 310, 200),     # ~15.5%, a quad
        ]
        candidate = select_quadrilateral(contours, WORK_AREA)
        assert candidate.exact
        assert candidate.area == pytest.approx(62000)

    def test_largest_exact_quad_wins(self) -> None:
        contours = [_rect_contour(0, 0, 320, 200), _rect_contour(0, 0, 700, 400)]
        candidate = select_quadrilateral(contours, WORK_AREA)
        assert candidate.area == pytest.approx(280000)

    def test_fallback_when_no_quad(self) -> None:
        candidate = select_quadrilateral([_circle_contour(400, 250, 200)], WORK_AREA)
        assert candidate is not None
        assert not candidate.exact
        assert candidate.points.shape == (4, 2)
        # Rotated bounding rectangle centred on the circle
        np.testing.assert_allclose(candidate.points.mean(axis=0), [400, 250], atol=2)

    def test_first_fallback_is_kept(self) -> None:
        contours = [_circle_contour(300, 250, 150), _circle_contour(400, 250, 200)]
        candidate = select_quadrilateral(contours, WORK_AREA)
        assert not candidate.exact
        assert candidate.area < np.pi * 160 ** 2
        np.testing.assert_allclose(candidate.points.mean(axis=0), [300, 250], atol=2)

    def test_later_quad_replaces_fallback(self) -> None:
        contours = [_circle_contour(400, 250, 200), _circle_contour(300, 250, 150), _rect_contour(20, 20, 310, 200)]
        candidate = select_quadrilateral(contours, WORK_AREA)
        assert candidate.exact

    def test_custom_threshold(self) -> None:
        contour = _rect_contour(10, 10, 100, 100)
        assert select_quadrilateral([contour], WORK_AREA) is None
        assert select_quadrilateral([contour], WORK_AREA, min_area_ratio=0.02) is not None


class TestDetectCorners:
    """Test the full detection pipeline on synthetic images."""

    def test_detects_page_rectangle(self) -> None:
        image = _create_synthetic_page_image()
        corners = detect_corners(image)

        assert corners is not None
        expected = np.array([[80, 80], [720, 80], [720, 520], [80, 520]], dtype=np.float64)
        np.testing.assert_allclose(corners.as_array(), expected, atol=4)

    def test_large_image_is_downscaled(self) -> None:
        image = _create_synthetic_page_image(width=1600, height=1200, page_margin=160)
        corners = detect_corners(image)

        assert corners is not None
        expected = np.array([[160, 160], [1440, 160], [1440, 1040], [160, 1040]], dtype=np.float64)
        np.testing.assert_allclose(corners.as_array(), expected, atol=8)

    def test_detects_skewed_page(self) -> None:
        image = np.full((600, 800, 3), 0.25, dtype=np.float32)
        quad = np.array([[120, 90], [650, 60], [700, 530], [90, 500]], dtype=np.int32)
        cv2.fillPoly(image, [quad], (0.9, 0.9, 0.9))

        corners = detect_corners(image)
        assert corners is not None
        np.testing.assert_allclose(corners.as_array(), quad, atol=6)

    def test_output_is_canonical(self) -> None:
        corners = detect_corners(_create_synthetic_page_image())
        tl, tr, br, bl = corners.as_array()
        assert tl.sum() < br.sum()
        assert tr[0] > tl[0]
        assert bl[1] > tl[1]

    def test_corners_within_bounds(self) -> None:
        # Page runs off the right and bottom edges
        image = np.full((600, 800, 3), 0.2, dtype=np.float32)
        image[100:, 150:] = 0.9
        corners = detect_corners(image)
        if corners is not None:
            arr = corners.as_array()
            assert arr[:, 0].min() >= 0 and arr[:, 0].max() <= 800
            assert arr[:, 1].min() >= 0 and arr[:, 1].max() <= 600

    def test_uniform_image_returns_none(self) -> None:
        image = np.full((600, 800, 3), 0.5, dtype=np.float32)
        assert detect_corners(image) is None

    def test_small_page_returns_none(self) -> None:
        image = np.full((600, 800, 3), 0.3, dtype=np.float32)
        image[250:350, 350:450] = 0.9
        assert detect_corners(image) is None

    def test_small_page_found_with_lower_threshold(self) -> None:
        image = np.full((600, 800, 3), 0.3, dtype=np.float32)
        image[250:350, 350:450] = 0.9
        config = EditorConfig(detect_min_area_ratio=0.01)
        assert detect_corners(image, config) is not None

    def test_backend_failure_returns_none(self) -> None:
        image = _create_synthetic_page_image()
        assert detect_corners(image, backend=_FailingBackend()) is None

    def test_backend_not_ready_returns_none(self) -> None:
        image = _create_synthetic_page_image()
        assert detect_corners(image, backend=_ColdBackend()) is None

    def test_input_not_modified(self) -> None:
        image = _create_synthetic_page_image()
        original = image.copy()
        detect_corners(image)
        np.testing.assert_array_equal(image, original)


class TestBackend:
    """Test backend readiness."""

    def test_opencv_ready(self) -> None:
        assert OpenCVBackend().ready()

    def test_wait_ready_times_out(self) -> None:
        with pytest.raises(BackendUnavailable):
            _ColdBackend().wait_ready(timeout=0.05, interval=0.01)


class TestDrawOverlay:
    """Test overlay drawing."""

    def test_output_shape_and_range(self) -> None:
        image = _create_synthetic_page_image()
        overlay = draw_corner_overlay(image, init_default(800, 600))
        assert overlay.shape == image.shape
        assert overlay.dtype == np.float32
        assert overlay.min() >= 0.0 and overlay.max() <= 1.0

    def test_outside_dimmed(self) -> None:
        image = np.full((200, 200, 3), 0.8, dtype=np.float32)
        overlay = draw_corner_overlay(image, init_default(200, 200, inset=0.25))
        assert overlay[5, 5, 0] < image[5, 5, 0]
        np.testing.assert_allclose(overlay[100, 100], image[100, 100], atol=1 / 255)
