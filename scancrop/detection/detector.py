"""Detect document corners with an edge/contour pipeline.

Stages, in order:

1. Downscale to a bounded longest side (800 px by default).
2. Grayscale.
3. Gaussian blur (5x5).
4. Canny edges (50/150).
5. Dilation (3x3) to close gaps in the edge outline.
6. External contours.
7. Contour selection: contours covering at least 15% of the working image
   are approximated as polygons with a tolerance of 2% of their perimeter.
   Exact 4-vertex approximations are preferred, largest first; when none
   exists the first qualifying contour's minimum-area rectangle is used.
8. Rescale to original coordinates, sort into [TL, TR, BR, BL], clamp.

Detection is best-effort. Any failure yields None and the caller falls back
to the default inset rectangle.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import cv2
import numpy as np

from scancrop.config import EditorConfig
from scancrop.detection.backend import OpenCVBackend, default_backend
from scancrop.editing.corners import CornerSet, sort_canonical
from scancrop.errors import DetectionFailed
from scancrop.preprocessing.normalizer import normalize

logger = logging.getLogger(__name__)


@dataclass
class QuadCandidate:
    """A contour accepted as a document outline, in working-image coordinates."""

    points: np.ndarray  # shape (4, 2), unordered
    area: float         # contour area in working pixels
    exact: bool         # True for a 4-vertex approximation, False for a bounding-rect fallback


def select_quadrilateral(
    contours: Iterable[np.ndarray],
    image_area: float,
    min_area_ratio: float = 0.15,
    epsilon_ratio: float = 0.02,
    backend: Optional[OpenCVBackend] = None,
) -> Optional[QuadCandidate]:
    """Pick the best document outline among contours.

    Args:
        contours: Contours as returned by ``cv2.findContours``.
        image_area: Area of the image the contours were found in.
        min_area_ratio: Minimum contour area as a fraction of ``image_area``
            (inclusive).
        epsilon_ratio: Polygon approximation tolerance as a fraction of the
            contour perimeter.
        backend: Backend providing the contour operations.

    Returns:
        The best candidate, or None if no contour reaches the area threshold.
    """
    backend = backend or default_backend()
    min_area = image_area * min_area_ratio

    best_exact: Optional[QuadCandidate] = None
    best_fallback: Optional[QuadCandidate] = None

    for contour in contours:
        area = backend.contour_area(contour)
        if area < min_area:
            continue

        approx = backend.approximate_polygon(contour, epsilon_ratio)

        if len(approx) == 4:
            if best_exact is None or area > best_exact.area:
                best_exact = QuadCandidate(
                    points=approx.reshape(4, 2).astype(np.float64),
                    area=area,
                    exact=True,
                )
                logger.debug(f"Quad candidate: area={area:.0f} ({area / image_area:.3f})")
        elif best_exact is None and best_fallback is None:
            best_fallback = QuadCandidate(
                points=backend.min_area_rect(contour),
                area=area,
                exact=False,
            )
            logger.debug(
                f"Fallback candidate ({len(approx)} vertices): "
                f"area={area:.0f} ({area / image_area:.3f})"
            )

    return best_exact if best_exact is not None else best_fallback


def _run_pipeline(
    image: np.ndarray,
    config: EditorConfig,
    backend: OpenCVBackend,
) -> CornerSet:
    height, width = image.shape[:2]

    norm = normalize(image, config.detect_max_dimension)
    work_h, work_w = norm.image.shape[:2]

    gray = backend.to_gray(norm.image)
    blurred = backend.blur(gray, config.detect_blur_kernel)
    edges = backend.canny(blurred, config.detect_canny_low, config.detect_canny_high)
    dilated = backend.dilate(edges, config.detect_dilate_kernel)
    contours = backend.external_contours(dilated)

    candidate = select_quadrilateral(
        contours,
        float(work_h * work_w),
        min_area_ratio=config.detect_min_area_ratio,
        epsilon_ratio=config.detect_epsilon_ratio,
        backend=backend,
    )
    if candidate is None:
        raise DetectionFailed(
            f"No contour covers {config.detect_min_area_ratio:.0%} of the image "
            f"({len(contours)} contours)"
        )

    points = norm.to_original(candidate.points)
    corners = CornerSet(sort_canonical(points), width, height)

    logger.info(
        f"Document detected ({'quad' if candidate.exact else 'min-area rect'}): "
        f"area_ratio={candidate.area / (work_h * work_w):.3f}, corners={corners.to_list()}"
    )
    return corners


def detect_corners(
    image: np.ndarray,
    config: Optional[EditorConfig] = None,
    backend: Optional[OpenCVBackend] = None,
) -> Optional[CornerSet]:
    """Propose document corners for an image.

    Args:
        image: Input image as float32 RGB [0, 1], shape (H, W, 3). Not modified.
        config: Detection parameters. If None, uses defaults.
        backend: Image-processing backend. If None, uses OpenCV.

    Returns:
        CornerSet in original image coordinates, or None when nothing was
        found or any stage failed.
    """
    config = config or EditorConfig()
    backend = backend or default_backend()

    if not backend.ready():
        logger.warning("Image backend not ready, skipping auto-detection")
        return None

    try:
        return _run_pipeline(image, config, backend)
    except DetectionFailed as e:
        logger.info(f"No document detected: {e}")
    except Exception as e:
        logger.warning(f"Auto-detection failed: {e}")

    return None


def draw_corner_overlay(
    image: np.ndarray,
    corners: CornerSet,
    dim: float = 0.5,
) -> np.ndarray:
    """Draw the crop overlay: dimmed outside, quad outline, corner and edge handles.

    Args:
        image: Input image as float32 RGB [0, 1].
        corners: Corner set to draw.
        dim: Brightness multiplier for pixels outside the quad.

    Returns:
        Image with overlay as float32 RGB [0, 1].
    """
    img_uint8 = (np.clip(image, 0.0, 1.0) * 255).astype(np.uint8).copy()
    pts = np.round(corners.as_array()).astype(np.int32)

    inside = np.zeros(img_uint8.shape[:2], dtype=np.uint8)
    cv2.fillPoly(inside, [pts], 1)
    outside = inside == 0
    img_uint8[outside] = (img_uint8[outside] * dim).astype(np.uint8)

    for i in range(4):
        pt1 = tuple(int(v) for v in pts[i])
        pt2 = tuple(int(v) for v in pts[(i + 1) % 4])
        cv2.line(img_uint8, pt1, pt2, (0, 255, 0), 2)

    radius = max(4, int(min(image.shape[:2]) * 0.01))
    for corner in pts:
        cv2.circle(img_uint8, tuple(int(v) for v in corner), radius, (255, 0, 0), -1)
    for mid in corners.midpoints():
        cv2.circle(img_uint8, (int(round(mid.x)), int(round(mid.y))), radius, (255, 255, 0), 2)

    return img_uint8.astype(np.float32) / 255.0
