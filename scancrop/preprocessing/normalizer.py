"""Bounded downscaling for detection working copies."""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class NormalizationResult:
    """Result of image normalization."""

    def __init__(
        self,
        image: np.ndarray,
        scale_factor: float
    ) -> None:
        self.image = image
        self.scale_factor = scale_factor  # working size / original size

    def to_original(self, points: np.ndarray) -> np.ndarray:
        """Map (N, 2) points from the working copy back to original coordinates."""
        return np.asarray(points, dtype=np.float64) / self.scale_factor


def normalize(
    image: np.ndarray,
    max_dimension: int = 800,
) -> NormalizationResult:
    """Downscale an image so its longest side is at most ``max_dimension``.

    Images already within bounds are passed through untouched; nothing is
    ever upscaled.

    Args:
        image: Input image as float32 RGB [0,1] array
        max_dimension: Maximum width or height of the working image

    Returns:
        NormalizationResult with the working image and the scale factor applied
    """
    height, width = image.shape[:2]
    original_max_dim = max(height, width)

    if original_max_dim <= max_dimension:
        logger.debug(f"Image {width}x{height} within {max_dimension}px, no resize needed")
        return NormalizationResult(image=image, scale_factor=1.0)

    scale_factor = max_dimension / original_max_dim
    new_width = max(1, int(round(width * scale_factor)))
    new_height = max(1, int(round(height * scale_factor)))

    img_uint8 = (np.clip(image, 0.0, 1.0) * 255).astype(np.uint8)

    # INTER_AREA is best for downscaling
    resized_uint8 = cv2.resize(
        img_uint8,
        (new_width, new_height),
        interpolation=cv2.INTER_AREA
    )

    logger.debug(
        f"Resized image from {width}x{height} to {new_width}x{new_height} "
        f"(scale: {scale_factor:.3f})"
    )

    return NormalizationResult(
        image=resized_uint8.astype(np.float32) / 255.0,
        scale_factor=scale_factor
    )
