"""Brightness, contrast and rotation adjustments.

Brightness and contrast follow CSS filter semantics: values are percentages
with 100 as identity, brightness scales pixel values and contrast scales
their distance from mid-grey. They are applied to the source before any
resampling, so the warp engine calls them ahead of sampling.

Rotation is a separate whole-image operation baked into history, never
fused into a warp.
"""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def apply_brightness_contrast(
    image: np.ndarray,
    brightness: float = 100.0,
    contrast: float = 100.0,
) -> np.ndarray:
    """Apply brightness then contrast, as a browser canvas filter would.

    Args:
        image: Input image as float32 RGB [0, 1].
        brightness: Brightness percentage (100 = unchanged, 0 = black).
        contrast: Contrast percentage (100 = unchanged, 0 = flat grey).

    Returns:
        Adjusted image as float32 RGB [0, 1]. The input is returned as-is
        when both values are identity.
    """
    if brightness < 0 or contrast < 0:
        raise ValueError(
            f"Brightness and contrast must be non-negative, got {brightness}, {contrast}"
        )

    if brightness == 100 and contrast == 100:
        return image

    out = image.astype(np.float32) * np.float32(brightness / 100.0)
    out = (out - 0.5) * np.float32(contrast / 100.0) + 0.5
    out = np.clip(out, 0.0, 1.0).astype(np.float32)

    logger.debug(f"Adjusted brightness={brightness}%, contrast={contrast}%")
    return out


def rotate_image(image: np.ndarray, angle: float) -> np.ndarray:
    """Rotate an image clockwise by ``angle`` degrees, expanding the canvas to fit.

    Args:
        image: Image as float32 RGB [0, 1].
        angle: Rotation angle in degrees (positive = clockwise).

    Returns:
        Rotated image, float32 RGB [0, 1].
    """
    h, w = image.shape[:2]

    # 90° multiples: exact, no interpolation
    if angle % 90 == 0:
        k = int(angle // 90) % 4
        if k == 0:
            return image
        # rot90 is counter-clockwise
        return np.ascontiguousarray(np.rot90(image, k=4 - k))

    center = (w / 2.0, h / 2.0)
    M = cv2.getRotationMatrix2D(center, -angle, scale=1.0)  # negative for clockwise

    cos = np.abs(M[0, 0])
    sin = np.abs(M[0, 1])
    new_w = int(round(h * sin + w * cos))
    new_h = int(round(h * cos + w * sin))

    M[0, 2] += (new_w / 2.0) - center[0]
    M[1, 2] += (new_h / 2.0) - center[1]

    rotated = cv2.warpAffine(
        image.astype(np.float32),
        M,
        (new_w, new_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(1.0, 1.0, 1.0),
    )

    logger.debug(f"Rotated {w}x{h} by {angle:.1f}° -> {new_w}x{new_h}")
    return rotated


def apply_adjustments(
    image: np.ndarray,
    brightness: float = 100.0,
    contrast: float = 100.0,
    rotation: float = 0.0,
) -> np.ndarray:
    """Apply brightness/contrast to the source pixels, then rotate the result."""
    adjusted = apply_brightness_contrast(image, brightness, contrast)
    return rotate_image(adjusted, rotation)
