"""Debug visualization output."""

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from scancrop.preprocessing.encoder import to_uint8

logger = logging.getLogger(__name__)


def save_debug_image(
    image: np.ndarray,
    output_path: Union[str, Path],
    description: Optional[str] = None,
    quality: int = 95
) -> Path:
    """Save an image for inspection, as JPEG unless the path asks for PNG.

    Args:
        image: Image array as float32 RGB [0,1] or uint8 RGB [0,255]
        output_path: Destination path (should include a step number prefix)
        description: Optional description to log
        quality: JPEG quality (0-100)

    Returns:
        The path actually written.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    img_uint8 = to_uint8(image)

    if img_uint8.ndim == 2:
        img_bgr = cv2.cvtColor(img_uint8, cv2.COLOR_GRAY2BGR)
    elif img_uint8.shape[2] == 3:
        img_bgr = cv2.cvtColor(img_uint8, cv2.COLOR_RGB2BGR)
    elif img_uint8.shape[2] == 4:
        img_bgr = cv2.cvtColor(img_uint8, cv2.COLOR_RGBA2BGR)
    else:
        raise ValueError(f"Unsupported number of channels: {img_uint8.shape[2]}")

    suffix = output_path.suffix.lower()
    if suffix == '.png':
        params = [cv2.IMWRITE_PNG_COMPRESSION, 3]
    else:
        if suffix not in ('.jpg', '.jpeg'):
            output_path = output_path.with_suffix('.jpg')
        params = [cv2.IMWRITE_JPEG_QUALITY, quality]

    if not cv2.imwrite(str(output_path), img_bgr, params):
        raise OSError(f"Could not write image: {output_path}")

    if description:
        logger.debug(f"Saved debug image: {output_path} - {description}")
    else:
        logger.debug(f"Saved debug image: {output_path}")

    return output_path
