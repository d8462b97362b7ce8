"""Encode result images into payloads for the document layer."""

import io
import logging

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

_PIL_FORMATS = {
    'png': 'PNG',
    'jpg': 'JPEG',
    'jpeg': 'JPEG',
    'webp': 'WEBP',
}


def to_uint8(image: np.ndarray) -> np.ndarray:
    """Convert float32 [0, 1] to uint8 [0, 255] with rounding."""
    if image.dtype == np.uint8:
        return image
    return (np.clip(image, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


def encode_image(
    image: np.ndarray,
    fmt: str = 'png',
    quality: int = 92,
) -> bytes:
    """Encode an image as PNG, JPEG or WebP bytes.

    Args:
        image: Image array as float32 RGB [0,1] or uint8 RGB [0,255]
        fmt: Output format name
        quality: JPEG/WebP quality (0-100)

    Returns:
        Encoded image payload
    """
    pil_format = _PIL_FORMATS.get(fmt.lower())
    if pil_format is None:
        raise ValueError(f"Unsupported output format: {fmt}")

    arr = to_uint8(image)
    if arr.ndim == 3 and arr.shape[2] == 1:
        arr = arr[:, :, 0]

    buffer = io.BytesIO()
    save_kwargs = {}
    if pil_format in ('JPEG', 'WEBP'):
        save_kwargs['quality'] = quality

    Image.fromarray(arr).save(buffer, format=pil_format, **save_kwargs)
    payload = buffer.getvalue()

    logger.debug(f"Encoded {arr.shape[1]}x{arr.shape[0]} image as {pil_format} ({len(payload)} bytes)")
    return payload


def encode_png(image: np.ndarray) -> bytes:
    return encode_image(image, 'png')
