"""Image loading from files or encoded payloads (HEIC, DNG, JPEG, PNG, TIFF, WebP)."""

import io
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from scancrop.errors import ImageLoadFailed

logger = logging.getLogger(__name__)

STANDARD_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.tiff', '.tif', '.webp', '.bmp')
HEIC_EXTENSIONS = ('.heic', '.heif')
RAW_EXTENSIONS = ('.dng', '.cr2', '.nef', '.arw')


class ImageMetadata:
    """Metadata extracted from loaded image."""

    def __init__(
        self,
        original_size: Tuple[int, int],
        format: str,
        bit_depth: int,
    ) -> None:
        self.original_size = original_size  # (width, height)
        self.format = format
        self.bit_depth = bit_depth

    @property
    def width(self) -> int:
        return self.original_size[0]

    @property
    def height(self) -> int:
        return self.original_size[1]


def _to_rgb_array(img: Image.Image) -> np.ndarray:
    """Convert a PIL image to float32 RGB [0, 1], dropping alpha."""
    if img.mode not in ('RGB', 'RGBA', 'L'):
        img = img.convert('RGBA' if 'A' in img.getbands() else 'RGB')

    arr = np.asarray(img).astype(np.float32) / 255.0

    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    elif arr.shape[2] == 4:
        arr = arr[:, :, :3]

    return np.ascontiguousarray(arr)


def _open_pil(source: Union[str, io.BytesIO], label: str) -> Tuple[np.ndarray, ImageMetadata]:
    try:
        with Image.open(source) as img:
            img.load()
            original_size = img.size
            format_name = img.format or "UNKNOWN"
            img = ImageOps.exif_transpose(img)
            arr = _to_rgb_array(img)
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ImageLoadFailed(f"Could not decode image {label}: {e}") from e

    metadata = ImageMetadata(
        original_size=original_size,
        format=format_name,
        bit_depth=8
    )

    logger.info(f"Loaded {format_name}: {label} ({arr.shape[1]}x{arr.shape[0]})")

    return arr, metadata


def load_heic(path: str) -> Tuple[np.ndarray, ImageMetadata]:
    """Load HEIC/HEIF image using pillow-heif."""
    try:
        from pillow_heif import register_heif_opener
        register_heif_opener()
    except ImportError as e:
        raise ImportError(
            "pillow-heif is required for HEIC support. "
            "Install with: pip install pillow-heif"
        ) from e

    return _open_pil(path, path)


def load_dng(path: str) -> Tuple[np.ndarray, ImageMetadata]:
    """Load DNG/RAW image using rawpy, demosaiced to 16-bit sRGB."""
    try:
        import rawpy
    except ImportError as e:
        raise ImportError(
            "rawpy is required for DNG/RAW support. "
            "Install with: pip install rawpy"
        ) from e

    try:
        with rawpy.imread(path) as raw:
            original_size = (raw.sizes.width, raw.sizes.height)
            rgb = raw.postprocess(
                use_camera_wb=True,
                output_color=rawpy.ColorSpace.sRGB,
                output_bps=16,
                no_auto_bright=False,
            )
    except (rawpy.LibRawError, OSError) as e:
        raise ImageLoadFailed(f"Could not decode RAW image {path}: {e}") from e

    arr = rgb.astype(np.float32) / 65535.0

    metadata = ImageMetadata(
        original_size=original_size,
        format="DNG",
        bit_depth=16
    )

    logger.info(f"Loaded DNG: {path} ({arr.shape[1]}x{arr.shape[0]}, 16-bit)")

    return arr, metadata


def load_image(path: str) -> Tuple[np.ndarray, ImageMetadata]:
    """Load image from any supported format.

    Args:
        path: Path to image file

    Returns:
        Tuple of (RGB array as float32 [0,1] with shape (H, W, 3), metadata)

    Raises:
        FileNotFoundError: If file does not exist
        ImageLoadFailed: If the format is unsupported or the file cannot be decoded
    """
    path_obj = Path(path)

    if not path_obj.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    ext = path_obj.suffix.lower()

    if ext in HEIC_EXTENSIONS:
        return load_heic(str(path))
    elif ext in RAW_EXTENSIONS:
        return load_dng(str(path))
    elif ext in STANDARD_EXTENSIONS:
        return _open_pil(str(path), str(path))
    else:
        raise ImageLoadFailed(f"Unsupported image format: {ext}")


def decode_image(data: bytes, name: Optional[str] = None) -> Tuple[np.ndarray, ImageMetadata]:
    """Decode an encoded image payload (PNG, JPEG, ...) held in memory.

    Raises:
        ImageLoadFailed: If the payload cannot be decoded
    """
    if not data:
        raise ImageLoadFailed("Empty image payload")

    return _open_pil(io.BytesIO(data), name or "<bytes>")
