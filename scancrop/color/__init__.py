"""Pixel adjustments applied before sampling."""

from scancrop.color.adjust import apply_adjustments, apply_brightness_contrast, rotate_image

__all__ = [
    "apply_adjustments",
    "apply_brightness_contrast",
    "rotate_image",
]
