"""Error taxonomy for the crop engine."""


class ScanCropError(Exception):
    """Base class for all scancrop errors."""


class DegenerateGeometry(ScanCropError, ValueError):
    """Corner set is collinear, self-intersecting or has no usable area."""


class ImageLoadFailed(ScanCropError, ValueError):
    """Source image could not be decoded."""


class DetectionFailed(ScanCropError):
    """Auto-detection found no acceptable contour.

    Only raised between detection stages; ``detect_corners`` absorbs it.
    """


class BackendUnavailable(ScanCropError):
    """Image-processing backend did not become ready in time."""
