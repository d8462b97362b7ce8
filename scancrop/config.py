"""Editor and detection configuration."""

from dataclasses import dataclass


@dataclass
class EditorConfig:
    """All tunable parameters in one place."""

    # Auto-detection
    auto_detect: bool = True
    detect_max_dimension: int = 800  # px, longest edge of the detection copy
    detect_blur_kernel: int = 5
    detect_canny_low: int = 50
    detect_canny_high: int = 150
    detect_dilate_kernel: int = 3
    detect_min_area_ratio: float = 0.15  # inclusive
    detect_epsilon_ratio: float = 0.02   # polygon tolerance as fraction of perimeter

    # Corner set
    default_inset_ratio: float = 0.1

    # Interaction
    handle_radius: float = 25.0  # screen px
    zoom_min: float = 0.1
    zoom_max: float = 5.0
    zoom_step: float = 0.1

    # Warp
    warp_method: str = "homography"  # "homography" or "triangles"

    # Output
    output_format: str = "png"
    jpeg_quality: int = 92
