"""Batch auto-crop: load, detect document corners, warp."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from scancrop.config import EditorConfig
from scancrop.detection.backend import OpenCVBackend, default_backend
from scancrop.detection.detector import detect_corners, draw_corner_overlay
from scancrop.editing.corners import CornerSet
from scancrop.errors import DegenerateGeometry
from scancrop.preprocessing.loader import ImageMetadata, load_image
from scancrop.warp.perspective import warp

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Result of auto-cropping one image."""

    output_image: np.ndarray
    metadata: ImageMetadata
    processing_time: float
    steps_completed: List[str]
    corners: Optional[CornerSet] = None
    cropped: bool = False
    step_times: Dict[str, float] = field(default_factory=dict)


class Pipeline:
    """Auto-crop pipeline for scanned or photographed documents."""

    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        backend: Optional[OpenCVBackend] = None,
    ) -> None:
        """Initialize pipeline with configuration.

        Args:
            config: Editor configuration. If None, uses defaults.
            backend: Image-processing backend for detection.
        """
        self.config = config or EditorConfig()
        self.backend = backend or default_backend()

    def process_image(
        self,
        image: np.ndarray,
        metadata: ImageMetadata,
        debug_output_dir: Optional[str] = None,
    ) -> PipelineResult:
        """Detect and warp an already decoded image.

        When no document is found, or the detected corners are degenerate,
        the image passes through unchanged.
        """
        start_time = time.time()
        step_times: Dict[str, float] = {}
        steps_completed: List[str] = []
        debug_dir = Path(debug_output_dir) if debug_output_dir else None

        # Step 1: Detect corners
        step_start = time.time()
        corners = detect_corners(image, self.config, self.backend)
        step_times['detect'] = time.time() - step_start
        steps_completed.append('detect')

        if debug_dir and corners is not None:
            from scancrop.utils.debug import save_debug_image
            save_debug_image(
                draw_corner_overlay(image, corners),
                debug_dir / "01_corners.jpg",
                f"Detected corners {corners.to_list()}"
            )

        # Step 2: Warp
        output = image
        cropped = False
        if corners is None:
            logger.info("No document detected, passing image through")
        else:
            step_start = time.time()
            try:
                output = warp(image, corners, method=self.config.warp_method)
                cropped = True
                steps_completed.append('warp')
            except DegenerateGeometry as e:
                logger.warning(f"Detected corners unusable, passing through: {e}")
            step_times['warp'] = time.time() - step_start

            if debug_dir and cropped:
                from scancrop.utils.debug import save_debug_image
                save_debug_image(output, debug_dir / "02_warped.jpg", "After perspective correction")

        total_time = time.time() - start_time
        logger.info(f"Total processing time: {total_time:.3f}s")

        return PipelineResult(
            output_image=output,
            metadata=metadata,
            processing_time=total_time,
            steps_completed=steps_completed,
            corners=corners,
            cropped=cropped,
            step_times=step_times,
        )

    def process(
        self,
        input_path: str,
        debug_output_dir: Optional[str] = None,
    ) -> PipelineResult:
        """Load a single image from disk and auto-crop it.

        Args:
            input_path: Path to input image
            debug_output_dir: Optional directory for debug output

        Returns:
            PipelineResult with the cropped (or passed-through) image
        """
        logger.info(f"Processing: {input_path}")

        step_start = time.time()
        image, metadata = load_image(input_path)
        load_time = time.time() - step_start
        logger.info(f"Load time: {load_time:.3f}s")

        result = self.process_image(image, metadata, debug_output_dir)
        result.step_times['load'] = load_time
        result.steps_completed.insert(0, 'load')
        result.processing_time += load_time
        return result

    def process_batch(
        self,
        input_paths: List[str],
        debug_output_dir: Optional[str] = None,
    ) -> List[PipelineResult]:
        """Auto-crop multiple images; files that fail to load are logged and skipped."""
        results = []

        for i, path in enumerate(input_paths, 1):
            logger.info(f"Processing {i}/{len(input_paths)}: {path}")

            if debug_output_dir:
                debug_dir: Optional[Path] = Path(debug_output_dir) / Path(path).stem
            else:
                debug_dir = None

            try:
                result = self.process(
                    path,
                    debug_output_dir=str(debug_dir) if debug_dir else None,
                )
                results.append(result)
            except Exception as e:
                logger.error(f"Error processing {path}: {e}", exc_info=True)
                continue

        return results
