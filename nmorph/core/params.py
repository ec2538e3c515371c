"""
Detection parameter data structures.

Defines the thresholding, size/shape filters and the optional
preprocessing steps used by the detection pipeline. Derived
(relaxed) copies are built with dataclasses.replace and never
touch the original object.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field, replace

from nmorph.core.errors import ConfigurationError

# Defaults carried over from the nucleus detection settings
DEFAULT_KUWAHARA_RADIUS = 3
DEFAULT_FLATTENING_THRESHOLD = 100
DEFAULT_CANNY_LOW_THRESHOLD = 50.0
DEFAULT_CANNY_HIGH_THRESHOLD = 150.0
DEFAULT_CANNY_KERNEL_RADIUS = 3.0
DEFAULT_CANNY_KERNEL_WIDTH = 16
DEFAULT_CLOSING_RADIUS = 5
DEFAULT_BORDER_WIDTH = 2

# Size floor used when the size filter is opened up
OPEN_MIN_SIZE_PIXELS = 50


@dataclass
class FilterOptions:
    """Toggles and settings for the optional preprocessing steps."""

    # Edge-preserving smoothing
    use_kuwahara: bool = True
    kuwahara_radius: int = DEFAULT_KUWAHARA_RADIUS

    # Bright-region flattening
    use_flattening: bool = True
    flattening_threshold: int = DEFAULT_FLATTENING_THRESHOLD

    # Edge detection
    use_canny: bool = True
    canny_auto_threshold: bool = False
    canny_low_threshold: float = DEFAULT_CANNY_LOW_THRESHOLD
    canny_high_threshold: float = DEFAULT_CANNY_HIGH_THRESHOLD
    canny_kernel_radius: float = DEFAULT_CANNY_KERNEL_RADIUS
    canny_kernel_width: int = DEFAULT_CANNY_KERNEL_WIDTH

    # Gap closing (always applied after edge detection)
    use_gap_closing: bool = True
    closing_radius: int = DEFAULT_CLOSING_RADIUS

    # Border padding
    add_border: bool = False
    border_width: int = DEFAULT_BORDER_WIDTH

    # Watershed splitting of touching objects
    use_watershed: bool = False
    watershed_min_neck_px: float = 3.0
    watershed_min_segment_px: float = 5.0

    def validate(self) -> None:
        """Raise ConfigurationError for values no filter step can use."""
        if self.kuwahara_radius < 1:
            raise ConfigurationError("Kuwahara radius must be >= 1")
        if self.closing_radius < 1:
            raise ConfigurationError("Closing radius must be >= 1")
        if self.border_width < 0:
            raise ConfigurationError("Border width must be >= 0")
        if self.canny_low_threshold > self.canny_high_threshold:
            raise ConfigurationError("Canny low threshold > high threshold")


@dataclass
class DetectionOptions:
    """Thresholding and shape filters for one detection run."""

    threshold: int | None = 20
    min_size: float = 500
    max_size: float = 10000
    # nucleus defaults; near-perfect disks (circularity > 0.8) are rejected
    min_circ: float = 0.2
    max_circ: float = 0.8
    channel: int = 2
    include_holes: bool = True
    exclude_edges: bool = True
    scale: float = 1.0
    filters: FilterOptions = field(default_factory=FilterOptions)

    def validate(self) -> None:
        """Fail fast on bounds that would make detection meaningless."""
        if self.threshold is None:
            raise ConfigurationError("Detection parameters not set: threshold is missing")
        values = (self.min_size, self.max_size, self.min_circ, self.max_circ)
        if any(v is None or not math.isfinite(v) for v in values):
            raise ConfigurationError("Detection parameters not set: size and circularity must be finite")
        if self.min_size >= self.max_size:
            raise ConfigurationError("Minimum size >= maximum size")
        if self.min_circ >= self.max_circ:
            raise ConfigurationError("Minimum circularity >= maximum circularity")
        if self.scale <= 0:
            raise ConfigurationError("Scale must be positive")
        self.filters.validate()

    def with_filters(self, **changes) -> "DetectionOptions":
        """Return a copy with the given FilterOptions fields replaced."""
        return replace(self, filters=replace(self.filters, **changes))

    def opened(self, image_area: int) -> "DetectionOptions":
        """
        Return a permissive copy for a secondary detection pass:
        size 50..image area, circularity 0..1, no border, no edge detection.
        """
        return replace(
            self,
            min_size=OPEN_MIN_SIZE_PIXELS,
            max_size=float(image_area),
            min_circ=0.0,
            max_circ=1.0,
            filters=replace(self.filters, add_border=False, use_canny=False),
        )
