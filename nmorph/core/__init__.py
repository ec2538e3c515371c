# Public API of the core package (re-export)
from .errors import (
    NmorphError,
    ConfigurationError,
    ComponentCreationError,
    MissingMeasurementError,
)
from .params import DetectionOptions, FilterOptions
from .imaging import to_array, select_channel, to_uint8, check_buffer
from .morphology import (
    binarize,
    dilate,
    fill_holes,
    close_gaps,
    split_touching_watershed,
)
from .filters import ImageFilterer, kuwahara, preprocess
from .tracing import (
    Boundary,
    trace_outline,
    fill_polygon,
    flood_fill,
    traced_perimeter,
)
from .measure import Measurement, StatsMap, circularity, feret_diameter, measure_region
from .detector import (
    Detector,
    DetectedRegion,
    DetectionCounts,
    DetectionResult,
    detect_objects,
)
from .pipeline import (
    DetectionPipeline,
    PipelineResult,
    CreationFailure,
    CreationOutcome,
)

__all__ = [
    # errors
    "NmorphError", "ConfigurationError", "ComponentCreationError", "MissingMeasurementError",
    # options
    "DetectionOptions", "FilterOptions",
    # buffers
    "to_array", "select_channel", "to_uint8", "check_buffer",
    # morphology
    "binarize", "dilate", "fill_holes", "close_gaps", "split_touching_watershed",
    # filter chain
    "ImageFilterer", "kuwahara", "preprocess",
    # tracing
    "Boundary", "trace_outline", "fill_polygon", "flood_fill", "traced_perimeter",
    # measurement
    "Measurement", "StatsMap", "circularity", "feret_diameter", "measure_region",
    # detection
    "Detector", "DetectedRegion", "DetectionCounts", "DetectionResult", "detect_objects",
    # pipeline
    "DetectionPipeline", "PipelineResult", "CreationFailure", "CreationOutcome",
]
