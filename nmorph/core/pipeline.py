"""
Detection pipeline.

Runs the filter chain once, the detector once, then hands every
surviving boundary to a caller-supplied factory. Factory failures are
collected per boundary instead of aborting the run.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Generic, List, TypeVar

import numpy as np

from nmorph.core import filters, imaging
from nmorph.core.detector import DetectedRegion, DetectionCounts, Detector
from nmorph.core.errors import ComponentCreationError, ConfigurationError
from nmorph.core.measure import Measurement, StatsMap
from nmorph.core.params import DetectionOptions
from nmorph.core.tracing import Boundary

logger = logging.getLogger(__name__)

T = TypeVar("T")

# factory(boundary, stats, index) -> component
ComponentFactory = Callable[[Boundary, StatsMap, int], T]

FILTER_FLAGS = {
    "kuwahara": "use_kuwahara",
    "flatten": "use_flattening",
    "canny": "use_canny",
    "gap_closing": "use_gap_closing",
    "border": "add_border",
    "watershed": "use_watershed",
}


@dataclass
class CreationFailure:
    """A boundary the factory could not turn into a component."""
    index: int
    boundary: Boundary
    error: ComponentCreationError


@dataclass
class CreationOutcome(Generic[T]):
    """Result of one factory call: a component or a failure."""
    index: int
    component: T | None = None
    failure: CreationFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class PipelineResult(Generic[T]):
    components: List[T] = field(default_factory=list)
    failures: List[CreationFailure] = field(default_factory=list)
    counts: DetectionCounts = field(default_factory=DetectionCounts)
    cancelled: bool = False

    def __len__(self) -> int:
        return len(self.components)


class DetectionPipeline(Generic[T]):
    """
    Filter -> detect -> build components.

    Args:
        options: detection options; never mutated by the pipeline.
        image: numpy array or Pillow image supplied by the loading layer.
        factory: make_component(boundary, stats, index); may raise
            ComponentCreationError for a boundary it cannot use.
        cancel_cb: optional function returning True when work should stop.
    """

    def __init__(
        self,
        options: DetectionOptions,
        image,
        factory: ComponentFactory,
        cancel_cb: Callable[[], bool] | None = None,
    ) -> None:
        self.options = options
        self.image = image
        self.factory = factory
        self.cancel_cb = cancel_cb

    # ---- derived pipelines ----

    def _with_options(self, options: DetectionOptions) -> "DetectionPipeline[T]":
        return DetectionPipeline(options, self.image, self.factory, self.cancel_cb)

    def with_border(self, width: int) -> "DetectionPipeline[T]":
        """Pipeline that pads the image with a border of the given width."""
        return self._with_options(self.options.with_filters(add_border=True, border_width=int(width)))

    def with_open_size_parameters(self) -> "DetectionPipeline[T]":
        """Pipeline for a permissive second pass: open size/shape limits, no border or edges."""
        h, w = imaging.to_array(self.image).shape[:2]
        return self._with_options(self.options.opened(h * w))

    def with_filter(self, name: str, enabled: bool) -> "DetectionPipeline[T]":
        """Pipeline with one optional filter step switched on or off."""
        try:
            flag = FILTER_FLAGS[name]
        except KeyError:
            raise ConfigurationError(f"Unknown filter step '{name}'") from None
        return self._with_options(self.options.with_filters(**{flag: bool(enabled)}))

    # ---- running ----

    def preprocess(self) -> np.ndarray:
        """Run the filter chain and return the buffer handed to the detector."""
        return filters.preprocess(self.image, self.options)

    def run(self) -> PipelineResult[T]:
        """Detect objects and build a component for each surviving boundary."""
        self.options.validate()
        result: PipelineResult[T] = PipelineResult()

        buffer = self.preprocess()
        if self._cancelled():
            result.cancelled = True
            return result

        detection = Detector.from_options(self.options).detect(buffer, self.options.threshold)
        result.counts = detection.counts
        if not detection.regions:
            logger.debug("No usable objects in image")
            return result

        border = self.options.filters.border_width if self.options.filters.add_border else 0
        for i, region in enumerate(detection.regions):
            if self._cancelled():
                result.cancelled = True
                break
            outcome = self._make(unpad(region, border), i)
            if outcome.ok:
                result.components.append(outcome.component)
            else:
                result.failures.append(outcome.failure)

        if result.failures:
            logger.warning("Skipped %d of %d boundaries that could not become components",
                           len(result.failures), len(detection.regions))
        logger.debug("Returning %d components", len(result.components))
        return result

    def find_in_image(self) -> List[T]:
        """Components found in the image; empty when nothing passes the filters."""
        return self.run().components

    def _make(self, region: DetectedRegion, index: int) -> CreationOutcome[T]:
        try:
            component = self.factory(region.boundary, region.stats, index)
        except ComponentCreationError as e:
            logger.warning("Cannot create component from boundary %d: %s", index, e)
            return CreationOutcome(index, failure=CreationFailure(index, region.boundary, e))
        return CreationOutcome(index, component=component)

    def _cancelled(self) -> bool:
        return bool(self.cancel_cb and self.cancel_cb())


def unpad(region: DetectedRegion, border: int) -> DetectedRegion:
    """Map a region detected on a bordered image back to source coordinates."""
    if border <= 0:
        return region
    stats = region.stats.copy()
    for key in (Measurement.CENTROID_X, Measurement.CENTROID_Y):
        if stats.has(key):
            stats.add(key, stats.get(key) - border)
    return replace(region, boundary=region.boundary.translated(-border, -border), stats=stats)
