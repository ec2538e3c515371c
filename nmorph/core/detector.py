"""
Connected-component detection with size, circularity and edge filters.

A particle analyser built on local working state only: every call
duplicates its input and keeps all bookkeeping in local variables, so
one Detector (or many) can run concurrently on different images.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from nmorph.core import imaging
from nmorph.core.errors import ConfigurationError
from nmorph.core.measure import StatsMap, circularity, measure_region
from nmorph.core.params import DetectionOptions
from nmorph.core.tracing import Boundary, fill_polygon, flood_fill, trace_outline, traced_perimeter

logger = logging.getLogger(__name__)

MINIMUM_OBJECT_SIZE_PIXELS = 5


@dataclass
class DetectionCounts:
    """Diagnostic counts for one detection call."""
    found: int = 0
    rejected_edge: int = 0
    rejected_size: int = 0
    rejected_circularity: int = 0

    @property
    def accepted(self) -> int:
        return self.found - self.rejected_edge - self.rejected_size - self.rejected_circularity


@dataclass
class DetectedRegion:
    """A surviving boundary and its measurements, in image coordinates."""
    boundary: Boundary
    stats: StatsMap


@dataclass
class DetectionResult:
    regions: List[DetectedRegion] = field(default_factory=list)
    counts: DetectionCounts = field(default_factory=DetectionCounts)

    @property
    def boundaries(self) -> List[Boundary]:
        return [r.boundary for r in self.regions]

    def __len__(self) -> int:
        return len(self.regions)


class Detector:
    """
    Find thresholded objects and keep those passing the shape filters.

    Size bounds are in pixels, circularity bounds in [0, 1]. Regions
    touching the scanned rectangle are dropped when exclude_edges is set.
    With include_holes, enclosed holes count as part of the object;
    otherwise only in-band pixels reachable from the object's seed do.
    """

    def __init__(
        self,
        min_size: float,
        max_size: float,
        min_circ: float = 0.0,
        max_circ: float = 1.0,
        include_holes: bool = True,
        exclude_edges: bool = True,
        four_connected: bool = False,
    ) -> None:
        self.min_size = min_size
        self.max_size = max_size
        self.min_circ = min_circ
        self.max_circ = max_circ
        self.include_holes = include_holes
        self.exclude_edges = exclude_edges
        self.four_connected = four_connected

    @classmethod
    def from_options(cls, options: DetectionOptions) -> "Detector":
        return cls(
            min_size=options.min_size,
            max_size=options.max_size,
            min_circ=options.min_circ,
            max_circ=options.max_circ,
            include_holes=options.include_holes,
            exclude_edges=options.exclude_edges,
        )

    def validate(self) -> None:
        values = (self.min_size, self.max_size, self.min_circ, self.max_circ)
        if any(v is None or not math.isfinite(v) for v in values):
            raise ConfigurationError("Detection parameters not set")
        if self.min_size >= self.max_size:
            raise ConfigurationError("Minimum size >= maximum size")
        if self.min_circ >= self.max_circ:
            raise ConfigurationError("Minimum circularity >= maximum circularity")

    def detect(
        self,
        buffer: np.ndarray,
        threshold: int | None,
        upper: int | None = None,
        rect: Tuple[int, int, int, int] | None = None,
    ) -> DetectionResult:
        """
        Detect objects whose pixel values lie in [threshold, upper].

        Args:
            buffer: 2D uint8 or uint16 image, bright objects on dark.
            threshold: lowest in-band value.
            upper: highest in-band value; defaults to the bit-depth maximum.
            rect: active (x, y, width, height); defaults to the whole image.

        Returns:
            DetectionResult with regions in raster order of their seeds.
        """
        self.validate()
        imaging.check_buffer(buffer)
        if threshold is None:
            raise ConfigurationError("Detection parameters not set: threshold is missing")
        top = imaging.max_value(buffer)
        lo = int(threshold)
        hi = top if upper is None else int(upper)
        if not 0 <= lo <= hi <= top:
            raise ConfigurationError(f"Invalid threshold band [{lo}, {hi}] for {buffer.dtype}")

        rx, ry, rw, rh = self._active_rect(buffer, rect)
        work = buffer[ry:ry + rh, rx:rx + rw].copy()
        in_band = (work >= lo) & (work <= hi)
        full_band = lo == 0 and hi == top

        result = DetectionResult()
        for idx in np.flatnonzero(in_band):
            y, x = divmod(int(idx), rw)
            if not in_band[y, x]:
                continue
            region = self._analyze_particle(in_band, x, y, (rx, ry), result.counts)
            if region is not None:
                result.regions.append(region)
            if full_band:
                break

        c = result.counts
        logger.debug(
            "Found %d objects: %d accepted, %d on edge, %d wrong size, %d wrong circularity",
            c.found, c.accepted, c.rejected_edge, c.rejected_size, c.rejected_circularity,
        )
        return result

    def find_all(self, buffer: np.ndarray, threshold: int) -> DetectionResult:
        """Detect with open size and circularity limits, honouring edge/hole flags."""
        imaging.check_buffer(buffer)
        open_detector = Detector(
            MINIMUM_OBJECT_SIZE_PIXELS,
            buffer.shape[0] * buffer.shape[1],
            0.0,
            1.0,
            include_holes=self.include_holes,
            exclude_edges=self.exclude_edges,
            four_connected=self.four_connected,
        )
        return open_detector.detect(buffer, threshold)

    @staticmethod
    def _active_rect(buffer: np.ndarray, rect) -> Tuple[int, int, int, int]:
        h, w = buffer.shape
        if rect is None:
            return 0, 0, w, h
        x, y, rw, rh = (int(v) for v in rect)
        if x < 0 or y < 0 or rw <= 0 or rh <= 0 or x + rw > w or y + rh > h:
            raise ConfigurationError(f"Active rectangle {rect} outside a {w}x{h} image")
        return x, y, rw, rh

    def _analyze_particle(self, in_band: np.ndarray, x: int, y: int, origin: Tuple[int, int],
                          counts: DetectionCounts) -> DetectedRegion | None:
        """Trace, measure, filter and clear the particle seeded at (x, y)."""
        h, w = in_band.shape
        boundary = trace_outline(in_band, x, y, self.four_connected)
        if len(boundary) == 0:
            in_band[y, x] = False
            return None
        counts.found += 1

        bx, by, bw, bh = boundary.bounds
        rect = (bx, by, bw, bh)
        if bw > 1 and bh > 1:
            mask = fill_polygon(boundary, rect)
            if not self.include_holes:
                mask = flood_fill(in_band[by:by + bh, bx:bx + bw] & mask, x - bx, y - by,
                                  self.four_connected)
        else:
            mask = np.ones((bh, bw), dtype=bool)

        area = int(mask.sum())
        on_edge = bx == 0 or by == 0 or bx + bw == w or by + bh == h

        region = None
        if self.exclude_edges and on_edge:
            counts.rejected_edge += 1
        elif not self.min_size <= area <= self.max_size:
            counts.rejected_size += 1
        elif (self.min_circ > 0.0 or self.max_circ < 1.0) and not (
            self.min_circ <= circularity(area, traced_perimeter(boundary)) <= self.max_circ
        ):
            counts.rejected_circularity += 1
        else:
            ox, oy = origin
            outline = boundary.translated(ox, oy)
            region = DetectedRegion(outline, measure_region(outline, mask, (bx + ox, by + oy, bw, bh)))

        # mark visited so later seeds inside this particle are skipped
        in_band[by:by + bh, bx:bx + bw][mask] = False
        return region


def detect_objects(buffer: np.ndarray, options: DetectionOptions,
                   rect: Tuple[int, int, int, int] | None = None) -> DetectionResult:
    """Validate options and run one detection with them."""
    options.validate()
    return Detector.from_options(options).detect(buffer, options.threshold, rect=rect)
