"""
Region measurement.

- Measurement names and the StatsMap value bag
- Area, traced perimeter, circularity, Feret diameter and centroid
  for one detected region
"""

from __future__ import annotations
import math
from enum import Enum
from typing import Dict, Iterator

import cv2
import numpy as np

from nmorph.core.errors import MissingMeasurementError
from nmorph.core.tracing import Boundary, traced_perimeter


class Measurement(str, Enum):
    AREA = "area"
    PERIMETER = "perimeter"
    CIRCULARITY = "circularity"
    FERET = "feret"
    CENTROID_X = "centroid_x"
    CENTROID_Y = "centroid_y"


class StatsMap:
    """
    Measurement values for one object. Reading a measurement that was
    never added is a caller error and raises MissingMeasurementError.
    """

    def __init__(self, values: Dict[Measurement, float] | None = None) -> None:
        self._values: Dict[Measurement, float] = {}
        for k, v in (values or {}).items():
            self.add(k, v)

    def add(self, measurement: Measurement, value: float) -> None:
        self._values[Measurement(measurement)] = float(value)

    def get(self, measurement: Measurement) -> float:
        try:
            return self._values[Measurement(measurement)]
        except (KeyError, ValueError):
            name = getattr(measurement, "value", measurement)
            raise MissingMeasurementError(f"No value for measurement '{name}'") from None

    def has(self, measurement: Measurement) -> bool:
        try:
            return Measurement(measurement) in self._values
        except ValueError:
            return False

    def keys(self) -> list[Measurement]:
        return list(self._values)

    def as_dict(self) -> Dict[str, float]:
        return {k.value: v for k, v in self._values.items()}

    def copy(self) -> "StatsMap":
        return StatsMap(self._values)

    def __contains__(self, measurement) -> bool:
        return self.has(measurement)

    def __getitem__(self, measurement: Measurement) -> float:
        return self.get(measurement)

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"StatsMap({self.as_dict()})"


def circularity(area: float, perimeter: float) -> float:
    """4*pi*area/perimeter^2, clamped to 1.0; 0 when the perimeter is 0."""
    if perimeter == 0.0:
        return 0.0
    return min(1.0, 4.0 * math.pi * (area / (perimeter * perimeter)))


def feret_diameter(points: np.ndarray) -> float:
    """Maximum caliper distance across a set of (x, y) points."""
    pts = np.asarray(points, dtype=np.float32).reshape(-1, 2)
    if len(pts) < 2:
        return 0.0
    hull = cv2.convexHull(pts).reshape(-1, 2).astype(np.float64)
    diff = hull[:, None, :] - hull[None, :, :]
    return float(np.sqrt((diff ** 2).sum(axis=-1)).max())


def measure_region(boundary: Boundary, mask: np.ndarray, rect: tuple[int, int, int, int]) -> StatsMap:
    """
    Measure one region.

    Args:
        boundary: traced outline of the region.
        mask: boolean pixel mask of the region, covering `rect`.
        rect: (x, y, width, height) of the mask in image coordinates.
    """
    rx, ry, _, _ = rect
    rows, cols = np.nonzero(mask)
    area = float(rows.size)
    perim = traced_perimeter(boundary)

    stats = StatsMap()
    stats.add(Measurement.AREA, area)
    stats.add(Measurement.PERIMETER, perim)
    stats.add(Measurement.CIRCULARITY, circularity(area, perim))
    stats.add(Measurement.FERET, feret_diameter(boundary.points()))
    if area > 0:
        stats.add(Measurement.CENTROID_X, rx + cols.mean() + 0.5)
        stats.add(Measurement.CENTROID_Y, ry + rows.mean() + 0.5)
    else:
        bx, by, bw, bh = boundary.bounds
        stats.add(Measurement.CENTROID_X, bx + bw / 2.0)
        stats.add(Measurement.CENTROID_Y, by + bh / 2.0)
    return stats
