"""
Detected components (nuclei, cytoplasm) and factories that build them
from detected boundaries.
"""

from __future__ import annotations
import copy
import math
from typing import Callable

import numpy as np

from nmorph.addons import geometry
from nmorph.addons.geometry import Point
from nmorph.addons.mask import BooleanMask
from nmorph.core.errors import ComponentCreationError
from nmorph.core.measure import Measurement, StatsMap
from nmorph.core.tracing import Boundary

# Smallest outline that still encloses an area
MIN_BORDER_POINTS = 3


class CellularComponent:
    """
    An outlined object in a source image.

    Holds the outline (float vertices, image coordinates), the image it
    came from, the pixel scale, its measurements and its centre of mass.
    """

    def __init__(
        self,
        boundary: Boundary,
        stats: StatsMap,
        source=None,
        scale: float = 1.0,
        channel: int = 0,
        number: int = 0,
    ) -> None:
        if len(boundary) < MIN_BORDER_POINTS:
            raise ComponentCreationError(
                f"Outline has {len(boundary)} points; at least {MIN_BORDER_POINTS} are needed"
            )
        if scale <= 0:
            raise ComponentCreationError(f"Scale must be positive, got {scale}")
        self.points = boundary.points().astype(np.float64)
        self.stats = stats
        self.source = source
        self.scale = float(scale)
        self.channel = channel
        self.number = number
        self.centre_of_mass = Point(stats.get(Measurement.CENTROID_X), stats.get(Measurement.CENTROID_Y))
        # fails early if the detector did not measure these
        stats.get(Measurement.AREA)
        stats.get(Measurement.PERIMETER)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(number={self.number}, points={len(self.points)}, "
                f"com=({self.centre_of_mass.x:.1f}, {self.centre_of_mass.y:.1f}))")

    def get_measurement(self, measurement: Measurement, scaled: bool = False) -> float:
        """
        Measurement value in pixels, or in physical units when `scaled`
        (lengths divided by scale, areas by scale squared).
        """
        value = self.stats.get(measurement)
        if not scaled:
            return value
        if measurement == Measurement.AREA:
            return value / (self.scale * self.scale)
        if measurement in (Measurement.PERIMETER, Measurement.FERET):
            return value / self.scale
        return value

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        x0, y0 = self.points.min(axis=0)
        x1, y1 = self.points.max(axis=0)
        return float(x0), float(y0), float(x1 - x0), float(y1 - y0)

    def duplicate(self) -> "CellularComponent":
        return copy.deepcopy(self)

    def contains_point(self, x: float, y: float) -> bool:
        return bool(geometry.contains(self.points, np.array([x]), np.array([y]))[0])

    def move_centre_of_mass(self, point: Point) -> None:
        """Translate the outline so the centre of mass lands on `point`."""
        dx = point[0] - self.centre_of_mass.x
        dy = point[1] - self.centre_of_mass.y
        self.points = self.points + np.array([dx, dy])
        self.centre_of_mass = Point(float(point[0]), float(point[1]))

    def offset(self, dx: float, dy: float) -> None:
        self.move_centre_of_mass(Point(self.centre_of_mass.x + dx, self.centre_of_mass.y + dy))

    def boolean_mask(self, height: int, width: int) -> BooleanMask:
        """
        Mask of a height x width canvas centred on the centre of mass;
        a cell is true where that position lies inside the outline.
        """
        half_x, half_y = width >> 1, height >> 1
        xs = self.centre_of_mass.x + np.arange(width) - half_x
        ys = self.centre_of_mass.y + np.arange(height) - half_y
        gx, gy = np.meshgrid(xs, ys)
        return BooleanMask.from_array(geometry.contains(self.points, gx, gy))

    def orientation(self) -> float:
        """Angle of the outline's major axis from the +x axis (radians)."""
        return geometry.principal_angle(self.points)

    def vertically_rotated(self) -> "CellularComponent":
        """
        Copy rotated about its centre of mass so the major axis is
        vertical, then moved so the centre of mass is at the origin.
        """
        result = self.duplicate()
        angle = math.pi / 2.0 - self.orientation()
        result.points = geometry.rotate(self.points, angle, self.centre_of_mass)
        result.move_centre_of_mass(Point(0.0, 0.0))
        return result


class Nucleus(CellularComponent):
    """A detected nucleus."""


class Cytoplasm(CellularComponent):
    """A detected cytoplasm region."""


def component_factory(
    kind: type[CellularComponent] = Nucleus,
    source=None,
    scale: float = 1.0,
    channel: int = 0,
) -> Callable[[Boundary, StatsMap, int], CellularComponent]:
    """
    Build a factory for DetectionPipeline that creates `kind` objects
    tied to one source image.
    """
    def make_component(boundary: Boundary, stats: StatsMap, index: int) -> CellularComponent:
        return kind(boundary, stats, source=source, scale=scale, channel=channel, number=index)

    return make_component


def nucleus_factory(source=None, scale: float = 1.0, channel: int = 0):
    return component_factory(Nucleus, source, scale, channel)


def cytoplasm_factory(source=None, scale: float = 1.0, channel: int = 0):
    return component_factory(Cytoplasm, source, scale, channel)
