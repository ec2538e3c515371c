"""
Boundary tracing primitives.

- Boundary: closed polygon with vertices on pixel corners
- trace_outline: follow the outer edge of an 8-connected region
- fill_polygon: rasterize a traced polygon (pixel-centre rule)
- flood_fill: in-band region grown from a seed, limited to a mask
- traced_perimeter: perimeter of a traced polygon with corner correction

All functions work on caller-supplied arrays and keep no state
between calls.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

# Directions in clockwise order on screen (y grows downwards)
RIGHT, DOWN, LEFT, UP = 0, 1, 2, 3
_DX = (1, 0, -1, 0)
_DY = (0, 1, 0, -1)

# Pixel ahead-left / ahead-right of a vertex (vx, vy) for each heading,
# as offsets from the vertex. Pixel (px, py) spans [px, px+1] x [py, py+1].
_AHEAD_LEFT = ((0, -1), (0, 0), (-1, 0), (-1, -1))
_AHEAD_RIGHT = ((0, 0), (-1, 0), (-1, -1), (0, -1))


@dataclass
class Boundary:
    """Closed polygon outline of one detected object."""

    xs: np.ndarray
    ys: np.ndarray

    def __post_init__(self) -> None:
        self.xs = np.asarray(self.xs, dtype=np.int64)
        self.ys = np.asarray(self.ys, dtype=np.int64)
        if self.xs.shape != self.ys.shape:
            raise ValueError("Boundary x and y coordinates differ in length")

    def __len__(self) -> int:
        return int(self.xs.size)

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        """Bounding rectangle (x, y, width, height)."""
        if self.xs.size == 0:
            return 0, 0, 0, 0
        x0, y0 = int(self.xs.min()), int(self.ys.min())
        return x0, y0, int(self.xs.max()) - x0, int(self.ys.max()) - y0

    def points(self) -> np.ndarray:
        """Vertices as an (n, 2) array of (x, y)."""
        return np.column_stack([self.xs, self.ys])

    def translated(self, dx: int, dy: int) -> "Boundary":
        return Boundary(self.xs + dx, self.ys + dy)

    def to_contour(self) -> np.ndarray:
        """OpenCV-style (n, 1, 2) int32 contour."""
        return self.points().reshape(-1, 1, 2).astype(np.int32)


def trace_outline(inside: np.ndarray, x: int, y: int, four_connected: bool = False) -> Boundary:
    """
    Trace the outer boundary of the region containing pixel (x, y).

    `inside` is a boolean array; pixels outside the array count as
    outside. (x, y) must be the first region pixel in raster order, so
    that its left neighbour is outside. The walk runs along pixel
    edges with the region on the right-hand side and records a vertex
    wherever the heading changes.
    """
    h, w = inside.shape

    def is_in(px: int, py: int) -> bool:
        return 0 <= px < w and 0 <= py < h and bool(inside[py, px])

    if not is_in(x, y):
        return Boundary([], [])

    # Start on the left edge of the seed pixel, heading up
    vx, vy, d = x, y + 1, UP
    xs: list[int] = []
    ys: list[int] = []
    while True:
        vx += _DX[d]
        vy += _DY[d]
        lx, ly = _AHEAD_LEFT[d]
        rx, ry = _AHEAD_RIGHT[d]
        left_in = is_in(vx + lx, vy + ly)
        right_in = is_in(vx + rx, vy + ry)
        if left_in and (right_in or not four_connected):
            nd = (d - 1) % 4
        elif right_in:
            nd = d
        else:
            nd = (d + 1) % 4
        if nd != d:
            xs.append(vx)
            ys.append(vy)
        d = nd
        if vx == x and vy == y + 1 and d == UP:
            break
    return Boundary(xs, ys)


def fill_polygon(boundary: Boundary, rect: Tuple[int, int, int, int]) -> np.ndarray:
    """
    Rasterize a traced polygon into a boolean mask covering `rect`
    (x, y, width, height). A pixel is inside when its centre is.
    """
    rx, ry, rw, rh = rect
    mask = np.zeros((rh, rw), dtype=bool)
    n = len(boundary)
    if n < 3 or rw == 0 or rh == 0:
        return mask

    x0, y0 = boundary.xs, boundary.ys
    x1, y1 = np.roll(x0, -1), np.roll(y0, -1)
    vertical = x0 == x1
    ex = x0[vertical] - rx
    ey_lo = np.minimum(y0, y1)[vertical] - ry
    ey_hi = np.maximum(y0, y1)[vertical] - ry

    cols = np.arange(rw)
    for row in range(rh):
        centre = row + 0.5
        hits = np.sort(ex[(ey_lo < centre) & (ey_hi > centre)])
        for a, b in zip(hits[0::2], hits[1::2]):
            mask[row, (cols >= a) & (cols < b)] = True
    return mask


def flood_fill(in_band: np.ndarray, x: int, y: int, four_connected: bool = False) -> np.ndarray:
    """
    Boolean mask of in-band pixels connected to (x, y) within `in_band`.
    Pixels of `in_band` are True where flooding is allowed.
    """
    h, w = in_band.shape
    out = np.zeros((h, w), dtype=bool)
    if not (0 <= x < w and 0 <= y < h) or not in_band[y, x]:
        return out
    img = in_band.astype(np.uint8)
    # floodFill marks the filled area in a mask one pixel larger on every side
    ff_mask = np.zeros((h + 2, w + 2), np.uint8)
    connectivity = 4 if four_connected else 8
    flags = connectivity | (1 << 8) | cv2.FLOODFILL_MASK_ONLY | cv2.FLOODFILL_FIXED_RANGE
    cv2.floodFill(img, ff_mask, (int(x), int(y)), 0, 0, 0, flags)
    out[:] = ff_mask[1:-1, 1:-1] > 0
    return out


def traced_perimeter(boundary: Boundary) -> float:
    """
    Perimeter of a traced outline: edge pixels count 1 and corner
    pixels sqrt(2). The total edge length has 2 - sqrt(2) removed for
    every corner that does not directly follow a one-pixel step corner.
    """
    n = len(boundary)
    if n == 0:
        return 0.0
    xp, yp = boundary.xs, boundary.ys
    dx = np.abs(np.roll(xp, -1) - xp)
    dy = np.abs(np.roll(yp, -1) - yp)
    # side lengths, each taken as the side arriving at vertex i
    side_in = np.roll(dx + dy, 1)

    n_corners = 0
    corner = False
    for i in range(n):
        if side_in[i] > 1 or not corner:
            corner = True
            n_corners += 1
        else:
            corner = False
    return float(dx.sum() + dy.sum()) - n_corners * (2.0 - math.sqrt(2.0))
