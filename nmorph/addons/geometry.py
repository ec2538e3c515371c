"""
Polygon geometry helpers (pixel domain).

- Point type
- Point-in-polygon tests over arrays of points
- Polygon centroid and principal-axis orientation
- Rotation about a centre
"""

from __future__ import annotations
import math
from typing import NamedTuple, Tuple

import cv2
import numpy as np


class Point(NamedTuple):
    x: float
    y: float


def contains(poly: np.ndarray, px: np.ndarray, py: np.ndarray) -> np.ndarray:
    """
    Even-odd test of points (px, py) against a closed polygon.

    Args:
        poly: (n, 2) polygon vertices.
        px, py: arrays of point coordinates, any matching shape.
    """
    px = np.asarray(px, dtype=np.float64)
    py = np.asarray(py, dtype=np.float64)
    inside = np.zeros(px.shape, dtype=bool)
    pts = np.asarray(poly, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 3:
        return inside
    x0, y0 = pts[:, 0], pts[:, 1]
    x1, y1 = np.roll(x0, -1), np.roll(y0, -1)
    for ax, ay, bx, by in zip(x0, y0, x1, y1):
        if ay == by:
            continue
        crosses = (ay > py) != (by > py)
        x_cross = ax + (py - ay) * (bx - ax) / (by - ay)
        inside ^= crosses & (px < x_cross)
    return inside


def centroid(poly: np.ndarray) -> Point:
    """Area centroid of a polygon; vertex mean for degenerate polygons."""
    pts = np.asarray(poly, dtype=np.float32).reshape(-1, 2)
    m = cv2.moments(pts)
    if abs(m["m00"]) < 1e-12:
        c = pts.mean(axis=0) if len(pts) else np.zeros(2)
        return Point(float(c[0]), float(c[1]))
    return Point(m["m10"] / m["m00"], m["m01"] / m["m00"])


def principal_angle(poly: np.ndarray) -> float:
    """
    Angle (radians, from the +x axis) of the polygon's major axis,
    from second-order central moments.
    """
    pts = np.asarray(poly, dtype=np.float32).reshape(-1, 2)
    m = cv2.moments(pts)
    return 0.5 * math.atan2(2.0 * m["mu11"], m["mu20"] - m["mu02"])


def rotate(poly: np.ndarray, angle: float, centre: Tuple[float, float]) -> np.ndarray:
    """Rotate (n, 2) points by `angle` radians about `centre`."""
    pts = np.asarray(poly, dtype=np.float64).reshape(-1, 2)
    c, s = math.cos(angle), math.sin(angle)
    R = np.array([[c, -s], [s, c]], dtype=np.float64)
    ctr = np.asarray(centre, dtype=np.float64)
    return (pts - ctr) @ R.T + ctr
