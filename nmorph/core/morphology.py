"""
Morphology utilities: gap closing, dilation, hole filling and
watershed splitting of touching objects on binary (0/255) images.
"""

from __future__ import annotations
import math
import cv2
import numpy as np


def disk(radius: int) -> np.ndarray:
    """Elliptical structuring element of the given radius (px)."""
    r = max(1, int(radius))
    return cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (2 * r + 1, 2 * r + 1))


def binarize(img: np.ndarray, level: int) -> np.ndarray:
    """Return 255 where img >= level, 0 elsewhere (uint8)."""
    return np.where(img >= level, 255, 0).astype(np.uint8)


def is_binary(img: np.ndarray) -> bool:
    return img.dtype == np.uint8 and np.isin(img, (0, 255)).all()


def dilate(bw: np.ndarray, radius: int) -> np.ndarray:
    """Binary dilation with a disk of the given radius."""
    if radius <= 0:
        return bw
    return cv2.dilate(bw, disk(radius), iterations=1)


def fill_holes(bw: np.ndarray, max_frac: float = 1.0) -> np.ndarray:
    """
    Fill enclosed background regions of a binary image.

    Args:
        bw: binary image (nonzero = foreground).
        max_frac: largest hole area, as a fraction of the enclosing
            object's area, that is filled. 1.0 fills every hole.
    """
    out = np.where(bw > 0, 255, 0).astype(np.uint8)
    contours, hier = cv2.findContours(out.copy(), cv2.RETR_CCOMP, cv2.CHAIN_APPROX_SIMPLE)
    if hier is None:
        return out
    # RETR_CCOMP: hier[i] = (next, prev, first_child, parent); holes are the children
    links = hier[0]
    holes = []
    for i, (_, _, _, parent) in enumerate(links):
        if parent < 0:
            continue
        outer_area = cv2.contourArea(contours[parent])
        if outer_area > 0 and cv2.contourArea(contours[i]) <= max_frac * outer_area:
            holes.append(contours[i])
    if holes:
        cv2.drawContours(out, holes, -1, 255, thickness=cv2.FILLED)
    return out


def close_gaps(bw: np.ndarray, radius: int) -> np.ndarray:
    """
    Close gaps in object outlines: dilate, fill holes, then erode
    with the same disk. Works on binary input.
    """
    if radius <= 0:
        return bw
    ker = disk(radius)
    grown = cv2.dilate(bw, ker, iterations=1)
    grown = fill_holes(grown)
    return cv2.erode(grown, ker, iterations=1)


def _seeds(dist: np.ndarray, levels) -> np.ndarray:
    """
    Sure-foreground seeds: distance-field peaks above the first relative
    level that separates more than one object, else above the last one.
    """
    peak = float(dist.max())
    seeds = None
    for rel in levels:
        seeds = cv2.morphologyEx((dist > rel * peak).astype(np.uint8) * 255, cv2.MORPH_OPEN, disk(1))
        if cv2.connectedComponents(seeds)[0] > 2:
            break
    return seeds


def split_touching_watershed(
    bw: np.ndarray,
    min_neck_px: float = 3.0,
    min_seg_px: float = 5.0,
    fg_rel: float = 0.40,
    bg_dilate_iters: int = 2,
) -> np.ndarray:
    """
    Split touching objects of a binary image with a marker watershed.

    Seeds come from the distance transform; the flooding runs over the
    morphological gradient of the objects. Segments whose equivalent
    diameter is below min_seg_px are dropped.

    Args:
        bw: binary image (nonzero = foreground).
        min_neck_px: narrowest neck (px) treated as a real connection.
        min_seg_px: smallest equivalent diameter (px) of a kept segment.
        fg_rel: seed level relative to the deepest distance value.
        bg_dilate_iters: dilations of the objects used as sure background.
    """
    objects = (bw > 0).astype(np.uint8)
    if not objects.any():
        return bw

    neck = max(1, int(round(min_neck_px)))
    dist = cv2.distanceTransform(objects, cv2.DIST_L2, 5).astype(np.float32)
    if neck >= 2:
        dist = cv2.GaussianBlur(dist, (0, 0), sigmaX=0.5 * neck)
    if dist.max() <= 0:
        return bw

    seeds = _seeds(dist, (fg_rel, 0.30))
    background = cv2.dilate(objects * 255, disk(neck), iterations=max(1, bg_dilate_iters))

    # labels: 1 = background, 2.. = seeds, 0 = to be flooded
    _, labels = cv2.connectedComponents((seeds > 0).astype(np.uint8))
    labels = labels.astype(np.int32) + 1
    labels[cv2.subtract(background, seeds) > 0] = 0

    relief = cv2.morphologyEx(objects * 255, cv2.MORPH_GRADIENT, disk(1))
    cv2.watershed(cv2.cvtColor(relief, cv2.COLOR_GRAY2BGR), labels)

    out = np.zeros_like(objects)
    min_area = math.pi * (min_seg_px / 2.0) ** 2
    for label in range(2, int(labels.max()) + 1):
        segment = (labels == label) & (objects > 0)
        if segment.sum() >= min_area:
            out[segment] = 255
    return out
