"""
Image filter chain.

Each step reads the current buffer and replaces it. Steps with an
enable flag in FilterOptions are no-ops when the flag is off. The
chain used by the detection pipeline is:

  greyscale -> border -> Kuwahara -> flatten -> edge detection
            -> gap closing -> watershed

Polarity is not preserved across the chain: add_border() inverts
the image, edge detection emits bright edges on black. The
`inverted` attribute tracks the current sign and for_detection()
returns a buffer with bright objects on a dark background.
"""

from __future__ import annotations
import logging
import cv2
import numpy as np

from nmorph.core import imaging, morphology
from nmorph.core.params import DetectionOptions, FilterOptions

logger = logging.getLogger(__name__)

# Fraction of the median used for automatic edge thresholds
CANNY_AUTO_SIGMA = 0.33


def kuwahara(img: np.ndarray, radius: int) -> np.ndarray:
    """
    Kuwahara edge-preserving smoothing.

    Every pixel takes the mean of whichever of its four overlapping
    (radius+1)x(radius+1) quadrants has the lowest variance.
    """
    r = max(1, int(radius))
    k = r + 1
    src = img.astype(np.float64)
    pad = cv2.copyMakeBorder(src, r, r, r, r, cv2.BORDER_REFLECT)
    # anchor (0, 0): value at (i, j) is the mean of pad[i:i+k, j:j+k]
    mean = cv2.boxFilter(pad, cv2.CV_64F, (k, k), anchor=(0, 0), normalize=True,
                         borderType=cv2.BORDER_REFLECT)
    sq = cv2.boxFilter(pad * pad, cv2.CV_64F, (k, k), anchor=(0, 0), normalize=True,
                       borderType=cv2.BORDER_REFLECT)
    var = sq - mean * mean

    h, w = img.shape
    starts = ((0, 0), (0, r), (r, 0), (r, r))
    means = np.stack([mean[dy:dy + h, dx:dx + w] for dy, dx in starts])
    variances = np.stack([var[dy:dy + h, dx:dx + w] for dy, dx in starts])
    best = np.argmin(variances, axis=0)
    out = np.take_along_axis(means, best[None, :, :], axis=0)[0]
    return np.clip(np.rint(out), 0, imaging.max_value(img)).astype(img.dtype)


def auto_canny_thresholds(img: np.ndarray) -> tuple[np.ndarray, float, float]:
    """
    Pick edge thresholds either side of the median intensity.
    Images with a median above 128 are treated as inverted and flipped first.
    """
    median = float(np.median(img))
    if median > 128:
        img = 255 - img
        median = float(np.median(img))
    lower = max(0.1, max(0.0, (1.0 - 2.5 * CANNY_AUTO_SIGMA) * median))
    upper = max(0.3, min(255.0, (1.0 + 0.6 * CANNY_AUTO_SIGMA) * median))
    return img, lower, upper


class ImageFilterer:
    """Holds a working buffer and applies preprocessing steps to it."""

    def __init__(self, image, channel: int | None = None) -> None:
        arr = imaging.to_array(image)
        if arr.ndim == 3 and channel is not None:
            arr = imaging.select_channel(arr, channel)
        self.ip = np.array(arr, copy=True)
        self.inverted = False

    def to_processor(self) -> np.ndarray:
        """Return a copy of the current buffer."""
        return self.ip.copy()

    def for_detection(self) -> np.ndarray:
        """Return a copy with bright objects on dark, undoing any inversion."""
        out = self.ip.copy()
        if self.inverted:
            out = imaging.max_value(out) - out
        return out

    # ---- unconditional steps ----

    def to_greyscale(self) -> "ImageFilterer":
        """Convert to an 8-bit single-channel buffer."""
        self.ip = imaging.to_uint8(self.ip)
        return self

    def invert(self) -> "ImageFilterer":
        self.ip = imaging.max_value(self.ip) - self.ip
        self.inverted = not self.inverted
        return self

    def threshold(self, level: int) -> "ImageFilterer":
        """Binarize: 255 at or above level, 0 below. Resets polarity."""
        self.ip = morphology.binarize(self.for_detection(), level)
        self.inverted = False
        return self

    # ---- optional steps ----

    def add_border(self, options: FilterOptions) -> "ImageFilterer":
        """
        Invert the image and, if enabled, pad it with a border that reads
        as background once the image is inverted back for detection.
        """
        self.invert()
        if options.add_border and options.border_width > 0:
            b = int(options.border_width)
            fill = imaging.max_value(self.ip) if self.inverted else 0
            self.ip = cv2.copyMakeBorder(self.ip, b, b, b, b, cv2.BORDER_CONSTANT, value=fill)
        return self

    def kuwahara(self, options: FilterOptions) -> "ImageFilterer":
        if options.use_kuwahara:
            self.ip = kuwahara(self.ip, options.kuwahara_radius)
        return self

    def flatten(self, options: FilterOptions) -> "ImageFilterer":
        """Clamp bright regions down to the flattening threshold."""
        if options.use_flattening:
            level = self._in_current_polarity(options.flattening_threshold)
            if self.inverted:
                self.ip = np.maximum(self.ip, level).astype(self.ip.dtype)
            else:
                self.ip = np.minimum(self.ip, level).astype(self.ip.dtype)
        return self

    def raise_floor(self, options: FilterOptions) -> "ImageFilterer":
        """Lift dark regions up to the flattening threshold."""
        if options.use_flattening:
            level = self._in_current_polarity(options.flattening_threshold)
            if self.inverted:
                self.ip = np.minimum(self.ip, level).astype(self.ip.dtype)
            else:
                self.ip = np.maximum(self.ip, level).astype(self.ip.dtype)
        return self

    def canny(self, options: FilterOptions) -> "ImageFilterer":
        """Replace the image with a binary edge map (edges = 255)."""
        if not options.use_canny:
            return self
        src = imaging.to_uint8(self.for_detection())
        low, high = options.canny_low_threshold, options.canny_high_threshold
        if options.canny_auto_threshold:
            src, low, high = auto_canny_thresholds(src)
        ksize = int(options.canny_kernel_width) | 1
        if options.canny_kernel_radius > 0:
            src = cv2.GaussianBlur(src, (ksize, ksize), float(options.canny_kernel_radius))
        self.ip = cv2.Canny(src, float(low), float(high), L2gradient=True)
        self.inverted = False
        logger.debug("Edge detection with thresholds %.1f/%.1f", low, high)
        return self

    def close(self, options: FilterOptions, level: int) -> "ImageFilterer":
        """
        Morphological gap closing. A non-binary buffer is first
        thresholded at `level`.
        """
        if not (options.use_gap_closing or options.use_canny):
            return self
        if self.inverted or not morphology.is_binary(self.ip):
            self.threshold(level)
        self.ip = morphology.close_gaps(self.ip, options.closing_radius)
        return self

    def watershed(self, options: FilterOptions, level: int) -> "ImageFilterer":
        """Split touching objects in a binary buffer."""
        if not options.use_watershed:
            return self
        if self.inverted or not morphology.is_binary(self.ip):
            self.threshold(level)
        self.ip = morphology.split_touching_watershed(
            self.ip,
            min_neck_px=options.watershed_min_neck_px,
            min_seg_px=options.watershed_min_segment_px,
        )
        return self

    def _in_current_polarity(self, level: int) -> int:
        if self.inverted:
            return imaging.max_value(self.ip) - int(level)
        return int(level)


def preprocess(image, options: DetectionOptions) -> np.ndarray:
    """
    Run the full filter chain for a detection run and return a buffer
    with bright objects on a dark background.
    """
    f = options.filters
    filt = (
        ImageFilterer(image, options.channel)
        .to_greyscale()
        .add_border(f)
        .kuwahara(f)
        .flatten(f)
        .canny(f)
        .close(f, options.threshold)
        .watershed(f, options.threshold)
    )
    return filt.for_detection()
