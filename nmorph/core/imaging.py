"""
Pixel buffer adapter.

Accepts a numpy array or a Pillow image from the loading layer and
returns a 2D single-channel buffer. Decoding errors from Pillow are
propagated unchanged.
"""

from __future__ import annotations
import cv2
import numpy as np
from PIL import Image

from nmorph.core.errors import ConfigurationError

SUPPORTED_DTYPES = (np.uint8, np.uint16)


def to_array(image) -> np.ndarray:
    """Return the pixels of a numpy array or Pillow image as an ndarray."""
    if isinstance(image, Image.Image):
        if image.mode in ("I;16", "I;16B", "I;16L"):
            return np.array(image, dtype=np.uint16)
        if image.mode in ("I", "F"):
            # 32-bit integer or float greyscale, e.g. 16-bit PNG decoded as "I"
            return np.clip(np.rint(np.array(image)), 0, 65535).astype(np.uint16)
        if image.mode not in ("L", "RGB", "RGBA"):
            image = image.convert("RGB")
        return np.array(image)
    if isinstance(image, np.ndarray):
        return image
    raise ConfigurationError(f"Unsupported image type: {type(image).__name__}")


def select_channel(arr: np.ndarray, channel: int | None) -> np.ndarray:
    """
    Pick one channel of a multi-channel array (RGB order: 0=R, 1=G, 2=B).
    A 2D array is returned as-is.
    """
    if arr.ndim == 2:
        return arr
    if arr.ndim != 3:
        raise ConfigurationError(f"Expected a 2D or 3D pixel array, got {arr.ndim}D")
    if channel is None or not 0 <= channel < arr.shape[2]:
        raise ConfigurationError(f"Channel {channel} not present in a {arr.shape[2]}-channel image")
    return arr[:, :, channel]


def to_uint8(arr: np.ndarray) -> np.ndarray:
    """Convert an image to 8-bit greyscale; 16-bit data is min-max rescaled."""
    if arr.ndim == 3:
        if arr.shape[2] not in (3, 4):
            raise ConfigurationError(f"Cannot convert a {arr.shape[2]}-channel image to greyscale")
        if arr.shape[2] == 4:
            arr = cv2.cvtColor(arr, cv2.COLOR_RGBA2RGB)
        arr = cv2.cvtColor(arr, cv2.COLOR_RGB2GRAY)
    if arr.dtype == np.uint8:
        return arr
    if arr.dtype == np.bool_:
        return arr.astype(np.uint8) * 255
    return cv2.normalize(arr, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)


def check_buffer(arr: np.ndarray) -> None:
    """Raise ConfigurationError unless arr is a 2D 8- or 16-bit buffer."""
    if not isinstance(arr, np.ndarray) or arr.ndim != 2:
        raise ConfigurationError("Processor must be a 2D single-channel buffer")
    if arr.dtype not in SUPPORTED_DTYPES:
        raise ConfigurationError(f"Processor must be byte or short, got {arr.dtype}")


def max_value(arr: np.ndarray) -> int:
    """Largest representable value of the buffer's bit depth."""
    return int(np.iinfo(arr.dtype).max)
