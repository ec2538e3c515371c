import numpy as np
import cv2
import pytest


def _disk(img, cx, cy, r, value):
    yy, xx = np.mgrid[:img.shape[0], :img.shape[1]]
    img[(xx - cx) ** 2 + (yy - cy) ** 2 <= r * r] = value
    return img


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def draw_disk():
    """Draw an exact digital disk (pixels with dx²+dy² <= r²) in place."""
    return _disk


@pytest.fixture
def disk_image():
    # 50x50, one filled disk of radius 10 centred at (25, 25)
    return _disk(np.zeros((50, 50), np.uint8), 25, 25, 10, 255)


@pytest.fixture
def edge_disks_image():
    # two disks, each touching the image border
    img = np.zeros((50, 50), np.uint8)
    _disk(img, 10, 12, 10, 255)
    _disk(img, 39, 37, 10, 255)
    return img


@pytest.fixture
def cells_gray(rng):
    # 256x256 synthetic nuclei with light noise
    img = np.zeros((256, 256), np.uint8) + 10
    cv2.circle(img, (64, 64), 18, 180, -1)
    cv2.circle(img, (128, 128), 12, 210, -1)
    cv2.ellipse(img, (190, 70), (20, 10), 30, 0, 360, 200, -1)
    cv2.rectangle(img, (40, 180), (120, 186), 190, -1)
    noise = (rng.normal(0, 5, img.shape)).astype(np.int16)
    return np.clip(img.astype(np.int16) + noise, 0, 255).astype(np.uint8)
