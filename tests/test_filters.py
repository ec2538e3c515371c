import numpy as np
import cv2
from nmorph.core import DetectionOptions, FilterOptions, ImageFilterer, kuwahara, preprocess

ALL_OFF = dict(use_kuwahara=False, use_flattening=False, use_canny=False, use_gap_closing=False)


def test_kuwahara_keeps_step_edges():
    img = np.full((40, 40), 50, np.uint8)
    img[:, 20:] = 200
    out = kuwahara(img, 3)
    assert out.shape == img.shape and out.dtype == img.dtype
    assert np.array_equal(out, img)


def test_kuwahara_smooths_noise(rng):
    img = np.clip(rng.normal(120, 20, (64, 64)), 0, 255).astype(np.uint8)
    out = kuwahara(img, 2)
    assert out.std() < img.std()


def test_kuwahara_sixteen_bit():
    img = np.full((20, 20), 3000, np.uint16)
    out = kuwahara(img, 3)
    assert out.dtype == np.uint16
    assert np.array_equal(out, img)


def test_flatten_clamps_bright_regions_in_either_polarity():
    img = np.zeros((20, 20), np.uint8)
    img[5:15, 5:15] = 220
    img[0, 0] = 40
    opts = FilterOptions(flattening_threshold=100)

    plain = ImageFilterer(img).flatten(opts).for_detection()
    assert plain.max() == 100 and plain[0, 0] == 40

    inverted = ImageFilterer(img).add_border(opts).flatten(opts)
    assert inverted.inverted
    out = inverted.for_detection()
    assert out.max() == 100 and out[0, 0] == 40


def test_raise_floor():
    img = np.zeros((10, 10), np.uint8)
    img[2:5, 2:5] = 180
    out = ImageFilterer(img).raise_floor(FilterOptions(flattening_threshold=60)).for_detection()
    assert out.min() == 60 and out.max() == 180


def test_border_reads_as_background():
    img = np.full((10, 12), 255, np.uint8)
    f = ImageFilterer(img).add_border(FilterOptions(add_border=True, border_width=3))
    out = f.for_detection()
    assert out.shape == (16, 18)
    assert out[0].max() == 0 and out[:, -1].max() == 0
    assert out[3:-3, 3:-3].min() == 255


def test_canny_gives_binary_edges(disk_image):
    f = ImageFilterer(disk_image).add_border(FilterOptions()).canny(FilterOptions(canny_kernel_radius=1.0))
    assert not f.inverted
    edges = f.for_detection()
    assert set(np.unique(edges)) <= {0, 255}
    assert edges[25, 25] == 0  # disk interior has no edge
    assert edges.max() == 255


def test_close_fills_broken_ring():
    img = np.zeros((60, 60), np.uint8)
    cv2.circle(img, (30, 30), 15, 255, 2)
    img[28:33, 43:48] = 0  # gap in the outline
    opts = FilterOptions(**dict(ALL_OFF, use_gap_closing=True, closing_radius=3))
    out = ImageFilterer(img).close(opts, 128).for_detection()
    assert out[30, 30] == 255
    assert out[0, 0] == 0


def test_threshold_resets_polarity():
    img = np.arange(0, 250, 10, dtype=np.uint8).reshape(5, 5)
    f = ImageFilterer(img).invert().threshold(100)
    assert not f.inverted
    assert np.array_equal(f.for_detection(), np.where(img >= 100, 255, 0))


def test_preprocess_with_steps_off_is_identity(cells_gray):
    opts = DetectionOptions(threshold=50, filters=FilterOptions(**ALL_OFF))
    out = preprocess(cells_gray, opts)
    assert out.dtype == np.uint8
    assert np.array_equal(out, cells_gray)


def test_preprocess_selects_channel():
    rgb = np.zeros((16, 16, 3), np.uint8)
    rgb[4:12, 4:12, 2] = 210
    rgb[:, :, 0] = 90
    out = preprocess(rgb, DetectionOptions(threshold=50, channel=2, filters=FilterOptions(**ALL_OFF)))
    assert out.shape == (16, 16)
    assert out[8, 8] == 210 and out[0, 0] == 0


def test_preprocess_full_chain_is_binary(cells_gray):
    out = preprocess(cells_gray, DetectionOptions(threshold=50))
    assert out.shape == cells_gray.shape
    assert set(np.unique(out)) <= {0, 255}
