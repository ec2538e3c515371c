import math

import numpy as np
import pytest
from nmorph.core import (ComponentCreationError, ConfigurationError, DetectionOptions, DetectionPipeline,
                         FilterOptions, Measurement)

PLAIN = FilterOptions(use_kuwahara=False, use_flattening=False, use_canny=False, use_gap_closing=False)


def _options(**kw):
    args = dict(threshold=128, min_size=50, max_size=2500, min_circ=0.5, max_circ=1.0, filters=PLAIN)
    args.update(kw)
    return DetectionOptions(**args)


def _record(boundary, stats, index):
    return (index, boundary, stats)


def test_finds_disk(disk_image):
    comps = DetectionPipeline(_options(), disk_image, _record).find_in_image()
    assert len(comps) == 1
    index, boundary, stats = comps[0]
    assert index == 0
    assert stats[Measurement.AREA] == pytest.approx(math.pi * 100, rel=0.05)


def test_nothing_passes_gives_empty_list(disk_image):
    assert DetectionPipeline(_options(min_size=1000), disk_image, _record).find_in_image() == []


def test_factory_failures_are_collected(draw_disk, caplog):
    img = np.zeros((60, 100), np.uint8)
    draw_disk(img, 25, 30, 10, 255)
    draw_disk(img, 75, 30, 10, 255)

    def picky(boundary, stats, index):
        if index == 0:
            raise ComponentCreationError("unusable outline")
        return index

    with caplog.at_level("WARNING", logger="nmorph"):
        res = DetectionPipeline(_options(), img, picky).run()
    assert res.components == [1]
    assert len(res.failures) == 1
    assert res.failures[0].index == 0
    assert "unusable outline" in str(res.failures[0].error)
    assert "Skipped 1 of 2" in caplog.text


def test_unexpected_factory_errors_propagate(disk_image):
    def broken(boundary, stats, index):
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        DetectionPipeline(_options(), disk_image, broken).run()


def test_invalid_options_fail_before_detection(disk_image):
    with pytest.raises(ConfigurationError):
        DetectionPipeline(_options(min_circ=1.0, max_circ=0.2), disk_image, _record).run()
    with pytest.raises(ConfigurationError):
        DetectionPipeline(_options(threshold=None), disk_image, _record).run()


def test_open_size_parameters_leave_original_untouched(disk_image):
    opts = _options(min_size=1000)
    base = DetectionPipeline(opts, disk_image, _record)
    opened = base.with_open_size_parameters()
    assert opts.min_size == 1000 and opts.max_circ == 1.0
    assert opened.options.min_size == 50
    assert opened.options.max_size == 2500.0
    assert opened.options.min_circ == 0.0
    assert not opened.options.filters.add_border
    assert len(base.find_in_image()) == 0
    assert len(opened.find_in_image()) == 1


def test_with_filter_toggles_one_step(disk_image):
    base = DetectionPipeline(_options(), disk_image, _record)
    on = base.with_filter("kuwahara", True)
    assert on.options.filters.use_kuwahara
    assert not base.options.filters.use_kuwahara
    assert on.options.filters.use_canny == base.options.filters.use_canny
    with pytest.raises(ConfigurationError):
        base.with_filter("sharpen", True)


def test_border_lets_edge_objects_through_in_source_coordinates(edge_disks_image):
    base = DetectionPipeline(_options(), edge_disks_image, _record)
    assert base.find_in_image() == []
    bordered = base.with_border(4).find_in_image()
    assert len(bordered) == 2
    _, boundary, stats = bordered[0]
    assert boundary.bounds[0] == 0
    assert stats[Measurement.CENTROID_X] == pytest.approx(10.5)
    assert stats[Measurement.CENTROID_Y] == pytest.approx(12.5)


def test_edge_detection_chain_recovers_disk(draw_disk):
    img = np.zeros((100, 100), np.uint8)
    draw_disk(img, 50, 50, 20, 255)
    opts = DetectionOptions(threshold=20, min_size=500, max_size=5000, min_circ=0.5, max_circ=1.0,
                            filters=FilterOptions(use_flattening=False))
    comps = DetectionPipeline(opts, img, _record).find_in_image()
    assert len(comps) == 1
    area = comps[0][2][Measurement.AREA]
    assert 0.8 * math.pi * 400 < area < 1.25 * math.pi * 400


def test_cancel_before_detection(disk_image):
    res = DetectionPipeline(_options(), disk_image, _record, cancel_cb=lambda: True).run()
    assert res.cancelled
    assert res.components == []


def test_cancel_between_components(edge_disks_image):
    calls = []

    def cancel():
        calls.append(1)
        return len(calls) > 2

    res = DetectionPipeline(_options(exclude_edges=False), edge_disks_image, _record, cancel_cb=cancel).run()
    assert res.cancelled
    assert len(res.components) == 1
    assert res.counts.accepted == 2


def test_two_channel_image_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        DetectionPipeline(_options(), np.zeros((50, 50, 2), np.uint8), _record).run()


def test_default_circularity_rejects_round_disk(disk_image):
    res = DetectionPipeline(DetectionOptions(threshold=128, min_size=50, max_size=2500, filters=PLAIN),
                            disk_image, _record).run()
    assert res.components == []
    assert res.counts.rejected_circularity == 1
