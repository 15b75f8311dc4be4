import numpy as np
import pytest

from conftest import make_depth, make_frame, MID_ROW, LOWER_ROW
from depth_navigation.depth_frame import DepthFrame, Region, is_valid_depth
from depth_navigation.region_aggregator import RegionAggregator


@pytest.fixture
def aggregator():
    return RegionAggregator()


@pytest.mark.parametrize("depth,valid", [
    (0.0, False), (-1.0, False), (0.01, True), (4.99, True), (5.0, False), (float("nan"), False),
])
def test_valid_depth_range(depth, valid):
    assert is_valid_depth(depth) is valid


def test_region_columns_give_remainder_to_right():
    frame = DepthFrame.from_array(np.zeros((4, 10), dtype=np.float32))
    assert frame.region_columns(Region.LEFT) == (0, 3)
    assert frame.region_columns(Region.CENTER) == (3, 6)
    assert frame.region_columns(Region.RIGHT) == (6, 10)


def test_sample_rows():
    frame = make_frame()
    assert frame.sample_rows() == (MID_ROW, LOWER_ROW)


def test_mean_uses_both_sample_rows(aggregator):
    readings = aggregator.aggregate(make_frame(mid={"center": 2.0}, lower={"center": 3.0}))
    assert readings[Region.CENTER].mean_depth == pytest.approx(2.5)


def test_region_without_valid_samples_has_no_mean(aggregator):
    readings = aggregator.aggregate(make_frame(mid={"left": 7.0, "center": 0.0, "right": 2.0}))
    assert readings[Region.LEFT].mean_depth is None
    assert readings[Region.CENTER].mean_depth is None
    assert readings[Region.RIGHT].mean_depth == pytest.approx(2.0)


def test_invalid_samples_are_excluded_from_mean(aggregator):
    depth = make_depth(mid={"center": 1.0})
    depth[MID_ROW, 4] = 9.0
    depth[MID_ROW, 5] = np.nan
    readings = aggregator.aggregate(DepthFrame.from_array(depth))
    assert readings[Region.CENTER].mean_depth == pytest.approx(1.0)


def test_single_outlier_is_averaged_in(aggregator):
    depth = make_depth(mid={"left": 1.0})
    depth[MID_ROW, 0] = 4.0
    readings = aggregator.aggregate(DepthFrame.from_array(depth))
    assert readings[Region.LEFT].mean_depth == pytest.approx(2.0)


def test_lower_height_hit_only_on_lower_row(aggregator):
    readings = aggregator.aggregate(make_frame(mid={"right": 0.5}))
    assert not any(r.lower_height_hit for r in readings)

    readings = aggregator.aggregate(make_frame(lower={"right": 1.2}))
    assert readings[Region.RIGHT].lower_height_hit
    assert not readings[Region.LEFT].lower_height_hit


def test_lower_height_hit_requires_valid_close_sample(aggregator):
    readings = aggregator.aggregate(make_frame(lower={"left": 1.5, "center": 0.0, "right": 3.0}))
    assert not any(r.lower_height_hit for r in readings)


def test_strided_buffer_skips_padding(aggregator):
    padded = np.zeros((8, 12), dtype=np.float32)
    padded[:, :9] = make_depth(mid={"center": 0.8})
    padded[:, 9:] = 0.1  # padding, never read
    frame = DepthFrame(width=9, height=8, row_stride=12, buffer=padded.reshape(-1))
    readings = aggregator.aggregate(frame)
    assert readings[Region.CENTER].mean_depth == pytest.approx(0.8)
    assert readings[Region.RIGHT].mean_depth is None


@pytest.mark.parametrize("shape", [(0, 0), (0, 9), (8, 0)])
def test_empty_frame_yields_empty_readings(aggregator, shape):
    readings = aggregator.aggregate(DepthFrame.from_array(np.zeros(shape, dtype=np.float32)))
    assert [r.region for r in readings] == list(Region)
    assert all(r.mean_depth is None and not r.lower_height_hit for r in readings)


def test_from_array_rejects_non_2d():
    with pytest.raises(ValueError):
        DepthFrame.from_array(np.zeros((2, 2, 2)))
