"""Tests for debug markers and ROI drawing."""

from __future__ import annotations

import numpy as np
import pytest

from common.models.camera_info import Header
from common.models.traffic_mirror import (
    DetectionOutput,
    RegionOfInterest,
    TrafficMirrorRoi,
    TrafficMirrorRoiArray,
)
from onboard.traffic_mirror.visualization import EXPECT_COLOR, ROUGH_COLOR, draw_rois, make_beam_markers

from conftest import make_mirror, make_pose


def test_beam_marker_points_to_mirror_center() -> None:
    header = Header(stamp=1.5, frame_id="camera")
    mirrors = [make_mirror(4), make_mirror(9, front=(20.0, 0.0, 2.0), back=(20.0, -2.0, 0.0))]
    markers = make_beam_markers(make_pose(), header, mirrors)

    assert [m.id for m in markers] == [4, 9]
    assert markers[0].header == header
    assert markers[0].ns == "beam"
    assert markers[0].points[0] == (0.0, 0.0, 0.0)
    assert markers[0].points[1] == pytest.approx((0.0, -0.5, 10.0))
    assert markers[1].points[1] == pytest.approx((1.0, -1.0, 20.0))
    assert markers[0].scale == 0.05
    assert markers[0].color == (0.0, 1.0, 0.0, 0.999)
    assert markers[0].lifetime == 0.2


def test_draw_rois_does_not_modify_input() -> None:
    image = np.zeros((100, 120, 3), dtype=np.uint8)
    output = DetectionOutput(
        rough_rois=TrafficMirrorRoiArray(rois=[
            TrafficMirrorRoi(traffic_mirror_id=1, roi=RegionOfInterest(x_offset=10, y_offset=20, width=40, height=30))
        ]),
        expect_rois=TrafficMirrorRoiArray(rois=[
            TrafficMirrorRoi(traffic_mirror_id=1, roi=RegionOfInterest(x_offset=60, y_offset=60, width=20, height=20))
        ]),
    )

    canvas = draw_rois(image, output)
    assert not image.any()
    assert canvas.shape == image.shape
    assert tuple(canvas[40, 10]) == ROUGH_COLOR
    assert tuple(canvas[70, 60]) == EXPECT_COLOR
    assert not canvas[90, 5].any()
