"""Tests for the map based detector pass."""

from __future__ import annotations

import pytest

from common.models.detector_config import DetectorConfig
from common.models.vector_map import LaneletRoute, VectorMap
from onboard.traffic_mirror.detector import MapBasedDetector, sample_timestamps
from onboard.traffic_mirror.map_loader import TrafficMirrorStore

from conftest import FakePoseSource, make_camera_info, make_pose


def _vector_map(mirrors, extra_lanelets=()) -> VectorMap:
    """Build a map with one lanelet referencing one regulatory element per mirror."""
    points, linestrings = [], []
    pid = 1
    for mirror_id, (front, back, subtype) in mirrors.items():
        ids = []
        for x, y, z in (front, back):
            points.append({"id": pid, "x": x, "y": y, "z": z})
            ids.append(pid)
            pid += 1
        linestrings.append({"id": mirror_id, "points": ids,
                            "attributes": {"type": "traffic_mirror", "subtype": subtype, "height": 0.0}})
    return VectorMap(
        points=points,
        linestrings=linestrings,
        regulatory_elements=[{"id": 500, "subtype": "traffic_mirror",
                              "parameters": {"traffic_mirrors": list(mirrors)}}],
        lanelets=[{"id": 900, "regulatory_elements": [500]}] + [{"id": i} for i in extra_lanelets],
    )


AHEAD = ((10.0, 1.0, 1.0), (10.0, -1.0, 0.0), "mirror")


@pytest.fixture
def store() -> TrafficMirrorStore:
    store = TrafficMirrorStore()
    store.on_map(_vector_map({11: AHEAD}))
    return store


def test_mirror_ahead_produces_rough_and_expected_roi(store) -> None:
    detector = MapBasedDetector(DetectorConfig(max_detection_range=50.0), FakePoseSource(make_pose()), store)
    output = detector.on_camera_info(make_camera_info(stamp=5.0))

    assert output is not None
    assert [r.traffic_mirror_id for r in output.rough_rois.rois] == [11]
    assert [r.traffic_mirror_id for r in output.expect_rois.rois] == [11]
    expect = output.expect_rois.rois[0].roi
    assert (expect.x_offset, expect.y_offset, expect.width, expect.height) == (288, 208, 64, 32)
    assert output.rough_rois.header.stamp == 5.0
    assert output.expect_rois.header.frame_id == "camera"


def test_far_mirror_is_not_emitted() -> None:
    store = TrafficMirrorStore()
    store.on_map(_vector_map({11: ((1000.0, 1.0, 1.0), (1000.0, -1.0, 0.0), "mirror")}))
    detector = MapBasedDetector(DetectorConfig(max_detection_range=50.0), FakePoseSource(make_pose()), store)

    output = detector.on_camera_info(make_camera_info())
    assert output.rough_rois.rois == []
    assert output.expect_rois.rois == []
    assert output.markers == []


def test_solid_mirror_is_not_emitted() -> None:
    store = TrafficMirrorStore()
    store.on_map(_vector_map({11: ((10.0, 1.0, 1.0), (10.0, -1.0, 0.0), "solid")}))
    detector = MapBasedDetector(DetectorConfig(), FakePoseSource(make_pose()), store)
    assert detector.on_camera_info(make_camera_info()).rough_rois.rois == []


def test_no_map_skips_frame() -> None:
    calls = []
    detector = MapBasedDetector(DetectorConfig(), FakePoseSource(make_pose()), TrafficMirrorStore(),
                                roi_callback=calls.append)
    assert detector.on_camera_info(make_camera_info()) is None
    assert calls == []


def test_missing_nominal_pose_skips_frame(store) -> None:
    source = FakePoseSource(make_pose(), unavailable=[0.0])
    detector = MapBasedDetector(DetectorConfig(min_timestamp_offset=-0.02, max_timestamp_offset=0.02),
                                source, store)
    assert detector.on_camera_info(make_camera_info(stamp=0.0)) is None


def test_invalid_camera_info_skips_frame(store) -> None:
    detector = MapBasedDetector(DetectorConfig(), FakePoseSource(make_pose()), store)
    info = make_camera_info().model_copy(update={"width": 0})
    assert detector.on_camera_info(info) is None


def test_candidate_poses_are_sampled_over_window(store) -> None:
    source = FakePoseSource(make_pose())
    config = DetectorConfig(min_timestamp_offset=-0.05, max_timestamp_offset=0.05, timestamp_sample_len=0.01)
    detector = MapBasedDetector(config, source, store)

    nominal, candidates = detector.get_camera_poses(make_camera_info(stamp=100.0).header)
    assert len(candidates) == 11
    assert source.queries[0] == pytest.approx(99.95)
    assert source.queries[10] == pytest.approx(100.05)
    assert source.queries[-1] == 100.0


def test_failed_samples_are_dropped(store) -> None:
    shifted = make_pose(y=0.4)
    source = FakePoseSource(make_pose(), poses={0.01: shifted}, unavailable=[-0.01, 0.02])
    config = DetectorConfig(min_timestamp_offset=-0.02, max_timestamp_offset=0.02, timestamp_sample_len=0.01)
    detector = MapBasedDetector(config, source, store)

    nominal, candidates = detector.get_camera_poses(make_camera_info().header)
    assert len(candidates) == 3
    assert shifted in candidates


def test_all_samples_failing_falls_back_to_nominal(store) -> None:
    nominal_pose = make_pose()
    source = FakePoseSource(poses={0.0: nominal_pose})
    config = DetectorConfig(min_timestamp_offset=0.1, max_timestamp_offset=0.2)
    detector = MapBasedDetector(config, source, store)

    nominal, candidates = detector.get_camera_poses(make_camera_info().header)
    assert nominal is nominal_pose
    assert candidates == [nominal_pose]


def test_inverted_offsets_collapse_to_nominal_sample(store) -> None:
    source = FakePoseSource(make_pose())
    detector = MapBasedDetector(DetectorConfig(min_timestamp_offset=0.0, max_timestamp_offset=-1.0), source, store)
    assert detector.config.min_timestamp_offset == 0.0
    assert detector.config.max_timestamp_offset == 0.0

    detector.get_camera_poses(make_camera_info(stamp=3.0).header)
    assert source.queries == [3.0, 3.0]


def test_rough_roi_covers_pose_window(store) -> None:
    poses = {-0.01: make_pose(y=-0.5), 0.0: make_pose(), 0.01: make_pose(y=0.5)}
    config = DetectorConfig(min_timestamp_offset=-0.01, max_timestamp_offset=0.01, max_vibration_width=0.2)
    detector = MapBasedDetector(config, FakePoseSource(poses=poses), store)

    output = detector.on_camera_info(make_camera_info())
    rough = output.rough_rois.rois[0].roi
    expect = output.expect_rois.rois[0].roi
    assert rough.contains(expect)
    assert rough.width > expect.width


def test_rough_and_expected_are_emitted_in_pairs() -> None:
    store = TrafficMirrorStore()
    store.on_map(_vector_map({1: AHEAD, 2: ((20.0, 3.0, 1.0), (20.0, 1.0, 0.0), "mirror")}))
    # huge depth vibration makes every rough roi fail while the expected roi succeeds
    detector = MapBasedDetector(DetectorConfig(max_vibration_depth=100.0), FakePoseSource(make_pose()), store)

    output = detector.on_camera_info(make_camera_info())
    assert output.rough_rois.rois == []
    assert output.expect_rois.rois == []
    assert [m.id for m in output.markers] == [1, 2]


def test_detection_is_idempotent(store) -> None:
    config = DetectorConfig(min_timestamp_offset=-0.02, max_timestamp_offset=0.02,
                            max_vibration_yaw=0.01, max_vibration_width=0.3)
    poses = {-0.02: make_pose(y=-0.3), 0.0: make_pose(), 0.02: make_pose(y=0.3)}
    detector = MapBasedDetector(config, FakePoseSource(make_pose(y=0.1), poses=poses), store)

    first = detector.on_camera_info(make_camera_info())
    second = detector.on_camera_info(make_camera_info())
    assert first.to_dict() == second.to_dict()


def test_route_subset_is_preferred(store) -> None:
    store.on_map(_vector_map({1: AHEAD}, extra_lanelets=[901]))
    assert store.on_route(LaneletRoute(segments=[{"primitives": [{"id": 901}]}]))

    detector = MapBasedDetector(DetectorConfig(), FakePoseSource(make_pose()), store)
    output = detector.on_camera_info(make_camera_info())
    assert output.rough_rois.rois == []


def test_callbacks_receive_outputs(store) -> None:
    rough, expect, markers = [], [], []
    detector = MapBasedDetector(DetectorConfig(), FakePoseSource(make_pose()), store,
                                roi_callback=rough.append, expect_roi_callback=expect.append,
                                marker_callback=markers.append)
    output = detector.on_camera_info(make_camera_info())
    assert rough == [output.rough_rois]
    assert expect == [output.expect_rois]
    assert markers == [output.markers]
    assert markers[0][0].points[1] == pytest.approx((0.0, -0.5, 10.0))


def test_sample_timestamps() -> None:
    assert sample_timestamps(1.0, 0.0, 0.0, 0.01) == [1.0]
    assert len(sample_timestamps(0.0, -0.3, 0.0, 0.02)) == 16
    assert sample_timestamps(0.0, 0.0, 0.025, 0.01) == pytest.approx([0.0, 0.01, 0.02])
    assert sample_timestamps(0.0, 0.1, 0.0, 0.01) == []
