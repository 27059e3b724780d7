"""Shared fixtures for traffic mirror detection tests."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import numpy as np
import pytest

from common.models.camera_info import CameraInfo, CameraIntrinsics, Header
from common.models.traffic_mirror import TrafficMirror
from onboard.traffic_mirror.camera_model import PinholeCameraModel
from onboard.traffic_mirror.geometry import CameraPose
from onboard.traffic_mirror.pose_source import PoseLookupResult, PoseSource

IMAGE_WIDTH = 640
IMAGE_HEIGHT = 480

# camera axes (x right, y down, z forward) expressed in map frame, looking along +x
FORWARD_X_ROTATION = np.array([
    [0.0, 0.0, 1.0],
    [-1.0, 0.0, 0.0],
    [0.0, -1.0, 0.0],
])


def make_camera_info(stamp: float = 0.0, frame_id: str = "camera", **distortion) -> CameraInfo:
    # 90 degree horizontal field of view
    return CameraInfo(
        header=Header(stamp=stamp, frame_id=frame_id),
        width=IMAGE_WIDTH,
        height=IMAGE_HEIGHT,
        intrinsics=CameraIntrinsics(fx=320.0, fy=320.0, cx=320.0, cy=240.0, **distortion),
    )


def make_pose(x: float = 0.0, y: float = 0.0, z: float = 0.0, yaw: float = 0.0,
              timestamp: float = 0.0) -> CameraPose:
    c, s = np.cos(yaw), np.sin(yaw)
    rz = np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])
    return CameraPose(rotation=rz @ FORWARD_X_ROTATION, translation=np.array([x, y, z]), timestamp=timestamp)


def make_mirror(mirror_id: int = 1, front=(10.0, 1.0, 1.0), back=(10.0, -1.0, 0.0),
                height: float = 0.0, subtype: Optional[str] = "mirror") -> TrafficMirror:
    return TrafficMirror(id=mirror_id, points=(tuple(front), tuple(back)), height=height, subtype=subtype)


class FakePoseSource(PoseSource):
    """Returns the pose registered for a stamp, or the default pose, and records every query."""

    def __init__(self, default: Optional[CameraPose] = None,
                 poses: Optional[Dict[float, CameraPose]] = None,
                 unavailable: Iterable[float] = ()):
        self.default = default
        self.poses = dict(poses or {})
        self.unavailable = {round(t, 6) for t in unavailable}
        self.queries: List[float] = []

    def lookup(self, stamp: float, frame_id: str) -> PoseLookupResult:
        self.queries.append(stamp)
        key = round(stamp, 6)
        if key in self.unavailable:
            return PoseLookupResult(success=False, error_message="unavailable")
        for t, pose in self.poses.items():
            if round(t, 6) == key:
                return PoseLookupResult(success=True, pose=pose)
        if self.default is None:
            return PoseLookupResult(success=False, error_message="no data")
        return PoseLookupResult(success=True, pose=self.default)


@pytest.fixture
def camera_info() -> CameraInfo:
    return make_camera_info()


@pytest.fixture
def camera_model(camera_info: CameraInfo) -> PinholeCameraModel:
    return PinholeCameraModel.from_camera_info(camera_info)
