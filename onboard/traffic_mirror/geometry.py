"""
几何基础：相机位姿与反射镜参考点
"""

import math
from dataclasses import dataclass, field

import numpy as np

from common.models.traffic_mirror import TrafficMirror


@dataclass(frozen=True, eq=False)
class CameraPose:
    """
    相机在地图坐标系下的位姿

    rotation/translation 将相机坐标系中的点变换到地图坐标系，
    相机坐标系：x向右，y向下，z向前（光轴）。
    """
    rotation: np.ndarray     # 旋转矩阵 (3, 3)
    translation: np.ndarray  # 相机原点在地图坐标系下的位置 (3,)
    timestamp: float = 0.0   # 采样时刻
    _inverse_rotation: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        rotation = np.asarray(self.rotation, dtype=np.float64)
        object.__setattr__(self, "rotation", rotation)
        object.__setattr__(self, "translation", np.asarray(self.translation, dtype=np.float64))
        object.__setattr__(self, "_inverse_rotation", rotation.T)

    @classmethod
    def from_matrix(cls, transform_matrix: np.ndarray, timestamp: float = 0.0) -> 'CameraPose':
        return cls(
            rotation=transform_matrix[:3, :3],
            translation=transform_matrix[:3, 3],
            timestamp=timestamp
        )

    @property
    def origin(self) -> np.ndarray:
        return self.translation

    def to_camera_frame(self, point_map) -> np.ndarray:
        """地图坐标系中的点 -> 相机坐标系"""
        return self._inverse_rotation @ (np.asarray(point_map, dtype=np.float64) - self.translation)

    def forward_axis(self) -> np.ndarray:
        """相机光轴（z轴）在地图坐标系下的方向"""
        return self.rotation @ np.array([0.0, 0.0, 1.0])


def normalize_radian(rad: float, min_rad: float = -math.pi) -> float:
    """将角度归一化到 [min_rad, min_rad + 2π)"""
    max_rad = min_rad + 2 * math.pi
    value = math.fmod(rad, 2 * math.pi)
    if min_rad <= value < max_rad:
        return value
    return value - math.copysign(2 * math.pi, value)


def get_traffic_mirror_top_left(traffic_mirror: TrafficMirror) -> np.ndarray:
    x, y, z = traffic_mirror.front
    return np.array([x, y, z + traffic_mirror.height])


def get_traffic_mirror_bottom_right(traffic_mirror: TrafficMirror) -> np.ndarray:
    return np.array(traffic_mirror.back, dtype=np.float64)


def get_traffic_mirror_center(traffic_mirror: TrafficMirror) -> np.ndarray:
    return (get_traffic_mirror_top_left(traffic_mirror) +
            get_traffic_mirror_bottom_right(traffic_mirror)) / 2
