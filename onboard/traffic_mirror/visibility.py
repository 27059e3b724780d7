"""
可见反射镜筛选
对每个反射镜，只要任一候选相机位姿同时满足距离、朝向、画面三项检查，即认为可见
"""

import math
from typing import Iterable, List, Sequence

import numpy as np

from common.models.traffic_mirror import TrafficMirror
from .camera_model import PinholeCameraModel
from .geometry import (
    CameraPose,
    get_traffic_mirror_bottom_right,
    get_traffic_mirror_center,
    get_traffic_mirror_top_left,
    normalize_radian,
)

MAX_ANGLE_RANGE = math.radians(40.0)

# 这些子类型并非真正的检测目标
IGNORED_SUBTYPES = ("solid",)


def is_in_distance_range(p1: np.ndarray, p2: np.ndarray, max_distance_range: float) -> bool:
    """地图平面内（忽略z）的距离检查"""
    sq_dist = (p1[0] - p2[0]) ** 2 + (p1[1] - p2[1]) ** 2
    return sq_dist < max_distance_range * max_distance_range


def is_in_angle_range(mirror_yaw: float, camera_yaw: float, max_angle_range: float) -> bool:
    cos_diff = math.cos(mirror_yaw) * math.cos(camera_yaw) + math.sin(mirror_yaw) * math.sin(camera_yaw)
    diff_angle = math.acos(max(-1.0, min(1.0, cos_diff)))
    return abs(diff_angle) < max_angle_range


def get_traffic_mirror_yaw(traffic_mirror: TrafficMirror) -> float:
    """反射镜朝向：线段方向逆时针旋转90度"""
    front, back = traffic_mirror.front, traffic_mirror.back
    return normalize_radian(math.atan2(back[1] - front[1], back[0] - front[0]) + math.pi / 2)


def get_camera_yaw(pose: CameraPose) -> float:
    forward = pose.forward_axis()
    return normalize_radian(math.atan2(forward[1], forward[0]))


def is_traffic_mirror_target(traffic_mirror: TrafficMirror) -> bool:
    return traffic_mirror.subtype is not None and traffic_mirror.subtype not in IGNORED_SUBTYPES


def get_visible_traffic_mirrors(
    traffic_mirrors: Iterable[TrafficMirror],
    poses: Sequence[CameraPose],
    camera_model: PinholeCameraModel,
    max_detection_range: float
) -> List[TrafficMirror]:
    """
    筛选可见反射镜

    Args:
        traffic_mirrors: 候选反射镜（按此顺序输出）
        poses: 候选相机位姿（非空）
        camera_model: 相机模型
        max_detection_range: 最大检测距离（米）

    Returns:
        可见反射镜列表
    """
    visible_traffic_mirrors = []
    for traffic_mirror in traffic_mirrors:
        if not is_traffic_mirror_target(traffic_mirror):
            continue

        center = get_traffic_mirror_center(traffic_mirror)
        top_left = get_traffic_mirror_top_left(traffic_mirror)
        bottom_right = get_traffic_mirror_bottom_right(traffic_mirror)
        mirror_yaw = get_traffic_mirror_yaw(traffic_mirror)

        # 任一位姿下可见即保留
        for pose in poses:
            if not is_in_distance_range(center, pose.origin, max_detection_range):
                continue

            if not is_in_angle_range(mirror_yaw, get_camera_yaw(pose), MAX_ANGLE_RANGE):
                continue

            if (
                not camera_model.is_in_image_frame(pose.to_camera_frame(top_left)) and
                not camera_model.is_in_image_frame(pose.to_camera_frame(bottom_right))
            ):
                continue

            visible_traffic_mirrors.append(traffic_mirror)
            break

    return visible_traffic_mirrors
