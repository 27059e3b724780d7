"""
ROI投影
将反射镜的两个参考点按振动容差外扩后投影到图像，得到轴对齐ROI
"""

import math
from typing import Optional, Sequence

import numpy as np

from common.models.detector_config import UncertaintyConfig
from common.models.traffic_mirror import RegionOfInterest, TrafficMirror, TrafficMirrorRoi
from .camera_model import PinholeCameraModel
from .geometry import CameraPose, get_traffic_mirror_bottom_right, get_traffic_mirror_top_left


def get_max_vibration(point_camera: np.ndarray, config: UncertaintyConfig) -> np.ndarray:
    """
    计算相机坐标系下的最大振动位移

    角度振动按 sin(θ/2)·深度 近似为横向位移，越远的点外扩越多。

    Args:
        point_camera: 相机坐标系下的点
        config: 振动配置

    Returns:
        (x, y, z) 方向的外扩量
    """
    depth = point_camera[2]
    max_vibration_x = math.sin(config.max_vibration_yaw * 0.5) * depth + config.max_vibration_width * 0.5
    max_vibration_y = math.sin(config.max_vibration_pitch * 0.5) * depth + config.max_vibration_height * 0.5
    max_vibration_z = config.max_vibration_depth * 0.5
    return np.array([max_vibration_x, max_vibration_y, max_vibration_z])


def get_traffic_mirror_roi(
    pose: CameraPose,
    camera_model: PinholeCameraModel,
    traffic_mirror: TrafficMirror,
    config: UncertaintyConfig
) -> Optional[TrafficMirrorRoi]:
    """
    单个位姿下计算反射镜ROI

    Returns:
        TrafficMirrorRoi，外扩后的点在相机后方或ROI退化时返回None
    """
    # 左上角：向左、向上、向相机方向外扩
    camera2tl = pose.to_camera_frame(get_traffic_mirror_top_left(traffic_mirror))
    point3d = camera2tl - get_max_vibration(camera2tl, config)
    if point3d[2] <= 0.0:
        return None
    x1, y1 = camera_model.round_in_image_frame(camera_model.project_to_raw_pixel(point3d))
    x_offset, y_offset = int(x1), int(y1)

    # 右下角：向右、向下、向相机方向外扩
    camera2br = pose.to_camera_frame(get_traffic_mirror_bottom_right(traffic_mirror))
    point3d = camera2br + get_max_vibration(camera2br, config) * np.array([1.0, 1.0, -1.0])
    if point3d[2] <= 0.0:
        return None
    x2, y2 = camera_model.round_in_image_frame(camera_model.project_to_raw_pixel(point3d))
    width, height = int(x2 - x_offset), int(y2 - y_offset)

    if width < 1 or height < 1:
        return None

    return TrafficMirrorRoi(
        traffic_mirror_id=traffic_mirror.id,
        roi=RegionOfInterest(x_offset=x_offset, y_offset=y_offset, width=width, height=height)
    )


def get_aggregated_traffic_mirror_roi(
    poses: Sequence[CameraPose],
    camera_model: PinholeCameraModel,
    traffic_mirror: TrafficMirror,
    config: UncertaintyConfig
) -> Optional[TrafficMirrorRoi]:
    """
    多个候选位姿下ROI的并集

    相机的真实采集时刻只能确定到同步误差范围内，ROI需覆盖该范围内任一位姿的投影。
    所有位姿均失败时返回None。
    """
    rois = []
    for pose in poses:
        roi = get_traffic_mirror_roi(pose, camera_model, traffic_mirror, config)
        if roi is not None:
            rois.append(roi.roi)
    if not rois:
        return None

    x1 = camera_model.width - 1
    x2 = 0
    y1 = camera_model.height - 1
    y2 = 0
    for roi in rois:
        x1 = min(x1, roi.x_offset)
        x2 = max(x2, roi.x_offset + roi.width)
        y1 = min(y1, roi.y_offset)
        y2 = max(y2, roi.y_offset + roi.height)

    return TrafficMirrorRoi(
        traffic_mirror_id=traffic_mirror.id,
        roi=RegionOfInterest(x_offset=x1, y_offset=y1, width=x2 - x1, height=y2 - y1)
    )
