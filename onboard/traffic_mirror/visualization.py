"""
调试可视化
"""

from typing import List, Sequence

import cv2
import numpy as np

from common.models.camera_info import Header
from common.models.traffic_mirror import BeamMarker, DetectionOutput, TrafficMirror
from .geometry import CameraPose, get_traffic_mirror_center

ROUGH_COLOR = (0, 0, 255)   # BGR 红色
EXPECT_COLOR = (0, 255, 0)  # BGR 绿色


def make_beam_markers(
    pose: CameraPose,
    header: Header,
    traffic_mirrors: Sequence[TrafficMirror]
) -> List[BeamMarker]:
    """
    为每个可见反射镜生成一条相机原点 -> 反射镜中心的连线（相机坐标系）
    """
    markers = []
    for traffic_mirror in traffic_mirrors:
        camera2center = pose.to_camera_frame(get_traffic_mirror_center(traffic_mirror))
        markers.append(BeamMarker(
            header=header,
            id=traffic_mirror.id,
            points=[(0.0, 0.0, 0.0), tuple(float(v) for v in camera2center)]
        ))
    return markers


def draw_rois(image: np.ndarray, output: DetectionOutput) -> np.ndarray:
    """
    在图像副本上绘制粗略ROI（红）与期望ROI（绿）

    Args:
        image: BGR图像
        output: 检测输出

    Returns:
        绘制后的图像
    """
    canvas = image.copy()
    for rois, color in ((output.rough_rois, ROUGH_COLOR), (output.expect_rois, EXPECT_COLOR)):
        for item in rois.rois:
            roi = item.roi
            cv2.rectangle(
                canvas,
                (roi.x_offset, roi.y_offset),
                (roi.x_offset + roi.width, roi.y_offset + roi.height),
                color, 2
            )

    for item in output.rough_rois.rois:
        cv2.putText(
            canvas, str(item.traffic_mirror_id),
            (item.roi.x_offset, max(item.roi.y_offset - 5, 10)),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, ROUGH_COLOR, 1
        )
    return canvas
