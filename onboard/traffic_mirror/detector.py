"""
基于地图的交通反射镜检测
每帧相机信息触发一次检测：采样候选位姿 -> 筛选可见反射镜 -> 计算粗略ROI与期望ROI
"""

import logging
import math
from typing import Callable, List, Optional, Tuple

from common.exceptions import CameraInfoError
from common.models.camera_info import CameraInfo, Header
from common.models.detector_config import DetectorConfig
from common.models.traffic_mirror import (
    BeamMarker,
    DetectionOutput,
    TrafficMirrorRoiArray,
)
from common.utils.log import log, log_throttle, runtime
from .camera_model import PinholeCameraModel
from .geometry import CameraPose
from .map_loader import TrafficMirrorStore
from .pose_source import PoseSource
from .roi_projector import get_aggregated_traffic_mirror_roi, get_traffic_mirror_roi
from .visibility import get_visible_traffic_mirrors
from .visualization import make_beam_markers

TRANSFORM_WARN_PERIOD = 5.0  # 秒


def sample_timestamps(stamp: float, min_offset: float, max_offset: float, step: float) -> List[float]:
    """
    [stamp + min_offset, stamp + max_offset] 内按step等间隔采样

    用整数步数计算采样点，避免浮点累加误差。
    """
    if max_offset < min_offset:
        return []
    count = int(math.floor((max_offset - min_offset) / step + 1e-9))
    return [stamp + min_offset + i * step for i in range(count + 1)]


class MapBasedDetector:
    """
    基于地图的交通反射镜检测器

    除反射镜集合（由TrafficMirrorStore在外部更新）外不保存跨帧状态，
    每次检测都是 (反射镜集合快照, 相机信息, 位姿查询结果) 的纯函数。
    """

    def __init__(
        self,
        config: DetectorConfig,
        pose_source: PoseSource,
        store: TrafficMirrorStore,
        roi_callback: Optional[Callable[[TrafficMirrorRoiArray], None]] = None,
        expect_roi_callback: Optional[Callable[[TrafficMirrorRoiArray], None]] = None,
        marker_callback: Optional[Callable[[List[BeamMarker]], None]] = None
    ):
        """
        Args:
            config: 检测器参数，非法值会被替换为默认值并记录错误日志
            pose_source: 位姿源
            store: 反射镜集合持有者
            roi_callback: 粗略ROI输出回调
            expect_roi_callback: 期望ROI输出回调
            marker_callback: 调试可视化输出回调
        """
        self.config, warnings = config.sanitize()
        for warning in warnings:
            log.error(warning)
        log.info("Config values: %s", self.config.summary())

        self.uncertainty = self.config.to_uncertainty()
        self.expect_uncertainty = self.uncertainty.zeroed()
        self.pose_source = pose_source
        self.store = store

        self.roi_callback = roi_callback
        self.expect_roi_callback = expect_roi_callback
        self.marker_callback = marker_callback

    def get_camera_poses(self, header: Header) -> Optional[Tuple[CameraPose, List[CameraPose]]]:
        """
        查询标称位姿与时间窗口内的候选位姿

        Returns:
            (标称位姿, 候选位姿列表)；标称位姿查询失败时返回None
        """
        candidate_poses = []
        for t in sample_timestamps(
            header.stamp,
            self.config.min_timestamp_offset,
            self.config.max_timestamp_offset,
            self.config.timestamp_sample_len
        ):
            result = self.pose_source.lookup(t, header.frame_id)
            if result.success:
                candidate_poses.append(result.pose)

        nominal = self.pose_source.lookup(header.stamp, header.frame_id)
        if not nominal.success:
            log_throttle(
                logging.WARNING, "camera_transform", TRANSFORM_WARN_PERIOD,
                "cannot get transform from %s frame to %s frame: %s",
                self.config.map_frame, header.frame_id, nominal.error_message)
            return None

        if not candidate_poses:
            candidate_poses.append(nominal.pose)
        return nominal.pose, candidate_poses

    @runtime(name="detect")
    def on_camera_info(self, camera_info: CameraInfo) -> Optional[DetectionOutput]:
        """
        单帧检测

        Returns:
            DetectionOutput；数据未就绪或位姿不可用时返回None（不输出）
        """
        traffic_mirrors = self.store.snapshot()
        if traffic_mirrors is None:
            log.debug("No traffic mirror data available, skipping camera callback")
            return None

        try:
            camera_model = PinholeCameraModel.from_camera_info(camera_info)
        except CameraInfoError as e:
            log.error("invalid camera info: %s", e)
            return None

        poses = self.get_camera_poses(camera_info.header)
        if poses is None:
            return None
        nominal_pose, candidate_poses = poses

        visible_traffic_mirrors = get_visible_traffic_mirrors(
            traffic_mirrors.values(), candidate_poses, camera_model, self.config.max_detection_range)

        rough_rois = TrafficMirrorRoiArray(header=camera_info.header)
        expect_rois = TrafficMirrorRoiArray(header=camera_info.header)
        for traffic_mirror in visible_traffic_mirrors:
            expect_roi = get_traffic_mirror_roi(
                nominal_pose, camera_model, traffic_mirror, self.expect_uncertainty)
            if expect_roi is None:
                continue
            rough_roi = get_aggregated_traffic_mirror_roi(
                candidate_poses, camera_model, traffic_mirror, self.uncertainty)
            if rough_roi is None:
                continue
            rough_rois.rois.append(rough_roi)
            expect_rois.rois.append(expect_roi)

        output = DetectionOutput(
            rough_rois=rough_rois,
            expect_rois=expect_rois,
            markers=make_beam_markers(nominal_pose, camera_info.header, visible_traffic_mirrors)
        )
        self._publish(output)
        return output

    def _publish(self, output: DetectionOutput):
        if self.roi_callback:
            self.roi_callback(output.rough_rois)
        if self.expect_roi_callback:
            self.expect_roi_callback(output.expect_rois)
        if self.marker_callback:
            self.marker_callback(output.markers)
