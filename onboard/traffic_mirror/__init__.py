"""
交通反射镜检测模块
根据地图中的反射镜位置与相机位姿，计算反射镜在图像中的ROI
"""

from .camera_model import PinholeCameraModel
from .geometry import CameraPose
from .pose_source import PoseSource, PoseLookupResult, TransformTreePoseSource
from .visibility import get_visible_traffic_mirrors
from .roi_projector import get_traffic_mirror_roi, get_aggregated_traffic_mirror_roi
from .map_loader import TrafficMirrorStore, extract_traffic_mirrors, load_vector_map, load_route
from .detector import MapBasedDetector, sample_timestamps

__all__ = [
    "PinholeCameraModel",
    "CameraPose",
    "PoseSource",
    "PoseLookupResult",
    "TransformTreePoseSource",
    "get_visible_traffic_mirrors",
    "get_traffic_mirror_roi",
    "get_aggregated_traffic_mirror_roi",
    "TrafficMirrorStore",
    "extract_traffic_mirrors",
    "load_vector_map",
    "load_route",
    "MapBasedDetector",
    "sample_timestamps"
]
