"""
相机位姿查询
查询失败以结果值返回，不向外抛异常
"""

from dataclasses import dataclass
from typing import Optional

from common.exceptions import TransformLookupError
from common.utils.transform_tree import TransformTree
from .geometry import CameraPose


@dataclass
class PoseLookupResult:
    """位姿查询结果"""
    success: bool
    pose: Optional[CameraPose] = None
    error_message: str = ""


class PoseSource:
    """位姿源接口：给定时刻与相机坐标系，返回相机在地图坐标系下的位姿"""

    def lookup(self, stamp: float, frame_id: str) -> PoseLookupResult:
        raise NotImplementedError


class TransformTreePoseSource(PoseSource):
    """基于TransformTree的位姿源"""

    def __init__(self, transform_tree: TransformTree, map_frame: str = "map", timeout: float = 0.2):
        self.transform_tree = transform_tree
        self.map_frame = map_frame
        self.timeout = timeout

    def lookup(self, stamp: float, frame_id: str) -> PoseLookupResult:
        try:
            T = self.transform_tree.lookup_transform(
                self.map_frame, frame_id, stamp, timeout=self.timeout)
        except TransformLookupError as e:
            return PoseLookupResult(success=False, error_message=str(e))
        return PoseLookupResult(success=True, pose=CameraPose.from_matrix(T, timestamp=stamp))
