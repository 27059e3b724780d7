"""
交通反射镜（Traffic Mirror）数据模型
地图中的反射镜以3D线段表示，检测结果以图像ROI表示
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from common.models.camera_info import Header

Point3D = Tuple[float, float, float]


class TrafficMirror(BaseModel):
    """
    地图中的交通反射镜

    points的第一个点为左上参考点（高度需加上height），最后一个点为右下参考点。
    创建后不可修改，地图/路线更新时整体替换。
    """
    model_config = ConfigDict(frozen=True)

    id: int
    points: Tuple[Point3D, ...]  # 地图坐标系下的线段点
    height: float = 0.0  # 反射镜高度（米）
    subtype: Optional[str] = None  # 子类型，"solid"不作为检测目标
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @property
    def front(self) -> Point3D:
        return self.points[0]

    @property
    def back(self) -> Point3D:
        return self.points[-1]


class RegionOfInterest(BaseModel):
    """图像中的轴对齐矩形（像素）"""
    x_offset: int = 0
    y_offset: int = 0
    width: int = 0
    height: int = 0

    def contains(self, other: 'RegionOfInterest') -> bool:
        return (
            self.x_offset <= other.x_offset and
            self.y_offset <= other.y_offset and
            self.x_offset + self.width >= other.x_offset + other.width and
            self.y_offset + self.height >= other.y_offset + other.height
        )


class TrafficMirrorRoi(BaseModel):
    """单个反射镜的ROI"""
    traffic_mirror_id: int
    roi: RegionOfInterest


class TrafficMirrorRoiArray(BaseModel):
    """一帧图像的ROI列表"""
    header: Header = Field(default_factory=Header)
    rois: List[TrafficMirrorRoi] = Field(default_factory=list)


class BeamMarker(BaseModel):
    """调试可视化：相机原点到反射镜中心的连线（相机坐标系）"""
    header: Header = Field(default_factory=Header)
    id: int
    ns: str = "beam"
    points: List[Point3D] = Field(default_factory=list)
    scale: float = 0.05  # 线宽
    color: Tuple[float, float, float, float] = (0.0, 1.0, 0.0, 0.999)  # (r, g, b, a)
    lifetime: float = 0.2  # 存活时间（秒）


class DetectionOutput(BaseModel):
    """一次检测的全部输出"""
    rough_rois: TrafficMirrorRoiArray  # 考虑振动与时间同步误差的粗略ROI
    expect_rois: TrafficMirrorRoiArray  # 标称位姿下无振动的期望ROI
    markers: List[BeamMarker] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """转换为可序列化的字典"""
        return self.model_dump()
