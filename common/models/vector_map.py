"""
矢量地图与路线数据模型
仅包含反射镜检测需要的部分：点、线串、调节元素（regulatory element）与车道（lanelet）
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from common.exceptions import RouteLookupError


class MapPoint(BaseModel):
    id: int
    x: float
    y: float
    z: float = 0.0


class MapLineString(BaseModel):
    id: int
    points: List[int]  # 点ID列表
    attributes: Dict[str, Any] = Field(default_factory=dict)


class RegulatoryElement(BaseModel):
    """调节元素，parameters中按角色保存所引用的线串ID"""
    id: int
    subtype: str
    parameters: Dict[str, List[int]] = Field(default_factory=dict)


class Lanelet(BaseModel):
    id: int
    regulatory_elements: List[int] = Field(default_factory=list)


class VectorMap(BaseModel):
    """矢量地图"""
    points: List[MapPoint] = Field(default_factory=list)
    linestrings: List[MapLineString] = Field(default_factory=list)
    regulatory_elements: List[RegulatoryElement] = Field(default_factory=list)
    lanelets: List[Lanelet] = Field(default_factory=list)

    def point_index(self) -> Dict[int, MapPoint]:
        return {p.id: p for p in self.points}

    def linestring_index(self) -> Dict[int, MapLineString]:
        return {ls.id: ls for ls in self.linestrings}

    def regulatory_element_index(self) -> Dict[int, RegulatoryElement]:
        return {re.id: re for re in self.regulatory_elements}

    def get_lanelet(self, lanelet_id: int) -> Lanelet:
        """
        按ID获取lanelet

        Raises:
            RouteLookupError: 地图中不存在该lanelet
        """
        for lanelet in self.lanelets:
            if lanelet.id == lanelet_id:
                return lanelet
        raise RouteLookupError(f"Lanelet with id {lanelet_id} not found in map")


class RoutePrimitive(BaseModel):
    id: int
    primitive_type: str = "lane"


class RouteSegment(BaseModel):
    primitives: List[RoutePrimitive] = Field(default_factory=list)


class LaneletRoute(BaseModel):
    """规划路线：由lanelet组成的路段序列"""
    segments: List[RouteSegment] = Field(default_factory=list)
