"""
地图与路线 -> 反射镜集合
TrafficMirrorStore 持有当前有效的反射镜集合，地图/路线更新时整体替换
"""

import threading
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import yaml
from pydantic import ValidationError

from common.exceptions import MapFormatError, RouteLookupError
from common.models.traffic_mirror import TrafficMirror
from common.models.vector_map import Lanelet, LaneletRoute, VectorMap
from common.utils.log import log

TRAFFIC_MIRROR_SUBTYPE = "traffic_mirror"
TRAFFIC_MIRROR_ROLE = "traffic_mirrors"

# {traffic_mirror_id: TrafficMirror}，按ID升序，构建后不再修改
TrafficMirrorSet = Dict[int, TrafficMirror]


def _load_yaml(path: Union[str, Path]) -> dict:
    with open(path, 'r') as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise MapFormatError(f"Cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise MapFormatError(f"{path} must contain a mapping")
    return data


def load_vector_map(path: Union[str, Path]) -> VectorMap:
    try:
        return VectorMap(**_load_yaml(path))
    except ValidationError as e:
        raise MapFormatError(f"Invalid vector map {path}: {e}") from e


def load_route(path: Union[str, Path]) -> LaneletRoute:
    try:
        return LaneletRoute(**_load_yaml(path))
    except ValidationError as e:
        raise MapFormatError(f"Invalid route {path}: {e}") from e


def extract_traffic_mirrors(vector_map: VectorMap, lanelets: Iterable[Lanelet]) -> TrafficMirrorSet:
    """
    从lanelet关联的反射镜调节元素中提取反射镜线串

    不符合格式的线串（点数不足、点不存在、首尾点重合、高度非数值）被忽略。

    Args:
        vector_map: 矢量地图
        lanelets: 待查询的lanelet

    Returns:
        反射镜集合
    """
    points = vector_map.point_index()
    linestrings = vector_map.linestring_index()
    regulatory_elements = vector_map.regulatory_element_index()

    traffic_mirrors: TrafficMirrorSet = {}
    for lanelet in lanelets:
        for re_id in lanelet.regulatory_elements:
            regulatory_element = regulatory_elements.get(re_id)
            if regulatory_element is None or regulatory_element.subtype != TRAFFIC_MIRROR_SUBTYPE:
                continue

            for ls_id in regulatory_element.parameters.get(TRAFFIC_MIRROR_ROLE, []):
                if ls_id in traffic_mirrors:
                    continue
                linestring = linestrings.get(ls_id)
                if linestring is None:
                    log.debug("traffic mirror linestring %d not found in map", ls_id)
                    continue
                if len(linestring.points) < 2 or any(pid not in points for pid in linestring.points):
                    log.debug("traffic mirror linestring %d has invalid points", ls_id)
                    continue
                front, back = points[linestring.points[0]], points[linestring.points[-1]]
                if (front.x, front.y, front.z) == (back.x, back.y, back.z):
                    log.debug("traffic mirror linestring %d has coincident end points", ls_id)
                    continue
                try:
                    height = float(linestring.attributes.get("height", 0.0))
                except (TypeError, ValueError):
                    log.debug("traffic mirror linestring %d has invalid height", ls_id)
                    continue

                subtype = linestring.attributes.get("subtype")
                traffic_mirrors[ls_id] = TrafficMirror(
                    id=ls_id,
                    points=tuple((points[pid].x, points[pid].y, points[pid].z) for pid in linestring.points),
                    height=height,
                    subtype=None if subtype is None else str(subtype),
                    attributes=dict(linestring.attributes)
                )

    return dict(sorted(traffic_mirrors.items()))


class TrafficMirrorStore:
    """
    反射镜集合持有者

    地图回调替换全图反射镜集合，路线回调替换路线上的反射镜集合。
    检测时通过snapshot()取得一致的集合引用，路线集合优先。
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._vector_map: Optional[VectorMap] = None
        self._all_traffic_mirrors: Optional[TrafficMirrorSet] = None
        self._route_traffic_mirrors: Optional[TrafficMirrorSet] = None

    def on_map(self, vector_map: VectorMap):
        all_traffic_mirrors = extract_traffic_mirrors(vector_map, vector_map.lanelets)
        with self._lock:
            self._vector_map = vector_map
            self._all_traffic_mirrors = all_traffic_mirrors
        log.info("loaded %d traffic mirrors from map", len(all_traffic_mirrors))

    def on_route(self, route: LaneletRoute) -> bool:
        """
        根据路线更新反射镜集合

        Returns:
            是否更新成功；地图未加载或路线引用不存在的lanelet时保持原集合
        """
        with self._lock:
            vector_map = self._vector_map
        if vector_map is None:
            log.warning("cannot set traffic mirror in route because don't receive map")
            return False

        route_lanelets = []
        for segment in route.segments:
            for primitive in segment.primitives:
                try:
                    route_lanelets.append(vector_map.get_lanelet(primitive.id))
                except RouteLookupError as e:
                    log.error("%s", e)
                    return False

        route_traffic_mirrors = extract_traffic_mirrors(vector_map, route_lanelets)
        with self._lock:
            self._route_traffic_mirrors = route_traffic_mirrors
        log.info("loaded %d traffic mirrors on route", len(route_traffic_mirrors))
        return True

    def snapshot(self) -> Optional[TrafficMirrorSet]:
        """当前有效的反射镜集合，路线优先；都未加载时返回None"""
        with self._lock:
            if self._route_traffic_mirrors is not None:
                return self._route_traffic_mirrors
            return self._all_traffic_mirrors
