"""
刚体变换链（Transform Tree）
维护带时间戳的坐标系树，支持任意坐标系之间、任意时刻的变换查询
"""

import bisect
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation as R
from scipy.spatial.transform import Slerp

from common.exceptions import ExtrapolationError, TransformLookupError

# 时间戳匹配容差（秒）
_TIME_EPS = 1e-9


@dataclass
class Transform:
    """刚体变换：child坐标系中的点 -> parent坐标系"""
    frame_id: str           # 坐标系ID
    parent_frame_id: str    # 父坐标系ID
    translation: np.ndarray # 平移向量 (3,)
    rotation: np.ndarray    # 旋转矩阵 (3, 3)
    timestamp: float        # 时间戳
    static: bool = False    # 是否静态变换

    def to_matrix(self) -> np.ndarray:
        """转换为4x4齐次变换矩阵"""
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    @classmethod
    def from_matrix(
        cls,
        frame_id: str,
        parent_frame_id: str,
        transform_matrix: np.ndarray,
        timestamp: float = 0.0,
        static: bool = False
    ) -> 'Transform':
        return cls(
            frame_id=frame_id,
            parent_frame_id=parent_frame_id,
            translation=np.array(transform_matrix[:3, 3], dtype=np.float64),
            rotation=np.array(transform_matrix[:3, :3], dtype=np.float64),
            timestamp=timestamp,
            static=static
        )

    @classmethod
    def from_quaternion(
        cls,
        frame_id: str,
        parent_frame_id: str,
        translation: Sequence[float],
        quaternion: Sequence[float],
        timestamp: float = 0.0,
        static: bool = False
    ) -> 'Transform':
        """
        从平移 + 四元数创建Transform

        Args:
            frame_id: 坐标系ID
            parent_frame_id: 父坐标系ID
            translation: (x, y, z)
            quaternion: (x, y, z, w)
            timestamp: 时间戳
            static: 是否静态变换
        """
        return cls(
            frame_id=frame_id,
            parent_frame_id=parent_frame_id,
            translation=np.asarray(translation, dtype=np.float64),
            rotation=R.from_quat(quaternion).as_matrix(),
            timestamp=timestamp,
            static=static
        )


class TransformTree:
    """
    带时间历史的刚体变换树

    每个子坐标系只有一个父坐标系。动态变换按时间戳保存历史，查询时在相邻两帧之间插值
    （平移线性插值，旋转球面插值）；静态变换对任意时刻有效。
    查询时间晚于最新数据时，最多等待timeout秒，等待新数据到达。
    """

    def __init__(self, root_frame: str = "map", cache_time: float = 10.0):
        """
        Args:
            root_frame: 根坐标系ID
            cache_time: 动态变换历史保留时长（秒）
        """
        self.root_frame = root_frame
        self.cache_time = cache_time
        self._parents: Dict[str, str] = {}
        self._static: Dict[str, Transform] = {}
        self._history: Dict[str, List[Transform]] = {}
        self._cond = threading.Condition()

    def add_transform(self, transform: Transform):
        frame_id = transform.frame_id
        if frame_id == self.root_frame:
            raise ValueError(f"Root frame '{frame_id}' cannot have a parent")

        with self._cond:
            parent_id = self._parents.get(frame_id)
            if parent_id is not None and parent_id != transform.parent_frame_id:
                raise ValueError(f"Parent frame mismatch for frame '{frame_id}'")
            self._parents[frame_id] = transform.parent_frame_id

            if transform.static:
                self._static[frame_id] = transform
            else:
                history = self._history.setdefault(frame_id, [])
                stamps = [tf.timestamp for tf in history]
                idx = bisect.bisect_left(stamps, transform.timestamp)
                if idx < len(history) and abs(history[idx].timestamp - transform.timestamp) < _TIME_EPS:
                    history[idx] = transform
                else:
                    history.insert(idx, transform)
                # 清理过期历史
                oldest = history[-1].timestamp - self.cache_time
                while len(history) > 1 and history[0].timestamp < oldest:
                    history.pop(0)
            self._cond.notify_all()

    def lookup_transform(
        self,
        target_frame: str,
        source_frame: str,
        timestamp: Optional[float] = None,
        timeout: float = 0.0
    ) -> np.ndarray:
        """
        获取timestamp时刻从source_frame到target_frame的变换矩阵

        Args:
            target_frame: 目标坐标系
            source_frame: 源坐标系
            timestamp: 查询时刻，None表示各坐标系的最新数据
            timeout: 数据尚未到达时的最长等待时间（秒）

        Returns:
            4x4变换矩阵

        Raises:
            TransformLookupError: 坐标系不连通或时间超出历史范围
        """
        deadline = time.monotonic() + max(timeout, 0.0)
        with self._cond:
            while True:
                try:
                    return self._lookup(target_frame, source_frame, timestamp)
                except ExtrapolationError as e:
                    remaining = deadline - time.monotonic()
                    if not e.future or remaining <= 0:
                        raise
                    self._cond.wait(remaining)

    def transform_point(
        self,
        point: np.ndarray,
        target_frame: str,
        source_frame: str,
        timestamp: Optional[float] = None
    ) -> np.ndarray:
        T = self.lookup_transform(target_frame, source_frame, timestamp)
        return (T @ np.append(point, 1.0))[:3]

    def _lookup(self, target_frame: str, source_frame: str, timestamp: Optional[float]) -> np.ndarray:
        if target_frame == source_frame:
            return np.eye(4)

        T_source_to_root = self._chain_to_root(source_frame, timestamp)
        T_target_to_root = self._chain_to_root(target_frame, timestamp)

        # T_source_to_target = inv(T_target_to_root) @ T_source_to_root
        return np.linalg.inv(T_target_to_root) @ T_source_to_root

    def _chain_to_root(self, frame_id: str, timestamp: Optional[float]) -> np.ndarray:
        path = self._find_path_to_root(frame_id)
        if path is None:
            raise TransformLookupError(
                f"Frame '{frame_id}' is not connected to '{self.root_frame}'")

        T = np.eye(4)
        for child_id in path[:-1]:
            T = self._transform_at(child_id, timestamp) @ T
        return T

    def _find_path_to_root(self, frame_id: str) -> Optional[List[str]]:
        """
        查找从frame_id到root的路径

        Returns:
            路径列表 [frame_id, parent_id, ..., root_frame]
        """
        path = [frame_id]
        current_frame = frame_id

        while current_frame != self.root_frame:
            parent_id = self._parents.get(current_frame)
            if parent_id is None:
                return None
            path.append(parent_id)
            current_frame = parent_id

            # 防止循环
            if len(path) > len(self._parents) + 1:
                return None

        return path

    def _transform_at(self, frame_id: str, timestamp: Optional[float]) -> np.ndarray:
        static = self._static.get(frame_id)
        if static is not None:
            return static.to_matrix()

        history = self._history.get(frame_id)
        if not history:
            raise TransformLookupError(f"No transform available for frame '{frame_id}'")

        if timestamp is None:
            return history[-1].to_matrix()

        first, last = history[0], history[-1]
        if timestamp < first.timestamp - _TIME_EPS:
            raise ExtrapolationError(
                f"Lookup of '{frame_id}' at {timestamp:.6f} is before the oldest data "
                f"at {first.timestamp:.6f}")
        if timestamp > last.timestamp + _TIME_EPS:
            raise ExtrapolationError(
                f"Lookup of '{frame_id}' at {timestamp:.6f} is after the latest data "
                f"at {last.timestamp:.6f}", future=True)

        stamps = [tf.timestamp for tf in history]
        idx = bisect.bisect_left(stamps, timestamp)
        if idx < len(history) and abs(stamps[idx] - timestamp) < _TIME_EPS:
            return history[idx].to_matrix()
        if idx > 0 and abs(stamps[idx - 1] - timestamp) < _TIME_EPS:
            return history[idx - 1].to_matrix()

        before, after = history[idx - 1], history[idx]
        ratio = (timestamp - before.timestamp) / (after.timestamp - before.timestamp)
        slerp = Slerp([0.0, 1.0], R.from_matrix(np.stack([before.rotation, after.rotation])))

        T = np.eye(4)
        T[:3, :3] = slerp([ratio]).as_matrix()[0]
        T[:3, 3] = (1.0 - ratio) * before.translation + ratio * after.translation
        return T
