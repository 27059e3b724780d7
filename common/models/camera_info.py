"""
相机参数数据模型
"""

import numpy as np
from pydantic import BaseModel, Field


class Header(BaseModel):
    """消息头：采集时刻与坐标系"""
    stamp: float = 0.0  # 时间戳（秒）
    frame_id: str = ""  # 坐标系ID


class CameraIntrinsics(BaseModel):
    """相机内参（plumb bob畸变模型）"""
    fx: float  # 焦距x
    fy: float  # 焦距y
    cx: float  # 主点x
    cy: float  # 主点y
    k1: float = 0.0  # 径向畸变系数k1
    k2: float = 0.0  # 径向畸变系数k2
    k3: float = 0.0  # 径向畸变系数k3
    p1: float = 0.0  # 切向畸变系数p1
    p2: float = 0.0  # 切向畸变系数p2

    def to_matrix(self) -> np.ndarray:
        """转换为内参矩阵"""
        return np.array([
            [self.fx, 0, self.cx],
            [0, self.fy, self.cy],
            [0, 0, 1]
        ], dtype=np.float64)

    def to_distortion_coeffs(self) -> np.ndarray:
        """转换为OpenCV顺序的畸变系数数组"""
        return np.array([self.k1, self.k2, self.p1, self.p2, self.k3], dtype=np.float64)

    def has_distortion(self) -> bool:
        return bool(np.any(self.to_distortion_coeffs() != 0.0))


class CameraInfo(BaseModel):
    """单帧相机信息：标定参数 + 图像尺寸 + 消息头"""
    header: Header = Field(default_factory=Header)
    width: int
    height: int
    intrinsics: CameraIntrinsics
