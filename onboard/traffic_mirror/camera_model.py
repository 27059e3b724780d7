"""
针孔相机模型
3D点（相机坐标系）-> 理想像素 -> 原始（带畸变）像素
"""

from typing import Tuple

import cv2
import numpy as np

from common.exceptions import CameraInfoError
from common.models.camera_info import CameraInfo


class PinholeCameraModel:
    """
    针孔相机模型

    畸变参数按原样使用，不做标定推导。
    """

    def __init__(self, camera_info: CameraInfo):
        intrinsics = camera_info.intrinsics
        if camera_info.width <= 0 or camera_info.height <= 0:
            raise CameraInfoError(
                f"Invalid image size {camera_info.width}x{camera_info.height}")
        if intrinsics.fx <= 0 or intrinsics.fy <= 0:
            raise CameraInfoError(f"Invalid focal length fx={intrinsics.fx}, fy={intrinsics.fy}")

        self.camera_info = camera_info
        self.K = intrinsics.to_matrix()
        self.D = intrinsics.to_distortion_coeffs()
        self._distorted = intrinsics.has_distortion()

    @classmethod
    def from_camera_info(cls, camera_info: CameraInfo) -> 'PinholeCameraModel':
        return cls(camera_info)

    @property
    def width(self) -> int:
        return self.camera_info.width

    @property
    def height(self) -> int:
        return self.camera_info.height

    def project_3d_to_pixel(self, point3d: np.ndarray) -> Tuple[float, float]:
        """相机坐标系3D点投影到理想（无畸变）像素"""
        x, y, z = point3d
        u = self.K[0, 0] * x / z + self.K[0, 2]
        v = self.K[1, 1] * y / z + self.K[1, 2]
        return u, v

    def unrectify_point(self, point2d: Tuple[float, float]) -> Tuple[float, float]:
        """理想像素 -> 原始像素（施加畸变）"""
        if not self._distorted:
            return point2d

        u, v = point2d
        ray = np.array([[[
            (u - self.K[0, 2]) / self.K[0, 0],
            (v - self.K[1, 2]) / self.K[1, 1],
            1.0
        ]]], dtype=np.float64)
        raw, _ = cv2.projectPoints(ray, np.zeros(3), np.zeros(3), self.K, self.D)
        return float(raw[0, 0, 0]), float(raw[0, 0, 1])

    def project_to_raw_pixel(self, point3d: np.ndarray) -> Tuple[float, float]:
        return self.unrectify_point(self.project_3d_to_pixel(point3d))

    def is_in_image_frame(self, point3d: np.ndarray) -> bool:
        """点在相机前方，且投影落在图像范围内"""
        if point3d[2] <= 0.0:
            return False

        u, v = self.project_to_raw_pixel(point3d)
        return 0 <= u < self.width and 0 <= v < self.height

    def round_in_image_frame(self, point2d: Tuple[float, float]) -> Tuple[float, float]:
        """像素坐标截断到 [0, width-1] x [0, height-1]"""
        u, v = point2d
        u = max(min(u, float(self.width - 1)), 0.0)
        v = max(min(v, float(self.height - 1)), 0.0)
        return u, v
