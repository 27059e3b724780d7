"""
异常与状态码定义
"""

from enum import IntEnum


class StateCode(IntEnum):
    success = 0  # 成功
    error_input_param = 2  # 输入参数错误
    # 71-90 输入数据类型错误
    error_map_format = 71  # 地图格式错误
    error_route_lookup = 72  # 路线引用了不存在的lanelet
    error_transform_lookup = 73  # 无法获取坐标变换
    error_camera_info = 74  # 相机参数非法
    # 其他错误类型 91-99
    error_unknown = 91  # 未知


class TrafficMirrorException(Exception):
    code = StateCode.error_unknown


class MapFormatError(TrafficMirrorException):
    code = StateCode.error_map_format


class RouteLookupError(TrafficMirrorException):
    code = StateCode.error_route_lookup


class TransformLookupError(TrafficMirrorException):
    code = StateCode.error_transform_lookup


class ExtrapolationError(TransformLookupError):
    """查询时间超出变换历史范围"""

    def __init__(self, message: str, future: bool = False):
        super().__init__(message)
        self.future = future  # True: 查询时间晚于最新数据，等待后可能可用


class CameraInfoError(TrafficMirrorException):
    code = StateCode.error_camera_info
