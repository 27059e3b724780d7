"""
检测器配置数据模型
"""

import math
from pathlib import Path
from typing import Dict, List, Tuple, Union

import yaml
from pydantic import BaseModel

DEFAULT_MAX_DETECTION_RANGE = 200.0  # 米
DEFAULT_TIMESTAMP_SAMPLE_LEN = 0.01  # 秒

VIBRATION_KEYS = (
    "max_vibration_pitch",
    "max_vibration_yaw",
    "max_vibration_height",
    "max_vibration_width",
    "max_vibration_depth",
)


class UncertaintyConfig(BaseModel):
    """位姿不确定性（振动）配置"""
    max_vibration_pitch: float = 0.0  # 俯仰振动（弧度）
    max_vibration_yaw: float = 0.0    # 偏航振动（弧度）
    max_vibration_height: float = 0.0  # 竖直方向振动（米）
    max_vibration_width: float = 0.0   # 水平方向振动（米）
    max_vibration_depth: float = 0.0   # 深度方向振动（米）
    max_detection_range: float = DEFAULT_MAX_DETECTION_RANGE  # 最大检测距离（米）

    def zeroed(self) -> 'UncertaintyConfig':
        """振动项全部置零，用于计算期望ROI"""
        return self.model_copy(update={key: 0.0 for key in VIBRATION_KEYS})


class DetectorConfig(BaseModel):
    """检测器参数"""
    max_vibration_pitch: float = 0.0
    max_vibration_yaw: float = 0.0
    max_vibration_height: float = 0.0
    max_vibration_width: float = 0.0
    max_vibration_depth: float = 0.0
    min_timestamp_offset: float = 0.0  # 时间同步误差下界（秒）
    max_timestamp_offset: float = 0.0  # 时间同步误差上界（秒）
    timestamp_sample_len: float = DEFAULT_TIMESTAMP_SAMPLE_LEN  # 时间采样步长（秒）
    max_detection_range: float = DEFAULT_MAX_DETECTION_RANGE
    transform_timeout: float = 0.2  # 坐标变换查询超时（秒）
    map_frame: str = "map"

    def sanitize(self) -> Tuple['DetectorConfig', List[str]]:
        """
        检查参数合法性，非法值替换为默认值

        Returns:
            (修正后的配置, 警告信息列表)
        """
        update: Dict[str, float] = {}
        warnings: List[str] = []

        for key in VIBRATION_KEYS:
            value = getattr(self, key)
            if not math.isfinite(value) or value < 0:
                warnings.append(f"Invalid param {key} = {value}, set to default value = 0")
                update[key] = 0.0

        if not math.isfinite(self.max_detection_range) or self.max_detection_range <= 0:
            warnings.append(
                f"Invalid param max_detection_range = {self.max_detection_range}, "
                f"set to default value = {DEFAULT_MAX_DETECTION_RANGE:g}")
            update["max_detection_range"] = DEFAULT_MAX_DETECTION_RANGE

        if not math.isfinite(self.timestamp_sample_len) or self.timestamp_sample_len <= 0:
            warnings.append(
                f"Invalid param timestamp_sample_len = {self.timestamp_sample_len}, "
                f"set to default value = {DEFAULT_TIMESTAMP_SAMPLE_LEN:g}")
            update["timestamp_sample_len"] = DEFAULT_TIMESTAMP_SAMPLE_LEN

        min_offset, max_offset = self.min_timestamp_offset, self.max_timestamp_offset
        if not (math.isfinite(min_offset) and math.isfinite(max_offset)) or max_offset < min_offset:
            warnings.append("max_timestamp_offset < min_timestamp_offset. Set both to 0")
            update["min_timestamp_offset"] = 0.0
            update["max_timestamp_offset"] = 0.0

        if self.transform_timeout < 0:
            warnings.append(f"Invalid param transform_timeout = {self.transform_timeout}, set to 0")
            update["transform_timeout"] = 0.0

        return self.model_copy(update=update), warnings

    def to_uncertainty(self) -> UncertaintyConfig:
        return UncertaintyConfig(
            max_vibration_pitch=self.max_vibration_pitch,
            max_vibration_yaw=self.max_vibration_yaw,
            max_vibration_height=self.max_vibration_height,
            max_vibration_width=self.max_vibration_width,
            max_vibration_depth=self.max_vibration_depth,
            max_detection_range=self.max_detection_range,
        )

    def summary(self) -> str:
        keys = VIBRATION_KEYS + (
            "min_timestamp_offset", "max_timestamp_offset",
            "timestamp_sample_len", "max_detection_range",
        )
        return ", ".join(f"{key}: {getattr(self, key):f}" for key in keys)


def load_detector_config(path: Union[str, Path]) -> DetectorConfig:
    """
    从YAML参数文件加载检测器配置

    支持扁平字典，或 {node_name: {ros__parameters: {...}}} 形式的参数文件。
    未知参数被忽略。

    Args:
        path: YAML文件路径

    Returns:
        DetectorConfig（未经sanitize）
    """
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Parameter file {path} must contain a mapping")

    for value in data.values():
        if isinstance(value, dict) and "ros__parameters" in value:
            data = value["ros__parameters"] or {}
            break

    known = set(DetectorConfig.model_fields)
    return DetectorConfig(**{k: v for k, v in data.items() if k in known})
