"""
公共工具模块
"""

from .transform_tree import TransformTree, Transform
from .log import TimeLog, runtime, log_throttle

__all__ = [
    "TransformTree",
    "Transform",
    "TimeLog",
    "runtime",
    "log_throttle"
]
