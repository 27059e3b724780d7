import functools
import logging
import time
from typing import Dict

from prettytable import PrettyTable

logging.basicConfig(format=
                    '[%(asctime)s]  %(pathname)-15s[%(lineno)-4d] %(levelname)-7s:%(message)s',
                    level=logging.INFO)

log = logging.getLogger('traffic_mirror')
log.setLevel(logging.INFO)


class TimeLog:
    _instance = None
    display = True
    module_time = {}  # {name:[ct,time,max]}

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def add(self, name, t):
        if not self.display:
            return
        m = self.module_time.get(name)
        if not m:
            self.module_time[name] = [1, t, t]
        else:
            self.module_time[name][0] += 1
            self.module_time[name][1] += t
            self.module_time[name][2] = max(self.module_time[name][2], t)

    def reset(self):
        self.module_time.clear()

    def table(self) -> PrettyTable:
        tb = PrettyTable()
        tb.field_names = ['No.', 'Function', 'Call times', 'Duration(s)', 'Average Duration(ms)',
                          'Max Duration(ms)']
        sorted_dict = dict(sorted(self.module_time.items(), key=lambda d: d[1][1], reverse=True))
        for idx, (k, v) in enumerate(sorted_dict.items(), start=1):
            tb.add_row(
                [idx, f'{k:22}', f'{v[0]:8}', f'{(v[1] / 1000):9.3f}', f'{v[1] / v[0]:14.3f}', f'{v[2]:14.3f}'])
        return tb


def runtime(func=None, **kwargs):
    tml = TimeLog()
    if func is None:
        return functools.partial(runtime, name=kwargs.get('name'))
    func_name = kwargs.get('name') or func.__name__

    @functools.wraps(func)
    def _wrap(*args, **kwgs):
        s = time.time()
        r = func(*args, **kwgs)
        d = (time.time() - s) * 1000
        tml.add(func_name, d)
        return r

    return _wrap


_last_emit: Dict[str, float] = {}


def log_throttle(level: int, key: str, period: float, msg: str, *args) -> bool:
    """
    限频日志，同一key在period秒内只输出一次

    Args:
        level: 日志级别
        key: 限频键
        period: 最小输出间隔（秒）
        msg: 日志格式串

    Returns:
        本次是否实际输出
    """
    now = time.monotonic()
    last = _last_emit.get(key)
    if last is not None and now - last < period:
        return False
    _last_emit[key] = now
    log.log(level, msg, *args)
    return True
