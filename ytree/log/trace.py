"""跟踪输出

引擎只依赖一个 trace(message) 接口输出诊断信息，消息以 "[ERROR]" 或
"[LOG]" 开头。Tracer 把这些消息转发到标准 logging，同时保留最近的若干条
副本，供宿主在事件失败时展示。
"""

import logging
from collections import deque
from typing import Deque, List, Optional, Protocol, runtime_checkable

from .logger import get_logger


ERROR_PREFIX = "[ERROR]"
LOG_PREFIX = "[LOG]"

# 默认保留的消息条数
DEFAULT_MAX_LINES = 1000


@runtime_checkable
class TracingService(Protocol):
    """跟踪服务协议"""

    def trace(self, message: str) -> None: ...


class Tracer:
    """基于 logging 的跟踪服务

    只保留最近 max_lines 条消息，更早的消息仍然写入 logging。

    使用示例:
        tracer = Tracer()
        tracer.trace("[LOG] No updates necessary.")
        tracer.trace("[ERROR] Record cannot be a parent of itself.")

        tracer.lines   # 最近的消息
        tracer.errors  # 只包含 [ERROR] 消息
    """

    def __init__(self, logger: Optional[logging.Logger] = None, max_lines: int = DEFAULT_MAX_LINES):
        self.logger = logger or get_logger("ytree.engine")
        self._lines: Deque[str] = deque(maxlen=max_lines)

    @property
    def max_lines(self) -> int:
        return self._lines.maxlen

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    def trace(self, message: str) -> None:
        self._lines.append(message)
        if message.startswith(ERROR_PREFIX):
            self.logger.error(message)
        else:
            self.logger.info(message)

    @property
    def errors(self) -> List[str]:
        return [line for line in self._lines if line.startswith(ERROR_PREFIX)]

    def clear(self) -> None:
        self._lines.clear()
