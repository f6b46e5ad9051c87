"""日志模块

提供日志配置与引擎跟踪输出：
- setup_logger / setup_logger_from_settings: 日志器配置
- get_logger: 按模块名获取日志器
- Tracer: 引擎使用的 trace(message) 跟踪服务

使用示例:
    from ytree.log import setup_logger, get_logger, Tracer

    setup_logger("ytree", level="DEBUG", log_file="logs/ytree.log")
    tracer = Tracer(get_logger("engine"))
"""

from .logger import (
    setup_logger,
    setup_logger_from_settings,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    logger,
    get_logger,
)

from .trace import (
    Tracer,
    TracingService,
    ERROR_PREFIX,
    LOG_PREFIX,
)

__all__ = [
    "setup_logger",
    "setup_logger_from_settings",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "logger",
    "get_logger",
    "Tracer",
    "TracingService",
    "ERROR_PREFIX",
    "LOG_PREFIX",
]
