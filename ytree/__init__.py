"""
YTree - 树形记录先序索引引擎

为按 profile 分区的父子记录森林维护先序 index 与 depth，
包括引擎、存储实现、参考宿主、配置与日志等基础功能
"""

from .version import __version__, __author__, __description__

# 导出配置
from .config import (
    AppSettings,
    TreeIndexSettings,
    DatabaseSettings,
    LoggingSettings,
    ConfigLoader,
    load_yaml_config,
)

# 导出日志
from .log import (
    setup_logger,
    setup_logger_from_settings,
    get_logger,
    Tracer,
    TracingService,
)

# 导出异常
from .exceptions import (
    Err,
    ErrorCode,
    TreeIndexException,
    UnsupportedBatchSizeException,
    MissingTargetException,
    SelfParentException,
    CircularReferenceException,
    MissingRequiredFieldException,
    RepositoryException,
    PartialWriteFailureException,
)

# 导出引擎
from .engine import (
    TARGET,
    TARGETS,
    Record,
    RecordRef,
    MessageName,
    Stage,
    SharedVariables,
    ExecutionContext,
    RecordRepository,
    RecordStore,
    RecursiveIndexingEngine,
    IndexingResult,
)

# 导出存储与宿主
from .repository import InMemoryRecordRepository
from .host import TriggerPipeline

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    # 配置
    "AppSettings",
    "TreeIndexSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_yaml_config",
    # 日志
    "setup_logger",
    "setup_logger_from_settings",
    "get_logger",
    "Tracer",
    "TracingService",
    # 异常
    "Err",
    "ErrorCode",
    "TreeIndexException",
    "UnsupportedBatchSizeException",
    "MissingTargetException",
    "SelfParentException",
    "CircularReferenceException",
    "MissingRequiredFieldException",
    "RepositoryException",
    "PartialWriteFailureException",
    # 引擎
    "TARGET",
    "TARGETS",
    "Record",
    "RecordRef",
    "MessageName",
    "Stage",
    "SharedVariables",
    "ExecutionContext",
    "RecordRepository",
    "RecordStore",
    "RecursiveIndexingEngine",
    "IndexingResult",
    # 存储与宿主
    "InMemoryRecordRepository",
    "TriggerPipeline",
]
