"""存储实现

- RecordRepository / RecordStore: 存储协议（定义在 ytree.engine.repository）
- InMemoryRecordRepository: 内存存储，支持失败注入
- SQLAlchemy 存储见 ytree.orm.SqlAlchemyRecordRepository
"""

from ytree.engine.repository import (
    ANY_PARTITION,
    Fault,
    WriteItem,
    WriteResult,
    RecordRepository,
    RecordStore,
)

from .memory import InMemoryRecordRepository

__all__ = [
    "ANY_PARTITION",
    "Fault",
    "WriteItem",
    "WriteResult",
    "RecordRepository",
    "RecordStore",
    "InMemoryRecordRepository",
]
