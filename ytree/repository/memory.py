"""内存存储

字典实现的记录存储，同时提供引擎协议（RecordRepository）和宿主协议
（RecordStore）。支持按记录注入写入失败、注入读取异常，用于测试和演示。

使用示例:
    store = InMemoryRecordRepository([
        Record(id="a", name="Alpha", profile_id="p1"),
        Record(id="b", name="Beta", parent_id="a", profile_id="p1"),
    ])

    store.inject_fault("b", "锁冲突", code=-2147220891)
    results = store.batch_write([WriteItem(store.get("a")), WriteItem(store.get("b"))])
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ytree.engine.records import Record, WRITABLE_FIELDS
from ytree.engine.repository import ANY_PARTITION, Fault, WriteItem, WriteResult
from ytree.log import get_logger

logger = get_logger("ytree.repository.memory")


@dataclass(frozen=True)
class _InjectedFault:
    message: str
    inner_message: Optional[str] = None
    code: Any = None


class InMemoryRecordRepository:
    """内存记录存储

    读取返回记录副本，调用方修改副本不会影响存储。
    """

    def __init__(self, records: Iterable[Record] = ()):
        self._rows: Dict[Any, Record] = {}
        self._faults: Dict[Any, _InjectedFault] = {}
        self._retrieve_error: Optional[Exception] = None
        self.batches: List[List[WriteItem]] = []
        for record in records:
            self.insert(record)

    # ==================== 测试辅助 ====================

    def inject_fault(self, record_id: Any, message: str, inner_message: str = None, code: Any = None):
        """写入 record_id 时返回失败结果"""
        self._faults[record_id] = _InjectedFault(message, inner_message, code)

    def fail_retrieval(self, error: Optional[Exception]):
        """读取时抛出 error，传 None 取消"""
        self._retrieve_error = error

    def get(self, record_id: Any) -> Optional[Record]:
        row = self._rows.get(record_id)
        return row.copy() if row is not None else None

    def all(self) -> List[Record]:
        return self._sorted(row.copy() for row in self._rows.values())

    def __len__(self) -> int:
        return len(self._rows)

    # ==================== 引擎协议 ====================

    def retrieve(self, profile_id: Any, exclude_ids: Iterable[Any] = ()) -> List[Record]:
        self._raise_retrieve_error()
        excluded = set(exclude_ids)
        return self._sorted(
            row.copy() for row in self._rows.values()
            if row.id not in excluded
            and (profile_id is ANY_PARTITION or row.profile_id == profile_id)
        )

    def retrieve_one(self, record_id: Any, fields: Optional[Sequence[str]] = None) -> Optional[Record]:
        self._raise_retrieve_error()
        return self.get(record_id)

    def retrieve_children(self, parent_id: Any) -> List[Record]:
        self._raise_retrieve_error()
        return self._sorted(
            row.copy() for row in self._rows.values() if row.parent_id == parent_id
        )

    def batch_write(self, items: Sequence[WriteItem]) -> List[WriteResult]:
        self.batches.append(list(items))
        results = []
        for position, item in enumerate(items):
            injected = self._faults.get(item.record.id)
            if injected is not None:
                results.append(WriteResult(position, Fault(
                    index=position,
                    message=injected.message,
                    inner_message=injected.inner_message,
                    code=injected.code,
                )))
                continue
            if item.record.id not in self._rows:
                results.append(WriteResult(position, Fault(
                    index=position,
                    message=f"记录不存在: {item.record.id}",
                    code="NOT_FOUND",
                )))
                continue
            self.apply(item.record.id, item.payload())
            results.append(WriteResult(position))
        return results

    # ==================== 宿主协议 ====================

    def insert(self, record: Record) -> Record:
        if record.id in self._rows:
            raise KeyError(f"记录已存在: {record.id}")
        self._rows[record.id] = record.copy()
        return record.copy()

    def apply(self, record_id: Any, payload: dict) -> Record:
        row = self._rows[record_id]
        for key, value in payload.items():
            if key in WRITABLE_FIELDS:
                setattr(row, key, value)
        return row.copy()

    def clear_parent(self, record_id: Any) -> None:
        self._rows[record_id].parent_id = None

    def remove(self, record_id: Any) -> None:
        del self._rows[record_id]

    @contextmanager
    def transaction(self):
        """快照事务：块内抛出异常时恢复到进入时的状态"""
        snapshot = {key: row.copy() for key, row in self._rows.items()}
        try:
            yield self
        except Exception:
            self._rows = snapshot
            logger.debug("内存存储已回滚")
            raise

    # ==================== 内部方法 ====================

    def _raise_retrieve_error(self):
        if self._retrieve_error is not None:
            raise self._retrieve_error

    @staticmethod
    def _sorted(rows: Iterable[Record]) -> List[Record]:
        # 未分配序号的记录排在最后
        return sorted(
            rows,
            key=lambda row: (row.index is None, row.index if row.index is not None else 0, str(row.id)),
        )
