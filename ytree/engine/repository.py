"""存储接口

引擎只通过这里定义的协议访问存储，具体实现见 ytree.repository（内存）
与 ytree.orm（SQLAlchemy）。
"""

from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, List, Optional, Protocol, Sequence, runtime_checkable

from .records import Record


class _AnyPartition:
    """分区通配标记：未启用 profile 分区时，所有记录属于同一分区"""

    def __repr__(self) -> str:
        return "ANY_PARTITION"


ANY_PARTITION = _AnyPartition()


@dataclass(frozen=True)
class Fault:
    """批量写入中单项的失败描述

    属性:
        index: 该项在批量请求中的序号
        message: 错误描述
        inner_message: 内层错误描述（可选）
        code: 错误代码（可选）
    """
    index: int
    message: str
    inner_message: Optional[str] = None
    code: Any = None


@dataclass(frozen=True)
class WriteResult:
    """批量写入中单项的结果"""
    index: int
    fault: Optional[Fault] = None

    @property
    def success(self) -> bool:
        return self.fault is None


@dataclass
class WriteItem:
    """批量写入项：记录及需要从写入内容中剔除的字段"""
    record: Record
    omit: FrozenSet[str] = field(default_factory=frozenset)

    def payload(self):
        return self.record.to_payload(self.omit)


@runtime_checkable
class RecordRepository(Protocol):
    """引擎使用的存储协议

    - retrieve: 读取分区内除 exclude_ids 外的全部记录，按当前 index、id 排序
    - retrieve_one: 读取单条记录，不存在时返回 None；fields 为读取字段提示
    - retrieve_children: 读取直接子记录
    - batch_write: 批量写入，单项失败不中断其余项，每项返回一个结果
    """

    def retrieve(self, profile_id: Any, exclude_ids: Iterable[Any] = ()) -> List[Record]: ...

    def retrieve_one(self, record_id: Any, fields: Optional[Sequence[str]] = None) -> Optional[Record]: ...

    def retrieve_children(self, parent_id: Any) -> List[Record]: ...

    def batch_write(self, items: Sequence[WriteItem]) -> List[WriteResult]: ...


@runtime_checkable
class RecordStore(RecordRepository, Protocol):
    """宿主使用的存储协议（在引擎协议之外提供行级维护操作）"""

    def insert(self, record: Record) -> Record: ...

    def apply(self, record_id: Any, payload: dict) -> Record: ...

    def clear_parent(self, record_id: Any) -> None: ...

    def remove(self, record_id: Any) -> None: ...

    def transaction(self) -> AbstractContextManager: ...
