"""级联更新处理

删除一条记录时，存储的参照完整性规则会清空其每个直接子记录的父引用，
并为每个子记录单独触发一次更新事件（级联更新）。本模块在这些事件中
把被删除节点从树中折叠掉：它的子记录提升到它原来的位置。

宿主约定：被删除记录的每个直接子记录都会收到自己的级联更新事件。
当前事件只写入自己的主体记录，其余直接子记录留给各自的事件写入，
避免两个并发的级联事件写同一行的父引用而产生锁冲突。
"""

from typing import Any, FrozenSet, Iterable, List

from ytree.log import TracingService

from .errors import repository_errors
from .records import FIELD_PARENT, ChangeRequest, Record
from .repository import RecordRepository


class CascadeResolver:
    """级联更新解析器

    使用示例:
        resolver = CascadeResolver(repository, tracer)
        target.parent_id = resolver.resolve_new_parent(request)
        ...
        resolver.fold(records, request.deleted_ref.id, target.parent_id)
        excluded = resolver.excluded_ids(request)
    """

    def __init__(self, repository: RecordRepository, tracer: TracingService):
        self.repository = repository
        self.tracer = tracer

    def resolve_new_parent(self, request: ChangeRequest) -> Any:
        """被删除记录当前的父节点（重新从存储读取，它可能已被改过）"""
        with repository_errors(self.tracer, "读取被删除记录的父节点"):
            deleted = self.repository.retrieve_one(request.deleted_ref.id, [FIELD_PARENT])
        return deleted.parent_id if deleted is not None else None

    @staticmethod
    def fold(records: Iterable[Record], deleted_id: Any, new_parent_id: Any) -> List[Record]:
        """把仍指向被删除记录的记录改挂到 new_parent_id（仅内存），返回被改动的记录"""
        folded = []
        for record in records:
            if record.parent_id is not None and record.parent_id == deleted_id:
                record.parent_id = new_parent_id
                folded.append(record)
        return folded

    @staticmethod
    def excluded_ids(request: ChangeRequest) -> FrozenSet[Any]:
        """本次不写入的记录：被删除记录的其他直接子记录"""
        return frozenset(request.deleted_children) - {request.subject_id}
