"""循环引用检测

在写入任何数据之前拒绝两类非法的父子关系：
- 父节点指向自身
- 父节点是自身的子孙节点（A -> B -> C 时把 A 的父节点设为 C）
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List

from ytree.exceptions import Err
from ytree.log import TracingService

from .errors import fail
from .records import Record


def build_children_lookup(records: Iterable[Record]) -> Dict[Any, List[Record]]:
    """构建 父节点ID -> 子记录列表 的映射"""
    lookup: Dict[Any, List[Record]] = defaultdict(list)
    for record in records:
        if not record.is_root:
            lookup[record.parent_id].append(record)
    return lookup


def is_descendant_of(candidate_id: Any, root_id: Any, lookup: Dict[Any, List[Record]]) -> bool:
    """candidate_id 是否出现在 root_id 的子孙中

    使用显式栈遍历，已访问节点不再展开，存储中已有的环不会导致死循环。
    """
    stack = [root_id]
    visited = {root_id}
    while stack:
        node_id = stack.pop()
        for child in lookup.get(node_id, ()):
            if child.id == candidate_id:
                return True
            if child.id not in visited:
                visited.add(child.id)
                stack.append(child.id)
    return False


class CycleDetector:
    """循环引用检测器

    使用示例:
        detector = CycleDetector(tracer)
        detector.ensure_acyclic(target, records)  # records 包含 target 本身
    """

    def __init__(self, tracer: TracingService):
        self.tracer = tracer

    def ensure_not_self_parent(self, record: Record) -> None:
        if record.parent_id is not None and record.parent_id == record.id:
            raise fail(self.tracer, Err.self_parent(record_id=record.id))

    def would_cause_circular_reference(self, record: Record, records: Iterable[Record]) -> bool:
        """提交 record.parent_id 后 record 是否会成为自己的祖先"""
        if record.is_root:
            return False
        return is_descendant_of(record.parent_id, record.id, build_children_lookup(records))

    def ensure_acyclic(self, record: Record, records: Iterable[Record]) -> None:
        """
        Raises:
            SelfParentException: 父节点指向自身
            CircularReferenceException: 父节点是自身的子孙节点
        """
        self.ensure_not_self_parent(record)
        if self.would_cause_circular_reference(record, records):
            raise fail(
                self.tracer,
                Err.circular(record_id=record.id, parent_id=record.parent_id),
            )
