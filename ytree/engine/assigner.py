"""先序序号与层级分配

算法：
1. 没有父节点、或父节点不在本分区记录中的记录作为根节点，其余按父节点分组
2. 根节点与每组子节点按名称排序（不区分大小写，名称相同时保持读取顺序）
3. 深度优先遍历：依次访问根节点，每访问一个节点分配下一个序号和当前层级，
   再访问它的子节点，然后才是下一个兄弟节点

序号在整个分区内连续且从 0 开始，根节点层级为 root_depth。
"""

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, List, Optional

from .cycles import build_children_lookup
from .records import Record


def sort_key(record: Record) -> str:
    return (record.name or "").casefold()


@dataclass
class Assignment:
    """一条记录的分配结果"""
    record: Record
    index: int
    depth: int
    previous_index: Optional[int] = None
    previous_depth: Optional[int] = None

    @property
    def changed(self) -> bool:
        return self.index != self.previous_index or self.depth != self.previous_depth


@dataclass
class AssignmentPlan:
    """一次分配的结果

    属性:
        assignments: 按先序排列的分配结果
        candidates: 需要写入的记录
        unreachable: 无法从任何根节点到达的记录（存储中已有环），保持原值
    """
    assignments: List[Assignment] = field(default_factory=list)
    candidates: List[Record] = field(default_factory=list)
    unreachable: List[Record] = field(default_factory=list)


class IndexAssigner:
    """先序序号与层级分配器

    使用示例:
        assigner = IndexAssigner(root_depth=0)
        plan = assigner.assign(records, subject_id=target.id, excluded_ids=excluded)
        for record in plan.candidates:
            ...
    """

    def __init__(self, root_depth: int = 0):
        self.root_depth = root_depth

    def assign(
        self,
        records: Iterable[Record],
        subject_id: Any = None,
        excluded_ids: FrozenSet[Any] = frozenset(),
    ) -> AssignmentPlan:
        """为全部记录分配 index/depth（直接修改记录）

        Args:
            records: 分区内的全部记录（创建/更新时包含主体记录）
            subject_id: 事件主体记录 ID，主体总是需要写入
            excluded_ids: 不写入的记录 ID（级联更新中其他被删除记录的子记录）
        """
        records = list(records)
        known_ids = {record.id for record in records}

        roots = [
            record for record in records
            if record.parent_id is None
            or record.parent_id == record.id
            or record.parent_id not in known_ids
        ]
        root_ids = {record.id for record in roots}
        lookup = build_children_lookup(record for record in records if record.id not in root_ids)

        roots.sort(key=sort_key)
        for children in lookup.values():
            children.sort(key=sort_key)

        plan = AssignmentPlan()
        visited = set()
        index = 0
        stack = [(root, self.root_depth) for root in reversed(roots)]

        while stack:
            record, depth = stack.pop()
            if record.id in visited:
                continue
            visited.add(record.id)

            plan.assignments.append(Assignment(
                record=record,
                index=index,
                depth=depth,
                previous_index=record.index,
                previous_depth=record.depth,
            ))
            record.index = index
            record.depth = depth
            index += 1

            for child in reversed(lookup.get(record.id, ())):
                stack.append((child, depth + 1))

        plan.unreachable = [record for record in records if record.id not in visited]
        plan.candidates = [
            assignment.record for assignment in plan.assignments
            if assignment.record.id not in excluded_ids
            and (assignment.changed or assignment.record.id == subject_id)
        ]
        return plan
