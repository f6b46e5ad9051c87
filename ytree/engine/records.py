"""记录与变更请求

Record 是引擎排序的单位，是存储行在内存中的投影，只在一次调用内被修改。
ChangeRequest 描述一次调用要处理的变更，调用结束即丢弃。
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional


FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_PARENT = "parent_id"
FIELD_PROFILE = "profile_id"
FIELD_INDEX = "index"
FIELD_DEPTH = "depth"

# 可写入存储的字段（id 不可变）
WRITABLE_FIELDS = (FIELD_NAME, FIELD_PARENT, FIELD_PROFILE, FIELD_INDEX, FIELD_DEPTH)


@dataclass
class Record:
    """树形记录

    属性:
        id: 记录唯一标识，创建后不可变
        name: 名称，同级节点排序的唯一依据（不区分大小写）
        parent_id: 父记录 ID，为空表示根节点
        profile_id: 分区键，为空表示"未分组"
        index: 分区内先序遍历序号（由引擎分配）
        depth: 层级（由引擎分配）
    """
    id: Any
    name: Optional[str] = None
    parent_id: Any = None
    profile_id: Any = None
    index: Optional[int] = None
    depth: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Record":
        """从字段字典构建记录，忽略未知字段"""
        values = {key: payload[key] for key in (FIELD_ID,) + WRITABLE_FIELDS if key in payload}
        return cls(**values)

    def to_payload(self, omit: Iterable[str] = ()) -> Dict[str, Any]:
        """转换为写入用的字段字典（不含 id）"""
        omitted = set(omit)
        return {key: getattr(self, key) for key in WRITABLE_FIELDS if key not in omitted}

    def copy(self) -> "Record":
        return dataclasses.replace(self)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass(frozen=True)
class RecordRef:
    """记录引用（删除事件只携带引用）"""
    id: Any


class ChangeKind(str, Enum):
    """变更类型"""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CASCADE_UPDATE = "cascade_update"
    """由同一逻辑操作中的删除引发的级联更新"""

    @property
    def is_delete_originated(self) -> bool:
        return self in (ChangeKind.DELETE, ChangeKind.CASCADE_UPDATE)


@dataclass
class ChangeRequest:
    """一次调用的工作单元

    属性:
        kind: 变更类型
        target_ref: 受影响记录的引用
        target: 创建/更新时的完整记录；删除时为空
        profile_id: 所在分区
        deleted_ref: 删除或级联更新时，被删除记录的引用
        deleted_children: 前置阶段捕获的、被删除记录的直接子记录 ID
        previous_profile_id: 更新前的分区（仅 moved_partition 为真时有意义）
        moved_partition: 更新是否把记录移到了其他分区
    """
    kind: ChangeKind
    target_ref: RecordRef
    target: Optional[Record] = None
    profile_id: Any = None
    deleted_ref: Optional[RecordRef] = None
    deleted_children: FrozenSet[Any] = field(default_factory=frozenset)
    previous_profile_id: Any = None
    moved_partition: bool = False

    @property
    def subject_id(self) -> Any:
        """事件主体记录 ID（删除事件没有主体）"""
        return self.target.id if self.target is not None else None
