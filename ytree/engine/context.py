"""触发上下文

由宿主构造并传给引擎，描述一次事件：消息类型、执行阶段、输入参数、
重入深度、因果链上的父上下文，以及一次逻辑操作内共享的变量空间。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, FrozenSet, List, Optional

from .records import Record, RecordRef


# 输入参数键
TARGET = "Target"
TARGETS = "Targets"


class MessageName(str, Enum):
    """事件消息类型"""

    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    CREATE_MULTIPLE = "CreateMultiple"
    UPDATE_MULTIPLE = "UpdateMultiple"
    DELETE_MULTIPLE = "DeleteMultiple"

    @property
    def is_create(self) -> bool:
        return self in (MessageName.CREATE, MessageName.CREATE_MULTIPLE)

    @property
    def is_update(self) -> bool:
        return self in (MessageName.UPDATE, MessageName.UPDATE_MULTIPLE)

    @property
    def is_delete(self) -> bool:
        return self in (MessageName.DELETE, MessageName.DELETE_MULTIPLE)

    @property
    def is_multiple(self) -> bool:
        return self.value.endswith("Multiple")


class Stage(IntEnum):
    """执行阶段"""

    PRE_VALIDATION = 10
    PRE_OPERATION = 20
    POST_OPERATION = 40


@dataclass
class DeletionCapture:
    """删除前置阶段捕获的状态"""
    target_ref: RecordRef
    profile_id: Any = None
    children: List[Record] = field(default_factory=list)

    @property
    def child_ids(self) -> FrozenSet[Any]:
        return frozenset(child.id for child in self.children)


class SharedVariables:
    """逻辑操作级共享变量

    生命周期与一次逻辑操作（例如一次删除的前置阶段、级联更新和后置阶段）
    一致，由宿主创建并传入该操作的每个上下文，操作结束时调用 clear()。
    不同操作之间不共享实例。

    使用示例:
        scope = SharedVariables()
        scope.capture_deletion(DeletionCapture(RecordRef(record_id), profile_id, children))

        capture = scope.deletion_capture()
        scope.clear()
    """

    DELETE_REF = "DeleteRef"
    PROFILE_REF = "ProfileRef"
    CHILDREN_OF_DELETED_TARGET = "ChildrenOfDeletedTarget"

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def clear(self) -> None:
        self._values.clear()

    def capture_deletion(self, capture: DeletionCapture) -> None:
        self._values[self.DELETE_REF] = capture.target_ref
        self._values[self.PROFILE_REF] = capture.profile_id
        self._values[self.CHILDREN_OF_DELETED_TARGET] = list(capture.children)

    def deletion_capture(self) -> Optional[DeletionCapture]:
        """读取删除前置阶段捕获的状态，未捕获时返回 None"""
        if self.DELETE_REF not in self._values:
            return None
        return DeletionCapture(
            target_ref=self._values[self.DELETE_REF],
            profile_id=self._values.get(self.PROFILE_REF),
            children=list(self._values.get(self.CHILDREN_OF_DELETED_TARGET) or []),
        )


@dataclass
class ExecutionContext:
    """一次事件调用的上下文

    属性:
        message_name: 消息类型
        stage: 执行阶段
        input_parameters: 输入参数，单条消息使用 "Target"，Multiple 消息使用 "Targets"
        depth: 重入深度，顶层调用为 1
        parent_context: 因果链上的父上下文（级联更新时为引发它的删除）
        shared_variables: 逻辑操作级共享变量
        pre_image: 更新前的记录镜像（可选，宿主未提供时引擎从存储读取）
    """
    message_name: MessageName
    stage: Stage = Stage.POST_OPERATION
    input_parameters: Dict[str, Any] = field(default_factory=dict)
    depth: int = 1
    parent_context: Optional["ExecutionContext"] = None
    shared_variables: SharedVariables = field(default_factory=SharedVariables)
    pre_image: Optional[Record] = None

    @property
    def has_target(self) -> bool:
        return TARGET in self.input_parameters or TARGETS in self.input_parameters

    @property
    def triggered_by_delete(self) -> bool:
        """是否为删除引发的级联更新"""
        return (
            self.parent_context is not None
            and self.parent_context.message_name.is_delete
            and self.message_name.is_update
        )
