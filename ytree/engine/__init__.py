"""递归索引引擎

为按 profile 分区的父子记录森林维护先序 index 与 depth。

主要组件:
- RecursiveIndexingEngine: 引擎入口
- ExecutionContext / SharedVariables: 宿主传入的触发上下文
- Record / ChangeRequest: 数据模型
- RecordRepository: 引擎使用的存储协议

使用示例:
    from ytree.engine import (
        RecursiveIndexingEngine, ExecutionContext, MessageName, Stage, TARGET,
    )

    engine = RecursiveIndexingEngine(repository)
    engine.execute(ExecutionContext(
        message_name=MessageName.UPDATE,
        input_parameters={TARGET: {"id": "b1", "parent_id": "a1"}},
    ))
"""

from .records import (
    FIELD_ID,
    FIELD_NAME,
    FIELD_PARENT,
    FIELD_PROFILE,
    FIELD_INDEX,
    FIELD_DEPTH,
    Record,
    RecordRef,
    ChangeKind,
    ChangeRequest,
)
from .context import (
    TARGET,
    TARGETS,
    MessageName,
    Stage,
    DeletionCapture,
    SharedVariables,
    ExecutionContext,
)
from .repository import (
    ANY_PARTITION,
    Fault,
    WriteItem,
    WriteResult,
    RecordRepository,
    RecordStore,
)
from .adapter import TriggerEventAdapter
from .loader import ForestLoader
from .cycles import CycleDetector, build_children_lookup, is_descendant_of
from .cascade import CascadeResolver
from .assigner import Assignment, AssignmentPlan, IndexAssigner
from .writer import BatchWriter
from .engine import IndexingResult, RecursiveIndexingEngine

__all__ = [
    # 数据模型
    "FIELD_ID",
    "FIELD_NAME",
    "FIELD_PARENT",
    "FIELD_PROFILE",
    "FIELD_INDEX",
    "FIELD_DEPTH",
    "Record",
    "RecordRef",
    "ChangeKind",
    "ChangeRequest",

    # 触发上下文
    "TARGET",
    "TARGETS",
    "MessageName",
    "Stage",
    "DeletionCapture",
    "SharedVariables",
    "ExecutionContext",

    # 存储协议
    "ANY_PARTITION",
    "Fault",
    "WriteItem",
    "WriteResult",
    "RecordRepository",
    "RecordStore",

    # 组件
    "TriggerEventAdapter",
    "ForestLoader",
    "CycleDetector",
    "build_children_lookup",
    "is_descendant_of",
    "CascadeResolver",
    "Assignment",
    "AssignmentPlan",
    "IndexAssigner",
    "BatchWriter",
    "IndexingResult",
    "RecursiveIndexingEngine",
]
