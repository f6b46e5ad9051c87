"""参考宿主

模拟触发平台：对存储执行创建/更新/删除，并按平台的方式向引擎派发事件。

- 创建/更新：写入存储后派发 POST_OPERATION 事件，更新事件携带更新前镜像
- 删除：
    1. PRE_VALIDATION 事件，引擎捕获被删除记录、分区和直接子记录
    2. 参照完整性级联：逐个清空直接子记录的父引用，并为每个子记录派发一次
       级联 Update 事件（父上下文为该删除）
    3. 删除记录行，派发 POST_OPERATION 删除事件
- 引擎自身的批量写入对每条成功写入的记录再派发一次 Update 事件，
  重入深度为当前深度 + 1

每次操作在存储事务中执行，引擎抛出异常时整个操作回滚。引擎本身不回滚
批量写入中已成功的记录；本宿主的事务会连同它们一起撤销，
PartialWriteFailureException 之后存储回到操作前的状态。
同一次删除的所有阶段共享一个 SharedVariables，操作结束后清空。
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

from ytree.config import TreeIndexSettings
from ytree.engine import (
    FIELD_ID,
    FIELD_PARENT,
    TARGET,
    TARGETS,
    ExecutionContext,
    MessageName,
    Record,
    RecordRef,
    RecordStore,
    RecursiveIndexingEngine,
    SharedVariables,
    Stage,
    WriteItem,
    WriteResult,
)
from ytree.exceptions import Err
from ytree.log import Tracer, TracingService, get_logger
from ytree.utils import generate_id

logger = get_logger("ytree.host")


class _ReentrantRepository:
    """引擎看到的存储

    读取直接转发；批量写入后为每条成功写入的记录派发嵌套 Update 事件。
    """

    def __init__(self, pipeline: "TriggerPipeline"):
        self._pipeline = pipeline

    def retrieve(self, profile_id, exclude_ids=()):
        return self._pipeline.store.retrieve(profile_id, exclude_ids)

    def retrieve_one(self, record_id, fields=None):
        return self._pipeline.store.retrieve_one(record_id, fields)

    def retrieve_children(self, parent_id):
        return self._pipeline.store.retrieve_children(parent_id)

    def batch_write(self, items: Sequence[WriteItem]) -> List[WriteResult]:
        pipeline = self._pipeline
        results = pipeline.store.batch_write(items)
        for item, result in zip(items, results):
            if not result.success:
                continue
            pipeline.writes.append((item.record.id, item.payload()))
            pipeline.dispatch(ExecutionContext(
                message_name=MessageName.UPDATE,
                stage=Stage.POST_OPERATION,
                input_parameters={TARGET: {FIELD_ID: item.record.id, **item.payload()}},
                depth=pipeline.current_depth + 1,
            ))
        return results


class TriggerPipeline:
    """参考宿主

    宿主约定：
    - 被删除记录的每个直接子记录都会收到自己的级联 Update 事件
    - 更新事件携带更新前镜像
    - 操作是事务性的：批量写入部分失败时，已成功写入的记录也随操作一起回滚

    使用示例:
        pipeline = TriggerPipeline(InMemoryRecordRepository())

        root = pipeline.create({"name": "Root", "profile_id": "p1"})
        child = pipeline.create({"name": "Child", "parent_id": root.id, "profile_id": "p1"})
        pipeline.update({"id": child.id, "name": "Renamed"})
        pipeline.delete(root.id)

    属性:
        invocations: 已派发的事件上下文（按派发顺序）
        writes: 引擎写入的 (记录ID, 写入内容) 列表
    """

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[TreeIndexSettings] = None,
        tracer: Optional[TracingService] = None,
    ):
        self.store = store
        self.settings = settings or TreeIndexSettings()
        self.tracer = tracer or Tracer()
        self.engine = RecursiveIndexingEngine(_ReentrantRepository(self), self.settings, self.tracer)
        self.invocations: List[ExecutionContext] = []
        self.writes: List[tuple] = []
        self._depth_stack: List[int] = []

    @property
    def current_depth(self) -> int:
        return self._depth_stack[-1] if self._depth_stack else 0

    def dispatch(self, context: ExecutionContext):
        """向引擎派发一个事件"""
        self.invocations.append(context)
        self._depth_stack.append(context.depth)
        try:
            return self.engine.execute(context)
        finally:
            self._depth_stack.pop()

    def write_count(self, record_id: Any) -> int:
        """引擎写入某条记录的次数"""
        return sum(1 for written_id, _ in self.writes if written_id == record_id)

    @contextmanager
    def _operation(self):
        with self.store.transaction():
            yield

    def _event(self, message: MessageName, params: Dict[str, Any], **kwargs) -> ExecutionContext:
        return ExecutionContext(
            message_name=message,
            input_parameters=params,
            depth=self.current_depth + 1,
            **kwargs,
        )

    # ==================== 创建 ====================

    def create(self, payload: Dict[str, Any]) -> Record:
        return self.create_multiple([payload], message=MessageName.CREATE)[0]

    def create_multiple(
        self,
        payloads: Sequence[Dict[str, Any]],
        message: MessageName = MessageName.CREATE_MULTIPLE,
    ) -> List[Record]:
        payloads = [dict(payload) for payload in payloads]
        for payload in payloads:
            payload.setdefault(FIELD_ID, generate_id())

        with self._operation():
            for payload in payloads:
                self.store.insert(Record.from_payload(payload))
            self.dispatch(self._event(message, self._targets(message, payloads)))

        return [self.store.retrieve_one(payload[FIELD_ID]) for payload in payloads]

    # ==================== 更新 ====================

    def update(self, payload: Dict[str, Any]) -> Record:
        return self.update_multiple([payload], message=MessageName.UPDATE)[0]

    def update_multiple(
        self,
        payloads: Sequence[Dict[str, Any]],
        message: MessageName = MessageName.UPDATE_MULTIPLE,
    ) -> List[Record]:
        payloads = [dict(payload) for payload in payloads]
        pre_images = []
        for payload in payloads:
            pre_image = self.store.retrieve_one(payload.get(FIELD_ID))
            if pre_image is None:
                raise Err.missing_target(f"待更新记录不存在: {payload.get(FIELD_ID)}")
            pre_images.append(pre_image)

        with self._operation():
            for payload in payloads:
                changes = {key: value for key, value in payload.items() if key != FIELD_ID}
                self.store.apply(payload[FIELD_ID], changes)
            self.dispatch(self._event(
                message,
                self._targets(message, payloads),
                pre_image=pre_images[0] if len(pre_images) == 1 else None,
            ))

        return [self.store.retrieve_one(payload[FIELD_ID]) for payload in payloads]

    # ==================== 删除 ====================

    def delete(self, record_id: Any) -> None:
        self.delete_multiple([record_id], message=MessageName.DELETE)

    def delete_multiple(
        self,
        record_ids: Sequence[Any],
        message: MessageName = MessageName.DELETE_MULTIPLE,
    ) -> None:
        refs = [RecordRef(record_id) for record_id in record_ids]
        params = self._targets(message, refs)
        scope = SharedVariables()

        try:
            with self._operation():
                operation = self._event(message, params, stage=Stage.PRE_VALIDATION, shared_variables=scope)
                self.dispatch(operation)

                for ref in refs:
                    self._cascade_children(ref.id, operation, scope)

                for ref in refs:
                    self.store.remove(ref.id)

                self.dispatch(self._event(
                    message, params, stage=Stage.POST_OPERATION, shared_variables=scope,
                ))
        finally:
            scope.clear()

    def _cascade_children(self, record_id: Any, operation: ExecutionContext, scope: SharedVariables) -> None:
        """参照完整性级联：清空子记录的父引用，每个子记录一次 Update 事件"""
        for child in self.store.retrieve_children(record_id):
            self.store.clear_parent(child.id)
            logger.debug(f"级联更新: {child.id} 的父引用已清空（原父节点 {record_id}）")
            self.dispatch(self._event(
                MessageName.UPDATE,
                {TARGET: {FIELD_ID: child.id, FIELD_PARENT: None}},
                parent_context=operation,
                shared_variables=scope,
                pre_image=child,
            ))

    @staticmethod
    def _targets(message: MessageName, targets: Sequence[Any]) -> Dict[str, Any]:
        if message.is_multiple:
            return {TARGETS: list(targets)}
        return {TARGET: targets[0]}
