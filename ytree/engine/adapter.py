"""触发事件适配器

把宿主传入的事件规整为 ChangeRequest：
1. 校验事件只包含一条记录
2. 删除的前置阶段：捕获被删除记录的引用、分区和直接子记录
3. 创建/更新：校验必填字段，更新时用更新前镜像补齐未提供的字段
4. 识别由删除引发的级联更新
"""

from typing import Any, Mapping, Optional

from ytree.config import TreeIndexSettings
from ytree.exceptions import Err
from ytree.log import TracingService

from .context import (
    TARGET,
    TARGETS,
    DeletionCapture,
    ExecutionContext,
    Stage,
)
from .errors import fail, repository_errors
from .records import (
    FIELD_ID,
    FIELD_NAME,
    FIELD_PARENT,
    FIELD_PROFILE,
    ChangeKind,
    ChangeRequest,
    Record,
    RecordRef,
)
from .repository import RecordRepository


# 更新时从镜像继承的字段（空值也视为未提供）
_INHERITED_WHEN_BLANK = (FIELD_NAME, FIELD_PROFILE)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TriggerEventAdapter:
    """触发事件适配器

    使用示例:
        adapter = TriggerEventAdapter(repository, settings, tracer)

        if context.stage == Stage.PRE_VALIDATION:
            adapter.capture_deletion(context)
        else:
            request = adapter.to_change_request(context)
    """

    def __init__(
        self,
        repository: RecordRepository,
        settings: TreeIndexSettings,
        tracer: TracingService,
    ):
        self.repository = repository
        self.settings = settings
        self.tracer = tracer

    # ==================== 目标解析 ====================

    def ensure_target_present(self, context: ExecutionContext) -> None:
        """事件既没有 Target 也没有 Targets 时失败"""
        if not context.has_target:
            raise fail(self.tracer, Err.missing_target("未找到 Target 或 Targets"))

    def single_target(self, context: ExecutionContext) -> Any:
        """取出事件中唯一的目标

        Raises:
            UnsupportedBatchSizeException: Targets 中记录数不为 1
            MissingTargetException: 没有目标
        """
        params = context.input_parameters
        if TARGETS in params and params[TARGETS] is not None:
            targets = list(params[TARGETS])
            if len(targets) != 1:
                raise fail(
                    self.tracer,
                    Err.batch_size(f"Multiple 消息仅支持 1 条记录，实际为 {len(targets)} 条",
                                   count=len(targets)),
                )
            target = targets[0]
        else:
            target = params.get(TARGET)

        if target is None:
            raise fail(self.tracer, Err.missing_target())
        return target

    @staticmethod
    def as_ref(target: Any) -> RecordRef:
        if isinstance(target, RecordRef):
            return target
        if isinstance(target, Record):
            return RecordRef(target.id)
        if isinstance(target, Mapping):
            return RecordRef(target.get(FIELD_ID))
        return RecordRef(target)

    def as_payload(self, target: Any) -> dict:
        """把目标转换为字段字典；字典中不存在的键视为"未提供" """
        if isinstance(target, Record):
            payload = target.to_payload()
            payload[FIELD_ID] = target.id
            return payload
        if isinstance(target, Mapping):
            return dict(target)
        raise fail(self.tracer, Err.missing_target("创建/更新事件需要完整的记录", target=repr(target)))

    # ==================== 删除前置阶段 ====================

    def capture_deletion(self, context: ExecutionContext) -> DeletionCapture:
        """删除前置阶段：捕获被删除记录的引用、分区和直接子记录

        捕获结果写入 context.shared_variables，供同一逻辑操作的后续阶段读取。
        """
        target_ref = self.as_ref(self.single_target(context))
        if target_ref.id is None:
            raise fail(self.tracer, Err.missing_target("删除事件缺少记录引用"))

        profile_id = None
        if self.settings.profile_enabled:
            with repository_errors(self.tracer, "读取待删除记录"):
                deleted = self.repository.retrieve_one(target_ref.id, [FIELD_PROFILE])
            if deleted is None:
                raise fail(self.tracer, Err.missing_target(f"待删除记录不存在: {target_ref.id}"))
            profile_id = deleted.profile_id

        with repository_errors(self.tracer, "读取待删除记录的子记录"):
            children = self.repository.retrieve_children(target_ref.id)

        capture = DeletionCapture(target_ref=target_ref, profile_id=profile_id, children=children)
        context.shared_variables.capture_deletion(capture)
        return capture

    # ==================== 变更请求 ====================

    def to_change_request(self, context: ExecutionContext) -> ChangeRequest:
        message = context.message_name

        if message.is_delete:
            return self._delete_request(context)

        payload = self.as_payload(self.single_target(context))
        record_id = payload.get(FIELD_ID)
        if record_id is None:
            raise fail(self.tracer, Err.missing_target("目标记录缺少 id"))

        if FIELD_PARENT in payload and payload[FIELD_PARENT] == record_id:
            raise fail(self.tracer, Err.self_parent(record_id=record_id))

        if message.is_create:
            self._require_name(payload.get(FIELD_NAME))
            record = Record.from_payload(payload)
            # 创建时 index/depth 由引擎分配
            record.index = None
            record.depth = None
            self._require_profile(record)
            return ChangeRequest(
                kind=ChangeKind.CREATE,
                target_ref=RecordRef(record_id),
                target=record,
                profile_id=record.profile_id,
            )

        pre_image = context.pre_image
        if pre_image is None:
            # 后置阶段存储已是新值，读不到原分区
            if context.stage >= Stage.POST_OPERATION and self._changes_profile(payload):
                raise fail(self.tracer, Err.missing_target(
                    f"修改 {FIELD_PROFILE} 的后置更新事件缺少更新前镜像: {record_id}",
                    record_id=record_id,
                ))
            pre_image = self._retrieve_pre_image(record_id)
        record = self._merge_pre_image(payload, pre_image)
        self._require_name(record.name)
        self._require_profile(record)

        request = ChangeRequest(
            kind=ChangeKind.UPDATE,
            target_ref=RecordRef(record_id),
            target=record,
            profile_id=record.profile_id,
        )

        if self.settings.profile_enabled and pre_image.profile_id != record.profile_id:
            request.previous_profile_id = pre_image.profile_id
            request.moved_partition = True

        if context.triggered_by_delete:
            parent_context = context.parent_context
            request.kind = ChangeKind.CASCADE_UPDATE
            request.deleted_ref = self.as_ref(self.single_target(parent_context))
            capture = context.shared_variables.deletion_capture()
            if capture is not None:
                request.deleted_children = capture.child_ids

        return request

    def _delete_request(self, context: ExecutionContext) -> ChangeRequest:
        capture = context.shared_variables.deletion_capture()
        if capture is None:
            raise fail(self.tracer, Err.missing_target("删除事件缺少前置阶段捕获的目标"))
        return ChangeRequest(
            kind=ChangeKind.DELETE,
            target_ref=capture.target_ref,
            profile_id=capture.profile_id,
            deleted_ref=capture.target_ref,
            deleted_children=capture.child_ids,
        )

    def _retrieve_pre_image(self, record_id: Any) -> Record:
        with repository_errors(self.tracer, "读取更新前记录"):
            pre_image = self.repository.retrieve_one(
                record_id, [FIELD_NAME, FIELD_PROFILE, FIELD_PARENT]
            )
        if pre_image is None:
            raise fail(self.tracer, Err.missing_target(f"待更新记录不存在: {record_id}"))
        return pre_image

    @staticmethod
    def _merge_pre_image(payload: dict, pre_image: Record) -> Record:
        """用更新前镜像补齐未提供的字段

        - parent_id 只在键不存在时继承；显式的 None 表示解除父子关系
        - name、profile_id 在键不存在、为 None 或空字符串时继承
        """
        merged = dict(payload)
        for key in _INHERITED_WHEN_BLANK:
            if _is_blank(merged.get(key)):
                merged[key] = getattr(pre_image, key)
        if FIELD_PARENT not in merged:
            merged[FIELD_PARENT] = pre_image.parent_id

        record = Record.from_payload(merged)
        # 用存储中的原值做差异比较
        record.index = pre_image.index
        record.depth = pre_image.depth
        return record

    def _require_name(self, name: Optional[str]) -> None:
        if name is None or not str(name).strip():
            raise fail(self.tracer, Err.required(f"记录缺少 {FIELD_NAME} 或为空", field=FIELD_NAME))

    def _require_profile(self, record: Record) -> None:
        if not self.settings.profile_enabled:
            return
        if self.settings.profile_required and _is_blank(record.profile_id):
            raise fail(self.tracer, Err.required(f"记录缺少 {FIELD_PROFILE} 或为空", field=FIELD_PROFILE))

    def _changes_profile(self, payload: Mapping[str, Any]) -> bool:
        return self.settings.profile_enabled and not _is_blank(payload.get(FIELD_PROFILE))
