"""递归索引引擎

每次调用处理一个事件：

    事件 -> 适配器(ChangeRequest) -> 加载分区 -> 循环检测 -> 级联折叠
         -> 分配 index/depth -> 差异写入

删除按三个阶段完成：
    1. 前置阶段（PRE_VALIDATION）：捕获被删除记录、分区和直接子记录
    2. 级联更新：存储为每个直接子记录触发一次 Update，父上下文为该删除
    3. 后置阶段（POST_OPERATION）：重排分区剩余记录

引擎自己的批量写入会再次触发 Update 事件；重入深度超过 max_depth 的调用
直接返回。
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ytree.config import TreeIndexSettings
from ytree.log import LOG_PREFIX, Tracer, TracingService, get_logger

from .adapter import TriggerEventAdapter
from .assigner import AssignmentPlan, IndexAssigner
from .cascade import CascadeResolver
from .context import ExecutionContext, Stage
from .cycles import CycleDetector
from .loader import ForestLoader
from .records import ChangeKind, ChangeRequest
from .repository import RecordRepository, WriteResult
from .writer import BatchWriter

logger = get_logger("ytree.engine")


@dataclass
class IndexingResult:
    """一次重排的结果"""
    request: ChangeRequest
    plan: AssignmentPlan
    results: List[WriteResult] = field(default_factory=list)
    previous_partition: Optional["IndexingResult"] = None

    @property
    def written(self):
        return list(self.plan.candidates)


class RecursiveIndexingEngine:
    """递归索引引擎

    使用示例:
        engine = RecursiveIndexingEngine(repository, settings=TreeIndexSettings())

        context = ExecutionContext(
            message_name=MessageName.CREATE,
            stage=Stage.POST_OPERATION,
            input_parameters={TARGET: {"id": "a1", "name": "Alpha", "profile_id": "p1"}},
        )
        result = engine.execute(context)

    后置阶段的更新事件若修改 profile_id，需要通过 pre_image 传入更新前记录，
    否则无法得知原分区，事件被拒绝。
    """

    def __init__(
        self,
        repository: RecordRepository,
        settings: Optional[TreeIndexSettings] = None,
        tracer: Optional[TracingService] = None,
    ):
        self.repository = repository
        self.settings = settings or TreeIndexSettings()
        self.tracer = tracer or Tracer()

        self.adapter = TriggerEventAdapter(repository, self.settings, self.tracer)
        self.loader = ForestLoader(repository, self.tracer, self.settings.profile_enabled)
        self.cycles = CycleDetector(self.tracer)
        self.cascade = CascadeResolver(repository, self.tracer)
        self.assigner = IndexAssigner(self.settings.root_depth)
        self.writer = BatchWriter(repository, self.tracer)

    def execute(self, context: ExecutionContext) -> Optional[IndexingResult]:
        """处理一个事件

        Returns:
            重排结果；重入调用和删除前置阶段返回 None
        """
        if context.depth > self.settings.max_depth:
            logger.debug(
                f"跳过重入调用: {context.message_name.value} depth={context.depth}"
            )
            return None

        self.adapter.ensure_target_present(context)

        if context.stage == Stage.PRE_VALIDATION:
            if context.message_name.is_delete:
                self.adapter.capture_deletion(context)
            return None

        request = self.adapter.to_change_request(context)
        result = self.reindex(request)

        if request.moved_partition and self.settings.reindex_previous_partition:
            result.previous_partition = self.reindex_previous_partition(request)

        return result

    def reindex(self, request: ChangeRequest) -> IndexingResult:
        """重排 request 所在分区并写入变化的记录"""
        target = request.target

        if request.kind is ChangeKind.CASCADE_UPDATE:
            target.parent_id = self.cascade.resolve_new_parent(request)

        records = self.loader.load(request.profile_id, self.loader.exclusions_for(request))

        if target is not None:
            records.append(target)
            self.cycles.ensure_acyclic(target, records)

        excluded = frozenset()
        if request.kind is ChangeKind.CASCADE_UPDATE:
            self.cascade.fold(records, request.deleted_ref.id, target.parent_id)
            excluded = self.cascade.excluded_ids(request)
        elif request.kind is ChangeKind.DELETE:
            # 子记录已经由各自的级联更新写入
            excluded = frozenset(request.deleted_children)

        plan = self.assigner.assign(records, subject_id=request.subject_id, excluded_ids=excluded)
        self._trace_unreachable(plan)

        results = self.writer.write(
            plan.candidates,
            strip_parent=request.kind.is_delete_originated,
            subject_id=request.subject_id,
        )
        return IndexingResult(request=request, plan=plan, results=results)

    def reindex_previous_partition(self, request: ChangeRequest) -> IndexingResult:
        """记录移到其他分区后，重排它原来所在的分区"""
        records = self.loader.load(request.previous_profile_id, {request.target_ref.id})
        plan = self.assigner.assign(records)
        self._trace_unreachable(plan)
        results = self.writer.write(plan.candidates)
        return IndexingResult(request=request, plan=plan, results=results)

    def _trace_unreachable(self, plan: AssignmentPlan) -> None:
        if plan.unreachable:
            ids = ", ".join(str(record.id) for record in plan.unreachable)
            self.tracer.trace(f"{LOG_PREFIX} 以下记录无法从根节点到达，保持原值: {ids}")
