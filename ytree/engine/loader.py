"""分区记录加载"""

from typing import Any, Iterable, List, Set

from ytree.log import TracingService

from .errors import repository_errors
from .records import ChangeKind, ChangeRequest, Record
from .repository import ANY_PARTITION, RecordRepository


class ForestLoader:
    """读取分区内的其他记录

    只读，不修改存储。读取失败包装为 RepositoryException，不重试。

    使用示例:
        loader = ForestLoader(repository, tracer)
        records = loader.load(profile_id, loader.exclusions_for(request))
    """

    def __init__(
        self,
        repository: RecordRepository,
        tracer: TracingService,
        profile_enabled: bool = True,
    ):
        self.repository = repository
        self.tracer = tracer
        self.profile_enabled = profile_enabled

    def partition_key(self, profile_id: Any) -> Any:
        """未启用分区时所有记录属于同一分区"""
        return profile_id if self.profile_enabled else ANY_PARTITION

    @staticmethod
    def exclusions_for(request: ChangeRequest) -> Set[Any]:
        """需要排除的记录：事件主体（随后以内存中的新版本加入）与被删除记录"""
        excluded = set()
        if request.target is not None:
            excluded.add(request.target.id)
        if request.kind in (ChangeKind.DELETE, ChangeKind.CASCADE_UPDATE) and request.deleted_ref is not None:
            excluded.add(request.deleted_ref.id)
        return excluded

    def load(self, profile_id: Any, exclude_ids: Iterable[Any] = ()) -> List[Record]:
        with repository_errors(self.tracer, "读取分区记录"):
            return list(self.repository.retrieve(self.partition_key(profile_id), frozenset(exclude_ids)))
