"""差异写入

把需要写入的记录作为一个批量请求提交到存储：
- 单项失败不中断其余项，每项返回一个结果
- 删除引发的操作中，除主体记录外不写 parent_id：存储的参照完整性级联
  已经或正在修改这些行的父引用，再写一次会与之竞争甚至死锁
- 任一项失败时逐项输出失败信息，然后整体失败；成功项不回滚
"""

from typing import Any, List, Sequence

from ytree.exceptions import Err, TreeIndexException
from ytree.log import ERROR_PREFIX, LOG_PREFIX, TracingService

from .errors import fail
from .records import FIELD_PARENT, Record
from .repository import RecordRepository, WriteItem, WriteResult


class BatchWriter:
    """批量写入器

    使用示例:
        writer = BatchWriter(repository, tracer)
        results = writer.write(plan.candidates, strip_parent=True, subject_id=target.id)
    """

    def __init__(self, repository: RecordRepository, tracer: TracingService):
        self.repository = repository
        self.tracer = tracer

    @staticmethod
    def build_items(
        candidates: Sequence[Record],
        strip_parent: bool = False,
        subject_id: Any = None,
    ) -> List[WriteItem]:
        items = []
        for record in candidates:
            omit = frozenset()
            if strip_parent and record.id != subject_id:
                omit = frozenset({FIELD_PARENT})
            items.append(WriteItem(record=record, omit=omit))
        return items

    def write(
        self,
        candidates: Sequence[Record],
        strip_parent: bool = False,
        subject_id: Any = None,
    ) -> List[WriteResult]:
        """提交批量写入

        Raises:
            RepositoryException: 批量请求本身抛出异常
            PartialWriteFailureException: 一项或多项写入失败
        """
        if not candidates:
            self.tracer.trace(f"{LOG_PREFIX} 无需更新。")
            return []

        items = self.build_items(candidates, strip_parent, subject_id)

        try:
            results = list(self.repository.batch_write(items))
        except TreeIndexException:
            raise
        except Exception as e:
            self.tracer.trace(f"{ERROR_PREFIX} 批量更新时发生异常: {e!r}")
            raise Err.repository(f"批量更新失败: {e}") from e

        faults = [result.fault for result in results if not result.success]
        for fault in faults:
            self.tracer.trace(
                f"{ERROR_PREFIX} 第 {fault.index} 项更新失败: {fault.message}"
                f" | Detail: {fault.inner_message or 'No inner fault'}"
                f" | Code: {fault.code}"
            )
        if faults:
            raise fail(self.tracer, Err.partial_write(
                faults=faults,
                details=[f"#{fault.index}: {fault.message}" for fault in faults],
            ))

        self.tracer.trace(f"{LOG_PREFIX} 已更新 {len(items)} 条记录。")
        return results
