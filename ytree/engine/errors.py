"""引擎内部的错误输出辅助

所有中止路径都先输出一条 [ERROR] 跟踪信息，再抛出异常。
"""

from contextlib import contextmanager

from ytree.exceptions import Err, TreeIndexException
from ytree.log import ERROR_PREFIX, TracingService


def fail(tracer: TracingService, exc: TreeIndexException) -> TreeIndexException:
    """输出跟踪信息并返回异常，由调用方 raise"""
    tracer.trace(f"{ERROR_PREFIX} {exc.message}")
    return exc


@contextmanager
def repository_errors(tracer: TracingService, action: str):
    """把存储层抛出的异常包装为 RepositoryException（不重试）

    使用示例:
        with repository_errors(self.tracer, "读取分区记录"):
            records = self.repository.retrieve(profile_id, exclude_ids)
    """
    try:
        yield
    except TreeIndexException:
        raise
    except Exception as e:
        tracer.trace(f"{ERROR_PREFIX} {action}失败: {e!r}")
        raise Err.repository(f"{action}失败: {e}", action=action) from e
