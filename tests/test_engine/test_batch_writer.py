"""批量写入测试"""

import pytest

from ytree.engine import BatchWriter, Record
from ytree.exceptions import ErrorCode, PartialWriteFailureException, RepositoryException
from ytree.repository import InMemoryRecordRepository

from tests.helpers import make_records


@pytest.fixture
def store():
    return InMemoryRecordRepository(make_records(
        ("a", "Alpha", None),
        ("b", "Beta", None),
        ("c", "Gamma", None),
    ))


@pytest.fixture
def writer(store, tracer):
    return BatchWriter(store, tracer)


def indexed(*ids):
    return [Record(id=record_id, name=record_id.upper(), profile_id="p1", index=i, depth=0)
            for i, record_id in enumerate(ids)]


class TestBatchWriter:
    """BatchWriter 测试"""

    def test_empty_batch_is_noop(self, writer, store, tracer):
        """测试没有候选记录时不发出请求"""
        assert writer.write([]) == []

        assert store.batches == []
        assert tracer.lines == ["[LOG] 无需更新。"]

    def test_successful_batch(self, writer, store, tracer):
        results = writer.write(indexed("a", "b", "c"))

        assert all(result.success for result in results)
        assert store.get("c").index == 2
        assert tracer.lines[-1] == "[LOG] 已更新 3 条记录。"

    def test_partial_failure_keeps_other_items(self, writer, store, tracer):
        """测试第二项失败时第一、三项仍然写入，失败信息逐项输出"""
        store.inject_fault("b", "锁冲突", inner_message="deadlock detected", code=-2147220891)

        with pytest.raises(PartialWriteFailureException) as exc_info:
            writer.write(indexed("a", "b", "c"))

        assert store.get("a").index == 0
        assert store.get("c").index == 2
        assert store.get("b").index is None

        exc = exc_info.value
        assert exc.code == ErrorCode.PARTIAL_WRITE_FAILURE
        assert [fault.index for fault in exc.faults] == [1]
        assert "[ERROR] 第 1 项更新失败: 锁冲突 | Detail: deadlock detected | Code: -2147220891" in tracer.errors

    def test_fault_without_inner_message(self, writer, store, tracer):
        store.inject_fault("a", "denied")

        with pytest.raises(PartialWriteFailureException):
            writer.write(indexed("a"))

        assert "[ERROR] 第 0 项更新失败: denied | Detail: No inner fault | Code: None" in tracer.errors

    def test_missing_row_reported_as_fault(self, writer):
        records = [Record(id="ghost", name="Ghost", profile_id="p1", index=0, depth=0)]

        with pytest.raises(PartialWriteFailureException) as exc_info:
            writer.write(records)

        assert exc_info.value.faults[0].code == "NOT_FOUND"

    def test_repository_exception_wrapped(self, tracer):
        class BrokenRepository:
            def batch_write(self, items):
                raise ConnectionError("connection reset")

        writer = BatchWriter(BrokenRepository(), tracer)

        with pytest.raises(RepositoryException):
            writer.write(indexed("a"))

        assert tracer.errors


class TestParentStripping:
    """删除引发的写入剔除 parent_id 测试"""

    def test_parent_omitted_except_subject(self):
        records = make_records(
            ("s", "Subject", "g", "p1", 0, 0),
            ("o", "Other", "g", "p1", 1, 0),
        )

        items = BatchWriter.build_items(records, strip_parent=True, subject_id="s")

        assert "parent_id" in items[0].payload()
        assert "parent_id" not in items[1].payload()
        assert items[1].payload()["index"] == 1

    def test_parent_kept_without_stripping(self):
        records = make_records(("o", "Other", "g", "p1", 1, 0))

        items = BatchWriter.build_items(records)

        assert items[0].payload()["parent_id"] == "g"

    def test_stripped_write_leaves_parent_untouched(self, writer, store):
        """测试剔除 parent_id 的写入不改变存储中的父引用"""
        store.clear_parent("a")
        record = Record(id="a", name="Alpha", parent_id="stale", profile_id="p1", index=4, depth=1)

        writer.write([record], strip_parent=True, subject_id=None)

        assert store.get("a").parent_id is None
        assert store.get("a").index == 4
