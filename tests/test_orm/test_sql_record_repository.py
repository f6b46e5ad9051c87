"""SQLAlchemy 记录存储测试

测试 SqlAlchemyRecordRepository：
1. 分区读取、排除与排序
2. 批量写入的保存点隔离
3. 与参考宿主配合的端到端删除
"""

import pytest
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ytree.engine import ANY_PARTITION, Record, WriteItem
from ytree.exceptions import MissingRequiredFieldException, PartialWriteFailureException
from ytree.host import TriggerPipeline
from ytree.orm import Base, SqlAlchemyRecordRepository, TreeIndexFieldsMixin, db_session_scope

from tests.helpers import make_records, positions, assert_valid_forest


# ==================== 测试模型定义 ====================

class TreeCategory(Base, TreeIndexFieldsMixin):
    """分类模型"""
    __tablename__ = "test_tree_category"
    __table_args__ = {'extend_existing': True}

    id: Mapped[str] = mapped_column(String(64), primary_key=True)


@pytest.fixture
def repository(memory_database, db_session):
    engine, _ = memory_database
    Base.metadata.create_all(bind=engine)
    return SqlAlchemyRecordRepository(db_session, TreeCategory)


@pytest.fixture
def seeded(repository):
    for record in make_records(
        ("a", "Alpha", None, "p1", 0, 0),
        ("c", "Charlie", "a", "p1", 1, 1),
        ("b", "Beta", None, "p1", 2, 0),
        ("o", "Other", None, "p2", 0, 0),
        ("n", "NoProfile", None, None, None, None),
    ):
        repository.insert(record)
    return repository


# ==================== 测试类 ====================

class TestRetrieve:
    """读取测试"""

    def test_retrieve_partition_ordered_by_index(self, seeded):
        records = seeded.retrieve("p1")

        assert [record.id for record in records] == ["a", "c", "b"]
        assert records[1].parent_id == "a"

    def test_retrieve_with_exclusions(self, seeded):
        records = seeded.retrieve("p1", exclude_ids={"a", "b"})

        assert [record.id for record in records] == ["c"]

    def test_retrieve_unassigned_partition(self, seeded):
        assert [record.id for record in seeded.retrieve(None)] == ["n"]

    def test_retrieve_any_partition(self, seeded):
        assert len(seeded.retrieve(ANY_PARTITION)) == 5

    def test_retrieve_one_maps_columns(self, seeded):
        record = seeded.retrieve_one("c")

        assert record == Record(id="c", name="Charlie", parent_id="a", profile_id="p1", index=1, depth=1)
        assert seeded.retrieve_one("missing") is None

    def test_retrieve_children(self, seeded):
        assert [record.id for record in seeded.retrieve_children("a")] == ["c"]


class TestBatchWrite:
    """批量写入测试"""

    def test_failed_item_rolled_back_to_savepoint(self, seeded, memory_database):
        """测试第二项违反非空约束时只回滚该项，第一、三项提交"""
        items = [
            WriteItem(Record(id="a", name="Alpha", profile_id="p1", index=5, depth=0)),
            WriteItem(Record(id="b", name=None, profile_id="p1", index=6, depth=0)),
            WriteItem(Record(id="c", name="Charlie", parent_id="a", profile_id="p1", index=7, depth=1)),
        ]

        results = seeded.batch_write(items)

        assert [result.success for result in results] == [True, False, True]
        assert results[1].fault.index == 1
        assert results[1].fault.inner_message

        _, session_factory = memory_database
        with db_session_scope(session_factory) as session:
            check = SqlAlchemyRecordRepository(session, TreeCategory)
            assert check.retrieve_one("a").index == 5
            assert check.retrieve_one("b").index == 2
            assert check.retrieve_one("b").name == "Beta"
            assert check.retrieve_one("c").index == 7

    def test_missing_row_is_fault(self, seeded):
        results = seeded.batch_write([WriteItem(Record(id="ghost", name="G", index=0, depth=0))])

        assert results[0].fault.code == "NOT_FOUND"

    def test_omitted_parent_not_written(self, seeded):
        record = Record(id="c", name="Charlie", parent_id=None, profile_id="p1", index=3, depth=0)

        seeded.batch_write([WriteItem(record, omit=frozenset({"parent_id"}))])

        assert seeded.retrieve_one("c").parent_id == "a"
        assert seeded.retrieve_one("c").index == 3


class TestHostOperations:
    """宿主行级操作测试"""

    def test_apply_clear_parent_remove(self, seeded):
        seeded.apply("c", {"name": "Renamed", "index": 9})
        assert seeded.retrieve_one("c").name == "Renamed"

        seeded.clear_parent("c")
        assert seeded.retrieve_one("c").parent_id is None

        seeded.remove("c")
        assert seeded.retrieve_one("c") is None

    def test_remove_missing_raises(self, seeded):
        with pytest.raises(KeyError):
            seeded.remove("missing")

    def test_transaction_rolls_back(self, seeded):
        with pytest.raises(RuntimeError):
            with seeded.transaction():
                seeded.apply("a", {"name": "Changed"})
                raise RuntimeError("boom")

        assert seeded.retrieve_one("a").name == "Alpha"


class TestPipelineOnDatabase:
    """参考宿主 + SQLAlchemy 存储端到端测试"""

    @pytest.fixture
    def pipeline(self, repository, tracer):
        pipeline = TriggerPipeline(repository, tracer=tracer)
        pipeline.create({"id": "g", "name": "G", "profile_id": "p1"})
        pipeline.create({"id": "p", "name": "P", "parent_id": "g", "profile_id": "p1"})
        pipeline.create({"id": "q", "name": "Q", "parent_id": "g", "profile_id": "p1"})
        pipeline.create({"id": "x", "name": "X", "parent_id": "p", "profile_id": "p1"})
        pipeline.create({"id": "y", "name": "Y", "parent_id": "p", "profile_id": "p1"})
        pipeline.writes.clear()
        return pipeline

    def test_tree_indexed(self, pipeline, repository):
        assert positions(repository.retrieve("p1")) == {
            "g": (0, 0),
            "p": (1, 1),
            "x": (2, 2),
            "y": (3, 2),
            "q": (4, 1),
        }

    def test_delete_cascade(self, pipeline, repository):
        pipeline.delete("p")

        records = repository.retrieve("p1")
        assert positions(records) == {
            "g": (0, 0),
            "q": (1, 1),
            "x": (2, 1),
            "y": (3, 1),
        }
        assert_valid_forest(records)
        assert pipeline.write_count("x") == 1
        assert pipeline.write_count("y") == 1

    def test_rejected_update_rolls_back(self, pipeline, repository):
        """测试名称为空的更新被拒绝后整个操作回滚"""
        with pytest.raises(MissingRequiredFieldException):
            pipeline.update({"id": "q", "name": "   "})

        assert repository.retrieve_one("q").name == "Q"

    def test_write_fault_raises_partial_failure(self, pipeline, repository, monkeypatch):
        original = repository.batch_write

        def failing_batch_write(items):
            items = list(items)
            items[0] = WriteItem(Record(id="ghost", name="G", index=0, depth=0))
            return original(items)

        monkeypatch.setattr(repository, "batch_write", failing_batch_write)

        with pytest.raises(PartialWriteFailureException):
            pipeline.create({"id": "a", "name": "A", "profile_id": "p1"})

        assert repository.retrieve_one("a") is None
