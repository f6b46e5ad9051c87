"""循环引用检测测试"""

import pytest

from ytree.engine import CycleDetector, Record, build_children_lookup, is_descendant_of
from ytree.exceptions import CircularReferenceException, ErrorCode, SelfParentException

from tests.helpers import make_records


@pytest.fixture
def chain():
    """A -> B -> C"""
    return make_records(
        ("a", "A", None),
        ("b", "B", "a"),
        ("c", "C", "b"),
    )


class TestChildrenLookup:
    """子节点映射测试"""

    def test_groups_by_parent(self, chain):
        lookup = build_children_lookup(chain)

        assert [record.id for record in lookup["a"]] == ["b"]
        assert [record.id for record in lookup["b"]] == ["c"]
        assert "c" not in lookup

    def test_descendant_search(self, chain):
        lookup = build_children_lookup(chain)

        assert is_descendant_of("c", "a", lookup)
        assert is_descendant_of("b", "a", lookup)
        assert not is_descendant_of("a", "c", lookup)

    def test_existing_cycle_terminates(self):
        """测试存储中已有环时搜索能够结束"""
        records = make_records(
            ("x", "X", "y"),
            ("y", "Y", "x"),
            ("z", "Z", None),
        )
        lookup = build_children_lookup(records)

        assert not is_descendant_of("z", "x", lookup)


class TestCycleDetector:
    """CycleDetector 测试"""

    def test_reparent_under_descendant_rejected(self, chain, tracer):
        """测试把 A 的父节点设为 C 被拒绝"""
        detector = CycleDetector(tracer)
        target = Record(id="a", name="A", parent_id="c", profile_id="p1")
        records = [record for record in chain if record.id != "a"] + [target]

        with pytest.raises(CircularReferenceException) as exc_info:
            detector.ensure_acyclic(target, records)

        assert exc_info.value.code == ErrorCode.CIRCULAR_REFERENCE
        assert exc_info.value.extra == {"record_id": "a", "parent_id": "c"}
        assert len(tracer.errors) == 1

    def test_self_parent_rejected(self, tracer):
        detector = CycleDetector(tracer)

        with pytest.raises(SelfParentException):
            detector.ensure_not_self_parent(Record(id="a", name="A", parent_id="a"))

        assert tracer.errors

    def test_valid_reparent_accepted(self, chain, tracer):
        """测试把 C 移到 A 下面是允许的"""
        detector = CycleDetector(tracer)
        target = Record(id="c", name="C", parent_id="a", profile_id="p1")
        records = [record for record in chain if record.id != "c"] + [target]

        detector.ensure_acyclic(target, records)

        assert not detector.would_cause_circular_reference(target, records)
        assert tracer.errors == []

    def test_root_never_cycles(self, chain, tracer):
        detector = CycleDetector(tracer)
        target = Record(id="b", name="B", parent_id=None)

        assert not detector.would_cause_circular_reference(target, chain)
