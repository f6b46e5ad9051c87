"""先序序号分配测试

测试 IndexAssigner 的核心功能：
1. 先序遍历与同级排序
2. 根节点识别
3. 最小写入集合
4. 存储中已有环的记录
"""

import pytest

from ytree.engine import IndexAssigner, Record
from ytree.engine.assigner import sort_key

from tests.helpers import make_records, positions, assert_valid_forest


@pytest.fixture
def assigner():
    return IndexAssigner(root_depth=0)


@pytest.fixture
def forest():
    """两棵树：Alpha(charlie(echo), Delta) 与 beta"""
    return make_records(
        ("b", "beta", None),
        ("e", "echo", "c"),
        ("a", "Alpha", None),
        ("d", "Delta", "a"),
        ("c", "charlie", "a"),
    )


class TestPreorderAssignment:
    """先序遍历测试"""

    def test_preorder_with_case_insensitive_siblings(self, assigner, forest):
        """测试同级按名称不区分大小写排序，子树紧跟父节点"""
        assigner.assign(forest)

        assert positions(forest) == {
            "a": (0, 0),
            "c": (1, 1),
            "e": (2, 2),
            "d": (3, 1),
            "b": (4, 0),
        }

    def test_forest_invariants_hold(self, assigner, forest):
        """测试分配结果满足全部森林约束"""
        assigner.assign(forest)
        assert_valid_forest(forest)

    def test_root_depth_setting(self, forest):
        """测试根节点层级可配置"""
        IndexAssigner(root_depth=1).assign(forest)

        assert positions(forest)["a"] == (0, 1)
        assert positions(forest)["e"] == (2, 3)
        assert_valid_forest(forest, root_depth=1)

    def test_equal_names_keep_input_order(self, assigner):
        """测试名称相同（忽略大小写）时保持读取顺序"""
        records = make_records(
            ("x2", "Same", None),
            ("x1", "same", None),
        )
        assigner.assign(records)

        assert positions(records) == {"x2": (0, 0), "x1": (1, 0)}

    def test_missing_name_sorts_first(self):
        """测试名称为空时按空字符串排序"""
        assert sort_key(Record(id="n")) == ""
        assert sort_key(Record(id="n", name="ÄBC")) == "äbc"

    def test_deep_chain_does_not_recurse(self, assigner):
        """测试很深的链也能完成（显式栈遍历）"""
        depth = 3000
        records = [Record(id="n0", name="n0", profile_id="p1")]
        records += [
            Record(id=f"n{i}", name=f"n{i}", parent_id=f"n{i - 1}", profile_id="p1")
            for i in range(1, depth)
        ]
        assigner.assign(records)

        assert records[-1].index == depth - 1
        assert records[-1].depth == depth - 1


class TestRootDetection:
    """根节点识别测试"""

    def test_parent_outside_partition_is_root(self, assigner):
        """测试父节点不在本分区记录中时视为根节点"""
        records = make_records(
            ("a", "Alpha", None),
            ("o", "Orphan", "missing"),
        )
        assigner.assign(records)

        assert positions(records) == {"a": (0, 0), "o": (1, 0)}

    def test_self_parent_is_root(self, assigner):
        """测试指向自身的记录视为根节点"""
        records = make_records(("s", "Self", "s"))
        plan = assigner.assign(records)

        assert positions(records) == {"s": (0, 0)}
        assert plan.unreachable == []

    def test_existing_cycle_is_unreachable(self, assigner):
        """测试存储中已有环的记录无法到达，保持原值"""
        records = make_records(
            ("a", "Alpha", None, "p1", 5, 5),
            ("x", "X", "y", "p1", 7, 1),
            ("y", "Y", "x", "p1", 8, 2),
        )
        plan = assigner.assign(records)

        assert {record.id for record in plan.unreachable} == {"x", "y"}
        assert positions(records)["x"] == (7, 1)
        assert [record.id for record in plan.candidates] == ["a"]


class TestMinimalWrites:
    """最小写入集合测试"""

    def test_reassign_is_idempotent(self, assigner, forest):
        """测试对已正确索引的分区再次分配不产生写入"""
        assigner.assign(forest)
        before = positions(forest)

        plan = assigner.assign(forest)

        assert plan.candidates == []
        assert positions(forest) == before

    def test_append_last_writes_only_new_record(self, assigner):
        """测试新增排在最后的记录只写入它自己"""
        records = make_records(
            ("a", "Alpha", None, "p1", 0, 0),
            ("b", "Beta", None, "p1", 1, 0),
            ("z", "Zed", None, "p1"),
        )
        plan = assigner.assign(records, subject_id="z")

        assert [record.id for record in plan.candidates] == ["z"]
        assert positions(records)["z"] == (2, 0)

    def test_append_leaf_under_root_writes_only_leaf(self, assigner):
        """测试在已有根节点下新增排在最后的叶子 Zed，不重写任何兄弟节点"""
        records = make_records(
            ("r", "Root", None, "p1", 0, 0),
            ("a", "Apple", "r", "p1", 1, 1),
            ("m", "Mango", "r", "p1", 2, 1),
            ("z", "Zed", "r", "p1"),
        )
        plan = assigner.assign(records, subject_id="z")

        assert [record.id for record in plan.candidates] == ["z"]
        assert positions(records)["z"] == (3, 1)

    def test_insert_first_shifts_all(self, assigner):
        """测试新增排在最前的记录使所有记录后移"""
        records = make_records(
            ("a", "Alpha", None, "p1", 0, 0),
            ("b", "Beta", None, "p1", 1, 0),
            ("n", "Aardvark", None, "p1"),
        )
        plan = assigner.assign(records, subject_id="n")

        assert {record.id for record in plan.candidates} == {"a", "b", "n"}

    def test_subject_is_always_written(self, assigner):
        """测试主体记录即使序号未变也需要写入"""
        records = make_records(
            ("a", "Alpha", None, "p1", 0, 0),
            ("b", "Beta", None, "p1", 1, 0),
        )
        plan = assigner.assign(records, subject_id="b")

        assert [record.id for record in plan.candidates] == ["b"]

    def test_excluded_records_are_not_written(self, assigner):
        """测试排除的记录即使变化也不写入"""
        records = make_records(
            ("a", "Alpha", None),
            ("b", "Beta", None),
        )
        plan = assigner.assign(records, excluded_ids=frozenset({"b"}))

        assert [record.id for record in plan.candidates] == ["a"]
        assert positions(records)["b"] == (1, 0)

    def test_assignment_records_previous_values(self, assigner):
        """测试分配结果记录原值"""
        records = make_records(("a", "Alpha", None, "p1", 3, 2))
        plan = assigner.assign(records)

        assignment = plan.assignments[0]
        assert (assignment.previous_index, assignment.previous_depth) == (3, 2)
        assert (assignment.index, assignment.depth) == (0, 0)
        assert assignment.changed
