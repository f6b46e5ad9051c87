"""树形索引字段定义

提供标准的索引字段定义 Mixin，简化模型定义。

使用示例:
    from sqlalchemy import String
    from sqlalchemy.orm import Mapped, mapped_column
    from ytree.orm import Base, TreeIndexFieldsMixin

    class Category(Base, TreeIndexFieldsMixin):
        __tablename__ = "category"

        id: Mapped[str] = mapped_column(String(64), primary_key=True)
        # name, parent_id, profile_id, tree_index, tree_depth 由 TreeIndexFieldsMixin 提供
"""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column


class TreeIndexFieldsMixin:
    """树形索引字段 Mixin

    提供标准的字段定义，包括：
    - name: 名称（同级排序依据）
    - parent_id: 父节点ID（不带外键约束，删除时的父引用清理由存储层完成）
    - profile_id: 分区键
    - tree_index: 分区内先序序号
    - tree_depth: 层级（根节点为0）

    注意：
    - id 主键需要用户自行定义
    - 如需外键约束，覆盖 parent_id 字段并使用 ondelete="SET NULL"
    """

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="名称"
    )

    parent_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        default=None,
        index=True,
        comment="父节点ID"
    )

    profile_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        default=None,
        index=True,
        comment="分区ID"
    )

    # 分区内先序序号，由索引引擎分配
    tree_index: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        default=None,
        index=True,
        comment="先序序号"
    )

    # 层级，根节点为 0
    tree_depth: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        default=None,
        comment="节点层级（根节点为0）"
    )


# Record 字段 -> 模型属性
FIELD_COLUMN_MAP = {
    "name": "name",
    "parent_id": "parent_id",
    "profile_id": "profile_id",
    "index": "tree_index",
    "depth": "tree_depth",
}


__all__ = [
    "TreeIndexFieldsMixin",
    "FIELD_COLUMN_MAP",
]
