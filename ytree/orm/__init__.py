"""ORM 扩展模块

提供基于 SQLAlchemy 的记录存储。

主要组件:
- Base: 声明式基类
- TreeIndexFieldsMixin: 索引字段定义 Mixin
- SqlAlchemyRecordRepository: 引擎与宿主使用的存储实现
- init_database / db_session_scope: 引擎与会话管理

使用示例:
    from sqlalchemy import String
    from sqlalchemy.orm import Mapped, mapped_column
    from ytree.orm import Base, TreeIndexFieldsMixin, SqlAlchemyRecordRepository, init_database

    class Menu(Base, TreeIndexFieldsMixin):
        __tablename__ = "menu"
        id: Mapped[str] = mapped_column(String(64), primary_key=True)

    engine, SessionLocal = init_database(database_url="sqlite:///./menu.db")
    Base.metadata.create_all(bind=engine)
    repository = SqlAlchemyRecordRepository(SessionLocal(), Menu)
"""

from .db_session import Base, init_database, db_session_scope
from .fields import TreeIndexFieldsMixin, FIELD_COLUMN_MAP
from .repository import SqlAlchemyRecordRepository

__all__ = [
    "Base",
    "init_database",
    "db_session_scope",
    "TreeIndexFieldsMixin",
    "FIELD_COLUMN_MAP",
    "SqlAlchemyRecordRepository",
]
