"""
数据库会话管理模块

提供数据库引擎创建与会话管理：
- Base: 声明式基类
- init_database(): 根据 DatabaseSettings 创建引擎和会话工厂
- db_session_scope(): 非 HTTP 场景的上下文管理器
"""

from contextlib import contextmanager
from typing import Any, Generator, Tuple

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ytree.log import get_logger

_logger = get_logger("ytree.orm.session")


class Base(DeclarativeBase):
    """声明式基类"""


def init_database(config: Any = None, database_url: str = None, echo: bool = False) -> Tuple[Engine, sessionmaker]:
    """初始化数据库连接

    Args:
        config: 数据库配置对象（DatabaseSettings），提供后忽略其余参数
        database_url: 数据库连接URL
        echo: 是否输出SQL语句

    Returns:
        (引擎, 会话工厂)

    使用示例:
        engine, SessionLocal = init_database(settings.database)
        Base.metadata.create_all(bind=engine)
    """
    if config is not None:
        database_url = getattr(config, "url", database_url)
        echo = getattr(config, "echo", echo)

    if not database_url:
        raise ValueError("database_url 不能为空")

    is_sqlite = database_url.startswith("sqlite")
    kwargs = {"echo": echo}
    if is_sqlite and ":memory:" in database_url:
        # 内存库：所有会话共用同一个连接
        kwargs.update(
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    engine = create_engine(database_url, **kwargs)
    if is_sqlite:
        _enable_sqlite_savepoints(engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    _logger.debug(f"数据库已初始化: {engine.url.render_as_string(hide_password=True)}")
    return engine, session_factory


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """由 SQLAlchemy 显式发出 BEGIN，使 pysqlite 下的 SAVEPOINT 行为正确"""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


@contextmanager
def db_session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """会话上下文管理器

    正常退出时提交，异常时回滚，最后关闭会话。

    使用示例:
        with db_session_scope(SessionLocal) as session:
            repository = SqlAlchemyRecordRepository(session, Category)
            TriggerPipeline(repository).create({"name": "Alpha", "profile_id": "p1"})
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
