"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 临时文件
- 跟踪服务与索引配置
- 内存存储与 SQLite 内存数据库
"""

import os
import tempfile

import pytest

from ytree.config import TreeIndexSettings
from ytree.log import Tracer
from ytree.orm import init_database
from ytree.repository import InMemoryRecordRepository


# ==================== 基础 Fixtures ====================

@pytest.fixture(scope="session")
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_file(temp_dir):
    """创建临时文件的工厂函数"""
    created_files = []

    def _create_file(filename: str, content: str = "") -> str:
        filepath = os.path.join(temp_dir, filename)
        if os.path.dirname(filepath):
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        created_files.append(filepath)
        return filepath

    yield _create_file

    # 清理
    for f in created_files:
        if os.path.exists(f):
            os.remove(f)


# ==================== 引擎 Fixtures ====================

@pytest.fixture
def tracer():
    """跟踪服务"""
    return Tracer()


@pytest.fixture
def settings():
    """默认索引配置"""
    return TreeIndexSettings()


@pytest.fixture
def store():
    """空的内存存储"""
    return InMemoryRecordRepository()


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def memory_database():
    """创建内存数据库 (引擎, 会话工厂)

    init_database 对内存库使用 StaticPool，并开启 pysqlite 的 SAVEPOINT 支持。
    """
    engine, session_factory = init_database(database_url="sqlite:///:memory:")
    yield engine, session_factory
    engine.dispose()


@pytest.fixture
def db_session(memory_database):
    """创建数据库会话"""
    _, session_factory = memory_database
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
