"""测试辅助工具模块

提供测试专用的辅助函数，避免在核心代码中添加测试专用方法。
"""

from .forest_helpers import (
    make_records,
    positions,
    assert_valid_forest,
)

__all__ = [
    'make_records',
    'positions',
    'assert_valid_forest',
]
