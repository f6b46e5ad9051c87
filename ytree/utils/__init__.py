"""工具模块"""

from .generate_id import generate_id

__all__ = [
    "generate_id",
]
