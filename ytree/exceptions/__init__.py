"""异常处理模块

提供索引引擎的异常类与错误代码。

使用示例:
    from ytree.exceptions import Err, TreeIndexException

    try:
        engine.execute(context)
    except TreeIndexException as e:
        print(e.code, e.message)
"""

from .exceptions import (
    # ===== 推荐使用 =====
    Err,                                # 异常快捷创建类
    ErrorCode,                          # 错误代码枚举
    ErrorCodeType,

    # ===== 高级用法 =====
    TreeIndexException,                 # 异常基类
    UnsupportedBatchSizeException,
    MissingTargetException,
    SelfParentException,
    CircularReferenceException,
    MissingRequiredFieldException,
    RepositoryException,
    PartialWriteFailureException,
)

__all__ = [
    "Err",
    "ErrorCode",
    "ErrorCodeType",
    "TreeIndexException",
    "UnsupportedBatchSizeException",
    "MissingTargetException",
    "SelfParentException",
    "CircularReferenceException",
    "MissingRequiredFieldException",
    "RepositoryException",
    "PartialWriteFailureException",
]
