"""索引引擎异常类定义

定义树形索引引擎使用的异常类体系。
"""

import copy
from enum import Enum
from typing import Optional, List, Any, Dict, Union


class ErrorCode(str, Enum):
    """错误代码枚举

    继承自 str，可以直接作为字符串使用。

    使用示例:
        from ytree.exceptions import ErrorCode, CircularReferenceException

        try:
            engine.execute(context)
        except CircularReferenceException as e:
            assert e.code == ErrorCode.CIRCULAR_REFERENCE
    """

    # ==================== 通用错误 ====================
    INDEXING_ERROR = "INDEXING_ERROR"

    # ==================== 事件相关 ====================
    UNSUPPORTED_BATCH_SIZE = "UNSUPPORTED_BATCH_SIZE"
    MISSING_TARGET = "MISSING_TARGET"

    # ==================== 验证相关 ====================
    SELF_PARENT = "SELF_PARENT"
    CIRCULAR_REFERENCE = "CIRCULAR_REFERENCE"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

    # ==================== 存储相关 ====================
    REPOSITORY_ERROR = "REPOSITORY_ERROR"
    PARTIAL_WRITE_FAILURE = "PARTIAL_WRITE_FAILURE"


# 类型别名，支持枚举和字符串
ErrorCodeType = Union[str, ErrorCode]


class TreeIndexException(Exception):
    """索引引擎异常基类

    所有引擎异常都继承此类。

    属性:
        message: 错误消息
        code: 错误代码（支持 ErrorCode 枚举或字符串）
        details: 详细错误信息列表
        extra: 额外的上下文信息
    """

    def __init__(
        self,
        message: str,
        code: ErrorCodeType = ErrorCode.INDEXING_ERROR,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.message = message
        self.code = code
        self.details = details or []
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "message": self.message,
            "code": self.code,
            "details": copy.deepcopy(self.details),
            "extra": copy.deepcopy(self.extra)
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r})"
        )


class UnsupportedBatchSizeException(TreeIndexException):
    """事件包含多条记录

    引擎只处理单条记录的事件，Multiple 消息中记录数不为 1 时抛出。
    """

    def __init__(
        self,
        message: str = "Multiple 消息仅支持 1 条记录",
        code: ErrorCodeType = ErrorCode.UNSUPPORTED_BATCH_SIZE,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(message=message, code=code, details=details, **extra)


class MissingTargetException(TreeIndexException):
    """事件中找不到目标记录或引用"""

    def __init__(
        self,
        message: str = "未找到目标记录",
        code: ErrorCodeType = ErrorCode.MISSING_TARGET,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(message=message, code=code, details=details, **extra)


class SelfParentException(TreeIndexException):
    """记录被指定为自己的父节点"""

    def __init__(
        self,
        message: str = "记录不能成为自己的父节点",
        code: ErrorCodeType = ErrorCode.SELF_PARENT,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(message=message, code=code, details=details, **extra)


class CircularReferenceException(TreeIndexException):
    """新的父节点是记录自身的子孙节点

    使用示例:
        # A -> B -> C，尝试把 A 的父节点设置为 C
        raise CircularReferenceException(record_id=a.id, parent_id=c.id)
    """

    def __init__(
        self,
        message: str = "记录不能成为其子孙节点的子节点，请先解除关系",
        code: ErrorCodeType = ErrorCode.CIRCULAR_REFERENCE,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(message=message, code=code, details=details, **extra)


class MissingRequiredFieldException(TreeIndexException):
    """必填字段缺失或为空

    使用示例:
        raise MissingRequiredFieldException("记录缺少名称", field="name")
    """

    def __init__(
        self,
        message: str = "缺少必填字段",
        code: ErrorCodeType = ErrorCode.MISSING_REQUIRED_FIELD,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(message=message, code=code, details=details, **extra)


class RepositoryException(TreeIndexException):
    """存储读写失败

    底层存储的读取或写入抛出异常时包装为此异常，不做重试。
    """

    def __init__(
        self,
        message: str = "存储访问失败",
        code: ErrorCodeType = ErrorCode.REPOSITORY_ERROR,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(message=message, code=code, details=details, **extra)


class PartialWriteFailureException(TreeIndexException):
    """批量写入中部分记录失败

    已成功的记录不会回滚。

    属性:
        faults: 失败项列表（repository.Fault）
    """

    def __init__(
        self,
        message: str = "部分记录更新失败，详见日志",
        code: ErrorCodeType = ErrorCode.PARTIAL_WRITE_FAILURE,
        details: Optional[List[str]] = None,
        faults: Optional[List[Any]] = None,
        **extra: Any
    ):
        self.faults = list(faults or [])
        super().__init__(message=message, code=code, details=details, **extra)


class Err:
    """异常快捷创建类

    提供统一入口，只需导入一个类即可创建所有类型的引擎异常。

    使用示例:
        from ytree.exceptions import Err

        raise Err.self_parent(record_id=record.id)
        raise Err.required("记录缺少名称", field="name")
        raise Err.partial_write(faults=faults)
    """

    @staticmethod
    def batch_size(message: str = "Multiple 消息仅支持 1 条记录", **kwargs) -> UnsupportedBatchSizeException:
        """事件包含多条记录"""
        return UnsupportedBatchSizeException(message, **kwargs)

    @staticmethod
    def missing_target(message: str = "未找到目标记录", **kwargs) -> MissingTargetException:
        """缺少目标记录或引用"""
        return MissingTargetException(message, **kwargs)

    @staticmethod
    def self_parent(message: str = "记录不能成为自己的父节点", **kwargs) -> SelfParentException:
        """父节点指向自身"""
        return SelfParentException(message, **kwargs)

    @staticmethod
    def circular(
        message: str = "记录不能成为其子孙节点的子节点，请先解除关系",
        **kwargs
    ) -> CircularReferenceException:
        """父节点是自身的子孙节点"""
        return CircularReferenceException(message, **kwargs)

    @staticmethod
    def required(message: str = "缺少必填字段", **kwargs) -> MissingRequiredFieldException:
        """必填字段缺失

        Args:
            message: 错误消息
            **kwargs: 额外参数（code, details, field 等）
        """
        return MissingRequiredFieldException(message, **kwargs)

    @staticmethod
    def repository(message: str = "存储访问失败", **kwargs) -> RepositoryException:
        """存储读写失败"""
        return RepositoryException(message, **kwargs)

    @staticmethod
    def partial_write(
        message: str = "部分记录更新失败，详见日志",
        **kwargs
    ) -> PartialWriteFailureException:
        """批量写入部分失败

        Args:
            message: 错误消息
            **kwargs: 额外参数（faults, details 等）
        """
        return PartialWriteFailureException(message, **kwargs)
