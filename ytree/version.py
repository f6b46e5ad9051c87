"""版本信息"""

__version__ = "0.1.0"
__author__ = "YTree Team"
__description__ = "树形记录先序索引引擎"
