"""参考宿主

TriggerPipeline 模拟触发平台，向引擎派发创建/更新/删除事件，
包括删除的三阶段协议与引擎写入引发的重入事件。
"""

from .pipeline import TriggerPipeline

__all__ = [
    "TriggerPipeline",
]
