import time
from uuid import uuid4


def generate_id(prefix: str = "") -> str:
    """生成记录 ID：微秒时间戳 + 随机段，按创建时间大致有序。"""
    timestamp = hex(int(time.time() * 1_000_000))[2:]
    rand_part = uuid4().hex[:8]
    return f"{prefix}{timestamp}-{rand_part}"
