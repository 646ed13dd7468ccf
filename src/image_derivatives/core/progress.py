"""进度更新的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class ProgressUpdate:
    """以输出文件为单位的批处理进度，失败的源文件按其全部尺寸计入。"""

    profile: str
    total: int
    completed: int
    message: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.total > 0 and self.completed >= self.total
