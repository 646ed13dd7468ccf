"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class BatchState(str, Enum):
    """批处理状态机。"""

    IDLE = "idle"
    RESETTING_OUTPUTS = "resetting-outputs"
    SCANNING = "scanning"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FilenameParts:
    """文件名拆分结果，扩展名不含前导点。"""

    basename: str
    extension: str


@dataclass(frozen=True, slots=True)
class ResolvedBatch:
    """扫描阶段得到的源目录与文件列表。"""

    directory: Path
    files: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RenderTask:
    """生成单个输出文件所需的全部信息。"""

    source_path: Path
    buffer: bytes = field(repr=False)
    width: int
    output_directory: Path
    output_filename: str
    height: Optional[int] = None
    position: Optional[str] = None

    @property
    def output_path(self) -> Path:
        return self.output_directory / self.output_filename


@dataclass(slots=True)
class FileOutcome:
    """记录单个输出（或整个源文件）的处理结果。"""

    source_path: Path
    status: str
    output_path: Optional[Path] = None
    message: Optional[str] = None


@dataclass(slots=True)
class BatchResult:
    """一次 profile 批处理的产出。"""

    profile: str
    succeeded: list[FileOutcome] = field(default_factory=list)
    failed: list[FileOutcome] = field(default_factory=list)
    state: BatchState = BatchState.IDLE

    @property
    def ok(self) -> bool:
        return self.state is BatchState.DONE and not self.failed

    def record(self, outcome: FileOutcome) -> None:
        if outcome.status == "processed":
            self.succeeded.append(outcome)
        else:
            self.failed.append(outcome)

    def all_outcomes(self) -> list[FileOutcome]:
        """返回所有结果记录，方便生成报告。"""

        return [*self.succeeded, *self.failed]
