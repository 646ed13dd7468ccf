"""处理流水线：清空输出目录、解析源路径、按文件与尺寸并发生成衍生图。"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from image_derivatives.core.config import AppConfig, ResizeRequest
from image_derivatives.core.exceptions import (
    DirectoryAccessError,
    ImageDerivativesError,
    InvalidConfigurationError,
    InvalidPathError,
    RenderError,
    SourceReadError,
)
from image_derivatives.core.models import BatchResult, BatchState, FileOutcome, RenderTask
from image_derivatives.core.naming import split_filename
from image_derivatives.core.output_manager import remove_if_exists, reset_directory
from image_derivatives.core.profiles import Profile, ProfileName
from image_derivatives.core.progress import ProgressUpdate
from image_derivatives.core.scanner import resolve_source
from image_derivatives.processing.resizer import load_source, query_width, render_to

LOGGER = logging.getLogger(__name__)


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


class ProfileRunner:
    """驱动单次 profile 批处理的状态机。

    所有输出任务的结果都会被收集后再决定批处理成败，单个任务失败不会中断其它任务。
    """

    def __init__(self, config: AppConfig, progress_callback: ProgressCallback = None) -> None:
        self.config = config
        self.state = BatchState.IDLE
        self._progress_callback = progress_callback
        self._total = 0
        self._completed = 0
        self._profile = ""

    async def run(self, profile: Profile, src: str) -> BatchResult:
        """执行一个表驱动 profile（lifestyle/slide/slide3/product/swatch）。"""

        result = BatchResult(profile=profile.name)
        self._profile = profile.name
        output_root = self.config.paths.output_root

        try:
            self._transition(BatchState.RESETTING_OUTPUTS)
            await self._reset_outputs(profile.output_directories(output_root))

            self._transition(BatchState.SCANNING)
            batch = await resolve_source(self.config.paths.source_root, src)
        except ImageDerivativesError:
            self._transition(BatchState.FAILED)
            result.state = self.state
            raise

        LOGGER.info("profile %s：%s 下发现 %d 个文件", profile.name, batch.directory, len(batch.files))
        self._transition(BatchState.RENDERING)
        self._total = len(batch.files) * len(profile.sizes)
        self._emit_progress(f"开始生成 {profile.name} 衍生图")

        await asyncio.gather(
            *(self._render_file(profile, batch.directory, filename, result) for filename in batch.files)
        )
        return self._finish(result)

    async def run_resize(self, request: ResizeRequest) -> BatchResult:
        """执行 resize：单文件、单尺寸，写入前删除同名旧输出。"""

        result = BatchResult(profile=ProfileName.RESIZE.value)
        self._profile = result.profile
        source_path = self.config.paths.source_root / request.src
        output_name = Path(request.filename or request.src).name

        self._transition(BatchState.RENDERING)
        self._total = 1

        try:
            buffer = await load_source(source_path.parent, source_path.name)
        except SourceReadError as exc:
            self._record_failure(result, source_path, "error-load", exc, count=1)
            return self._finish(result)

        task = RenderTask(
            source_path=source_path,
            buffer=buffer,
            width=request.width,
            output_directory=self.config.resize_directory,
            output_filename=output_name,
            height=request.height,
            position=request.position,
        )
        await self._execute(task, result, replace_existing=True)
        return self._finish(result)

    async def _reset_outputs(self, directories: list[Path]) -> None:
        LOGGER.info("清空输出目录：%s", ", ".join(str(d) for d in directories))
        results = await asyncio.gather(
            *(reset_directory(directory) for directory in directories),
            return_exceptions=True,
        )
        for outcome in results:
            if isinstance(outcome, BaseException):
                raise outcome

    async def _render_file(self, profile: Profile, directory: Path, filename: str, result: BatchResult) -> None:
        source_path = directory / filename
        size_count = len(profile.sizes)

        try:
            parts = split_filename(filename)
        except InvalidPathError as exc:
            self._record_failure(result, source_path, "error-path", exc, count=size_count)
            return

        try:
            buffer = await load_source(directory, filename)
            source_width = await query_width(buffer) if profile.needs_source_width else None
        except (SourceReadError, RenderError) as exc:
            self._record_failure(result, source_path, "error-load", exc, count=size_count)
            return

        planned = profile.plan(parts, self.config.paths.output_root, source_width)
        LOGGER.debug(
            "%s -> %s",
            filename,
            ", ".join(f"{item.directory / item.filename}@{item.width}" for item in planned),
        )
        tasks = [
            RenderTask(
                source_path=source_path,
                buffer=buffer,
                width=item.width,
                output_directory=item.directory,
                output_filename=item.filename,
            )
            for item in planned
        ]
        await asyncio.gather(*(self._execute(task, result) for task in tasks))

    async def _execute(self, task: RenderTask, result: BatchResult, *, replace_existing: bool = False) -> None:
        try:
            if replace_existing and await remove_if_exists(task.output_path):
                LOGGER.info("已删除旧输出：%s", task.output_path)
            await render_to(
                task.buffer,
                task.width,
                task.output_path,
                height=task.height,
                position=task.position,
                encoding=self.config.encoding,
            )
        except (RenderError, DirectoryAccessError, InvalidConfigurationError) as exc:
            self._record_failure(result, task.source_path, "error-render", exc, output_path=task.output_path)
            return
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("任务执行异常：%s", exc)
            self._record_failure(result, task.source_path, "error-worker", exc, output_path=task.output_path)
            return

        LOGGER.info("写出：%s", task.output_path)
        result.record(
            FileOutcome(source_path=task.source_path, status="processed", output_path=task.output_path)
        )
        self._advance(1, f"完成 {task.output_filename}")

    def _record_failure(
        self,
        result: BatchResult,
        source_path: Path,
        status: str,
        exc: BaseException,
        *,
        count: int = 1,
        output_path: Optional[Path] = None,
    ) -> None:
        message = str(exc)
        if exc.__cause__ is not None:
            message = f"{message} ({exc.__cause__})"
        LOGGER.error("%s 处理失败 [%s]：%s", source_path.name, status, message)
        result.record(FileOutcome(source_path=source_path, status=status, output_path=output_path, message=message))
        self._advance(count, f"失败 {source_path.name}")

    def _finish(self, result: BatchResult) -> BatchResult:
        self._transition(BatchState.FAILED if result.failed else BatchState.DONE)
        result.state = self.state
        LOGGER.info(
            "profile %s 结束：成功 %d 个输出，失败 %d 项",
            result.profile,
            len(result.succeeded),
            len(result.failed),
        )
        self._emit_progress("处理完成")
        return result

    def _transition(self, state: BatchState) -> None:
        LOGGER.debug("状态切换：%s -> %s", self.state.value, state.value)
        self.state = state

    def _advance(self, count: int, message: Optional[str]) -> None:
        self._completed += count
        self._emit_progress(message)

    def _emit_progress(self, message: Optional[str]) -> None:
        if not self._progress_callback:
            return
        self._progress_callback(
            ProgressUpdate(profile=self._profile, total=self._total, completed=self._completed, message=message)
        )


async def run_profile(
    profile: Profile,
    src: str,
    config: AppConfig,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    return await ProfileRunner(config, progress_callback).run(profile, src)


async def run_resize(
    request: ResizeRequest,
    config: AppConfig,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    return await ProfileRunner(config, progress_callback).run_resize(request)


def process_batch(
    profile_name: str,
    src: str,
    config: AppConfig,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    """同步入口：按名称查找 profile 并执行批处理。

    输出目录清空或源路径解析失败时直接抛出异常，不会生成任何文件。
    """

    profile = config.profile(profile_name)
    return asyncio.run(run_profile(profile, src, config, progress_callback))


def process_resize(
    request: ResizeRequest,
    config: AppConfig,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    """同步入口：执行单文件 resize。"""

    return asyncio.run(run_resize(request, config, progress_callback))
