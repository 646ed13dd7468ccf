"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from image_derivatives.core.config import AppConfig, EncodingConfig, PathsConfig, ResizeRequest
from image_derivatives.core.exceptions import ImageDerivativesError, InvalidConfigurationError
from image_derivatives.core.models import BatchResult
from image_derivatives.core.output_manager import prepare_output_layout
from image_derivatives.core.profiles import ProfileName
from image_derivatives.core.progress import ProgressUpdate
from image_derivatives.core.report import write_csv_report
from image_derivatives.processing.pipeline import process_batch, process_resize
from image_derivatives.processing.resizer import resolve_centering
from image_derivatives.utils.logging import setup_logging

app = typer.Typer(help="按 profile 批量生成多尺寸衍生图。")

LOGGER = logging.getLogger(__name__)


def _build_config(source_root: Path, output_root: Path, jpeg_quality: int) -> AppConfig:
    try:
        return AppConfig(
            paths=PathsConfig(source_root=source_root.expanduser(), output_root=output_root.expanduser()),
            encoding=EncodingConfig(jpeg_quality=jpeg_quality),
        )
    except InvalidConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task(f"生成 {update.profile} 衍生图", total=update.total)
        progress.update(task_id, completed=update.completed)
        if update.finished:
            progress.update(task_id, description=f"{update.profile} 完成")

    return callback


def _build_resize_request(
    src: str,
    width: Optional[int],
    height: Optional[int],
    position: Optional[str],
    filename: Optional[str],
) -> ResizeRequest:
    if width is None:
        raise typer.BadParameter("resize 需要指定 --width")
    try:
        resolve_centering(position)
        return ResizeRequest(src=src, width=width, height=height, position=position, filename=filename)
    except InvalidConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command("run")
def run_cli(  # noqa: PLR0913
    profile: ProfileName = typer.Argument(..., help="profile：lifestyle/slide/slide3/product/swatch/resize"),
    src: str = typer.Argument(".", help="相对源图根目录的文件或目录"),
    width: Optional[int] = typer.Option(None, "--width", "-w", help="resize 目标宽度"),
    height: Optional[int] = typer.Option(None, "--height", "-h", help="resize 目标高度（指定后按位置裁剪填充）"),
    position: Optional[str] = typer.Option(None, "--position", "-p", help="resize 裁剪位置，如 top、right bottom"),
    gravity: Optional[str] = typer.Option(None, "--gravity", "-g", help="resize 裁剪方位，如 north、southeast"),
    filename: Optional[str] = typer.Option(None, "--filename", "-f", help="resize 输出文件名，默认沿用源文件名"),
    source_root: Path = typer.Option(Path("src-images"), "--source-root", help="源图根目录"),
    output_root: Path = typer.Option(Path("output-images"), "--output-root", help="输出根目录"),
    jpeg_quality: int = typer.Option(80, "--jpeg-quality", help="JPEG/WEBP 输出质量"),
    report: Optional[Path] = typer.Option(None, "--report", help="将每个输出的结果写入 CSV"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """执行一个 profile 的批处理。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    config = _build_config(source_root, output_root, jpeg_quality)
    LOGGER.debug("CLI 参数解析完成：profile=%s src=%s", profile.value, src)

    request: Optional[ResizeRequest] = None
    if profile is ProfileName.RESIZE:
        request = _build_resize_request(src, width, height, position or gravity, filename)
    elif any(value is not None for value in (width, height, position, gravity, filename)):
        LOGGER.warning("--width/--height/--position/--gravity/--filename 仅对 resize 生效，已忽略")

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
    )

    try:
        with progress:
            callback = _build_progress_callback(progress)
            if profile is ProfileName.RESIZE:
                result = process_resize(request, config, progress_callback=callback)
            else:
                result = process_batch(profile.value, src, config, progress_callback=callback)
    except ImageDerivativesError as exc:
        LOGGER.error("profile %s 执行失败：%s", profile.value, exc, exc_info=verbose)
        raise typer.Exit(code=1) from exc

    if report is not None:
        typer.echo(f"报告文件：{write_csv_report(result.all_outcomes(), report)}")
    _finish(result)


def _finish(result: BatchResult) -> None:
    if result.ok:
        typer.echo(f"done. 共生成 {len(result.succeeded)} 个文件。")
        return

    typer.echo(f"处理失败：成功 {len(result.succeeded)} 个，失败 {len(result.failed)} 项。", err=True)
    for outcome in result.failed:
        typer.echo(f"  [{outcome.status}] {outcome.source_path}: {outcome.message}", err=True)
    raise typer.Exit(code=1)


@app.command("profiles")
def list_profiles() -> None:
    """列出各 profile 的尺寸与输出目录。"""

    config = AppConfig()
    for profile in config.profiles.values():
        sizes = ", ".join(size.describe() for size in profile.sizes)
        layout = f"{profile.subdir}/<width>/" if profile.per_size_dirs else f"{profile.subdir}/"
        typer.echo(f"{profile.name:<10} {layout:<18} {sizes}")
    typer.echo(f"{ProfileName.RESIZE.value:<10} {config.resize_subdir + '/':<18} --width [--height] [--position]")


@app.command("init")
def init_layout(
    output_root: Path = typer.Option(Path("output-images"), "--output-root", help="输出根目录"),
) -> None:
    """创建各 profile 需要的输出目录。"""

    setup_logging()
    config = AppConfig(paths=PathsConfig(output_root=output_root.expanduser()))
    try:
        directories = prepare_output_layout(config)
    except ImageDerivativesError as exc:
        LOGGER.error("%s", exc)
        raise typer.Exit(code=1) from exc
    for directory in directories:
        typer.echo(str(directory))


if __name__ == "__main__":
    app()
