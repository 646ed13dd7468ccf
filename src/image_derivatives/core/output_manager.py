"""输出目录的清空与布局准备。"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from image_derivatives.core.config import AppConfig
from image_derivatives.core.exceptions import DirectoryAccessError

LOGGER = logging.getLogger(__name__)


async def reset_directory(directory: Path) -> None:
    """删除目录下的全部直接子项（不递归），目录必须已存在。

    所有删除并发执行并全部等待完成；任意一项失败时整体抛出 ``DirectoryAccessError``。
    """

    try:
        entries = await asyncio.to_thread(os.listdir, directory)
    except OSError as exc:
        raise DirectoryAccessError(f"无法列出输出目录: {directory}") from exc

    if not entries:
        LOGGER.debug("输出目录已为空：%s", directory)
        return

    results = await asyncio.gather(
        *(asyncio.to_thread(os.unlink, directory / entry) for entry in entries),
        return_exceptions=True,
    )
    errors = [(entry, result) for entry, result in zip(entries, results) if isinstance(result, BaseException)]
    if errors:
        for entry, error in errors:
            LOGGER.error("删除失败：%s (%s)", directory / entry, error)
        first = errors[0][1]
        raise DirectoryAccessError(f"清空输出目录失败: {directory}（{len(errors)} 项删除失败）") from first

    LOGGER.debug("已清空输出目录 %s，共删除 %d 项", directory, len(entries))


async def remove_if_exists(path: Path) -> bool:
    """删除单个输出文件，文件不存在时返回 False。"""

    try:
        await asyncio.to_thread(os.unlink, path)
    except FileNotFoundError:
        LOGGER.debug("无需删除，文件不存在：%s", path)
        return False
    except OSError as exc:
        raise DirectoryAccessError(f"无法删除已有输出: {path}") from exc
    return True


def prepare_output_layout(config: AppConfig) -> list[Path]:
    """创建输出根目录及各 profile 的输出子目录，返回全部目录。"""

    output_root = config.paths.output_root
    directories: list[Path] = []
    for profile in config.profiles.values():
        for directory in profile.output_directories(output_root):
            if directory not in directories:
                directories.append(directory)
    directories.append(config.resize_directory)

    for directory in directories:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DirectoryAccessError(f"无法创建输出目录: {directory}") from exc
    return directories
