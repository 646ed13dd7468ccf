"""源路径解析：单个文件或目录下的全部文件。"""

from __future__ import annotations

import asyncio
import logging
import stat
from pathlib import Path

from image_derivatives.core.exceptions import SourceStatError
from image_derivatives.core.models import ResolvedBatch

LOGGER = logging.getLogger(__name__)


def _list_files(directory: Path) -> list[str]:
    """列出目录下的直接文件项，子目录被忽略。"""

    return [entry.name for entry in directory.iterdir() if not entry.is_dir()]


async def resolve_source(source_root: Path, src: str) -> ResolvedBatch:
    """将源参数解析为目录与文件名列表。

    ``src`` 指向文件时返回 ``files=[文件名]`` 与其父目录；指向目录时返回目录下按名称
    排序（忽略大小写）的文件列表。
    """

    candidate = source_root / src
    try:
        info = await asyncio.to_thread(candidate.stat)
    except OSError as exc:
        raise SourceStatError(f"源路径不存在: {candidate}") from exc

    if not stat.S_ISDIR(info.st_mode):
        return ResolvedBatch(directory=candidate.parent, files=(candidate.name,))

    try:
        names = await asyncio.to_thread(_list_files, candidate)
    except OSError as exc:
        raise SourceStatError(f"无法列出源目录: {candidate}") from exc

    names.sort(key=str.lower)
    LOGGER.debug("源目录 %s 下发现 %d 个文件", candidate, len(names))
    return ResolvedBatch(directory=candidate, files=tuple(names))
