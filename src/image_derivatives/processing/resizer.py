"""图像缩放适配层：读取源文件、查询宽度、缩放并写出。"""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps

from image_derivatives.core.config import EncodingConfig
from image_derivatives.core.exceptions import InvalidConfigurationError, RenderError, SourceReadError

LOGGER = logging.getLogger(__name__)

# 兼容 sharp 的 position / gravity 写法，值为 ImageOps.fit 的 centering。
POSITIONS = {
    "centre": (0.5, 0.5),
    "center": (0.5, 0.5),
    "top": (0.5, 0.0),
    "north": (0.5, 0.0),
    "right top": (1.0, 0.0),
    "northeast": (1.0, 0.0),
    "right": (1.0, 0.5),
    "east": (1.0, 0.5),
    "right bottom": (1.0, 1.0),
    "southeast": (1.0, 1.0),
    "bottom": (0.5, 1.0),
    "south": (0.5, 1.0),
    "left bottom": (0.0, 1.0),
    "southwest": (0.0, 1.0),
    "left": (0.0, 0.5),
    "west": (0.0, 0.5),
    "left top": (0.0, 0.0),
    "northwest": (0.0, 0.0),
}

JPEG_COMPATIBLE_MODES = {"RGB", "L", "CMYK"}
DECODE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


def resolve_centering(position: Optional[str]) -> tuple[float, float]:
    """将位置提示转换为裁剪中心，未提供时居中。"""

    if position is None:
        return POSITIONS["centre"]
    key = " ".join(position.lower().split())
    try:
        return POSITIONS[key]
    except KeyError as exc:
        raise InvalidConfigurationError(f"未知的位置提示: {position}") from exc


async def load_source(directory: Path, filename: str) -> bytes:
    """读取完整的源文件内容。"""

    path = directory / filename
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as exc:
        raise SourceReadError(f"读取源文件失败: {path}") from exc


def _read_width(data: bytes) -> int:
    try:
        with Image.open(BytesIO(data)) as img:
            return img.width
    except DECODE_ERRORS as exc:
        raise RenderError(f"无法识别图像数据: {exc}") from exc


async def query_width(data: bytes) -> int:
    """只解析文件头，返回源图的自然宽度。"""

    return await asyncio.to_thread(_read_width, data)


def _output_format(destination: Path, source_format: Optional[str]) -> str:
    image_format = Image.registered_extensions().get(destination.suffix.lower())
    if image_format is None:
        image_format = source_format
    if not image_format:
        raise RenderError(f"不支持的输出格式: {destination.suffix}")
    return image_format


def _render(
    data: bytes,
    width: int,
    destination: Path,
    height: Optional[int],
    centering: tuple[float, float],
    encoding: EncodingConfig,
) -> tuple[int, int]:
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            source_format = img.format
            working: Image.Image = img
            if working.mode in {"1", "P"}:
                working = working.convert("RGBA" if "transparency" in working.info else "RGB")

            if height is None:
                target_height = max(1, round(working.height * width / working.width))
                resized = working.resize((width, target_height), Image.LANCZOS)
            else:
                resized = ImageOps.fit(working, (width, height), Image.LANCZOS, centering=centering)
    except DECODE_ERRORS as exc:
        raise RenderError(f"无法解码源图像: {exc}") from exc

    image_format = _output_format(destination, source_format)
    save_params: dict[str, object] = {}
    if image_format in {"JPEG", "PNG"}:
        save_params["optimize"] = encoding.optimize
    if image_format in {"JPEG", "WEBP"}:
        save_params["quality"] = encoding.jpeg_quality
    if image_format == "JPEG" and resized.mode not in JPEG_COMPATIBLE_MODES:
        resized = resized.convert("RGB")

    size = resized.size
    try:
        resized.save(destination, format=image_format, **save_params)
    except (OSError, ValueError, KeyError) as exc:
        raise RenderError(f"写入文件失败: {destination}") from exc
    finally:
        resized.close()
    return size


async def render_to(
    data: bytes,
    width: int,
    destination: Path,
    *,
    height: Optional[int] = None,
    position: Optional[str] = None,
    encoding: Optional[EncodingConfig] = None,
) -> tuple[int, int]:
    """缩放到目标宽度（未指定高度时保持宽高比）并按输出扩展名的格式写出。

    返回实际写出的 ``(宽, 高)``。
    """

    if width <= 0:
        raise RenderError(f"目标宽度必须为正整数: {width}")
    centering = resolve_centering(position)
    size = await asyncio.to_thread(
        _render, data, width, destination, height, centering, encoding or EncodingConfig()
    )
    LOGGER.debug("写出 %s (%dx%d)", destination, *size)
    return size
