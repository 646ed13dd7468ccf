"""输出文件名编解码规则。"""

from __future__ import annotations

from pathlib import PurePath
from typing import Union

from image_derivatives.core.exceptions import InvalidPathError
from image_derivatives.core.models import FilenameParts

PathLike = Union[str, PurePath]


def split_filename(path: PathLike) -> FilenameParts:
    """拆分路径最后一段为基础名与扩展名（扩展名不含点）。"""

    name = PurePath(path).name
    basename, dot, extension = name.rpartition(".")
    if not dot or not basename or not extension:
        raise InvalidPathError(f"无法解析文件名: {path!s}")
    return FilenameParts(basename=basename, extension=extension)


def build_ratio_name(basename: str, extension: str, ratio: float) -> str:
    """按设备像素比后缀规则生成文件名，例如 0.75 -> photo@0,75x.jpg。"""

    if ratio == 1:
        return build_plain_name(basename, extension)
    return f"{basename}@{format_ratio(ratio).replace('.', ',')}x.{extension}"


def build_labeled_name(basename: str, extension: str, label: str) -> str:
    return f"{basename}-{label}.{extension}"


def build_plain_name(basename: str, extension: str) -> str:
    return f"{basename}.{extension}"


def format_ratio(ratio: float) -> str:
    """以最短形式输出比例：2.0 -> "2"，0.75 -> "0.75"。"""

    value = float(ratio)
    if value.is_integer():
        return str(int(value))
    return repr(value)
