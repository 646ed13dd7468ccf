"""运行配置模型，启动时构建一次后只读传递。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from image_derivatives.core.exceptions import InvalidConfigurationError
from image_derivatives.core.profiles import RESIZE_SUBDIR, Profile, default_profiles


@dataclass(frozen=True, slots=True)
class PathsConfig:
    """源图根目录与输出根目录。"""

    source_root: Path = Path("src-images")
    output_root: Path = Path("output-images")


@dataclass(frozen=True, slots=True)
class EncodingConfig:
    """输出编码参数。"""

    jpeg_quality: int = 80
    optimize: bool = True

    def __post_init__(self) -> None:
        if not 1 <= self.jpeg_quality <= 100:
            raise InvalidConfigurationError(f"JPEG 质量必须在 1~100 之间: {self.jpeg_quality}")


@dataclass(frozen=True, slots=True)
class ResizeRequest:
    """resize profile 的临时尺寸请求。"""

    src: str
    width: int
    height: Optional[int] = None
    position: Optional[str] = None
    filename: Optional[str] = None

    def __post_init__(self) -> None:
        if self.width <= 0:
            raise InvalidConfigurationError(f"宽度必须大于 0: {self.width}")
        if self.height is not None and self.height <= 0:
            raise InvalidConfigurationError(f"高度必须大于 0: {self.height}")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """单次调用的配置集合。"""

    paths: PathsConfig = field(default_factory=PathsConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    profiles: Mapping[str, Profile] = field(default_factory=default_profiles)
    resize_subdir: str = RESIZE_SUBDIR

    def profile(self, name: str) -> Profile:
        try:
            return self.profiles[name]
        except KeyError as exc:
            valid = ", ".join(sorted(self.profiles))
            raise InvalidConfigurationError(f"未知的 profile: {name}（可选: {valid}）") from exc

    @property
    def resize_directory(self) -> Path:
        return self.paths.output_root / self.resize_subdir
