"""尺寸策略表：每个 profile 的尺寸、命名与输出目录规则。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from image_derivatives.core.exceptions import InvalidConfigurationError
from image_derivatives.core.models import FilenameParts
from image_derivatives.core.naming import build_labeled_name, build_plain_name, build_ratio_name


class ProfileName(str, Enum):
    """可选的 profile。"""

    LIFESTYLE = "lifestyle"
    SLIDE = "slide"
    SLIDE3 = "slide3"
    PRODUCT = "product"
    SWATCH = "swatch"
    RESIZE = "resize"


class NamingRule(str, Enum):
    RATIO = "ratio"
    LABELED = "labeled"
    PLAIN = "plain"


@dataclass(frozen=True, slots=True)
class Ratio:
    """相对源图宽度的缩放比例。"""

    value: float

    def describe(self) -> str:
        return f"x{self.value:g}"


@dataclass(frozen=True, slots=True)
class Breakpoint:
    """具名的绝对宽度。"""

    label: str
    width: int

    def describe(self) -> str:
        return f"{self.label}={self.width}px"


@dataclass(frozen=True, slots=True)
class FixedWidth:
    """无标签的绝对宽度。"""

    width: int

    def describe(self) -> str:
        return f"{self.width}px"


SizeSpec = Union[Ratio, Breakpoint, FixedWidth]

_NAMING_KINDS = {
    NamingRule.RATIO: Ratio,
    NamingRule.LABELED: Breakpoint,
    NamingRule.PLAIN: FixedWidth,
}


@dataclass(frozen=True, slots=True)
class PlannedOutput:
    """单个尺寸对应的输出位置与目标宽度。"""

    directory: Path
    filename: str
    width: int


@dataclass(frozen=True, slots=True)
class Profile:
    """一个 profile 的完整策略。

    ``per_size_dirs`` 为真时每个宽度写入 ``<subdir>/<width>/``，文件名共用。
    """

    name: str
    subdir: str
    sizes: tuple[SizeSpec, ...]
    naming: NamingRule
    per_size_dirs: bool = False

    def __post_init__(self) -> None:
        if not self.sizes:
            raise InvalidConfigurationError(f"profile {self.name} 未配置任何尺寸")

        if self.per_size_dirs and self.naming is NamingRule.RATIO:
            raise InvalidConfigurationError(f"profile {self.name} 的比例尺寸不能按宽度分目录")

        expected = _NAMING_KINDS[self.naming]
        for size in self.sizes:
            if not isinstance(size, expected):
                raise InvalidConfigurationError(
                    f"profile {self.name} 的命名规则 {self.naming.value} 不接受尺寸 {size!r}"
                )
            if isinstance(size, Ratio):
                if size.value <= 0:
                    raise InvalidConfigurationError(f"比例必须大于 0: {size.value}")
            elif size.width <= 0:
                raise InvalidConfigurationError(f"宽度必须大于 0: {size.width}")

        probe = FilenameParts(basename="probe", extension="jpg")
        targets = [(self._directory_for(Path("."), size), self._filename_for(probe, size)) for size in self.sizes]
        if len(set(targets)) != len(targets):
            raise InvalidConfigurationError(f"profile {self.name} 存在重名输出文件")

    @property
    def needs_source_width(self) -> bool:
        return any(isinstance(size, Ratio) for size in self.sizes)

    def output_directories(self, output_root: Path) -> list[Path]:
        """返回该 profile 会写入的全部目录（去重且保持顺序）。"""

        directories: list[Path] = []
        for size in self.sizes:
            directory = self._directory_for(output_root, size)
            if directory not in directories:
                directories.append(directory)
        return directories

    def plan(
        self,
        parts: FilenameParts,
        output_root: Path,
        source_width: Optional[int] = None,
    ) -> list[PlannedOutput]:
        """为单个源文件计算每个尺寸的输出目录、文件名与宽度。"""

        if self.needs_source_width and (source_width is None or source_width <= 0):
            raise InvalidConfigurationError(f"profile {self.name} 需要源图宽度")

        planned: list[PlannedOutput] = []
        for size in self.sizes:
            if isinstance(size, Ratio):
                width = max(1, round(source_width * size.value))
            else:
                width = size.width
            planned.append(
                PlannedOutput(
                    directory=self._directory_for(output_root, size),
                    filename=self._filename_for(parts, size),
                    width=width,
                )
            )
        return planned

    def _directory_for(self, output_root: Path, size: SizeSpec) -> Path:
        base = output_root / self.subdir
        if self.per_size_dirs:
            return base / str(size.width)
        return base

    def _filename_for(self, parts: FilenameParts, size: SizeSpec) -> str:
        if self.naming is NamingRule.RATIO:
            return build_ratio_name(parts.basename, parts.extension, size.value)
        if self.naming is NamingRule.LABELED:
            return build_labeled_name(parts.basename, parts.extension, size.label)
        return build_plain_name(parts.basename, parts.extension)


def breakpoints(table: Mapping[str, int]) -> tuple[Breakpoint, ...]:
    return tuple(Breakpoint(label=label, width=width) for label, width in table.items())


def fixed_widths(widths: Sequence[int]) -> tuple[FixedWidth, ...]:
    return tuple(FixedWidth(width=width) for width in widths)


LIFESTYLE_RATIOS = (1, 0.75, 0.5, 0.25)
SLIDE_BREAKPOINTS = {"xs": 480, "sm": 640, "md": 800, "lg": 1600, "xl": 2000}
SLIDE3_BREAKPOINTS = {"hint": 25, "xs": 200, "sm": 400, "md": 600, "lg": 800, "xl": 1334}
PRODUCT_WIDTHS = (80, 125, 400, 800)
SWATCH_WIDTHS = (100,)
RESIZE_SUBDIR = "resize"


def default_profiles() -> dict[str, Profile]:
    """构建默认的 profile 表（resize 为临时尺寸，不在表内）。"""

    profiles = [
        Profile(
            name=ProfileName.LIFESTYLE.value,
            subdir="lifestyle",
            sizes=tuple(Ratio(value=ratio) for ratio in LIFESTYLE_RATIOS),
            naming=NamingRule.RATIO,
        ),
        Profile(
            name=ProfileName.SLIDE.value,
            subdir="slide",
            sizes=breakpoints(SLIDE_BREAKPOINTS),
            naming=NamingRule.LABELED,
        ),
        Profile(
            name=ProfileName.SLIDE3.value,
            subdir="slide",
            sizes=breakpoints(SLIDE3_BREAKPOINTS),
            naming=NamingRule.LABELED,
        ),
        Profile(
            name=ProfileName.PRODUCT.value,
            subdir="product",
            sizes=fixed_widths(PRODUCT_WIDTHS),
            naming=NamingRule.PLAIN,
            per_size_dirs=True,
        ),
        Profile(
            name=ProfileName.SWATCH.value,
            subdir="swatch",
            sizes=fixed_widths(SWATCH_WIDTHS),
            naming=NamingRule.PLAIN,
        ),
    ]
    return {profile.name: profile for profile in profiles}
