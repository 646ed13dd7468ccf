"""各 profile 的端到端批处理测试。"""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from image_derivatives.core.config import AppConfig, PathsConfig, ResizeRequest
from image_derivatives.core.exceptions import DirectoryAccessError, SourceStatError
from image_derivatives.core.models import BatchState
from image_derivatives.core.output_manager import prepare_output_layout
from image_derivatives.core.progress import ProgressUpdate
from image_derivatives.processing.pipeline import process_batch, process_resize


@pytest.fixture()
def config(tmp_path: Path) -> AppConfig:
    app_config = AppConfig(
        paths=PathsConfig(source_root=tmp_path / "src-images", output_root=tmp_path / "output-images")
    )
    app_config.paths.source_root.mkdir()
    prepare_output_layout(app_config)
    return app_config


def make_image(path: Path, size: tuple[int, int], color: str = "blue") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path)
    return path


def image_size(path: Path) -> tuple[int, int]:
    with Image.open(path) as img:
        return img.size


def test_slide_profile_writes_each_breakpoint(config: AppConfig) -> None:
    make_image(config.paths.source_root / "banner.jpg", (400, 200))

    result = process_batch("slide", "banner.jpg", config)

    assert result.ok
    assert result.state is BatchState.DONE
    slide_dir = config.paths.output_root / "slide"
    expected = {"xs": 480, "sm": 640, "md": 800, "lg": 1600, "xl": 2000}
    assert sorted(p.name for p in slide_dir.iterdir()) == sorted(f"banner-{label}.jpg" for label in expected)
    for label, width in expected.items():
        assert image_size(slide_dir / f"banner-{label}.jpg") == (width, width // 2)


def test_slide3_profile_includes_hint_size(config: AppConfig) -> None:
    make_image(config.paths.source_root / "hero.png", (400, 200))

    result = process_batch("slide3", "hero.png", config)

    assert result.ok
    slide_dir = config.paths.output_root / "slide"
    assert len(list(slide_dir.iterdir())) == 6
    assert image_size(slide_dir / "hero-hint.png") == (25, 12)
    assert image_size(slide_dir / "hero-xl.png")[0] == 1334


def test_lifestyle_profile_scales_from_natural_width(config: AppConfig) -> None:
    make_image(config.paths.source_root / "photo.jpg", (1000, 600))

    result = process_batch("lifestyle", "photo.jpg", config)

    assert result.ok
    lifestyle = config.paths.output_root / "lifestyle"
    assert image_size(lifestyle / "photo.jpg") == (1000, 600)
    assert image_size(lifestyle / "photo@0,75x.jpg") == (750, 450)
    assert image_size(lifestyle / "photo@0,5x.jpg") == (500, 300)
    assert image_size(lifestyle / "photo@0,25x.jpg") == (250, 150)


def test_product_profile_writes_one_file_per_size_directory(config: AppConfig) -> None:
    make_image(config.paths.source_root / "shoe.jpg", (1000, 1000), "white")

    result = process_batch("product", "shoe.jpg", config)

    assert result.ok
    assert len(result.succeeded) == 4
    for width in (80, 125, 400, 800):
        directory = config.paths.output_root / "product" / str(width)
        assert [p.name for p in directory.iterdir()] == ["shoe.jpg"]
        assert image_size(directory / "shoe.jpg") == (width, width)


def test_swatch_profile_processes_whole_directory(config: AppConfig) -> None:
    make_image(config.paths.source_root / "swatches" / "red.png", (300, 300), "red")
    make_image(config.paths.source_root / "swatches" / "green.png", (200, 400), "green")

    result = process_batch("swatch", "swatches", config)

    assert result.ok
    swatch = config.paths.output_root / "swatch"
    assert sorted(p.name for p in swatch.iterdir()) == ["green.png", "red.png"]
    assert image_size(swatch / "red.png") == (100, 100)
    assert image_size(swatch / "green.png") == (100, 200)


def test_output_directory_is_reset_before_writing(config: AppConfig) -> None:
    swatch = config.paths.output_root / "swatch"
    (swatch / "stale.png").write_bytes(b"old")
    make_image(config.paths.source_root / "new.png", (200, 200))

    process_batch("swatch", "new.png", config)

    assert [p.name for p in swatch.iterdir()] == ["new.png"]


def test_output_format_follows_source_extension(config: AppConfig) -> None:
    make_image(config.paths.source_root / "tile.png", (300, 300))

    process_batch("swatch", "tile.png", config)

    with Image.open(config.paths.output_root / "swatch" / "tile.png") as img:
        assert img.format == "PNG"


def test_failures_are_collected_without_stopping_siblings(config: AppConfig) -> None:
    source = config.paths.source_root / "mixed"
    make_image(source / "good.jpg", (400, 200))
    (source / "broken.jpg").write_text("not an image")
    (source / "notes").write_text("no extension")

    updates: list[ProgressUpdate] = []
    result = process_batch("slide", "mixed", config, progress_callback=updates.append)

    assert result.state is BatchState.FAILED
    assert not result.ok
    assert len(result.succeeded) == 5
    assert {o.status for o in result.failed} == {"error-render", "error-path"}
    assert len([o for o in result.failed if o.status == "error-render"]) == 5

    slide_dir = config.paths.output_root / "slide"
    assert sorted(p.name for p in slide_dir.iterdir() if p.name.startswith("good")) == sorted(
        f"good-{label}.jpg" for label in ("xs", "sm", "md", "lg", "xl")
    )

    assert updates[-1].completed == updates[-1].total == 15
    assert updates[-1].finished
    assert {u.profile for u in updates} == {"slide"}


def test_undecodable_source_fails_width_query(config: AppConfig) -> None:
    (config.paths.source_root / "broken.jpg").write_text("not an image")

    result = process_batch("lifestyle", "broken.jpg", config)

    assert result.state is BatchState.FAILED
    assert [o.status for o in result.failed] == ["error-load"]
    assert list((config.paths.output_root / "lifestyle").iterdir()) == []


def test_missing_output_directory_aborts_before_rendering(tmp_path: Path) -> None:
    config = AppConfig(paths=PathsConfig(source_root=tmp_path / "src", output_root=tmp_path / "out"))
    make_image(config.paths.source_root / "photo.jpg", (100, 100))

    with pytest.raises(DirectoryAccessError):
        process_batch("swatch", "photo.jpg", config)

    assert not (tmp_path / "out").exists()


def test_missing_source_aborts_batch(config: AppConfig) -> None:
    with pytest.raises(SourceStatError):
        process_batch("slide", "missing.jpg", config)


def test_resize_replaces_existing_output(config: AppConfig) -> None:
    make_image(config.paths.source_root / "photo.jpg", (400, 300))
    existing = config.paths.output_root / "resize" / "photo.jpg"
    make_image(existing, (10, 10), "red")

    result = process_resize(ResizeRequest(src="photo.jpg", width=100), config)

    assert result.ok
    assert image_size(existing) == (100, 75)


def test_resize_with_height_crops_and_honours_filename(config: AppConfig) -> None:
    make_image(config.paths.source_root / "photo.jpg", (400, 300))

    result = process_resize(
        ResizeRequest(src="photo.jpg", width=120, height=120, position="top", filename="thumb.png"),
        config,
    )

    assert result.ok
    output = config.paths.output_root / "resize" / "thumb.png"
    with Image.open(output) as img:
        assert img.size == (120, 120)
        assert img.format == "PNG"


def test_resize_missing_source_is_reported(config: AppConfig) -> None:
    result = process_resize(ResizeRequest(src="missing.jpg", width=100), config)

    assert result.state is BatchState.FAILED
    assert [o.status for o in result.failed] == ["error-load"]


def test_resize_rejects_unknown_position(config: AppConfig) -> None:
    make_image(config.paths.source_root / "photo.jpg", (400, 300))

    result = process_resize(ResizeRequest(src="photo.jpg", width=100, height=100, position="sideways"), config)

    assert [o.status for o in result.failed] == ["error-render"]
