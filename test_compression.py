"""
Tests for the compressed-variant pipeline and the bulk-operation context.
"""

import logging
from unittest.mock import Mock

from PIL import Image

from picture_slots.services.bulk import BulkOperation, ImportHooks
from picture_slots.services.compression import CompressionPipeline, resize_and_encode
from picture_slots.services.content_graph import ImageCatalog

logger = logging.getLogger(__name__)

OUTPUT = "Assets/PictureChanger/Compressed1023"


def _library(make_image, project_root):
    make_image("Assets/raw/VRChat_a.png", (1920, 1080))
    make_image("Assets/raw/VRChat_b.png", (1920, 1080), color="blue")
    make_image("Assets/raw/VRChat_c.png", (1080, 1920), color="green")
    make_image("Assets/raw/VRChat_d.png", (600, 900), color="white")
    return ImageCatalog(project_root).load_folder("Assets/raw", name_must_contain="vrchat")


def test_compress_writes_normalized_variants(project_root, make_image):
    catalog = ImageCatalog(project_root)
    library = _library(make_image, project_root)

    report = CompressionPipeline(catalog).compress(library, OUTPUT, 1023)

    assert report.landscape_count == 2
    assert report.portrait_count == 2
    assert report.skipped_existing == 0
    files = sorted(p.name for p in (project_root / OUTPUT).iterdir())
    assert files == [
        "VRChat_a_1022x575.png",
        "VRChat_b_1022x575.png",
        "VRChat_c_575x1022.png",
        "VRChat_d_600x900.png",
    ]
    for name in files:
        with Image.open(project_root / OUTPUT / name) as image:
            assert max(image.size) <= 1022
            assert image.format == "PNG"
    logger.info("✓ Variants written with long side below the limit")


def test_second_run_skips_everything(project_root, make_image):
    catalog = ImageCatalog(project_root)
    library = _library(make_image, project_root)
    pipeline = CompressionPipeline(catalog)
    pipeline.compress(library, OUTPUT, 1023)
    before = {p.name: p.stat().st_mtime_ns for p in (project_root / OUTPUT).iterdir()}

    report = pipeline.compress(library, OUTPUT, 1023)

    assert report.skipped_existing == len(library) == 4
    assert report.generated_count == 0
    after = {p.name: p.stat().st_mtime_ns for p in (project_root / OUTPUT).iterdir()}
    assert after == before
    logger.info("✓ Compression is idempotent")


def test_failure_is_isolated_to_one_image(project_root, make_image):
    catalog = ImageCatalog(project_root)
    library = _library(make_image, project_root)

    def flaky_resize(source, destination, width, height):
        if source.stem == "VRChat_b":
            destination.write_bytes(b"partial")
            raise OSError("disk full")
        resize_and_encode(source, destination, width, height)

    report = CompressionPipeline(catalog, resize=flaky_resize).compress(library, OUTPUT, 1023)

    assert report.failed == ["Assets/raw/VRChat_b.png"]
    assert report.generated_count == 3
    assert not (project_root / OUTPUT / "VRChat_b_1022x575.png").exists()


def test_cancellation_keeps_finished_work(project_root, make_image):
    catalog = ImageCatalog(project_root)
    library = _library(make_image, project_root)
    checks = iter([False, False, True])

    report = CompressionPipeline(catalog).compress(
        library, OUTPUT, 1023, should_cancel=lambda: next(checks)
    )

    assert report.cancelled is True
    assert report.generated_count == 2
    assert len(list((project_root / OUTPUT).iterdir())) == 2


def test_sanitized_output_name(project_root, make_image):
    catalog = ImageCatalog(project_root)
    make_image("Assets/raw/VRChat 2024|01.png", (100, 50))
    library = catalog.load_folder("Assets/raw")

    CompressionPipeline(catalog).compress(library, OUTPUT, 1023)

    assert (project_root / OUTPUT / "VRChat 2024_01_100x50.png").exists()


def test_import_hooks_deferred_during_bulk(project_root, make_image):
    catalog = ImageCatalog(project_root)
    library = _library(make_image, project_root)
    hooks = ImportHooks()
    seen = Mock()
    hooks.register(seen)

    with BulkOperation(hooks, name="test") as bulk:
        CompressionPipeline(catalog, hooks).compress(library, OUTPUT, 1023, bulk=bulk)
        assert seen.call_count == 0
        assert len(bulk.deferred) == 4

    assert seen.call_count == 4
    seen.assert_any_call(f"{OUTPUT}/VRChat_a_1022x575.png")
    logger.info("✓ Hook notifications replayed after the bulk operation")


def test_import_hooks_fire_immediately_without_bulk():
    hooks = ImportHooks()
    seen = Mock()
    hooks.register(seen)

    hooks.file_written("Assets/x.png")

    seen.assert_called_once_with("Assets/x.png")


def test_bulk_operation_released_on_error():
    hooks = ImportHooks()
    seen = Mock()
    hooks.register(seen)
    bulk = BulkOperation(hooks)

    try:
        with bulk:
            hooks.file_written("Assets/x.png", bulk)
            raise ValueError("boom")
    except ValueError:
        pass

    assert bulk.active is False
    seen.assert_called_once_with("Assets/x.png")


def test_failing_hook_does_not_stop_others():
    hooks = ImportHooks()
    broken = Mock(side_effect=RuntimeError("nope"))
    seen = Mock()
    hooks.register(broken)
    hooks.register(seen)

    hooks.file_written("Assets/x.png")

    seen.assert_called_once_with("Assets/x.png")
