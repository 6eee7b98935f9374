"""
Compressed-variant generation.

Every source image is resized so that its long side is strictly below the
configured limit and written as PNG to the compressed-output folder. Output
names are deterministic (`{source}_{w}x{h}.png`), and an existing file with
that name is never rewritten, so repeated runs only add what is missing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable

from PIL import Image

from picture_slots.models.slots import GenerationReport, ImageAsset
from picture_slots.services.bulk import BulkOperation, ImportHooks
from picture_slots.services.content_graph import ImageCatalog
from picture_slots.services.sizing import scaled_size, variant_filename


logger = logging.getLogger(__name__)


def resize_and_encode(source: Path, destination: Path, width: int, height: int) -> None:
    """Resize `source` to exactly `width` x `height` and write it as PNG."""
    with Image.open(source) as image:
        image.load()
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA")
        resized = image.resize((width, height), Image.Resampling.LANCZOS)
    resized.save(destination, "PNG")


class CompressionPipeline:
    def __init__(
        self,
        catalog: ImageCatalog,
        hooks: ImportHooks | None = None,
        resize: Callable[[Path, Path, int, int], None] = resize_and_encode,
    ):
        self.catalog = catalog
        self.hooks = hooks or ImportHooks()
        self.resize = resize

    def compress(
        self,
        library: Iterable[ImageAsset],
        output_folder: str,
        max_long_side: int,
        bulk: BulkOperation | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> GenerationReport:
        """
        Generate missing variants for `library` into `output_folder`.

        Per-image failures are logged and skipped. `should_cancel` is polled
        before each image; variants already written stay on disk.
        """
        report = GenerationReport()
        out_dir = self.catalog.resolve(output_folder)
        out_dir.mkdir(parents=True, exist_ok=True)

        for source in library:
            if should_cancel is not None and should_cancel():
                logger.info("Compression cancelled before %s", source.path)
                report.cancelled = True
                break

            new_w, new_h = scaled_size(source.width, source.height, max_long_side)
            file_name = variant_filename(Path(source.path).stem, new_w, new_h)
            out_path = f"{output_folder}/{file_name}"
            destination = out_dir / file_name
            if destination.exists():
                report.skipped_existing += 1
                continue

            try:
                self.resize(self.catalog.resolve(source.path), destination, new_w, new_h)
            except Exception as exc:  # noqa: BLE001
                logger.error("Failed to generate %s from %s: %s", out_path, source.path, exc)
                report.failed.append(source.path)
                # A partial file would be mistaken for a finished variant next run.
                destination.unlink(missing_ok=True)
                continue

            self.hooks.file_written(out_path, bulk)
            if new_h > new_w:
                report.portrait_count += 1
            else:
                report.landscape_count += 1

        return report
