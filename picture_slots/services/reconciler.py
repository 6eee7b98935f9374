"""
Cleanup of compressed variants that nothing references any more.

The referenced set is rebuilt from the content graph on every call. It is
wider than the slot bindings alone: besides picture-changer images and
material main images it also holds every other image-valued material
property (emission maps and the like). A variant used only that way is
kept, so the kept set can exceed what slots currently bind. Only image
files inside the compressed-output folder are ever candidates for deletion.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Set

from picture_slots.models.slots import DeletionReport
from picture_slots.services.content_graph import Container, ImageCatalog


logger = logging.getLogger(__name__)


def normalize_reference(path: str) -> str:
    """Comparison key for image paths: forward slashes, case-insensitive."""
    return path.replace("\\", "/").casefold()


class ReferenceReconciler:
    def __init__(self, catalog: ImageCatalog):
        self.catalog = catalog

    def referenced_paths(
        self,
        containers: Iterable[Container],
        should_cancel: Callable[[], bool] | None = None,
    ) -> Set[str] | None:
        """
        Normalized paths of every image referenced by any container.

        Returns None if cancelled, since a partial set is unsafe to delete against.
        """
        referenced: Set[str] = set()
        for container in containers:
            if should_cancel is not None and should_cancel():
                logger.info("Reference scan cancelled before %s", container.path)
                return None
            referenced.update(normalize_reference(p) for p in container.image_references())
        return referenced

    def reconcile(
        self,
        containers: Iterable[Container],
        compressed_folder: str,
        should_cancel: Callable[[], bool] | None = None,
    ) -> DeletionReport:
        """
        Delete every variant under `compressed_folder` that no container references.

        Any image reference counts, not only slot bindings; see the module
        docstring.

        Callers are responsible for confirming with the operator first.
        Individual deletion failures are logged and do not stop the run.
        """
        report = DeletionReport()
        referenced = self.referenced_paths(containers, should_cancel)
        if referenced is None:
            report.cancelled = True
            return report

        root = self.catalog.resolve(compressed_folder).resolve()
        for path in self.catalog.image_paths(compressed_folder):
            if should_cancel is not None and should_cancel():
                logger.info("Deletion cancelled before %s", path)
                report.cancelled = True
                break

            if normalize_reference(path) in referenced:
                report.kept_count += 1
                continue

            file = self.catalog.resolve(path)
            if not file.resolve().is_relative_to(root):
                logger.warning("Refusing to delete %s outside %s", path, compressed_folder)
                continue
            try:
                file.unlink()
            except OSError as exc:
                logger.error("Failed to delete %s: %s", path, exc)
                report.failed.append(path)
                continue
            self.catalog.invalidate(path)
            report.deleted.append(path)
            report.deleted_count += 1

        return report
