"""
Operator commands for the picture slot tools.

Each command is a one-shot batch: scan and report, compress and randomly
assign, clean unreferenced variants, and bind a slot from its size folder.
Commands that write files or rewrite bindings require explicit confirmation
and accept a `should_cancel` callable that is polled between units of work.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, List, Tuple

from picture_slots.config import ENV_FILE, Settings, load_settings
from picture_slots.models.slots import (
    AssignmentReport,
    ContainerKind,
    DeletionReport,
    GenerationReport,
    ScanReport,
    Slot,
    SlotKind,
)
from picture_slots.services.assignment import RandomAssignmentEngine, build_pools
from picture_slots.services.bulk import BulkOperation, ImportHooks
from picture_slots.services.compression import CompressionPipeline
from picture_slots.services.content_graph import ContentGraphError, ContentStore, ImageCatalog
from picture_slots.services.orientation import OrientationClassifier
from picture_slots.services.reconciler import ReferenceReconciler
from picture_slots.services.report import write_usage_report
from picture_slots.services.scanner import SlotCatalogScanner
from picture_slots.services.sizing import parse_size_group


logger = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


class PictureSlotError(RuntimeError):
    """Base class for command failures that abort the whole operation."""


class InputFolderMissingError(PictureSlotError):
    """Raised when the raw image folder does not exist."""


class NoSourceImagesError(PictureSlotError):
    """Raised when no source image passes the name filter."""


class ConfirmationRequiredError(PictureSlotError):
    """Raised when a destructive command is invoked without confirmation."""


class SlotNotFoundError(PictureSlotError):
    """Raised when a container or slot lookup fails."""


class SizeGroupUnresolvedError(PictureSlotError):
    """Raised when a slot has no literal `WxH` size group to bind from."""


def _never_cancel() -> bool:
    return False


class PictureSlotService:
    """
    Wires the content store, image catalog and core services together.

    The catalog's cache invalidation is registered as an import hook, so
    files written during a bulk operation are re-read once it ends.
    """

    def __init__(
        self,
        settings: Settings,
        store: ContentStore | None = None,
        catalog: ImageCatalog | None = None,
        hooks: ImportHooks | None = None,
    ) -> None:
        self.settings = settings.with_overrides(project_root=settings.project_root.resolve())
        self.hooks = hooks or ImportHooks()
        self.catalog = catalog or ImageCatalog(self.settings.project_root)
        self.hooks.register(self.catalog.invalidate)
        self.store = store or ContentStore(self.settings.content_path)
        self.scanner = SlotCatalogScanner(self.catalog, OrientationClassifier())
        self.pipeline = CompressionPipeline(self.catalog, self.hooks)
        self.engine = RandomAssignmentEngine(self.settings.frame_marker)
        self.reconciler = ReferenceReconciler(self.catalog)

    def _verbose(self, message: str, *args) -> None:
        if self.settings.verbose_logging:
            logger.info(message, *args)

    def list_slots(self) -> List[Slot]:
        return self.scanner.scan(self.store.iter_containers())

    def ensure_size_folder(self, size_group: str) -> str | None:
        """Create `<root>/<size_group>` if needed; returns its path when newly created."""
        folder = f"{self.settings.root_folder}/{size_group}"
        path = self.settings.resolve(folder)
        if path.is_dir():
            return None
        path.mkdir(parents=True, exist_ok=True)
        self._verbose("Created folder: %s", folder)
        return folder

    def scan_and_report(self, should_cancel: CancelCheck = _never_cancel) -> ScanReport:
        """
        Scan every container, write the usage report and create size folders.

        A cancelled scan still reports what was collected before cancellation.
        """
        cancelled = False

        def check() -> bool:
            nonlocal cancelled
            cancelled = cancelled or should_cancel()
            return cancelled

        slots = self.scanner.scan(self.store.iter_containers(), check)
        result = ScanReport(slots=slots, cancelled=cancelled)

        report_file = self.settings.resolve(self.settings.report_path)
        if write_usage_report(slots, report_file):
            result.report_path = self.settings.report_path
            self._verbose("Report written: %s", report_file)

        groups = sorted({s.size_group for s in slots if parse_size_group(s.size_group) is not None})
        for group in groups:
            created = self.ensure_size_folder(group)
            if created:
                result.created_folders.append(created)

        for slot in slots:
            if parse_size_group(slot.size_group) is None and self.engine.is_eligible(slot):
                logger.warning(
                    "Size unknown for %s in %s. Orientation will come from names or geometry "
                    "(%s) during random-assign.",
                    slot.hierarchy_path,
                    slot.container_path,
                    "portrait" if slot.portrait else "landscape",
                )
        return result

    def compress_and_assign(
        self,
        confirm: bool,
        seed: int | None = None,
        should_cancel: CancelCheck = _never_cancel,
    ) -> Tuple[GenerationReport, AssignmentReport]:
        """
        Generate compressed variants from the raw pool, then randomly bind
        them to every frame slot in composed scenes.
        """
        if not confirm:
            raise ConfirmationRequiredError("Random assign rewrites scene bindings; confirmation required.")

        folder = self.settings.random_input_folder
        if not self.catalog.is_folder(folder):
            logger.warning("Folder not found: %s", folder)
            raise InputFolderMissingError(f"Folder not found: {folder}")

        rng = random.Random(seed)
        with BulkOperation(self.hooks, name="compress-and-assign") as bulk:
            library = self.catalog.load_folder(folder, name_must_contain=self.settings.name_filter)
            if not library:
                logger.warning(
                    "No images containing '%s' in name under %s", self.settings.name_filter, folder
                )
                raise NoSourceImagesError(
                    f"No images containing '{self.settings.name_filter}' in name under {folder}"
                )

            generation = self.pipeline.compress(
                library,
                self.settings.compressed_folder,
                self.settings.max_long_side,
                bulk=bulk,
                should_cancel=should_cancel,
            )
            self._verbose(
                "%s generated: portrait=%d, landscape=%d, skipped-existing=%d",
                self.settings.compressed_folder_name,
                generation.portrait_count,
                generation.landscape_count,
                generation.skipped_existing,
            )
            if generation.cancelled:
                return generation, AssignmentReport(cancelled=True)

            assignment = self._assign_scenes(rng, should_cancel)

        logger.info(
            "Random-assigned images to %d slot(s) in %d scene(s).",
            assignment.assigned_slots,
            len(assignment.updated_containers),
        )
        return generation, assignment

    def _assign_scenes(self, rng: random.Random, should_cancel: CancelCheck) -> AssignmentReport:
        report = AssignmentReport()
        variants = self.catalog.load_folder(self.settings.compressed_folder)
        pools = build_pools(variants, rng)

        for container in self.store.iter_containers(ContainerKind.SCENE):
            if should_cancel():
                logger.info("Assignment cancelled before %s", container.path)
                report.cancelled = True
                break

            slots = self.scanner.scan_container(container)
            eligible = [s for s in slots if self.engine.is_eligible(s)]
            updated = self.engine.assign(eligible, pools, rng)
            report.assigned_slots += len(updated)
            report.skipped_slots += len(eligible) - len(updated)
            if not container.dirty:
                continue
            try:
                container.save()
            except ContentGraphError as exc:
                logger.error("%s", exc)
                continue
            report.updated_containers.append(container.path)
        return report

    def clean_unreferenced(
        self,
        confirm: bool,
        should_cancel: CancelCheck = _never_cancel,
    ) -> DeletionReport:
        """Delete compressed variants that no container references. Irreversible."""
        if not confirm:
            raise ConfirmationRequiredError("Deleting unreferenced variants cannot be undone; confirmation required.")

        compressed = self.settings.compressed_folder
        if not self.catalog.is_folder(compressed):
            logger.info("Nothing to clean, %s does not exist", compressed)
            return DeletionReport()

        report = self.reconciler.reconcile(self.store.iter_containers(), compressed, should_cancel)
        logger.info(
            "Cleaned %d unreferenced compressed images. Kept referenced=%d.",
            report.deleted_count,
            report.kept_count,
        )
        return report

    def bind_from_size_folder(self, container_path: str, hierarchy_path: str) -> Slot:
        """
        Bind a picture-changer slot to every image in its size-group folder.

        Images are ordered by path, case-insensitively. The container is
        saved immediately.
        """
        container = self.store.find(container_path)
        if container is None:
            raise SlotNotFoundError(f"Container not found: {container_path}")

        slot = next(
            (
                s
                for s in self.scanner.scan_container(container)
                if s.kind is SlotKind.CHANGER and s.hierarchy_path == hierarchy_path
            ),
            None,
        )
        if slot is None:
            raise SlotNotFoundError(f"No picture changer at {hierarchy_path} in {container_path}")

        if parse_size_group(slot.size_group) is None:
            raise SizeGroupUnresolvedError(
                f"Cannot infer size folder for {slot.location} (size group {slot.size_group})"
            )

        self.ensure_size_folder(slot.size_group)
        folder = f"{self.settings.root_folder}/{slot.size_group}"
        images = sorted(self.catalog.load_folder(folder), key=lambda a: a.path.casefold())
        slot.apply(images)
        container.save()
        return slot


_default_service: PictureSlotService | None = None


def get_picture_slot_service() -> PictureSlotService:
    """
    Return the process-wide service, built from environment settings on first use.

    Tests can replace it through FastAPI's dependency overrides.
    """
    global _default_service
    if _default_service is None:
        _default_service = PictureSlotService(load_settings(ENV_FILE))
    return _default_service
