"""
Slot discovery and size classification.

Walks every node of every container and builds a `Slot` for each picture
holder:

- picture-changer nodes, which carry an ordered image list;
- standalone `Picture` nodes with a renderer, whose image is the material's
  main image.

Scanning is a pure read of the content graph.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Sequence, Tuple

from picture_slots.models.slots import (
    SIZE_GROUP_MIXED,
    SIZE_GROUP_UNKNOWN,
    Slot,
    SlotKind,
)
from picture_slots.services.content_graph import Container, ContentNode, ImageCatalog
from picture_slots.services.orientation import OrientationClassifier


logger = logging.getLogger(__name__)

PICTURE_NODE_NAME = "Picture"


def classify_size_group(sizes: Sequence[Tuple[int, int]]) -> str:
    """`WxH` when every size matches, `Mixed` when they differ, `Unknown` when empty."""
    if not sizes:
        return SIZE_GROUP_UNKNOWN
    widths = {w for w, _ in sizes}
    heights = {h for _, h in sizes}
    if len(widths) == 1 and len(heights) == 1:
        w, h = sizes[0]
        return f"{w}x{h}"
    return SIZE_GROUP_MIXED


def is_picture_node(node: ContentNode) -> bool:
    return node.name == PICTURE_NODE_NAME and node.renderer is not None


class SlotCatalogScanner:
    def __init__(self, catalog: ImageCatalog, classifier: OrientationClassifier | None = None):
        self.catalog = catalog
        self.classifier = classifier or OrientationClassifier()

    def scan(
        self,
        containers: Iterable[Container],
        should_cancel: Callable[[], bool] | None = None,
    ) -> List[Slot]:
        """
        Build one slot per qualifying node across `containers`.

        `should_cancel` is polled before each container; slots collected so
        far are returned when it fires.
        """
        slots: List[Slot] = []
        for container in containers:
            if should_cancel is not None and should_cancel():
                logger.info("Scan cancelled before %s", container.path)
                break
            slots.extend(self.scan_container(container))
        return slots

    def scan_container(self, container: Container) -> List[Slot]:
        slots: List[Slot] = []
        for node in container.iter_nodes():
            if node.is_picture_changer:
                slots.append(self.build_changer_slot(node, container))
            # A node can be both kinds; each gets its own slot.
            if is_picture_node(node):
                slots.append(self.build_picture_slot(node, container))
        return slots

    def _material_fallback_sizes(self, node: ContentNode) -> List[Tuple[int, int]]:
        """Main image of the first renderer, else its first image-valued property."""
        renderer_node = node.first_renderer_node()
        if renderer_node is None:
            return []

        main = self.catalog.get(renderer_node.main_image_path())
        if main is not None:
            return [main.size]

        for material in renderer_node.materials():
            for path in (material.get("images") or {}).values():
                asset = self.catalog.get(path)
                if asset is not None:
                    return [asset.size]
        return []

    def build_changer_slot(self, node: ContentNode, container: Container) -> Slot:
        images = [
            asset
            for asset in (self.catalog.get(path) for path in node.bound_image_paths())
            if asset is not None
        ]
        sizes = [image.size for image in images]
        if not sizes:
            sizes = self._material_fallback_sizes(node)

        return Slot(
            hierarchy_path=node.hierarchy_path,
            container_path=container.path,
            container_kind=container.kind,
            kind=SlotKind.CHANGER,
            images=images,
            sizes=sizes,
            binding_count=len(node.bound_image_paths()),
            size_group=classify_size_group(sizes),
            portrait=self.classifier.classify(node),
            node=node,
            container=container,
        )

    def build_picture_slot(self, node: ContentNode, container: Container) -> Slot:
        main = self.catalog.get(node.main_image_path())
        images = [main] if main is not None else []
        sizes = [image.size for image in images]

        return Slot(
            hierarchy_path=node.hierarchy_path,
            container_path=container.path,
            container_kind=container.kind,
            kind=SlotKind.PICTURE,
            images=images,
            sizes=sizes,
            binding_count=len(images),
            size_group=classify_size_group(sizes),
            portrait=self.classifier.classify(node),
            node=node,
            container=container,
        )
