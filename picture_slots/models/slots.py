from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Tuple

if TYPE_CHECKING:
    from picture_slots.services.content_graph import Container, ContentNode


SIZE_GROUP_MIXED = "Mixed"
SIZE_GROUP_UNKNOWN = "Unknown"


class ContainerKind(str, Enum):
    """Kind of content container a slot lives in."""

    TEMPLATE = "template"
    SCENE = "scene"

    @property
    def label(self) -> str:
        return "Prefab" if self is ContainerKind.TEMPLATE else "Scene"


class SlotKind(str, Enum):
    """
    How a slot holds its images.

    CHANGER slots carry an ordered list of images; PICTURE slots are plain
    `Picture` meshes whose single image is the material's main image.
    """

    CHANGER = "changer"
    PICTURE = "picture"

    @property
    def label(self) -> str:
        return "PictureChanger" if self is SlotKind.CHANGER else "Picture Material"


@dataclass(frozen=True, slots=True)
class ImageAsset:
    """An image file known to the catalog. `path` is project-relative POSIX."""

    path: str
    width: int
    height: int
    name: str

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def is_portrait(self) -> bool:
        # Square images count as landscape.
        return self.height > self.width


@dataclass(slots=True)
class Slot:
    """
    One picture-holding node found during a scan.

    Created fresh on every scan. Only the assignment engine mutates it, via
    `apply()`, which also writes the new bindings back to the node.
    """

    hierarchy_path: str
    container_path: str
    container_kind: ContainerKind
    kind: SlotKind
    images: List[ImageAsset] = field(default_factory=list)
    # Dimensions used for size classification. Usually those of `images`,
    # but may come from the node's material when nothing is bound.
    sizes: List[Tuple[int, int]] = field(default_factory=list)
    # Length of the stored binding list, empty entries included.
    binding_count: int = 0
    size_group: str = SIZE_GROUP_UNKNOWN
    portrait: bool = True
    node: "ContentNode | None" = field(default=None, repr=False, compare=False)
    container: "Container | None" = field(default=None, repr=False, compare=False)

    @property
    def location(self) -> str:
        return f"{self.container_path}:{self.hierarchy_path}"

    @property
    def desired_count(self) -> int:
        if self.kind is SlotKind.PICTURE:
            return 1
        return self.binding_count or len(self.images) or 1

    @property
    def bindable(self) -> bool:
        """False for a `Picture` node without a material to hold its image."""
        if self.kind is SlotKind.CHANGER or self.node is None:
            return True
        return bool(self.node.materials())

    def apply(self, images: List[ImageAsset]) -> None:
        """Replace the bound images and mark the owning container dirty."""
        self.images = list(images)
        self.binding_count = len(self.images)
        if self.node is not None:
            self.node.set_bound_images([image.path for image in self.images], self.kind)
        if self.container is not None:
            self.container.dirty = True


@dataclass(slots=True)
class GenerationReport:
    """Outcome of one compression pass."""

    portrait_count: int = 0
    landscape_count: int = 0
    skipped_existing: int = 0
    failed: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def generated_count(self) -> int:
        return self.portrait_count + self.landscape_count


@dataclass(slots=True)
class AssignmentReport:
    """Outcome of assigning images across one or more containers."""

    assigned_slots: int = 0
    skipped_slots: int = 0
    updated_containers: List[str] = field(default_factory=list)
    cancelled: bool = False


@dataclass(slots=True)
class DeletionReport:
    """Outcome of reconciling the compressed folder against live references."""

    deleted_count: int = 0
    kept_count: int = 0
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    cancelled: bool = False


@dataclass(slots=True)
class ScanReport:
    """Outcome of the scan-and-report command."""

    slots: List[Slot] = field(default_factory=list)
    report_path: str | None = None
    created_folders: List[str] = field(default_factory=list)
    cancelled: bool = False
