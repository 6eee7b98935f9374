"""
JSON-backed content graph and image catalog.

Containers (templates and composed scenes) are JSON documents stored under
the content directory:

    content/templates/**/*.json   -> ContainerKind.TEMPLATE
    content/scenes/**/*.json      -> ContainerKind.SCENE

Each document holds `{"roots": [node, ...]}` where a node looks like:

    {
        "name": "P_PictureFrame_Vertical",
        "scale": [1.0, 1.0, 1.0],
        "renderer": {
            "mesh_bounds": [1.0, 1.5, 0.02],
            "materials": [{"main_image": "Assets/...png", "images": {"_EmissionMap": "..."}}]
        },
        "picture_changer": {"images": ["Assets/...png", null]},
        "children": [...]
    }

Every key except `name` is optional. Image references are POSIX paths
relative to the project root. Mutations go through `ContentNode` so the
underlying document stays the source of truth when a container is saved.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterator, List

import numpy as np
from PIL import Image, UnidentifiedImageError

from picture_slots.models.slots import ContainerKind, ImageAsset, SlotKind


logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tga", ".bmp", ".gif", ".tif", ".tiff", ".webp"}

_KIND_DIRS = {
    ContainerKind.TEMPLATE: "templates",
    ContainerKind.SCENE: "scenes",
}


class ContentGraphError(RuntimeError):
    """Raised when a container document cannot be read or written."""


def as_vector(value, default: float = 1.0) -> np.ndarray:
    if value is None:
        return np.full(3, default, dtype=float)
    values = [float(v) for v in value][:3]
    while len(values) < 3:
        values.append(default)
    return np.array(values, dtype=float)


class ContentNode:
    """A node in a container's hierarchy, wrapping its JSON document."""

    def __init__(self, data: dict, parent: "ContentNode | None" = None):
        self.data = data
        self.parent = parent
        self.name: str = str(data.get("name", ""))
        self.children: List[ContentNode] = [
            ContentNode(child, parent=self) for child in data.get("children") or []
        ]

    @property
    def local_scale(self) -> np.ndarray:
        return as_vector(self.data.get("scale"))

    @property
    def world_scale(self) -> np.ndarray:
        """Accumulated scale from the root down to this node."""
        scale = self.local_scale
        node = self.parent
        while node is not None:
            scale = scale * node.local_scale
            node = node.parent
        return scale

    @property
    def hierarchy_path(self) -> str:
        return "/".join(node.name for node in reversed(list(self.ancestors())))

    @property
    def renderer(self) -> dict | None:
        return self.data.get("renderer")

    @property
    def is_picture_changer(self) -> bool:
        return self.data.get("picture_changer") is not None

    def ancestors(self) -> Iterator["ContentNode"]:
        """Yield this node and then each parent up to the root."""
        node: ContentNode | None = self
        while node is not None:
            yield node
            node = node.parent

    def walk(self) -> Iterator["ContentNode"]:
        """Depth-first walk over this node and all descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def first_renderer_node(self) -> "ContentNode | None":
        for node in self.walk():
            if node.renderer is not None:
                return node
        return None

    def bound_image_paths(self) -> List[str | None]:
        changer = self.data.get("picture_changer") or {}
        return list(changer.get("images") or [])

    def materials(self) -> List[dict]:
        renderer = self.renderer or {}
        return [m for m in renderer.get("materials") or [] if m is not None]

    def main_image_path(self) -> str | None:
        materials = self.materials()
        if not materials:
            return None
        return materials[0].get("main_image")

    def set_bound_images(self, paths: List[str], kind: SlotKind) -> None:
        if kind is SlotKind.CHANGER:
            self.data.setdefault("picture_changer", {})["images"] = list(paths)
            return
        materials = self.materials()
        if not materials or not paths:
            return
        materials[0]["main_image"] = paths[0]

    def image_references(self) -> Iterator[str]:
        """Every image path this node refers to, bindings and materials alike."""
        for path in self.bound_image_paths():
            if path:
                yield path
        for material in self.materials():
            main = material.get("main_image")
            if main:
                yield main
            for path in (material.get("images") or {}).values():
                if path:
                    yield path


class Container:
    """A template or composed scene loaded from disk."""

    def __init__(self, path: str, kind: ContainerKind, file: Path, document: dict):
        self.path = path
        self.kind = kind
        self.file = file
        self.document = document
        self.roots: List[ContentNode] = [ContentNode(root) for root in document.get("roots") or []]
        self.dirty = False

    def iter_nodes(self) -> Iterator[ContentNode]:
        for root in self.roots:
            yield from root.walk()

    def image_references(self) -> Iterator[str]:
        for node in self.iter_nodes():
            yield from node.image_references()

    def save(self) -> None:
        """Write the document back to disk and clear the dirty flag."""
        try:
            self.file.write_text(
                json.dumps(self.document, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            raise ContentGraphError(f"Failed to save container {self.path}") from exc
        self.dirty = False


class ContentStore:
    """Enumerates containers under the content directory."""

    def __init__(self, content_dir: Path) -> None:
        self._content_dir = content_dir

    @property
    def content_dir(self) -> Path:
        return self._content_dir

    def container_files(self, kind: ContainerKind) -> List[Path]:
        folder = self._content_dir / _KIND_DIRS[kind]
        if not folder.is_dir():
            return []
        return sorted(folder.rglob("*.json"))

    def load(self, file: Path, kind: ContainerKind) -> Container:
        try:
            document = json.loads(file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ContentGraphError(f"Failed to read container {file}: {exc}") from exc
        if not isinstance(document, dict):
            raise ContentGraphError(f"Container {file} is not a JSON object")
        path = file.relative_to(self._content_dir).as_posix()
        return Container(path=path, kind=kind, file=file, document=document)

    def iter_containers(self, *kinds: ContainerKind) -> Iterator[Container]:
        """
        Yield containers of the requested kinds (templates first by default).

        Unreadable containers are logged and skipped.
        """
        for kind in kinds or (ContainerKind.TEMPLATE, ContainerKind.SCENE):
            for file in self.container_files(kind):
                try:
                    yield self.load(file, kind)
                except ContentGraphError as exc:
                    logger.error("Skipping container: %s", exc)

    def find(self, container_path: str) -> Container | None:
        for container in self.iter_containers():
            if container.path == container_path:
                return container
        return None


class ImageCatalog:
    """
    Read-only view of image files under the project root.

    Dimensions are read from image headers and cached per path. The cache
    entry for a path is dropped by `invalidate()`, which is meant to be
    registered as an import hook.
    """

    def __init__(self, project_root: Path) -> None:
        self._project_root = project_root
        self._cache: Dict[str, ImageAsset] = {}

    @property
    def project_root(self) -> Path:
        return self._project_root

    def resolve(self, path: str) -> Path:
        return self._project_root / path

    def relative(self, file: Path) -> str:
        return file.relative_to(self._project_root).as_posix()

    def get(self, path: str | None) -> ImageAsset | None:
        if not path:
            return None
        cached = self._cache.get(path)
        if cached is not None:
            return cached
        asset = self._read(path)
        if asset is not None:
            self._cache[path] = asset
        return asset

    def _read(self, path: str) -> ImageAsset | None:
        file = self.resolve(path)
        if not file.is_file():
            return None
        try:
            with Image.open(file) as image:
                width, height = image.size
        except (OSError, UnidentifiedImageError) as exc:
            logger.warning("Unreadable image %s: %s", path, exc)
            return None
        return ImageAsset(path=path, width=width, height=height, name=file.stem)

    def invalidate(self, path: str) -> None:
        self._cache.pop(path, None)

    def is_folder(self, folder: str) -> bool:
        return self.resolve(folder).is_dir()

    def image_paths(self, folder: str) -> List[str]:
        """Project-relative paths of every image file under `folder`, sorted."""
        root = self.resolve(folder)
        if not root.is_dir():
            return []
        files = [
            f for f in root.rglob("*")
            if f.is_file() and f.suffix.lower() in IMAGE_EXTENSIONS
        ]
        return sorted(self.relative(f) for f in files)

    def load_folder(self, folder: str, name_must_contain: str | None = None) -> List[ImageAsset]:
        """
        Load every readable image under `folder`.

        When `name_must_contain` is given, only files whose stem contains it
        (case-insensitively) are returned.
        """
        needle = name_must_contain.lower() if name_must_contain else None
        assets: List[ImageAsset] = []
        for path in self.image_paths(folder):
            if needle and needle not in Path(path).stem.lower():
                continue
            asset = self.get(path)
            if asset is not None:
                assets.append(asset)
        return assets
