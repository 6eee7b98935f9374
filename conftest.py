"""Shared fixtures: a throwaway project tree with images and containers."""

import json
from pathlib import Path

import pytest
from PIL import Image

from picture_slots.config import Settings
from picture_slots.services.workflow import PictureSlotService


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def make_image(project_root: Path):
    """Write a solid-colour image at a project-relative path and return that path."""

    def _make(relative: str, size: tuple[int, int], color: str = "red") -> str:
        file = project_root / relative
        file.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color=color).save(file)
        return relative

    return _make


@pytest.fixture
def write_container(project_root: Path):
    """Write a container document under content/<kind_dir>/<name>.json."""

    def _write(kind_dir: str, name: str, roots: list[dict]) -> Path:
        file = project_root / "content" / kind_dir / f"{name}.json"
        file.parent.mkdir(parents=True, exist_ok=True)
        file.write_text(json.dumps({"roots": roots}), encoding="utf-8")
        return file

    return _write


@pytest.fixture
def settings(project_root: Path) -> Settings:
    return Settings(project_root=project_root, verbose_logging=True)


@pytest.fixture
def service(settings: Settings) -> PictureSlotService:
    return PictureSlotService(settings)
