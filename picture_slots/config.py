"""
Runtime configuration for the picture slot tools.

Values come from environment variables, optionally loaded from a `.env` file
at the project root. Every setting has a default; empty or non-positive
values fall back to that default rather than failing. The one exception is
`PICTURE_SLOTS_NAME_FILTER`: setting it to an empty value disables the
name filter.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

DEFAULT_ROOT_FOLDER = "Assets/PictureChanger"
DEFAULT_RANDOM_INPUT = "Assets/sameR&D/Picture"
DEFAULT_COMPRESSED_FOLDER = "Compressed1023"
DEFAULT_MAX_LONG_SIDE = 1023  # exclusive upper bound for the long side
DEFAULT_NAME_FILTER = "VRChat"
DEFAULT_FRAME_MARKER = "P_PictureFrame"
DEFAULT_CONTENT_DIR = "content"
REPORT_FILENAME = "picture_slot_report.txt"

# The .env file at the repository root, next to pyproject.toml.
ENV_FILE = Path(__file__).resolve().parent.parent / ".env"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Resolved configuration for one batch run.

    Folder settings other than `project_root` are POSIX paths relative to
    the project root, which is also how image references are stored inside
    containers.
    """

    project_root: Path = Path(".")
    content_dir: str = DEFAULT_CONTENT_DIR
    root_folder: str = DEFAULT_ROOT_FOLDER
    random_input_folder: str = DEFAULT_RANDOM_INPUT
    compressed_folder_name: str = DEFAULT_COMPRESSED_FOLDER
    max_long_side: int = DEFAULT_MAX_LONG_SIDE
    name_filter: str = DEFAULT_NAME_FILTER
    frame_marker: str = DEFAULT_FRAME_MARKER
    verbose_logging: bool = False

    @property
    def compressed_folder(self) -> str:
        """Project-relative path of the compressed-output folder."""
        return f"{self.root_folder}/{self.compressed_folder_name}"

    @property
    def report_path(self) -> str:
        return f"{self.root_folder}/{REPORT_FILENAME}"

    @property
    def content_path(self) -> Path:
        return self.project_root / self.content_dir

    def resolve(self, relative: str) -> Path:
        """Turn a project-relative POSIX path into a filesystem path."""
        return self.project_root / relative

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


def _env_str_allow_empty(name: str, default: str) -> str:
    """Like `_env_str`, but a variable that is set to an empty value stays empty."""
    raw = os.environ.get(name)
    return default if raw is None else raw.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default
    return value if value > 0 else default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def load_settings(env_file: Path | None = None) -> Settings:
    """
    Build `Settings` from the environment.

    If `env_file` exists it is loaded first; variables already present in
    the process environment win over the file.
    """
    if env_file is not None and env_file.exists():
        load_dotenv(dotenv_path=env_file, override=False)
        logger.info("Loaded environment from %s", env_file)

    return Settings(
        project_root=Path(_env_str("PICTURE_SLOTS_PROJECT_ROOT", ".")),
        content_dir=_env_str("PICTURE_SLOTS_CONTENT_DIR", DEFAULT_CONTENT_DIR),
        root_folder=_env_str("PICTURE_SLOTS_ROOT_FOLDER", DEFAULT_ROOT_FOLDER).rstrip("/"),
        random_input_folder=_env_str("PICTURE_SLOTS_RANDOM_INPUT", DEFAULT_RANDOM_INPUT).rstrip("/"),
        compressed_folder_name=_env_str("PICTURE_SLOTS_COMPRESSED_FOLDER", DEFAULT_COMPRESSED_FOLDER),
        max_long_side=_env_int("PICTURE_SLOTS_MAX_LONG_SIDE", DEFAULT_MAX_LONG_SIDE),
        name_filter=_env_str_allow_empty("PICTURE_SLOTS_NAME_FILTER", DEFAULT_NAME_FILTER),
        frame_marker=_env_str("PICTURE_SLOTS_FRAME_MARKER", DEFAULT_FRAME_MARKER),
        verbose_logging=_env_bool("PICTURE_SLOTS_VERBOSE"),
    )
