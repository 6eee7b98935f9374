from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from picture_slots.models.slots import Slot


logger = logging.getLogger(__name__)

REPORT_TITLE = "PictureChanger and Picture object usages and sizes"


def format_usage_report(slots: Iterable[Slot], generated_at: datetime | None = None) -> str:
    """Render the plain-text usage report, one block per slot."""
    generated_at = generated_at or datetime.now(timezone.utc)
    lines: List[str] = [REPORT_TITLE, generated_at.strftime("%Y-%m-%d %H:%M:%SZ"), ""]
    for slot in sorted(slots, key=lambda s: (s.container_path, s.hierarchy_path)):
        lines.append(f"- {slot.container_kind.label}: {slot.container_path}")
        lines.append(f"  Object Type: {slot.kind.label}")
        lines.append(f"  GameObject: {slot.hierarchy_path}")
        lines.append(f"  Size group: {slot.size_group}")
        if slot.sizes:
            lines.append("  Textures: " + ", ".join(f"{w}x{h}" for w, h in slot.sizes))
        else:
            lines.append("  Textures: <none>")
        lines.append("")
    return "\n".join(lines)


def write_usage_report(slots: Iterable[Slot], path: Path) -> bool:
    """Write the report to `path`. Returns False (and logs) on I/O failure."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(format_usage_report(slots), encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to write report to %s: %s", path, exc)
        return False
    return True
