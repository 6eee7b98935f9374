"""
Tests for slot discovery, size groups and the usage report.
"""

import logging
from datetime import datetime, timezone

from picture_slots.models.slots import ContainerKind, SlotKind
from picture_slots.services.content_graph import ContentStore, ImageCatalog
from picture_slots.services.report import format_usage_report, write_usage_report
from picture_slots.services.scanner import SlotCatalogScanner, classify_size_group

logger = logging.getLogger(__name__)


def _scan(project_root):
    store = ContentStore(project_root / "content")
    scanner = SlotCatalogScanner(ImageCatalog(project_root))
    return scanner.scan(store.iter_containers())


def test_classify_size_group():
    assert classify_size_group([]) == "Unknown"
    assert classify_size_group([(1920, 1080)]) == "1920x1080"
    assert classify_size_group([(1920, 1080), (1920, 1080)]) == "1920x1080"
    assert classify_size_group([(1920, 1080), (1080, 1920)]) == "Mixed"
    assert classify_size_group([(100, 50), (100, 60)]) == "Mixed"


def test_changer_slot_with_uniform_images(project_root, make_image, write_container):
    a = make_image("Assets/pics/a.png", (64, 32))
    b = make_image("Assets/pics/b.png", (64, 32))
    write_container("scenes", "Lobby", [{
        "name": "P_PictureFrame",
        "children": [{"name": "Changer", "picture_changer": {"images": [a, b]}}],
    }])

    slots = _scan(project_root)

    assert len(slots) == 1
    slot = slots[0]
    assert slot.kind is SlotKind.CHANGER
    assert slot.container_kind is ContainerKind.SCENE
    assert slot.container_path == "scenes/Lobby.json"
    assert slot.hierarchy_path == "P_PictureFrame/Changer"
    assert slot.size_group == "64x32"
    assert [image.path for image in slot.images] == [a, b]
    assert slot.desired_count == 2
    logger.info("✓ Uniform bindings classified as WxH")


def test_mixed_and_missing_bindings(project_root, make_image, write_container):
    a = make_image("Assets/pics/a.png", (64, 32))
    b = make_image("Assets/pics/b.png", (32, 64))
    write_container("templates", "Frames", [
        {"name": "Mixed", "picture_changer": {"images": [a, b]}},
        {"name": "Holes", "picture_changer": {"images": [None, "Assets/pics/missing.png", None]}},
    ])

    slots = {s.hierarchy_path: s for s in _scan(project_root)}

    assert slots["Mixed"].size_group == "Mixed"
    assert slots["Holes"].size_group == "Unknown"
    assert slots["Holes"].images == []
    # Empty entries still count towards how many images the slot wants.
    assert slots["Holes"].desired_count == 3
    assert slots["Holes"].container_kind is ContainerKind.TEMPLATE


def test_empty_changer_falls_back_to_material_main_image(project_root, make_image, write_container):
    main = make_image("Assets/pics/main.png", (40, 30))
    write_container("scenes", "Hall", [{
        "name": "Changer",
        "picture_changer": {"images": []},
        "children": [{
            "name": "Quad",
            "renderer": {"mesh_bounds": [1, 1, 0], "materials": [{"main_image": main}]},
        }],
    }])

    slot = _scan(project_root)[0]

    assert slot.images == []
    assert slot.sizes == [(40, 30)]
    assert slot.size_group == "40x30"
    assert slot.desired_count == 1


def test_empty_changer_falls_back_to_any_material_image(project_root, make_image, write_container):
    emission = make_image("Assets/pics/emission.png", (20, 10))
    write_container("scenes", "Hall", [{
        "name": "Changer",
        "picture_changer": {},
        "renderer": {
            "materials": [
                {"main_image": None, "images": {"_BumpMap": "Assets/pics/gone.png"}},
                {"images": {"_EmissionMap": emission}},
            ],
        },
    }])

    slot = _scan(project_root)[0]

    assert slot.size_group == "20x10"


def test_standalone_picture_nodes(project_root, make_image, write_container):
    main = make_image("Assets/pics/main.png", (50, 80))
    write_container("scenes", "Hall", [{
        "name": "P_PictureFrame_Landscape",
        "children": [
            {"name": "Picture", "renderer": {"materials": [{"main_image": main}]}},
            {"name": "Picture", "renderer": {"materials": []}},
            {"name": "Picture"},
        ],
    }])

    slots = _scan(project_root)

    assert len(slots) == 2
    assert all(s.kind is SlotKind.PICTURE for s in slots)
    assert slots[0].size_group == "50x80"
    assert slots[0].portrait is False
    assert slots[1].size_group == "Unknown"
    assert slots[1].desired_count == 1


def test_scan_is_read_only_and_skips_broken_containers(project_root, make_image, write_container):
    a = make_image("Assets/pics/a.png", (10, 10))
    file = write_container("scenes", "Good", [{"name": "C", "picture_changer": {"images": [a]}}])
    broken = project_root / "content" / "scenes" / "Broken.json"
    broken.write_text("{not json", encoding="utf-8")
    before = file.read_text(encoding="utf-8")

    slots = _scan(project_root)

    assert len(slots) == 1
    assert file.read_text(encoding="utf-8") == before


def test_scan_stops_when_cancelled(project_root, write_container):
    write_container("scenes", "A", [{"name": "C", "picture_changer": {"images": []}}])
    write_container("scenes", "B", [{"name": "C", "picture_changer": {"images": []}}])
    store = ContentStore(project_root / "content")
    scanner = SlotCatalogScanner(ImageCatalog(project_root))

    calls = []

    def cancel_after_first():
        calls.append(1)
        return len(calls) > 1

    slots = scanner.scan(store.iter_containers(), cancel_after_first)

    assert [s.container_path for s in slots] == ["scenes/A.json"]


def test_usage_report_lists_every_slot(project_root, make_image, write_container):
    a = make_image("Assets/pics/a.png", (64, 32))
    write_container("scenes", "Lobby", [
        {"name": "Frame", "picture_changer": {"images": [a]}},
        {"name": "Picture", "renderer": {"materials": [{}]}},
    ])
    write_container("templates", "P_PictureFrame", [
        {"name": "Root", "picture_changer": {"images": []}},
    ])

    text = format_usage_report(_scan(project_root), datetime(2024, 5, 1, tzinfo=timezone.utc))

    assert text.startswith("PictureChanger and Picture object usages and sizes\n2024-05-01 00:00:00Z\n")
    assert "- Scene: scenes/Lobby.json\n  Object Type: PictureChanger\n  GameObject: Frame\n" in text
    assert "  Size group: 64x32\n  Textures: 64x32\n" in text
    assert "  Object Type: Picture Material\n  GameObject: Picture\n  Size group: Unknown\n  Textures: <none>\n" in text
    assert "- Prefab: templates/P_PictureFrame.json" in text
    # Sorted by container path: scenes/ before templates/.
    assert text.index("scenes/Lobby.json") < text.index("templates/P_PictureFrame.json")


def test_write_usage_report_creates_parent(project_root):
    path = project_root / "Assets" / "PictureChanger" / "report.txt"
    assert write_usage_report([], path) is True
    assert path.read_text(encoding="utf-8").startswith("PictureChanger and Picture")
