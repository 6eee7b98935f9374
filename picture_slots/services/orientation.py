"""
Portrait/landscape classification for picture slots.

Rules are evaluated in order and the first one that decides wins:

1. Name keywords, checked on the node and then each ancestor. The keyword
   table is configurable so other languages can be added.
2. Geometry: the two largest world-space extents of the node's mesh (or of
   its world scale when it has no renderer). The largest is taken as the
   height, so geometry on its own always resolves to portrait; landscape
   slots are recognised by their names.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

from picture_slots.services.content_graph import ContentNode, as_vector


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeywordRule:
    """Name substrings that mark a hierarchy level as one orientation."""

    portrait: bool
    keywords: Tuple[str, ...]

    def matches(self, name: str) -> bool:
        lowered = name.lower()
        return any(keyword in lowered for keyword in self.keywords)


DEFAULT_KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(portrait=True, keywords=("vertical", "portrait", "縦")),
    KeywordRule(portrait=False, keywords=("horizontal", "landscape", "横")),
)


def portrait_from_extents(extents: Sequence[float]) -> bool:
    """Treat the largest extent as height and the second largest as width."""
    dims = np.sort(np.abs(np.asarray(extents, dtype=float)))
    width, height = dims[-2], dims[-1]
    return bool(height >= width)


class OrientationClassifier:
    def __init__(self, rules: Iterable[KeywordRule] = DEFAULT_KEYWORD_RULES):
        self.rules = tuple(rules)

    def classify_by_name(self, node: ContentNode) -> bool | None:
        """Return the orientation named by the closest matching ancestor, if any."""
        for current in node.ancestors():
            for rule in self.rules:
                if rule.matches(current.name):
                    return rule.portrait
        return None

    def world_extents(self, node: ContentNode) -> np.ndarray:
        """
        World-space extents used for the geometric fallback.

        Prefers local mesh bounds scaled by the node's world scale, then the
        renderer's world bounds, then the bare world scale.
        """
        renderer_node = node.first_renderer_node()
        if renderer_node is None:
            return np.abs(node.world_scale)

        renderer = renderer_node.renderer or {}
        mesh_bounds = renderer.get("mesh_bounds")
        if mesh_bounds is not None:
            local = as_vector(mesh_bounds, default=0.0)
            return np.abs(local * node.world_scale)

        world_bounds = renderer.get("world_bounds")
        if world_bounds is not None:
            return np.abs(as_vector(world_bounds, default=0.0))

        return np.abs(node.world_scale)

    def classify(self, node: ContentNode) -> bool:
        """Return True for portrait, False for landscape."""
        by_name = self.classify_by_name(node)
        if by_name is not None:
            return by_name
        extents = self.world_extents(node)
        logger.debug("No orientation keyword for %s, using extents %s", node.hierarchy_path, extents)
        return portrait_from_extents(extents)
