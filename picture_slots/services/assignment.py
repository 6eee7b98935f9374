"""
Random, orientation-preserving assignment of compressed variants to slots.

Variants are split into a portrait pool and a landscape pool, each shuffled
once per batch. Slots draw from the pool matching their own orientation:
first without replacement, then, once a pool runs dry, by wrapping back to
its start. A slot never receives an image from the other pool, even when its
own pool is exhausted.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from picture_slots.models.slots import ImageAsset, Slot


logger = logging.getLogger(__name__)


class OrientationPool:
    """Shuffled variants of one orientation with a consumption cursor."""

    def __init__(self, variants: Sequence[ImageAsset], rng: random.Random):
        self.items: List[ImageAsset] = list(variants)
        rng.shuffle(self.items)
        self.cursor = 0

    def __len__(self) -> int:
        return len(self.items)

    @property
    def remaining(self) -> int:
        return max(len(self.items) - self.cursor, 0)

    def draw(self, desired: int) -> List[ImageAsset]:
        """
        Take `desired` images starting at the cursor.

        Fresh images are used first; if the pool runs out the cursor wraps to
        zero and earlier images are reused. Returns an empty list for an
        empty pool. With `desired <= len(self)` the result has no duplicates.
        """
        picked: List[ImageAsset] = []
        take = min(desired, self.remaining)
        picked.extend(self.items[self.cursor:self.cursor + take])
        self.cursor += take

        count = len(self.items)
        if count == 0:
            return picked
        while len(picked) < desired:
            if self.cursor >= count:
                self.cursor = 0
            picked.append(self.items[self.cursor])
            self.cursor += 1
        return picked


@dataclass(slots=True)
class OrientationPools:
    portrait: OrientationPool
    landscape: OrientationPool

    def for_slot(self, slot: Slot) -> OrientationPool:
        return self.portrait if slot.portrait else self.landscape


def build_pools(variants: Iterable[ImageAsset], rng: random.Random) -> OrientationPools:
    """Partition variants by orientation (ties are landscape) and shuffle each pool."""
    ordered = sorted(variants, key=lambda v: v.path)
    portrait = [v for v in ordered if v.height > v.width]
    landscape = [v for v in ordered if v.width >= v.height]
    return OrientationPools(
        portrait=OrientationPool(portrait, rng),
        landscape=OrientationPool(landscape, rng),
    )


class RandomAssignmentEngine:
    def __init__(self, frame_marker: str):
        self.frame_marker = frame_marker

    def is_eligible(self, slot: Slot) -> bool:
        return self.frame_marker in slot.location

    def assign_slot(self, slot: Slot, pools: OrientationPools) -> bool:
        """
        Bind fresh images to one slot.

        Returns False when its pool is empty, or, without drawing, when the
        slot has nowhere to store an image.
        """
        if not slot.bindable:
            logger.debug("Skipping %s, it has no material to bind to", slot.location)
            return False
        picked = pools.for_slot(slot).draw(slot.desired_count)
        if not picked:
            logger.debug(
                "No %s variants available for %s",
                "portrait" if slot.portrait else "landscape",
                slot.location,
            )
            return False
        slot.apply(picked)
        return True

    def assign(
        self,
        slots: Iterable[Slot],
        pool: Iterable[ImageAsset] | OrientationPools,
        rng: random.Random,
    ) -> List[Slot]:
        """
        Assign variants to every eligible slot; returns the slots that changed.

        `pool` is either the raw variant list, partitioned and shuffled here
        with `rng`, or pools already built for this batch.
        """
        pools = pool if isinstance(pool, OrientationPools) else build_pools(pool, rng)
        updated: List[Slot] = []
        for slot in slots:
            if not self.is_eligible(slot):
                continue
            if self.assign_slot(slot, pools):
                updated.append(slot)
        return updated
