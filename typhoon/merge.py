from __future__ import annotations

import math
from typing import Iterable, List

from .entities import NormalizedStorm


# degree units, not geodesic distance
DUPLICATE_DISTANCE_DEG = 1.0


def planar_distance(first: NormalizedStorm, second: NormalizedStorm) -> float:
    return math.sqrt(
        (first.latitude - second.latitude) ** 2 + (first.longitude - second.longitude) ** 2
    )


def is_duplicate(existing: NormalizedStorm, candidate: NormalizedStorm) -> bool:
    if existing.name == candidate.name:
        return True
    return planar_distance(existing, candidate) < DUPLICATE_DISTANCE_DEG


def merge_candidates(candidates: Iterable[NormalizedStorm]) -> List[NormalizedStorm]:
    """Drop duplicate reports of the same storm, keeping the first seen.

    Two reports are the same storm when their names match exactly or their
    positions are less than one degree apart. Duplicates are dropped rather
    than merged field by field, and emission follows insertion order.
    """
    accepted: List[NormalizedStorm] = []
    for candidate in candidates:
        if any(is_duplicate(existing, candidate) for existing in accepted):
            continue
        accepted.append(candidate)
    return accepted


__all__ = ["DUPLICATE_DISTANCE_DEG", "is_duplicate", "merge_candidates", "planar_distance"]
