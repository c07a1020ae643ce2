"""
Candidate ranking.

Orders cluster centroids by weight and demotes (moves to the end, never
drops) centroids that look like an avoided color or are nearly grey.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple

from loguru import logger

from .clustering import ClusterResult
from .space import Lch, LabTriple

# Avoidance match thresholds
AVOID_HUE_DIFF = 20.0
AVOID_DISTANCE_SQ = 666.0

# Centroids below this chroma are ranked last
MIN_CHROMA = 10.0


@dataclass(frozen=True)
class RankedCandidate:
    """A cluster centroid and the fraction of samples assigned to it."""
    lab: LabTriple
    weight: float

    @property
    def lch(self) -> Lch:
        return Lch.from_lab(self.lab)

    def to_dict(self) -> Dict[str, object]:
        return {"lab": [float(x) for x in self.lab], "weight": float(self.weight)}

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "RankedCandidate":
        L, a, b = (float(x) for x in data["lab"])
        return cls(lab=(L, a, b), weight=float(data["weight"]))


@dataclass(frozen=True)
class AvoidanceSet:
    """Reference colors a resolved color should stay away from, per purpose."""
    background: Tuple[Lch, ...] = field(default_factory=tuple)
    accent: Tuple[Lch, ...] = field(default_factory=tuple)

    def all(self) -> Tuple[Lch, ...]:
        return self.background + self.accent


def matches_avoid(color: Lch, avoid: Iterable[Lch]) -> bool:
    """
    Check whether a color falls into any avoidance bucket.

    A bucket matches when the hue difference (mod 180) is below 20 degrees and
    the squared chroma difference plus squared hue difference is below 666.
    """
    for ref in avoid:
        hue_diff = abs(color.hue - ref.hue) % 180.0
        if hue_diff < AVOID_HUE_DIFF and (color.chroma - ref.chroma) ** 2 + hue_diff ** 2 < AVOID_DISTANCE_SQ:
            return True
    return False


def sort_by_weight(centroids: Sequence[Sequence[float]], weights: Sequence[float]) -> List[RankedCandidate]:
    """Pair centroids with weights, heaviest first (stable on ties)."""
    candidates = [
        RankedCandidate(lab=tuple(float(x) for x in c[:3]), weight=float(w))
        for c, w in zip(centroids, weights)
    ]
    return sorted(candidates, key=lambda c: -c.weight)


def weighted_candidates(result: ClusterResult) -> List[RankedCandidate]:
    """Weight-sorted centroids of a clustering result."""
    return sort_by_weight(result.centroids, result.weights())


def demote_candidates(candidates: Sequence[RankedCandidate],
                      avoid: Iterable[Lch],
                      min_chroma: float = MIN_CHROMA) -> List[RankedCandidate]:
    """
    Stable three-bucket partition of weight-ordered candidates.

    Returns:
        [kept] + [avoided] + [low chroma], each bucket in its input order.
        A candidate that is both avoided and low chroma counts as avoided.
    """
    avoid = tuple(avoid)
    kept, avoided, greys = [], [], []
    for candidate in candidates:
        lch = candidate.lch
        if matches_avoid(lch, avoid):
            avoided.append(candidate)
        elif lch.chroma < min_chroma:
            greys.append(candidate)
        else:
            kept.append(candidate)

    logger.debug(f"Ranking: {len(kept)} kept, {len(avoided)} avoided, {len(greys)} low chroma")
    return kept + avoided + greys


def rank_candidates(result: ClusterResult, avoidance: AvoidanceSet) -> List[RankedCandidate]:
    """Weight order a clustering result and apply both demotions."""
    return demote_candidates(weighted_candidates(result), avoidance.all())
