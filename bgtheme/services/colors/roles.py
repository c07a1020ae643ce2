"""
Theme role selection.

Assigns Background, Accent, Neutral and Text in that fixed order from the
ranked candidate pool. Every step takes the pool as a list and returns the
chosen color together with a new, possibly shorter or reordered, pool for
the next step; no list is shared or mutated between roles.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .contrast import adjust_lightness_for_contrast
from .defaults import ThemeDefaults
from .ranking import AvoidanceSet, RankedCandidate, matches_avoid
from .space import Lch, hue_distance

# Background may be at most this much more colorful than the default background
BACKGROUND_CHROMA_SLACK = 15.0
# Candidates this close in hue to the background are dropped
BACKGROUND_HUE_EXCLUSION = 10.0

ACCENT_CONTRAST = 4.5
# Pre-adjustment chroma that makes a leading candidate an immediate accent
ACCENT_STRONG_CHROMA = 60.0
ACCENT_AVOID_PENALTY = 10.0
# Fraction of the widest hue distance from the accent that is excluded
ACCENT_EXCLUSION_FRACTION = 1.0 / 6.0

NEUTRAL_MIN_CHROMA = 10.0

SHUFFLE_WINDOW = 3

Pool = List[RankedCandidate]


@dataclass(frozen=True)
class RoleSelection:
    background: Lch
    accent: Lch
    neutral: Lch
    text: Optional[Lch]
    remaining: Tuple[RankedCandidate, ...] = ()


def left_skewed_shuffle(pool: Sequence[RankedCandidate],
                        rng: Optional[np.random.Generator],
                        window: int = SHUFFLE_WINDOW) -> Pool:
    """
    Reorder the leading ``window`` candidates at random.

    The leading entries are drawn without replacement with probability
    proportional to their weight, so heavy candidates tend to stay in front.
    Entries past the window keep their order. Without an rng the pool is
    returned unchanged.
    """
    pool = list(pool)
    if rng is None or len(pool) < 2 or window < 2:
        return pool

    head, tail = pool[:window], pool[window:]
    weights = np.asarray([max(c.weight, 0.0) for c in head], dtype=np.float64) + 1e-6
    order = rng.choice(len(head), size=len(head), replace=False, p=weights / weights.sum())
    return [head[i] for i in order] + tail


def select_background(pool: Sequence[RankedCandidate],
                      defaults: ThemeDefaults,
                      avoid: Sequence[Lch] = ()) -> Tuple[Lch, Pool]:
    """
    Pick the first candidate that survives the chroma cap and avoidance.

    The chosen color keeps its hue and (capped) chroma and takes the default
    background lightness. The chosen candidate and every candidate within
    10 degrees of its hue are removed from the returned pool. When nothing is
    acceptable the default background is used and the pool is unchanged.
    """
    default_bg = defaults.background
    chroma_cap = default_bg.chroma + BACKGROUND_CHROMA_SLACK

    for index, candidate in enumerate(pool):
        color = candidate.lch
        if color.chroma > chroma_cap:
            color = color.with_chroma(chroma_cap).clamp()
        if matches_avoid(color, avoid):
            logger.debug(f"Background candidate {index} avoided (hue={color.hue:.1f})")
            continue

        background = color.with_lightness(default_bg.l).clamp()
        remaining = [
            c for i, c in enumerate(pool)
            if i != index and hue_distance(c.lch.hue, background.hue) > BACKGROUND_HUE_EXCLUSION
        ]
        return background, remaining

    logger.warning("No acceptable background candidate, using default background")
    return default_bg, list(pool)


def select_accent(pool: Sequence[RankedCandidate],
                  defaults: ThemeDefaults,
                  avoid: Sequence[Lch] = (),
                  rng: Optional[np.random.Generator] = None) -> Tuple[Lch, Pool]:
    """
    Pick the most colorful candidate that stays legible on the default background.

    Each candidate is scored by the chroma of its contrast-adjusted form
    (divided by 10 when it lands in an avoid bucket). A strong leading
    candidate (chroma above 60 within the first third, not avoided) is
    taken without scoring the rest. Afterwards every candidate within one
    sixth of the widest hue distance from the accent is excluded so the
    remaining roles differ in hue from it.
    """
    pool = left_skewed_shuffle(pool, rng)
    reference = defaults.background
    if not pool:
        logger.warning("Empty candidate pool, using default accent")
        return defaults.accent, []

    chosen_index = None
    accent = None

    leading = max(1, len(pool) // 3)
    for index, candidate in enumerate(pool[:leading]):
        color = candidate.lch
        if color.chroma > ACCENT_STRONG_CHROMA and not matches_avoid(color, avoid):
            chosen_index = index
            accent = adjust_lightness_for_contrast(color, reference, ACCENT_CONTRAST)
            logger.debug(f"Strong accent candidate {index} accepted (chroma={color.chroma:.1f})")
            break

    if chosen_index is None:
        best_score = -math.inf
        for index, candidate in enumerate(pool):
            adjusted = adjust_lightness_for_contrast(candidate.lch, reference, ACCENT_CONTRAST)
            score = adjusted.chroma
            if matches_avoid(adjusted, avoid):
                score /= ACCENT_AVOID_PENALTY
            if score > best_score:
                best_score = score
                chosen_index = index
                accent = adjusted

    remaining = [c for i, c in enumerate(pool) if i != chosen_index]
    if remaining:
        span = max(hue_distance(c.lch.hue, accent.hue) for c in remaining)
        radius = span * ACCENT_EXCLUSION_FRACTION
        remaining = [c for c in remaining if hue_distance(c.lch.hue, accent.hue) > radius]

    return accent, remaining


def select_neutral(pool: Sequence[RankedCandidate],
                   defaults: ThemeDefaults,
                   rng: Optional[np.random.Generator] = None) -> Tuple[Lch, Pool]:
    """First candidate with chroma above 10, else the default neutral."""
    pool = left_skewed_shuffle(pool, rng)
    for index, candidate in enumerate(pool):
        color = candidate.lch
        if color.chroma > NEUTRAL_MIN_CHROMA:
            return color, pool[:index] + pool[index + 1:]

    return defaults.neutral, pool


def select_text(pool: Sequence[RankedCandidate],
                rng: Optional[np.random.Generator] = None) -> Tuple[Optional[Lch], Pool]:
    pool = left_skewed_shuffle(pool, rng)
    if not pool:
        return None, []
    return pool[0].lch, pool[1:]


def select_roles(ranked: Sequence[RankedCandidate],
                 defaults: ThemeDefaults,
                 avoidance: AvoidanceSet,
                 rng: Optional[np.random.Generator] = None) -> RoleSelection:
    """
    Run Background -> Accent -> Neutral -> Text over the ranked pool.

    Args:
        ranked: Candidates as ordered by the ranker
        defaults: Default anchors of the active mode
        avoidance: Avoid colors of the active mode
        rng: Enables the randomized selection when given

    Returns:
        RoleSelection with the resolved LCh colors and the unused candidates
    """
    background, pool = select_background(ranked, defaults, avoidance.background)
    accent, pool = select_accent(pool, defaults, avoidance.accent, rng)
    neutral, pool = select_neutral(pool, defaults, rng)
    text, pool = select_text(pool, rng)

    logger.info(f"Roles selected: background={background.to_hex()} accent={accent.to_hex()} "
                f"neutral={neutral.to_hex()} text={text.to_hex() if text else None}")
    return RoleSelection(background=background, accent=accent, neutral=neutral,
                         text=text, remaining=tuple(pool))
