"""
Contrast-guaranteed lightness adjustment.

Only the lightness of a color is changed; hue and chroma are kept (subject to
clamping). The search is an exhaustive sweep over 41 evenly spaced
lightness values, not a bisection: contrast is not monotonic in LCh
lightness once gamut clipping kicks in, so every sample is evaluated.
"""

from typing import List, Tuple

from loguru import logger

from .space import Lch, contrast_ratio, lch_contrast

# WCAG AA for normal text
DEFAULT_CUTOFF = 4.5
LIGHTNESS_STEPS = 40


def lightness_sweep(original: Lch, reference: Lch, steps: int = LIGHTNESS_STEPS) -> List[Tuple[Lch, float]]:
    """
    Evaluate ``steps + 1`` lightness values from 0 to 100 at the original
    hue/chroma and return each clamped color with its contrast to ``reference``.
    """
    reference_rgb = reference.to_srgb()
    sweep = []
    for i in range(steps + 1):
        candidate = original.with_lightness(100.0 * i / steps).clamp()
        sweep.append((candidate, contrast_ratio(candidate.to_srgb(), reference_rgb)))
    return sweep


def adjust_lightness_for_contrast(original: Lch, reference: Lch, cutoff: float = DEFAULT_CUTOFF) -> Lch:
    """
    Find the lightness closest to ``original`` that reaches ``cutoff`` contrast.

    Args:
        original: Color to adjust
        reference: Color the result is compared against
        cutoff: Minimum WCAG contrast ratio

    Returns:
        ``original`` itself when it already meets the cutoff. Otherwise the
        swept sample meeting the cutoff with the smallest lightness change, or
        the sample with the highest contrast if no lightness qualifies.
    """
    if lch_contrast(original, reference) >= cutoff:
        return original

    sweep = lightness_sweep(original, reference)
    passing = [(c, ratio) for c, ratio in sweep if ratio >= cutoff]

    if passing:
        best, _ = min(passing, key=lambda item: abs(item[0].l - original.l))
        return best

    best, ratio = max(sweep, key=lambda item: item[1])
    logger.debug(f"Contrast {cutoff} unreachable at hue={original.hue:.1f} chroma={original.chroma:.1f}, "
                 f"best {ratio:.2f} at L={best.l:.1f}")
    return best
