"""
Secondary palette synchronization.

Every palette slot takes the accent's lightness and chroma but keeps its own
hue, so the whole palette reads as one tone while each slot stays
recognizable (a red is still red).
"""

from typing import Dict, Iterable, Mapping

from .space import Lch

# Slots that get an extra chroma boost after synchronization
BOOSTED_SLOTS = frozenset({"bright_red", "bright_green", "bright_orange"})
SATURATION_BOOST = 20.0


def synchronize_slot(slot: Lch, accent: Lch) -> Lch:
    return Lch(accent.l, accent.chroma, slot.hue).clamp()


def synchronize_palette(palette: Mapping[str, Lch],
                        accent: Lch,
                        boosted: Iterable[str] = BOOSTED_SLOTS,
                        boost: float = SATURATION_BOOST) -> Dict[str, Lch]:
    """
    Propagate the accent tone onto each palette slot.

    Args:
        palette: Slot name to default slot color
        accent: Resolved accent color
        boosted: Slot names receiving ``boost`` extra chroma
        boost: Chroma added to boosted slots

    Returns:
        New mapping with the same slot names
    """
    boosted = frozenset(boosted)
    synced = {}
    for name, slot in palette.items():
        color = synchronize_slot(slot, accent)
        if name in boosted:
            color = color.with_chroma(color.chroma + boost).clamp()
        synced[name] = color
    return synced
