"""
Resolved theme record shared by the pipeline, the caches and the store.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .space import Lch, rgb_to_hex

RGB = Tuple[float, float, float]
RGBA = Tuple[float, float, float, float]


def _rgb(values, size: int) -> tuple:
    if values is None or len(values) != size:
        raise ValueError(f"Expected {size} color components, got {values!r}")
    components = tuple(float(v) for v in values)
    if any(c < 0.0 or c > 1.0 for c in components):
        raise ValueError(f"Color components out of range: {components}")
    return components


@dataclass(frozen=True)
class ResolvedTheme:
    """Role colors as normalized sRGB; the background carries alpha."""
    accent: RGB
    background: RGBA
    neutral: RGB
    text: Optional[RGB] = None

    @classmethod
    def from_lch(cls, accent: Lch, background: Lch, neutral: Lch,
                 text: Optional[Lch] = None, background_alpha: float = 1.0) -> "ResolvedTheme":
        return cls(
            accent=accent.to_srgb(),
            background=background.to_srgb() + (float(background_alpha),),
            neutral=neutral.to_srgb(),
            text=text.to_srgb() if text is not None else None,
        )

    @property
    def accent_lch(self) -> Lch:
        return Lch.from_srgb(self.accent)

    def hex(self) -> Dict[str, Optional[str]]:
        return {
            "accent": rgb_to_hex(self.accent),
            "background": rgb_to_hex(self.background),
            "neutral": rgb_to_hex(self.neutral),
            "text": rgb_to_hex(self.text) if self.text is not None else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accent": list(self.accent),
            "background": list(self.background),
            "neutral": list(self.neutral),
            "text": list(self.text) if self.text is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolvedTheme":
        """Rebuild from ``to_dict`` output; raises ValueError/KeyError/TypeError if malformed."""
        text = data.get("text")
        return cls(
            accent=_rgb(data["accent"], 3),
            background=_rgb(data["background"], 4),
            neutral=_rgb(data["neutral"], 3),
            text=_rgb(text, 3) if text is not None else None,
        )
