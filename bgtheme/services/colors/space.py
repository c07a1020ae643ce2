"""
Color space helpers.

Conversions between gamma-encoded sRGB, CIE Lab (D65, 2° observer) and the
cylindrical LCh form of Lab, plus WCAG 2.1 relative luminance and contrast.
All device colors are normalized floats in [0, 1].
"""

import math
import warnings
from dataclasses import dataclass, replace
from typing import Sequence, Tuple

import numpy as np
from skimage.color import lab2rgb, rgb2lab

# Upper bound of LCh chroma for Lab a/b in [-128, 128]
MAX_CHROMA = 128.0 * math.sqrt(2.0)

RGB = Tuple[float, float, float]
LabTriple = Tuple[float, float, float]


def rgb_to_hex(rgb: Sequence[float]) -> str:
    """Convert normalized RGB floats to a #RRGGBB hex string."""
    r, g, b = [max(0, min(255, round(float(c) * 255))) for c in rgb[:3]]
    return f"#{r:02X}{g:02X}{b:02X}"


def hex_to_rgb(hex_color: str) -> RGB:
    """Convert #RRGGBB hex string to normalized RGB floats."""
    hex_clean = hex_color.lstrip('#')
    if len(hex_clean) != 6:
        raise ValueError(f"Invalid hex color format: {hex_color}")
    try:
        return tuple(int(hex_clean[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Invalid hex color format: {hex_color}")


def srgb_to_lab(rgb: Sequence[float]) -> LabTriple:
    """Convert one normalized sRGB color to Lab through linear RGB."""
    arr = np.asarray(rgb[:3], dtype=np.float64).reshape(1, 1, 3)
    L, a, b = rgb2lab(arr)[0, 0]
    return float(L), float(a), float(b)


def lab_to_srgb(lab: Sequence[float]) -> RGB:
    """Convert one Lab color to normalized sRGB, clipped into the gamut."""
    arr = np.asarray(lab, dtype=np.float64).reshape(1, 1, 3)
    with warnings.catch_warnings():
        # Out-of-gamut colors are clipped by lab2rgb; that clipping is the
        # gamut re-clamp we want, so its warning is noise here.
        warnings.simplefilter("ignore")
        r, g, b = lab2rgb(arr)[0, 0]
    return float(r), float(g), float(b)


def rgb_u8_to_lab(pixels: np.ndarray) -> np.ndarray:
    """Convert an (..., 3) uint8 RGB array to an (N, 3) Lab array."""
    if pixels.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    rgb = np.asarray(pixels, dtype=np.float64).reshape(-1, 1, 3) / 255.0
    return rgb2lab(rgb).reshape(-1, 3)


def hue_distance(h1: float, h2: float) -> float:
    """Circular distance between two hue angles in degrees, in [0, 180]."""
    d = abs(h1 - h2) % 360.0
    return min(d, 360.0 - d)


@dataclass(frozen=True)
class Lch:
    """Cylindrical Lab color: lightness, chroma and hue in degrees."""
    l: float
    chroma: float
    hue: float

    @classmethod
    def from_lab(cls, lab: Sequence[float]) -> "Lch":
        L, a, b = (float(x) for x in lab[:3])
        chroma = math.sqrt(a * a + b * b)
        hue = math.degrees(math.atan2(b, a)) % 360.0
        return cls(L, chroma, hue)

    @classmethod
    def from_srgb(cls, rgb: Sequence[float]) -> "Lch":
        return cls.from_lab(srgb_to_lab(rgb))

    @classmethod
    def from_hex(cls, hex_color: str) -> "Lch":
        return cls.from_srgb(hex_to_rgb(hex_color))

    def to_lab(self) -> LabTriple:
        hr = math.radians(self.hue)
        return self.l, self.chroma * math.cos(hr), self.chroma * math.sin(hr)

    def to_srgb(self) -> RGB:
        return lab_to_srgb(self.to_lab())

    def to_hex(self) -> str:
        return rgb_to_hex(self.to_srgb())

    def clamp(self) -> "Lch":
        """Clamp every component into its valid range."""
        return Lch(
            min(max(self.l, 0.0), 100.0),
            min(max(self.chroma, 0.0), MAX_CHROMA),
            self.hue % 360.0,
        )

    def with_lightness(self, l: float) -> "Lch":
        return replace(self, l=float(l))

    def with_chroma(self, chroma: float) -> "Lch":
        return replace(self, chroma=float(chroma))


def relative_luminance(rgb: Sequence[float]) -> float:
    """WCAG 2.1 relative luminance of a normalized sRGB color."""
    def linearize(c: float) -> float:
        c = min(max(float(c), 0.0), 1.0)
        if c <= 0.04045:
            return c / 12.92
        return ((c + 0.055) / 1.055) ** 2.4

    r, g, b = (linearize(c) for c in rgb[:3])
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(rgb1: Sequence[float], rgb2: Sequence[float]) -> float:
    """WCAG 2.1 contrast ratio between two sRGB colors, in [1, 21]."""
    y1 = relative_luminance(rgb1)
    y2 = relative_luminance(rgb2)
    lighter, darker = max(y1, y2), min(y1, y2)
    return (lighter + 0.05) / (darker + 0.05)


def lch_contrast(a: Lch, b: Lch) -> float:
    return contrast_ratio(a.to_srgb(), b.to_srgb())
