"""
bgtheme colors module

Color science for theme derivation: Lab/LCh conversions and WCAG contrast,
perceptual sampling, multi-run k-means, candidate ranking, role selection
and palette synchronization.
"""
