"""
bgtheme

Derives a desktop color theme (background, accent, neutral, text and a
synchronized secondary palette) from the current wallpaper image.
"""

__version__ = "0.3.0"
