"""
bgtheme Image Identity
Cache identities for wallpapers given as file paths or as raw bytes.
"""
import hashlib
from pathlib import Path
from typing import Union


def compute_sha256(image_bytes: bytes) -> str:
    """
    Compute SHA-256 hash of image bytes.

    Returns:
        SHA-256 hash as hex string
    """
    return hashlib.sha256(image_bytes).hexdigest()


def path_identity(path: Union[str, Path]) -> str:
    """
    Identity of a wallpaper file: its path with separators flattened.

    ``/usr/share/backgrounds/a.png`` becomes ``_usr_share_backgrounds_a.png``,
    which is usable as a single state-store entry name.
    """
    return str(path).replace("/", "_").replace("\\", "_")


def content_identity(image_bytes: bytes) -> str:
    """Identity of an uploaded image, derived from its content."""
    return f"sha256-{compute_sha256(image_bytes)}"
