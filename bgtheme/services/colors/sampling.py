"""
Image decoding and perceptual color sampling.

Turns a wallpaper (file path, encoded bytes or an already decoded pixel
buffer) into an unordered array of Lab samples. Images are always
downsampled to a bounded working size first so clustering cost does not
depend on the source resolution.
"""

import base64
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError
from loguru import logger

from bgtheme.errors import DecodeError
from .space import rgb_u8_to_lab

# Pillow modes holding 16-bit grey samples
WIDE_GREY_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N")


def _wide_grey_to_rgb(image: Image.Image) -> np.ndarray:
    """Scale a 16-bit greyscale image down to 8-bit RGB."""
    wide = np.asarray(image.convert("I"), dtype=np.int64)
    grey = np.clip(wide >> 8, 0, 255).astype(np.uint8)
    return np.repeat(grey[:, :, np.newaxis], 3, axis=2)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Read an image file into an RGB or RGBA uint8 array.

    Raises:
        DecodeError: If the file is missing, unreadable or not an image
    """
    try:
        with Image.open(path) as image:
            if image.mode in WIDE_GREY_MODES:
                pixels = _wide_grey_to_rgb(image)
            else:
                if image.mode not in ("RGB", "RGBA"):
                    image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
                pixels = np.asarray(image, dtype=np.uint8).copy()
    except (FileNotFoundError, UnidentifiedImageError, OSError) as e:
        raise DecodeError(f"Failed to read image {path}: {e}")

    logger.debug(f"Loaded image {path} with shape {pixels.shape}")
    return pixels


def decode_image_bytes(data: bytes) -> np.ndarray:
    """Decode encoded image bytes (PNG, JPEG, WebP...) to an RGB(A) uint8 array."""
    nparr = np.frombuffer(data, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED) if nparr.size else None

    if image is None:
        raise DecodeError("Failed to decode image data")

    # 16-bit PNG/TIFF keep their depth with IMREAD_UNCHANGED
    if image.dtype == np.uint16:
        image = (image >> 8).astype(np.uint8)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def decode_base64_payload(b64_data: str) -> bytes:
    """Decode base64 image data, with or without a data URL prefix, to encoded bytes."""
    # Remove data URL prefix if present
    if ',' in b64_data:
        b64_data = b64_data.split(',')[1]

    try:
        img_bytes = base64.b64decode(b64_data, validate=True)
    except ValueError as e:
        raise DecodeError(f"Invalid base64 image data: {e}")

    if not img_bytes:
        raise DecodeError("Empty image payload")
    return img_bytes


def decode_base64_image(b64_data: str) -> np.ndarray:
    return decode_image_bytes(decode_base64_payload(b64_data))


def downsample(pixels: np.ndarray, max_edge: int = 256) -> np.ndarray:
    """
    Shrink an image so its longest edge is at most ``max_edge``.

    Aspect ratio is preserved and area interpolation is used, which averages
    source pixels instead of dropping them. Smaller images are returned as is.
    """
    height, width = pixels.shape[:2]
    longest = max(height, width)
    if longest <= max_edge:
        return pixels

    scale = max_edge / longest
    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
    resized = cv2.resize(pixels, new_size, interpolation=cv2.INTER_AREA)
    logger.debug(f"Downsampled {width}x{height} to {new_size[0]}x{new_size[1]}")
    return resized


def sample_colors(pixels: np.ndarray, max_edge: int = 256) -> np.ndarray:
    """
    Convert a decoded raster into Lab color samples.

    Args:
        pixels: (H, W, C) uint8 array with 3 (RGB) or 4 (RGBA) channels
        max_edge: Maximum working dimension before conversion

    Returns:
        (N, 3) float64 array of Lab samples; pixel positions are discarded

    Raises:
        DecodeError: If the buffer does not look like an 8-bit color image
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise DecodeError(f"Unsupported pixel buffer shape {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise DecodeError(f"Expected 8-bit channels, got {pixels.dtype}")

    small = downsample(pixels, max_edge)
    rgb = small[:, :, :3]
    samples = rgb_u8_to_lab(rgb)

    logger.info(f"Sampled {len(samples)} colors from {pixels.shape[1]}x{pixels.shape[0]} image")
    return samples
