"""
bgtheme Configuration
Manages environment variables and defaults for the theme derivation service.
"""
import os
from typing import Literal, Optional


def _default_dir(env_name: str, fallback: str, leaf: str) -> str:
    base = os.environ.get(env_name) or os.path.join(os.path.expanduser("~"), fallback)
    return os.path.join(base, leaf)


class Config:
    """Configuration class for bgtheme services."""

    # Sampling
    MAX_EDGE: int = int(os.environ.get("BGTHEME_MAX_EDGE", "256"))

    # Clustering
    KMEANS_K: int = int(os.environ.get("BGTHEME_KMEANS_K", "8"))
    KMEANS_MAX_ITER: int = int(os.environ.get("BGTHEME_KMEANS_MAX_ITER", "40"))
    KMEANS_TOL: float = float(os.environ.get("BGTHEME_KMEANS_TOL", "1e-4"))
    KMEANS_RUNS: int = int(os.environ.get("BGTHEME_KMEANS_RUNS", "2"))
    KMEANS_SEED: int = int(os.environ.get("BGTHEME_KMEANS_SEED", "42"))
    KMEANS_PARALLEL: bool = bool(int(os.environ.get("BGTHEME_KMEANS_PARALLEL", "0")))

    # Feature flags
    ENABLE_RAW_CACHE: bool = bool(int(os.environ.get("BGTHEME_ENABLE_RAW_CACHE", "1")))
    ENABLE_FINAL_CACHE: bool = bool(int(os.environ.get("BGTHEME_ENABLE_FINAL_CACHE", "1")))
    ENABLE_RANDOMIZED: bool = bool(int(os.environ.get("BGTHEME_ENABLE_RANDOMIZED", "0")))
    RANDOM_SEED: Optional[int] = (
        int(os.environ["BGTHEME_RANDOM_SEED"]) if os.environ.get("BGTHEME_RANDOM_SEED") else None
    )

    # Locations
    STATE_DIR: str = os.environ.get(
        "BGTHEME_STATE_DIR", _default_dir("XDG_STATE_HOME", ".local/state", "bgtheme")
    )
    CONFIG_DIR: str = os.environ.get(
        "BGTHEME_CONFIG_DIR", _default_dir("XDG_CONFIG_HOME", ".config", "bgtheme")
    )
    WALLPAPER_STATE: str = os.environ.get(
        "BGTHEME_WALLPAPER_STATE", os.path.join(CONFIG_DIR, "wallpaper.json")
    )
    THEME_DEFAULTS_PATH: Optional[str] = os.environ.get("BGTHEME_THEME_DEFAULTS_PATH")

    # Daemon
    WATCH_INTERVAL: float = float(os.environ.get("BGTHEME_WATCH_INTERVAL", "2.0"))

    # Logging
    LOG_LEVEL: str = os.environ.get("BGTHEME_LOG_LEVEL", "INFO")

    # HTTP preview API
    API_HOST: str = os.environ.get("BGTHEME_API_HOST", "127.0.0.1")
    API_PORT: int = int(os.environ.get("BGTHEME_API_PORT", "8765"))
    MAX_FILE_MB: int = int(os.environ.get("BGTHEME_MAX_FILE_MB", "20"))

    # Supported image formats for uploads
    SUPPORTED_MIME_TYPES = ["image/jpeg", "image/png", "image/webp"]

    MODES = ("dark", "light")

    @classmethod
    def validate_mode(cls, mode: str) -> bool:
        """Validate theme mode parameter."""
        return mode in cls.MODES

    @classmethod
    def validate_runs(cls, runs: int) -> bool:
        """Validate number of k-means runs."""
        return runs in (2, 4)

    @classmethod
    def validate_max_edge(cls, max_edge: int) -> bool:
        """Validate sampler working dimension."""
        return 16 <= max_edge <= 4096


Mode = Literal["dark", "light"]


def mode_name(is_dark: bool) -> str:
    return "dark" if is_dark else "light"


# Global config instance
config = Config()
