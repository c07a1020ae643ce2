"""
bgtheme Derivation Orchestrator
Chains sampling, clustering, ranking, role selection and palette
synchronization for one (image, mode) pair, with caching and persistence.
"""
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np

from bgtheme.config import Config, config, mode_name
from bgtheme.errors import ThemeError
from bgtheme.services.cache import FileStateStore, ThemeCache, cache_key
from bgtheme.services.colors.clustering import cluster_samples
from bgtheme.services.colors.defaults import DefaultsBundle, load_defaults
from bgtheme.services.colors.palette_sync import synchronize_palette
from bgtheme.services.colors.ranking import RankedCandidate, demote_candidates, weighted_candidates
from bgtheme.services.colors.roles import select_roles
from bgtheme.services.colors.sampling import decode_image_bytes, load_image, sample_colors
from bgtheme.services.colors.space import Lch, rgb_to_hex
from bgtheme.services.colors.theme import ResolvedTheme
from bgtheme.services.fingerprint import content_identity, path_identity
from bgtheme.services.store import ThemeStore
from bgtheme.utils.ids import generate_derivation_id
from bgtheme.utils.logging import get_logger
from bgtheme.utils.metrics import get_metrics

logger = get_logger()

CACHE_NONE = "none"
CACHE_RAW = "raw"
CACHE_FINAL = "final"

LOCK_STRIPES = 64


@dataclass
class DerivationResult:
    """Outcome of one derivation."""
    derivation_id: str
    mode: str
    identity: str
    theme: ResolvedTheme
    palette: Dict[str, Lch]
    ranked: List[RankedCandidate] = field(default_factory=list)
    cache_source: str = CACHE_NONE
    persisted_to: Optional[str] = None
    timings: Dict[str, float] = field(default_factory=dict)

    def palette_hex(self) -> Dict[str, str]:
        return {slot: rgb_to_hex(color.to_srgb()) for slot, color in self.palette.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "derivation_id": self.derivation_id,
            "mode": self.mode,
            "identity": self.identity,
            "theme": self.theme.to_dict(),
            "theme_hex": self.theme.hex(),
            "palette": self.palette_hex(),
            "ranked": [c.to_dict() for c in self.ranked],
            "cache_source": self.cache_source,
            "persisted_to": self.persisted_to,
            "timings_ms": {k: round(v, 2) for k, v in self.timings.items()},
        }


class ThemeOrchestrator:
    """Runs derivations; one at a time per (identity, mode) key."""

    def __init__(self,
                 cache: Optional[ThemeCache] = None,
                 store: Optional[ThemeStore] = None,
                 defaults: Optional[DefaultsBundle] = None,
                 rng: Optional[np.random.Generator] = None,
                 settings: Config = config):
        self.settings = settings
        self.cache = cache or ThemeCache(
            enable_raw=settings.ENABLE_RAW_CACHE,
            enable_final=settings.ENABLE_FINAL_CACHE,
        )
        self.store = store
        self.defaults = defaults or load_defaults(settings.THEME_DEFAULTS_PATH)
        self.randomized = settings.ENABLE_RANDOMIZED
        self.rng = rng if rng is not None else np.random.default_rng(settings.RANDOM_SEED)
        self.metrics = get_metrics()

        # Keys share a fixed set of striped locks
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    def derive_from_path(self, path: Union[str, Path], is_dark: bool, **kwargs) -> DerivationResult:
        """Derive a theme for a wallpaper file."""
        return self.derive(path_identity(path), lambda: load_image(path), is_dark, **kwargs)

    def derive_from_bytes(self, data: bytes, is_dark: bool, **kwargs) -> DerivationResult:
        """Derive a theme for an encoded image, identified by its content."""
        return self.derive(content_identity(data), lambda: decode_image_bytes(data), is_dark, **kwargs)

    def derive(self,
               identity: str,
               load_pixels: Callable[[], np.ndarray],
               is_dark: bool,
               persist: bool = False,
               use_cache: bool = True,
               randomize: Optional[bool] = None) -> DerivationResult:
        """
        Derive the theme of one image for one mode.

        Args:
            identity: Cache identity of the image
            load_pixels: Returns the decoded RGB(A) pixel buffer; only called on a cache miss
            is_dark: Dark or light mode
            persist: Write the result to the theme store
            use_cache: Consult the caches (results are written either way)
            randomize: Override the randomized selection flag

        Raises:
            DecodeError, ClusteringError: The derivation is aborted, nothing is persisted
            StoreError: The theme could not be written to the store
        """
        mode = mode_name(is_dark)
        derivation_id = generate_derivation_id()
        log_extra = {"derivation_id": derivation_id, "mode": mode, "identity": identity}
        randomize = self.randomized if randomize is None else randomize
        start_time = time.time()

        self.metrics.increment_derivation_count(mode)
        logger.info("Starting theme derivation", extra=log_extra)

        with self._lock_for(cache_key(identity, is_dark)):
            try:
                result = self._derive_locked(derivation_id, identity, load_pixels, is_dark,
                                             use_cache, randomize)
                if persist and self.store is not None:
                    result.persisted_to = str(self.store.write(is_dark, result.theme, result.palette))
            except ThemeError as e:
                self.metrics.increment_failure_count(type(e).__name__)
                logger.error(f"Theme derivation failed: {e}", extra=log_extra)
                raise

        total_ms = (time.time() - start_time) * 1000
        result.timings["total"] = total_ms
        self.metrics.record_timing("derivation", total_ms)
        logger.info("Theme derivation complete", extra={
            **log_extra,
            "cache_source": result.cache_source,
            "total_ms": round(total_ms, 2),
            **result.theme.hex(),
        })
        return result

    def _derive_locked(self, derivation_id: str, identity: str,
                       load_pixels: Callable[[], np.ndarray], is_dark: bool,
                       use_cache: bool, randomize: bool) -> DerivationResult:
        mode = mode_name(is_dark)
        theme_defaults = self.defaults.theme(is_dark)
        timings: Dict[str, float] = {}

        if use_cache:
            cached_theme = self.cache.get_final(identity, is_dark)
            if cached_theme is not None:
                self.metrics.increment_cache_hit(CACHE_FINAL)
                palette = synchronize_palette(theme_defaults.palette, cached_theme.accent_lch)
                return DerivationResult(derivation_id, mode, identity, cached_theme, palette,
                                        cache_source=CACHE_FINAL, timings=timings)
            self.metrics.increment_cache_miss(CACHE_FINAL)

        weighted = self.cache.get_raw(identity, is_dark) if use_cache else None
        cache_source = CACHE_NONE
        if weighted is not None:
            self.metrics.increment_cache_hit(CACHE_RAW)
            cache_source = CACHE_RAW
        else:
            self.metrics.increment_cache_miss(CACHE_RAW)
            weighted = self._cluster(load_pixels, timings)
            self.cache.set_raw(identity, is_dark, weighted)

        stage_start = time.time()
        avoidance = self.defaults.avoidance(is_dark)
        ranked = demote_candidates(weighted, avoidance.all())
        selection = select_roles(ranked, theme_defaults, avoidance,
                                 rng=self.rng if randomize else None)
        theme = ResolvedTheme.from_lch(
            accent=selection.accent,
            background=selection.background,
            neutral=selection.neutral,
            text=selection.text,
            background_alpha=theme_defaults.background_alpha,
        )
        palette = synchronize_palette(theme_defaults.palette, theme.accent_lch)
        timings["selection"] = self._record("selection", stage_start)

        self.cache.set_final(identity, is_dark, theme)
        return DerivationResult(derivation_id, mode, identity, theme, palette,
                                ranked=ranked, cache_source=cache_source, timings=timings)

    def _cluster(self, load_pixels: Callable[[], np.ndarray], timings: Dict[str, float]) -> List[RankedCandidate]:
        stage_start = time.time()
        samples = sample_colors(load_pixels(), self.settings.MAX_EDGE)
        timings["sampling"] = self._record("sampling", stage_start)

        stage_start = time.time()
        result = cluster_samples(
            samples,
            k=self.settings.KMEANS_K,
            max_iter=self.settings.KMEANS_MAX_ITER,
            tol=self.settings.KMEANS_TOL,
            runs=self.settings.KMEANS_RUNS,
            base_seed=self.settings.KMEANS_SEED,
            parallel=self.settings.KMEANS_PARALLEL,
        )
        timings["clustering"] = self._record("clustering", stage_start)
        return weighted_candidates(result)

    def _record(self, stage: str, stage_start: float) -> float:
        duration_ms = (time.time() - stage_start) * 1000
        self.metrics.record_timing(stage, duration_ms)
        return duration_ms


def build_orchestrator(settings: Config = config) -> ThemeOrchestrator:
    """Orchestrator with the file-backed cache under STATE_DIR and the theme store under CONFIG_DIR."""
    cache = ThemeCache(
        FileStateStore(settings.STATE_DIR),
        enable_raw=settings.ENABLE_RAW_CACHE,
        enable_final=settings.ENABLE_FINAL_CACHE,
    )
    return ThemeOrchestrator(cache=cache, store=ThemeStore(settings.CONFIG_DIR), settings=settings)
