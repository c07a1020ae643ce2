"""
bgtheme Wallpaper Watcher
Daemon loop that re-derives both the dark and light themes whenever the
wallpaper state document changes.
"""
import json
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from bgtheme.config import config, mode_name
from bgtheme.errors import ConfigError, ThemeError
from bgtheme.services.orchestrator import DerivationResult, ThemeOrchestrator
from bgtheme.utils.logging import get_logger

logger = get_logger()


class WallpaperSource(BaseModel):
    """Either an image path or a solid color."""
    path: Optional[str] = None
    color: Optional[str] = None


class WallpaperEntry(BaseModel):
    output: str = "all"
    source: WallpaperSource


class WallpaperState(BaseModel):
    wallpapers: List[WallpaperEntry] = Field(default_factory=list)


def read_wallpaper_state(path: Union[str, Path]) -> WallpaperState:
    """
    Read and validate the wallpaper state document.

    Raises:
        ConfigError: If the document is unreadable or malformed
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to get the current state from {path}: {e}")

    try:
        return WallpaperState.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid wallpaper state {path}: {e}")


def primary_wallpaper(state: WallpaperState) -> Path:
    """Image path of the first wallpaper entry."""
    if not state.wallpapers:
        raise ThemeError("No wallpapers found")
    source = state.wallpapers[0].source
    if not source.path:
        raise ThemeError("No wallpaper path")
    return Path(source.path)


class WallpaperWatcher:
    """Polls the wallpaper state document and applies themes on change."""

    def __init__(self,
                 orchestrator: ThemeOrchestrator,
                 state_path: Union[str, Path, None] = None,
                 interval: Optional[float] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.orchestrator = orchestrator
        self.state_path = Path(state_path or config.WALLPAPER_STATE)
        self.interval = interval if interval is not None else config.WATCH_INTERVAL
        self._sleep = sleep
        self._stop = threading.Event()
        self._last_signature: Optional[Tuple[int, int]] = None
        self._last_state: Optional[WallpaperState] = None

    def apply_state(self, state: WallpaperState) -> Dict[str, Optional[DerivationResult]]:
        """Derive and persist both modes; a failing mode does not stop the other."""
        results: Dict[str, Optional[DerivationResult]] = {}
        for is_dark in (True, False):
            mode = mode_name(is_dark)
            try:
                path = primary_wallpaper(state)
                results[mode] = self.orchestrator.derive_from_path(path, is_dark, persist=True)
            except ThemeError as e:
                logger.error(f"Failed to apply the state: {e}", extra={"mode": mode})
                results[mode] = None
        return results

    def _signature(self) -> Optional[Tuple[int, int]]:
        try:
            stat = self.state_path.stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def poll_once(self) -> bool:
        """
        Check the state document once.

        Returns:
            True if themes were applied for a new wallpaper state
        """
        signature = self._signature()
        if signature == self._last_signature:
            return False
        self._last_signature = signature

        if signature is None:
            logger.warning(f"Wallpaper state {self.state_path} does not exist")
            return False

        try:
            state = read_wallpaper_state(self.state_path)
        except ConfigError as e:
            logger.error(str(e))
            return False

        if state == self._last_state:
            return False
        self._last_state = state

        logger.info("Wallpaper state changed, applying themes",
                    extra={"wallpapers": len(state.wallpapers)})
        self.apply_state(state)
        return True

    def run(self, max_iterations: Optional[int] = None):
        """Apply the current state, then poll until stopped."""
        logger.info(f"Watching {self.state_path} every {self.interval}s")
        iterations = 0
        while not self._stop.is_set():
            self.poll_once()
            iterations += 1
            if max_iterations is not None and iterations >= max_iterations:
                break
            self._sleep(self.interval)

    def stop(self):
        self._stop.set()
