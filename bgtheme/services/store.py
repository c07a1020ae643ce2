"""
bgtheme Theme Store
Persists resolved themes per mode as JSON documents under the config directory.
"""
import json
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from loguru import logger

from bgtheme.config import mode_name
from bgtheme.errors import StoreError
from bgtheme.services.cache import discard_temp_file
from bgtheme.services.colors.space import Lch, rgb_to_hex
from bgtheme.services.colors.theme import ResolvedTheme

THEME_FILE = "theme.json"


class ThemeStore:
    """
    Theme builder documents, one per mode: ``<directory>/<mode>/theme.json``.

    Writes merge the role colors into whatever document is already there so
    unrelated keys survive, and replace the file atomically.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._locks = {"dark": threading.Lock(), "light": threading.Lock()}

    def theme_path(self, is_dark: bool) -> Path:
        return self.directory / mode_name(is_dark) / THEME_FILE

    def read_document(self, is_dark: bool) -> Dict[str, Any]:
        """Current document of a mode; unreadable documents count as empty."""
        path = self.theme_path(is_dark)
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to get the {mode_name(is_dark)} theme from {path}: {e}")
            return {}

        if not isinstance(document, dict):
            logger.error(f"Ignoring non-object theme document {path}")
            return {}
        return document

    def load_theme(self, is_dark: bool) -> Optional[ResolvedTheme]:
        document = self.read_document(is_dark)
        if "accent" not in document:
            return None
        try:
            return ResolvedTheme.from_dict({
                "accent": document["accent"],
                "background": document["bg_color"],
                "neutral": document["neutral_tint"],
                "text": document.get("text_tint"),
            })
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Stored {mode_name(is_dark)} theme is malformed: {e}")
            return None

    def write(self, is_dark: bool, theme: ResolvedTheme, palette: Mapping[str, Lch]) -> Path:
        """
        Merge a resolved theme and its synchronized palette into the mode document.

        Raises:
            StoreError: If the document cannot be written
        """
        path = self.theme_path(is_dark)
        with self._locks[mode_name(is_dark)]:
            document = self.read_document(is_dark)
            document.update({
                "is_dark": is_dark,
                "accent": list(theme.accent),
                "bg_color": list(theme.background),
                "neutral_tint": list(theme.neutral),
                "text_tint": list(theme.text) if theme.text is not None else None,
                "palette": {slot: rgb_to_hex(color.to_srgb()) for slot, color in palette.items()},
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })

            tmp_name = None
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".theme-")
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, indent=2)
                os.replace(tmp_name, path)
            except OSError as e:
                discard_temp_file(tmp_name)
                raise StoreError(f"Failed to write {mode_name(is_dark)} theme to {path}: {e}")

        logger.info(f"Wrote {mode_name(is_dark)} theme to {path}")
        return path
