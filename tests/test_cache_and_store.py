"""
Tests for the derivation caches and the theme store.
"""
import json
import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from bgtheme.errors import CacheError, StoreError
from bgtheme.services.cache import (
    FileStateStore, InMemoryStore, ThemeCache, cache_key, raw_cache_key,
)
from bgtheme.services.colors.ranking import RankedCandidate
from bgtheme.services.colors.space import Lch
from bgtheme.services.colors.theme import ResolvedTheme
from bgtheme.services.fingerprint import content_identity, path_identity

THEME = ResolvedTheme(
    accent=(0.25, 0.75, 0.875),
    background=(0.125, 0.125, 0.25, 1.0),
    neutral=(0.5, 0.5, 0.5),
    text=(0.875, 0.875, 0.75),
)
CANDIDATES = [
    RankedCandidate(lab=(50.0, 20.0, -10.0), weight=0.75),
    RankedCandidate(lab=(20.0, 0.5, 0.5), weight=0.25),
]


class TestKeys:
    """Test cache key and identity formats"""

    def test_cache_keys(self):
        assert cache_key("_home_me_wall.png", True) == "_home_me_wall.png_true"
        assert cache_key("_home_me_wall.png", False) == "_home_me_wall.png_false"
        assert raw_cache_key("_home_me_wall.png", True) == "_home_me_wall.png_true_raw"

    def test_path_identity(self):
        assert path_identity("/usr/share/backgrounds/a.png") == "_usr_share_backgrounds_a.png"

    def test_content_identity(self):
        identity = content_identity(b"abc")
        assert identity.startswith("sha256-")
        assert len(identity) == len("sha256-") + 64
        assert content_identity(b"abc") == identity
        assert content_identity(b"abd") != identity


class TestBackends:
    """Test the key-value backends"""

    @pytest.fixture(params=["memory", "file"])
    def backend(self, request, tmp_path):
        if request.param == "memory":
            return InMemoryStore()
        return FileStateStore(tmp_path / "state")

    def test_set_get_delete(self, backend):
        assert backend.get("k") is None
        backend.set("k", {"a": [1, 2]})
        assert backend.exists("k")
        assert backend.get("k") == {"a": [1, 2]}
        assert backend.delete("k")
        assert not backend.delete("k")
        assert backend.get("k") is None

    def test_clear_counts_entries(self, backend):
        backend.set("a", 1)
        backend.set("b", 2)
        assert backend.clear() == 2
        assert not backend.exists("a")

    def test_unserializable_value(self, backend):
        with pytest.raises(CacheError):
            backend.set("k", object())

    def test_file_store_survives_restart(self, tmp_path):
        FileStateStore(tmp_path).set("x_true", [1, 2, 3])
        assert FileStateStore(tmp_path).get("x_true") == [1, 2, 3]

    def test_file_store_corrupt_entry(self, tmp_path):
        (tmp_path / "bad").write_text("{oops")
        with pytest.raises(CacheError):
            FileStateStore(tmp_path).get("bad")

    def test_failed_write_leaves_no_temp_file(self, tmp_path, monkeypatch):
        def failing_replace(src, dst):
            raise OSError("disk full")

        store = FileStateStore(tmp_path)
        monkeypatch.setattr(os, "replace", failing_replace)
        with pytest.raises(CacheError):
            store.set("k", {"a": 1})
        assert list(tmp_path.iterdir()) == []


class TestThemeCache:
    """Test the final and raw caches"""

    def test_final_round_trip(self):
        cache = ThemeCache()
        assert cache.get_final("img", True) is None
        cache.set_final("img", True, THEME)
        assert cache.get_final("img", True) == THEME
        # Modes are cached separately
        assert cache.get_final("img", False) is None

    def test_raw_round_trip(self):
        cache = ThemeCache()
        cache.set_raw("img", True, CANDIDATES)
        assert cache.get_raw("img", True) == CANDIDATES
        assert cache.backend.exists("img_true_raw")

    def test_disabled_layers(self):
        cache = ThemeCache(enable_raw=False, enable_final=False)
        assert not cache.set_final("img", True, THEME)
        assert not cache.set_raw("img", True, CANDIDATES)
        assert cache.get_final("img", True) is None
        assert cache.get_raw("img", True) is None

    def test_corrupt_file_is_a_miss(self, tmp_path):
        cache = ThemeCache(FileStateStore(tmp_path))
        (tmp_path / "img_true").write_text("{oops")
        (tmp_path / "img_true_raw").write_text("[]")

        assert cache.get_final("img", True) is None
        assert cache.get_raw("img", True) is None
        assert cache.stats["errors"] == 2

    def test_malformed_entries_are_misses(self):
        cache = ThemeCache()
        cache.backend.set("img_true", {"accent": [2.0, 0.0, 0.0]})
        cache.backend.set("img_true_raw", [{"lab": [1, 2], "weight": 1.0}])

        assert cache.get_final("img", True) is None
        assert cache.get_raw("img", True) is None

    def test_stats(self):
        cache = ThemeCache()
        cache.get_final("img", True)
        cache.set_final("img", True, THEME)
        cache.get_final("img", True)

        stats = cache.get_cache_stats()
        assert stats["stats"]["final_hits"] == 1
        assert stats["stats"]["final_misses"] == 1
        assert stats["hit_rates"]["final"] == 0.5

    def test_stats_under_concurrent_reads(self):
        cache = ThemeCache()
        cache.set_final("img", True, THEME)

        def read(index):
            cache.get_final("img" if index % 2 else "other", True)

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(read, range(400)))

        stats = cache.get_cache_stats()["stats"]
        assert stats["final_hits"] == 200
        assert stats["final_misses"] == 200

    def test_clear(self, tmp_path):
        cache = ThemeCache(FileStateStore(tmp_path))
        cache.set_final("img", True, THEME)
        cache.set_raw("img", True, CANDIDATES)
        assert cache.clear() == 2


class TestThemeStore:
    """Test theme persistence"""

    def test_write_and_load(self, theme_store):
        palette = {"accent_blue": Lch(60.0, 30.0, 220.0)}
        path = theme_store.write(True, THEME, palette)

        assert path == theme_store.directory / "dark" / "theme.json"
        assert theme_store.load_theme(True) == THEME
        assert theme_store.load_theme(False) is None

        document = json.loads(path.read_text())
        assert document["bg_color"] == list(THEME.background)
        assert document["palette"]["accent_blue"] == Lch(60.0, 30.0, 220.0).to_hex()

    def test_write_preserves_unrelated_keys(self, theme_store):
        path = theme_store.theme_path(False)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"corner_radii": [4, 8], "accent": [0, 0, 0]}))

        theme_store.write(False, THEME, {})
        document = json.loads(path.read_text())
        assert document["corner_radii"] == [4, 8]
        assert document["accent"] == list(THEME.accent)

    def test_missing_text_is_null(self, theme_store):
        theme = ResolvedTheme(THEME.accent, THEME.background, THEME.neutral, None)
        theme_store.write(True, theme, {})
        assert theme_store.read_document(True)["text_tint"] is None
        assert theme_store.load_theme(True) == theme

    def test_malformed_document_reads_empty(self, theme_store):
        path = theme_store.theme_path(True)
        path.parent.mkdir(parents=True)
        path.write_text("[1, 2")
        assert theme_store.read_document(True) == {}
        assert theme_store.load_theme(True) is None

    def test_write_failure_raises(self, tmp_path):
        from bgtheme.services.store import ThemeStore

        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(StoreError):
            ThemeStore(blocker).write(True, THEME, {})

    def test_failed_write_leaves_no_temp_file(self, theme_store, monkeypatch):
        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)
        with pytest.raises(StoreError):
            theme_store.write(True, THEME, {})

        mode_dir = theme_store.theme_path(True).parent
        assert list(mode_dir.iterdir()) == []
