"""
Unit tests for Background -> Accent -> Neutral -> Text role selection.
"""
import numpy as np
import pytest

from bgtheme.services.colors.ranking import AvoidanceSet, RankedCandidate
from bgtheme.services.colors.roles import (
    left_skewed_shuffle, select_accent, select_background, select_neutral, select_roles,
    select_text,
)
from bgtheme.services.colors.space import Lch, hue_distance, lch_contrast


def from_lch(l, chroma, hue, weight=0.1):
    return RankedCandidate(lab=Lch(l, chroma, hue).to_lab(), weight=weight)


@pytest.fixture
def dark(defaults):
    return defaults.theme(True)


class TestSelectBackground:
    """Test background selection"""

    def test_chroma_capped_and_lightness_from_default(self, dark):
        pool = [from_lch(50, 60, 0, 0.5), from_lch(50, 40, 5, 0.3), from_lch(50, 40, 120, 0.2)]
        background, remaining = select_background(pool, dark)

        assert background.chroma == pytest.approx(dark.background.chroma + 15.0)
        assert background.l == pytest.approx(dark.background.l)
        assert background.hue == pytest.approx(0.0, abs=1e-6)
        # The hue-5 candidate is within 10 degrees of the background
        assert remaining == [pool[2]]

    def test_skips_avoided_candidate(self, dark):
        muddy = Lch(50, 5, 90)
        pool = [RankedCandidate(lab=muddy.to_lab(), weight=0.6), from_lch(40, 8, 250, 0.4)]
        background, remaining = select_background(pool, dark, avoid=[muddy])

        assert background.hue == pytest.approx(250.0)
        assert remaining == [pool[0]]

    def test_falls_back_to_default(self, dark):
        muddy = Lch(50, 5, 90)
        pool = [RankedCandidate(lab=muddy.to_lab(), weight=1.0)]
        background, remaining = select_background(pool, dark, avoid=[muddy])

        assert background == dark.background
        assert remaining == pool

    def test_empty_pool(self, dark):
        background, remaining = select_background([], dark)
        assert background == dark.background
        assert remaining == []


class TestSelectAccent:
    """Test accent selection"""

    def test_empty_pool_uses_default_accent(self, dark):
        accent, remaining = select_accent([], dark)
        assert accent == dark.accent
        assert remaining == []

    def test_strong_leading_candidate_wins(self, dark):
        pool = [
            from_lch(50, 80, 30, 0.4),
            from_lch(50, 40, 200, 0.3),
            from_lch(50, 20, 260, 0.2),
            from_lch(50, 30, 40, 0.1),
        ]
        accent, remaining = select_accent(pool, dark)

        assert accent.hue == pytest.approx(30.0)
        # Widest distance is 170, so the hue-40 candidate falls inside the radius
        assert remaining == [pool[1], pool[2]]

    def test_most_colorful_after_adjustment(self, dark):
        pool = [from_lch(60, 20, 30, 0.5), from_lch(60, 45, 150, 0.3), from_lch(60, 10, 280, 0.2)]
        accent, remaining = select_accent(pool, dark)

        assert accent.hue == pytest.approx(150.0)
        assert pool[1] not in remaining

    def test_accent_is_legible_on_default_background(self, dark):
        pool = [from_lch(15, 35, 250, 0.6), from_lch(20, 25, 20, 0.4)]
        accent, _ = select_accent(pool, dark)
        assert lch_contrast(accent, dark.background) >= 4.5

    def test_avoided_candidates_are_penalized(self, dark):
        muddy = Lch(60, 45, 150)
        pool = [from_lch(60, 45, 150, 0.5), from_lch(60, 30, 300, 0.5)]
        accent, _ = select_accent(pool, dark, avoid=[muddy])
        assert accent.hue == pytest.approx(300.0)


class TestSelectNeutralAndText:

    def test_neutral_is_first_colorful_candidate(self, dark):
        pool = [from_lch(50, 3, 10), from_lch(50, 25, 100), from_lch(50, 30, 200)]
        neutral, remaining = select_neutral(pool, dark)

        assert neutral.hue == pytest.approx(100.0)
        assert remaining == [pool[0], pool[2]]

    def test_neutral_default(self, dark):
        pool = [from_lch(50, 3, 10)]
        neutral, remaining = select_neutral(pool, dark)
        assert neutral == dark.neutral
        assert remaining == pool

    def test_text_takes_first_remaining(self):
        pool = [from_lch(70, 20, 10), from_lch(30, 20, 200)]
        text, remaining = select_text(pool)
        assert text.l == pytest.approx(70.0)
        assert remaining == [pool[1]]

    def test_text_absent_on_empty_pool(self):
        assert select_text([]) == (None, [])


class TestLeftSkewedShuffle:
    """Test the randomized reordering"""

    def test_without_rng_is_identity(self):
        pool = [from_lch(50, 20, h) for h in (0, 90, 180, 270)]
        assert left_skewed_shuffle(pool, None) == pool

    def test_only_window_is_reordered(self):
        pool = [from_lch(50, 20, h, w) for h, w in ((0, 0.4), (90, 0.3), (180, 0.2), (270, 0.1))]
        shuffled = left_skewed_shuffle(pool, np.random.default_rng(3))

        assert sorted(shuffled[:3], key=pool.index) == pool[:3]
        assert shuffled[3] == pool[3]

    def test_reproducible_with_seed(self):
        pool = [from_lch(50, 20, h, w) for h, w in ((0, 0.4), (90, 0.3), (180, 0.2), (270, 0.1))]
        first = left_skewed_shuffle(pool, np.random.default_rng(11))
        second = left_skewed_shuffle(pool, np.random.default_rng(11))
        assert first == second

    def test_input_not_mutated(self):
        pool = [from_lch(50, 20, h, 0.3) for h in (0, 90, 180)]
        snapshot = list(pool)
        left_skewed_shuffle(pool, np.random.default_rng(5))
        assert pool == snapshot


class TestSelectRoles:
    """Test the full role pipeline"""

    @pytest.fixture
    def ranked(self):
        return [
            from_lch(35, 12, 250, 0.35),
            from_lch(55, 55, 20, 0.25),
            from_lch(60, 35, 140, 0.2),
            from_lch(70, 25, 300, 0.1),
            from_lch(80, 15, 80, 0.1),
        ]

    def test_roles_are_distinct(self, ranked, defaults):
        selection = select_roles(ranked, defaults.theme(True), defaults.avoidance(True))

        assert selection.text is not None
        hexes = [selection.background.to_hex(), selection.accent.to_hex(),
                 selection.neutral.to_hex(), selection.text.to_hex()]
        assert len(set(hexes)) == 4
        assert hue_distance(selection.background.hue, selection.accent.hue) > 10.0

    @pytest.mark.parametrize("is_dark", [True, False])
    @pytest.mark.parametrize("randomized", [False, True])
    def test_random_pools_resolve_distinct_roles(self, defaults, is_dark, randomized):
        theme, avoidance = defaults.theme(is_dark), defaults.avoidance(is_dark)
        pool_rng = np.random.default_rng(2024)

        for _ in range(50):
            # Hues 60 degrees apart survive the background and accent exclusions
            offset = pool_rng.uniform(0, 60)
            hues = [(offset + 60 * i) % 360 for i in pool_rng.permutation(6)]
            weights = np.sort(pool_rng.dirichlet(np.ones(6)))[::-1]
            pool = [
                from_lch(pool_rng.uniform(30, 80), pool_rng.uniform(20, 45), hue, weight)
                for hue, weight in zip(hues, weights)
            ]

            rng = np.random.default_rng(int(pool_rng.integers(1 << 31))) if randomized else None
            selection = select_roles(pool, theme, avoidance, rng=rng)

            assert selection.text is not None
            hexes = {selection.background.to_hex(), selection.accent.to_hex(),
                     selection.neutral.to_hex(), selection.text.to_hex()}
            assert len(hexes) == 4

    def test_single_candidate_uses_defaults(self, defaults):
        theme = defaults.theme(True)
        selection = select_roles([from_lch(35, 12, 250, 1.0)], theme, AvoidanceSet())

        assert selection.background.hue == pytest.approx(250.0)
        assert selection.accent == theme.accent
        assert selection.neutral == theme.neutral
        assert selection.text is None

    def test_randomized_selection_is_reproducible(self, ranked, defaults):
        theme, avoidance = defaults.theme(False), defaults.avoidance(False)
        first = select_roles(ranked, theme, avoidance, rng=np.random.default_rng(7))
        second = select_roles(ranked, theme, avoidance, rng=np.random.default_rng(7))
        assert first == second

    def test_deterministic_without_rng(self, ranked, defaults):
        theme, avoidance = defaults.theme(True), defaults.avoidance(True)
        assert select_roles(ranked, theme, avoidance) == select_roles(ranked, theme, avoidance)
