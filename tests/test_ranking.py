"""
Unit tests for candidate ranking and avoidance matching.
"""
import numpy as np
import pytest

from bgtheme.services.colors.clustering import ClusterResult
from bgtheme.services.colors.ranking import (
    AvoidanceSet, RankedCandidate, demote_candidates, matches_avoid, rank_candidates,
    sort_by_weight,
)
from bgtheme.services.colors.space import Lch

MUDDY_YELLOW = Lch.from_hex("#706E14")


def candidate(l, a, b, weight):
    return RankedCandidate(lab=(float(l), float(a), float(b)), weight=weight)


class TestMatchesAvoid:
    """Test the avoidance bucket check"""

    def test_identical_color_matches(self):
        assert matches_avoid(MUDDY_YELLOW, [MUDDY_YELLOW])

    def test_far_hue_does_not_match(self):
        other = Lch(MUDDY_YELLOW.l, MUDDY_YELLOW.chroma, (MUDDY_YELLOW.hue + 90.0) % 360.0)
        assert not matches_avoid(other, [MUDDY_YELLOW])

    def test_chroma_difference_counts(self):
        # Same hue but chroma 30 away: 30^2 > 666
        other = Lch(MUDDY_YELLOW.l, MUDDY_YELLOW.chroma + 30.0, MUDDY_YELLOW.hue)
        assert not matches_avoid(other, [MUDDY_YELLOW])

    def test_near_color_matches(self):
        other = Lch(MUDDY_YELLOW.l, MUDDY_YELLOW.chroma + 10.0, MUDDY_YELLOW.hue + 10.0)
        assert matches_avoid(other, [MUDDY_YELLOW])

    def test_hue_difference_wraps_at_180(self):
        # Opposite hues fold onto each other
        other = Lch(MUDDY_YELLOW.l, MUDDY_YELLOW.chroma, (MUDDY_YELLOW.hue + 180.0) % 360.0)
        assert matches_avoid(other, [MUDDY_YELLOW])

    def test_empty_avoid_list(self):
        assert not matches_avoid(MUDDY_YELLOW, [])


class TestSortByWeight:

    def test_heaviest_first_and_stable(self):
        centroids = [(10, 0, 0), (20, 0, 0), (30, 0, 0)]
        ranked = sort_by_weight(centroids, [0.2, 0.6, 0.2])
        assert [c.lab[0] for c in ranked] == [20.0, 10.0, 30.0]
        assert [c.weight for c in ranked] == [0.6, 0.2, 0.2]


class TestDemoteCandidates:
    """Test the stable three-bucket demotion"""

    def test_partition_order(self):
        grey = candidate(50, 1, 1, 0.4)
        avoided = RankedCandidate(lab=MUDDY_YELLOW.to_lab(), weight=0.3)
        red = candidate(50, 60, 10, 0.2)
        blue = candidate(40, 10, -50, 0.1)

        ranked = demote_candidates([grey, avoided, red, blue], [MUDDY_YELLOW])
        assert ranked == [red, blue, avoided, grey]

    def test_nothing_is_dropped(self):
        candidates = [candidate(50, 0, 0, 0.5), candidate(60, 0, 0, 0.5)]
        assert len(demote_candidates(candidates, [])) == 2

    def test_avoided_grey_counts_as_avoided(self):
        grey_avoid = Lch(50.0, 5.0, 90.0)
        avoided_grey = RankedCandidate(lab=grey_avoid.to_lab(), weight=0.5)
        plain_grey = candidate(70, 2, 0, 0.5)

        ranked = demote_candidates([plain_grey, avoided_grey], [grey_avoid])
        assert ranked == [avoided_grey, plain_grey]

    def test_min_chroma_threshold(self):
        muted = candidate(50, 8, 0, 0.6)
        vivid = candidate(50, 30, 0, 0.4)
        assert demote_candidates([muted, vivid], [], min_chroma=5.0) == [muted, vivid]
        assert demote_candidates([muted, vivid], []) == [vivid, muted]


class TestRankCandidates:

    def test_uses_cluster_weights_and_both_avoid_purposes(self):
        centroids = np.array([
            [50.0, 60.0, 10.0],
            list(MUDDY_YELLOW.to_lab()),
            [40.0, 10.0, -50.0],
        ])
        indices = np.array([1, 1, 1, 0, 0, 2], dtype=np.int64)
        result = ClusterResult(centroids=centroids, indices=indices, score=0.0, seed=42)

        ranked = rank_candidates(result, AvoidanceSet(accent=(MUDDY_YELLOW,)))
        assert [c.weight for c in ranked] == pytest.approx([2 / 6, 1 / 6, 3 / 6])
        assert ranked[-1].lab == pytest.approx(MUDDY_YELLOW.to_lab())

    def test_candidate_serialization(self):
        original = candidate(12.5, -3.25, 40.0, 0.125)
        assert RankedCandidate.from_dict(original.to_dict()) == original
