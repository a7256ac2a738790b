"""Unit tests for the sorted-bucket ray-casting index.

The index must never disagree with an exhaustive scan over all segments,
which is checked on randomized maps and rays below.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from vmcl.geometry import SegmentIndex, segment_intersection
from vmcl.geometry.segments import Segment2D, as_segments


def brute_force_intersection(segments, start, end):
    """Reference: closest hit over every segment, or the ray end."""
    best_point, best_t = None, float("inf")
    for seg in as_segments(segments):
        point, t = segment_intersection(start, end, seg.p0, seg.p1)
        if point is not None and t < best_t:
            best_point, best_t = point, t
    if best_point is None:
        return np.asarray(end, dtype=float), False
    return best_point, True


def random_map(rng: np.random.Generator, n_segments: int = 9):
    """Random mix of horizontal, vertical and angled segments in [-10, 10]²."""
    segments = []
    for k in range(n_segments):
        kind = k % 3
        a, b = rng.uniform(-10.0, 10.0, size=2)
        c = rng.uniform(-10.0, 10.0)
        if kind == 0:
            segments.append(Segment2D.from_coords(a, c, b, c))
        elif kind == 1:
            segments.append(Segment2D.from_coords(c, a, c, b))
        else:
            x0, y0, x1, y1 = rng.uniform(-10.0, 10.0, size=4)
            segments.append(Segment2D.from_coords(x0, y0, x1, y1))
    return segments


class TestSegmentIndexBasics:
    """Single-wall and ordering behavior."""

    def test_ray_straight_up_hits_horizontal_wall(self):
        index = SegmentIndex()
        index.build([(-10.0, 5.0, 10.0, 5.0)])

        hit = index.nearest_intersection(np.array([0.0, 0.0]), np.array([0.0, 10.0]))

        assert hit.hit
        assert_allclose(hit.point, [0.0, 5.0], atol=1e-12)
        assert hit.distance == pytest.approx(5.0)

    def test_no_hit_returns_ray_end(self):
        index = SegmentIndex()
        index.build([(-10.0, 5.0, 10.0, 5.0)])

        hit = index.nearest_intersection(np.array([0.0, 0.0]), np.array([0.0, -3.0]))

        assert not hit.hit
        assert_allclose(hit.point, [0.0, -3.0])
        assert hit.distance == pytest.approx(3.0)

    def test_out_of_range_wall_is_not_hit(self):
        index = SegmentIndex()
        index.build([(-10.0, 5.0, 10.0, 5.0)])

        hit = index.nearest_intersection(np.array([0.0, 0.0]), np.array([0.0, 4.0]))
        assert not hit.hit

    def test_nearest_of_stacked_walls_upward_and_downward(self):
        index = SegmentIndex()
        index.build([
            (-1.0, 3.0, 1.0, 3.0),
            (-1.0, -2.0, 1.0, -2.0),
            (-1.0, 1.0, 1.0, 1.0),
            (-1.0, -4.0, 1.0, -4.0),
        ])

        up = index.nearest_intersection(np.array([0.0, 0.0]), np.array([0.0, 10.0]))
        down = index.nearest_intersection(np.array([0.0, 0.0]), np.array([0.0, -10.0]))

        assert_allclose(up.point, [0.0, 1.0], atol=1e-12)
        assert_allclose(down.point, [0.0, -2.0], atol=1e-12)

    def test_walk_skips_walls_the_ray_misses(self):
        """A closer wall off to the side must not stop the search."""
        index = SegmentIndex()
        index.build([
            (5.0, 1.0, 6.0, 1.0),      # closer in y, but not under the ray
            (-1.0, 2.0, 1.0, 2.0),
        ])

        hit = index.nearest_intersection(np.array([0.0, 0.0]), np.array([0.0, 10.0]))
        assert_allclose(hit.point, [0.0, 2.0], atol=1e-12)

    def test_angled_wall_closer_than_axis_aligned(self):
        index = SegmentIndex()
        index.build([
            (4.0, -5.0, 4.0, 5.0),     # vertical at x=4
            (2.0, -1.0, 3.0, 1.0),     # angled, crosses y=0 at x=2.5
        ])

        hit = index.nearest_intersection(np.array([0.0, 0.0]), np.array([10.0, 0.0]))
        assert_allclose(hit.point, [2.5, 0.0], atol=1e-12)
        assert hit.distance == pytest.approx(2.5)

    def test_bucket_counts(self):
        index = SegmentIndex()
        index.build([(0, 0, 1, 0), (0, 0, 0, 1), (0, 0, 1, 1), (2, 2, 3, 2)])
        assert index.counts == (2, 1, 1)

    def test_query_before_build_raises(self):
        index = SegmentIndex()
        with pytest.raises(RuntimeError):
            index.nearest_intersection(np.array([0.0, 0.0]), np.array([1.0, 0.0]))

    def test_rebuild_replaces_map(self):
        index = SegmentIndex()
        index.build([(-10.0, 5.0, 10.0, 5.0)])
        index.build([(-10.0, 2.0, 10.0, 2.0)])

        hit = index.nearest_intersection(np.array([0.0, 0.0]), np.array([0.0, 10.0]))
        assert_allclose(hit.point, [0.0, 2.0], atol=1e-12)
        assert len(index.segments) == 1

    def test_near_axis_wall_with_tolerance(self):
        """Slightly tilted wall classified as horizontal is still hit correctly."""
        index = SegmentIndex(axis_tolerance=1e-3)
        index.build([(-10.0, 5.0, 10.0, 5.0004)])
        assert index.counts == (1, 0, 0)

        start, end = np.array([3.0, 0.0]), np.array([3.0, 10.0])
        hit = index.nearest_intersection(start, end)
        ref, _ = brute_force_intersection([(-10.0, 5.0, 10.0, 5.0004)], start, end)
        assert_allclose(hit.point, ref, atol=1e-12)


class TestSegmentIndexAgainstBruteForce:
    """Index result must match an exhaustive scan."""

    @pytest.mark.parametrize("seed", [0, 1])
    def test_randomized_configurations(self, seed):
        rng = np.random.default_rng(seed)
        n_trials = 500
        n_hits = 0

        for _ in range(n_trials):
            segments = random_map(rng)
            index = SegmentIndex()
            index.build(segments)

            start = rng.uniform(-8.0, 8.0, size=2)
            angle = rng.uniform(-np.pi, np.pi)
            length = rng.uniform(0.5, 15.0)
            end = start + length * np.array([np.cos(angle), np.sin(angle)])

            hit = index.nearest_intersection(start, end)
            ref_point, ref_hit = brute_force_intersection(segments, start, end)

            assert hit.hit == ref_hit
            assert_allclose(hit.point, ref_point, atol=1e-9)
            n_hits += int(hit.hit)

        # Sanity: the random maps actually exercise the hit path
        assert n_hits > n_trials // 4

    def test_axis_aligned_rays(self):
        """Rays along the axes only traverse one bucket."""
        rng = np.random.default_rng(3)
        segments = random_map(rng, n_segments=30)
        index = SegmentIndex()
        index.build(segments)

        for direction in ([1.0, 0.0], [-1.0, 0.0], [0.0, 1.0], [0.0, -1.0]):
            for _ in range(50):
                start = rng.uniform(-8.0, 8.0, size=2)
                end = start + 12.0 * np.array(direction)
                hit = index.nearest_intersection(start, end)
                ref_point, ref_hit = brute_force_intersection(segments, start, end)
                assert hit.hit == ref_hit
                assert_allclose(hit.point, ref_point, atol=1e-9)
