"""Spatial index over map segments for ray casting.

Ray casting dominates the cost of the observation model: every particle casts
tens of rays per scan against every map wall. Indoor maps are mostly made of
axis-aligned walls, so the index keeps:

    - horizontal segments sorted by their constant y
    - vertical segments sorted by their constant x
    - an unsorted list of angled segments

A query binary-searches the sorted buckets for the first wall at or beyond
the ray start and walks outward in the direction of travel, stopping as soon
as the wall coordinate is farther away than the best hit found so far (or the
end of the ray). Angled segments are scanned exhaustively. The closest of the
bucket hits, the angled hit and the max-range endpoint is returned.
"""

import bisect
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .segments import (
    Segment2D,
    SegmentKind,
    SegmentLike,
    as_segments,
    classify_segment,
    segment_intersection,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RayHit:
    """Result of a ray cast.

    Attributes:
        point: Closest intersection point [x, y], or the ray end point when
            nothing was hit.
        distance: Euclidean distance from the ray start to `point` (meters).
        hit: True if a map segment was hit, False for the max-range fallback.
    """

    point: np.ndarray
    distance: float
    hit: bool


class SegmentIndex:
    """
    Sorted-bucket index of map segments.

    The index must be built with `build()` before it can be queried, and is
    read-only afterwards, so concurrent queries need no locking. Calling
    `build()` again replaces the map and re-establishes the sort order.

    Attributes:
        axis_tolerance: Tolerance (meters) used to classify segments as
            horizontal or vertical.

    Example:
        >>> index = SegmentIndex()
        >>> index.build([(0.0, 5.0, 10.0, 5.0)])
        >>> hit = index.nearest_intersection(np.array([2.0, 0.0]), np.array([2.0, 10.0]))
        >>> hit.point, hit.distance, hit.hit  # doctest: +SKIP
        (array([2., 5.]), 5.0, True)
    """

    def __init__(self, axis_tolerance: float = 1e-9):
        if axis_tolerance < 0:
            raise ValueError(f"axis_tolerance must be >= 0, got {axis_tolerance}")
        self.axis_tolerance = axis_tolerance
        self._built = False
        self._segments: List[Segment2D] = []
        self._h_keys: List[float] = []
        self._h_segments: List[Segment2D] = []
        self._v_keys: List[float] = []
        self._v_segments: List[Segment2D] = []
        self._angled: List[Segment2D] = []

    @property
    def is_built(self) -> bool:
        """Whether build() has completed at least once."""
        return self._built

    @property
    def segments(self) -> List[Segment2D]:
        """All map segments in load order."""
        return list(self._segments)

    @property
    def counts(self) -> Tuple[int, int, int]:
        """Number of (horizontal, vertical, angled) segments."""
        return len(self._h_segments), len(self._v_segments), len(self._angled)

    def build(self, segments: Iterable[SegmentLike]) -> None:
        """
        Classify and sort the map segments.

        Args:
            segments: Map segments (Segment2D, (x0, y0, x1, y1) or point pairs).
        """
        segs = as_segments(segments)

        horizontal = []
        vertical = []
        angled = []
        for seg in segs:
            kind = classify_segment(seg, self.axis_tolerance)
            if kind is SegmentKind.HORIZONTAL:
                horizontal.append((0.5 * (seg.p0[1] + seg.p1[1]), seg))
            elif kind is SegmentKind.VERTICAL:
                vertical.append((0.5 * (seg.p0[0] + seg.p1[0]), seg))
            else:
                angled.append(seg)

        horizontal.sort(key=lambda item: item[0])
        vertical.sort(key=lambda item: item[0])

        self._segments = segs
        self._h_keys = [key for key, _ in horizontal]
        self._h_segments = [seg for _, seg in horizontal]
        self._v_keys = [key for key, _ in vertical]
        self._v_segments = [seg for _, seg in vertical]
        self._angled = angled
        self._built = True

        logger.debug(
            "Built segment index: %d horizontal, %d vertical, %d angled",
            len(horizontal), len(vertical), len(angled),
        )

    def nearest_intersection(self, start: np.ndarray, end: np.ndarray) -> RayHit:
        """
        Find the closest map intersection along the ray [start, end].

        Args:
            start: Ray start point [x, y] (the min-range point of a laser ray).
            end: Ray end point [x, y] (the max-range point of a laser ray).

        Returns:
            RayHit with the closest intersection, or the end point with
            hit=False when the ray crosses no segment.

        Raises:
            RuntimeError: If the index has not been built.
        """
        if not self._built:
            raise RuntimeError("SegmentIndex not built. Call build() first.")

        start = np.asarray(start, dtype=np.float64)
        end = np.asarray(end, dtype=np.float64)
        ray_length = float(np.hypot(end[0] - start[0], end[1] - start[1]))

        candidates = [
            self._walk_bucket(self._h_keys, self._h_segments, start, end, axis=1),
            self._walk_bucket(self._v_keys, self._v_segments, start, end, axis=0),
            self._scan_angled(start, end),
        ]

        best_point: Optional[np.ndarray] = None
        best_t = float("inf")
        for point, t in candidates:
            if point is not None and t < best_t:
                best_point, best_t = point, t

        if best_point is None:
            return RayHit(point=end.copy(), distance=ray_length, hit=False)
        return RayHit(point=best_point, distance=best_t * ray_length, hit=True)

    def _walk_bucket(
        self,
        keys: List[float],
        segments: List[Segment2D],
        start: np.ndarray,
        end: np.ndarray,
        axis: int,
    ) -> Tuple[Optional[np.ndarray], float]:
        """Incremental nearest search over one sorted axis-aligned bucket.

        `axis` is the coordinate that is constant along the bucket's segments
        (1 for horizontal walls, 0 for vertical walls).
        """
        if not keys:
            return None, float("inf")

        origin = float(start[axis])
        delta = float(end[axis]) - origin
        if delta == 0.0:
            # Ray parallel to every segment in this bucket.
            return None, float("inf")

        tol = self.axis_tolerance
        if delta > 0:
            j = bisect.bisect_left(keys, origin - tol)
            step = 1
        else:
            j = bisect.bisect_right(keys, origin + tol) - 1
            step = -1
        sign = 1.0 if delta > 0 else -1.0
        span = abs(delta)

        best_point = None
        best_t = float("inf")
        gap_limit = span + tol
        while 0 <= j < len(keys):
            gap = (keys[j] - origin) * sign
            if gap > gap_limit:
                break
            seg = segments[j]
            point, t = segment_intersection(start, end, seg.p0, seg.p1)
            if point is not None and t < best_t:
                best_point, best_t = point, t
                gap_limit = min(gap_limit, best_t * span + tol)
            j += step

        return best_point, best_t

    def _scan_angled(
        self, start: np.ndarray, end: np.ndarray
    ) -> Tuple[Optional[np.ndarray], float]:
        """Exhaustive search over the angled segments."""
        best_point = None
        best_t = float("inf")
        for seg in self._angled:
            point, t = segment_intersection(start, end, seg.p0, seg.p1)
            if point is not None and t < best_t:
                best_point, best_t = point, t
        return best_point, best_t
