"""Map line segments and segment/segment intersection.

A vector map is an ordered collection of immutable 2D line segments. For ray
casting, segments are classified as horizontal (constant y), vertical
(constant x) or angled, so that axis-aligned walls can be searched through
sorted buckets instead of exhaustively.

The intersection primitive uses parametric line equations:
    Ray:     P = start + t * (end - start),  0 <= t <= 1
    Segment: Q = p0 + u * (p1 - p0),         0 <= u <= 1
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

# Below this determinant the ray and the segment are treated as parallel.
PARALLEL_EPS = 1e-12


class SegmentKind(Enum):
    """Classification of a map segment for the ray-casting index."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    ANGLED = "angled"


@dataclass(frozen=True)
class Segment2D:
    """
    Immutable 2D line segment of the map.

    Attributes:
        p0: First endpoint (x, y) in meters.
        p1: Second endpoint (x, y) in meters.

    Example:
        >>> wall = Segment2D.from_coords(0.0, 5.0, 10.0, 5.0)
        >>> classify_segment(wall)
        <SegmentKind.HORIZONTAL: 'horizontal'>
    """

    p0: Tuple[float, float]
    p1: Tuple[float, float]

    def __post_init__(self) -> None:
        """Normalize endpoints to float tuples and validate them."""
        p0 = tuple(float(v) for v in self.p0)
        p1 = tuple(float(v) for v in self.p1)
        if len(p0) != 2 or len(p1) != 2:
            raise ValueError(f"Segment endpoints must be 2D, got {self.p0}, {self.p1}")
        if not all(np.isfinite(p0 + p1)):
            raise ValueError(f"Segment endpoints must be finite, got {p0}, {p1}")
        object.__setattr__(self, "p0", p0)
        object.__setattr__(self, "p1", p1)

    @classmethod
    def from_coords(cls, x0: float, y0: float, x1: float, y1: float) -> "Segment2D":
        """Create a segment from four coordinates."""
        return cls((x0, y0), (x1, y1))

    @property
    def length(self) -> float:
        """Euclidean length of the segment."""
        return float(np.hypot(self.p1[0] - self.p0[0], self.p1[1] - self.p0[1]))

    def to_array(self) -> np.ndarray:
        """Return endpoints as array [[x0, y0], [x1, y1]]."""
        return np.array([self.p0, self.p1], dtype=np.float64)


SegmentLike = Union[Segment2D, Sequence[float], Sequence[Sequence[float]]]


def as_segment(seg: SegmentLike) -> Segment2D:
    """
    Coerce a segment-like value into a Segment2D.

    Accepts a Segment2D, a flat (x0, y0, x1, y1) sequence or a pair of
    points ((x0, y0), (x1, y1)).

    Raises:
        ValueError: If the value cannot be interpreted as a segment.
    """
    if isinstance(seg, Segment2D):
        return seg
    arr = np.asarray(seg, dtype=np.float64)
    if arr.shape == (4,):
        return Segment2D.from_coords(*arr)
    if arr.shape == (2, 2):
        return Segment2D(tuple(arr[0]), tuple(arr[1]))
    raise ValueError(f"Cannot interpret {seg!r} as a 2D segment")


def as_segments(segments: Iterable[SegmentLike]) -> List[Segment2D]:
    """Coerce an iterable of segment-like values into a list of Segment2D."""
    return [as_segment(s) for s in segments]


def classify_segment(segment: Segment2D, tol: float = 1e-9) -> SegmentKind:
    """
    Classify a segment as horizontal, vertical or angled.

    Args:
        segment: Segment to classify.
        tol: Absolute tolerance (meters) on the endpoint coordinate difference.
            A segment whose endpoints coincide within tol in both axes is
            classified as angled so it goes through the exhaustive path.

    Returns:
        SegmentKind of the segment.
    """
    dx = abs(segment.p1[0] - segment.p0[0])
    dy = abs(segment.p1[1] - segment.p0[1])
    if dy <= tol and dx > tol:
        return SegmentKind.HORIZONTAL
    if dx <= tol and dy > tol:
        return SegmentKind.VERTICAL
    return SegmentKind.ANGLED


def segment_intersection(
    start: np.ndarray,
    end: np.ndarray,
    seg_p0: Sequence[float],
    seg_p1: Sequence[float],
) -> Tuple[Optional[np.ndarray], float]:
    """Intersect a finite ray [start, end] with a map segment.

    Solves start + t*d = p0 + u*e with Cramer's rule, d = end - start and
    e = p1 - p0.

    Args:
        start: Ray start point [x, y].
        end: Ray end point [x, y] (the max-range endpoint).
        seg_p0: Segment first endpoint.
        seg_p1: Segment second endpoint.

    Returns:
        Tuple of (intersection_point, t):
            - intersection_point: [x, y] if the ray hits the segment, None otherwise
            - t: Fraction of the ray length at the hit (inf if no hit)

    Notes:
        - Parallel and collinear configurations report no intersection.
        - Hits exactly at either end of the ray or of the segment count.
    """
    ox, oy = float(start[0]), float(start[1])
    dx, dy = float(end[0]) - ox, float(end[1]) - oy
    ax, ay = float(seg_p0[0]), float(seg_p0[1])
    ex, ey = float(seg_p1[0]) - ax, float(seg_p1[1]) - ay

    det = dx * ey - dy * ex
    if abs(det) < PARALLEL_EPS:
        return None, float("inf")

    wx, wy = ax - ox, ay - oy
    t = (wx * ey - wy * ex) / det
    u = (wx * dy - wy * dx) / det

    if t < 0.0 or t > 1.0 or u < 0.0 or u > 1.0:
        return None, float("inf")

    return np.array([ox + t * dx, oy + t * dy]), t
