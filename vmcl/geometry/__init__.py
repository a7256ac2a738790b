"""
Planar geometry for vector-map localization.

Main components:
    - se2_compose, se2_inverse, se2_relative, rotate_2d: SE(2) helpers
    - Segment2D, classify_segment, segment_intersection: map segments
    - SegmentIndex, RayHit: sorted-bucket ray-casting index
"""

from .index import RayHit, SegmentIndex
from .se2 import as_pose, rotate_2d, se2_compose, se2_inverse, se2_relative
from .segments import (
    Segment2D,
    SegmentKind,
    as_segment,
    as_segments,
    classify_segment,
    segment_intersection,
)

__all__ = [
    # SE(2)
    "as_pose",
    "rotate_2d",
    "se2_compose",
    "se2_inverse",
    "se2_relative",
    # Segments
    "Segment2D",
    "SegmentKind",
    "as_segment",
    "as_segments",
    "classify_segment",
    "segment_intersection",
    # Index
    "RayHit",
    "SegmentIndex",
]
