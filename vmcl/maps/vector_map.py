"""Vector map loading.

A vector map is a text file with one wall segment per line:

    x0, y0, x1, y1

Coordinates are in meters in the map frame. Blank lines and lines starting
with '#' are ignored. Whitespace-separated values are accepted as well.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np

from vmcl.geometry.segments import Segment2D, SegmentLike, as_segments


@dataclass(frozen=True)
class VectorMap:
    """
    Immutable collection of map segments.

    Attributes:
        segments: Ordered wall segments.
        name: Identifier of the map (file stem when loaded from disk).
    """

    segments: Tuple[Segment2D, ...] = field(default_factory=tuple)
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "segments", tuple(as_segments(self.segments)))

    @classmethod
    def from_segments(cls, segments: Iterable[SegmentLike], name: str = "") -> "VectorMap":
        """Build a map from segment-like values."""
        return cls(segments=tuple(as_segments(segments)), name=name)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self):
        return iter(self.segments)

    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """Axis-aligned bounding box (xmin, ymin, xmax, ymax), None if empty."""
        if not self.segments:
            return None
        pts = np.array([s.to_array() for s in self.segments]).reshape(-1, 2)
        xmin, ymin = pts.min(axis=0)
        xmax, ymax = pts.max(axis=0)
        return float(xmin), float(ymin), float(xmax), float(ymax)


def parse_vector_map(text: str, name: str = "") -> VectorMap:
    """
    Parse vector map text into a VectorMap.

    Args:
        text: File contents, one "x0, y0, x1, y1" segment per line.
        name: Name given to the resulting map.

    Returns:
        Parsed VectorMap.

    Raises:
        ValueError: If a line does not contain exactly four numbers.
    """
    segments: List[Segment2D] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.replace(",", " ").split()
        if len(fields) != 4:
            raise ValueError(
                f"{name or 'map'}:{lineno}: expected 4 values 'x0, y0, x1, y1', "
                f"got {len(fields)}: {raw!r}"
            )
        try:
            x0, y0, x1, y1 = (float(v) for v in fields)
        except ValueError as e:
            raise ValueError(f"{name or 'map'}:{lineno}: {e}") from e
        segments.append(Segment2D.from_coords(x0, y0, x1, y1))

    return VectorMap(segments=tuple(segments), name=name)


def load_vector_map(path: Union[str, Path]) -> VectorMap:
    """
    Load a vector map file from disk.

    Args:
        path: Path to the map text file.

    Returns:
        Loaded VectorMap named after the file stem.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Vector map not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return parse_vector_map(f.read(), name=path.stem)


def save_vector_map(vector_map: VectorMap, path: Union[str, Path]) -> None:
    """Write a VectorMap in the text format read by load_vector_map()."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for seg in vector_map.segments:
            f.write(f"{seg.p0[0]}, {seg.p0[1]}, {seg.p1[0]}, {seg.p1[1]}\n")
