from __future__ import annotations

from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple


class BoundingBox(NamedTuple):
    """
    An axis-aligned bounding box (minX, minY, maxX, maxY).

    The CRS is implied by whoever produced the box; adapters produce boxes in
    their native CRS and the query layer works with WGS84 boxes.

    Attributes:
        min_x: The western edge
        min_y: The southern edge
        max_x: The eastern edge
        max_y: The northern edge

    Examples:
        >>> from mapquery.constructs.bbox import BoundingBox
        >>> b = BoundingBox.from_corners([(3, 4), (1, 8), (2, 0)])
        >>> b
        BoundingBox(min_x=1, min_y=0, max_x=3, max_y=8)
        >>> b.center
        (2.0, 4.0)
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_list(cls, values: Sequence[float]) -> BoundingBox:
        min_x, min_y, max_x, max_y = values[:4]
        return cls(min_x, min_y, max_x, max_y)

    @classmethod
    def from_corners(cls, corners: Iterable[Sequence[float]]) -> BoundingBox:
        """
        Build a box from any number of corner positions.

        The extrema are re-derived from all of the positions, so corners that
        swapped order under a projection still produce min <= max on both axes.

        Args:
            corners: Positions as (x, y) sequences

        Returns:
            The smallest box containing every position
        """
        corners = list(corners)
        xs = [c[0] for c in corners]
        ys = [c[1] for c in corners]
        return cls(min(xs), min(ys), max(xs), max(ys))

    @classmethod
    def from_url_param(cls, value: Optional[str]) -> Optional[BoundingBox]:
        """Parse a "minx,miny,maxx,maxy" query parameter; None if malformed."""
        if not value:
            return None
        try:
            parts = [float(p) for p in value.split(",")]
        except ValueError:
            return None
        if len(parts) != 4:
            return None
        return cls.from_list(parts)

    def to_list(self) -> List[float]:
        return [self.min_x, self.min_y, self.max_x, self.max_y]

    def to_json(self) -> Dict[str, Any]:
        return {
            "minX": self.min_x,
            "minY": self.min_y,
            "maxX": self.max_x,
            "maxY": self.max_y,
        }

    def to_url_param(self, decimals: int = 6) -> str:
        return ",".join(str(round(v, decimals)) for v in self.to_list())

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y
