"""
Template Regions Module.

Coordinate regions authored on templates and the text lookup inside them.

Two coordinate systems are supported:
    - NormalizedRegion: fractions of the page, top-left origin
      (``{"normalized": {left, top, right, bottom, page}}``)
    - PointRegion: legacy PDF points, top-left origin
      (``{x, y, width, height, page}``) matched with a small tolerance

Author: Finance Platform Team
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config import get_config
from docintake.input_handler.pdf_processor import PageText, TextItem


@dataclass(frozen=True)
class NormalizedRegion:
    """Rectangle in page fractions; edges are inclusive."""
    left: float
    top: float
    right: float
    bottom: float
    page: int = 1

    def contains(self, item: TextItem, page: PageText) -> bool:
        return self.left <= item.x <= self.right and self.top <= item.y <= self.bottom

    def line_tolerance(self, page: PageText) -> float:
        return get_config("extraction.line_tolerance", 0.01)

    def with_page(self, page: int) -> 'NormalizedRegion':
        return NormalizedRegion(self.left, self.top, self.right, self.bottom, page)


@dataclass(frozen=True)
class PointRegion:
    """Rectangle in PDF points with a tolerance band around it."""
    x: float
    y: float
    width: float
    height: float
    page: int = 1
    tolerance: float = 5.0

    def contains(self, item: TextItem, page: PageText) -> bool:
        px = item.x * page.width
        py = item.y * page.height
        return (
            self.x - self.tolerance <= px <= self.x + self.width + self.tolerance
            and self.y - self.tolerance <= py <= self.y + self.height + self.tolerance
        )

    def line_tolerance(self, page: PageText) -> float:
        return self.tolerance / page.height if page.height else 0.0

    def with_page(self, page: int) -> 'PointRegion':
        return PointRegion(self.x, self.y, self.width, self.height, page, self.tolerance)


def parse_region(coords: Optional[Dict[str, Any]]):
    """
    Build a region from a template coordinate entry.

    Returns:
        NormalizedRegion, PointRegion, or None when the entry is incomplete.

    Example:
        >>> parse_region({"normalized": {"left": 0.1, "top": 0.1, "right": 0.4, "bottom": 0.15, "page": 2}})
        NormalizedRegion(left=0.1, top=0.1, right=0.4, bottom=0.15, page=2)
    """
    if not isinstance(coords, dict):
        return None

    normalized = coords.get("normalized")
    if isinstance(normalized, dict):
        edges = [normalized.get(key) for key in ("left", "top", "right", "bottom")]
        if any(edge is None for edge in edges):
            return None
        page = int(normalized.get("page") or coords.get("page") or 1)
        return NormalizedRegion(*(float(edge) for edge in edges), page=page)

    if coords.get("x") is not None and coords.get("y") is not None \
            and coords.get("width") and coords.get("height"):
        return PointRegion(
            float(coords["x"]),
            float(coords["y"]),
            float(coords["width"]),
            float(coords["height"]),
            page=int(coords.get("page") or 1),
            tolerance=float(get_config("extraction.legacy_point_tolerance", 5)),
        )

    return None


def text_in_region(page: PageText, region) -> str:
    """
    Return the text inside a region in reading order.

    Items are ordered top to bottom, and left to right within a line; two
    items are on the same line when their baselines differ by no more
    than the region's line tolerance.

    Args:
        page: Positioned words of the page.
        region: NormalizedRegion or PointRegion.

    Returns:
        Space-joined, stripped text ('' when nothing is inside).
    """
    selected: List[TextItem] = [item for item in page.items if region.contains(item, page)]
    if not selected:
        return ''

    tolerance = region.line_tolerance(page)
    selected.sort(key=lambda item: item.y)

    # group into lines, then order each line by x
    lines: List[List[TextItem]] = []
    for item in selected:
        if lines and abs(item.y - lines[-1][0].y) <= tolerance:
            lines[-1].append(item)
        else:
            lines.append([item])

    ordered = [item for line in lines for item in sorted(line, key=lambda i: i.x)]
    return ' '.join(item.text for item in ordered).strip()


__all__ = ['NormalizedRegion', 'PointRegion', 'parse_region', 'text_in_region']
