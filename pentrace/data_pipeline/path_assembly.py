"""Path assembly: skeleton mask → ordered pen strokes.

Steps:
    1. extract_points: row-major scan (y outer, x inner) for pixels > 128
    2. build_strokes: greedy nearest-neighbour tour starting at points[0];
       a new stroke starts whenever the next visited point is not
       8-adjacent to the previous one (pen lift + travel)

Tie-break: among equally near candidates the earliest point in
extraction order wins (strict < while scanning in that order). Output is
therefore fully determined by the input order.

The tour is O(N²), fine for sparse skeletons of a few thousand points.

All coordinates are pixels in image frame (top-left, +Y down).
"""

import logging
import math
from typing import List, NamedTuple, Optional, Sequence, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

MIDPOINT = 128


class Point(NamedTuple):
    """Integer pixel coordinate."""
    x: int
    y: int


Stroke = List[Point]


def extract_points(skeleton: np.ndarray) -> List[Point]:
    """Collect foreground pixel coordinates in row-major order.

    Parameters
    ----------
    skeleton : np.ndarray
        (H, W) mask; pixels with value > 128 are foreground

    Returns
    -------
    points : List[Point]
        Sorted by y, then x
    """
    skeleton = np.asarray(skeleton)
    if skeleton.ndim != 2:
        raise ValueError(f"Expected a 2D mask, got shape {skeleton.shape}")
    # argwhere yields (row, col) in C order, i.e. y outer, x inner
    coords = np.argwhere(skeleton > MIDPOINT)
    return [Point(int(x), int(y)) for y, x in coords]


def is_adjacent(a: Point, b: Point) -> bool:
    """8-adjacency: |Δx| ≤ 1 and |Δy| ≤ 1 (diagonals included)."""
    return abs(a.x - b.x) <= 1 and abs(a.y - b.y) <= 1


class TraversalContext:
    """State of the greedy tour: remaining candidates and current position.

    Remaining candidates are kept as indices in extraction order, so a
    linear scan with strict < picks the earliest of equally near points.
    """

    def __init__(self, points: Sequence[Point], start: int = 0):
        if not points:
            raise ValueError("Traversal needs at least one point")
        self.points = list(points)
        self.current = start
        self.remaining = [i for i in range(len(self.points)) if i != start]
        self.order = [start]

    @property
    def done(self) -> bool:
        return not self.remaining

    @property
    def current_point(self) -> Point:
        return self.points[self.current]

    def nearest_unvisited(self) -> Optional[int]:
        """Index of the closest remaining point, None when all are visited."""
        cur = self.current_point
        best_idx = None
        best_dist = math.inf
        for idx in self.remaining:
            p = self.points[idx]
            # Squared integer distance: same order as Euclidean, exact ties
            dist = (p.x - cur.x) ** 2 + (p.y - cur.y) ** 2
            if dist < best_dist:
                best_dist = dist
                best_idx = idx
        return best_idx

    def step(self) -> Optional[Point]:
        """Move to the nearest remaining point and return it."""
        idx = self.nearest_unvisited()
        if idx is None:
            return None
        self.remaining.remove(idx)
        self.current = idx
        self.order.append(idx)
        return self.points[idx]


def traverse(points: Sequence[Point]) -> Tuple[List[Point], List[int]]:
    """Greedy tour over all points.

    Returns
    -------
    path : List[Point]
        Every input point exactly once, in visiting order
    boundaries : List[int]
        Indices into path where a new stroke starts, followed by len(path)
    """
    if not points:
        return [], []

    ctx = TraversalContext(points)
    path = [ctx.current_point]
    boundaries = []
    while not ctx.done:
        nxt = ctx.step()
        path.append(nxt)
        if not is_adjacent(path[-2], nxt):
            boundaries.append(len(path) - 1)
    boundaries.append(len(path))
    return path, boundaries


def build_strokes(points: Sequence[Point]) -> List[Stroke]:
    """Order points into strokes, splitting at every non-adjacent jump.

    Parameters
    ----------
    points : Sequence[Point]
        Points in extraction order (the order decides the start point and
        tie-breaks)

    Returns
    -------
    strokes : List[Stroke]
        Non-empty strokes in drawing order; their concatenation contains
        each input point exactly once
    """
    points = [Point(*p) for p in points]
    path, boundaries = traverse(points)

    strokes = []
    start = 0
    for end in boundaries:
        strokes.append(path[start:end])
        start = end

    logger.debug(f"Built {len(strokes)} strokes from {len(points)} points")
    return strokes


def draw_strokes(shape: Tuple[int, int], strokes: Sequence[Stroke]) -> np.ndarray:
    """Rasterise stroke points into an (H, W) uint8 mask (0/255)."""
    out = np.zeros(shape, dtype=np.uint8)
    for stroke in strokes:
        for p in stroke:
            out[p.y, p.x] = 255
    return out


def render_preview(
    shape: Tuple[int, int],
    strokes: Sequence[Stroke],
    thickness: int = 1
) -> np.ndarray:
    """Draw strokes as black polylines on a white RGB canvas.

    Single-point strokes are drawn as dots.
    """
    h, w = shape
    canvas = np.full((h, w, 3), 255, dtype=np.uint8)
    for stroke in strokes:
        pts = np.array([[p.x, p.y] for p in stroke], dtype=np.int32)
        if len(pts) == 1 and thickness <= 1:
            canvas[pts[0, 1], pts[0, 0]] = 0
        elif len(pts) == 1:
            cv2.circle(canvas, (int(pts[0, 0]), int(pts[0, 1])), thickness // 2, (0, 0, 0), -1)
        else:
            cv2.polylines(canvas, [pts.reshape(-1, 1, 2)], False, (0, 0, 0), thickness, cv2.LINE_8)
    return canvas
