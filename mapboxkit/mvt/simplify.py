"""Douglas-Peucker simplification over a flat x, y, importance coordinate array."""

from __future__ import annotations


def get_sq_seg_dist(px: float, py: float, x: float, y: float, bx: float, by: float) -> float:
    """Squared distance from (px, py) to the segment (x, y)-(bx, by)."""
    dx = bx - x
    dy = by - y
    if dx != 0 or dy != 0:
        t = ((px - x) * dx + (py - y) * dy) / (dx * dx + dy * dy)
        if t > 1:
            x = bx
            y = by
        elif t > 0:
            x += dx * t
            y += dy * t
    dx = px - x
    dy = py - y
    return dx * dx + dy * dy


def simplify(coords: list[float], first: int, last: int, sq_tolerance: float) -> None:
    """Mark kept vertices in place by writing their squared distance into slot +2.

    ``coords`` holds triples (x, y, importance); ``first`` and ``last`` index
    the x value of the end vertices.
    """
    max_sq_dist = sq_tolerance
    mid = (last - first) >> 1
    min_pos_to_mid = last - first
    index = 0

    ax, ay = coords[first], coords[first + 1]
    bx, by = coords[last], coords[last + 1]

    for i in range(first + 3, last, 3):
        d = get_sq_seg_dist(coords[i], coords[i + 1], ax, ay, bx, by)
        if d > max_sq_dist:
            index = i
            max_sq_dist = d
        elif d == max_sq_dist:
            pos_to_mid = abs(i - mid)
            if pos_to_mid < min_pos_to_mid:
                index = i
                min_pos_to_mid = pos_to_mid

    if max_sq_dist > sq_tolerance:
        if index - first > 3:
            simplify(coords, first, index, sq_tolerance)
        coords[index + 2] = max_sq_dist
        if last - index > 3:
            simplify(coords, index, last, sq_tolerance)