"""
Smoothed orthogonal edge paths and arrowheads.

Corners are replaced by quadratic curves whose radius never exceeds half
of the shorter adjacent segment, so short jogs are not overshot.
Arrowheads follow the tangent of the smoothed path near its end rather
than the chord to the previous waypoint.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from plate_mcp.models import Point


@dataclass
class GeometryConfig:
    corner_radius: float = 12
    arrow_size: float = 8
    arrow_half_width: float = 0.7   # Relative to arrow_size
    tangent_sample: float = 6       # Arc length before the tip used for direction
    curve_steps: int = 8


_EPS = 1e-6


def _dedupe(points: Sequence[Point]) -> list[Point]:
    out: list[Point] = []
    for pt in points:
        if out and abs(out[-1].x - pt.x) < _EPS and abs(out[-1].y - pt.y) < _EPS:
            continue
        out.append(pt)
    return out


def _is_collinear(a: Point, b: Point, c: Point) -> bool:
    cross = (b.x - a.x) * (c.y - b.y) - (b.y - a.y) * (c.x - b.x)
    dot = (b.x - a.x) * (c.x - b.x) + (b.y - a.y) * (c.y - b.y)
    return abs(cross) < _EPS and dot >= 0


def _toward(a: Point, b: Point, dist: float) -> Point:
    """The point *dist* along the segment from *a* to *b*."""
    length = math.hypot(b.x - a.x, b.y - a.y)
    if length < _EPS:
        return a
    t = dist / length
    return Point(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)


def _fmt(v: float) -> str:
    text = f"{v:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _corners(points: Sequence[Point], max_radius: float) -> list[tuple[Point, Point, Point] | Point]:
    """Straight points and (entry, corner, exit) triples along a path."""
    pts = _dedupe(points)
    if len(pts) < 3:
        return list(pts)

    simplified = [pts[0]]
    for i in range(1, len(pts) - 1):
        if not _is_collinear(simplified[-1], pts[i], pts[i + 1]):
            simplified.append(pts[i])
    simplified.append(pts[-1])

    out: list[tuple[Point, Point, Point] | Point] = [simplified[0]]
    for i in range(1, len(simplified) - 1):
        prev, corner, nxt = simplified[i - 1], simplified[i], simplified[i + 1]
        len_in = math.hypot(corner.x - prev.x, corner.y - prev.y)
        len_out = math.hypot(nxt.x - corner.x, nxt.y - corner.y)
        radius = min(max_radius, len_in / 2, len_out / 2)
        entry = _toward(corner, prev, radius)
        exit_ = _toward(corner, nxt, radius)
        out.append((entry, corner, exit_))
    out.append(simplified[-1])
    return out


def rounded_path(points: Sequence[Point], max_radius: float = 12) -> str:
    """SVG path data for *points* with rounded direction changes."""
    parts = _corners(points, max_radius)
    if not parts:
        return ""
    first = parts[0]
    d = [f"M {_fmt(first.x)} {_fmt(first.y)}"]
    for part in parts[1:]:
        if isinstance(part, Point):
            d.append(f"L {_fmt(part.x)} {_fmt(part.y)}")
        else:
            entry, corner, exit_ = part
            d.append(f"L {_fmt(entry.x)} {_fmt(entry.y)}")
            d.append(f"Q {_fmt(corner.x)} {_fmt(corner.y)} {_fmt(exit_.x)} {_fmt(exit_.y)}")
    return " ".join(d)


def flatten_path(points: Sequence[Point], max_radius: float = 12, steps: int = 8) -> list[Point]:
    """Polyline approximation of :func:`rounded_path`."""
    parts = _corners(points, max_radius)
    out: list[Point] = []
    for part in parts:
        if isinstance(part, Point):
            out.append(part)
            continue
        entry, corner, exit_ = part
        for k in range(steps + 1):
            t = k / steps
            u = 1 - t
            out.append(Point(
                u * u * entry.x + 2 * u * t * corner.x + t * t * exit_.x,
                u * u * entry.y + 2 * u * t * corner.y + t * t * exit_.y,
            ))
    return _dedupe(out)


def point_before_end(polyline: Sequence[Point], distance: float) -> Point:
    """Walk back *distance* along *polyline* from its last point."""
    remaining = distance
    for i in range(len(polyline) - 1, 0, -1):
        a, b = polyline[i], polyline[i - 1]
        seg = math.hypot(b.x - a.x, b.y - a.y)
        if seg >= remaining:
            return _toward(a, b, remaining)
        remaining -= seg
    return polyline[0]


def arrowhead(
    points: Sequence[Point],
    config: GeometryConfig | None = None,
) -> list[Point]:
    """Triangle (tip, left, right) at the end of the smoothed path.

    Returns an empty list for degenerate paths.
    """
    cfg = config or GeometryConfig()
    poly = flatten_path(points, cfg.corner_radius, cfg.curve_steps)
    if len(poly) < 2:
        return []
    tip = poly[-1]
    back = point_before_end(poly, cfg.tangent_sample)
    dx, dy = tip.x - back.x, tip.y - back.y
    length = math.hypot(dx, dy)
    if length < _EPS:
        return []
    ux, uy = dx / length, dy / length
    size = cfg.arrow_size
    half = size * cfg.arrow_half_width
    base_x, base_y = tip.x - ux * size, tip.y - uy * size
    left = Point(base_x - uy * half, base_y + ux * half)
    right = Point(base_x + uy * half, base_y - ux * half)
    return [tip, left, right]
