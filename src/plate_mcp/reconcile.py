"""
Flatten the oracle's hierarchical answer into one absolute space.

Positions come back relative to the parent container, and every routed
edge section is expressed in the frame of whichever container the oracle
picked for it. Both are translated here so drawing never has to know
about nesting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from plate_mcp.containment import ROOT_ID
from plate_mcp.layout import LayoutError
from plate_mcp.models import Bounds, Point


@dataclass
class RoutedSection:
    """One section of an edge, in absolute coordinates."""
    id: str
    points: list[Point]


@dataclass
class RoutedEdge:
    id: str
    source: str
    target: str
    sections: list[RoutedSection] = field(default_factory=list)

    @property
    def points(self) -> list[Point]:
        """All section points joined, without repeating shared endpoints."""
        joined: list[Point] = []
        for section in self.sections:
            for pt in section.points:
                if joined and joined[-1] == pt:
                    continue
                joined.append(pt)
        return joined


@dataclass
class ReconciledLayout:
    """Absolute boxes for every node and container, plus routed edges."""
    boxes: dict[str, Bounds] = field(default_factory=dict)
    edges: list[RoutedEdge] = field(default_factory=list)
    root_id: str = ROOT_ID

    @property
    def bounds(self) -> Bounds:
        """Content bounding box (the root container's box)."""
        root = self.boxes.get(self.root_id)
        if root is not None:
            return root
        if not self.boxes:
            return Bounds(0, 0, 0, 0)
        boxes = iter(self.boxes.values())
        total = next(boxes)
        for b in boxes:
            total = total.union(b)
        return total


def _point(raw: Any, dx: float, dy: float) -> Point:
    try:
        return Point(float(raw["x"]) + dx, float(raw["y"]) + dy)
    except (KeyError, TypeError, ValueError) as exc:
        raise LayoutError(f"Malformed point in layout response: {raw!r}") from exc


def _accumulate(
    element: dict[str, Any],
    parent_x: float,
    parent_y: float,
    boxes: dict[str, Bounds],
) -> None:
    ax = parent_x + float(element.get("x", 0) or 0)
    ay = parent_y + float(element.get("y", 0) or 0)
    boxes[element["id"]] = Bounds(
        ax, ay,
        float(element.get("width", 0) or 0),
        float(element.get("height", 0) or 0),
    )
    for child in element.get("children") or []:
        _accumulate(child, ax, ay, boxes)


def reconcile(response: dict[str, Any]) -> ReconciledLayout:
    """Turn an oracle response into absolute coordinates.

    Raises:
        LayoutError: when a section names a frame the response does not contain.
    """
    if not isinstance(response, dict) or "id" not in response:
        raise LayoutError("Layout response must be an object with an 'id'.")

    result = ReconciledLayout(root_id=response["id"])
    _accumulate(response, 0.0, 0.0, result.boxes)

    for i, edge in enumerate(response.get("edges") or []):
        eid = edge.get("id", f"e{i}")
        routed = RoutedEdge(
            id=eid,
            source=(edge.get("sources") or [""])[0],
            target=(edge.get("targets") or [""])[0],
        )
        for j, sec in enumerate(edge.get("sections") or []):
            frame_id = sec.get("container") or edge.get("container") or result.root_id
            frame = result.boxes.get(frame_id)
            if frame is None:
                raise LayoutError(f"Edge '{eid}' is routed in unknown container '{frame_id}'.")
            raw_points = [sec.get("startPoint"), *(sec.get("bendPoints") or []), sec.get("endPoint")]
            routed.sections.append(RoutedSection(
                id=sec.get("id", f"{eid}_s{j}"),
                points=[_point(p, frame.x, frame.y) for p in raw_points],
            ))
        result.edges.append(routed)
    return result
