"""
Drawable primitives for one successful render.

The rendering surface does no layout of its own: it receives positioned
rectangles, point-sequence paths, arrowhead triangles and text strings
(math wrapped in ``$...$`` for the typesetter) and draws them as given.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from plate_mcp.containment import Plate, iter_plates
from plate_mcp.geometry import GeometryConfig, arrowhead, rounded_path
from plate_mcp.models import Bounds, GraphModel, Node, NodeType, Point
from plate_mcp.reconcile import ReconciledLayout
from plate_mcp.styles import ColorTheme, Themes

SVG_NS = "http://www.w3.org/2000/svg"


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

@dataclass
class Rect:
    """A plate outline or a node box."""
    id: str
    kind: str                      # "plate" | "node"
    x: float
    y: float
    width: float
    height: float
    fill: str = "none"
    stroke: str = "#000000"
    stroke_width: float = 2
    rx: float = 0
    node_type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "type": "rect", "id": self.id, "kind": self.kind,
            "x": self.x, "y": self.y, "width": self.width, "height": self.height,
            "fill": self.fill, "stroke": self.stroke,
            "strokeWidth": self.stroke_width, "rx": self.rx,
        }
        if self.node_type:
            d["nodeType"] = self.node_type
        return d

    def to_element(self) -> ET.Element:
        attrib = {
            "id": self.id,
            "x": str(self.x), "y": str(self.y),
            "width": str(self.width), "height": str(self.height),
            "fill": self.fill, "stroke": self.stroke,
            "stroke-width": str(self.stroke_width),
            "class": f"{self.kind} {self.kind}-{self.node_type}" if self.node_type else self.kind,
        }
        if self.rx:
            attrib["rx"] = str(self.rx)
        return ET.Element("rect", attrib=attrib)


@dataclass
class PathPrimitive:
    """An edge as a smoothed point sequence."""
    id: str
    points: list[Point]
    d: str
    stroke: str = "#000000"
    stroke_width: float = 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "path", "id": self.id, "d": self.d,
            "points": [p.to_dict() for p in self.points],
            "stroke": self.stroke, "strokeWidth": self.stroke_width,
        }

    def to_element(self) -> ET.Element:
        return ET.Element("path", attrib={
            "id": self.id, "d": self.d, "fill": "none",
            "stroke": self.stroke, "stroke-width": str(self.stroke_width),
        })


@dataclass
class Polygon:
    """An arrowhead triangle."""
    id: str
    points: list[Point]
    fill: str = "#000000"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "polygon", "id": self.id, "points": [p.to_dict() for p in self.points], "fill": self.fill}

    def to_element(self) -> ET.Element:
        pts = " ".join(f"{p.x:.2f},{p.y:.2f}" for p in self.points)
        return ET.Element("polygon", attrib={"id": self.id, "points": pts, "fill": self.fill})


@dataclass
class Text:
    """A positioned label; ``math`` marks ``$...$`` content for typesetting."""
    id: str
    x: float
    y: float
    text: str
    math: bool = False
    size: float = 12
    fill: str = "#000000"
    anchor: str = "middle"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "text", "id": self.id, "x": self.x, "y": self.y,
            "text": self.text, "math": self.math, "size": self.size,
            "fill": self.fill, "anchor": self.anchor,
        }

    def to_element(self) -> ET.Element:
        el = ET.Element("text", attrib={
            "id": self.id, "x": str(self.x), "y": str(self.y),
            "font-size": str(self.size), "fill": self.fill,
            "text-anchor": self.anchor,
        })
        el.text = self.text
        return el


Primitive = Union[Rect, PathPrimitive, Polygon, Text]


@dataclass
class Scene:
    """Everything one render pass asks the surface to draw."""
    bounds: Bounds
    primitives: list[Primitive] = field(default_factory=list)
    background: str = "#ffffff"

    def of_type(self, cls: type) -> list[Any]:
        return [p for p in self.primitives if isinstance(p, cls)]

    def math_labels(self) -> list[str]:
        """The ``$...$`` strings the typesetter has to process."""
        return [p.text for p in self.primitives if isinstance(p, Text) and p.math]

    def to_dict(self) -> dict[str, Any]:
        return {
            "bounds": self.bounds.to_dict(),
            "background": self.background,
            "primitives": [p.to_dict() for p in self.primitives],
        }

    def to_svg(self, pretty: bool = True) -> str:
        b = self.bounds
        svg = ET.Element("svg", attrib={
            "xmlns": SVG_NS,
            "width": str(b.width), "height": str(b.height),
            "viewBox": f"{b.x} {b.y} {b.width} {b.height}",
        })
        ET.SubElement(svg, "rect", attrib={
            "x": str(b.x), "y": str(b.y), "width": str(b.width), "height": str(b.height),
            "fill": self.background,
        })
        for prim in self.primitives:
            svg.append(prim.to_element())
        if pretty:
            ET.indent(svg, space="  ")
        return ET.tostring(svg, encoding="unicode")


# ---------------------------------------------------------------------------
# Scene construction
# ---------------------------------------------------------------------------

def plate_label(plate: Plate, model: GraphModel) -> str:
    """``$N$ (samples) × $K$ (groups)`` for a plate's dimensions."""
    parts = []
    for dim_id in plate.dims:
        dim = model.dims.get(dim_id)
        if dim is None:
            parts.append(f"${dim_id}$")
        else:
            parts.append(f"${dim.label}$ ({dim.description})")
    return " × ".join(parts)


def _node_texts(node: Node, box: Bounds, theme: ColorTheme) -> list[Text]:
    ink = theme.ink
    if node.type == NodeType.FIXED:
        return [Text(f"{node.id}:symbol", box.right + 6, box.cy + 4, f"${node.symbol}$",
                     math=True, size=14, fill=ink, anchor="start")]
    texts = [
        Text(f"{node.id}:desc", box.cx, box.y + 26, node.description, size=11, fill=ink),
        Text(f"{node.id}:symbol", box.cx, box.cy + 5, f"${node.symbol}$", math=True, size=18, fill=ink),
    ]
    if node.type != NodeType.DETERMINISTIC:
        texts.append(Text(f"{node.id}:tilde", box.cx, box.cy + 28, "~", size=12, fill=ink))
        if node.distribution:
            texts.append(Text(f"{node.id}:dist", box.cx, box.cy + 46, f"${node.distribution}$",
                              math=True, size=11, fill=ink))
    return texts


def _node_rect(node: Node, box: Bounds, theme: ColorTheme) -> Rect:
    style = theme.node_style(node.type)
    if style.shape == "circle":
        rx = min(box.width, box.height) / 2
    elif style.shape == "dot":
        rx = box.width / 2
    else:
        rx = style.corner_radius
    return Rect(
        id=node.id, kind="node", x=box.x, y=box.y, width=box.width, height=box.height,
        fill=style.fill, stroke=style.stroke, stroke_width=style.stroke_width, rx=rx,
        node_type=node.type.value,
    )


def build_scene(
    model: GraphModel,
    tree: Plate,
    layout: ReconciledLayout,
    theme: ColorTheme | None = None,
    geometry: GeometryConfig | None = None,
) -> Scene:
    """Turn a reconciled layout into drawable primitives.

    Order: plates (outermost first), edges with arrowheads, then nodes and
    their labels on top.
    """
    th = theme or Themes.LIGHT
    geo = geometry or GeometryConfig()
    scene = Scene(bounds=layout.bounds, background=th.background)

    plates = sorted((p for p in iter_plates(tree) if p.dims), key=lambda p: p.depth)
    for plate in plates:
        box = layout.boxes.get(plate.id)
        if box is None:
            continue
        scene.primitives.append(Rect(
            id=plate.id, kind="plate", x=box.x, y=box.y, width=box.width, height=box.height,
            stroke=th.plate_stroke,
        ))
        scene.primitives.append(Text(
            f"{plate.id}:label", box.x + 8, box.y + 17, plate_label(plate, model),
            math=True, size=12, fill=th.ink, anchor="start",
        ))

    for edge in layout.edges:
        points = edge.points
        if len(points) < 2:
            continue
        scene.primitives.append(PathPrimitive(
            id=edge.id, points=points, d=rounded_path(points, geo.corner_radius), stroke=th.ink,
        ))
        head = arrowhead(points, geo)
        if head:
            scene.primitives.append(Polygon(id=f"{edge.id}:arrow", points=head, fill=th.ink))

    for node in model.nodes:
        box = layout.boxes.get(node.id)
        if box is None:
            continue
        scene.primitives.append(_node_rect(node, box, th))
        scene.primitives.extend(_node_texts(node, box, th))

    return scene
