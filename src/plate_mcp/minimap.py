"""
Overview of the whole diagram with the visible region marked.

The full content box is scaled uniformly into a fixed-size minimap and
centred. Clicking or dragging inside it recenters the main viewport on the
matching content point. Its Idle/Dragging machine is independent of the
main viewport's.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from plate_mcp.models import Bounds, NodeType, Point
from plate_mcp.scene import Rect, Scene
from plate_mcp.styles import ColorTheme, Themes
from plate_mcp.viewport import ViewportController


@dataclass
class MinimapConfig:
    width: float = 200
    height: float = 140
    padding: float = 8
    dot_radius: float = 2.5


@dataclass
class MinimapState:
    width: float = 200
    height: float = 140
    padding: float = 8
    scale: float = 1.0
    ox: float = 0.0
    oy: float = 0.0
    dragging: bool = False
    content: Optional[Bounds] = None

    @property
    def mode(self) -> str:
        return "dragging" if self.dragging else "idle"

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "scale": self.scale,
            "ox": self.ox,
            "oy": self.oy,
            "width": self.width,
            "height": self.height,
        }


class MinimapController:
    """Maps between minimap and content space and drives the viewport."""

    def __init__(
        self,
        viewport: ViewportController,
        state: MinimapState | None = None,
        config: MinimapConfig | None = None,
    ) -> None:
        cfg = config or MinimapConfig()
        self.config = cfg
        self.viewport = viewport
        self.state = state or MinimapState(width=cfg.width, height=cfg.height, padding=cfg.padding)

    # ----- mapping -----

    def update(self, bounds: Bounds) -> None:
        """Fit *bounds* into the minimap, leftover margin split evenly."""
        s = self.state
        s.content = bounds
        inner_w = max(s.width - 2 * s.padding, 1)
        inner_h = max(s.height - 2 * s.padding, 1)
        if bounds.width <= 0 or bounds.height <= 0:
            s.scale, s.ox, s.oy = 1.0, s.width / 2 - bounds.x, s.height / 2 - bounds.y
            return
        s.scale = min(inner_w / bounds.width, inner_h / bounds.height)
        s.ox = (s.width - bounds.width * s.scale) / 2 - bounds.x * s.scale
        s.oy = (s.height - bounds.height * s.scale) / 2 - bounds.y * s.scale

    def to_content(self, mx: float, my: float) -> Point:
        s = self.state
        return Point((mx - s.ox) / s.scale, (my - s.oy) / s.scale)

    def to_minimap(self, x: float, y: float) -> Point:
        s = self.state
        return Point(x * s.scale + s.ox, y * s.scale + s.oy)

    def contains(self, mx: float, my: float) -> bool:
        return Bounds(0, 0, self.state.width, self.state.height).contains_point(mx, my)

    # ----- pointer state machine -----

    def _recenter(self, mx: float, my: float) -> Point:
        target = self.to_content(mx, my)
        self.viewport.center_on(target.x, target.y)
        return target

    def pointer_down(self, mx: float, my: float, button: int = 0) -> bool:
        if button != 0 or self.state.content is None or not self.contains(mx, my):
            return False
        self.state.dragging = True
        self._recenter(mx, my)
        return True

    def pointer_move(self, mx: float, my: float) -> bool:
        if not self.state.dragging:
            return False
        self._recenter(mx, my)
        return True

    def pointer_up(self) -> None:
        self.state.dragging = False

    pointer_cancel = pointer_up

    def click(self, mx: float, my: float) -> bool:
        """A click is a press and release at the same spot."""
        moved = self.pointer_down(mx, my)
        self.pointer_up()
        return moved

    # ----- drawing -----

    def _rect(self, rid: str, kind: str, box: Bounds, **style: Any) -> Rect:
        tl = self.to_minimap(box.x, box.y)
        s = self.state.scale
        return Rect(id=rid, kind=kind, x=tl.x, y=tl.y, width=box.width * s, height=box.height * s, **style)

    def primitives(self, scene: Scene, theme: ColorTheme | None = None) -> list[Rect]:
        """Simplified glyphs, plate outlines and the visible-region marker."""
        th = theme or Themes.LIGHT
        out: list[Rect] = []
        for prim in scene.of_type(Rect):
            box = Bounds(prim.x, prim.y, prim.width, prim.height)
            if prim.kind == "plate":
                out.append(self._rect(f"mini:{prim.id}", "plate", box, stroke=th.plate_stroke, stroke_width=1))
                continue
            style = th.node_style(NodeType(prim.node_type)) if prim.node_type else None
            if prim.node_type == NodeType.FIXED.value:
                c = self.to_minimap(box.cx, box.cy)
                r = self.config.dot_radius
                out.append(Rect(id=f"mini:{prim.id}", kind="glyph", x=c.x - r, y=c.y - r,
                                width=2 * r, height=2 * r, fill=th.ink, stroke="none", rx=r,
                                node_type=prim.node_type))
            elif prim.node_type == NodeType.DETERMINISTIC.value:
                glyph = self._rect(f"mini:{prim.id}", "glyph", box, fill=style.fill if style else "none",
                                   stroke=th.ink, stroke_width=1, node_type=prim.node_type)
                glyph.rx = min(glyph.width, glyph.height) / 4
                out.append(glyph)
            else:
                glyph = self._rect(f"mini:{prim.id}", "glyph", box, fill=style.fill if style else "none",
                                   stroke=th.ink, stroke_width=1, node_type=prim.node_type)
                glyph.rx = min(glyph.width, glyph.height) / 2
                out.append(glyph)
        out.append(self._rect("mini:viewport", "viewport", self.viewport.visible_region(),
                              stroke=th.viewport_stroke, stroke_width=1.5))
        return out
