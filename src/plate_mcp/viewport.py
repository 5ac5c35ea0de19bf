"""
Pan/zoom state machine for the main diagram view.

Screen = content * scale + translation. The controller mutates an explicit
:class:`ViewportState` so the state survives re-renders; it refits only
when the content bounding box actually changes.

States: Idle -> Dragging on primary-button pointer-down (when panning is
enabled); back to Idle on pointer-up or cancel.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from plate_mcp.models import Bounds, Point


@dataclass
class ViewportConfig:
    min_scale: float = 0.2
    max_scale: float = 3.5
    fit_max_scale: float = 1.8
    wheel_sensitivity: float = 0.0015   # scale factor per wheel delta unit (exponential)
    button_zoom_factor: float = 1.2


@dataclass
class ViewportState:
    """Mutable view state; lives as long as the diagram session."""
    width: float = 800
    height: float = 600
    scale: float = 1.0
    tx: float = 0.0
    ty: float = 0.0
    pan_enabled: bool = True
    dragging: bool = False
    drag_x: float = 0.0
    drag_y: float = 0.0
    drag_tx: float = 0.0
    drag_ty: float = 0.0
    content: Optional[Bounds] = None

    @property
    def mode(self) -> str:
        return "dragging" if self.dragging else "idle"

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "scale": self.scale,
            "tx": self.tx,
            "ty": self.ty,
            "width": self.width,
            "height": self.height,
            "panEnabled": self.pan_enabled,
            "content": self.content.to_dict() if self.content else None,
        }


class ViewportController:
    """Applies pointer, wheel and fit operations to a :class:`ViewportState`."""

    def __init__(self, state: ViewportState | None = None, config: ViewportConfig | None = None) -> None:
        self.state = state or ViewportState()
        self.config = config or ViewportConfig()

    # ----- transforms -----

    def clamp_scale(self, scale: float) -> float:
        return max(self.config.min_scale, min(self.config.max_scale, scale))

    def to_content(self, sx: float, sy: float) -> Point:
        s = self.state
        return Point((sx - s.tx) / s.scale, (sy - s.ty) / s.scale)

    def to_screen(self, cx: float, cy: float) -> Point:
        s = self.state
        return Point(cx * s.scale + s.tx, cy * s.scale + s.ty)

    def visible_region(self) -> Bounds:
        """The content-space rectangle currently on screen."""
        s = self.state
        origin = self.to_content(0, 0)
        return Bounds(origin.x, origin.y, s.width / s.scale, s.height / s.scale)

    # ----- pointer state machine -----

    def pointer_down(self, x: float, y: float, button: int = 0) -> bool:
        """Start a drag. Returns True when the controller entered Dragging."""
        s = self.state
        if button != 0 or not s.pan_enabled:
            return False
        s.dragging = True
        s.drag_x, s.drag_y = x, y
        s.drag_tx, s.drag_ty = s.tx, s.ty
        return True

    def pointer_move(self, x: float, y: float) -> bool:
        s = self.state
        if not s.dragging:
            return False
        s.tx = s.drag_tx + (x - s.drag_x)
        s.ty = s.drag_ty + (y - s.drag_y)
        return True

    def pointer_up(self) -> None:
        self.state.dragging = False

    pointer_cancel = pointer_up

    def set_pan_enabled(self, enabled: bool) -> None:
        self.state.pan_enabled = enabled
        if not enabled:
            self.state.dragging = False

    # ----- zoom -----

    def zoom_at(self, factor: float, ax: float, ay: float) -> float:
        """Scale by *factor* keeping the content point under (ax, ay) fixed."""
        s = self.state
        anchor = self.to_content(ax, ay)
        new_scale = self.clamp_scale(s.scale * factor)
        s.scale = new_scale
        s.tx = ax - anchor.x * new_scale
        s.ty = ay - anchor.y * new_scale
        return new_scale

    def wheel(self, delta: float, x: float, y: float) -> float:
        """Wheel zoom: negative *delta* zooms in."""
        return self.zoom_at(math.exp(-delta * self.config.wheel_sensitivity), x, y)

    def zoom_in(self) -> float:
        s = self.state
        return self.zoom_at(self.config.button_zoom_factor, s.width / 2, s.height / 2)

    def zoom_out(self) -> float:
        s = self.state
        return self.zoom_at(1 / self.config.button_zoom_factor, s.width / 2, s.height / 2)

    # ----- fitting -----

    def fit(self) -> None:
        """Scale the content to the viewport (at most ``fit_max_scale``) and centre it."""
        s = self.state
        c = s.content
        if c is None or c.width <= 0 or c.height <= 0:
            s.scale, s.tx, s.ty = 1.0, 0.0, 0.0
            return
        s.scale = min(s.width / c.width, s.height / c.height, self.config.fit_max_scale)
        s.tx = (s.width - c.width * s.scale) / 2 - c.x * s.scale
        s.ty = (s.height - c.height * s.scale) / 2 - c.y * s.scale

    def update_content(self, bounds: Bounds) -> bool:
        """Record the latest content box; refit only if it changed.

        Returns True when a refit happened.
        """
        if self.state.content == bounds:
            return False
        self.state.content = bounds
        self.fit()
        return True

    def resize(self, width: float, height: float) -> None:
        """Viewport size changed; pan and zoom are kept."""
        self.state.width = width
        self.state.height = height

    def center_on(self, cx: float, cy: float) -> None:
        """Translate so content point (cx, cy) sits at the viewport centre."""
        s = self.state
        s.tx = s.width / 2 - cx * s.scale
        s.ty = s.height / 2 - cy * s.scale
