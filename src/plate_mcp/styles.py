"""
Colors and per-type appearance for plate diagrams.

A :class:`ColorTheme` is the palette for one whole diagram; it derives the
:class:`NodeStyle` used for each node type.
"""

from __future__ import annotations

from dataclasses import dataclass

from plate_mcp.models import NodeType


@dataclass(frozen=True)
class NodeStyle:
    """How one node type is drawn."""
    fill: str
    stroke: str
    font: str
    stroke_width: float = 2
    corner_radius: float = 0
    shape: str = "circle"   # circle | rounded | dot


@dataclass(frozen=True)
class ColorTheme:
    """A named color palette for consistent diagram styling."""
    background: str
    ink: str                 # edges, arrowheads, text
    plate_stroke: str
    latent_fill: str
    observed_fill: str
    deterministic_fill: str
    viewport_stroke: str = "#2563eb"

    def node_style(self, node_type: NodeType) -> NodeStyle:
        if node_type == NodeType.FIXED:
            return NodeStyle(fill=self.ink, stroke=self.ink, font=self.ink, shape="dot")
        if node_type == NodeType.DETERMINISTIC:
            return NodeStyle(
                fill=self.deterministic_fill, stroke=self.ink, font=self.ink,
                corner_radius=14, shape="rounded",
            )
        if node_type == NodeType.OBSERVED:
            return NodeStyle(fill=self.observed_fill, stroke=self.ink, font=self.ink)
        return NodeStyle(fill=self.latent_fill, stroke=self.ink, font=self.ink)


class Themes:
    """Pre-built palettes."""
    LIGHT = ColorTheme(
        background="#ffffff", ink="#0f172a", plate_stroke="#475569",
        latent_fill="#ffffff", observed_fill="#cbd5e1", deterministic_fill="#f8fafc",
    )
    DARK = ColorTheme(
        background="#0f172a", ink="#e2e8f0", plate_stroke="#94a3b8",
        latent_fill="#1e293b", observed_fill="#475569", deterministic_fill="#334155",
        viewport_stroke="#60a5fa",
    )


def get_theme(name: str) -> ColorTheme:
    """Look a theme up by name (case-insensitive), defaulting to LIGHT."""
    theme = getattr(Themes, (name or "LIGHT").upper(), None)
    return theme if isinstance(theme, ColorTheme) else Themes.LIGHT
