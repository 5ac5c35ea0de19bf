"""
Boundary to the layout oracle.

The oracle receives the plate hierarchy as nested containers (ELK-style
JSON), node sizes chosen per node type, and a flat edge list. It answers
with parent-relative positions and routed edge sections whose points are
expressed in the frame of a container it picks per edge.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from plate_mcp.containment import Plate
from plate_mcp.models import GraphModel, NodeType
from plate_mcp.parser import ParseError


class LayoutError(ParseError):
    """Raised when the oracle fails or returns something unusable."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class LayoutConfig:
    """Sizes and spacing handed to the layout oracle."""
    node_width: float = 138
    node_height: float = 138
    fixed_size: float = 28
    deterministic_width: float = 150
    deterministic_height: float = 94
    # Plate padding; the top is taller to leave room for the plate label
    plate_padding: float = 24
    plate_label_height: float = 22
    node_spacing: float = 62
    layer_spacing: float = 84
    direction: str = "RIGHT"


def node_size(node_type: NodeType, config: LayoutConfig | None = None) -> tuple[float, float]:
    """(width, height) for a node of *node_type*."""
    cfg = config or LayoutConfig()
    if node_type == NodeType.FIXED:
        return cfg.fixed_size, cfg.fixed_size
    if node_type == NodeType.DETERMINISTIC:
        return cfg.deterministic_width, cfg.deterministic_height
    return cfg.node_width, cfg.node_height


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

def _root_options(cfg: LayoutConfig) -> dict[str, str]:
    return {
        "elk.algorithm": "layered",
        "elk.direction": cfg.direction,
        "elk.hierarchyHandling": "INCLUDE_CHILDREN",
        "elk.spacing.nodeNode": str(cfg.node_spacing),
        "elk.layered.spacing.nodeNodeBetweenLayers": str(cfg.layer_spacing),
        "elk.edgeRouting": "ORTHOGONAL",
    }


def _plate_options(cfg: LayoutConfig) -> dict[str, str]:
    pad = cfg.plate_padding
    top = pad + cfg.plate_label_height
    return {"elk.padding": f"[top={top},left={pad},bottom={pad},right={pad}]"}


def _container(plate: Plate, cfg: LayoutConfig) -> dict[str, Any]:
    children: list[dict[str, Any]] = []
    for node in plate.nodes:
        w, h = node_size(node.type, cfg)
        children.append({"id": node.id, "width": w, "height": h})
    for sub in plate.children:
        children.append(_container(sub, cfg))
    entry: dict[str, Any] = {"id": plate.id, "children": children}
    if plate.dims:
        entry["layoutOptions"] = _plate_options(cfg)
    return entry


def build_layout_request(
    model: GraphModel,
    tree: Plate,
    config: LayoutConfig | None = None,
) -> dict[str, Any]:
    """Serialize the containment tree and edges into the oracle's schema."""
    cfg = config or LayoutConfig()
    request = _container(tree, cfg)
    request["layoutOptions"] = _root_options(cfg)
    request["edges"] = [
        {"id": f"e{i}", "sources": [e.source], "targets": [e.target]}
        for i, e in enumerate(model.edges)
    ]
    return request


# ---------------------------------------------------------------------------
# Oracle protocol
# ---------------------------------------------------------------------------

class LayoutOracle(Protocol):
    """Anything that can lay out a request asynchronously."""

    async def layout(self, request: dict[str, Any]) -> dict[str, Any]:
        ...
