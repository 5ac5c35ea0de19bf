"""
Core data model for plate-notation diagrams.

Dimensions, typed variable nodes and directed edges parsed from the DSL,
plus the small geometry value types shared by the layout, reconciliation
and interaction layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class NodeType(Enum):
    """Kinds of modeled quantity, each drawn with its own glyph."""
    LATENT = "latent"
    OBSERVED = "observed"
    FIXED = "fixed"
    DETERMINISTIC = "deterministic"

    @classmethod
    def from_keyword(cls, keyword: str) -> Optional['NodeType']:
        """Return the type for a DSL keyword (case-insensitive), or None."""
        try:
            return cls(keyword.strip().lower())
        except ValueError:
            return None


NODE_TYPE_KEYWORDS = frozenset(t.value for t in NodeType)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def canonical_dims(dims: Iterable[str]) -> tuple[str, ...]:
    """Sort dimension ids so declaration order never affects identity."""
    return tuple(sorted(dims))


def canonical_key(name: str, dims: Iterable[str]) -> str:
    """Identity key for a node: name plus its sorted dimension set.

    >>> canonical_key("x", ["j", "i"])
    'x[i,j]'
    """
    ordered = canonical_dims(dims)
    if not ordered:
        return name
    return f"{name}[{','.join(ordered)}]"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Dimension:
    """A repetition axis: ``dim n(N) "samples"``."""
    id: str
    label: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if not self.label:
            object.__setattr__(self, "label", self.id)
        if not self.description:
            object.__setattr__(self, "description", self.id)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "label": self.label, "description": self.description}


@dataclass
class Node:
    """A modeled quantity.

    ``dims`` is always kept sorted; ``key`` is the canonical identity and
    ``id`` the identifier used by edges and the layout oracle.
    """
    id: str
    name: str
    dims: tuple[str, ...] = ()
    symbol: str = ""
    auto_symbol: bool = True
    description: str = ""
    distribution: str = ""
    type: NodeType = NodeType.LATENT
    declared: bool = False

    def __post_init__(self) -> None:
        self.dims = canonical_dims(self.dims)
        if not self.symbol:
            self.symbol = self.name
        if not self.description:
            self.description = self.name

    @property
    def key(self) -> str:
        return canonical_key(self.name, self.dims)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "dims": list(self.dims),
            "symbol": self.symbol,
            "autoSymbol": self.auto_symbol,
            "description": self.description,
            "distribution": self.distribution,
            "type": self.type.value,
        }


@dataclass(frozen=True)
class Edge:
    """A directed dependency between two node ids."""
    source: str
    target: str

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source, "target": self.target}


@dataclass
class GraphModel:
    """Everything one parse of the DSL produces."""
    dims: dict[str, Dimension] = field(default_factory=dict)
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[Node]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def dim_label(self, dim_id: str) -> str:
        """Display label for a dimension id, falling back to the id itself."""
        dim = self.dims.get(dim_id)
        return dim.label if dim else dim_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "dims": {k: d.to_dict() for k, d in self.dims.items()},
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Point:
    """A 2-D coordinate."""
    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounding box."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2

    def contains_point(self, px: float, py: float) -> bool:
        """Edges count as inside."""
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def union(self, other: 'Bounds') -> 'Bounds':
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Bounds(x, y, max(self.right, other.right) - x, max(self.bottom, other.bottom) - y)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}
