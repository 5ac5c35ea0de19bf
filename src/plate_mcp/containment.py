"""
Plate nesting.

Every node lives in the plate identified by its sorted dimension list.
Plate ``[d0..dk]`` is always a child of plate ``[d0..d(k-1)]``, so the tree
mirrors dimension prefixes and plates never cross. The hierarchical layout
depends on that guarantee.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from plate_mcp.models import GraphModel, Node, canonical_dims

ROOT_ID = "plate:"


def plate_id(dims: tuple[str, ...]) -> str:
    """Stable container id for a sorted dims tuple.

    The ":" keeps container ids apart from node names, which are identifiers.
    """
    return ROOT_ID + "×".join(dims)


@dataclass
class Plate:
    """A container of nodes and sub-plates sharing a dimension prefix."""
    dims: tuple[str, ...] = ()
    nodes: list[Node] = field(default_factory=list)
    children: list['Plate'] = field(default_factory=list)
    parent: Optional['Plate'] = field(default=None, repr=False, compare=False)

    @property
    def id(self) -> str:
        return plate_id(self.dims)

    @property
    def depth(self) -> int:
        return len(self.dims)

    def is_empty(self) -> bool:
        return not self.nodes and not self.children

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dims": list(self.dims),
            "nodes": [n.id for n in self.nodes],
            "children": [c.to_dict() for c in self.children],
        }


def build_containment_tree(model: GraphModel) -> Plate:
    """Group the model's nodes into nested plates and return the root."""
    root = Plate()
    plates: dict[tuple[str, ...], Plate] = {(): root}

    def ensure(dims: tuple[str, ...]) -> Plate:
        plate = plates.get(dims)
        if plate is not None:
            return plate
        parent = ensure(dims[:-1])
        plate = Plate(dims=dims, parent=parent)
        parent.children.append(plate)
        plates[dims] = plate
        return plate

    for node in model.nodes:
        ensure(canonical_dims(node.dims)).nodes.append(node)
    return root


def iter_plates(root: Plate) -> Iterator[Plate]:
    """Depth-first, parents before children."""
    stack = [root]
    while stack:
        plate = stack.pop()
        yield plate
        stack.extend(reversed(plate.children))


def find_plate(root: Plate, dims: tuple[str, ...]) -> Optional[Plate]:
    wanted = canonical_dims(dims)
    for plate in iter_plates(root):
        if plate.dims == wanted:
            return plate
    return None


def ancestors(plate: Plate) -> list[Plate]:
    """Chain from *plate*'s parent up to the root."""
    chain: list[Plate] = []
    current = plate.parent
    while current is not None:
        chain.append(current)
        current = current.parent
    return chain
