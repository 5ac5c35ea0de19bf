"""
Line-by-line construction of a :class:`GraphModel` from DSL text.

Declarations and edge references share one get-or-create accessor, so an
edge may mention a node before it is declared; the placeholder it creates
is enriched by the later declaration instead of being replaced.
"""

from __future__ import annotations

import logging
import re

from plate_mcp.models import Edge, GraphModel, Node, canonical_dims, canonical_key
from plate_mcp.parser import (
    NodeDecl,
    NodeRef,
    ParseError,
    is_dim_line,
    is_edge_line,
    is_node_line,
    leading_keyword,
    parse_dim_decl,
    parse_edge_chain,
    parse_node_decl,
)
from plate_mcp.symbols import default_symbol, resolve_symbols

logger = logging.getLogger("plate-mcp")

_LINE_SPLIT_RE = re.compile(r"\r?\n")


class ModelBuilder:
    """Accumulates dims, nodes and edges for one parse."""

    def __init__(self) -> None:
        self.model = GraphModel()
        self._by_key: dict[str, Node] = {}

    # ----- node identity -----

    def _find_by_name(self, name: str) -> Node | None:
        for node in self.model.nodes:
            if node.name == name:
                return node
        return None

    def _new_id(self, name: str, dims: tuple[str, ...]) -> str:
        if self.model.node(name) is None:
            return name
        return canonical_key(name, dims)

    def ensure_node(self, ref: NodeRef) -> Node:
        """Return the node *ref* denotes, creating a placeholder if needed."""
        dims = canonical_dims(ref.dims)
        key = canonical_key(ref.name, dims)
        existing = self._by_key.get(key)
        if existing is not None:
            return existing

        same_name = self._find_by_name(ref.name)
        if same_name is not None and (not dims or not same_name.dims):
            if dims:
                # placeholder without dims adopts the first dims it is given
                del self._by_key[same_name.key]
                same_name.dims = dims
                self._by_key[same_name.key] = same_name
            return same_name

        node = Node(id=self._new_id(ref.name, dims), name=ref.name, dims=dims)
        self.model.nodes.append(node)
        self._by_key[node.key] = node
        return node

    # ----- line handlers -----

    def add_node_decl(self, decl: NodeDecl) -> Node:
        node = self.ensure_node(decl.ref)
        node.type = decl.type
        node.declared = True
        if decl.symbol is not None:
            node.symbol = decl.symbol
            node.auto_symbol = False
        elif node.auto_symbol:
            node.symbol = default_symbol(node.name, node.dims, self.model.dim_label)
        if decl.distribution is not None:
            node.distribution = decl.distribution
        if decl.description is not None:
            node.description = decl.description
        return node

    def add_edge_chain(self, line: str) -> list[Edge]:
        added: list[Edge] = []
        for src_ref, tgt_ref in parse_edge_chain(line):
            src = self.ensure_node(src_ref)
            tgt = self.ensure_node(tgt_ref)
            edge = Edge(source=src.id, target=tgt.id)
            self.model.edges.append(edge)
            added.append(edge)
        return added

    def feed_line(self, raw: str, lineno: int) -> None:
        line = raw.strip()
        if not line or line.startswith("#"):
            return
        try:
            if is_dim_line(line):
                dim = parse_dim_decl(line)
                self.model.dims[dim.id] = dim
            elif is_node_line(line):
                self.add_node_decl(parse_node_decl(line))
            elif is_edge_line(line):
                self.add_edge_chain(line)
            elif leading_keyword(line) is not None:
                raise ParseError(
                    f'Unknown node type "{leading_keyword(line)}"; '
                    "expected dim, latent, observed, fixed, deterministic, or an edge chain"
                )
            else:
                raise ParseError("expected dim, node declaration, or edge chain")
        except ParseError as exc:
            if exc.line is not None:
                raise
            raise exc.with_line(lineno) from exc

    def build(self) -> GraphModel:
        resolve_symbols(self.model)
        return self.model


def build_model(source: str) -> GraphModel:
    """Parse DSL *source* into a fresh model.

    Raises:
        ParseError: on the first malformed line, carrying its line number.
    """
    builder = ModelBuilder()
    for idx, line in enumerate(_LINE_SPLIT_RE.split(source), start=1):
        builder.feed_line(line, idx)
    model = builder.build()
    logger.debug(
        "Built model: %d dims, %d nodes, %d edges",
        len(model.dims), len(model.nodes), len(model.edges),
    )
    return model
