"""
Math symbols for nodes.

A node without an authored symbol is shown as its name subscripted by the
display labels of its dimensions. Labels may be declared after the nodes
that use them, so symbols are refreshed once the whole model is known.
"""

from __future__ import annotations

from typing import Callable, Iterable

from plate_mcp.models import GraphModel, Node


def default_symbol(name: str, dims: Iterable[str], label_of: Callable[[str], str]) -> str:
    """``name_{l1,l2}`` using each dimension's display label."""
    labels = [label_of(d) for d in dims]
    if not labels:
        return name
    return f"{name}_{{{','.join(labels)}}}"


def legacy_symbols(name: str, dims: Iterable[str]) -> set[str]:
    """Older default spellings that still count as auto-derived."""
    ids = list(dims)
    spellings = {name}
    if ids:
        spellings.add(f"{name}_{{{','.join(ids)}}}")
        spellings.add(f"{name}_{{{''.join(ids)}}}")
    if len(ids) == 1:
        spellings.add(f"{name}_{ids[0]}")
    return spellings


def is_default_symbol(node: Node) -> bool:
    return node.auto_symbol or node.symbol in legacy_symbols(node.name, node.dims)


def resolve_symbols(model: GraphModel) -> int:
    """Recompute every auto-derived symbol against the final dim labels.

    Returns the number of nodes whose symbol changed.
    """
    changed = 0
    for node in model.nodes:
        if not is_default_symbol(node):
            continue
        symbol = default_symbol(node.name, node.dims, model.dim_label)
        if symbol != node.symbol:
            changed += 1
        node.symbol = symbol
        node.auto_symbol = True
    return changed
