"""
In-process hierarchical layout oracle.

Implements the layered (Sugiyama) approach recursively over the plate
containers of a layout request:

- Sub-plates are laid out first so each container knows its children's sizes
- Edges are collapsed onto the container's direct children
- Cycle removal (DFS back-edges, temporarily reversed)
- Layer assignment (longest path from sources)
- Crossing minimization (barycenter heuristic, multi-pass)
- Coordinate assignment left-to-right, centred per layer
- Orthogonal edge routing in the frame of the lowest common container

The response has the same shape an ELK ``layout()`` call returns: positions
relative to the parent container and edges whose sections are expressed in
the frame named by ``container``.
"""

from __future__ import annotations

import asyncio
import re
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Optional

from plate_mcp.layout import LayoutError


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class LayoutEngineConfig:
    """Tuning for :class:`LayeredLayoutOracle`.

    Spacing given in the request's ``layoutOptions`` takes precedence.
    """
    node_spacing: float = 62       # Space between blocks in the same layer
    layer_spacing: float = 84      # Space between layers
    plate_padding: float = 24      # Default container padding
    root_padding: float = 12
    min_container_size: float = 40
    barycenter_iterations: int = 4
    loop_margin: float = 18        # Clearance for back-edges and self-loops


# ---------------------------------------------------------------------------
# Internal representation
# ---------------------------------------------------------------------------

@dataclass
class _Block:
    """A node or a container while it is being laid out."""
    id: str
    width: float = 0
    height: float = 0
    children: Optional[list['_Block']] = None
    parent: Optional['_Block'] = field(default=None, repr=False)
    padding: tuple[float, float, float, float] = (0, 0, 0, 0)  # top, left, bottom, right
    rank: int = 0
    order: float = 0
    x: float = 0
    y: float = 0

    @property
    def is_container(self) -> bool:
        return self.children is not None


_PADDING_RE = re.compile(r"(top|left|bottom|right)\s*=\s*([-\d.]+)")


def _parse_padding(raw: Any, default: float) -> tuple[float, float, float, float]:
    values = {"top": default, "left": default, "bottom": default, "right": default}
    if isinstance(raw, str):
        for side, num in _PADDING_RE.findall(raw):
            values[side] = float(num)
    return values["top"], values["left"], values["bottom"], values["right"]


def _option(options: dict[str, Any], key: str, default: float) -> float:
    try:
        return float(options.get(key, default))
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Oracle
# ---------------------------------------------------------------------------

class LayeredLayoutOracle:
    """Layered layout of a nested container request."""

    def __init__(self, config: LayoutEngineConfig | None = None) -> None:
        self.config = config or LayoutEngineConfig()

    async def layout(self, request: dict[str, Any]) -> dict[str, Any]:
        await asyncio.sleep(0)
        return self.layout_sync(request)

    def layout_sync(self, request: dict[str, Any]) -> dict[str, Any]:
        cfg = self.config
        if not isinstance(request, dict) or "id" not in request:
            raise LayoutError("Layout request must be an object with an 'id'.")

        root_opts = request.get("layoutOptions") or {}
        spacing = _option(root_opts, "elk.spacing.nodeNode", cfg.node_spacing)
        layer_gap = _option(root_opts, "elk.layered.spacing.nodeNodeBetweenLayers", cfg.layer_spacing)

        index: dict[str, _Block] = {}
        root = self._build_block(request, None, index, is_root=True)

        edges: list[tuple[str, str, str]] = []
        for i, e in enumerate(request.get("edges") or []):
            try:
                src, tgt = e["sources"][0], e["targets"][0]
            except (KeyError, IndexError, TypeError) as exc:
                raise LayoutError(f"Malformed edge at index {i}.") from exc
            for end in (src, tgt):
                if end not in index or index[end].is_container:
                    raise LayoutError(f"Edge '{e.get('id', i)}' references unknown node '{end}'.")
            edges.append((e.get("id", f"e{i}"), src, tgt))

        paths = {bid: _path_to(b) for bid, b in index.items()}
        self._layout_container(root, [(s, t) for _, s, t in edges], paths, spacing, layer_gap)
        root.x, root.y = 0.0, 0.0

        result = self._emit(request, index)
        result["edges"] = [
            self._route(eid, src, tgt, request_edge, index, paths)
            for (eid, src, tgt), request_edge in zip(edges, request.get("edges") or [])
        ]
        return result

    # ----- tree construction -----

    def _build_block(
        self,
        data: dict[str, Any],
        parent: Optional[_Block],
        index: dict[str, _Block],
        is_root: bool = False,
    ) -> _Block:
        bid = data.get("id")
        if not isinstance(bid, str) or not bid:
            raise LayoutError("Every layout element needs a string 'id'.")
        if bid in index:
            raise LayoutError(f"Duplicate layout id '{bid}'.")
        options = data.get("layoutOptions") or {}
        if "children" in data:
            default_pad = self.config.root_padding if is_root else self.config.plate_padding
            block = _Block(
                id=bid,
                children=[],
                parent=parent,
                padding=_parse_padding(options.get("elk.padding"), default_pad),
            )
            index[bid] = block
            for child in data.get("children") or []:
                block.children.append(self._build_block(child, block, index))
        else:
            block = _Block(
                id=bid,
                width=float(data.get("width", 0)),
                height=float(data.get("height", 0)),
                parent=parent,
            )
            index[bid] = block
        return block

    # ----- layered placement -----

    def _layout_container(
        self,
        container: _Block,
        edges: list[tuple[str, str]],
        paths: dict[str, list[_Block]],
        spacing: float,
        layer_gap: float,
    ) -> None:
        cfg = self.config
        children = container.children or []
        for child in children:
            if child.is_container:
                self._layout_container(child, edges, paths, spacing, layer_gap)

        top, left, bottom, right = container.padding
        if not children:
            container.width = max(cfg.min_container_size, left + right)
            container.height = max(cfg.min_container_size, top + bottom)
            return

        order = [c.id for c in children]
        blocks = {c.id: c for c in children}
        adj: dict[str, list[str]] = defaultdict(list)
        for src, tgt in edges:
            a = _child_under(container, paths[src])
            b = _child_under(container, paths[tgt])
            if a is None or b is None or a is b:
                continue
            adj[a.id].append(b.id)

        # --- Step 1: Cycle removal ---
        back_edges = _find_back_edges(order, adj)
        eff_adj: dict[str, list[str]] = defaultdict(list)
        eff_rev: dict[str, list[str]] = defaultdict(list)
        for src in order:
            for tgt in adj.get(src, []):
                if (src, tgt) in back_edges:
                    eff_adj[tgt].append(src)
                    eff_rev[src].append(tgt)
                else:
                    eff_adj[src].append(tgt)
                    eff_rev[tgt].append(src)

        # --- Step 2: Layer assignment ---
        ranks = _assign_ranks_longest_path(order, eff_adj, eff_rev)
        by_rank: dict[int, list[str]] = defaultdict(list)
        for bid in order:
            blocks[bid].rank = ranks[bid]
            by_rank[ranks[bid]].append(bid)
        for rank_ids in by_rank.values():
            for i, bid in enumerate(rank_ids):
                blocks[bid].order = float(i)

        # --- Step 3: Crossing minimization ---
        max_rank = max(by_rank) if by_rank else 0
        for _ in range(cfg.barycenter_iterations):
            for r in range(1, max_rank + 1):
                _barycenter_sort(by_rank[r], blocks, eff_rev)
            for r in range(max_rank - 1, -1, -1):
                _barycenter_sort(by_rank[r], blocks, eff_adj)

        # --- Step 4: Coordinates ---
        width, height = _assign_coordinates(by_rank, blocks, spacing, layer_gap)
        for block in children:
            block.x += left
            block.y += top
        container.width = max(cfg.min_container_size, width + left + right)
        container.height = max(cfg.min_container_size, height + top + bottom)

    # ----- output -----

    def _emit(self, data: dict[str, Any], index: dict[str, _Block]) -> dict[str, Any]:
        block = index[data["id"]]
        out: dict[str, Any] = {
            k: v for k, v in data.items() if k not in ("children", "edges")
        }
        out.update({"x": block.x, "y": block.y, "width": block.width, "height": block.height})
        if "children" in data:
            out["children"] = [self._emit(child, index) for child in data.get("children") or []]
        return out

    def _route(
        self,
        eid: str,
        src: str,
        tgt: str,
        request_edge: dict[str, Any],
        index: dict[str, _Block],
        paths: dict[str, list[_Block]],
    ) -> dict[str, Any]:
        frame = _common_container(paths[src], paths[tgt])
        sx, sy = _offset_in(frame, paths[src])
        tx, ty = _offset_in(frame, paths[tgt])
        s, t = index[src], index[tgt]
        m = self.config.loop_margin

        if src == tgt:
            start = (sx + s.width, sy + s.height / 4)
            bends = [
                (sx + s.width + m, start[1]),
                (sx + s.width + m, sy - m),
                (sx + s.width / 2, sy - m),
            ]
            end = (sx + s.width / 2, sy)
        elif sx + s.width <= tx:
            start = (sx + s.width, sy + s.height / 2)
            end = (tx, ty + t.height / 2)
            bends = []
            if abs(start[1] - end[1]) > 0.5:
                mid_x = (start[0] + end[0]) / 2
                bends = [(mid_x, start[1]), (mid_x, end[1])]
        else:
            # Back-edge or same layer: detour above both shapes
            lane = min(sy, ty) - m
            start = (sx + s.width / 2, sy)
            end = (tx + t.width / 2, ty)
            bends = [(start[0], lane), (end[0], lane)]

        out = {k: v for k, v in request_edge.items() if k != "sections"}
        out["container"] = frame.id
        out["sections"] = [{
            "id": f"{eid}_s0",
            "startPoint": {"x": start[0], "y": start[1]},
            "bendPoints": [{"x": x, "y": y} for x, y in bends],
            "endPoint": {"x": end[0], "y": end[1]},
            "incomingShape": src,
            "outgoingShape": tgt,
        }]
        return out


# ---------------------------------------------------------------------------
# Hierarchy helpers
# ---------------------------------------------------------------------------

def _path_to(block: _Block) -> list[_Block]:
    """Blocks from the root down to *block* (inclusive)."""
    chain: list[_Block] = []
    current: Optional[_Block] = block
    while current is not None:
        chain.append(current)
        current = current.parent
    chain.reverse()
    return chain


def _child_under(container: _Block, path: list[_Block]) -> Optional[_Block]:
    """The direct child of *container* on *path*, if the path passes through it."""
    for i, block in enumerate(path[:-1]):
        if block is container:
            return path[i + 1]
    return None


def _common_container(a: list[_Block], b: list[_Block]) -> _Block:
    common = a[0]
    for x, y in zip(a, b):
        if x is not y:
            break
        if x.is_container:
            common = x
    return common


def _offset_in(frame: _Block, path: list[_Block]) -> tuple[float, float]:
    """Position of the last block on *path* relative to *frame*."""
    x = y = 0.0
    inside = False
    for block in path:
        if inside:
            x += block.x
            y += block.y
        if block is frame:
            inside = True
    return x, y


# ---------------------------------------------------------------------------
# Layered-layout steps
# ---------------------------------------------------------------------------

def _find_back_edges(
    all_nodes: list[str],
    adj: dict[str, list[str]],
) -> set[tuple[str, str]]:
    """Find back-edges in a directed graph using iterative DFS."""
    WHITE, GRAY, BLACK = 0, 1, 2
    color: dict[str, int] = {n: WHITE for n in all_nodes}
    back_edges: set[tuple[str, str]] = set()

    for start in all_nodes:
        if color[start] != WHITE:
            continue
        color[start] = GRAY
        stack: list[tuple[str, int]] = [(start, 0)]
        while stack:
            u, idx = stack[-1]
            neighbors = adj.get(u, [])
            if idx < len(neighbors):
                stack[-1] = (u, idx + 1)
                v = neighbors[idx]
                if v not in color:
                    continue
                if color[v] == GRAY:
                    back_edges.add((u, v))
                elif color[v] == WHITE:
                    color[v] = GRAY
                    stack.append((v, 0))
            else:
                color[u] = BLACK
                stack.pop()

    return back_edges


def _assign_ranks_longest_path(
    all_nodes: list[str],
    adj: dict[str, list[str]],
    rev_adj: dict[str, list[str]],
) -> dict[str, int]:
    """Assign ranks using longest path from sources."""
    ranks: dict[str, int] = {}
    sources = [n for n in all_nodes if not rev_adj.get(n)] or all_nodes[:1]

    queue = deque(sources)
    for s in sources:
        ranks[s] = 0

    limit = len(all_nodes)
    while queue:
        node = queue.popleft()
        for child in adj.get(node, []):
            new_rank = ranks[node] + 1
            if new_rank > limit:
                continue
            if child not in ranks or ranks[child] < new_rank:
                ranks[child] = new_rank
                queue.append(child)

    for n in all_nodes:
        ranks.setdefault(n, 0)
    return ranks


def _barycenter_sort(
    rank_ids: list[str],
    blocks: dict[str, _Block],
    neighbor_adj: dict[str, list[str]],
) -> None:
    """Sort a layer by the mean order of each block's neighbours."""
    barycenters: dict[str, float] = {}
    for bid in rank_ids:
        orders = [blocks[n].order for n in neighbor_adj.get(bid, []) if n in blocks]
        barycenters[bid] = sum(orders) / len(orders) if orders else blocks[bid].order

    rank_ids.sort(key=lambda n: barycenters[n])
    for i, bid in enumerate(rank_ids):
        blocks[bid].order = float(i)


def _assign_coordinates(
    by_rank: dict[int, list[str]],
    blocks: dict[str, _Block],
    spacing: float,
    layer_gap: float,
) -> tuple[float, float]:
    """Place layers left-to-right, each centred vertically.

    Returns the (width, height) of the placed content.
    """
    layers = [r for r in sorted(by_rank) if by_rank[r]]
    column_height: dict[int, float] = {}
    column_width: dict[int, float] = {}
    for rank in layers:
        ids = by_rank[rank]
        column_height[rank] = sum(blocks[b].height for b in ids) + spacing * (len(ids) - 1)
        column_width[rank] = max(blocks[b].width for b in ids)
    total_height = max(column_height.values(), default=0)

    x_cursor = 0.0
    for rank in layers:
        y_cursor = (total_height - column_height[rank]) / 2
        for bid in by_rank[rank]:
            block = blocks[bid]
            block.x = x_cursor + (column_width[rank] - block.width) / 2
            block.y = y_cursor
            y_cursor += block.height + spacing
        x_cursor += column_width[rank] + layer_gap

    total_width = x_cursor - layer_gap if layers else 0.0
    return total_width, total_height
