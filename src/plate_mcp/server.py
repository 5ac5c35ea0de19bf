"""
Plate MCP Server - render plate-notation diagrams via Model Context Protocol.

Exposes 3 tools that let an agent turn the model DSL into a diagram and
navigate it. Sessions live in memory only; nothing is written to disk.

Tools:
  1. diagram  - lifecycle: create, render, schedule, scene, svg, model, tree,
                status, list, close
  2. viewport - pan/zoom: pointer_down/move/up/cancel, zoom, wheel, zoom_in,
                zoom_out, fit, resize, state
  3. minimap  - overview: pointer_down/move/up, state, primitives
"""

from __future__ import annotations

import json
import logging
import threading

from mcp.server.fastmcp import FastMCP

from plate_mcp.minimap import MinimapController
from plate_mcp.pipeline import RenderConfig, RenderSession
from plate_mcp.styles import get_theme
from plate_mcp.validation import (
    ValidationError,
    validate_action,
    validate_button,
    validate_non_empty_string,
    validate_number,
    validate_string,
    validate_theme,
    validate_viewport_size,
    validate_zoom_factor,
    _DIAGRAM_ACTIONS,
    _MINIMAP_ACTIONS,
    _VIEWPORT_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging: suppress routine FastMCP INFO messages that editors show
# as warnings (they go to stderr).
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("plate-mcp")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "plate-mcp",
    instructions=(
        "MCP server for plate-notation diagrams of probabilistic graphical models.\n\n"
        "=== 3 TOOLS - use the 'action' parameter to pick the operation ===\n\n"
        "1. diagram(action, ...) - create, render, schedule, scene, svg, model,\n"
        "   tree, status, list, close.\n"
        "2. viewport(action, ...) - pointer_down, pointer_move, pointer_up,\n"
        "   pointer_cancel, zoom, wheel, zoom_in, zoom_out, fit, resize, state.\n"
        "3. minimap(action, ...) - pointer_down, pointer_move, pointer_up,\n"
        "   state, primitives.\n\n"
        "=== DSL ===\n"
        "  dim n(N) \"samples\"\n"
        "  latent mu \"mean\" ~ Normal(0,1)\n"
        "  observed x[n] ~ Normal(mu, 1)\n"
        "  mu -> x\n\n"
        "Read the resource plate://guide/dsl for the full grammar.\n"
    ),
)

# In-memory session registry: name -> RenderSession
# Guarded by _sessions_lock for thread-safety.
_sessions: dict[str, RenderSession] = {}
_sessions_lock = threading.Lock()


# ===================================================================
# RESOURCES
# ===================================================================

@mcp.resource("plate://guide/dsl")
def dsl_guide() -> str:
    """Return the DSL reference."""
    return """\
PLATE DSL - one declaration per line; blank lines and '#' comments are ignored.

dim <symbol> [(<label>)] [<description>]
    dim n(N) "samples"          label N, description samples
    dim k                       label and description default to k

<type> <name>[<dims>] [(<symbol>)] [<description>] [~ <distribution>]
    type: latent | observed | fixed | deterministic
    latent mu "mean" ~ Normal(0, 1)
    observed x[n] ~ Normal(mu, sigma)
    deterministic eta[n, k] (\\eta_{nk}) "linear predictor"
    Without (<symbol>) the symbol is the name subscripted by the dim labels.

Edge chains
    a -> b -> c                 two edges: a->b, b->c
    y <- x                      one edge: x->y
    Nodes may be referenced before they are declared.

Nodes sharing the same set of dims share a plate; a plate for [i, j] is
drawn inside the plate for [i].
"""


# ===================================================================
# Helpers
# ===================================================================

def _get_session(name: str) -> RenderSession:
    name = validate_non_empty_string(name, "name")
    with _sessions_lock:
        session = _sessions.get(name)
    if session is None:
        raise ValidationError(f"diagram '{name}' not found.")
    return session


def _render_summary(name: str, session: RenderSession) -> str:
    result = session.result
    if result is None:
        return json.dumps({"name": name, "rendered": False, "error": session.error})
    return json.dumps({
        "name": name,
        "rendered": True,
        "sequence": result.sequence,
        "dims": len(result.model.dims),
        "nodes": len(result.model.nodes),
        "edges": len(result.model.edges),
        "bounds": result.layout.bounds.to_dict(),
        "viewport": session.state.viewport.to_dict(),
    })


# ===================================================================
# TOOL 1: diagram - lifecycle and rendering
# ===================================================================

@mcp.tool()
async def diagram(
    action: str,
    name: str = "",
    source: str = "",
    width: float = 800,
    height: float = 600,
    theme: str = "LIGHT",
) -> str:
    """Diagram lifecycle and rendering.

    Actions:
      create   - New session. Params: name, width, height (viewport), theme,
                 optional source (rendered immediately).
      render   - Render now. Params: name, source (empty = current source).
                 On error the previous diagram is kept and the error returned.
      schedule - Debounced render. Params: name, source (empty = current source).
      scene    - Drawable primitives of the last successful render (JSON).
      svg      - Last successful render as SVG.
      model    - Parsed dims/nodes/edges (JSON).
      tree     - Plate containment tree (JSON).
      status   - Pipeline and viewport state (JSON).
      list     - All session names.
      close    - Drop a session.

    Args:
        action: One of the actions above.
        name: Session name.
        source: DSL text.
        width: Viewport width in pixels (create).
        height: Viewport height in pixels (create).
        theme: LIGHT or DARK (create).

    Returns:
        Result string or JSON depending on action.
    """
    try:
        action = validate_action(action, "diagram", _DIAGRAM_ACTIONS)
        validate_string(source, "source")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "list":
        with _sessions_lock:
            return json.dumps(sorted(_sessions))

    if action == "create":
        try:
            name = validate_non_empty_string(name, "name")
            w, h = validate_viewport_size(width, height)
            theme_name = validate_theme(theme)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        session = RenderSession(config=RenderConfig(), theme=get_theme(theme_name))
        session.resize(w, h, rerender=False)
        with _sessions_lock:
            previous = _sessions.get(name)
            _sessions[name] = session
        if previous is not None:
            previous.cancel_pending()
        if source.strip():
            await session.render(source)
            if session.error:
                return f"Error: {session.error}"
            return _render_summary(name, session)
        return f"Diagram '{name}' created ({int(w)}x{int(h)}, {theme_name.lower()})."

    try:
        session = _get_session(name)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "render":
        await session.render(source if source.strip() else None)
        if session.error:
            return f"Error: {session.error}"
        return _render_summary(name, session)

    elif action == "schedule":
        session.schedule(source if source.strip() else None)
        return f"Render of '{name}' scheduled."

    elif action == "status":
        return json.dumps(session.status())

    elif action == "close":
        session.cancel_pending()
        with _sessions_lock:
            _sessions.pop(name.strip(), None)
        return f"Diagram '{name}' closed."

    result = session.result
    if result is None:
        return f"Error: diagram '{name}' has not rendered successfully yet."

    if action == "scene":
        return json.dumps(result.scene.to_dict())
    elif action == "svg":
        return result.scene.to_svg()
    elif action == "model":
        return json.dumps(result.model.to_dict())
    elif action == "tree":
        return json.dumps(result.tree.to_dict())
    return f"Error: unknown diagram action '{action}'."


# ===================================================================
# TOOL 2: viewport - pan and zoom
# ===================================================================

@mcp.tool()
async def viewport(
    action: str,
    name: str = "",
    x: float = 0,
    y: float = 0,
    factor: float = 1.2,
    button: int = 0,
    delta: float = 0,
    width: float = 800,
    height: float = 600,
) -> str:
    """Pan/zoom the main view of a diagram.

    Actions:
      pointer_down   - Start panning (primary button only). Params: x, y, button.
      pointer_move   - Pan while dragging. Params: x, y.
      pointer_up     - Stop panning.
      pointer_cancel - Stop panning.
      zoom           - Zoom by factor about screen point. Params: factor, x, y.
      wheel          - Wheel zoom about screen point. Params: delta, x, y.
      zoom_in        - Zoom in about the centre.
      zoom_out       - Zoom out about the centre.
      fit            - Fit content to the viewport.
      resize         - Viewport size changed (keeps pan/zoom). Params: width, height.
      state          - Current viewport state.

    Returns:
        Viewport state as JSON, or an error string.
    """
    try:
        action = validate_action(action, "viewport", _VIEWPORT_ACTIONS)
        session = _get_session(name)
        px = validate_number(x, "x")
        py = validate_number(y, "y")
    except ValidationError as exc:
        return f"Error: {exc.message}"
    ctl = session.viewport

    try:
        if action == "pointer_down":
            ctl.pointer_down(px, py, validate_button(button))
        elif action == "pointer_move":
            ctl.pointer_move(px, py)
        elif action in ("pointer_up", "pointer_cancel"):
            ctl.pointer_up()
        elif action == "zoom":
            ctl.zoom_at(validate_zoom_factor(factor), px, py)
        elif action == "wheel":
            ctl.wheel(validate_number(delta, "delta"), px, py)
        elif action == "zoom_in":
            ctl.zoom_in()
        elif action == "zoom_out":
            ctl.zoom_out()
        elif action == "fit":
            ctl.fit()
        elif action == "resize":
            w, h = validate_viewport_size(width, height)
            session.resize(w, h)
    except ValidationError as exc:
        return f"Error: {exc.message}"
    return json.dumps(session.state.viewport.to_dict())


# ===================================================================
# TOOL 3: minimap - overview navigation
# ===================================================================

@mcp.tool()
async def minimap(
    action: str,
    name: str = "",
    x: float = 0,
    y: float = 0,
) -> str:
    """Navigate with the minimap.

    Actions:
      pointer_down - Click/start drag in minimap coordinates; recentres the view.
      pointer_move - Drag; keeps recentring the view.
      pointer_up   - End drag.
      state        - Minimap state plus the main viewport state.
      primitives   - Minimap glyphs, plate outlines and visible-region rect.

    Returns:
        JSON, or an error string.
    """
    try:
        action = validate_action(action, "minimap", _MINIMAP_ACTIONS)
        session = _get_session(name)
        mx = validate_number(x, "x")
        my = validate_number(y, "y")
    except ValidationError as exc:
        return f"Error: {exc.message}"
    ctl: MinimapController = session.minimap

    if action == "primitives":
        scene = session.scene
        if scene is None:
            return f"Error: diagram '{name}' has not rendered successfully yet."
        return json.dumps([p.to_dict() for p in ctl.primitives(scene, session.theme)])

    if action == "pointer_down":
        ctl.pointer_down(mx, my)
    elif action == "pointer_move":
        ctl.pointer_move(mx, my)
    elif action == "pointer_up":
        ctl.pointer_up()
    return json.dumps({
        "minimap": session.state.minimap.to_dict(),
        "viewport": session.state.viewport.to_dict(),
    })


# ===================================================================
# Entry point
# ===================================================================

def main() -> None:
    """Run the MCP server."""
    logger.debug("Starting plate-mcp")
    mcp.run()


if __name__ == "__main__":
    main()
