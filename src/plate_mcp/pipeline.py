"""
One diagram's render loop.

parse -> build -> containment tree -> layout request -> (await oracle) ->
reconcile -> scene -> (await typesetter) runs as a single asyncio task.

Edits are debounced: a newer ``schedule()`` cancels the pending timer, but a
pass that already reached the oracle is never cancelled. Completions are
applied in completion order; with ``discard_stale`` a pass that finishes after a
newer one has already settled (succeeded or failed) is dropped instead.

A failed pass leaves the previous scene in place and only sets ``error``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from plate_mcp.builder import build_model
from plate_mcp.containment import Plate, build_containment_tree
from plate_mcp.geometry import GeometryConfig
from plate_mcp.layout import LayoutConfig, LayoutOracle, build_layout_request
from plate_mcp.layout_engine import LayeredLayoutOracle
from plate_mcp.minimap import MinimapConfig, MinimapController, MinimapState
from plate_mcp.models import GraphModel
from plate_mcp.parser import ParseError
from plate_mcp.reconcile import ReconciledLayout, reconcile
from plate_mcp.scene import Scene, build_scene
from plate_mcp.styles import ColorTheme, Themes
from plate_mcp.viewport import ViewportConfig, ViewportController, ViewportState

logger = logging.getLogger("plate-mcp")


class TypesetError(ParseError):
    """Raised by a typesetter that could not process the math labels."""


class Typesetter(Protocol):
    async def typeset(self, labels: list[str]) -> None:
        ...


class NullTypesetter:
    """Leaves ``$...$`` strings for the surface to handle."""

    async def typeset(self, labels: list[str]) -> None:
        return None


# ---------------------------------------------------------------------------
# Configuration / state
# ---------------------------------------------------------------------------

@dataclass
class RenderConfig:
    debounce: float = 0.12         # seconds of quiet before a scheduled render
    discard_stale: bool = True     # drop completions older than the newest settled pass
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    viewport: ViewportConfig = field(default_factory=ViewportConfig)
    minimap: MinimapConfig = field(default_factory=MinimapConfig)


@dataclass
class InteractionState:
    """UI state shared by the viewport and minimap controllers."""
    viewport: ViewportState = field(default_factory=ViewportState)
    minimap: MinimapState = field(default_factory=MinimapState)


@dataclass
class RenderResult:
    """Artifacts of one successful pass."""
    sequence: int
    source: str
    model: GraphModel
    tree: Plate
    request: dict[str, Any]
    layout: ReconciledLayout
    scene: Scene


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class RenderSession:
    """Debounced, last-completed-wins render loop for one diagram."""

    def __init__(
        self,
        oracle: LayoutOracle | None = None,
        typesetter: Typesetter | None = None,
        config: RenderConfig | None = None,
        theme: ColorTheme | None = None,
        state: InteractionState | None = None,
    ) -> None:
        self.config = config or RenderConfig()
        self.oracle = oracle or LayeredLayoutOracle()
        self.typesetter = typesetter or NullTypesetter()
        self.theme = theme or Themes.LIGHT
        self.state = state or InteractionState(
            minimap=MinimapState(
                width=self.config.minimap.width,
                height=self.config.minimap.height,
                padding=self.config.minimap.padding,
            ),
        )
        self.viewport = ViewportController(self.state.viewport, self.config.viewport)
        self.minimap = MinimapController(self.viewport, self.state.minimap, self.config.minimap)

        self.source = ""
        self.result: Optional[RenderResult] = None
        self.error: Optional[str] = None
        self._sequence = 0
        self._settled = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def scene(self) -> Optional[Scene]:
        return self.result.scene if self.result else None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def in_flight(self) -> int:
        return len(self._inflight)

    # ----- render pass -----

    async def render(self, source: str | None = None) -> Optional[RenderResult]:
        """Run one full pass now. Returns the result if it was applied."""
        if source is not None:
            self.source = source
        text = self.source
        self._sequence += 1
        seq = self._sequence
        try:
            model = build_model(text)
            tree = build_containment_tree(model)
            request = build_layout_request(model, tree, self.config.layout)
            response = await self.oracle.layout(request)
            layout = reconcile(response)
            scene = build_scene(model, tree, layout, self.theme, self.config.geometry)
            await self.typesetter.typeset(scene.math_labels())
        except ParseError as exc:
            logger.debug("Render pass %d failed: %s", seq, exc)
            self._fail(seq, str(exc))
            return None
        except Exception as exc:
            logger.exception("Render pass %d failed in a collaborator", seq)
            self._fail(seq, str(exc) or type(exc).__name__)
            return None

        result = RenderResult(seq, text, model, tree, request, layout, scene)
        return result if self._apply(result) else None

    def _is_stale(self, seq: int) -> bool:
        return self.config.discard_stale and seq < self._settled

    def _fail(self, seq: int, message: str) -> None:
        if self._is_stale(seq):
            return
        self._settled = max(self._settled, seq)
        self.error = message

    def _apply(self, result: RenderResult) -> bool:
        if self._is_stale(result.sequence):
            logger.debug("Discarding stale pass %d (newest settled %d)", result.sequence, self._settled)
            return False
        self._settled = max(self._settled, result.sequence)
        self.result = result
        self.error = None
        bounds = result.layout.bounds
        self.viewport.update_content(bounds)
        self.minimap.update(bounds)
        return True

    # ----- scheduling -----

    def schedule(self, source: str | None = None, delay: float | None = None) -> None:
        """Render after a quiet period; replaces any pending (not in-flight) render."""
        if source is not None:
            self.source = source
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        wait = self.config.debounce if delay is None else delay
        self._timer = loop.call_later(wait, self._fire)

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.ensure_future(self.render())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def resize(self, width: float, height: float, rerender: bool = True) -> None:
        """Viewport resized: keep pan/zoom and (by default) schedule a re-render.

        Scheduling needs a running event loop.
        """
        self.viewport.resize(width, height)
        if rerender:
            self.schedule()

    async def drain(self) -> None:
        """Wait until nothing is pending or in flight."""
        while self._timer is not None or self._inflight:
            if self._inflight:
                await asyncio.gather(*list(self._inflight), return_exceptions=True)
            else:
                await asyncio.sleep(self.config.debounce / 4 or 0.001)

    def cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def status(self) -> dict[str, Any]:
        return {
            "sequence": self._sequence,
            "settled": self._settled,
            "pending": self.pending,
            "inFlight": self.in_flight,
            "error": self.error,
            "hasScene": self.result is not None,
            "viewport": self.state.viewport.to_dict(),
            "minimap": self.state.minimap.to_dict(),
        }
