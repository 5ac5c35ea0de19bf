"""Tests for the debounced render session."""

import asyncio

from plate_mcp.layout_engine import LayeredLayoutOracle
from plate_mcp.pipeline import RenderConfig, RenderSession, TypesetError

GOOD = "dim n(N)\nlatent mu\nobserved x[n]\nmu -> x"
OTHER = "latent a\nlatent b\na -> b"


class _DelayedOracle:
    """Lays out normally after a per-call delay."""

    def __init__(self, delays=()) -> None:
        self.delays = list(delays)
        self.calls = 0
        self.inner = LayeredLayoutOracle()

    async def layout(self, request: dict) -> dict:
        self.calls += 1
        delay = self.delays.pop(0) if self.delays else 0
        await asyncio.sleep(delay)
        return self.inner.layout_sync(request)


class _BrokenOracle:
    async def layout(self, request: dict) -> dict:
        raise RuntimeError("oracle crashed")


class _RecordingTypesetter:
    def __init__(self, fail: bool = False) -> None:
        self.batches: list[list[str]] = []
        self.fail = fail

    async def typeset(self, labels: list[str]) -> None:
        self.batches.append(labels)
        if self.fail:
            raise TypesetError("bad TeX")


def _session(oracle=None, **config) -> RenderSession:
    return RenderSession(oracle=oracle or _DelayedOracle(), config=RenderConfig(**config))


# ---------------------------------------------------------------------------
# Single passes
# ---------------------------------------------------------------------------

def test_successful_render() -> None:
    session = _session()
    result = asyncio.run(session.render(GOOD))
    assert result is not None
    assert session.result is result
    assert session.error is None
    assert [n.id for n in result.model.nodes] == ["mu", "x"]
    assert result.tree.children[0].id == "plate:n"
    assert session.scene is result.scene
    assert session.state.viewport.content == result.layout.bounds


def test_node_named_like_the_root_container() -> None:
    session = _session()
    result = asyncio.run(session.render("latent root\nlatent y\nroot -> y"))
    assert session.error is None
    assert [n.id for n in result.model.nodes] == ["root", "y"]
    assert result.layout.boxes["root"].width == 138
    assert result.layout.bounds == result.layout.boxes["plate:"]
    for node_id in ("root", "y"):
        box = result.layout.boxes[node_id]
        assert result.layout.bounds.contains_point(box.cx, box.cy)


def test_parse_error_keeps_previous_scene() -> None:
    session = _session()

    async def run() -> None:
        await session.render(GOOD)
        scene = session.scene
        assert await session.render("node X") is None
        assert session.error == 'Line 1: Unknown node type "node"; expected dim, latent, observed, fixed, deterministic, or an edge chain'
        assert session.scene is scene
        assert session.result.source == GOOD
        await session.render(OTHER)
        assert session.error is None
        assert session.scene is not scene

    asyncio.run(run())


def test_first_render_failing_leaves_no_scene() -> None:
    session = _session()
    asyncio.run(session.render("a ->"))
    assert session.scene is None
    assert session.error.startswith("Line 1:")


def test_oracle_failure_is_reported() -> None:
    session = _session(oracle=_BrokenOracle())
    asyncio.run(session.render(GOOD))
    assert session.error == "oracle crashed"
    assert session.result is None


def test_typesetter_receives_math_labels() -> None:
    typesetter = _RecordingTypesetter()
    session = RenderSession(oracle=_DelayedOracle(), typesetter=typesetter)
    asyncio.run(session.render(GOOD))
    (labels,) = typesetter.batches
    assert "$x_{N}$" in labels


def test_typesetter_failure_aborts_pass() -> None:
    session = RenderSession(oracle=_DelayedOracle(), typesetter=_RecordingTypesetter(fail=True))
    asyncio.run(session.render(GOOD))
    assert session.result is None
    assert session.error == "bad TeX"


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

def test_slow_pass_does_not_overwrite_newer_result() -> None:
    session = _session(oracle=_DelayedOracle([0.05, 0]))

    async def run() -> None:
        slow = asyncio.ensure_future(session.render(GOOD))
        await asyncio.sleep(0)
        fast = await session.render(OTHER)
        assert fast is not None
        assert await slow is None

    asyncio.run(run())
    assert session.result.source == OTHER
    assert session.status()["settled"] == 2


def test_last_completed_wins_without_discarding() -> None:
    session = _session(oracle=_DelayedOracle([0.05, 0]), discard_stale=False)

    async def run() -> None:
        slow = asyncio.ensure_future(session.render(GOOD))
        await asyncio.sleep(0)
        await session.render(OTHER)
        await slow

    asyncio.run(run())
    assert session.result.source == GOOD


def test_slow_success_does_not_hide_newer_error() -> None:
    session = _session(oracle=_DelayedOracle([0.05]))

    async def run() -> None:
        slow = asyncio.ensure_future(session.render(GOOD))
        await asyncio.sleep(0)
        await session.render("node X")
        await slow

    asyncio.run(run())
    assert session.result is None
    assert session.error.startswith("Line 1:")


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

def test_debounce_collapses_edits() -> None:
    oracle = _DelayedOracle()
    session = _session(oracle=oracle, debounce=0.01)

    async def run() -> None:
        session.schedule("latent a")
        session.schedule("latent a\nlatent b")
        session.schedule(GOOD)
        assert session.pending
        await session.drain()

    asyncio.run(run())
    assert oracle.calls == 1
    assert session.result.source == GOOD
    assert not session.pending
    assert session.in_flight == 0


def test_cancel_pending() -> None:
    oracle = _DelayedOracle()
    session = _session(oracle=oracle, debounce=0.01)

    async def run() -> None:
        session.schedule(GOOD)
        session.cancel_pending()
        await asyncio.sleep(0.03)

    asyncio.run(run())
    assert oracle.calls == 0
    assert session.result is None


def test_viewport_survives_identical_rerender() -> None:
    session = _session(debounce=0.01)

    async def run() -> None:
        await session.render(GOOD)
        session.viewport.zoom_at(2.0, 10, 10)
        zoomed = session.state.viewport.scale
        session.resize(1200, 900)
        await session.drain()
        assert session.status()["sequence"] == 2
        assert session.state.viewport.scale == zoomed
        assert session.state.viewport.width == 1200
        await session.render(OTHER)
        assert session.state.viewport.scale != zoomed

    asyncio.run(run())


def test_status_shape() -> None:
    session = _session()
    status = session.status()
    assert status["sequence"] == 0
    assert status["hasScene"] is False
    assert status["viewport"]["mode"] == "idle"
    assert status["minimap"]["width"] == 200
