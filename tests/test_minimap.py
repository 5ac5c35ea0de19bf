"""Tests for minimap mapping and navigation."""

import pytest

from plate_mcp.minimap import MinimapController
from plate_mcp.models import Bounds
from plate_mcp.scene import Rect, Scene
from plate_mcp.viewport import ViewportController, ViewportState


def _minimap(bounds: Bounds | None = Bounds(0, 0, 400, 100)) -> MinimapController:
    viewport = ViewportController(ViewportState(width=800, height=600))
    mini = MinimapController(viewport)
    if bounds is not None:
        viewport.update_content(bounds)
        mini.update(bounds)
    return mini


def test_uniform_scale_and_centring() -> None:
    mini = _minimap()
    s = mini.state
    # (200 - 16) / 400 limits the scale; height has spare room
    assert s.scale == pytest.approx(184 / 400)
    assert s.ox == pytest.approx(8)
    assert s.oy == pytest.approx((140 - 100 * s.scale) / 2)


def test_mapping_round_trip() -> None:
    mini = _minimap(Bounds(-50, 20, 300, 300))
    p = mini.to_minimap(75, 170)
    back = mini.to_content(p.x, p.y)
    assert back.x == pytest.approx(75)
    assert back.y == pytest.approx(170)


def test_click_recentres_viewport() -> None:
    mini = _minimap()
    target = mini.to_minimap(300, 25)
    assert mini.click(target.x, target.y)
    vp = mini.viewport
    centre = vp.to_content(vp.state.width / 2, vp.state.height / 2)
    assert centre.x == pytest.approx(300)
    assert centre.y == pytest.approx(25)
    assert mini.state.mode == "idle"


def test_drag_keeps_recentring() -> None:
    mini = _minimap()
    assert mini.pointer_down(20, 70)
    assert mini.state.mode == "dragging"
    assert mini.viewport.state.mode == "idle"
    mini.pointer_move(150, 70)
    vp = mini.viewport
    centre = vp.to_content(400, 300)
    assert centre.x == pytest.approx(mini.to_content(150, 70).x)
    mini.pointer_up()
    assert not mini.pointer_move(10, 10)


def test_press_outside_or_without_content() -> None:
    assert not _minimap().pointer_down(500, 10)
    assert not _minimap(None).pointer_down(10, 10)
    assert not _minimap().pointer_down(10, 10, button=1)


def test_primitives() -> None:
    mini = _minimap()
    scene = Scene(bounds=Bounds(0, 0, 400, 100), primitives=[
        Rect("plate:n", "plate", 100, 0, 300, 100),
        Rect("a", "node", 0, 0, 50, 50, node_type="latent"),
        Rect("b", "node", 150, 10, 20, 20, node_type="fixed"),
        Rect("c", "node", 200, 10, 60, 40, node_type="deterministic"),
    ])
    prims = {p.id: p for p in mini.primitives(scene)}
    assert prims["mini:plate:n"].kind == "plate"
    a, b, c = prims["mini:a"], prims["mini:b"], prims["mini:c"]
    assert a.rx == pytest.approx(a.width / 2)
    assert b.width == pytest.approx(2 * mini.config.dot_radius)
    assert 0 < c.rx < c.height / 2
    view = prims["mini:viewport"]
    assert view.kind == "viewport"
    region = mini.viewport.visible_region()
    assert view.width == pytest.approx(region.width * mini.state.scale)
