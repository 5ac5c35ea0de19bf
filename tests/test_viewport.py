"""Tests for the pan/zoom state machine."""

import pytest

from plate_mcp.models import Bounds
from plate_mcp.viewport import ViewportConfig, ViewportController, ViewportState


def _controller(**state) -> ViewportController:
    return ViewportController(ViewportState(**state))


class TestZoom:
    def test_round_trip(self) -> None:
        ctl = _controller(scale=1.3, tx=17, ty=-40)
        ctl.zoom_at(1.5, 200, 150)
        ctl.zoom_at(1 / 1.5, 200, 150)
        s = ctl.state
        assert s.scale == pytest.approx(1.3)
        assert s.tx == pytest.approx(17)
        assert s.ty == pytest.approx(-40)

    def test_anchor_stays_put(self) -> None:
        ctl = _controller(scale=0.8, tx=30, ty=12)
        before = ctl.to_content(321, 123)
        ctl.zoom_at(2.0, 321, 123)
        after = ctl.to_screen(before.x, before.y)
        assert after.x == pytest.approx(321)
        assert after.y == pytest.approx(123)

    def test_clamped(self) -> None:
        ctl = _controller()
        assert ctl.zoom_at(100, 0, 0) == 3.5
        assert ctl.zoom_at(1e-6, 0, 0) == 0.2

    def test_wheel_direction(self) -> None:
        ctl = _controller()
        assert ctl.wheel(-100, 400, 300) > 1.0
        ctl.state.scale = 1.0
        assert ctl.wheel(100, 400, 300) < 1.0

    def test_buttons_zoom_about_centre(self) -> None:
        ctl = _controller(width=800, height=600)
        centre = ctl.to_content(400, 300)
        ctl.zoom_in()
        assert ctl.state.scale == pytest.approx(1.2)
        assert ctl.to_content(400, 300).x == pytest.approx(centre.x)
        ctl.zoom_out()
        assert ctl.state.scale == pytest.approx(1.0)


class TestPan:
    def test_drag(self) -> None:
        ctl = _controller(scale=2.5, tx=5, ty=5)
        assert ctl.pointer_down(10, 10)
        assert ctl.state.mode == "dragging"
        ctl.pointer_move(30, 50)
        # Screen-space delta, independent of scale
        assert (ctl.state.tx, ctl.state.ty) == (25, 45)
        ctl.pointer_move(20, 10)
        assert (ctl.state.tx, ctl.state.ty) == (15, 5)
        ctl.pointer_up()
        assert ctl.state.mode == "idle"
        assert not ctl.pointer_move(100, 100)
        assert ctl.state.tx == 15

    def test_secondary_button_ignored(self) -> None:
        ctl = _controller()
        assert not ctl.pointer_down(0, 0, button=2)
        assert ctl.state.mode == "idle"

    def test_pan_disabled(self) -> None:
        ctl = _controller()
        ctl.pointer_down(0, 0)
        ctl.set_pan_enabled(False)
        assert ctl.state.mode == "idle"
        assert not ctl.pointer_down(0, 0)

    def test_cancel(self) -> None:
        ctl = _controller()
        ctl.pointer_down(0, 0)
        ctl.pointer_cancel()
        assert not ctl.state.dragging


class TestFit:
    def test_fit_caps_scale(self) -> None:
        ctl = _controller(width=800, height=600)
        ctl.update_content(Bounds(0, 0, 400, 300))
        s = ctl.state
        assert s.scale == pytest.approx(1.8)
        assert s.tx == pytest.approx(40)
        assert s.ty == pytest.approx(30)

    def test_fit_centres_large_content(self) -> None:
        ctl = _controller(width=800, height=600)
        ctl.update_content(Bounds(100, 50, 1600, 600))
        s = ctl.state
        assert s.scale == pytest.approx(0.5)
        region = ctl.visible_region()
        assert region.cx == pytest.approx(900)
        assert region.cy == pytest.approx(350)

    def test_refit_only_on_change(self) -> None:
        ctl = _controller(width=800, height=600)
        box = Bounds(0, 0, 400, 300)
        assert ctl.update_content(box)
        ctl.zoom_at(0.5, 0, 0)
        ctl.pointer_down(0, 0)
        ctl.pointer_move(10, 10)
        ctl.pointer_up()
        kept = (ctl.state.scale, ctl.state.tx, ctl.state.ty)
        assert not ctl.update_content(Bounds(0, 0, 400, 300))
        assert (ctl.state.scale, ctl.state.tx, ctl.state.ty) == kept
        assert ctl.update_content(Bounds(0, 0, 401, 300))
        assert ctl.state.scale != kept[0]

    def test_fit_without_content(self) -> None:
        ctl = _controller(scale=2, tx=9, ty=9)
        ctl.fit()
        assert (ctl.state.scale, ctl.state.tx, ctl.state.ty) == (1.0, 0.0, 0.0)

    def test_custom_cap(self) -> None:
        ctl = ViewportController(ViewportState(width=800, height=600), ViewportConfig(fit_max_scale=1.0))
        ctl.update_content(Bounds(0, 0, 100, 100))
        assert ctl.state.scale == 1.0


def test_resize_keeps_pan_and_zoom() -> None:
    ctl = _controller(scale=1.7, tx=-20, ty=33)
    ctl.resize(1024, 768)
    s = ctl.state
    assert (s.width, s.height) == (1024, 768)
    assert (s.scale, s.tx, s.ty) == (1.7, -20, 33)


def test_center_on() -> None:
    ctl = _controller(width=800, height=600, scale=2)
    ctl.center_on(50, 25)
    centre = ctl.to_content(400, 300)
    assert centre.x == pytest.approx(50)
    assert centre.y == pytest.approx(25)


def test_to_dict() -> None:
    d = ViewportState().to_dict()
    assert d["mode"] == "idle"
    assert d["panEnabled"] is True
    assert d["content"] is None
