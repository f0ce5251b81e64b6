"""Tests for drawing ascii images over the rain."""

from __future__ import annotations

import pytest

from matrix_monitor.compositor import ImageFormatError
from matrix_monitor.monitor import DRAW_SETTLE_MS


def _spy_main_loop(monitor, scheduler, monkeypatch) -> list[tuple[int, dict]]:
    calls: list[tuple[int, dict]] = []

    def run(**kwargs):
        calls.append((scheduler.now, kwargs))
        return 0

    monkeypatch.setattr(monitor.main_loop, "run", run)
    return calls


def test_draw_shows_image_then_resumes(make_monitor, scheduler, renderer) -> None:
    monitor = make_monitor()
    monitor.initialize()

    monitor.draw("AB\nCD", delay=0, duration=3000, margins=0, paddings=0)
    scheduler.advance(2500)

    assert renderer.glyph_at(0, 0) == "A"
    assert renderer.glyph_at(1, 0) == "B"
    assert renderer.glyph_at(0, 1) == "C"
    assert renderer.glyph_at(1, 1) == "D"
    assert not monitor.is_running

    scheduler.advance(500)
    assert monitor.is_running


def test_draw_timeline_follows_delay_and_duration(
    make_monitor, scheduler, monkeypatch
) -> None:
    monitor = make_monitor()
    calls = _spy_main_loop(monitor, scheduler, monkeypatch)
    monitor.initialize()

    composed = monitor.draw("X", delay=1000, duration=3000)
    scheduler.advance(999)
    assert calls == []

    scheduler.advance(1000 + DRAW_SETTLE_MS)
    assert calls == [(1000 + DRAW_SETTLE_MS, {"char_table": composed.table})]
    assert not monitor.is_running

    scheduler.advance(5000 - scheduler.now)
    assert calls[-1] == (5000, {})
    assert monitor.is_running


def test_draw_keeps_image_columns_refreshed_until_duration(
    make_monitor, scheduler, monkeypatch
) -> None:
    monitor = make_monitor()
    calls = _spy_main_loop(monitor, scheduler, monkeypatch)
    monitor.initialize()

    composed = monitor.draw(
        "AB",
        delay=0,
        duration=20000,
        margins=0,
        paddings=0,
        keep_on_not_affected_columns=True,
    )
    scheduler.advance(30000)

    refreshes = [
        (now, kwargs) for now, kwargs in calls if "ignore_columns" in kwargs
    ]
    assert [now for now, _kwargs in refreshes] == [6500, 11500, 16500]
    assert all(kwargs["ignore_columns"] == [2, 3, 4] for _now, kwargs in refreshes)
    assert all(kwargs["char_table"] is composed.table for _now, kwargs in refreshes)


def test_new_draw_replaces_pending_draw(make_monitor, scheduler, monkeypatch) -> None:
    monitor = make_monitor()
    calls = _spy_main_loop(monitor, scheduler, monkeypatch)
    monitor.initialize()

    monitor.draw("A", delay=1000, duration=100000)
    second = monitor.draw("B", delay=0, duration=100000)
    scheduler.advance(5000)

    tables = [kwargs["char_table"] for _now, kwargs in calls if kwargs]
    assert tables == [second.table]


def test_draw_before_initialize_is_queued(make_monitor, scheduler, renderer) -> None:
    monitor = make_monitor()

    composed = monitor.draw("Q", delay=0, duration=3000, margins=0, paddings=0)

    assert composed.table == [["Q"]]
    assert monitor.pending_commands == 1

    monitor.initialize()
    scheduler.advance(2500)

    assert renderer.glyph_at(0, 0) == "Q"


def test_draw_default_edges_compose_immediately(make_monitor) -> None:
    monitor = make_monitor()

    composed = monitor.draw([["a", "b"]])

    assert composed.width == 2 + 1 + 2 + 1 + 2
    assert composed.height == 2 + 1 + 1 + 1 + 2


def test_draw_rejects_malformed_image(make_monitor) -> None:
    monitor = make_monitor()
    monitor.initialize()

    with pytest.raises(ImageFormatError):
        monitor.draw({"not": "an image"})

    assert monitor.pending_commands == 0


def test_stop_cancels_draw_refresh(make_monitor, scheduler, monkeypatch) -> None:
    monitor = make_monitor()
    calls = _spy_main_loop(monitor, scheduler, monkeypatch)
    monitor.initialize()

    monitor.draw(
        "AB",
        delay=0,
        duration=20000,
        margins=0,
        paddings=0,
        keep_on_not_affected_columns=True,
    )
    scheduler.advance(3000)
    monitor.stop()
    scheduler.advance(20000)

    assert [kwargs for _now, kwargs in calls if "ignore_columns" in kwargs] == []


def test_stop_before_settle_cancels_image_cycle(
    make_monitor, scheduler, monkeypatch
) -> None:
    monitor = make_monitor()
    calls = _spy_main_loop(monitor, scheduler, monkeypatch)
    monitor.initialize()

    monitor.draw("X", delay=0, duration=3000)
    scheduler.advance(1000)
    monitor.stop()
    scheduler.advance(DRAW_SETTLE_MS)

    assert [kwargs for _now, kwargs in calls if "char_table" in kwargs] == []


def test_stop_halts_rain_painting_during_draw(
    make_monitor, scheduler, renderer
) -> None:
    monitor = make_monitor()
    monitor.initialize()

    monitor.draw(
        "AB",
        delay=0,
        duration=20000,
        margins=0,
        paddings=0,
        keep_on_not_affected_columns=True,
    )
    scheduler.advance(3000)
    monitor.stop()
    scheduler.advance(1000)
    painted = len(renderer.transitions)

    scheduler.advance(15000)

    assert len(renderer.transitions) == painted
