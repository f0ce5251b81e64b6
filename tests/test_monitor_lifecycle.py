"""Lifecycle tests for start/pause/resume/stop and the command queue."""

from __future__ import annotations

import logging

import pytest

from matrix_monitor.config import MonitorConfig
from matrix_monitor.grid import SurfaceNotFoundError
from matrix_monitor.monitor import MatrixMonitor
from matrix_monitor.renderers.memory import MemoryRenderer
from matrix_monitor.scheduling import VirtualScheduler


def _all_timers_clear(monitor: MatrixMonitor) -> bool:
    return monitor.main_loop.pending_starts() == [] and all(
        cell.update.timer is None for cell in monitor.grid.cells
    )


def test_commands_before_initialize_are_replayed_in_call_order(make_monitor) -> None:
    monitor = make_monitor()
    calls: list[tuple[str, int]] = []

    def record(name: str):
        return lambda context, options: calls.append((name, len(context.cells)))

    monitor.glitch(record("first"))
    monitor.glitch(record("second"))

    assert calls == []
    assert monitor.pending_commands == 2

    monitor.initialize()

    assert calls == [("first", 20), ("second", 20)]
    assert monitor.pending_commands == 0


def test_queued_start_runs_after_initialize(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.start()
    assert scheduler.pending_count == 0
    assert not monitor.is_running

    monitor.initialize()

    assert monitor.is_initialized
    assert monitor.is_running
    assert len(monitor.main_loop.pending_starts()) == 5


def test_start_delay_defers_first_cycle(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.initialize()

    monitor.start(delay=1000)
    scheduler.advance(999)
    assert not monitor.is_running

    scheduler.advance(1)
    assert monitor.is_running


def test_start_uses_configured_initial_delay(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.set_configuration(initial_delay=300)
    monitor.initialize()

    monitor.start()
    scheduler.advance(299)
    assert not monitor.is_running
    scheduler.advance(1)
    assert monitor.is_running


def test_main_loop_repeats_every_interval(make_monitor, scheduler, monkeypatch) -> None:
    monitor = make_monitor()
    runs: list[int] = []
    monkeypatch.setattr(
        monitor.main_loop, "run", lambda **kwargs: runs.append(scheduler.now)
    )
    monitor.initialize()

    monitor.start()
    scheduler.advance(10000)

    assert runs == [0, 5000, 10000]


def test_short_interval_keeps_every_cycle_droplet(
    make_monitor, scheduler, renderer
) -> None:
    monitor = make_monitor()
    # Each start lands after the next cycle has already run.
    monitor.set_configuration(
        main_loop_interval=1000, min_char_start_delay=1500, max_char_start_delay=1600
    )
    monitor.initialize()

    monitor.start()
    scheduler.advance(10000)

    painted = {
        record.column_index
        for record in renderer.transitions
        if record.row_index == 0 and record.glyph is not None
    }
    assert painted == {0, 1, 2, 3, 4}
    assert len(monitor.main_loop.pending_starts(0)) == 2


def test_start_duration_stops_after_delay_plus_duration(
    make_monitor, scheduler
) -> None:
    monitor = make_monitor()
    monitor.initialize()

    monitor.start(delay=500, duration=2000)
    scheduler.advance(2499)
    assert monitor.is_running

    scheduler.advance(1)
    assert not monitor.is_running
    assert _all_timers_clear(monitor)


def test_configured_run_duration_applies_when_start_omits_it(
    make_monitor, scheduler
) -> None:
    monitor = make_monitor()
    monitor.set_configuration(main_loop_duration=1500)
    monitor.initialize()

    monitor.start()
    scheduler.advance(1500)

    assert not monitor.is_running


def test_pause_all_at_once_cancels_every_pending_update(
    make_monitor, scheduler
) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()
    scheduler.advance(50)

    monitor.pause(all_at_once=True)
    assert monitor.is_running
    scheduler.advance(0)

    assert not monitor.is_running
    assert _all_timers_clear(monitor)
    assert scheduler.pending_count == 0


def test_staggered_pause_sweeps_every_cell_by_max_delay(
    make_monitor, scheduler
) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()
    scheduler.advance(250)

    monitor.pause(min_pause_delay=100, max_pause_delay=300)
    scheduler.advance(0)
    assert not monitor.is_running

    scheduler.advance(300)
    assert _all_timers_clear(monitor)


def test_staggered_pause_cancels_droplets_not_started_yet(
    make_monitor, scheduler, renderer
) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()
    assert len(monitor.main_loop.pending_starts()) == 5

    monitor.pause(min_pause_delay=0, max_pause_delay=50)
    scheduler.advance(50)
    assert _all_timers_clear(monitor)

    scheduler.advance(5000)
    assert renderer.transitions == []


def test_last_pause_call_wins(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.set_configuration(min_char_progression=1000, max_char_progression=1001)
    monitor.initialize()
    column = monitor.grid.columns[0].cells
    monitor.cascade.create_droplet(column[0])
    scheduler.advance(0)

    monitor.pause(min_pause_delay=500, max_pause_delay=600)
    scheduler.advance(0)
    # Rows 1-3, the top cell fade, three staggered cancels and the sweep.
    assert scheduler.pending_count == 8

    monitor.pause(delay=2000, all_at_once=True)
    # The first pause's cancels and sweep are gone; only its replacement waits.
    assert scheduler.pending_count == 5

    scheduler.advance(1500)
    assert column[1].update.is_displayed

    scheduler.advance(500)
    assert column[2].update.is_displayed
    assert column[3].update.timer is None
    assert not column[3].update.is_displayed


def test_pause_with_delay_waits(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()

    monitor.pause(delay=700, all_at_once=True)
    scheduler.advance(699)
    assert monitor.is_running
    scheduler.advance(1)
    assert not monitor.is_running


def test_resume_cancels_pending_pause(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()

    monitor.pause(delay=1000, all_at_once=True)
    monitor.resume()
    scheduler.advance(2000)

    assert monitor.is_running


def test_resume_reschedules_undisplayed_cells_with_fresh_delays(
    make_monitor, scheduler
) -> None:
    monitor = make_monitor()
    # Keep new droplets away from column 0 while the resumed one falls.
    monitor.set_configuration(min_char_start_delay=5000, max_char_start_delay=6000)
    monitor.initialize()
    column = monitor.grid.columns[0].cells
    progression = monitor.cascade.create_droplet(column[0])
    scheduler.advance(0)
    monitor.pause(all_at_once=True)
    scheduler.advance(0)
    assert column[0].update.is_displayed
    assert all(cell.update.timer is None for cell in column)

    monitor.resume()

    assert monitor.is_running
    assert [cell.update.delay for cell in column[1:]] == [
        0,
        progression,
        2 * progression,
    ]
    scheduler.advance(2 * progression)
    assert all(cell.update.is_displayed for cell in column)


def test_resume_only_top_cells_leaves_frozen_cells(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.initialize()
    column = monitor.grid.columns[0].cells
    monitor.cascade.create_droplet(column[0])
    scheduler.advance(0)
    monitor.pause(all_at_once=True)
    scheduler.advance(0)

    monitor.resume(only_top_cells=True)

    assert monitor.is_running
    assert all(cell.update.timer is None for cell in column[1:])
    assert not column[1].update.is_displayed


def test_resume_with_delay(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.initialize()

    monitor.resume(delay=400)
    scheduler.advance(399)
    assert not monitor.is_running
    scheduler.advance(1)
    assert monitor.is_running


def test_stop_cancels_everything(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()
    scheduler.advance(250)

    monitor.stop()

    assert not monitor.is_running
    assert _all_timers_clear(monitor)
    scheduler.advance(5000)
    assert monitor.main_loop.pending_starts() == []


def test_stop_with_delay(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()

    monitor.stop(delay=1000)
    scheduler.advance(999)
    assert monitor.is_running
    scheduler.advance(1)
    assert not monitor.is_running


def test_stop_with_clear_screen_blanks_the_grid(
    make_monitor, scheduler, renderer
) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()
    scheduler.advance(1500)
    assert renderer.snapshot().strip()

    monitor.stop(clear_screen=True)
    scheduler.advance(3000)

    assert not monitor.is_running
    assert renderer.snapshot() == "\n".join([" " * 5] * 4)


def test_set_configuration_applies_live(make_monitor, scheduler, renderer) -> None:
    monitor = make_monitor()
    monitor.initialize()

    monitor.set_configuration(alphabet="Z")
    monitor.start()
    scheduler.advance(1000)

    assert renderer.snapshot() == "\n".join(["ZZZZZ"] * 4)


def test_initialize_again_rebuilds_grid_and_cancels_work(
    make_monitor, scheduler, renderer
) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()
    scheduler.advance(250)
    old_cells = list(monitor.grid.cells)

    renderer.surfaces["rain"] = (4, 2)
    monitor.initialize()

    assert not monitor.is_running
    assert monitor.grid.column_count == 2
    assert monitor.grid.row_count == 2
    assert all(cell.update.timer is None for cell in old_cells)


def test_missing_surface_raises_and_keeps_queue() -> None:
    monitor = MatrixMonitor(
        "missing",
        MemoryRenderer(surfaces={"rain": (10, 4)}),
        scheduler=VirtualScheduler(),
    )
    monitor.start()

    with pytest.raises(SurfaceNotFoundError):
        monitor.initialize()

    assert not monitor.is_initialized
    assert monitor.pending_commands == 1


def test_empty_surface_lifecycle_is_a_no_op(scheduler) -> None:
    monitor = MatrixMonitor(
        "rain",
        MemoryRenderer(surfaces={"rain": (0, 0)}),
        config=MonitorConfig(alphabet="AB"),
        scheduler=scheduler,
    )
    monitor.initialize()

    monitor.start()
    monitor.pause(all_at_once=True)
    monitor.resume()
    monitor.stop(clear_screen=True)
    scheduler.advance(20000)

    assert monitor.grid.cells == []


def test_shutdown_cancels_pending_tasks(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.initialize()
    monitor.start()
    monitor.stop(delay=5000)

    monitor.shutdown()

    assert not monitor.is_running
    assert _all_timers_clear(monitor)
    assert scheduler.pending_count == 0


def test_malformed_options_fall_back_to_defaults(make_monitor, scheduler) -> None:
    monitor = make_monitor()
    monitor.initialize()

    monitor.start(delay="soon", duration=None)
    monitor.pause(delay=-5, all_at_once="yes")
    scheduler.advance(0)

    assert not monitor.is_running


def test_unknown_glitch_name_is_logged(make_monitor, caplog) -> None:
    monitor = make_monitor()
    monitor.initialize()

    with caplog.at_level(logging.WARNING):
        monitor.glitch("melt")

    assert "Unknown glitch effect 'melt'" in caplog.text
