"""Lifecycle controller for the cascading-glyph monitor.

`MatrixMonitor` owns the grid, every scheduled task handle and the command
queue. Public operations issued before `initialize()` are queued and replayed
in call order right after the grid is built; afterwards they run immediately
(each one still honoring its own delay).
"""

from __future__ import annotations

import logging
import random
from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from .cascade import CellPainter, DropletCascade
from .charsource import CharacterSource, random_between
from .compositor import ComposedImage, EdgesValue, compose_image, normalize_image
from .config import (
    MonitorConfig,
    bool_or_default,
    config_from,
    int_or_default,
    merge_config,
    str_or_default,
)
from .glitches import BUILT_IN_GLITCHES
from .glitches.base import GlitchContext, GlitchEffect
from .grid import Cell, Grid, build_grid
from .main_loop import MainLoop
from .renderers.base import Renderer
from .scheduling import AsyncioScheduler, Scheduler, TaskHandle

logger = logging.getLogger(__name__)

DRAW_SETTLE_MS = 1500
CLEAR_DROPLET_MIN_DELAY = 200
CLEAR_DROPLET_MAX_DELAY = 2000


@dataclass
class _Timers:
    """Task handles keyed by the lifecycle role that owns them."""

    main_loop: TaskHandle | None = None
    start: TaskHandle | None = None
    pause: TaskHandle | None = None
    pause_work: list[TaskHandle] = field(default_factory=list)
    resume: TaskHandle | None = None
    stop: TaskHandle | None = None
    draw: list[TaskHandle] = field(default_factory=list)
    draw_refresh: TaskHandle | None = None


class MatrixMonitor:
    """Schedules droplets over a renderer surface and exposes its lifecycle."""

    def __init__(
        self,
        target_id: str,
        renderer: Renderer,
        *,
        config: MonitorConfig | Mapping[str, Any] | None = None,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._target_id = target_id
        self._renderer = renderer
        self._config = config_from(config)
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._random = rng or random.Random()
        self._deferred: deque[tuple[str, tuple[Any, ...], dict[str, Any]]] = deque()
        self._initialized = False
        self._grid = Grid()
        self._timers = _Timers()
        self._char_source = CharacterSource(self._get_config, self._random)
        self._painter = CellPainter(renderer, self._scheduler, self._get_config)
        self._cascade = DropletCascade(
            self._scheduler,
            self._char_source,
            self._painter,
            self._get_config,
            self._random,
        )
        self._main_loop = MainLoop(
            self._get_grid,
            self._scheduler,
            self._cascade,
            self._get_config,
            self._random,
        )

    @property
    def target_id(self) -> str:
        return self._target_id

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_running(self) -> bool:
        """Whether the recurring cascade cycle is installed."""
        return self._timers.main_loop is not None

    @property
    def pending_commands(self) -> int:
        return len(self._deferred)

    @property
    def main_loop(self) -> MainLoop:
        return self._main_loop

    @property
    def cascade(self) -> DropletCascade:
        return self._cascade

    def _get_config(self) -> MonitorConfig:
        return self._config

    def _get_grid(self) -> Grid:
        return self._grid

    def initialize(self) -> None:
        """Build the grid on the target surface and replay queued commands.

        Calling it again rebuilds the grid from scratch after cancelling every
        outstanding task. Raises `SurfaceNotFoundError` when the target
        cannot be resolved.
        """
        if self._initialized:
            self._cancel_everything()
        self._initialized = False
        self._grid = build_grid(self._renderer, self._target_id, self._config)
        self._initialized = True
        logger.info(
            "Monitor initialized",
            extra={
                "event": "monitor_initialized",
                "target_id": self._target_id,
                "queued_commands": len(self._deferred),
            },
        )
        while self._deferred:
            method, args, kwargs = self._deferred.popleft()
            getattr(self, method)(*args, **kwargs)

    def shutdown(self) -> None:
        """Cancel every task the monitor owns."""
        self._cancel_everything()
        logger.info("Monitor shut down", extra={"event": "monitor_shutdown"})

    def _defer(self, method: str, *args: Any, **kwargs: Any) -> None:
        if self._initialized and not self._deferred:
            getattr(self, method)(*args, **kwargs)
            return
        logger.debug("Queued %s until the monitor is initialized", method.lstrip("_"))
        self._deferred.append((method, args, kwargs))

    def set_configuration(self, **options: Any) -> None:
        """Merge options into the live configuration immediately."""
        self._config = merge_config(self._config, options)
        logger.debug("Configuration updated: %s", sorted(options))

    def start(self, *, delay: Any = None, duration: Any = None) -> None:
        self._defer("_start", delay=delay, duration=duration)

    def pause(
        self,
        *,
        delay: Any = 0,
        only_top_cells: Any = False,
        all_at_once: Any = False,
        min_pause_delay: Any = 0,
        max_pause_delay: Any = 1000,
    ) -> None:
        self._defer(
            "_pause",
            delay=delay,
            only_top_cells=only_top_cells,
            all_at_once=all_at_once,
            min_pause_delay=min_pause_delay,
            max_pause_delay=max_pause_delay,
        )

    def resume(self, *, delay: Any = 0, only_top_cells: Any = False) -> None:
        self._defer("_resume", delay=delay, only_top_cells=only_top_cells)

    def stop(self, *, delay: Any = 0, clear_screen: Any = False) -> None:
        self._defer("_stop", delay=delay, clear_screen=clear_screen)

    def glitch(self, effect: GlitchEffect | str, **options: Any) -> None:
        """Run a transient effect with the live internal context.

        `effect` is a callable or the name of a built-in effect.
        """
        self._defer("_glitch", effect, options)

    def draw(
        self,
        image: Any,
        *,
        delay: Any = 1000,
        duration: Any = 30000,
        margins: EdgesValue = 2,
        paddings: EdgesValue = 1,
        padding_char: Any = "",
        keep_on_not_affected_columns: Any = False,
    ) -> ComposedImage:
        """Overlay an ascii image for a bounded time.

        The image is validated and composed right away, so a malformed image
        raises `ImageFormatError` here even before initialization.
        """
        rows = normalize_image(image)
        composed = compose_image(
            rows,
            margins=margins,
            paddings=paddings,
            padding_char=str_or_default(padding_char, ""),
        )
        self._defer(
            "_draw",
            composed,
            delay=delay,
            duration=duration,
            keep_on_not_affected_columns=keep_on_not_affected_columns,
        )
        return composed

    def _start(self, *, delay: Any = None, duration: Any = None) -> None:
        config = self._config
        start_delay = max(0, int_or_default(delay, config.initial_delay))
        run_duration = (
            config.main_loop_duration
            if duration is None
            else int_or_default(duration, config.main_loop_duration)  # type: ignore[arg-type]
        )
        self._scheduler.cancel(self._timers.start)
        self._timers.start = None
        if start_delay > 0:
            self._timers.start = self._scheduler.schedule(start_delay, self._run_start)
        else:
            self._run_start()
        if run_duration is not None:
            self._stop(delay=run_duration + start_delay)

    def _run_start(self) -> None:
        self._timers.start = None
        self._cancel_main_loop()
        self._main_loop.run()
        self._timers.main_loop = self._scheduler.schedule_repeating(
            self._config.main_loop_interval, self._main_loop.run
        )
        logger.info(
            "Cascade started",
            extra={
                "event": "monitor_started",
                "interval_ms": self._config.main_loop_interval,
            },
        )

    def _pause(
        self,
        *,
        delay: Any = 0,
        only_top_cells: Any = False,
        all_at_once: Any = False,
        min_pause_delay: Any = 0,
        max_pause_delay: Any = 1000,
    ) -> None:
        self._cancel_pause_work()
        self._timers.pause = self._scheduler.schedule(
            max(0, int_or_default(delay, 0)),
            self._run_pause,
            bool_or_default(only_top_cells, False),
            bool_or_default(all_at_once, False),
            max(0, int_or_default(min_pause_delay, 0)),
            max(0, int_or_default(max_pause_delay, 1000)),
        )

    def _run_pause(
        self,
        only_top_cells: bool,
        all_at_once: bool,
        min_pause_delay: int,
        max_pause_delay: int,
    ) -> None:
        self._timers.pause = None
        self._cancel_main_loop()
        targets = list(self._grid.top_cells if only_top_cells else self._grid.cells)
        logger.info(
            "Cascade paused",
            extra={
                "event": "monitor_paused",
                "only_top_cells": only_top_cells,
                "all_at_once": all_at_once,
            },
        )
        if all_at_once:
            self._cancel_targets(targets)
            return
        for cell in targets:
            handle = cell.update.timer
            if handle is not None:
                self._timers.pause_work.append(
                    self._scheduler.schedule(
                        random_between(self._random, min_pause_delay, max_pause_delay),
                        self._cancel_cell_handle,
                        cell,
                        handle,
                    )
                )
            if cell.row_index:
                continue
            for start in self._main_loop.pending_starts(cell.column_index):
                self._timers.pause_work.append(
                    self._scheduler.schedule(
                        random_between(self._random, min_pause_delay, max_pause_delay),
                        self._main_loop.cancel_start,
                        start,
                    )
                )
        # Staggered cancellations only cover handles pending right now; the
        # sweep catches anything scheduled in between.
        self._timers.pause_work.append(
            self._scheduler.schedule(max_pause_delay, self._finish_pause, targets)
        )

    def _finish_pause(self, targets: list[Cell]) -> None:
        self._cancel_targets(targets)
        self._timers.pause_work.clear()

    def _resume(self, *, delay: Any = 0, only_top_cells: Any = False) -> None:
        resume_delay = max(0, int_or_default(delay, 0))
        top_only = bool_or_default(only_top_cells, False)
        self._scheduler.cancel(self._timers.resume)
        self._timers.resume = None
        if resume_delay > 0:
            self._timers.resume = self._scheduler.schedule(
                resume_delay, self._run_resume, top_only
            )
        else:
            self._run_resume(top_only)

    def _run_resume(self, only_top_cells: bool) -> None:
        self._timers.resume = None
        self._cancel_pause_work()
        self._start()
        rescheduled = 0
        if not only_top_cells:
            for top_cell in self._grid.top_cells:
                # Fresh cumulative delay per column: undisplayed cells restart
                # their fall rhythm instead of keeping the time left at pause.
                cell_delay = 0
                for cell in top_cell.iter_from():
                    update = cell.update
                    if update.is_displayed or update.next_glyph is None:
                        continue
                    self._cascade.reschedule(cell, cell_delay)
                    cell_delay += update.progression or 0
                    rescheduled += 1
        logger.info(
            "Cascade resumed",
            extra={
                "event": "monitor_resumed",
                "only_top_cells": only_top_cells,
                "rescheduled_cells": rescheduled,
            },
        )

    def _stop(self, *, delay: Any = 0, clear_screen: Any = False) -> None:
        stop_delay = max(0, int_or_default(delay, 0))
        clear = bool_or_default(clear_screen, False)
        self._scheduler.cancel(self._timers.stop)
        self._timers.stop = None
        if stop_delay > 0:
            self._timers.stop = self._scheduler.schedule(
                stop_delay, self._run_stop, clear
            )
        else:
            self._run_stop(clear)

    def _run_stop(self, clear_screen: bool) -> None:
        self._timers.stop = None
        self._cancel_main_loop()
        self._cancel_draw()
        self._cancel_targets(self._grid.cells)
        if clear_screen:
            for top_cell in self._grid.top_cells:
                self._main_loop.schedule_droplet(
                    top_cell.column_index,
                    random_between(
                        self._random, CLEAR_DROPLET_MIN_DELAY, CLEAR_DROPLET_MAX_DELAY
                    ),
                    clear_screen=True,
                )
        logger.info(
            "Cascade stopped",
            extra={"event": "monitor_stopped", "clear_screen": clear_screen},
        )

    def _glitch(self, effect: GlitchEffect | str, options: dict[str, Any]) -> None:
        if isinstance(effect, str):
            resolved = BUILT_IN_GLITCHES.get(effect)
            if resolved is None:
                logger.warning("Unknown glitch effect %r; ignoring", effect)
                return
            effect = resolved
        context = GlitchContext(
            monitor=self,
            columns=tuple(self._grid.columns),
            cells=tuple(self._grid.cells),
            top_cells=tuple(self._grid.top_cells),
            config=self._config,
            update_cell=self._painter.paint,
            scheduler=self._scheduler,
            rng=self._random,
        )
        name = getattr(effect, "__name__", type(effect).__name__)
        logger.info("Glitch started", extra={"event": "glitch", "effect": name})
        try:
            effect(context, options)
        except Exception as exc:
            logger.exception("Glitch effect %s failed: %s", name, exc)

    def _draw(
        self,
        composed: ComposedImage,
        *,
        delay: Any = 1000,
        duration: Any = 30000,
        keep_on_not_affected_columns: Any = False,
    ) -> None:
        self._cancel_draw()
        draw_delay = max(0, int_or_default(delay, 1000))
        draw_duration = max(0, int_or_default(duration, 30000))
        self._timers.draw.append(
            self._scheduler.schedule(
                draw_delay,
                self._run_draw,
                composed,
                draw_delay,
                draw_duration,
                bool_or_default(keep_on_not_affected_columns, False),
            )
        )

    def _run_draw(
        self,
        composed: ComposedImage,
        draw_delay: int,
        draw_duration: int,
        keep_on_not_affected_columns: bool,
    ) -> None:
        self._timers.draw.clear()
        logger.info(
            "Drawing image",
            extra={
                "event": "monitor_draw",
                "width": composed.width,
                "height": composed.height,
                "duration_ms": draw_duration,
            },
        )
        self.pause(delay=0, only_top_cells=True)
        self.resume(delay=draw_delay + draw_duration)
        self._timers.draw.append(
            self._scheduler.schedule(
                DRAW_SETTLE_MS,
                partial(self._main_loop.run, char_table=composed.table),
            )
        )
        if not keep_on_not_affected_columns:
            return
        image_columns = set(composed.image_columns)
        ignored = [
            index
            for index in range(self._grid.column_count)
            if index not in image_columns
        ]
        self._timers.draw.append(
            self._scheduler.schedule(
                DRAW_SETTLE_MS, self._start_draw_refresh, composed, ignored
            )
        )
        self._timers.draw.append(
            self._scheduler.schedule(draw_duration, self._cancel_draw_refresh)
        )

    def _start_draw_refresh(self, composed: ComposedImage, ignored: list[int]) -> None:
        self._cancel_draw_refresh()
        self._timers.draw_refresh = self._scheduler.schedule_repeating(
            self._config.main_loop_interval,
            partial(
                self._main_loop.run,
                char_table=composed.table,
                ignore_columns=ignored,
            ),
        )

    def _cancel_draw_refresh(self) -> None:
        self._scheduler.cancel(self._timers.draw_refresh)
        self._timers.draw_refresh = None

    def _cancel_draw(self) -> None:
        self._cancel_handles(self._timers.draw)
        self._cancel_draw_refresh()

    def _cancel_main_loop(self) -> None:
        self._scheduler.cancel(self._timers.main_loop)
        self._timers.main_loop = None

    def _cancel_pause_work(self) -> None:
        self._scheduler.cancel(self._timers.pause)
        self._timers.pause = None
        self._cancel_handles(self._timers.pause_work)

    def _cancel_handles(self, handles: list[TaskHandle]) -> None:
        for handle in handles:
            self._scheduler.cancel(handle)
        handles.clear()

    def _cancel_cell_handle(self, cell: Cell, handle: TaskHandle) -> None:
        self._scheduler.cancel(handle)
        if cell.update.timer is handle:
            cell.update.timer = None

    def _cancel_cells(self, cells: Iterable[Cell]) -> None:
        for cell in cells:
            self._scheduler.cancel(cell.update.timer)
            cell.update.timer = None

    def _cancel_targets(self, cells: Iterable[Cell]) -> None:
        """Cancel cell updates, plus droplet starts pending on any top cell."""
        targets = list(cells)
        self._cancel_cells(targets)
        self._main_loop.cancel_starts(
            cell.column_index for cell in targets if cell.row_index == 0
        )

    def _cancel_everything(self) -> None:
        for handle in (
            self._timers.start,
            self._timers.resume,
            self._timers.stop,
        ):
            self._scheduler.cancel(handle)
        self._cancel_main_loop()
        self._cancel_pause_work()
        self._cancel_draw()
        self._cancel_cells(self._grid.cells)
        self._main_loop.cancel_starts()
        self._timers = _Timers()
