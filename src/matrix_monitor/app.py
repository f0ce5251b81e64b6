"""Textual TUI app hosting one monitor over a full-screen `MatrixView`."""

from __future__ import annotations

import argparse
import logging
import random
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.widgets import Footer

from . import __version__
from .config import MonitorConfig, config_from, load_config_with_notice, merge_config
from .grid import SurfaceNotFoundError
from .images import SKULL, load_image
from .logging_utils import setup_logging
from .monitor import MatrixMonitor
from .paths import config_path, log_dir
from .runtime_config import THEMES, resolve_log_level, theme_overrides
from .scheduling import Scheduler
from .ui.matrix_view import MatrixView, TextualRenderer
from .ui.modals.error import ErrorModal

logger = logging.getLogger(__name__)
DEFAULT_TARGET_ID = "rain"
DRAW_DURATION_MS = 15000


class MatrixMonitorApp(App):
    TITLE = "matrix-monitor"
    CSS = """
    Screen {
        layout: vertical;
        background: #000000;
    }

    #rain {
        height: 1fr;
    }

    ModalScreen {
        align: center middle;
    }

    #modal-body {
        padding: 1 2;
        border: solid white;
        width: 60%;
        height: auto;
    }

    #modal-title {
        text-style: bold;
    }
    """
    BINDINGS = [
        ("space", "start", "Start"),
        ("p", "pause", "Pause"),
        ("r", "resume", "Resume"),
        ("x", "stop", "Stop"),
        ("c", "clear", "Clear"),
        ("d", "draw", "Draw"),
        ("g", "glitch('flicker')", "Flicker"),
        ("t", "glitch('stuck')", "Stuck"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        *,
        config: MonitorConfig | Mapping[str, Any] | None = None,
        image: str | None = None,
        duration: int | None = None,
        seed: int | None = None,
        target_id: str = DEFAULT_TARGET_ID,
        scheduler: Scheduler | None = None,
        auto_start: bool = True,
    ) -> None:
        super().__init__()
        self.config = config_from(config)
        self.image = image if image is not None else SKULL
        self.startup_failed = False
        self.renderer = TextualRenderer(self)
        self.monitor = MatrixMonitor(
            target_id,
            self.renderer,
            config=self.config,
            scheduler=scheduler,
            rng=random.Random(seed) if seed is not None else None,
        )
        if auto_start:
            # Queued until the view has a size and the grid is built.
            self.monitor.start(duration=duration)

    def compose(self) -> ComposeResult:
        yield MatrixView(
            id=DEFAULT_TARGET_ID,
            background_color=self.config.background_color,
            bold=self.config.bold,
        )
        yield Footer()

    def on_matrix_view_ready(self, message: MatrixView.Ready) -> None:
        del message
        self._initialize_monitor()

    def _initialize_monitor(self) -> None:
        try:
            self.monitor.initialize()
        except SurfaceNotFoundError as exc:
            logger.exception("Failed to initialize monitor: %s", exc)
            self.startup_failed = True
            self.push_screen(
                ErrorModal(
                    f"{exc}.\n"
                    "Likely cause: the render target id does not match any view.\n"
                    "Next step: check the target id and restart."
                ),
                self._exit_after_error,
            )

    def _exit_after_error(self, result: bool | None) -> None:
        del result
        self.exit(return_code=1)

    def on_unmount(self) -> None:
        self.monitor.shutdown()

    def action_start(self) -> None:
        self.monitor.start(delay=0)

    def action_pause(self) -> None:
        self.monitor.pause()

    def action_resume(self) -> None:
        self.monitor.resume()

    def action_stop(self) -> None:
        self.monitor.stop()

    def action_clear(self) -> None:
        self.monitor.stop(clear_screen=True)

    def action_draw(self) -> None:
        margins = centered_margins(
            self.image,
            columns=self.monitor.grid.column_count,
            rows=self.monitor.grid.row_count,
        )
        self.monitor.draw(
            self.image,
            delay=0,
            duration=DRAW_DURATION_MS,
            margins=margins,
            keep_on_not_affected_columns=True,
        )

    def action_glitch(self, name: str) -> None:
        self.monitor.glitch(name)


def centered_margins(
    image: str, *, columns: int, rows: int, padding: int = 1
) -> tuple[int, int, int, int]:
    """Margins (top, right, bottom, left) that center a text image on the grid."""
    lines = image.split("\n")
    width = max((len(line) for line in lines), default=0)
    top = max(0, (rows - len(lines)) // 2 - padding)
    left = max(0, (columns - width) // 2 - padding)
    return (top, 0, 0, left)


def build_config(
    *,
    config_file: Path | None,
    theme: str | None,
    alphabet: str | None,
) -> tuple[MonitorConfig, str | None]:
    """Merge file config, theme colors and flag overrides in that order."""
    config, notice = load_config_with_notice(config_file or config_path())
    overrides: dict[str, Any] = {}
    if theme is not None:
        overrides.update(theme_overrides(theme))
    if alphabet:
        overrides["alphabet"] = alphabet
    return merge_config(config, overrides), notice


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="matrix-monitor", description="Cascading glyph rain for the terminal."
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument("--config", help="JSON configuration file path")
    parser.add_argument("--theme", choices=THEMES, help="Color theme.")
    parser.add_argument("--alphabet", help="Glyphs to sample from.")
    parser.add_argument(
        "--duration",
        type=int,
        help="Stop the rain after this many milliseconds.",
    )
    parser.add_argument(
        "--image",
        help="Image drawn with 'd': built-in name (skull, alien) or text file.",
    )
    parser.add_argument("--seed", type=int, help="Seed for reproducible rain.")
    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    try:
        level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
        setup_logging(
            log_dir=log_dir(),
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
            console=False,
        )
        logging.getLogger(__name__).info("Starting matrix-monitor")
        config, notice = build_config(
            config_file=Path(args.config) if args.config else None,
            theme=args.theme,
            alphabet=args.alphabet,
        )
        if notice:
            print(notice, file=sys.stderr)
        image = load_image(args.image) if args.image else None
        app = MatrixMonitorApp(
            config=config,
            image=image,
            duration=args.duration,
            seed=args.seed,
        )
        app.run()
        return 1 if app.startup_failed else 0
    except Exception as exc:  # pragma: no cover - top-level safety net
        logging.getLogger(__name__).exception("Fatal startup error: %s", exc)
        print(
            "Startup failed. Verify config/image/log paths and re-run with --verbose.",
            file=sys.stderr,
        )
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
