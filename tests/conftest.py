"""Test configuration."""

from __future__ import annotations

import asyncio
import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from matrix_monitor.config import MonitorConfig  # noqa: E402
from matrix_monitor.monitor import MatrixMonitor  # noqa: E402
from matrix_monitor.renderers.memory import MemoryRenderer  # noqa: E402
from matrix_monitor.scheduling import VirtualScheduler  # noqa: E402

TARGET_ID = "rain"

# Small, fast settings so whole cascades fit in a few virtual seconds.
FAST_CONFIG = MonitorConfig(
    alphabet="ABCDEF",
    initial_delay=0,
    main_loop_interval=5000,
    min_char_start_delay=100,
    max_char_start_delay=400,
    min_char_progression=50,
    max_char_progression=100,
)


@pytest.fixture(autouse=True)
def ensure_current_event_loop():
    """Provide a current event loop for sync tests (required on Python 3.9)."""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        yield
    finally:
        loop.close()
        asyncio.set_event_loop(None)


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def renderer() -> MemoryRenderer:
    """Renderer with a 10x4 surface: 5 columns (spacing 1) by 4 rows."""
    return MemoryRenderer(surfaces={TARGET_ID: (10, 4)})


@pytest.fixture
def make_monitor(scheduler: VirtualScheduler, renderer: MemoryRenderer):
    """Factory for monitors wired to the virtual scheduler and memory renderer."""

    def factory(config: MonitorConfig | None = None, seed: int = 7) -> MatrixMonitor:
        return MatrixMonitor(
            TARGET_ID,
            renderer,
            config=config or FAST_CONFIG,
            scheduler=scheduler,
            rng=random.Random(seed),
        )

    return factory
