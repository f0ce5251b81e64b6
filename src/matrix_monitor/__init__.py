"""matrix-monitor package."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .compositor import ImageFormatError
from .config import MonitorConfig
from .grid import SurfaceNotFoundError
from .monitor import MatrixMonitor

__all__ = [
    "ImageFormatError",
    "MatrixMonitor",
    "MonitorConfig",
    "SurfaceNotFoundError",
    "__version__",
]

try:
    __version__ = version("matrix-monitor")
except PackageNotFoundError:  # pragma: no cover - fallback for editable installs
    __version__ = "0.0.0"
