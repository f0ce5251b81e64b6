"""Renderer contract and built-in headless implementation."""

from .base import CellTransition, Renderer, TransitionPhase
from .memory import MemoryRenderer

__all__ = [
    "CellTransition",
    "MemoryRenderer",
    "Renderer",
    "TransitionPhase",
]
