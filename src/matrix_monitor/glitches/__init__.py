"""Glitch effect plugins."""

from .base import GlitchContext, GlitchEffect
from .flicker import flicker
from .stuck import stuck

BUILT_IN_GLITCHES: dict[str, GlitchEffect] = {
    "flicker": flicker,
    "stuck": stuck,
}

__all__ = [
    "BUILT_IN_GLITCHES",
    "GlitchContext",
    "GlitchEffect",
    "flicker",
    "stuck",
]
