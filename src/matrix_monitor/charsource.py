"""Random glyph source with a cheap anti-repeat rule."""

from __future__ import annotations

import random
from collections.abc import Callable

from .config import MonitorConfig


def random_between(rng: random.Random, low: int, high: int) -> int:
    """Return an integer in ``[low, high)``, or ``low`` when the range is empty."""
    if high <= low:
        return low
    return rng.randrange(low, high)


class CharacterSource:
    """Samples glyphs from the live configured alphabet."""

    def __init__(
        self,
        config_provider: Callable[[], MonitorConfig],
        rng: random.Random | None = None,
    ) -> None:
        self._config_provider = config_provider
        self._random = rng or random.Random()

    def sample(self, exclude: str | None = None) -> str:
        """Pick a glyph uniformly by index, avoiding a non-empty `exclude`.

        A hit on `exclude` is replaced by the first alphabet glyph that
        differs from it instead of being resampled, so the result is biased
        toward the head of the alphabet. That approximation is accepted.
        """
        alphabet = self._config_provider().alphabet
        if not alphabet:
            return ""
        glyph = alphabet[self._random.randrange(len(alphabet))]
        if exclude and glyph == exclude:
            for candidate in alphabet:
                if candidate != exclude:
                    return candidate
        return glyph
