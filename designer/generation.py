"""
Request generations: a cheap "is this result still wanted" check for async work.
"""

from dataclasses import dataclass


class GenerationCounter:
    def __init__(self):
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def next(self) -> "GenerationToken":
        """Start a new generation; all earlier tokens become stale."""
        self._current += 1
        return GenerationToken(self, self._current)


@dataclass(frozen=True)
class GenerationToken:
    counter: GenerationCounter
    generation: int

    def is_current(self) -> bool:
        return self.counter.current == self.generation
