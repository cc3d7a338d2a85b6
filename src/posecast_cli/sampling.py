from __future__ import annotations

import random
from typing import Optional, Protocol, Sequence, TypeVar

T = TypeVar("T")

EXPRESSIONS: tuple[str, ...] = (
    "a neutral expression",
    "a slight smile",
    "a joyful grin",
    "a determined grit",
    "an angry scowl",
    "a surprised look",
    "a sad frown",
    "a thoughtful and pensive look",
    "a mischievous smirk",
    "a serene and calm expression",
)


class ChoiceSource(Protocol):
    def choice(self, seq: Sequence[T]) -> T: ...

    def sample(self, seq: Sequence[T], k: int) -> list[T]: ...


class RandomChoice:
    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def sample(self, seq: Sequence[T], k: int) -> list[T]:
        return self._rng.sample(list(seq), k)


class SequenceChoice:
    """Replays fixed picks by index, cycling when exhausted.

    Used to make sampled expressions and poses deterministic.
    """

    def __init__(self, indices: Sequence[int]):
        if not indices:
            raise ValueError("SequenceChoice needs at least one index")
        self._indices = list(indices)
        self._pos = 0

    def _next(self) -> int:
        i = self._indices[self._pos % len(self._indices)]
        self._pos += 1
        return i

    def choice(self, seq: Sequence[T]) -> T:
        return seq[self._next() % len(seq)]

    def sample(self, seq: Sequence[T], k: int) -> list[T]:
        pool = list(seq)
        if k > len(pool):
            raise ValueError(f"Sample larger than population ({k} > {len(pool)})")
        picked: list[T] = []
        for _ in range(k):
            picked.append(pool.pop(self._next() % len(pool)))
        return picked


def sample_expressions(source: ChoiceSource, n: int) -> list[str]:
    return [source.choice(EXPRESSIONS) for _ in range(n)]
