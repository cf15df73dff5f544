from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

_MASK = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


def derive_seed(base_seed: int, *parts: int) -> int:
    """Mix a base seed with integer parts into an independent 32-bit seed.

    Used to give every scheduled match its own stream, e.g.
    ``derive_seed(batch_seed, pairing_index, iteration)``.
    """
    h = base_seed & _MASK
    for part in parts:
        h ^= part & _MASK
        h = _imul(h ^ (h >> 16), 0x85EBCA6B)
        h = _imul(h ^ (h >> 13), 0xC2B2AE35)
        h ^= h >> 16
    return h


class RandomnessSource:
    """Seeded mulberry32 stream.

    Same seed and same call sequence give bit-identical outputs. One instance
    belongs to one match (or one deck-generation context) and is never reseeded.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed & _MASK
        self._state = self.seed
        self.calls = 0

    @classmethod
    def seeded(cls, seed: int) -> "RandomnessSource":
        return cls(seed)

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        self.calls += 1
        self._state = (self._state + 0x6D2B79F5) & _MASK
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
        return ((t ^ (t >> 14)) & _MASK) / 4294967296

    def shuffle(self, items: Sequence[T]) -> list[T]:
        """Return a Fisher-Yates shuffled copy of ``items``."""
        out = list(items)
        for i in range(len(out) - 1, 0, -1):
            j = int(self.random() * (i + 1))
            out[i], out[j] = out[j], out[i]
        return out

    def noise(self, magnitude: float) -> float:
        """Symmetric perturbation in [-magnitude, magnitude)."""
        return (self.random() - 0.5) * 2 * magnitude
