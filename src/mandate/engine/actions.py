from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PlayCardAction:
    seat: int
    hand_index: int


@dataclass(frozen=True)
class PassAction:
    seat: int


Action = PlayCardAction | PassAction
