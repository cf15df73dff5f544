from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .match import MatchState

TieBreak = Literal["kept_acting", "second_seat_default"]


@dataclass(frozen=True)
class RoundOutcome:
    round_number: int
    winning_seat: int
    seat_powers: tuple[int, int]
    tie_break: TieBreak | None = None


def resolve_round(state: MatchState) -> RoundOutcome:
    """Award the finished round and bump the winner's round-win counter.

    Strictly greater government-row power wins. On an exact tie the seat that
    had not passed wins if exactly one seat passed; every other tie goes to
    seat 1. Since a round normally ends with both seats passed, the seat-1
    default decides almost all ties.
    """
    p0 = state.government_power(0)
    p1 = state.government_power(1)
    tie_break: TieBreak | None = None
    if p0 > p1:
        winner = 0
    elif p1 > p0:
        winner = 1
    else:
        passed0 = state.seats[0].passed
        passed1 = state.seats[1].passed
        if passed0 != passed1:
            winner = 1 if passed0 else 0
            tie_break = "kept_acting"
        else:
            winner = 1
            tie_break = "second_seat_default"

    state.seats[winner].round_wins += 1
    return RoundOutcome(
        round_number=state.round_number,
        winning_seat=winner,
        seat_powers=(p0, p1),
        tie_break=tie_break,
    )
