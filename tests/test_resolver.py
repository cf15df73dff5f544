from __future__ import annotations

from mandate.engine.ai import simulate_match
from mandate.engine.match import new_match
from mandate.engine.resolver import resolve_round
from mandate.engine.types import Card


def _gov(name: str, power: int) -> Card:
    return Card(name=name, kind="government", category="government", cost=power, power=power)


def _state_with_rows(power0: int, power1: int, passed: tuple[bool, bool] = (True, True)):
    deck = [_gov("Filler", 1)] * 10
    state = new_match(deck, deck, seed=11)
    state.seats[0].board.government = [_gov("P0", power0)]
    state.seats[1].board.government = [_gov("P1", power1)]
    state.seats[0].passed, state.seats[1].passed = passed
    return state


def test_strictly_greater_power_wins() -> None:
    state = _state_with_rows(7, 4)
    out = resolve_round(state)
    assert out.winning_seat == 0
    assert out.seat_powers == (7, 4)
    assert out.tie_break is None
    assert state.seats[0].round_wins == 1
    assert state.seats[1].round_wins == 0

    state = _state_with_rows(2, 9)
    assert resolve_round(state).winning_seat == 1
    assert state.seats[1].round_wins == 1


def test_tie_with_both_passed_goes_to_second_seat() -> None:
    state = _state_with_rows(5, 5, passed=(True, True))
    out = resolve_round(state)
    assert out.winning_seat == 1
    assert out.tie_break == "second_seat_default"


def test_tie_with_neither_passed_goes_to_second_seat() -> None:
    state = _state_with_rows(5, 5, passed=(False, False))
    out = resolve_round(state)
    assert out.winning_seat == 1
    assert out.tie_break == "second_seat_default"


def test_tie_favours_seat_that_kept_acting() -> None:
    state = _state_with_rows(5, 5, passed=(True, False))
    out = resolve_round(state)
    assert out.winning_seat == 1
    assert out.tie_break == "kept_acting"

    state = _state_with_rows(5, 5, passed=(False, True))
    out = resolve_round(state)
    assert out.winning_seat == 0
    assert out.tie_break == "kept_acting"
    assert state.seats[0].round_wins == 1


def test_mirror_of_equal_cards_is_won_by_second_seat() -> None:
    deck = [_gov("Same", 4)] * 10
    state = simulate_match(deck, deck, seed=12)

    assert state.result is not None
    assert state.result.winning_seat == 1
    assert state.result.round_wins == (0, 2)
    assert [o.seat_powers for o in state.round_history] == [(20, 20), (20, 20)]
    # The round winner opens the next round
    assert state.opening_seat == 1
