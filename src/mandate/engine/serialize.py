from __future__ import annotations

from .actions import Action, PassAction, PlayCardAction
from .match import MatchResult, MatchState, SeatState
from .resolver import RoundOutcome
from .types import Card


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, PlayCardAction):
        return {"type": "play", "seat": a.seat, "hand_index": a.hand_index}
    if isinstance(a, PassAction):
        return {"type": "pass", "seat": a.seat}
    # should be unreachable
    return {"type": "unknown"}


def _names(cards: list[Card]) -> list[str]:
    return [c.name for c in cards]


def _seat_to_dict(s: SeatState) -> dict[str, object]:
    return {
        "deck": _names(s.deck),
        "hand": _names(s.hand),
        "board": {
            "government": _names(s.board.government),
            "public": _names(s.board.public),
            "pending": _names(s.board.pending),
        },
        "traps": _names(s.traps),
        "discard": _names(s.discard),
        "action_points": s.action_points,
        "round_wins": s.round_wins,
        "passed": s.passed,
    }


def outcome_to_dict(o: RoundOutcome) -> dict[str, object]:
    return {
        "round": o.round_number,
        "winner": o.winning_seat,
        "powers": list(o.seat_powers),
        "tie_break": o.tie_break,
    }


def result_to_dict(r: MatchResult) -> dict[str, object]:
    return {
        "winning_seat": r.winning_seat,
        "round_wins": list(r.round_wins),
        "rounds_played": r.rounds_played,
        "final_power": list(r.final_power),
    }


def snapshot(state: MatchState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current match state."""
    return {
        "seed": state.seed,
        "phase": state.phase,
        "round": state.round_number,
        "active_seat": state.active_seat,
        "winner": state.winner,
        "seats": [_seat_to_dict(s) for s in state.seats],
        "rounds": [outcome_to_dict(o) for o in state.round_history],
        "action_log": [action_to_dict(a) for a in state.action_log],
    }
