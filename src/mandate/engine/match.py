from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Literal, Sequence

from .actions import Action, PassAction, PlayCardAction
from .resolver import RoundOutcome, resolve_round
from .rng import RandomnessSource
from .types import Card, Deck

logger = logging.getLogger(__name__)

Event = dict[str, object]
Phase = Literal["round_start", "turn_active", "round_resolving", "match_over"]
Zone = Literal["government", "public", "pending", "traps"]

SEATS = (0, 1)


class IllegalAction(ValueError):
    pass


@dataclass(frozen=True)
class MatchConfig:
    hand_size: int = 5
    action_points: int = 2
    play_cost: int = 1
    win_threshold: int = 2
    deck_size: int = 10


@dataclass
class BoardZone:
    government: list[Card] = field(default_factory=list)
    public: list[Card] = field(default_factory=list)
    pending: list[Card] = field(default_factory=list)

    def cards(self) -> list[Card]:
        return [*self.government, *self.public, *self.pending]

    def __len__(self) -> int:
        return len(self.government) + len(self.public) + len(self.pending)

    def government_power(self) -> int:
        return sum(c.power for c in self.government)

    def copy(self) -> "BoardZone":
        return BoardZone(
            government=list(self.government),
            public=list(self.public),
            pending=list(self.pending),
        )


@dataclass
class SeatState:
    deck: list[Card]
    hand: list[Card] = field(default_factory=list)
    board: BoardZone = field(default_factory=BoardZone)
    traps: list[Card] = field(default_factory=list)
    discard: list[Card] = field(default_factory=list)
    action_points: int = 0
    round_wins: int = 0
    passed: bool = False
    original: tuple[Card, ...] = ()

    def all_cards(self) -> list[Card]:
        return [*self.deck, *self.hand, *self.board.cards(), *self.traps, *self.discard]

    def copy(self) -> "SeatState":
        # Cards are immutable, so copying the containers is a full clone.
        return SeatState(
            deck=list(self.deck),
            hand=list(self.hand),
            board=self.board.copy(),
            traps=list(self.traps),
            discard=list(self.discard),
            action_points=self.action_points,
            round_wins=self.round_wins,
            passed=self.passed,
            original=self.original,
        )


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None


@dataclass(frozen=True)
class MatchResult:
    winning_seat: int
    round_wins: tuple[int, int]
    rounds_played: int
    final_power: tuple[int, int]


@dataclass
class MatchState:
    config: MatchConfig
    seed: int
    rng: RandomnessSource
    seats: list[SeatState]
    phase: Phase = "round_start"
    round_number: int = 0
    active_seat: int = 0
    opening_seat: int = 0
    winner: int | None = None
    result: MatchResult | None = None
    round_history: list[RoundOutcome] = field(default_factory=list)
    action_log: list[Action] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)

    def opponent(self, seat: int) -> int:
        return 1 - seat

    def government_power(self, seat: int) -> int:
        return self.seats[seat].board.government_power()

    def both_passed(self) -> bool:
        return all(s.passed for s in self.seats)


def clone_state(state: MatchState) -> MatchState:
    """Disposable copy for look-ahead.

    Logs start empty and the RandomnessSource is shared, so callers must not
    draw from ``rng`` on a clone.
    """
    return MatchState(
        config=state.config,
        seed=state.seed,
        rng=state.rng,
        seats=[s.copy() for s in state.seats],
        phase=state.phase,
        round_number=state.round_number,
        active_seat=state.active_seat,
        opening_seat=state.opening_seat,
        winner=state.winner,
        result=state.result,
        round_history=list(state.round_history),
    )


def zone_for(card: Card) -> Zone:
    if card.is_government:
        return "government"
    if card.category == "intervention":
        return "traps"
    if card.category == "instant_initiative":
        return "pending"
    return "public"


def legal_hand_indices(state: MatchState, seat: int) -> list[int]:
    ss = state.seats[seat]
    if state.phase != "turn_active" or state.active_seat != seat or ss.passed:
        return []
    if ss.action_points < state.config.play_cost:
        return []
    return list(range(len(ss.hand)))


def apply_play(state: MatchState, seat: int, hand_index: int) -> Card:
    """Move a hand card to its zone and debit action points.

    No turn or round transition happens here; ``step`` layers those on top.
    Raises IllegalAction when the play is not affordable or the index is bad.
    """
    ss = state.seats[seat]
    if hand_index < 0 or hand_index >= len(ss.hand):
        raise IllegalAction("Card not in hand.")
    cost = state.config.play_cost
    if cost > ss.action_points:
        raise IllegalAction("Not enough action points.")

    card = ss.hand.pop(hand_index)
    zone = zone_for(card)
    if zone == "traps":
        ss.traps.append(card)
    else:
        getattr(ss.board, zone).append(card)
    ss.action_points -= cost
    return card


def _draw_up_to_limit(state: MatchState, seat: int) -> None:
    ss = state.seats[seat]
    while ss.deck and len(ss.hand) < state.config.hand_size:
        card = ss.deck.pop(0)
        ss.hand.append(card)
        state.event_log.append({"type": "CARD_DRAWN", "seat": seat, "card": card.name})


def _start_turn(state: MatchState, seat: int) -> None:
    state.phase = "turn_active"
    state.active_seat = seat
    state.seats[seat].action_points = state.config.action_points
    state.event_log.append(
        {"type": "TURN_STARTED", "seat": seat, "action_points": state.config.action_points}
    )


def _start_round(state: MatchState) -> None:
    state.phase = "round_start"
    state.round_number += 1
    for seat in SEATS:
        ss = state.seats[seat]
        ss.discard.extend(ss.board.cards())
        ss.board = BoardZone()
        ss.passed = False
        _draw_up_to_limit(state, seat)
    state.event_log.append(
        {"type": "ROUND_STARTED", "round": state.round_number, "opening_seat": state.opening_seat}
    )
    _start_turn(state, state.opening_seat)


def _resolve(state: MatchState) -> None:
    state.phase = "round_resolving"
    outcome = resolve_round(state)
    state.round_history.append(outcome)
    state.event_log.append(
        {
            "type": "ROUND_RESOLVED",
            "round": outcome.round_number,
            "winner": outcome.winning_seat,
            "powers": list(outcome.seat_powers),
            "tie_break": outcome.tie_break,
        }
    )

    if state.seats[outcome.winning_seat].round_wins >= state.config.win_threshold:
        state.phase = "match_over"
        state.winner = outcome.winning_seat
        state.result = MatchResult(
            winning_seat=outcome.winning_seat,
            round_wins=(state.seats[0].round_wins, state.seats[1].round_wins),
            rounds_played=len(state.round_history),
            final_power=outcome.seat_powers,
        )
        state.event_log.append({"type": "MATCH_ENDED", "winner": state.winner})
        return

    # Round winner opens the next round
    state.opening_seat = outcome.winning_seat
    _start_round(state)


def _end_turn(state: MatchState, seat: int) -> None:
    state.event_log.append({"type": "TURN_ENDED", "seat": seat})
    if state.both_passed():
        _resolve(state)
        return
    other = state.opponent(seat)
    _start_turn(state, seat if state.seats[other].passed else other)


def _check_turn(state: MatchState, seat: int) -> str | None:
    if state.phase != "turn_active":
        return "No turn in progress."
    if seat != state.active_seat:
        return "Not your turn."
    if state.seats[seat].passed:
        return "Seat already passed."
    return None


def _play_card(state: MatchState, action: PlayCardAction) -> StepResult:
    error = _check_turn(state, action.seat)
    card: Card | None = None
    if error is None:
        try:
            card = apply_play(state, action.seat, action.hand_index)
        except IllegalAction as e:
            error = str(e)
    if error is not None or card is None:
        logger.warning("Rejected play by seat %d (hand index %d): %s", action.seat, action.hand_index, error)
        return StepResult(ok=False, events=[], error=error)

    mark = len(state.event_log)
    ss = state.seats[action.seat]
    state.event_log.append(
        {
            "type": "CARD_PLAYED",
            "seat": action.seat,
            "card": card.name,
            "zone": zone_for(card),
            "action_points": ss.action_points,
        }
    )
    if ss.action_points < state.config.play_cost:
        _end_turn(state, action.seat)
    return StepResult(ok=True, events=state.event_log[mark:])


def _pass(state: MatchState, action: PassAction) -> StepResult:
    error = _check_turn(state, action.seat)
    if error is not None:
        logger.warning("Rejected pass by seat %d: %s", action.seat, error)
        return StepResult(ok=False, events=[], error=error)

    mark = len(state.event_log)
    state.seats[action.seat].passed = True
    state.event_log.append({"type": "PASSED", "seat": action.seat})
    _end_turn(state, action.seat)
    return StepResult(ok=True, events=state.event_log[mark:])


def step(state: MatchState, action: Action) -> StepResult:
    """Apply a single action to the match state.

    This mutates ``state`` in place. A rejected action leaves the state as it
    was, action log included; the result carries the reason.
    """
    if state.winner is not None:
        return StepResult(ok=False, events=[], error="Match already ended.")

    if isinstance(action, PlayCardAction):
        res = _play_card(state, action)
    elif isinstance(action, PassAction):
        res = _pass(state, action)
    else:
        return StepResult(ok=False, events=[], error="Unknown action.")

    # Only accepted actions are replayable
    if res.ok:
        state.action_log.append(action)
    return res


def _deck_cards(deck: Deck | Sequence[Card]) -> list[Card]:
    if isinstance(deck, Deck):
        return list(deck.cards)
    return list(deck)


def new_match(
    deck0: Deck | Sequence[Card],
    deck1: Deck | Sequence[Card],
    seed: int,
    config: MatchConfig | None = None,
) -> MatchState:
    cfg = config or MatchConfig()
    cards0 = _deck_cards(deck0)
    cards1 = _deck_cards(deck1)
    if not cards0 or not cards1:
        raise ValueError("Decks must contain at least one card.")

    rng = RandomnessSource(seed)
    seats = [
        SeatState(deck=rng.shuffle(cards0), original=tuple(cards0)),
        SeatState(deck=rng.shuffle(cards1), original=tuple(cards1)),
    ]
    state = MatchState(config=cfg, seed=seed, rng=rng, seats=seats)
    _start_round(state)
    return state


def replay(
    deck0: Deck | Sequence[Card],
    deck1: Deck | Sequence[Card],
    seed: int,
    actions: Iterable[Action],
    config: MatchConfig | None = None,
) -> MatchState:
    state = new_match(deck0, deck1, seed=seed, config=config)
    for a in actions:
        step(state, a)
        if state.winner is not None:
            break
    return state


def check_invariants(state: MatchState) -> list[str]:
    """Return human-readable violations of the match invariants."""
    errors: list[str] = []
    cfg = state.config
    for seat, ss in enumerate(state.seats):
        if ss.action_points < 0:
            errors.append(f"Seat {seat}: negative action points")
        if len(ss.hand) > cfg.hand_size:
            errors.append(f"Seat {seat}: hand size exceeds maximum ({cfg.hand_size})")
        if ss.round_wins > cfg.win_threshold:
            errors.append(f"Seat {seat}: round wins exceed threshold ({cfg.win_threshold})")
        if Counter(ss.all_cards()) != Counter(ss.original):
            errors.append(f"Seat {seat}: card conservation violated")
    return errors
