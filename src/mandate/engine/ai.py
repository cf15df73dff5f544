from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal, Sequence

from .actions import Action, PassAction, PlayCardAction
from .match import (
    MatchConfig,
    MatchState,
    apply_play,
    clone_state,
    legal_hand_indices,
    new_match,
    step,
)
from .types import Card, Deck, Trigger

logger = logging.getLogger(__name__)

Difficulty = Literal["easy", "medium", "hard"]
DIFFICULTIES: tuple[Difficulty, ...] = ("easy", "medium", "hard")


@dataclass(frozen=True)
class EvaluatorWeights:
    government_power_factor: float = 2.0
    row_target: int = 3
    row_pressure_step: float = 10.0
    catch_up_margin: int = 5
    catch_up_factor: float = 1.5
    intervention_score: float = 55.0
    counter_bonus: float = 30.0
    permanent_score: float = 50.0
    public_score: float = 40.0
    instant_score: float = 35.0
    medium_noise: float = 5.0
    hard_bonus: float = 12.0
    rollout_candidates: int = 4
    rollout_trials: int = 6
    crowded_government: int = 2
    crowded_public: int = 3


@dataclass(frozen=True)
class AISpec:
    """Evaluator tuning.

    difficulty:
      easy   = plain heuristic ranking
      medium = heuristic plus symmetric noise (imperfect play)
      hard   = flat bonus plus rollout refinement of the top candidates
    """

    difficulty: Difficulty = "easy"
    weights: EvaluatorWeights = field(default_factory=EvaluatorWeights)


@dataclass(frozen=True)
class Candidate:
    hand_index: int
    card: Card
    score: float


def trigger_observed(state: MatchState, seat: int, trigger: Trigger | None, weights: EvaluatorWeights) -> bool:
    if trigger is None:
        return False
    opp = state.opponent(seat)
    board = state.seats[opp].board
    tags = {c.tag for c in board.public if c.tag}
    if trigger == "media":
        return "Media" in tags
    if trigger == "ngo":
        return "NGO" in tags
    if trigger == "platform":
        return "Platform" in tags
    if trigger == "government_card":
        return bool(board.government)
    if trigger == "crowded_government":
        return len(board.government) >= weights.crowded_government
    if trigger == "public_card":
        return bool(board.public)
    if trigger == "crowded_public":
        return len(board.public) >= weights.crowded_public
    if trigger == "initiative":
        return bool(board.pending) or any(c.category == "permanent_initiative" for c in board.public)
    if trigger == "intervention":
        return bool(state.seats[opp].traps)
    if trigger == "stronger_opponent":
        return state.government_power(opp) > state.government_power(seat)
    return False


def score_card(state: MatchState, seat: int, card: Card, weights: EvaluatorWeights) -> float:
    if card.is_government:
        own_row = len(state.seats[seat].board.government)
        score = card.power * weights.government_power_factor
        score += max(0, weights.row_target - own_row) * weights.row_pressure_step
        # Catch-up incentive when the opponent's government row pulls ahead
        gap = state.government_power(state.opponent(seat)) - state.government_power(seat)
        if gap > weights.catch_up_margin:
            score += card.power * weights.catch_up_factor
        return score

    if card.category == "intervention":
        score = weights.intervention_score
        if trigger_observed(state, seat, card.trigger, weights):
            score += weights.counter_bonus
        return score
    if card.category == "permanent_initiative":
        return weights.permanent_score
    if card.category == "public":
        return weights.public_score
    return weights.instant_score


def score_candidates(state: MatchState, seat: int, spec: AISpec) -> list[Candidate]:
    """Score every affordable hand card, best first.

    Ties keep hand order. Medium difficulty draws noise from ``state.rng`` in
    hand order, so the ranking stays reproducible for a given seed.
    """
    w = spec.weights
    hand = state.seats[seat].hand
    candidates: list[Candidate] = []
    for idx in legal_hand_indices(state, seat):
        card = hand[idx]
        score = score_card(state, seat, card, w)
        if spec.difficulty == "medium":
            score += state.rng.noise(w.medium_noise)
        elif spec.difficulty == "hard":
            score += w.hard_bonus
        candidates.append(Candidate(hand_index=idx, card=card, score=score))
    return sorted(candidates, key=lambda c: -c.score)


def rollout_value(state: MatchState, seat: int, candidate: Candidate, trials: int) -> float:
    """Average government power differential after playing ``candidate``.

    Every trial works on its own clone; the live state is never touched.
    """
    if trials <= 0:
        return 0.0
    opp = state.opponent(seat)
    total = 0
    for _ in range(trials):
        sim = clone_state(state)
        apply_play(sim, seat, candidate.hand_index)
        total += sim.government_power(seat) - sim.government_power(opp)
    return total / trials


def _refine(state: MatchState, seat: int, ranked: Sequence[Candidate], w: EvaluatorWeights) -> Candidate:
    best = ranked[0]
    best_score = float("-inf")
    for cand in ranked[: w.rollout_candidates]:
        combined = cand.score + rollout_value(state, seat, cand, w.rollout_trials)
        if combined > best_score:
            best_score = combined
            best = cand
    return best


def evaluate(state: MatchState, seat: int, spec: AISpec | None = None) -> Action:
    spec = spec or AISpec()
    ranked = score_candidates(state, seat, spec)
    if not ranked:
        return PassAction(seat=seat)
    choice = ranked[0]
    if spec.difficulty == "hard":
        choice = _refine(state, seat, ranked, spec.weights)
    return PlayCardAction(seat=seat, hand_index=choice.hand_index)


def ai_take_turn(
    state: MatchState,
    seat: int,
    spec: AISpec | None = None,
    on_step: Callable[[MatchState], None] | None = None,
) -> None:
    """Advance the match through one turn of ``seat``.

    ``on_step`` is called with the state after every accepted action.
    """
    spec = spec or AISpec()
    while state.winner is None and state.phase == "turn_active" and state.active_seat == seat:
        action = evaluate(state, seat, spec)
        res = step(state, action)
        if not res.ok:
            logger.warning("Seat %d proposed an illegal action (%s); passing instead", seat, res.error)
            res = step(state, PassAction(seat=seat))
            if not res.ok:
                raise RuntimeError(f"Seat {seat} cannot pass: {res.error}")
        if on_step is not None:
            on_step(state)


def simulate_match(
    deck0: Deck | Sequence[Card],
    deck1: Deck | Sequence[Card],
    seed: int,
    specs: tuple[AISpec, AISpec] | None = None,
    config: MatchConfig | None = None,
) -> MatchState:
    """Play one automated match to completion and return the final state."""
    specs = specs or (AISpec(), AISpec())
    state = new_match(deck0, deck1, seed=seed, config=config)
    while state.winner is None:
        ai_take_turn(state, state.active_seat, specs[state.active_seat])
    return state
