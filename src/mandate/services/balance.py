"""Batch self-play and balance aggregation.

``BatchRunner.run_batch`` plays every ordered pairing of distinct decks for a
fixed number of iterations. Each match gets its own seed, derived from the
batch seed plus pairing and iteration index, and its own MatchState, so a
match can run in any worker process and still produce the same record.

Aggregates are updated after every finished match. Interrupting a batch
leaves ``BatchRunner.report`` consistent up to the last completed match.
"""

from __future__ import annotations

import logging
import math
import multiprocessing
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterator, Literal, Sequence

from mandate.engine.ai import AISpec, Difficulty, EvaluatorWeights, ai_take_turn
from mandate.engine.match import MatchConfig, MatchState, check_invariants, new_match
from mandate.engine.rng import derive_seed
from mandate.engine.types import Deck
from mandate.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)

Classification = Literal["overpowered", "balanced", "underpowered"]
CostLabel = Literal["undercosted", "balanced", "overcosted"]

OVERPOWERED_ABOVE = 0.6
UNDERPOWERED_BELOW = 0.4
CARD_MIN_APPEARANCES = 10
LOW_VALIDATION_SCORE = 80
DEFAULT_BASE_SEED = 123456

# Hard stop for a single match; the state machine always terminates well below this
_MAX_TURNS = 500


def classify(win_rate: float) -> Classification:
    if win_rate > OVERPOWERED_ABOVE:
        return "overpowered"
    if win_rate < UNDERPOWERED_BELOW:
        return "underpowered"
    return "balanced"


def classify_card(win_rate: float) -> CostLabel:
    if win_rate > OVERPOWERED_ABOVE:
        return "undercosted"
    if win_rate < UNDERPOWERED_BELOW:
        return "overcosted"
    return "balanced"


def validation_score(error_count: int) -> int:
    return max(0, 100 - min(error_count * 5, 50))


@dataclass
class BalanceMetric:
    deck_name: str
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    average_round_count: float = 0.0
    average_influence: float = 0.0
    validation_errors: int = 0
    validation_score: int = 100
    classification: Classification = "balanced"

    def record(self, won: bool, rounds: int, influence: int, errors: int = 0) -> None:
        self.games_played += 1
        n = self.games_played
        if won:
            self.wins += 1
        else:
            self.losses += 1
        self.win_rate = self.wins / n
        self.average_round_count = (self.average_round_count * (n - 1) + rounds) / n
        self.average_influence = (self.average_influence * (n - 1) + influence) / n
        self.validation_errors += errors
        self.validation_score = validation_score(self.validation_errors)
        self.classification = classify(self.win_rate)


@dataclass
class CardBalance:
    card_name: str
    cost: int
    appearances: int = 0
    wins: int = 0
    win_rate: float = 0.0
    average_influence: float = 0.0
    performance: CostLabel = "balanced"

    def record(self, won: bool, influence: int) -> None:
        self.appearances += 1
        n = self.appearances
        if won:
            self.wins += 1
        self.win_rate = self.wins / n
        self.average_influence = (self.average_influence * (n - 1) + influence) / n
        self.performance = classify_card(self.win_rate)


@dataclass(frozen=True)
class DifficultyConfig:
    seat0: Difficulty = "easy"
    seat1: Difficulty = "easy"

    @classmethod
    def both(cls, difficulty: Difficulty) -> "DifficultyConfig":
        return cls(seat0=difficulty, seat1=difficulty)

    def specs(self, weights: EvaluatorWeights | None = None) -> tuple[AISpec, AISpec]:
        w = weights or EvaluatorWeights()
        return AISpec(difficulty=self.seat0, weights=w), AISpec(difficulty=self.seat1, weights=w)


@dataclass(frozen=True)
class BatchConfig:
    iterations: int = 100
    base_seed: int = DEFAULT_BASE_SEED
    difficulty: DifficultyConfig = field(default_factory=DifficultyConfig)
    workers: int = 1
    progress_every: int = 10
    match: MatchConfig = field(default_factory=MatchConfig)
    weights: EvaluatorWeights = field(default_factory=EvaluatorWeights)


@dataclass(frozen=True)
class MatchRecord:
    deck0: str
    deck1: str
    seed: int
    pairing: int
    iteration: int
    winning_seat: int
    round_wins: tuple[int, int]
    rounds: int
    final_power: tuple[int, int]
    validation_errors: tuple[str, ...] = ()

    @property
    def winner(self) -> str:
        return self.deck0 if self.winning_seat == 0 else self.deck1


class MatchSimulationFailure(RuntimeError):
    def __init__(self, deck0: str, deck1: str, seed: int, reason: str) -> None:
        super().__init__(f"{deck0} vs {deck1} (seed {seed}): {reason}")
        self.deck0 = deck0
        self.deck1 = deck1
        self.seed = seed
        self.reason = reason


@dataclass(frozen=True)
class MatchJob:
    pairing: int
    iteration: int
    seed: int
    deck0: Deck
    deck1: Deck
    specs: tuple[AISpec, AISpec]
    config: MatchConfig


def run_match(
    deck0: Deck,
    deck1: Deck,
    seed: int,
    *,
    specs: tuple[AISpec, AISpec] | None = None,
    config: MatchConfig | None = None,
    pairing: int = 0,
    iteration: int = 0,
) -> MatchRecord:
    """Play one automated match and summarize it.

    Invariants are checked on the opening state and after every accepted
    action. Each distinct violation is recorded once, labelled with the round
    and action count where it first appeared.

    Any exception raised while simulating is re-raised as
    ``MatchSimulationFailure`` carrying the pairing and seed.
    """
    specs = specs or (AISpec(), AISpec())
    violations: dict[str, str] = {}

    def validate(s: MatchState) -> None:
        for e in check_invariants(s):
            violations.setdefault(e, f"Round {s.round_number} action {len(s.action_log)}: {e}")

    try:
        state = new_match(deck0, deck1, seed=seed, config=config)
        validate(state)
        turns = 0
        while state.winner is None:
            turns += 1
            if turns > _MAX_TURNS:
                raise RuntimeError(f"no winner after {_MAX_TURNS} turns")
            ai_take_turn(state, state.active_seat, specs[state.active_seat], on_step=validate)
        errors = list(violations.values())
        result = state.result
        if result is None:
            raise RuntimeError("match ended without a result")
    except Exception as e:
        raise MatchSimulationFailure(deck0.name, deck1.name, seed, f"{type(e).__name__}: {e}") from e

    return MatchRecord(
        deck0=deck0.name,
        deck1=deck1.name,
        seed=seed,
        pairing=pairing,
        iteration=iteration,
        winning_seat=result.winning_seat,
        round_wins=result.round_wins,
        rounds=result.rounds_played,
        final_power=result.final_power,
        validation_errors=tuple(errors),
    )


def _run_job(job: MatchJob) -> MatchRecord | str:
    # Failures travel back from worker processes as plain strings
    try:
        return run_match(
            job.deck0,
            job.deck1,
            job.seed,
            specs=job.specs,
            config=job.config,
            pairing=job.pairing,
            iteration=job.iteration,
        )
    except MatchSimulationFailure as e:
        return e.reason


def schedule(decks: Sequence[Deck], config: BatchConfig) -> list[MatchJob]:
    """Every ordered pair of distinct decks, ``config.iterations`` times each."""
    specs = config.difficulty.specs(config.weights)
    jobs: list[MatchJob] = []
    pairing = 0
    for i, d0 in enumerate(decks):
        for j, d1 in enumerate(decks):
            if i == j:
                continue
            for it in range(config.iterations):
                jobs.append(
                    MatchJob(
                        pairing=pairing,
                        iteration=it,
                        seed=derive_seed(config.base_seed, pairing, it),
                        deck0=d0,
                        deck1=d1,
                        specs=specs,
                        config=config.match,
                    )
                )
            pairing += 1
    return jobs


def categorize_errors(errors: Sequence[str]) -> dict[str, int]:
    # "Round 2 action 7: Seat 0: hand size exceeds maximum (5)" -> "hand size exceeds maximum (5)"
    return dict(Counter(e.rsplit(": ", 1)[-1] for e in errors))


def generate_recommendations(
    metrics: Sequence[BalanceMetric],
    validation_errors: Sequence[str] = (),
    skipped: int = 0,
) -> list[str]:
    lines: list[str] = []
    if validation_errors:
        lines.append(
            f"VALIDATION ISSUES: {len(validation_errors)} errors found - fix game logic before balancing"
        )
        for kind, count in categorize_errors(validation_errors).items():
            lines.append(f"  - {kind}: {count} occurrences")
    if skipped:
        lines.append(f"SKIPPED: {skipped} matches failed and were excluded from the metrics")

    for m in metrics:
        if m.games_played == 0:
            continue
        pct = f"{m.win_rate * 100:.1f}%"
        if m.classification == "overpowered":
            lines.append(
                f"{m.deck_name}: Overpowered ({pct} win rate) - consider reducing card power or increasing costs"
            )
        elif m.classification == "underpowered":
            lines.append(
                f"{m.deck_name}: Underpowered ({pct} win rate) - consider raising card power or reducing costs"
            )
        if m.validation_score < LOW_VALIDATION_SCORE:
            lines.append(
                f"{m.deck_name}: Low validation score ({m.validation_score}/100) - check game logic"
            )
    return lines


def generate_card_recommendations(
    cards: Sequence[CardBalance], min_appearances: int = CARD_MIN_APPEARANCES
) -> list[str]:
    lines: list[str] = []
    for c in cards:
        if c.appearances < min_appearances:
            continue
        pct = f"{c.win_rate * 100:.1f}%"
        if c.performance == "undercosted":
            lines.append(
                f"{c.card_name}: Under-costed ({pct} win rate) - "
                f"consider increasing cost from {c.cost} to {math.ceil(c.cost * 1.2)} BP"
            )
        elif c.performance == "overcosted":
            lines.append(
                f"{c.card_name}: Over-costed ({pct} win rate) - "
                f"consider decreasing cost from {c.cost} to {max(1, math.floor(c.cost * 0.8))} BP"
            )
    return lines


@dataclass
class BatchReport:
    games_scheduled: int = 0
    records: list[MatchRecord] = field(default_factory=list)
    failures: list[MatchSimulationFailure] = field(default_factory=list)
    metrics: dict[str, BalanceMetric] = field(default_factory=dict)
    cards: dict[str, CardBalance] = field(default_factory=dict)
    completed: bool = False

    @property
    def total_games(self) -> int:
        return len(self.records)

    @property
    def validation_errors(self) -> list[str]:
        return [e for r in self.records for e in r.validation_errors]

    def recommendations(self) -> list[str]:
        return generate_recommendations(
            list(self.metrics.values()), self.validation_errors, skipped=len(self.failures)
        )

    def card_recommendations(self) -> list[str]:
        return generate_card_recommendations(list(self.cards.values()))


class BatchRunner:
    """Runs balance batches, optionally across worker processes."""

    def __init__(self, telemetry: TelemetryService | None = None) -> None:
        self.telemetry = telemetry
        self.report = BatchReport()

    def _emit(self, event_type: str, payload: dict[str, object]) -> None:
        if self.telemetry is not None:
            self.telemetry.log(event_type, payload)

    def run_batch(self, decks: Sequence[Deck], config: BatchConfig | None = None) -> BatchReport:
        config = config or BatchConfig()
        if len(decks) < 2:
            raise ValueError("A batch needs at least two decks.")
        names = [d.name for d in decks]
        if len(set(names)) != len(names):
            raise ValueError("Deck names must be unique within a batch.")
        if config.iterations < 0:
            raise ValueError("iterations must be >= 0")
        for d in decks:
            if len(d) != config.match.deck_size:
                logger.warning(
                    "Deck %r has %d cards, configured deck size is %d", d.name, len(d), config.match.deck_size
                )

        jobs = schedule(decks, config)
        self.report = BatchReport(
            games_scheduled=len(jobs),
            metrics={d.name: BalanceMetric(deck_name=d.name) for d in decks},
        )
        logger.info(
            "Starting batch: %d decks, %d iterations per pairing, %d matches",
            len(decks),
            config.iterations,
            len(jobs),
        )
        self._emit(
            "batch_started",
            {
                "decks": names,
                "iterations": config.iterations,
                "base_seed": config.base_seed,
                "difficulty": [config.difficulty.seat0, config.difficulty.seat1],
                "workers": config.workers,
                "scheduled": len(jobs),
            },
        )

        if config.workers > 1 and len(jobs) > 1:
            outcomes = self._run_parallel(jobs, config.workers)
        else:
            outcomes = (_run_job(job) for job in jobs)
        for job, outcome in zip(jobs, outcomes):
            self._absorb(job, outcome, config)

        self.report.completed = True
        logger.info(
            "Batch finished: %d matches played, %d skipped",
            self.report.total_games,
            len(self.report.failures),
        )
        self._emit(
            "batch_finished",
            {"played": self.report.total_games, "skipped": len(self.report.failures)},
        )
        return self.report

    def _run_parallel(self, jobs: list[MatchJob], workers: int) -> Iterator[MatchRecord | str]:
        """Stream outcomes from a process pool in schedule order."""
        n_workers = min(workers, len(jobs), multiprocessing.cpu_count() or 1)
        chunksize = max(1, len(jobs) // (n_workers * 8))
        with multiprocessing.Pool(processes=n_workers) as pool:
            yield from pool.imap(_run_job, jobs, chunksize=chunksize)

    def _absorb(self, job: MatchJob, outcome: MatchRecord | str, config: BatchConfig) -> None:
        report = self.report
        if isinstance(outcome, str):
            failure = MatchSimulationFailure(job.deck0.name, job.deck1.name, job.seed, outcome)
            logger.error(
                "Skipping match %s vs %s (pairing %d, iteration %d, seed %d): %s",
                job.deck0.name,
                job.deck1.name,
                job.pairing,
                job.iteration,
                job.seed,
                outcome,
            )
            report.failures.append(failure)
            self._emit(
                "match_failed",
                {"deck0": job.deck0.name, "deck1": job.deck1.name, "seed": job.seed, "reason": outcome},
            )
            return

        record = outcome
        report.records.append(record)
        n_errors = len(record.validation_errors)
        for seat, deck in enumerate((job.deck0, job.deck1)):
            won = record.winning_seat == seat
            influence = record.final_power[seat]
            report.metrics[deck.name].record(won, record.rounds, influence, n_errors)
            for card in deck.cards:
                cb = report.cards.get(card.name)
                if cb is None:
                    cb = report.cards[card.name] = CardBalance(card_name=card.name, cost=card.cost)
                cb.record(won, influence)

        self._emit(
            "match_completed",
            {
                "deck0": record.deck0,
                "deck1": record.deck1,
                "seed": record.seed,
                "winner": record.winner,
                "rounds": record.rounds,
                "validation_errors": n_errors,
            },
        )
        done = report.total_games
        if config.progress_every > 0 and done % config.progress_every == 0:
            logger.info("Completed %d/%d matches", done, report.games_scheduled)
