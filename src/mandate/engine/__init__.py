"""Deterministic, headless match simulator for balance testing.

IMPORTANT: This package performs no file or network I/O. It only emits log
records through the standard logging module.
"""

from .actions import PassAction, PlayCardAction
from .ai import AISpec, EvaluatorWeights, evaluate, simulate_match
from .match import IllegalAction, MatchConfig, MatchResult, MatchState, new_match, step
from .resolver import RoundOutcome, resolve_round
from .rng import RandomnessSource, derive_seed
from .types import Card, CardCatalog, Deck

__all__ = [
    "AISpec",
    "Card",
    "CardCatalog",
    "Deck",
    "EvaluatorWeights",
    "IllegalAction",
    "MatchConfig",
    "MatchResult",
    "MatchState",
    "PassAction",
    "PlayCardAction",
    "RandomnessSource",
    "RoundOutcome",
    "derive_seed",
    "evaluate",
    "new_match",
    "resolve_round",
    "simulate_match",
    "step",
]
