from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from mandate.engine.ai import DIFFICULTIES
from mandate.engine.match import MatchConfig
from mandate.engine.rng import RandomnessSource
from mandate.paths import get_paths
from mandate.services.balance import (
    DEFAULT_BASE_SEED,
    BatchConfig,
    BatchReport,
    BatchRunner,
    DifficultyConfig,
)
from mandate.services.content import ContentError, ContentService
from mandate.services.decks import DEFAULT_BUILD_SEED, DeckBuilder, DeckError
from mandate.services.export import DEFAULT_EXPORT_NAME, ExportWriteFailure, export_report
from mandate.services.telemetry import TelemetryService

logger = logging.getLogger("mandate.cli")

EXIT_OK = 0
EXIT_BUILD_FAILED = 2
EXIT_INTERRUPTED = 130

_STATUS = {"overpowered": "[+]", "underpowered": "[-]", "balanced": "[=]"}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mandate-balance",
        description="Run automated self-play matches between decks and report balance metrics.",
    )
    parser.add_argument("iterations", nargs="?", type=int, default=100, help="matches per deck pairing")
    parser.add_argument("--seed", type=int, default=DEFAULT_BASE_SEED, help="batch base seed")
    parser.add_argument(
        "--build-seed", type=int, default=DEFAULT_BUILD_SEED,
        help="seed for generated deck composition, independent of --seed",
    )
    parser.add_argument("--difficulty", choices=DIFFICULTIES, default="easy", help="seat 0 difficulty")
    parser.add_argument(
        "--difficulty-2", dest="difficulty_2", choices=DIFFICULTIES, default=None,
        help="seat 1 difficulty (defaults to --difficulty)",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--presets-only", action="store_true")
    source.add_argument("--generated-only", action="store_true")
    parser.add_argument("--decks", nargs="+", metavar="NAME", help="restrict the batch to these decks")
    parser.add_argument(
        "--substitute-missing", action="store_true",
        help="replace unknown card names with a filler card instead of failing",
    )
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--results-dir", type=Path, default=None)
    parser.add_argument("--output", default=DEFAULT_EXPORT_NAME, help="export file name")
    parser.add_argument("--telemetry", type=Path, default=None, help="append JSONL events here")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")
    return parser


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def format_summary(report: BatchReport) -> list[str]:
    lines = []
    for m in report.metrics.values():
        lines.append(
            f"{_STATUS[m.classification]} {m.deck_name}: {m.win_rate * 100:.1f}% win rate "
            f"({m.wins}/{m.games_played}) | avg rounds {m.average_round_count:.2f} "
            f"| avg influence {m.average_influence:.1f} | validation {m.validation_score}/100"
        )
    return lines


def _print_report(report: BatchReport) -> None:
    state = "complete" if report.completed else "interrupted, partial results"
    print(f"\nBalance summary ({report.total_games}/{report.games_scheduled} matches, {state})")
    print("=" * 60)
    for line in format_summary(report):
        print(line)

    print("\nRecommendations")
    print("=" * 60)
    recs = report.recommendations()
    for line in recs or ["All decks within the balanced band."]:
        print(line)

    card_recs = report.card_recommendations()
    if card_recs:
        print("\nCard cost recommendations")
        print("=" * 60)
        for line in card_recs:
            print(line)


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose, args.quiet)

    if args.iterations < 0:
        print("iterations must be >= 0", file=sys.stderr)
        return EXIT_BUILD_FAILED
    if args.workers < 1:
        print("--workers must be >= 1", file=sys.stderr)
        return EXIT_BUILD_FAILED

    paths = get_paths()
    content = ContentService(data_dir=paths.data_dir, schema_dir=paths.schema_dir)
    try:
        catalog = content.load_catalog()
        specs = content.load_deck_specs()
        match_config = MatchConfig(deck_size=specs.deck_size)
        builder = DeckBuilder(
            catalog,
            deck_size=match_config.deck_size,
            rng=RandomnessSource(args.build_seed),
            substitute_missing=args.substitute_missing,
        )
        decks = builder.build_all(
            specs,
            presets=not args.generated_only,
            generated=not args.presets_only,
            only=args.decks,
        )
    except (ContentError, DeckError) as e:
        logger.error("Deck build failed: %s", e)
        print(f"Deck build failed: {e}", file=sys.stderr)
        return EXIT_BUILD_FAILED
    if len(decks) < 2:
        print("At least two decks are needed for a batch.", file=sys.stderr)
        return EXIT_BUILD_FAILED

    config = BatchConfig(
        iterations=args.iterations,
        base_seed=args.seed,
        difficulty=DifficultyConfig(seat0=args.difficulty, seat1=args.difficulty_2 or args.difficulty),
        workers=args.workers,
        match=match_config,
    )
    telemetry = TelemetryService(args.telemetry) if args.telemetry else None
    runner = BatchRunner(telemetry=telemetry)

    print(f"Running {config.iterations} iterations per pairing across {len(decks)} decks...")
    interrupted = False
    try:
        runner.run_batch(decks, config)
    except KeyboardInterrupt:
        interrupted = True
        logger.warning("Interrupted after %d matches", runner.report.total_games)

    report = runner.report
    _print_report(report)

    results_dir = args.results_dir or paths.results_dir
    try:
        out = export_report(report, results_dir, args.output)
        print(f"\nResults exported to: {out}")
    except ExportWriteFailure as e:
        logger.warning("%s", e)

    return EXIT_INTERRUPTED if interrupted else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
