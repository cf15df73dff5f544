from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from mandate.services.balance import BatchReport, MatchSimulationFailure

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_NAME = "balance_test_results.json"


class ExportWriteFailure(RuntimeError):
    def __init__(self, path: Path, cause: OSError) -> None:
        super().__init__(f"Cannot write results to {path}: {cause}")
        self.path = path
        self.cause = cause


def _failure_to_dict(f: MatchSimulationFailure) -> dict[str, object]:
    return {"deck0": f.deck0, "deck1": f.deck1, "seed": f.seed, "reason": f.reason}


def build_document(report: BatchReport, *, timestamp: datetime | None = None) -> dict[str, object]:
    """Assemble the JSON export document for a (possibly partial) batch."""
    ts = timestamp or datetime.now(tz=timezone.utc)
    return {
        "timestamp": ts.isoformat(),
        "completed": report.completed,
        "total_games": report.total_games,
        "games_scheduled": report.games_scheduled,
        "results": [asdict(r) for r in report.records],
        "balance_metrics": [asdict(m) for m in report.metrics.values()],
        "card_balance": [asdict(c) for c in report.cards.values()],
        "recommendations": report.recommendations(),
        "card_recommendations": report.card_recommendations(),
        "failures": [_failure_to_dict(f) for f in report.failures],
    }


def export_report(
    report: BatchReport,
    results_dir: Path,
    filename: str = DEFAULT_EXPORT_NAME,
    *,
    timestamp: datetime | None = None,
) -> Path:
    """Write the export document, creating ``results_dir`` if needed.

    Raises ExportWriteFailure on any filesystem error; the report itself is
    left untouched.
    """
    path = results_dir / filename
    text = json.dumps(build_document(report, timestamp=timestamp), ensure_ascii=False, indent=2)
    try:
        results_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        raise ExportWriteFailure(path, e) from e
    logger.info("Results exported to %s", path)
    return path
