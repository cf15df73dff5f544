from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

import pytest

from mandate.cli import main as cli_module
from mandate.cli.main import main
from mandate.paths import Paths, get_paths
from mandate.services.decks import DEFAULT_BUILD_SEED, DeckBuilder


def test_cli_runs_batch_and_exports(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    telemetry = tmp_path / "events.jsonl"
    code = main(
        [
            "2",
            "--presets-only",
            "--decks", "Tech Oligarchs", "Media Control",
            "--difficulty", "easy",
            "--difficulty-2", "medium",
            "--results-dir", str(tmp_path),
            "--output", "run.json",
            "--telemetry", str(telemetry),
            "-q",
        ]
    )
    assert code == 0

    out = capsys.readouterr().out
    assert "Tech Oligarchs" in out
    assert "Media Control" in out
    assert "Recommendations" in out

    doc = json.loads((tmp_path / "run.json").read_text(encoding="utf-8"))
    assert doc["total_games"] == 4
    assert doc["completed"] is True

    events = [json.loads(line)["type"] for line in telemetry.read_text(encoding="utf-8").splitlines()]
    assert events[0] == "batch_started"
    assert events[-1] == "batch_finished"
    assert events.count("match_completed") == 4


def test_cli_unknown_deck_is_a_build_failure(tmp_path: Path) -> None:
    assert main(["1", "--decks", "No Such Deck", "--results-dir", str(tmp_path), "-q"]) == 2


def test_cli_export_failure_still_succeeds(tmp_path: Path) -> None:
    blocked = tmp_path / "blocked"
    blocked.write_text("x", encoding="utf-8")
    code = main(["1", "--generated-only", "--decks", "Balanced", "Low-Cost", "--results-dir", str(blocked), "-q"])
    assert code == 0


def _data_dir_with_presets(tmp_path: Path, presets: list[dict[str, object]]) -> Paths:
    real = get_paths()
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    shutil.copy(real.data_dir / "cards.json", data_dir / "cards.json")
    doc = {"version": 1, "deck_size": 10, "presets": presets, "generation_rules": []}
    (data_dir / "presets.json").write_text(json.dumps(doc), encoding="utf-8")
    return Paths(data_dir=data_dir, schema_dir=real.schema_dir, results_dir=tmp_path / "results")


def test_cli_substitute_missing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    oligarchs = [
        "Vladimir Putin", "Xi Jinping", "Donald Trump", "Mohammed bin Salman", "Recep Tayyip Erdoğan",
        "Elon Musk", "Bill Gates", "Mark Zuckerberg", "Tim Cook", "Sam Altman",
    ]
    paths = _data_dir_with_presets(
        tmp_path,
        [
            {"name": "Oligarchs", "cards": oligarchs},
            {"name": "Misprinted", "cards": oligarchs[:9] + ["Ghost Card"]},
        ],
    )
    monkeypatch.setattr(cli_module, "get_paths", lambda: paths)

    assert main(["1", "--presets-only", "-q"]) == 2
    assert not (paths.results_dir / "balance_test_results.json").exists()

    with caplog.at_level(logging.WARNING, logger="mandate.services.decks"):
        assert main(["1", "--presets-only", "--substitute-missing", "-q"]) == 0
    assert any("Ghost Card" in r.getMessage() for r in caplog.records)
    doc = json.loads((paths.results_dir / "balance_test_results.json").read_text(encoding="utf-8"))
    assert doc["total_games"] == 2


def test_cli_batch_seed_does_not_change_decks(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    built: list[tuple[int, list[list[str]]]] = []

    class RecordingBuilder(DeckBuilder):
        def build_all(self, *args, **kwargs):
            decks = super().build_all(*args, **kwargs)
            built.append((self.rng.seed, [d.card_names() for d in decks]))
            return decks

    monkeypatch.setattr(cli_module, "DeckBuilder", RecordingBuilder)
    base = ["1", "--generated-only", "--decks", "Balanced", "RandomBalanced", "--results-dir", str(tmp_path), "-q"]

    assert main(base + ["--seed", "1"]) == 0
    assert main(base + ["--seed", "2"]) == 0
    assert main(base + ["--build-seed", "7"]) == 0

    assert built[0] == built[1]
    assert built[0][0] == DEFAULT_BUILD_SEED
    assert built[2][0] == 7
