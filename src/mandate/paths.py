from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    data_dir: Path
    schema_dir: Path
    results_dir: Path


def get_paths() -> Paths:
    # Data ships inside the package: src/mandate/data
    package_dir = Path(__file__).resolve().parent
    data_dir = package_dir / "data"
    return Paths(
        data_dir=data_dir,
        schema_dir=data_dir / "schemas",
        results_dir=Path.cwd() / "test_results",
    )
