from __future__ import annotations

import argparse

from mandate.engine.types import CardCatalog
from mandate.paths import get_paths
from mandate.services.content import ContentService, PresetSpec


def preset_cost_lines(preset: PresetSpec, catalog: CardCatalog) -> tuple[list[str], int]:
    """Per-card build cost lines for one preset, plus the total."""
    lines: list[str] = []
    total = 0
    for name in preset.cards:
        if name not in catalog:
            lines.append(f"  - {name}: NOT FOUND")
            continue
        card = catalog.get(name)
        total += card.cost
        lines.append(f"  - {name}: {card.cost} BP ({card.category})")
    return lines, total


def main() -> int:
    parser = argparse.ArgumentParser(prog="compute_preset_costs")
    parser.add_argument("--preset", action="append", help="only report these presets")
    args = parser.parse_args()

    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    catalog = content.load_catalog()
    specs = content.load_deck_specs()

    for preset in specs.presets:
        if args.preset and preset.name not in args.preset:
            continue
        lines, total = preset_cost_lines(preset, catalog)
        print(f"Preset: {preset.name}")
        for line in lines:
            print(line)
        print(f"  TOTAL BP: {total}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
