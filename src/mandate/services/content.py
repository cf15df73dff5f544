from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Mapping

from jsonschema import Draft202012Validator

from mandate.engine.types import Card, CardCatalog

PoolOrder = Literal["power", "heuristic", "cost_asc", "random"]


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContentError(f"Expected int for {key}")
    return v


def _require_list(obj: Mapping[str, object], key: str) -> list[object]:
    v = obj.get(key)
    if not isinstance(v, list):
        raise ContentError(f"Expected list for {key}")
    return v


def _optional_str(obj: Mapping[str, object], key: str) -> str | None:
    v = obj.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


@dataclass(frozen=True)
class PresetSpec:
    name: str
    cards: tuple[str, ...]


@dataclass(frozen=True)
class PoolRule:
    count: int
    order: PoolOrder
    category: str | None = None  # specials only
    tag: str | None = None
    effect: str | None = None  # substring of effect_key


@dataclass(frozen=True)
class GenerationRule:
    name: str
    archetype: str
    government: PoolRule
    specials: PoolRule
    size: int | None = None


@dataclass(frozen=True)
class DeckSpecs:
    deck_size: int
    presets: tuple[PresetSpec, ...]
    rules: tuple[GenerationRule, ...]


def _parse_card(item: Mapping[str, object]) -> Card:
    disabled = item.get("disabled", False)
    if not isinstance(disabled, bool):
        raise ContentError("Expected bool for disabled")
    return Card(
        name=_require_str(item, "name"),
        kind=_require_str(item, "kind"),  # type: ignore[arg-type]
        category=_require_str(item, "category"),  # type: ignore[arg-type]
        cost=_require_int(item, "cost"),
        power=_require_int(item, "power"),
        tier=_require_int(item, "tier"),
        tag=_optional_str(item, "tag"),
        trigger=_optional_str(item, "trigger"),  # type: ignore[arg-type]
        effect_key=_optional_str(item, "effect_key"),
        disabled=disabled,
    )


def _parse_pool(raw: object, *, context: str) -> PoolRule:
    if not isinstance(raw, dict):
        raise ContentError(f"{context} must be an object")
    return PoolRule(
        count=_require_int(raw, "count"),
        order=_require_str(raw, "order"),  # type: ignore[arg-type]
        category=_optional_str(raw, "category"),
        tag=_optional_str(raw, "tag"),
        effect=_optional_str(raw, "effect"),
    )


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def _load_validated(self, filename: str, schema_name: str) -> dict[str, object]:
        path = self._data_dir / filename
        raw = _load_json(path)
        schema = _load_json(self._schema_dir / schema_name)
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ContentError(f"{filename} must be an object")
        return raw

    def load_catalog(self) -> CardCatalog:
        raw = self._load_validated("cards.json", "cards.schema.json")
        cards: dict[str, Card] = {}
        for item in _require_list(raw, "cards"):
            if not isinstance(item, dict):
                continue
            card = _parse_card(item)
            if card.name in cards:
                raise ContentError(f"Duplicate card name: {card.name}")
            cards[card.name] = card
        return CardCatalog(cards=cards)

    def load_deck_specs(self) -> DeckSpecs:
        raw = self._load_validated("presets.json", "presets.schema.json")
        deck_size = _require_int(raw, "deck_size")

        presets: list[PresetSpec] = []
        for p in _require_list(raw, "presets"):
            if not isinstance(p, dict):
                continue
            names = [c for c in _require_list(p, "cards") if isinstance(c, str)]
            presets.append(PresetSpec(name=_require_str(p, "name"), cards=tuple(names)))

        rules: list[GenerationRule] = []
        for r in _require_list(raw, "generation_rules"):
            if not isinstance(r, dict):
                continue
            name = _require_str(r, "name")
            size = r.get("size")
            rules.append(
                GenerationRule(
                    name=name,
                    archetype=_require_str(r, "archetype"),
                    government=_parse_pool(r.get("government"), context=f"{name}.government"),
                    specials=_parse_pool(r.get("specials"), context=f"{name}.specials"),
                    size=size if isinstance(size, int) else None,
                )
            )

        seen: set[str] = set()
        for n in [p.name for p in presets] + [r.name for r in rules]:
            if n in seen:
                raise ContentError(f"Duplicate deck name: {n}")
            seen.add(n)

        return DeckSpecs(deck_size=deck_size, presets=tuple(presets), rules=tuple(rules))

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        _ = self.load_catalog()
        _ = self.load_deck_specs()
