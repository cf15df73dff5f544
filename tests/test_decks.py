from __future__ import annotations

import logging

import pytest

from mandate.engine.match import MatchConfig
from mandate.engine.rng import RandomnessSource
from mandate.paths import get_paths
from mandate.services.content import ContentService, PresetSpec
from mandate.services.decks import CardNotFound, DeckBuilder, DeckError, special_heuristic


def _content():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_catalog(), content.load_deck_specs()


def _builder(catalog, **kwargs) -> DeckBuilder:
    return DeckBuilder(catalog, rng=RandomnessSource(123456), **kwargs)


def test_presets_build_to_configured_size() -> None:
    catalog, specs = _content()
    builder = _builder(catalog, deck_size=specs.deck_size)
    decks = [builder.build_preset(p) for p in specs.presets]

    assert [d.name for d in decks] == [
        "Tech Oligarchs",
        "Diplomatic Power",
        "Activist Movement",
        "Initiative Rush",
        "Media Control",
        "Economic Influence",
    ]
    for deck, preset in zip(decks, specs.presets):
        assert len(deck) == 10
        assert deck.card_names() == list(preset.cards)


def test_unknown_card_fails_fast() -> None:
    catalog, _ = _content()
    builder = _builder(catalog)
    preset = PresetSpec(name="Broken", cards=("Vladimir Putin",) * 9 + ("No Such Card",))

    with pytest.raises(CardNotFound) as excinfo:
        builder.build_preset(preset)
    assert excinfo.value.name == "No Such Card"
    assert "No Such Card" in str(excinfo.value)
    assert isinstance(excinfo.value, DeckError)


def test_unknown_card_substitution(caplog: pytest.LogCaptureFixture) -> None:
    catalog, _ = _content()
    builder = _builder(catalog, substitute_missing=True)
    preset = PresetSpec(name="Broken", cards=("Vladimir Putin",) * 9 + ("No Such Card",))

    expected = min(catalog.active("government"), key=lambda c: (c.power, c.name))
    with caplog.at_level(logging.WARNING):
        deck = builder.build_preset(preset)

    assert deck.cards[-1] == expected
    assert builder.filler_card == expected
    assert any("No Such Card" in r.getMessage() for r in caplog.records)


def test_preset_with_wrong_length_is_rejected() -> None:
    catalog, _ = _content()
    builder = _builder(catalog)
    with pytest.raises(DeckError):
        builder.build_preset(PresetSpec(name="Short", cards=("Vladimir Putin",) * 3))


def test_generated_decks_are_complete_and_enabled_only() -> None:
    catalog, specs = _content()
    builder = _builder(catalog, deck_size=specs.deck_size)
    decks = [builder.build_generated(r) for r in specs.rules]

    assert len(decks) == 10
    for deck in decks:
        names = deck.card_names()
        assert len(names) == 10
        assert len(set(names)) == 10
        assert not any(c.disabled for c in deck.cards)


def test_generation_rules_follow_their_ordering() -> None:
    catalog, specs = _content()
    builder = _builder(catalog, deck_size=specs.deck_size)
    rules = {r.name: r for r in specs.rules}

    gov_heavy = builder.build_generated(rules["Gov-Heavy"])
    gov_powers = sorted((c.power for c in gov_heavy.cards if c.is_government), reverse=True)
    top = sorted((c.power for c in catalog.active("government")), reverse=True)[:8]
    assert gov_powers == top

    corruption = builder.build_generated(rules["Corruption-Focus"])
    assert "Bestechungsskandal 2.0" in corruption.card_names()

    public = builder.build_generated(rules["Public-Heavy"])
    assert sum(1 for c in public.cards if c.category == "public") == 5

    low = builder.build_generated(rules["Low-Cost"])
    low_gov = [c.cost for c in low.cards if c.is_government]
    cheapest = sorted(c.cost for c in catalog.active("government"))[:5]
    assert sorted(low_gov) == cheapest


def test_short_generated_deck_is_filled_deterministically() -> None:
    catalog, specs = _content()
    rules = {r.name: r for r in specs.rules}
    # No enabled card carries a shield effect, so five slots come from fillers
    deck = _builder(catalog).build_generated(rules["Defensive"])
    assert len(deck) == 10
    assert all(c.is_government for c in deck.cards)

    again = _builder(catalog).build_generated(rules["Defensive"])
    assert again.card_names() == deck.card_names()


def test_special_heuristic() -> None:
    catalog, _ = _content()
    assert special_heuristic(catalog.get("Bestechungsskandal 2.0")) == 3
    assert special_heuristic(catalog.get("Verzögerungsverfahren")) == 2
    assert special_heuristic(catalog.get("Symbolpolitik")) == 2
    assert special_heuristic(catalog.get("Whistleblower")) == 1
    assert special_heuristic(catalog.get("Greta Thunberg")) == 1.5


def test_build_all_filters_by_name() -> None:
    catalog, specs = _content()
    builder = _builder(catalog, deck_size=specs.deck_size)

    decks = builder.build_all(specs, only=["Balanced", "Media Control"])
    assert [d.name for d in decks] == ["Media Control", "Balanced"]

    with pytest.raises(DeckError):
        _builder(catalog).build_all(specs, only=["Nope"])

    presets = _builder(catalog).build_all(specs, generated=False)
    assert len(presets) == 6


def test_default_deck_size_follows_match_config() -> None:
    catalog, specs = _content()
    assert _builder(catalog).deck_size == MatchConfig().deck_size

    builder = _builder(catalog, deck_size=MatchConfig(deck_size=8).deck_size)
    with pytest.raises(DeckError):
        builder.build_preset(specs.presets[0])
    rules = {r.name: r for r in specs.rules}
    assert len(builder.build_generated(rules["Balanced"])) == 8
