from __future__ import annotations

from mandate.engine.ai import AISpec, evaluate, simulate_match
from mandate.engine.match import new_match, replay, step
from mandate.engine.rng import RandomnessSource
from mandate.engine.serialize import snapshot
from mandate.paths import get_paths
from mandate.services.content import ContentService
from mandate.services.decks import DeckBuilder


def _load_decks():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    catalog = content.load_catalog()
    specs = content.load_deck_specs()
    builder = DeckBuilder(catalog, deck_size=specs.deck_size, rng=RandomnessSource(123456))
    return {d.name: d for d in builder.build_all(specs)}


def test_engine_determinism_replay() -> None:
    decks = _load_decks()
    deck0 = decks["Tech Oligarchs"]
    deck1 = decks["Media Control"]

    seed = 424242
    state1 = new_match(deck0, deck1, seed=seed)
    for _ in range(200):
        if state1.winner is not None:
            break
        step(state1, evaluate(state1, state1.active_seat))
    assert state1.winner is not None

    state2 = replay(deck0, deck1, seed=seed, actions=list(state1.action_log))
    assert snapshot(state1) == snapshot(state2)


def test_same_seed_same_result() -> None:
    decks = _load_decks()
    deck0 = decks["Diplomatic Power"]
    deck1 = decks["Activist Movement"]
    specs = (AISpec("medium"), AISpec("hard"))

    a = simulate_match(deck0, deck1, seed=99, specs=specs)
    b = simulate_match(deck0, deck1, seed=99, specs=specs)

    assert a.result == b.result
    assert snapshot(a) == snapshot(b)
    assert a.rng.calls == b.rng.calls


def test_identical_decks_single_iteration_is_reproducible() -> None:
    decks = _load_decks()
    deck = decks["Balanced"]
    winners = {simulate_match(deck, deck, seed=7).result.winning_seat for _ in range(3)}
    assert len(winners) == 1


def test_generated_decks_depend_only_on_build_seed() -> None:
    first = {name: d.card_names() for name, d in _load_decks().items()}
    second = {name: d.card_names() for name, d in _load_decks().items()}
    assert first == second
