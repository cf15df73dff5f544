from __future__ import annotations

import logging
from typing import Iterable, Sequence

from mandate.engine.match import MatchConfig
from mandate.engine.rng import RandomnessSource
from mandate.engine.types import Card, CardCatalog, Deck
from mandate.services.content import DeckSpecs, GenerationRule, PoolRule, PresetSpec

logger = logging.getLogger(__name__)

DEFAULT_DECK_SIZE = MatchConfig().deck_size
DEFAULT_BUILD_SEED = 123456


class DeckError(ValueError):
    pass


class CardNotFound(DeckError):
    def __init__(self, name: str, deck: str | None = None) -> None:
        where = f" (deck {deck!r})" if deck else ""
        super().__init__(f"Unknown card {name!r}{where}")
        self.name = name
        self.deck = deck


def special_heuristic(card: Card) -> float:
    """Rough strength estimate for a special card, from its tag and effect key."""
    key = (card.effect_key or "").lower()
    tag = (card.tag or "").lower()
    if tag == "corruption" or "corruption" in key or "bribery" in key:
        return 3
    if tag == "buff" or "buff" in key:
        return 3
    if tag == "ap" or "ap" in key:
        return 2
    if tag == "draw" or "draw" in key:
        return 2
    if card.category == "intervention":
        return 1
    return 1.5


def _matches(card: Card, pool: PoolRule) -> bool:
    if pool.category is not None and card.category != pool.category:
        return False
    if pool.tag is not None:
        tag = pool.tag.lower()
        if (card.tag or "").lower() != tag and tag not in (card.effect_key or "").lower():
            return False
    if pool.effect is not None and pool.effect.lower() not in (card.effect_key or "").lower():
        return False
    return True


class DeckBuilder:
    """Turns presets and generation rules into concrete ``Deck`` objects.

    Unknown card names raise ``CardNotFound`` unless ``substitute_missing`` is
    set, in which case the catalog's weakest enabled government card stands in.
    Generated decks never contain disabled cards and draw their tie-breaking
    order from the builder's own RandomnessSource.
    """

    def __init__(
        self,
        catalog: CardCatalog,
        *,
        deck_size: int = DEFAULT_DECK_SIZE,
        rng: RandomnessSource | None = None,
        substitute_missing: bool = False,
    ) -> None:
        if deck_size <= 0:
            raise DeckError("Deck size must be positive.")
        self.catalog = catalog
        self.deck_size = deck_size
        self.rng = rng or RandomnessSource(DEFAULT_BUILD_SEED)
        self.substitute_missing = substitute_missing

    @property
    def filler_card(self) -> Card:
        pols = self.catalog.active("government")
        if not pols:
            raise DeckError("Catalog has no enabled government cards.")
        return min(pols, key=lambda c: (c.power, c.name))

    def resolve(self, name: str, *, deck: str | None = None) -> Card:
        if name in self.catalog:
            return self.catalog.get(name)
        if not self.substitute_missing:
            raise CardNotFound(name, deck)
        filler = self.filler_card
        logger.warning("Deck %r: unknown card %r replaced by %r", deck, name, filler.name)
        return filler

    def build_preset(self, preset: PresetSpec) -> Deck:
        if len(preset.cards) != self.deck_size:
            raise DeckError(
                f"Preset {preset.name!r} has {len(preset.cards)} cards, expected {self.deck_size}"
            )
        cards = [self.resolve(n, deck=preset.name) for n in preset.cards]
        return Deck(name=preset.name, cards=cards, archetype="preset")

    def _ordered(self, cards: Sequence[Card], pool: PoolRule) -> list[Card]:
        # Shuffle first so the stable sort breaks ties reproducibly
        shuffled = self.rng.shuffle(cards)
        if pool.order == "power":
            return sorted(shuffled, key=lambda c: -c.power)
        if pool.order == "heuristic":
            return sorted(
                shuffled, key=lambda c: -(c.power if c.is_government else special_heuristic(c))
            )
        if pool.order == "cost_asc":
            return sorted(shuffled, key=lambda c: c.cost)
        return shuffled

    def _fillers(self) -> Iterable[str]:
        for c in self.catalog.active("government"):
            yield c.name
        for c in self.catalog.active("special"):
            yield c.name

    def build_generated(self, rule: GenerationRule) -> Deck:
        size = rule.size or self.deck_size
        pols = self._ordered(self.catalog.active("government"), rule.government)
        specials = [c for c in self.catalog.active("special") if _matches(c, rule.specials)]
        specials = self._ordered(specials, rule.specials)

        names = [c.name for c in pols[: rule.government.count]]
        names += [c.name for c in specials[: rule.specials.count]]
        if len(names) < size:
            logger.debug("Deck %r: %d cards selected, filling to %d", rule.name, len(names), size)
            for filler in self._fillers():
                if len(names) >= size:
                    break
                if filler not in names:
                    names.append(filler)
        if len(names) < size:
            raise DeckError(f"Not enough enabled cards to build {rule.name!r} ({len(names)}/{size})")

        cards = [self.catalog.get(n) for n in names[:size]]
        return Deck(name=rule.name, cards=cards, archetype=rule.archetype)

    def build_all(
        self,
        specs: DeckSpecs,
        *,
        presets: bool = True,
        generated: bool = True,
        only: Sequence[str] | None = None,
    ) -> list[Deck]:
        """Build presets first, then generated decks, optionally filtered by name.

        Generated decks are always built in rule order so that filtering does
        not change the random draws of the decks that remain.
        """
        decks: list[Deck] = []
        if presets:
            decks.extend(self.build_preset(p) for p in specs.presets)
        if generated:
            decks.extend(self.build_generated(r) for r in specs.rules)
        if only:
            wanted = set(only)
            known = {d.name for d in decks}
            missing = sorted(wanted - known)
            if missing:
                raise DeckError(f"Unknown deck name(s): {', '.join(missing)}")
            decks = [d for d in decks if d.name in wanted]
        return decks
