from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

CardKind = Literal["government", "special"]
Category = Literal[
    "government",
    "public",
    "instant_initiative",
    "permanent_initiative",
    "intervention",
]
Trigger = Literal[
    "media",
    "ngo",
    "platform",
    "government_card",
    "crowded_government",
    "public_card",
    "crowded_public",
    "initiative",
    "intervention",
    "stronger_opponent",
]

SPECIAL_CATEGORIES: tuple[Category, ...] = (
    "public",
    "instant_initiative",
    "permanent_initiative",
    "intervention",
)


@dataclass(frozen=True)
class Card:
    name: str
    kind: CardKind
    category: Category
    cost: int
    power: int
    tier: int = 1
    tag: str | None = None
    trigger: Trigger | None = None
    effect_key: str | None = None
    disabled: bool = False

    @property
    def is_government(self) -> bool:
        return self.kind == "government"


@dataclass(frozen=True)
class CardCatalog:
    """Immutable card table keyed by card name."""

    cards: dict[str, Card]

    def get(self, name: str) -> Card:
        return self.cards[name]

    def __contains__(self, name: object) -> bool:
        return name in self.cards

    def active(self, kind: CardKind | None = None) -> list[Card]:
        return [
            c
            for c in self.cards.values()
            if not c.disabled and (kind is None or c.kind == kind)
        ]


@dataclass
class Deck:
    name: str
    cards: list[Card] = field(default_factory=list)
    archetype: str | None = None

    def __len__(self) -> int:
        return len(self.cards)

    def card_names(self) -> list[str]:
        return [c.name for c in self.cards]
