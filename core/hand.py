"""Hand evaluation for blackjack."""

from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from core.cards import Card


@dataclass(frozen=True, slots=True)
class HandScore:
    """Result of scoring a sequence of cards."""

    value: int
    is_soft: bool
    is_bust: bool
    is_blackjack: bool


def score(cards: Iterable[Card], reveal_all: bool = True) -> HandScore:
    """
    Score a sequence of cards.

    Face cards count 10 and aces count 11, then aces are reduced to 1 one
    at a time while the total is over 21.

    Args:
        cards: Cards to score, in any order
        reveal_all: If False, face-down cards are ignored (a dealer's partial hand)

    Returns:
        HandScore with value and soft/bust/blackjack flags
    """
    total = 0
    soft_aces = 0
    counted = 0

    for card in cards:
        if not reveal_all and not card.face_up:
            continue
        counted += 1
        if card.is_ace:
            soft_aces += 1
        total += card.value

    # Reduce aces from 11 to 1 as needed
    while total > 21 and soft_aces > 0:
        total -= 10
        soft_aces -= 1

    return HandScore(
        value=total,
        is_soft=soft_aces > 0,
        is_bust=total > 21,
        is_blackjack=counted == 2 and total == 21,
    )


@dataclass(frozen=True)
class Hand:
    """
    A blackjack hand. Every derived attribute is recomputed from the cards.

    Dealt cards never change; a new card means a new Hand.
    """

    cards: tuple[Card, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "cards", tuple(self.cards))

    def score(self, reveal_all: bool = True) -> HandScore:
        """Score the hand."""
        return score(self.cards, reveal_all)

    @property
    def value(self) -> int:
        """Best value of all cards, face-down ones included."""
        return self.score().value

    @property
    def visible_value(self) -> int:
        """Value of the face-up cards only."""
        return self.score(reveal_all=False).value

    @property
    def is_soft(self) -> bool:
        """Check if an ace is still counted as 11."""
        return self.score().is_soft

    @property
    def is_hard(self) -> bool:
        """Check if the hand is hard (not soft)."""
        return not self.is_soft

    @property
    def is_blackjack(self) -> bool:
        """Check if the hand is a natural blackjack (21 with 2 cards)."""
        return self.score().is_blackjack

    @property
    def is_busted(self) -> bool:
        """Check if the hand has busted (value > 21)."""
        return self.score().is_bust

    @property
    def has_hidden_cards(self) -> bool:
        return any(not card.face_up for card in self.cards)

    @property
    def num_cards(self) -> int:
        """Return the number of cards in the hand."""
        return len(self.cards)

    def revealed(self) -> "Hand":
        """Return a copy of the hand with every card face up."""
        return Hand([card.revealed() for card in self.cards])

    @classmethod
    def from_wire(cls, cards: Iterable[dict[str, Any]]) -> "Hand":
        """Build a hand from the authority's card dicts."""
        return cls([Card.from_wire(c) for c in cards])

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        result = self.score(reveal_all=False)
        value_str = f"({result.value})"
        if result.is_soft:
            value_str = f"(soft {result.value})"
        if result.is_blackjack and not self.has_hidden_cards:
            value_str = "(BLACKJACK)"
        if result.is_bust:
            value_str = "(BUST)"
        return f"{cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({self.cards!r}, value={self.value})"
