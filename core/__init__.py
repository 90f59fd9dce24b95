"""Blackjack round client core - 100% UI-agnostic."""

from core.cards import Card, Rank, Suit
from core.errors import ErrorKind, GameError
from core.hand import Hand, HandScore, score
from core.settlement import Outcome, Settlement, settle

__all__ = [
    "Card",
    "Rank",
    "Suit",
    "ErrorKind",
    "GameError",
    "Hand",
    "HandScore",
    "score",
    "Outcome",
    "Settlement",
    "settle",
]
