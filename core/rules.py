"""Table configuration consumed by the round store."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal


@dataclass(frozen=True)
class TableRules:
    """
    Betting limits and round orchestration settings.

    Supplied from configuration; the round store never hard-codes them.
    """

    # Betting limits
    min_bet: int = 1
    max_bet: int = 1000
    starting_balance: Decimal = Decimal("1000")

    # Game created on the authority for each round
    num_decks: int = 1
    deck_type: Literal["standard", "spanish21"] = "standard"
    max_players: int = 1
    player_name: str = "Player"

    # Dealer auto-play polling
    dealer_poll_interval: float = 2.0  # seconds
    dealer_poll_max_attempts: int = 30

    def __post_init__(self) -> None:
        """Validate rule combinations."""
        if self.min_bet < 1:
            raise ValueError("min_bet must be at least 1")
        if self.max_bet < self.min_bet:
            raise ValueError("max_bet must be >= min_bet")
        if self.starting_balance < 0:
            raise ValueError("starting_balance must be >= 0")
        if self.num_decks < 1 or self.num_decks > 8:
            raise ValueError("num_decks must be between 1 and 8")
        if self.max_players < 1:
            raise ValueError("max_players must be at least 1")
        if self.dealer_poll_interval < 0:
            raise ValueError("dealer_poll_interval must be >= 0")
        if self.dealer_poll_max_attempts < 1:
            raise ValueError("dealer_poll_max_attempts must be at least 1")
