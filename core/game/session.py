"""Round session snapshots."""

from dataclasses import dataclass, field
from decimal import Decimal

from core.errors import GameError
from core.game.state import RoundStatus
from core.hand import Hand
from core.settlement import Outcome, Settlement


@dataclass(frozen=True)
class PlayerSeat:
    """The player registered with the authority for the current round."""

    id: str
    name: str
    hand: Hand = field(default_factory=Hand)
    is_standing: bool = False

    @property
    def hand_value(self) -> int:
        return self.hand.value

    @property
    def is_busted(self) -> bool:
        return self.hand.is_busted

    @property
    def has_blackjack(self) -> bool:
        return self.hand.is_blackjack

    @property
    def can_hit(self) -> bool:
        return not (self.is_standing or self.is_busted)

    @property
    def can_stand(self) -> bool:
        return not (self.is_standing or self.is_busted)


@dataclass(frozen=True)
class RoundSession:
    """
    One played round, from bet to settlement.

    Sessions are never mutated; every authoritative update produces a new
    instance with ``dataclasses.replace``.
    """

    session_id: str = ""
    status: RoundStatus = RoundStatus.BETTING
    bet: Decimal = Decimal("0")
    game_id: str | None = None
    player: PlayerSeat | None = None
    dealer_hand: Hand = field(default_factory=Hand)
    remaining_cards: int = 0
    outcome: Outcome | None = None
    settlement: Settlement | None = None
    error: GameError | None = None
    dealer_polls: int = 0

    @property
    def dealer_visible_value(self) -> int:
        """Dealer value counting face-up cards only."""
        return self.dealer_hand.visible_value

    @property
    def is_settled(self) -> bool:
        return self.settlement is not None

    @property
    def is_unresolved(self) -> bool:
        return self.outcome == Outcome.UNRESOLVED


@dataclass(frozen=True)
class StoreSnapshot:
    """Everything a consumer needs to render the round."""

    session: RoundSession
    balance: Decimal
    is_loading: bool
    is_polling: bool
    last_error: GameError | None
    can_bet: bool
    can_hit: bool
    can_stand: bool

    @property
    def status(self) -> RoundStatus:
        return self.session.status
