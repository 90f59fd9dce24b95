"""Pydantic schemas for API requests and responses."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class BetRequest(BaseModel):
    """Request to place a bet."""

    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Bet amount")


class SessionResponse(BaseModel):
    """Newly created browser session."""

    session_id: str
    balance: float


class CardResponse(BaseModel):
    """Card representation; face-down cards are masked."""

    model_config = ConfigDict(from_attributes=True)

    rank: str
    suit: str
    value: int
    face_up: bool


class HandResponse(BaseModel):
    """Hand representation."""

    cards: list[CardResponse]
    value: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool


class PlayerResponse(BaseModel):
    id: str
    name: str
    hand: HandResponse
    is_standing: bool


class SettlementResponse(BaseModel):
    """Settlement of a finished round."""

    outcome: str
    bet: float
    payout: float
    new_balance: float


class ErrorResponse(BaseModel):
    """Typed error."""

    kind: str
    message: str
    status: int = 0


class RoundStateResponse(BaseModel):
    """Current round state."""

    status: str
    session_id: str
    game_id: str | None
    bet: float
    balance: float
    player: PlayerResponse | None
    dealer_hand: HandResponse
    remaining_cards: int
    dealer_polls: int
    outcome: str | None
    settlement: SettlementResponse | None
    is_loading: bool
    is_polling: bool
    can_bet: bool
    can_hit: bool
    can_stand: bool
    error: ErrorResponse | None
