"""Round API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException

from api.schemas import (
    BetRequest,
    CardResponse,
    ErrorResponse,
    HandResponse,
    PlayerResponse,
    RoundStateResponse,
    SessionResponse,
    SettlementResponse,
)
from api.session import SessionRegistry, get_registry
from core.game import RoundStore
from core.hand import Hand

router = APIRouter()

SessionHeader = Annotated[str, Header(alias="X-Session-ID")]
Registry = Annotated[SessionRegistry, Depends(get_registry)]


def _get_store(session_id: SessionHeader, registry: Registry) -> RoundStore:
    """Resolve the round store for the request's session header."""
    store = registry.get(session_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Unknown or expired session")
    return store


Store = Annotated[RoundStore, Depends(_get_store)]


def _hand_to_response(hand: Hand, reveal_all: bool = True) -> HandResponse:
    """Convert a Hand to HandResponse, masking hidden cards unless revealed."""
    cards = []
    for c in hand.cards:
        if c.face_up or reveal_all:
            cards.append(CardResponse(rank=str(c.rank), suit=str(c.suit), value=c.value, face_up=True))
        else:
            cards.append(CardResponse(rank="?", suit="?", value=0, face_up=False))

    result = hand.score(reveal_all=reveal_all)
    return HandResponse(
        cards=cards,
        value=result.value,
        is_soft=result.is_soft,
        is_blackjack=result.is_blackjack,
        is_busted=result.is_bust,
    )


def _round_state_response(store: RoundStore) -> RoundStateResponse:
    """Convert the store snapshot to a response."""
    snap = store.snapshot()
    session = snap.session

    player = None
    if session.player is not None:
        player = PlayerResponse(
            id=session.player.id,
            name=session.player.name,
            hand=_hand_to_response(session.player.hand),
            is_standing=session.player.is_standing,
        )

    settlement = None
    if session.settlement is not None:
        settlement = SettlementResponse(
            outcome=session.settlement.outcome.value,
            bet=float(session.settlement.bet),
            payout=float(session.settlement.payout),
            new_balance=float(session.settlement.new_balance),
        )

    error = None
    if snap.last_error is not None:
        error = ErrorResponse(**snap.last_error.to_dict())

    return RoundStateResponse(
        status=session.status.value,
        session_id=session.session_id,
        game_id=session.game_id,
        bet=float(session.bet),
        balance=float(snap.balance),
        player=player,
        dealer_hand=_hand_to_response(session.dealer_hand, reveal_all=False),
        remaining_cards=session.remaining_cards,
        dealer_polls=session.dealer_polls,
        outcome=session.outcome.value if session.outcome else None,
        settlement=settlement,
        is_loading=snap.is_loading,
        is_polling=snap.is_polling,
        can_bet=snap.can_bet,
        can_hit=snap.can_hit,
        can_stand=snap.can_stand,
        error=error,
    )


@router.post("/new")
async def new_session(registry: Registry) -> SessionResponse:
    """Create a new browser session with a fresh wallet."""
    token, store = registry.create()
    return SessionResponse(session_id=token, balance=float(store.balance))


@router.get("/state")
async def get_state(store: Store) -> RoundStateResponse:
    """Get current round state."""
    return _round_state_response(store)


@router.post("/bet")
async def place_bet(request: BetRequest, store: Store) -> RoundStateResponse:
    """Place a bet and deal the opening hands."""
    await store.bet_and_deal(request.amount)
    return _round_state_response(store)


@router.post("/hit")
async def hit(store: Store) -> RoundStateResponse:
    """Player takes another card."""
    await store.hit()
    return _round_state_response(store)


@router.post("/stand")
async def stand(store: Store) -> RoundStateResponse:
    """Player stands; the dealer plays in the background."""
    await store.stand()
    return _round_state_response(store)


@router.post("/refresh")
async def refresh(store: Store) -> RoundStateResponse:
    """Re-fetch the authority's state for the current round."""
    await store.refresh_state()
    return _round_state_response(store)


@router.post("/reset")
async def new_round(store: Store) -> RoundStateResponse:
    """Discard the current round and return to betting."""
    store.new_round()
    return _round_state_response(store)


@router.delete("")
async def leave(session_id: SessionHeader, store: Store, registry: Registry) -> dict[str, str]:
    """Leave the table and end the session."""
    await store.leave()
    await registry.delete(session_id)
    return {"status": "left"}
