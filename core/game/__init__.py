"""Round state machine and its session model."""

from core.game.events import EventEmitter, EventType, GameEvent
from core.game.state import RoundStatus
from core.game.session import PlayerSeat, RoundSession, StoreSnapshot
from core.game.polling import CancelToken, PollResult, poll_until_finished
from core.game.engine import RoundStore

__all__ = [
    "EventEmitter",
    "EventType",
    "GameEvent",
    "RoundStatus",
    "PlayerSeat",
    "RoundSession",
    "StoreSnapshot",
    "CancelToken",
    "PollResult",
    "poll_until_finished",
    "RoundStore",
]
