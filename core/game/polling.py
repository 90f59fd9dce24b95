"""Bounded, cancellable polling of the authority during the dealer's turn."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from core.client.models import GameSnapshot
from core.errors import GameError

logger = logging.getLogger(__name__)


class CancelToken:
    """Cancellation signal shared between a poll loop and its owner."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, delay: float) -> bool:
        """
        Wait for ``delay`` seconds or until cancelled.

        Returns:
            True if the token was cancelled
        """
        if delay <= 0:
            await asyncio.sleep(0)
            return self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
        return self.cancelled


@dataclass(frozen=True)
class PollResult:
    """How a poll loop ended."""

    snapshot: GameSnapshot | None
    attempts: int
    finished: bool
    cancelled: bool

    @property
    def exhausted(self) -> bool:
        return not self.finished and not self.cancelled


async def poll_until_finished(
    fetch: Callable[[], Awaitable[GameSnapshot]],
    *,
    interval: float,
    max_attempts: int,
    token: CancelToken,
    is_current: Callable[[], bool],
    on_snapshot: Callable[[GameSnapshot, int], None] | None = None,
    on_error: Callable[[GameError, int], None] | None = None,
) -> PollResult:
    """
    Poll game state until the authority reports the round finished.

    Waits ``interval`` before each poll. The loop stops early when the
    token is cancelled or ``is_current`` turns False; in that case no
    snapshot is handed to ``on_snapshot``. A failed poll (after the
    client's own retries) counts as an attempt and polling continues.

    Args:
        fetch: Coroutine returning the current game snapshot
        interval: Seconds between polls
        max_attempts: Upper bound on polls
        token: Cancellation token
        is_current: Checks the session the loop was started for is still current
        on_snapshot: Called with each accepted snapshot and its attempt number
        on_error: Called with each failed poll's error

    Returns:
        PollResult describing how the loop ended
    """
    snapshot: GameSnapshot | None = None

    for attempt in range(1, max_attempts + 1):
        if await token.sleep(interval) or not is_current():
            return PollResult(snapshot, attempt - 1, finished=False, cancelled=True)

        try:
            polled = await fetch()
        except GameError as exc:
            logger.warning("Dealer poll %d/%d failed: %s", attempt, max_attempts, exc.message)
            if on_error is not None:
                on_error(exc, attempt)
            continue

        if token.cancelled or not is_current():
            return PollResult(snapshot, attempt, finished=False, cancelled=True)

        snapshot = polled
        if on_snapshot is not None:
            on_snapshot(snapshot, attempt)

        if snapshot.status == "finished":
            return PollResult(snapshot, attempt, finished=True, cancelled=False)

    return PollResult(snapshot, max_attempts, finished=False, cancelled=False)
