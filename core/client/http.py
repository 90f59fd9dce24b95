"""Resilient HTTP client for the remote blackjack authority."""

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from core.client.models import (
    DeckOperation,
    DeckTypeOption,
    DeckTypesResponse,
    GameCreated,
    GameDeleted,
    GameInfo,
    GameListResponse,
    GameSnapshot,
    HealthResponse,
    HitResult,
    PlayerAdded,
    PlayerRemoved,
    RoundResults,
    StandResult,
    StartResult,
)
from core.client.monitoring import RequestObserver, RequestRecord, log_request, notify
from core.errors import ErrorKind, GameError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

Sleeper = Callable[[float], Awaitable[Any]]

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_id(value: str, label: str = "id") -> str:
    """
    Validate a game or player id before it is put into a URL.

    Raises:
        GameError: VALIDATION if the id is empty or contains unsafe characters
    """
    if not isinstance(value, str) or not _ID_PATTERN.match(value.strip()):
        raise GameError.validation(f"Invalid {label}: {value!r}", field=label)
    return value.strip()


def build_endpoint(base: str, *params: str | int | bool | None) -> str:
    """Append the non-None params to base as path segments."""
    parts = [str(p).lower() if isinstance(p, bool) else str(p) for p in params if p is not None]
    return "/".join([base, *parts]) if parts else base


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for retryable failures."""

    attempts: int = 3  # extra attempts after the first one
    delay: float = 1.0  # seconds between attempts

    def __post_init__(self) -> None:
        if self.attempts < 0:
            raise ValueError("retry attempts must be >= 0")
        if self.delay < 0:
            raise ValueError("retry delay must be >= 0")


class AuthorityClient:
    """
    Async client for the card game authority.

    Every attempt carries a timeout and is reported to the request
    observer. Network, server and timeout failures are retried with a
    fixed delay; client failures are raised immediately.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        observer: RequestObserver | None = None,
        sleep: Sleeper = asyncio.sleep,
        client_version: str = "0.1.0",
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Authority base URL
            timeout: Per-attempt timeout in seconds
            retry: Retry policy (defaults to 3 extra attempts, 1s apart)
            transport: httpx transport override, used by tests
            observer: Receives a RequestRecord for every attempt
            sleep: Coroutine used to wait between attempts
            client_version: Sent as X-Client-Version
        """
        self.retry = retry or RetryPolicy()
        self._observer = observer or log_request
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "X-Client-Version": client_version,
                "X-Requested-With": "XMLHttpRequest",
            },
        )

    @classmethod
    def from_config(cls, authority: Any, **kwargs: Any) -> "AuthorityClient":
        """Build a client from an AuthorityConfig-like object."""
        return cls(
            base_url=authority.base_url,
            timeout=authority.timeout,
            retry=RetryPolicy(authority.retry_attempts, authority.retry_delay),
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AuthorityClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def send(self, method: str, endpoint: str, json: Any = None) -> Any:
        """
        Send a request, retrying retryable failures.

        Returns:
            The decoded JSON body

        Raises:
            GameError: The final attempt's error
        """
        _, data = await self._send(method, endpoint, json)
        return data

    async def _send(self, method: str, endpoint: str, json: Any = None) -> tuple[int, Any]:
        attempt = 1
        while True:
            try:
                return await self._attempt(method, endpoint, json, attempt)
            except GameError as exc:
                if not exc.is_retryable or attempt > self.retry.attempts:
                    raise
                logger.warning(
                    "API request attempt %d/%d failed (%s: %s), retrying in %.2fs",
                    attempt,
                    self.retry.attempts + 1,
                    exc.kind,
                    exc.message,
                    self.retry.delay,
                )
                await self._sleep(self.retry.delay)
                attempt += 1

    async def _attempt(
        self,
        method: str,
        endpoint: str,
        json: Any,
        attempt: int,
    ) -> tuple[int, Any]:
        start = time.perf_counter()
        status = 0
        try:
            try:
                response = await self._client.request(method, endpoint, json=json)
            except httpx.TimeoutException as exc:
                raise GameError.timeout(
                    f"{method} {endpoint} timed out",
                    endpoint=endpoint,
                ) from exc
            except httpx.TransportError as exc:
                raise GameError(
                    ErrorKind.NETWORK,
                    str(exc) or "Network error occurred",
                    details={"endpoint": endpoint},
                ) from exc

            status = response.status_code
            return status, self._decode(response)
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            notify(self._observer, RequestRecord(method, endpoint, duration_ms, status, attempt))

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.is_error:
            message = f"HTTP error! status: {response.status_code}"
            details = None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                details = body
                message = str(body.get("error") or body.get("message") or message)
            raise GameError.from_status(response.status_code, message, details)

        try:
            return response.json()
        except ValueError as exc:
            raise GameError(
                ErrorKind.CLIENT,
                "Response body is not valid JSON",
                status=response.status_code,
            ) from exc

    async def _call(
        self,
        model: type[ModelT],
        method: str,
        endpoint: str,
        json: Any = None,
    ) -> ModelT:
        status, data = await self._send(method, endpoint, json)
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise GameError(
                ErrorKind.CLIENT,
                f"Unexpected response from {method} {endpoint}",
                status=status,
                details=exc.errors(include_url=False),
            ) from exc

    # Authority operations

    async def health_check(self) -> HealthResponse:
        return await self._call(HealthResponse, "GET", "/hello")

    async def get_deck_types(self) -> DeckTypesResponse:
        return await self._call(DeckTypesResponse, "GET", "/deck-types")

    async def list_games(self) -> GameListResponse:
        return await self._call(GameListResponse, "GET", "/games")

    async def create_game(
        self,
        decks: int = 1,
        deck_type: DeckTypeOption = "standard",
        max_players: int | None = None,
    ) -> GameCreated:
        """
        Create a new game.

        Path parameters are only added as far as they differ from the
        authority's defaults: /game/new[/decks[/type[/max_players]]].
        """
        if decks < 1:
            raise GameError.validation("Deck count must be at least 1", decks=decks)

        params: list[str | int] = []
        if decks != 1:
            params.append(decks)
            if deck_type != "standard":
                params.append(deck_type)
                if max_players is not None:
                    params.append(max_players)

        return await self._call(GameCreated, "GET", build_endpoint("/game/new", *params))

    async def get_game(self, game_id: str) -> GameInfo:
        game_id = validate_id(game_id, "game id")
        return await self._call(GameInfo, "GET", f"/game/{game_id}")

    async def delete_game(self, game_id: str) -> GameDeleted:
        game_id = validate_id(game_id, "game id")
        return await self._call(GameDeleted, "DELETE", f"/game/{game_id}")

    async def get_game_state(self, game_id: str) -> GameSnapshot:
        game_id = validate_id(game_id, "game id")
        return await self._call(GameSnapshot, "GET", f"/game/{game_id}/state")

    async def shuffle_deck(self, game_id: str) -> DeckOperation:
        game_id = validate_id(game_id, "game id")
        return await self._call(DeckOperation, "GET", f"/game/{game_id}/shuffle")

    async def reset_deck(
        self,
        game_id: str,
        decks: int | None = None,
        deck_type: DeckTypeOption | None = None,
    ) -> DeckOperation:
        game_id = validate_id(game_id, "game id")
        endpoint = build_endpoint(f"/game/{game_id}/reset", decks, deck_type)
        return await self._call(DeckOperation, "GET", endpoint)

    async def add_player(self, game_id: str, name: str) -> PlayerAdded:
        game_id = validate_id(game_id, "game id")
        name = name.strip()
        if not name or len(name) > 50:
            raise GameError.validation("Player name must be 1-50 characters", name=name)
        return await self._call(PlayerAdded, "POST", f"/game/{game_id}/players", json={"name": name})

    async def remove_player(self, game_id: str, player_id: str) -> PlayerRemoved:
        game_id = validate_id(game_id, "game id")
        player_id = validate_id(player_id, "player id")
        return await self._call(PlayerRemoved, "DELETE", f"/game/{game_id}/players/{player_id}")

    async def start_game(self, game_id: str) -> StartResult:
        game_id = validate_id(game_id, "game id")
        return await self._call(StartResult, "POST", f"/game/{game_id}/start")

    async def hit(self, game_id: str, player_id: str) -> HitResult:
        game_id = validate_id(game_id, "game id")
        player_id = validate_id(player_id, "player id")
        return await self._call(HitResult, "POST", f"/game/{game_id}/hit/{player_id}")

    async def stand(self, game_id: str, player_id: str) -> StandResult:
        game_id = validate_id(game_id, "game id")
        player_id = validate_id(player_id, "player id")
        return await self._call(StandResult, "POST", f"/game/{game_id}/stand/{player_id}")

    async def get_results(self, game_id: str) -> RoundResults:
        game_id = validate_id(game_id, "game id")
        return await self._call(RoundResults, "GET", f"/game/{game_id}/results")
