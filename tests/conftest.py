"""Pytest fixtures for blackjack client tests."""

import re
from decimal import Decimal
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio

from core.cards import Card, Rank, Suit, parse_cards
from core.client import AuthorityClient, RequestRecorder, RetryPolicy
from core.game import RoundStore
from core.hand import Hand, score
from core.rules import TableRules

BASE_URL = "http://authority.test"


Failure = int | Exception | dict[str, Any] | httpx.Response


def wire_card(card: Card) -> dict[str, Any]:
    return card.to_wire()


class FakeAuthority:
    """
    Scripted stand-in for the remote card game authority.

    Serves the authority's JSON API through ``httpx.MockTransport``. Tests
    set the opening hands, the cards drawn on hit, how many state polls the
    dealer needs, and the reported result; failures can be queued per route.
    """

    ROUTES = [
        ("GET", re.compile(r"^/hello$"), "hello"),
        ("GET", re.compile(r"^/deck-types$"), "deck_types"),
        ("GET", re.compile(r"^/games$"), "games"),
        ("GET", re.compile(r"^/game/new(?:/(?P<params>.+))?$"), "create"),
        ("POST", re.compile(r"^/game/(?P<gid>[^/]+)/players$"), "add_player"),
        ("DELETE", re.compile(r"^/game/(?P<gid>[^/]+)/players/(?P<pid>[^/]+)$"), "remove_player"),
        ("GET", re.compile(r"^/game/(?P<gid>[^/]+)/shuffle$"), "shuffle"),
        ("GET", re.compile(r"^/game/(?P<gid>[^/]+)/reset(?:/.*)?$"), "reset"),
        ("POST", re.compile(r"^/game/(?P<gid>[^/]+)/start$"), "start"),
        ("POST", re.compile(r"^/game/(?P<gid>[^/]+)/hit/(?P<pid>[^/]+)$"), "hit"),
        ("POST", re.compile(r"^/game/(?P<gid>[^/]+)/stand/(?P<pid>[^/]+)$"), "stand"),
        ("GET", re.compile(r"^/game/(?P<gid>[^/]+)/state$"), "state"),
        ("GET", re.compile(r"^/game/(?P<gid>[^/]+)/results$"), "results"),
        ("GET", re.compile(r"^/game/(?P<gid>[^/]+)$"), "game"),
        ("DELETE", re.compile(r"^/game/(?P<gid>[^/]+)$"), "delete"),
    ]

    def __init__(self) -> None:
        self.game_id = "game-1"
        self.player_id = "player-1"
        self.player_name = "Player"

        # 7 + 5 = 12 against a dealer ten showing, seven in the hole
        self.opening_player = parse_cards("7H 5D")
        self.opening_dealer = [Card.from_string("10S"), Card.from_string("7C", face_up=False)]
        self.hit_cards = parse_cards("7S")
        self.dealer_draws: list[Card] = []

        self.polls_until_finished: int | None = 2
        self.stand_status = "in_progress"
        self.start_status = "in_progress"
        self.result = "win"

        self.remaining_cards = 52
        self.status = "waiting"
        self.player_cards: list[Card] = []
        self.dealer_cards: list[Card] = []
        self.stood = False
        self.polls_after_stand = 0

        self.failures: dict[str, list[Failure]] = {}
        self.calls: list[tuple[str, str]] = []
        self.requests: list[httpx.Request] = []
        self.hooks: dict[str, Callable[[], None]] = {}

    # Scripting helpers

    def fail(self, route: str, *responses: Failure) -> None:
        """Queue failures for a route: a status code, an exception, a raw body or a response."""
        self.failures.setdefault(route, []).extend(responses)

    def on(self, route: str, hook: Callable[[], None]) -> None:
        """Run a one-shot hook when the route is next requested."""
        self.hooks[route] = hook

    def count(self, route: str) -> int:
        return sum(1 for _, name in self.calls if name == route)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # Transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for method, pattern, name in self.ROUTES:
            match = pattern.match(path)
            if request.method == method and match:
                self.calls.append((request.method, name))
                hook = self.hooks.pop(name, None)
                if hook is not None:
                    hook()
                queued = self.failures.get(name)
                if queued:
                    failure = queued.pop(0)
                    if isinstance(failure, Exception):
                        raise failure
                    if isinstance(failure, httpx.Response):
                        return failure
                    if isinstance(failure, dict):
                        return httpx.Response(200, json=failure)
                    return httpx.Response(failure, json={"error": f"{name} failed"})
                return getattr(self, f"_{name}")(request, **match.groupdict())
        return httpx.Response(404, json={"error": f"No route for {request.method} {path}"})

    # Route handlers

    def _hello(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "Hello from the card game API"})

    def _deck_types(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "deck_types": [
                    {"id": 1, "type": "standard", "name": "Standard", "description": "", "cards_per_deck": 52},
                    {"id": 2, "type": "spanish21", "name": "Spanish 21", "description": "", "cards_per_deck": 48},
                ],
                "count": 2,
            },
        )

    def _games(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"games": [self.game_id], "game_count": 1})

    def _create(self, request: httpx.Request, params: str | None = None) -> httpx.Response:
        self.status = "waiting"
        self.stood = False
        self.polls_after_stand = 0
        self.player_cards = []
        self.dealer_cards = []
        return httpx.Response(
            200,
            json={
                "game_id": self.game_id,
                "deck_name": "Standard 52-card deck",
                "deck_type": "standard",
                "message": "Game created",
                "remaining_cards": self.remaining_cards,
                "created": "2024-01-01T00:00:00Z",
            },
        )

    def _add_player(self, request: httpx.Request, gid: str) -> httpx.Response:
        return httpx.Response(
            201,
            json={
                "game_id": gid,
                "player": self._player_dict(),
                "message": "Player added",
            },
        )

    def _remove_player(self, request: httpx.Request, gid: str, pid: str) -> httpx.Response:
        return httpx.Response(200, json={"game_id": gid, "player_id": pid, "message": "removed"})

    def _shuffle(self, request: httpx.Request, gid: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={"game_id": gid, "message": "Deck shuffled", "remaining_cards": self.remaining_cards},
        )

    def _reset(self, request: httpx.Request, gid: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={"game_id": gid, "message": "Deck reset", "remaining_cards": 52, "num_decks": 1},
        )

    def _start(self, request: httpx.Request, gid: str) -> httpx.Response:
        self.player_cards = list(self.opening_player)
        self.dealer_cards = list(self.opening_dealer)
        self.remaining_cards -= 4
        self.status = self.start_status
        return httpx.Response(
            200,
            json={"game_id": gid, "status": self.status, "message": "Game started", "current_player": 0},
        )

    def _hit(self, request: httpx.Request, gid: str, pid: str) -> httpx.Response:
        self.player_cards.append(self.hit_cards.pop(0))
        self.remaining_cards -= 1
        result = score(self.player_cards)
        if result.is_bust:
            self.status = "finished"
            self.result = "bust"
        return httpx.Response(
            200,
            json={
                "game_id": gid,
                "player_id": pid,
                "player_name": self.player_name,
                "hand_value": result.value,
                "hand_size": len(self.player_cards),
                "has_blackjack": result.is_blackjack,
                "is_busted": result.is_bust,
                "message": "Card dealt",
            },
        )

    def _stand(self, request: httpx.Request, gid: str, pid: str) -> httpx.Response:
        self.stood = True
        self.status = self.stand_status
        if self.status == "finished":
            self._finish_dealer()
        return httpx.Response(
            200,
            json={
                "game_id": gid,
                "player_id": pid,
                "player_name": self.player_name,
                "status": self.status,
                "message": "Player stands",
            },
        )

    def _state(self, request: httpx.Request, gid: str) -> httpx.Response:
        if self.stood and self.status == "in_progress":
            self.polls_after_stand += 1
            if (
                self.polls_until_finished is not None
                and self.polls_after_stand >= self.polls_until_finished
            ):
                self.status = "finished"
                self._finish_dealer()
        return httpx.Response(200, json=self._state_dict(gid))

    def _results(self, request: httpx.Request, gid: str) -> httpx.Response:
        player = score(self.player_cards)
        dealer = score(self.dealer_cards)
        return httpx.Response(
            200,
            json={
                "game_id": gid,
                "status": "finished",
                "dealer": {
                    "hand": [wire_card(c) for c in self.dealer_cards],
                    "hand_value": dealer.value,
                    "has_blackjack": dealer.is_blackjack,
                    "is_busted": dealer.is_bust,
                },
                "players": [
                    {
                        "player_id": self.player_id,
                        "player_name": self.player_name,
                        "hand_value": player.value,
                        "has_blackjack": player.is_blackjack,
                        "is_busted": player.is_bust,
                        "result": self.result,
                    }
                ],
                "results": {self.player_id: self.result},
            },
        )

    def _game(self, request: httpx.Request, gid: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "game_id": gid,
                "deck_name": "Standard 52-card deck",
                "deck_type": "standard",
                "remaining_cards": self.remaining_cards,
                "is_empty": False,
            },
        )

    def _delete(self, request: httpx.Request, gid: str) -> httpx.Response:
        return httpx.Response(200, json={"game_id": gid, "message": "Game deleted"})

    # Payload builders

    def _finish_dealer(self) -> None:
        # The authority does not flip the hole card; the client reveals it
        self.dealer_cards.extend(self.dealer_draws)
        self.dealer_draws = []

    def _player_dict(self) -> dict[str, Any]:
        result = score(self.player_cards)
        return {
            "id": self.player_id,
            "name": self.player_name,
            "hand": [wire_card(c) for c in self.player_cards],
            "hand_size": len(self.player_cards),
            "hand_value": result.value,
            "has_blackjack": result.is_blackjack,
            "is_busted": result.is_bust,
        }

    def _state_dict(self, gid: str) -> dict[str, Any]:
        dealer = score(self.dealer_cards, reveal_all=False)
        return {
            "game_id": gid,
            "game_type": "blackjack",
            "status": self.status,
            "current_player": 0,
            "deck_name": "Standard 52-card deck",
            "deck_type": "standard",
            "remaining_cards": self.remaining_cards,
            "players": [self._player_dict()],
            "dealer": {
                "id": "dealer",
                "name": "Dealer",
                "hand": [wire_card(c) for c in self.dealer_cards],
                "hand_size": len(self.dealer_cards),
                "hand_value": dealer.value,
            },
        }


@pytest.fixture
def authority():
    """Scripted fake authority."""
    return FakeAuthority()


@pytest.fixture
def recorder():
    """Request observer that keeps every record."""
    return RequestRecorder()


@pytest.fixture
def sleeps():
    """Delays requested by the client between retries."""
    return []


@pytest_asyncio.fixture
async def client(authority, recorder, sleeps):
    """Client wired to the fake authority, 2 retries with no delay."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    async with AuthorityClient(
        BASE_URL,
        timeout=5.0,
        retry=RetryPolicy(attempts=2, delay=0.25),
        transport=authority.transport(),
        observer=recorder,
        sleep=fake_sleep,
    ) as c:
        yield c


@pytest.fixture
def rules():
    """Table rules with instant dealer polling."""
    return TableRules(
        min_bet=5,
        max_bet=500,
        starting_balance=Decimal("1000"),
        dealer_poll_interval=0,
        dealer_poll_max_attempts=5,
    )


@pytest_asyncio.fixture
async def store(client, rules):
    """Round store backed by the fake authority."""
    s = RoundStore(client, rules=rules)
    yield s
    await s.close()


@pytest.fixture
def empty_hand():
    """An empty player hand."""
    return Hand()


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return Hand([Card(Rank.ACE, Suit.SPADES), Card(Rank.KING, Suit.HEARTS)])


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return Hand([Card(Rank.ACE, Suit.SPADES), Card(Rank.SIX, Suit.HEARTS)])


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return Hand([Card(Rank.TEN, Suit.SPADES), Card(Rank.SIX, Suit.HEARTS)])


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return Hand(parse_cards("10S 6H KC"))


