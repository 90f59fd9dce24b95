"""Pydantic models for the authority's JSON responses."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from core.cards import Card, Rank, Suit
from core.hand import Hand
from core.settlement import Outcome

GameStatus = Literal["waiting", "in_progress", "finished"]
DeckTypeOption = Literal["standard", "spanish21"]


class WireModel(BaseModel):
    """Base model; unknown fields from the authority are ignored."""

    model_config = ConfigDict(extra="ignore")


class WireCard(WireModel):
    """Card as sent by the authority."""

    rank: int = Field(..., ge=1, le=13)
    suit: int = Field(..., ge=0, le=3)
    face_up: bool = True

    def to_card(self) -> Card:
        return Card(Rank(self.rank), Suit(self.suit), self.face_up)


class WirePlayer(WireModel):
    """Player (or dealer) with hand."""

    id: str = ""
    name: str = ""
    hand: list[WireCard] = Field(default_factory=list)
    hand_size: int = 0
    hand_value: int | None = None
    has_blackjack: bool | None = None
    is_busted: bool | None = None

    def to_hand(self) -> Hand:
        return Hand([c.to_card() for c in self.hand])


class HealthResponse(WireModel):
    message: str


class DeckType(WireModel):
    id: int
    type: str
    name: str
    description: str = ""
    cards_per_deck: int


class DeckTypesResponse(WireModel):
    deck_types: list[DeckType]
    count: int


class GameListResponse(WireModel):
    games: list[str]
    game_count: int


class GameCreated(WireModel):
    """Response to game creation."""

    game_id: str
    deck_name: str = ""
    deck_type: str = "standard"
    message: str = ""
    remaining_cards: int = Field(..., ge=0)
    created: str | None = None
    game_type: str | None = None
    max_players: int | None = None
    current_players: int | None = None


class GameInfo(WireModel):
    game_id: str
    deck_name: str = ""
    deck_type: str = "standard"
    remaining_cards: int = Field(..., ge=0)
    is_empty: bool = False
    created: str | None = None
    last_used: str | None = None


class GameDeleted(WireModel):
    game_id: str
    message: str = ""


class DeckOperation(WireModel):
    """Response to shuffle and reset."""

    game_id: str
    deck_name: str = ""
    deck_type: str = "standard"
    message: str = ""
    remaining_cards: int = Field(..., ge=0)
    num_decks: int | None = None


class PlayerAdded(WireModel):
    game_id: str
    player: WirePlayer
    message: str = ""


class PlayerRemoved(WireModel):
    game_id: str
    player_id: str
    message: str = ""


class StartResult(WireModel):
    game_id: str
    status: GameStatus
    message: str = ""
    current_player: int | None = None


class HitResult(WireModel):
    game_id: str
    player_id: str
    player_name: str = ""
    hand_value: int
    hand_size: int
    has_blackjack: bool = False
    is_busted: bool = False
    message: str = ""


class StandResult(WireModel):
    game_id: str
    player_id: str
    player_name: str = ""
    status: GameStatus
    current_player: int | None = None
    message: str = ""


class GameSnapshot(WireModel):
    """Full game state; the endpoint polled during the dealer's turn."""

    game_id: str
    game_type: str = "blackjack"
    status: GameStatus
    current_player: int | None = None
    deck_name: str = ""
    deck_type: str = "standard"
    remaining_cards: int = Field(..., ge=0)
    max_players: int | None = None
    current_players: int | None = None
    players: list[WirePlayer] = Field(default_factory=list)
    dealer: WirePlayer = Field(default_factory=WirePlayer)

    def find_player(self, player_id: str) -> WirePlayer | None:
        for player in self.players:
            if player.id == player_id:
                return player
        return None


class DealerResult(WireModel):
    hand: list[WireCard] = Field(default_factory=list)
    hand_value: int
    has_blackjack: bool = False
    is_busted: bool = False

    def to_hand(self) -> Hand:
        """The dealer's final hand, every card shown."""
        return Hand([c.to_card() for c in self.hand]).revealed()


class PlayerResult(WireModel):
    player_id: str
    player_name: str = ""
    hand_value: int
    has_blackjack: bool = False
    is_busted: bool = False
    result: str


class RoundResults(WireModel):
    """Final results of a finished round."""

    game_id: str
    status: str = "finished"
    dealer: DealerResult
    players: list[PlayerResult] = Field(default_factory=list)
    results: dict[str, str] = Field(default_factory=dict)

    def outcome_for(self, player_id: str) -> Outcome | None:
        """Return the outcome for a player, or None if the player is missing."""
        for player in self.players:
            if player.player_id == player_id:
                return Outcome.parse(player.result)
        if player_id in self.results:
            return Outcome.parse(self.results[player_id])
        return None
