"""Round store: the client-side blackjack round state machine."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import AsyncIterator, Callable
from uuid import uuid4

from transitions import Machine

from core.bankroll import Wallet
from core.client.http import AuthorityClient
from core.client.models import GameSnapshot
from core.errors import ErrorKind, GameError
from core.game.events import EventEmitter, EventType, GameEvent
from core.game.polling import CancelToken, PollResult, poll_until_finished
from core.game.session import PlayerSeat, RoundSession, StoreSnapshot
from core.game.state import RoundStatus
from core.rules import TableRules
from core.settlement import Outcome

logger = logging.getLogger(__name__)


class StaleResponse(Exception):
    """A response arrived for a session that is no longer current."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} is no longer current")
        self.session_id = session_id


class RoundStore:
    """
    Blackjack round store using a state machine.

    Owns the single current RoundSession and funnels every mutation through
    the action methods. All game truth comes from the remote authority; the
    store orders the calls, reconciles responses, and settles the wallet.

    Balance handling is two-phase: ``place_bet`` reserves the stake in the
    wallet, then the round either settles (credit payout) or, when it never
    got started on the authority, refunds the reservation.
    """

    # State machine states
    STATES = [s.machine_state for s in RoundStatus]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "reserve_bet", "source": "betting", "dest": "creating"},
        {"trigger": "start_play", "source": "creating", "dest": "playing"},
        {"trigger": "begin_dealer_turn", "source": "playing", "dest": "dealer_turn"},
        {"trigger": "finish", "source": ["playing", "dealer_turn"], "dest": "finished"},
        {"trigger": "reset", "source": "*", "dest": "betting"},
    ]

    def __init__(
        self,
        client: AuthorityClient,
        rules: TableRules | None = None,
        wallet: Wallet | None = None,
    ) -> None:
        """
        Initialize a round store.

        Args:
            client: Request client for the authority
            rules: Betting limits and polling settings
            wallet: Player wallet (created from rules.starting_balance if omitted)
        """
        self.client = client
        self.rules = rules or TableRules()
        self.wallet = wallet or Wallet(self.rules.starting_balance)
        self.events = EventEmitter()

        self._session = RoundSession()
        self._last_error: GameError | None = None
        self._loading = 0
        self._poll_task: asyncio.Task[None] | None = None
        self._poll_token: CancelToken | None = None
        self._background: set[asyncio.Task[None]] = set()
        self._previous_status = RoundStatus.BETTING

        # Initialize state machine
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial=RoundStatus.BETTING.machine_state,
            auto_transitions=False,
            model_attribute="_machine_state",
            after_state_change="_on_state_change",
        )

    # Read-only view

    @property
    def status(self) -> RoundStatus:
        """Get current round status as enum."""
        return RoundStatus.from_machine_state(self._machine_state)  # type: ignore[attr-defined]

    @property
    def session(self) -> RoundSession:
        return self._session

    @property
    def balance(self) -> Decimal:
        return self.wallet.balance

    @property
    def is_loading(self) -> bool:
        return self._loading > 0

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def last_error(self) -> GameError | None:
        return self._last_error

    @property
    def can_bet(self) -> bool:
        return self.status == RoundStatus.BETTING and self.wallet.can_afford(self.rules.min_bet)

    @property
    def can_hit(self) -> bool:
        """Check if hitting is allowed."""
        player = self._session.player
        return self.status == RoundStatus.PLAYING and player is not None and player.can_hit

    @property
    def can_stand(self) -> bool:
        """Check if standing is allowed."""
        player = self._session.player
        return self.status == RoundStatus.PLAYING and player is not None and player.can_stand

    @property
    def is_game_started(self) -> bool:
        return self.status in (RoundStatus.PLAYING, RoundStatus.DEALER_TURN, RoundStatus.FINISHED)

    @property
    def is_game_finished(self) -> bool:
        return self.status == RoundStatus.FINISHED

    def snapshot(self) -> StoreSnapshot:
        """Return everything a consumer needs to render the round."""
        return StoreSnapshot(
            session=self._session,
            balance=self.balance,
            is_loading=self.is_loading,
            is_polling=self.is_polling,
            last_error=self._last_error,
            can_bet=self.can_bet,
            can_hit=self.can_hit,
            can_stand=self.can_stand,
        )

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to round events."""
        self.events.subscribe(handler, event_type)

    # Actions

    def place_bet(self, amount: int | Decimal) -> RoundSession:
        """
        Validate and reserve a bet, moving to CREATING.

        No network call is made. On failure the store stays in BETTING and
        nothing is debited.

        Raises:
            GameError: VALIDATION if the state or amount is invalid
        """
        self._require("place_bet", RoundStatus.BETTING)
        stake = self._validate_bet(amount)

        session_id = uuid4().hex
        self.wallet.reserve(session_id, stake)
        self._session = RoundSession(session_id=session_id, bet=stake)
        self._last_error = None

        self.events.emit_new(
            EventType.BET_PLACED,
            session_id=session_id,
            amount=str(stake),
            balance=str(self.balance),
        )
        self.reserve_bet()  # Trigger state transition
        return self._session

    async def deal_initial_cards(self) -> RoundSession:
        """
        Create the game on the authority and deal the opening hands.

        Calls create game, add player, shuffle, start, and fetches the
        resulting state. Any failure refunds the reserved bet and returns
        to BETTING before the error is re-raised.
        """
        self._require("deal", RoundStatus.CREATING)
        session_id = self._session.session_id

        async with self._action("deal", session_id):
            try:
                created = await self.client.create_game(
                    self.rules.num_decks,
                    self.rules.deck_type,
                    self.rules.max_players,
                )
                self._ensure_current(session_id)
                game_id = created.game_id

                added = await self.client.add_player(game_id, self.rules.player_name)
                self._ensure_current(session_id)

                await self.client.shuffle_deck(game_id)
                self._ensure_current(session_id)
                self.events.emit_new(EventType.SHOE_SHUFFLED, session_id=session_id, game_id=game_id)

                started = await self.client.start_game(game_id)
                self._ensure_current(session_id)

                state = await self.client.get_game_state(game_id)
                self._ensure_current(session_id)
            except GameError as exc:
                self._rollback_bet(session_id, exc)
                raise

            player = PlayerSeat(id=added.player.id, name=added.player.name)
            self._session = replace(self._session, game_id=game_id, player=player)
            self._apply_snapshot(state, reveal_dealer=False)
            self.events.emit_new(
                EventType.CARDS_DEALT,
                session_id=session_id,
                game_id=game_id,
                player_value=self._player.hand_value,
                dealer_showing=self._session.dealer_visible_value,
            )

            if self._player.has_blackjack:
                self.events.emit_new(EventType.PLAYER_BLACKJACK, session_id=session_id)

            self.start_play()
            if started.status == "finished" or state.status == "finished":
                # Natural blackjack on either side ends the round at once
                await self._complete_round(session_id, state)

        return self._session

    async def bet_and_deal(self, amount: int | Decimal) -> RoundSession:
        """Place a bet and deal in one step."""
        self.place_bet(amount)
        return await self.deal_initial_cards()

    async def hit(self) -> RoundSession:
        """
        Player takes another card.

        A bust reported by the authority (or derived locally from the
        refreshed hand) moves the round straight to settlement.
        """
        self._require("hit", RoundStatus.PLAYING)
        player = self._player
        if not player.can_hit:
            raise self._invalid("hit", "Cannot hit: hand is busted or standing")

        session_id = self._session.session_id
        game_id = self._game_id

        async with self._action("hit", session_id):
            result = await self.client.hit(game_id, player.id)
            self._ensure_current(session_id)

            state = await self.client.get_game_state(game_id)
            self._ensure_current(session_id)
            self._apply_snapshot(state, reveal_dealer=self.status != RoundStatus.PLAYING)

            self.events.emit_new(
                EventType.PLAYER_HIT,
                session_id=session_id,
                hand_value=self._player.hand_value,
            )

            if result.is_busted or self._player.is_busted:
                self.events.emit_new(
                    EventType.PLAYER_BUSTS,
                    session_id=session_id,
                    hand_value=self._player.hand_value,
                )
                await self._complete_round(session_id, state)
            elif state.status == "finished":
                await self._complete_round(session_id, state)

        return self._session

    async def stand(self) -> RoundSession:
        """
        Player stands.

        If the authority reports the round finished it is settled at once;
        otherwise the store enters DEALER_TURN and starts polling.
        """
        self._require("stand", RoundStatus.PLAYING)
        player = self._player
        if not player.can_stand:
            raise self._invalid("stand", "Cannot stand: hand is busted or standing")

        session_id = self._session.session_id
        game_id = self._game_id

        async with self._action("stand", session_id):
            result = await self.client.stand(game_id, player.id)
            self._ensure_current(session_id)

            self._session = replace(self._session, player=replace(player, is_standing=True))
            self.events.emit_new(
                EventType.PLAYER_STAND,
                session_id=session_id,
                hand_value=player.hand_value,
            )

            if result.status == "finished":
                await self._complete_round(session_id)
            else:
                self.begin_dealer_turn()
                self._reveal_dealer()
                self._start_dealer_poll(session_id)

        return self._session

    async def refresh_state(self) -> RoundSession:
        """Re-fetch the authority's snapshot for the current round."""
        self._require("refresh", RoundStatus.PLAYING, RoundStatus.DEALER_TURN)
        session_id = self._session.session_id

        async with self._action("refresh", session_id):
            state = await self.client.get_game_state(self._game_id)
            self._ensure_current(session_id)
            self._apply_snapshot(state, reveal_dealer=self.status == RoundStatus.DEALER_TURN)
            if state.status == "finished":
                await self._complete_round(session_id, state)

        return self._session

    async def wait_for_dealer(self) -> RoundSession:
        """Wait for a running dealer poll loop to end."""
        task = self._poll_task
        if task is not None:
            await asyncio.shield(task)
        return self._session

    def new_round(self) -> RoundSession:
        """
        Discard the current round and return to BETTING.

        Valid from FINISHED, or from any state as error recovery. A bet
        still in CREATING never reached the table and is refunded; a bet
        abandoned mid-play is forfeited.
        """
        status = self.status
        previous = self._session
        self._cancel_dealer_poll()

        if status == RoundStatus.CREATING:
            self._refund(previous.session_id)
        elif status in (RoundStatus.PLAYING, RoundStatus.DEALER_TURN):
            logger.warning(
                "Abandoning round %s in %s, bet of %s forfeited",
                previous.session_id,
                status,
                previous.bet,
            )

        self._session = RoundSession()
        self._last_error = None
        self.reset()
        return self._session

    async def leave(self) -> None:
        """Leave the table: reset locally and delete the game on the authority."""
        game_id = self._session.game_id
        self.new_round()
        if game_id is None:
            return
        try:
            await self.client.delete_game(game_id)
        except GameError as exc:
            logger.warning("Could not delete game %s: %s", game_id, exc.message)

    async def close(self) -> None:
        """Stop polling and release the HTTP client."""
        self._cancel_dealer_poll()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self.client.aclose()

    # Dealer turn

    def _start_dealer_poll(self, session_id: str) -> None:
        self._cancel_dealer_poll()
        token = CancelToken()
        self._poll_token = token
        task = asyncio.create_task(
            self._run_dealer_poll(session_id, token),
            name=f"dealer-poll-{session_id}",
        )
        # Superseded loops keep running until their next currency check
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        self._poll_task = task

    def _cancel_dealer_poll(self) -> None:
        if self._poll_token is not None:
            self._poll_token.cancel()
        self._poll_token = None
        self._poll_task = None

    async def _run_dealer_poll(self, session_id: str, token: CancelToken) -> None:
        game_id = self._game_id

        def on_snapshot(snapshot: GameSnapshot, attempt: int) -> None:
            self._apply_snapshot(snapshot, reveal_dealer=True)
            self._session = replace(self._session, dealer_polls=attempt)
            self.events.emit_new(
                EventType.DEALER_POLLED,
                session_id=session_id,
                attempt=attempt,
                status=snapshot.status,
                dealer_value=self._session.dealer_hand.value,
            )

        def on_error(exc: GameError, attempt: int) -> None:
            self._session = replace(self._session, dealer_polls=attempt)
            self._record_error("dealer_poll", exc)

        try:
            result: PollResult = await poll_until_finished(
                lambda: self.client.get_game_state(game_id),
                interval=self.rules.dealer_poll_interval,
                max_attempts=self.rules.dealer_poll_max_attempts,
                token=token,
                is_current=lambda: self._is_current(session_id),
                on_snapshot=on_snapshot,
                on_error=on_error,
            )
            if result.cancelled:
                logger.debug("Dealer poll for %s cancelled after %d polls", session_id, result.attempts)
            elif result.finished:
                await self._complete_round(session_id, result.snapshot)
            else:
                self._mark_unresolved(session_id, result.attempts)
        except StaleResponse:
            self._discard("dealer_poll", session_id)
        except GameError as exc:
            if self._is_current(session_id):
                self._record_error("dealer_poll", exc)

    def _mark_unresolved(self, session_id: str, attempts: int) -> None:
        error = GameError.timeout(
            f"Dealer turn did not finish after {attempts} polls",
            session_id=session_id,
            attempts=attempts,
        )
        self._settle(session_id, Outcome.UNRESOLVED, error=error)
        self._last_error = error
        self.events.emit_new(
            EventType.ROUND_UNRESOLVED,
            session_id=session_id,
            attempts=attempts,
        )
        logger.error("Round %s unresolved: %s", session_id, error.message)

    # Settlement

    async def _complete_round(self, session_id: str, state: GameSnapshot | None = None) -> None:
        """Fetch results for a finished round and settle it."""
        game_id = self._game_id
        if state is None:
            state = await self.client.get_game_state(game_id)
            self._ensure_current(session_id)
        self._apply_snapshot(state, reveal_dealer=True)

        results = await self.client.get_results(game_id)
        self._ensure_current(session_id)

        outcome = results.outcome_for(self._player.id)
        if outcome is None:
            raise GameError(
                ErrorKind.CLIENT,
                "Results did not include the player",
                details={"game_id": game_id, "player_id": self._player.id},
            )
        if results.dealer.hand:
            self._session = replace(self._session, dealer_hand=results.dealer.to_hand())
        self._settle(session_id, outcome)

    def _settle(self, session_id: str, outcome: Outcome, error: GameError | None = None) -> None:
        """Settle exactly once; FINISHED is terminal until new_round."""
        if self.status == RoundStatus.FINISHED or self._session.is_settled:
            logger.debug("Round %s already settled", session_id)
            return

        settlement = self.wallet.settle(session_id, outcome)
        self._session = replace(
            self._session,
            outcome=outcome,
            settlement=settlement,
            error=error,
        )
        self._cancel_dealer_poll()
        self.finish()

        if settlement is not None:
            self.events.emit_new(
                EventType.ROUND_SETTLED,
                session_id=session_id,
                outcome=outcome.value,
                payout=str(settlement.payout),
                balance=str(settlement.new_balance),
            )
            logger.info(
                "Round %s settled: %s, payout %s, balance %s",
                session_id,
                outcome,
                settlement.payout,
                settlement.new_balance,
            )

    def _rollback_bet(self, session_id: str, error: GameError) -> None:
        """Compensating action for a deal that failed."""
        if not self._is_current(session_id):
            return
        self._refund(session_id)
        self._session = RoundSession(session_id=session_id, error=error)
        self.reset()

    def _refund(self, session_id: str) -> None:
        refunded = self.wallet.refund(session_id)
        if refunded:
            self.events.emit_new(
                EventType.BET_REFUNDED,
                session_id=session_id,
                amount=str(refunded),
                balance=str(self.balance),
            )

    # Helpers

    @property
    def _player(self) -> PlayerSeat:
        player = self._session.player
        if player is None:
            raise self._invalid("player", "No player registered for this round")
        return player

    @property
    def _game_id(self) -> str:
        game_id = self._session.game_id
        if game_id is None:
            raise self._invalid("game", "No game created for this round")
        return game_id

    def _apply_snapshot(self, state: GameSnapshot, reveal_dealer: bool) -> None:
        """Replace hands with the authority's view of them."""
        player = self._session.player
        if player is not None:
            wire_player = state.find_player(player.id)
            if wire_player is not None:
                player = replace(player, hand=wire_player.to_hand())

        dealer_hand = state.dealer.to_hand()
        # The hole card never goes back face-down once the player's turn is over
        if reveal_dealer or self.status in (RoundStatus.DEALER_TURN, RoundStatus.FINISHED):
            dealer_hand = dealer_hand.revealed()

        self._session = replace(
            self._session,
            player=player,
            dealer_hand=dealer_hand,
            remaining_cards=state.remaining_cards,
        )

    def _reveal_dealer(self) -> None:
        """Once the player's turn ends every dealer card is shown."""
        self._session = replace(self._session, dealer_hand=self._session.dealer_hand.revealed())
        self.events.emit_new(
            EventType.DEALER_REVEALS,
            session_id=self._session.session_id,
            dealer_value=self._session.dealer_hand.value,
        )

    def _validate_bet(self, amount: int | Decimal) -> Decimal:
        if isinstance(amount, bool):
            raise self._invalid("place_bet", "Bet must be a number")
        try:
            stake = Decimal(str(amount))
        except InvalidOperation:
            raise self._invalid("place_bet", "Bet must be a number") from None

        if not stake.is_finite() or stake <= 0:
            raise self._invalid("place_bet", "Bet must be a positive amount")
        if stake.normalize().as_tuple().exponent < -2:
            raise self._invalid("place_bet", "Bet can have at most 2 decimal places")
        if stake < self.rules.min_bet or stake > self.rules.max_bet:
            raise self._invalid(
                "place_bet",
                f"Bet must be between {self.rules.min_bet} and {self.rules.max_bet}",
            )
        if not self.wallet.can_afford(stake):
            raise self._invalid("place_bet", "Insufficient balance")
        return stake

    def _require(self, action: str, *allowed: RoundStatus) -> None:
        if self.status not in allowed:
            raise self._invalid(action, f"Cannot {action} while {self.status}")
        # One authority-changing action at a time per store
        if self._loading:
            raise self._invalid(action, f"Cannot {action} while another action is in progress")

    def _invalid(self, action: str, message: str) -> GameError:
        error = GameError.validation(message, action=action, status=str(self.status))
        self._last_error = error
        self.events.emit_new(EventType.INVALID_ACTION, action=action, message=message)
        return error

    def _is_current(self, session_id: str) -> bool:
        return bool(session_id) and session_id == self._session.session_id

    def _ensure_current(self, session_id: str) -> None:
        if not self._is_current(session_id):
            raise StaleResponse(session_id)

    def _discard(self, action: str, session_id: str) -> None:
        logger.debug("Discarding %s response for superseded session %s", action, session_id)
        self.events.emit_new(
            EventType.STALE_RESPONSE_DISCARDED,
            action=action,
            session_id=session_id,
        )

    def _record_error(self, action: str, error: GameError) -> None:
        self._last_error = error
        self._session = replace(self._session, error=error)
        self.events.emit_new(EventType.ERROR, action=action, **error.to_dict())
        logger.error(
            "Round action %s failed for session %s: %s (%s)",
            action,
            self._session.session_id,
            error.message,
            error.kind,
        )

    @asynccontextmanager
    async def _action(self, action: str, session_id: str) -> AsyncIterator[None]:
        """Track loading, record errors, and drop responses for stale sessions."""
        self._loading += 1
        self._last_error = None
        try:
            yield
        except StaleResponse:
            self._discard(action, session_id)
        except GameError as exc:
            if self._is_current(session_id):
                self._record_error(action, exc)
                raise
            self._discard(action, session_id)
        finally:
            self._loading -= 1

    def _on_state_change(self) -> None:
        status = self.status
        previous, self._previous_status = self._previous_status, status
        self._session = replace(self._session, status=status)
        self.events.emit_new(
            EventType.STATE_CHANGED,
            session_id=self._session.session_id,
            source=previous.value,
            dest=status.value,
        )
        logger.info("Round %s: %s -> %s", self._session.session_id or "-", previous, status)
