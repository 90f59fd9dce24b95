"""Player wallet with two-phase bet accounting."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum, auto

from core.errors import GameError
from core.settlement import Outcome, Settlement, settle

logger = logging.getLogger(__name__)


class EntryType(Enum):
    """Ledger entry types."""

    RESERVE = auto()
    REFUND = auto()
    CREDIT = auto()


@dataclass(frozen=True)
class LedgerEntry:
    """One balance movement, keyed by the round it belongs to."""

    entry_type: EntryType
    round_key: str
    amount: Decimal
    balance: Decimal
    timestamp: datetime = field(default_factory=datetime.now)


class Wallet:
    """
    Player balance with exactly-once debits and credits.

    A bet is reserved (debited) locally before the authority confirms the
    round, then either settled (credited with the payout) or refunded when
    the round could not be started. Each operation is keyed by a round key
    and a second debit, refund or credit for the same key is ignored.
    """

    def __init__(self, balance: Decimal | int) -> None:
        """
        Initialize wallet.

        Args:
            balance: Starting balance
        """
        self._balance = Decimal(str(balance))
        self._reserved: dict[str, Decimal] = {}
        self._closed: set[str] = set()
        self._ledger: list[LedgerEntry] = []

    @property
    def balance(self) -> Decimal:
        """Current balance, with open reservations already removed."""
        return self._balance

    @property
    def ledger(self) -> list[LedgerEntry]:
        """Return the ledger history."""
        return self._ledger.copy()

    def reserved(self, round_key: str) -> Decimal | None:
        """Return the open reservation for a round, if any."""
        return self._reserved.get(round_key)

    def can_afford(self, amount: Decimal | int) -> bool:
        return Decimal(str(amount)) <= self._balance

    def reserve(self, round_key: str, amount: Decimal | int) -> Decimal:
        """
        Debit a bet for a round.

        Returns:
            Balance after the debit

        Raises:
            GameError: If the balance cannot cover the bet
        """
        if round_key in self._reserved or round_key in self._closed:
            logger.warning("Duplicate reservation ignored for round %s", round_key)
            return self._balance

        stake = Decimal(str(amount))
        if stake > self._balance:
            raise GameError.validation(
                "Insufficient balance",
                required=str(stake),
                available=str(self._balance),
            )

        self._balance -= stake
        self._reserved[round_key] = stake
        self._record(EntryType.RESERVE, round_key, -stake)
        return self._balance

    def refund(self, round_key: str) -> Decimal:
        """Compensate an open reservation; returns the amount refunded."""
        stake = self._reserved.pop(round_key, None)
        if stake is None:
            return Decimal("0")

        self._balance += stake
        self._closed.add(round_key)
        self._record(EntryType.REFUND, round_key, stake)
        return stake

    def settle(self, round_key: str, outcome: Outcome) -> Settlement | None:
        """
        Credit the payout for a reserved round.

        Returns:
            The settlement, or None if the round has no open reservation
        """
        stake = self._reserved.pop(round_key, None)
        if stake is None:
            logger.warning("No open reservation to settle for round %s", round_key)
            return None

        result = settle(stake, outcome, self._balance)
        self._balance = result.new_balance
        self._closed.add(round_key)
        self._record(EntryType.CREDIT, round_key, result.payout)
        return result

    def _record(self, entry_type: EntryType, round_key: str, amount: Decimal) -> None:
        self._ledger.append(
            LedgerEntry(
                entry_type=entry_type,
                round_key=round_key,
                amount=amount,
                balance=self._balance,
            )
        )
