"""Round settlement: payout multipliers for authority-reported outcomes."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class Outcome(Enum):
    """Per-player round result as reported by the authority."""

    BLACKJACK = "blackjack"
    WIN = "win"
    PUSH = "push"
    BUST = "bust"
    LOSE = "lose"

    # Dealer polling gave up before the authority finished the round
    UNRESOLVED = "unresolved"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "Outcome":
        """Map an authority result string to an Outcome; unknown strings lose."""
        try:
            return cls(value.lower())
        except ValueError:
            return cls.LOSE


# Total returned to the player per unit bet (stake included)
PAYOUT_MULTIPLIERS: dict[Outcome, Decimal] = {
    Outcome.BLACKJACK: Decimal("2.5"),
    Outcome.WIN: Decimal("2"),
    Outcome.PUSH: Decimal("1"),
}


@dataclass(frozen=True)
class Settlement:
    """Settlement result for one round."""

    outcome: Outcome
    bet: Decimal
    payout: Decimal
    new_balance: Decimal

    @property
    def net(self) -> Decimal:
        """Gain or loss relative to the stake."""
        return self.payout - self.bet


def payout_for(bet: Decimal | int, outcome: Outcome) -> Decimal:
    """Return the amount credited back for a bet with the given outcome."""
    multiplier = PAYOUT_MULTIPLIERS.get(outcome, Decimal("0"))
    return Decimal(str(bet)) * multiplier


def settle(
    bet: Decimal | int,
    outcome: Outcome,
    balance_after_debit: Decimal | int,
) -> Settlement:
    """
    Compute the payout and resulting balance for a finished round.

    Args:
        bet: The stake that was debited when the bet was placed
        outcome: Authority-reported outcome
        balance_after_debit: Balance with the stake already removed

    Returns:
        Settlement with payout and new balance
    """
    stake = Decimal(str(bet))
    payout = payout_for(stake, outcome)
    return Settlement(
        outcome=outcome,
        bet=stake,
        payout=payout,
        new_balance=Decimal(str(balance_after_debit)) + payout,
    )
