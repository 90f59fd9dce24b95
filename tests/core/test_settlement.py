"""Tests for settlement and the error taxonomy."""

from decimal import Decimal

import pytest

from core.errors import ErrorKind, GameError
from core.settlement import Outcome, payout_for, settle


class TestOutcome:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("blackjack", Outcome.BLACKJACK),
            ("win", Outcome.WIN),
            ("WIN", Outcome.WIN),
            ("push", Outcome.PUSH),
            ("bust", Outcome.BUST),
            ("lose", Outcome.LOSE),
        ],
    )
    def test_parse(self, raw, expected):
        assert Outcome.parse(raw) == expected

    def test_unknown_result_loses(self):
        assert Outcome.parse("surrender") == Outcome.LOSE


class TestSettle:
    """Balance after a round, starting from a debited balance."""

    @pytest.mark.parametrize(
        "outcome, payout, balance",
        [
            (Outcome.BLACKJACK, Decimal("250"), Decimal("1150")),
            (Outcome.WIN, Decimal("200"), Decimal("1100")),
            (Outcome.PUSH, Decimal("100"), Decimal("1000")),
            (Outcome.LOSE, Decimal("0"), Decimal("900")),
            (Outcome.BUST, Decimal("0"), Decimal("900")),
            (Outcome.UNRESOLVED, Decimal("0"), Decimal("900")),
        ],
    )
    def test_settle_from_debited_balance(self, outcome, payout, balance):
        result = settle(100, outcome, 900)
        assert result.outcome == outcome
        assert result.bet == Decimal("100")
        assert result.payout == payout
        assert result.new_balance == balance

    def test_blackjack_pays_three_to_two(self):
        assert payout_for(10, Outcome.BLACKJACK) == Decimal("25")
        assert payout_for(15, Outcome.BLACKJACK) == Decimal("37.5")

    def test_net(self):
        assert settle(100, Outcome.WIN, 900).net == Decimal("100")
        assert settle(100, Outcome.PUSH, 900).net == Decimal("0")
        assert settle(100, Outcome.LOSE, 900).net == Decimal("-100")


class TestGameError:
    @pytest.mark.parametrize(
        "status, kind",
        [
            (0, ErrorKind.NETWORK),
            (400, ErrorKind.CLIENT),
            (404, ErrorKind.CLIENT),
            (500, ErrorKind.SERVER),
            (503, ErrorKind.SERVER),
        ],
    )
    def test_from_status(self, status, kind):
        error = GameError.from_status(status, "boom")
        assert error.kind == kind
        assert error.status == status

    def test_retryable_kinds(self):
        assert GameError(ErrorKind.NETWORK, "x").is_retryable
        assert GameError(ErrorKind.SERVER, "x", status=500).is_retryable
        assert GameError(ErrorKind.TIMEOUT, "x").is_retryable
        assert not GameError(ErrorKind.CLIENT, "x", status=400).is_retryable
        assert not GameError(ErrorKind.VALIDATION, "x").is_retryable

    def test_flags(self):
        assert GameError(ErrorKind.NETWORK, "x").is_network_error
        assert GameError(ErrorKind.CLIENT, "x").is_client_error
        assert GameError(ErrorKind.SERVER, "x").is_server_error

    def test_validation_details(self):
        error = GameError.validation("Bad bet", amount=3)
        assert error.kind == ErrorKind.VALIDATION
        assert error.details == {"amount": 3}
        assert str(error) == "Bad bet"

    def test_to_dict(self):
        error = GameError(ErrorKind.SERVER, "down", status=502)
        assert error.to_dict() == {"kind": "server", "message": "down", "status": 502}
