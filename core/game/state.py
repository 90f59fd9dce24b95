"""Round status enumeration."""

from enum import Enum


class RoundStatus(Enum):
    """
    Round state machine states.

    Flow: BETTING → CREATING → PLAYING → DEALER_TURN → FINISHED, plus a
    reset from any state back to BETTING.
    """

    # Waiting for a bet
    BETTING = "betting"

    # Bet reserved, game being created on the authority
    CREATING = "creating"

    # Player's turn
    PLAYING = "playing"

    # Player stood, authority is playing the dealer hand
    DEALER_TURN = "dealer-turn"

    # Round settled
    FINISHED = "finished"

    def __str__(self) -> str:
        return self.value

    @property
    def machine_state(self) -> str:
        """Name used by the transitions state machine."""
        return self.name.lower()

    @classmethod
    def from_machine_state(cls, name: str) -> "RoundStatus":
        return cls[name.upper()]

