"""Error taxonomy shared by the request client and the round store."""

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """What went wrong, independent of where it was raised."""

    # Rejected locally, no network call was made
    VALIDATION = "validation"

    # No response reached us (status 0)
    NETWORK = "network"

    # Authority rejected the request (4xx) or sent an unusable body
    CLIENT = "client"

    # Authority failed internally (5xx)
    SERVER = "server"

    # A request deadline passed, or dealer polling gave up
    TIMEOUT = "timeout"

    def __str__(self) -> str:
        return self.value


RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.SERVER, ErrorKind.TIMEOUT})


class GameError(Exception):
    """
    Error raised by the blackjack client.

    A single exception type tagged with a ``kind`` discriminant; retry and
    recovery logic branch on ``kind`` rather than on exception subclasses.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status: int = 0,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.details = details

    def __repr__(self) -> str:
        return f"GameError({self.kind.name}, {self.message!r}, status={self.status})"

    @property
    def is_retryable(self) -> bool:
        """Server, network and timeout failures may succeed on another attempt."""
        return self.kind in RETRYABLE_KINDS

    @property
    def is_network_error(self) -> bool:
        return self.kind == ErrorKind.NETWORK

    @property
    def is_client_error(self) -> bool:
        return self.kind == ErrorKind.CLIENT

    @property
    def is_server_error(self) -> bool:
        return self.kind == ErrorKind.SERVER

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and API responses."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "status": self.status,
        }

    @classmethod
    def from_status(cls, status: int, message: str, details: Any = None) -> "GameError":
        """Classify an HTTP error status."""
        if status >= 500:
            kind = ErrorKind.SERVER
        elif status >= 400:
            kind = ErrorKind.CLIENT
        else:
            kind = ErrorKind.NETWORK
        return cls(kind, message, status=status, details=details)

    @classmethod
    def validation(cls, message: str, **details: Any) -> "GameError":
        return cls(ErrorKind.VALIDATION, message, details=details or None)

    @classmethod
    def timeout(cls, message: str, **details: Any) -> "GameError":
        return cls(ErrorKind.TIMEOUT, message, details=details or None)
