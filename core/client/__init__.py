"""Client for the remote blackjack authority."""

from core.client.http import AuthorityClient, RetryPolicy, validate_id
from core.client.monitoring import RequestObserver, RequestRecord, RequestRecorder, log_request

__all__ = [
    "AuthorityClient",
    "RetryPolicy",
    "validate_id",
    "RequestObserver",
    "RequestRecord",
    "RequestRecorder",
    "log_request",
]
