from enum import Enum
from dataclasses import dataclass
from typing import Optional


class RequestState(Enum):
    PENDING = "PENDING"
    IN_FLIGHT = "IN_FLIGHT"
    SUCCEEDED = "SUCCEEDED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


class Outcome(Enum):
    SUCCESS = "SUCCESS"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


TERMINAL_STATES = {
    Outcome.SUCCESS: RequestState.SUCCEEDED,
    Outcome.SKIPPED: RequestState.SKIPPED,
    Outcome.FAILED: RequestState.FAILED,
}


@dataclass(frozen=True)
class CrawlRequest:
    """
    Unit of work owned by the Frontier.
    Invariants: url is the normalized URL and the identity of the request.
    """
    url: str
    discovered_from: Optional[str] = None
    state: RequestState = RequestState.PENDING
    attempt_count: int = 0
