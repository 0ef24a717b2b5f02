# loyalty/services/backoff.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from loyalty.enums import BackoffMode
from loyalty.models import (
    Accepted,
    BackoffState,
    Classification,
    NotYetRegistered,
    ProtocolError,
    RateLimited,
    Unavailable,
)


@dataclass
class PassOutcome:
    """Aggregate of one reconciliation pass, fed to the backoff state machine."""
    fetched: int = 0
    queried: int = 0
    accepted: int = 0
    applied: int = 0
    not_registered: int = 0
    unavailable: int = 0
    protocol_errors: int = 0
    skipped: int = 0
    storage_errors: int = 0
    rate_limit_wait: Optional[float] = None
    fetch_failed: bool = False
    stopped_early: bool = False

    def record(self, c: Classification) -> None:
        self.queried += 1
        if isinstance(c, Accepted):
            self.accepted += 1
        elif isinstance(c, NotYetRegistered):
            self.not_registered += 1
        elif isinstance(c, RateLimited):
            # last one in processing order wins
            self.rate_limit_wait = c.wait
        elif isinstance(c, Unavailable):
            self.unavailable += 1
        elif isinstance(c, ProtocolError):
            self.protocol_errors += 1

    @property
    def rate_limited(self) -> bool:
        return self.rate_limit_wait is not None

    @property
    def no_progress(self) -> bool:
        """Something was queried and every answer was a miss or a failure."""
        misses = self.not_registered + self.unavailable + self.protocol_errors
        return self.queried > 0 and misses == self.queried

    def summary(self) -> Dict[str, Any]:
        return asdict(self)


def next_state(
    state: BackoffState,
    outcome: PassOutcome,
    *,
    base_interval: float,
    unavailable_interval: float,
) -> BackoffState:
    """
    (current state, pass outcome) -> next state. RateLimited outranks
    everything else in the same pass; a failed fetch leaves the state alone.
    """
    if outcome.rate_limited:
        return BackoffState(interval=outcome.rate_limit_wait, mode=BackoffMode.RATE_LIMITED)
    if outcome.fetch_failed:
        return state
    if outcome.no_progress:
        return BackoffState(interval=unavailable_interval, mode=BackoffMode.SERVICE_UNAVAILABLE)
    return BackoffState(interval=base_interval, mode=BackoffMode.NORMAL)


class BackoffController:
    """Holds the process-wide poll interval and advances it once per pass."""

    def __init__(self, base_interval: float = 1.0, unavailable_interval: Optional[float] = None) -> None:
        if base_interval <= 0:
            raise ValueError("base_interval must be positive")
        self.base_interval = float(base_interval)
        self.unavailable_interval = float(
            unavailable_interval if unavailable_interval is not None else base_interval * 10
        )
        self.state = BackoffState(interval=self.base_interval, mode=BackoffMode.NORMAL)

    @property
    def interval(self) -> float:
        return self.state.interval

    @property
    def mode(self) -> BackoffMode:
        return self.state.mode

    def next_state(self, state: BackoffState, outcome: PassOutcome) -> BackoffState:
        return next_state(
            state, outcome,
            base_interval=self.base_interval,
            unavailable_interval=self.unavailable_interval,
        )

    def advance(self, outcome: PassOutcome) -> BackoffState:
        self.state = self.next_state(self.state, outcome)
        return self.state

    def reset(self) -> None:
        self.state = BackoffState(interval=self.base_interval, mode=BackoffMode.NORMAL)
