# loyalty/enums.py
from enum import Enum


class OrderStatus(str, Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.INVALID, OrderStatus.PROCESSED)


class AccrualStatus(str, Enum):
    """Order status as reported by the accrual service."""
    REGISTERED = "REGISTERED"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"


class BackoffMode(str, Enum):
    NORMAL = "NORMAL"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"


class ReconcilerState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


# forward-only moves; PROCESSING -> PROCESSING is treated as a no-op by the store
ALLOWED_TRANSITIONS = {
    OrderStatus.NEW: {OrderStatus.PROCESSING, OrderStatus.INVALID, OrderStatus.PROCESSED},
    OrderStatus.PROCESSING: {OrderStatus.INVALID, OrderStatus.PROCESSED},
    OrderStatus.INVALID: set(),
    OrderStatus.PROCESSED: set(),
}
