# loyalty/models.py
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, Field

from loyalty.enums import OrderStatus, AccrualStatus, BackoffMode
from utils.time import utc_now


@dataclass
class Order:
    number: str
    owner: str
    status: OrderStatus = OrderStatus.NEW
    accrual: Optional[Decimal] = None   # set only for PROCESSED
    uploaded_at: datetime = field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass
class Balance:
    owner: str
    current: Decimal = Decimal("0")
    accrued_total: Decimal = Decimal("0")


@dataclass(frozen=True)
class AccrualResult:
    status: AccrualStatus
    accrual: Optional[Decimal] = None


class AccrualResponse(BaseModel):
    """Body of GET /api/orders/{number} when the service answers 200."""
    order: str
    status: AccrualStatus
    accrual: Optional[Decimal] = Field(default=None, ge=0)

    def to_result(self) -> AccrualResult:
        if self.status is AccrualStatus.PROCESSED:
            return AccrualResult(self.status, self.accrual if self.accrual is not None else Decimal("0"))
        return AccrualResult(self.status, None)


# ---- accrual query classifications ----

@dataclass(frozen=True)
class Accepted:
    result: AccrualResult


@dataclass(frozen=True)
class NotYetRegistered:
    pass


@dataclass(frozen=True)
class RateLimited:
    wait: float     # seconds, as given by Retry-After


@dataclass(frozen=True)
class Unavailable:
    cause: Optional[BaseException] = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"Unavailable({self.cause!r})" if self.cause else "Unavailable"


@dataclass(frozen=True)
class ProtocolError:
    status: int
    body: str = ""


Classification = Union[Accepted, NotYetRegistered, RateLimited, Unavailable, ProtocolError]


@dataclass(frozen=True)
class BackoffState:
    interval: float
    mode: BackoffMode = BackoffMode.NORMAL
