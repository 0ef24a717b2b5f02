# loyalty/stores/__init__.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Protocol

from loyalty.enums import OrderStatus
from loyalty.models import Order
from loyalty.stores.memory import MemoryStorage


class Storage(Protocol):
    """Storage operations consumed by the reconciler."""

    async def fetch_pending_orders(self, limit: Optional[int] = None) -> List[Order]: ...

    async def apply_order_result(
        self, number: str, status: OrderStatus, accrual: Optional[Decimal] = None
    ) -> bool: ...


__all__ = ["Storage", "MemoryStorage"]
