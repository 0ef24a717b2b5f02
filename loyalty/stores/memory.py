# loyalty/stores/memory.py
from __future__ import annotations

import asyncio
from dataclasses import replace
from decimal import Decimal
from typing import List, Optional

from loyalty.enums import OrderStatus
from loyalty.models import Balance, Order
from loyalty.stores.balance_store import BalanceStore
from loyalty.stores.order_store import OrderStore


class MemoryStorage:
    """
    Orders + balances behind one asyncio.Lock.

    apply_order_result changes the order and credits the owner inside a
    single lock acquisition with no await in between, so a PROCESSED order
    and its credited balance are never observed separately.
    """

    def __init__(self) -> None:
        self.orders = OrderStore()
        self.balances = BalanceStore()
        self._lock = asyncio.Lock()

    async def save_order(self, order: Order) -> Order:
        async with self._lock:
            self.orders.insert(order)
            return replace(order)

    async def get_order(self, number: str) -> Optional[Order]:
        async with self._lock:
            order = self.orders.get(number)
            return replace(order) if order else None

    async def get_user_orders(self, owner: str) -> List[Order]:
        async with self._lock:
            return [replace(o) for o in self.orders.by_owner(owner)]

    async def get_balance(self, owner: str) -> Balance:
        async with self._lock:
            return self.balances.get(owner)

    async def fetch_pending_orders(self, limit: Optional[int] = None) -> List[Order]:
        async with self._lock:
            return [replace(o) for o in self.orders.pending(limit)]

    async def apply_order_result(
        self, number: str, status: OrderStatus, accrual: Optional[Decimal] = None
    ) -> bool:
        async with self._lock:
            if not self.orders.check_transition(number, status, accrual):
                return False
            order = self.orders.set_status(number, status, accrual)
            if status is OrderStatus.PROCESSED and accrual:
                self.balances.credit(order.owner, accrual)
            return True
