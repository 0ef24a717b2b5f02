# loyalty/stores/order_store.py
from dataclasses import replace
from decimal import Decimal
from typing import Dict, List, Optional

from loyalty.enums import OrderStatus, ALLOWED_TRANSITIONS
from loyalty.errors import InvalidTransition, OrderExistsForOther, OrderExistsForUser, OrderNotFound
from loyalty.models import Order


class OrderStore:
    """
    In-memory orders keyed by number, with an owner index.
    Not locked; callers serialize access (see MemoryStorage).
    """

    def __init__(self) -> None:
        self._by_number: Dict[str, Order] = {}
        self._by_owner: Dict[str, List[str]] = {}

    def get(self, number: str) -> Optional[Order]:
        return self._by_number.get(number)

    def insert(self, order: Order) -> None:
        existing = self._by_number.get(order.number)
        if existing is not None:
            if existing.owner == order.owner:
                raise OrderExistsForUser(f"order {order.number} already uploaded by this user")
            raise OrderExistsForOther(f"order {order.number} already uploaded by another user")
        self._by_number[order.number] = order
        self._by_owner.setdefault(order.owner, []).append(order.number)

    def by_owner(self, owner: str) -> List[Order]:
        return [self._by_number[n] for n in self._by_owner.get(owner, [])]

    def pending(self, limit: Optional[int] = None) -> List[Order]:
        """Non-terminal orders, oldest upload first (insertion order breaks ties)."""
        rows = sorted(
            (o for o in self._by_number.values() if not o.is_terminal),
            key=lambda o: o.uploaded_at,
        )
        return rows[:limit] if limit else rows

    def check_transition(self, number: str, status: OrderStatus, accrual: Optional[Decimal]) -> bool:
        """
        Validate a status change. Returns False when it is a no-op
        (terminal order or same status), raises InvalidTransition when illegal.
        """
        order = self._by_number.get(number)
        if order is None:
            raise OrderNotFound(f"unknown order {number}")
        if accrual is not None and status is not OrderStatus.PROCESSED:
            raise InvalidTransition(
                "accrual may only be set together with PROCESSED",
                order=number, status=status.value, accrual=accrual,
            )
        if order.is_terminal or order.status is status:
            return False
        if status not in ALLOWED_TRANSITIONS[order.status]:
            raise InvalidTransition(
                "status may only move forward",
                order=number, current=order.status.value, requested=status.value,
            )
        if status is OrderStatus.PROCESSED and (accrual is None or accrual < 0):
            raise InvalidTransition(
                "PROCESSED requires a non-negative accrual",
                order=number, accrual=accrual,
            )
        return True

    def set_status(self, number: str, status: OrderStatus, accrual: Optional[Decimal] = None) -> Order:
        """Apply an already checked transition and return the stored order."""
        order = replace(self._by_number[number], status=status, accrual=accrual)
        self._by_number[number] = order
        return order
