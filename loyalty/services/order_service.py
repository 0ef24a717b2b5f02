# loyalty/services/order_service.py
from typing import List

from loyalty.errors import InvalidOrderNumber
from loyalty.luhn import validate_luhn
from loyalty.models import Balance, Order
from utils.logger import logger as default_logger


class OrderService:
    """
    Order upload and read helpers on top of the storage.
    Only Luhn-valid numbers ever reach the reconciler through here.
    """

    def __init__(self, storage, logger=None) -> None:
        self._store = storage
        self.log = logger or default_logger

    async def submit_order(self, owner: str, number: str) -> Order:
        number = (number or "").strip()
        if not validate_luhn(number):
            self.log.info(f"Rejected order number {number!r}: fails Luhn check")
            raise InvalidOrderNumber(f"invalid order number {number!r}")
        # OrderExistsForUser / OrderExistsForOther propagate from the store
        order = await self._store.save_order(Order(number=number, owner=owner))
        self.log.info(f"Order {number} uploaded by {owner}")
        return order

    async def get_user_orders(self, owner: str) -> List[Order]:
        """Newest upload first."""
        orders = await self._store.get_user_orders(owner)
        return sorted(orders, key=lambda o: o.uploaded_at, reverse=True)

    async def get_balance(self, owner: str) -> Balance:
        return await self._store.get_balance(owner)
