# loyalty/stores/balance_store.py
from dataclasses import replace
from decimal import Decimal
from typing import Dict

from loyalty.models import Balance


class BalanceStore:
    """
    In-memory balances keyed by owner.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Balance] = {}

    def get(self, owner: str) -> Balance:
        return self._data.get(owner) or Balance(owner=owner)

    def credit(self, owner: str, amount: Decimal) -> Balance:
        bal = self.get(owner)
        bal = replace(bal, current=bal.current + amount, accrued_total=bal.accrued_total + amount)
        self._data[owner] = bal
        return bal
