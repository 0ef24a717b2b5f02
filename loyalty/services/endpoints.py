# loyalty/services/endpoints.py
from dataclasses import dataclass


@dataclass
class Endpoints:
    # accrual service base address
    accrual_base: str

    # REST path templates
    accrual_order: str = "/api/orders/{number}"

    def order_path(self, number: str) -> str:
        return self.accrual_order.format(number=number)
