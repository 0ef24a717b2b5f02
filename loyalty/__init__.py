# loyalty/__init__.py
"""
Loyalty accrual subsystem package.

Provides:
- Configuration & endpoints for the external accrual service
- Core domain enums & models (orders, balances, accrual classifications)
- In-memory stores and the storage protocol consumed by the reconciler
- Services for order submission, accrual queries, in-flight dedupe,
  poll backoff and order reconciliation
"""
