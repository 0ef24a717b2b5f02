# loyalty/services/reconcile_service.py
from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Dict, Optional

from loyalty.enums import AccrualStatus, OrderStatus, ReconcilerState
from loyalty.event_bus import EventBus, TOPIC_BALANCE, TOPIC_ORDER
from loyalty.luhn import validate_luhn
from loyalty.models import (
    Accepted,
    Classification,
    NotYetRegistered,
    Order,
    ProtocolError,
    RateLimited,
    Unavailable,
)
from loyalty.services.backoff import BackoffController, PassOutcome
from loyalty.services.inflight import InFlightGuard
from utils.logger import logger as default_logger


class OrderReconciler:
    """
    Background driver that moves pending orders to PROCESSED/INVALID by
    polling the accrual service.

    One asyncio task, orders visited sequentially oldest-first. After each
    pass the BackoffController picks the next interval and the loop sleeps
    until that deadline or until stop(), whichever comes first. run_once()
    can also be called directly (manual trigger); the shared InFlightGuard
    keeps it from racing the loop on the same order.
    """

    def __init__(self,
                 storage,
                 accrual_client,
                 *,
                 backoff: Optional[BackoffController] = None,
                 guard: Optional[InFlightGuard] = None,
                 event_bus: Optional[EventBus] = None,
                 batch_limit: Optional[int] = None,
                 logger=None,
                 ) -> None:
        self._store = storage
        self._client = accrual_client
        self.backoff = backoff or BackoffController()
        self.guard = guard or InFlightGuard()
        self._bus = event_bus
        self._batch_limit = batch_limit
        self.log = logger or default_logger

        self.state = ReconcilerState.IDLE
        self.passes = 0
        self.last_outcome: Optional[PassOutcome] = None
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    # ---- lifecycle ----------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self.state is ReconcilerState.RUNNING

    async def start(self) -> None:
        if self.state is not ReconcilerState.IDLE:
            raise RuntimeError(f"reconciler cannot start from state {self.state.value}")
        self.state = ReconcilerState.RUNNING
        self._task = asyncio.create_task(self._run(), name="order-reconciler")
        self.log.info(f"Order reconciler started, base interval {self.backoff.base_interval}s")

    def request_stop(self) -> None:
        """Ask the loop to exit before the next pass or the next order."""
        self._stop.set()

    async def stop(self, timeout: float = 5.0) -> None:
        """
        Request stop and wait for the loop to exit; a pass still blocked
        after `timeout` seconds is cancelled. Stopping is final.
        """
        self.request_stop()
        if self._task is not None and not self._task.done():
            done, _ = await asyncio.wait({self._task}, timeout=timeout)
            if not done:
                self.log.warning(f"Reconciler did not stop within {timeout}s, cancelling")
                self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self.state = ReconcilerState.STOPPED

    async def _run(self) -> None:
        try:
            while not self._stop.is_set():
                try:
                    await self.run_once()
                except Exception:
                    self.log.exception("Reconciliation pass crashed, keeping current interval")

                interval = self.backoff.interval
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stop.wait(), timeout=interval)
        finally:
            self.state = ReconcilerState.STOPPED
            self.log.info(f"Order reconciler stopped after {self.passes} passes")

    # ---- one pass -----------------------------------------------------------------
    async def run_once(self) -> PassOutcome:
        outcome = PassOutcome()
        try:
            orders = await self._store.fetch_pending_orders(self._batch_limit)
        except Exception as e:
            self.log.error(f"Failed to fetch pending orders: {e!r}")
            outcome.fetch_failed = True
            self._finish(outcome)
            return outcome

        outcome.fetched = len(orders)
        for order in orders:
            if self._stop.is_set():
                outcome.stopped_early = True
                break
            if order.is_terminal:
                outcome.skipped += 1
                continue
            if not validate_luhn(order.number):
                self.log.warning(f"Skipping order {order.number!r}: fails Luhn check")
                outcome.skipped += 1
                continue

            async with self.guard.acquired(order.number) as ok:
                if not ok:
                    self.log.debug(f"Order {order.number} already in flight, skipped")
                    outcome.skipped += 1
                    continue
                c = await self._query(order.number)
                outcome.record(c)
                if isinstance(c, RateLimited):
                    self.log.warning(
                        f"Accrual service rate limit hit on order {order.number}, "
                        f"pausing polling for {c.wait}s"
                    )
                    outcome.stopped_early = True
                    break
                await self._apply(order, c, outcome)

        self._finish(outcome)
        return outcome

    async def _query(self, number: str) -> Classification:
        try:
            return await self._client.query(number)
        except Exception as e:
            return Unavailable(e)

    async def _apply(self, order: Order, c: Classification, outcome: PassOutcome) -> None:
        if isinstance(c, NotYetRegistered):
            self.log.warning(f"Order {order.number} not registered in accrual service yet")
            return
        if isinstance(c, Unavailable):
            self.log.warning(f"Accrual service unavailable for order {order.number}: {c.cause!r}")
            return
        if isinstance(c, ProtocolError):
            self.log.warning(f"Unexpected accrual answer for order {order.number}: HTTP {c.status} {c.body!r}")
            return
        if not isinstance(c, Accepted):
            return

        result = c.result
        accrual = None
        if result.status in (AccrualStatus.REGISTERED, AccrualStatus.PROCESSING):
            if order.status is not OrderStatus.NEW:
                return
            target = OrderStatus.PROCESSING
        elif result.status is AccrualStatus.INVALID:
            target = OrderStatus.INVALID
        else:
            target = OrderStatus.PROCESSED
            accrual = result.accrual

        try:
            changed = await self._store.apply_order_result(order.number, target, accrual)
        except Exception as e:
            outcome.storage_errors += 1
            self.log.error(f"Failed to update order {order.number} to {target.value}: {e!r}")
            return

        if not changed:
            return
        outcome.applied += 1
        self.log.info(
            f"Order {order.number} {order.status.value} -> {target.value}"
            + (f", accrual {accrual}" if accrual is not None else "")
        )
        if self._bus is not None:
            self._bus.publish(TOPIC_ORDER, {
                "number": order.number,
                "owner": order.owner,
                "status": target.value,
                "accrual": accrual,
            })
            if accrual:
                self._bus.publish(TOPIC_BALANCE, {"owner": order.owner, "credited": accrual})

    def _finish(self, outcome: PassOutcome) -> None:
        prev = self.backoff.state
        new = self.backoff.advance(outcome)
        if new.mode is not prev.mode or new.interval != prev.interval:
            self.log.info(
                f"Poll interval {prev.interval}s ({prev.mode.value}) -> {new.interval}s ({new.mode.value})"
            )
        self.passes += 1
        self.last_outcome = outcome

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "mode": self.backoff.mode.value,
            "interval": self.backoff.interval,
            "in_flight": self.guard.snapshot(),
            "passes": self.passes,
            "last_pass": self.last_outcome.summary() if self.last_outcome else None,
        }
