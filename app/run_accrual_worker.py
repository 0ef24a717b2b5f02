# app/run_accrual_worker.py
import asyncio
import contextlib
import signal
import sys

import uvicorn

from app.control_api import build_app
from infra.http_client import HttpClient
from loyalty.config import LoyaltySettings
from loyalty.errors import LoyaltyError
from loyalty.event_bus import EventBus, TOPIC_BALANCE
from loyalty.services.accrual_client import AccrualClient
from loyalty.services.backoff import BackoffController
from loyalty.services.endpoints import Endpoints
from loyalty.services.order_service import OrderService
from loyalty.services.reconcile_service import OrderReconciler
from loyalty.stores import MemoryStorage
from utils.config import load_cfg
from utils.logger import logger


async def seed(order_service: OrderService, rows) -> None:
    for row in rows:
        try:
            await order_service.submit_order(str(row["owner"]), str(row["number"]))
        except (KeyError, LoyaltyError) as e:
            logger.warning(f"Seed order {row!r} skipped: {e!r}")


async def main(cfg_path: str | None = None):
    cfg = load_cfg(cfg_path)
    settings = LoyaltySettings.from_cfg(cfg)

    storage = MemoryStorage()
    order_service = OrderService(storage)
    await seed(order_service, settings.seed_orders)

    bus = EventBus()
    bus.subscribe(TOPIC_BALANCE, lambda ev: logger.info(f"Balance of {ev['owner']} credited with {ev['credited']}"))

    http = HttpClient(settings.accrual_base_url, timeout_s=settings.accrual_timeout_s)
    client = AccrualClient(
        http,
        Endpoints(accrual_base=settings.accrual_base_url),
        default_retry_after_s=settings.default_retry_after_s,
    )
    reconciler = OrderReconciler(
        storage,
        client,
        backoff=BackoffController(settings.base_interval_s, settings.unavailable_interval_s),
        event_bus=bus,
        batch_limit=settings.batch_limit,
    )

    app = build_app(reconciler, order_service, token=settings.control_token)
    server = uvicorn.Server(
        uvicorn.Config(app, host=settings.control_host,
                            port=settings.control_port,
                            loop="asyncio",
                            lifespan="off",
                            timeout_keep_alive=10,
                            log_config=None,
                            access_log=False)
    )

    logger.info(f"Booting accrual worker: accrual={settings.accrual_base_url} "
                f"control={settings.control_host}:{settings.control_port}")
    await reconciler.start()
    http_task = asyncio.create_task(server.serve(), name="http")
    stop_event = asyncio.Event()

    def _graceful(*_):
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _graceful)
        except NotImplementedError:
            pass  # Windows

    await stop_event.wait()
    logger.info("Shutting down accrual worker")
    await reconciler.stop()
    server.should_exit = True
    with contextlib.suppress(asyncio.CancelledError):
        await http_task
    await http.close()


def cli() -> None:
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))


if __name__ == "__main__":
    cli()
