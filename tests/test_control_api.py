# tests/test_control_api.py
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio

from app.control_api import build_app
from loyalty.enums import AccrualStatus, OrderStatus
from loyalty.models import Accepted, AccrualResult
from loyalty.services.backoff import BackoffController
from loyalty.services.order_service import OrderService
from loyalty.services.reconcile_service import OrderReconciler

from conftest import FakeAccrual, N1, N2

TOKEN = "s3cret"


def _headers(token=TOKEN):
    return {"x-token": token} if token else {}


@pytest.fixture
def reconciler(storage):
    fake = FakeAccrual({
        N1: Accepted(AccrualResult(AccrualStatus.PROCESSED, Decimal("120.5"))),
        N2: Accepted(AccrualResult(AccrualStatus.PROCESSING, None)),
    })
    return OrderReconciler(storage, fake, backoff=BackoffController(base_interval=3600))


@pytest_asyncio.fixture
async def client(storage, reconciler):
    app = build_app(reconciler, OrderService(storage), token=TOKEN)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://control.test") as c:
        yield c
    await reconciler.stop()


@pytest.mark.asyncio
async def test_health_and_readiness(client, reconciler):
    r = await client.get("/healthz")
    assert r.status_code == 200 and r.json() == {"ok": True}

    r = await client.get("/readyz")
    assert r.status_code == 503

    await reconciler.start()
    r = await client.get("/readyz")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_status_requires_token(client):
    r = await client.get("/status")
    assert r.status_code == 401
    r = await client.get("/status", headers=_headers("wrong"))
    assert r.status_code == 401

    r = await client.get("/status", headers=_headers())
    assert r.status_code == 200
    body = r.json()
    assert body["state"] == "IDLE"
    assert body["mode"] == "NORMAL"
    assert body["interval"] == 3600
    assert body["in_flight"] == []
    assert body["last_pass"] is None


@pytest.mark.asyncio
async def test_upload_and_manual_reconcile(client, storage):
    r = await client.put("/orders", json={"owner": "alice", "number": N1}, headers=_headers())
    assert r.status_code == 202
    assert r.json()["status"] == "NEW"
    r = await client.put("/orders", json={"owner": "bob", "number": N2}, headers=_headers())
    assert r.status_code == 202

    r = await client.post("/reconcile", headers=_headers())
    assert r.status_code == 200
    body = r.json()
    assert body["pass"]["queried"] == 2
    assert body["pass"]["applied"] == 2
    assert body["interval"] == 3600

    assert (await storage.get_order(N1)).status is OrderStatus.PROCESSED
    assert (await storage.get_order(N2)).status is OrderStatus.PROCESSING

    r = await client.get("/balance/alice", headers=_headers())
    assert r.status_code == 200
    assert r.json() == {"owner": "alice", "current": "120.5", "accrued_total": "120.5"}


@pytest.mark.asyncio
async def test_upload_conflicts(client):
    r = await client.put("/orders", json={"owner": "alice", "number": "12345678901"}, headers=_headers())
    assert r.status_code == 422

    r = await client.put("/orders", json={"owner": "alice", "number": N1}, headers=_headers())
    assert r.status_code == 202
    r = await client.put("/orders", json={"owner": "alice", "number": N1}, headers=_headers())
    assert r.status_code == 200
    assert r.json()["status"] == "already uploaded"

    r = await client.put("/orders", json={"owner": "bob", "number": N1}, headers=_headers())
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_balance_of_unknown_owner_is_zero(client):
    r = await client.get("/balance/nobody", headers=_headers())
    assert r.json() == {"owner": "nobody", "current": "0", "accrued_total": "0"}
