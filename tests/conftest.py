# tests/conftest.py
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from infra.http_client import HttpClient
from loyalty.models import Order
from loyalty.services.accrual_client import AccrualClient
from loyalty.services.endpoints import Endpoints
from loyalty.stores import MemoryStorage

BASE = "http://accrual.test"

# Luhn-valid order numbers
N1 = "12345678903"
N2 = "9278923470"
N3 = "2377225624"
N4 = "79927398713"


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def seed_orders(storage):
    """Insert orders with strictly increasing upload times, oldest first."""
    async def _seed(*rows):
        t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
        out = []
        for i, (owner, number) in enumerate(rows):
            out.append(await storage.save_order(
                Order(number=number, owner=owner, uploaded_at=t0 + timedelta(seconds=i))
            ))
        return out
    return _seed


@pytest_asyncio.fixture
async def http_client():
    """HttpClient with its own session, closed after the test."""
    async with HttpClient(BASE, timeout_s=2) as client:
        yield client


@pytest.fixture
def accrual_client(http_client):
    return AccrualClient(http_client, Endpoints(accrual_base=BASE), default_retry_after_s=60)


class FakeAccrual:
    """
    Scripted AccrualClient: answers[number] is a classification or a list
    of classifications consumed one per query (last one repeats).
    """
    def __init__(self, answers=None):
        self.answers = dict(answers or {})
        self.calls = []

    async def query(self, number):
        self.calls.append(number)
        ans = self.answers[number]
        if isinstance(ans, list):
            return ans.pop(0) if len(ans) > 1 else ans[0]
        return ans


@pytest.fixture
def fake_accrual():
    return FakeAccrual()
