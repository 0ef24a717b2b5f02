# tests/test_accrual_client.py
import asyncio
from decimal import Decimal

import aiohttp
import pytest
from aioresponses import aioresponses

from infra.http_client import HttpError
from loyalty.enums import AccrualStatus
from loyalty.models import Accepted, NotYetRegistered, ProtocolError, RateLimited, Unavailable
from loyalty.services.accrual_client import AccrualClient, parse_retry_after

from conftest import BASE, N1

URL = f"{BASE}/api/orders/{N1}"


@pytest.mark.asyncio
async def test_processed_with_accrual(accrual_client: AccrualClient):
    with aioresponses() as m:
        m.get(URL, payload={"order": N1, "status": "PROCESSED", "accrual": 729.5})
        c = await accrual_client.query(N1)
    assert isinstance(c, Accepted)
    assert c.result.status is AccrualStatus.PROCESSED
    assert c.result.accrual == Decimal("729.5")


@pytest.mark.asyncio
async def test_processed_without_accrual_credits_zero(accrual_client: AccrualClient):
    with aioresponses() as m:
        m.get(URL, payload={"order": N1, "status": "PROCESSED"})
        c = await accrual_client.query(N1)
    assert isinstance(c, Accepted)
    assert c.result.accrual == Decimal("0")


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["REGISTERED", "PROCESSING", "INVALID"])
async def test_non_processed_answers_carry_no_amount(accrual_client: AccrualClient, status):
    with aioresponses() as m:
        # a stray accrual on a non-final answer is dropped
        m.get(URL, payload={"order": N1, "status": status, "accrual": 10})
        c = await accrual_client.query(N1)
    assert isinstance(c, Accepted)
    assert c.result.status.value == status
    assert c.result.accrual is None


@pytest.mark.asyncio
async def test_204_is_not_yet_registered(accrual_client: AccrualClient):
    with aioresponses() as m:
        m.get(URL, status=204)
        c = await accrual_client.query(N1)
    assert isinstance(c, NotYetRegistered)


@pytest.mark.asyncio
async def test_429_uses_retry_after_verbatim(accrual_client: AccrualClient):
    with aioresponses() as m:
        m.get(URL, status=429, headers={"Retry-After": "30"}, body="No more than N requests per minute allowed")
        c = await accrual_client.query(N1)
    assert c == RateLimited(wait=30.0)


@pytest.mark.asyncio
async def test_429_small_wait_is_not_floored(accrual_client: AccrualClient):
    with aioresponses() as m:
        m.get(URL, status=429, headers={"Retry-After": "0.5"})
        c = await accrual_client.query(N1)
    assert c == RateLimited(wait=0.5)


@pytest.mark.asyncio
async def test_429_header_name_is_case_insensitive(accrual_client: AccrualClient):
    with aioresponses() as m:
        m.get(URL, status=429, headers={"retry-after": "12"})
        c = await accrual_client.query(N1)
    assert c == RateLimited(wait=12.0)


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"Retry-After": "soon"}, {"Retry-After": "-5"}])
async def test_429_without_usable_header_waits_60(accrual_client: AccrualClient, headers):
    with aioresponses() as m:
        m.get(URL, status=429, headers=headers)
        c = await accrual_client.query(N1)
    assert c == RateLimited(wait=60.0)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [500, 502, 503])
async def test_5xx_is_unavailable(accrual_client: AccrualClient, status):
    with aioresponses() as m:
        m.get(URL, status=status, body="internal error")
        c = await accrual_client.query(N1)
    assert isinstance(c, Unavailable)
    assert isinstance(c.cause, HttpError)
    assert c.cause.status == status


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 404, 418])
async def test_other_statuses_are_protocol_errors(accrual_client: AccrualClient, status):
    with aioresponses() as m:
        m.get(URL, status=status, body="nope")
        c = await accrual_client.query(N1)
    assert c == ProtocolError(status=status, body="nope")


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["not json", "{}", '{"order": "12345678903", "status": "DONE"}',
                                  '{"order": "12345678903", "status": "PROCESSED", "accrual": -1}',
                                  b"\xff\xfe\xfa{"])
async def test_malformed_body_is_unavailable(accrual_client: AccrualClient, body):
    with aioresponses() as m:
        m.get(URL, status=200, body=body)
        c = await accrual_client.query(N1)
    assert isinstance(c, Unavailable)
    assert c.cause is not None


@pytest.mark.asyncio
async def test_answer_for_another_order_is_unavailable(accrual_client: AccrualClient):
    with aioresponses() as m:
        m.get(URL, payload={"order": "79927398713", "status": "PROCESSED", "accrual": 5})
        c = await accrual_client.query(N1)
    assert isinstance(c, Unavailable)


@pytest.mark.asyncio
@pytest.mark.parametrize("exc", [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()])
async def test_transport_failure_is_unavailable(accrual_client: AccrualClient, exc):
    with aioresponses() as m:
        m.get(URL, exception=exc)
        c = await accrual_client.query(N1)
    assert isinstance(c, Unavailable)
    assert isinstance(c.cause, HttpError)


def test_parse_retry_after():
    assert parse_retry_after("30") == 30.0
    assert parse_retry_after(" 15 ") == 15.0
    assert parse_retry_after(None) == 60.0
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT", default=5) == 5
    assert parse_retry_after("nan") == 60.0
