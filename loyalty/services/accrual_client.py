# loyalty/services/accrual_client.py
from __future__ import annotations

import math
from typing import Optional

from infra import HttpPort
from infra.http_client import HttpError, HttpResponse
from loyalty.models import (
    AccrualResponse,
    Accepted,
    Classification,
    NotYetRegistered,
    ProtocolError,
    RateLimited,
    Unavailable,
)
from loyalty.services.endpoints import Endpoints
from utils.logger import logger as default_logger

DEFAULT_RETRY_AFTER_S = 60.0


def parse_retry_after(value: Optional[str], default: float = DEFAULT_RETRY_AFTER_S) -> float:
    """Retry-After in seconds; missing, negative or unparsable values give `default`."""
    if value is None:
        return default
    try:
        seconds = float(str(value).strip())
    except ValueError:
        return default
    if not math.isfinite(seconds) or seconds < 0:
        return default
    return seconds


class AccrualClient:
    """
    One GET per order number against the accrual service, with the answer
    classified into Accepted / NotYetRegistered / RateLimited / Unavailable /
    ProtocolError. No retries here; pacing belongs to the reconciler.
    """

    def __init__(self,
                 http_client: HttpPort,
                 endpoints: Optional[Endpoints] = None,
                 *,
                 default_retry_after_s: float = DEFAULT_RETRY_AFTER_S,
                 logger=None,
                 ) -> None:
        self._http = http_client
        self._ep = endpoints or Endpoints(accrual_base=getattr(http_client, "base_url", ""))
        self._default_retry_after = float(default_retry_after_s)
        self.log = logger or default_logger

    async def query(self, number: str) -> Classification:
        try:
            resp = await self._http.get(self._ep.order_path(number))
        except HttpError as e:
            return Unavailable(e)
        return self.classify(number, resp)

    def classify(self, number: str, resp: HttpResponse) -> Classification:
        status = resp.status

        if status == 200:
            try:
                body = AccrualResponse.model_validate_json(resp.text)
            except ValueError as e:
                return Unavailable(e)
            if body.order != number:
                return Unavailable(
                    HttpError(status, f"answer for order {body.order!r} while asking for {number!r}")
                )
            return Accepted(body.to_result())

        if status == 204:
            return NotYetRegistered()

        if status == 429:
            raw = resp.headers.get("Retry-After")
            wait = parse_retry_after(raw, self._default_retry_after)
            self.log.debug(f"429 for order {number}: Retry-After={raw!r} -> wait {wait}s")
            return RateLimited(wait=wait)

        if status >= 500:
            return Unavailable(HttpError(status, resp.text[:256]))

        return ProtocolError(status=status, body=resp.text[:256])
