# infra/http_client.py
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import aiohttp

from utils.logger import logger


class HttpError(Exception):
    def __init__(self, status: int, message: str, payload: Optional[dict] = None):
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.payload = payload or {}


@dataclass
class HttpResponse:
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    text: str = ""

    def json(self) -> Any:
        return json.loads(self.text) if self.text else None


def _build_query(params: Optional[Mapping[str, Any]]) -> str:
    if not params:
        return ""
    return "?" + urlencode(params, doseq=True, safe=":/")


class HttpClient:
    """
    Thin aiohttp wrapper: one session, a bounded total timeout per request,
    no retries. Status codes are returned to the caller untouched; only
    transport failures raise (as HttpError 599).
    """
    def __init__(self,
                 base_url: str,
                 *,
                 timeout_s: float = 10.0,
                 session: Optional[aiohttp.ClientSession] = None,
                 log=None,
                 ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = float(timeout_s)
        self.session = session
        self._owned_session = session is None
        self.log = log or logger

        self.log.debug(f"HttpClient init base_url={self.base_url} timeout_s={self.timeout_s}")

    def _new_session(self) -> aiohttp.ClientSession:
        timeout = aiohttp.ClientTimeout(total=self.timeout_s)
        return aiohttp.ClientSession(timeout=timeout, raise_for_status=False, trust_env=True)

    # ---- async context manager ----------------------------------------------------
    async def __aenter__(self) -> "HttpClient":
        if self._owned_session and (self.session is None or self.session.closed):
            self.session = self._new_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owned_session and self.session is not None and not self.session.closed:
            await self.session.close()

    async def request(
            self,
            method: str,
            path: str,
            *,
            params: Optional[Mapping[str, Any]] = None,
            headers: Optional[Mapping[str, str]] = None,
            timeout_s: Optional[float] = None,
        ) -> HttpResponse:
        """
        Single request, no retry.
        - path: appended to base_url, must start with "/"
        - timeout_s: overrides the session timeout for this call
        """
        assert path.startswith("/"), "path must start with /"
        if self.session is None or self.session.closed:
            self.session = self._new_session()
            self._owned_session = True

        url = self.base_url + path + _build_query(params)
        req_headers: Dict[str, str] = {"Accept": "application/json"}
        if headers:
            req_headers.update(headers)
        timeout_ctx = aiohttp.ClientTimeout(total=timeout_s or self.timeout_s)

        try:
            async with self.session.request(
                method.upper(),
                url,
                headers=req_headers,
                timeout=timeout_ctx,
            ) as resp:
                # undecodable bytes become U+FFFD so body validation rejects them
                text = await resp.text(errors="replace")
                return HttpResponse(status=resp.status, headers=resp.headers.copy(), text=text)
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise HttpError(599, f"Network error: {e!r} when requesting {url}") from e

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> HttpResponse:
        return await self.request("GET", path, params=params)
