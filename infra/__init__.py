# infra/__init__.py
from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from infra.http_client import HttpClient, HttpError, HttpResponse


# Upper layers depend on this port, not on the concrete HttpClient
class HttpPort(Protocol):
    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> HttpResponse: ...
    async def close(self) -> None: ...


__all__ = ["HttpPort", "HttpClient", "HttpError", "HttpResponse"]
