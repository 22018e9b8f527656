"""HTTP transport for JSON data providers."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from tripwatch.config import TripwatchConfig
from tripwatch.exceptions import TripwatchTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by providers and geocoders.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, url: str, *, params: Mapping[str, Any] | None = None) -> Any: ...


class HttpTransport:
    """aiohttp-backed transport.

    The underlying ``aiohttp.ClientSession`` is created lazily on the first
    request unless one is injected; only an owned session is closed by
    :meth:`close`.
    """

    def __init__(self, config: TripwatchConfig, http_session: aiohttp.ClientSession | None = None) -> None:
        self._config = config
        self._http = http_session
        self._owns_session = http_session is None

    def _session(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.http_timeout),
                headers={"user-agent": self._config.user_agent, "accept": "application/json"},
            )
            self._owns_session = True
        return self._http

    async def get_json(self, url: str, *, params: Mapping[str, Any] | None = None) -> Any:
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}
        _logger.debug("GET %s %s", url, query)

        try:
            async with self._session().get(url, params=query) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise TripwatchTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except TripwatchTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TripwatchTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise TripwatchTransportError(f"Invalid JSON from {url}: {text[:200]}", url=url) from exc

    async def close(self) -> None:
        if self._owns_session and self._http is not None and not self._http.closed:
            await self._http.close()
        self._http = None
