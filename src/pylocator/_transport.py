"""HTTP transport for provider and proxy lookups."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from pylocator._constants import USER_AGENT
from pylocator.exceptions import LocatorTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the acquisition components.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, url: str) -> Any:
        ...


class HttpTransport:
    """JSON-over-HTTP GET transport on a shared aiohttp session.

    Timeouts are owned by callers so every request can carry its own bound.
    """

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def get_json(self, url: str) -> Any:
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise LocatorTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except LocatorTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise LocatorTransportError(
                f"Request to {url} failed: {exc}",
                url=url,
            ) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise LocatorTransportError(
                f"Invalid JSON from {url}: {text[:200]}",
                url=url,
            ) from exc
