"""HTTP transport: query encoding and json-comment-optional decoding."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from queryread._redact import redact_for_log
from queryread.exceptions import StoreTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the store.

    Test doubles only need an ``async send`` with this signature; the
    production implementation is :class:`HttpTransport`.
    """

    async def send(self, url: str, method: str, params: Mapping[str, Any]) -> Any:
        ...


def encode_params(params: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Flatten a query into ``(key, value)`` pairs for a URL or form body.

    ``None`` values are dropped, booleans become ``"true"``/``"false"``,
    lists and tuples repeat their key, mappings are sent as JSON.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        values = value if isinstance(value, (list, tuple)) else [value]
        for v in values:
            if v is None:
                continue
            if isinstance(v, bool):
                pairs.append((str(key), "true" if v else "false"))
            elif isinstance(v, Mapping):
                pairs.append((str(key), json.dumps(v, separators=(",", ":"))))
            else:
                pairs.append((str(key), str(v)))
    return pairs


def decode_body(text: str) -> Any:
    """Decode a JSON body that may be wrapped in a ``/* ... */`` comment."""
    stripped = text.strip()
    if stripped.startswith("/*") and stripped.endswith("*/"):
        stripped = stripped[2:-2].strip()
    return json.loads(stripped)


class HttpTransport:
    """aiohttp-backed transport that sends queries as GET parameters or a POST form."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers: dict[str, str] = {"accept": "application/json"}
        if headers:
            self._headers.update(headers)

    async def send(self, url: str, method: str, params: Mapping[str, Any]) -> Any:
        """Issue the request and return the decoded JSON body."""
        verb = method.upper()
        if verb not in ("GET", "POST"):
            raise ValueError(f"Unsupported method {method!r}")

        encoded = encode_params(params)
        kwargs: dict[str, Any] = {"headers": self._headers, "timeout": self._timeout}
        if verb == "POST":
            kwargs["data"] = encoded
        else:
            kwargs["params"] = encoded

        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("%s %s params=%s", verb, url, redact_for_log(dict(params)))

        try:
            async with self._http.request(verb, url, **kwargs) as resp:
                body = await resp.read()
                status = resp.status
                charset = resp.charset or "utf-8"
        except TimeoutError as exc:
            raise StoreTransportError(f"Request to {url} timed out", url=url) from exc
        except aiohttp.ClientError as exc:
            raise StoreTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        if not 200 <= status < 300:
            raise StoreTransportError(
                f"HTTP {status} from {url}: {body[:200].decode('utf-8', 'replace')}",
                status_code=status,
                url=url,
            )

        try:
            text = body.decode(charset)
        except (UnicodeDecodeError, LookupError) as exc:
            raise StoreTransportError(
                f"Body from {url} is not valid {charset}",
                status_code=status,
                url=url,
            ) from exc

        try:
            return decode_body(text)
        except json.JSONDecodeError as exc:
            raise StoreTransportError(
                f"Invalid JSON from {url}: {text[:200]}",
                status_code=status,
                url=url,
            ) from exc
