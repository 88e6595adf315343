"""Store configuration for queryread."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from queryread.exceptions import StoreConfigError

REQUEST_METHODS: frozenset[str] = frozenset({"get", "post"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Construction-time options of a :class:`~queryread.store.QueryReadStore`.

    Parameters
    ----------
    url : str
        Endpoint queried for items.
    request_method : str
        ``"get"`` or ``"post"`` (case-insensitive). With ``"get"`` the
        query travels as URL parameters, with ``"post"`` as a form body.
    do_client_paging : bool
        When true, a fetch whose server query equals the last dispatched
        one is answered from the items already held, and paging happens
        on the client. When false every fetch goes to the server.
    request_timeout : float
        Total HTTP timeout in seconds.
    headers : dict
        Extra HTTP headers sent with every request.
    """

    url: str
    request_method: str = "get"
    do_client_paging: bool = True
    request_timeout: float = 30.0
    headers: dict[str, str] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url.strip():
            raise StoreConfigError("url must be a non-empty string")
        if str(self.request_method).lower() not in REQUEST_METHODS:
            raise StoreConfigError(f"request_method must be 'get' or 'post', got {self.request_method!r}")
        if self.request_timeout <= 0:
            raise StoreConfigError(f"request_timeout must be positive, got {self.request_timeout}")

    @property
    def http_method(self) -> str:
        """Transport verb for this configuration (``"GET"`` or ``"POST"``)."""
        return "POST" if self.request_method.lower() == "post" else "GET"

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreConfig:
        """Create configuration from ``QUERYREAD_*`` environment variables.

        Explicit keyword arguments take precedence over the environment.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        url = env.get("QUERYREAD_URL")
        if url is not None:
            config_kwargs["url"] = url

        method = env.get("QUERYREAD_REQUEST_METHOD")
        if method is not None:
            config_kwargs["request_method"] = method.strip()

        if "do_client_paging" not in overrides:
            config_kwargs["do_client_paging"] = _env_bool(env.get("QUERYREAD_CLIENT_PAGING"), True)

        timeout_env = env.get("QUERYREAD_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            try:
                config_kwargs["request_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise StoreConfigError(f"QUERYREAD_TIMEOUT is not a number: {timeout_env!r}") from exc

        config_kwargs.update(overrides)
        if "url" not in config_kwargs:
            raise StoreConfigError("No endpoint configured (set QUERYREAD_URL or pass url=)")

        return cls(**config_kwargs)
