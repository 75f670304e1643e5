"""
SDK configuration: portal URL, credentials, timeouts and retry policy.

- Loads sane defaults and supports overrides via environment variables (SKYNET_*).
- Unknown override keys are rejected instead of being silently dropped.
- Provides helpers for building HTTP headers and validating the portal URL.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

from .errors import ConfigError
from .version import user_agent as _default_user_agent

DEFAULT_PORTAL_URL = "https://siasky.net"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _parse_bool(name: str, val: Optional[str], default: bool = False) -> bool:
    if val is None:
        return default
    s = val.strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ConfigError(f"expected a boolean, got {val!r}", key=name)


def _parse_number(name: str, val: str, kind: type) -> Any:
    try:
        return kind(val)
    except ValueError as e:
        raise ConfigError(f"expected {kind.__name__}, got {val!r}", key=name) from e


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ConfigError(f"URL must start with {allowed}, got: {url!r}", key="portal_url")
    return url


@dataclass(slots=True)
class SDKConfig:
    # Portal
    portal_url: str = DEFAULT_PORTAL_URL
    api_key: Optional[str] = None
    user_agent: str = field(default_factory=_default_user_agent)
    # HTTP behavior
    request_timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 0.2
    max_backoff: float = 2.0
    # Ceiling on time spent retrying a single request; keeps lock holders bounded.
    retry_total_timeout: Optional[float] = 15.0
    # SkyDB: reject instead of queueing when an entry lock is already held.
    skydb_fail_fast: bool = False

    def __post_init__(self) -> None:
        _ensure_scheme(self.portal_url, ("http", "https"))
        self.portal_url = self.portal_url.rstrip("/")
        if self.max_retries < 0:
            raise ConfigError("max_retries must be >= 0", key="max_retries")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be > 0", key="request_timeout")

    @classmethod
    def from_env(cls, prefix: str = "SKYNET_") -> "SDKConfig":
        """
        Create config from environment variables:

        SKYNET_PORTAL_URL           (http/https)
        SKYNET_API_KEY              (str) optional
        SKYNET_USER_AGENT           (str)
        SKYNET_TIMEOUT              (float seconds, HTTP)
        SKYNET_MAX_RETRIES          (int)
        SKYNET_BACKOFF              (float seconds, first retry delay)
        SKYNET_MAX_BACKOFF          (float seconds, per-retry cap)
        SKYNET_RETRY_TOTAL_TIMEOUT  (float seconds, 0 disables the ceiling)
        SKYNET_SKYDB_FAIL_FAST      (bool)
        """
        total = _parse_number(
            f"{prefix}RETRY_TOTAL_TIMEOUT", _env(f"{prefix}RETRY_TOTAL_TIMEOUT", "15.0"), float
        )
        return cls(
            portal_url=_env(f"{prefix}PORTAL_URL", DEFAULT_PORTAL_URL) or DEFAULT_PORTAL_URL,
            api_key=_env(f"{prefix}API_KEY") or None,
            user_agent=_env(f"{prefix}USER_AGENT") or _default_user_agent(),
            request_timeout=_parse_number(f"{prefix}TIMEOUT", _env(f"{prefix}TIMEOUT", "30.0"), float),
            max_retries=_parse_number(f"{prefix}MAX_RETRIES", _env(f"{prefix}MAX_RETRIES", "3"), int),
            backoff_base=_parse_number(f"{prefix}BACKOFF", _env(f"{prefix}BACKOFF", "0.2"), float),
            max_backoff=_parse_number(f"{prefix}MAX_BACKOFF", _env(f"{prefix}MAX_BACKOFF", "2.0"), float),
            retry_total_timeout=total or None,
            skydb_fail_fast=_parse_bool(
                f"{prefix}SKYDB_FAIL_FAST", _env(f"{prefix}SKYDB_FAIL_FAST")
            ),
        )

    def with_overrides(self, **overrides: Any) -> "SDKConfig":
        """
        Return a copy with keyword overrides applied.
        Unknown keys raise ConfigError.
        """
        data = self.to_dict()
        for k, v in overrides.items():
            if k not in data:
                raise ConfigError("unknown configuration key", key=k)
            if v is not None:
                data[k] = v
        return type(self)(**data)

    def http_headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if self.api_key:
            headers["Skynet-Api-Key"] = self.api_key
        return headers

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


__all__ = ["SDKConfig", "DEFAULT_PORTAL_URL"]
