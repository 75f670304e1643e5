"""
skynet_sdk.client
=================

`SkynetClient` wires one HTTP transport to the registry, upload, download and
SkyDB layers so they share configuration, a connection pool and one revision
cache.

Typical usage
-------------
    from skynet_sdk import SkynetClient, gen_key_pair_from_seed

    keys = gen_key_pair_from_seed("a long random seed")
    async with SkynetClient() as client:
        await client.db.set_json(keys.private_key, "settings", {"theme": "dark"})
        data, link = await client.db.get_json(keys.public_key, "settings")
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from .capabilities import ContentDownloader, ContentUploader, Transport
from .config import SDKConfig
from .download import Downloader
from .registry.client import RegistryClient
from .skydb.engine import SkyDB
from .skydb.revision_cache import RevisionNumberCache
from .transport.http import HttpTransport
from .upload import Uploader


class SkynetClient:
    """
    Parameters
    ----------
    portal_url : str | None
        Overrides `config.portal_url`.
    config : SDKConfig | None
        Defaults to `SDKConfig.from_env()`.
    transport : Transport | None
        Replaces the default `HttpTransport`.
    http_transport : httpx.AsyncBaseTransport | None
        Low-level httpx transport for the default `HttpTransport` (tests use
        `httpx.MockTransport`).
    uploader / downloader
        Replace the default portal uploader / downloader.
    """

    def __init__(
        self,
        portal_url: Optional[str] = None,
        *,
        config: Optional[SDKConfig] = None,
        transport: Optional[Transport] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        uploader: Optional[ContentUploader] = None,
        downloader: Optional[ContentDownloader] = None,
        **overrides: Any,
    ) -> None:
        config = config or SDKConfig.from_env()
        if portal_url is not None:
            overrides["portal_url"] = portal_url
        if overrides:
            config = config.with_overrides(**overrides)
        self.config = config

        self._owned_transport: Optional[HttpTransport] = None
        if transport is None:
            transport = self._owned_transport = HttpTransport(config, transport=http_transport)
        self.transport = transport

        self.registry = RegistryClient(transport)
        self.uploader = uploader or Uploader(transport)
        self.downloader = downloader or Downloader(transport)
        self.db = SkyDB(
            self.registry,
            self.uploader,
            self.downloader,
            cache=RevisionNumberCache(),
            fail_fast=config.skydb_fail_fast,
        )

    @property
    def portal_url(self) -> str:
        return self.transport.portal_url

    async def __aenter__(self) -> "SkynetClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._owned_transport is not None:
            await self._owned_transport.aclose()


__all__ = ["SkynetClient"]
