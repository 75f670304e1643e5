"""
Downloading content by skylink (``GET <portal>/<skylink>``).

Resolver (v2) skylinks are followed by the portal, which reports what it
resolved to in the ``skynet-skylink`` header and how in ``skynet-proof``. When
a proof is present it is checked before the content is returned, so a portal
cannot substitute content for an entry it does not control.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .capabilities import Transport
from .errors import ContentFormatError
from .options import DownloadOptions, OptionsArg, make_options
from .registry.proof import parse_registry_proof, validate_registry_proof
from .skylink.format import validate_skylink_string
from .transport.http import Request

logger = logging.getLogger(__name__)

SKYNET_SKYLINK_HEADER = "skynet-skylink"
SKYNET_PROOF_HEADER = "skynet-proof"


@dataclass(frozen=True)
class DownloadResult:
    data: bytes = field(repr=False)
    content_type: Optional[str]
    skylink: str

    def json(self) -> Any:
        try:
            return json.loads(self.data)
        except ValueError as e:
            raise ContentFormatError(f"content of {self.skylink} is not JSON") from e


class Downloader:
    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    async def fetch_content(self, content_id: str, options: OptionsArg = None) -> DownloadResult:
        opts = make_options(DownloadOptions, options)
        skylink = validate_skylink_string("skylink", content_id)

        resp = await self.transport.execute(
            Request(
                "GET",
                opts.endpoint_download,
                extra_path=skylink,
                api_key=opts.api_key,
                custom_user_agent=opts.custom_user_agent,
                response_transform=bytes,
            )
        )

        resolved = resp.headers.get(SKYNET_SKYLINK_HEADER) or skylink
        proof = resp.headers.get(SKYNET_PROOF_HEADER)
        if proof:
            validate_registry_proof(
                parse_registry_proof(proof),
                anchor_link=skylink,
                expected_content_id=resolved,
            )

        logger.debug("downloaded %s (%d bytes, resolved %s)", skylink, len(resp.content), resolved)
        return DownloadResult(
            data=resp.content,
            content_type=resp.headers.get("content-type"),
            skylink=resolved,
        )


__all__ = ["SKYNET_SKYLINK_HEADER", "SKYNET_PROOF_HEADER", "DownloadResult", "Downloader"]
