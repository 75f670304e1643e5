"""
Uploading a single file to a portal (``POST /skynet/skyfile``, multipart field
``file``). The portal answers with the skylink of the uploaded content.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .capabilities import Transport
from .errors import TransportError
from .options import OptionsArg, UploadOptions, make_options
from .skylink.format import format_skylink, validate_skylink_string
from .transport.http import Request
from .utils.validation import validate_bytes, validate_string

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class UploadResult:
    skylink: str
    merkleroot: str
    bitfield: int


class Uploader:
    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    async def upload_content(
        self,
        data: bytes,
        filename: str,
        options: OptionsArg = None,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> UploadResult:
        """
        Upload `data` as `filename` and return its ``sia://`` skylink.

        `options.custom_filename`, when set, replaces `filename`.
        """
        opts = make_options(UploadOptions, options)
        data = validate_bytes("data", data)
        filename = opts.custom_filename or validate_string("filename", filename)

        resp = await self.transport.execute(
            Request(
                "POST",
                opts.endpoint_upload,
                files={"file": (filename, data, content_type)},
                api_key=opts.api_key,
                custom_user_agent=opts.custom_user_agent,
            )
        )
        body = resp.data
        if not isinstance(body, dict) or not body.get("skylink"):
            raise TransportError("Upload response did not contain a skylink", status=resp.status, method="POST")

        skylink = validate_skylink_string("skylink", body["skylink"], "upload response field")
        logger.debug("uploaded %d bytes as %s -> %s", len(data), filename, skylink)
        return UploadResult(
            skylink=format_skylink(skylink),
            merkleroot=str(body.get("merkleroot", "")),
            bitfield=int(body.get("bitfield", 0)),
        )


__all__ = ["DEFAULT_CONTENT_TYPE", "UploadResult", "Uploader"]
