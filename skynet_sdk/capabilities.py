"""
Structural interfaces for the collaborators the registry and SkyDB layers
depend on. `SkynetClient` wires the default implementations; tests and
embedders may pass anything satisfying these protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover
    from .download import DownloadResult
    from .options import DownloadOptions, UploadOptions
    from .transport.http import Request, Response
    from .upload import UploadResult


@runtime_checkable
class Transport(Protocol):
    @property
    def portal_url(self) -> str: ...

    def build_url(
        self,
        endpoint_path: str,
        *,
        extra_path: Optional[str] = None,
        query: Optional[Mapping[str, Any]] = None,
    ) -> str: ...

    async def execute(self, req: "Request") -> "Response": ...


@runtime_checkable
class ContentUploader(Protocol):
    async def upload_content(
        self,
        data: bytes,
        filename: str,
        options: Optional["UploadOptions"] = None,
        *,
        content_type: str = ...,
    ) -> "UploadResult": ...


@runtime_checkable
class ContentDownloader(Protocol):
    async def fetch_content(
        self, content_id: str, options: Optional["DownloadOptions"] = None
    ) -> "DownloadResult": ...


__all__ = ["Transport", "ContentUploader", "ContentDownloader"]
