"""Test helpers for the Skynet SDK.

Provides a minimal asyncio runner so tests marked with ``@pytest.mark.asyncio``
can execute without external plugins, and an in-memory fake portal served
through ``httpx.MockTransport``.

The fake portal keeps registry entries and uploaded files in dicts and applies
the same rules as a real portal: signatures are checked and a registry update
is rejected unless its revision is higher than the stored one. Every request
yields to the event loop once, so concurrent operations interleave.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from email.parser import BytesParser
from email.policy import default as default_policy
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from skynet_sdk.client import SkynetClient
from skynet_sdk.config import SDKConfig
from skynet_sdk.registry.entry import RegistryEntry, sign_entry, verify_entry
from skynet_sdk.skylink.sia import SiaSkylink
from skynet_sdk.utils.hash import hash_all

PORTAL_URL = "https://portal.test"

# Deterministic test keys, from gen_key_pair_from_seed("insecure test seed").
PUBLIC_KEY = "658b900df55e983ce85f3f9fb2a088d568ab514e7bbda51cfbfb16ea945378d9"
PRIVATE_KEY = (
    "7caffac49ac914a541b28723f11776d36ce81e7b9b0c96ccacd1302db429c79c"
    "658b900df55e983ce85f3f9fb2a088d568ab514e7bbda51cfbfb16ea945378d9"
)


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover - plugin hook
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:  # pragma: no cover - plugin hook
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None

    test_func = pyfuncitem.obj
    if asyncio.iscoroutinefunction(test_func):
        argnames = getattr(pyfuncitem, "_fixtureinfo", None)
        wanted = set(getattr(argnames, "argnames", []) or [])
        kwargs = {k: v for k, v in pyfuncitem.funcargs.items() if k in wanted}
        asyncio.run(test_func(**kwargs))
        return True
    return None


@dataclass
class StoredEntry:
    data: bytes
    revision: int
    signature: bytes


@dataclass
class InjectedFailure:
    method: str
    path: str
    status: int
    body: Any = None
    times: int = 1


class FakePortal:
    """In-memory stand-in for a portal's registry, upload and download endpoints."""

    def __init__(self) -> None:
        # (public key hex, hashed data key hex) -> entry
        self.entries: Dict[Tuple[str, str], StoredEntry] = {}
        # bare base64 skylink -> (content, content type)
        self.files: Dict[str, Tuple[bytes, str]] = {}
        # resolver link -> (resolved skylink, proof header)
        self.resolvers: Dict[str, Tuple[str, str]] = {}
        self.uploads: List[Tuple[str, str]] = []
        self.requests: List[httpx.Request] = []
        self.rejected: List[str] = []
        self._failures: List[InjectedFailure] = []
        # number of upcoming requests that fail with a connection error
        self.network_errors = 0

    # --- test controls ------------------------------------------------------

    def fail_next(self, method: str, path: str, status: int, body: Any = None, times: int = 1) -> None:
        """Answer the next `times` matching requests with `status` (JSON `body` if given)."""
        self._failures.append(InjectedFailure(method, path, status, body, times))

    def put_entry(self, private_key: str, public_key: str, data_key_hex: str, data: bytes, revision: int) -> None:
        """Store a validly signed entry directly, bypassing revision checks."""
        entry = RegistryEntry(data_key=data_key_hex, data=data, revision=revision)
        signature = sign_entry(private_key, entry, hashed_data_key_hex=True)
        self.entries[(public_key, data_key_hex)] = StoredEntry(data, revision, signature)

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def add_file(self, content: bytes, content_type: str = "application/octet-stream") -> str:
        skylink = SiaSkylink(4, hash_all(content)).to_string()
        self.files[skylink] = (content, content_type)
        return skylink

    # --- transport ----------------------------------------------------------

    async def handler(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        await asyncio.sleep(0)

        if self.network_errors > 0:
            self.network_errors -= 1
            raise httpx.ConnectError("connection refused", request=request)

        for failure in self._failures:
            if failure.times > 0 and failure.method == request.method and request.url.path == failure.path:
                failure.times -= 1
                if failure.body is None:
                    return httpx.Response(failure.status, content=b"oops")
                return httpx.Response(failure.status, json=failure.body)

        path = request.url.path
        if path == "/skynet/registry" and request.method == "GET":
            return self._get_entry(request)
        if path == "/skynet/registry" and request.method == "POST":
            return self._set_entry(request)
        if path == "/skynet/skyfile" and request.method == "POST":
            return self._upload(request)
        if request.method == "GET":
            return self._download(path.strip("/"))
        return httpx.Response(404, json={"message": "not found"})

    def _get_entry(self, request: httpx.Request) -> httpx.Response:
        public_key = request.url.params["publickey"].split(":", 1)[1]
        data_key = request.url.params["datakey"]
        stored = self.entries.get((public_key, data_key))
        if stored is None:
            return httpx.Response(404, json={"message": "no entry found"})
        body = json.dumps(
            {"data": stored.data.hex(), "revision": stored.revision, "signature": stored.signature.hex()}
        )
        return httpx.Response(200, content=body.encode(), headers={"content-type": "application/json"})

    def _set_entry(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        public_key = bytes(body["publickey"]["key"]).hex()
        data_key = body["datakey"]
        revision = body["revision"]
        data = bytes(body["data"])
        signature = bytes(body["signature"])

        entry = RegistryEntry(data_key=data_key, data=data, revision=revision)
        if not verify_entry(public_key, entry, signature, hashed_data_key_hex=True):
            return self._reject("invalid signature")
        stored = self.entries.get((public_key, data_key))
        if stored is not None and revision <= stored.revision:
            return self._reject("provided revision number is invalid")

        self.entries[(public_key, data_key)] = StoredEntry(data, revision, signature)
        return httpx.Response(204)

    def _reject(self, reason: str) -> httpx.Response:
        message = f"Unable to update the registry: {reason}"
        self.rejected.append(message)
        return httpx.Response(400, json={"message": message})

    def _upload(self, request: httpx.Request) -> httpx.Response:
        raw = b"Content-Type: " + request.headers["content-type"].encode() + b"\r\n\r\n" + request.content
        msg = BytesParser(policy=default_policy).parsebytes(raw)
        part = next(p for p in msg.iter_parts() if p.get_param("name", header="content-disposition") == "file")
        content = part.get_payload(decode=True)
        filename = part.get_filename()
        skylink = self.add_file(content, part.get_content_type())
        self.uploads.append((filename, part.get_content_type()))
        return httpx.Response(
            200, json={"skylink": skylink, "merkleroot": hash_all(content).hex(), "bitfield": 4}
        )

    def _download(self, link: str) -> httpx.Response:
        headers: Dict[str, str] = {}
        if link in self.resolvers:
            link, proof = self.resolvers[link]
            headers = {"skynet-skylink": link, "skynet-proof": proof}
        if link not in self.files:
            return httpx.Response(404, json={"message": "not found"})
        content, content_type = self.files[link]
        headers["content-type"] = content_type
        return httpx.Response(200, content=content, headers=headers)


def make_config(**overrides: Any) -> SDKConfig:
    base = dict(portal_url=PORTAL_URL, backoff_base=0.001, max_backoff=0.002)
    base.update(overrides)
    return SDKConfig(**base)


def make_client(portal: FakePortal, **overrides: Any) -> SkynetClient:
    """Create inside the test coroutine; use with ``async with``."""
    return SkynetClient(config=make_config(**overrides), http_transport=httpx.MockTransport(portal.handler))


@pytest.fixture()
def portal() -> FakePortal:
    return FakePortal()


@pytest.fixture()
def keys() -> Tuple[str, str]:
    return PUBLIC_KEY, PRIVATE_KEY
