"""
skynet_sdk.cli.main
===================

`skynet-sdk`: command-line access to registry entries and SkyDB values.

Examples
--------
    $ skynet-sdk keygen --seed "my long seed"
    $ skynet-sdk entry-link <public-key> app
    $ skynet-sdk registry-get <public-key> app
    $ skynet-sdk db-set <private-key> app '{"hello": "world"}'
    $ skynet-sdk db-get <public-key> app
    $ skynet-sdk db-delete <private-key> app

Configuration
-------------
- Portal       : `--portal` or env `SKYNET_PORTAL_URL` (default: https://siasky.net)
- HTTP Timeout : `--timeout` or env `SKYNET_TIMEOUT` seconds (default: 30.0)
- API key      : `--api-key` or env `SKYNET_API_KEY`
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer

from ..client import SkynetClient
from ..config import SDKConfig
from ..crypto import gen_key_pair_and_seed, gen_key_pair_from_seed
from ..errors import SkynetSdkError
from ..utils.bytes import to_hex
from ..version import __version__ as SDK_VERSION

T = TypeVar("T")

app = typer.Typer(
    name="skynet-sdk",
    help="Skynet SDK CLI: keys, registry entries and SkyDB values.",
    no_args_is_help=True,
    add_completion=False,
)

__all__ = ["app", "main", "run"]


@dataclass
class Ctx:
    config: SDKConfig


def _print_json(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, ensure_ascii=False))


@app.callback()
def _root(
    ctx: typer.Context,
    portal: Optional[str] = typer.Option(
        None,
        "--portal",
        help="Portal URL.",
        envvar="SKYNET_PORTAL_URL",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
        envvar="SKYNET_TIMEOUT",
    ),
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        help="Portal API key.",
        envvar="SKYNET_API_KEY",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and lock activity."),
) -> None:
    """
    Resolve the effective configuration for this CLI process.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    config = SDKConfig.from_env().with_overrides(
        portal_url=portal, request_timeout=timeout, api_key=api_key
    )
    ctx.obj = Ctx(config=config)


def _make_client(c: Ctx) -> SkynetClient:
    return SkynetClient(config=c.config)


def _run(ctx: typer.Context, fn: Callable[[SkynetClient], Awaitable[T]]) -> T:
    """Run `fn` against a fresh client; SDK errors become exit code 1."""

    async def _go() -> T:
        async with _make_client(ctx.obj) as client:
            return await fn(client)

    try:
        return asyncio.run(_go())
    except SkynetSdkError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1) from e


# --- Commands ------------------------------------------------------------------


@app.command("version")
def version() -> None:
    """Print the SDK CLI version."""
    typer.echo(f"skynet-sdk {SDK_VERSION}")


@app.command("keygen")
def keygen(
    seed: Optional[str] = typer.Option(
        None, "--seed", help="Derive the key pair deterministically from this seed."
    ),
) -> None:
    """Generate an Ed25519 key pair (random unless --seed is given)."""
    if seed is not None:
        pair = gen_key_pair_from_seed(seed)
        _print_json({"public_key": pair.public_key, "private_key": pair.private_key})
    else:
        full = gen_key_pair_and_seed()
        _print_json({"public_key": full.public_key, "private_key": full.private_key, "seed": full.seed})


@app.command("entry-link")
def entry_link(
    ctx: typer.Context,
    public_key: str = typer.Argument(..., help="Owner public key (hex)."),
    data_key: str = typer.Argument(..., help="Data key."),
    hashed: bool = typer.Option(False, "--hashed", help="DATA_KEY is already the hashed hex key."),
) -> None:
    """Print the resolver link of a registry entry."""

    async def _link(client: SkynetClient) -> str:
        return client.registry.get_entry_link(public_key, data_key, {"hashed_data_key_hex": hashed})

    typer.echo(_run(ctx, _link))


@app.command("registry-get")
def registry_get(
    ctx: typer.Context,
    public_key: str = typer.Argument(..., help="Owner public key (hex)."),
    data_key: str = typer.Argument(..., help="Data key."),
    hashed: bool = typer.Option(False, "--hashed", help="DATA_KEY is already the hashed hex key."),
) -> None:
    """Fetch and verify a registry entry."""

    async def _get(client: SkynetClient) -> Any:
        signed = await client.registry.get_entry(public_key, data_key, {"hashed_data_key_hex": hashed})
        if signed.entry is None:
            return {"found": False}
        return {
            "found": True,
            "data": to_hex(signed.entry.data),
            # uint64 does not survive every JSON consumer; print it as a string.
            "revision": str(signed.entry.revision),
            "signature": to_hex(signed.signature or b""),
        }

    _print_json(_run(ctx, _get))


@app.command("db-get")
def db_get(
    ctx: typer.Context,
    public_key: str = typer.Argument(..., help="Owner public key (hex)."),
    data_key: str = typer.Argument(..., help="Data key."),
) -> None:
    """Print the JSON stored at a SkyDB entry."""

    async def _get(client: SkynetClient) -> Any:
        data, data_link = await client.db.get_json(public_key, data_key)
        return {"data": data, "data_link": data_link}

    _print_json(_run(ctx, _get))


@app.command("db-set")
def db_set(
    ctx: typer.Context,
    private_key: str = typer.Argument(..., help="Owner private key (hex)."),
    data_key: str = typer.Argument(..., help="Data key."),
    value: str = typer.Argument(..., help="JSON object or array to store."),
) -> None:
    """Store JSON at a SkyDB entry."""
    try:
        doc = json.loads(value)
    except ValueError as e:
        raise typer.BadParameter(f"not valid JSON: {e}") from e

    async def _set(client: SkynetClient) -> Any:
        data, data_link = await client.db.set_json(private_key, data_key, doc)
        return {"data": data, "data_link": data_link}

    _print_json(_run(ctx, _set))


@app.command("db-delete")
def db_delete(
    ctx: typer.Context,
    private_key: str = typer.Argument(..., help="Owner private key (hex)."),
    data_key: str = typer.Argument(..., help="Data key."),
) -> None:
    """Delete the value at a SkyDB entry."""

    async def _delete(client: SkynetClient) -> None:
        await client.db.delete_json(private_key, data_key)

    _run(ctx, _delete)
    typer.echo("deleted")


# --- Entrypoints --------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> int:
    """
    Run the CLI. Returns an integer exit code.
    """
    try:
        rv = app(prog_name="skynet-sdk", standalone_mode=False, args=argv)
        return rv if isinstance(rv, int) else 0
    except typer.Exit as e:
        return int(e.exit_code)
    except Exception as e:
        typer.echo(f"error: {e}", err=True)
        return 1


def run(argv: Optional[list[str]] = None) -> int:
    """Alias for :func:`main`."""
    return main(argv)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
