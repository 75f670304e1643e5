"""
skynet_sdk.cli
==============

Command-line interface for the Skynet Python SDK, exposed as the `skynet-sdk`
console script. Typer is only imported when the CLI is actually used.

    $ skynet-sdk --help
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, List, Optional

__all__: List[str] = ["main", "run", "app"]

_SUBMODULE = "skynet_sdk.cli.main"
_EXPOSE = ("app",)


def __getattr__(name: str) -> Any:  # PEP 562 lazy attribute access
    if name in _EXPOSE:
        return getattr(import_module(_SUBMODULE), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def main(argv: Optional[list[str]] = None) -> int:
    """Execute the CLI and return its exit code."""
    return int(import_module(_SUBMODULE).main(argv))


def run(argv: Optional[list[str]] = None) -> int:
    return main(argv)
