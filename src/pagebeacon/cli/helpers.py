"""Shared CLI plumbing."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from pagebeacon.api import Api, create_api
from pagebeacon.config import ClientConfig
from pagebeacon.context import PageContext
from pagebeacon.storage import JsonFileStore

console = Console()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def build_api(page: PageContext | None = None) -> Api:
    """Client for one CLI invocation; session state persists between invocations."""
    config = ClientConfig.from_env()
    return create_api(
        config,
        page=page,
        session_backend=JsonFileStore(config.session_store_path),
    )
