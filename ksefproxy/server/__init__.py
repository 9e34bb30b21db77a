"""
Entry point for the KSeF proxy server.
"""

from __future__ import annotations

import uvicorn

from ksefproxy.common.config import Config

from .core import KSeFProxyServer


def start_server(config: Config | None = None) -> None:
    """Start the KSeF proxy server."""
    if config is None:
        config = Config()
    server = KSeFProxyServer(config=config)
    uvicorn.run(
        server.app,
        host=server.server_host,
        port=server.server_port,
        log_level=config.LOG_LEVEL,
    )
