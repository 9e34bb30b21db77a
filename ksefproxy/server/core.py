"""
KSeF proxy server using FastAPI.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ksefproxy.common.config import MOCK_PATH_PREFIX, Config, resolve_mode
from ksefproxy.common.exceptions import KSeFProxyError
from ksefproxy.common.identifiers import format_timestamp, utc_now
from ksefproxy.common.logging_utils import setup_logger
from ksefproxy.common.mixins import Configurable

from .gateway import RealKSeFGateway
from .mock_gateway import MockKSeFGateway
from .mock_routes import MockKSeFRoutes, render_invalid_request
from .routes import KSeFRoutes
from .services import KSeFService
from .simulator import KSeFSimulator

if TYPE_CHECKING:
    from collections.abc import Callable

    import requests

    from ksefproxy.common.models import KSeFMode

SERVER_ATTRS = [
    "log_level",
    "server_host",
    "server_port",
    "upstream_timeout",
    "mock_init_signed_delay",
    "invoice_accept_after",
]


class KSeFProxyServer(Configurable):
    """Hosts the proxy API and the KSeF simulator in one FastAPI app."""

    def __init__(
        self,
        config: Config | None = None,
        simulator: KSeFSimulator | None = None,
        http: requests.Session | None = None,
        mode_resolver: Callable[[], KSeFMode] = resolve_mode,
        **overrides: Any,
    ):
        self.config = config or Config()
        self.apply_overrides(overrides, self.config, SERVER_ATTRS)

        self.logger = logging.getLogger("ksefproxy")
        setup_logger(self.logger, self.log_level)

        self.app = FastAPI(title="KSeF Proxy")

        # Initialize components
        self.simulator = simulator or KSeFSimulator(
            config=self.config,
            init_signed_delay=self.mock_init_signed_delay,
            accept_after=self.invoice_accept_after,
        )
        self.real_gateway = RealKSeFGateway(
            config=self.config, http=http, timeout=self.upstream_timeout
        )
        self.mock_gateway = MockKSeFGateway(self.simulator)
        self.service = KSeFService(
            self.real_gateway, self.mock_gateway, mode_resolver=mode_resolver
        )

        # Setup routes
        self._setup_error_handlers()
        self._setup_routes()

        self.logger.info(
            "KSeF proxy configured for http://%s:%s", self.server_host, self.server_port
        )

    def _setup_routes(self) -> None:
        """Setup API routes."""
        self.app.get("/health")(self.health)
        KSeFRoutes(self.service).setup_routes(self.app)
        MockKSeFRoutes(self.simulator).setup_routes(self.app)

    def _setup_error_handlers(self) -> None:
        self.app.add_exception_handler(KSeFProxyError, self._proxy_error)
        self.app.add_exception_handler(RequestValidationError, self._invalid_request)

    async def _proxy_error(
        self, request: Request, exc: KSeFProxyError
    ) -> JSONResponse:
        self.logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message
        )
        return JSONResponse(
            {**exc.to_dict(), "timestamp": format_timestamp(utc_now())},
            status_code=exc.status_code,
        )

    async def _invalid_request(
        self, request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        if request.url.path.startswith(MOCK_PATH_PREFIX):
            return render_invalid_request(exc)
        return JSONResponse(
            {
                "error": "Invalid request",
                "details": jsonable_encoder(exc.errors()),
                "timestamp": format_timestamp(utc_now()),
            },
            status_code=400,
        )

    async def health(self) -> dict[str, Any]:
        """Health check endpoint."""
        mode = self.service.mode_resolver()
        return {
            "status": "ok",
            "mode": "mock" if mode.use_mock else "real",
            "timestamp": format_timestamp(utc_now()),
        }
