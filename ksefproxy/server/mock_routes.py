"""
Routes of the KSeF simulator, mirroring the official online API paths.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from ksefproxy.common.config import MOCK_PATH_PREFIX
from ksefproxy.common.exceptions import (
    MISSING_CONTEXT_CODE,
    NotFoundError,
    ValidationError,
)
from ksefproxy.common.models import AuthorizationChallengeRequest
from ksefproxy.server.domain.envelopes import JSON_MEDIA_TYPE, create_error_response

if TYPE_CHECKING:
    from collections.abc import Callable

    from ksefproxy.server.domain.envelopes import MockReply
    from ksefproxy.server.simulator import KSeFSimulator

SESSION_TOKEN_HEADER = "SessionToken"
INVALID_REQUEST_MESSAGE = "Nieprawidłowe dane żądania"

logger = logging.getLogger(__name__)


def render_reply(reply: MockReply) -> Response:
    if reply.media_type == JSON_MEDIA_TYPE:
        return JSONResponse(reply.body, status_code=reply.status_code)
    return Response(
        reply.body, status_code=reply.status_code, media_type=reply.media_type
    )


def render_error(err: ValidationError | NotFoundError) -> JSONResponse:
    logger.info("Mock KSeF error %s: %s", err.exception_code, err.message)
    return JSONResponse(
        create_error_response(err.exception_code, err.message),
        status_code=err.status_code,
    )


def render_invalid_request(exc: RequestValidationError) -> JSONResponse:
    """Report a request the simulator could not parse as a 21001 envelope."""
    logger.info("Mock KSeF rejected request: %s", exc.errors())
    return JSONResponse(
        create_error_response(MISSING_CONTEXT_CODE, INVALID_REQUEST_MESSAGE),
        status_code=400,
    )


class MockKSeFRoutes:
    """Handles FastAPI routes of the KSeF simulator."""

    def __init__(self, simulator: KSeFSimulator):
        self.simulator = simulator

    def setup_routes(self, app: FastAPI) -> None:
        """Setup simulator routes on the FastAPI app."""
        router = APIRouter(prefix=MOCK_PATH_PREFIX)

        router.post("/online/Session/AuthorisationChallenge")(
            self.authorisation_challenge
        )
        router.post("/online/Session/InitSigned")(self.init_signed)
        router.post("/online/Session/InitToken")(self.init_token)
        router.get("/online/Session/Status")(self.session_status)
        router.api_route("/online/Session/Terminate", methods=["GET", "POST"])(
            self.terminate_session
        )
        router.api_route("/online/Invoice/Send", methods=["PUT", "POST"])(
            self.send_invoice
        )
        router.get("/online/Invoice/Status/{reference_number}")(self.invoice_status)
        router.get("/online/Invoice/Get/{ksef_reference_number}")(self.get_invoice)
        router.post("/online/Query/Invoice/Sync")(self.query_invoice_sync)
        router.post("/online/Credentials/GenerateToken")(self.generate_token)
        router.get("/health")(self.health)

        app.include_router(router)

    @staticmethod
    def _call(operation: Callable[..., MockReply], *args: Any) -> Response:
        try:
            return render_reply(operation(*args))
        except (ValidationError, NotFoundError) as err:
            return render_error(err)

    async def authorisation_challenge(
        self, req: AuthorizationChallengeRequest | None = None
    ) -> Response:
        context = req.context_identifier if req else None
        return self._call(
            self.simulator.authorisation_challenge,
            context.type if context else None,
            context.identifier if context else None,
        )

    async def init_signed(self, request: Request) -> Response:
        return render_reply(await self.simulator.init_signed(await request.body()))

    async def init_token(self, request: Request) -> Response:
        return render_reply(self.simulator.init_token(await request.body()))

    async def session_status(
        self,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> Response:
        return self._call(self.simulator.session_status, session_token)

    async def terminate_session(
        self,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> Response:
        return self._call(self.simulator.terminate_session, session_token)

    async def send_invoice(
        self,
        request: Request,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> Response:
        return self._call(
            self.simulator.send_invoice, session_token, await request.body()
        )

    async def invoice_status(
        self,
        reference_number: str,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> Response:
        return self._call(
            self.simulator.invoice_status, session_token, reference_number
        )

    async def get_invoice(
        self,
        ksef_reference_number: str,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> Response:
        return self._call(
            self.simulator.get_invoice, session_token, ksef_reference_number
        )

    async def query_invoice_sync(
        self,
        page_size: int = Query(default=10, alias="PageSize"),
        page_offset: int = Query(default=0, alias="PageOffset"),
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> Response:
        return self._call(
            self.simulator.query_invoice_sync, session_token, page_size, page_offset
        )

    async def generate_token(
        self,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> Response:
        return self._call(self.simulator.generate_credential_token, session_token)

    async def health(self) -> dict[str, Any]:
        """Handle /health endpoint of the simulator."""
        return self.simulator.health()
