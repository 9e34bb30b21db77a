"""
Routes for the KSeF proxy.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError

from ksefproxy.common.models import (
    AuthorizationChallengeRequest,
    QueryInvoicesRequest,
    SendInvoiceRequest,
    SignedSessionRequest,
    TerminateSessionRequest,
    TokenSessionRequest,
)

from .services import KSeFService

PROXY_PREFIX = "/api/ksef"
SESSION_TOKEN_HEADER = "session-token"

SIGNED_XML_FIELD = "signedXml"


async def read_signed_session(
    request: Request,
) -> tuple[SignedSessionRequest, bytes | None]:
    """Parse a signed session request from a JSON body or a multipart form."""
    uploaded = None
    if request.headers.get("content-type", "").startswith("multipart/form-data"):
        form = await request.form()
        fields = {k: v for k, v in form.items() if isinstance(v, str)}
        signed_file = form.get(SIGNED_XML_FIELD)
        if signed_file is not None and not isinstance(signed_file, str):
            uploaded = await signed_file.read()
    else:
        body = await request.body()
        try:
            fields = json.loads(body) if body.strip() else {}
        except ValueError as err:
            raise RequestValidationError(
                [{"type": "json_invalid", "loc": ("body",), "msg": str(err)}]
            ) from err
        if not isinstance(fields, dict):
            raise RequestValidationError(
                [{"type": "dict_type", "loc": ("body",), "msg": "Expected an object"}]
            )

    try:
        return SignedSessionRequest.model_validate(fields), uploaded
    except PydanticValidationError as err:
        raise RequestValidationError(err.errors(include_url=False)) from err


class KSeFRoutes:
    """Handles FastAPI routes of the proxy consumed by the frontend."""

    def __init__(self, service: KSeFService):
        self.service = service

    def setup_routes(self, app: FastAPI) -> None:
        """Setup API routes on the FastAPI app."""
        router = APIRouter(prefix=PROXY_PREFIX)

        router.get("/config")(self.config)
        router.post("/authorization-challenge", status_code=201)(
            self.authorization_challenge
        )
        router.post("/request-session-token")(self.request_session_token)
        router.post("/init-session-token")(self.init_session_token)
        router.post("/init-session-signed")(self.init_session_signed)
        router.post("/send-invoice")(self.send_invoice)
        router.get("/invoice-status/{reference_number}")(self.invoice_status)
        router.get("/invoice/{ksef_id}")(self.get_invoice)
        router.post("/query-invoices")(self.query_invoices)
        router.post("/terminate-session")(self.terminate_session)

        app.include_router(router)

    async def config(self) -> dict[str, Any]:
        """Handle /config endpoint."""
        return self.service.config()

    async def authorization_challenge(
        self, req: AuthorizationChallengeRequest
    ) -> dict[str, Any]:
        """Handle /authorization-challenge endpoint."""
        return await self.service.authorization_challenge(req)

    async def request_session_token(self, req: SignedSessionRequest) -> dict[str, Any]:
        """Handle /request-session-token endpoint."""
        return await self.service.request_session_token(req)

    async def init_session_token(self, req: TokenSessionRequest) -> dict[str, Any]:
        """Handle /init-session-token endpoint."""
        return await self.service.init_session_token(req)

    async def init_session_signed(self, request: Request) -> dict[str, Any]:
        """Handle /init-session-signed endpoint.

        Accepts either a JSON body with base64 encoded XML or a multipart
        form carrying the signed document as the ``signedXml`` file.
        """
        req, uploaded = await read_signed_session(request)
        return await self.service.init_session_signed(req, uploaded)

    async def send_invoice(self, req: SendInvoiceRequest) -> dict[str, Any]:
        """Handle /send-invoice endpoint."""
        return await self.service.send_invoice(req)

    async def invoice_status(
        self,
        reference_number: str,
        environment: str | None = None,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> Any:
        """Handle /invoice-status endpoint."""
        return await self.service.invoice_status(
            session_token, reference_number, environment
        )

    async def get_invoice(
        self,
        ksef_id: str,
        environment: str | None = None,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> dict[str, Any]:
        """Handle /invoice endpoint."""
        return await self.service.get_invoice(session_token, ksef_id, environment)

    async def query_invoices(
        self,
        req: QueryInvoicesRequest,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> Any:
        """Handle /query-invoices endpoint."""
        return await self.service.query_invoices(session_token, req)

    async def terminate_session(
        self,
        req: TerminateSessionRequest | None = None,
        session_token: str | None = Header(default=None, alias=SESSION_TOKEN_HEADER),
    ) -> dict[str, Any]:
        """Handle /terminate-session endpoint."""
        return await self.service.terminate_session(
            session_token, req or TerminateSessionRequest()
        )
