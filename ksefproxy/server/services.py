"""Business logic services for the KSeF proxy.
"""

from __future__ import annotations

import base64
import logging
import os
from typing import TYPE_CHECKING, Any

from ksefproxy.common.config import resolve_environment_url, resolve_mode
from ksefproxy.common.decorators import ksef_operation
from ksefproxy.common.exceptions import ValidationError
from ksefproxy.common.identifiers import format_timestamp, utc_now
from ksefproxy.common.models import SessionSummary
from ksefproxy.server.gateway import (
    build_signable_document,
    decode_base64,
    decompress_signed_document,
    encode_invoice_payload,
    validate_content_kind,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ksefproxy.common.interfaces import IKSeFGateway
    from ksefproxy.common.models import (
        AuthorizationChallengeRequest,
        KSeFMode,
        QueryInvoicesRequest,
        SendInvoiceRequest,
        SignedSessionRequest,
        TerminateSessionRequest,
        TokenSessionRequest,
    )

MISSING_SESSION_TOKEN = "Missing session token in headers"

MODE_ENV_VARS = (
    "USE_MOCK_KSEF",
    "USE_REAL_KSEF",
    "KSEF_ENVIRONMENT",
    "BACKEND_URL",
    "KSEF_API_URL",
)


def require_session_token(session_token: str | None) -> str:
    if not session_token:
        raise ValidationError(MISSING_SESSION_TOKEN)
    return session_token


class KSeFService:
    """Dispatches proxy operations to the simulator or the official KSeF API.

    The mode is resolved on every call, so toggling the environment variables
    of a running process switches backends for the next request.
    """

    def __init__(
        self,
        real_gateway: IKSeFGateway,
        mock_gateway: IKSeFGateway,
        mode_resolver: Callable[[], KSeFMode] = resolve_mode,
    ):
        self.real_gateway = real_gateway
        self.mock_gateway = mock_gateway
        self.mode_resolver = mode_resolver
        self.logger = logging.getLogger(__name__)

    def backend(self) -> IKSeFGateway:
        mode = self.mode_resolver()
        return self.mock_gateway if mode.use_mock else self.real_gateway

    def config(self) -> dict[str, Any]:
        """Describe the active KSeF mode."""
        mode = self.mode_resolver()
        if mode.use_mock:
            message = "Using Mock KSeF API - no certificates required"
            features = [
                "No certificate requirements",
                "Instant responses",
                "Always successful operations",
                "Predictable test data",
                "No rate limiting",
            ]
        else:
            message = "Using Real KSeF API"
            features = [
                "Real certificate validation",
                "Actual KSeF integration",
                "Real invoice processing",
                "Production compliance",
            ]
        return {
            "mode": "mock" if mode.use_mock else "real",
            "baseUrl": mode.base_url,
            "environment": mode.environment,
            "mockEnabled": mode.use_mock,
            "version": "Mock v1.0" if mode.use_mock else "Real API v2.4.0",
            "message": message,
            "features": features,
            "debug": {
                "envVars": {name: os.getenv(name) for name in MODE_ENV_VARS},
                "mockLogic": (
                    "USE_MOCK_KSEF != 'false' and USE_REAL_KSEF != 'true' "
                    f"= {mode.use_mock}"
                ),
                "fallbackUrl": resolve_environment_url(None),
                "timestamp": format_timestamp(utc_now()),
            },
        }

    @ksef_operation("Failed to request authorization challenge")
    async def authorization_challenge(
        self, req: AuthorizationChallengeRequest
    ) -> dict[str, Any]:
        context = req.context_identifier
        if context is None or not context.type or not context.identifier:
            msg = (
                "Missing required fields: contextIdentifier.type and "
                "contextIdentifier.identifier"
            )
            raise ValidationError(msg)

        challenge = await self.backend().request_challenge(
            context.type, context.identifier, req.environment
        )
        document = build_signable_document(
            challenge.challenge, context.type, context.identifier
        )
        return {
            "challenge": challenge.challenge,
            "timestamp": challenge.timestamp,
            "xmlToSign": base64.b64encode(document).decode("ascii"),
            "message": (
                "XML ready for signing. Decode base64, sign the XML, and upload "
                "it to /init-session-signed endpoint."
            ),
        }

    @ksef_operation("Failed to generate session token")
    async def request_session_token(self, req: SignedSessionRequest) -> dict[str, Any]:
        if not req.signed_xml_base64:
            msg = "Missing required field: signedXmlBase64"
            raise ValidationError(msg)

        document = decode_base64(req.signed_xml_base64, "signed XML")
        self.logger.info("Processing signed XML of %d bytes", len(document))
        data = await self.backend().init_session_signed(document, req.environment)

        summary = SessionSummary.from_upstream(data)
        return {
            **summary.model_dump(by_alias=True),
            "message": (
                "Session token generated successfully. Use this token for all "
                "authenticated operations."
            ),
        }

    @ksef_operation("Failed to initialize session")
    async def init_session_signed(
        self, req: SignedSessionRequest, uploaded: bytes | None = None
    ) -> dict[str, Any]:
        if not req.signed_xml_base64 and not uploaded:
            msg = (
                "No signed XML provided. Use signedXmlBase64 field with base64 "
                "encoded XML"
            )
            raise ValidationError(msg)

        if not req.signed_xml_base64:
            # Uploaded files are forwarded as sent
            document = uploaded
        elif req.compressed:
            document = decompress_signed_document(
                decode_base64(req.signed_xml_base64, "compressed XML")
            )
        else:
            document = decode_base64(req.signed_xml_base64, "XML")

        data = await self.backend().init_session_signed(document, req.environment)
        return SessionSummary.from_upstream(data).model_dump(by_alias=True)

    @ksef_operation("Failed to initialize session with token")
    async def init_session_token(self, req: TokenSessionRequest) -> dict[str, Any]:
        if not req.nip or not req.auth_token:
            msg = "Missing required fields: nip and authToken"
            raise ValidationError(msg)

        self.logger.info(
            "Initializing token session for NIP %s in environment %s",
            req.nip,
            req.environment or "default",
        )
        data = await self.backend().init_session_token(
            req.nip, req.auth_token, req.environment
        )
        return {
            **SessionSummary.from_upstream(data).model_dump(by_alias=True),
            "rawResponse": data,
        }

    @ksef_operation("Failed to send invoice")
    async def send_invoice(self, req: SendInvoiceRequest) -> dict[str, Any]:
        if not req.session_token or not req.invoice_xml_base64:
            msg = "Missing required fields: sessionToken and invoiceXmlBase64"
            raise ValidationError(msg)

        validate_content_kind(req.content_type)
        body, content_type = encode_invoice_payload(
            decode_base64(req.invoice_xml_base64, f"{req.content_type} content"),
            req.content_type,
        )
        data = await self.backend().send_invoice(
            req.session_token, body, content_type, req.environment
        )
        if not isinstance(data, dict):
            data = {}
        return {
            "elementReferenceNumber": data.get("elementReferenceNumber"),
            "processingCode": data.get("processingCode"),
            "processingDescription": data.get("processingDescription"),
            "timestamp": data.get("timestamp"),
        }

    @ksef_operation("Failed to get invoice status")
    async def invoice_status(
        self,
        session_token: str | None,
        reference_number: str,
        environment: str | None,
    ) -> Any:
        token = require_session_token(session_token)
        return await self.backend().get_invoice_status(
            token, reference_number, environment
        )

    @ksef_operation("Failed to get invoice")
    async def get_invoice(
        self, session_token: str | None, ksef_id: str, environment: str | None
    ) -> dict[str, Any]:
        token = require_session_token(session_token)
        content, content_type = await self.backend().get_invoice(
            token, ksef_id, environment
        )
        return {
            "ksefId": ksef_id,
            "invoiceBase64": base64.b64encode(content).decode("ascii"),
            "contentType": content_type or "application/xml",
            "message": (
                "Invoice retrieved successfully. Decode base64 to get original "
                "content."
            ),
        }

    @ksef_operation("Failed to query invoices")
    async def query_invoices(
        self, session_token: str | None, req: QueryInvoicesRequest
    ) -> Any:
        token = require_session_token(session_token)
        if not req.date_from or not req.date_to:
            msg = "Missing required fields: dateFrom and dateTo (ISO format)"
            raise ValidationError(msg)

        return await self.backend().query_invoices(
            token,
            req.query_criteria(),
            req.page_size,
            req.page_offset,
            req.environment,
        )

    @ksef_operation("Failed to terminate session")
    async def terminate_session(
        self, session_token: str | None, req: TerminateSessionRequest
    ) -> dict[str, Any]:
        token = require_session_token(session_token)
        data = await self.backend().terminate_session(token, req.environment)
        timestamp = data.get("timestamp") if isinstance(data, dict) else None
        return {"message": "Session terminated successfully", "timestamp": timestamp}
