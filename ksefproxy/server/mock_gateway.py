"""
Gateway backed by the in-process KSeF simulator.
"""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any

from ksefproxy.common.exceptions import NotFoundError, UpstreamError, ValidationError
from ksefproxy.common.models import Challenge
from ksefproxy.common.xml_templates import (
    COMPANY_SUBJECT_TYPE,
    AuthRequestVariant,
    build_auth_request,
)
from ksefproxy.server.domain.envelopes import create_error_response

if TYPE_CHECKING:
    from ksefproxy.server.domain.envelopes import MockReply
    from ksefproxy.server.simulator import KSeFSimulator


class MockKSeFGateway:
    """Serves proxy operations from the simulator instead of the network.

    Simulator failures are re-raised as ``UpstreamError`` carrying the KSeF
    exception envelope, exactly as the real service would report them.
    The ``environment`` argument is accepted and ignored.
    """

    def __init__(self, simulator: KSeFSimulator):
        self.simulator = simulator
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _unwrap(call: Any, *args: Any) -> MockReply:
        try:
            return call(*args)
        except (ValidationError, NotFoundError) as err:
            raise UpstreamError(
                err.message,
                err.status_code,
                create_error_response(err.exception_code, err.message),
            ) from err

    async def request_challenge(
        self, subject_type: str, identifier: str, environment: str | None
    ) -> Challenge:
        reply = self._unwrap(
            self.simulator.authorisation_challenge, subject_type, identifier
        )
        return Challenge(**reply.body)

    async def init_session_signed(
        self, document: bytes, environment: str | None
    ) -> dict[str, Any]:
        reply = await self.simulator.init_signed(document)
        return reply.body

    async def init_session_token(
        self, nip: str, auth_token: str, environment: str | None
    ) -> dict[str, Any]:
        challenge = await self.request_challenge(COMPANY_SUBJECT_TYPE, nip, environment)
        # The simulator has no key pair; the token travels base64 encoded only
        token = base64.b64encode(
            f"{challenge.timestamp}|{auth_token}".encode()
        ).decode("ascii")
        document = build_auth_request(
            AuthRequestVariant.TOKEN, challenge.challenge, COMPANY_SUBJECT_TYPE, nip, token
        )
        return self._unwrap(self.simulator.init_token, document.encode("utf-8")).body

    async def send_invoice(
        self,
        session_token: str,
        body: bytes,
        content_type: str,
        environment: str | None,
    ) -> dict[str, Any]:
        return self._unwrap(self.simulator.send_invoice, session_token, body).body

    async def get_invoice_status(
        self, session_token: str, reference_number: str, environment: str | None
    ) -> dict[str, Any]:
        return self._unwrap(
            self.simulator.invoice_status, session_token, reference_number
        ).body

    async def get_invoice(
        self, session_token: str, ksef_reference_number: str, environment: str | None
    ) -> tuple[bytes, str]:
        reply = self._unwrap(
            self.simulator.get_invoice, session_token, ksef_reference_number
        )
        return reply.body, reply.media_type

    async def query_invoices(
        self,
        session_token: str,
        query_criteria: dict[str, Any],
        page_size: int,
        page_offset: int,
        environment: str | None,
    ) -> dict[str, Any]:
        return self._unwrap(
            self.simulator.query_invoice_sync, session_token, page_size, page_offset
        ).body

    async def terminate_session(
        self, session_token: str, environment: str | None
    ) -> dict[str, Any]:
        return self._unwrap(self.simulator.terminate_session, session_token).body
