"""In-memory KSeF simulator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ksefproxy.common.config import Config
from ksefproxy.common.identifiers import format_timestamp, utc_now
from ksefproxy.server.domain.invoice_handler import InvoiceHandler
from ksefproxy.server.domain.session_handler import SessionHandler
from ksefproxy.server.mock_store import MockStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from ksefproxy.common.interfaces import IMockStore
    from ksefproxy.server.domain.envelopes import MockReply


class KSeFSimulator:
    """Reproduces the KSeF online API surface without any network calls.

    Failures are raised as ``ValidationError`` (21001) or ``NotFoundError``
    (21002, 21003); successes are returned as ``MockReply``.
    """

    def __init__(
        self,
        store: IMockStore | None = None,
        config: Config | None = None,
        clock: Callable[[], datetime] = utc_now,
        init_signed_delay: float | None = None,
        accept_after: int | None = None,
    ):
        config = config or Config()
        self.store = store if store is not None else MockStore()
        self.clock = clock

        self.session_handler = SessionHandler(
            store=self.store,
            clock=clock,
            context_nip=config.MOCK_CONTEXT_NIP,
            init_signed_delay=(
                config.MOCK_INIT_SIGNED_DELAY
                if init_signed_delay is None
                else init_signed_delay
            ),
        )
        self.invoice_handler = InvoiceHandler(
            store=self.store,
            sessions=self.session_handler,
            clock=clock,
            accept_after=(
                config.INVOICE_ACCEPT_AFTER if accept_after is None else accept_after
            ),
        )

    def authorisation_challenge(
        self, subject_type: str | None, identifier: str | None
    ) -> MockReply:
        return self.session_handler.authorisation_challenge(subject_type, identifier)

    async def init_signed(self, body: bytes) -> MockReply:
        return await self.session_handler.init_signed(body)

    def init_token(self, body: bytes) -> MockReply:
        return self.session_handler.init_token(body)

    def session_status(self, token: str | None) -> MockReply:
        return self.session_handler.session_status(token)

    def terminate_session(self, token: str | None) -> MockReply:
        return self.session_handler.terminate_session(token)

    def generate_credential_token(self, token: str | None) -> MockReply:
        return self.session_handler.generate_credential_token(token)

    def send_invoice(self, token: str | None, payload: bytes) -> MockReply:
        return self.invoice_handler.send_invoice(token, payload)

    def invoice_status(self, token: str | None, reference_number: str) -> MockReply:
        return self.invoice_handler.invoice_status(token, reference_number)

    def get_invoice(self, token: str | None, ksef_reference_number: str) -> MockReply:
        return self.invoice_handler.get_invoice(token, ksef_reference_number)

    def query_invoice_sync(
        self, token: str | None, page_size: int, page_offset: int
    ) -> MockReply:
        return self.invoice_handler.query_invoice_sync(token, page_size, page_offset)

    def health(self) -> dict[str, Any]:
        """Health check for the simulator."""
        return {
            "status": "healthy",
            "service": "KSeF Mock Server",
            "version": "1.0.0",
            "timestamp": format_timestamp(self.clock()),
            "activeSessions": self.store.sessions_count(),
            "storedInvoices": self.store.invoices_count(),
        }
