"""
In-memory session and invoice storage for the KSeF simulator.
"""

from __future__ import annotations

import threading

from ksefproxy.common.models import (
    InvoiceStatus,
    MockInvoice,
    MockSession,
    SessionStatus,
)


class MockStore:
    """Holds simulator sessions and invoices for the life of the process.

    Entries are never evicted. Gateway calls run in the threadpool, so every
    access to the maps goes through the lock.
    """

    def __init__(self) -> None:
        self.sessions: dict[str, MockSession] = {}
        self.invoices: dict[str, MockInvoice] = {}
        self._lock = threading.Lock()

    def add_session(self, session: MockSession) -> None:
        """Add a new session."""
        with self._lock:
            self.sessions[session.token] = session

    def get_session(self, token: str) -> MockSession | None:
        """Get an active session by token."""
        with self._lock:
            session = self.sessions.get(token)
        if session is None or session.status is not SessionStatus.ACTIVE:
            return None
        return session

    def remove_session(self, token: str) -> MockSession | None:
        """Terminate and remove a session."""
        with self._lock:
            session = self.sessions.pop(token, None)
        if session is not None:
            session.status = SessionStatus.TERMINATED
        return session

    def add_invoice(self, invoice: MockInvoice) -> None:
        with self._lock:
            self.invoices[invoice.element_reference_number] = invoice

    def get_invoice(self, element_reference_number: str) -> MockInvoice | None:
        with self._lock:
            return self.invoices.get(element_reference_number)

    def find_invoice_by_ksef_number(
        self, ksef_reference_number: str
    ) -> MockInvoice | None:
        """Linear scan over stored invoices by KSeF reference number."""
        with self._lock:
            for invoice in self.invoices.values():
                if invoice.ksef_reference_number == ksef_reference_number:
                    return invoice
        return None

    def mark_invoice_accepted(self, element_reference_number: str) -> None:
        with self._lock:
            invoice = self.invoices.get(element_reference_number)
            if invoice is not None:
                invoice.status = InvoiceStatus.ACCEPTED

    def sessions_count(self) -> int:
        with self._lock:
            return len(self.sessions)

    def invoices_count(self) -> int:
        with self._lock:
            return len(self.invoices)
