"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import Any, Protocol

from ksefproxy.common.models import Challenge, MockInvoice, MockSession


class IKSeFGateway(Protocol):
    """Protocol for the backends the proxy dispatches to."""

    async def request_challenge(
        self, subject_type: str, identifier: str, environment: str | None
    ) -> Challenge: ...

    async def init_session_signed(
        self, document: bytes, environment: str | None
    ) -> dict[str, Any]: ...

    async def init_session_token(
        self, nip: str, auth_token: str, environment: str | None
    ) -> dict[str, Any]: ...

    async def send_invoice(
        self,
        session_token: str,
        body: bytes,
        content_type: str,
        environment: str | None,
    ) -> dict[str, Any]: ...

    async def get_invoice_status(
        self, session_token: str, reference_number: str, environment: str | None
    ) -> dict[str, Any]: ...

    async def get_invoice(
        self, session_token: str, ksef_reference_number: str, environment: str | None
    ) -> tuple[bytes, str]: ...

    async def query_invoices(
        self,
        session_token: str,
        query_criteria: dict[str, Any],
        page_size: int,
        page_offset: int,
        environment: str | None,
    ) -> dict[str, Any]: ...

    async def terminate_session(
        self, session_token: str, environment: str | None
    ) -> dict[str, Any]: ...


class IMockStore(Protocol):
    """Protocol for the simulator's session and invoice storage."""

    def add_session(self, session: MockSession) -> None: ...

    def get_session(self, token: str) -> MockSession | None: ...

    def remove_session(self, token: str) -> MockSession | None: ...

    def add_invoice(self, invoice: MockInvoice) -> None: ...

    def get_invoice(self, element_reference_number: str) -> MockInvoice | None: ...

    def find_invoice_by_ksef_number(
        self, ksef_reference_number: str
    ) -> MockInvoice | None: ...

    def mark_invoice_accepted(self, element_reference_number: str) -> None: ...

    def sessions_count(self) -> int: ...

    def invoices_count(self) -> int: ...
