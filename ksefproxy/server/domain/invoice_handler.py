"""Invoice request handler for the KSeF simulator.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any
from xml.sax.saxutils import escape

from ksefproxy.common.exceptions import NOT_FOUND_CODE, NotFoundError
from ksefproxy.common.identifiers import (
    format_timestamp,
    generate_ksef_number,
    generate_reference_number,
)
from ksefproxy.common.models import InvoiceStatus, MockInvoice

from .envelopes import OCTET_STREAM_MEDIA_TYPE, MockReply, create_success_response

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from ksefproxy.common.interfaces import IMockStore

    from .session_handler import SessionHandler

INVOICE_NOT_FOUND_MESSAGE = "Nie znaleziono faktury"
MAX_QUERY_ELEMENTS = 5

MOCK_INVOICE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Invoice xmlns="http://crd.gov.pl/wzor/2023/06/29/12648/">
  <InvoiceHeader>
    <InvoiceNumber>{invoice_number}</InvoiceNumber>
    <IssueDate>{issue_date}</IssueDate>
    <KSeFReferenceNumber>{ksef_reference_number}</KSeFReferenceNumber>
  </InvoiceHeader>
  <Seller>
    <Name>Test Company</Name>
    <TaxID>1111111111</TaxID>
  </Seller>
  <Buyer>
    <Name>Test Buyer</Name>
    <TaxID>2222222222</TaxID>
  </Buyer>
  <InvoiceLines>
    <InvoiceLine>
      <Description>Mock Service Item</Description>
      <Quantity>1</Quantity>
      <UnitPrice>100.00</UnitPrice>
      <LineTotal>100.00</LineTotal>
    </InvoiceLine>
  </InvoiceLines>
  <Summary>
    <TotalAmount>123.00</TotalAmount>
    <TaxAmount>23.00</TaxAmount>
  </Summary>
</Invoice>"""


class InvoiceHandler:
    """Handles invoice send, status, download and query requests."""

    def __init__(
        self,
        store: IMockStore,
        sessions: SessionHandler,
        clock: Callable[[], datetime],
        accept_after: int,
    ):
        self.store = store
        self.sessions = sessions
        self.clock = clock
        self.accept_after = timedelta(seconds=accept_after)
        self.logger = logging.getLogger(__name__)

    def send_invoice(self, token: str | None, payload: bytes) -> MockReply:
        session = self.sessions.require_session(token)
        now = self.clock()
        invoice = MockInvoice(
            element_reference_number=generate_reference_number(now=now),
            ksef_reference_number=generate_ksef_number(session.context_nip, now),
            session_token=session.token,
            invoice_number=f"INV_{session.context_nip}_{int(now.timestamp() * 1000)}",
            created_at=now,
        )
        self.store.add_invoice(invoice)
        self.logger.info(
            "Invoice sent with reference %s (%d bytes)",
            invoice.element_reference_number,
            len(payload),
        )
        return MockReply(
            202,
            create_success_response(
                {
                    "elementReferenceNumber": invoice.element_reference_number,
                    "processingCode": 100,
                    "processingDescription": (
                        "Faktura została przyjęta do przetwarzania"
                    ),
                },
                now=now,
            ),
        )

    def current_status(self, invoice: MockInvoice) -> InvoiceStatus:
        """Evaluate the processing -> accepted transition at read time."""
        if invoice.status is InvoiceStatus.ACCEPTED:
            return InvoiceStatus.ACCEPTED
        if self.clock() - invoice.created_at >= self.accept_after:
            self.store.mark_invoice_accepted(invoice.element_reference_number)
            return InvoiceStatus.ACCEPTED
        return InvoiceStatus.PROCESSING

    def invoice_status(self, token: str | None, reference_number: str) -> MockReply:
        self.sessions.require_session(token)
        invoice = self.store.get_invoice(reference_number)
        if invoice is None:
            raise NotFoundError(INVOICE_NOT_FOUND_MESSAGE, 404, NOT_FOUND_CODE)

        status = self.current_status(invoice)
        self.logger.info("Invoice status for %s: %s", reference_number, status.value)

        data: dict[str, Any] = {"elementReferenceNumber": reference_number}
        if status is InvoiceStatus.ACCEPTED:
            data["processingCode"] = 200
            data["processingDescription"] = "Faktura została zaakceptowana"
            data["invoiceStatus"] = {
                "invoiceNumber": invoice.invoice_number,
                "ksefReferenceNumber": invoice.ksef_reference_number,
                "acquisitionTimestamp": format_timestamp(invoice.created_at),
            }
        else:
            data["processingCode"] = 100
            data["processingDescription"] = "Faktura w trakcie przetwarzania"
        return MockReply(200, create_success_response(data, now=self.clock()))

    def get_invoice(self, token: str | None, ksef_reference_number: str) -> MockReply:
        self.sessions.require_session(token)
        invoice = self.store.find_invoice_by_ksef_number(ksef_reference_number)
        if invoice is None:
            raise NotFoundError(INVOICE_NOT_FOUND_MESSAGE, 404, NOT_FOUND_CODE)

        document = MOCK_INVOICE_XML.format(
            invoice_number=escape(invoice.invoice_number),
            issue_date=invoice.created_at.date().isoformat(),
            ksef_reference_number=escape(invoice.ksef_reference_number),
        )
        self.logger.info("Retrieved invoice %s", ksef_reference_number)
        return MockReply(200, document.encode("utf-8"), OCTET_STREAM_MEDIA_TYPE)

    def query_invoice_sync(
        self, token: str | None, page_size: int, page_offset: int
    ) -> MockReply:
        session = self.sessions.require_session(token)
        now = self.clock()
        now_ms = int(now.timestamp() * 1000)
        count = max(0, min(page_size, MAX_QUERY_ELEMENTS))

        headers = [
            {
                "invoiceNumber": f"INV_{session.context_nip}_{now_ms + i}",
                "ksefReferenceNumber": generate_ksef_number(session.context_nip, now),
                "acquisitionTimestamp": format_timestamp(now - timedelta(days=i)),
                "invoiceType": "VAT",
                "subjectType": "subject1",
            }
            for i in range(count)
        ]
        self.logger.info("Returning %d mock invoice headers", len(headers))
        return MockReply(
            200,
            create_success_response(
                {
                    "invoiceHeaderList": headers,
                    "numberOfElements": len(headers),
                    "pageSize": page_size,
                    "pageOffset": page_offset,
                    "hasMoreElements": False,
                },
                now=now,
            ),
        )
