"""
Pydantic models for request/response validation and mock records.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    # NIP and PESEL values arrive as JSON numbers from some clients
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class ContextIdentifier(CamelModel):
    type: str | None = None
    identifier: str | None = None


class AuthorizationChallengeRequest(CamelModel):
    context_identifier: ContextIdentifier | None = Field(
        default=None, alias="contextIdentifier"
    )
    environment: str | None = None


class SignedSessionRequest(CamelModel):
    signed_xml_base64: str | None = Field(default=None, alias="signedXmlBase64")
    environment: str | None = None
    compressed: bool = False


class TokenSessionRequest(CamelModel):
    nip: str | None = None
    auth_token: str | None = Field(default=None, alias="authToken")
    environment: str | None = None


class SendInvoiceRequest(CamelModel):
    session_token: str | None = Field(default=None, alias="sessionToken")
    invoice_xml_base64: str | None = Field(default=None, alias="invoiceXmlBase64")
    environment: str | None = None
    content_type: str = Field(default="xml", alias="contentType")


class QueryInvoicesRequest(CamelModel):
    date_from: str | None = Field(default=None, alias="dateFrom")
    date_to: str | None = Field(default=None, alias="dateTo")
    environment: str | None = None
    page_size: int = Field(default=10, alias="pageSize")
    page_offset: int = Field(default=0, alias="pageOffset")
    subject_type: str = Field(default="subject1", alias="subjectType")
    type: str = "incremental"

    def query_criteria(self) -> dict[str, Any]:
        return {
            "subjectType": self.subject_type,
            "type": self.type,
            "acquisitionTimestampThresholdFrom": self.date_from,
            "acquisitionTimestampThresholdTo": self.date_to,
        }


class TerminateSessionRequest(BaseModel):
    environment: str | None = None


class KSeFMode(CamelModel):
    use_mock: bool = Field(alias="useMock")
    mock_base_url: str = Field(alias="mockBaseUrl")
    real_base_url: str = Field(alias="realBaseUrl")
    environment: str

    @property
    def base_url(self) -> str:
        return self.mock_base_url if self.use_mock else self.real_base_url


class Challenge(BaseModel):
    challenge: str
    timestamp: str


class SessionSummary(CamelModel):
    session_token: Any = Field(alias="sessionToken")
    timestamp: str | None = None
    reference_number: str | None = Field(default=None, alias="referenceNumber")

    @classmethod
    def from_upstream(cls, data: Any) -> SessionSummary:
        """Build a summary from an InitSigned/InitToken response.

        The token is taken from ``sessionToken.token`` when KSeF nests it,
        from ``sessionToken`` when it is a plain value, and falls back to the
        whole body otherwise. Only fields present upstream are carried over.
        """
        if not isinstance(data, dict):
            return cls(sessionToken=data)
        token = data.get("sessionToken")
        if isinstance(token, dict) and token.get("token"):
            token = token["token"]
        return cls(
            sessionToken=token if token else data,
            timestamp=data.get("timestamp"),
            referenceNumber=data.get("referenceNumber"),
        )


class SessionStatus(str, Enum):
    ACTIVE = "active"
    TERMINATED = "terminated"


class InvoiceStatus(str, Enum):
    PROCESSING = "processing"
    ACCEPTED = "accepted"


class MockSession(BaseModel):
    token: str
    reference_number: str
    context_nip: str
    created_at: datetime
    status: SessionStatus = SessionStatus.ACTIVE


class MockInvoice(BaseModel):
    element_reference_number: str
    ksef_reference_number: str
    session_token: str
    invoice_number: str
    created_at: datetime
    status: InvoiceStatus = InvoiceStatus.PROCESSING
