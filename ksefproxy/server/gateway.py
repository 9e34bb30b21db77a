"""
Gateway to the official KSeF online API.
"""

from __future__ import annotations

import base64
import gzip
import logging
import os
import zlib
from typing import Any

import requests
from fastapi.concurrency import run_in_threadpool

from ksefproxy.common.config import (
    Config,
    normalize_environment,
    resolve_environment_url,
)
from ksefproxy.common.crypto import CryptoUtils
from ksefproxy.common.exceptions import (
    CryptoError,
    KSeFProxyError,
    UpstreamError,
    ValidationError,
)
from ksefproxy.common.logging_utils import short_token
from ksefproxy.common.models import Challenge
from ksefproxy.common.xml_templates import (
    COMPANY_SUBJECT_TYPE,
    AuthRequestVariant,
    build_auth_request,
)

API_PREFIX = "/api/online"

XML_CONTENT_TYPE = "application/xml"
ZIP_CONTENT_TYPE = "application/zip"
OCTET_STREAM = "application/octet-stream"

INVOICE_CONTENT_KINDS = ("xml", "gzip", "zip")


def build_signable_document(
    challenge: str, subject_type: str, identifier: str
) -> bytes:
    """Render the AuthRequest document the caller signs for the signed flow."""
    return build_auth_request(
        AuthRequestVariant.SIGNED, challenge, subject_type, identifier
    ).encode("utf-8")


def validate_content_kind(content_kind: str) -> None:
    if content_kind not in INVOICE_CONTENT_KINDS:
        msg = f"Invalid contentType. Must be one of: {', '.join(INVOICE_CONTENT_KINDS)}"
        raise ValidationError(msg)


def encode_invoice_payload(data: bytes, content_kind: str) -> tuple[bytes, str]:
    """Prepare an invoice body and its content type for Invoice/Send.

    ``xml`` is sent as text, ``gzip`` is decompressed and sent as text and
    ``zip`` is sent as raw binary.
    """
    validate_content_kind(content_kind)

    if content_kind == "zip":
        return data, ZIP_CONTENT_TYPE

    if content_kind == "gzip":
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as err:
            msg = f"Invalid base64 encoded gzip content: {err}"
            raise ValidationError(msg) from err

    text = data.decode("utf-8", errors="replace")
    return text.encode("utf-8"), XML_CONTENT_TYPE


def decode_base64(value: str, what: str) -> bytes:
    """Strictly decode a base64 field from a proxy request.

    Whitespace is ignored and missing trailing padding is restored.
    """
    cleaned = "".join(value.split())
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except ValueError as err:
        msg = f"Invalid base64 encoded {what}"
        raise ValidationError(msg) from err


def decompress_signed_document(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as err:
        msg = "Invalid compressed base64 encoded XML"
        raise ValidationError(msg) from err


def response_body(response: requests.Response) -> Any:
    """Return the JSON body of a response, or its text when not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text


class RealKSeFGateway:
    """Translates proxy operations into calls to the official KSeF API.

    Every call carries a bounded timeout; timeouts, connection failures and
    non-2xx responses surface as ``UpstreamError`` and are never retried.
    """

    def __init__(
        self,
        config: Config | None = None,
        http: requests.Session | None = None,
        timeout: float | None = None,
        default_url: str | None = None,
    ):
        self.config = config or Config()
        self.http = http or requests.Session()
        self.timeout = self.config.UPSTREAM_TIMEOUT if timeout is None else timeout
        self.default_url = default_url
        self.logger = logging.getLogger(__name__)

    def url_for(self, environment: str | None, path: str) -> str:
        # Requests without a known environment follow the deployment default
        if normalize_environment(environment) is None and not self.default_url:
            environment = os.getenv("KSEF_ENVIRONMENT")
        base_url = resolve_environment_url(environment, self.default_url)
        return f"{base_url}{API_PREFIX}{path}"

    def _headers(
        self,
        session_token: str | None = None,
        content_type: str | None = None,
        accept: str = "application/json",
    ) -> dict[str, str]:
        headers = {"Accept": accept, "User-Agent": self.config.USER_AGENT}
        if content_type:
            headers["Content-Type"] = content_type
        if session_token:
            headers["SessionToken"] = session_token
        return headers

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.logger.info("KSeF %s %s", method, url)
        try:
            response = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as err:
            self.logger.error("KSeF %s %s failed: %s", method, url, err)
            raise UpstreamError(str(err)) from err

        if not 200 <= response.status_code < 300:
            body = response_body(response)
            self.logger.error(
                "KSeF %s %s returned %s: %s", method, url, response.status_code, body
            )
            msg = f"KSeF API returned status {response.status_code}"
            raise UpstreamError(msg, response.status_code, body)
        return response

    async def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        return await run_in_threadpool(self._send, method, url, **kwargs)

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._request(method, url, **kwargs)
        return response_body(response)

    async def request_challenge(
        self, subject_type: str, identifier: str, environment: str | None
    ) -> Challenge:
        self.logger.info(
            "Requesting authorization challenge for %s:%s", subject_type, identifier
        )
        data = await self._request_json(
            "POST",
            self.url_for(environment, "/Session/AuthorisationChallenge"),
            json={"contextIdentifier": {"type": subject_type, "identifier": identifier}},
            headers=self._headers(content_type="application/json"),
        )
        if not isinstance(data, dict) or "challenge" not in data:
            msg = "KSeF returned an unexpected challenge response"
            raise UpstreamError(msg, 502, data)
        return Challenge(challenge=data["challenge"], timestamp=str(data["timestamp"]))

    async def fetch_public_key(self, environment: str | None) -> str:
        """Fetch the KSeF public key used to encrypt authorisation tokens."""
        try:
            data = await self._request_json(
                "GET",
                self.url_for(environment, "/Session/AuthorisationChallenge/PublicKey"),
                headers=self._headers(),
            )
        except KSeFProxyError as err:
            msg = "Failed to get KSeF public certificate from official API"
            raise CryptoError(msg, err.details or err.message) from err

        if isinstance(data, dict):
            data = data.get("publicKey") or ""
        return str(data)

    async def init_session_signed(
        self, document: bytes, environment: str | None
    ) -> dict[str, Any]:
        self.logger.info("Forwarding signed document of %d bytes", len(document))
        return await self._request_json(
            "POST",
            self.url_for(environment, "/Session/InitSigned"),
            data=document,
            headers=self._headers(content_type=f"{OCTET_STREAM}; charset=utf-8"),
        )

    async def init_session_token(
        self, nip: str, auth_token: str, environment: str | None
    ) -> dict[str, Any]:
        challenge = await self.request_challenge(COMPANY_SUBJECT_TYPE, nip, environment)
        public_key = CryptoUtils.load_public_key(
            await self.fetch_public_key(environment)
        )
        encrypted_token = CryptoUtils.encrypt_token(
            public_key, challenge.timestamp, auth_token
        )
        self.logger.info("Token encrypted with KSeF public key")

        document = build_auth_request(
            AuthRequestVariant.TOKEN,
            challenge.challenge,
            COMPANY_SUBJECT_TYPE,
            nip,
            encrypted_token,
        )
        return await self._request_json(
            "POST",
            self.url_for(environment, "/Session/InitToken"),
            data=document.encode("utf-8"),
            headers=self._headers(content_type=OCTET_STREAM),
        )

    async def send_invoice(
        self,
        session_token: str,
        body: bytes,
        content_type: str,
        environment: str | None,
    ) -> dict[str, Any]:
        self.logger.info(
            "Sending %d bytes (%s) for session %s",
            len(body),
            content_type,
            short_token(session_token),
        )
        return await self._request_json(
            "PUT",
            self.url_for(environment, "/Invoice/Send"),
            data=body,
            headers=self._headers(session_token, content_type),
        )

    async def get_invoice_status(
        self, session_token: str, reference_number: str, environment: str | None
    ) -> dict[str, Any]:
        return await self._request_json(
            "GET",
            self.url_for(environment, f"/Invoice/Status/{reference_number}"),
            headers=self._headers(session_token),
        )

    async def get_invoice(
        self, session_token: str, ksef_reference_number: str, environment: str | None
    ) -> tuple[bytes, str]:
        response = await self._request(
            "GET",
            self.url_for(environment, f"/Invoice/Get/{ksef_reference_number}"),
            headers=self._headers(session_token, accept=OCTET_STREAM),
        )
        return response.content, response.headers.get("Content-Type", XML_CONTENT_TYPE)

    async def query_invoices(
        self,
        session_token: str,
        query_criteria: dict[str, Any],
        page_size: int,
        page_offset: int,
        environment: str | None,
    ) -> dict[str, Any]:
        return await self._request_json(
            "POST",
            self.url_for(environment, "/Query/Invoice/Sync"),
            params={"PageSize": page_size, "PageOffset": page_offset},
            json={"queryCriteria": query_criteria},
            headers=self._headers(session_token, "application/json"),
        )

    async def terminate_session(
        self, session_token: str, environment: str | None
    ) -> dict[str, Any]:
        return await self._request_json(
            "GET",
            self.url_for(environment, "/Session/Terminate"),
            headers=self._headers(session_token),
        )

