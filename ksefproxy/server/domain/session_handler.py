"""Session request handler for the KSeF simulator.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ksefproxy.common.exceptions import (
    UNAUTHORIZED_CODE,
    NotFoundError,
    ValidationError,
)
from ksefproxy.common.identifiers import (
    format_timestamp,
    generate_authorisation_token,
    generate_challenge,
    generate_reference_number,
    generate_session_token,
)
from ksefproxy.common.logging_utils import short_token
from ksefproxy.common.models import MockSession

from .envelopes import MockReply, create_success_response

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from ksefproxy.common.interfaces import IMockStore

UNAUTHORIZED_MESSAGE = "Nieautoryzowany dostęp"
MISSING_CONTEXT_MESSAGE = "Brak wymaganych danych kontekstowych"


class SessionHandler:
    """Handles challenge, session and credential requests."""

    def __init__(
        self,
        store: IMockStore,
        clock: Callable[[], datetime],
        context_nip: str,
        init_signed_delay: float,
    ):
        self.store = store
        self.clock = clock
        self.context_nip = context_nip
        self.init_signed_delay = init_signed_delay
        self.logger = logging.getLogger(__name__)

    def require_session(self, token: str | None) -> MockSession:
        """Return the active session for ``token`` or fail with 21003."""
        session = self.store.get_session(token) if token else None
        if session is None:
            raise NotFoundError(UNAUTHORIZED_MESSAGE, 401, UNAUTHORIZED_CODE)
        return session

    def authorisation_challenge(
        self, subject_type: str | None, identifier: str | None
    ) -> MockReply:
        if not subject_type or not identifier:
            raise ValidationError(MISSING_CONTEXT_MESSAGE)

        now = self.clock()
        challenge = generate_challenge(now)
        self.logger.info(
            "Generated challenge %s for %s:%s", challenge, subject_type, identifier
        )
        return MockReply(
            201, {"challenge": challenge, "timestamp": format_timestamp(now)}
        )

    async def init_signed(self, body: bytes) -> MockReply:
        self.logger.info("InitSigned received %d bytes", len(body))
        await asyncio.sleep(self.init_signed_delay)
        return self._create_session()

    def init_token(self, body: bytes) -> MockReply:
        self.logger.info("InitToken received %d bytes", len(body))
        return self._create_session()

    def _create_session(self) -> MockReply:
        now = self.clock()
        session = MockSession(
            token=generate_session_token(),
            reference_number=generate_reference_number(now=now),
            context_nip=self.context_nip,
            created_at=now,
        )
        self.store.add_session(session)
        self.logger.info("Created session %s", short_token(session.token))
        return MockReply(
            201,
            create_success_response(
                {
                    "sessionToken": {
                        "token": session.token,
                        "elementReferenceNumber": session.reference_number,
                    }
                },
                reference_number=session.reference_number,
                now=now,
            ),
        )

    def session_status(self, token: str | None) -> MockReply:
        session = self.require_session(token)
        return MockReply(
            200,
            create_success_response(
                {
                    "processingCode": 200,
                    "processingDescription": "Sesja aktywna",
                    "sessionStatus": {
                        "activeElements": 0,
                        "processingElementsCount": 0,
                        "timestampStart": format_timestamp(session.created_at),
                    },
                },
                now=self.clock(),
            ),
        )

    def terminate_session(self, token: str | None) -> MockReply:
        if token and self.store.remove_session(token) is not None:
            self.logger.info("Terminated session %s", short_token(token))
        return MockReply(
            200,
            create_success_response(
                {
                    "processingCode": 200,
                    "processingDescription": "Sesja zakończona",
                },
                now=self.clock(),
            ),
        )

    def generate_credential_token(self, token: str | None) -> MockReply:
        self.require_session(token)
        now = self.clock()
        return MockReply(
            200,
            create_success_response(
                {
                    "authorisationToken": generate_authorisation_token(),
                    "elementReferenceNumber": generate_reference_number(now=now),
                },
                now=now,
            ),
        )
