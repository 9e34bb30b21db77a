"""
Generators for KSeF-style identifiers, tokens and timestamps.
"""

from __future__ import annotations

import base64
import secrets
from datetime import datetime, timezone

SESSION_TAG = "SE"
CHALLENGE_TAG = "CR"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with milliseconds and a Z suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def random_hex(length: int) -> str:
    return secrets.token_hex((length + 1) // 2)[:length].upper()


def generate_reference_number(
    tag: str = SESSION_TAG, now: datetime | None = None
) -> str:
    """Build a ``YYYYMMDD-XX-<10 hex>-<10 hex>-<2 hex>`` reference number."""
    date_str = (now or utc_now()).astimezone(timezone.utc).strftime("%Y%m%d")
    return f"{date_str}-{tag}-{random_hex(10)}-{random_hex(10)}-{random_hex(2)}"


def generate_challenge(now: datetime | None = None) -> str:
    return generate_reference_number(CHALLENGE_TAG, now)


def generate_ksef_number(nip: str, now: datetime | None = None) -> str:
    """Build a KSeF invoice number derived from the subject NIP."""
    date_str = (now or utc_now()).astimezone(timezone.utc).strftime("%Y%m%d")
    return f"{nip}-{date_str}-{random_hex(6)}-{random_hex(6)}-{random_hex(2)}"


def generate_session_token() -> str:
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


def generate_authorisation_token() -> str:
    return secrets.token_hex(16)
