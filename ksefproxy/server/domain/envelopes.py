"""
KSeF response envelopes reproduced by the simulator.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, NamedTuple

from ksefproxy.common.identifiers import (
    format_timestamp,
    generate_reference_number,
    utc_now,
)

SERVICE_CTX = "srvMOCK"
SERVICE_NAME = "mock.service"

JSON_MEDIA_TYPE = "application/json"
OCTET_STREAM_MEDIA_TYPE = "application/octet-stream"


class MockReply(NamedTuple):
    status_code: int
    body: Any
    media_type: str = JSON_MEDIA_TYPE


def create_success_response(
    data: dict[str, Any],
    reference_number: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Wrap ``data`` with the timestamp and reference number KSeF returns."""
    return {
        "timestamp": format_timestamp(now or utc_now()),
        "referenceNumber": reference_number or generate_reference_number(now=now),
        **data,
    }


def create_error_response(
    code: int,
    description: str,
    service_ctx: str = SERVICE_CTX,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build the KSeF exception envelope."""
    return {
        "exception": {
            "serviceCtx": service_ctx,
            "serviceCode": generate_reference_number(now=now),
            "serviceName": SERVICE_NAME,
            "timestamp": format_timestamp(now or utc_now()),
            "referenceNumber": generate_reference_number(now=now),
            "exceptionDetailList": [
                {
                    "exceptionCode": code,
                    "exceptionDescription": description,
                }
            ],
        }
    }
