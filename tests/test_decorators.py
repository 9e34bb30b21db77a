"""Tests for the proxy operation decorator.
"""

from __future__ import annotations

import asyncio

import pytest

from ksefproxy.common.decorators import ksef_operation
from ksefproxy.common.exceptions import CryptoError, UpstreamError, ValidationError


@ksef_operation("Failed to do the thing")
async def failing(exc: Exception) -> None:
    raise exc


@ksef_operation("Failed to do the thing")
async def succeeding(value: int) -> int:
    return value * 2


def test_passes_through_results() -> None:
    assert asyncio.run(succeeding(21)) == 42  # noqa: PLR2004
    assert succeeding.__name__ == "succeeding"


def test_relabels_upstream_error_keeping_body() -> None:
    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(failing(UpstreamError("status 500", 500, {"body": 1})))

    assert exc_info.value.message == "Failed to do the thing"
    assert exc_info.value.status_code == 500  # noqa: PLR2004
    assert exc_info.value.details == {"body": 1}


def test_moves_cause_into_details() -> None:
    with pytest.raises(CryptoError) as exc_info:
        asyncio.run(failing(CryptoError("bad key")))

    assert exc_info.value.to_dict() == {
        "error": "Failed to do the thing",
        "details": "bad key",
    }


def test_validation_errors_are_untouched() -> None:
    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(failing(ValidationError("Missing required fields")))

    assert exc_info.value.message == "Missing required fields"
    assert exc_info.value.details is None
