"""Decorators for proxy operations.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

from ksefproxy.common.exceptions import CryptoError, UpstreamError

logger = logging.getLogger(__name__)


def ksef_operation(error_message: str) -> Callable:
    """Decorator that labels upstream and crypto failures of an operation.

    The failure keeps its status code and upstream body. Its message becomes
    ``error_message`` and the original message moves into ``details`` when no
    upstream body was captured.

    Args:
        error_message: Headline reported to the caller on failure

    Returns:
        Decorated coroutine function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except (UpstreamError, CryptoError) as err:
                logger.error(
                    "%s: status=%s cause=%s details=%s",
                    error_message,
                    err.status_code,
                    err.message,
                    err.details,
                )
                if err.details is None:
                    err.details = err.message
                err.message = error_message
                raise

        return wrapper

    return decorator
