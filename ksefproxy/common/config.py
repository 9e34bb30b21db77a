"""
Configuration settings for the KSeF proxy.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from ksefproxy.common.models import KSeFMode

logger = logging.getLogger(__name__)

# Official KSeF hosts; API paths are appended by the gateway
KSEF_ENVIRONMENTS: dict[str, str] = {
    "test": "https://ksef-test.mf.gov.pl",
    "demo": "https://ksef-demo.mf.gov.pl",
    "prod": "https://ksef.mf.gov.pl",
}

ENVIRONMENT_ALIASES: dict[str, str] = {"production": "prod"}

DEFAULT_ENVIRONMENT = "test"
MOCK_PATH_PREFIX = "/api/ksef-mock"


class Config:
    """Central configuration class for all system settings."""

    def __init__(self) -> None:
        # Upstream settings
        self.UPSTREAM_TIMEOUT: float = 30.0
        self.USER_AGENT: str = "PolishInvoicing/1.0"

        # Simulator settings
        self.MOCK_INIT_SIGNED_DELAY: float = 0.5
        self.INVOICE_ACCEPT_AFTER: int = 120  # Seconds until processing -> accepted
        self.MOCK_CONTEXT_NIP: str = "1111111111"

        # Server settings
        self.SERVER_HOST: str = os.getenv("KSEF_PROXY_HOST", "127.0.0.1")
        self.SERVER_PORT: int = int(os.getenv("KSEF_PROXY_PORT", "3001"))
        self.SERVER_URL: str = f"http://{self.SERVER_HOST}:{self.SERVER_PORT}"

        # Logging
        self.LOG_LEVEL: int = logging.getLevelName(
            os.getenv("KSEF_PROXY_LOG_LEVEL", "INFO").upper()
        )
        if not isinstance(self.LOG_LEVEL, int):
            self.LOG_LEVEL = logging.INFO


def normalize_environment(environment: str | None) -> str | None:
    """Return the canonical environment name, or None when unknown."""
    if not environment:
        return None
    name = environment.strip().lower()
    name = ENVIRONMENT_ALIASES.get(name, name)
    return name if name in KSEF_ENVIRONMENTS else None


def resolve_environment_url(
    environment: str | None, default_url: str | None = None
) -> str:
    """Map an environment name to the base URL of the official KSeF host.

    Unknown or absent names fall back to ``default_url``, then to the
    ``KSEF_API_URL`` environment variable, then to the test endpoint.
    """
    name = normalize_environment(environment)
    if name is not None:
        return KSEF_ENVIRONMENTS[name]
    return default_url or os.getenv("KSEF_API_URL") or KSEF_ENVIRONMENTS["test"]


def resolve_mode(environ: Mapping[str, str] | None = None) -> KSeFMode:
    """Decide whether the simulator or the official service backs requests.

    Evaluated on every call so that environment changes in a running process
    take effect without a restart.
    """
    env = os.environ if environ is None else environ

    use_mock = (
        env.get("USE_MOCK_KSEF") != "false" and env.get("USE_REAL_KSEF") != "true"
    )
    environment = (
        normalize_environment(env.get("KSEF_ENVIRONMENT")) or DEFAULT_ENVIRONMENT
    )

    base_url = env.get("BACKEND_URL")
    if not base_url:
        host = env.get("KSEF_PROXY_HOST", "127.0.0.1")
        port = env.get("KSEF_PROXY_PORT", "3001")
        base_url = f"http://{host}:{port}"
    base_url = base_url.rstrip("/")

    mode = KSeFMode(
        useMock=use_mock,
        mockBaseUrl=f"{base_url}{MOCK_PATH_PREFIX}",
        realBaseUrl=f"{KSEF_ENVIRONMENTS[environment]}/api",
        environment=environment,
    )
    logger.debug(
        "KSeF mode resolved: use_mock=%s environment=%s base_url=%s",
        mode.use_mock,
        mode.environment,
        mode.base_url,
    )
    return mode
