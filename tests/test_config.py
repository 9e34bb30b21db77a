import logging

import pytest

from ksefproxy.common.config import (
    KSEF_ENVIRONMENTS,
    Config,
    normalize_environment,
    resolve_environment_url,
    resolve_mode,
)


def test_config_defaults() -> None:
    config = Config()
    assert config.UPSTREAM_TIMEOUT == 30.0  # noqa: PLR2004
    assert config.MOCK_INIT_SIGNED_DELAY == 0.5  # noqa: PLR2004
    assert config.INVOICE_ACCEPT_AFTER == 120  # noqa: PLR2004
    assert config.SERVER_HOST == "127.0.0.1"
    assert config.SERVER_PORT == 3001  # noqa: PLR2004
    assert config.SERVER_URL == "http://127.0.0.1:3001"
    assert config.LOG_LEVEL == logging.INFO


def test_config_reads_server_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KSEF_PROXY_HOST", "0.0.0.0")
    monkeypatch.setenv("KSEF_PROXY_PORT", "8080")
    monkeypatch.setenv("KSEF_PROXY_LOG_LEVEL", "debug")

    config = Config()
    assert config.SERVER_URL == "http://0.0.0.0:8080"
    assert config.LOG_LEVEL == logging.DEBUG


def test_config_unknown_log_level_falls_back_to_info(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("KSEF_PROXY_LOG_LEVEL", "chatty")
    assert Config().LOG_LEVEL == logging.INFO


@pytest.mark.parametrize(
    ("environment", "expected"),
    [
        ("test", "https://ksef-test.mf.gov.pl"),
        ("demo", "https://ksef-demo.mf.gov.pl"),
        ("prod", "https://ksef.mf.gov.pl"),
        ("production", "https://ksef.mf.gov.pl"),
        ("PROD", "https://ksef.mf.gov.pl"),
    ],
)
def test_resolve_environment_url(environment: str, expected: str) -> None:
    assert resolve_environment_url(environment) == expected


def test_resolve_environment_url_fallbacks(monkeypatch: pytest.MonkeyPatch) -> None:
    assert resolve_environment_url(None) == KSEF_ENVIRONMENTS["test"]
    assert resolve_environment_url("staging") == KSEF_ENVIRONMENTS["test"]
    assert resolve_environment_url(None, "http://upstream") == "http://upstream"

    monkeypatch.setenv("KSEF_API_URL", "http://from-env")
    assert resolve_environment_url("unknown") == "http://from-env"


def test_normalize_environment() -> None:
    assert normalize_environment(" Demo ") == "demo"
    assert normalize_environment("production") == "prod"
    assert normalize_environment("") is None
    assert normalize_environment("qa") is None


def test_resolve_mode_defaults_to_mock() -> None:
    mode = resolve_mode({})
    assert mode.use_mock is True
    assert mode.environment == "test"
    assert mode.base_url == "http://127.0.0.1:3001/api/ksef-mock"
    assert mode.real_base_url == "https://ksef-test.mf.gov.pl/api"


@pytest.mark.parametrize(
    ("env", "use_mock"),
    [
        ({"USE_MOCK_KSEF": "false"}, False),
        ({"USE_REAL_KSEF": "true"}, False),
        ({"USE_MOCK_KSEF": "true", "USE_REAL_KSEF": "true"}, False),
        ({"USE_MOCK_KSEF": "true", "USE_REAL_KSEF": "false"}, True),
        ({"USE_MOCK_KSEF": "no"}, True),
    ],
)
def test_resolve_mode_switch(env: dict[str, str], use_mock: bool) -> None:  # noqa: FBT001
    assert resolve_mode(env).use_mock is use_mock


def test_resolve_mode_real_environment() -> None:
    mode = resolve_mode({"USE_REAL_KSEF": "true", "KSEF_ENVIRONMENT": "production"})
    assert mode.environment == "prod"
    assert mode.base_url == "https://ksef.mf.gov.pl/api"


def test_resolve_mode_backend_url() -> None:
    mode = resolve_mode({"BACKEND_URL": "https://proxy.example/"})
    assert mode.mock_base_url == "https://proxy.example/api/ksef-mock"


def test_resolve_mode_reads_process_env(monkeypatch: pytest.MonkeyPatch) -> None:
    assert resolve_mode().use_mock is True
    monkeypatch.setenv("USE_REAL_KSEF", "true")
    assert resolve_mode().use_mock is False
