from __future__ import annotations

import re

import pytest
from fastapi.testclient import TestClient

from .conftest import FakeClock

MOCK = "/api/ksef-mock/online"
CONTEXT = {"contextIdentifier": {"type": "onip", "identifier": "1111111111"}}


def _open_session(client: TestClient) -> str:
    response = client.post(f"{MOCK}/Session/InitSigned", content=b"<signed/>")
    assert response.status_code == 201  # noqa: PLR2004
    return response.json()["sessionToken"]["token"]


def _assert_envelope(body: dict, code: int) -> None:
    exception = body["exception"]
    assert exception["serviceCtx"] == "srvMOCK"
    assert exception["serviceName"] == "mock.service"
    assert re.fullmatch(
        r"\d{8}-SE-[0-9A-F]{10}-[0-9A-F]{10}-[0-9A-F]{2}", exception["serviceCode"]
    )
    assert exception["timestamp"].endswith("Z")
    assert exception["referenceNumber"]
    [detail] = exception["exceptionDetailList"]
    assert detail["exceptionCode"] == code
    assert detail["exceptionDescription"]


def test_challenge_returns_201(client: TestClient) -> None:
    response = client.post(f"{MOCK}/Session/AuthorisationChallenge", json=CONTEXT)
    assert response.status_code == 201  # noqa: PLR2004
    assert re.fullmatch(
        r"\d{8}-CR-[0-9A-F]{10}-[0-9A-F]{10}-[0-9A-F]{2}", response.json()["challenge"]
    )


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"contextIdentifier": {"type": "onip"}},
        {"contextIdentifier": {"identifier": "1111111111"}},
    ],
)
def test_challenge_missing_context(client: TestClient, body: dict) -> None:
    response = client.post(f"{MOCK}/Session/AuthorisationChallenge", json=body)
    assert response.status_code == 400  # noqa: PLR2004
    _assert_envelope(response.json(), 21001)


def test_challenge_without_body(client: TestClient) -> None:
    response = client.post(f"{MOCK}/Session/AuthorisationChallenge")
    assert response.status_code == 400  # noqa: PLR2004
    _assert_envelope(response.json(), 21001)


def test_unknown_session_token(client: TestClient) -> None:
    response = client.get(
        f"{MOCK}/Session/Status", headers={"SessionToken": "bogus"}
    )
    assert response.status_code == 401  # noqa: PLR2004
    _assert_envelope(response.json(), 21003)


def test_missing_session_token(client: TestClient) -> None:
    response = client.put(f"{MOCK}/Invoice/Send", content=b"<Faktura/>")
    assert response.status_code == 401  # noqa: PLR2004
    _assert_envelope(response.json(), 21003)


def test_init_token_creates_session(client: TestClient) -> None:
    response = client.post(f"{MOCK}/Session/InitToken", content=b"<token/>")
    assert response.status_code == 201  # noqa: PLR2004
    token = response.json()["sessionToken"]["token"]

    status = client.get(f"{MOCK}/Session/Status", headers={"SessionToken": token})
    assert status.status_code == 200  # noqa: PLR2004
    assert status.json()["processingDescription"] == "Sesja aktywna"


@pytest.mark.parametrize("method", ["GET", "POST"])
def test_terminate_twice(client: TestClient, method: str) -> None:
    token = _open_session(client)
    headers = {"SessionToken": token}

    for _ in range(2):
        response = client.request(method, f"{MOCK}/Session/Terminate", headers=headers)
        assert response.status_code == 200  # noqa: PLR2004

    status = client.get(f"{MOCK}/Session/Status", headers=headers)
    assert status.status_code == 401  # noqa: PLR2004


@pytest.mark.parametrize("method", ["PUT", "POST"])
def test_invoice_lifecycle(client: TestClient, clock: FakeClock, method: str) -> None:
    token = _open_session(client)
    headers = {"SessionToken": token}

    sent = client.request(
        method, f"{MOCK}/Invoice/Send", content=b"<Faktura/>", headers=headers
    )
    assert sent.status_code == 202  # noqa: PLR2004
    reference = sent.json()["elementReferenceNumber"]

    status = client.get(f"{MOCK}/Invoice/Status/{reference}", headers=headers)
    assert status.json()["processingCode"] == 100  # noqa: PLR2004

    clock.advance(121)
    status = client.get(f"{MOCK}/Invoice/Status/{reference}", headers=headers)
    ksef_number = status.json()["invoiceStatus"]["ksefReferenceNumber"]

    document = client.get(f"{MOCK}/Invoice/Get/{ksef_number}", headers=headers)
    assert document.status_code == 200  # noqa: PLR2004
    assert document.headers["content-type"] == "application/octet-stream"
    assert ksef_number.encode() in document.content


def test_invoice_status_unknown_reference(client: TestClient) -> None:
    token = _open_session(client)
    response = client.get(
        f"{MOCK}/Invoice/Status/unknown", headers={"SessionToken": token}
    )
    assert response.status_code == 404  # noqa: PLR2004
    _assert_envelope(response.json(), 21002)


def test_query_invoice_sync_params(client: TestClient) -> None:
    token = _open_session(client)
    response = client.post(
        f"{MOCK}/Query/Invoice/Sync",
        params={"PageSize": 20, "PageOffset": 2},
        json={"queryCriteria": {}},
        headers={"SessionToken": token},
    )
    body = response.json()
    assert len(body["invoiceHeaderList"]) == 5  # noqa: PLR2004
    assert body["pageSize"] == 20  # noqa: PLR2004
    assert body["pageOffset"] == 2  # noqa: PLR2004


def test_generate_token(client: TestClient) -> None:
    token = _open_session(client)
    response = client.post(
        f"{MOCK}/Credentials/GenerateToken", headers={"SessionToken": token}
    )
    assert response.status_code == 200  # noqa: PLR2004
    assert "authorisationToken" in response.json()


def test_mock_health(client: TestClient) -> None:
    _open_session(client)
    body = client.get("/api/ksef-mock/health").json()
    assert body["service"] == "KSeF Mock Server"
    assert body["activeSessions"] == 1


def test_challenge_accepts_numeric_identifier(client: TestClient) -> None:
    body = {"contextIdentifier": {"type": "onip", "identifier": 1111111111}}
    response = client.post(f"{MOCK}/Session/AuthorisationChallenge", json=body)
    assert response.status_code == 201  # noqa: PLR2004
    assert response.json()["challenge"]


@pytest.mark.parametrize("params", [{"PageSize": "abc"}, {"PageOffset": "x"}])
def test_query_invoice_sync_bad_params_use_envelope(
    client: TestClient, params: dict
) -> None:
    token = _open_session(client)
    response = client.post(
        f"{MOCK}/Query/Invoice/Sync",
        params=params,
        json={"queryCriteria": {}},
        headers={"SessionToken": token},
    )
    assert response.status_code == 400  # noqa: PLR2004
    assert "error" not in response.json()
    _assert_envelope(response.json(), 21001)


def test_challenge_malformed_json_uses_envelope(client: TestClient) -> None:
    response = client.post(
        f"{MOCK}/Session/AuthorisationChallenge",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400  # noqa: PLR2004
    _assert_envelope(response.json(), 21001)
