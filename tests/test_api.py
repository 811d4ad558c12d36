import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from sms_gateway.application.ports.otp_provider import ProviderResponse
from sms_gateway.config import Settings
from sms_gateway.db.models import OtpLog
from sms_gateway.dependencies import build_container
from sms_gateway.infrastructure.persistence.sqlalchemy.repositories.settings_repository_sql import SqlSettingsRepository
from sms_gateway.main import create_app


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL="sqlite://",
        REDIS_URL=None,
        SMS_MODE="mock",
        TWO_FACTOR_API_KEY="",
        ALLOWED_ORIGINS="http://localhost:5173",
        FRONTEND_URL="",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def container():
    return build_container(make_settings())


@pytest.fixture
def client(container):
    with TestClient(create_app(container=container)) as c:
        yield c


def store_config(container, record):
    SqlSettingsRepository(container.engine).put(
        container.settings.SETTINGS_CATEGORY, container.settings.SETTINGS_KEY, record
    )


def audit_rows(container):
    with Session(container.engine) as session:
        return session.exec(select(OtpLog).order_by(OtpLog.created_at)).all()


class FakeProvider:
    name = "2factor"

    def __init__(self, send_response=None, verify_response=None):
        self.send_response = send_response or ProviderResponse(ok=True, request_id="sess-1")
        self.verify_response = verify_response or ProviderResponse(ok=True, request_id="sess-1")

    async def send(self, phone, otp_code):
        return self.send_response

    async def verify(self, phone, request_id, otp_code):
        return self.verify_response


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "healthy"
    assert body["mode"] == "mock"
    assert body["auditFailures"] == 0


def test_send_otp_mock_mode(client, container):
    res = client.post("/api/sms/sendOtp", json={"phone": "9876543210"})

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "sent"
    assert body["mode"] == "mock"
    assert body["requestId"].startswith("mock_")

    rows = audit_rows(container)
    assert len(rows) == 1
    assert rows[0].phone == "+919876543210"
    assert rows[0].status == "sent"
    assert rows[0].request_id == body["requestId"]
    assert len(rows[0].otp_last2) == 2


def test_send_otp_accepts_numeric_phone(client):
    res = client.post("/api/sms/sendOtp", json={"phone": 9876543210})
    assert res.status_code == 200


def test_send_otp_invalid_phone(client, container):
    res = client.post("/api/sms/sendOtp", json={"phone": "call me"})
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid phone number"}
    assert audit_rows(container) == []


def test_malformed_body_is_400(client):
    res = client.post("/api/sms/sendOtp", content=b"{not json", headers={"Content-Type": "application/json"})
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid request body"}


def test_verify_missing_otp_is_400_and_not_audited(client, container):
    res = client.post("/api/sms/verifyOtp", json={"phone": "9876543210", "requestId": "mock_1", "otp": ""})
    assert res.status_code == 400
    assert audit_rows(container) == []


def test_verify_mock_mode(client, container):
    res = client.post("/api/sms/verifyOtp", json={"phone": "9876543210", "requestId": "mock_1", "otp": "4242"})
    assert res.status_code == 200
    assert res.json() == {"status": "verified"}
    assert audit_rows(container)[0].provider == "mock"


def test_sixth_otp_request_for_same_phone_is_limited(client):
    for _ in range(5):
        assert client.post("/api/sms/sendOtp", json={"phone": "9876543210"}).status_code == 200

    res = client.post("/api/sms/sendOtp", json={"phone": "+91 98765 43210"})
    assert res.status_code == 429
    assert res.json() == {"error": "Too many OTP requests, please try again later."}

    other = client.post("/api/sms/sendOtp", json={"phone": "9123456780"})
    assert other.status_code == 200


def test_ip_limit_applies_to_every_route():
    container = build_container(make_settings(RATE_LIMIT_MAX_REQUESTS=3))
    with TestClient(create_app(container=container)) as c:
        for _ in range(3):
            assert c.get("/health").status_code == 200
        res = c.get("/health")
    assert res.status_code == 429
    assert res.json() == {"error": "Too many requests, please try again later."}


def test_config_status_reflects_stored_record(client, container):
    store_config(container, {"mode": "live", "api_key": "k", "sender_id": "AGENTS", "enabled_verify": False})

    res = client.get("/api/sms/config/status")

    assert res.status_code == 200
    assert res.json() == {
        "mode": "live",
        "provider": "2factor",
        "senderId": "AGENTS",
        "enabledSend": True,
        "enabledVerify": False,
    }


def test_send_disabled_is_503(client, container):
    store_config(container, {"enabled_send": False})
    res = client.post("/api/sms/sendOtp", json={"phone": "9876543210"})
    assert res.status_code == 503
    assert audit_rows(container)[0].error_code == 503


def test_live_mode_without_key_is_500(client, container):
    store_config(container, {"mode": "live", "api_key": ""})
    res = client.post("/api/sms/sendOtp", json={"phone": "9876543210"})
    assert res.status_code == 500
    assert res.json() == {"error": "SMS provider not configured"}
    assert audit_rows(container)[0].error_code == 401


def test_live_provider_failure_includes_provider_error(client, container):
    store_config(container, {"mode": "live", "api_key": "k"})
    provider = FakeProvider(send_response=ProviderResponse(ok=False, status_code=429, provider_error="Too many"))
    container.otp_service.provider_factory = lambda config: provider

    res = client.post("/api/sms/sendOtp", json={"phone": "9876543210"})

    assert res.status_code == 429
    assert res.json() == {"error": "Rate limit exceeded", "providerError": "Too many"}


def test_live_verify_expired(client, container):
    store_config(container, {"mode": "live", "api_key": "k"})
    provider = FakeProvider(verify_response=ProviderResponse(ok=False, status_code=400, provider_error="OTP Expired"))
    container.otp_service.provider_factory = lambda config: provider

    res = client.post("/api/sms/verifyOtp", json={"phone": "9876543210", "request_id": "sess-1", "otp": "123456"})

    assert res.status_code == 400
    assert res.json()["error"] == "OTP expired"


def test_unexpected_error_is_500_and_audited(client, container):
    store_config(container, {"mode": "live", "api_key": "k"})

    def broken_factory(config):
        raise RuntimeError("factory exploded")

    container.otp_service.provider_factory = broken_factory

    res = client.post("/api/sms/sendOtp", json={"phone": "9876543210"})

    assert res.status_code == 500
    assert res.json() == {"error": "Internal error"}
    rows = audit_rows(container)
    assert rows[-1].error_code == 500
    assert rows[-1].status == "failed"


def test_agent_upsert_and_update_email(client):
    first = client.post("/api/sms/agent/upsert", json={"phone": "9876543210", "name": "Ravi"})
    second = client.post("/api/sms/agent/upsert", json={"phone": "9876543210"})

    assert first.status_code == 200 and second.status_code == 200
    a, b = first.json(), second.json()
    assert a["email"] == "agent.919876543210@mobile.local"
    assert a["userId"] == b["userId"]
    assert a["password"] != b["password"]

    bad = client.post("/api/auth/update-email", json={"userId": a["userId"], "newEmail": "nope"})
    assert bad.status_code == 400
    assert bad.json() == {"error": "Invalid email format"}

    ok = client.post("/api/auth/update-email", json={"userId": a["userId"], "newEmail": "Ravi@Example.com"})
    assert ok.status_code == 200
    assert ok.json() == {"ok": True, "email": "ravi@example.com"}

    missing = client.post("/api/auth/update-email", json={"userId": "no-such-user", "newEmail": "x@example.com"})
    assert missing.status_code == 409


def test_agent_upsert_invalid_phone(client):
    res = client.post("/api/sms/agent/upsert", json={"phone": ""})
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid phone number"}


def test_cors_allows_any_localhost_port(client):
    res = client.options(
        "/api/sms/sendOtp",
        headers={"Origin": "http://localhost:4321", "Access-Control-Request-Method": "POST"},
    )
    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == "http://localhost:4321"


def test_cors_rejects_unknown_origin(client):
    res = client.get("/health", headers={"Origin": "https://evil.example"})
    assert "access-control-allow-origin" not in res.headers


def test_unknown_route_is_404(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.json() == {"error": "Not found"}


def test_oversized_body_is_413():
    container = build_container(make_settings(MAX_BODY_SIZE=64))
    with TestClient(create_app(container=container)) as c:
        res = c.post("/api/sms/sendOtp", json={"phone": "9876543210", "purpose": "x" * 200})
    assert res.status_code == 413


def test_chunked_body_over_cap_is_413():
    container = build_container(make_settings(MAX_BODY_SIZE=64))
    payload = b'{"phone": "9876543210", "purpose": "' + b"x" * 200 + b'"}'

    def chunks():
        for i in range(0, len(payload), 16):
            yield payload[i:i + 16]

    with TestClient(create_app(container=container)) as c:
        res = c.post("/api/sms/sendOtp", content=chunks(), headers={"Content-Type": "application/json"})
        small = c.post("/api/sms/sendOtp", content=iter([b'{"phone": "9876543210"}']),
                       headers={"Content-Type": "application/json"})

    assert res.status_code == 413
    assert res.json() == {"error": "Request entity too large"}
    assert small.status_code == 200


def test_otp_limit_falls_back_to_client_ip_without_phone(client):
    for _ in range(5):
        res = client.post("/api/sms/verifyOtp", json={"requestId": "mock_1", "otp": "123456"})
        assert res.status_code == 400

    res = client.post("/api/sms/verifyOtp", json={"requestId": "mock_1", "otp": "123456"})
    assert res.status_code == 429
    assert res.json() == {"error": "Too many OTP requests, please try again later."}

    # a request carrying a phone uses its own budget
    assert client.post("/api/sms/sendOtp", json={"phone": "9876543210"}).status_code == 200


def test_send_and_verify_share_one_budget_per_phone(client):
    for _ in range(5):
        res = client.post("/api/sms/verifyOtp", json={"phone": "9876543210", "requestId": "mock_1", "otp": "1"})
        assert res.status_code == 200

    res = client.post("/api/sms/sendOtp", json={"phone": "+919876543210"})
    assert res.status_code == 429
