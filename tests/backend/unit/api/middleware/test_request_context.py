import time

import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.middleware.request_context import (
    REQUEST_ID_PREFIX,
    RequestContext,
    RequestContextMiddleware,
    generate_request_id,
    get_request_context,
    get_request_id,
    request_scope,
    update_request_context,
)


def test_request_context_dataclass() -> None:
    ctx = RequestContext(request_id="123")
    assert ctx.request_id == "123"
    assert ctx.elapsed_ms >= 0
    assert "request_id" in ctx.to_log_context()

    time.sleep(0.01)
    assert ctx.elapsed_ms > 0


def test_log_context_includes_optional_fields() -> None:
    ctx = RequestContext(request_id="123", client_ip="1.2.3.4", user_id="u1", conversation_id="c1")

    log_ctx = ctx.to_log_context()

    assert log_ctx["client_ip"] == "1.2.3.4"
    assert log_ctx["user_id"] == "u1"
    assert log_ctx["conversation_id"] == "c1"


def test_generate_request_id() -> None:
    rid1 = generate_request_id()
    rid2 = generate_request_id()
    assert rid1.startswith(REQUEST_ID_PREFIX)
    assert len(rid1) == len(REQUEST_ID_PREFIX) + 16
    assert rid1 != rid2


def test_request_scope() -> None:
    ctx = RequestContext(request_id="test")

    with request_scope(ctx):
        assert get_request_context() is ctx
        assert get_request_id() == "test"

        update_request_context(user_id="user1", model="qwen3")
        assert ctx.user_id == "user1"
        assert ctx.extra == {"model": "qwen3"}

    assert get_request_context() is None
    assert get_request_id() is None


def test_nested_scope_restores_outer() -> None:
    outer = RequestContext(request_id="outer")

    with request_scope(outer):
        with request_scope(RequestContext(request_id="inner")):
            assert get_request_id() == "inner"
        assert get_request_context() is outer


def test_log_context_includes_status_code() -> None:
    ctx = RequestContext(request_id="123", status_code=404)

    assert ctx.to_log_context()["status_code"] == 404


def test_update_without_context_is_noop() -> None:
    update_request_context(user_id="ignored")
    assert get_request_context() is None


@pytest.fixture
def app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    @app.get("/context")
    def get_ctx() -> dict[str, str | None]:
        ctx = get_request_context()
        assert ctx is not None
        return {
            "request_id": ctx.request_id,
            "conversation_id": ctx.conversation_id,
            "client_ip": ctx.client_ip,
        }

    @app.get("/api/conversations/{conversation_id}/messages")
    def get_conversation_ctx(conversation_id: str) -> dict[str, str | None]:
        ctx = get_request_context()
        assert ctx is not None
        return {"conversation_id": ctx.conversation_id}

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def test_middleware_sets_headers(client: TestClient) -> None:
    response = client.get("/context")

    assert response.status_code == 200
    request_id = response.headers["X-Request-ID"]
    assert request_id.startswith(REQUEST_ID_PREFIX)
    assert response.json()["request_id"] == request_id
    assert response.headers["X-Response-Time"].endswith("ms")


def test_middleware_reuses_upstream_request_id(client: TestClient) -> None:
    response = client.get("/context", headers={"X-Request-ID": "req_upstream"})

    assert response.headers["X-Request-ID"] == "req_upstream"


def test_forwarded_for_first_ip(client: TestClient) -> None:
    response = client.get("/context", headers={"X-Forwarded-For": "10.0.0.1, 10.0.0.2"})

    assert response.json()["client_ip"] == "10.0.0.1"


def test_conversation_id_from_path(client: TestClient) -> None:
    response = client.get("/api/conversations/abc-123/messages")

    assert response.json()["conversation_id"] == "abc-123"


def test_conversation_id_from_query(client: TestClient) -> None:
    response = client.get("/context", params={"conversationId": "q-456"})

    assert response.json()["conversation_id"] == "q-456"
