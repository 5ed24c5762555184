from __future__ import annotations

import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from api.middleware.metrics import PrometheusMiddleware


def _count(method: str, path: str, status: str) -> float:
    value = REGISTRY.get_sample_value(
        "chatstream_request_duration_seconds_count",
        {"method": method, "path": path, "status": status},
    )
    return value or 0.0


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.add_middleware(PrometheusMiddleware)

    @app.get("/items/{item_id}")
    def get_item(item_id: str) -> dict[str, str]:
        return {"id": item_id}

    return TestClient(app)


def test_observes_route_template(client: TestClient) -> None:
    before = _count("GET", "/items/{item_id}", "200")

    client.get("/items/abc")
    client.get("/items/def")

    assert _count("GET", "/items/{item_id}", "200") == before + 2


def test_unmatched_paths_share_label(client: TestClient) -> None:
    before = _count("GET", "unmatched", "404")

    client.get("/nope/1")
    client.get("/nope/2")

    assert _count("GET", "unmatched", "404") == before + 2
