"""
Tests for the Vercel-style handler in api/analyze.py, served from a real
HTTPServer on an ephemeral port.
"""

import importlib.util
import threading
from http.server import ThreadingHTTPServer
from pathlib import Path

import httpx
import pytest

HANDLER_PATH = Path(__file__).resolve().parents[1] / "api" / "analyze.py"


@pytest.fixture
def serverless(monkeypatch, settings, service, limiter):
    spec = importlib.util.spec_from_file_location("serverless_analyze", HANDLER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    monkeypatch.setattr(module, "settings", settings)
    monkeypatch.setattr(module, "service", service)
    monkeypatch.setattr(module, "limiter", limiter)

    server = ThreadingHTTPServer(("127.0.0.1", 0), module.handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address
    try:
        with httpx.Client(base_url=f"http://{host}:{port}", timeout=5.0) as client:
            yield client
    finally:
        server.shutdown()
        server.server_close()


def test_post_returns_envelope(serverless, fake_llm):
    fake_llm.text = 'Sure! {"summary": "hydrate", "suggestions": ["water"]}'
    resp = serverless.post("/api/analyze", json={"findingsText": "dry lips"})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/json"
    assert resp.json() == {"ok": True, "data": {"summary": "hydrate", "suggestions": ["water"]}}
    assert '"findingsText":"dry lips"' in fake_llm.prompts[0]


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "OPTIONS"])
def test_other_methods_are_rejected(serverless, method):
    resp = serverless.request(method, "/api/analyze")
    assert resp.status_code == 405
    assert resp.json() == {"error": "Method not allowed"}
    assert resp.headers["allow"] == "POST"


def test_bad_json(serverless):
    resp = serverless.post("/api/analyze", content=b"{nope", headers={"content-type": "application/json"})
    assert resp.status_code == 400


def test_body_too_large(serverless, fake_llm):
    resp = serverless.post("/api/analyze", content=b"x" * 5000)
    assert resp.status_code == 413
    assert fake_llm.prompts == []


def test_rate_limit(serverless):
    statuses = [serverless.post("/api/analyze", json={}).status_code for _ in range(4)]
    assert statuses == [200, 200, 200, 429]


def test_head_is_rejected_without_body(serverless):
    resp = serverless.head("/api/analyze")
    assert resp.status_code == 405
    assert resp.headers["allow"] == "POST"
    assert resp.content == b""


def test_spoofed_forwarded_for_shares_the_peer_limit(serverless):
    statuses = [
        serverless.post("/api/analyze", json={}, headers={"x-forwarded-for": f"6.6.6.{i}"}).status_code
        for i in range(5)
    ]
    assert statuses == [200, 200, 200, 429, 429]
