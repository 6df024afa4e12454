from __future__ import annotations

from flask import Flask

from src.activity_tracking.activity_tracking.security.rate_limit import LoginRateLimiter


def _app(capacity=3):
    app = Flask(__name__)
    LoginRateLimiter(capacity=capacity, refill_minutes=1).init_app(app)

    @app.post("/api/auth/login")
    def login():
        return {"ok": True}

    @app.get("/api/task-activities")
    def tasks():
        return {"ok": True}

    return app


def test_login_is_limited_per_ip_with_retry_after():
    client = _app(capacity=3).test_client()
    for _ in range(3):
        assert client.post("/api/auth/login").status_code == 200

    res = client.post("/api/auth/login")
    assert res.status_code == 429
    assert int(res.headers["Retry-After"]) >= 1
    assert res.get_json()["error"] == "Too Many Requests"


def test_buckets_are_separate_per_client_ip():
    client = _app(capacity=1).test_client()
    assert client.post("/api/auth/login", headers={"CF-Connecting-IP": "10.0.0.1"}).status_code == 200
    assert client.post("/api/auth/login", headers={"CF-Connecting-IP": "10.0.0.1"}).status_code == 429
    assert client.post("/api/auth/login", headers={"CF-Connecting-IP": "10.0.0.2"}).status_code == 200


def test_other_routes_are_not_limited():
    client = _app(capacity=1).test_client()
    for _ in range(5):
        assert client.get("/api/task-activities").status_code == 200
