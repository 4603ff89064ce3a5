"""
Tests for the rate-limit key and the JSON body cache it reads from.
"""
from fastapi import Body, FastAPI, Request
from fastapi.testclient import TestClient
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request as StarletteRequest

from storedesk.middleware import JsonBodyCacheMiddleware
from storedesk.rate_limit import get_sender_id_or_ip


def _request(query_string=b"", body_json=None):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/chat/widget",
        "query_string": query_string,
        "headers": [],
        "client": ("10.0.0.7", 5000),
        "state": {"body_json": body_json},
    }
    return StarletteRequest(scope)


class TestKeyFunction:
    def test_sender_from_body(self):
        assert get_sender_id_or_ip(_request(body_json={"sender_id": "web_1"})) == "sender:web_1"

    def test_body_wins_over_query(self):
        request = _request(b"sender_id=web_q", body_json={"sender_id": "web_b"})
        assert get_sender_id_or_ip(request) == "sender:web_b"

    def test_conversation_from_body(self):
        request = _request(body_json={"conversation_id": "conv-9", "content": "hi"})
        assert get_sender_id_or_ip(request) == "conversation:conv-9"

    def test_query_string_still_works(self):
        assert get_sender_id_or_ip(_request(b"sender_id=web_q")) == "sender:web_q"

    def test_falls_back_to_ip(self):
        assert get_sender_id_or_ip(_request(body_json={"sender_id": 42})) == "10.0.0.7"
        assert get_sender_id_or_ip(_request()) == "10.0.0.7"


def _limited_app():
    app = FastAPI()
    app.add_middleware(JsonBodyCacheMiddleware)
    test_limiter = Limiter(key_func=get_sender_id_or_ip)
    app.state.limiter = test_limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.post("/chat/widget")
    @test_limiter.limit("1/minute")
    def widget(request: Request, payload: dict = Body(...)):
        return {"cached": request.state.body_json, "payload": payload}

    return app


class TestJsonBodyCache:
    def test_body_is_cached_and_still_readable(self):
        client = TestClient(_limited_app())
        resp = client.post("/chat/widget", json={"sender_id": "web_a", "message": "Сайн уу"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["cached"] == {"sender_id": "web_a", "message": "Сайн уу"}
        assert data["payload"] == data["cached"]

    def test_each_sender_gets_its_own_bucket(self):
        client = TestClient(_limited_app())
        assert client.post("/chat/widget", json={"sender_id": "web_a"}).status_code == 200
        assert client.post("/chat/widget", json={"sender_id": "web_b"}).status_code == 200
        assert client.post("/chat/widget", json={"sender_id": "web_a"}).status_code == 429

    def test_invalid_json_still_reaches_validation(self):
        client = TestClient(_limited_app())
        resp = client.post(
            "/chat/widget", content=b"{not json", headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 422
