"""
FastAPI middleware for request correlation and rate-limit keys.
"""

import json
import logging
import uuid

from fastapi import Request
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

BODY_METHODS = ("POST", "PUT", "PATCH")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.
    The ID is available in request.state.request_id, on every log record written
    while the request runs, and in the X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next):
        # Reuse the caller's ID so logs line up across services
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.debug("%s %s -> %s", request.method, request.url.path, response.status_code)
            return response
        finally:
            request_id_var.reset(token)


class JsonBodyCacheMiddleware:
    """
    Parse JSON request bodies into request.state.body_json before routing.

    slowapi resolves the limit key before the handler reads its body, so the
    widget's sender_id is only visible to the key function through this cache.
    The buffered body is replayed to the app unchanged. Non-object or invalid
    JSON leaves body_json as None.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope["method"] not in BODY_METHODS:
            await self.app(scope, receive, send)
            return
        if "application/json" not in Headers(scope=scope).get("content-type", ""):
            await self.app(scope, receive, send)
            return

        messages = []
        while True:
            message = await receive()
            messages.append(message)
            if message["type"] != "http.request" or not message.get("more_body", False):
                break

        body = b"".join(m.get("body", b"") for m in messages if m["type"] == "http.request")
        try:
            parsed = json.loads(body) if body else None
        except ValueError:
            logger.debug("Unparseable JSON body on %s", scope.get("path"))
            parsed = None
        scope.setdefault("state", {})["body_json"] = parsed if isinstance(parsed, dict) else None

        async def replay():
            if messages:
                return messages.pop(0)
            return await receive()

        await self.app(scope, replay, send)
