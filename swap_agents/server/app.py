# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Starlette apps exposing an agent over `GET /` and `POST /chat`."""

import logging
import time
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse
from starlette.routing import Route

from ..core.tokens import TokenError, TOKEN_PATTERN, find_tokens, log_token_payload
from ..transport import AuthedRequestHandler


logger = logging.getLogger(__name__)

RunAgent = Callable[[str], Awaitable[str]]


class ChatRequest(BaseModel):
    message: str


class AuthedChatRequest(BaseModel):
    jwt: str


class HttpLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one access line per request."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.0f}ms"
        )
        return response


def render_status_page(port: int, authenticated: bool) -> str:
    agent_type = "Authenticated Agent" if authenticated else "Simple Agent"
    if authenticated:
        endpoint = "Send authenticated requests with signed tokens"
        body_example = '{\n  "jwt": "your-signed-token-here"\n}'
        about = (
            "This agent requires a signed token for all chat interactions. "
            "Replies are returned as signed tokens as well."
        )
    else:
        endpoint = "Send messages directly to the agent"
        body_example = '{\n  "message": "swap 25 USDC for ETH"\n}'
        about = (
            "This agent accepts plain text messages without authentication "
            'and answers with <code>{"text": "..."}</code>.'
        )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Swap Agents - {agent_type}</title>
    <style>
        body {{ font-family: sans-serif; max-width: 800px; margin: 0 auto; padding: 2rem; }}
        .card {{ background: #fff; padding: 1.5rem; margin: 1rem 0; border-radius: 8px; }}
        .status {{ padding: 0.25rem 0.75rem; background: #28a745; color: #fff; border-radius: 20px; }}
        pre {{ background: #f1f3f4; padding: 1rem; border-radius: 4px; }}
    </style>
</head>
<body>
    <div class="card">
        <h1>🤖 Swap Agents</h1>
        <p>{agent_type} Server</p>
        <span class="status">Running on Port {port}</span>
    </div>
    <div class="card">
        <h2>📡 Available Endpoints</h2>
        <p><strong>POST /chat</strong> - {endpoint}</p>
        <pre>{body_example}</pre>
        <p>{about}</p>
    </div>
</body>
</html>"""


def _bad_request(error: Exception) -> JSONResponse:
    return JSONResponse({"error": f"Invalid request body: {error}"}, status_code=400)


def create_agent_app(
    run_agent: RunAgent,
    port: int,
    handler: Optional[AuthedRequestHandler] = None,
    decode_jwt: bool = True,
) -> Starlette:
    """Builds the app for one agent.

    Args:
        run_agent: Answers one free-text message.
        port: Port shown on the status page.
        handler: When given, `/chat` takes `{"jwt"}` and answers `{"jwt"}`
            through it; otherwise `/chat` takes `{"message"}` and answers
            `{"text"}`.
        decode_jwt: Log decoded payloads of tokens seen on the wire.
    """
    authenticated = handler is not None
    status_page = render_status_page(port, authenticated)

    async def index(request: Request) -> HTMLResponse:
        return HTMLResponse(status_page)

    async def chat(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
        except ValueError as e:
            return _bad_request(e)

        if authenticated:
            try:
                body = AuthedChatRequest.model_validate(payload)
            except ValidationError as e:
                return _bad_request(e)
            if not TOKEN_PATTERN.fullmatch(body.jwt):
                return _bad_request(ValueError("jwt is not a compact token"))
            try:
                result = await handler.handle(body.jwt)
            except TokenError as e:
                logger.error(f"Failed to handle signed request: {e}")
                return JSONResponse({"error": str(e)}, status_code=401)
            return JSONResponse(result)

        try:
            body = ChatRequest.model_validate(payload)
        except ValidationError as e:
            return _bad_request(e)

        logger.info(f"📥 Message: {body.message}")
        for index_, token in enumerate(find_tokens(body.message), start=1):
            log_token_payload(token, f"Token #{index_} in message", decode_jwt)

        text = await run_agent(body.message)
        logger.info(f"📤 Response: {text}")
        return JSONResponse({"text": text})

    return Starlette(
        routes=[
            Route("/", index, methods=["GET"]),
            Route("/chat", chat, methods=["POST"]),
        ],
        middleware=[Middleware(HttpLoggingMiddleware)],
    )
