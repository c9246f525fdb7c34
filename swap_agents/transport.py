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
"""Signed agent-to-agent calls over the authenticated `/chat` endpoint.

Both directions carry a `{"jwt": ...}` body whose token holds the message
text in its `message` claim and is signed by the sending agent.
"""

import logging
from typing import Awaitable, Callable, Dict, Iterable, Optional

import httpx

from .core.tokens import TokenError, log_token_payload, verify_token
from .core.wallet import AgentIdentity
from .types import AgentCallError, TokenType


logger = logging.getLogger(__name__)

CHAT_TOKEN_TTL_SECONDS = 300


class AgentCaller:
    """Calls another agent's authenticated `/chat` endpoint.

    Example:
        call_agent = AgentCaller(identity, "http://localhost:7577/chat")
        text = await call_agent("swap 25 USDC for ETH")
    """

    def __init__(
        self,
        identity: AgentIdentity,
        url: str,
        trusted_peer: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        decode_jwt: bool = True,
    ):
        self.identity = identity
        self.url = url
        self.trusted_peer = trusted_peer
        self._http_client = http_client
        self.timeout = timeout
        self.decode_jwt = decode_jwt

    async def _post(self, body: Dict[str, str]) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(self.url, json=body, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, json=body)

    async def __call__(self, message: str) -> str:
        token = self.identity.issue_token(
            TokenType.CHAT,
            {"message": message, "aud": self.url},
            ttl_seconds=CHAT_TOKEN_TTL_SECONDS,
        )
        log_token_payload(token, "Outgoing chat", self.decode_jwt)

        try:
            response = await self._post({"jwt": token})
            response.raise_for_status()
            reply = response.json()["jwt"]
        except httpx.HTTPStatusError as e:
            raise AgentCallError(
                f"Agent at {self.url} answered {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise AgentCallError(f"Failed to reach agent at {self.url}: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise AgentCallError(f"Malformed reply from agent at {self.url}: {e}") from e

        log_token_payload(reply, "Incoming chat reply", self.decode_jwt)
        try:
            decoded = verify_token(reply, expected_signer=self.trusted_peer, token_type=TokenType.CHAT)
        except TokenError as e:
            raise AgentCallError(f"Reply from {self.url} failed verification: {e}") from e
        return str(decoded.claims.get("message", ""))


class AuthedRequestHandler:
    """Server side of `AgentCaller`: verify the caller, run the agent, sign the reply."""

    def __init__(
        self,
        identity: AgentIdentity,
        run_agent: Callable[[str], Awaitable[str]],
        trusted_callers: Optional[Iterable[str]] = None,
        decode_jwt: bool = True,
    ):
        self.identity = identity
        self._run_agent = run_agent
        self._trusted = (
            {address.lower() for address in trusted_callers}
            if trusted_callers is not None else None
        )
        self.decode_jwt = decode_jwt

    async def handle(self, jwt: str) -> Dict[str, str]:
        """Returns `{"jwt": reply}`; raises TokenError for unverifiable requests."""
        log_token_payload(jwt, "Incoming chat", self.decode_jwt)
        decoded = verify_token(jwt, token_type=TokenType.CHAT)
        if self._trusted is not None and decoded.signer.lower() not in self._trusted:
            raise TokenError(f"Caller {decoded.signer} is not allowed to use this agent")

        message = str(decoded.claims.get("message", ""))
        logger.info(f"📥 Authenticated message from {decoded.signer}: {message}")
        text = await self._run_agent(message)

        reply = self.identity.issue_token(
            TokenType.CHAT,
            {"message": text, "sub": decoded.signer},
            ttl_seconds=CHAT_TOKEN_TTL_SECONDS,
        )
        log_token_payload(reply, "Outgoing chat reply", self.decode_jwt)
        return {"jwt": reply}
