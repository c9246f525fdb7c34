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
"""The swap user agent: asks the swap service for a quote, pays, confirms."""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from .base import NegotiationAgent, NegotiationStrategy, Tool, ToolBox
from ..core.payments import PaymentService
from ..core.tokens import find_tokens, log_token_payload, token_type_of
from ..core.wallet import AgentIdentity
from ..types import AgentCallError, PaymentRejectedError, TokenType
from ..types.config import DEFAULT_RECIPIENT_ADDRESS


logger = logging.getLogger(__name__)

AgentCallable = Callable[[str], Awaitable[str]]


class ScriptedSwapUserStrategy(NegotiationStrategy):
    """Rule-based user side.

    Forwards the request to the swap service, pays the first payment token
    it gets back, then sends the receipt and the recipient address.
    """

    def __init__(self, recipient_address: str = DEFAULT_RECIPIENT_ADDRESS):
        self.recipient_address = recipient_address

    async def respond(self, message: str, tools: ToolBox) -> str:
        quote = await tools.call("call_swap_agent", message=message)
        if "error" in quote:
            return f"Error: could not reach the swap agent: {quote['message']}"

        payment_tokens = [
            t for t in find_tokens(quote["text"])
            if token_type_of(t) == TokenType.PAYMENT_REQUEST
        ]
        if not payment_tokens:
            return quote["text"]

        payment = await tools.call("execute_payment", payment_token=payment_tokens[0])
        if not payment["success"]:
            return f"Payment failed: {payment['error']}"

        confirmation = await tools.call(
            "call_swap_agent",
            message=(
                f"Payment completed successfully. Receipt: {payment['receipt']}. "
                f"Please proceed with sending ETH to {self.recipient_address}."
            ),
        )
        if "error" in confirmation:
            return f"Error: could not reach the swap agent: {confirmation['message']}"
        return confirmation["text"]


class SwapUserAgent(NegotiationAgent):
    """User side. Tools: `call_swap_agent`, `execute_payment`."""

    name = "swap-user"
    max_rounds = 8

    def __init__(
        self,
        identity: AgentIdentity,
        call_swap_agent: AgentCallable,
        payment_service: PaymentService,
        strategy: Optional[NegotiationStrategy] = None,
        recipient_address: str = DEFAULT_RECIPIENT_ADDRESS,
        decode_jwt: bool = True,
    ):
        super().__init__(strategy or ScriptedSwapUserStrategy(recipient_address))
        self.identity = identity
        self._call_swap_agent = call_swap_agent
        self._payments = payment_service
        self.decode_jwt = decode_jwt

    async def call_swap_agent(self, message: str) -> Dict[str, Any]:
        """Call the swap agent to exchange USDC for ETH."""
        logger.info(f"🤖 Calling swap agent: {message}")
        try:
            text = await self._call_swap_agent(message)
        except AgentCallError as e:
            logger.error(f"Error calling swap agent: {e}")
            return {"error": True, "message": e.message}
        logger.info(f"🤖 Swap agent response: {text}")
        return {"text": text}

    async def execute_payment(self, payment_token: str) -> Dict[str, Any]:
        """Execute a USDC payment using a payment token received from the swap agent."""
        log_token_payload(payment_token, "Payment token (before execution)", self.decode_jwt)
        try:
            receipt = self._payments.execute_payment(payment_token, payer=self.identity.address)
        except PaymentRejectedError as e:
            logger.error(f"Payment failed: {e}")
            return {"success": False, "error": e.message, "code": e.code}

        log_token_payload(receipt, "Payment receipt", self.decode_jwt)
        return {"success": True, "receipt": receipt, "message": "USDC payment completed successfully"}

    def tools(self) -> Dict[str, Tool]:
        return {
            "call_swap_agent": self.call_swap_agent,
            "execute_payment": self.execute_payment,
        }
