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
"""The swap service agent: quotes swaps and settles them against receipts."""

import logging
import re
from typing import Any, Dict, Optional

from .base import NegotiationAgent, NegotiationStrategy, Tool, ToolBox
from ..core.tokens import find_tokens, token_type_of
from ..executors import SwapRelay
from ..types import TokenType


logger = logging.getLogger(__name__)

AMOUNT_PATTERN = re.compile(r"(-?\d+(?:\.\d+)?)\s*USDC", re.IGNORECASE)
ADDRESS_PATTERN = re.compile(r"\b0x[0-9a-fA-F]{30,40}\b")


def format_error(payload: Dict[str, Any]) -> str:
    return f"Error: {payload['error']} [{payload.get('code', 'UNKNOWN_ERROR')}]"


class ScriptedSwapServiceStrategy(NegotiationStrategy):
    """Rule-based service side.

    A message carrying a payment receipt is settled; a message naming a USDC
    amount gets a quote and a payment token; anything else is refused.
    """

    def __init__(self, target_symbol: str = "ETH"):
        self.target_symbol = target_symbol

    async def respond(self, message: str, tools: ToolBox) -> str:
        tokens = find_tokens(message)
        remainder = message
        for token in tokens:
            remainder = remainder.replace(token, "")

        receipts = [t for t in tokens if token_type_of(t) == TokenType.PAYMENT_RECEIPT]
        if receipts:
            address = ADDRESS_PATTERN.search(remainder)
            result = await tools.call(
                "execute_swap",
                receipt=receipts[0],
                recipient_address=address.group(0) if address else None,
            )
            return self._settled_text(result)

        amount = AMOUNT_PATTERN.search(remainder)
        if amount:
            result = await tools.call("create_swap_request", usdc_amount=amount.group(1))
            return self._quote_text(result)

        return f"I can only swap USDC for {self.target_symbol}"

    def _quote_text(self, result: Dict[str, Any]) -> str:
        if "error" in result:
            return format_error(result)
        return (
            f"Exchange rate: {result['exchangeRate']} USDC/{self.target_symbol}. "
            f"You will receive ~{result['ethAmount']} {self.target_symbol} for "
            f"{result['usdcAmount']} USDC. {result['instruction']}.\n"
            f"Payment token: {result['paymentToken']}"
        )

    def _settled_text(self, result: Dict[str, Any]) -> str:
        if "error" in result:
            return format_error(result)
        return (
            f"Swap completed! Swapped {result['usdcSwapped']} USDC for "
            f"{result['ethReceived']} {self.target_symbol} at {result['exchangeRate']} "
            f"USDC/{self.target_symbol}, sent to {result['recipientAddress']}. "
            f"Swap tx: {result['swapTxHash']}. Transfer tx: {result['sendTxHash']}."
        )


class SwapServiceAgent(NegotiationAgent):
    """Swap service side. Tools: `create_swap_request`, `execute_swap`."""

    name = "swap-service"
    max_rounds = 4

    def __init__(
        self,
        relay: SwapRelay,
        strategy: Optional[NegotiationStrategy] = None,
        target_symbol: str = "ETH",
    ):
        super().__init__(strategy or ScriptedSwapServiceStrategy(target_symbol))
        self._relay = relay

    async def create_swap_request(self, usdc_amount: Any) -> Dict[str, Any]:
        """Create a payment request for the USDC swap."""
        logger.info(f"Creating swap request for {usdc_amount} USDC")
        return await self._relay.create_swap(usdc_amount)

    async def execute_swap(
        self,
        receipt: str,
        recipient_address: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Execute the swap after payment is confirmed."""
        return await self._relay.settle_swap(
            receipt, request_id=request_id, recipient_address=recipient_address
        )

    def tools(self) -> Dict[str, Tool]:
        return {
            "create_swap_request": self.create_swap_request,
            "execute_swap": self.execute_swap,
        }
