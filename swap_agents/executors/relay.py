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
"""Boundary adapter exposing swap creation and settlement to counterparties."""

import logging
from typing import Any, Dict, Optional

from ..core.ledger import Amount, SwapLedger
from ..core.payments import PaymentService
from ..core.settlement import SettlementExecutor
from ..core.tokens import log_token_payload
from ..types import SwapError


logger = logging.getLogger(__name__)


class SwapRelay:
    """Exposes exactly two operations: create a swap, settle a swap.

    Holds no state of its own. Failures are returned as
    `{"error": ..., "code": ...}` payloads carrying the original error kind.

    Example:
        relay = SwapRelay(ledger, executor, payment_service, payee_address)
        offer = await relay.create_swap(25)
        receipt = payment_service.execute_payment(offer["paymentToken"], payer)
        result = await relay.settle_swap(receipt)
    """

    def __init__(
        self,
        ledger: SwapLedger,
        executor: SettlementExecutor,
        payment_service: PaymentService,
        payee_address: str,
        decode_jwt: bool = True,
    ):
        self._ledger = ledger
        self._executor = executor
        self._payments = payment_service
        self.payee_address = payee_address
        self.decode_jwt = decode_jwt

    async def create_swap(self, source_amount: Amount) -> Dict[str, Any]:
        """Quotes a swap and returns the payment token the caller must pay."""
        try:
            request = await self._ledger.create_request(source_amount)
            target_symbol = request.pair.split("/")[0]
            target = f"{request.target_amount:.6f}"
            payment = self._payments.create_payment_request(
                request.source_amount,
                f"Swap {request.source_amount} USDC for {target} {target_symbol}",
                request.id,
                pay_to=self.payee_address,
            )
        except SwapError as e:
            logger.warning(f"Swap creation failed [{e.code}]: {e}")
            return e.to_payload()

        log_token_payload(payment.payment_token, "Payment token", self.decode_jwt)

        return {
            "requestId": request.id,
            "paymentToken": payment.payment_token,
            "usdcAmount": str(request.source_amount),
            "exchangeRate": str(request.rate),
            "ethAmount": target,
            "paymentRequired": payment.amount_units,
            "description": (
                f"Swap {request.source_amount} USDC for ~{target} {target_symbol} "
                f"at rate {request.rate} USDC/{target_symbol}"
            ),
            "instruction": (
                f"Please pay {request.source_amount} USDC ({payment.amount_units} units) "
                "using this token to proceed with the swap"
            ),
            "paymentRequirements": payment.requirements.model_dump(by_alias=True),
        }

    async def settle_swap(
        self,
        proof: str,
        request_id: Optional[str] = None,
        recipient_address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Settles the swap bound to `proof`; returns a receipt or an error payload."""
        log_token_payload(proof, "Payment receipt", self.decode_jwt)
        try:
            receipt = await self._executor.execute(
                proof,
                request_id=request_id,
                recipient_address=recipient_address,
            )
        except SwapError as e:
            logger.warning(f"Swap settlement failed [{e.code}]: {e}")
            return e.to_payload()
        return receipt.to_payload()
