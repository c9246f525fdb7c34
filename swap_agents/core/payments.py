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
"""Payment request issuance, payment execution and spend rules.

`PaymentService` plays the hosted payment/identity service: it issues
signed payment tokens for a payee, executes payments against them on behalf
of a payer, and hands back signed receipts that a payee can verify.
"""

import logging
import threading
import time
from collections import defaultdict, deque
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Any, Callable, Deque, Dict, Optional, Set, Tuple, cast

from pydantic import BaseModel, Field
from x402.common import process_price_to_atomic_amount
from x402.types import Price

from .tokens import TokenError, verify_token
from .wallet import AgentIdentity
from ..types import (
    PaymentRequest,
    PaymentRequirements,
    PaymentRejectedError,
    SupportedNetworks,
    TokenType
)
from ..types.errors import MSG_RATE_LIMIT, MSG_TRANSACTION_LIMIT


logger = logging.getLogger(__name__)

UNITS_PER_USDC = 100


def to_payment_units(amount: Decimal) -> int:
    """USDC amount to payment units (cents): 100 USDC = 10000 units."""
    return int((amount * UNITS_PER_USDC).to_integral_value(rounding=ROUND_HALF_UP))


def create_payment_requirements(
    price: Price,
    pay_to_address: str,
    resource: str,
    network: str = "base-sepolia",
    description: str = "",
    mime_type: str = "application/json",
    scheme: str = "exact",
    max_timeout_seconds: int = 600,
    extra: Optional[Dict[str, Any]] = None,
) -> PaymentRequirements:
    """Creates the x402 PaymentRequirements for the on-chain leg of a payment.

    Args:
        price: Payment price, e.g. "$25" (USDC) or a TokenAmount
        pay_to_address: Address that receives the payment
        resource: Resource identifier, e.g. "swap://swap_ab12"
        network: Blockchain network (default: "base-sepolia")
        description: Human-readable description
        extra: Fields merged over the token's EIP-712 domain

    Returns:
        PaymentRequirements with the atomic amount and asset resolved
    """
    max_amount_required, asset_address, eip712_domain = process_price_to_atomic_amount(price, network)

    return PaymentRequirements(
        scheme=scheme,
        network=cast(SupportedNetworks, network),
        asset=asset_address,
        pay_to=pay_to_address,
        max_amount_required=max_amount_required,
        resource=resource,
        description=description,
        mime_type=mime_type,
        max_timeout_seconds=max_timeout_seconds,
        extra={**(eip712_domain or {}), **(extra or {})},
    )


class SpendRules(BaseModel):
    """Payer-side rules applied before a payment is executed."""
    transaction_limit: Optional[Decimal] = Field(
        default=None, description="Maximum USDC per payment"
    )
    rate_limit: Optional[Decimal] = Field(
        default=None, description="Maximum USDC spent within the rolling window"
    )
    rate_limit_window_seconds: int = 3600


def load_spend_rules(path: Optional[str]) -> SpendRules:
    """Reads rules from a JSON file; a missing file means no rules."""
    if not path:
        return SpendRules()
    rules_file = Path(path)
    if not rules_file.exists():
        return SpendRules()
    return SpendRules.model_validate_json(rules_file.read_text(encoding="utf-8"))


def save_spend_rules(rules: SpendRules, path: str) -> None:
    Path(path).write_text(rules.model_dump_json(indent=2), encoding="utf-8")


class PaymentService:
    """In-process payment and identity service shared by both agents."""

    def __init__(
        self,
        identity: AgentIdentity,
        network: str = "base-sepolia",
        rules: Optional[SpendRules] = None,
        rules_path: Optional[str] = None,
        payment_ttl_seconds: int = 600,
        receipt_ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.identity = identity
        self.network = network
        self._rules = rules
        self.rules_path = rules_path
        self.payment_ttl_seconds = payment_ttl_seconds
        self.receipt_ttl_seconds = receipt_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._paid_tokens: Set[str] = set()
        self._history: Dict[str, Deque[Tuple[float, Decimal]]] = defaultdict(deque)

    @property
    def address(self) -> str:
        """Address that signs payment tokens and receipts."""
        return self.identity.address

    @property
    def rules(self) -> SpendRules:
        """Explicit rules win; otherwise the rules file is re-read on every access."""
        if self._rules is not None:
            return self._rules
        return load_spend_rules(self.rules_path)

    def create_payment_request(
        self,
        amount: Decimal,
        description: str,
        request_id: str,
        pay_to: str,
    ) -> PaymentRequest:
        """Issues a signed payment token for `amount` USDC bound to `request_id`."""
        units = to_payment_units(amount)
        payment_token = self.identity.issue_token(
            TokenType.PAYMENT_REQUEST,
            {
                "sub": request_id,
                "amount": units,
                "currency": "USDC",
                "description": description,
                "payTo": pay_to,
            },
            ttl_seconds=self.payment_ttl_seconds,
        )
        requirements = create_payment_requirements(
            price=f"${amount}",
            pay_to_address=pay_to,
            resource=f"swap://{request_id}",
            network=self.network,
            description=description,
            max_timeout_seconds=self.payment_ttl_seconds,
            extra={"swapRequestId": request_id},
        )
        logger.info(f"Issued payment request for {request_id}: {units} units")
        return PaymentRequest(
            request_id=request_id,
            payment_token=payment_token,
            amount_units=units,
            description=description,
            requirements=requirements,
        )

    def execute_payment(self, payment_token: str, payer: str) -> str:
        """Pays a payment token on behalf of `payer` and returns the signed receipt."""
        try:
            decoded = verify_token(
                payment_token,
                expected_signer=self.address,
                token_type=TokenType.PAYMENT_REQUEST,
                now=self._clock(),
            )
        except TokenError as e:
            raise PaymentRejectedError(f"Payment rejected: invalid payment token ({e})") from e

        claims = decoded.claims
        units = int(claims["amount"])
        amount = Decimal(units) / UNITS_PER_USDC

        with self._lock:
            if claims["jti"] in self._paid_tokens:
                raise PaymentRejectedError("Payment rejected: payment token has already been paid")
            self._check_spend_rules(payer, amount)
            self._paid_tokens.add(claims["jti"])
            self._history[payer].append((self._clock(), amount))

        receipt = self.identity.issue_token(
            TokenType.PAYMENT_RECEIPT,
            {
                "sub": claims["sub"],
                "payer": payer,
                "amount": units,
                "currency": claims.get("currency", "USDC"),
                "paymentToken": claims["jti"],
            },
            ttl_seconds=self.receipt_ttl_seconds,
        )
        logger.info(f"✅ Payment of {amount} USDC by {payer} for {claims['sub']} completed")
        return receipt

    def spent_in_window(self, payer: str) -> Decimal:
        rules = self.rules
        with self._lock:
            return self._window_total(payer, rules.rate_limit_window_seconds)

    def _window_total(self, payer: str, window_seconds: int) -> Decimal:
        history = self._history[payer]
        cutoff = self._clock() - window_seconds
        while history and history[0][0] <= cutoff:
            history.popleft()
        return sum((amount for _, amount in history), Decimal("0"))

    def _check_spend_rules(self, payer: str, amount: Decimal) -> None:
        rules = self.rules
        if rules.transaction_limit is not None and amount > rules.transaction_limit:
            logger.warning(f"🛡️ Payment of {amount} USDC blocked by transaction limit {rules.transaction_limit}")
            raise PaymentRejectedError(
                f"{MSG_TRANSACTION_LIMIT} (${rules.transaction_limit})",
                details={"amount": str(amount), "limit": str(rules.transaction_limit)},
            )
        if rules.rate_limit is not None:
            spent = self._window_total(payer, rules.rate_limit_window_seconds)
            if spent + amount > rules.rate_limit:
                logger.warning(
                    f"🛡️ Payment of {amount} USDC blocked by rate limit: "
                    f"{spent} already spent of {rules.rate_limit}"
                )
                raise PaymentRejectedError(
                    f"{MSG_RATE_LIMIT} (${spent} of ${rules.rate_limit} already spent)",
                    details={"amount": str(amount), "spent": str(spent), "limit": str(rules.rate_limit)},
                )
