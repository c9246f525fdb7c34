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
"""Swap domain models shared by the ledger, executor and relay."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from x402.types import PaymentRequirements

from .state import SwapStatus


class SwapRequest(BaseModel):
    """Immutable snapshot of a quoted swap.

    The ledger replaces the stored snapshot when the status changes; every
    other field is fixed at creation.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    pair: str
    source_amount: Decimal
    target_amount: Decimal
    rate: Decimal
    status: SwapStatus = SwapStatus.PENDING
    created_at: datetime

    @property
    def is_pending(self) -> bool:
        return self.status == SwapStatus.PENDING

    def is_expired(self, now: datetime, ttl_seconds: Optional[float]) -> bool:
        """Pending requests older than `ttl_seconds` are expired. No TTL means never."""
        if ttl_seconds is None or not self.is_pending:
            return False
        return now - self.created_at > timedelta(seconds=ttl_seconds)


class PriceQuote(BaseModel):
    """Normalised price feed reading."""
    pair: str
    price: Decimal
    confidence: Decimal = Decimal("0")
    publish_time: Optional[datetime] = None
    source: str = "pyth"

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


class VerifiedProof(BaseModel):
    """Claims extracted from a payment receipt that passed verification."""
    model_config = ConfigDict(frozen=True)

    request_id: str
    payer: str
    amount_units: int
    issuer: str
    token_id: str
    issued_at: datetime
    expires_at: Optional[datetime] = None


class PaymentRequest(BaseModel):
    """Artifact handed to a payer: signed token plus on-chain requirements."""
    request_id: str
    payment_token: str
    amount_units: int
    description: str
    requirements: PaymentRequirements


class SwapReceipt(BaseModel):
    """Result of a settled swap."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool = True
    request_id: str = Field(alias="requestId")
    pair: str
    source_amount: Decimal = Field(alias="usdcSwapped")
    target_amount: Decimal = Field(alias="ethReceived")
    rate: Decimal = Field(alias="exchangeRate")
    recipient_address: str = Field(alias="recipientAddress")
    payer: str
    exchange_tx_hash: str = Field(alias="swapTxHash")
    transfer_tx_hash: str = Field(alias="sendTxHash")
    receipt: str

    def to_payload(self) -> dict:
        payload = self.model_dump(by_alias=True, mode="json")
        payload["ethReceived"] = f"{self.target_amount:.6f}"
        return payload
