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
"""Settlement: verify receipt -> complete request -> exchange -> transfer."""

import asyncio
import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .ledger import SwapLedger
from .payments import to_payment_units
from .verifier import ProofVerifier
from ..types import (
    SwapReceipt,
    InvalidProofError,
    UnknownRequestError,
    AlreadyCompletedError,
    DuplicateExecutionError,
    ExchangeFailedError,
    TransferFailedError
)
from ..types.config import DEFAULT_RECIPIENT_ADDRESS


logger = logging.getLogger(__name__)


def _mock_tx_hash() -> str:
    return f"0x{secrets.token_hex(32)}"


@dataclass(frozen=True)
class ExchangeResult:
    target_amount: Decimal
    tx_hash: str


class SimulatedExchange:
    """Mock DEX. The output is a pure function of the frozen amount and rate."""

    def __init__(self, delay_seconds: float = 1.0):
        self.delay_seconds = delay_seconds

    async def swap(self, source_amount: Decimal, rate: Decimal) -> ExchangeResult:
        target_amount = source_amount / rate
        logger.info(
            f"🔄 Executing swap on DEX: {source_amount} USDC at {rate} USDC/unit "
            f"-> {target_amount:.6f}"
        )
        await asyncio.sleep(self.delay_seconds)
        return ExchangeResult(target_amount=target_amount, tx_hash=_mock_tx_hash())


class SimulatedTransfer:
    """Mock on-chain transfer to the recipient."""

    def __init__(self, delay_seconds: float = 0.5):
        self.delay_seconds = delay_seconds

    async def send(self, recipient_address: str, amount: Decimal) -> str:
        logger.info(f"💸 Sending {amount:.6f} to {recipient_address}")
        await asyncio.sleep(self.delay_seconds)
        return _mock_tx_hash()


class SettlementExecutor:
    """Finalizes swap requests against verified payment receipts, once each."""

    def __init__(
        self,
        ledger: SwapLedger,
        verifier: ProofVerifier,
        exchange: Optional[SimulatedExchange] = None,
        transfer: Optional[SimulatedTransfer] = None,
        default_recipient_address: str = DEFAULT_RECIPIENT_ADDRESS,
    ):
        self._ledger = ledger
        self._verifier = verifier
        self._exchange = exchange or SimulatedExchange()
        self._transfer = transfer or SimulatedTransfer()
        self.default_recipient_address = default_recipient_address

    async def execute(
        self,
        proof: str,
        request_id: Optional[str] = None,
        recipient_address: Optional[str] = None,
    ) -> SwapReceipt:
        """Settles the swap request bound to `proof`.

        Args:
            proof: Signed payment receipt
            request_id: Request the caller believes it paid for; must match the receipt
            recipient_address: Where the target currency goes

        Raises:
            InvalidProofError: receipt failed verification or binding checks
            UnknownRequestError: receipt references no live request
            DuplicateExecutionError: request already settled
            ExchangeFailedError, TransferFailedError: downstream step failed
        """
        verified = await self._verifier.verify(proof)
        logger.info(f"Payment receipt verified for {verified.request_id} (payer {verified.payer})")

        if request_id is not None and request_id != verified.request_id:
            logger.warning(
                f"Receipt bound to {verified.request_id} presented for {request_id}"
            )
            raise InvalidProofError(
                "Payment receipt is not bound to this swap request",
                details={"request_id": request_id, "bound_request_id": verified.request_id},
            )

        request = self._ledger.get(verified.request_id)
        if request is None:
            raise UnknownRequestError(verified.request_id)

        expected_units = to_payment_units(request.source_amount)
        if verified.amount_units != expected_units:
            raise InvalidProofError(
                "Payment amount does not match the swap request",
                details={"paid": verified.amount_units, "required": expected_units},
            )

        try:
            completed = self._ledger.mark_completed(request.id)
        except AlreadyCompletedError as e:
            logger.warning(f"Rejected replayed settlement for {request.id}")
            raise DuplicateExecutionError(request.id) from e

        # The request stays Completed even if a step below fails.
        recipient = recipient_address or self.default_recipient_address
        try:
            exchange = await self._exchange.swap(completed.source_amount, completed.rate)
        except ExchangeFailedError:
            logger.error(f"Exchange step failed for {completed.id}", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Exchange step failed for {completed.id}: {e}", exc_info=True)
            raise ExchangeFailedError(details={"request_id": completed.id, "reason": str(e)}) from e

        try:
            transfer_tx = await self._transfer.send(recipient, exchange.target_amount)
        except TransferFailedError:
            logger.error(f"Transfer step failed for {completed.id}", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Transfer step failed for {completed.id}: {e}", exc_info=True)
            raise TransferFailedError(details={"request_id": completed.id, "reason": str(e)}) from e

        logger.info(f"✅ Swap {completed.id} settled")
        return SwapReceipt(
            request_id=completed.id,
            pair=completed.pair,
            source_amount=completed.source_amount,
            target_amount=completed.target_amount,
            rate=completed.rate,
            recipient_address=recipient,
            payer=verified.payer,
            exchange_tx_hash=exchange.tx_hash,
            transfer_tx_hash=transfer_tx,
            receipt=verified.token_id,
        )
