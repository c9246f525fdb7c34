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
"""In-memory registry of swap requests and their status transitions."""

import logging
import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional, Union

from .oracle import PriceOracleClient
from ..types import (
    SwapRequest,
    SwapStatus,
    can_transition,
    InvalidAmountError,
    UnknownRequestError,
    AlreadyCompletedError,
    StateTransitionError
)


logger = logging.getLogger(__name__)

Amount = Union[Decimal, int, float, str]

CENTS = Decimal("0.01")


def parse_amount(value: Amount) -> Decimal:
    """Converts a caller-supplied amount to a positive Decimal in whole cents.

    Payments are made in cents, so an amount with a fraction of a cent could
    not be paid exactly and is rejected. The result is in plain notation
    ("1e2" becomes 100).
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(f"Invalid swap amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmountError(f"Invalid swap amount: {value!r}") from e
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"Swap amount must be a positive number, got {value!r}")
    try:
        whole_cents = amount == amount.quantize(CENTS)
    except InvalidOperation as e:
        raise InvalidAmountError(f"Swap amount is too large: {value!r}") from e
    if not whole_cents:
        raise InvalidAmountError(f"Swap amount must be in whole cents, got {value!r}")
    return Decimal(format(amount, "f"))


class SwapLedger:
    """Owns every swap request for the lifetime of the process.

    Requests are stored as immutable snapshots in a single map keyed by id;
    a status change swaps the snapshot under a lock. Nothing is persisted.
    """

    def __init__(
        self,
        oracle: PriceOracleClient,
        pair: str = "ETH/USD",
        pending_ttl_seconds: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._oracle = oracle
        self.pair = pair
        self.pending_ttl_seconds = pending_ttl_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._requests: Dict[str, SwapRequest] = {}
        self._lock = threading.Lock()

    async def create_request(self, source_amount: Amount, pair: Optional[str] = None) -> SwapRequest:
        """Quotes and stores a new Pending request."""
        amount = parse_amount(source_amount)
        pair = pair or self.pair
        logger.info(f"Creating swap request for {amount} USDC on {pair}")

        rate = await self._oracle.get_rate(pair)

        with self._lock:
            request_id = f"swap_{uuid.uuid4().hex}"
            while request_id in self._requests:
                request_id = f"swap_{uuid.uuid4().hex}"
            request = SwapRequest(
                id=request_id,
                pair=pair,
                source_amount=amount,
                target_amount=amount / rate,
                rate=rate,
                status=SwapStatus.PENDING,
                created_at=self._clock(),
            )
            self._requests[request_id] = request

        logger.info(
            f"Stored swap request {request.id}: {amount} USDC -> "
            f"{request.target_amount:.6f} at {rate} USDC/unit"
        )
        return request

    def get(self, request_id: str) -> Optional[SwapRequest]:
        """Returns the current snapshot, or None for unknown or expired ids."""
        request = self._requests.get(request_id)
        if request is None or self._is_expired(request):
            return None
        return request

    def mark_completed(self, request_id: str) -> SwapRequest:
        """Atomically moves a request from Pending to Completed.

        Exactly one caller succeeds per id; all others get AlreadyCompletedError.
        """
        with self._lock:
            current = self._requests.get(request_id)
            if current is None or self._is_expired(current):
                raise UnknownRequestError(request_id)
            if current.status == SwapStatus.COMPLETED:
                raise AlreadyCompletedError(request_id)
            updated = self._transition(current, SwapStatus.COMPLETED)
            self._requests[request_id] = updated

        logger.info(f"Swap request {request_id} marked completed")
        return updated

    def _transition(self, request: SwapRequest, target: SwapStatus) -> SwapRequest:
        if not can_transition(request.status, target):
            raise StateTransitionError(
                f"Cannot move swap request {request.id} from {request.status.value} to {target.value}"
            )
        return request.model_copy(update={"status": target})

    def _is_expired(self, request: SwapRequest) -> bool:
        return request.is_expired(self._clock(), self.pending_ttl_seconds)
