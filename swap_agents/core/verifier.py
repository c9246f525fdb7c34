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
"""Payment receipt verification."""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from .tokens import TokenError, verify_token
from ..types import InvalidProofError, TokenType, VerifiedProof


logger = logging.getLogger(__name__)


class ProofVerifier:
    """Validates receipts issued by a trusted payment service.

    Verification is stateless: the same receipt verifies every time it is
    presented. At-most-once settlement is enforced by the ledger.
    """

    def __init__(
        self,
        trusted_issuers: Iterable[str],
        clock: Callable[[], float] = time.time,
    ):
        self._trusted = {address.lower() for address in trusted_issuers}
        if not self._trusted:
            raise ValueError("ProofVerifier needs at least one trusted issuer")
        self._clock = clock

    async def verify(self, proof: str) -> VerifiedProof:
        """Returns the receipt's bound request id and payer claims.

        Raises:
            InvalidProofError: malformed, untrusted, expired or unbound receipt
        """
        if not proof or not isinstance(proof, str):
            raise InvalidProofError("Payment receipt is missing")

        try:
            decoded = verify_token(
                proof,
                token_type=TokenType.PAYMENT_RECEIPT,
                now=self._clock(),
            )
        except TokenError as e:
            logger.warning(f"Payment receipt rejected: {e}")
            raise InvalidProofError(f"Invalid payment receipt: {e}") from e

        if decoded.signer.lower() not in self._trusted:
            logger.warning(f"Payment receipt signed by untrusted issuer {decoded.signer}")
            raise InvalidProofError("Invalid payment receipt: untrusted issuer")

        claims = decoded.claims
        request_id = claims.get("sub")
        payer = claims.get("payer")
        if not request_id or not payer:
            raise InvalidProofError("Invalid payment receipt: not bound to a swap request")

        try:
            amount_units = int(claims["amount"])
            issued_at = datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc)
            expires_at = (
                datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
                if "exp" in claims else None
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidProofError(f"Invalid payment receipt claims: {e}") from e

        return VerifiedProof(
            request_id=str(request_id),
            payer=str(payer),
            amount_units=amount_units,
            issuer=decoded.signer,
            token_id=str(claims.get("jti", "")),
            issued_at=issued_at,
            expires_at=expires_at,
        )
