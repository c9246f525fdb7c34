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
"""Agent identities backed by Ethereum keys."""

import time
import uuid
from typing import Any, Dict, Optional

from eth_account import Account

from .tokens import encode_token


class AgentIdentity:
    """A named agent that signs the tokens it issues.

    The address doubles as the agent's identity: counterparties recover it
    from token signatures and compare it with the `iss` claim.
    """

    def __init__(self, name: str, private_key: str):
        self.name = name
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    def issue_token(
        self,
        token_type: str,
        claims: Dict[str, Any],
        ttl_seconds: Optional[int] = None,
    ) -> str:
        """Signs `claims` with standard `iss`, `iat`, `jti` (and `exp` when `ttl_seconds` is set)."""
        now = int(time.time())
        full_claims = {
            "iss": self.address,
            "iat": now,
            "jti": uuid.uuid4().hex,
            **claims,
        }
        if ttl_seconds is not None:
            full_claims["exp"] = now + ttl_seconds
        return encode_token(full_claims, self._account, token_type)

    def __repr__(self) -> str:
        return f"AgentIdentity(name={self.name!r}, address={self.address!r})"
