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
"""Swap request states and the transition table between them."""

from enum import Enum
from typing import Dict, FrozenSet


class SwapStatus(str, Enum):
    """Lifecycle states of a swap request"""
    PENDING = "pending"        # Quoted, waiting for payment
    COMPLETED = "completed"    # Settled; terminal


# Every legal status change. Anything not listed here is rejected.
ALLOWED_TRANSITIONS: Dict[SwapStatus, FrozenSet[SwapStatus]] = {
    SwapStatus.PENDING: frozenset({SwapStatus.COMPLETED}),
    SwapStatus.COMPLETED: frozenset(),
}


def can_transition(current: SwapStatus, target: SwapStatus) -> bool:
    """Returns True if `current -> target` is in the transition table."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class TokenType:
    """`typ` header values for the signed tokens exchanged between agents"""
    PAYMENT_REQUEST = "payment-request"
    PAYMENT_RECEIPT = "payment-receipt"
    CHAT = "agent-chat"
