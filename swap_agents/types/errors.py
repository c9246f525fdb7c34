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
"""Swap error types and error code mapping.

Rejection messages are matched by substring in the CLI tooling, so the
phrases below are kept stable and shared between the raising side and the
matcher.
"""

from typing import Any, Dict, Optional


class SwapErrorCode:
    """Closed set of error kinds surfaced to callers."""
    INVALID_AMOUNT = "INVALID_AMOUNT"
    UNKNOWN_REQUEST = "UNKNOWN_REQUEST"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    DUPLICATE_EXECUTION = "DUPLICATE_EXECUTION"
    INVALID_PROOF = "INVALID_PROOF"
    EXCHANGE_FAILED = "EXCHANGE_FAILED"
    TRANSFER_FAILED = "TRANSFER_FAILED"
    ORACLE_UNAVAILABLE = "ORACLE_UNAVAILABLE"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ROUND_BUDGET_EXCEEDED = "ROUND_BUDGET_EXCEEDED"
    AGENT_CALL_FAILED = "AGENT_CALL_FAILED"

    @classmethod
    def get_all_codes(cls) -> list[str]:
        """Returns all defined error codes."""
        return [
            cls.INVALID_AMOUNT,
            cls.UNKNOWN_REQUEST,
            cls.ALREADY_COMPLETED,
            cls.DUPLICATE_EXECUTION,
            cls.INVALID_PROOF,
            cls.EXCHANGE_FAILED,
            cls.TRANSFER_FAILED,
            cls.ORACLE_UNAVAILABLE,
            cls.PAYMENT_REJECTED,
            cls.INVALID_TRANSITION,
            cls.ROUND_BUDGET_EXCEEDED,
            cls.AGENT_CALL_FAILED,
        ]


# Phrases callers match on.
MSG_UNKNOWN_REQUEST = "Invalid or expired payment token"
MSG_DUPLICATE_EXECUTION = "This swap has already been executed"
MSG_EXCHANGE_FAILED = "Swap execution failed"
MSG_TRANSFER_FAILED = "Failed to send ETH"
MSG_TRANSACTION_LIMIT = "Payment rejected: amount exceeds spend limit per transaction"
MSG_RATE_LIMIT = "Payment rejected: max spend exceeded for the current window"
MSG_ROUND_BUDGET = "Negotiation round limit exceeded"


class SwapError(Exception):
    """Base error for the swap core."""
    code: str = "UNKNOWN_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        """Error payload returned across the relay boundary."""
        payload: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidAmountError(SwapError):
    """Malformed, non-finite or non-positive swap amount."""
    code = SwapErrorCode.INVALID_AMOUNT


class UnknownRequestError(SwapError):
    """No swap request with this id (never created, or expired)."""
    code = SwapErrorCode.UNKNOWN_REQUEST

    def __init__(self, request_id: str, message: str = MSG_UNKNOWN_REQUEST):
        super().__init__(message, details={"request_id": request_id})
        self.request_id = request_id


class AlreadyCompletedError(SwapError):
    """Ledger-level refusal to complete a request twice."""
    code = SwapErrorCode.ALREADY_COMPLETED

    def __init__(self, request_id: str):
        super().__init__(MSG_DUPLICATE_EXECUTION, details={"request_id": request_id})
        self.request_id = request_id


class DuplicateExecutionError(SwapError):
    """Replay of a proof whose request has already settled."""
    code = SwapErrorCode.DUPLICATE_EXECUTION

    def __init__(self, request_id: str):
        super().__init__(MSG_DUPLICATE_EXECUTION, details={"request_id": request_id})
        self.request_id = request_id


class InvalidProofError(SwapError):
    """Payment proof failed verification or binding checks."""
    code = SwapErrorCode.INVALID_PROOF


class ExchangeFailedError(SwapError):
    """Simulated exchange step failed."""
    code = SwapErrorCode.EXCHANGE_FAILED

    def __init__(self, message: str = MSG_EXCHANGE_FAILED, **kwargs):
        super().__init__(message, **kwargs)


class TransferFailedError(SwapError):
    """Simulated transfer step failed."""
    code = SwapErrorCode.TRANSFER_FAILED

    def __init__(self, message: str = MSG_TRANSFER_FAILED, **kwargs):
        super().__init__(message, **kwargs)


class OracleUnavailableError(SwapError):
    """Price feed could not be reached or parsed. Never surfaced to callers."""
    code = SwapErrorCode.ORACLE_UNAVAILABLE


class PaymentRejectedError(SwapError):
    """Payment refused by the payer's spend rules."""
    code = SwapErrorCode.PAYMENT_REJECTED


class StateTransitionError(SwapError):
    """Status change outside the transition table."""
    code = SwapErrorCode.INVALID_TRANSITION


class RoundBudgetExceededError(SwapError):
    """A negotiation turn used up its tool-call rounds."""
    code = SwapErrorCode.ROUND_BUDGET_EXCEEDED

    def __init__(self, budget: int):
        super().__init__(MSG_ROUND_BUDGET, details={"budget": budget})
        self.budget = budget


class AgentCallError(SwapError):
    """Calling a counterparty agent failed."""
    code = SwapErrorCode.AGENT_CALL_FAILED


def map_error_to_code(error: Exception) -> str:
    """Maps implementation errors to error codes."""
    if isinstance(error, SwapError):
        return error.code
    return "UNKNOWN_ERROR"
