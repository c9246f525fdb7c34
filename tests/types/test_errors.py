"""Unit tests for swap_agents.types.errors module."""

import pytest

from swap_agents.types.errors import (
    MSG_DUPLICATE_EXECUTION,
    MSG_EXCHANGE_FAILED,
    MSG_TRANSFER_FAILED,
    MSG_UNKNOWN_REQUEST,
    AgentCallError,
    AlreadyCompletedError,
    DuplicateExecutionError,
    ExchangeFailedError,
    InvalidAmountError,
    InvalidProofError,
    OracleUnavailableError,
    PaymentRejectedError,
    RoundBudgetExceededError,
    StateTransitionError,
    SwapError,
    SwapErrorCode,
    TransferFailedError,
    UnknownRequestError,
    map_error_to_code
)


class TestErrorHierarchy:
    """Test error class hierarchy."""

    def test_base_error(self):
        """Test SwapError base exception."""
        error = SwapError("Test error")
        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.details == {}
        assert isinstance(error, Exception)

    def test_error_inheritance(self):
        """Test that all errors inherit from SwapError."""
        errors = [
            InvalidAmountError("bad"),
            UnknownRequestError("swap_1"),
            AlreadyCompletedError("swap_1"),
            DuplicateExecutionError("swap_1"),
            InvalidProofError("bad proof"),
            ExchangeFailedError(),
            TransferFailedError(),
            OracleUnavailableError("down"),
            PaymentRejectedError("rejected"),
            StateTransitionError("nope"),
            RoundBudgetExceededError(4),
            AgentCallError("unreachable"),
        ]
        for error in errors:
            assert isinstance(error, SwapError)

    def test_error_can_be_raised(self):
        """Test that errors can be raised and caught as SwapError."""
        with pytest.raises(SwapError):
            raise DuplicateExecutionError("swap_1")


class TestErrorMessages:
    """Test the stable messages callers match on."""

    def test_unknown_request_message(self):
        error = UnknownRequestError("swap_1")
        assert error.message == MSG_UNKNOWN_REQUEST == "Invalid or expired payment token"
        assert error.request_id == "swap_1"

    def test_duplicate_message(self):
        assert DuplicateExecutionError("swap_1").message == MSG_DUPLICATE_EXECUTION
        assert AlreadyCompletedError("swap_1").message == MSG_DUPLICATE_EXECUTION

    def test_downstream_defaults(self):
        """Test that downstream failures default to their fixed messages."""
        assert ExchangeFailedError().message == MSG_EXCHANGE_FAILED
        assert TransferFailedError().message == MSG_TRANSFER_FAILED

    def test_round_budget_carries_budget(self):
        error = RoundBudgetExceededError(8)
        assert error.budget == 8
        assert error.details == {"budget": 8}


class TestSwapErrorCode:
    """Test SwapErrorCode constants."""

    def test_get_all_codes(self):
        """Test that every code is listed once."""
        codes = SwapErrorCode.get_all_codes()
        assert len(codes) == len(set(codes)) == 12
        assert SwapErrorCode.DUPLICATE_EXECUTION in codes

    def test_codes_are_distinct_per_kind(self):
        """Test that replay and ledger refusal stay distinguishable."""
        assert DuplicateExecutionError.code != AlreadyCompletedError.code
        assert UnknownRequestError.code != InvalidProofError.code


class TestPayload:
    """Test error payloads returned across the relay boundary."""

    def test_payload_with_details(self):
        payload = UnknownRequestError("swap_1").to_payload()
        assert payload == {
            "error": MSG_UNKNOWN_REQUEST,
            "code": SwapErrorCode.UNKNOWN_REQUEST,
            "details": {"request_id": "swap_1"},
        }

    def test_payload_without_details(self):
        payload = InvalidProofError("bad").to_payload()
        assert payload == {"error": "bad", "code": SwapErrorCode.INVALID_PROOF}


class TestMapErrorToCode:
    """Test map_error_to_code function."""

    def test_swap_errors(self):
        assert map_error_to_code(InvalidAmountError("x")) == SwapErrorCode.INVALID_AMOUNT
        assert map_error_to_code(TransferFailedError()) == SwapErrorCode.TRANSFER_FAILED

    def test_unknown_errors(self):
        """Test that non-swap exceptions map to UNKNOWN_ERROR."""
        assert map_error_to_code(ValueError("x")) == "UNKNOWN_ERROR"
        assert map_error_to_code(RuntimeError("x")) == "UNKNOWN_ERROR"
