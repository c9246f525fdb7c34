"""Unit tests for swap_agents.types.state module."""

from swap_agents.types.state import (
    ALLOWED_TRANSITIONS,
    SwapStatus,
    TokenType,
    can_transition
)


class TestSwapStatus:
    """Test SwapStatus enum."""

    def test_status_values(self):
        """Test that status values are the lowercase wire strings."""
        assert SwapStatus.PENDING.value == "pending"
        assert SwapStatus.COMPLETED.value == "completed"

    def test_status_is_string(self):
        """Test that statuses compare equal to their string values."""
        assert SwapStatus.PENDING == "pending"
        assert SwapStatus("completed") is SwapStatus.COMPLETED

    def test_every_status_in_transition_table(self):
        """Test that the transition table covers every status."""
        assert set(ALLOWED_TRANSITIONS) == set(SwapStatus)


class TestTransitions:
    """Test the transition table."""

    def test_pending_to_completed_allowed(self):
        """Test the only legal transition."""
        assert can_transition(SwapStatus.PENDING, SwapStatus.COMPLETED)

    def test_completed_is_terminal(self):
        """Test that nothing leaves Completed."""
        assert not can_transition(SwapStatus.COMPLETED, SwapStatus.PENDING)
        assert not can_transition(SwapStatus.COMPLETED, SwapStatus.COMPLETED)

    def test_no_self_transition_for_pending(self):
        """Test that Pending -> Pending is not a transition."""
        assert not can_transition(SwapStatus.PENDING, SwapStatus.PENDING)


class TestTokenType:
    """Test token type constants."""

    def test_token_types_are_distinct(self):
        """Test that every token type has its own header value."""
        values = {TokenType.PAYMENT_REQUEST, TokenType.PAYMENT_RECEIPT, TokenType.CHAT}
        assert len(values) == 3
