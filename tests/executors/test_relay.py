"""Tests for the swap relay."""

from decimal import Decimal

import pytest

from swap_agents.core.tokens import decode_token_payload, token_type_of
from swap_agents.types import SwapErrorCode, SwapStatus, TokenType


class TestCreateSwap:
    """Test SwapRelay.create_swap."""

    @pytest.mark.asyncio
    async def test_offer_payload(self, relay, ledger, service_identity):
        offer = await relay.create_swap(25)

        assert offer["usdcAmount"] == "25"
        assert offer["exchangeRate"] == "150.00"
        assert offer["ethAmount"] == "0.166667"
        assert offer["paymentRequired"] == 2500
        assert offer["instruction"] == (
            "Please pay 25 USDC (2500 units) using this token to proceed with the swap"
        )
        assert token_type_of(offer["paymentToken"]) == TokenType.PAYMENT_REQUEST
        assert decode_token_payload(offer["paymentToken"])["payTo"] == service_identity.address
        assert service_identity.address in offer["paymentRequirements"].values()
        assert ledger.get(offer["requestId"]).status == SwapStatus.PENDING

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [-5, 0, "abc"])
    async def test_invalid_amount_payload(self, relay, amount):
        """Test that the error kind survives the relay boundary."""
        result = await relay.create_swap(amount)
        assert result["code"] == SwapErrorCode.INVALID_AMOUNT
        assert "error" in result

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0.004", "25.006", "1e-30"])
    async def test_sub_cent_amount_is_refused(self, relay, ledger, amount):
        """Test that no offer is made for an amount the payment cannot carry exactly."""
        result = await relay.create_swap(amount)

        assert result["code"] == SwapErrorCode.INVALID_AMOUNT
        assert "paymentToken" not in result
        assert ledger._requests == {}

    @pytest.mark.asyncio
    async def test_exponent_amount_in_plain_notation(self, relay):
        offer = await relay.create_swap("1e2")

        assert offer["usdcAmount"] == "100"
        assert offer["paymentRequired"] == 10000
        assert offer["description"].startswith("Swap 100 USDC for ~")


class TestSettleSwap:
    """Test SwapRelay.settle_swap."""

    @pytest.mark.asyncio
    async def test_settle_after_payment(self, relay, payment_service, user_identity):
        offer = await relay.create_swap("25")
        receipt = payment_service.execute_payment(offer["paymentToken"], payer=user_identity.address)

        result = await relay.settle_swap(receipt, recipient_address="0x" + "1" * 40)

        assert result["success"] is True
        assert result["requestId"] == offer["requestId"]
        assert result["usdcSwapped"] == "25"
        assert result["ethReceived"] == "0.166667"
        assert result["exchangeRate"] == "150.00"
        assert result["recipientAddress"] == "0x" + "1" * 40
        assert result["swapTxHash"].startswith("0x")
        assert result["sendTxHash"].startswith("0x")

    @pytest.mark.asyncio
    async def test_replay_payload(self, relay, payment_service, user_identity):
        offer = await relay.create_swap(25)
        receipt = payment_service.execute_payment(offer["paymentToken"], payer=user_identity.address)
        await relay.settle_swap(receipt)

        result = await relay.settle_swap(receipt)

        assert result["code"] == SwapErrorCode.DUPLICATE_EXECUTION
        assert result["error"] == "This swap has already been executed"

    @pytest.mark.asyncio
    async def test_invalid_proof_payload(self, relay):
        result = await relay.settle_swap("garbage")
        assert result["code"] == SwapErrorCode.INVALID_PROOF

    @pytest.mark.asyncio
    async def test_wrong_request_payload(self, relay, payment_service, user_identity):
        first = await relay.create_swap(25)
        second = await relay.create_swap(Decimal("10"))
        receipt = payment_service.execute_payment(first["paymentToken"], payer=user_identity.address)

        result = await relay.settle_swap(receipt, request_id=second["requestId"])

        assert result["code"] == SwapErrorCode.INVALID_PROOF
        assert result["details"]["bound_request_id"] == first["requestId"]
