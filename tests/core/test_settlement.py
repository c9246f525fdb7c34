"""Tests for swap settlement."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from swap_agents.core.settlement import (
    ExchangeResult,
    SettlementExecutor,
    SimulatedExchange,
    SimulatedTransfer
)
from swap_agents.types import (
    DuplicateExecutionError,
    ExchangeFailedError,
    InvalidProofError,
    SwapStatus,
    TransferFailedError,
    UnknownRequestError
)
from swap_agents.types.config import DEFAULT_RECIPIENT_ADDRESS


async def _paid_request(ledger, payment_service, payer: str, amount=25):
    """Creates a request and pays for it; returns (request, receipt)."""
    request = await ledger.create_request(amount)
    payment = payment_service.create_payment_request(
        request.source_amount, "Swap", request.id, pay_to="0x" + "9" * 40
    )
    receipt = payment_service.execute_payment(payment.payment_token, payer=payer)
    return request, receipt


class TestSimulatedSteps:
    """Test the mock exchange and transfer."""

    @pytest.mark.asyncio
    async def test_exchange_output(self):
        result = await SimulatedExchange(delay_seconds=0).swap(Decimal("25"), Decimal("150"))
        assert result.target_amount == Decimal("25") / Decimal("150")
        assert result.tx_hash.startswith("0x") and len(result.tx_hash) == 66

    @pytest.mark.asyncio
    async def test_transfer_hash(self):
        tx_hash = await SimulatedTransfer(delay_seconds=0).send("0xabc", Decimal("1"))
        assert len(tx_hash) == 66


class TestSettlementExecutor:
    """Test SettlementExecutor."""

    @pytest.mark.asyncio
    async def test_successful_settlement(self, executor, ledger, payment_service, user_identity):
        request, receipt = await _paid_request(ledger, payment_service, user_identity.address)

        result = await executor.execute(receipt, recipient_address="0x" + "1" * 40)

        assert result.success
        assert result.request_id == request.id
        assert result.rate == request.rate
        assert result.target_amount == request.target_amount
        assert result.recipient_address == "0x" + "1" * 40
        assert result.payer == user_identity.address
        assert ledger.get(request.id).status == SwapStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_default_recipient(self, executor, ledger, payment_service, user_identity):
        _, receipt = await _paid_request(ledger, payment_service, user_identity.address)
        result = await executor.execute(receipt)
        assert result.recipient_address == DEFAULT_RECIPIENT_ADDRESS

    @pytest.mark.asyncio
    async def test_rate_is_frozen_at_creation(self, executor, ledger, fake_oracle, payment_service, user_identity):
        """Test that a later price move does not change the settled amount."""
        request, receipt = await _paid_request(ledger, payment_service, user_identity.address)
        fake_oracle.get_rate.return_value = Decimal("999.00")

        result = await executor.execute(receipt)

        assert result.rate == Decimal("150.00")
        assert result.target_amount == request.target_amount

    @pytest.mark.asyncio
    async def test_replay_is_rejected(self, executor, ledger, payment_service, user_identity):
        _, receipt = await _paid_request(ledger, payment_service, user_identity.address)
        await executor.execute(receipt)

        with pytest.raises(DuplicateExecutionError):
            await executor.execute(receipt)

    @pytest.mark.asyncio
    async def test_concurrent_replays_settle_once(self, ledger, verifier, payment_service, user_identity):
        """Test that N concurrent settlements of one receipt yield exactly one success."""
        exchange = SimulatedExchange(delay_seconds=0.01)
        executor = SettlementExecutor(
            ledger, verifier, exchange=exchange, transfer=SimulatedTransfer(delay_seconds=0)
        )
        _, receipt = await _paid_request(ledger, payment_service, user_identity.address)

        results = await asyncio.gather(
            *(executor.execute(receipt) for _ in range(10)), return_exceptions=True
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        duplicates = [r for r in results if isinstance(r, DuplicateExecutionError)]
        assert len(successes) == 1
        assert len(duplicates) == 9

    @pytest.mark.asyncio
    async def test_unknown_request(self, executor, payment_service, user_identity, ledger):
        """Test that a receipt for a request the ledger never saw mutates nothing."""
        payment = payment_service.create_payment_request(
            Decimal("25"), "Swap", "swap_missing", pay_to="0x" + "9" * 40
        )
        receipt = payment_service.execute_payment(payment.payment_token, payer=user_identity.address)

        with pytest.raises(UnknownRequestError):
            await executor.execute(receipt)
        assert ledger._requests == {}

    @pytest.mark.asyncio
    async def test_receipt_bound_to_other_request(self, executor, ledger, payment_service, user_identity):
        """Test that a receipt for X cannot settle Y, and neither changes."""
        request_x, receipt_x = await _paid_request(ledger, payment_service, user_identity.address)
        request_y = await ledger.create_request(25)

        with pytest.raises(InvalidProofError, match="not bound to this swap request"):
            await executor.execute(receipt_x, request_id=request_y.id)

        assert ledger.get(request_x.id).status == SwapStatus.PENDING
        assert ledger.get(request_y.id).status == SwapStatus.PENDING

    @pytest.mark.asyncio
    async def test_amount_mismatch(self, executor, ledger, payment_service, user_identity):
        """Test that paying less than the quoted amount does not settle."""
        request = await ledger.create_request(25)
        payment = payment_service.create_payment_request(
            Decimal("1"), "Swap", request.id, pay_to="0x" + "9" * 40
        )
        receipt = payment_service.execute_payment(payment.payment_token, payer=user_identity.address)

        with pytest.raises(InvalidProofError, match="does not match"):
            await executor.execute(receipt)
        assert ledger.get(request.id).status == SwapStatus.PENDING

    @pytest.mark.asyncio
    async def test_invalid_proof_leaves_request_pending(self, executor, ledger):
        request = await ledger.create_request(25)
        with pytest.raises(InvalidProofError):
            await executor.execute("garbage")
        assert ledger.get(request.id).status == SwapStatus.PENDING

    @pytest.mark.asyncio
    async def test_exchange_failure_keeps_completed(self, ledger, verifier, payment_service, user_identity):
        """Test that a failed exchange surfaces and the request is not reopened."""
        exchange = SimulatedExchange(delay_seconds=0)
        exchange.swap = AsyncMock(side_effect=RuntimeError("pool drained"))
        executor = SettlementExecutor(ledger, verifier, exchange=exchange)
        request, receipt = await _paid_request(ledger, payment_service, user_identity.address)

        with pytest.raises(ExchangeFailedError) as exc_info:
            await executor.execute(receipt)

        assert exc_info.value.message == "Swap execution failed"
        assert exc_info.value.details == {"request_id": request.id, "reason": "pool drained"}
        assert ledger.get(request.id).status == SwapStatus.COMPLETED
        with pytest.raises(DuplicateExecutionError):
            await executor.execute(receipt)

    @pytest.mark.asyncio
    async def test_transfer_failure_keeps_completed(self, ledger, verifier, payment_service, user_identity):
        exchange = SimulatedExchange(delay_seconds=0)
        exchange.swap = AsyncMock(return_value=ExchangeResult(Decimal("0.1"), "0x" + "0" * 64))
        transfer = SimulatedTransfer(delay_seconds=0)
        transfer.send = AsyncMock(side_effect=ConnectionError("rpc down"))
        executor = SettlementExecutor(ledger, verifier, exchange=exchange, transfer=transfer)
        request, receipt = await _paid_request(ledger, payment_service, user_identity.address)

        with pytest.raises(TransferFailedError, match="Failed to send ETH"):
            await executor.execute(receipt)
        assert ledger.get(request.id).status == SwapStatus.COMPLETED
