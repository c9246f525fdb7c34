"""Shared fixtures for swap_agents tests."""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

from swap_agents.core import (
    AgentIdentity,
    PaymentService,
    PriceOracleClient,
    ProofVerifier,
    SettlementExecutor,
    SimulatedExchange,
    SimulatedTransfer,
    SwapLedger,
)
from swap_agents.executors import SwapRelay


@pytest.fixture
def user_identity():
    """Identity of the paying agent."""
    return AgentIdentity("swap-user", "0x" + "a" * 64)


@pytest.fixture
def service_identity():
    """Identity of the swap service (the payee)."""
    return AgentIdentity("swap-service", "0x" + "b" * 64)


@pytest.fixture
def payment_identity():
    """Identity that signs payment tokens and receipts."""
    return AgentIdentity("payment-service", "0x" + "c" * 64)


@pytest.fixture
def fake_oracle():
    """Oracle that always quotes 150 USDC per unit."""
    oracle = Mock(spec=PriceOracleClient)
    oracle.get_rate = AsyncMock(return_value=Decimal("150.00"))
    return oracle


@pytest.fixture
def ledger(fake_oracle):
    return SwapLedger(fake_oracle, pair="ETH/USD")


@pytest.fixture
def payment_service(payment_identity):
    """Payment service with no spend rules."""
    return PaymentService(payment_identity)


@pytest.fixture
def verifier(payment_service):
    return ProofVerifier([payment_service.address])


@pytest.fixture
def executor(ledger, verifier):
    """Settlement executor with no simulated latency."""
    return SettlementExecutor(
        ledger,
        verifier,
        exchange=SimulatedExchange(delay_seconds=0),
        transfer=SimulatedTransfer(delay_seconds=0),
    )


@pytest.fixture
def relay(ledger, executor, payment_service, service_identity):
    return SwapRelay(ledger, executor, payment_service, payee_address=service_identity.address)
