"""Core package exports for swap_agents."""

from .oracle import PriceOracleClient
from .ledger import SwapLedger, parse_amount
from .verifier import ProofVerifier
from .settlement import (
    SettlementExecutor,
    SimulatedExchange,
    SimulatedTransfer,
    ExchangeResult
)
from .payments import (
    PaymentService,
    SpendRules,
    load_spend_rules,
    save_spend_rules,
    create_payment_requirements,
    to_payment_units
)
from .wallet import AgentIdentity
from .tokens import (
    TokenError,
    encode_token,
    decode_token,
    verify_token,
    decode_token_payload,
    find_tokens,
    token_type_of,
    log_token_payload
)

__all__ = [
    # Settlement core
    "PriceOracleClient",
    "SwapLedger",
    "parse_amount",
    "ProofVerifier",
    "SettlementExecutor",
    "SimulatedExchange",
    "SimulatedTransfer",
    "ExchangeResult",

    # Payment service
    "PaymentService",
    "SpendRules",
    "load_spend_rules",
    "save_spend_rules",
    "create_payment_requirements",
    "to_payment_units",
    "AgentIdentity",

    # Tokens
    "TokenError",
    "encode_token",
    "decode_token",
    "verify_token",
    "decode_token_payload",
    "find_tokens",
    "token_type_of",
    "log_token_payload"
]
