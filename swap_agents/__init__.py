"""swap_agents - two agents negotiating and settling a USDC swap."""

__version__ = "0.1.0"

# Swap Types
from .types import (
    SwapStatus,
    SwapRequest,
    SwapReceipt,
    PriceQuote,
    VerifiedProof,

    # Configuration
    SwapAgentsConfig,
    load_config,

    # Error Types
    SwapError,
    SwapErrorCode,
    InvalidAmountError,
    UnknownRequestError,
    AlreadyCompletedError,
    DuplicateExecutionError,
    InvalidProofError,
    ExchangeFailedError,
    TransferFailedError,
    PaymentRejectedError,
    map_error_to_code
)

# Settlement Core
from .core import (
    PriceOracleClient,
    SwapLedger,
    ProofVerifier,
    SettlementExecutor,
    PaymentService,
    SpendRules,
    AgentIdentity
)

# Negotiation
from .executors import SwapRelay
from .agents import SwapServiceAgent, SwapUserAgent
from .transport import AgentCaller, AuthedRequestHandler

__all__ = [
    "__version__",

    "SwapStatus",
    "SwapRequest",
    "SwapReceipt",
    "PriceQuote",
    "VerifiedProof",
    "SwapAgentsConfig",
    "load_config",
    "SwapError",
    "SwapErrorCode",
    "InvalidAmountError",
    "UnknownRequestError",
    "AlreadyCompletedError",
    "DuplicateExecutionError",
    "InvalidProofError",
    "ExchangeFailedError",
    "TransferFailedError",
    "PaymentRejectedError",
    "map_error_to_code",

    "PriceOracleClient",
    "SwapLedger",
    "ProofVerifier",
    "SettlementExecutor",
    "PaymentService",
    "SpendRules",
    "AgentIdentity",

    "SwapRelay",
    "SwapServiceAgent",
    "SwapUserAgent",
    "AgentCaller",
    "AuthedRequestHandler"
]
