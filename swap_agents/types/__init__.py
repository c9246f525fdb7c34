"""Types package for swap_agents - re-exports x402.types used by the payment leg and adds swap types."""

from x402.types import (
    PaymentRequirements,
    SupportedNetworks
)

from .state import (
    SwapStatus,
    ALLOWED_TRANSITIONS,
    can_transition,
    TokenType
)

from .errors import (
    SwapErrorCode,
    SwapError,
    InvalidAmountError,
    UnknownRequestError,
    AlreadyCompletedError,
    DuplicateExecutionError,
    InvalidProofError,
    ExchangeFailedError,
    TransferFailedError,
    OracleUnavailableError,
    PaymentRejectedError,
    StateTransitionError,
    RoundBudgetExceededError,
    AgentCallError,
    map_error_to_code
)

from .swap import (
    SwapRequest,
    SwapReceipt,
    PriceQuote,
    VerifiedProof,
    PaymentRequest
)

from .config import (
    PriceFeed,
    PRICE_FEEDS,
    OracleConfig,
    SettlementConfig,
    AgentServerConfig,
    SwapAgentsConfig,
    load_config
)

__all__ = [

    "PaymentRequirements",
    "SupportedNetworks",

    "SwapStatus",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "TokenType",

    "SwapErrorCode",
    "SwapError",
    "InvalidAmountError",
    "UnknownRequestError",
    "AlreadyCompletedError",
    "DuplicateExecutionError",
    "InvalidProofError",
    "ExchangeFailedError",
    "TransferFailedError",
    "OracleUnavailableError",
    "PaymentRejectedError",
    "StateTransitionError",
    "RoundBudgetExceededError",
    "AgentCallError",
    "map_error_to_code",

    "SwapRequest",
    "SwapReceipt",
    "PriceQuote",
    "VerifiedProof",
    "PaymentRequest",

    "PriceFeed",
    "PRICE_FEEDS",
    "OracleConfig",
    "SettlementConfig",
    "AgentServerConfig",
    "SwapAgentsConfig",
    "load_config"
]
