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
"""Configuration types for swap_agents."""

import logging
import os
from decimal import Decimal
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


PYTH_HERMES_URL = "https://hermes.pyth.network"

# FOR DEMONSTRATION PURPOSES ONLY. DO NOT USE IN PRODUCTION.
DEMO_SWAP_USER_KEY = "0x" + "1" * 64
DEMO_SWAP_SERVICE_KEY = "0x" + "2" * 64
DEMO_PAYMENT_SERVICE_KEY = "0x" + "3" * 64

DEFAULT_RECIPIENT_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc9e7595f"

DEFAULT_SPEND_RULES_PATH = "spend_rules.json"


class PriceFeed(BaseModel):
    """A Pyth price feed and the rate used when it cannot be read."""
    pair: str
    price_id: str
    fallback_rate: Decimal


PRICE_FEEDS: Dict[str, PriceFeed] = {
    "ETH/USD": PriceFeed(
        pair="ETH/USD",
        price_id="0xff61491a931112ddf1bd8147cd1b641375f79f5825126d665480874634fd0ace",
        fallback_rate=Decimal("3500"),
    ),
    "SOL/USD": PriceFeed(
        pair="SOL/USD",
        price_id="0xef0d8b6fda2ceba41da15d4095d1da392a0d2f8ed0c6c7bc0f4cfac8c280b56d",
        fallback_rate=Decimal("150"),
    ),
}


class OracleConfig(BaseModel):
    """Configuration for the price oracle client."""
    base_url: str = PYTH_HERMES_URL
    timeout_seconds: float = 5.0
    feeds: Dict[str, PriceFeed] = Field(default_factory=lambda: dict(PRICE_FEEDS))


class SettlementConfig(BaseModel):
    """Configuration for the ledger and the settlement executor."""
    pair: str = "ETH/USD"
    pending_ttl_seconds: Optional[float] = None
    step_delay_seconds: float = 1.0
    default_recipient_address: str = DEFAULT_RECIPIENT_ADDRESS


class AgentServerConfig(BaseModel):
    """How the two agent servers are exposed."""
    host: str = "localhost"
    swap_user_port: int = 7576
    swap_service_port: int = 7577
    decode_jwt: bool = True


class SwapAgentsConfig(BaseModel):
    """Top-level configuration assembled from the environment."""
    swap_user_private_key: str = DEMO_SWAP_USER_KEY
    swap_service_private_key: str = DEMO_SWAP_SERVICE_KEY
    payment_service_private_key: str = DEMO_PAYMENT_SERVICE_KEY
    spend_rules_path: Optional[str] = DEFAULT_SPEND_RULES_PATH
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    settlement: SettlementConfig = Field(default_factory=SettlementConfig)
    server: AgentServerConfig = Field(default_factory=AgentServerConfig)

    @property
    def swap_user_url(self) -> str:
        return f"http://{self.server.host}:{self.server.swap_user_port}"

    @property
    def swap_service_url(self) -> str:
        return f"http://{self.server.host}:{self.server.swap_service_port}"


def _env_flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() != "false"


def _env_optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if not value:
        return None
    return float(value)


def load_config() -> SwapAgentsConfig:
    """Builds the configuration from `.env` and the process environment."""
    load_dotenv()

    keys = {}
    for field_name, env_name in (
        ("swap_user_private_key", "SWAP_USER_PRIVATE_KEY"),
        ("swap_service_private_key", "SWAP_SERVICE_PRIVATE_KEY"),
        ("payment_service_private_key", "PAYMENT_SERVICE_PRIVATE_KEY"),
    ):
        value = os.getenv(env_name)
        if value:
            keys[field_name] = value
        else:
            logger.warning(f"{env_name} not set, using the built-in demo key")

    oracle = OracleConfig(
        base_url=os.getenv("PYTH_HERMES_URL", PYTH_HERMES_URL),
        timeout_seconds=float(os.getenv("ORACLE_TIMEOUT_SECONDS", "5")),
    )
    settlement = SettlementConfig(
        pair=os.getenv("SWAP_PAIR", "ETH/USD"),
        pending_ttl_seconds=_env_optional_float("PENDING_TTL_SECONDS"),
        step_delay_seconds=float(os.getenv("SETTLEMENT_STEP_DELAY", "1.0")),
        default_recipient_address=os.getenv(
            "SWAP_RECIPIENT_ADDRESS", DEFAULT_RECIPIENT_ADDRESS
        ),
    )
    server = AgentServerConfig(
        host=os.getenv("SWAP_AGENTS_HOST", "localhost"),
        swap_user_port=int(os.getenv("SWAP_USER_PORT", "7576")),
        swap_service_port=int(os.getenv("SWAP_SERVICE_PORT", "7577")),
        decode_jwt=_env_flag("DECODE_JWT"),
    )

    return SwapAgentsConfig(
        spend_rules_path=os.getenv("SPEND_RULES_PATH", DEFAULT_SPEND_RULES_PATH) or None,
        oracle=oracle,
        settlement=settlement,
        server=server,
        **keys,
    )
