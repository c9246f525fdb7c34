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
"""Wires both agents from configuration and serves them."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
import uvicorn
from starlette.applications import Starlette

from .app import create_agent_app
from ..agents import SwapServiceAgent, SwapUserAgent
from ..core import (
    AgentIdentity,
    PaymentService,
    PriceOracleClient,
    ProofVerifier,
    SettlementExecutor,
    SimulatedExchange,
    SimulatedTransfer,
    SwapLedger,
)
from ..executors import SwapRelay
from ..transport import AgentCaller, AuthedRequestHandler
from ..types import SwapAgentsConfig


logger = logging.getLogger(__name__)


@dataclass
class SwapRuntime:
    """Everything one process needs to host both agents."""
    config: SwapAgentsConfig
    payment_service: PaymentService
    ledger: SwapLedger
    relay: SwapRelay
    swap_service: SwapServiceAgent
    swap_user: SwapUserAgent
    service_app: Starlette
    user_app: Starlette


def build_runtime(
    config: SwapAgentsConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> SwapRuntime:
    """Builds identities, the settlement core, both agents and their apps.

    `http_client` is used for agent-to-agent calls and oracle reads; tests
    pass one bound to an ASGI transport.
    """
    settlement = config.settlement
    decode_jwt = config.server.decode_jwt

    user_identity = AgentIdentity("swap-user", config.swap_user_private_key)
    service_identity = AgentIdentity("swap-service", config.swap_service_private_key)
    payment_identity = AgentIdentity("payment-service", config.payment_service_private_key)

    payment_service = PaymentService(payment_identity, rules_path=config.spend_rules_path)
    oracle = PriceOracleClient(config.oracle, http_client=http_client)
    ledger = SwapLedger(
        oracle,
        pair=settlement.pair,
        pending_ttl_seconds=settlement.pending_ttl_seconds,
    )
    executor = SettlementExecutor(
        ledger,
        ProofVerifier([payment_service.address]),
        exchange=SimulatedExchange(settlement.step_delay_seconds),
        transfer=SimulatedTransfer(settlement.step_delay_seconds / 2),
        default_recipient_address=settlement.default_recipient_address,
    )
    relay = SwapRelay(
        ledger,
        executor,
        payment_service,
        payee_address=service_identity.address,
        decode_jwt=decode_jwt,
    )

    target_symbol = settlement.pair.split("/")[0]
    swap_service = SwapServiceAgent(relay, target_symbol=target_symbol)
    call_swap_agent = AgentCaller(
        user_identity,
        f"{config.swap_service_url}/chat",
        trusted_peer=service_identity.address,
        http_client=http_client,
        decode_jwt=decode_jwt,
    )
    swap_user = SwapUserAgent(
        user_identity,
        call_swap_agent,
        payment_service,
        recipient_address=settlement.default_recipient_address,
        decode_jwt=decode_jwt,
    )

    service_app = create_agent_app(
        swap_service,
        config.server.swap_service_port,
        handler=AuthedRequestHandler(
            service_identity,
            swap_service,
            trusted_callers=[user_identity.address],
            decode_jwt=decode_jwt,
        ),
        decode_jwt=decode_jwt,
    )
    user_app = create_agent_app(swap_user, config.server.swap_user_port, decode_jwt=decode_jwt)

    return SwapRuntime(
        config=config,
        payment_service=payment_service,
        ledger=ledger,
        relay=relay,
        swap_service=swap_service,
        swap_user=swap_user,
        service_app=service_app,
        user_app=user_app,
    )


async def serve_agents(config: SwapAgentsConfig) -> None:
    """Runs the swap user and swap service servers until interrupted."""
    runtime = build_runtime(config)
    host = config.server.host

    servers = []
    for name, app, port in (
        ("swap-service", runtime.service_app, config.server.swap_service_port),
        ("swap-user", runtime.user_app, config.server.swap_user_port),
    ):
        logger.info(f"🚀 Starting {name} agent on http://{host}:{port}")
        uvicorn_config = uvicorn.Config(app, host=host, port=port, log_level="warning")
        servers.append(uvicorn.Server(uvicorn_config))

    logger.info(f"💰 Payment service address: {runtime.payment_service.address}")
    await asyncio.gather(*(server.serve() for server in servers))
