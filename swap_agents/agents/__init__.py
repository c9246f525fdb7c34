"""Negotiating agents for swap_agents."""

from .base import (
    RoundBudget,
    ToolBox,
    NegotiationStrategy,
    NegotiationAgent
)
from .swap_service import SwapServiceAgent, ScriptedSwapServiceStrategy
from .swap_user import SwapUserAgent, ScriptedSwapUserStrategy

__all__ = [
    "RoundBudget",
    "ToolBox",
    "NegotiationStrategy",
    "NegotiationAgent",
    "SwapServiceAgent",
    "ScriptedSwapServiceStrategy",
    "SwapUserAgent",
    "ScriptedSwapUserStrategy"
]
