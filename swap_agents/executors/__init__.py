"""Boundary adapters for swap_agents."""

from .relay import SwapRelay

__all__ = [
    "SwapRelay"
]
