"""HTTP surface for swap_agents."""

from .app import create_agent_app, render_status_page
from .runtime import SwapRuntime, build_runtime, serve_agents

__all__ = [
    "create_agent_app",
    "render_status_page",
    "SwapRuntime",
    "build_runtime",
    "serve_agents"
]
