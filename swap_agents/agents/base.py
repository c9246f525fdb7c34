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
"""Negotiation agents: a fixed tool interface plus a pluggable strategy."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict

from ..types import RoundBudgetExceededError


logger = logging.getLogger(__name__)

Tool = Callable[..., Awaitable[Any]]


class RoundBudget:
    """Counts tool-call rounds for one negotiation turn."""

    def __init__(self, max_rounds: int):
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.max_rounds = max_rounds
        self.used = 0

    @property
    def remaining(self) -> int:
        return self.max_rounds - self.used

    def consume(self) -> None:
        if self.used >= self.max_rounds:
            raise RoundBudgetExceededError(self.max_rounds)
        self.used += 1


class ToolBox:
    """The only way a strategy can act: named tools, each call costing one round."""

    def __init__(self, tools: Dict[str, Tool], budget: RoundBudget, agent_name: str = "agent"):
        self._tools = tools
        self.budget = budget
        self.agent_name = agent_name

    @property
    def names(self) -> list[str]:
        return sorted(self._tools)

    async def call(self, name: str, **kwargs: Any) -> Any:
        if name not in self._tools:
            raise KeyError(f"{self.agent_name} has no tool named {name!r}")
        self.budget.consume()
        logger.info(
            f"🔧 {self.agent_name} -> {name} "
            f"(round {self.budget.used}/{self.budget.max_rounds})"
        )
        return await self._tools[name](**kwargs)


class NegotiationStrategy(ABC):
    """Decides which tools to call for an incoming message and what to answer."""

    @abstractmethod
    async def respond(self, message: str, tools: ToolBox) -> str:
        raise NotImplementedError


class NegotiationAgent(ABC):
    """Runs one turn of a strategy against this agent's tools under a round budget."""

    name: str = "agent"
    max_rounds: int = 4

    def __init__(self, strategy: NegotiationStrategy):
        self.strategy = strategy

    @abstractmethod
    def tools(self) -> Dict[str, Tool]:
        raise NotImplementedError

    async def run(self, message: str) -> str:
        """Answers `message`; a turn that runs out of rounds ends with a failure text."""
        toolbox = ToolBox(self.tools(), RoundBudget(self.max_rounds), self.name)
        try:
            return await self.strategy.respond(message, toolbox)
        except RoundBudgetExceededError as e:
            logger.warning(f"{self.name} stopped after {e.budget} rounds")
            return f"Error: {e.message} ({e.budget} rounds)"

    async def __call__(self, message: str) -> str:
        return await self.run(message)
