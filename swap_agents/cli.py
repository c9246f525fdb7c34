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
"""Command line entry point: serve the agents, chat with them, or run the tutorial."""

import asyncio
import logging
import sys
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

import click
import httpx

from .core.payments import SpendRules, save_spend_rules
from .server import serve_agents
from .types import load_config


EXIT_COMMAND = "/exit"

ERROR_INDICATORS = [
    "error",
    "failed",
    "rejected",
    "spend limit",
    "max spend exceeded",
    "min balance check failed",
    "exceeded",
    "limit",
]
TRANSACTION_LIMIT_PHRASES = [
    "spend limit per transaction",
    "spending limit",
    "transaction limit",
]
RATE_LIMIT_PHRASES = [
    "max spend exceeded",
    "hourly limit",
    "spend limit",
    "rate limit",
    "exceeded",
]

TUTORIAL_SWAP_AMOUNT = 25
TRANSACTION_LIMIT = Decimal("10")
RATE_LIMIT = Decimal("60")


@dataclass
class SwapResult:
    success: bool
    message: str


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in phrases)


def check_agents_available(base_url: str, client: Optional[httpx.Client] = None) -> bool:
    """True when the swap user agent answers `GET /` within two seconds."""
    try:
        if client is not None:
            client.get(f"{base_url}/", timeout=2.0)
        else:
            httpx.get(f"{base_url}/", timeout=2.0)
    except httpx.HTTPError:
        return False
    return True


def execute_swap(base_url: str, command: str, client: Optional[httpx.Client] = None) -> SwapResult:
    """Sends `command` to the swap user agent and classifies the answer."""
    try:
        if client is not None:
            response = client.post(f"{base_url}/chat", json={"message": command}, timeout=120.0)
        else:
            response = httpx.post(f"{base_url}/chat", json={"message": command}, timeout=120.0)
    except httpx.HTTPError as e:
        return SwapResult(success=False, message=str(e))

    if response.is_error:
        return SwapResult(
            success=False,
            message=(
                "Failed to communicate with swap user: "
                f"{response.status_code} {response.reason_phrase}"
            ),
        )

    try:
        text = response.json()["text"]
    except (ValueError, KeyError, TypeError) as e:
        return SwapResult(success=False, message=f"Unexpected response from swap user: {e}")
    if not isinstance(text, str):
        return SwapResult(success=False, message="Unexpected response from swap user: text is not a string")

    return SwapResult(success=not contains_any(text, ERROR_INDICATORS), message=text)


def print_header(title: str, subtitle: str = "") -> None:
    click.secho(f"\n📚 {title}", fg="cyan")
    click.secho("━" * 50, fg="bright_black")
    if subtitle:
        click.echo(subtitle)


def print_result(result: SwapResult, success_label: str = "SUCCESS!", failure_label: str = "Error:") -> None:
    if result.success:
        click.secho(f"\n✅ {success_label} ", fg="green", nl=False)
    else:
        click.secho(f"\n❌ {failure_label} ", fg="red", nl=False)
    click.echo(result.message)


def chat_loop(base_url: str, prompt: str, client: Optional[httpx.Client] = None) -> None:
    """Relays lines to the swap user agent until the exit command."""
    while True:
        user_input = click.prompt(click.style(prompt, fg="cyan"), prompt_suffix=" ")
        if user_input.strip().lower() == EXIT_COMMAND:
            click.secho("Goodbye!", fg="blue")
            return

        click.secho("\n⏳ Processing...", fg="yellow")
        print_result(execute_swap(base_url, user_input, client), "Result:")
        click.secho("\n" + "─" * 50 + "\n", fg="bright_black")


class SwapTutorial:
    """Walks through spend rules: a transaction limit, then an hourly rate limit.

    Rules are written to the same JSON file the payment service re-reads
    before every payment, so they take effect without a restart.
    """

    def __init__(self, base_url: str, rules_path: str, symbol: str = "ETH", client: Optional[httpx.Client] = None):
        self.base_url = base_url
        self.rules_path = rules_path
        self.symbol = symbol
        self.client = client
        self.total_spent = 0

    @property
    def suggested_command(self) -> str:
        return f"swap {TUTORIAL_SWAP_AMOUNT} USDC for {self.symbol}"

    def _run_command(self, hint: str) -> SwapResult:
        click.secho("➤ Try executing: ", fg="green", nl=False)
        click.echo(self.suggested_command)
        click.secho(f"   {hint}\n", fg="bright_black")
        command = click.prompt(click.style("Enter command", fg="cyan"))
        click.secho("\n⏳ Processing your swap...", fg="yellow")
        return execute_swap(self.base_url, command, self.client)

    def _apply_rules(self, rules: SpendRules, description: str) -> None:
        if click.confirm(f"Apply the {description} to {self.rules_path} now?", default=True):
            save_spend_rules(rules, self.rules_path)
            click.secho(f"✓ Rule written to {self.rules_path}", fg="green")
        else:
            click.pause(f"Press any key once {self.rules_path} holds the {description}...")

    def step1_initial_swap(self) -> bool:
        print_header("Step 1: Your First Swap", (
            "Let's start with a simple swap that should work without any restrictions."
        ))
        result = self._run_command("This should work successfully with no rules in place.")
        if result.success:
            self.total_spent = TUTORIAL_SWAP_AMOUNT
            print_result(result)
            return True
        print_result(result)
        click.secho(f"   Please try again with the suggested command: {self.suggested_command}", fg="yellow")
        return False

    def step2_set_transaction_limit(self) -> None:
        print_header("Step 2: Setting Transaction Limits", (
            f"We'll set a transaction spend limit of ${TRANSACTION_LIMIT}. Any swap over "
            f"${TRANSACTION_LIMIT} will be rejected before the payment is made."
        ))
        self._apply_rules(
            SpendRules(transaction_limit=TRANSACTION_LIMIT),
            f"${TRANSACTION_LIMIT} transaction spend limit",
        )

    def step3_test_transaction_limit(self) -> bool:
        print_header("Step 3: Testing the Transaction Limit", (
            f"{TUTORIAL_SWAP_AMOUNT} USDC exceeds your ${TRANSACTION_LIMIT} limit, "
            "so this swap should now be BLOCKED."
        ))
        result = self._run_command(f"This should now fail due to the ${TRANSACTION_LIMIT} transaction limit.")
        if not result.success and contains_any(result.message, TRANSACTION_LIMIT_PHRASES):
            print_result(result, failure_label="🛡️ BLOCKED BY RULE:")
            return True
        if result.success:
            print_result(result)
            click.secho("   The swap succeeded but it should have been blocked.", fg="yellow")
        else:
            print_result(result)
            click.secho("   The swap failed but not due to the expected rule.", fg="yellow")
        return False

    def step4_set_rate_limit(self) -> None:
        print_header("Step 4: Rate Limiting with Hourly Spend Limits", (
            f"Let's replace the transaction limit with a ${RATE_LIMIT} per hour spend limit."
        ))
        self._apply_rules(
            SpendRules(rate_limit=RATE_LIMIT, rate_limit_window_seconds=3600),
            f"${RATE_LIMIT}/hour rate limit",
        )

    def step5_test_rate_limit(self) -> bool:
        expected_total = self.total_spent + TUTORIAL_SWAP_AMOUNT
        print_header("Step 5: Testing the Hourly Rate Limit", (
            f"You already spent ${self.total_spent}, so this brings your total to "
            f"${expected_total} for this hour, still within your ${RATE_LIMIT} limit."
        ))
        result = self._run_command(f"This should work (${expected_total} is under ${RATE_LIMIT}/hour).")
        print_result(result)
        if result.success:
            self.total_spent = expected_total
            click.echo(f"\nCurrent hourly spending: ${self.total_spent} out of your ${RATE_LIMIT} budget")
            return True
        click.secho("   The swap should have succeeded. Please check your rules.", fg="yellow")
        return False

    def step6_trigger_rate_limit(self) -> bool:
        expected_total = self.total_spent + TUTORIAL_SWAP_AMOUNT
        print_header("Step 6: Triggering the Rate Limit", (
            f"Another swap would bring you to ${expected_total}, which exceeds "
            f"your ${RATE_LIMIT}/hour limit. It should be blocked."
        ))
        result = self._run_command(f"This should be BLOCKED (${expected_total} exceeds ${RATE_LIMIT}/hour).")
        if not result.success and contains_any(result.message, RATE_LIMIT_PHRASES):
            print_result(result, failure_label="🛡️ RATE LIMIT HIT:")
            return True
        print_result(result)
        if result.success:
            click.secho("   The swap succeeded. Please check your rule configuration.", fg="yellow")
        return False

    def run(self) -> None:
        while not self.step1_initial_swap():
            if not click.confirm("Would you like to try Step 1 again?", default=True):
                click.secho("\nTutorial ended. Come back anytime!", fg="blue")
                return

        self.step2_set_transaction_limit()
        if not self._retry(self.step3_test_transaction_limit):
            return

        self.step4_set_rate_limit()
        if not self._retry(self.step5_test_rate_limit):
            return

        self.step6_trigger_rate_limit()
        click.secho("\n🎉 CONGRATULATIONS! Tutorial Complete!", fg="cyan")

        if click.confirm("Practice more with free-form swaps?", default=False):
            click.secho("\n=== Free Practice Mode ===", fg="cyan")
            click.secho(f"Type {EXIT_COMMAND} to quit\n", fg="bright_black")
            chat_loop(self.base_url, "Enter your swap command:", self.client)
        else:
            click.secho("\nThanks for trying the swap agents! Goodbye! 👋", fg="blue")

    @staticmethod
    def _retry(step) -> bool:
        """Runs `step` until it passes or is skipped; False means exit."""
        while not step():
            action = click.prompt(
                "What would you like to do?",
                type=click.Choice(["retry", "skip", "exit"]),
                default="retry",
            )
            if action == "exit":
                click.secho("\nTutorial ended. Come back anytime!", fg="blue")
                return False
            if action == "skip":
                return True
        return True


def _require_agents(base_url: str) -> None:
    click.secho("🔍 Checking system status...", fg="bright_black")
    if not check_agents_available(base_url):
        click.secho("\n❌ Swap agents are not running!", fg="red")
        click.echo("Start them in another terminal with: swap-agents serve\n")
        sys.exit(1)
    click.secho("✅ Swap agents are running and ready!", fg="green")


@click.group()
@click.option("--verbose", is_flag=True, help="Log at DEBUG level")
def main(verbose: bool):
    """Swap agents: two agents negotiating and settling a USDC swap."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
def serve():
    """Start the swap user and swap service agents."""
    config = load_config()
    click.echo(f"🤖 Swap user agent:    {config.swap_user_url}")
    click.echo(f"🤖 Swap service agent: {config.swap_service_url}")
    click.echo(f"💱 Pair: {config.settlement.pair}")
    click.echo(f"🛡️ Spend rules file: {config.spend_rules_path}")
    asyncio.run(serve_agents(config))


@main.command()
def demo():
    """Free-form chat with the swap user agent."""
    config = load_config()
    symbol = config.settlement.pair.split("/")[0]
    _require_agents(config.swap_user_url)
    click.secho(f"\n=== USDC to {symbol} Swap Demo (CLI) ===", fg="cyan")
    click.secho(f"Current rate: {config.settlement.pair} price from Pyth Network", fg="bright_black")
    click.secho(f"Type {EXIT_COMMAND} to quit\n", fg="bright_black")
    chat_loop(config.swap_user_url, f"Enter your request (e.g., 'swap 25 USDC for {symbol}'):")


@main.command()
@click.option("--skip-tutorial", is_flag=True, envvar="SKIP_TUTORIAL", help="Go straight to free-form mode")
@click.pass_context
def tutorial(ctx: click.Context, skip_tutorial: bool):
    """Interactive spend-rules tutorial."""
    if skip_tutorial:
        ctx.invoke(demo)
        return

    config = load_config()
    if not config.spend_rules_path:
        raise click.UsageError("SPEND_RULES_PATH must point at the rules file the agents read")

    click.secho("\n" + "=" * 60, fg="cyan")
    click.secho("       🎓 Swap Agent Demo - Spend Rules Tutorial", fg="cyan")
    click.secho("=" * 60, fg="cyan")
    _require_agents(config.swap_user_url)
    click.pause("Press any key to start the tutorial...")

    SwapTutorial(
        config.swap_user_url,
        config.spend_rules_path,
        symbol=config.settlement.pair.split("/")[0],
    ).run()


if __name__ == "__main__":
    main()
