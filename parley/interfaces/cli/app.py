"""Parley command-line interface.

Commands:
    ask: Answer a message through the full memory-augmented pipeline
    route: Send a prompt straight to the router, without memory
    remember: Extract facts from text (or store it verbatim) in long-term memory
    search: Search long-term memory
    backends: Show configured backends and fallback chains

Usage:
    parley ask "qual linguagem eu prefiro?" --conversation demo
    parley route "Explain TCP slow start" --tier medium
    parley remember "I love TypeScript and hate PHP" --source whatsapp
    parley search typescript --limit 5
    parley backends
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Awaitable, Callable, Optional, TypeVar

import click

from parley import __version__
from parley.backends.base import GenerationRequest
from parley.config.settings import BACKEND_NAMES, get_settings
from parley.container import ParleyContainer, create_container
from parley.core.exceptions import ParleyError
from parley.memory.rag import RagRequestContext
from parley.memory.schemas import MemoryCategory, MemorySource
from parley.routing.chains import FallbackChain
from parley.routing.complexity import ComplexityTier
from parley.telemetry.logging import setup_logging
from parley.training.schemas import TrainingDataSource

logger = logging.getLogger(__name__)

T = TypeVar("T")

TIER_CHOICES = [tier.value for tier in ComplexityTier]
SOURCE_CHOICES = [source.value for source in MemorySource]
CATEGORY_CHOICES = [category.value for category in MemoryCategory]
CHANNEL_CHOICES = [source.value for source in TrainingDataSource]

COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
}


def colorize(text: str, color: str) -> str:
    """Apply ANSI color when writing to a terminal."""
    if not sys.stdout.isatty():
        return text
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


def _run(ctx: click.Context, work: Callable[[ParleyContainer], Awaitable[T]]) -> T:
    """Build a container, run ``work`` with it, and always close it."""
    factory = ctx.obj.get("container_factory", create_container)

    async def runner() -> T:
        container = factory()
        try:
            return await work(container)
        finally:
            await container.aclose()

    try:
        return asyncio.run(runner())
    except ParleyError as e:
        logger.debug("Command failed", exc_info=True)
        click.echo(colorize(f"ERROR: {e}", "red"), err=True)
        raise SystemExit(1)


# =============================================================================
# CLI Group
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="parley")
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, default=False, help="Emit logs as JSON lines")
@click.pass_context
def cli(ctx: click.Context, debug: bool, json_logs: bool) -> None:
    """Parley - routed, memory-augmented replies from local and hosted models."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    settings = get_settings()
    level = "DEBUG" if debug else settings.effective_log_level
    setup_logging(level, json_format=json_logs or settings.log_json)


# =============================================================================
# Commands
# =============================================================================


@cli.command()
@click.argument("message")
@click.option("--conversation", "-c", default="cli", help="Conversation identifier")
@click.option(
    "--source",
    default="internal",
    type=click.Choice(CHANNEL_CHOICES),
    help="Channel the message came from",
)
@click.option("--tier", type=click.Choice(TIER_CHOICES), default=None, help="Force a complexity tier")
@click.option("--show-prompt", is_flag=True, help="Print the composed prompt")
@click.pass_context
def ask(
    ctx: click.Context,
    message: str,
    conversation: str,
    source: str,
    tier: Optional[str],
    show_prompt: bool,
) -> None:
    """Answer MESSAGE with memories and recent context."""

    async def work(container: ParleyContainer) -> Any:
        return await container.orchestrator.respond(
            message,
            RagRequestContext(conversation_id=conversation, source=source, tier=tier),
        )

    response = _run(ctx, work)

    if show_prompt:
        click.echo(colorize(response.composed_prompt, "dim"))
        click.echo()
    click.echo(response.text)
    click.echo()
    outcome = response.outcome
    click.echo(
        colorize(
            f"backend={outcome.backend} model={outcome.model} tier={outcome.tier.value} "
            f"fallback={outcome.fallback_used} memories={len(response.used_memories)} "
            f"latency={outcome.latency_ms}ms",
            "dim",
        )
    )


@cli.command()
@click.argument("prompt")
@click.option("--tier", type=click.Choice(TIER_CHOICES), default=None, help="Force a complexity tier")
@click.option("--system", "system_prompt", default=None, help="System prompt")
@click.option("--temperature", type=float, default=None, help="Sampling temperature")
@click.pass_context
def route(
    ctx: click.Context,
    prompt: str,
    tier: Optional[str],
    system_prompt: Optional[str],
    temperature: Optional[float],
) -> None:
    """Send PROMPT through the fallback chain without memory."""

    async def work(container: ParleyContainer) -> Any:
        return await container.router.route(
            GenerationRequest(prompt=prompt, system_prompt=system_prompt, temperature=temperature),
            tier=tier,
        )

    outcome = _run(ctx, work)
    click.echo(outcome.text)
    click.echo()
    click.echo(
        colorize(
            f"backend={outcome.backend} tier={outcome.tier.value} fallback={outcome.fallback_used}",
            "dim",
        )
    )
    for error in outcome.errors:
        click.echo(colorize(f"  skipped {error}", "yellow"))


@cli.command()
@click.argument("text")
@click.option("--source", default="internal", type=click.Choice(SOURCE_CHOICES), help="Memory source")
@click.option("--category", type=click.Choice(CATEGORY_CHOICES), default=None, help="Category")
@click.option("--raw", is_flag=True, help="Store TEXT verbatim instead of extracting facts")
@click.pass_context
def remember(
    ctx: click.Context,
    text: str,
    source: str,
    category: Optional[str],
    raw: bool,
) -> None:
    """Store facts from TEXT in long-term memory."""

    async def work(container: ParleyContainer) -> Any:
        if raw:
            return [
                await container.memory.save_raw(text, source, category or MemoryCategory.GENERAL)
            ]
        return await container.memory.remember(text, source, category)

    memories = _run(ctx, work)
    if not memories:
        click.echo(colorize("No facts worth remembering.", "yellow"))
        return
    for memory in memories:
        click.echo(f"{colorize(f'#{memory.id}', 'green')} [{memory.category.value}] {memory.content}")


@cli.command()
@click.argument("query")
@click.option("--limit", "-n", default=10, show_default=True, help="Maximum results")
@click.pass_context
def search(ctx: click.Context, query: str, limit: int) -> None:
    """Search long-term memory for QUERY."""

    async def work(container: ParleyContainer) -> Any:
        return await container.memory.search(query, limit)

    memories = _run(ctx, work)
    if not memories:
        click.echo(colorize("No memories found.", "yellow"))
        return
    for memory in memories:
        click.echo(
            f"{colorize(f'#{memory.id}', 'green')} [{memory.category.value}] {memory.content} "
            + colorize(f"(accessed {memory.access_count}x)", "dim")
        )


@cli.command()
def backends() -> None:
    """Show which backends are configured and each tier's chain."""
    settings = get_settings()
    configured = set(settings.configured_backends())

    click.echo(colorize("BACKENDS", "cyan"))
    for name in BACKEND_NAMES:
        status = colorize("configured", "green") if name in configured else colorize("missing", "red")
        click.echo(f"  {name:<10} {status}")
    click.echo()

    chains = FallbackChain.from_settings(settings.routing)
    title = "CHAINS (force-local)" if settings.routing.force_local else "CHAINS"
    click.echo(colorize(title, "cyan"))
    for tier in ComplexityTier:
        click.echo(f"  {tier.value:<8} {' -> '.join(chains.for_tier(tier)) or '(empty)'}")


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
