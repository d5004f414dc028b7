"""
Messenger sales agent entry point.

Builds the bot from configured integrations. The webhook transport imports
``build_bot()`` and calls ``SalesBot.handle_event`` per inbound message; the
external cron runs the nudge sweep through this script.

Usage:
    Nudge sweep:  python main.py nudge
    Console mode: python main.py console [--scenario cash|financing|interrupts]
"""

import asyncio
import logging
import os
import sys

from salesbot.bot import SalesBot
from salesbot.config import settings
from salesbot.conversation.nudges import NudgeScheduler
from salesbot.tools.inventory import CachedInventory, HttpInventorySource
from salesbot.tools.messenger import GraphMessengerSender
from salesbot.tools.session_store import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionRepository,
)
from salesbot.tools.text_generator import NullTextGenerator, OpenAITextGenerator

logger = logging.getLogger(__name__)


def _build_repository() -> SessionRepository:
    url = settings.integrations.redis_url
    if url:
        return SessionRepository(RedisSessionStore.from_url(url))
    logger.warning("REDIS_URL not set; sessions are kept in process memory only")
    return SessionRepository(InMemorySessionStore())


def _build_generator():
    if os.getenv("OPENAI_API_KEY"):
        return OpenAITextGenerator()
    logger.warning("OPENAI_API_KEY not set; all replies use fixed copy")
    return NullTextGenerator()


def build_bot() -> SalesBot:
    """Production wiring: HTTP inventory, Graph API delivery, Redis sessions."""
    return SalesBot(
        repository=_build_repository(),
        inventory=CachedInventory(HttpInventorySource()),
        sender=GraphMessengerSender(),
        generator=_build_generator(),
    )


async def _run_nudge_sweep() -> None:
    sender = GraphMessengerSender()
    try:
        scheduler = NudgeScheduler(_build_repository(), sender, _build_generator())
        report = await scheduler.sweep()
        logger.info("Nudge sweep finished: %s", report)
    finally:
        await sender.aclose()


def _run_console_mode(argv: list[str]) -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import main as console_main

    console_main(argv)


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode(sys.argv[2:])
    elif len(sys.argv) > 1 and sys.argv[1] == "nudge":
        asyncio.run(_run_nudge_sweep())
    else:
        print(__doc__)
        sys.exit(1)
