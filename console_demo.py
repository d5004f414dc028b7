"""
Offline console demo: runs a full Messenger sales conversation without any
API keys.

Uses the real router, qualifier, matcher and flows against a small static
inventory and an in-memory session store. No LLM, no Graph API, no network.

Usage:
    python console_demo.py
    python console_demo.py --scenario cash
    python console_demo.py --scenario financing
    python console_demo.py --scenario interrupts
"""

import argparse
import asyncio
import sys
from typing import Optional

from salesbot.bot import SalesBot
from salesbot.config import settings
from salesbot.schemas.event_schema import Attachment, InboundEvent
from salesbot.schemas.inventory_schema import InventoryUnit
from salesbot.tools.inventory import CachedInventory, StaticInventorySource
from salesbot.tools.session_store import InMemorySessionStore, SessionRepository
from salesbot.tools.text_generator import NullTextGenerator

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

CONSOLE_USER_ID = "console-user"

SAMPLE_INVENTORY: list[dict] = [
    {
        "SKU": "VIOS-2019-A", "brand": "Toyota", "model": "Vios", "variant": "1.3 E",
        "year": 2019, "body_type": "Sedan", "transmission": "Automatic", "mileage": 42000,
        "srp": "₱548,000", "all_in": "98,000", "2yrs": "24,800", "3yrs": "18,200",
        "4yrs": "15,100", "price_status": "Priority", "city": "Quezon City",
        "province": "Metro Manila", "complete_address": "12 Mother Ignacia Ave, Quezon City",
        "image_1": "https://example.com/vios-1.jpg", "image_2": "https://example.com/vios-2.jpg",
    },
    {
        "SKU": "CITY-2018-B", "brand": "Honda", "model": "City", "variant": "VX",
        "year": 2018, "body_type": "Sedan", "transmission": "A/T", "mileage": 28000,
        "srp": "520000", "all_in": "95000", "2yrs": "23900", "3yrs": "17600",
        "price_status": "OK to market", "city": "Pasig", "province": "Metro Manila",
        "complete_address": "88 Ortigas Ave Ext, Pasig",
        "image_1": "https://example.com/city-1.jpg",
    },
    {
        "SKU": "ALMERA-2020-C", "brand": "Nissan", "model": "Almera", "variant": "VE",
        "year": 2020, "body_type": "Sedan", "transmission": "Automatic", "mileage": 19000,
        "srp": "585000", "all_in": "105000", "3yrs": "19400", "4yrs": "16000",
        "price_status": "", "city": "Makati", "province": "Metro Manila",
        "complete_address": "", "image_1": "https://example.com/almera-1.jpg",
    },
    {
        "SKU": "MIRAGE-2017-D", "brand": "Mitsubishi", "model": "Mirage G4", "variant": "GLX",
        "year": 2017, "body_type": "Sedan", "transmission": "Manual", "mileage": 61000,
        "srp": "365000", "all_in": "68000", "2yrs": "17800", "3yrs": "13100",
        "price_status": "Priority", "city": "Caloocan", "province": "Metro Manila",
        "complete_address": "201 Rizal Ave Ext, Caloocan",
    },
    {
        "SKU": "INNOVA-2019-E", "brand": "Toyota", "model": "Innova", "variant": "2.8 E",
        "year": 2019, "body_type": "MPV", "transmission": "Automatic", "mileage": 55000,
        "srp": "1050000", "all_in": "185000", "2yrs": "46500", "3yrs": "34200",
        "4yrs": "28300", "price_status": "Priority", "city": "Bacoor", "province": "Cavite",
        "complete_address": "Aguinaldo Hwy, Bacoor, Cavite",
        "image_1": "https://example.com/innova-1.jpg",
    },
]


class ConsoleSender:
    """Prints outbound messages instead of calling the Send API."""

    async def send_text(self, user_id: str, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.business.name}]{RESET} {GREEN}{text}{RESET}")

    async def send_image(self, user_id: str, url: str) -> None:
        print(f"{YELLOW}  [image] {url}{RESET}")

    async def send_typing(self, user_id: str, on: bool) -> None:
        pass


class ConsoleSession:
    """Plays one buyer's conversation in the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "cash": [
            "hi",
            "cash 550k qc sedan automatic",
            "others",
            "1",
            "bukas 10am",
            "0917 123 4567",
            "Juan Dela Cruz",
            "salamat!",
        ],
        "financing": [
            "hello po",
            "financing",
            "pasig",
            "sedan",
            "any",
            "2",
            "Saturday 2pm",
            "09171234567",
            "Maria Santos",
            "employed ako",
            "5",
            "3",
            "[docs]",
        ],
        "interrupts": [
            "legit ba kayo?",
            "cash",
            "pwede ba trade in?",
            "900k cavite mpv auto",
            "saan address nyo?",
            "restart",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self) -> None:
        self.repository = SessionRepository(InMemorySessionStore())
        self.bot = SalesBot(
            repository=self.repository,
            inventory=CachedInventory(StaticInventorySource(
                [InventoryUnit.model_validate(row) for row in SAMPLE_INVENTORY]
            )),
            sender=ConsoleSender(),
            generator=NullTextGenerator(),
        )

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _event(self, text: str) -> InboundEvent:
        # "[docs]" stands in for a photo upload.
        if text.strip() == "[docs]":
            return InboundEvent(user_id=CONSOLE_USER_ID, attachments=[Attachment(type="image")])
        return InboundEvent(user_id=CONSOLE_USER_ID, text=text)

    async def _process_input(self, text: str) -> None:
        result = await self.bot.handle_event(self._event(text))
        if not result.ok:
            self.system_log(f"{RED}Turn failed: {result.error}{RESET}")
        self.system_log(f"Phase: {result.phase}")

    async def _print_summary(self) -> None:
        session = await self.repository.peek(CONSOLE_USER_ID)
        if session is None:
            return
        self.system_log(f"Slots: {session.slots.filled()}")
        self.system_log(f"Picks: {session.picks.ranked}")
        self.system_log(f"Contact: {session.contact.model_dump()}")

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  MESSENGER SALES AGENT - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        for step in steps:
            print(f"\n{BLUE}[Buyer] {RESET}{step}")
            await self._process_input(step)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        await self._print_summary()
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def run(self) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  MESSENGER SALES AGENT - Console Demo{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")
        print(f"{BOLD}  Type 'quit' to exit, '[docs]' to send a photo{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        while True:
            user_input = input(f"\n{BLUE}[Buyer] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                await self._print_summary()
                return
            if len(user_input) > self.MAX_INPUT_LENGTH:
                print(f"{RED}Message too long, keep it under {self.MAX_INPUT_LENGTH} characters.{RESET}")
                continue
            await self._process_input(user_input)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Messenger Sales Agent - Console Demo")
    parser.add_argument(
        "--scenario",
        choices=list(ConsoleSession.SCENARIOS),
        help="Auto-play a pre-scripted scenario",
    )
    args = parser.parse_args(argv)

    session = ConsoleSession()
    try:
        if args.scenario:
            asyncio.run(session.run_scenario(args.scenario))
        else:
            asyncio.run(session.run())
    except (KeyboardInterrupt, EOFError):
        print(f"\n{DIM}Session ended.{RESET}")
        sys.exit(0)


if __name__ == "__main__":
    main()
