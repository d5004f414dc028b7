"""Shared test fixtures and helpers."""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from salesbot.flows.offers import OfferPresenter
from salesbot.flows.router import ConversationRouter
from salesbot.schemas.inventory_schema import InventoryUnit
from salesbot.schemas.session_schema import Chosen, Phase, Plan, Session, Slots, Transmission
from salesbot.tools.inventory import CachedInventory, InventoryFetchError, StaticInventorySource
from salesbot.tools.session_store import InMemorySessionStore, SessionRepository
from salesbot.tools.text_generator import NullTextGenerator

MANILA = ZoneInfo("Asia/Manila")


def manila_ts(hour: int, minute: int = 0, day: int = 15) -> float:
    """Epoch seconds for a wall-clock time in Manila on a fixed March 2025 day."""
    return datetime(2025, 3, day, hour, minute, tzinfo=MANILA).timestamp()


MORNING = manila_ts(10)

SAMPLE_ROWS: list[dict] = [
    {
        "SKU": "VIOS-19", "brand": "Toyota", "model": "Vios", "variant": "1.3 E",
        "year": 2019, "body_type": "Sedan", "transmission": "Automatic", "mileage": 42000,
        "srp": "₱520,000", "all_in": "98,000", "2yrs": "24,800", "3yrs": "18,200",
        "4yrs": "15,100", "price_status": "Priority", "city": "Quezon City",
        "province": "Metro Manila", "complete_address": "12 Mother Ignacia Ave, Quezon City",
        "image_1": "https://img.example.com/vios-1.jpg",
        "image_2": "https://img.example.com/vios-2.jpg",
    },
    {
        "SKU": "CITY-18", "brand": "Honda", "model": "City", "variant": "VX",
        "year": 2018, "body_type": "Sedan", "transmission": "A/T", "mileage": 28000,
        "srp": 480000, "all_in": 95000, "3yrs": 17600, "price_status": "OK to market",
        "city": "Pasig", "province": "Metro Manila",
        "complete_address": "88 Ortigas Ave Ext, Pasig",
        "image_1": "https://img.example.com/city-1.jpg",
    },
    {
        "SKU": "ALMERA-20", "brand": "Nissan", "model": "Almera", "variant": "VE",
        "year": 2020, "body_type": "Sedan", "transmission": "Automatic", "mileage": 19000,
        "srp": "650000", "all_in": "105000", "price_status": "", "city": "Makati",
        "province": "Metro Manila", "complete_address": "",
        "image_1": "https://img.example.com/almera-1.jpg",
    },
    {
        "SKU": "MIRAGE-17", "brand": "Mitsubishi", "model": "Mirage G4", "variant": "GLX",
        "year": 2017, "body_type": "Sedan", "transmission": "Manual", "mileage": 61000,
        "srp": "365000", "all_in": "68000", "price_status": "Priority",
        "city": "Caloocan", "province": "Metro Manila",
        "complete_address": "201 Rizal Ave Ext, Caloocan",
    },
    {
        "SKU": "INNOVA-19", "brand": "Toyota", "model": "Innova", "variant": "2.8 E",
        "year": 2019, "body_type": "MPV", "transmission": "Automatic", "mileage": 55000,
        "srp": "1050000", "all_in": "185000", "price_status": "Priority",
        "city": "Bacoor", "province": "Cavite", "complete_address": "Aguinaldo Hwy, Bacoor",
        "image_1": "https://img.example.com/innova-1.jpg",
    },
]


def make_unit(**overrides) -> InventoryUnit:
    """Helper to create an InventoryUnit with sensible defaults."""
    row = {
        "SKU": "UNIT-1", "brand": "Toyota", "model": "Vios", "variant": "XE", "year": "2019",
        "body_type": "Sedan", "transmission": "Automatic", "mileage": "50000",
        "srp": "500000", "all_in": "90000", "price_status": "", "city": "Pasig",
        "province": "Metro Manila", "complete_address": "1 Test St, Pasig",
    }
    row.update(overrides)
    return InventoryUnit.model_validate(row)


def cash_slots(**overrides) -> Slots:
    """Fully qualified cash buyer: 500k, QC, sedan, automatic."""
    values = dict(
        plan=Plan.CASH, budget=500000, location="qc",
        body_type="sedan", transmission=Transmission.AUTOMATIC,
    )
    values.update(overrides)
    return Slots(**values)


def make_session(
    user_id: str = "PSID-1",
    now: float = MORNING,
    phase: Phase = Phase.P1,
    slots: Optional[Slots] = None,
    welcomed: bool = True,
) -> Session:
    session = Session.new(user_id, now)
    session.phase = phase
    session.is_welcomed = welcomed
    if slots is not None:
        session.slots = slots
    return session


def chosen_session(
    unit: InventoryUnit,
    plan: Plan = Plan.CASH,
    now: float = MORNING,
) -> Session:
    """Session that has just picked ``unit`` and entered the post-selection flow."""
    phase = Phase.P3_FIN if plan == Plan.FINANCING else Phase.P3_CASH
    session = make_session(now=now, phase=phase, slots=cash_slots(plan=plan))
    session.chosen = Chosen(unit_id=unit.unit_id, unit=unit)
    return session


class RecordingSender:
    """MessageSender that records every call in order."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    async def send_text(self, user_id: str, text: str) -> None:
        self.calls.append(("text", user_id, text))

    async def send_image(self, user_id: str, url: str) -> None:
        self.calls.append(("image", user_id, url))

    async def send_typing(self, user_id: str, on: bool) -> None:
        self.calls.append(("typing", user_id, on))

    @property
    def texts(self) -> list[str]:
        return [call[2] for call in self.calls if call[0] == "text"]


class ScriptedTextGenerator:
    """TextGenerator returning a fixed reply, or raising when given an error."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: list[tuple[str, str, float]] = []

    async def generate(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        self.prompts.append((system_prompt, user_prompt, temperature))
        if self.error is not None:
            raise self.error
        return self.reply


class FlakyInventorySource:
    """Fails the first ``failures`` fetches, then serves the given units."""

    def __init__(self, units: list[InventoryUnit], failures: int = 1) -> None:
        self._units = units
        self.failures = failures

    async def fetch_all(self) -> list[InventoryUnit]:
        if self.failures > 0:
            self.failures -= 1
            raise InventoryFetchError("sheet API timed out")
        return list(self._units)


class FakeClock:
    """Settable clock for components that take a ``clock`` callable."""

    def __init__(self, now: float = MORNING) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sample_units() -> list[InventoryUnit]:
    return [InventoryUnit.model_validate(row) for row in SAMPLE_ROWS]


@pytest.fixture
def static_source(sample_units):
    return StaticInventorySource(sample_units)


@pytest.fixture
def inventory(static_source):
    return CachedInventory(static_source, ttl_seconds=60)


@pytest.fixture
def presenter(inventory):
    return OfferPresenter(inventory, NullTextGenerator())


@pytest.fixture
def router(presenter):
    return ConversationRouter(presenter)


@pytest.fixture
def repository():
    return SessionRepository(InMemorySessionStore(), ttl_seconds=7 * 86400)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def clock():
    return FakeClock()
