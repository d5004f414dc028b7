"""Per-user conversation session record and its parts."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from salesbot.schemas.inventory_schema import InventoryUnit


class Phase(str, Enum):
    """Conversation phases, in forward order."""
    P1 = "p1"
    P1_PENDING = "p1_pending"
    P2_PENDING = "p2_pending"
    P2_PICK = "p2_pick"
    P3_CASH = "p3_cash"
    P3_FIN = "p3_fin"
    DONE_CASH = "done_cash"
    DONE_FIN = "done_fin"


TERMINAL_PHASES = frozenset({Phase.DONE_CASH, Phase.DONE_FIN})


class Plan(str, Enum):
    CASH = "cash"
    FINANCING = "financing"


class Transmission(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    ANY = "any"


class IncomeSource(str, Enum):
    EMPLOYED = "employed"
    BUSINESS = "business"
    OFW = "ofw"
    PENSION = "pension"
    OTHER = "other"


class Slots(BaseModel):
    """Qualification answers. Preference fields only feed the scorer."""

    model_config = ConfigDict(protected_namespaces=())

    plan: Optional[Plan] = None
    budget: Optional[int] = None
    location: Optional[str] = None
    body_type: Optional[str] = None
    transmission: Optional[Transmission] = None
    brand_pref: Optional[str] = None
    model_pref: Optional[str] = None
    year_pref: Optional[str] = None
    variant_pref: Optional[str] = None

    def filled(self) -> dict:
        """Only the fields that hold a value."""
        return {k: v for k, v in self.model_dump().items() if v is not None}

    def merge(self, parsed: "Slots") -> list[str]:
        """Copy every non-null field of ``parsed`` onto self.

        Existing values are never cleared. Returns the names whose value
        actually changed.
        """
        changed = []
        for name, value in parsed.filled().items():
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed.append(name)
        return changed


class Contact(BaseModel):
    mobile: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.mobile and self.full_name)


class Schedule(BaseModel):
    when: Optional[str] = None
    confirmed: bool = False


class Picks(BaseModel):
    """Ranked candidate ids; ``shown`` and ``backup`` partition the list."""

    model_config = ConfigDict(populate_by_name=True)

    ranked: list[str] = Field(default_factory=list, alias="list")
    shown: list[str] = Field(default_factory=list)
    backup: list[str] = Field(default_factory=list)

    @classmethod
    def from_ids(cls, unit_ids: list[str], limit: int = 4, shown_count: int = 2) -> "Picks":
        ranked = list(unit_ids[:limit])
        return cls(
            ranked=ranked,
            shown=ranked[:shown_count],
            backup=ranked[shown_count:],
        )


class Chosen(BaseModel):
    unit_id: str
    unit: InventoryUnit


class FinancingState(BaseModel):
    income_source: Optional[IncomeSource] = None
    term: Optional[int] = None
    docs_awaiting: bool = False
    docs_asked_at: Optional[float] = None
    docs_received_at: Optional[float] = None
    lines_shown: bool = False


class NudgeState(BaseModel):
    last_ts: Optional[float] = None
    count: int = 0


class Session(BaseModel):
    """Everything the agent remembers about one Messenger user."""

    id: str
    created_at: float
    updated_at: float
    last_user_at: Optional[float] = None
    phase: Phase = Phase.P1
    slots: Slots = Field(default_factory=Slots)
    contact: Contact = Field(default_factory=Contact)
    schedule: Schedule = Field(default_factory=Schedule)
    picks: Picks = Field(default_factory=Picks)
    chosen: Optional[Chosen] = None
    financing: Optional[FinancingState] = None
    last_asked: Optional[str] = None
    last_prompt_at: Optional[float] = None
    address_revealed: bool = False
    nudge: NudgeState = Field(default_factory=NudgeState)
    is_welcomed: bool = False
    is_returning: bool = False

    @classmethod
    def new(cls, user_id: str, now: float, is_returning: bool = False) -> "Session":
        return cls(id=user_id, created_at=now, updated_at=now, is_returning=is_returning)

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.updated_at > ttl_seconds

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def to_record(self) -> dict:
        """Flat JSON-compatible dict for the session store."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict) -> "Session":
        return cls.model_validate(record)
