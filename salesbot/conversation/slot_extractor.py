"""
Keyword/regex slot extraction for Taglish buyer messages.

Each concern is an ordered rule table. Tables marked "last match wins" let
every matching rule overwrite the previous one; tables marked "first match
wins" stop at the first hit. The ordering is part of the contract:

    "cash pero financing sana" -> plan=financing
    "automatic or manual"      -> transmission=manual
    "auto manual any"          -> transmission=any
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from salesbot.schemas.session_schema import Plan, Slots, Transmission

logger = logging.getLogger(__name__)

RESTART_COMMANDS = frozenset({"restart", "/restart"})

# Last match wins.
PLAN_RULES: list[tuple[re.Pattern, Plan]] = [
    (re.compile(r"\bcash\b|\bspot\s*cash\b|\bfull\s*payment\b|\bstraight\b"), Plan.CASH),
    (re.compile(r"\bfinanc\w*|\ball[\s-]?in\b|\bhulog\w*"), Plan.FINANCING),
]

# Last match wins.
TRANSMISSION_RULES: list[tuple[re.Pattern, Transmission]] = [
    (re.compile(r"\bautomatic\b|\ba/t\b|\bauto\b"), Transmission.AUTOMATIC),
    (re.compile(r"\bmanual\b|\bm/t\b|\bstick\b"), Transmission.MANUAL),
    (re.compile(r"\bany\b"), Transmission.ANY),
]

# First match wins, in table order.
BODY_TYPE_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\bsedans?\b"), "sedan"),
    (re.compile(r"\bsuvs?\b"), "suv"),
    (re.compile(r"\bmpvs?\b"), "mpv"),
    (re.compile(r"\bvans?\b"), "van"),
    (re.compile(r"\bpick[\s-]?ups?\b"), "pickup"),
    (re.compile(r"\bauvs?\b"), "auv"),
    (re.compile(r"\bhatch(?:back)?s?\b"), "hatchback"),
    (re.compile(r"\bcrossovers?\b"), "crossover"),
]

LOCATIONS = [
    "quezon city", "qc", "metro manila", "manila", "makati", "pasig", "taguig",
    "valenzuela", "caloocan", "mandaluyong", "pasay", "marikina", "muntinlupa",
    "parañaque", "paranaque", "cavite", "laguna", "batangas", "rizal", "bulacan",
    "pampanga", "cebu", "davao", "iloilo", "bacolod", "cagayan de oro", "ncr",
]

# First match in the message wins.
LOCATION_RE = re.compile(r"\b(" + "|".join(re.escape(loc) for loc in LOCATIONS) + r")\b")

BRANDS = [
    "toyota", "mitsubishi", "honda", "nissan", "hyundai", "kia", "suzuki", "ford",
    "chevrolet", "isuzu", "mazda", "mg", "geely", "subaru", "bmw", "mercedes",
    "audi", "porsche", "changan", "gac",
]

COMMON_MODELS = [
    "vios", "mirage", "city", "civic", "altis", "innova", "fortuner", "everest",
    "raize", "wigo", "brv", "br-v", "xtrail", "almera", "terra", "xpander",
    "stargazer", "yaris", "jazz", "accent", "elantra", "picanto", "rio",
    "soluto", "sportage", "seltos", "ertiga", "jimny", "swift",
]

VARIANT_RE = re.compile(
    r"\b(glx|gls|ge|xe|vx|rs|sport|trend|titanium|premium|xlt|highline)\b"
)

BRAND_RE = re.compile(r"\b(" + "|".join(BRANDS) + r")\b")
MODEL_RE = re.compile(r"\b(" + "|".join(re.escape(m) for m in COMMON_MODELS) + r")\b")
YEAR_RE = re.compile(r"\b(19\d{2}|20\d{2})\b")

# A 3-7 digit amount not glued to other digits, optionally followed by k.
BUDGET_RE = re.compile(r"(?<!\d)(\d{3,7})(?:\s*(k))?(?![\da-z])")
# "650 000" is one amount.
SPACED_THOUSANDS_RE = re.compile(r"(?<![\d.])\d{1,3}(?: \d{3})+(?!\d)")
MOBILE_IN_TEXT_RE = re.compile(r"(?:\+?63[\s-]?|\b0)9\d{2}[\s-]?\d{3}[\s-]?\d{4}\b")

# Words that can follow a brand without being a model name.
_NON_MODEL_WORDS = frozenset(
    {"any", "auto", "automatic", "manual", "cash", "financing", "pickup", "van"}
    | {rule[1] for rule in BODY_TYPE_RULES}
    | set(LOCATIONS)
)


@dataclass
class ParsedMessage:
    """Result of parsing one message: a partial slot set plus command flags."""
    slots: Slots = field(default_factory=Slots)
    restart: bool = False

    def has_slots(self) -> bool:
        return bool(self.slots.filled())


def _last_match(text: str, rules: list[tuple[re.Pattern, object]]):
    value = None
    for pattern, result in rules:
        if pattern.search(text):
            value = result
    return value


def _first_match(text: str, rules: list[tuple[re.Pattern, object]]):
    for pattern, result in rules:
        if pattern.search(text):
            return result
    return None


def extract_budget(text: str) -> Optional[int]:
    """First 3-7 digit amount in the message, with k meaning thousands.

    Bare numbers that look like model years are skipped so "2018 vios"
    does not become a budget.

    Examples:
        >>> extract_budget("cash 500k qc")
        500000
        >>> extract_budget("₱650,000 po")
        650000
        >>> extract_budget("cash 500 k")
        500000
    """
    cleaned = MOBILE_IN_TEXT_RE.sub(" ", text)
    cleaned = re.sub(r"[,₱]|\bphp\b", "", cleaned)
    cleaned = SPACED_THOUSANDS_RE.sub(lambda m: m.group(0).replace(" ", ""), cleaned)
    for match in BUDGET_RE.finditer(cleaned):
        amount = int(match.group(1))
        if match.group(2):
            return amount * 1000
        if YEAR_RE.fullmatch(match.group(1)):
            continue
        return amount
    return None


def _extract_model(text: str, brand: Optional[str]) -> Optional[str]:
    if brand:
        after = re.search(rf"\b{brand}\s+([a-z0-9-]+)\b", text)
        if after:
            token = after.group(1)
            if token not in _NON_MODEL_WORDS and not token.isdigit():
                return token
    match = MODEL_RE.search(text)
    return match.group(1) if match else None


def parse_message(raw: Optional[str]) -> ParsedMessage:
    """Parse raw user text into a partial slot set.

    Stateless. A restart command short-circuits every other rule.
    """
    text = (raw or "").strip().lower()
    if not text:
        return ParsedMessage()

    if text in RESTART_COMMANDS:
        return ParsedMessage(restart=True)

    slots = Slots()
    slots.plan = _last_match(text, PLAN_RULES)
    slots.transmission = _last_match(text, TRANSMISSION_RULES)
    slots.body_type = _first_match(text, BODY_TYPE_RULES)

    location = LOCATION_RE.search(text)
    if location:
        slots.location = location.group(1)

    slots.budget = extract_budget(text)

    year = YEAR_RE.search(text)
    if year:
        slots.year_pref = year.group(1)

    brand = BRAND_RE.search(text)
    if brand:
        slots.brand_pref = brand.group(1)
    slots.model_pref = _extract_model(LOCATION_RE.sub(" ", text), slots.brand_pref)

    variant = VARIANT_RE.search(text)
    if variant:
        slots.variant_pref = variant.group(1)

    parsed = ParsedMessage(slots=slots)
    if parsed.has_slots():
        logger.debug("Extracted slots: %s", slots.filled())
    return parsed
