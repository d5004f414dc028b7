"""
Qualification stage: collect plan, budget, location, body type and
transmission before any inventory is offered.

Required slots are asked in a fixed priority order. Financing buyers are not
asked for a budget here; that is settled after a unit is chosen.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from salesbot.config import settings
from salesbot.conversation.state_machine import PhaseTrigger, advance
from salesbot.prompts import replies
from salesbot.schemas.event_schema import OutboundAction, say
from salesbot.schemas.session_schema import Plan, Session, Slots, Transmission
from salesbot.utils import peso

logger = logging.getLogger(__name__)

REQUIRED_SLOTS = ["plan", "budget", "location", "body_type", "transmission"]

ANY_ANSWER_RE = re.compile(r"\bany\b|\bkahit\s*ano\b|\bkahit\s*alin\b")
FREE_TEXT_LOCATION_RE = re.compile(r"^[a-zñ][a-zñ .'-]{2,39}$")
MAX_PLACE_TOKENS = 4
# Replies made of these are chatter, never a place name.
_NON_PLACE_WORDS = frozenset({
    "ok", "okay", "sige", "hi", "hello", "yes", "yup", "no", "oo", "opo",
    "hindi", "di", "thanks", "salamat", "ty", "hmm", "po", "ba", "pa", "ko",
    "mo", "ka", "na", "lang", "naman", "alam", "ewan", "magkano", "pwede",
    "puwede", "ano", "paano", "bakit", "saan", "kailan", "sino", "wala",
    "meron", "may", "gusto", "sure", "not", "yet", "later", "mamaya",
    "kumusta", "kamusta",
})


def _looks_like_place(text: str) -> bool:
    if not FREE_TEXT_LOCATION_RE.match(text):
        return False
    tokens = text.split()
    if not 1 <= len(tokens) <= MAX_PLACE_TOKENS:
        return False
    return not any(token.strip(".'-") in _NON_PLACE_WORDS for token in tokens)


@dataclass
class QualifierResult:
    """Outcome of one qualification turn."""
    actions: list[OutboundAction] = field(default_factory=list)
    done: bool = False


def next_missing(slots: Slots) -> Optional[str]:
    """First unmet required slot in priority order, or None when complete."""
    if slots.plan is None:
        return "plan"
    if slots.plan == Plan.CASH and slots.budget is None:
        return "budget"
    if not slots.location:
        return "location"
    if not slots.body_type:
        return "body_type"
    if slots.transmission is None:
        return "transmission"
    return None


def should_debounce(session: Session, slot: str, now: float,
                    window: Optional[float] = None) -> bool:
    """Suppress a re-ask of the same slot inside the debounce window.

    Returns True to suppress. Otherwise records (slot, now) as the latest
    prompt and returns False.
    """
    if window is None:
        window = settings.conversation.debounce_seconds
    if (
        session.last_asked == slot
        and session.last_prompt_at is not None
        and now - session.last_prompt_at < window
    ):
        logger.debug("Debounced re-ask of '%s'", slot)
        return True
    session.last_asked = slot
    session.last_prompt_at = now
    return False


def apply_pending_answer(session: Session, text: Optional[str], parsed: Slots) -> None:
    """Read a bare reply as the answer to the question currently pending.

    "any" answers the body type question, and an unknown place name
    answers the location question. Keyword extraction alone misses both.
    """
    t = (text or "").strip().lower()
    if not t:
        return
    pending = next_missing(session.slots)

    if pending == "body_type" and parsed.body_type is None and ANY_ANSWER_RE.search(t):
        parsed.body_type = "any"
        if parsed.transmission == Transmission.ANY:
            parsed.transmission = None
    elif (
        pending == "location"
        and parsed.location is None
        and not parsed.filled()
        and _looks_like_place(t)
    ):
        parsed.location = t


def format_summary(slots: Slots) -> str:
    """Plain-text recap of the collected slots."""
    lines = [replies.SUMMARY_INTRO]
    for name in REQUIRED_SLOTS:
        value = getattr(slots, name)
        if value is None:
            continue
        if name == "budget":
            if slots.plan != Plan.CASH:
                continue
            value = peso(value)
        elif hasattr(value, "value"):
            value = value.value
        lines.append(f"• {replies.SUMMARY_LABELS[name]}: {value}")

    prefs = [slots.brand_pref, slots.model_pref, slots.variant_pref, slots.year_pref]
    wanted = " ".join(p for p in prefs if p)
    if wanted:
        lines.append(f"• Pref: {wanted}")
    return "\n".join(lines)


def qualifier_turn(session: Session, parsed: Slots, now: float) -> QualifierResult:
    """Merge new slot values, greet once, then ask for the next gap or wrap up."""
    result = QualifierResult()

    changed = session.slots.merge(parsed)
    if changed:
        logger.info("Slots updated: %s", changed)

    if not session.is_welcomed:
        greeting = replies.GREET_RETURNING if session.is_returning else replies.GREET_NEW
        result.actions.append(say(greeting))
        session.is_welcomed = True

    missing = next_missing(session.slots)
    if missing is not None:
        if not should_debounce(session, missing, now):
            result.actions.append(say(replies.ASK_SLOT[missing]))
        return result

    result.actions.append(say(format_summary(session.slots)))
    result.actions.append(say(replies.SEARCHING))
    advance(session, PhaseTrigger.QUALIFIED)
    result.done = True
    return result
