"""
Post-selection flow for cash and financing buyers.

Both plans share the same gates: viewing schedule, then mobile, then full
name, then the unit address. Financing continues with income source, the
all-in and monthly figures, the preferred term, and the document checklist.

Each gate blocks until satisfied. One message can satisfy at most one gate,
so a buyer's reply is never read as the answer to two different questions.
"""

import logging
import re
from typing import Optional

from salesbot.config import settings
from salesbot.conversation.state_machine import PhaseTrigger, advance
from salesbot.prompts import replies
from salesbot.schemas.event_schema import OutboundAction, say
from salesbot.schemas.session_schema import (
    FinancingState,
    IncomeSource,
    Phase,
    Session,
)
from salesbot.tools.pricing import FINANCING_TERMS, financing_line, monthly_lines
from salesbot.utils import local_hour, normalize_ph_mobile

logger = logging.getLogger(__name__)

MIN_NAME_TOKENS = 2
MIN_NAME_CHARS = 5

# First match wins.
INCOME_RULES: list[tuple[re.Pattern, IncomeSource]] = [
    (re.compile(r"self[\s-]?employ|business|negosyo|\bbiz\b|freelanc"), IncomeSource.BUSINESS),
    (re.compile(r"\bofw\b|seaman|seafarer|marino|abroad"), IncomeSource.OFW),
    (re.compile(r"pension|retire"), IncomeSource.PENSION),
    (re.compile(r"employ|empleyado|\bwork|trabaho|salary|sahod|office"), IncomeSource.EMPLOYED),
    (re.compile(r"\bother|\biba\b"), IncomeSource.OTHER),
]


def same_day_allowed(now: float) -> bool:
    """No same-day viewings from the afternoon cutoff until early morning."""
    conv = settings.conversation
    hour = local_hour(now, settings.business.timezone)
    return conv.same_day_start_hour <= hour < conv.same_day_cutoff_hour


def schedule_question(now: float) -> str:
    return replies.ASK_SCHEDULE_TODAY if same_day_allowed(now) else replies.ASK_SCHEDULE_NEXT_DAY


def capture_full_name(text: str) -> Optional[str]:
    """Whitespace-collapsed name with at least two tokens and five characters."""
    name = " ".join((text or "").split())
    if len(name.split(" ")) < MIN_NAME_TOKENS or len(name) < MIN_NAME_CHARS:
        return None
    return name


def classify_income(text: str) -> Optional[IncomeSource]:
    t = (text or "").lower()
    for pattern, source in INCOME_RULES:
        if pattern.search(t):
            return source
    return None


def docs_checklist(source: IncomeSource) -> str:
    items = replies.DOCS_CHECKLISTS[source.value]
    lines = [replies.DOCS_CHECKLIST_INTRO.format(label=replies.INCOME_LABELS[source.value])]
    lines.extend(f"{i}. {item}" for i, item in enumerate(items, start=1))
    lines.append("")
    lines.append(replies.DOCS_CHECKLIST_OUTRO)
    return "\n".join(lines)


class PostSelectionFlow:
    """Runs one step of the cash or financing flow for a chosen unit."""

    def step(
        self,
        session: Session,
        text: Optional[str],
        now: float,
        has_documents: bool = False,
    ) -> list[OutboundAction]:
        actions: list[OutboundAction] = []
        reply = (text or "").strip()

        # ---- Viewing schedule ---- #
        if not session.schedule.when:
            if not reply:
                actions.append(say(schedule_question(now)))
                return actions
            session.schedule.when = reply
            session.schedule.confirmed = True
            actions.append(say(replies.SCHEDULE_NOTED.format(when=reply)))
            reply = ""

        # ---- Contact ---- #
        if not session.contact.mobile:
            mobile = normalize_ph_mobile(reply) if reply else None
            if mobile is None:
                actions.append(say(replies.ASK_MOBILE))
                return actions
            session.contact.mobile = mobile
            logger.info("Mobile captured")
            reply = ""

        if not session.contact.full_name:
            name = capture_full_name(reply) if reply else None
            if name is None:
                actions.append(say(replies.ASK_FULL_NAME))
                return actions
            session.contact.full_name = name
            reply = ""

        # ---- Address, once ---- #
        if not session.address_revealed:
            address = session.chosen.unit.complete_address.strip() if session.chosen else ""
            if address:
                actions.append(say(replies.ADDRESS_REVEAL.format(address=address)))
            else:
                actions.append(say(replies.ADDRESS_PENDING))
            session.address_revealed = True

        if session.phase == Phase.P3_CASH:
            advance(session, PhaseTrigger.VIEWING_LOCKED)
            return actions

        actions.extend(self._financing_step(session, reply, now, has_documents))
        return actions

    def _financing_step(
        self,
        session: Session,
        reply: str,
        now: float,
        has_documents: bool,
    ) -> list[OutboundAction]:
        actions: list[OutboundAction] = []
        if session.financing is None:
            session.financing = FinancingState()
        fin = session.financing

        if fin.income_source is None:
            source = classify_income(reply) if reply else None
            if source is None:
                actions.append(say(replies.ASK_INCOME))
                return actions
            fin.income_source = source
            logger.info("Income source: %s", source.value)
            reply = ""

        if fin.term is None:
            if not fin.lines_shown and session.chosen is not None:
                unit = session.chosen.unit
                block = "\n".join(
                    line for line in (financing_line(unit), monthly_lines(unit)) if line
                )
                actions.append(say(block))
                fin.lines_shown = True
            if reply not in {str(term) for term in FINANCING_TERMS}:
                actions.append(say(replies.ASK_TERM))
                return actions
            fin.term = int(reply)
            actions.append(say(replies.TERM_NOTED.format(term=fin.term)))

        just_asked = False
        if fin.docs_asked_at is None:
            actions.append(say(docs_checklist(fin.income_source)))
            fin.docs_awaiting = True
            fin.docs_asked_at = now
            just_asked = True

        if has_documents:
            fin.docs_received_at = now
            fin.docs_awaiting = False
            actions.append(say(replies.DOCS_RECEIVED))
            advance(session, PhaseTrigger.DOCS_RECEIVED)
        elif not just_asked:
            actions.append(say(replies.DOCS_REMIND))
        return actions

    def pending_prompt(self, session: Session, now: float) -> Optional[str]:
        """The question this flow is currently waiting on."""
        if not session.schedule.when:
            return schedule_question(now)
        if not session.contact.mobile:
            return replies.ASK_MOBILE
        if not session.contact.full_name:
            return replies.ASK_FULL_NAME
        if session.phase != Phase.P3_FIN or session.financing is None:
            return None
        fin = session.financing
        if fin.income_source is None:
            return replies.ASK_INCOME
        if fin.term is None:
            return replies.ASK_TERM
        if fin.docs_received_at is None:
            return replies.DOCS_REMIND
        return None
