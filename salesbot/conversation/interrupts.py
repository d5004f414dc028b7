"""
FAQ and objection interrupts.

An ordered keyword table answered with fixed copy. The first matching rule
wins. Answering an interrupt never changes the phase; the router follows the
answer with the question the buyer still owes us. Off-script questions that
match no rule can get a short generated answer instead.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from salesbot.config import settings
from salesbot.prompts import replies
from salesbot.prompts.prompt_templates import build_small_talk_prompt
from salesbot.prompts.system_prompts import SMALL_TALK_SYSTEM_PROMPT
from salesbot.schemas.event_schema import OutboundAction, say
from salesbot.schemas.session_schema import Session
from salesbot.tools.text_generator import TextGenerator, safe_generate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InterruptRule:
    """One keyword rule with its canned answer."""
    key: str
    pattern: re.Pattern
    reply: str
    only_before_contact: bool = False


INTERRUPT_RULES: list[InterruptRule] = [
    InterruptRule(
        "legit",
        re.compile(r"\blegit\b|\btotoo\b|\bscam\b"),
        "We’re partnered with multiple dealers nationwide and follow standard "
        "processes, you’re in good hands 🙂",
    ),
    InterruptRule(
        "address",
        re.compile(r"\baddress\b|\bsaan\s+(?:banda|kayo|branch|showroom)\b|\btamang\s+lugar\b"),
        replies.ADDRESS_GATE,
        only_before_contact=True,
    ),
    InterruptRule(
        "last_price",
        re.compile(r"last\s*price|final\s*price|\btawad\b|lower\s*price"),
        "Negotiable po upon actual viewing, lalo na kung cash. Depende sa unit "
        "condition assessment.",
    ),
    InterruptRule(
        "lower_dp",
        re.compile(r"lower\s*dp|baba\s*(?:ng\s*)?dp|downpayment\s*pwede\s*lower"),
        "Minsan nababawasan ang cash-out after review. Best kung makapag-send ka "
        "ng basic docs para ma-assess agad.",
    ),
    InterruptRule(
        "trade_in",
        re.compile(r"trade[\s-]?in|i-trade\s*in"),
        "Yes, we accept trade-ins depende sa appraisal. Usually ginagawa during viewing.",
    ),
    InterruptRule(
        "mechanic",
        re.compile(r"mekaniko|mechanic|test\s*drive"),
        "Pwede magdala ng mekaniko at mag-test drive during scheduled viewing, "
        "basta available ang unit.",
    ),
    InterruptRule(
        "warranty",
        re.compile(r"warrant[yi]|waranty"),
        "Warranty depends on the unit/dealer. May mga unit na may dealer/extended "
        "options, we’ll confirm sa viewing.",
    ),
    InterruptRule(
        "timeline",
        re.compile(r"gaano\s*katagal|timeline|approval"),
        "Typical approval 1–3 days pag kumpleto ang docs. I’ll guide you para mapabilis.",
    ),
    InterruptRule(
        "insurance",
        re.compile(r"insurance"),
        "Insurance options available depende sa unit at package, ma-e-explain "
        "during processing.",
    ),
    InterruptRule(
        "reservation",
        re.compile(r"\breserv\w*"),
        "Pwede mag-reserve with fee once decided/verified. Mas okay after viewing "
        "or at least basic ID check.",
    ),
    InterruptRule(
        "delivery",
        re.compile(r"deliver\w*"),
        "Pwede ipa-deliver after processing/approval. Coordinate natin schedule once ready.",
    ),
    InterruptRule(
        "requirements",
        re.compile(r"requirements?|\breqs\b|co-?maker"),
        "Basic docs lang to start (ID, income proof). Co-maker depende sa profile, "
        "we’ll advise after pre-check.",
    ),
    InterruptRule(
        "unit_history",
        re.compile(r"\bcasa\b|\brecords?\b|mileage\s*real"),
        "We promote transparency. We’ll verify on viewing and share what’s known "
        "for the unit.",
    ),
    InterruptRule(
        "flood",
        re.compile(r"\bflood\w*|\bbaha\b|\bnabaha\b"),
        "We screen units. Pwede i-check sa viewing (undercarriage, smell, signs of repair).",
    ),
]


def match_interrupt(text: Optional[str], session: Session) -> Optional[InterruptRule]:
    """First rule that applies to this message, or None."""
    t = (text or "").strip().lower()
    if not t:
        return None
    for rule in INTERRUPT_RULES:
        if not rule.pattern.search(t):
            continue
        if rule.only_before_contact and session.contact.is_complete:
            # Contact is in; the flow itself handles the address now.
            continue
        return rule
    return None


def handle_interrupt(
    text: Optional[str],
    session: Session,
    resume_line: Optional[str] = None,
) -> Optional[list[OutboundAction]]:
    """Answer an interrupt plus the resume bridge, or None to let the phase run."""
    rule = match_interrupt(text, session)
    if rule is None:
        return None
    logger.info("Interrupt '%s' answered in phase %s", rule.key, session.phase.value)
    actions = [say(rule.reply)]
    if resume_line:
        actions.append(say(resume_line))
    return actions


QUESTION_START_RE = re.compile(
    r"^(?:ano|anong|sino|saan|kailan|bakit|paano|pano|kumusta|kamusta|"
    r"pwede|puwede|may|meron|how|what|who|where|when|why|can|do|are|is)\b"
)


def looks_like_question(text: Optional[str]) -> bool:
    """True for a question mark or a leading Taglish/English question word."""
    t = (text or "").strip().lower()
    if not t:
        return False
    return "?" in t or bool(QUESTION_START_RE.match(t))


async def answer_small_talk(
    text: str,
    session: Session,
    generator: TextGenerator,
) -> Optional[str]:
    """Generated one-line answer to an off-script question, or None."""
    answer = await safe_generate(
        generator,
        SMALL_TALK_SYSTEM_PROMPT,
        build_small_talk_prompt(
            text,
            session.slots.model_dump(mode="json", exclude_none=True),
            session.phase.value,
        ),
        settings.model.tone_temperature,
        max_chars=settings.model.hook_max_chars * 2,
    )
    if not answer:
        return None
    logger.info("Small talk answered in phase %s", session.phase.value)
    return answer
