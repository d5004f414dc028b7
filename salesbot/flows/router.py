"""
Per-turn router: restart, interrupts, then the handler for the current phase.

A turn can chain phases. Finishing qualification starts the offers right
away, and a valid pick opens the post-selection flow in the same turn.
The greeting and the qualifying questions are rephrased by the text
generator when it answers; the fixed copy is the fallback.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from salesbot.config import settings
from salesbot.conversation.interrupts import (
    answer_small_talk,
    handle_interrupt,
    looks_like_question,
    match_interrupt,
)
from salesbot.conversation.qualifier import (
    apply_pending_answer,
    next_missing,
    qualifier_turn,
)
from salesbot.conversation.slot_extractor import ParsedMessage, parse_message
from salesbot.flows.offers import OfferPresenter
from salesbot.flows.post_selection import PostSelectionFlow
from salesbot.prompts import replies
from salesbot.prompts.prompt_templates import build_ask_prompt, build_greeting_prompt
from salesbot.prompts.system_prompts import ASK_SYSTEM_PROMPT, GREETING_SYSTEM_PROMPT
from salesbot.schemas.event_schema import InboundEvent, OutboundAction, say
from salesbot.schemas.session_schema import Phase, Session, Slots
from salesbot.tools.text_generator import NullTextGenerator, TextGenerator, safe_generate

logger = logging.getLogger(__name__)

QUALIFYING_PHASES = frozenset({Phase.P1, Phase.P1_PENDING})
SMALL_TALK_PHASES = QUALIFYING_PHASES | {Phase.P2_PICK}
PICK_COMMANDS = frozenset({"others", "widen"})
ASK_LINE_SLOTS = {line: slot for slot, line in replies.ASK_SLOT.items()}
@dataclass
class RouteResult:
    """Session after the turn plus the messages to deliver, in order."""
    session: Session
    actions: list[OutboundAction] = field(default_factory=list)
    restarted: bool = False


class ConversationRouter:
    """Dispatches one inbound event against one session."""

    def __init__(
        self,
        offers: OfferPresenter,
        post_selection: Optional[PostSelectionFlow] = None,
        generator: Optional[TextGenerator] = None,
    ) -> None:
        self._offers = offers
        self._post_selection = post_selection or PostSelectionFlow()
        self._generator = generator or NullTextGenerator()

    def resume_line(self, session: Session, now: float) -> Optional[str]:
        """The question the buyer still owes us in the current phase."""
        if session.phase in QUALIFYING_PHASES:
            missing = next_missing(session.slots)
            return replies.ASK_SLOT[missing] if missing else None
        if session.phase == Phase.P2_PICK:
            return replies.RESUME_PICK if session.picks.ranked else None
        if session.phase in (Phase.P3_CASH, Phase.P3_FIN):
            return self._post_selection.pending_prompt(session, now)
        return None

    async def route(self, session: Session, event: InboundEvent, now: float) -> RouteResult:
        parsed = parse_message(event.text)
        start_phase = session.phase

        if event.is_restart_command or parsed.restart:
            fresh = Session.new(session.id, now)
            fresh.last_user_at = now
            result = qualifier_turn(fresh, Slots(), now)
            logger.info("Conversation restarted from phase %s", start_phase.value)
            actions = await self._phrase_qualifier(result.actions, fresh, event.text)
            return RouteResult(fresh, actions, restarted=True)

        if session.is_terminal:
            closing = replies.DONE_CASH if session.phase == Phase.DONE_CASH else replies.DONE_FIN
            return RouteResult(session, [say(closing)])

        if match_interrupt(event.text, session) is not None:
            qualifying = session.phase in QUALIFYING_PHASES
            if qualifying:
                # Keep anything useful from the message; the phase stays put.
                apply_pending_answer(session, event.text, parsed.slots)
                session.slots.merge(parsed.slots)
            actions = handle_interrupt(event.text, session, self.resume_line(session, now)) or []
            if qualifying and next_missing(session.slots) is None:
                # The message also finished qualification.
                actions.extend(await self._dispatch(session, event, ParsedMessage(), now))
            return RouteResult(session, actions)

        if self._is_small_talk(session, event.text, parsed):
            answer = await answer_small_talk(event.text, session, self._generator)
            if answer:
                actions = [say(answer)]
                resume = self.resume_line(session, now)
                if resume:
                    actions.append(say(resume))
                return RouteResult(session, actions)

        actions = await self._dispatch(session, event, parsed, now)
        logger.info(
            "Turn routed: %s -> %s (%d actions)",
            start_phase.value, session.phase.value, len(actions),
        )
        return RouteResult(session, actions)

    async def _dispatch(
        self,
        session: Session,
        event: InboundEvent,
        parsed: ParsedMessage,
        now: float,
    ) -> list[OutboundAction]:
        actions: list[OutboundAction] = []

        if session.phase in QUALIFYING_PHASES:
            apply_pending_answer(session, event.text, parsed.slots)
            result = qualifier_turn(session, parsed.slots, now)
            actions.extend(await self._phrase_qualifier(result.actions, session, event.text))
            if not result.done:
                return actions

        if session.phase == Phase.P2_PENDING:
            session.slots.merge(parsed.slots)
            actions.extend(await self._offers.start_offers(session))
            return actions

        if session.phase == Phase.P2_PICK:
            actions.extend(await self._pick(session, event.text, parsed))
            if session.phase not in (Phase.P3_CASH, Phase.P3_FIN):
                return actions
            # Fresh pick: open the flow with its first question.
            actions.extend(self._post_selection.step(session, None, now))
            return actions

        if session.phase in (Phase.P3_CASH, Phase.P3_FIN):
            actions.extend(
                self._post_selection.step(session, event.text, now, event.has_documents)
            )
        return actions

    def _is_small_talk(self, session: Session, text: Optional[str], parsed: ParsedMessage) -> bool:
        """An off-script question that carries nothing the current phase can use."""
        if session.phase not in SMALL_TALK_PHASES or not session.is_welcomed:
            return False
        t = (text or "").strip().lower()
        if not looks_like_question(t) or parsed.has_slots():
            return False
        if t in PICK_COMMANDS or t.isdigit():
            return False
        if session.phase in QUALIFYING_PHASES:
            answered = Slots()
            apply_pending_answer(session, text, answered)
            return not answered.filled()
        return True

    async def _phrase_qualifier(
        self,
        actions: list[OutboundAction],
        session: Session,
        text: Optional[str],
    ) -> list[OutboundAction]:
        """Rephrase the new-buyer greeting and the slot questions."""
        phrased: list[OutboundAction] = []
        for action in actions:
            slot = ASK_LINE_SLOTS.get(action.body)
            if slot is not None:
                prompt = build_ask_prompt(
                    slot,
                    action.body,
                    text,
                    session.slots.model_dump(mode="json", exclude_none=True),
                )
                system = ASK_SYSTEM_PROMPT
            elif action.body == replies.GREET_NEW:
                prompt = build_greeting_prompt(text)
                system = GREETING_SYSTEM_PROMPT
            else:
                phrased.append(action)
                continue
            body = await safe_generate(
                self._generator,
                system,
                prompt,
                settings.model.tone_temperature,
                max_chars=settings.model.hook_max_chars,
            )
            phrased.append(say(body) if body else action)
        return phrased

    async def _pick(
        self,
        session: Session,
        text: Optional[str],
        parsed: ParsedMessage,
    ) -> list[OutboundAction]:
        t = (text or "").strip().lower()
        if t in PICK_COMMANDS or t.isdigit() or not parsed.has_slots():
            return await self._offers.pick_or_others(session, text)

        # New filters while choosing, usually after "widen".
        changed = session.slots.merge(parsed.slots)
        if not changed:
            return await self._offers.pick_or_others(session, text)
        logger.info("Filters changed while picking: %s", changed)
        missing = next_missing(session.slots)
        if missing is not None:
            return [say(replies.ASK_SLOT[missing])]
        return await self._offers.start_offers(session)
