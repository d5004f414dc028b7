"""
Idle re-engagement nudges.

An external scheduler calls NudgeScheduler.sweep() periodically. A session
gets a nudge only when it is in a nudgeable phase, outside quiet hours,
under the attempt cap, and idle for at least the interval since both the
buyer's last message and the previous nudge.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from salesbot.config import NudgeConfig, settings
from salesbot.logging_context import user_logger, user_scope
from salesbot.prompts import replies
from salesbot.prompts.prompt_templates import build_nudge_prompt
from salesbot.prompts.system_prompts import NUDGE_SYSTEM_PROMPT
from salesbot.schemas.session_schema import Phase, Session
from salesbot.tools.messenger import MessageSender
from salesbot.tools.session_store import SessionRepository, SessionStoreError
from salesbot.tools.text_generator import TextGenerator, safe_generate
from salesbot.utils import local_hour

logger = user_logger(__name__)

NUDGE_PHASES = frozenset({Phase.P1, Phase.P1_PENDING, Phase.P3_CASH, Phase.P3_FIN})


@dataclass
class NudgeReport:
    """Totals for one sweep."""
    processed: int = 0
    nudged: int = 0


def in_quiet_hours(now: float, config: Optional[NudgeConfig] = None) -> bool:
    """Quiet window is inclusive at its start hour and exclusive at its end hour."""
    config = config or settings.nudges
    hour = local_hour(now, settings.business.timezone)
    start, end = config.quiet_start_hour, config.quiet_end_hour
    if start > end:
        return hour >= start or hour < end
    return start <= hour < end


def _awaiting_docs(session: Session) -> bool:
    fin = session.financing
    return session.phase == Phase.P3_FIN and fin is not None and fin.docs_awaiting


def nudge_line(session: Session) -> str:
    """Fixed line for the session's situation, rotated by attempt count."""
    if _awaiting_docs(session):
        lines = replies.NUDGE_DOCS
    elif session.phase in (Phase.P3_CASH, Phase.P3_FIN):
        lines = replies.NUDGE_SCHEDULE
    else:
        lines = replies.NUDGE_QUALIFYING
    return lines[session.nudge.count % len(lines)]


def due_nudge(session: Session, now: float, config: Optional[NudgeConfig] = None) -> Optional[str]:
    """The line to send now, or None when this session must not be nudged."""
    config = config or settings.nudges
    if session.phase not in NUDGE_PHASES:
        return None
    if session.nudge.count >= config.max_attempts:
        return None
    if in_quiet_hours(now, config):
        return None

    interval_minutes = config.interval_minutes
    if _awaiting_docs(session):
        asked_at = session.financing.docs_asked_at
        if asked_at is not None and now - asked_at > config.docs_max_hours * 3600:
            return None
        interval_minutes = config.docs_interval_minutes

    last_touch = max(
        session.last_user_at or session.updated_at,
        session.nudge.last_ts or 0.0,
    )
    if now - last_touch < interval_minutes * 60:
        return None
    return nudge_line(session)


class NudgeScheduler:
    """Checks sessions and delivers due nudges."""

    def __init__(
        self,
        repository: SessionRepository,
        sender: MessageSender,
        generator: TextGenerator,
        clock: Callable[[], float] = time.time,
        config: Optional[NudgeConfig] = None,
    ) -> None:
        self._repository = repository
        self._sender = sender
        self._generator = generator
        self._clock = clock
        self._config = config or settings.nudges

    async def _phrase(self, line: str, attempt: int) -> str:
        generated = await safe_generate(
            self._generator,
            NUDGE_SYSTEM_PROMPT,
            build_nudge_prompt(line, attempt),
            settings.model.nudge_temperature,
            max_chars=settings.model.hook_max_chars * 2,
        )
        return generated or line

    async def check(self, session: Session, now: float) -> bool:
        """Send a nudge if one is due and record it on the session."""
        line = due_nudge(session, now, self._config)
        if line is None:
            return False

        text = await self._phrase(line, session.nudge.count)
        await self._sender.send_typing(session.id, True)
        await self._sender.send_text(session.id, text)
        await self._sender.send_typing(session.id, False)

        session.nudge.count += 1
        session.nudge.last_ts = now
        logger.info(
            "Nudged in phase %s (attempt %d)",
            session.phase.value, session.nudge.count,
        )
        return True

    async def sweep(self) -> NudgeReport:
        """One pass over every stored session."""
        report = NudgeReport()
        ttl = settings.conversation.session_ttl_days * 86400
        for user_id in await self._repository.list_user_ids():
            with user_scope(user_id):
                try:
                    async with self._repository.lock(user_id):
                        now = self._clock()
                        session = await self._repository.peek(user_id)
                        if session is None or session.is_expired(now, ttl):
                            continue
                        report.processed += 1
                        if await self.check(session, now):
                            await self._repository.save(session, now, touch=False)
                            report.nudged += 1
                except SessionStoreError:
                    logger.exception("Nudge skipped")
        logger.info("Nudge sweep: %d processed, %d nudged", report.processed, report.nudged)
        return report
