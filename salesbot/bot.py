"""
Turn handler: the single entry point the webhook transport calls.

For each inbound event it takes the user's lock, loads the session, routes
the turn, delivers the replies and saves the session. Errors never escape
to the transport, so the upstream platform always gets its acknowledgement.
"""

import time
from dataclasses import dataclass
from typing import Callable

from salesbot.flows.offers import OfferPresenter
from salesbot.flows.post_selection import PostSelectionFlow
from salesbot.flows.router import ConversationRouter
from salesbot.logging_context import user_logger, user_scope
from salesbot.prompts import replies
from salesbot.schemas.event_schema import ActionKind, InboundEvent, OutboundAction, say
from salesbot.tools.inventory import InventoryFetchError, InventorySource
from salesbot.tools.messenger import MessageSender
from salesbot.tools.session_store import SessionRepository, SessionStoreError
from salesbot.tools.text_generator import TextGenerator

logger = user_logger(__name__)


@dataclass
class TurnResult:
    """What happened on one turn, for the transport and for tests."""
    ok: bool
    phase: str = ""
    sent: int = 0
    error: str = ""


class SalesBot:
    """Wires the router to storage and delivery."""

    def __init__(
        self,
        repository: SessionRepository,
        inventory: InventorySource,
        sender: MessageSender,
        generator: TextGenerator,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._repository = repository
        self._sender = sender
        self._clock = clock
        self._router = ConversationRouter(
            OfferPresenter(inventory, generator), PostSelectionFlow(), generator,
        )

    @property
    def repository(self) -> SessionRepository:
        return self._repository

    async def deliver(self, user_id: str, actions: list[OutboundAction]) -> int:
        """Send actions in order between typing indicators."""
        if not actions:
            return 0
        await self._sender.send_typing(user_id, True)
        for action in actions:
            if action.kind == ActionKind.IMAGE:
                await self._sender.send_image(user_id, action.body)
            else:
                await self._sender.send_text(user_id, action.body)
        await self._sender.send_typing(user_id, False)
        return len(actions)

    async def handle_event(self, event: InboundEvent) -> TurnResult:
        with user_scope(event.user_id):
            try:
                async with self._repository.lock(event.user_id):
                    return await self._run_turn(event)
            except SessionStoreError as e:
                logger.error("Session lock unavailable: %s", e)
                await self.deliver(event.user_id, [say(replies.TRY_AGAIN)])
                return TurnResult(ok=False, error=str(e))

    async def _run_turn(self, event: InboundEvent) -> TurnResult:
        now = self._clock()
        try:
            session = await self._repository.load(event.user_id, now)
        except SessionStoreError as e:
            logger.error("Session load failed: %s", e)
            await self.deliver(event.user_id, [say(replies.TRY_AGAIN)])
            return TurnResult(ok=False, error=str(e))

        session.last_user_at = now
        error = ""
        try:
            result = await self._router.route(session, event, now)
        except InventoryFetchError as e:
            # Whatever the turn got through is kept; the next message retries the rest.
            logger.error("Inventory unavailable: %s", e)
            result = None
            error = str(e)
            actions = [say(replies.TRY_AGAIN)]
        else:
            session = result.session
            actions = result.actions

        sent = await self.deliver(event.user_id, actions)

        try:
            if result is not None and result.restarted:
                await self._repository.reset(event.user_id, now)
            await self._repository.save(session, now)
        except SessionStoreError as e:
            logger.error("Session save failed: %s", e)
            return TurnResult(ok=False, phase=session.phase.value, sent=sent, error=str(e))

        logger.debug("Turn complete in phase %s", session.phase.value)
        return TurnResult(ok=not error, phase=session.phase.value, sent=sent, error=error)
