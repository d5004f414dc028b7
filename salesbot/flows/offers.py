"""
Offer presenter: show the shortlist two at a time and bind the buyer's
pick to a unit.
"""

import logging
from typing import Optional

from salesbot.config import settings
from salesbot.conversation.state_machine import PhaseTrigger, advance
from salesbot.prompts import replies
from salesbot.prompts.prompt_templates import build_hook_prompt
from salesbot.prompts.system_prompts import HOOK_SYSTEM_PROMPT
from salesbot.schemas.event_schema import OutboundAction, say, show_image
from salesbot.schemas.inventory_schema import InventoryUnit
from salesbot.schemas.session_schema import (
    Chosen,
    FinancingState,
    Picks,
    Plan,
    Session,
)
from salesbot.tools.inventory import InventorySource
from salesbot.tools.matcher import build_candidates
from salesbot.tools.pricing import price_block
from salesbot.tools.text_generator import TextGenerator, safe_generate

logger = logging.getLogger(__name__)


def title_line(unit: InventoryUnit) -> str:
    parts = [unit.year, unit.brand, unit.model, unit.variant]
    return " ".join(p.strip() for p in parts if p and p.strip())


def sub_line(unit: InventoryUnit) -> str:
    parts = []
    if unit.transmission.strip():
        parts.append(unit.transmission.strip())
    if unit.mileage_km:
        parts.append(f"{unit.mileage_km:,} km")
    place = ", ".join(p.strip() for p in (unit.city, unit.province) if p and p.strip())
    if place:
        parts.append(place)
    return " • ".join(parts)


class OfferPresenter:
    """Builds offer cards and handles the pick/others/widen replies."""

    def __init__(self, inventory: InventorySource, generator: TextGenerator) -> None:
        self._inventory = inventory
        self._generator = generator

    async def _hook(self, unit: InventoryUnit) -> str:
        return await safe_generate(
            self._generator,
            HOOK_SYSTEM_PROMPT,
            build_hook_prompt(unit),
            settings.model.hook_temperature,
            max_chars=settings.model.hook_max_chars,
        )

    async def offer_card(self, unit: InventoryUnit, plan: Optional[Plan]) -> list[OutboundAction]:
        """Lead image then one text bubble: title, sub line, price block, hook."""
        actions = []
        images = unit.images()
        if images:
            actions.append(show_image(images[0]))
        lines = [title_line(unit), sub_line(unit), price_block(unit, plan), await self._hook(unit)]
        actions.append(say("\n".join(line for line in lines if line)))
        return actions

    async def _units_by_id(self) -> dict[str, InventoryUnit]:
        return {unit.unit_id: unit for unit in await self._inventory.fetch_all()}

    async def start_offers(self, session: Session) -> list[OutboundAction]:
        """Compute the shortlist, store it on the session and show the first pair."""
        conv = settings.conversation
        inventory = await self._inventory.fetch_all()
        candidates = build_candidates(inventory, session.slots, limit=conv.max_candidates)
        session.picks = Picks.from_ids(
            [unit.unit_id for unit in candidates],
            limit=conv.max_candidates,
            shown_count=conv.shown_count,
        )

        actions: list[OutboundAction] = []
        shown = candidates[:conv.shown_count]
        if not shown:
            actions.append(say(replies.NO_MATCHES))
        else:
            for unit in shown:
                actions.extend(await self.offer_card(unit, session.slots.plan))
            actions.append(say(replies.PICK_ONE if len(shown) == 1 else replies.PICK_TWO))

        advance(session, PhaseTrigger.OFFERS_SENT)
        logger.info("Offered %s (backup %s)", session.picks.shown, session.picks.backup)
        return actions

    async def pick_or_others(self, session: Session, text: Optional[str]) -> list[OutboundAction]:
        """Handle a reply while the buyer is choosing between offers."""
        t = (text or "").strip().lower()

        if t == "others":
            return await self._show_backup(session)

        if t == "widen":
            return [say(replies.WIDEN_ASK)]

        if t.isdigit() and 1 <= int(t) <= len(session.picks.ranked):
            return await self._choose(session, session.picks.ranked[int(t) - 1])

        return [say(replies.PICK_FALLBACK)]

    async def _show_backup(self, session: Session) -> list[OutboundAction]:
        backup_ids = session.picks.backup[:2]
        if not backup_ids:
            return [say(replies.NO_BACKUP)]
        by_id = await self._units_by_id()
        actions: list[OutboundAction] = []
        for unit_id in backup_ids:
            unit = by_id.get(unit_id)
            if unit is None:
                logger.warning("Backup unit %s no longer in inventory", unit_id)
                continue
            actions.extend(await self.offer_card(unit, session.slots.plan))
        actions.append(say(replies.PICK_ANY))
        return actions

    async def _choose(self, session: Session, unit_id: str) -> list[OutboundAction]:
        unit = (await self._units_by_id()).get(unit_id)
        if unit is None:
            logger.warning("Picked unit %s missing from inventory", unit_id)
            return [say(replies.PICK_DELAYED)]

        session.chosen = Chosen(unit_id=unit_id, unit=unit)
        actions: list[OutboundAction] = []
        images = unit.images()
        if images:
            actions.append(say(replies.NICE_CHOICE))
            actions.extend(show_image(url) for url in images)

        if session.slots.plan == Plan.FINANCING:
            session.financing = FinancingState()
            advance(session, PhaseTrigger.PICKED_FINANCING)
        else:
            advance(session, PhaseTrigger.PICKED_CASH)
        logger.info("Unit %s chosen", unit_id)
        return actions
