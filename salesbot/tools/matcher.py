"""
Inventory matching and ranking.

The coarse filter is a wide gate (200k headroom over budget) and the
additive scorer makes the fine distinctions. Priority stock gets a flat
bonus rather than a separate sort tier, so a strong non-priority match can
still outrank a weak priority one.
"""

import logging
import re
from typing import Optional

from salesbot.config import settings
from salesbot.schemas.inventory_schema import InventoryUnit
from salesbot.schemas.session_schema import Plan, Slots, Transmission

logger = logging.getLogger(__name__)

AUTOMATIC_RE = re.compile(r"a/?t|automatic|auto")
MANUAL_RE = re.compile(r"m/?t|manual")

PRIORITY_BONUS = 10
BUDGET_FIT_BONUS = 4
BODY_TYPE_BONUS = 4
TRANSMISSION_BONUS = 2
MODEL_BONUS = 3
BRAND_BONUS = 2
YEAR_BONUS = 1
LOW_MILEAGE_BONUS = 1
LOW_MILEAGE_KM = 30000


def plan_price(unit: InventoryUnit, plan: Optional[Plan]) -> Optional[int]:
    """SRP for cash buyers, all-in cash-out for financing buyers."""
    if plan == Plan.FINANCING:
        return unit.all_in_amount
    return unit.srp_amount


def _wants_body_type(slots: Slots) -> bool:
    return bool(slots.body_type) and slots.body_type != "any"


def transmission_matches(unit_transmission: str, pref: Optional[Transmission]) -> bool:
    """Regex match of the free-text transmission column against a preference."""
    if pref is None or pref == Transmission.ANY:
        return True
    text = (unit_transmission or "").lower()
    if pref == Transmission.AUTOMATIC:
        return bool(AUTOMATIC_RE.search(text))
    return bool(MANUAL_RE.search(text))


def coarse_filter(units: list[InventoryUnit], slots: Slots,
                  headroom: Optional[int] = None) -> list[InventoryUnit]:
    """Drop units that clearly cannot work; keep anything borderline."""
    if headroom is None:
        headroom = settings.conversation.budget_headroom

    kept = []
    for unit in units:
        if slots.plan is not None and slots.budget is not None:
            price = plan_price(unit, slots.plan)
            if price is None or price > slots.budget + headroom:
                continue
        if _wants_body_type(slots) and unit.body_type.strip().lower() != slots.body_type.lower():
            continue
        if not transmission_matches(unit.transmission, slots.transmission):
            continue
        kept.append(unit)
    return kept


def budget_fits(unit: InventoryUnit, slots: Slots, window: Optional[int] = None) -> bool:
    if window is None:
        window = settings.conversation.budget_fit_window
    if slots.budget is None:
        return True
    if slots.plan == Plan.CASH:
        srp = unit.srp_amount
        return srp is not None and slots.budget - window <= srp <= slots.budget + window
    if slots.plan == Plan.FINANCING:
        all_in = unit.all_in_amount
        return all_in is not None and all_in <= slots.budget + window
    return False


def score_unit(unit: InventoryUnit, slots: Slots) -> int:
    """Additive match score; higher is better."""
    score = 0
    if "priority" in unit.price_status.lower():
        score += PRIORITY_BONUS
    if slots.plan is not None and budget_fits(unit, slots):
        score += BUDGET_FIT_BONUS
    if _wants_body_type(slots) and unit.body_type.strip().lower() == slots.body_type.lower():
        score += BODY_TYPE_BONUS
    if transmission_matches(unit.transmission, slots.transmission):
        score += TRANSMISSION_BONUS
    if slots.model_pref and slots.model_pref.lower() in unit.model.lower():
        score += MODEL_BONUS
    if slots.brand_pref and slots.brand_pref.lower() in unit.brand.lower():
        score += BRAND_BONUS
    if slots.year_pref and unit.year.strip() == str(slots.year_pref):
        score += YEAR_BONUS
    mileage = unit.mileage_km
    if mileage is not None and mileage < LOW_MILEAGE_KM:
        score += LOW_MILEAGE_BONUS
    return score


def rank_units(units: list[InventoryUnit], slots: Slots) -> list[InventoryUnit]:
    """Sort by score, highest first. Ties keep inventory order."""
    return sorted(units, key=lambda u: score_unit(u, slots), reverse=True)


def build_candidates(inventory: list[InventoryUnit], slots: Slots,
                     limit: Optional[int] = None) -> list[InventoryUnit]:
    """Filter, rank and cut the inventory down to the offer shortlist."""
    if limit is None:
        limit = settings.conversation.max_candidates
    survivors = coarse_filter(inventory, slots)
    ranked = rank_units(survivors, slots)[:limit]
    logger.info(
        "Matched %d of %d units, shortlisted %d",
        len(survivors), len(inventory), len(ranked),
    )
    return ranked
