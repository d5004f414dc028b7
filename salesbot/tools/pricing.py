"""Price lines for offer cards and the financing step."""

from typing import Optional

from salesbot.config import settings
from salesbot.schemas.inventory_schema import InventoryUnit
from salesbot.schemas.session_schema import Plan
from salesbot.utils import peso, round_up

FINANCING_TERMS = (2, 3, 4)


def cash_line(unit: InventoryUnit) -> str:
    srp = unit.srp_amount
    if not srp:
        return "SRP: —"
    return f"SRP: {peso(srp)} (negotiable upon viewing)"


def all_in_bracket(unit: InventoryUnit) -> Optional[tuple[int, int]]:
    """All-in cash-out rounded up to the step, plus the fixed spread."""
    all_in = unit.all_in_amount
    if not all_in:
        return None
    conv = settings.conversation
    low = round_up(all_in, conv.all_in_round_step)
    return low, low + conv.all_in_spread


def financing_line(unit: InventoryUnit) -> str:
    bracket = all_in_bracket(unit)
    if bracket is None:
        return "All-in: —"
    low, high = bracket
    return (
        f"All-in: {peso(low)}–{peso(high)} (subject for approval)\n"
        "Standard is ~20–30% DP for used cars; may all-in promo tayo this month."
    )


def monthly_lines(unit: InventoryUnit) -> str:
    """Monthly amortization per term; terms missing from the sheet are left out."""
    parts = []
    for term in FINANCING_TERMS:
        amount = unit.monthly(term)
        if amount:
            parts.append(f"{term}yrs {peso(amount)}/mo")
    return " | ".join(parts)


def price_block(unit: InventoryUnit, plan: Optional[Plan]) -> str:
    if plan == Plan.FINANCING:
        monthly = monthly_lines(unit)
        return "\n".join(line for line in (financing_line(unit), monthly) if line)
    return cash_line(unit)
