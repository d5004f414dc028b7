"""User-prompt builders for generated copy."""

from typing import Optional

from salesbot.schemas.inventory_schema import InventoryUnit


def build_hook_prompt(unit: InventoryUnit) -> str:
    """Describe a unit for the hook generator using only its sheet fields."""
    lines = ["Car:"]
    for label, value in [
        ("year", unit.year),
        ("brand", unit.brand),
        ("model", unit.model),
        ("variant", unit.variant),
        ("body type", unit.body_type),
        ("transmission", unit.transmission),
        ("mileage", f"{unit.mileage_km:,} km" if unit.mileage_km else ""),
    ]:
        if value:
            lines.append(f"  {label}: {value}")
    lines.append("\nWrite the hook line now.")
    return "\n".join(lines)


def build_nudge_prompt(base_line: str, attempt: int) -> str:
    """Ask for a rephrase of the fixed nudge line for this attempt."""
    return (
        f"Follow-up number {attempt + 1}. Line to rephrase:\n"
        f"{base_line}"
    )


def _known_details(known: dict) -> str:
    if not known:
        return "  (none yet)"
    return "\n".join(f"  {key}: {value}" for key, value in known.items())


def build_greeting_prompt(user_text: Optional[str]) -> str:
    return f"Buyer's first message:\n{user_text or '(no text)'}\n\nWrite the greeting now."


def build_ask_prompt(slot: str, base_line: str, user_text: Optional[str], known: dict) -> str:
    """Ask for a rephrase of the fixed question for one missing slot."""
    return (
        f"Detail to ask for: {slot}\n"
        f"Question to rephrase:\n{base_line}\n\n"
        f"Buyer's last message:\n{user_text or '(no text)'}\n\n"
        f"Details already known:\n{_known_details(known)}"
    )


def build_small_talk_prompt(user_text: str, known: dict, phase: str) -> str:
    return (
        f"Conversation stage: {phase}\n"
        f"Details already known:\n{_known_details(known)}\n\n"
        f"Buyer's message:\n{user_text}\n\n"
        "Write the reply now."
    )
