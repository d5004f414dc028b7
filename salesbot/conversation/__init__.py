from salesbot.conversation.qualifier import next_missing, qualifier_turn
from salesbot.conversation.slot_extractor import ParsedMessage, parse_message
from salesbot.conversation.state_machine import (
    InvalidTransitionError,
    PhaseMachine,
    PhaseTrigger,
)

__all__ = [
    "PhaseMachine",
    "PhaseTrigger",
    "InvalidTransitionError",
    "ParsedMessage",
    "parse_message",
    "next_missing",
    "qualifier_turn",
]
