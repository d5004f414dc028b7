"""
Phase state machine for the Messenger sales conversation.

Phases only move forward along an explicit transition table. Each transition
can carry a guard over the session so a phase is never entered while its
gating data is missing.

Usage:
    machine = PhaseMachine(session)
    machine.transition(PhaseTrigger.QUALIFIED)
    assert session.phase == Phase.P2_PENDING
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from salesbot.schemas.session_schema import Phase, Plan, Session, TERMINAL_PHASES

logger = logging.getLogger(__name__)


class PhaseTrigger(str, Enum):
    """Events that move a conversation to its next phase."""
    QUALIFIED = "qualified"
    OFFERS_SENT = "offers_sent"
    PICKED_CASH = "picked_cash"
    PICKED_FINANCING = "picked_financing"
    VIEWING_LOCKED = "viewing_locked"
    DOCS_RECEIVED = "docs_received"


@dataclass
class Transition:
    """A single valid phase transition."""
    from_phase: Phase
    to_phase: Phase
    trigger: PhaseTrigger
    guard: Optional[Callable[[Session], bool]] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current phase."""


def _has_pick(plan: Plan) -> Callable[[Session], bool]:
    def guard(session: Session) -> bool:
        return session.chosen is not None and session.slots.plan == plan
    return guard


def _viewing_locked(session: Session) -> bool:
    return (
        session.schedule.confirmed
        and session.contact.is_complete
        and session.address_revealed
    )


def _docs_in(session: Session) -> bool:
    fin = session.financing
    return fin is not None and fin.term is not None and fin.docs_received_at is not None


class PhaseMachine:
    """Applies phase transitions to a session.

    The session is the source of truth; the machine only validates and
    records moves made during its lifetime.
    """

    TRANSITIONS: list[Transition] = [
        # --- Qualification ---
        Transition(Phase.P1, Phase.P2_PENDING, PhaseTrigger.QUALIFIED),
        Transition(Phase.P1_PENDING, Phase.P2_PENDING, PhaseTrigger.QUALIFIED),

        # --- Offers ---
        Transition(Phase.P2_PENDING, Phase.P2_PICK, PhaseTrigger.OFFERS_SENT),
        Transition(Phase.P2_PICK, Phase.P2_PICK, PhaseTrigger.OFFERS_SENT),

        # --- Selection ---
        Transition(Phase.P2_PICK, Phase.P3_CASH, PhaseTrigger.PICKED_CASH,
                   guard=_has_pick(Plan.CASH)),
        Transition(Phase.P2_PICK, Phase.P3_FIN, PhaseTrigger.PICKED_FINANCING,
                   guard=_has_pick(Plan.FINANCING)),

        # --- Post-selection ---
        Transition(Phase.P3_CASH, Phase.DONE_CASH, PhaseTrigger.VIEWING_LOCKED,
                   guard=_viewing_locked),
        Transition(Phase.P3_FIN, Phase.DONE_FIN, PhaseTrigger.DOCS_RECEIVED,
                   guard=lambda s: _viewing_locked(s) and _docs_in(s)),
    ]

    def __init__(self, session: Session) -> None:
        self._session = session
        self._trace: list[Phase] = [session.phase]

    @property
    def current_phase(self) -> Phase:
        return self._session.phase

    def transition(self, trigger: PhaseTrigger) -> Phase:
        """
        Move the session to the next phase.

        Raises:
            InvalidTransitionError: If no transition (or no passing guard)
                exists from the current phase for this trigger.
        """
        for t in self.TRANSITIONS:
            if t.from_phase == self._session.phase and t.trigger == trigger:
                if t.guard is not None and not t.guard(self._session):
                    continue

                old_phase = self._session.phase
                self._session.phase = t.to_phase
                self._trace.append(t.to_phase)
                logger.debug(
                    "Phase transition: %s -> %s (trigger: %s)",
                    old_phase.value, t.to_phase.value, trigger.value,
                )
                return t.to_phase

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._session.phase.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[PhaseTrigger]:
        """Return all triggers defined from the current phase."""
        return [t.trigger for t in self.TRANSITIONS if t.from_phase == self._session.phase]

    def get_phase_trace(self) -> list[str]:
        """Phases visited through this machine, starting with the initial one."""
        return [phase.value for phase in self._trace]

    def is_terminal(self) -> bool:
        return self._session.phase in TERMINAL_PHASES


def advance(session: Session, trigger: PhaseTrigger) -> Phase:
    """One-shot transition for callers that do not need the trace."""
    return PhaseMachine(session).transition(trigger)
