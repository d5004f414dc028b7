"""Tests for the phase state machine."""

import pytest

from salesbot.conversation.state_machine import (
    InvalidTransitionError,
    PhaseMachine,
    PhaseTrigger,
    advance,
)
from salesbot.schemas.session_schema import (
    Chosen,
    FinancingState,
    Phase,
    Plan,
)
from tests.conftest import MORNING, cash_slots, make_session, make_unit


def _picked_session(plan: Plan):
    session = make_session(phase=Phase.P2_PICK, slots=cash_slots(plan=plan))
    unit = make_unit()
    session.chosen = Chosen(unit_id=unit.unit_id, unit=unit)
    return session


def _locked(session):
    session.schedule.when = "bukas 10am"
    session.schedule.confirmed = True
    session.contact.mobile = "+639171234567"
    session.contact.full_name = "Juan Dela Cruz"
    session.address_revealed = True
    return session


class TestInitialPhase:
    def test_new_session_starts_in_p1(self):
        machine = PhaseMachine(make_session())
        assert machine.current_phase == Phase.P1

    def test_not_terminal_at_start(self):
        assert not PhaseMachine(make_session()).is_terminal()

    def test_trace_starts_with_current_phase(self):
        assert PhaseMachine(make_session()).get_phase_trace() == ["p1"]


class TestQualificationAndOffers:
    def test_qualified_moves_to_offer_pending(self):
        session = make_session()
        assert advance(session, PhaseTrigger.QUALIFIED) == Phase.P2_PENDING

    def test_pending_qualifier_phase_also_qualifies(self):
        session = make_session(phase=Phase.P1_PENDING)
        assert advance(session, PhaseTrigger.QUALIFIED) == Phase.P2_PENDING

    def test_offers_sent_moves_to_pick(self):
        session = make_session(phase=Phase.P2_PENDING)
        assert advance(session, PhaseTrigger.OFFERS_SENT) == Phase.P2_PICK

    def test_recomputed_offers_stay_in_pick(self):
        session = make_session(phase=Phase.P2_PICK)
        assert advance(session, PhaseTrigger.OFFERS_SENT) == Phase.P2_PICK

    def test_cannot_skip_offers(self):
        with pytest.raises(InvalidTransitionError):
            advance(make_session(), PhaseTrigger.OFFERS_SENT)


class TestSelection:
    def test_cash_pick(self):
        session = _picked_session(Plan.CASH)
        assert advance(session, PhaseTrigger.PICKED_CASH) == Phase.P3_CASH

    def test_financing_pick(self):
        session = _picked_session(Plan.FINANCING)
        assert advance(session, PhaseTrigger.PICKED_FINANCING) == Phase.P3_FIN

    def test_pick_requires_chosen_unit(self):
        session = make_session(phase=Phase.P2_PICK, slots=cash_slots())
        with pytest.raises(InvalidTransitionError):
            advance(session, PhaseTrigger.PICKED_CASH)

    def test_pick_must_match_plan(self):
        session = _picked_session(Plan.CASH)
        with pytest.raises(InvalidTransitionError):
            advance(session, PhaseTrigger.PICKED_FINANCING)


class TestPostSelection:
    def test_cash_done_requires_viewing_locked(self):
        session = _picked_session(Plan.CASH)
        session.phase = Phase.P3_CASH
        with pytest.raises(InvalidTransitionError):
            advance(session, PhaseTrigger.VIEWING_LOCKED)
        _locked(session)
        assert advance(session, PhaseTrigger.VIEWING_LOCKED) == Phase.DONE_CASH

    def test_financing_done_requires_docs(self):
        session = _locked(_picked_session(Plan.FINANCING))
        session.phase = Phase.P3_FIN
        session.financing = FinancingState(term=3)
        with pytest.raises(InvalidTransitionError):
            advance(session, PhaseTrigger.DOCS_RECEIVED)
        session.financing.docs_received_at = MORNING
        assert advance(session, PhaseTrigger.DOCS_RECEIVED) == Phase.DONE_FIN

    def test_terminal_phase_has_no_triggers(self):
        session = make_session(phase=Phase.DONE_CASH)
        machine = PhaseMachine(session)
        assert machine.is_terminal()
        assert machine.get_valid_triggers() == []


class TestMachineBookkeeping:
    def test_trace_records_each_move(self):
        session = make_session()
        machine = PhaseMachine(session)
        machine.transition(PhaseTrigger.QUALIFIED)
        machine.transition(PhaseTrigger.OFFERS_SENT)
        assert machine.get_phase_trace() == ["p1", "p2_pending", "p2_pick"]

    def test_failed_transition_leaves_phase(self):
        session = make_session(phase=Phase.P2_PENDING)
        with pytest.raises(InvalidTransitionError, match="p2_pending"):
            advance(session, PhaseTrigger.DOCS_RECEIVED)
        assert session.phase == Phase.P2_PENDING

    def test_valid_triggers_from_pick(self):
        machine = PhaseMachine(make_session(phase=Phase.P2_PICK))
        assert set(machine.get_valid_triggers()) == {
            PhaseTrigger.OFFERS_SENT,
            PhaseTrigger.PICKED_CASH,
            PhaseTrigger.PICKED_FINANCING,
        }
