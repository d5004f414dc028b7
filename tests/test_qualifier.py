"""Tests for the qualification stage: slot order, debounce, greeting and summary."""

import pytest

from salesbot.conversation.qualifier import (
    apply_pending_answer,
    format_summary,
    next_missing,
    qualifier_turn,
    should_debounce,
)
from salesbot.conversation.slot_extractor import parse_message
from salesbot.prompts import replies
from salesbot.schemas.session_schema import Phase, Plan, Session, Slots, Transmission
from tests.conftest import MORNING, cash_slots, make_session


def _bodies(result):
    return [action.body for action in result.actions]


class TestNextMissing:
    def test_empty_slots_ask_plan(self):
        assert next_missing(Slots()) == "plan"

    def test_cash_requires_budget(self):
        assert next_missing(Slots(plan=Plan.CASH)) == "budget"

    def test_financing_skips_budget(self):
        assert next_missing(Slots(plan=Plan.FINANCING)) == "location"

    def test_order_after_location(self):
        slots = Slots(plan=Plan.FINANCING, location="pasig")
        assert next_missing(slots) == "body_type"
        slots.body_type = "suv"
        assert next_missing(slots) == "transmission"

    def test_first_gap_wins_even_when_later_slots_are_set(self):
        slots = Slots(plan=Plan.CASH, location="qc", body_type="suv",
                      transmission=Transmission.ANY)
        assert next_missing(slots) == "budget"

    def test_complete(self):
        assert next_missing(cash_slots()) is None


class TestDebounce:
    def test_first_ask_is_recorded(self):
        session = make_session()
        assert should_debounce(session, "plan", MORNING, window=1.5) is False
        assert session.last_asked == "plan"
        assert session.last_prompt_at == MORNING

    def test_same_slot_inside_window_is_suppressed(self):
        session = make_session()
        should_debounce(session, "plan", MORNING, window=1.5)
        assert should_debounce(session, "plan", MORNING + 1.0, window=1.5) is True

    def test_same_slot_after_window(self):
        session = make_session()
        should_debounce(session, "plan", MORNING, window=1.5)
        assert should_debounce(session, "plan", MORNING + 1.5, window=1.5) is False

    def test_different_slot_is_never_suppressed(self):
        session = make_session()
        should_debounce(session, "plan", MORNING, window=1.5)
        assert should_debounce(session, "location", MORNING + 0.1, window=1.5) is False
        assert session.last_asked == "location"


class TestQualifierTurn:
    def test_new_buyer_is_greeted_then_asked_plan(self):
        session = make_session(welcomed=False)
        result = qualifier_turn(session, Slots(), MORNING)
        assert _bodies(result) == [replies.GREET_NEW, replies.ASK_SLOT["plan"]]
        assert session.is_welcomed
        assert not result.done

    def test_returning_buyer_gets_welcome_back(self):
        session = Session.new("PSID-1", MORNING, is_returning=True)
        result = qualifier_turn(session, Slots(), MORNING)
        assert _bodies(result)[0] == replies.GREET_RETURNING

    def test_greets_only_once(self):
        session = make_session(welcomed=False)
        qualifier_turn(session, Slots(), MORNING)
        result = qualifier_turn(session, Slots(plan=Plan.CASH), MORNING + 5)
        assert _bodies(result) == [replies.ASK_SLOT["budget"]]

    def test_scenario_all_slots_in_one_message(self):
        session = make_session()
        parsed = parse_message("cash 500k qc sedan automatic").slots
        result = qualifier_turn(session, parsed, MORNING)

        assert result.done
        assert session.phase == Phase.P2_PENDING
        assert session.slots.plan == Plan.CASH
        assert session.slots.budget == 500000
        assert session.slots.location == "qc"
        assert session.slots.body_type == "sedan"
        assert session.slots.transmission == Transmission.AUTOMATIC
        bodies = _bodies(result)
        assert len(bodies) == 2
        assert bodies[0].startswith(replies.SUMMARY_INTRO)
        assert bodies[1] == replies.SEARCHING

    def test_repeat_turn_inside_window_sends_nothing(self):
        session = make_session()
        first = qualifier_turn(session, Slots(), MORNING)
        second = qualifier_turn(session, Slots(), MORNING + 1)
        assert _bodies(first) == [replies.ASK_SLOT["plan"]]
        assert second.actions == []
        assert session.phase == Phase.P1

    def test_repeat_turn_after_window_re_asks(self):
        session = make_session()
        qualifier_turn(session, Slots(), MORNING)
        result = qualifier_turn(session, Slots(), MORNING + 2)
        assert _bodies(result) == [replies.ASK_SLOT["plan"]]

    def test_slots_are_never_cleared(self):
        session = make_session(slots=Slots(plan=Plan.CASH, budget=450000))
        qualifier_turn(session, parse_message("hello").slots, MORNING)
        assert session.slots.plan == Plan.CASH
        assert session.slots.budget == 450000

    def test_new_value_overwrites_old(self):
        session = make_session(slots=Slots(plan=Plan.CASH, budget=450000))
        qualifier_turn(session, parse_message("600k na lang").slots, MORNING)
        assert session.slots.budget == 600000


class TestPendingAnswers:
    def test_any_answers_body_type(self):
        session = make_session(slots=Slots(plan=Plan.FINANCING, location="pasig"))
        parsed = parse_message("any").slots
        apply_pending_answer(session, "any", parsed)
        assert parsed.body_type == "any"
        assert parsed.transmission is None

    def test_any_answers_transmission_when_body_is_known(self):
        session = make_session(slots=Slots(plan=Plan.FINANCING, location="pasig", body_type="suv"))
        parsed = parse_message("any").slots
        apply_pending_answer(session, "any", parsed)
        assert parsed.body_type is None
        assert parsed.transmission == Transmission.ANY

    @pytest.mark.parametrize("text, place", [
        ("San Pablo", "san pablo"),
        ("San Jose del Monte", "san jose del monte"),
    ])
    def test_free_text_location(self, text, place):
        session = make_session(slots=Slots(plan=Plan.FINANCING))
        parsed = parse_message(text).slots
        apply_pending_answer(session, text, parsed)
        assert parsed.location == place

    @pytest.mark.parametrize("text", [
        "ok", "salamat", "09171234567", "pwede po ba", "magkano po",
        "di ko pa alam", "hindi ko alam eh", "basta malapit lang sa bahay namin",
    ])
    def test_chatter_is_not_a_location(self, text):
        session = make_session(slots=Slots(plan=Plan.FINANCING))
        parsed = parse_message(text).slots
        apply_pending_answer(session, text, parsed)
        assert parsed.location is None


class TestSummary:
    def test_cash_summary_lists_budget(self):
        summary = format_summary(cash_slots(brand_pref="toyota", model_pref="vios"))
        assert "• Budget: ₱500,000" in summary
        assert "• Payment: cash" in summary
        assert "• Pref: toyota vios" in summary

    def test_financing_summary_omits_budget(self):
        summary = format_summary(cash_slots(plan=Plan.FINANCING))
        assert "Budget" not in summary
        assert "• Transmission: automatic" in summary
