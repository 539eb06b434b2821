"""
Tests for the lead view calculator.

Covers:
- Email thread rollup (latest timestamps, direction, day counts, owner)
- Primary quote resolution
- Stage rules in priority order, including the engaged/stalled overlay
- Next-step recommendations per stage
- Board filtering, ordering and serialisation
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from fieldops_config.schema import LeadViewRules
from fieldops_engines.lead_views import (
    CommsRollup,
    LeadViewCalculator,
    NextAction,
    TouchDirection,
)
from fieldops_kernel.domain.records import (
    EmailThreadRecord,
    LeadStage,
    ProjectRecord,
    QuoteRecord,
)

AS_OF = datetime(2026, 3, 18, 9, 0, tzinfo=timezone.utc)


def project(pid: str, status: str = "Quoted", **kwargs) -> ProjectRecord:
    fields = {"id": pid, "project_number": pid.upper(), "status": status}
    fields.update(kwargs)
    return ProjectRecord(**fields)


def quote(qid: str, project_id: str | None, status="sent", value="2500", days_ago=5) -> QuoteRecord:
    return QuoteRecord(
        id=qid,
        project_id=project_id,
        status=status,
        value=Decimal(value) if value is not None else None,
        created_at=AS_OF - timedelta(days=days_ago),
    )


def thread(
    tid: str,
    project_id: str | None,
    customer_days: float | None = None,
    internal_days: float | None = None,
    **kwargs,
) -> EmailThreadRecord:
    customer = AS_OF - timedelta(days=customer_days) if customer_days is not None else None
    internal = AS_OF - timedelta(days=internal_days) if internal_days is not None else None
    stamps = [t for t in (customer, internal) if t is not None]
    fields = {
        "id": tid,
        "project_id": project_id,
        "last_customer_message_at": customer,
        "last_internal_message_at": internal,
        "last_message_at": max(stamps) if stamps else None,
    }
    fields.update(kwargs)
    return EmailThreadRecord(**fields)


class TestCommsRollup:
    def setup_method(self):
        self.calculator = LeadViewCalculator()

    def test_no_threads(self):
        comms = self.calculator.rollup_comms([], AS_OF)

        assert comms == CommsRollup()
        assert comms.last_touch_direction is TouchDirection.UNKNOWN

    def test_latest_across_threads(self):
        comms = self.calculator.rollup_comms(
            [
                thread("t1", "p1", customer_days=5, internal_days=1),
                thread("t2", "p1", customer_days=2),
            ],
            AS_OF,
        )

        assert comms.thread_count == 2
        assert comms.last_customer_message_at == AS_OF - timedelta(days=2)
        assert comms.last_internal_message_at == AS_OF - timedelta(days=1)
        assert comms.last_message_at == AS_OF - timedelta(days=1)
        assert comms.last_touch_direction is TouchDirection.INTERNAL
        assert comms.days_since_customer == 2
        assert comms.days_since_internal == 1

    def test_customer_touched_last(self):
        comms = self.calculator.rollup_comms(
            [thread("t1", "p1", customer_days=1, internal_days=4)], AS_OF
        )

        assert comms.last_touch_direction is TouchDirection.CUSTOMER

    def test_any_unread(self):
        comms = self.calculator.rollup_comms(
            [thread("t1", "p1"), thread("t2", "p1", is_unread=True)], AS_OF
        )

        assert comms.has_unread

    def test_partial_day_truncated(self):
        comms = self.calculator.rollup_comms([thread("t1", "p1", customer_days=2.9)], AS_OF)

        assert comms.days_since_customer == 2

    def test_future_message_counts_as_today(self):
        comms = self.calculator.rollup_comms(
            [thread("t1", "p1", customer_days=-0.5)], AS_OF
        )

        assert comms.days_since_customer == 0

    def test_owner_from_most_recent_thread_with_one(self):
        comms = self.calculator.rollup_comms(
            [
                thread("t1", "p1", internal_days=5, assigned_to="sam"),
                thread("t2", "p1", internal_days=1, assigned_to="alex"),
                thread("t3", "p1", internal_days=0),
            ],
            AS_OF,
        )

        assert comms.assigned_to == "alex"


class TestPrimaryQuote:
    def setup_method(self):
        self.calculator = LeadViewCalculator()

    def test_no_quotes(self):
        assert self.calculator.primary_quote(project("p1"), []) is None

    def test_named_primary_wins(self):
        older = quote("q1", "p1", days_ago=30)
        newer = quote("q2", "p1", days_ago=1)

        chosen = self.calculator.primary_quote(
            project("p1", primary_quote_id="q1"), [older, newer]
        )

        assert chosen is older

    def test_newest_when_no_primary(self):
        older = quote("q1", "p1", days_ago=30)
        newer = quote("q2", "p1", days_ago=1)

        assert self.calculator.primary_quote(project("p1"), [newer, older]) is newer

    def test_unknown_primary_falls_back_to_newest(self):
        newer = quote("q2", "p1", days_ago=1)

        chosen = self.calculator.primary_quote(
            project("p1", primary_quote_id="gone"), [quote("q1", "p1", days_ago=9), newer]
        )

        assert chosen is newer


class TestClassify:
    """Stage rules, first match wins."""

    def setup_method(self):
        self.calculator = LeadViewCalculator()

    def classify(self, p, q=None, **comms):
        return self.calculator.classify(p, q, CommsRollup(**comms))

    def test_lost_status(self):
        decision = self.classify(project("p1", status="Lost"))

        assert decision.stage is LeadStage.LOST
        assert not decision.is_active
        assert decision.reasons == ("project_status_lost",)

    def test_cancelled_status_case_insensitive(self):
        assert self.classify(project("p1", status="CANCELLED")).stage is LeadStage.LOST

    def test_lost_date(self):
        decision = self.classify(project("p1", lost_date=date(2026, 3, 1)))

        assert decision.reasons == ("has_lost_date",)

    def test_declined_quote(self):
        decision = self.classify(project("p1"), quote("q1", "p1", status="Declined"))

        assert decision.stage is LeadStage.LOST
        assert decision.reasons == ("quote_declined",)

    def test_lost_beats_won(self):
        decision = self.classify(
            project("p1", status="Lost"), quote("q1", "p1", status="accepted")
        )

        assert decision.stage is LeadStage.LOST

    def test_completed_project_is_won(self):
        decision = self.classify(project("p1", status="Completed"))

        assert decision.stage is LeadStage.WON
        assert not decision.is_active

    def test_accepted_quote_is_won(self):
        decision = self.classify(
            project("p1", completed_date=date(2026, 3, 2)),
            quote("q1", "p1", status="accepted"),
        )

        assert decision.stage is LeadStage.WON
        assert decision.reasons == ("has_completed_date", "quote_accepted")

    def test_draft_quote(self):
        decision = self.classify(
            project("p1"), quote("q1", "p1", status="draft"), days_since_customer=30
        )

        assert decision.stage is LeadStage.QUOTE_DRAFT
        assert decision.is_active

    def test_sent_quote_without_contact(self):
        decision = self.classify(project("p1"), quote("q1", "p1"))

        assert decision.stage is LeadStage.QUOTE_SENT
        assert decision.reasons == ("quote_status_sent",)

    def test_recent_customer_makes_engaged(self):
        decision = self.classify(project("p1"), quote("q1", "p1"), days_since_customer=3)

        assert decision.stage is LeadStage.ENGAGED
        assert decision.reasons == ("quote_status_sent", "recent_customer_activity")

    def test_between_windows_stays_sent(self):
        decision = self.classify(project("p1"), quote("q1", "p1"), days_since_customer=4)

        assert decision.stage is LeadStage.QUOTE_SENT

    def test_silent_customer_makes_stalled(self):
        decision = self.classify(project("p1"), quote("q1", "p1"), days_since_customer=7)

        assert decision.stage is LeadStage.STALLED
        assert decision.reasons[-1] == "stalled_no_customer_activity"

    def test_unhandled_quote_status_treated_as_sent(self):
        decision = self.classify(project("p1"), quote("q1", "p1", status="Revised"))

        assert decision.stage is LeadStage.QUOTE_SENT
        assert decision.reasons == ("quote_status_unhandled:revised",)

    def test_quote_without_status(self):
        decision = self.classify(project("p1"), quote("q1", "p1", status=None))

        assert decision.reasons == ("quote_no_status",)

    def test_pricing_checklist(self):
        decision = self.classify(project("p1", checklist=("pricing requested",)))

        assert decision.stage is LeadStage.PRICING
        assert decision.reasons == ("pricing_requested",)

    def test_new(self):
        decision = self.classify(project("p1", checklist=("site measured",)))

        assert decision.stage is LeadStage.NEW
        assert decision.is_active

    def test_custom_windows(self):
        calculator = LeadViewCalculator(
            LeadViewRules(engaged_window_days=1, stalled_after_days=4, archive_after_days=10)
        )

        decision = calculator.classify(
            project("p1"), quote("q1", "p1"), CommsRollup(days_since_customer=4)
        )

        assert decision.stage is LeadStage.STALLED


class TestNextStep:
    def setup_method(self):
        self.calculator = LeadViewCalculator()

    def step(self, stage, **comms):
        return self.calculator.next_step(stage, CommsRollup(**comms), AS_OF)

    def test_won_and_lost_need_nothing(self):
        for stage in (LeadStage.WON, LeadStage.LOST):
            step = self.step(stage, has_unread=True)
            assert step.action is NextAction.NONE
            assert not step.is_due

    def test_unread_message_first(self):
        step = self.step(LeadStage.ENGAGED, has_unread=True, days_since_internal=0)

        assert step.action is NextAction.EMAIL
        assert step.follow_up_due_at == AS_OF

    def test_engaged_call_after_gap(self):
        assert self.step(LeadStage.ENGAGED, days_since_internal=2).action is NextAction.CALL

    def test_engaged_recently_contacted_waits(self):
        step = self.step(LeadStage.ENGAGED, days_since_internal=1)

        assert step.action is NextAction.WAIT
        assert step.follow_up_due_at is None

    def test_sent_no_reply_sms(self):
        step = self.step(LeadStage.QUOTE_SENT, days_since_internal=3)

        assert step.action is NextAction.SMS
        assert step.reason == "Quote sent; no customer response yet"

    def test_sent_customer_replied_earlier_call(self):
        step = self.step(LeadStage.QUOTE_SENT, days_since_customer=5, days_since_internal=3)

        assert step.action is NextAction.CALL

    def test_sent_recently_waits(self):
        assert self.step(LeadStage.QUOTE_SENT).action is NextAction.WAIT
        assert self.step(LeadStage.QUOTE_SENT, days_since_internal=1).action is NextAction.WAIT

    def test_stalled_follow_up(self):
        step = self.step(LeadStage.STALLED, days_since_customer=10)

        assert step.action is NextAction.EMAIL
        assert step.reason == "Stalled; send follow-up"

    def test_stalled_cold_archive(self):
        step = self.step(LeadStage.STALLED, days_since_customer=21)

        assert step.action is NextAction.ARCHIVE
        assert step.reason == "No customer contact for 21 days; archive"
        assert step.is_due

    def test_early_stages_email(self):
        for stage in (LeadStage.QUOTE_DRAFT, LeadStage.PRICING, LeadStage.NEW):
            step = self.step(stage)
            assert step.action is NextAction.EMAIL
            assert step.follow_up_due_at == AS_OF


class TestBuild:
    def setup_method(self):
        self.calculator = LeadViewCalculator()

    def test_follow_up_stages_only(self):
        board = self.calculator.build(
            projects=[
                project("new"),
                project("sent"),
                project("won", status="Completed"),
                project("gone", deleted_at=AS_OF - timedelta(days=1)),
            ],
            quotes=[quote("q1", "sent"), quote("q2", "gone")],
            threads=[],
            as_of=AS_OF,
        )

        assert [v.project_id for v in board.items] == ["sent"]
        assert board.items[0].stage is LeadStage.QUOTE_SENT

    def test_all_stages(self):
        board = self.calculator.build(
            projects=[project("new"), project("won", status="Completed")],
            quotes=[],
            threads=[],
            as_of=AS_OF,
            follow_up_only=False,
        )

        assert board.stage_counts() == {"new": 1, "won": 1}

    def test_configured_stages(self):
        calculator = LeadViewCalculator(LeadViewRules(follow_up_stages=("new",)))

        board = calculator.build(
            projects=[project("new"), project("sent")],
            quotes=[quote("q1", "sent")],
            threads=[],
            as_of=AS_OF,
        )

        assert [v.project_id for v in board.items] == ["new"]

    def test_ordering(self):
        board = self.calculator.build(
            projects=[project("a"), project("b"), project("c"), project("d")],
            quotes=[
                quote("qa", "a", value="1000"),
                quote("qb", "b", value="5000"),
                quote("qc", "c", value="3000"),
                quote("qd", "d", value="3000"),
            ],
            threads=[
                thread("ta", "a", customer_days=5),
                thread("tc", "c", customer_days=10),
                thread("td", "d", customer_days=8),
            ],
            as_of=AS_OF,
        )

        # b waits, so it sorts after every lead that is due
        assert [v.project_id for v in board.items] == ["d", "c", "a", "b"]
        assert [v.project_id for v in board.due()] == ["d", "c", "a"]

    def test_unknown_quote_value_sorts_last(self):
        board = self.calculator.build(
            projects=[project("a"), project("b")],
            quotes=[quote("qa", "a", value=None), quote("qb", "b", value="10")],
            threads=[],
            as_of=AS_OF,
        )

        assert [v.project_id for v in board.items] == ["b", "a"]

    def test_records_joined_by_project(self):
        board = self.calculator.build(
            projects=[project("p1"), project("p1")],
            quotes=[quote("q1", "p1"), quote("q9", None)],
            threads=[thread("t1", "p1", customer_days=1), thread("t9", "p2", customer_days=1)],
            as_of=AS_OF,
        )

        assert board.lead_count == 1
        lead = board.get("p1")
        assert lead.comms.thread_count == 1
        assert lead.stage is LeadStage.ENGAGED

    def test_to_dict(self):
        board = self.calculator.build(
            projects=[project("p1", customer_name="Harbourside Storage")],
            quotes=[quote("q1", "p1", value="1234.5")],
            threads=[thread("t1", "p1", customer_days=5)],
            as_of=AS_OF,
        )

        data = board.to_dict()
        assert data["lead_count"] == 1
        assert data["due_count"] == 1
        row = data["items"][0]
        assert row["lead_stage"] == "quote_sent"
        assert row["primary_quote_value"] == "1234.50"
        assert row["next_action"] == "call"
        assert row["follow_up_due_at"] == AS_OF.isoformat()
        assert row["days_since_customer"] == 5
        assert row["last_touch_direction"] == "customer"

    def test_traced(self, captured_logs):
        self.calculator.build(
            projects=[project("p1")], quotes=[], threads=[], as_of=AS_OF
        )

        traces = [
            r
            for r in captured_logs()
            if r["message"] == "FIELDOPS_ENGINE_TRACE" and r["engine_name"] == "lead_views"
        ]
        assert traces[0]["input_sizes"] == {"projects": 1, "quotes": 0, "threads": 0}
