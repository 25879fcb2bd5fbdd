# mypy: ignore-errors
# tests/test_quota.py
"""Tests for the append-only quota ledger."""

from datetime import UTC, datetime, timedelta

import pytest

from meriter.core.errors import ValidationError
from meriter.models import QuotaUsage
from meriter.services.quota import QuotaLedger, quota_window_start
from meriter.services.rule_store import resolve_effective_rules

NOW = datetime(2026, 3, 14, 15, 30, tzinfo=UTC)
TODAY = datetime(2026, 3, 14, tzinfo=UTC)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture()
def clock():
    return FakeClock(NOW)


@pytest.fixture()
def ledger(db_session, clock):
    return QuotaLedger(db_session, clock=clock)


@pytest.mark.parametrize("amount", [0, -1, -0.5])
def test_non_positive_amount_is_rejected_without_write(ledger, db_session, amount) -> None:
    with pytest.raises(ValidationError, match="Quota amount must be positive"):
        ledger.consume_quota("u1", "c1", amount, "vote", "ref")
    assert db_session.query(QuotaUsage).count() == 0


def test_unknown_usage_type_is_rejected(ledger) -> None:
    with pytest.raises(ValidationError):
        ledger.consume_quota("u1", "c1", 1, "gift", "ref")


def test_empty_history_sums_to_zero(ledger) -> None:
    assert ledger.get_quota_used("u1", "c1", TODAY) == 0


def test_each_call_appends_a_new_record(ledger, db_session) -> None:
    first = ledger.consume_quota("u1", "c1", 1, "vote", "same-ref")
    second = ledger.consume_quota("u1", "c1", 1, "vote", "same-ref")
    assert first.id != second.id
    assert db_session.query(QuotaUsage).count() == 2


def test_record_is_counted_exactly_once(ledger) -> None:
    usage = ledger.consume_quota("u1", "c1", 4, "vote", "ref")
    assert ledger.get_quota_used("u1", "c1", usage.created_at) == 4


def test_usage_sums_across_types_on_the_same_day(ledger) -> None:
    ledger.consume_quota("u1", "c1", 1, "publication_creation", "ref-1")
    ledger.consume_quota("u1", "c1", 2, "poll_creation", "ref-2")
    assert ledger.get_quota_used("u1", "c1", TODAY) == 3


def test_since_boundary_is_inclusive(ledger, clock) -> None:
    clock.now = NOW - timedelta(seconds=1)
    ledger.consume_quota("u1", "c1", 5, "vote", "before")
    clock.now = NOW
    ledger.consume_quota("u1", "c1", 2, "vote", "at")
    clock.now = NOW + timedelta(seconds=1)
    ledger.consume_quota("u1", "c1", 3, "vote", "after")

    assert ledger.get_quota_used("u1", "c1", NOW) == 5
    assert ledger.get_quota_used("u1", "c1", NOW - timedelta(seconds=1)) == 10


def test_other_users_and_communities_are_isolated(ledger) -> None:
    ledger.consume_quota("u1", "c1", 1, "vote", "a")
    ledger.consume_quota("u2", "c1", 10, "vote", "b")
    ledger.consume_quota("u1", "c2", 100, "vote", "c")
    assert ledger.get_quota_used("u1", "c1", TODAY) == 1


class TestWindow:
    def test_window_starts_at_midnight_utc(self) -> None:
        assert quota_window_start(NOW, day_start_hour=0) == TODAY

    def test_window_before_day_start_hour_belongs_to_previous_day(self) -> None:
        early = datetime(2026, 3, 14, 2, 0, tzinfo=UTC)
        assert quota_window_start(early, day_start_hour=6) == datetime(2026, 3, 13, 6, tzinfo=UTC)

    def test_later_manual_reset_opens_new_window(self) -> None:
        reset = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)
        assert quota_window_start(NOW, reset, day_start_hour=0) == reset

    def test_reset_from_previous_day_is_ignored(self) -> None:
        reset = datetime(2026, 3, 13, 12, 0, tzinfo=UTC)
        assert quota_window_start(NOW, reset, day_start_hour=0) == TODAY

    def test_naive_reset_timestamp_is_treated_as_utc(self) -> None:
        reset = datetime(2026, 3, 14, 12, 0)
        assert quota_window_start(NOW, reset, day_start_hour=0) == reset.replace(tzinfo=UTC)


class TestRemainingQuota:
    def test_remaining_is_daily_quota_minus_used(self, ledger, make_community) -> None:
        community = make_community("default", merit_settings={"daily_quota": 10})
        rules = resolve_effective_rules(community)
        ledger.consume_quota("u1", community.id, 4, "vote", "ref")
        assert ledger.get_remaining_quota("u1", community, rules, "participant") == 6

    def test_remaining_never_goes_negative(self, ledger, make_community) -> None:
        community = make_community("default", merit_settings={"daily_quota": 3})
        rules = resolve_effective_rules(community)
        ledger.consume_quota("u1", community.id, 5, "vote", "ref")
        assert ledger.get_remaining_quota("u1", community, rules, "participant") == 0

    def test_future_vision_has_no_quota(self, ledger, make_community) -> None:
        community = make_community("future-vision")
        rules = resolve_effective_rules(community)
        assert ledger.get_remaining_quota("u1", community, rules, "lead") == 0

    def test_roles_outside_recipients_have_no_quota(self, ledger, make_community) -> None:
        community = make_community("support")
        rules = resolve_effective_rules(community)
        assert ledger.get_remaining_quota("u1", community, rules, "viewer") == 0
        assert ledger.get_remaining_quota("u1", community, rules, None) == 0
        assert ledger.get_remaining_quota("u1", community, rules, "participant") == 100

    def test_manual_reset_restores_quota(self, ledger, clock, make_community) -> None:
        community = make_community("default", merit_settings={"daily_quota": 5})
        rules = resolve_effective_rules(community)
        clock.now = NOW - timedelta(hours=1)
        ledger.consume_quota("u1", community.id, 5, "vote", "ref")
        clock.now = NOW
        assert ledger.get_remaining_quota("u1", community, rules, "participant") == 0

        community.last_quota_reset_at = NOW - timedelta(minutes=5)
        assert ledger.get_remaining_quota("u1", community, rules, "participant") == 5
