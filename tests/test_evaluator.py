"""Tests for expiry evaluation."""

from datetime import timedelta
from pathlib import Path

import pytest

from certreminder.evaluator import days_remaining, evaluate
from certreminder.models import Entity, ExpiryStatus, NotificationDecision, Policy


def _entity(now, **delta) -> Entity:
    return Entity(id="a.example", certificate_path=Path("/dev/null"), expiry=now + timedelta(**delta))


class TestDaysRemaining:
    """Test whole-day arithmetic."""

    def test_exact_days(self, now):
        assert days_remaining(now + timedelta(days=10), now) == 10

    def test_partial_day_floors(self, now):
        assert days_remaining(now + timedelta(days=10, hours=23), now) == 10

    def test_expired_floors_toward_negative(self, now):
        assert days_remaining(now - timedelta(hours=1), now) == -1
        assert days_remaining(now - timedelta(days=3), now) == -3

    def test_less_than_a_day_left(self, now):
        assert days_remaining(now + timedelta(hours=5), now) == 0


class TestEvaluate:
    """Test the notify decision."""

    def test_inside_window_notifies(self, now):
        decision = evaluate(_entity(now, days=10), Policy(warning_days=14), now)
        assert decision.should_notify
        assert decision.days_remaining == 10
        assert decision.status == ExpiryStatus.EXPIRING

    def test_outside_window_does_not_notify(self, now):
        decision = evaluate(_entity(now, days=30), Policy(warning_days=14), now)
        assert not decision.should_notify
        assert decision.status == ExpiryStatus.OK

    def test_boundary_is_inclusive(self, now):
        assert evaluate(_entity(now, days=14), Policy(warning_days=14), now).should_notify
        assert not evaluate(_entity(now, days=15), Policy(warning_days=14), now).should_notify

    def test_expired_notifies(self, now):
        decision = evaluate(_entity(now, days=-2), Policy(warning_days=14), now)
        assert decision.should_notify
        assert decision.days_remaining == -2
        assert decision.status == ExpiryStatus.EXPIRED

    def test_override_threshold_governs(self, now):
        # Five days left would be inside the default 14-day window
        decision = evaluate(_entity(now, days=5), Policy(warning_days=2), now)
        assert not decision.should_notify

    @pytest.mark.parametrize("days", [-1, 0, 1, 13, 14, 15, 100])
    def test_decision_matches_threshold(self, now, days):
        decision = evaluate(_entity(now, days=days), Policy(warning_days=14), now)
        assert decision.should_notify == (decision.days_remaining <= 14)

    def test_inconsistent_decision_rejected(self):
        with pytest.raises(ValueError):
            NotificationDecision(
                entity_id="a.example",
                days_remaining=30,
                policy=Policy(warning_days=14),
                should_notify=True,
            )
