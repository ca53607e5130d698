"""Unit tests for domain models."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from neo_alerts.domain.models import DiameterRange, HazardEvent, Notification, Recipient
from tests.helpers import make_event, make_notification


class TestDiameterRange:
    """Tests for DiameterRange."""

    def test_average_of_bounds(self):
        assert DiameterRange(min_m=200.0, max_m=230.6).average_m == pytest.approx(215.3)

    @pytest.mark.parametrize("bounds", [{"min_m": 200.0}, {"max_m": 230.6}, {}])
    def test_incomplete_range(self, bounds):
        diameter = DiameterRange(**bounds)

        assert diameter.is_complete is False
        assert diameter.average_m is None


class TestHazardEvent:
    """Tests for HazardEvent model."""

    def test_valid_event(self):
        event = make_event()

        assert event.asteroid_name == "(2024 AB1)"
        assert event.close_approach_date == date(2025, 11, 4)
        assert event.miss_distance_km == Decimal("4512345.6789")
        assert event.estimated_diameter_avg_m == 215.3

    def test_event_is_immutable(self):
        event = make_event()

        with pytest.raises(ValidationError):
            event.asteroid_name = "(433) Eros"

    def test_equal_events_compare_equal(self):
        assert make_event() == make_event()

    def test_key(self):
        assert make_event().key == "(2024 AB1)@2025-11-04"

    def test_close_approach_date_required(self):
        with pytest.raises(ValidationError):
            make_event(approach=None)

    def test_missing_field_rejected(self):
        with pytest.raises(ValidationError):
            HazardEvent(asteroid_name="(2024 AB1)", close_approach_date=date(2025, 11, 4), miss_distance_km=Decimal("1"))


class TestNotification:
    """Tests for Notification model."""

    def test_defaults_to_unsent(self):
        assert make_notification().sent is False

    def test_naive_created_at_treated_as_utc(self):
        notification = Notification(
            id=1,
            asteroid_name="(2024 AB1)",
            close_approach_date=date(2025, 11, 4),
            miss_distance_km=Decimal("4512345.6789"),
            estimated_diameter_avg_m=215.3,
            created_at=datetime(2025, 11, 1, 12, 0),
        )

        assert notification.created_at.tzinfo == timezone.utc

    def test_created_at_converted_to_utc(self):
        eastern = timezone(timedelta(hours=-5))
        data = make_notification().model_dump()
        data["created_at"] = datetime(2025, 11, 1, 7, 0, tzinfo=eastern)

        notification = Notification.model_validate(data)

        assert notification.created_at == datetime(2025, 11, 1, 12, 0, tzinfo=timezone.utc)
        assert notification.created_at.tzinfo == timezone.utc


class TestRecipient:
    """Tests for Recipient model."""

    def test_defaults(self):
        recipient = Recipient(id=1, email="ada@example.com")

        assert recipient.display_name is None
        assert recipient.notifications_enabled is True
