"""
Tests for Revenue Reports
"""

import pytest
from datetime import datetime, timezone

from cueledger.billing.reports import RevenueReporter, period_bounds
from cueledger.core.errors import InvalidArgument

# Friday 14 March 2025
NOW = datetime(2025, 3, 14, 18, 0, tzinfo=timezone.utc)


class TestPeriodBounds:

    def test_daily_is_last_seven_days(self):
        bounds = period_bounds("daily", NOW)

        assert [name for name, _, _ in bounds] == ["Sat", "Sun", "Mon", "Tue", "Wed", "Thu", "Fri"]
        assert bounds[-1][1] == datetime(2025, 3, 14, tzinfo=timezone.utc)
        assert bounds[-1][2] == datetime(2025, 3, 15, tzinfo=timezone.utc)

    def test_weekly_is_four_monday_aligned_weeks(self):
        bounds = period_bounds("weekly", NOW)

        assert [name for name, _, _ in bounds] == ["Week 1", "Week 2", "Week 3", "Week 4"]
        assert bounds[-1][1] == datetime(2025, 3, 10, tzinfo=timezone.utc)
        assert bounds[0][1] == datetime(2025, 2, 17, tzinfo=timezone.utc)

    def test_monthly_crosses_year_boundary(self):
        bounds = period_bounds("monthly", NOW)

        assert [name for name, _, _ in bounds] == ["Oct", "Nov", "Dec", "Jan", "Feb", "Mar"]
        assert bounds[0][1] == datetime(2024, 10, 1, tzinfo=timezone.utc)
        assert bounds[-1][2] == datetime(2025, 4, 1, tzinfo=timezone.utc)

    def test_unknown_period(self):
        with pytest.raises(InvalidArgument):
            period_bounds("yearly", NOW)


class TestRevenueReporter:

    @pytest.fixture
    def busy_day(self, ledger, credits, billiard_table, ps4_station, clock):
        """Two closed sessions today and one settled credit."""
        clock.now = datetime(2025, 3, 13, 20, 0, tzinfo=timezone.utc)
        first = ledger.start_session(billiard_table.id)
        clock.advance(minutes=90)
        closed = ledger.end_session(first.session_id, "partial", 100, customer_name="Bob")

        clock.now = datetime(2025, 3, 14, 10, 0, tzinfo=timezone.utc)
        second = ledger.start_session(ps4_station.id)
        clock.advance(hours=1)
        ledger.end_session(second.session_id, "cash", 60)

        credits.settle_credit(closed.credit.credit_id)
        return closed

    def test_daily_report(self, store, busy_day):
        report = RevenueReporter(store).revenue("daily", now=NOW)
        by_day = {b.name: b for b in report.buckets}

        assert by_day["Thu"].revenue == 100
        assert by_day["Thu"].billiard_revenue == 100
        assert by_day["Thu"].sessions == 1
        assert by_day["Fri"].revenue == 110
        assert by_day["Fri"].ps4_revenue == 60
        assert by_day["Fri"].billiard_revenue == 50
        assert by_day["Fri"].sessions == 1
        assert report.total_revenue == 210
        assert report.total_sessions == 2
        assert report.outstanding_credits == 0

    def test_outstanding_credits_in_summary(self, store, ledger, billiard_table, clock):
        session = ledger.start_session(billiard_table.id)
        clock.advance(hours=1)
        ledger.end_session(session.session_id, "credit", 0, customer_name="Carol")

        payload = RevenueReporter(store, clock=clock).revenue("weekly").to_dict()

        assert payload["period"] == "weekly"
        assert len(payload["data"]) == 4
        assert payload["summary"]["outstanding_credits"] == 100
        assert payload["summary"]["total_revenue"] == 0
        assert payload["summary"]["total_sessions"] == 1

    def test_old_payments_fall_outside_window(self, store, busy_day):
        report = RevenueReporter(store).revenue("daily", now=datetime(2025, 4, 30, tzinfo=timezone.utc))
        assert report.total_revenue == 0
