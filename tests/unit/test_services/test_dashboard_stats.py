"""Tests for dashboard statistics."""

from datetime import date

import pytest

from agent_panel.models.agent import AgentRecord
from agent_panel.services.dashboard_stats import (
    build_dashboard,
    format_inr,
    format_lakh,
    group_indian,
    month_labels,
    percentage_change,
    ratio_percent,
)
from tests.utils.assertions import assert_no_private_fields
from tests.utils.factories import create_agent_row

TODAY = date(2024, 6, 15)


@pytest.mark.unit
class TestFormatting:

    @pytest.mark.parametrize("digits, expected", [
        ("7", "7"),
        ("999", "999"),
        ("1000", "1,000"),
        ("100000", "1,00,000"),
        ("2500000", "25,00,000"),
        ("123456789", "12,34,56,789"),
    ])
    def test_indian_grouping(self, digits, expected):
        assert group_indian(digits) == expected

    def test_inr(self):
        assert format_inr(2500000) == "₹25,00,000"
        assert format_inr(0) == "₹0"
        assert format_inr(2.5) == "₹3"
        assert format_inr(-1234567) == "-₹12,34,567"
        assert format_inr(None) == "N/A"

    def test_lakh_ticks(self):
        assert format_lakh(2500000) == "₹25L"
        assert format_lakh(320000) == "₹3.2L"
        assert format_lakh(0) == "₹0L"

    def test_percentage_change(self):
        assert percentage_change(420000, 380000) == 10.5
        assert percentage_change(80, 100) == -20.0
        assert percentage_change(5, 0) is None

    def test_ratio_percent(self):
        assert ratio_percent(96, 1200) == 8.0
        assert ratio_percent(1, 3) == 33.3
        assert ratio_percent(1, 0) is None

    def test_month_labels_wrap_the_year(self):
        assert month_labels(TODAY) == ("June", "May")
        assert month_labels(date(2024, 1, 5)) == ("January", "December")


@pytest.mark.unit
class TestBuildDashboard:

    def test_cards_from_counters(self):
        record = AgentRecord(**create_agent_row(user_id="uid-1"))

        stats = build_dashboard(record, TODAY)

        cards = {card.title: card for card in stats.cards}
        assert list(cards) == [
            "Total Users", "Active Users", "Revenue", "Total Revenue", "Successful Matches", "Premium Users",
        ]
        assert cards["Total Users"].value == "1,200"
        assert cards["Total Users"].trend == 12.5
        assert cards["Revenue"].value == "₹4,20,000"
        assert cards["Revenue"].trend == 10.5
        assert cards["Revenue"].description == "Revenue for May"
        assert cards["Total Revenue"].value == "₹45,00,000"
        assert cards["Successful Matches"].value == "96"
        assert stats.current_month == "June"

    def test_performance_metrics(self):
        stats = build_dashboard(AgentRecord(**create_agent_row(user_id="uid-1")), TODAY)

        assert stats.metrics.premium_ratio == 25.0
        assert stats.metrics.premium_ratio_display == "25.0%"
        assert stats.metrics.match_ratio_display == "8.0%"
        assert stats.metrics.revenue_per_user_display == "₹3,750"
        assert stats.user_distribution == {"Premium Users": 300, "Regular Users": 900}

    def test_new_agent_without_users(self):
        record = AgentRecord(**create_agent_row(
            user_id="uid-1", total_users=0, active_users=0, last_month_active_users=0, premium_users=0,
            successful_matches=0, total_revenue=0, last_month_revenue=0, previous_month_revenue=0,
        ))

        stats = build_dashboard(record, TODAY)

        assert stats.metrics.premium_ratio is None
        assert stats.metrics.premium_ratio_display == "N/A"
        assert stats.metrics.revenue_per_user_display == "N/A"
        assert all(card.trend is None for card in stats.cards)
        assert stats.user_distribution == {"Premium Users": 0, "Regular Users": 0}

    def test_chart_series(self):
        record = AgentRecord(**create_agent_row(
            user_id="uid-1",
            revenue_history=[{"month": "Apr", "value": 2500000}, {"month": "May", "value": 320000}],
            match_history=[{"month": "Apr", "value": 1200}, {"month": "May", "value": 8}],
        ))

        revenue, matches = build_dashboard(record, TODAY).charts

        assert revenue.title == "Revenue Trend"
        assert revenue.labels == ["Apr", "May"]
        assert revenue.tick_labels == ["₹25L", "₹3.2L"]
        assert matches.values == [1200, 8]
        assert matches.tick_labels == ["1,200", "8"]

    def test_profile_is_public(self):
        stats = build_dashboard(AgentRecord(**create_agent_row(user_id="uid-1")), TODAY)

        assert_no_private_fields(stats.profile)
        assert stats.profile["name"] == "Ravi Kumar"
        assert "total_revenue" not in stats.profile
