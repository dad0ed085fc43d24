"""
Tests for the aggregation engine (chart buckets, breakdowns, totals).
"""

from datetime import date
from types import SimpleNamespace

import pytest

from app.services.aggregation import (
    aggregate,
    breakdown_by_category,
    calculate_dashboard_stats,
    month_bounds,
    summarize_month,
)

TODAY = date(2025, 1, 20)


def tx(day, tx_type, amount, category=None):
    cat = SimpleNamespace(name=category, color="#111111") if category else None
    return SimpleNamespace(date=day, type=tx_type, amount=amount, category=cat)


SAMPLE = [
    tx(date(2025, 1, 20), "income", 1000.0, "Salary"),
    tx(date(2025, 1, 15), "expense", 42.50, "Groceries"),
    tx(date(2025, 1, 14), "expense", 7.25, "Coffee"),
    tx(date(2024, 12, 28), "expense", 100.0, "Groceries"),
    tx(date(2024, 3, 1), "income", 50.0, "Gifts"),
    tx(date(2023, 1, 1), "expense", 999.0, "Old"),
]


class TestAggregate:

    @pytest.mark.parametrize("period, length", [("week", 7), ("month", 30), ("year", 12)])
    def test_bucket_count(self, period, length):
        chart = aggregate([], period, TODAY)
        assert len(chart["labels"]) == length
        assert len(chart["income_series"]) == length
        assert len(chart["expense_series"]) == length
        assert set(chart["income_series"]) == {0.0}

    def test_week_labels_oldest_first(self):
        chart = aggregate([], "week", TODAY)
        assert chart["labels"][0] == "Jan 14"
        assert chart["labels"][-1] == "Jan 20"

    def test_year_labels_cover_twelve_months(self):
        chart = aggregate([], "year", TODAY)
        assert chart["labels"][0] == "Feb 2024"
        assert chart["labels"][-1] == "Jan 2025"

    def test_month_window_is_rolling_30_days(self):
        """Dec 28 is outside January but inside the last 30 days."""
        chart = aggregate(SAMPLE, "month", TODAY)
        assert chart["labels"][0] == "Dec 22"
        assert sum(chart["expense_series"]) == pytest.approx(149.75)
        assert sum(chart["income_series"]) == pytest.approx(1000.0)

    def test_series_sum_matches_in_window_total(self):
        chart = aggregate(SAMPLE, "year", TODAY)
        start = date(2024, 2, 1)
        expected_income = sum(t.amount for t in SAMPLE if t.type == "income" and t.date >= start)
        expected_expense = sum(t.amount for t in SAMPLE if t.type == "expense" and t.date >= start)
        assert sum(chart["income_series"]) == pytest.approx(expected_income)
        assert sum(chart["expense_series"]) == pytest.approx(expected_expense)

    def test_out_of_window_transactions_are_dropped(self):
        chart = aggregate([tx(date(2025, 1, 10), "expense", 5.0)], "week", TODAY)
        assert sum(chart["expense_series"]) == 0.0

    def test_input_order_does_not_matter(self):
        assert aggregate(SAMPLE, "year", TODAY) == aggregate(list(reversed(SAMPLE)), "year", TODAY)

    def test_iso_strings_are_accepted(self):
        chart = aggregate([tx("2025-01-19", "income", 3.0)], "week", TODAY)
        assert chart["income_series"][-2] == 3.0

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            aggregate([], "decade", TODAY)


class TestBreakdown:

    def test_groups_by_category_name(self):
        rows = breakdown_by_category(SAMPLE)
        names = [r["name"] for r in rows]
        assert names == sorted(names, key=str.lower)

        groceries = next(r for r in rows if r["name"] == "Groceries")
        assert groceries["expense"] == 142.5
        assert groceries["income"] == 0.0

    def test_same_name_categories_are_order_independent(self):
        """An income and an expense "Other" merge into one row with a stable color."""
        income_other = SimpleNamespace(id=7, name="Other", color="#00FF00")
        expense_other = SimpleNamespace(id=3, name="Other", color="#FF0000")
        rows = [
            SimpleNamespace(date=TODAY, type="income", amount=10.0, category=income_other),
            SimpleNamespace(date=TODAY, type="expense", amount=5.0, category=expense_other),
        ] + SAMPLE

        forward = breakdown_by_category(rows)
        assert forward == breakdown_by_category(list(reversed(rows)))

        other = next(r for r in forward if r["name"] == "Other")
        assert other == {"name": "Other", "color": "#FF0000", "income": 10.0, "expense": 5.0}

    def test_missing_category_is_uncategorized(self):
        rows = breakdown_by_category([tx(TODAY, "expense", 1.0)])
        assert rows[0]["name"] == "Uncategorized"


class TestDashboardStats:

    def test_this_month_is_calendar_month(self):
        stats = calculate_dashboard_stats(SAMPLE, TODAY)
        assert stats["income_this_month"] == 1000.0
        assert stats["expenses_this_month"] == 49.75

    def test_total_balance_is_all_time(self):
        stats = calculate_dashboard_stats(SAMPLE, TODAY)
        assert stats["total_balance"] == pytest.approx(1050.0 - 42.5 - 7.25 - 100.0 - 999.0)

    def test_empty(self):
        assert calculate_dashboard_stats([], TODAY) == {
            "total_balance": 0.0,
            "income_this_month": 0.0,
            "expenses_this_month": 0.0,
        }


class TestMonthSummary:

    def test_month_bounds_december(self):
        assert month_bounds(12, 2024) == (date(2024, 12, 1), date(2025, 1, 1))

    def test_month_bounds_rejects_bad_month(self):
        with pytest.raises(ValueError):
            month_bounds(13, 2024)

    def test_summarize_month(self):
        report = summarize_month(SAMPLE, 1, 2025)
        assert report["total_income"] == 1000.0
        assert report["total_expenses"] == 49.75
        assert report["net_balance"] == 950.25
        assert report["transaction_count"] == 3
        assert {r["name"] for r in report["category_data"]} == {"Salary", "Groceries", "Coffee"}
