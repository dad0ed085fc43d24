# app/services/aggregation.py
#
# Aggregation Engine
# Pure functions that turn a flat list of transactions into chart series,
# per-category totals, dashboard figures and monthly report totals.
#
# Inputs only need .date, .type, .amount and (for breakdowns) .category
# with .name / .color, so ORM rows and schema objects both work.

from collections import OrderedDict
from datetime import date, timedelta
from typing import Iterable, Any

from models import EntryType

PERIODS = ("week", "month", "year")

# Rolling window sizes in days for the day-bucketed periods
DAY_WINDOWS = {"week": 7, "month": 30}
YEAR_MONTHS = 12

UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_COLOR = "#9CA3AF"


# ---- Helpers ----

def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _shift_months(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def _build_buckets(period: str, today: date) -> "OrderedDict[str, dict]":
    """Empty buckets, oldest first, so missing days/months render as zero."""
    buckets: "OrderedDict[str, dict]" = OrderedDict()

    if period == "year":
        for offset in range(YEAR_MONTHS - 1, -1, -1):
            year, month = _shift_months(today.year, today.month, -offset)
            first = date(year, month, 1)
            buckets[_month_key(first)] = {
                "label": f"{first:%b} {first.year}",
                "income": 0.0,
                "expense": 0.0,
            }
        return buckets

    days = DAY_WINDOWS[period]
    start = today - timedelta(days=days - 1)
    for offset in range(days):
        d = start + timedelta(days=offset)
        buckets[d.isoformat()] = {
            "label": f"{d:%b} {d.day}",
            "income": 0.0,
            "expense": 0.0,
        }
    return buckets


# ---- Chart series ----

def aggregate(transactions: Iterable[Any], period: str, today: date | None = None) -> dict:
    """
    Bucket transactions for the income/expense line chart.

    period:
      - "week":  last 7 calendar days (today included)
      - "month": last 30 calendar days (rolling, NOT the calendar month)
      - "year":  last 12 calendar months (current month included)

    Transactions outside the window are dropped.
    Returns {"labels", "income_series", "expense_series"}, oldest bucket first.
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown period {period!r}; expected one of {PERIODS}")

    today = today or date.today()
    buckets = _build_buckets(period, today)

    for tx in transactions:
        tx_date = _as_date(tx.date)
        key = _month_key(tx_date) if period == "year" else tx_date.isoformat()

        bucket = buckets.get(key)
        if bucket is None:
            continue

        if tx.type == EntryType.INCOME:
            bucket["income"] += float(tx.amount)
        else:
            bucket["expense"] += float(tx.amount)

    return {
        "labels": [b["label"] for b in buckets.values()],
        "income_series": [round(b["income"], 2) for b in buckets.values()],
        "expense_series": [round(b["expense"], 2) for b in buckets.values()],
    }


# ---- Category breakdown ----

def breakdown_by_category(transactions: Iterable[Any]) -> list[dict]:
    """
    Group by category name and sum income and expense separately.

    Rows are sorted by name so the result does not depend on input order.
    When several categories share a name (e.g. an income and an expense
    "Other"), the row takes the color of the lowest category id.
    """
    groups: dict[str, dict] = {}
    color_ranks: dict[str, tuple] = {}

    for tx in transactions:
        category = getattr(tx, "category", None)
        name = getattr(category, "name", None) or UNCATEGORIZED_NAME
        color = getattr(category, "color", None) or UNCATEGORIZED_COLOR
        category_id = getattr(category, "id", None)

        row = groups.setdefault(name, {"name": name, "color": color, "income": 0.0, "expense": 0.0})
        rank = (category_id is None, category_id or 0, color)
        if name not in color_ranks or rank < color_ranks[name]:
            color_ranks[name] = rank
            row["color"] = color

        if tx.type == EntryType.INCOME:
            row["income"] += float(tx.amount)
        else:
            row["expense"] += float(tx.amount)

    rows = sorted(groups.values(), key=lambda r: (r["name"].lower(), r["name"]))
    for row in rows:
        row["income"] = round(row["income"], 2)
        row["expense"] = round(row["expense"], 2)
    return rows


# ---- Dashboard / report totals ----

def calculate_dashboard_stats(transactions: Iterable[Any], today: date | None = None) -> dict:
    """
    Headline numbers for the dashboard cards.

    total_balance covers all time. The "this month" figures use the
    calendar month containing `today`, which differs from the chart's
    rolling 30-day "month" window.
    """
    today = today or date.today()
    stats = {
        "total_balance": 0.0,
        "income_this_month": 0.0,
        "expenses_this_month": 0.0,
    }

    for tx in transactions:
        tx_date = _as_date(tx.date)
        amount = float(tx.amount)
        in_current_month = tx_date.year == today.year and tx_date.month == today.month

        if tx.type == EntryType.INCOME:
            stats["total_balance"] += amount
            if in_current_month:
                stats["income_this_month"] += amount
        else:
            stats["total_balance"] -= amount
            if in_current_month:
                stats["expenses_this_month"] += amount

    return {k: round(v, 2) for k, v in stats.items()}


def month_bounds(month: int, year: int) -> tuple[date, date]:
    """(first day, first day of next month) for a calendar month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be 1-12, got {month}")
    start = date(year, month, 1)
    next_year, next_month = _shift_months(year, month, 1)
    return start, date(next_year, next_month, 1)


def summarize_month(transactions: Iterable[Any], month: int, year: int) -> dict:
    """Totals and per-category breakdown for one calendar month."""
    start, end_exclusive = month_bounds(month, year)
    in_month = [tx for tx in transactions if start <= _as_date(tx.date) < end_exclusive]

    total_income = sum(float(tx.amount) for tx in in_month if tx.type == EntryType.INCOME)
    total_expenses = sum(float(tx.amount) for tx in in_month if tx.type != EntryType.INCOME)

    return {
        "month": month,
        "year": year,
        "total_income": round(total_income, 2),
        "total_expenses": round(total_expenses, 2),
        "net_balance": round(total_income - total_expenses, 2),
        "category_data": breakdown_by_category(in_month),
        "transaction_count": len(in_month),
    }
