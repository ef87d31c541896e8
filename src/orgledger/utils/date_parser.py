"""Date parsing utilities."""

import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Accepts absolute dates ("2024-01-15", "15 Jan 2024") and the relative
    words "today", "yesterday" and "tomorrow".

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = date.today()

    relative = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if text in relative:
        return relative[text]

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a reporting period.

    Args:
        period: One of this-month, last-month, this-year, last-year

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()
    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)

    if period == "this-month":
        return (month_start, today)
    if period == "last-month":
        return (month_start - relativedelta(months=1), month_start - timedelta(days=1))
    if period == "this-year":
        return (year_start, today)
    if period == "last-year":
        return (year_start - relativedelta(years=1), year_start - timedelta(days=1))

    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: this-month, last-month, this-year, last-year"
    )


_BUDGET_PERIOD = re.compile(r"^(\d{4})(?:-(?:(0[1-9]|1[0-2])|[Qq]([1-4])))?$")


def get_budget_period_range(period: str) -> tuple[date, date]:
    """Get start and end dates covered by a budget period.

    Args:
        period: A year ("2024"), a month ("2024-03") or a quarter ("2024-Q1")

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Raises:
        ValueError: If the period is not in one of those forms
    """
    match = _BUDGET_PERIOD.match(period.strip())
    if match is None:
        raise ValueError(
            f"Invalid budget period: '{period}'. Use YYYY, YYYY-MM or YYYY-Qn (e.g. 2024, 2024-03, 2024-Q1)"
        )
    year, month, quarter = match.groups()

    if month:
        start = date(int(year), int(month), 1)
        length = relativedelta(months=1)
    elif quarter:
        start = date(int(year), 3 * (int(quarter) - 1) + 1, 1)
        length = relativedelta(months=3)
    else:
        start = date(int(year), 1, 1)
        length = relativedelta(years=1)
    return (start, start + length - timedelta(days=1))


def normalize_budget_period(period: str) -> str:
    """Validate a budget period and return its canonical spelling ("2024-q1" -> "2024-Q1")."""
    get_budget_period_range(period)
    return period.strip().upper()
