"""Utility functions for orgledger."""

from orgledger.utils.date_parser import parse_date, get_date_range
from orgledger.utils.amount_parser import parse_amount, format_amount

__all__ = ["parse_date", "get_date_range", "parse_amount", "format_amount"]
