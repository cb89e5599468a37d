"""Parsing helpers shared by the CLI: user-typed dates, amounts and account references."""

from cashify.utils.account_resolver import resolve_account
from cashify.utils.amount_parser import parse_amount
from cashify.utils.date_parser import PERIODS, get_date_range, parse_date

__all__ = ["PERIODS", "get_date_range", "parse_amount", "parse_date", "resolve_account"]
