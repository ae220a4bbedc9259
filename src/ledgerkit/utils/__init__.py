"""Utility functions for ledgerkit."""

from ledgerkit.utils.date_parser import parse_date
from ledgerkit.utils.money import parse_amount, to_money, round_money

__all__ = ["parse_date", "parse_amount", "to_money", "round_money"]
