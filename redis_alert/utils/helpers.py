"""Utility helper functions"""

from decimal import Decimal, InvalidOperation
from typing import List


def split_by_commas(value) -> List[str]:
    """Split a comma-separated id list, dropping blanks"""
    if not value:
        return []
    return [part.strip() for part in str(value).split(',') if part.strip()]


def parse_id_list(value) -> List[int]:
    """
    Parse a comma-separated id list into integers.

    Entries that are not integers are dropped, so a malformed list
    degrades to fewer ids rather than an error.
    """
    ids = []
    for part in split_by_commas(value):
        try:
            ids.append(int(part))
        except ValueError:
            continue
    return ids


def to_decimal(value) -> Decimal:
    """Convert a number to Decimal through its shortest repr"""
    try:
        return Decimal(repr(value)) if isinstance(value, float) else Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def format_number(value) -> str:
    """Render a metric number, dropping a trailing .0 on integral values"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
