"""
Input validation for caller-supplied parameters
"""

import re

from .errors import ValidationError

SYMBOL_PATTERN = re.compile(r'[A-Za-z.-]+')

def validate_symbol(symbol: str) -> str:
    """
    Validate a ticker symbol before any network activity

    Args:
        symbol: Ticker as typed by the caller (e.g. "AAPL", "BRK.B", "RDS-A")

    Returns:
        The symbol, unchanged

    Raises:
        ValidationError: If the symbol is empty or has characters outside [A-Za-z.-]
    """
    if not symbol:
        raise ValidationError('Stock symbol is required', field='symbol')

    if not isinstance(symbol, str) or not SYMBOL_PATTERN.fullmatch(symbol):
        raise ValidationError('Invalid stock symbol format', field='symbol')

    return symbol
