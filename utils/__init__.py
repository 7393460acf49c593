"""Utility module."""
from utils.retry import retry_with_backoff, retry_call
from utils.validators import validate_theme, parse_published_date

__all__ = [
    "retry_with_backoff",
    "retry_call",
    "validate_theme",
    "parse_published_date",
]
