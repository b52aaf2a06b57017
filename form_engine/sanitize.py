"""
Utility functions for sanitizing user input before it leaves the application.

Escaping targets HTML embedding: the exported record may be rendered by
another system, so every string leaf is entity-escaped once, at submit time.
"""

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Dict

from .exceptions import SanitizationError

logger = logging.getLogger(__name__)

# Ampersand must come first so later replacements are not escaped again
HTML_ESCAPES = (
    ('&', '&amp;'),
    ('<', '&lt;'),
    ('>', '&gt;'),
    ('"', '&quot;'),
    ("'", '&#x27;'),
    ('/', '&#x2F;'),
)

EMPLOYER_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-.,&'()]+$")
MAX_EMPLOYER_NAME_LENGTH = 100
MAX_INCOME = 1_000_000_000


def sanitize_string(value: Any) -> str:
    """
    Escape HTML special characters in a string.

    Args:
        value: The string to sanitize

    Returns:
        The escaped string, or an empty string if value is not a string
    """
    if not isinstance(value, str):
        return ''

    for char, entity in HTML_ESCAPES:
        value = value.replace(char, entity)
    return value


def sanitize_form_data(data: Any) -> Dict[str, Any]:
    """
    Return a copy of form data with every string value escaped.

    Dates pass through untouched and nested mappings are sanitized
    recursively. Lists are copied as-is: strings inside a list are NOT
    escaped.

    Args:
        data: The form data mapping to sanitize

    Returns:
        A new dictionary with all string values sanitized

    Raises:
        SanitizationError: If data is not a mapping or sanitization fails
    """
    if data is None or not isinstance(data, Mapping):
        raise SanitizationError('Invalid data: Expected an object')

    sanitized: Dict[str, Any] = {}

    try:
        for key, value in data.items():
            if isinstance(value, str):
                sanitized[key] = sanitize_string(value)
            elif isinstance(value, (datetime, date)):
                sanitized[key] = value
            elif isinstance(value, Mapping):
                sanitized[key] = sanitize_form_data(value)
            else:
                sanitized[key] = value
    except SanitizationError:
        raise
    except Exception as e:
        logger.error(f"Sanitization failed: {e}", exc_info=True)
        raise SanitizationError(f"Failed to sanitize data: {e}") from e

    return sanitized


def validate_income(income: Any) -> bool:
    """
    Check that income lies within 0 and 1 billion, both inclusive.

    This standalone check accepts zero, unlike the form-level rule which
    requires a strictly positive amount.
    """
    if isinstance(income, bool) or not isinstance(income, (int, float)):
        return False
    return 0 <= income <= MAX_INCOME


def validate_employer_name(name: Any) -> bool:
    """
    Check employer name format and length.

    Allows letters, numbers, whitespace and common business punctuation
    (- . , & ' parentheses), at most 100 characters.
    """
    if not isinstance(name, str):
        return False
    return bool(EMPLOYER_NAME_PATTERN.match(name)) and len(name) <= MAX_EMPLOYER_NAME_LENGTH
