"""
Data Transformer Module
Coerces raw spreadsheet cells to the data types declared in a mapping configuration.

Every transform is total: a value that cannot be coerced is returned unchanged.
"""

import math
import re
from typing import Any, List, Optional
from loguru import logger
import pandas as pd

from .config_loader import MappingConfiguration, BooleanVocabulary


def is_blank(value: Any) -> bool:
    """True for None, NaN and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ''


def format_scalar(value: Any) -> str:
    """
    Render a cell value as text.

    Booleans render as "true"/"false" and integral floats lose their ".0",
    so spreadsheet numbers such as 12.0 read back as "12".

    Args:
        value: Cell value

    Returns:
        Text form of the value ("" for blanks)
    """
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ValueTransformer:
    """Transform cell values according to a field's data type."""

    def __init__(self, mapping: Optional[MappingConfiguration] = None):
        """
        Initialize value transformer.

        Args:
            mapping: Mapping configuration providing the boolean vocabulary and currency symbols
        """
        self.vocabulary = mapping.boolean_vocabulary if mapping else BooleanVocabulary()
        self.currency_symbols: List[str] = mapping.currency_symbols if mapping else []

    def transform(self, value: Any, data_type: str) -> Any:
        """
        Coerce a value to the given data type.

        Args:
            value: Raw cell value
            data_type: One of string, number, boolean, date

        Returns:
            The coerced value, or the original value if it cannot be coerced
        """
        if is_blank(value):
            return value

        if data_type == 'boolean':
            return self._transform_boolean(value)
        elif data_type == 'number':
            return self._transform_number(value)
        elif data_type == 'date':
            return self._transform_date(value)
        return value

    def _transform_boolean(self, value: Any) -> Any:
        """
        Translate a value through the boolean vocabulary.

        Args:
            value: Raw value

        Returns:
            True/False when the token is recognized, otherwise the raw value
        """
        if isinstance(value, bool):
            return value

        token = format_scalar(value).lower().strip()
        if token in self.vocabulary.true_values:
            return True
        if token in self.vocabulary.false_values:
            return False

        logger.debug(f"Value '{value}' is not in the boolean vocabulary, keeping it as-is")
        return value

    def _transform_number(self, value: Any) -> Any:
        """
        Parse a number, stripping configured currency symbols first.

        Args:
            value: Raw value

        Returns:
            Float value, or the raw value if it is not numeric
        """
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value

        number_str = str(value)
        for symbol in self.currency_symbols:
            number_str = number_str.replace(symbol, '')
        number_str = re.sub(r'\s+', '', number_str)

        try:
            number = float(number_str)
        except ValueError:
            logger.debug(f"Could not parse number from '{value}', keeping it as-is")
            return value

        return number if math.isfinite(number) else value

    def _transform_date(self, value: Any) -> Any:
        """
        Normalize a date to ISO format (YYYY-MM-DD).

        Args:
            value: Raw value

        Returns:
            ISO date string, or the raw value if it cannot be parsed
        """
        if isinstance(value, bool):
            return value

        parsed = parse_date(value)
        if parsed is None:
            logger.debug(f"Could not parse date from '{value}', keeping it as-is")
            return value
        return parsed.date().isoformat()


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """
    Parse a date-like value.

    Args:
        value: String or timestamp

    Returns:
        Timestamp, or None when the value is not a valid date
    """
    if is_blank(value) or isinstance(value, (bool, int, float)):
        return None
    try:
        parsed = pd.to_datetime(value, errors='coerce')
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed
