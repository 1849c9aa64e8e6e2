"""
Schema Matcher Module

Resolves logical field names against inconsistently named spreadsheet
columns ("StartLat", "Start Latitude", "start_lat ", ...).
"""
import math
import re
from numbers import Number
from typing import Any, Dict, Iterable, Mapping, Optional

from ..config.settings import ImportConfig, get_settings


_NON_ALNUM = re.compile(r'[^a-z0-9]')
_NON_NUMERIC = re.compile(r'[^0-9.+-]')
_NUMERIC_PREFIX = re.compile(r'[+-]?(\d+(\.\d*)?|\.\d+)')


def normalize_key(key: Any) -> str:
    """Lower-case and strip everything that is not a-z or 0-9."""
    return _NON_ALNUM.sub('', str(key).lower())


def is_empty(value: Any) -> bool:
    """None, empty string, or a NaN cell from pandas."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ''
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def get_fuzzy_value(record: Mapping[str, Any], candidates: Iterable[str]) -> Optional[Any]:
    """
    First non-empty value whose column matches one of the candidates.

    Args:
        record: Row as a column -> value mapping
        candidates: Alias names, in priority order

    Returns:
        The raw cell value, or None if nothing matched
    """
    lookup: Dict[str, Any] = {}
    for key in record.keys():
        lookup[normalize_key(key)] = key

    for candidate in candidates:
        actual_key = lookup.get(normalize_key(candidate))
        if actual_key is None:
            continue
        value = record[actual_key]
        if not is_empty(value):
            return value
    return None


def parse_numeric_lenient(value: Any) -> float:
    """
    Coerce a cell to a float, returning 0 for anything unparseable.

    Strings keep only digits, signs and decimal points before parsing, so
    "1,200 m" gives 1200.0 and "$50" gives 50.0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, Number):
        number = float(value)
        return 0.0 if math.isnan(number) else number
    if isinstance(value, str):
        cleaned = _NON_NUMERIC.sub('', value)
        match = _NUMERIC_PREFIX.match(cleaned)
        if match:
            return float(match.group(0))
    return 0.0


class SchemaMatcher:
    """
    Typed accessor over one tabular row.

    Logical field names ('start_x', 'point_name', ...) are resolved through
    the alias lists in ImportConfig. Nothing untyped leaves this class.
    """

    def __init__(self, record: Mapping[str, Any], config: ImportConfig = None):
        self.record = record
        self.config = config or get_settings().imports

    def raw(self, logical_field: str) -> Optional[Any]:
        return get_fuzzy_value(self.record, self.config.aliases(logical_field))

    def has(self, logical_field: str) -> bool:
        return self.raw(logical_field) is not None

    def number(self, logical_field: str) -> float:
        return parse_numeric_lenient(self.raw(logical_field))

    def text(self, logical_field: str, default: str = '') -> str:
        value = self.raw(logical_field)
        if value is None:
            return default
        if isinstance(value, float) and value.is_integer():
            # Numeric names come back from pandas as floats
            return str(int(value))
        return str(value).strip() or default
