"""
Value coercion.

Rule values arrive as untyped strings typed by an operator; record values
arrive as whatever the data source produced. Both are converted to the
field's value type here:

- coerce(): operator input. Raises CoercionError on failure.
- normalize(): record values. Returns None when the value is missing or
  cannot be read as the field's type.

Dates are normalized to naive UTC datetimes so that aware and naive values
compare without raising.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from numbers import Number
from typing import Any, Iterable, Optional, Sequence, Tuple

from rulekit.errors import CoercionError
from rulekit.fields import Option, ValueType

_RELATIVE_UNITS = {
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}

END_OF_DAY = time(23, 59, 59, 999999)


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and empty sequences."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def to_number(value: Any) -> float:
    """Convert to float, rejecting booleans, NaN and infinities."""
    if isinstance(value, bool):
        raise CoercionError(value, ValueType.NUMBER, "booleans are not numbers")
    if isinstance(value, Number):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise CoercionError(value, ValueType.NUMBER, "not a number")
    else:
        raise CoercionError(value, ValueType.NUMBER, f"unsupported type {type(value).__name__}")

    if math.isnan(number) or math.isinf(number):
        raise CoercionError(value, ValueType.NUMBER, "not a finite number")
    return number


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_date(
    value: Any,
    now: Optional[datetime] = None,
    relative: bool = True,
) -> Tuple[datetime, bool]:
    """
    Parse a date value.

    Supports:
    - datetime / date objects
    - ISO strings: "2024-01-01", "2024-01-01T10:00:00Z"
    - Relative expressions: "30 days ago", "2 weeks ago" (when relative=True)
    - Bare day counts: "90" meaning 90 days ago (when relative=True)

    Returns:
        Tuple of (naive UTC datetime, True if the value carried no time part)

    Raises:
        CoercionError: If the value is not a recognizable date
    """
    if isinstance(value, datetime):
        return _to_naive_utc(value), False
    if isinstance(value, date):
        return datetime.combine(value, time.min), True
    if not isinstance(value, str):
        raise CoercionError(value, ValueType.DATE, f"unsupported type {type(value).__name__}")

    text = value.strip()
    if not text:
        raise CoercionError(value, ValueType.DATE, "empty")

    if relative:
        reference = _to_naive_utc(now or datetime.now(timezone.utc))
        try:
            if text.isdigit():
                return reference - timedelta(days=int(text)), False

            if text.endswith("ago"):
                parts = text.split()
                amount = int(parts[0])
                unit = parts[1].lower().rstrip("s")
                return reference - timedelta(days=amount * _RELATIVE_UNITS[unit]), False
        except (ValueError, IndexError, KeyError, OverflowError):
            raise CoercionError(value, ValueType.DATE, "bad relative expression")

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    else:
        date_only = len(text) <= 10 and "T" not in text and ":" not in text
        return _to_naive_utc(parsed), date_only

    try:
        return datetime.strptime(text, "%Y-%m-%d"), True
    except ValueError:
        raise CoercionError(value, ValueType.DATE, "unrecognized date format")


def coerce_select(value: Any, options: Sequence[Option] = ()) -> str:
    """Match a value against declared options, case-insensitively."""
    text = str(value).strip()
    if not options:
        return text
    for option in options:
        if option.value.lower() == text.lower():
            return option.value
    raise CoercionError(value, ValueType.SELECT, "not one of the declared options")


def coerce(
    value: Any,
    value_type: ValueType,
    options: Sequence[Option] = (),
    now: Optional[datetime] = None,
) -> Any:
    """
    Coerce operator input to a field's value type.

    Args:
        value: Raw value (usually the string typed into a rule)
        value_type: Target value type
        options: Declared options, checked for select fields
        now: Reference time for relative dates

    Returns:
        str for text/select, float for number, datetime for date

    Raises:
        CoercionError: If the value does not fit the type
    """
    if is_blank(value):
        raise CoercionError(value, value_type, "empty")

    if value_type == ValueType.NUMBER:
        return to_number(value)
    if value_type == ValueType.DATE:
        return parse_date(value, now=now)[0]
    if value_type == ValueType.SELECT:
        return coerce_select(value, options)
    return str(value).strip()


def coerce_date_bound(
    value: Any,
    operator: str,
    now: Optional[datetime] = None,
) -> datetime:
    """
    Coerce the operand of a 'before' or 'after' rule.

    Date-only values compare by whole days: 'before' a day means before its
    first moment, 'after' a day means after its last moment.
    """
    if is_blank(value):
        raise CoercionError(value, ValueType.DATE, "empty")
    moment, date_only = parse_date(value, now=now)
    if date_only and operator == "after":
        moment = datetime.combine(moment.date(), END_OF_DAY)
    return moment


def split_range(value: Any) -> Tuple[Any, Any]:
    """Split a two-part value: "a,b", "a..b" or a two-item sequence."""
    if isinstance(value, (list, tuple)):
        parts = list(value)
    else:
        text = str(value)
        if ".." in text:
            parts = text.split("..")
        else:
            parts = text.split(",")
    if len(parts) != 2:
        raise CoercionError(value, ValueType.DATE, "expected two parts (start, end)")
    return parts[0], parts[1]


def coerce_date_range(
    value: Any,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Coerce a two-part value to an inclusive (start, end) datetime range.

    A date-only end covers its whole day. Reversed bounds are swapped.
    """
    raw_start, raw_end = split_range(value)
    start, _ = parse_date(raw_start, now=now)
    end, end_date_only = parse_date(raw_end, now=now)
    if end_date_only:
        end = datetime.combine(end.date(), END_OF_DAY)
    if start > end:
        start, end = end, start
    return start, end


def normalize(value: Any, value_type: ValueType) -> Any:
    """
    Read a record value as the given type.

    Returns None when the value is missing or unreadable. Strings are
    returned case-folded for text/select comparison.
    """
    if value is None:
        return None
    try:
        if value_type == ValueType.NUMBER:
            return to_number(value)
        if value_type == ValueType.DATE:
            return parse_date(value, relative=False)[0]
    except CoercionError:
        return None
    if isinstance(value, str):
        return value.casefold()
    return str(value).casefold()


def normalize_many(value: Any, value_type: ValueType) -> Iterable[Any]:
    """Normalize a scalar or a list of values, skipping unreadable items."""
    items = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
    for item in items:
        normalized = normalize(item, value_type)
        if normalized is not None:
            yield normalized
