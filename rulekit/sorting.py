"""
Sort key resolution.

A sort token names a field and a direction ("price_desc", "created_at asc",
"name"). resolve() turns it into a comparator over records whose comparison
depends on the field's value type:

- text/select: accent- and case-insensitive, with a raw-string tie-break
- number: numeric difference
- date: timestamp difference

Missing or unreadable values sort as the lowest possible value, so they
collect at one end regardless of where they started. An empty, malformed
or unknown-field token resolves to the identity comparator, which keeps
the input order.
"""

import logging
import unicodedata
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, Dict, Iterable, List, Optional

from rulekit.coerce import normalize
from rulekit.fields import FieldDescriptor, FieldRegistry, ValueType
from rulekit.predicates import get_field

logger = logging.getLogger(__name__)

Comparator = Callable[[Any, Any], float]

DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class SortSpec:
    """A parsed sort token."""
    field: str
    direction: str = "asc"  # 'asc' or 'desc'

    @property
    def token(self) -> str:
        return f"{self.field}_{self.direction}"


def parse_sort_token(
    token: Optional[str],
    aliases: Optional[Dict[str, str]] = None,
) -> Optional[SortSpec]:
    """
    Parse a sort token.

    Examples:
        "price_desc"        → SortSpec("price", "desc")
        "total_spent_asc"   → SortSpec("total_spent", "asc")
        "created_at desc"   → SortSpec("created_at", "desc")
        "name"              → SortSpec("name", "asc")
        "newest"            → expanded through aliases first

    Returns None for empty or malformed tokens.
    """
    token = (token or "").strip()
    if not token:
        return None

    if aliases and token in aliases:
        token = aliases[token].strip()

    if " " in token:
        parts = token.split()
        if len(parts) > 2:
            return None
        field_name = parts[0]
        direction = parts[1].lower() if len(parts) > 1 else "asc"
    else:
        head, sep, tail = token.rpartition("_")
        if sep and head and tail.lower() in DIRECTIONS:
            field_name, direction = head, tail.lower()
        else:
            field_name, direction = token, "asc"

    if direction not in DIRECTIONS:
        return None
    return SortSpec(field=field_name, direction=direction)


def identity(a: Any, b: Any) -> float:
    """Comparator that treats all records as equal."""
    return 0


def _compare_missing(a: Any, b: Any) -> Optional[int]:
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    return None


def _text_key(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value)
    text = str(value)
    return text if text.strip() else None


def collation_key(text: str) -> str:
    """Accent- and case-insensitive key: NFKD with combining marks dropped, then casefolded."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _cmp(left: Any, right: Any) -> int:
    return (left > right) - (left < right)


def _text_comparator(field_name: str) -> Comparator:
    def compare(a: Any, b: Any) -> float:
        left = _text_key(get_field(a, field_name))
        right = _text_key(get_field(b, field_name))
        missing = _compare_missing(left, right)
        if missing is not None:
            return missing
        result = _cmp(collation_key(left), collation_key(right))
        if result == 0:
            result = _cmp(left, right)
        return result
    return compare


def _number_comparator(field_name: str) -> Comparator:
    def compare(a: Any, b: Any) -> float:
        left = normalize(get_field(a, field_name), ValueType.NUMBER)
        right = normalize(get_field(b, field_name), ValueType.NUMBER)
        missing = _compare_missing(left, right)
        if missing is not None:
            return missing
        return left - right
    return compare


def _date_comparator(field_name: str) -> Comparator:
    def compare(a: Any, b: Any) -> float:
        left = normalize(get_field(a, field_name), ValueType.DATE)
        right = normalize(get_field(b, field_name), ValueType.DATE)
        missing = _compare_missing(left, right)
        if missing is not None:
            return missing
        return (left - right).total_seconds()
    return compare


def field_comparator(descriptor: FieldDescriptor) -> Comparator:
    """Ascending comparator for one field, chosen by its value type."""
    if descriptor.value_type == ValueType.NUMBER:
        return _number_comparator(descriptor.name)
    if descriptor.value_type == ValueType.DATE:
        return _date_comparator(descriptor.name)
    return _text_comparator(descriptor.name)


def reverse(comparator: Comparator) -> Comparator:
    """Flip a comparator's sign."""
    def compare(a: Any, b: Any) -> float:
        return -comparator(a, b)
    return compare


def resolve(
    sort_token: Optional[str],
    registry: FieldRegistry,
    aliases: Optional[Dict[str, str]] = None,
) -> Comparator:
    """
    Resolve a sort token into a comparator.

    Args:
        sort_token: e.g. "price_desc"; empty means no reordering
        registry: Field registry that types the sort field
        aliases: Optional token aliases (e.g. {"newest": "created_at_desc"})

    Returns:
        Comparator(a, b) → negative/zero/positive number
    """
    spec = parse_sort_token(sort_token, aliases)
    if spec is None:
        if sort_token:
            logger.debug(f"Ignoring malformed sort token {sort_token!r}")
        return identity

    descriptor = registry.describe(spec.field)
    if descriptor is None:
        logger.debug(f"Ignoring sort on unknown field {spec.field!r}")
        return identity

    comparator = field_comparator(descriptor)
    if spec.direction == "desc":
        return reverse(comparator)
    return comparator


def sort_records(records: Iterable[Any], comparator: Comparator) -> List[Any]:
    """Stable sort: records that compare equal keep their relative order."""
    if comparator is identity:
        return list(records)
    return sorted(records, key=cmp_to_key(comparator))
