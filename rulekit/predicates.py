"""
Predicate system for rule evaluation.

Predicates are composable boolean functions over records. compile_rule()
turns one {field, operator, value} rule into a predicate, using the field
registry to pick type-appropriate comparison semantics. Any problem with
the rule (unknown field, illegal operator, uncoercible value) yields a
FalsePredicate that carries the reason instead of raising.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

from rulekit.coerce import coerce, coerce_date_bound, coerce_date_range, normalize, normalize_many
from rulekit.errors import RulekitError, TypeMismatchError, UnknownFieldError
from rulekit.fields import FieldRegistry, ValueType

if TYPE_CHECKING:
    from rulekit.rules import Rule

logger = logging.getLogger(__name__)


def get_field(record: Any, name: str) -> Any:
    """
    Read a field from a record.

    Records are usually mappings; attribute-style objects are accepted
    too. Missing fields read as None.
    """
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


class Predicate(ABC):
    """
    Abstract base for predicates.

    A predicate is a function: Record → bool
    Predicates can be combined with &, |, ~ operators.
    """

    @abstractmethod
    def matches(self, record: Any) -> bool:
        """Test if a record matches this predicate."""
        pass

    def __call__(self, record: Any) -> bool:
        return self.matches(record)

    def __and__(self, other: "Predicate") -> "Predicate":
        """Logical AND: self & other"""
        return CompoundPredicate("all", [self, other])

    def __or__(self, other: "Predicate") -> "Predicate":
        """Logical OR: self | other"""
        return CompoundPredicate("any", [self, other])

    def __invert__(self) -> "Predicate":
        """Logical NOT: ~self"""
        return CompoundPredicate("not", [self])


@dataclass
class TruePredicate(Predicate):
    """Always matches."""

    def matches(self, record: Any) -> bool:
        return True


@dataclass
class FalsePredicate(Predicate):
    """
    Never matches.

    When produced by a degraded rule, `reason` holds the error that
    caused it (UnknownFieldError, TypeMismatchError, ...).
    """
    reason: Optional[RulekitError] = None

    def matches(self, record: Any) -> bool:
        return False

    @property
    def degraded(self) -> bool:
        return self.reason is not None


@dataclass
class FieldPredicate(Predicate):
    """
    Match records by a typed field comparison.

    Operators by value type:
    - text/select: 'equals', 'not_equals', 'contains', 'not_contains'
      (case-insensitive; list values match if any item does, negated
      operators match only if no item does)
    - number: 'equals', 'not_equals', 'greater_than', 'less_than',
      'greater_equal', 'less_equal'
    - date: 'before', 'after', 'between' (inclusive; operand is a
      (start, end) tuple)

    A record whose value is missing or unreadable never matches.
    """
    field: str
    operator: str
    value_type: ValueType
    operand: Any

    def matches(self, record: Any) -> bool:
        actual = get_field(record, self.field)

        if self.value_type in (ValueType.TEXT, ValueType.SELECT):
            return self._match_text(actual)

        actual = normalize(actual, self.value_type)
        if actual is None:
            return False

        if self.value_type == ValueType.NUMBER:
            return self._match_number(actual)
        return self._match_date(actual)

    def _match_text(self, actual: Any) -> bool:
        values = list(normalize_many(actual, self.value_type))
        if not values:
            return False
        expected = str(self.operand).casefold()
        op = self.operator

        if op == "equals":
            return any(v == expected for v in values)
        elif op == "not_equals":
            return all(v != expected for v in values)
        elif op == "contains":
            return any(expected in v for v in values)
        elif op == "not_contains":
            return all(expected not in v for v in values)
        return False

    def _match_number(self, actual: float) -> bool:
        op = self.operator
        expected = self.operand

        if op == "equals":
            return actual == expected
        elif op == "not_equals":
            return actual != expected
        elif op == "greater_than":
            return actual > expected
        elif op == "less_than":
            return actual < expected
        elif op == "greater_equal":
            return actual >= expected
        elif op == "less_equal":
            return actual <= expected
        return False

    def _match_date(self, actual: datetime) -> bool:
        op = self.operator

        if op == "before":
            return actual < self.operand
        elif op == "after":
            return actual > self.operand
        elif op == "between":
            start, end = self.operand
            return start <= actual <= end
        return False


@dataclass
class SearchPredicate(Predicate):
    """Free-text search: any searchable field contains the query (case-insensitive)."""
    query: str
    fields: List[str] = field(default_factory=list)

    def matches(self, record: Any) -> bool:
        needle = self.query.casefold()

        for field_name in self.fields:
            value = get_field(record, field_name)
            if value is None:
                continue
            items = value if isinstance(value, (list, tuple, set)) else [value]
            if any(needle in str(item).casefold() for item in items if item is not None):
                return True

        return False


@dataclass
class MembershipPredicate(Predicate):
    """
    Match records whose field value is one of the selected values.

    Values are compared after normalization to the field's value type, so
    strings compare case-insensitively and "10" equals 10 for numbers.
    List-valued fields match if any item is selected.
    """
    field: str
    value_type: ValueType
    values: Sequence[Any]

    def __post_init__(self):
        self._selected = set(normalize_many(list(self.values), self.value_type))

    def matches(self, record: Any) -> bool:
        if not self._selected:
            return False
        actual = get_field(record, self.field)
        return any(v in self._selected for v in normalize_many(actual, self.value_type))


@dataclass
class DateRangePredicate(Predicate):
    """Match records whose date field falls within [start, end]; either bound optional."""
    field: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def matches(self, record: Any) -> bool:
        actual = normalize(get_field(record, self.field), ValueType.DATE)
        if actual is None:
            return False
        if self.start is not None and actual < self.start:
            return False
        if self.end is not None and actual > self.end:
            return False
        return True


@dataclass
class CompoundPredicate(Predicate):
    """
    Logical combination of predicates.

    Operators:
    - 'all': AND (all must match, stops at the first miss)
    - 'any': OR (at least one must match, stops at the first hit)
    - 'not': NOT (negate single predicate)
    """
    operator: str  # 'all', 'any', 'not'
    predicates: List[Predicate]

    def matches(self, record: Any) -> bool:
        if self.operator == "all":
            return all(p.matches(record) for p in self.predicates)
        elif self.operator == "any":
            return any(p.matches(record) for p in self.predicates)
        elif self.operator == "not":
            if self.predicates:
                return not self.predicates[0].matches(record)
            return True
        return False


@dataclass
class CustomPredicate(Predicate):
    """Predicate wrapping a plain function, for conditions the rule model can't express."""
    func: Callable[[Any], bool]
    description: str = "custom predicate"

    def matches(self, record: Any) -> bool:
        return bool(self.func(record))


def compile_rule(
    rule: "Rule",
    registry: FieldRegistry,
    now: Optional[datetime] = None,
) -> Predicate:
    """
    Compile one rule into a predicate.

    Steps:
    1. Resolve the field descriptor (unknown → FalsePredicate)
    2. Check the operator is legal for the field's value type
    3. Coerce the rule value to the field's value type
    4. Build the typed FieldPredicate

    Never raises: every failure degrades to a FalsePredicate whose
    `reason` records what went wrong.
    """
    descriptor = registry.describe(rule.field)
    if descriptor is None:
        return _degrade(rule, UnknownFieldError(rule.field))

    if not registry.is_operator_allowed(rule.field, rule.operator):
        return _degrade(rule, TypeMismatchError(
            f"Operator {rule.operator!r} is not valid for {descriptor.value_type} field {rule.field!r}"
        ))

    try:
        if rule.operator == "between":
            operand = coerce_date_range(rule.value, now=now)
        elif rule.operator in ("before", "after"):
            operand = coerce_date_bound(rule.value, rule.operator, now=now)
        else:
            operand = coerce(rule.value, descriptor.value_type, descriptor.options, now=now)
    except TypeMismatchError as e:
        return _degrade(rule, e)

    return FieldPredicate(
        field=descriptor.name,
        operator=rule.operator,
        value_type=descriptor.value_type,
        operand=operand,
    )


def _degrade(rule: "Rule", reason: RulekitError) -> FalsePredicate:
    logger.debug(f"Rule {rule.id!r} matches nothing: {reason}")
    return FalsePredicate(reason=reason)


# Predicate builder helpers
def search(query: str, *fields: str) -> SearchPredicate:
    """Create a search predicate."""
    return SearchPredicate(query, list(fields))


def one_of(field: str, value_type: ValueType, *values: Any) -> MembershipPredicate:
    """Create a membership predicate."""
    return MembershipPredicate(field, value_type, list(values))
