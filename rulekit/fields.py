"""
Field registry.

Declares, per logical field name, the value type of the field and the
operators that are legal for it. Everything downstream (predicates, sorting,
equality filters) asks the registry before touching a record field.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple


class ValueType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"

    @classmethod
    def parse(cls, name: str) -> "ValueType":
        """Parse a value type name ('text', 'Number', ...)."""
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown value type: {name!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Option:
    """One choice of a select field."""
    value: str
    label: str = ""

    @property
    def display(self) -> str:
        return self.label or self.value


@dataclass(frozen=True)
class FieldDescriptor:
    """Declaration of a single field: name, label, value type and options."""
    name: str
    value_type: ValueType
    label: str = ""
    options: Tuple[Option, ...] = ()

    @property
    def display(self) -> str:
        return self.label or self.name

    def option_values(self) -> List[str]:
        return [o.value for o in self.options]


@dataclass(frozen=True)
class OperatorDescriptor:
    """An operator and the value types it can be composed with."""
    code: str
    label: str
    applicable_value_types: FrozenSet[ValueType] = field(default_factory=frozenset)

    def applies_to(self, value_type: ValueType) -> bool:
        return value_type in self.applicable_value_types


_TEXTUAL = frozenset({ValueType.TEXT, ValueType.SELECT})
_EQUALITY = frozenset({ValueType.TEXT, ValueType.SELECT, ValueType.NUMBER})
_NUMERIC = frozenset({ValueType.NUMBER})
_TEMPORAL = frozenset({ValueType.DATE})

# Declaration order is the order operators are offered to the UI.
OPERATORS: Tuple[OperatorDescriptor, ...] = (
    OperatorDescriptor("equals", "is equal to", _EQUALITY),
    OperatorDescriptor("not_equals", "is not equal to", _EQUALITY),
    OperatorDescriptor("contains", "contains", _TEXTUAL),
    OperatorDescriptor("not_contains", "does not contain", _TEXTUAL),
    OperatorDescriptor("greater_than", "greater than", _NUMERIC),
    OperatorDescriptor("less_than", "less than", _NUMERIC),
    OperatorDescriptor("greater_equal", "greater than or equal to", _NUMERIC),
    OperatorDescriptor("less_equal", "less than or equal to", _NUMERIC),
    OperatorDescriptor("before", "before", _TEMPORAL),
    OperatorDescriptor("after", "after", _TEMPORAL),
    OperatorDescriptor("between", "between", _TEMPORAL),
)

OPERATORS_BY_CODE: Dict[str, OperatorDescriptor] = {op.code: op for op in OPERATORS}


def get_operator(code: str) -> Optional[OperatorDescriptor]:
    """Look up an operator by code."""
    return OPERATORS_BY_CODE.get(code)


def _parse_options(raw: Any) -> Tuple[Option, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        raw = [v.strip() for v in raw.split(",") if v.strip()]
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"'options' must be a list, got {type(raw).__name__}")
    options = []
    for item in raw:
        if isinstance(item, dict):
            value = str(item.get("value", ""))
            options.append(Option(value=value, label=str(item.get("label", value))))
        else:
            options.append(Option(value=str(item), label=str(item)))
    return tuple(options)


class FieldRegistry:
    """
    Registry of field descriptors for one feature.

    Example:
        registry = FieldRegistry.from_dict({
            "name": {"label": "Name", "type": "text"},
            "total_spent": {"label": "Total Spent", "type": "number"},
        })
        registry.operators_for("total_spent")  # equals, not_equals, greater_than, ...
        registry.operators_for("unknown")      # []
    """

    def __init__(self, fields: Optional[Iterable[FieldDescriptor]] = None):
        self._fields: Dict[str, FieldDescriptor] = {}
        for descriptor in fields or ():
            self.register(descriptor)

    def register(self, descriptor: FieldDescriptor) -> None:
        """Register (or replace) a field descriptor."""
        self._fields[descriptor.name] = descriptor

    def describe(self, field_name: str) -> Optional[FieldDescriptor]:
        """Return the descriptor for a field, or None if it is not registered."""
        return self._fields.get(field_name)

    def operators_for(self, field_name: str) -> List[OperatorDescriptor]:
        """
        Operators legal for a field, in declaration order.

        Unknown fields yield an empty list rather than an error so callers
        can render "no operators available".
        """
        descriptor = self.describe(field_name)
        if descriptor is None:
            return []
        return [op for op in OPERATORS if op.applies_to(descriptor.value_type)]

    def is_operator_allowed(self, field_name: str, operator_code: str) -> bool:
        return any(op.code == operator_code for op in self.operators_for(field_name))

    def fields(self) -> List[FieldDescriptor]:
        """All registered fields in registration order."""
        return list(self._fields.values())

    def names(self) -> List[str]:
        return list(self._fields.keys())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldRegistry":
        """
        Build a registry from a ``{name: {label, type, options}}`` mapping.

        A bare string value is taken as the type: ``{"name": "text"}``.
        """
        registry = cls()
        for name, spec in (data or {}).items():
            if isinstance(spec, str):
                spec = {"type": spec}
            registry.register(FieldDescriptor(
                name=str(name),
                value_type=ValueType.parse(spec.get("type", "text")),
                label=str(spec.get("label", name)),
                options=_parse_options(spec.get("options")),
            ))
        return registry

    def __contains__(self, field_name: str) -> bool:
        return field_name in self._fields

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FieldRegistry({self.names()!r})"
