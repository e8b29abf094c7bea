"""
Error taxonomy for rulekit.

Evaluation errors (UnknownFieldError, TypeMismatchError, CoercionError,
EmptyRuleGroupError) never escape the engine: they describe why a predicate
degraded to "match nothing". Catalog errors are raised to the caller because
they come from authoring mistakes, not from operator input.
"""


class RulekitError(Exception):
    """Base class for all rulekit errors."""
    pass


class UnknownFieldError(RulekitError):
    """A rule, filter or sort token referenced a field missing from the registry."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Unknown field: {field!r}")


class TypeMismatchError(RulekitError):
    """An operator or value does not fit the field's value type."""
    pass


class CoercionError(TypeMismatchError):
    """A raw value could not be converted to the requested value type."""

    def __init__(self, value, value_type, reason: str = ""):
        self.value = value
        self.value_type = value_type
        message = f"Cannot coerce {value!r} to {value_type}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class EmptyRuleGroupError(RulekitError):
    """A rule group has no active rules."""

    def __init__(self):
        super().__init__("Rule group has no active rules")


class CatalogParseError(RulekitError):
    """Error parsing a catalog definition."""
    pass


class CatalogNotFoundError(RulekitError):
    """Raised when a catalog is not found in the registry."""
    pass
