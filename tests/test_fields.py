"""
Tests for rulekit/fields.py

Tests the field registry:
- Value type parsing
- Operator applicability per value type
- Registry lookups and construction from dicts
"""
import pytest

from rulekit.fields import (
    FieldDescriptor,
    FieldRegistry,
    OPERATORS,
    Option,
    ValueType,
    get_operator,
)


class TestValueType:
    """Test value type parsing."""

    def test_parse_is_case_insensitive(self):
        """Type names parse regardless of case and padding."""
        assert ValueType.parse("Number") == ValueType.NUMBER
        assert ValueType.parse(" date ") == ValueType.DATE

    def test_parse_unknown_raises(self):
        """Unknown type names raise ValueError."""
        with pytest.raises(ValueError, match="Unknown value type"):
            ValueType.parse("boolean")

    def test_str_is_value(self):
        assert str(ValueType.SELECT) == "select"


class TestOperators:
    """Test the operator table."""

    def test_operator_codes_are_unique(self):
        codes = [op.code for op in OPERATORS]
        assert len(codes) == len(set(codes))

    def test_get_operator(self):
        op = get_operator("greater_than")
        assert op.label == "greater than"
        assert op.applies_to(ValueType.NUMBER)
        assert not op.applies_to(ValueType.TEXT)

    def test_get_unknown_operator(self):
        assert get_operator("is_equal_to") is None

    def test_date_operators_only_apply_to_dates(self):
        for code in ("before", "after", "between"):
            op = get_operator(code)
            assert op.applicable_value_types == frozenset({ValueType.DATE})


# =============================================================================
# FieldRegistry Tests
# =============================================================================

class TestFieldRegistry:
    """Test field registration and operator lookup."""

    @pytest.fixture
    def registry(self):
        return FieldRegistry([
            FieldDescriptor("name", ValueType.TEXT, "Name"),
            FieldDescriptor("total_spent", ValueType.NUMBER, "Total Spent"),
            FieldDescriptor("created_at", ValueType.DATE, "Created"),
            FieldDescriptor("status", ValueType.SELECT, "Status",
                            (Option("Active"), Option("Inactive"))),
        ])

    def test_describe_known_field(self, registry):
        descriptor = registry.describe("total_spent")
        assert descriptor.value_type == ValueType.NUMBER
        assert descriptor.display == "Total Spent"

    def test_describe_unknown_field(self, registry):
        assert registry.describe("unknown") is None

    def test_operators_for_unknown_field_is_empty(self, registry):
        """Unknown fields yield no operators rather than an error."""
        assert registry.operators_for("unknown") == []

    def test_operators_for_number(self, registry):
        codes = [op.code for op in registry.operators_for("total_spent")]
        assert codes == [
            "equals", "not_equals",
            "greater_than", "less_than", "greater_equal", "less_equal",
        ]

    def test_operators_for_text(self, registry):
        codes = [op.code for op in registry.operators_for("name")]
        assert codes == ["equals", "not_equals", "contains", "not_contains"]

    def test_operators_for_date(self, registry):
        codes = [op.code for op in registry.operators_for("created_at")]
        assert codes == ["before", "after", "between"]

    def test_select_shares_text_operators(self, registry):
        assert [op.code for op in registry.operators_for("status")] == \
            [op.code for op in registry.operators_for("name")]

    def test_is_operator_allowed(self, registry):
        assert registry.is_operator_allowed("total_spent", "greater_than")
        assert not registry.is_operator_allowed("name", "greater_than")
        assert not registry.is_operator_allowed("missing", "equals")

    def test_register_replaces(self, registry):
        registry.register(FieldDescriptor("name", ValueType.NUMBER))
        assert registry.describe("name").value_type == ValueType.NUMBER
        assert len(registry) == 4

    def test_iteration_keeps_registration_order(self, registry):
        assert registry.names() == ["name", "total_spent", "created_at", "status"]
        assert [f.name for f in registry] == registry.names()
        assert "status" in registry
        assert "missing" not in registry

    def test_option_values(self, registry):
        assert registry.describe("status").option_values() == ["Active", "Inactive"]


class TestFieldRegistryFromDict:
    """Test building registries from mappings."""

    def test_full_definitions(self):
        registry = FieldRegistry.from_dict({
            "type": {
                "label": "Type",
                "type": "select",
                "options": ["Retail", {"value": "Wholesale", "label": "Wholesale Buyer"}],
            },
        })
        descriptor = registry.describe("type")
        assert descriptor.value_type == ValueType.SELECT
        assert descriptor.options[1].display == "Wholesale Buyer"
        assert descriptor.option_values() == ["Retail", "Wholesale"]

    def test_bare_string_is_type(self):
        registry = FieldRegistry.from_dict({"total": "number"})
        descriptor = registry.describe("total")
        assert descriptor.value_type == ValueType.NUMBER
        assert descriptor.display == "total"

    def test_type_defaults_to_text(self):
        registry = FieldRegistry.from_dict({"note": {"label": "Note"}})
        assert registry.describe("note").value_type == ValueType.TEXT

    def test_bad_type_raises(self):
        with pytest.raises(ValueError):
            FieldRegistry.from_dict({"flag": "boolean"})

    def test_comma_separated_options(self):
        registry = FieldRegistry.from_dict({"status": {"type": "select", "options": "Active, Inactive"}})
        assert registry.describe("status").option_values() == ["Active", "Inactive"]

    def test_non_list_options_raise(self):
        with pytest.raises(ValueError, match="options"):
            FieldRegistry.from_dict({"status": {"type": "select", "options": 5}})
