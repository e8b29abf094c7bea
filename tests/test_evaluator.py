"""
Tests for rulekit/evaluator.py

Tests rule group evaluation:
- Empty groups match nothing
- AND / OR combination
- Bad rules degrade without raising
- Per-rule diagnostics
"""
import pytest

from rulekit.errors import CoercionError, EmptyRuleGroupError, UnknownFieldError
from rulekit.evaluator import evaluate, explain, select
from rulekit.predicates import FalsePredicate
from rulekit.rules import Rule, RuleGroup


def ids(records):
    return [r["id"] for r in records]


class TestEmptyGroups:
    """Groups without active rules."""

    def test_default_group_matches_nothing(self, sample_customers, registry):
        assert select(sample_customers, RuleGroup(), registry) == []

    def test_partial_rules_match_nothing(self, sample_customers, registry):
        group = RuleGroup.of(
            Rule(field="total_spent", operator="greater_than"),
            Rule(field="name"),
            combinator="any",
        )
        assert select(sample_customers, group, registry) == []

    def test_reason_is_empty_group(self, registry):
        predicate = evaluate(RuleGroup(), registry)
        assert isinstance(predicate, FalsePredicate)
        assert isinstance(predicate.reason, EmptyRuleGroupError)


class TestCombinators:
    """AND / OR semantics."""

    def test_single_rule(self, price_registry):
        records = [{"id": 1, "price": 60000}, {"id": 2, "price": 40000}]
        group = RuleGroup.of(Rule(field="price", operator="greater_than", value="50000"))
        assert ids(select(records, group, price_registry)) == [1]

    def test_any_excludes_only_non_matching(self, sample_customers, registry):
        group = RuleGroup.of(
            Rule(field="type", operator="equals", value="Retail"),
            Rule(field="type", operator="equals", value="Wholesale"),
            combinator="any",
        )
        matched = select(sample_customers, group, registry)
        assert [r["type"] for r in matched] == ["Retail", "Wholesale", "Retail", "Wholesale", "Retail"]
        assert "Distributor" not in {r["type"] for r in matched}

    def test_all_is_intersection(self, sample_customers, registry):
        r1 = Rule(field="account_status", operator="equals", value="Active")
        r2 = Rule(field="total_spent", operator="greater_than", value="50000")

        both = ids(select(sample_customers, RuleGroup.of(r1, r2), registry))
        only1 = set(ids(select(sample_customers, RuleGroup.of(r1), registry)))
        only2 = set(ids(select(sample_customers, RuleGroup.of(r2), registry)))

        assert both == ["C001", "C005"]
        assert set(both) == only1 & only2

    def test_any_is_union(self, sample_customers, registry):
        r1 = Rule(field="account_status", operator="equals", value="Inactive")
        r2 = Rule(field="total_orders", operator="less_than", value="5")

        either = set(ids(select(sample_customers, RuleGroup.of(r1, r2, combinator="any"), registry)))
        only1 = set(ids(select(sample_customers, RuleGroup.of(r1), registry)))
        only2 = set(ids(select(sample_customers, RuleGroup.of(r2), registry)))

        assert either == only1 | only2
        assert either == {"C002", "C003", "C004", "C006"}

    def test_inactive_rules_are_ignored(self, sample_customers, registry):
        group = RuleGroup.of(
            Rule(field="type", operator="equals", value="Distributor"),
            Rule(field="account_status"),
        )
        assert ids(select(sample_customers, group, registry)) == ["C003"]

    def test_input_order_is_kept(self, sample_customers, registry):
        group = RuleGroup.of(Rule(field="email", operator="contains", value="example"))
        assert ids(select(sample_customers, group, registry)) == ["C001", "C002", "C004", "C006"]


class TestDegradedRules:
    """Bad rules never raise."""

    def test_bad_number_matches_nothing(self, price_registry):
        records = [{"id": 1, "price": 60000}, {"id": 2, "price": 40000}]
        group = RuleGroup.of(Rule(field="price", operator="greater_than", value="abc"))
        assert select(records, group, price_registry) == []

    def test_bad_rule_in_any_group_does_not_block_others(self, sample_customers, registry):
        group = RuleGroup.of(
            Rule(field="total_spent", operator="greater_than", value="lots"),
            Rule(field="type", operator="equals", value="Distributor"),
            combinator="any",
        )
        assert ids(select(sample_customers, group, registry)) == ["C003"]

    def test_bad_rule_in_all_group_empties_result(self, sample_customers, registry):
        group = RuleGroup.of(
            Rule(field="loyalty_tier", operator="equals", value="gold"),
            Rule(field="type", operator="equals", value="Retail"),
        )
        assert select(sample_customers, group, registry) == []

    def test_inactive_preset(self, sample_customers, customers_catalog, now):
        """'before 90' means last order more than 90 days ago; missing dates never match."""
        group = customers_catalog.preset("inactive")
        assert ids(select(sample_customers, group, customers_catalog.registry, now=now)) == ["C002", "C003", "C006"]


class TestExplain:
    """Per-rule diagnostics."""

    def test_reports_each_rule(self, registry):
        group = RuleGroup.of(
            Rule(field="total_spent", operator="greater_than", value="50000"),
            Rule(field="total_spent", operator="greater_than", value="abc"),
            Rule(field="loyalty", operator="equals", value="gold"),
            Rule(field="name"),
        )
        ok, bad_value, unknown, inactive = explain(group, registry)

        assert ok.ok
        assert isinstance(bad_value.error, CoercionError)
        assert isinstance(unknown.error, UnknownFieldError)
        assert not inactive.active
        assert inactive.error is None
        assert not inactive.ok
