"""
rulekit - Rule evaluation and list views for admin data

A typed rule engine and a generic list pipeline for back-office screens
(customer lists, segment builders, conditional bundles).

Design Principles:
- Fields are declared once, in a registry, with a value type
- Rules are {field, operator, value} and never raise during evaluation
- One pipeline (search, rules, filters, sort, paginate) configured per feature
- Record collections are always passed in, never held globally

Example Usage:
    >>> from rulekit import CatalogRegistry, Rule, RuleGroup
    >>> customers = CatalogRegistry().get("customers")
    >>> group = RuleGroup.of(Rule(field="total_spent", operator="greater_than", value="50000"))
    >>> view = customers.default_view().with_rule_group(group).with_sort("total_spent_desc")
    >>> page = customers.pipeline().run(records, view)
    >>> page.total_matched, page.total_pages
"""

__version__ = "0.1.0"
__author__ = "rulekit Contributors"

# Fields and operators
from rulekit.fields import (
    ValueType,
    Option,
    FieldDescriptor,
    OperatorDescriptor,
    FieldRegistry,
    OPERATORS,
    get_operator,
)

# Rules
from rulekit.rules import (
    Combinator,
    Rule,
    RuleGroup,
    RulePreset,
    update_rule,
    add_rule,
    remove_rule,
    duplicate_rule,
    clear_rules,
    apply_preset,
)

# Predicates and evaluation
from rulekit.predicates import Predicate, compile_rule
from rulekit.evaluator import evaluate, select, explain

# List views
from rulekit.sorting import resolve, sort_records
from rulekit.columns import Column, project, toggle
from rulekit.view import DateRange, ViewDescription
from rulekit.pipeline import CollectionPipeline, ResultPage, total_pages

# Catalogs and configuration
from rulekit.catalog import Catalog, CatalogRegistry
from rulekit.config import RulekitConfig, get_config, init_config

# Errors
from rulekit.errors import (
    RulekitError,
    UnknownFieldError,
    TypeMismatchError,
    CoercionError,
    EmptyRuleGroupError,
    CatalogParseError,
    CatalogNotFoundError,
)

__all__ = [
    # Fields
    "ValueType",
    "Option",
    "FieldDescriptor",
    "OperatorDescriptor",
    "FieldRegistry",
    "OPERATORS",
    "get_operator",
    # Rules
    "Combinator",
    "Rule",
    "RuleGroup",
    "RulePreset",
    "update_rule",
    "add_rule",
    "remove_rule",
    "duplicate_rule",
    "clear_rules",
    "apply_preset",
    # Evaluation
    "Predicate",
    "compile_rule",
    "evaluate",
    "select",
    "explain",
    # List views
    "resolve",
    "sort_records",
    "Column",
    "project",
    "toggle",
    "DateRange",
    "ViewDescription",
    "CollectionPipeline",
    "ResultPage",
    "total_pages",
    # Catalogs
    "Catalog",
    "CatalogRegistry",
    # Config
    "RulekitConfig",
    "get_config",
    "init_config",
    # Errors
    "RulekitError",
    "UnknownFieldError",
    "TypeMismatchError",
    "CoercionError",
    "EmptyRuleGroupError",
    "CatalogParseError",
    "CatalogNotFoundError",
]
