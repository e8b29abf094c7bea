"""
Rule group evaluation.

Turns a RuleGroup into a single predicate. Only active rules take part;
a group with no active rules matches nothing, so an unfinished rule
builder never selects the whole collection.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional

from rulekit.errors import EmptyRuleGroupError, RulekitError
from rulekit.fields import FieldRegistry
from rulekit.predicates import CompoundPredicate, FalsePredicate, Predicate, compile_rule
from rulekit.rules import Combinator, Rule, RuleGroup

logger = logging.getLogger(__name__)


def evaluate(
    group: RuleGroup,
    registry: FieldRegistry,
    now: Optional[datetime] = None,
) -> Predicate:
    """
    Compile a rule group into one predicate.

    Args:
        group: Rules plus combinator
        registry: Field registry used to type each rule
        now: Reference time for relative date values

    Returns:
        Predicate combining the active rules in insertion order
        ('all' → AND, 'any' → OR), or a FalsePredicate if none are active
    """
    active = group.active_rules
    if not active:
        logger.debug("Rule group has no active rules; matching nothing")
        return FalsePredicate(reason=EmptyRuleGroupError())

    predicates = [compile_rule(rule, registry, now=now) for rule in active]
    operator = "all" if group.combinator == Combinator.ALL else "any"
    return CompoundPredicate(operator, predicates)


def select(
    records: Iterable[Any],
    group: RuleGroup,
    registry: FieldRegistry,
    now: Optional[datetime] = None,
) -> List[Any]:
    """Return the records matched by a rule group, in input order."""
    predicate = evaluate(group, registry, now=now)
    return [r for r in records if predicate.matches(r)]


@dataclass
class RuleDiagnostic:
    """Compile outcome for one rule of a group."""
    rule: Rule
    active: bool
    error: Optional[RulekitError] = None

    @property
    def ok(self) -> bool:
        return self.active and self.error is None


def explain(
    group: RuleGroup,
    registry: FieldRegistry,
    now: Optional[datetime] = None,
) -> List[RuleDiagnostic]:
    """
    Report, per rule, whether it is active and why it would match nothing.

    Evaluation itself stays silent; this is for surfacing problems to the
    operator (e.g. "value 'abc' is not a number").
    """
    diagnostics = []
    for rule in group.rules:
        if not rule.is_active:
            diagnostics.append(RuleDiagnostic(rule=rule, active=False))
            continue
        predicate = compile_rule(rule, registry, now=now)
        error = predicate.reason if isinstance(predicate, FalsePredicate) else None
        diagnostics.append(RuleDiagnostic(rule=rule, active=True, error=error))
    return diagnostics
