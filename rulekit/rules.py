"""
Rule model and rule-editing transitions.

Rules and groups are immutable; every edit returns a new object. The
transitions encode the editing rules of a rule builder:

- changing a rule's field resets its operator and value
- a group always keeps at least one rule slot
- empty rules stay in the group (they are just inactive)
"""

import itertools
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

RULE_KEYS = ("field", "operator", "value")

_ids = itertools.count(1)


def new_rule_id() -> str:
    """Generate a rule id unique within this process."""
    return f"r{next(_ids)}"


def fresh_rule_id(taken: Iterable[str]) -> str:
    """Generate a rule id that is not one of the taken ids."""
    rule_id = new_rule_id()
    while rule_id in taken:
        rule_id = new_rule_id()
    return rule_id


def _unique_ids(rules: Iterable["Rule"]) -> Tuple["Rule", ...]:
    """Re-id any rule whose id already appeared earlier in the sequence."""
    rules = tuple(rules)
    taken = {r.id for r in rules}
    seen = set()
    result = []
    for rule in rules:
        if rule.id in seen:
            rule = replace(rule, id=fresh_rule_id(taken))
            taken.add(rule.id)
        seen.add(rule.id)
        result.append(rule)
    return tuple(result)


class Combinator(str, Enum):
    ALL = "all"
    ANY = "any"

    @classmethod
    def parse(cls, value: Any) -> "Combinator":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown combinator: {value!r} (expected 'all' or 'any')")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Rule:
    """One {field, operator, value} condition."""
    id: str = field(default_factory=new_rule_id)
    field: str = ""
    operator: str = ""
    value: str = ""

    @property
    def is_active(self) -> bool:
        """A rule takes part in evaluation only once all three parts are set."""
        return bool(self.field and self.operator and str(self.value).strip())

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "field": self.field,
            "operator": self.operator,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        """Build a rule from a dict; 'condition' is accepted as an alias of 'operator'."""
        value = data.get("value", "")
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        return cls(
            id=str(data.get("id") or new_rule_id()),
            field=str(data.get("field") or ""),
            operator=str(data.get("operator") or data.get("condition") or ""),
            value="" if value is None else str(value),
        )


def update_rule(rule: Rule, key: str, value: str) -> Rule:
    """
    Set one part of a rule.

    Setting 'field' always clears 'operator' and 'value', even when the
    new field equals the old one.
    """
    if key not in RULE_KEYS:
        raise ValueError(f"Unknown rule key: {key!r} (expected one of {RULE_KEYS})")
    if key == "field":
        return replace(rule, field=value, operator="", value="")
    return replace(rule, **{key: value})


@dataclass(frozen=True)
class RuleGroup:
    """An ordered set of rules merged with a combinator."""
    rules: Tuple[Rule, ...] = field(default_factory=lambda: (Rule(),))
    combinator: Combinator = Combinator.ALL

    def __post_init__(self):
        object.__setattr__(self, "rules", _unique_ids(self.rules) or (Rule(),))
        object.__setattr__(self, "combinator", Combinator.parse(self.combinator))

    @property
    def active_rules(self) -> List[Rule]:
        return [r for r in self.rules if r.is_active]

    @property
    def has_active_rule(self) -> bool:
        return any(r.is_active for r in self.rules)

    def _free_id(self) -> str:
        return fresh_rule_id({r.id for r in self.rules})

    def get(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def with_combinator(self, combinator: Any) -> "RuleGroup":
        return replace(self, combinator=Combinator.parse(combinator))

    def update(self, rule_id: str, key: str, value: str) -> "RuleGroup":
        """Apply update_rule() to the rule with the given id."""
        return replace(self, rules=tuple(
            update_rule(r, key, value) if r.id == rule_id else r
            for r in self.rules
        ))

    def add(self, rule: Optional[Rule] = None) -> "RuleGroup":
        """Append a rule (an empty one by default)."""
        rule = rule or Rule()
        if self.get(rule.id) is not None:
            rule = replace(rule, id=self._free_id())
        return replace(self, rules=self.rules + (rule,))

    def remove(self, rule_id: str) -> "RuleGroup":
        """Remove a rule; the last remaining rule is never removed."""
        rules = tuple(r for r in self.rules if r.id != rule_id)
        if not rules:
            return self
        return replace(self, rules=rules)

    def duplicate(self, rule_id: str) -> "RuleGroup":
        """Append a copy of a rule under a fresh id."""
        rule = self.get(rule_id)
        if rule is None:
            return self
        return replace(self, rules=self.rules + (replace(rule, id=self._free_id()),))

    def clear(self) -> "RuleGroup":
        """Reset to a single empty rule, keeping the combinator."""
        return replace(self, rules=(Rule(),))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match": self.combinator.value,
            "rules": [r.to_dict() for r in self.rules],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleGroup":
        """Build a group from {'match': 'all'|'any', 'rules': [...]}."""
        rules = tuple(Rule.from_dict(r) for r in data.get("rules") or [])
        combinator = data.get("match", data.get("combinator", Combinator.ALL))
        return cls(rules=rules or (Rule(),), combinator=combinator)

    @classmethod
    def of(cls, *rules: Rule, combinator: Any = Combinator.ALL) -> "RuleGroup":
        return cls(rules=tuple(rules) or (Rule(),), combinator=combinator)


# Functional aliases matching the rule builder's actions
def add_rule(group: RuleGroup, rule: Optional[Rule] = None) -> RuleGroup:
    return group.add(rule)


def remove_rule(group: RuleGroup, rule_id: str) -> RuleGroup:
    return group.remove(rule_id)


def duplicate_rule(group: RuleGroup, rule_id: str) -> RuleGroup:
    return group.duplicate(rule_id)


def clear_rules(group: RuleGroup) -> RuleGroup:
    return group.clear()


@dataclass(frozen=True)
class RulePreset:
    """A named, ready-made rule group offered by a catalog."""
    name: str
    label: str
    group: RuleGroup

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "RulePreset":
        return cls(name=name, label=str(data.get("label", name)), group=RuleGroup.from_dict(data))


def apply_preset(presets: Iterable[RulePreset], name: str) -> RuleGroup:
    """
    Return the rule group of a preset.

    Unknown names (including 'none') give a fresh group with one empty rule.
    """
    for preset in presets:
        if preset.name == name:
            return preset.group
    return RuleGroup()
