"""
Column visibility.

A feature declares a fixed column catalog; the view keeps the set of keys
currently shown. Projection filters the catalog by that set and keeps the
catalog's order. Column state is independent of filtering and sorting.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Sequence

from rulekit.predicates import get_field


@dataclass(frozen=True)
class Column:
    """One column of a list view."""
    key: str
    label: str = ""
    visible: bool = True  # shown by default

    @property
    def display(self) -> str:
        return self.label or self.key

    @classmethod
    def from_dict(cls, data: Any) -> "Column":
        if isinstance(data, str):
            return cls(key=data, label=data)
        key = str(data["key"])
        return cls(
            key=key,
            label=str(data.get("label", key)),
            visible=bool(data.get("visible", True)),
        )


def project(catalog: Sequence[Column], visible: Iterable[str]) -> List[Column]:
    """Columns of the catalog whose key is visible, in catalog order."""
    keys = set(visible)
    return [c for c in catalog if c.key in keys]


def toggle(visible: Iterable[str], key: str) -> FrozenSet[str]:
    """Flip membership of one column key."""
    keys = set(visible)
    if key in keys:
        keys.discard(key)
    else:
        keys.add(key)
    return frozenset(keys)


def default_visible(catalog: Sequence[Column]) -> FrozenSet[str]:
    """Keys of the columns shown by default."""
    return frozenset(c.key for c in catalog if c.visible)


def project_record(record: Any, columns: Sequence[Column]) -> Dict[str, Any]:
    """Pick the visible columns' values out of a record, in column order."""
    return {c.key: get_field(record, c.key) for c in columns}
