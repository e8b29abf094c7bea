"""
View description: everything a list view currently wants to show.

The description is immutable and fully serializable. Callers keep it
between renders and derive a new one on every interaction; the with_*
transitions apply the usual list-page conventions (changing what is
matched sends the user back to page 1).
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from rulekit.columns import toggle
from rulekit.rules import RuleGroup


@dataclass(frozen=True)
class DateRange:
    """Inclusive date window; either bound may be open."""
    start: Any = None
    end: Any = None

    @property
    def is_open(self) -> bool:
        return self.start in (None, "") and self.end in (None, "")

    def to_dict(self) -> Dict[str, Any]:
        return {"start": _isoformat(self.start), "end": _isoformat(self.end)}


def _isoformat(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


def _as_selection(value: Any) -> Tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(v for v in value if v not in (None, ""))
    if value == "":
        return ()
    return (value,)


@dataclass(frozen=True)
class ViewDescription:
    """
    Search text, rule group, filters, sort, paging and columns of a list view.

    `rule_group=None` means the view has no rule builder and the rule
    stage is skipped; a present group with no active rules matches nothing.

    Raises:
        ValueError: If page or page_size is below 1
    """
    search_text: str = ""
    rule_group: Optional[RuleGroup] = None
    equality_filters: Mapping[str, Tuple[Any, ...]] = field(default_factory=dict)
    sort_token: str = ""
    page: int = 1
    page_size: int = 10
    visible_columns: FrozenSet[str] = frozenset()
    date_range: Optional[DateRange] = None

    def __post_init__(self):
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        object.__setattr__(self, "equality_filters", {
            key: _as_selection(value) for key, value in dict(self.equality_filters).items()
        })
        object.__setattr__(self, "visible_columns", frozenset(self.visible_columns))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def active_filters(self) -> Dict[str, Tuple[Any, ...]]:
        """Equality filters with a non-empty selection."""
        return {k: v for k, v in self.equality_filters.items() if v}

    def with_search(self, text: str) -> "ViewDescription":
        return replace(self, search_text=text or "", page=1)

    def with_rule_group(self, group: Optional[RuleGroup]) -> "ViewDescription":
        return replace(self, rule_group=group, page=1)

    def with_filter(self, field_name: str, values: Any) -> "ViewDescription":
        """Set (or with an empty selection, clear) the filter on one field."""
        filters = dict(self.equality_filters)
        selection = _as_selection(values)
        if selection:
            filters[field_name] = selection
        else:
            filters.pop(field_name, None)
        return replace(self, equality_filters=filters, page=1)

    def with_date_range(self, start: Any = None, end: Any = None) -> "ViewDescription":
        date_range = DateRange(start, end)
        return replace(self, date_range=None if date_range.is_open else date_range, page=1)

    def with_sort(self, token: str) -> "ViewDescription":
        return replace(self, sort_token=token or "")

    def with_page(self, page: int) -> "ViewDescription":
        return replace(self, page=page)

    def with_page_size(self, page_size: int) -> "ViewDescription":
        return replace(self, page_size=page_size, page=1)

    def with_columns(self, keys: Iterable[str]) -> "ViewDescription":
        return replace(self, visible_columns=frozenset(keys))

    def toggle_column(self, key: str) -> "ViewDescription":
        return replace(self, visible_columns=toggle(self.visible_columns, key))

    def reset_filters(self, default_sort: str = "") -> "ViewDescription":
        """Clear search, filters and date range; restore the default sort."""
        return replace(
            self,
            search_text="",
            equality_filters={},
            date_range=None,
            sort_token=default_sort,
            page=1,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "search": self.search_text,
            "rules": self.rule_group.to_dict() if self.rule_group is not None else None,
            "filters": {k: list(v) for k, v in self.equality_filters.items()},
            "sort": self.sort_token,
            "page": self.page,
            "page_size": self.page_size,
            "columns": sorted(self.visible_columns),
            "date_range": self.date_range.to_dict() if self.date_range else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ViewDescription":
        rules = data.get("rules")
        date_range = data.get("date_range")
        return cls(
            search_text=data.get("search", "") or "",
            rule_group=RuleGroup.from_dict(rules) if rules else None,
            equality_filters=data.get("filters") or {},
            sort_token=data.get("sort", "") or "",
            page=int(data.get("page", 1)),
            page_size=int(data.get("page_size", 10)),
            visible_columns=frozenset(data.get("columns") or ()),
            date_range=DateRange(**date_range) if date_range else None,
        )
