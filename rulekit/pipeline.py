"""
Collection pipeline.

Turns a raw record collection plus a ViewDescription into the page a list
view renders. Stages run in a fixed order, each narrowing the previous
stage's output:

1. search    - free text over the feature's searchable fields
2. rules     - the rule group predicate (skipped when the view has none)
3. equality  - per-field selections, then the optional date range
4. sort      - stable, via the sort key resolver
5. paginate  - [(page-1)*size, page*size)

total_matched is the size of the set after stage 3.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence

from rulekit.coerce import END_OF_DAY, parse_date
from rulekit.errors import CoercionError, UnknownFieldError
from rulekit.evaluator import evaluate
from rulekit.fields import FieldRegistry
from rulekit.predicates import (
    DateRangePredicate,
    FalsePredicate,
    MembershipPredicate,
    Predicate,
    SearchPredicate,
    get_field,
)
from rulekit.rules import RuleGroup
from rulekit.sorting import resolve, sort_records
from rulekit.view import DateRange, ViewDescription

if TYPE_CHECKING:
    from rulekit.catalog import Catalog

logger = logging.getLogger(__name__)


def total_pages(total_matched: int, page_size: int) -> int:
    """Number of pages, never less than 1 so pagination controls stay stable."""
    return max(1, math.ceil(total_matched / page_size))


@dataclass
class ResultPage:
    """
    Result of running a view over a collection.

    `items` is the requested window; `total_matched` counts everything that
    passed the filtering stages, before sorting and paging.
    """
    items: List[Any] = field(default_factory=list)
    total_matched: int = 0
    total_pages: int = 1
    page: int = 1
    page_size: int = 10
    facets: Dict[str, Dict[str, int]] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def __len__(self) -> int:
        return self.count

    def __iter__(self):
        return iter(self.items)


# =============================================================================
# Stages
# =============================================================================

def search_stage(records: List[Any], search_text: str, fields: Sequence[str]) -> List[Any]:
    if not search_text or not search_text.strip():
        return records
    predicate = SearchPredicate(search_text.strip(), list(fields))
    return [r for r in records if predicate.matches(r)]


def rule_stage(
    records: List[Any],
    group: Optional[RuleGroup],
    registry: FieldRegistry,
    now: Optional[datetime] = None,
) -> List[Any]:
    if group is None:
        return records
    predicate = evaluate(group, registry, now=now)
    return [r for r in records if predicate.matches(r)]


def equality_predicate(field_name: str, values: Sequence[Any], registry: FieldRegistry) -> Predicate:
    """Membership test for one equality filter; unknown fields match nothing."""
    descriptor = registry.describe(field_name)
    if descriptor is None:
        logger.debug(f"Equality filter on unknown field {field_name!r} matches nothing")
        return FalsePredicate(reason=UnknownFieldError(field_name))
    return MembershipPredicate(descriptor.name, descriptor.value_type, list(values))


def equality_stage(
    records: List[Any],
    filters: Mapping[str, Sequence[Any]],
    registry: FieldRegistry,
) -> List[Any]:
    predicates = [
        equality_predicate(name, values, registry)
        for name, values in filters.items()
        if values
    ]
    if not predicates:
        return records
    return [r for r in records if all(p.matches(r) for p in predicates)]


def date_range_predicate(
    date_range: DateRange,
    field_name: str,
    registry: FieldRegistry,
    now: Optional[datetime] = None,
) -> Predicate:
    """Inclusive window on a date field; a date-only end covers its whole day."""
    descriptor = registry.describe(field_name)
    if descriptor is None:
        return FalsePredicate(reason=UnknownFieldError(field_name))

    try:
        start = end = None
        if date_range.start not in (None, ""):
            start, _ = parse_date(date_range.start, now=now)
        if date_range.end not in (None, ""):
            end, date_only = parse_date(date_range.end, now=now)
            if date_only:
                end = datetime.combine(end.date(), END_OF_DAY)
    except CoercionError as e:
        logger.debug(f"Date range matches nothing: {e}")
        return FalsePredicate(reason=e)

    return DateRangePredicate(descriptor.name, start, end)


def date_range_stage(
    records: List[Any],
    date_range: Optional[DateRange],
    field_name: Optional[str],
    registry: FieldRegistry,
    now: Optional[datetime] = None,
) -> List[Any]:
    if date_range is None or date_range.is_open:
        return records
    if not field_name:
        logger.debug("View has a date range but the feature declares no date field; ignoring")
        return records
    predicate = date_range_predicate(date_range, field_name, registry, now=now)
    return [r for r in records if predicate.matches(r)]


def paginate(records: List[Any], page: int, page_size: int) -> List[Any]:
    """Slice one page; pages past the end are empty."""
    start = (page - 1) * page_size
    return records[start:start + page_size]


def facet_counts(records: Iterable[Any], field_name: str) -> Dict[str, int]:
    """Count records per value of a field, most frequent first. List values count per item."""
    counter: Counter = Counter()
    for record in records:
        value = get_field(record, field_name)
        items = value if isinstance(value, (list, tuple, set)) else [value]
        for item in items:
            if item is None or item == "":
                continue
            counter[str(item)] += 1
    return dict(counter.most_common())


# =============================================================================
# Pipeline
# =============================================================================

def run(
    records: Iterable[Any],
    view: ViewDescription,
    registry: FieldRegistry,
    searchable_fields: Sequence[str] = (),
    date_field: Optional[str] = None,
    facet_fields: Sequence[str] = (),
    sort_aliases: Optional[Dict[str, str]] = None,
    now: Optional[datetime] = None,
) -> ResultPage:
    """
    Run every stage over a record collection.

    Args:
        records: The collection (never mutated)
        view: What the list view wants to show
        registry: Field registry of the feature
        searchable_fields: Fields scanned by the search stage
        date_field: Field the view's date range applies to
        facet_fields: Fields to count values of over the matched set
        sort_aliases: Extra sort tokens (e.g. {"newest": "created_at_desc"})
        now: Reference time for relative dates

    Returns:
        ResultPage with the requested window and aggregate counts
    """
    matched = list(records)
    initial = len(matched)

    matched = search_stage(matched, view.search_text, searchable_fields)
    matched = rule_stage(matched, view.rule_group, registry, now=now)
    matched = equality_stage(matched, view.active_filters, registry)
    matched = date_range_stage(matched, view.date_range, date_field, registry, now=now)

    total_matched = len(matched)
    comparator = resolve(view.sort_token, registry, sort_aliases)
    ordered = sort_records(matched, comparator)
    items = paginate(ordered, view.page, view.page_size)

    logger.debug(
        f"Pipeline: {initial} records, {total_matched} matched, "
        f"page {view.page} has {len(items)}"
    )

    return ResultPage(
        items=items,
        total_matched=total_matched,
        total_pages=total_pages(total_matched, view.page_size),
        page=view.page,
        page_size=view.page_size,
        facets={name: facet_counts(matched, name) for name in facet_fields},
    )


class CollectionPipeline:
    """
    The pipeline bound to one feature's configuration.

    Example:
        pipeline = CollectionPipeline.from_catalog(catalogs.get("customers"))
        page = pipeline.run(records, ViewDescription(search_text="priya"))
    """

    def __init__(
        self,
        registry: FieldRegistry,
        searchable_fields: Sequence[str] = (),
        date_field: Optional[str] = None,
        facet_fields: Sequence[str] = (),
        sort_aliases: Optional[Dict[str, str]] = None,
    ):
        self.registry = registry
        self.searchable_fields = list(searchable_fields)
        self.date_field = date_field
        self.facet_fields = list(facet_fields)
        self.sort_aliases = dict(sort_aliases or {})

    @classmethod
    def from_catalog(cls, catalog: "Catalog") -> "CollectionPipeline":
        return cls(
            registry=catalog.registry,
            searchable_fields=catalog.searchable_fields,
            date_field=catalog.date_field,
            facet_fields=catalog.facet_fields,
            sort_aliases=catalog.sort_aliases,
        )

    def run(
        self,
        records: Iterable[Any],
        view: ViewDescription,
        now: Optional[datetime] = None,
    ) -> ResultPage:
        return run(
            records,
            view,
            self.registry,
            searchable_fields=self.searchable_fields,
            date_field=self.date_field,
            facet_fields=self.facet_fields,
            sort_aliases=self.sort_aliases,
            now=now,
        )

    def __repr__(self) -> str:
        return f"CollectionPipeline(fields={self.registry.names()!r}, search={self.searchable_fields!r})"
