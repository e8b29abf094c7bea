"""
Tests for rulekit/view.py

Tests the view description and its transitions:
- Validation of paging
- Page reset conventions
- Filter normalization
- Serialization
"""
import pytest

from rulekit.rules import Rule, RuleGroup
from rulekit.view import DateRange, ViewDescription


class TestValidation:
    """Test construction."""

    def test_defaults(self):
        view = ViewDescription()
        assert view.page == 1
        assert view.page_size == 10
        assert view.rule_group is None
        assert view.offset == 0

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"page_size": 0}, {"page": -2}])
    def test_page_below_one_raises(self, kwargs):
        with pytest.raises(ValueError):
            ViewDescription(**kwargs)

    def test_offset(self):
        assert ViewDescription(page=3, page_size=20).offset == 40

    def test_filters_are_normalized(self):
        view = ViewDescription(equality_filters={"type": "Retail", "status": ["", None], "x": None})
        assert view.equality_filters == {"type": ("Retail",), "status": (), "x": ()}
        assert view.active_filters == {"type": ("Retail",)}


class TestTransitions:
    """Test which transitions send the user back to page 1."""

    @pytest.fixture
    def view(self):
        return ViewDescription(page=4, sort_token="name_asc", visible_columns={"id", "name"})

    def test_search_resets_page(self, view):
        changed = view.with_search("priya")
        assert changed.search_text == "priya"
        assert changed.page == 1
        assert view.page == 4

    def test_filter_resets_page(self, view):
        changed = view.with_filter("status", ["Active"])
        assert changed.equality_filters == {"status": ("Active",)}
        assert changed.page == 1

    def test_empty_filter_clears(self, view):
        changed = view.with_filter("status", "Active").with_filter("status", [])
        assert "status" not in changed.equality_filters

    def test_rule_group_resets_page(self, view):
        group = RuleGroup.of(Rule(field="type", operator="equals", value="Retail"))
        assert view.with_rule_group(group).page == 1

    def test_date_range_resets_page(self, view):
        changed = view.with_date_range("2024-01-01", "2024-01-31")
        assert changed.date_range == DateRange("2024-01-01", "2024-01-31")
        assert changed.page == 1

    def test_open_date_range_is_none(self, view):
        assert view.with_date_range(None, "").date_range is None

    def test_page_size_resets_page(self, view):
        assert view.with_page_size(50).page == 1

    def test_sort_and_columns_keep_page(self, view):
        assert view.with_sort("name_desc").page == 4
        assert view.toggle_column("email").page == 4
        assert view.with_columns(["id"]).page == 4

    def test_with_page(self, view):
        assert view.with_page(2).page == 2
        with pytest.raises(ValueError):
            view.with_page(0)

    def test_toggle_column(self, view):
        assert view.toggle_column("email").visible_columns == {"id", "name", "email"}
        assert view.toggle_column("name").visible_columns == {"id"}

    def test_reset_filters(self, view):
        busy = (view.with_search("x")
                    .with_filter("type", ["Retail"])
                    .with_date_range("2024-01-01")
                    .with_sort("total_spent_desc")
                    .with_page(3))
        reset = busy.reset_filters(default_sort="name_asc")

        assert reset.search_text == ""
        assert reset.equality_filters == {}
        assert reset.date_range is None
        assert reset.sort_token == "name_asc"
        assert reset.page == 1
        assert reset.visible_columns == view.visible_columns


class TestSerialization:
    """Test dict conversion."""

    def test_round_trip(self):
        group = RuleGroup.of(Rule(field="type", operator="equals", value="Retail"), combinator="any")
        view = ViewDescription(
            search_text="pri",
            rule_group=group,
            equality_filters={"status": ["Active", "Inactive"]},
            sort_token="newest",
            page=2,
            page_size=25,
            visible_columns={"id", "name"},
            date_range=DateRange("2024-01-01", None),
        )
        data = view.to_dict()

        assert data["filters"] == {"status": ["Active", "Inactive"]}
        assert data["columns"] == ["id", "name"]
        assert data["rules"]["match"] == "any"
        assert ViewDescription.from_dict(data) == view

    def test_from_empty_dict(self):
        assert ViewDescription.from_dict({}) == ViewDescription()
