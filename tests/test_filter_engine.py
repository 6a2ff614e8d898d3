"""
Reporting Engine - Filter Engine Tests
"""

import pytest

from reporting.schemas.report import FilterDefinition, FilterOption
from reporting.services.filter_engine import (
    apply_filters,
    clear_filters,
    distinct_values,
    refresh_filter_options,
    row_passes,
    set_option_checked,
)
from reporting.utils.error_handling import SchemaError


def team_filter(kind: str = "default", checked=("North",)) -> FilterDefinition:
    return FilterDefinition(
        id="team",
        name="Team",
        kind=kind,
        options=[
            FilterOption(label=team, value=team, checked=team in checked)
            for team in ("North", "South")
        ],
    )


def tag_filter(checked, solo=()) -> FilterDefinition:
    return FilterDefinition(
        id="tags",
        name="Tags",
        expression="contains",
        kind="advanced",
        options=[
            FilterOption(
                label=tag,
                value=tag,
                checked=tag in checked,
                mode="solo" if tag in solo else "and",
            )
            for tag in ("vip", "new", "late")
        ],
    )


class TestApplyFilters:
    """Row selection across filter definitions."""
    
    def test_no_filters_returns_equal_copy(self, sales_rows):
        result = apply_filters(sales_rows, [])
        
        assert result == sales_rows
        assert result is not sales_rows
    
    def test_filtering_is_idempotent(self, sales_rows):
        filters = [team_filter(checked=("North",))]
        once = apply_filters(sales_rows, filters)
        
        assert apply_filters(once, filters) == once
        assert [r["agent"] for r in once] == ["Cara", "Ben"]
    
    def test_source_rows_untouched(self, sales_rows):
        before = [dict(r) for r in sales_rows]
        apply_filters(sales_rows, [team_filter()])
        assert sales_rows == before
    
    def test_every_filter_must_pass(self, sales_rows):
        agent = FilterDefinition(
            id="agent",
            name="Agent",
            options=[FilterOption(label="Ben", value="Ben", checked=True)],
        )
        result = apply_filters(sales_rows, [team_filter(checked=("North",)), agent])
        assert [r["agent"] for r in result] == ["Ben"]
    
    def test_unknown_expression_raises(self, sales_rows):
        bad = FilterDefinition(
            id="team",
            name="Team",
            expression="matches_regex",
            options=[FilterOption(label="North", value="North", checked=True)],
        )
        with pytest.raises(SchemaError):
            apply_filters(sales_rows, [bad])


class TestFilterKinds:
    """default / include / exclude semantics."""
    
    def test_nothing_checked_passes_everything(self, sales_rows):
        assert apply_filters(sales_rows, [team_filter(checked=())]) == sales_rows
    
    def test_include_matches_checked(self):
        assert row_passes(team_filter("include"), {"team": "North"})
        assert not row_passes(team_filter("include"), {"team": "South"})
    
    def test_exclude_drops_checked(self, sales_rows):
        result = apply_filters(sales_rows, [team_filter("exclude", checked=("North",))])
        assert [r["agent"] for r in result] == ["ari"]
    
    def test_numeric_expressions(self):
        over = FilterDefinition(
            id="calls",
            name="Calls",
            expression="greater_than",
            options=[FilterOption(label="Over 60", value=60, checked=True)],
        )
        assert row_passes(over, {"calls": 80})
        assert not row_passes(over, {"calls": 50})
        assert not row_passes(over, {"calls": "n/a"})


class TestAdvancedFilters:
    """solo / and option modes."""
    
    def test_requires_a_checked_option(self):
        assert not row_passes(tag_filter(checked=()), {"tags": "vip"})
    
    def test_solo_option_passes_outright(self):
        f = tag_filter(checked=("vip",), solo=("vip",))
        assert row_passes(f, {"tags": "vip late"})
    
    def test_and_option_rejects_unchecked_matches(self):
        f = tag_filter(checked=("new",))
        
        assert row_passes(f, {"tags": "new"})
        assert not row_passes(f, {"tags": "new late"})
        assert not row_passes(f, {"tags": "late"})
    
    def test_solo_miss_falls_back_to_and_options(self):
        f = tag_filter(checked=("vip", "new"), solo=("vip",))
        
        assert row_passes(f, {"tags": "new"})
        assert not row_passes(f, {"tags": "late"})


class TestFilterState:
    """Option refresh, toggling and clearing."""
    
    def test_distinct_values_sorted_case_insensitively(self, sales_rows):
        options = distinct_values(sales_rows, "agent")
        assert [o["label"] for o in options] == ["ari", "Ben", "Cara"]
        assert not any(o["checked"] for o in options)
    
    def test_refresh_keeps_checked_state(self, sales_report, sales_rows):
        filters = refresh_filter_options(sales_report.filters, sales_rows)
        filters = set_option_checked(filters, "agent", "Ben", True)
        
        refreshed = refresh_filter_options(sales_report.filters, sales_rows[1:], filters)
        agent = next(f for f in refreshed if f.id == "agent")
        
        assert {o.value: o.checked for o in agent.options} == {"ari": False, "Ben": True, "Cara": False}
    
    def test_refresh_appends_vanished_options(self, sales_report, sales_rows):
        filters = refresh_filter_options(sales_report.filters, sales_rows)
        filters = set_option_checked(filters, "agent", "Cara", True)
        
        refreshed = refresh_filter_options(sales_report.filters, sales_rows[1:], filters)
        agent = next(f for f in refreshed if f.id == "agent")
        
        assert [o.value for o in agent.options] == ["ari", "Ben", "Cara"]
        assert agent.options[-1].checked
    
    def test_clear_keeps_include_filters(self):
        cleared = clear_filters([team_filter("default"), team_filter("include")])
        
        assert not any(o.checked for o in cleared[0].options)
        assert cleared[1].options[0].checked
    
    def test_set_option_checked_returns_new_list(self):
        filters = [team_filter(checked=())]
        updated = set_option_checked(filters, "team", "South", True)
        
        assert not filters[0].options[1].checked
        assert updated[0].options[1].checked
