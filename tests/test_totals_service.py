"""
Reporting Engine - Totals and Report View Tests
"""

import pytest
from decimal import Decimal

from reporting.schemas.report import ColumnDefinition, FilterOption, SortSpec, TargetDefinition, Threshold
from reporting.services.filter_engine import refresh_filter_options, set_option_checked
from reporting.services.report_view import build_view
from reporting.services.totals_service import (
    column_sum,
    compute_total,
    compute_totals,
    weighted_ratio,
)


RATIO = ColumnDefinition(
    id="ratio",
    data_type="float",
    suffix="%",
    format="two_decimals",
    numerator_id="a",
    denominator_id="b",
)


class TestWeightedTotals:
    """Ratio columns total as sum(numerator) / sum(denominator)."""
    
    def test_weighted_not_mean(self):
        rows = [{"a": 10, "b": 100}, {"a": 20, "b": 50}]
        
        assert weighted_ratio(rows, "a", "b") == Decimal("20.00")
        assert compute_total(RATIO, rows) == "20.00"
    
    def test_zero_denominator(self):
        assert compute_total(RATIO, [{"a": 5, "b": 0}]) == "0.00"
    
    def test_numeric_strings_summed(self):
        assert column_sum([{"x": "1.10"}, {"x": "2.20"}, {"x": "n/a"}], "x") == Decimal("3.30")
    
    def test_ratio_without_percent_has_no_total(self):
        ratio = RATIO.model_copy(update={"suffix": ""})
        assert compute_total(ratio, [{"ratio": 10, "a": 1, "b": 10}, {"ratio": 30, "a": 3, "b": 10}]) == ""


class TestComputeTotal:
    """Footer values per column type."""
    
    def test_first_text_column_labelled(self, sales_report, sales_rows):
        totals = compute_totals(sales_report.structure, sales_rows)
        
        assert totals["agent"] == "Total"
        assert totals["team"] == ""
    
    def test_plain_sum_formatted(self, sales_report, sales_rows):
        totals = compute_totals(sales_report.structure, sales_rows)
        
        assert totals["calls"] == 230
        assert totals["revenue"] == "650.50"
        assert totals["conversion"] == "16.52"
    
    def test_columns_with_requires_have_no_total(self):
        age = ColumnDefinition(id="age", data_type="integer", format="age_at", requires=["dob"])
        assert compute_total(age, [{"dob": "1990-01-01"}]) == ""
    
    def test_totals_follow_filtered_rows(self, sales_report, sales_rows):
        filters = refresh_filter_options(sales_report.filters, sales_rows)
        filters = set_option_checked(filters, "team", "North", True)
        
        view = build_view(sales_report, sales_rows, filters=filters)
        
        assert [r["agent"] for r in view.rows] == ["Cara", "Ben"]
        assert view.totals["calls"] == 180
        assert view.totals["conversion"] == "10.00"


class TestBuildView:
    """Filter, sort, display and classification in one pass."""
    
    def test_display_values_and_sort(self, sales_report, sales_rows):
        view = build_view(sales_report, sales_rows, sort=SortSpec(key="revenue", direction="desc"))
        
        assert [r["agent"] for r in view.rows] == ["ari", "Cara", "Ben"]
        assert view.display[0]["revenue"].value == "£400.00"
        assert view.display[2]["revenue"].value == "£0.00"
        assert view.display[0]["conversion"].value == "40.00%"
        assert "actions" not in view.display[0]
    
    def test_cell_and_total_classification(self, sales_report, sales_rows):
        targets = [TargetDefinition(id="calls", target=Threshold(high=90, low=60))]
        view = build_view(sales_report, sales_rows, targets=targets)
        
        assert [d["calls"].classification for d in view.display] == ["green", "red", "yellow"]
        assert view.display[0]["agent"].classification is None
        assert view.total_classes["calls"] == "green"
    
    def test_source_rows_untouched(self, sales_report, sales_rows):
        before = [dict(r) for r in sales_rows]
        build_view(sales_report, sales_rows, sort=SortSpec(key="calls"))
        assert sales_rows == before
