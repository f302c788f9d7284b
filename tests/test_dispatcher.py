"""
Unit tests for ActionDispatcher against the in-memory grid store.

Tests cover:
- Batch execution order, state tracking and summaries
- One test class per action family
- Failure isolation, cancellation and logging
"""

import json
import logging
import threading
from unittest.mock import Mock

import pytest

from gridaction import ActionDispatcher, MemoryGridStore
from gridaction.actions.records import ActionRecord
from gridaction.charts import ChartType, SeriesBy
from gridaction.config import EngineConfig
from gridaction.diagnostics import DiagnosticBuffer
from gridaction.dispatcher import HOST_ONLY_KINDS, ActionState, BatchResult
from gridaction.exceptions import (
    ActionValidationError,
    ColumnNotFoundError,
    GridStoreError,
    InvalidAddressError,
    InvalidFilterSpecError,
    InvalidPayloadError,
    MissingSourceError,
    MissingTargetError,
    SourceNotFoundError,
    TargetNotFoundError,
)
from gridaction.spreadsheet.model import Range


def _values(store, a1):
    return store.read_range(Range.from_a1(a1)).values


class TestBatch:

    def test_values_then_remove_duplicates(self, store, dispatcher):
        """Each action sees the writes of the actions before it."""
        batch = dispatcher.execute([
            {"type": "values", "target": "A1:B2", "data": "[[1,2],[3,4]]"},
            {"type": "removeDuplicates", "target": "A1:B2", "data": "{\"columns\":[0]}"},
        ])

        assert [r.state for r in batch.results] == [ActionState.COMMITTED, ActionState.COMMITTED]
        assert batch.results[1].details["removed_count"] == 0
        assert store.sheet_values() == [[1, 2], [3, 4]]

    def test_records_and_dicts_mix(self, store, dispatcher):
        batch = dispatcher.execute([
            ActionRecord(kind="values", target="A1", payload="5"),
            {"type": "formula", "target": "B1", "data": "=A1*2"},
        ])
        assert len(batch.succeeded) == 2
        assert store.formula_at("B1") == "=A1*2"

    def test_failure_does_not_stop_batch(self, store, dispatcher):
        batch = dispatcher.execute([
            {"type": "values", "data": "1"},
            {"type": "values", "target": "A1", "data": "2"},
        ])
        assert [r.state for r in batch.results] == [ActionState.FAILED, ActionState.COMMITTED]
        assert isinstance(batch.results[0].error, MissingTargetError)
        assert _values(store, "A1") == [[2]]

    def test_missing_type_rejected(self, dispatcher):
        batch = dispatcher.execute([{"target": "A1"}, {"type": "values", "target": "A1", "data": "1"}])
        first = batch.results[0]
        assert first.action is None
        assert first.state == ActionState.FAILED
        assert isinstance(first.error, InvalidPayloadError)
        assert first.describe() == "invalid action"
        assert batch.results[1].ok

    def test_unexpected_errors_wrapped(self, store, dispatcher):
        store.write_values = Mock(side_effect=RuntimeError("disk full"))
        result = dispatcher.dispatch({"type": "values", "target": "A1", "data": "1"})
        assert result.state == ActionState.FAILED
        assert isinstance(result.error, GridStoreError)
        assert isinstance(result.error.__cause__, RuntimeError)
        assert "disk full" in str(result.error)

    def test_result_to_dict(self, dispatcher):
        result = dispatcher.dispatch({"type": "values", "target": "A1", "data": "1"})
        data = result.to_dict()
        assert data["state"] == "committed"
        assert data["action"] == {"type": "values", "target": "A1", "data": "1"}
        assert data["error"] is None

    def test_supported_kinds(self, dispatcher):
        assert {"formula", "values", "chart", "pivotChart", "textToColumns"} <= set(dispatcher.supported_kinds)
        assert not HOST_ONLY_KINDS & set(dispatcher.supported_kinds)


class TestExplain:

    def test_empty(self):
        assert BatchResult().explain() == "Empty action batch (no actions)"

    def test_summary(self, dispatcher):
        batch = dispatcher.execute([
            {"type": "values", "target": "A1:B2", "data": "[[1,2],[3,4]]"},
            {"type": "format", "target": "A1"},
            {"type": "copy", "target": "D1"},
        ])
        text = batch.explain()
        assert text.startswith("Action Batch Summary")
        assert "Committed: 2 (1 skipped)" in text
        assert "Failed: 1" in text
        assert "1. values on A1:B2: COMMITTED" in text
        assert "2. format on A1: COMMITTED (skipped)" in text
        assert "3. copy on D1: FAILED - MissingSourceError" in text


class TestCancellation:

    ACTIONS = [
        {"type": "values", "target": "A1", "data": "1"},
        {"type": "values", "target": "A2", "data": "2"},
        {"type": "values", "target": "A3", "data": "3"},
    ]

    def test_event_set_before_start(self, store, dispatcher):
        event = threading.Event()
        event.set()
        batch = dispatcher.execute(self.ACTIONS, cancel_event=event)
        assert batch.cancelled
        assert len(batch.pending) == 3
        assert store.sheet_values() == []

    def test_event_set_between_actions(self, store, dispatcher):
        event = threading.Event()

        def actions():
            yield self.ACTIONS[0]
            event.set()
            yield from self.ACTIONS[1:]

        batch = dispatcher.execute(actions(), cancel_event=event)
        assert batch.cancelled
        assert [r.state for r in batch.results] == [
            ActionState.COMMITTED, ActionState.PENDING, ActionState.PENDING,
        ]
        assert batch.results[1].action.target == "A2"
        assert store.sheet_values() == [[1]]
        assert "Cancelled with 2 action(s) not run" in batch.explain()

    def test_cancel_method(self, store, dispatcher):
        def actions():
            yield self.ACTIONS[0]
            dispatcher.cancel()
            yield from self.ACTIONS[1:]

        batch = dispatcher.execute(actions())
        assert batch.cancelled
        assert len(batch.succeeded) == 1

    def test_cancel_resets_for_next_batch(self, dispatcher):
        dispatcher.cancel()
        batch = dispatcher.execute(self.ACTIONS)
        assert not batch.cancelled
        assert len(batch.succeeded) == 3


class TestAddressing:

    @pytest.mark.parametrize("action,error", [
        ({"type": "sort", "data": "{}"}, MissingTargetError),
        ({"type": "copy", "target": "D1"}, MissingSourceError),
        ({"type": "values", "target": "Nope!A1", "data": "1"}, TargetNotFoundError),
        ({"type": "copy", "target": "D1", "source": "Nope!A1"}, SourceNotFoundError),
        ({"type": "values", "target": "A0", "data": "1"}, InvalidAddressError),
    ])
    def test_resolution_failures(self, dispatcher, action, error):
        result = dispatcher.dispatch(action)
        assert result.state == ActionState.FAILED
        assert isinstance(result.error, error)

    def test_sheet_qualified_target(self, store, dispatcher):
        store.create_sheet("Data")
        dispatcher.dispatch({"type": "values", "target": "Data!B2", "data": "7"})
        assert store.sheet_values("Data") == [[None, None], [None, 7]]
        assert store.sheet_values() == []


class TestValuesAndFormulas:

    def test_formula_fill(self, dispatcher, store):
        store.write_values(Range.from_a1("A1:B3"), [[1, 2], [3, 4], [5, 6]])
        result = dispatcher.dispatch({"type": "formula", "target": "C1:C3", "data": "=A1+B1"})
        assert result.details["path"] == "matrix"
        assert store.formula_at("C3") == "=A3+B3"

    def test_formula_requires_text(self, dispatcher):
        result = dispatcher.dispatch({"type": "formula", "target": "C1"})
        assert isinstance(result.error, InvalidPayloadError)

    def test_values_resized_from_top_left(self, dispatcher, store):
        result = dispatcher.dispatch({"type": "values", "target": "B2:D5", "data": "[[1,2]]"})
        assert result.details == {"cells_written": 2, "range": "Sheet1!B2:C2"}
        assert _values(store, "B2:D3") == [[1, 2, None], [None, None, None]]

    def test_unparsable_values_written_as_text(self, dispatcher, store):
        result = dispatcher.dispatch({"type": "values", "target": "A1", "data": "not json"})
        assert result.ok
        assert "fallback" in result.details
        assert _values(store, "A1") == [["not json"]]

    def test_empty_rows_write_nothing(self, dispatcher, store):
        result = dispatcher.dispatch({"type": "values", "target": "B2", "data": "[[]]"})
        assert result.ok
        assert result.details["cells_written"] == 0
        assert store.sheet_values() == []


class TestCharts:

    def test_large_block_aggregated(self, sales_store):
        dispatcher = ActionDispatcher(sales_store)
        result = dispatcher.dispatch({
            "type": "chart", "target": "A1:D13", "chartType": "pie", "title": "Units by region",
        })

        assert result.ok
        assert result.details["aggregated"] is True
        assert result.details["source"] == "Sheet1!A16:B20"
        assert _values(sales_store, "A16:B20") == [
            ["Region", "Units"], ["East", 31], ["West", 12], ["South", 9], ["North", 3],
        ]
        chart = sales_store.charts[0]
        assert chart.chart_id == result.details["chart_id"]
        assert chart.chart_type == ChartType.PIE
        assert chart.series_by == SeriesBy.COLUMNS
        assert chart.title == "Units by region"
        assert (chart.anchor, chart.end) == ("H2", "P17")

    def test_category_without_numbers_sums_to_zero(self):
        rows = [["Region", "Units"]]
        rows += [[region, units] for region, units in [
            ("East", 5), ("West", 3), ("East", 8), ("West", 7), ("East", 4), ("South", 6),
            ("West", 2), ("South", 3), ("East", 9), ("North", None), ("North", ""), ("North", None),
        ]]
        store = MemoryGridStore({"Sheet1": rows})
        result = ActionDispatcher(store).dispatch({"type": "chart", "target": "A1:B13"})

        assert result.details["aggregated"] is True
        assert _values(store, "A16:B20") == [
            ["Region", "Units"], ["East", 26], ["West", 12], ["South", 9], ["North", 0],
        ]

    def test_source_rows_untouched(self, sales_store, sales_rows):
        ActionDispatcher(sales_store).dispatch({"type": "chart", "target": "A1:D13"})
        assert _values(sales_store, "A1:D13") == sales_rows

    def test_small_block_charted_raw(self, store, dispatcher):
        store.write_values(Range.from_a1("A1:B3"), [["Cat", "V"], ["a", 1], ["b", 2]])
        result = dispatcher.dispatch({"type": "chart", "target": "A1:B3", "position": "J5"})
        assert result.details["aggregated"] is False
        chart = store.charts[0]
        assert chart.source == Range.from_a1("Sheet1!A1:B3")
        assert chart.series_by == SeriesBy.AUTO
        assert chart.chart_type == ChartType.COLUMN_CLUSTERED
        assert (chart.anchor, chart.end) == ("J5", "R20")
        assert store.sheet_values() == [["Cat", "V"], ["a", 1], ["b", 2]]

    def test_multi_area_target_uses_first_area(self, store, dispatcher):
        store.write_values(Range.from_a1("A1:B2"), [["Cat", "V"], ["a", 1]])
        result = dispatcher.dispatch({"type": "chart", "target": "A1:B2,D1:D2"})
        assert result.details["source"] == "Sheet1!A1:B2"

    def test_gap_rows_configurable(self, sales_store):
        dispatcher = ActionDispatcher(sales_store, config=EngineConfig(aggregation_gap_rows=0))
        result = dispatcher.dispatch({"type": "chart", "target": "A1:D13"})
        assert result.details["source"] == "Sheet1!A14:B18"


class TestPivotCharts:

    def test_group_and_reduce(self, sales_store):
        result = ActionDispatcher(sales_store).dispatch({
            "type": "pivotChart",
            "target": "A1:D13",
            "data": json.dumps({"groupBy": "region", "aggregate": "Units", "aggregateFunc": "max"}),
            "chartType": "bar",
        })

        assert result.ok
        assert result.details["groups"] == 4
        assert _values(sales_store, "A16:B20") == [
            ["region", "Units"], ["East", 9], ["West", 7], ["South", 6], ["North", 2],
        ]
        chart = sales_store.charts[0]
        assert chart.chart_type == ChartType.BAR_CLUSTERED
        assert chart.title == "Pivot Chart"

    def test_missing_measure_counts_rows(self, sales_store):
        logger = Mock()
        result = ActionDispatcher(sales_store, logger=logger).dispatch({
            "type": "pivotChart", "target": "A1:D13",
            "data": '{"groupBy": "Region", "aggregate": "Profit"}',
        })
        assert result.ok
        assert _values(sales_store, "A16:B17") == [["Region", "Profit"], ["East", 5]]
        logger.warning.assert_called()

    def test_no_aggregate_column_labels_value(self, sales_store):
        result = ActionDispatcher(sales_store).dispatch({
            "type": "pivotChart", "target": "A1:D13", "data": '{"groupBy": "Region"}',
        })
        assert result.ok
        assert _values(sales_store, "A16:B20") == [
            ["Region", "Value"], ["East", 5], ["West", 3], ["North", 2], ["South", 2],
        ]

    def test_group_without_numbers_counts_rows(self, store, dispatcher):
        rows = [["Team", "Score"], ["a", 1], ["b", None], ["b", "n/a"]]
        store.write_values(Range.from_a1("A1:B4"), rows)
        result = dispatcher.dispatch({
            "type": "pivotChart", "target": "A1:B4", "data": '{"groupBy": "Team", "aggregate": "Score"}',
        })
        assert result.ok
        assert _values(store, "A7:B9") == [["Team", "Score"], ["b", 2], ["a", 1]]

    def test_missing_group_column(self, sales_store):
        result = ActionDispatcher(sales_store).dispatch({
            "type": "pivotChart", "target": "A1:D13", "data": '{"groupBy": "Territory"}',
        })
        assert isinstance(result.error, ColumnNotFoundError)
        assert sales_store.charts == []

    def test_unknown_function_sums(self, sales_store):
        result = ActionDispatcher(sales_store).dispatch({
            "type": "pivotChart", "target": "A1:D13",
            "data": '{"groupBy": "Region", "aggregate": "Units", "aggregateFunc": "median"}',
        })
        assert result.ok
        assert "fallback" in result.details
        assert _values(sales_store, "A16:B20") == [
            ["Region", "Units"], ["East", 31], ["West", 12], ["South", 9], ["North", 3],
        ]
        assert len(sales_store.charts) == 1


class TestSortAndFilter:

    def test_sort(self, sales_store):
        result = ActionDispatcher(sales_store).dispatch(
            {"type": "sort", "target": "A1:D13", "data": '{"column": 2, "ascending": false}'}
        )
        assert result.details["sort"] == {"column": 2, "ascending": False, "hasHeaders": True}
        assert _values(sales_store, "A1:D2") == [
            ["Region", "OrderID", "Units", "Rep"], ["East", 1009, 9, "Ann"],
        ]

    def test_sort_key_value_payload(self, sales_store):
        result = ActionDispatcher(sales_store).dispatch(
            {"type": "sort", "target": "A1:D13", "data": "column:1,ascending:false"}
        )
        assert result.ok
        assert "fallback" in result.details
        assert _values(sales_store, "B2") == [[1012]]

    def test_filter(self, sales_store):
        result = ActionDispatcher(sales_store).dispatch(
            {"type": "filter", "target": "A1:D13", "data": '{"column": 0, "values": ["East"]}'}
        )
        assert result.details["filter"] == {"column": 0, "values": ["East"]}
        assert sales_store.hidden_rows() == {2, 4, 5, 7, 8, 10, 11}

    def test_invalid_filter(self, sales_store):
        result = ActionDispatcher(sales_store).dispatch(
            {"type": "filter", "target": "A1:D13", "data": "Region=East"}
        )
        assert isinstance(result.error, InvalidFilterSpecError)
        assert sales_store.filters == {}

    def test_clear_filter_defaults_to_active_sheet(self, sales_store):
        dispatcher = ActionDispatcher(sales_store)
        batch = dispatcher.execute([
            {"type": "filter", "target": "A1:D13", "data": '{"column": 0, "values": ["West"]}'},
            {"type": "clearFilter"},
        ])
        assert batch.results[1].details["sheet"] == "Sheet1"
        assert sales_store.hidden_rows() == frozenset()


class TestDataActions:

    def test_remove_duplicates_compacts_rows(self, store, dispatcher):
        store.write_values(Range.from_a1("A1:B4"), [["a", 1], ["b", 2], ["a", 3], ["c", 4]])
        result = dispatcher.dispatch({"type": "removeDuplicates", "target": "A1:B4", "data": '{"columns": [0]}'})
        assert result.details == {"removed_count": 1, "remaining_rows": 3}
        assert store.sheet_values() == [["a", 1], ["b", 2], ["c", 4]]

    def test_remove_duplicates_all_columns_by_default(self, store, dispatcher):
        store.write_values(Range.from_a1("A1:B3"), [["a", 1], ["a", 1], ["a", 2]])
        result = dispatcher.dispatch({"type": "removeDuplicates", "target": "A1:B3"})
        assert result.details["removed_count"] == 1

    def test_copy_keeps_formulas(self, store, dispatcher):
        store.write_formulas(Range.from_a1("A1:B1"), [["=B1*2", 3]])
        result = dispatcher.dispatch({"type": "copy", "source": "A1:B1", "target": "D5:H9"})
        assert result.details["range"] == "Sheet1!D5:E5"
        assert store.formula_at("D5") == "=B1*2"
        assert _values(store, "E5") == [[3]]

    def test_copy_values(self, store, dispatcher):
        store.write_values(Range.from_a1("A1:A2"), [["x"], [4]])
        dispatcher.dispatch({"type": "copyValues", "source": "A1:A2", "target": "C1"})
        assert _values(store, "C1:C2") == [["x"], [4]]
        assert store.formula_at("C1") is None

    def test_create_sheet_with_data(self, store, dispatcher):
        result = dispatcher.dispatch({"type": "sheet", "target": "Summary", "data": '[["k","v"],["a",1]]'})
        assert result.details == {"sheet": "Summary", "rows_written": 2}
        assert store.sheet_values("Summary") == [["k", "v"], ["a", 1]]

    def test_create_sheet_twice(self, dispatcher):
        batch = dispatcher.execute([{"type": "sheet", "target": "S"}, {"type": "sheet", "target": "S"}])
        assert batch.results[0].ok
        assert isinstance(batch.results[1].error, GridStoreError)

    def test_create_sheet_needs_name(self, dispatcher):
        assert isinstance(dispatcher.dispatch({"type": "sheet"}).error, MissingTargetError)

    def test_validation_from_source_column(self, sales_store):
        result = ActionDispatcher(sales_store).dispatch(
            {"type": "validation", "source": "A2:A13", "target": "F2:F20"}
        )
        assert result.details["options"] == 4
        assert sales_store.validations[Range.from_a1("Sheet1!F2:F20")] == ["East", "West", "North", "South"]

    def test_validation_empty_source(self, dispatcher):
        result = dispatcher.dispatch({"type": "validation", "source": "Z1:Z5", "target": "A1"})
        assert isinstance(result.error, ActionValidationError)


class TestFindReplace:

    @pytest.fixture
    def words(self, store):
        store.write_values(Range.from_a1("A1:B2"), [["apple", "Apple pie"], [None, "grape"]])
        store.write_formulas(Range.from_a1("A2"), [['=B1&"apple"']])
        return store

    def test_case_insensitive_by_default(self, words, dispatcher):
        result = dispatcher.dispatch(
            {"type": "findReplace", "target": "A1:B2", "data": '{"find": "apple", "replace": "pear"}'}
        )
        assert result.details["cells_replaced"] == 2
        assert _values(words, "A1:B1") == [["pear", "pear pie"]]
        assert words.formula_at("A2") == '=B1&"apple"'

    def test_match_case(self, words, dispatcher):
        result = dispatcher.dispatch({
            "type": "findReplace", "target": "A1:B2",
            "data": '{"find": "Apple", "replace": "Pear", "matchCase": true}',
        })
        assert result.details["cells_replaced"] == 1
        assert _values(words, "A1:B1") == [["apple", "Pear pie"]]

    def test_entire_cell(self, words, dispatcher):
        dispatcher.dispatch({
            "type": "findReplace", "target": "A1:B2",
            "data": '{"find": "apple", "replace": "pear", "matchEntireCell": true}',
        })
        assert _values(words, "A1:B1") == [["pear", "Apple pie"]]

    def test_entire_cell_ignores_trailing_newline(self, store, dispatcher):
        store.write_values(Range.from_a1("A1:A2"), [["apple\n"], ["apple"]])
        result = dispatcher.dispatch({
            "type": "findReplace", "target": "A1:A2",
            "data": '{"find": "apple", "replace": "pear", "matchEntireCell": true}',
        })
        assert result.details["cells_replaced"] == 1
        assert _values(store, "A1:A2") == [["apple\n"], ["pear"]]

    def test_special_characters_are_literal(self, store, dispatcher):
        store.write_values(Range.from_a1("A1"), [["a.b"]])
        dispatcher.dispatch({"type": "findReplace", "target": "A1", "data": '{"find": ".", "replace": "\\\\1"}'})
        assert _values(store, "A1") == [["a\\1b"]]

    def test_empty_find(self, words, dispatcher):
        result = dispatcher.dispatch({"type": "findReplace", "target": "A1:B2", "data": '{"replace": "x"}'})
        assert isinstance(result.error, ActionValidationError)


class TestTextToColumns:

    @pytest.fixture
    def lines(self, store):
        store.write_values(Range.from_a1("A1:A2"), [["a,b"], ["c,d,e"]])
        return store

    def test_split_right_of_source(self, lines, dispatcher):
        result = dispatcher.dispatch({"type": "textToColumns", "target": "A1:A2"})
        assert result.details == {"range": "Sheet1!B1:D2", "columns": 3}
        assert _values(lines, "B1:D2") == [["a", "b", ""], ["c", "d", "e"]]

    def test_destination_and_delimiter(self, store, dispatcher):
        store.write_values(Range.from_a1("A1"), [["x;y"]])
        dispatcher.dispatch({
            "type": "textToColumns", "target": "A1", "data": '{"delimiter": ";", "destination": "F3"}',
        })
        assert _values(store, "F3:G3") == [["x", "y"]]

    def test_refuses_to_overwrite(self, lines, dispatcher):
        lines.write_values(Range.from_a1("C1"), [["keep"]])
        result = dispatcher.dispatch({"type": "textToColumns", "target": "A1:A2"})
        assert isinstance(result.error, ActionValidationError)
        assert "forceOverwrite" in str(result.error)
        assert _values(lines, "C1") == [["keep"]]

    def test_force_overwrite(self, lines, dispatcher):
        lines.write_values(Range.from_a1("C1"), [["keep"]])
        result = dispatcher.dispatch(
            {"type": "textToColumns", "target": "A1:A2", "data": '{"forceOverwrite": true}'}
        )
        assert result.ok
        assert _values(lines, "C1") == [["b"]]

    def test_single_column_only(self, lines, dispatcher):
        result = dispatcher.dispatch({"type": "textToColumns", "target": "A1:B2"})
        assert isinstance(result.error, ActionValidationError)


class TestAutofill:

    def test_fallback_translates_formulas(self, store, dispatcher):
        store.write_formulas(Range.from_a1("A1"), [["=B1*2"]])
        result = dispatcher.dispatch({"type": "autofill", "source": "A1", "target": "A1:A3"})
        assert result.details["path"] == "matrix"
        assert [store.formula_at(cell) for cell in ("A1", "A2", "A3")] == ["=B1*2", "=B2*2", "=B3*2"]

    def test_fallback_repeats_values(self, store, dispatcher):
        store.write_values(Range.from_a1("A1:A2"), [["x"], ["y"]])
        dispatcher.dispatch({"type": "autofill", "source": "A1:A2", "target": "A3:A5"})
        assert _values(store, "A3:A5") == [["x"], ["y"], ["x"]]

    def test_native_autofill_preferred(self, store, dispatcher):
        store.autofill = Mock()
        result = dispatcher.dispatch({"type": "autofill", "source": "A1", "target": "A1:A3"})
        assert result.details["path"] == "autofill"
        store.autofill.assert_called_once_with(Range.from_a1("Sheet1!A1"), Range.from_a1("Sheet1!A1:A3"))

    def test_target_above_source(self, store, dispatcher):
        result = dispatcher.dispatch({"type": "autofill", "source": "A3", "target": "A1:A2"})
        assert isinstance(result.error, InvalidAddressError)


class TestUnhandledKinds:

    @pytest.mark.parametrize("kind", ["format", "createTable", "mergeCells", "protectWorksheet"])
    def test_host_only_kinds_skipped(self, store, dispatcher, kind):
        result = dispatcher.dispatch({"type": kind, "target": "A1", "data": "{}"})
        assert result.ok
        assert result.skipped
        assert store.sheet_values() == []

    def test_unknown_kind_writes_payload(self, store, dispatcher):
        result = dispatcher.dispatch({"type": "sparkline", "target": "E2:E9", "data": {"kind": "line"}})
        assert result.ok
        assert result.details["unsupported"] is True
        assert _values(store, "E2") == [['{"kind": "line"}']]

    def test_unknown_kind_without_payload(self, store, dispatcher):
        result = dispatcher.dispatch({"type": "sparkline", "target": "E2"})
        assert result.ok
        assert store.sheet_values() == []


class TestLogging:

    def test_injected_logger_receives_diagnostics(self, store):
        logger = logging.getLogger("gridaction.tests.dispatch")
        logger.setLevel(logging.DEBUG)
        buffer = DiagnosticBuffer()
        logger.addHandler(buffer)
        try:
            ActionDispatcher(store, logger=logger).execute([
                {"type": "format", "target": "A1"},
                {"type": "values", "data": "1"},
            ])
        finally:
            logger.removeHandler(buffer)

        assert any("desktop spreadsheet host" in e.message for e in buffer.entries("warning"))
        assert any("MissingTargetError" in e.message for e in buffer.entries("error"))
        assert "Batch finished" in buffer.entries()[0].message

    def test_fallback_warned(self, store):
        logger = Mock()
        ActionDispatcher(store, logger=logger).dispatch({"type": "values", "target": "A1", "data": "plain"})
        logger.warning.assert_called_once()
