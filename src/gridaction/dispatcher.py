"""
Action dispatcher.

ActionDispatcher routes action records to their handlers and drives a grid
store to carry them out. Each action moves through

    PENDING -> RESOLVING -> MUTATING -> COMMITTED | FAILED

Actions in a batch run one at a time, in submission order, so an action sees
every write made by the actions before it. A failed action is recorded and
the batch moves on; cancellation is checked between actions only.
"""

import json
import logging
import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from gridaction.actions.payloads import parse_payload
from gridaction.actions.records import ActionRecord
from gridaction.actions.specs import parse_filter_spec
from gridaction.analysis.aggregate import aggregate, aggregation_block, find_column
from gridaction.analysis.classifier import ColumnRoleClassifier
from gridaction.analysis.dedup import dedupe
from gridaction.charts import ChartType, SeriesBy, chart_placement
from gridaction.config import EngineConfig
from gridaction.exceptions import (
    ActionValidationError,
    ColumnNotFoundError,
    GridActionError,
    GridStoreError,
    InvalidPayloadError,
    MissingSourceError,
    MissingTargetError,
    RangeNotFoundError,
    SourceNotFoundError,
    TargetNotFoundError,
    UnsupportedActionTypeError,
)
from gridaction.spreadsheet.formulas import fill_formula, offset_fill_matrix
from gridaction.spreadsheet.model import Range, cell_to_text, is_blank
from gridaction.store.base import GridStore


log = logging.getLogger(__name__)


# Kinds that only make sense inside a desktop spreadsheet host. They are
# acknowledged and skipped.
HOST_ONLY_KINDS = frozenset([
    "format", "conditionalFormat", "clearFormat",
    "createTable", "styleTable", "addTableRow", "addTableColumn", "resizeTable",
    "convertToRange", "toggleTableTotals",
    "insertRows", "insertColumns", "deleteRows", "deleteColumns",
    "mergeCells", "unmergeCells",
    "createPivotTable", "addPivotField", "configurePivotLayout",
    "refreshPivotTable", "deletePivotTable",
    "createSlicer", "configureSlicer", "connectSlicerToTable",
    "connectSlicerToPivot", "deleteSlicer",
    "insertShape", "insertImage", "insertTextBox", "formatShape",
    "deleteShape", "groupShapes", "arrangeShapes",
    "addComment", "addNote", "editComment", "editNote",
    "deleteComment", "deleteNote", "replyToComment", "resolveComment",
    "protectWorksheet", "unprotectWorksheet", "protectRange",
    "unprotectRange", "protectWorkbook", "unprotectWorkbook",
    "setPageSetup", "setPageMargins", "setPageOrientation",
    "setPrintArea", "setHeaderFooter", "setPageBreaks",
])

_SOURCE_KINDS = frozenset(["autofill", "copy", "copyValues", "validation"])
_OPTIONAL_TARGET_KINDS = frozenset(["clearFilter"])
# The target of a "sheet" action is the new sheet's name, not an address.
_NAME_TARGET_KINDS = frozenset(["sheet"])


class ActionState(Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    MUTATING = "mutating"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class ActionResult:
    """Outcome of one action.

    Attributes:
        action: The dispatched record, or None if the input could not be
            turned into one
        state: Final (or, for actions never run, current) state
        error: The exception that failed the action
        details: Handler-specific facts, e.g. ``removed_count`` or ``chart_id``
        skipped: True when the action was acknowledged without touching the grid
    """
    action: Optional[ActionRecord]
    state: ActionState = ActionState.PENDING
    error: Optional[Exception] = None
    details: Dict[str, Any] = field(default_factory=dict)
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.state == ActionState.COMMITTED

    def describe(self) -> str:
        return self.action.describe() if self.action else "invalid action"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.to_dict() if self.action else None,
            "state": self.state.value,
            "error": f"{type(self.error).__name__}: {self.error}" if self.error else None,
            "details": dict(self.details),
            "skipped": self.skipped,
        }


@dataclass
class BatchResult:
    """Results of a batch, one per submitted action, in submission order."""
    results: List[ActionResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> List[ActionResult]:
        return [r for r in self.results if r.state == ActionState.COMMITTED]

    @property
    def failed(self) -> List[ActionResult]:
        return [r for r in self.results if r.state == ActionState.FAILED]

    @property
    def pending(self) -> List[ActionResult]:
        return [r for r in self.results if r.state == ActionState.PENDING]

    def explain(self) -> str:
        """Generate a human-readable summary of the batch.

        Returns:
            Multi-line string with one line per action
        """
        if not self.results:
            return "Empty action batch (no actions)"

        skipped = sum(1 for r in self.succeeded if r.skipped)
        lines = ["Action Batch Summary", "=" * 50]
        lines.append(f"Actions: {len(self.results)}")
        lines.append(f"Committed: {len(self.succeeded)} ({skipped} skipped)")
        lines.append(f"Failed: {len(self.failed)}")
        if self.cancelled:
            lines.append(f"Cancelled with {len(self.pending)} action(s) not run")

        lines.append("")
        lines.append("Results:")
        lines.append("-" * 50)
        for i, result in enumerate(self.results, 1):
            line = f"{i}. {result.describe()}: {result.state.value.upper()}"
            if result.skipped:
                line += " (skipped)"
            if result.error is not None:
                line += f" - {type(result.error).__name__}: {result.error}"
            lines.append(line)

        return "\n".join(lines)


ActionInput = Union[ActionRecord, Mapping[str, Any]]


@dataclass
class _Context:
    target: Optional[Range] = None
    source: Optional[Range] = None


class ActionDispatcher:
    """Applies action records to a grid store.

    Usage::

        dispatcher = ActionDispatcher(MemoryGridStore())
        batch = dispatcher.execute([
            {"type": "values", "target": "A1:B2", "data": "[[1,2],[3,4]]"},
            {"type": "formula", "target": "C1:C2", "data": "=A1+B1"},
        ])
        print(batch.explain())

    Attributes:
        store: Grid store the actions mutate
        config: Engine settings
        classifier: Column role classifier used by chart actions
    """

    def __init__(
        self,
        store: GridStore,
        logger: Optional[logging.Logger] = None,
        config: Optional[EngineConfig] = None,
        classifier: Optional[ColumnRoleClassifier] = None,
    ) -> None:
        self.store = store
        self.config = config or EngineConfig()
        self.classifier = classifier or self.config.build_classifier()
        self.logger = logger or log
        self._cancelled = threading.Event()
        self._handlers: Dict[str, Callable[[ActionRecord, _Context, ActionResult], None]] = {
            "formula": self._apply_formula,
            "values": self._apply_values,
            "chart": self._apply_chart,
            "pivotChart": self._apply_pivot_chart,
            "sort": self._apply_sort,
            "filter": self._apply_filter,
            "clearFilter": self._clear_filter,
            "removeDuplicates": self._remove_duplicates,
            "autofill": self._apply_autofill,
            "copy": self._apply_copy,
            "copyValues": self._apply_copy_values,
            "sheet": self._create_sheet,
            "validation": self._apply_validation,
            "findReplace": self._find_replace,
            "textToColumns": self._text_to_columns,
        }

    @property
    def supported_kinds(self) -> List[str]:
        return sorted(self._handlers)

    def cancel(self) -> None:
        """Stop the running batch before its next action."""
        self._cancelled.set()

    def execute(
        self,
        actions: Iterable[ActionInput],
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchResult:
        """Run *actions* in order.

        Args:
            actions: ActionRecords or wire dictionaries
            cancel_event: Optional event; once set, no further action starts

        Returns:
            BatchResult with one ActionResult per action. Actions that never
            started because of cancellation stay PENDING.
        """
        self._cancelled.clear()
        batch = BatchResult()
        for item in actions:
            if batch.cancelled or self._cancelled.is_set() or (cancel_event is not None and cancel_event.is_set()):
                if not batch.cancelled:
                    self.logger.info("Batch cancelled; remaining actions are not run")
                batch.cancelled = True
                batch.results.append(ActionResult(action=self._coerce_quietly(item)))
                continue
            batch.results.append(self.dispatch(item))

        self.logger.info(
            "Batch finished: %d committed, %d failed%s",
            len(batch.succeeded), len(batch.failed), ", cancelled" if batch.cancelled else "",
        )
        return batch

    @staticmethod
    def _coerce_quietly(item: ActionInput) -> Optional[ActionRecord]:
        if isinstance(item, ActionRecord):
            return item
        try:
            return ActionRecord.from_dict(item)
        except InvalidPayloadError:
            return None

    def dispatch(self, item: ActionInput) -> ActionResult:
        """Run a single action and report its outcome. Never raises."""
        try:
            action = item if isinstance(item, ActionRecord) else ActionRecord.from_dict(item)
        except InvalidPayloadError as e:
            self.logger.error("Rejected action: %s", e)
            return ActionResult(action=None, state=ActionState.FAILED, error=e)

        result = ActionResult(action=action)
        try:
            self._run(action, result)
        except GridActionError as e:
            self._fail(result, e)
        except Exception as e:
            wrapped = GridStoreError(f"{action.describe()} failed: {e}")
            wrapped.__cause__ = e
            self.logger.debug("Unexpected error in %s", action.describe(), exc_info=True)
            self._fail(result, wrapped)
        return result

    def _fail(self, result: ActionResult, error: Exception) -> None:
        result.state = ActionState.FAILED
        result.error = error
        self.logger.error("%s failed: %s: %s", result.describe(), type(error).__name__, error)

    def _run(self, action: ActionRecord, result: ActionResult) -> None:
        kind = action.kind
        self.logger.info("Executing %s", action.describe())

        if kind in HOST_ONLY_KINDS:
            self.logger.warning("Action type '%s' needs a desktop spreadsheet host; skipping", kind)
            result.skipped = True
            result.state = ActionState.COMMITTED
            return

        result.state = ActionState.RESOLVING
        context = _Context()
        if kind not in _NAME_TARGET_KINDS:
            if action.target or kind not in _OPTIONAL_TARGET_KINDS:
                context.target = self._resolve(action.target, kind, first_area=kind == "chart")
            if kind in _SOURCE_KINDS:
                context.source = self._resolve_source(action.source, kind)
        elif not action.target:
            raise MissingTargetError(f"{kind} action requires a sheet name as target")

        result.state = ActionState.MUTATING
        handler = self._handlers.get(kind, self._apply_unsupported)
        handler(action, context, result)
        result.state = ActionState.COMMITTED
        self.logger.info("Completed %s", action.describe())

    def _parse_address(self, address: str, first_area: bool) -> Range:
        if first_area and "," in address:
            address = address.split(",")[0]
        return Range.from_a1(address.strip())

    def _resolve(self, address: Optional[str], kind: str, first_area: bool = False) -> Range:
        if not address:
            raise MissingTargetError(f"{kind} action requires a target")
        try:
            return self.store.resolve(self._parse_address(address, first_area))
        except (TargetNotFoundError, SourceNotFoundError):
            raise
        except RangeNotFoundError as e:
            raise TargetNotFoundError(f"Target {address} not found: {e}") from e

    def _resolve_source(self, address: Optional[str], kind: str) -> Range:
        if not address:
            raise MissingSourceError(f"{kind} action requires a source")
        try:
            return self.store.resolve(self._parse_address(address, False))
        except (TargetNotFoundError, SourceNotFoundError):
            raise
        except RangeNotFoundError as e:
            raise SourceNotFoundError(f"Source {address} not found: {e}") from e

    def _parse(self, action: ActionRecord, result: ActionResult) -> Any:
        parsed = parse_payload(action.kind, action.payload, action.options)
        if parsed.fallback:
            self.logger.warning("%s: %s; using fallback", action.describe(), parsed.reason)
            result.details["fallback"] = parsed.reason
        return parsed.value

    # Handlers

    def _apply_formula(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        formula = action.payload
        if not isinstance(formula, str) or not formula.strip():
            raise InvalidPayloadError(f"{action.describe()} has no formula")
        result.details["path"] = fill_formula(self.store, context.target, formula, log=self.logger)

    def _apply_values(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        values = self._parse(action, result)
        if not values:
            result.details["cells_written"] = 0
            return
        target = context.target
        shape = (len(values), len(values[0]))
        if shape != target.shape:
            self.logger.debug(
                "Values of shape %dx%d written from %s instead of %s",
                shape[0], shape[1], target.top_left().to_a1(), target.to_a1(),
            )
            target = target.top_left().resize(*shape)
        self.store.write_values(target, values)
        result.details["cells_written"] = shape[0] * shape[1]
        result.details["range"] = target.to_a1(include_sheet=True)

    def _aggregated_source(self, target: Range, block: List[List[Any]]) -> Range:
        """Write *block* below *target* and return the range it occupies."""
        start_row = target.row + target.row_count + self.config.aggregation_gap_rows
        source = self.store.create_range(target.sheet, start_row, target.col, len(block), len(block[0]))
        self.store.write_values(source, block)
        return source

    def _place_chart(
        self,
        result: ActionResult,
        chart_type: ChartType,
        source: Range,
        series_by: SeriesBy,
        title: str,
        position: Optional[str],
    ) -> None:
        anchor, end = chart_placement(
            position,
            width_cols=self.config.chart_width_cols,
            height_rows=self.config.chart_height_rows,
            default=self.config.default_chart_position,
        )
        handle = self.store.create_chart(chart_type, source, series_by, title, anchor, end)
        result.details.update(
            chart_id=handle.chart_id,
            chart_type=chart_type.value,
            source=source.to_a1(include_sheet=True),
        )
        self.logger.debug("Created %s chart over %s at %s", chart_type.value, source.to_a1(), anchor)

    def _apply_chart(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        options = self._parse(action, result)
        target = context.target
        values = self.store.read_range(target).values
        roles = self.classifier.classify(values)
        result.details["aggregated"] = roles.should_aggregate

        source = target
        series_by = SeriesBy.AUTO
        if roles.should_aggregate:
            items = aggregate(values, roles.category_column, roles.measure_column, "sum")
            block = aggregation_block(values[0], roles.category_column, roles.measure_column, items)
            source = self._aggregated_source(target, block)
            series_by = SeriesBy.COLUMNS
            self.logger.info(
                "Aggregated %d rows into %d categories (category column %d, measure column %s)",
                len(values) - 1, len(items), roles.category_column, roles.measure_column,
            )

        self._place_chart(
            result, options.chart_type, source, series_by,
            options.title, action.option("position"),
        )

    def _apply_pivot_chart(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        options = self._parse(action, result)
        target = context.target
        values = self.store.read_range(target).values
        headers = values[0]

        group_col = find_column(headers, options.group_by)
        if group_col is None:
            raise ColumnNotFoundError(f"Group-by column '{options.group_by}' not found in {target.to_a1()}")
        measure_col = None
        if options.aggregate:
            measure_col = find_column(headers, options.aggregate)
            if measure_col is None:
                self.logger.warning("Aggregate column '%s' not found; counting rows", options.aggregate)

        items = aggregate(values, group_col, measure_col, options.aggregate_func, count_fallback=True)
        if not items:
            raise ActionValidationError(f"No data rows to group in {target.to_a1()}")

        block = aggregation_block(
            headers, group_col, measure_col, items,
            category_label=options.group_by or "Category",
            value_label=options.aggregate or "Value",
        )
        source = self._aggregated_source(target, block)
        result.details["groups"] = len(items)
        self._place_chart(
            result, options.chart_type, source, SeriesBy.COLUMNS,
            options.title, action.option("position") or options.position,
        )

    def _apply_sort(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        spec = self._parse(action, result)
        self.store.apply_sort(context.target, spec)
        result.details["sort"] = spec.to_dict()

    def _apply_filter(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        spec = parse_filter_spec(action.payload)
        sheet = context.target.sheet
        self.store.clear_filter(sheet)
        self.store.apply_filter(sheet, context.target, spec)
        result.details["filter"] = spec.to_dict()

    def _clear_filter(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        sheet = context.target.sheet if context.target else self.store.active_sheet
        self.store.clear_filter(sheet)
        result.details["sheet"] = sheet

    def _remove_duplicates(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        columns = self._parse(action, result)
        target = context.target
        rows = self.store.read_range(target).values
        outcome = dedupe(rows, columns)

        self.store.clear_range(target)
        if outcome.unique_rows:
            unique = target.top_left().resize(len(outcome.unique_rows), target.col_count)
            self.store.write_values(unique, outcome.unique_rows)
        result.details["removed_count"] = outcome.removed_count
        result.details["remaining_rows"] = len(outcome.unique_rows)
        self.logger.info("Removed %d duplicate row(s) from %s", outcome.removed_count, target.to_a1())

    def _apply_autofill(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        source, target = context.source, context.target
        try:
            self.store.autofill(source, target)
            result.details["path"] = "autofill"
            return
        except (NotImplementedError, GridStoreError) as e:
            self.logger.debug("Native autofill unavailable (%s), filling from source cells", e)

        data = self.store.read_range(source)
        cells = data.formulas if data.formulas is not None else data.values
        self.store.write_formulas(target, offset_fill_matrix(cells, source, target))
        result.details["path"] = "matrix"

    def _copy_destination(self, source: Range, target: Range) -> Range:
        return target.top_left().resize(source.row_count, source.col_count)

    def _apply_copy(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        data = self.store.read_range(context.source)
        destination = self._copy_destination(context.source, context.target)
        self.store.write_formulas(destination, data.formulas if data.formulas is not None else data.values)
        result.details["range"] = destination.to_a1(include_sheet=True)

    def _apply_copy_values(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        data = self.store.read_range(context.source)
        destination = self._copy_destination(context.source, context.target)
        self.store.write_values(destination, data.values)
        result.details["range"] = destination.to_a1(include_sheet=True)

    def _create_sheet(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        name = action.target.strip()
        data = self._parse(action, result)
        self.store.create_sheet(name)
        result.details["sheet"] = name
        if data:
            self.store.write_values(Range.from_bounds(name, 0, 0, len(data), len(data[0])), data)
            result.details["rows_written"] = len(data)

    def _apply_validation(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        values = self.store.read_range(context.source).values
        options: List[str] = []
        for row in values:
            if row and not is_blank(row[0]):
                text = cell_to_text(row[0])
                if text not in options:
                    options.append(text)
        if not options:
            raise ActionValidationError(f"Source {context.source.to_a1()} has no values for a list rule")
        self.store.apply_validation(context.target, options)
        result.details["options"] = len(options)

    def _find_replace(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        options = self._parse(action, result)
        if not options.find:
            raise ActionValidationError("Find string cannot be empty")

        flags = 0 if options.match_case else re.IGNORECASE
        search = re.compile(re.escape(options.find), flags)

        data = self.store.read_range(context.target)
        cells = data.formulas if data.formulas is not None else data.values
        replaced = 0
        updated = []
        for row in cells:
            new_row = []
            for cell in row:
                if is_blank(cell) or (isinstance(cell, str) and cell.startswith("=")):
                    new_row.append(cell)
                    continue
                text = cell_to_text(cell)
                if options.match_entire_cell:
                    new_text, count = (options.replace, 1) if search.fullmatch(text) else (text, 0)
                else:
                    new_text, count = search.subn(lambda _: options.replace, text)
                if count:
                    replaced += 1
                    cell = new_text
                new_row.append(cell)
            updated.append(new_row)

        if replaced:
            self.store.write_formulas(context.target, updated)
        result.details["cells_replaced"] = replaced

    def _text_to_columns(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        options = self._parse(action, result)
        target = context.target
        if target.col_count != 1:
            raise ActionValidationError(
                f"Text to columns requires a single-column range, got {target.col_count} columns"
            )

        values = self.store.read_range(target).values
        split = [cell_to_text(row[0]).split(options.delimiter) for row in values]
        width = max(len(parts) for parts in split)
        split = [parts + [""] * (width - len(parts)) for parts in split]

        if options.destination:
            start = Range.from_a1(options.destination, sheet=target.sheet).top_left()
            destination = self.store.resolve(start.resize(len(split), width))
        else:
            destination = self.store.create_range(target.sheet, target.row, target.col + 1, len(split), width)

        existing = self.store.read_range(destination).values
        occupied = sum(1 for row in existing for cell in row if not is_blank(cell))
        if occupied and not options.force_overwrite:
            raise ActionValidationError(
                f"Destination {destination.to_a1()} contains {occupied} non-empty cell(s); "
                "set forceOverwrite to replace them"
            )
        if occupied:
            self.logger.warning("Overwriting %d non-empty cell(s) in %s", occupied, destination.to_a1())

        self.store.write_values(destination, split)
        result.details.update(range=destination.to_a1(include_sheet=True), columns=width)

    def _apply_unsupported(self, action: ActionRecord, context: _Context, result: ActionResult) -> None:
        error = UnsupportedActionTypeError(f"No handler for action type '{action.kind}'")
        self.logger.warning("%s; writing data verbatim", error)
        result.details["unsupported"] = True
        payload = action.payload
        if payload is None or payload == "":
            return
        if isinstance(payload, (dict, list)):
            payload = json.dumps(payload)
        self.store.write_values(context.target.top_left(), [[payload]])
