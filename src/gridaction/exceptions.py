"""
Exception classes for gridaction.

These exceptions signal the error conditions that can occur while an action
record is resolved against a grid store and applied to it. The dispatcher
turns every one of them into a per-action failure result; none of them is
meant to abort a batch.
"""


class GridActionError(Exception):
    """Base class for every error raised by gridaction."""
    pass


class MissingTargetError(GridActionError):
    """Raised when an action requires a target address and none was given."""
    pass


class MissingSourceError(GridActionError):
    """Raised when an action requires a source address and none was given.

    Examples:
        - ``copy`` / ``copyValues`` without a ``source``
        - ``autofill`` or ``validation`` without a ``source``
    """
    pass


class InvalidAddressError(GridActionError, ValueError):
    """Raised for malformed range or column references.

    Examples:
        - ``"A0"`` (rows are 1-based in A1 notation)
        - ``"1A:B2"`` or an empty string
        - ``letter_to_index("A1")`` (non-alphabetic column letters)
    """
    pass


class InvalidPayloadError(GridActionError):
    """Raised when an action payload cannot be given the expected shape.

    Payload parsing normally recovers with a documented fallback; this error
    is only surfaced where no fallback exists (e.g. a wire record that has no
    ``type``).
    """
    pass


class ActionValidationError(GridActionError):
    """Raised when well-formed action options are unusable.

    Examples:
        - ``findReplace`` with an empty search string
        - ``textToColumns`` over more than one column
        - ``textToColumns`` into a non-empty destination without overwrite
    """
    pass


class InvalidFilterSpecError(ActionValidationError):
    """Raised when a filter action lacks a column or allowed values."""
    pass


class ColumnNotFoundError(ActionValidationError):
    """Raised when a named column cannot be matched against the header row."""
    pass


class UnsupportedActionTypeError(GridActionError):
    """Raised for action types the dispatcher has no handler for.

    The dispatcher logs this error and falls back to writing the payload
    verbatim into the target instead of failing the action.
    """
    pass


class GridStoreError(GridActionError):
    """Raised when a grid store operation fails.

    Stores wrap their backend exceptions in this class (or a subclass) so the
    dispatcher can report them as ordinary per-action failures.
    """
    pass


class SheetsAPIError(GridStoreError):
    """Raised when a Google Sheets API call fails.

    This error wraps exceptions from the Google Sheets API (via gspread) and
    provides context about which operation failed. Common causes include:
        - Authentication failures
        - Rate limiting (HTTP 429)
        - Network connectivity issues or timeouts
        - Invalid spreadsheet IDs or permissions errors
    """
    pass


class RangeNotFoundError(GridStoreError):
    """Raised when a grid store cannot resolve an address (e.g. unknown sheet)."""
    pass


class SourceNotFoundError(RangeNotFoundError):
    """Raised when an action's source address cannot be resolved."""
    pass


class TargetNotFoundError(RangeNotFoundError):
    """Raised when an action's target address cannot be resolved."""
    pass
