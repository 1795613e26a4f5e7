"""Custom exceptions for the reconciliation application."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class SheetParseError(ReconciliationError):
    """Error reading a tabular export file."""

    pass


class InvalidTimestamp(ReconciliationError):
    """A timestamp or business day could not be resolved."""

    pass


class RowRejected(ReconciliationError):
    """A source row cannot become a candidate transaction."""

    reason = "rejected"


class SummaryRow(RowRejected):
    """Row is a subtotal/total/section line, not a sale."""

    reason = "summary_row"


class MissingField(RowRejected):
    """Row lacks a mandatory field."""

    reason = "missing_field"


class MalformedExistingRecord(ReconciliationError):
    """A persisted event's fields cannot be extracted."""

    pass


class StoreError(ReconciliationError):
    """Error talking to the event store."""

    pass


class StoreUnavailable(StoreError):
    """The event store cannot be reached. Aborts the run."""

    pass


class InsertConflict(StoreError):
    """An event with the same identifier already exists."""

    def __init__(self, event_id: str):
        super().__init__(f"Event already exists: {event_id}")
        self.event_id = event_id


class InsertError(ReconciliationError):
    """Inserting a single event failed."""

    pass
