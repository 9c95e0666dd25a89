from typing import Any, Dict, List, Optional

KPI_COLUMN_EXAMPLES = {
    "growth": '"$ Crec%", "Ordenes Crec%", "Ticket Crec%"',
    "absolute": '"Ventas", "Ordenes", "Tickets"',
}


class IngestionError(Exception):
    """Base class for failures that stop a whole CSV ingestion."""


class MissingColumnsError(IngestionError):
    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Missing required columns: {', '.join(missing)}")


class NoKpiColumnsError(IngestionError):
    def __init__(self, format_type: str):
        self.format_type = format_type
        examples = KPI_COLUMN_EXAMPLES.get(format_type, "")
        super().__init__(
            f"No {format_type} metric columns found. "
            f"Check that the CSV has columns such as {examples}"
        )


class StoreWriteError(IngestionError):
    """A bulk store write failed; the reconciliation was rolled back."""
    action = "write"

    def __init__(self, details: str, sample_data: Optional[Dict[str, Any]] = None):
        self.details = details
        self.sample_data = sample_data
        super().__init__(f"Failed to {self.action} stores: {details}")


class StoreInsertError(StoreWriteError):
    action = "insert"


class StoreUpdateError(StoreWriteError):
    action = "update"
