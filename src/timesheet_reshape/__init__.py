"""timesheet-reshape — Turn wide timesheets into one row per logged entry."""

__version__ = "0.1.0"

TICKET_COLUMN = "Ticket"

OUTPUT_COLUMNS: list[str] = ["Date", "Ticket", "Time Spent"]
