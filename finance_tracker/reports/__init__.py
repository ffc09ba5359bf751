"""
Import/Export Package

CSV bank statement import and CSV report export.
"""

from finance_tracker.reports.csv_export import (
    EmptyReportError,
    ExportedReport,
    ReportError,
    ReportPeriod,
    ReportType,
    build_report,
    period_range,
)
from finance_tracker.reports.csv_import import (
    ImportSummary,
    ParsedStatement,
    StatementLine,
    import_statement,
    parse_amount,
    parse_statement,
)

__all__ = [
    # Export
    "EmptyReportError",
    "ExportedReport",
    "ReportError",
    "ReportPeriod",
    "ReportType",
    "build_report",
    "period_range",
    # Import
    "ImportSummary",
    "ParsedStatement",
    "StatementLine",
    "import_statement",
    "parse_amount",
    "parse_statement",
]
