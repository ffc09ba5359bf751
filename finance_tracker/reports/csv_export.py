"""
CSV Report Export

Builds downloadable CSV reports from the collections with pandas.

Format:
- UTF-8 with a byte-order mark (spreadsheets detect the encoding)
- comma-delimited; values containing a comma are quoted
- filename "<report>_<yyyy-mm-dd>.csv"
- numbers are plain "1234.50" so the file can be read back

Transactions carry SIGNED amounts and ISO dates, so a transactions
report can be imported again (see csv_import) and yields the same
(date, description, signed amount) entries.
"""

import csv
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd
from pydantic import BaseModel

from finance_tracker.analytics.calculations import budget_usage
from finance_tracker.models.finance import (
    Account,
    Budget,
    DateRange,
    FinancialGoal,
    Transaction,
    TransactionType,
)
from finance_tracker.utils.dates import end_of_year, month_range, start_of_year


class ReportType(str, Enum):
    TRANSACTIONS = "transactions"
    ACCOUNTS = "accounts"
    BUDGETS = "budgets"
    GOALS = "goals"
    COMPLETE = "complete"


class ReportPeriod(str, Enum):
    """Period filter applied to transactions."""
    CURRENT_MONTH = "current-month"
    LAST_MONTH = "last-month"
    CURRENT_YEAR = "current-year"
    ALL = "all"


TRANSACTION_COLUMNS = ["Date", "Description", "Amount", "Type", "Category", "Account", "Recurring", "Tags"]
ACCOUNT_COLUMNS = ["Name", "Bank", "Type", "Balance", "Created"]
BUDGET_COLUMNS = ["Category", "Limit", "Spent", "Remaining", "Period", "Alerts"]
GOAL_COLUMNS = ["Title", "Description", "Target", "Current", "Progress", "Deadline", "Category", "Status"]

SECTION_TITLES = {
    ReportType.TRANSACTIONS: "TRANSACTIONS",
    ReportType.ACCOUNTS: "ACCOUNTS",
    ReportType.BUDGETS: "BUDGETS",
    ReportType.GOALS: "GOALS",
}


class ExportedReport(BaseModel):
    """A rendered report, ready to download or write."""

    report_type: ReportType
    filename: str
    content: str
    row_count: int

    @property
    def media_type(self) -> str:
        return "text/csv;charset=utf-8"

    def to_bytes(self) -> bytes:
        """UTF-8 bytes with the byte-order mark."""
        return self.content.encode("utf-8-sig")

    def write(self, directory: Union[str, Path]) -> Path:
        path = Path(directory) / self.filename
        path.write_bytes(self.to_bytes())
        return path


def period_range(period: ReportPeriod, today: Optional[date] = None) -> Optional[DateRange]:
    """Inclusive range for a report period; None means no filter."""
    today = today or date.today()
    period = ReportPeriod(period)
    if period == ReportPeriod.CURRENT_MONTH:
        start, end = month_range(today, 0)
    elif period == ReportPeriod.LAST_MONTH:
        start, end = month_range(today, 1)
    elif period == ReportPeriod.CURRENT_YEAR:
        start, end = start_of_year(today), end_of_year(today)
    else:
        return None
    return DateRange(start=start, end=end)


def _money(value) -> str:
    return f"{value:.2f}"


def transactions_frame(
    transactions: Iterable[Transaction],
    accounts: Iterable[Account] = (),
) -> pd.DataFrame:
    names = {account.id: account.name for account in accounts}
    rows = [
        {
            "Date": t.date.isoformat(),
            "Description": t.description,
            "Amount": _money(t.signed_amount),
            "Type": "Income" if t.type == TransactionType.INCOME else "Expense",
            "Category": t.category,
            "Account": names.get(t.account_id, t.account_id),
            "Recurring": "Yes" if t.recurring else "No",
            "Tags": "; ".join(t.tags),
        }
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)


def accounts_frame(accounts: Iterable[Account]) -> pd.DataFrame:
    rows = [
        {
            "Name": account.name,
            "Bank": account.bank,
            "Type": account.type.value,
            "Balance": _money(account.balance),
            "Created": account.created_at.date().isoformat() if account.created_at else "",
        }
        for account in accounts
    ]
    return pd.DataFrame(rows, columns=ACCOUNT_COLUMNS)


def budgets_frame(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
) -> pd.DataFrame:
    budgets = list(budgets)
    usages = {usage.budget_id: usage for usage in budget_usage(budgets, transactions, today)}
    rows = [
        {
            "Category": budget.category,
            "Limit": _money(budget.limit),
            "Spent": _money(usages[budget.id].spent),
            "Remaining": _money(usages[budget.id].remaining),
            "Period": budget.period.value,
            "Alerts": "On" if budget.alerts else "Off",
        }
        for budget in budgets
    ]
    return pd.DataFrame(rows, columns=BUDGET_COLUMNS)


def goals_frame(goals: Iterable[FinancialGoal]) -> pd.DataFrame:
    rows = [
        {
            "Title": goal.title,
            "Description": goal.description or "",
            "Target": _money(goal.target_amount),
            "Current": _money(goal.current_amount),
            "Progress": f"{goal.progress:.1f}%",
            "Deadline": goal.deadline.isoformat(),
            "Category": goal.category.value,
            "Status": "Completed" if goal.completed else "In progress",
        }
        for goal in goals
    ]
    return pd.DataFrame(rows, columns=GOAL_COLUMNS)


def _render(frame: pd.DataFrame) -> str:
    return frame.to_csv(index=False, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")


def build_report(
    report_type: Union[ReportType, str],
    transactions: Iterable[Transaction] = (),
    accounts: Iterable[Account] = (),
    budgets: Iterable[Budget] = (),
    goals: Iterable[FinancialGoal] = (),
    period: Union[ReportPeriod, str] = ReportPeriod.CURRENT_MONTH,
    today: Optional[date] = None,
) -> ExportedReport:
    """
    Render one report.

    The period filters transactions only. Budget spending is always
    derived from the full transaction list for the current budget period.

    Raises:
        EmptyReportError: If there is nothing to export
    """
    today = today or date.today()
    report_type = ReportType(report_type)
    transactions = list(transactions)
    accounts = list(accounts)
    budgets = list(budgets)
    goals = list(goals)

    date_range = period_range(ReportPeriod(period), today)
    selected = (
        [t for t in transactions if date_range.contains(t.date)]
        if date_range else transactions
    )

    frames = {
        ReportType.TRANSACTIONS: lambda: transactions_frame(selected, accounts),
        ReportType.ACCOUNTS: lambda: accounts_frame(accounts),
        ReportType.BUDGETS: lambda: budgets_frame(budgets, transactions, today),
        ReportType.GOALS: lambda: goals_frame(goals),
    }

    if report_type == ReportType.COMPLETE:
        sections = []
        row_count = 0
        for section, build in frames.items():
            frame = build()
            if frame.empty:
                continue
            sections.append(f"{SECTION_TITLES[section]}\n{_render(frame)}")
            row_count += len(frame)
        if not sections:
            raise EmptyReportError(report_type.value)
        content = "\n".join(sections)
    else:
        frame = frames[report_type]()
        if frame.empty:
            raise EmptyReportError(report_type.value)
        content = _render(frame)
        row_count = len(frame)

    return ExportedReport(
        report_type=report_type,
        filename=f"{report_type.value}_{today:%Y-%m-%d}.csv",
        content=content,
        row_count=row_count,
    )


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ReportError(Exception):
    """Base exception for import/export."""
    pass


class EmptyReportError(ReportError):
    """There is no data to export for the chosen report and period."""

    def __init__(self, report_type: str):
        self.report_type = report_type
        super().__init__(f"No {report_type} data to export for this period")
