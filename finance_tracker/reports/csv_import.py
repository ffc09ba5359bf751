"""
Bank Statement Import

Reads CSV statements with pandas and submits each line as a transaction.

Accepted layout (columns beyond the third are ignored):
    date, description, amount[, ...]

- comma or semicolon delimited (semicolon when the first line has at
  least as many semicolons as commas)
- a first line whose first cell carries a date-like header token
  ("date", "data", "fecha") is a header and skipped
- a minus sign in the amount means expense, otherwise income
- "1.234,56" and "1,234.56" both read as 1234.56: when both separators
  appear the last one is the decimal separator

IMPORTANT: A malformed line never aborts the batch. It is counted as
failed, logged, and the import moves on.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Optional, Union

import pandas as pd
import structlog
from pydantic import BaseModel, Field

from finance_tracker.categorization import suggest_category
from finance_tracker.models.finance import TransactionType
from finance_tracker.reports.csv_export import ReportError
from finance_tracker.services.gateway import RequestError
from finance_tracker.stores import AccountStore, StoreError, TransactionStore
from finance_tracker.utils.dates import parse_date
from finance_tracker.validation import ValidationError


logger = structlog.get_logger(__name__)

HEADER_TOKENS = ("date", "data", "fecha")
DEFAULT_INCOME_CATEGORY = "Other Income"
DEFAULT_EXPENSE_CATEGORY = "Other"

_AMOUNT_CHARS = re.compile(r"[^\d.,-]")


class StatementLine(BaseModel):
    """One parsed statement line."""

    line: int = Field(..., description="1-based line number in the file")
    date: date
    description: str
    amount: Decimal = Field(..., description="Unsigned magnitude")
    type: TransactionType

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == TransactionType.INCOME else -self.amount


class ParsedStatement(BaseModel):
    lines: list[StatementLine] = Field(default_factory=list)
    failed_lines: dict[int, str] = Field(
        default_factory=dict,
        description="line number -> reason"
    )


class ImportSummary(BaseModel):
    succeeded: int = 0
    failed: int = 0
    errors: dict[int, str] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


def parse_amount(text: str) -> Decimal:
    """
    Signed amount from a statement cell.

    Raises:
        ValueError: If no number can be read
    """
    cleaned = _AMOUNT_CHARS.sub("", text or "")
    negative = "-" in cleaned
    digits = cleaned.replace("-", "")

    if "," in digits and "." in digits:
        if digits.rfind(",") > digits.rfind("."):
            digits = digits.replace(".", "").replace(",", ".")
        else:
            digits = digits.replace(",", "")
    elif "," in digits:
        digits = digits.replace(",", ".") if digits.count(",") == 1 else digits.replace(",", "")
    elif digits.count(".") > 1:
        digits = digits.replace(".", "")

    try:
        value = Decimal(digits)
    except InvalidOperation:
        raise ValueError(f"Unreadable amount: {text!r}") from None
    if not value.is_finite():
        raise ValueError(f"Unreadable amount: {text!r}")
    return -value if negative else value


def _delimiter(first_line: str) -> str:
    semicolons = first_line.count(";")
    return ";" if semicolons and semicolons >= first_line.count(",") else ","


def _is_header(first_cell: str) -> bool:
    cell = first_cell.strip().casefold()
    return any(token in cell for token in HEADER_TOKENS)


def parse_statement(content: Union[str, bytes]) -> ParsedStatement:
    """
    Parse statement text into lines.

    Lines with fewer than three columns, an unreadable date or amount,
    or an empty description are reported in `failed_lines`.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")
    content = content.lstrip("\ufeff")

    raw_lines = [line for line in content.splitlines() if line.strip()]
    if not raw_lines:
        return ParsedStatement()

    delimiter = _delimiter(raw_lines[0])
    width = max(line.count(delimiter) for line in raw_lines) + 1
    frame = pd.read_csv(
        StringIO("\n".join(raw_lines)),
        sep=delimiter,
        header=None,
        names=list(range(max(width, 3))),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
    ).fillna("")

    result = ParsedStatement()
    for position, row in enumerate(frame.itertuples(index=False)):
        line_number = position + 1
        cells = [str(cell).strip() for cell in row]
        if position == 0 and _is_header(cells[0]):
            continue

        if not all(cells[:3]):
            result.failed_lines[line_number] = "Expected date, description and amount"
            continue

        try:
            day = parse_date(cells[0])
            amount = parse_amount(cells[2])
        except ValueError as e:
            result.failed_lines[line_number] = str(e)
            continue

        result.lines.append(
            StatementLine(
                line=line_number,
                date=day,
                description=cells[1],
                amount=abs(amount),
                type=TransactionType.EXPENSE if amount < 0 else TransactionType.INCOME,
            )
        )

    return result


def categorize(line: StatementLine) -> str:
    """Keyword category, falling back to the default for the line's type."""
    category = suggest_category(line.description)
    if category:
        return category
    if line.type == TransactionType.INCOME:
        return DEFAULT_INCOME_CATEGORY
    return DEFAULT_EXPENSE_CATEGORY


async def import_statement(
    content: Union[str, bytes],
    transactions: TransactionStore,
    accounts: AccountStore,
    account_id: Optional[str] = None,
) -> ImportSummary:
    """
    Parse a statement and add every line as a transaction.

    Args:
        content: CSV text or bytes
        transactions: Store the lines are added through (paired writes apply)
        accounts: Account list used for the default account
        account_id: Target account; defaults to the first account

    Returns:
        ImportSummary with succeeded/failed counts

    Raises:
        ReportError: If there is no account to import into
    """
    if account_id is None:
        if not accounts.items:
            raise ReportError("Create an account before importing a statement")
        account_id = accounts.items[0].id

    parsed = parse_statement(content)
    summary = ImportSummary(
        failed=len(parsed.failed_lines),
        errors=dict(parsed.failed_lines),
    )
    for line_number, reason in parsed.failed_lines.items():
        logger.warning("statement_line_skipped", line=line_number, reason=reason)

    for line in parsed.lines:
        draft = {
            "description": line.description[:200],
            "amount": line.amount,
            "type": line.type,
            "category": categorize(line),
            "account_id": account_id,
            "date": line.date,
        }
        try:
            await transactions.add(draft)
        except (ValidationError, RequestError, StoreError) as e:
            summary.failed += 1
            summary.errors[line.line] = str(e)
            logger.warning("statement_line_failed", line=line.line, error=str(e))
            continue
        summary.succeeded += 1

    logger.info(
        "statement_imported",
        succeeded=summary.succeeded,
        failed=summary.failed,
        account_id=account_id,
    )
    return summary
