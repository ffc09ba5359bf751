"""
Keyword Categorization

Suggests a category for a transaction from keywords in its description.
The rules are deterministic: the first matching keyword wins, in the
order they are listed.

Keywords are matched on whole words, case- and accent-insensitively,
so "Farmácia São João" matches "farmacia" and "99" does not match "1999".
"""

import re
import unicodedata
from typing import Iterable, Optional

from pydantic import BaseModel

from finance_tracker.models.finance import Transaction


# (keyword, category) - first match wins
KEYWORD_RULES: tuple[tuple[str, str], ...] = (
    ("uber", "Transportation"),
    ("99", "Transportation"),
    ("ifood", "Food"),
    ("supermercado", "Food"),
    ("restaurante", "Food"),
    ("netflix", "Entertainment"),
    ("spotify", "Entertainment"),
    ("cinema", "Entertainment"),
    ("shopping", "Entertainment"),
    ("academia", "Health"),
    ("farmacia", "Health"),
    ("aluguel", "Housing"),
    ("condominio", "Housing"),
    ("luz", "Housing"),
    ("agua", "Housing"),
    ("internet", "Housing"),
)


class CategorySuggestion(BaseModel):
    """A proposed category change for one transaction."""

    transaction_id: str
    description: str
    current_category: str
    suggested_category: str
    keyword: str


def _normalize(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def _match(description: str, rules: Iterable[tuple[str, str]]) -> Optional[tuple[str, str]]:
    words = set(re.findall(r"\w+", _normalize(description)))
    for keyword, category in rules:
        if _normalize(keyword) in words:
            return keyword, category
    return None


def suggest_category(
    description: str,
    rules: Iterable[tuple[str, str]] = KEYWORD_RULES,
) -> Optional[str]:
    """Category for a description, or None when no keyword matches."""
    match = _match(description, rules)
    return match[1] if match else None


def suggest_recategorizations(
    transactions: Iterable[Transaction],
    rules: Iterable[tuple[str, str]] = KEYWORD_RULES,
) -> list[CategorySuggestion]:
    """
    Suggestions for transactions whose keyword category differs from
    the one they carry.
    """
    rules = tuple(rules)
    suggestions = []
    for transaction in transactions:
        match = _match(transaction.description, rules)
        if match is None:
            continue
        keyword, category = match
        if category.casefold() == transaction.category.casefold():
            continue
        suggestions.append(
            CategorySuggestion(
                transaction_id=transaction.id,
                description=transaction.description,
                current_category=transaction.category,
                suggested_category=category,
                keyword=keyword,
            )
        )
    return suggestions
