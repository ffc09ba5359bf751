"""
Tests for keyword categorization.
"""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.categorization import suggest_category, suggest_recategorizations
from finance_tracker.models.finance import Transaction


def txn(description, category, transaction_id="1"):
    return Transaction(id=transaction_id, description=description, amount=Decimal("10"),
                       type="expense", category=category, account_id="A", date=date(2026, 1, 1))


class TestSuggestCategory:
    """Tests for single descriptions."""

    @pytest.mark.parametrize("description, category", [
        ("UBER *TRIP", "Transportation"),
        ("Pedido iFood 123", "Food"),
        ("Farmácia São João", "Health"),
        ("NETFLIX.COM", "Entertainment"),
        ("Conta de Luz", "Housing"),
    ])
    def test_known_keywords(self, description, category):
        """Test keyword hits, ignoring case and accents."""
        assert suggest_category(description) == category

    def test_whole_words_only(self):
        """Test that keywords inside other words do not match."""
        assert suggest_category("Payment 1999") is None
        assert suggest_category("Fluzão") is None

    def test_first_rule_wins(self):
        """Test rule order."""
        assert suggest_category("Uber to cinema") == "Transportation"

    def test_custom_rules(self):
        """Test caller-provided rules."""
        assert suggest_category("Gym monthly", rules=[("gym", "Health")]) == "Health"


class TestRecategorizations:
    """Tests for suggestions over a ledger."""

    def test_only_mismatches_are_suggested(self):
        """Test that correctly categorized entries are left alone."""
        suggestions = suggest_recategorizations([
            txn("Uber ride", "Other", "1"),
            txn("Spotify", "entertainment", "2"),
            txn("Bakery", "Food", "3"),
        ])
        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert suggestion.transaction_id == "1"
        assert suggestion.suggested_category == "Transportation"
        assert suggestion.keyword == "uber"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
