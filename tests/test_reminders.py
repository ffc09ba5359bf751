"""
Tests for locally stored payment reminders.
"""

from datetime import date
from decimal import Decimal

import pytest

from conftest import RecordingNotifier
from finance_tracker.reminders import ReminderBook, ReminderStatus
from finance_tracker.services.storage import LocalStore
from finance_tracker.validation import ValidationError


TODAY = date(2026, 1, 25)


@pytest.fixture
def book(local_store, notifier):
    return ReminderBook(local_store, notifier)


def rent(**overrides):
    data = {"title": "Rent", "amount": "1500.00", "due_date": "2026-01-28"}
    data.update(overrides)
    return data


class TestReminderBook:
    """Tests for reminder bookkeeping."""

    def test_add_persists_under_fixed_key(self, book, local_store):
        """Test that reminders live in the local store."""
        reminder = book.add(rent())

        stored = local_store.get("payment-reminders")
        assert stored[0]["id"] == reminder.id
        assert stored[0]["amount"] == "1500.00"
        assert reminder.notify_days == 3

    def test_reload_from_store(self, book, local_store):
        """Test that a new book sees earlier reminders."""
        book.add(rent())
        again = ReminderBook(local_store, RecordingNotifier())
        assert [r.title for r in again.reminders] == ["Rent"]

    def test_malformed_entries_are_skipped(self, local_store):
        """Test that a corrupt blob entry does not break loading."""
        local_store.set("payment-reminders", [{"title": "broken"}])
        assert ReminderBook(local_store).reminders == []

    def test_invalid_reminder(self, book, notifier):
        """Test validation of reminder input."""
        with pytest.raises(ValidationError, match="amount"):
            book.add(rent(amount="0"))
        assert len(notifier.errors) == 1

    def test_sorted_by_due_date(self, book):
        """Test display order."""
        book.add(rent(title="Later", due_date="2026-03-01"))
        book.add(rent(title="Sooner", due_date="2026-02-01"))
        assert [r.title for r in book.reminders] == ["Sooner", "Later"]

    def test_status(self, book):
        """Test due states relative to today."""
        overdue = book.add(rent(due_date="2026-01-20"))
        today = book.add(rent(due_date="2026-01-25"))
        soon = book.add(rent(due_date="2026-01-27"))
        later = book.add(rent(due_date="2026-02-20"))

        assert overdue.status(TODAY) == ReminderStatus.OVERDUE
        assert today.status(TODAY) == ReminderStatus.DUE_TODAY
        assert soon.status(TODAY) == ReminderStatus.DUE_SOON
        assert later.status(TODAY) == ReminderStatus.UPCOMING
        assert book.overdue(TODAY) == [overdue]
        assert len(book.due_within(7, TODAY)) == 2

    def test_notification_fires_on_notice_day(self, book, notifier):
        """Test that a reminder notifies exactly notify_days before it is due."""
        book.add(rent())  # due in 3 days
        book.add(rent(title="Gym", amount="99.90", due_date="2026-01-30", notify_days=1))

        fired = book.check_notifications(TODAY)

        assert [r.title for r in fired] == ["Rent"]
        assert notifier.of("info") == ["Rent is due in 3 days - R$ 1.500,00"]

    def test_mark_paid_recurring_moves_a_month(self, book):
        """Test that recurring reminders roll forward."""
        reminder = book.add(rent(due_date="2026-01-31", recurring=True))
        moved = book.mark_paid(reminder.id)
        assert moved.due_date == date(2026, 2, 28)
        assert book.get(reminder.id).due_date == date(2026, 2, 28)

    def test_mark_paid_one_off_removes(self, book):
        """Test that one-off reminders disappear once paid."""
        reminder = book.add(rent())
        assert book.mark_paid(reminder.id) is None
        assert book.reminders == []

    def test_remove_unknown(self, book):
        """Test removing a reminder that does not exist."""
        assert book.remove("nope") is False

    def test_amount_is_decimal(self, book):
        """Test money type."""
        assert book.add(rent(amount="10.50")).amount == Decimal("10.50")


class TestLocalStore:
    """Tests for the JSON key/value store."""

    def test_file_round_trip(self, tmp_path):
        """Test that state survives a new store instance."""
        path = tmp_path / "state.json"
        LocalStore(path).set("authToken", "abc")
        assert LocalStore(path).get("authToken") == "abc"

    def test_remove(self, tmp_path):
        """Test key removal."""
        store = LocalStore(tmp_path / "state.json")
        store.set("authToken", "abc")
        store.remove("authToken")
        assert store.get("authToken") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
