"""
Payment Reminders

Upcoming bills and expected income the user wants to be reminded of.
Reminders never reach the backend: they are an app-local JSON blob
stored under a fixed key of the local store.

A reminder fires (one notification) on the day that is exactly
`notify_days` days before its due date.
"""

from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

import structlog
from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.config import get_settings
from finance_tracker.models.finance import TransactionType
from finance_tracker.services.notifications import LogNotifier, Notifier
from finance_tracker.services.storage import KeyValueStoreInterface
from finance_tracker.utils.dates import shift_months
from finance_tracker.utils.formatting import format_currency
from finance_tracker.validation import MIN_AMOUNT, ValidationError, validate_draft


logger = structlog.get_logger(__name__)

# Due within this many days counts as "due soon"
DUE_SOON_DAYS = 3


class ReminderStatus(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_SOON = "due_soon"
    UPCOMING = "upcoming"


class ReminderDraft(BaseModel):
    """A new reminder as entered by the user."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=MIN_AMOUNT, decimal_places=2)
    due_date: date
    type: TransactionType = TransactionType.EXPENSE
    recurring: bool = False
    notify_days: Optional[int] = Field(default=None, ge=0, le=60)


class PaymentReminder(BaseModel):
    id: str
    title: str
    amount: Decimal
    due_date: date
    type: TransactionType = TransactionType.EXPENSE
    recurring: bool = False
    notify_days: int = 3

    def days_until(self, today: Optional[date] = None) -> int:
        return (self.due_date - (today or date.today())).days

    def status(self, today: Optional[date] = None) -> ReminderStatus:
        days = self.days_until(today)
        if days < 0:
            return ReminderStatus.OVERDUE
        if days == 0:
            return ReminderStatus.DUE_TODAY
        if days <= DUE_SOON_DAYS:
            return ReminderStatus.DUE_SOON
        return ReminderStatus.UPCOMING

    def is_due_for_notification(self, today: Optional[date] = None) -> bool:
        return self.days_until(today) == self.notify_days


class ReminderBook:
    """
    The user's reminders, persisted in the local store.

    Usage:
        book = ReminderBook(local_store, notifier)
        book.add({"title": "Rent", "amount": "1500", "due_date": "2026-02-05"})
        book.check_notifications()
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        notifier: Optional[Notifier] = None,
        key: Optional[str] = None,
    ):
        self._store = store
        self._notifier = notifier or LogNotifier()
        self._key = key or get_settings().storage.reminders_key
        self._reminders = self._read()

    def _read(self) -> list[PaymentReminder]:
        reminders = []
        for raw in self._store.get(self._key, []) or []:
            try:
                reminders.append(PaymentReminder.model_validate(raw))
            except ValueError as e:
                # Skip malformed entries
                logger.warning("malformed_reminder_skipped", error=str(e))
        return reminders

    def _save(self) -> None:
        self._store.set(
            self._key,
            [reminder.model_dump(mode="json") for reminder in self._reminders],
        )

    @property
    def reminders(self) -> list[PaymentReminder]:
        """Reminders by due date, soonest first."""
        return sorted(self._reminders, key=lambda r: r.due_date)

    def get(self, reminder_id: str) -> Optional[PaymentReminder]:
        for reminder in self._reminders:
            if reminder.id == reminder_id:
                return reminder
        return None

    def add(self, draft) -> PaymentReminder:
        """
        Raises:
            ValidationError: If the draft is invalid
        """
        try:
            values = validate_draft(ReminderDraft, draft)
        except ValidationError as e:
            self._notifier.error(str(e))
            raise

        notify_days = values.notify_days
        if notify_days is None:
            notify_days = get_settings().app.default_reminder_notify_days

        reminder = PaymentReminder(
            id=str(uuid4()),
            **values.model_dump(exclude={"notify_days"}),
            notify_days=notify_days,
        )
        self._reminders.append(reminder)
        self._save()
        self._notifier.success("Reminder created")
        return reminder

    def remove(self, reminder_id: str) -> bool:
        remaining = [r for r in self._reminders if r.id != reminder_id]
        if len(remaining) == len(self._reminders):
            return False
        self._reminders = remaining
        self._save()
        self._notifier.info("Reminder removed")
        return True

    def mark_paid(self, reminder_id: str) -> Optional[PaymentReminder]:
        """
        Settle a reminder. Recurring reminders move to the same day next
        month; one-off reminders are removed.

        Returns:
            The rescheduled reminder, or None if it was removed
        """
        reminder = self.get(reminder_id)
        if reminder is None:
            return None
        if not reminder.recurring:
            self.remove(reminder_id)
            return None

        rescheduled = reminder.model_copy(
            update={"due_date": shift_months(reminder.due_date, 1)}
        )
        self._reminders = [
            rescheduled if r.id == reminder_id else r for r in self._reminders
        ]
        self._save()
        return rescheduled

    def due_within(self, days: int, today: Optional[date] = None) -> list[PaymentReminder]:
        """Reminders due between today and `days` days from now."""
        today = today or date.today()
        horizon = today + timedelta(days=days)
        return [r for r in self.reminders if today <= r.due_date <= horizon]

    def overdue(self, today: Optional[date] = None) -> list[PaymentReminder]:
        return [r for r in self.reminders if r.status(today) == ReminderStatus.OVERDUE]

    def check_notifications(self, today: Optional[date] = None) -> list[PaymentReminder]:
        """
        Notify every reminder whose notice day is today.

        Returns:
            The reminders that fired
        """
        fired = [r for r in self.reminders if r.is_due_for_notification(today)]
        for reminder in fired:
            days = reminder.days_until(today)
            when = "today" if days == 0 else f"in {days} day{'s' if days != 1 else ''}"
            self._notifier.info(
                f"{reminder.title} is due {when} - {format_currency(reminder.amount)}"
            )
        return fired
