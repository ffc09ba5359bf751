"""
Tests for the entity stores (load lifecycle and single-entity writes).

All backend calls go to the in-memory FakeGateway.
"""

import asyncio
from decimal import Decimal

import pytest
from tenacity import wait_none

from conftest import account_row, transaction_row
from finance_tracker.models.audit import AuditEventType
from finance_tracker.services.gateway import RequestError
from finance_tracker.stores import (
    AccountStore,
    CreditCardStore,
    NotAuthenticatedError,
    NotFoundError,
    StoreError,
    StoreState,
)
from finance_tracker.validation import ValidationError


ACCOUNT_DRAFT = {"name": "Main", "bank": "Nubank", "type": "checking", "color": "#8A05BE"}


async def event_types(audit) -> list[AuditEventType]:
    return [event.event_type for event in await audit.recent()]


class TestLoad:
    """Tests for collection loading."""

    def test_load_without_user_is_empty_and_ready(self, gateway, notifier):
        """Test that a signed-out store loads nothing and never calls the backend."""
        store = AccountStore(gateway, notifier=notifier)
        assert asyncio.run(store.load()) == []
        assert store.state == StoreState.READY
        assert gateway.calls == []

    def test_load_without_user_passes_through_loading(self, gateway, notifier):
        """Test that both load paths report the same state transitions."""
        store = AccountStore(gateway, notifier=notifier)
        states = []
        store.on_state_change(states.append)

        asyncio.run(store.load())

        assert states == [StoreState.LOADING, StoreState.READY]

    def test_signed_in_load_states(self, gateway, accounts):
        """Test the transitions of a fetch."""
        states = []
        accounts.on_state_change(states.append)
        asyncio.run(accounts.load())
        assert states == [StoreState.LOADING, StoreState.READY]

    def test_load_replaces_collection(self, gateway, accounts):
        """Test that load fetches with server ordering and replaces the list."""
        gateway.seed("accounts", account_row("Old", created_at="2025-01-01T00:00:00+00:00"))
        gateway.seed("accounts", account_row("New", created_at="2026-02-01T00:00:00+00:00"))

        asyncio.run(accounts.load())

        assert [a.name for a in accounts.items] == ["New", "Old"]
        assert accounts.state == StoreState.READY
        method, path, params = gateway.calls[0]
        assert (method, path) == ("GET", "accounts")
        assert params == {"order": "created_at.desc"}

    def test_load_bumps_version(self, gateway, accounts):
        """Test that every load produces a new version."""
        before = accounts.version
        asyncio.run(accounts.load())
        assert accounts.version > before

    def test_failed_load_keeps_collection(self, gateway, accounts, notifier, audit):
        """Test that a failed reload leaves the previous collection and state."""
        gateway.seed("accounts", account_row())
        asyncio.run(accounts.load())

        gateway.fail("GET", "accounts", message="Service unavailable", status_code=503)
        with pytest.raises(RequestError, match="Service unavailable"):
            asyncio.run(accounts.load())

        assert len(accounts) == 1
        assert accounts.state == StoreState.READY
        assert notifier.errors == ["Service unavailable"]
        assert AuditEventType.COLLECTION_LOAD_FAILED in asyncio.run(event_types(audit))

    def test_first_failed_load_returns_to_uninitialized(self, gateway, accounts):
        """Test the state after an initial load failure."""
        gateway.fail("GET", "accounts")
        with pytest.raises(RequestError):
            asyncio.run(accounts.load())
        assert accounts.state == StoreState.UNINITIALIZED

    def test_malformed_rows_are_skipped(self, gateway, accounts):
        """Test that one bad row does not break the whole load."""
        gateway.seed("accounts", account_row("Good"))
        gateway.seed("accounts", {"name": "Broken", "user_id": "user-1"})
        asyncio.run(accounts.load())
        assert [a.name for a in accounts.items] == ["Good"]

    def test_retried_load_recovers(self, gateway, notifier, user):
        """Test that transient failures are retried silently."""
        store = AccountStore(gateway, notifier=notifier, user=user, retry_wait=wait_none())
        gateway.seed("accounts", account_row())
        gateway.fail("GET", "accounts", times=2)

        asyncio.run(store.load(retry=True))

        assert len(store) == 1
        assert len(gateway.calls_to("GET")) == 3
        assert notifier.errors == []

    def test_retried_load_reports_final_failure_once(self, gateway, notifier, user):
        """Test that exhausting the attempts produces one notification."""
        store = AccountStore(
            gateway, notifier=notifier, user=user, retry_attempts=2, retry_wait=wait_none()
        )
        gateway.fail("GET", "accounts", message="Gateway timeout", status_code=504)

        with pytest.raises(RequestError, match="Gateway timeout"):
            asyncio.run(store.load(retry=True))

        assert len(gateway.calls_to("GET")) == 2
        assert notifier.errors == ["Gateway timeout"]


class TestWrites:
    """Tests for add/update/delete on a plain store."""

    def test_add_prepends_server_record(self, gateway, accounts, notifier):
        """Test that the record returned by the server is used, id included."""
        gateway.seed("accounts", account_row("Existing"))
        asyncio.run(accounts.load())

        account = asyncio.run(accounts.add(ACCOUNT_DRAFT))

        assert account.id == gateway.tables["accounts"][-1]["id"]
        assert accounts.items[0].id == account.id
        assert len(accounts) == 2
        assert notifier.of("success") == ["Account created"]

    def test_add_sends_owner(self, gateway, accounts):
        """Test that created rows carry the signed-in user's id."""
        asyncio.run(accounts.add(ACCOUNT_DRAFT))
        _, _, payload = gateway.calls_to("POST")[0]
        assert payload["user_id"] == "user-1"

    def test_invalid_draft_is_not_sent(self, gateway, accounts, notifier, audit):
        """Test that validation failures never reach the backend."""
        with pytest.raises(ValidationError) as excinfo:
            asyncio.run(accounts.add({**ACCOUNT_DRAFT, "name": "", "balance": "-5"}))

        assert set(excinfo.value.errors) == {"name", "balance"}
        assert gateway.calls == []
        assert len(notifier.errors) == 1
        assert AuditEventType.VALIDATION_FAILED in asyncio.run(event_types(audit))

    def test_add_requires_user(self, gateway, notifier):
        """Test that a signed-out store refuses writes."""
        store = AccountStore(gateway, notifier=notifier)
        with pytest.raises(NotAuthenticatedError):
            asyncio.run(store.add(ACCOUNT_DRAFT))
        assert gateway.calls == []
        assert notifier.errors == ["Sign in to change your data"]

    def test_rejected_add_leaves_collection(self, gateway, accounts, notifier):
        """Test that a backend rejection changes nothing locally."""
        gateway.fail("POST", "accounts", message="violates check constraint")
        with pytest.raises(RequestError):
            asyncio.run(accounts.add(ACCOUNT_DRAFT))
        assert len(accounts) == 0
        assert notifier.errors == ["violates check constraint"]

    def test_unreadable_create_response(self, gateway, accounts, notifier, audit):
        """Test a create the server accepted but answered without a record."""
        gateway.drop_response("POST", "accounts")

        with pytest.raises(StoreError, match="could not be read"):
            asyncio.run(accounts.add(ACCOUNT_DRAFT))

        assert len(accounts) == 0
        assert len(notifier.errors) == 1
        assert AuditEventType.SYSTEM_ERROR in asyncio.run(event_types(audit))

    def test_update_sends_only_changed_fields(self, gateway, accounts):
        """Test partial updates and the local shallow merge."""
        gateway.seed("accounts", account_row("Main", balance="10"))
        asyncio.run(accounts.load())
        account_id = accounts.items[0].id

        updated = asyncio.run(accounts.update(account_id, {"name": "Renamed"}))

        _, path, payload = gateway.calls_to("PUT")[0]
        assert path == f"accounts/{account_id}"
        assert payload == {"name": "Renamed"}
        assert updated.name == "Renamed"
        assert updated.balance == Decimal("10")

    def test_update_rejects_explicit_null(self, gateway, accounts):
        """Test that a required field cannot be cleared."""
        gateway.seed("accounts", account_row())
        asyncio.run(accounts.load())
        with pytest.raises(ValidationError, match="name"):
            asyncio.run(accounts.update(accounts.items[0].id, {"name": None}))
        assert gateway.calls_to("PUT") == []

    def test_update_unknown_record(self, gateway, accounts, notifier):
        """Test that editing a missing record fails before any call."""
        with pytest.raises(NotFoundError, match="Account not found: 99"):
            asyncio.run(accounts.update("99", {"name": "X"}))
        assert gateway.calls == []
        assert notifier.errors == ["Account not found: 99"]

    def test_balance_override_is_audited(self, gateway, accounts, audit):
        """Test that a direct balance edit leaves a warning trail."""
        gateway.seed("accounts", account_row(balance="10"))
        asyncio.run(accounts.load())
        asyncio.run(accounts.update(accounts.items[0].id, {"balance": "25.00"}))

        assert accounts.items[0].balance == Decimal("25.00")
        assert AuditEventType.BALANCE_OVERRIDDEN in asyncio.run(event_types(audit))

    def test_delete_removes_record(self, gateway, accounts):
        """Test remote-then-local delete."""
        gateway.seed("accounts", account_row())
        asyncio.run(accounts.load())
        account_id = accounts.items[0].id

        asyncio.run(accounts.delete(account_id))

        assert len(accounts) == 0
        assert gateway.tables["accounts"] == []

    def test_account_delete_drops_its_transactions(self, gateway, accounts, transactions):
        """Test that the cached ledger follows the backend cascade."""
        kept, dropped = gateway.seed("accounts", account_row("Kept"), account_row("Dropped"))
        gateway.seed("transactions", transaction_row(kept["id"]), transaction_row(dropped["id"]))
        asyncio.run(accounts.load())
        asyncio.run(transactions.load())

        asyncio.run(accounts.delete(dropped["id"]))

        assert [t.account_id for t in transactions.items] == [kept["id"]]

    def test_clear_forgets_everything(self, gateway, accounts):
        """Test sign-out cleanup."""
        gateway.seed("accounts", account_row())
        asyncio.run(accounts.load())
        accounts.clear()
        assert len(accounts) == 0
        assert accounts.state == StoreState.UNINITIALIZED


class TestStorageMapping:
    """Tests for client-to-storage field renaming."""

    def test_credit_card_columns(self, gateway, store_kwargs):
        """Test that renamed fields reach the backend under their column names."""
        cards = CreditCardStore(gateway, **store_kwargs)
        card = asyncio.run(cards.add({
            "name": "Gold",
            "bank": "Itau",
            "limit": "5000",
            "due_day": 10,
            "closing_day": 3,
            "color": "#FFD700",
        }))

        _, _, payload = gateway.calls_to("POST")[0]
        assert payload["card_limit"] == "5000"
        assert payload["due_date"] == 10
        assert payload["closing_date"] == 3
        assert "limit" not in payload
        assert card.limit == Decimal("5000")
        assert card.due_day == 10

    def test_budget_limit_round_trip(self, gateway, budgets):
        """Test that a stored budget_limit loads back as limit."""
        gateway.seed("budgets", {
            "category": "Food",
            "budget_limit": "800.00",
            "period": "monthly",
            "color": "#00AA00",
            "alerts": None,
        })
        asyncio.run(budgets.load())
        budget = budgets.items[0]
        assert budget.limit == Decimal("800.00")
        assert budget.alerts is True

    def test_card_totals(self, gateway, store_kwargs):
        """Test limit and usage totals across cards."""
        gateway.seed(
            "credit_cards",
            {"name": "Gold", "bank": "Itau", "card_limit": "5000", "current_balance": "1200",
             "due_date": 10, "closing_date": 3, "color": "#FFD700"},
            {"name": "Black", "bank": "Nubank", "card_limit": "3000", "current_balance": "300",
             "due_date": 15, "closing_date": 8, "color": "#000000"},
        )
        cards = CreditCardStore(gateway, **store_kwargs)
        asyncio.run(cards.load())

        assert cards.total_limit == Decimal("8000")
        assert cards.total_used == Decimal("1500")
        assert cards.total_available == Decimal("6500")

    def test_budget_lookup_ignores_case(self, gateway, budgets):
        """Test finding the budget of a category."""
        gateway.seed("budgets", {"category": "Food", "budget_limit": "800", "period": "monthly",
                                 "color": "#00AA00", "alerts": True})
        asyncio.run(budgets.load())
        assert budgets.for_category("food").limit == Decimal("800")
        assert budgets.for_category("Travel") is None


class TestGoals:
    """Tests for goal contributions."""

    def _goal(self, gateway, goals, current="0"):
        gateway.seed("financial_goals", {
            "title": "Trip",
            "target_amount": "1000",
            "current_amount": current,
            "deadline": "2026-12-31",
            "category": "savings",
            "color": "#123456",
            "completed": None,
        })
        asyncio.run(goals.load())
        return goals.items[0]

    def test_contribution_adds_to_current(self, gateway, goals):
        """Test a partial contribution."""
        goal = self._goal(gateway, goals, current="100")
        updated = asyncio.run(goals.contribute(goal.id, "250"))
        assert updated.current_amount == Decimal("350")
        assert updated.completed is False

    def test_contribution_completes_goal(self, gateway, goals):
        """Test that reaching the target marks the goal completed."""
        goal = self._goal(gateway, goals, current="900")
        updated = asyncio.run(goals.contribute(goal.id, "100"))
        assert updated.completed is True
        assert goals.completed == [updated]

    def test_contribution_must_be_positive(self, gateway, goals, notifier):
        """Test that zero contributions are rejected without a call."""
        goal = self._goal(gateway, goals)
        with pytest.raises(ValidationError, match="amount"):
            asyncio.run(goals.contribute(goal.id, "0"))
        assert gateway.calls_to("PUT") == []
        assert len(notifier.errors) == 1

    def test_toggle_completion(self, gateway, goals):
        """Test marking a goal done and reopening it."""
        goal = self._goal(gateway, goals, current="100")
        asyncio.run(goals.set_completed(goal.id))
        assert goals.get(goal.id).completed is True
        asyncio.run(goals.set_completed(goal.id, False))
        assert goals.active == [goals.get(goal.id)]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
