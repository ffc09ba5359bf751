"""
Shared fixtures.

FakeGateway is an in-memory backend: one list of rows per resource,
server-assigned string ids, the three balance procedures, and
injectable failures. No network is touched in tests.
"""

from decimal import Decimal
from typing import Any, Optional

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.models.finance import AuthUser
from finance_tracker.services.gateway import GatewayInterface, RequestError
from finance_tracker.services.notifications import Notifier
from finance_tracker.services.storage import LocalAuditStorage, LocalStore
from finance_tracker.stores import (
    AccountStore,
    BudgetStore,
    GoalStore,
    TransactionStore,
)


class RecordingNotifier(Notifier):
    """Keeps every notification as (level, message)."""

    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def of(self, level: str) -> list[str]:
        return [message for kind, message in self.messages if kind == level]

    @property
    def errors(self) -> list[str]:
        return self.of("error")


class FakeGateway(GatewayInterface):
    """In-memory backend with the same contract as RestGateway."""

    def __init__(self, notifier: Optional[Notifier] = None):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self._notifier = notifier
        self._failures: list[dict[str, Any]] = []
        self._dropped: list[tuple[str, str, Optional[str]]] = []
        self._next_id = 1

    # -- test helpers ---------------------------------------------------------

    def seed(self, resource: str, *rows: dict[str, Any]) -> list[dict[str, Any]]:
        table = self.tables.setdefault(resource, [])
        seeded = []
        for row in rows:
            row = dict(row)
            row.setdefault("id", self._new_id())
            table.append(row)
            seeded.append(row)
        return seeded

    def row(self, resource: str, row_id: str) -> Optional[dict[str, Any]]:
        for row in self.tables.get(resource, []):
            if row["id"] == row_id:
                return row
        return None

    def fail(
        self,
        method: str,
        path: str,
        message: str = "Internal server error",
        status_code: int = 500,
        times: Optional[int] = None,
    ) -> None:
        """Make calls to `path` (or below it) fail; `times=None` fails forever."""
        self._failures.append(
            {"method": method, "path": path, "message": message,
             "status_code": status_code, "remaining": times}
        )

    def drop_response(self, method: str, path: str, key: Optional[str] = None) -> None:
        """Apply writes to `path` but answer with no body, or a body without `key`."""
        self._dropped.append((method, path, key))

    def calls_to(self, method: str) -> list[tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] == method]

    # -- gateway --------------------------------------------------------------

    async def get(self, path, params=None, notify=True):
        self._record("GET", path, params, notify)
        rows = [dict(row) for row in self.tables.get(path, [])]
        order = (params or {}).get("order")
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda r: str(r.get(column) or ""), reverse=direction == "desc")
        return rows

    async def post(self, path, payload, notify=True):
        self._record("POST", path, payload, notify)
        if path.startswith("rpc/"):
            return self._respond("POST", path, self._procedure(path, payload))
        row = {**payload, "id": self._new_id(), "created_at": "2026-01-01T00:00:00+00:00"}
        self.tables.setdefault(path, []).append(row)
        return self._respond("POST", path, [dict(row)])

    async def put(self, path, payload, notify=True):
        self._record("PUT", path, payload, notify)
        resource, row_id = path.rsplit("/", 1)
        row = self.row(resource, row_id)
        if row is None:
            raise self._error(RequestError("Row not found", status_code=404), notify)
        row.update(payload)
        return [dict(row)]

    async def delete(self, path, notify=True):
        self._record("DELETE", path, None, notify)
        resource, row_id = path.rsplit("/", 1)
        self.tables[resource] = [
            row for row in self.tables.get(resource, []) if row["id"] != row_id
        ]
        return None

    # -- internals ------------------------------------------------------------

    def _new_id(self) -> str:
        row_id = str(self._next_id)
        self._next_id += 1
        return row_id

    def _respond(self, method: str, path: str, result: Any) -> Any:
        for dropped_method, dropped_path, key in self._dropped:
            if (dropped_method, dropped_path) != (method, path):
                continue
            if key is None:
                return None
            result = {k: v for k, v in result.items() if k != key}
        return result

    def _error(self, error: RequestError, notify: bool) -> RequestError:
        if notify and self._notifier is not None:
            self._notifier.error(error.message)
        return error

    def _record(self, method: str, path: str, payload: Any, notify: bool) -> None:
        self.calls.append((method, path, payload))
        for failure in self._failures:
            if failure["method"] != method:
                continue
            if path != failure["path"] and not path.startswith(failure["path"] + "/"):
                continue
            if failure["remaining"] is not None:
                if failure["remaining"] <= 0:
                    continue
                failure["remaining"] -= 1
            raise self._error(
                RequestError(failure["message"], status_code=failure["status_code"]),
                notify,
            )

    def _move_balance(self, balances: dict[str, str], row: dict[str, Any], sign: int) -> None:
        account = self.row("accounts", row["account_id"])
        amount = Decimal(str(row["amount"]))
        if row["type"] == "expense":
            amount = -amount
        account["balance"] = str(Decimal(str(account["balance"])) + sign * amount)
        balances[account["id"]] = account["balance"]

    def _procedure(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        balances: dict[str, str] = {}
        if path == "rpc/create_transaction_with_balance":
            row = {**payload["transaction"], "id": self._new_id()}
            self.tables.setdefault("transactions", []).append(row)
            self._move_balance(balances, row, 1)
            return {"transaction": dict(row), "balances": balances}
        if path == "rpc/update_transaction_with_balance":
            row = self.row("transactions", payload["transaction_id"])
            self._move_balance(balances, row, -1)
            row.update(payload["changes"])
            self._move_balance(balances, row, 1)
            return {"transaction": dict(row), "balances": balances}
        if path == "rpc/delete_transaction_with_balance":
            row = self.row("transactions", payload["transaction_id"])
            self._move_balance(balances, row, -1)
            self.tables["transactions"].remove(row)
            return {"balances": balances}
        raise RequestError(f"Unknown procedure {path}", status_code=404)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway(notifier):
    return FakeGateway(notifier)


@pytest.fixture
def local_store():
    return LocalStore()


@pytest.fixture
def audit(local_store):
    return AuditLogger(LocalAuditStorage(local_store))


@pytest.fixture
def user():
    return AuthUser(id="user-1", email="ana@example.com")


@pytest.fixture
def store_kwargs(notifier, audit, user):
    return {"notifier": notifier, "audit": audit, "user": user, "retry_attempts": 3}


@pytest.fixture
def accounts(gateway, store_kwargs):
    return AccountStore(gateway, **store_kwargs)


@pytest.fixture
def transactions(gateway, accounts, store_kwargs):
    return TransactionStore(gateway, accounts, **store_kwargs)


@pytest.fixture
def atomic_transactions(gateway, accounts, store_kwargs):
    return TransactionStore(gateway, accounts, paired_write_mode="atomic", **store_kwargs)


@pytest.fixture
def goals(gateway, store_kwargs):
    return GoalStore(gateway, **store_kwargs)


@pytest.fixture
def budgets(gateway, store_kwargs):
    return BudgetStore(gateway, **store_kwargs)


def account_row(name="Main", balance="0", **overrides) -> dict[str, Any]:
    row = {
        "name": name,
        "bank": "Nubank",
        "type": "checking",
        "balance": balance,
        "color": "#8A05BE",
        "created_at": "2026-01-01T00:00:00+00:00",
        "user_id": "user-1",
    }
    row.update(overrides)
    return row


def transaction_row(account_id, amount="100", type="expense", **overrides) -> dict[str, Any]:
    row = {
        "description": "Groceries",
        "amount": amount,
        "type": type,
        "category": "Food",
        "account_id": account_id,
        "date": "2026-01-10",
        "recurring": False,
        "tags": None,
        "user_id": "user-1",
    }
    row.update(overrides)
    return row
