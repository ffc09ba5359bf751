"""
Session Aggregate

DESIGN DECISION: The five entity stores share one lifecycle, keyed by the
authenticated identity. Instead of five independently managed caches,
ONE session-scoped Workspace owns them all:

- sign_in builds a fresh Workspace for the user and loads every collection
- switching user tears the old Workspace down first (nothing leaks across users)
- sign_out clears the token and tears the Workspace down

The Workspace is also where derived views live: metrics are memoized on
the store versions, so they are recomputed exactly when a collection
(or the requested range) changes.
"""

from datetime import date
from typing import Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError
from tenacity import wait_exponential
from tenacity.wait import wait_base

from finance_tracker.analytics import compare_periods, compute_metrics
from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.categorization import CategorySuggestion, suggest_recategorizations
from finance_tracker.config import ApiSettings, get_settings
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.finance import AuthUser, DateRange, Transaction
from finance_tracker.models.metrics import FinancialMetrics, PeriodComparison
from finance_tracker.reminders import ReminderBook
from finance_tracker.reports import (
    EmptyReportError,
    ExportedReport,
    ImportSummary,
    ReportError,
    ReportPeriod,
    ReportType,
    build_report,
    import_statement,
)
from finance_tracker.services.gateway import (
    ConfigurationError,
    GatewayInterface,
    RequestError,
    RestGateway,
)
from finance_tracker.services.notifications import LogNotifier, Notifier
from finance_tracker.services.storage import (
    KeyValueStoreInterface,
    LocalAuditStorage,
    LocalStore,
)
from finance_tracker.stores import (
    AccountStore,
    BudgetStore,
    CreditCardStore,
    EntityStore,
    GoalStore,
    NotAuthenticatedError,
    TransactionStore,
)


logger = structlog.get_logger(__name__)


class Workspace:
    """
    Everything one signed-in user works with.

    Usage:
        workspace = session.workspace
        await workspace.transactions.add({...})
        metrics = workspace.metrics()
    """

    def __init__(
        self,
        user: AuthUser,
        gateway: GatewayInterface,
        local_store: KeyValueStoreInterface,
        notifier: Optional[Notifier] = None,
        audit: Optional[AuditLogger] = None,
        paired_write_mode: Optional[str] = None,
        retry_attempts: int = 3,
        retry_wait: Optional[wait_base] = None,
    ):
        app = get_settings().app
        self.user = user
        self._notifier = notifier or LogNotifier()
        self._audit = audit or AuditLogger()
        self._app = app

        common = dict(
            notifier=self._notifier,
            audit=self._audit,
            user=user,
            retry_attempts=retry_attempts,
            retry_wait=retry_wait,
        )
        self.accounts = AccountStore(gateway, **common)
        self.transactions = TransactionStore(
            gateway,
            self.accounts,
            paired_write_mode=paired_write_mode or app.paired_write_mode,
            **common,
        )
        self.credit_cards = CreditCardStore(gateway, **common)
        self.goals = GoalStore(gateway, **common)
        self.budgets = BudgetStore(gateway, **common)
        # Reminders are kept per user
        reminders_key = f"{get_settings().storage.reminders_key}:{user.id}"
        self.reminders = ReminderBook(local_store, self._notifier, key=reminders_key)

        self._metrics_key: Optional[tuple] = None
        self._metrics: Optional[FinancialMetrics] = None

    @property
    def stores(self) -> dict[str, EntityStore]:
        return {
            "accounts": self.accounts,
            "transactions": self.transactions,
            "credit_cards": self.credit_cards,
            "goals": self.goals,
            "budgets": self.budgets,
        }

    @property
    def versions(self) -> tuple[int, ...]:
        return tuple(store.version for store in self.stores.values())

    async def load_all(self, retry: bool = False) -> dict[str, Optional[str]]:
        """
        Load every collection. A failing store does not stop the others.

        Accounts load before transactions so balances and ledger arrive together.

        Returns:
            store name -> error message (None when it loaded)
        """
        results: dict[str, Optional[str]] = {}
        for name, store in self.stores.items():
            try:
                await store.load(retry=retry)
                results[name] = None
            except RequestError as e:
                results[name] = e.message
        return results

    def close(self) -> None:
        """Drop every collection (sign-out / user switch)."""
        for store in self.stores.values():
            store.clear()
        self._metrics_key = None
        self._metrics = None

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def metrics(
        self,
        date_range: Optional[DateRange] = None,
        today: Optional[date] = None,
    ) -> FinancialMetrics:
        """Dashboard metrics, recomputed only when an input changed."""
        today = today or date.today()
        key = (
            self.versions,
            (date_range.start, date_range.end) if date_range else None,
            today,
        )
        if key != self._metrics_key or self._metrics is None:
            self._metrics = compute_metrics(
                self.transactions.items,
                self.accounts.items,
                self.budgets.items,
                date_range=date_range,
                today=today,
                top_size=self._app.top_ranking_size,
                series_weeks=self._app.series_weeks,
                series_months=self._app.series_months,
                series_years=self._app.series_years,
            )
            self._metrics_key = key
        return self._metrics

    def compare_periods(
        self,
        current_months_ago: int = 0,
        previous_months_ago: int = 1,
        today: Optional[date] = None,
    ) -> PeriodComparison:
        return compare_periods(
            self.transactions.items,
            current_months_ago=current_months_ago,
            previous_months_ago=previous_months_ago,
            today=today,
        )

    def suggest_categories(self) -> list[CategorySuggestion]:
        return suggest_recategorizations(self.transactions.items)

    async def apply_suggestion(self, suggestion: CategorySuggestion) -> Transaction:
        return await self.transactions.update(
            suggestion.transaction_id,
            {"category": suggestion.suggested_category},
        )

    # -------------------------------------------------------------------------
    # Import / export
    # -------------------------------------------------------------------------

    async def import_statement(
        self,
        content: Union[str, bytes],
        account_id: Optional[str] = None,
    ) -> ImportSummary:
        """
        Import a CSV statement into an account (default: the first one).

        Raises:
            ReportError: If there is no account to import into
        """
        try:
            summary = await import_statement(
                content, self.transactions, self.accounts, account_id=account_id
            )
        except ReportError as e:
            self._notifier.error(str(e))
            raise

        await self._audit.log(
            AuditEventBuilder.statement_imported(
                succeeded=summary.succeeded,
                failed=summary.failed,
                account_id=account_id or self.accounts.items[0].id,
                user_id=self.user.id,
                correlation_id=create_correlation_id(),
            )
        )
        message = f"Imported {summary.succeeded} transactions"
        if summary.failed:
            self._notifier.warning(f"{message}, {summary.failed} lines failed")
        else:
            self._notifier.success(message)
        return summary

    async def export_report(
        self,
        report_type: Union[ReportType, str],
        period: Union[ReportPeriod, str] = ReportPeriod.CURRENT_MONTH,
        today: Optional[date] = None,
    ) -> ExportedReport:
        """
        Raises:
            EmptyReportError: If there is nothing to export
        """
        try:
            report = build_report(
                report_type,
                transactions=self.transactions.items,
                accounts=self.accounts.items,
                budgets=self.budgets.items,
                goals=self.goals.items,
                period=period,
                today=today,
            )
        except EmptyReportError as e:
            self._notifier.error(str(e))
            raise

        await self._audit.log(
            AuditEventBuilder.report_exported(
                report_type=report.report_type.value,
                filename=report.filename,
                row_count=report.row_count,
                user_id=self.user.id,
            )
        )
        self._notifier.success(f"Report {report.filename} exported")
        return report


class FinanceSession:
    """
    Authentication-scoped owner of the Workspace.

    The bearer token lives in the local store so the gateway picks it
    up on every call.
    """

    def __init__(
        self,
        gateway: GatewayInterface,
        local_store: KeyValueStoreInterface,
        notifier: Optional[Notifier] = None,
        audit: Optional[AuditLogger] = None,
        paired_write_mode: Optional[str] = None,
        retry_attempts: int = 3,
        retry_wait: Optional[wait_base] = None,
    ):
        self._gateway = gateway
        self._store = local_store
        self._notifier = notifier or LogNotifier()
        self._audit = audit or AuditLogger()
        self._paired_write_mode = paired_write_mode
        self._retry_attempts = retry_attempts
        self._retry_wait = retry_wait
        self._token_key = get_settings().storage.auth_token_key
        self._workspace: Optional[Workspace] = None

    @property
    def user(self) -> Optional[AuthUser]:
        return self._workspace.user if self._workspace else None

    @property
    def is_authenticated(self) -> bool:
        return self._workspace is not None

    @property
    def audit(self) -> AuditLogger:
        return self._audit

    @property
    def gateway(self) -> GatewayInterface:
        return self._gateway

    @property
    def workspace(self) -> Workspace:
        """
        Raises:
            NotAuthenticatedError: If nobody is signed in
        """
        if self._workspace is None:
            raise NotAuthenticatedError("No user is signed in")
        return self._workspace

    async def sign_in(
        self,
        user: AuthUser,
        token: str,
        retry: bool = False,
    ) -> Workspace:
        """
        Start a session for `user` and load all collections.

        Signing in as a different user replaces the previous workspace.
        Load failures are reported per store and do not fail the sign-in.
        """
        if self._workspace is not None:
            await self._teardown()

        self._store.set(self._token_key, token)
        correlation_id = create_correlation_id()
        await self._audit.log(AuditEventBuilder.session_started(user.id, correlation_id))

        workspace = Workspace(
            user,
            self._gateway,
            self._store,
            notifier=self._notifier,
            audit=self._audit,
            paired_write_mode=self._paired_write_mode,
            retry_attempts=self._retry_attempts,
            retry_wait=self._retry_wait,
        )
        self._workspace = workspace

        failures = {
            name: error
            for name, error in (await workspace.load_all(retry=retry)).items()
            if error is not None
        }
        if failures:
            logger.warning("workspace_partially_loaded", user_id=user.id, failures=failures)
        return workspace

    async def sign_out(self) -> None:
        self._store.remove(self._token_key)
        if self._workspace is not None:
            await self._teardown()

    async def _teardown(self) -> None:
        workspace = self._workspace
        self._workspace = None
        workspace.close()
        await self._audit.log(AuditEventBuilder.session_ended(workspace.user.id))


def create_session(
    notifier: Optional[Notifier] = None,
    base_url: Optional[str] = None,
    state_path: Optional[str] = None,
) -> FinanceSession:
    """
    Build a session with the default wiring from settings.

    Raises:
        ConfigurationError: If the backend API is not configured
    """
    settings = get_settings()
    try:
        api = ApiSettings(base_url=base_url) if base_url else settings.api
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid backend API configuration: {e}") from e
    storage = settings.storage

    local_store = LocalStore(state_path or storage.local_state_path)
    audit = AuditLogger(
        LocalAuditStorage(
            local_store,
            key=storage.audit_log_key,
            max_events=storage.audit_log_max_events,
        )
    )
    notifier = notifier or LogNotifier()
    gateway = RestGateway(
        local_store,
        notifier,
        base_url=api.base_url,
        timeout=api.timeout_seconds,
    )
    return FinanceSession(
        gateway,
        local_store,
        notifier=notifier,
        audit=audit,
        paired_write_mode=settings.app.paired_write_mode,
        retry_attempts=api.retry_attempts,
        retry_wait=wait_exponential(
            multiplier=1,
            min=api.retry_min_wait_seconds,
            max=api.retry_max_wait_seconds,
        ),
    )
