# app/services/panels.py
"""
Panels: one per view.

A panel keeps its filter state, loads rows through the command router,
and validates form input before submitting it.

- load(): fetch rows for the current filters; errors show inline
- submit: on success clear the form and reload; on failure keep
  the submitted values and show the message
"""

from typing import Any

from app.schemas import (
    CategoryIn,
    CategoryUpdate,
    ChangePasswordRequest,
    CommandResult,
    TransactionFilters,
    TransactionIn,
    TransactionUpdate,
    UserCreate,
    validate_payload,
)
from app.services.errors import ValidationError
from app.services.report_pdf import build_report_pdf


class Panel:
    name = ""
    load_command: str | None = None
    rows_key = ""

    def __init__(self, router, actor: Any):
        self.router = router
        self.actor = actor

        self.rows: list = []
        self.form: dict = {}
        self.error: str | None = None
        self.message: str | None = None
        self.load_count = 0

    def load_payload(self) -> dict:
        return {}

    def load(self) -> CommandResult | None:
        if self.load_command is None:
            return None

        result = self.router.dispatch(self.load_command, self.actor, self.load_payload())
        self.load_count += 1

        if result.success:
            self.on_loaded(result)
            self.error = None
        else:
            self.rows = []
            self.error = result.message
        return result

    def on_loaded(self, result: CommandResult) -> None:
        self.rows = result.data.get(self.rows_key, [])

    def _submit(self, command: str, schema, form: dict) -> CommandResult:
        """Validate, dispatch, then clear+reload or keep the form."""
        try:
            validate_payload(schema, form)
        except ValidationError as e:
            self.form = dict(form)
            self.error = e.message
            return CommandResult.fail(e.message)

        return self._run(command, form)

    def _run(self, command: str, payload: dict) -> CommandResult:
        result = self.router.dispatch(command, self.actor, payload)
        if result.success:
            self.form = {}
            self.message = result.message
            self.load()
        else:
            self.form = dict(payload)
            self.error = result.message
        return result


class DashboardPanel(Panel):
    name = "dashboard"
    load_command = "getDashboard"

    def __init__(self, router, actor, period: str = "month"):
        super().__init__(router, actor)
        self.period = period
        self.stats: dict = {}
        self.chart: dict = {}

    def load_payload(self) -> dict:
        return {"period": self.period}

    def on_loaded(self, result: CommandResult) -> None:
        self.stats = result.data["stats"]
        self.chart = result.data["chart"]


class TransactionsPanel(Panel):
    name = "transactions"
    load_command = "getTransactions"
    rows_key = "transactions"

    def __init__(self, router, actor, filters: dict | None = None):
        super().__init__(router, actor)
        self.filters: dict = {}
        self.categories: list = []
        self.set_filters(**(filters or {}))

    def set_filters(self, **filters) -> None:
        """Keep only non-empty filter values (start_date, end_date, category_id, type)."""
        allowed = TransactionFilters.model_fields.keys()
        self.filters = {k: v for k, v in filters.items() if k in allowed and v not in (None, "")}

    def load_payload(self) -> dict:
        return dict(self.filters)

    def load(self) -> CommandResult | None:
        result = super().load()
        self.load_categories()
        return result

    def load_categories(self) -> None:
        result = self.router.dispatch("getCategories", self.actor, {})
        self.categories = result.data.get("categories", []) if result.success else []

    def category_choices(self, tx_type: str | None) -> list:
        """Categories offered in the form for the chosen transaction type."""
        if not tx_type:
            return list(self.categories)
        return [c for c in self.categories if c.type == tx_type]

    def create(self, form: dict) -> CommandResult:
        return self._submit("createTransaction", TransactionIn, form)

    def update(self, form: dict) -> CommandResult:
        return self._submit("updateTransaction", TransactionUpdate, form)

    def delete(self, transaction_id: int) -> CommandResult:
        return self._run("deleteTransaction", {"transaction_id": transaction_id})


class CategoriesPanel(Panel):
    name = "categories"
    load_command = "getCategories"
    rows_key = "categories"

    def __init__(self, router, actor, tab: str = "expense"):
        super().__init__(router, actor)
        self.tab = tab if tab in ("income", "expense") else "expense"

    def load_payload(self) -> dict:
        return {"type": self.tab}

    def create(self, form: dict) -> CommandResult:
        return self._submit("createCategory", CategoryIn, form)

    def update(self, form: dict) -> CommandResult:
        return self._submit("updateCategory", CategoryUpdate, form)

    def delete(self, category_id: int) -> CommandResult:
        return self._run("deleteCategory", {"category_id": category_id})


class UsersPanel(Panel):
    name = "users"
    load_command = "getAllUsers"
    rows_key = "users"

    def __init__(self, router, actor):
        super().__init__(router, actor)
        self.temp_password: str | None = None

    def create(self, form: dict) -> CommandResult:
        result = self._submit("createUser", UserCreate, form)
        self.temp_password = result.data.get("temp_password")
        return result

    def update(self, form: dict) -> CommandResult:
        result = self._run("updateUser", form)
        self.temp_password = result.data.get("temp_password")
        return result

    def delete(self, user_id: int) -> CommandResult:
        return self._run("deleteUser", {"user_id": user_id})


class AuditPanel(Panel):
    name = "audit"
    load_command = "getAuditLogs"
    rows_key = "logs"


class ReportsPanel(Panel):
    name = "reports"
    load_command = "getReportData"

    def __init__(self, router, actor, month: int, year: int):
        super().__init__(router, actor)
        self.month = month
        self.year = year
        self.report: dict | None = None

    def load_payload(self) -> dict:
        return {"month": self.month, "year": self.year}

    def on_loaded(self, result: CommandResult) -> None:
        self.report = result.data["report"]
        self.rows = self.report["transactions"]

    def export_pdf(self) -> bytes | None:
        if self.report is None:
            self.load()
        if self.report is None:
            return None
        return build_report_pdf(self.report)

    @property
    def pdf_filename(self) -> str:
        return f"financial-report-{self.year}-{self.month:02d}.pdf"


class SettingsPanel(Panel):
    name = "settings"

    def change_password(self, form: dict) -> CommandResult:
        if form.get("new_password") != form.get("confirm_password"):
            self.error = "New passwords do not match"
            return CommandResult.fail(self.error)

        payload = {
            "current_password": form.get("current_password", ""),
            "new_password": form.get("new_password", ""),
        }
        try:
            validate_payload(ChangePasswordRequest, payload)
        except ValidationError as e:
            self.error = e.message
            return CommandResult.fail(e.message)

        return self._run("changePassword", payload)

    def backup(self) -> CommandResult:
        return self._run("backupDatabase", {})

    def restore(self, backup_path: str) -> CommandResult:
        return self._run("restoreDatabase", {"backup_path": backup_path})

    def _run(self, command: str, payload: dict) -> CommandResult:
        # settings forms never echo passwords back
        result = self.router.dispatch(command, self.actor, payload)
        if result.success:
            self.message = result.message
            self.error = None
        else:
            self.error = result.message
        return result
