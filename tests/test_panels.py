"""
Tests for the view panels: loading, inline errors, form handling.
"""

from app.services.panels import (
    AuditPanel,
    CategoriesPanel,
    DashboardPanel,
    ReportsPanel,
    SettingsPanel,
    TransactionsPanel,
    UsersPanel,
)


def valid_form(category):
    return {
        "date": "2025-01-15",
        "type": "expense",
        "amount": "42.50",
        "category_id": str(category.id),
        "description": "Weekly shop",
    }


class TestTransactionsPanel:

    def test_load_fetches_rows_and_categories(self, router, admin_id, expense_category, income_category):
        panel = TransactionsPanel(router, {"id": admin_id})
        panel.load()
        assert panel.rows == []
        assert [c.name for c in panel.categories] == ["Groceries", "Salary"]
        assert [c.name for c in panel.category_choices("income")] == ["Salary"]
        assert len(panel.category_choices(None)) == 2

    def test_invalid_form_is_kept_and_nothing_is_sent(self, router, admin_id, expense_category):
        panel = TransactionsPanel(router, {"id": admin_id})
        form = dict(valid_form(expense_category), amount="-1")

        result = panel.create(form)

        assert not result.success
        assert panel.error == "Amount must be greater than 0"
        assert panel.form == form
        assert panel.load_count == 0

    def test_success_clears_form_and_reloads(self, router, admin_id, expense_category):
        panel = TransactionsPanel(router, {"id": admin_id})
        result = panel.create(valid_form(expense_category))

        assert result.success
        assert panel.form == {}
        assert panel.message == "Transaction created successfully"
        assert len(panel.rows) == 1
        assert panel.load_count == 1

    def test_server_side_rejection_keeps_form(self, router, admin_id, expense_category):
        panel = TransactionsPanel(router, {"id": admin_id})
        form = dict(valid_form(expense_category), type="income")

        result = panel.create(form)

        assert not result.success
        assert "must match the category type" in panel.error
        assert panel.form["type"] == "income"

    def test_set_filters_drops_blanks_and_unknown_keys(self, router, admin_id):
        panel = TransactionsPanel(router, {"id": admin_id})
        panel.set_filters(type="expense", category_id="", start_date=None, page=3)
        assert panel.filters == {"type": "expense"}

    def test_load_error_is_shown_inline(self, router):
        panel = TransactionsPanel(router, {"id": 999})
        panel.load()
        assert panel.rows == []
        assert panel.error == "Unauthorized access"


class TestOtherPanels:

    def test_categories_tab(self, router, admin_id, expense_category, income_category):
        panel = CategoriesPanel(router, {"id": admin_id}, tab="income")
        panel.load()
        assert [c.name for c in panel.rows] == ["Salary"]

    def test_categories_unknown_tab_defaults_to_expense(self, router, admin_id):
        assert CategoriesPanel(router, {"id": admin_id}, tab="bogus").tab == "expense"

    def test_dashboard(self, router, admin_id):
        panel = DashboardPanel(router, {"id": admin_id}, period="week")
        panel.load()
        assert len(panel.chart["labels"]) == 7
        assert panel.stats["total_balance"] == 0.0

    def test_users_panel_keeps_temp_password(self, router, superadmin_id):
        panel = UsersPanel(router, {"id": superadmin_id})
        result = panel.create({"username": "bob", "role": "viewer"})
        assert result.success
        assert panel.temp_password
        assert [u.username for u in panel.rows] == ["admin", "bob"]

    def test_audit_panel_refused_for_viewer(self, router, viewer_id):
        panel = AuditPanel(router, {"id": viewer_id})
        panel.load()
        assert panel.error == "Unauthorized access"

    def test_reports_pdf(self, router, admin_id, expense_category):
        TransactionsPanel(router, {"id": admin_id}).create(valid_form(expense_category))

        panel = ReportsPanel(router, {"id": admin_id}, month=1, year=2025)
        content = panel.export_pdf()

        assert content.startswith(b"%PDF")
        assert panel.report["transaction_count"] == 1
        assert panel.pdf_filename == "financial-report-2025-01.pdf"


class TestSettingsPanel:

    def test_mismatched_confirmation(self, router, viewer_id):
        panel = SettingsPanel(router, {"id": viewer_id})
        result = panel.change_password(
            {"current_password": "x", "new_password": "abcdefgh", "confirm_password": "abcdefgX"}
        )
        assert not result.success
        assert panel.error == "New passwords do not match"

    def test_change_password(self, router, viewer_id):
        panel = SettingsPanel(router, {"id": viewer_id})
        result = panel.change_password(
            {"current_password": "Passw0rd!", "new_password": "brand-new-pw", "confirm_password": "brand-new-pw"}
        )
        assert result.success
        assert panel.message == "Password changed successfully"
        assert panel.form == {}
