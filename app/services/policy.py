# app/services/policy.py
"""
Authorization policy: which roles may run which command.

The router looks a command up here once, before dispatch.
`authenticate` is absent on purpose: it runs without an actor.
"""

from models import UserRole

ANY_ROLE = frozenset(UserRole.ALL)
SUPERADMIN_ONLY = frozenset({UserRole.SUPERADMIN})
ADMINS = frozenset({UserRole.SUPERADMIN, UserRole.ADMIN})

COMMAND_POLICY: dict[str, frozenset[str]] = {
    # self-service
    "changePassword": ANY_ROLE,
    # user management
    "getAllUsers": SUPERADMIN_ONLY,
    "createUser": SUPERADMIN_ONLY,
    "updateUser": SUPERADMIN_ONLY,
    "deleteUser": SUPERADMIN_ONLY,
    # categories
    "getCategories": ANY_ROLE,
    "createCategory": ANY_ROLE,
    "updateCategory": ANY_ROLE,
    "deleteCategory": ANY_ROLE,
    # transactions
    "getTransactions": ANY_ROLE,
    "createTransaction": ANY_ROLE,
    "updateTransaction": ANY_ROLE,
    "deleteTransaction": ANY_ROLE,
    # reporting
    "getDashboard": ANY_ROLE,
    "getReportData": ANY_ROLE,
    "getAuditLogs": SUPERADMIN_ONLY,
    # maintenance
    "backupDatabase": ADMINS,
    "restoreDatabase": SUPERADMIN_ONLY,
}


def is_allowed(command: str, role: str | None) -> bool:
    """Unknown commands and missing roles are never allowed."""
    allowed = COMMAND_POLICY.get(command)
    if allowed is None or role is None:
        return False
    return role in allowed


def allowed_views(role: str | None) -> list[str]:
    """Navigation entries visible to `role`, in sidebar order."""
    views = ["dashboard", "transactions", "categories", "reports"]
    if is_allowed("getAllUsers", role):
        views.append("users")
    if is_allowed("getAuditLogs", role):
        views.append("audit")
    views.append("settings")
    return views
