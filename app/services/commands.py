# app/services/commands.py
"""
Role-Gated Command Router.

The only path from the view layer to storage. One entry point:

    router.dispatch("createTransaction", actor, {...}) -> CommandResult

Flow for every command:
- look the command up in the registry (unknown -> failure result)
- open a unit-of-work session from the long-lived engine
- resolve the actor from storage and check COMMAND_POLICY
- validate the payload with its pydantic schema
- run the handler; mutating handlers commit and then append one audit entry
- turn every error into {success: False, message}; nothing is raised to callers
"""

from datetime import date
from typing import Any, Callable

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, joinedload

import app.services.auth as auth
import app.services.backup as backup
from db import make_engine, make_session_factory
from models import Category, Transaction, User
from app.schemas import (
    AuditLogOut,
    CategoryIn,
    CategoryOut,
    CategoryQuery,
    CategoryRef,
    CategoryUpdate,
    ChangePasswordRequest,
    CommandResult,
    DashboardQuery,
    LoginRequest,
    ReportQuery,
    RestoreRequest,
    TransactionFilters,
    TransactionIn,
    TransactionOut,
    TransactionRef,
    TransactionUpdate,
    UserCreate,
    UserOut,
    UserRef,
    UserUpdate,
    validate_payload,
)
from app.services.aggregation import (
    aggregate,
    calculate_dashboard_stats,
    month_bounds,
    summarize_month,
)
from app.services.audit import AuditRecorder
from app.services.errors import CommandError, NotFound, Unauthorized, ValidationError
from app.services.policy import is_allowed
from app.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


# Command name -> (handler method, generic failure message)
COMMANDS: dict[str, tuple[str, str]] = {
    "authenticate": ("authenticate", "Authentication failed"),
    "changePassword": ("change_password", "Failed to change password"),
    "getAllUsers": ("get_all_users", "Failed to retrieve users"),
    "createUser": ("create_user", "Failed to create user"),
    "updateUser": ("update_user", "Failed to update user"),
    "deleteUser": ("delete_user", "Failed to delete user"),
    "getCategories": ("get_categories", "Failed to retrieve categories"),
    "createCategory": ("create_category", "Failed to create category"),
    "updateCategory": ("update_category", "Failed to update category"),
    "deleteCategory": ("delete_category", "Failed to delete category"),
    "getTransactions": ("get_transactions", "Failed to retrieve transactions"),
    "createTransaction": ("create_transaction", "Failed to create transaction"),
    "updateTransaction": ("update_transaction", "Failed to update transaction"),
    "deleteTransaction": ("delete_transaction", "Failed to delete transaction"),
    "getAuditLogs": ("get_audit_logs", "Failed to retrieve audit logs"),
    "getReportData": ("get_report_data", "Failed to generate report"),
    "getDashboard": ("get_dashboard", "Failed to load dashboard"),
    "backupDatabase": ("backup_database", "Failed to back up database"),
    "restoreDatabase": ("restore_database", "Failed to restore database"),
}

# Commands that run without a logged-in actor
PUBLIC_COMMANDS = {"authenticate"}


def _actor_id(actor: Any) -> int | None:
    if actor is None:
        return None
    if isinstance(actor, int):
        return actor
    if isinstance(actor, dict):
        return actor.get("id")
    return getattr(actor, "id", None)


class CommandRouter:
    """
    Owns the storage handle for the lifetime of the app.

    Acquired at construction, released by close().
    """

    def __init__(
        self,
        engine: Engine | None = None,
        settings: Settings | None = None,
        recorder: AuditRecorder | None = None,
        clock: Callable[[], date] | None = None,
    ):
        self.settings = settings or get_settings()
        self.engine = engine or make_engine(self.settings.database_url)
        self.session_factory = make_session_factory(self.engine)
        self.audit = recorder or AuditRecorder()
        self.clock = clock or date.today

    def close(self) -> None:
        self.engine.dispose()

    # -------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------

    def dispatch(self, command: str, actor: Any = None, payload: dict | None = None) -> CommandResult:
        entry = COMMANDS.get(command)
        if entry is None:
            logger.warning("unknown_command", command=command)
            return CommandResult.fail(f"Unknown command: {command}")

        method_name, failure_message = entry
        handler = getattr(self, method_name)
        payload = payload or {}

        db = self.session_factory()
        try:
            if command in PUBLIC_COMMANDS:
                return handler(db, payload)

            user = self._load_actor(db, actor)
            if not is_allowed(command, user.role):
                logger.warning("command_unauthorized", command=command, actor_id=user.id, role=user.role)
                raise Unauthorized()

            return handler(db, user, payload)

        except CommandError as e:
            db.rollback()
            logger.info("command_rejected", command=command, actor_id=_actor_id(actor), reason=e.message)
            return CommandResult.fail(e.message)
        except Exception:
            db.rollback()
            logger.exception("command_failed", command=command, actor_id=_actor_id(actor))
            return CommandResult.fail(failure_message)
        finally:
            db.close()

    # -------------------------------------------------------------------
    # Shared helpers
    # -------------------------------------------------------------------

    def _load_actor(self, db: Session, actor: Any) -> User:
        actor_id = _actor_id(actor)
        if actor_id is None:
            raise Unauthorized()
        user = db.get(User, actor_id)
        if user is None or not user.is_active:
            raise Unauthorized()
        return user

    def _commit_and_audit(
        self,
        db: Session,
        actor: User,
        action: str,
        entity: str,
        entity_id: int | None,
        details: Any = None,
    ) -> None:
        db.commit()
        self.audit.record(db, actor.id, action, entity, entity_id, details)

    def _owned_category(self, db: Session, actor: User, category_id: int) -> Category:
        category = db.get(Category, category_id)
        if category is None or category.created_by_id != actor.id:
            raise NotFound("Category not found")
        return category

    def _owned_transaction(self, db: Session, actor: User, transaction_id: int) -> Transaction:
        tx = db.get(Transaction, transaction_id)
        if tx is None or tx.created_by_id != actor.id:
            raise NotFound("Transaction not found")
        return tx

    def _matching_category(self, db: Session, actor: User, data: TransactionIn) -> Category:
        category = self._owned_category(db, actor, data.category_id)
        if category.type != data.type:
            raise ValidationError(
                f"Transaction type must match the category type ({category.type})"
            )
        return category

    def _user_transactions(self, db: Session, actor: User):
        return (
            db.query(Transaction)
            .options(joinedload(Transaction.category))
            .filter(Transaction.created_by_id == actor.id)
        )

    # -------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------

    def authenticate(self, db: Session, payload: dict) -> CommandResult:
        data = validate_payload(LoginRequest, payload)
        user = auth.authenticate(db, data.username, data.password)
        return CommandResult.ok(user=UserOut.model_validate(user))

    def change_password(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(ChangePasswordRequest, payload)
        auth.change_password(actor, data.current_password, data.new_password)
        self._commit_and_audit(db, actor, "CHANGE_PASSWORD", "User", actor.id)
        return CommandResult.ok("Password changed successfully", user=UserOut.model_validate(actor))

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------

    def get_all_users(self, db: Session, actor: User, payload: dict) -> CommandResult:
        users = db.query(User).order_by(User.id).all()
        return CommandResult.ok(users=[UserOut.model_validate(u) for u in users])

    def create_user(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(UserCreate, payload)

        if db.query(User).filter(User.username == data.username).first():
            raise ValidationError("Username already exists")

        temp_password = auth.generate_temp_password()
        user = User(
            username=data.username,
            password_hash=auth.hash_password(temp_password),
            role=data.role,
            is_active=True,
            must_change_password=True,
            created_by_id=actor.id,
        )
        db.add(user)
        db.flush()

        self._commit_and_audit(
            db, actor, "CREATE_USER", "User", user.id,
            {"username": user.username, "role": user.role},
        )
        return CommandResult.ok(
            "User created successfully",
            user=UserOut.model_validate(user),
            temp_password=temp_password,
        )

    def update_user(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(UserUpdate, payload)

        user = db.get(User, data.user_id)
        if user is None:
            raise NotFound("User not found")

        if user.id == actor.id and (data.is_active is False or (data.role and data.role != actor.role)):
            raise ValidationError("You cannot deactivate or change the role of your own account")

        if data.role:
            user.role = data.role
        if data.is_active is not None:
            user.is_active = data.is_active

        temp_password = None
        if data.reset_password:
            temp_password = auth.generate_temp_password()
            user.password_hash = auth.hash_password(temp_password)
            user.must_change_password = True

        details = data.model_dump(by_alias=True, exclude_none=True)
        self._commit_and_audit(db, actor, "UPDATE_USER", "User", user.id, details)

        result = CommandResult.ok("User updated successfully", user=UserOut.model_validate(user))
        if temp_password:
            result.data["temp_password"] = temp_password
        return result

    def delete_user(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(UserRef, payload)

        if data.user_id == actor.id:
            raise ValidationError("You cannot delete your own account")

        user = db.get(User, data.user_id)
        if user is None:
            raise NotFound("User not found")

        username = user.username
        db.delete(user)
        self._commit_and_audit(db, actor, "DELETE_USER", "User", data.user_id, {"username": username})
        return CommandResult.ok("User deleted successfully")

    # -------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------

    def get_categories(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(CategoryQuery, payload)

        query = db.query(Category).filter(Category.created_by_id == actor.id)
        if data.type:
            query = query.filter(Category.type == data.type)

        categories = query.order_by(Category.name, Category.id).all()
        return CommandResult.ok(categories=[CategoryOut.model_validate(c) for c in categories])

    def create_category(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(CategoryIn, payload)

        category = Category(
            name=data.name,
            type=data.type,
            color=data.color,
            created_by_id=actor.id,
        )
        db.add(category)
        db.flush()

        self._commit_and_audit(
            db, actor, "CREATE_CATEGORY", "Category", category.id,
            {"name": category.name, "type": category.type},
        )
        return CommandResult.ok("Category created successfully", category=CategoryOut.model_validate(category))

    def update_category(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(CategoryUpdate, payload)
        category = self._owned_category(db, actor, data.category_id)

        if data.type != category.type:
            mismatched = (
                db.query(Transaction)
                .filter(Transaction.category_id == category.id, Transaction.type != data.type)
                .count()
            )
            if mismatched:
                raise ValidationError(
                    f"Category type cannot change while {mismatched} transaction(s) use it"
                )

        category.name = data.name
        category.type = data.type
        category.color = data.color

        self._commit_and_audit(
            db, actor, "UPDATE_CATEGORY", "Category", category.id,
            {"name": data.name, "type": data.type, "color": data.color},
        )
        return CommandResult.ok("Category updated successfully", category=CategoryOut.model_validate(category))

    def delete_category(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(CategoryRef, payload)
        category = self._owned_category(db, actor, data.category_id)

        in_use = db.query(Transaction).filter(Transaction.category_id == category.id).count()
        if in_use:
            raise ValidationError(
                f"Category is used by {in_use} transaction(s) and cannot be deleted"
            )

        name = category.name
        db.delete(category)
        self._commit_and_audit(db, actor, "DELETE_CATEGORY", "Category", data.category_id, {"name": name})
        return CommandResult.ok("Category deleted successfully")

    # -------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------

    def get_transactions(self, db: Session, actor: User, payload: dict) -> CommandResult:
        filters = validate_payload(TransactionFilters, payload)

        query = self._user_transactions(db, actor)
        if filters.start_date:
            query = query.filter(Transaction.date >= filters.start_date)
        if filters.end_date:
            query = query.filter(Transaction.date <= filters.end_date)
        if filters.category_id:
            query = query.filter(Transaction.category_id == filters.category_id)
        if filters.type:
            query = query.filter(Transaction.type == filters.type)

        rows = query.order_by(Transaction.date.desc(), Transaction.id.desc()).all()
        return CommandResult.ok(transactions=[TransactionOut.model_validate(t) for t in rows])

    def create_transaction(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(TransactionIn, payload)
        category = self._matching_category(db, actor, data)

        tx = Transaction(
            date=data.date,
            type=data.type,
            amount=data.amount,
            category=category,
            description=data.description,
            payment_method=data.payment_method,
            notes=data.notes,
            created_by_id=actor.id,
        )
        db.add(tx)
        db.flush()

        self._commit_and_audit(
            db, actor, "CREATE_TRANSACTION", "Transaction", tx.id,
            {"amount": tx.amount, "type": tx.type, "description": tx.description},
        )
        return CommandResult.ok("Transaction created successfully", transaction=TransactionOut.model_validate(tx))

    def update_transaction(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(TransactionUpdate, payload)
        tx = self._owned_transaction(db, actor, data.transaction_id)
        category = self._matching_category(db, actor, data)

        tx.date = data.date
        tx.type = data.type
        tx.amount = data.amount
        tx.category = category
        tx.description = data.description
        tx.payment_method = data.payment_method
        tx.notes = data.notes
        tx.updated_by_id = actor.id

        details = data.model_dump(mode="json", by_alias=True, exclude={"transaction_id"})
        self._commit_and_audit(db, actor, "UPDATE_TRANSACTION", "Transaction", tx.id, details)
        return CommandResult.ok("Transaction updated successfully", transaction=TransactionOut.model_validate(tx))

    def delete_transaction(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(TransactionRef, payload)
        tx = self._owned_transaction(db, actor, data.transaction_id)

        details = {"amount": tx.amount, "type": tx.type, "description": tx.description}
        db.delete(tx)
        self._commit_and_audit(db, actor, "DELETE_TRANSACTION", "Transaction", data.transaction_id, details)
        return CommandResult.ok("Transaction deleted successfully")

    # -------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------

    def get_audit_logs(self, db: Session, actor: User, payload: dict) -> CommandResult:
        logs = []
        for entry, username in self.audit.list_entries(db):
            out = AuditLogOut.model_validate(entry)
            out.username = username
            logs.append(out)
        return CommandResult.ok(logs=logs)

    def get_report_data(self, db: Session, actor: User, payload: dict) -> CommandResult:
        query = validate_payload(ReportQuery, payload)
        start, end_exclusive = month_bounds(query.month, query.year)

        rows = (
            self._user_transactions(db, actor)
            .filter(Transaction.date >= start, Transaction.date < end_exclusive)
            .order_by(Transaction.date, Transaction.id)
            .all()
        )

        report = summarize_month(rows, query.month, query.year)
        report["transactions"] = [TransactionOut.model_validate(t) for t in rows]
        return CommandResult.ok(report=report)

    def get_dashboard(self, db: Session, actor: User, payload: dict) -> CommandResult:
        query = validate_payload(DashboardQuery, payload)
        today = self.clock()

        rows = self._user_transactions(db, actor).all()
        return CommandResult.ok(
            period=query.period,
            stats=calculate_dashboard_stats(rows, today),
            chart=aggregate(rows, query.period, today),
        )

    # -------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------

    def backup_database(self, db: Session, actor: User, payload: dict) -> CommandResult:
        path = backup.backup_database(self.settings.sqlite_path, self.settings.backup_dir)
        self._commit_and_audit(db, actor, "BACKUP_DATABASE", "Database", None, {"path": path})
        return CommandResult.ok(f"Database backed up to {path}", path=path)

    def restore_database(self, db: Session, actor: User, payload: dict) -> CommandResult:
        data = validate_payload(RestoreRequest, payload)
        actor_id = actor.id
        backup.check_restore(self.settings.sqlite_path, data.backup_path)

        # release every connection before the file is replaced
        db.close()
        self.engine.dispose()
        backup.restore_database(self.settings.sqlite_path, data.backup_path)

        # the audit row goes into the restored store
        fresh = self.session_factory()
        try:
            self.audit.record(
                fresh, actor_id, "RESTORE_DATABASE", "Database", None,
                {"source": data.backup_path},
            )
        finally:
            fresh.close()

        return CommandResult.ok(
            "Database restored. Please restart the application.",
            restart_required=True,
        )
