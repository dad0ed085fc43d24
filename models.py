# models.py
# Role: SQLAlchemy ORM models for the LocalFinTrack domain.
#       Users, their categories and transactions, and the append-only audit trail.

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from db import Base


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (SQLite stores no offset)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserRole:
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    VIEWER = "viewer"

    ALL = (SUPERADMIN, ADMIN, VIEWER)


class EntryType:
    """Shared by Category.type and Transaction.type."""

    INCOME = "income"
    EXPENSE = "expense"

    ALL = (INCOME, EXPENSE)


class User(Base):
    """
    An account that can log in.

    Created by bootstrap or by a superadmin. Passwords are only ever
    stored as hashes (see app.services.auth).
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)

    # One of UserRole.ALL
    role = Column(String(20), nullable=False, default=UserRole.VIEWER)

    is_active = Column(Boolean, nullable=False, default=True)

    # Set for bootstrap / temp passwords, cleared by a password change
    must_change_password = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Who created this account (NULL for the bootstrap superadmin)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class Category(Base):
    """
    A user-owned label for transactions.

    The category type (income / expense) must match the type of every
    transaction that references it.
    """

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String(10), nullable=False)

    # Display color as #RRGGBB
    color = Column(String(7), nullable=False, default="#6B7280")

    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    transactions = relationship("Transaction", back_populates="category")


class Transaction(Base):
    """
    ORM model representing a single income or expense entry.

    Amounts are always positive; the sign comes from `type`.
    """

    __tablename__ = "transactions"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Calendar date of the transaction
    date = Column(Date, nullable=False, index=True)

    # One of EntryType.ALL
    type = Column(String(10), nullable=False)

    # Positive amount
    amount = Column(Float, nullable=False)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)

    description = Column(String, nullable=False)

    # Optional free-text fields
    payment_method = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="transactions")


class AuditEntry(Base):
    """
    One row per mutating command. Never updated or deleted.
    """

    __tablename__ = "audit_entries"

    id = Column(Integer, primary_key=True, index=True)

    # Actor; kept as a plain column so entries survive user deletion
    user_id = Column(Integer, nullable=False, index=True)

    # e.g. CREATE_TRANSACTION
    action = Column(String(50), nullable=False)
    entity = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=True)

    # JSON-serialized payload
    details = Column(Text, nullable=True)

    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
