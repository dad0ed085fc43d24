# app/schemas.py
# Role: Request / response message types exchanged between panels and the command router.
#       Inputs accept camelCase (wire) or snake_case (Python) keys; outputs dump as camelCase.

"""
Pydantic schemas for command payloads and results.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_snake

from models import EntryType, UserRole
from app.services.errors import ValidationError

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


class Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


def parse_form_date(v: Any) -> date:
    """Strict YYYY-MM-DD that must also be a real calendar date."""
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if v is None or not str(v).strip():
        raise ValueError("Date is required")
    s = str(v).strip()
    if not DATE_RE.match(s):
        raise ValueError("Date must be in YYYY-MM-DD format")
    try:
        return date.fromisoformat(s)
    except ValueError:
        raise ValueError("Date is not a valid calendar date")


def _field_label(name: str) -> str:
    # "categoryId" -> "Category"
    name = to_snake(name)
    if name.endswith("_id"):
        name = name[:-3]
    return name.replace("_", " ").capitalize()


def validate_payload(model: type[BaseModel], payload: Any) -> Any:
    """
    Validate `payload` against `model`.

    Pydantic errors are flattened into a single readable
    app ValidationError so they can be shown inline.
    """
    try:
        return model.model_validate(payload or {})
    except PydanticValidationError as e:
        messages = []
        for err in e.errors():
            msg = err.get("msg", "Invalid value")
            loc = err.get("loc", ())
            if err.get("type") == "missing" and len(loc) == 1:
                msg = f"{_field_label(str(loc[0]))} is required"
            elif msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            else:
                field = ".".join(str(p) for p in loc)
                msg = f"{field}: {msg}" if field else msg
            messages.append(msg)
        raise ValidationError("; ".join(messages)) from e


# -------------------------------------------------------------------
# Inputs
# -------------------------------------------------------------------

class LoginRequest(Schema):
    username: str = ""
    password: str = ""


class ChangePasswordRequest(Schema):
    current_password: str = ""
    new_password: str = ""


class TransactionFilters(Schema):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category_id: Optional[int] = None
    type: Optional[Literal["income", "expense"]] = None

    @field_validator("start_date", "end_date", "category_id", "type", mode="before")
    @classmethod
    def empty_means_unset(cls, v):
        return _blank_to_none(v)


class TransactionIn(Schema):
    date: date
    type: str
    amount: float
    category_id: int
    description: str
    payment_method: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def check_date(cls, v):
        return parse_form_date(v)

    @field_validator("type", mode="before")
    @classmethod
    def check_type(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("Type is required")
        v = str(v).strip().lower()
        if v not in EntryType.ALL:
            raise ValueError("Type must be income or expense")
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("Amount is required")
        try:
            amount = float(v)
        except (TypeError, ValueError):
            raise ValueError("Amount must be a number")
        if not math.isfinite(amount) or amount <= 0:
            raise ValueError("Amount must be greater than 0")
        return amount

    @field_validator("category_id", mode="before")
    @classmethod
    def check_category(cls, v):
        if _blank_to_none(v) is None:
            raise ValueError("Category is required")
        try:
            return int(v)
        except (TypeError, ValueError):
            raise ValueError("Category is required")

    @field_validator("description", mode="before")
    @classmethod
    def check_description(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("Description is required")
        return str(v).strip()

    @field_validator("payment_method", "notes", mode="before")
    @classmethod
    def strip_optional(cls, v):
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v


class TransactionUpdate(TransactionIn):
    transaction_id: int


class TransactionRef(Schema):
    transaction_id: int


class CategoryIn(Schema):
    name: str
    type: str
    color: str = "#6B7280"

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("Category name is required")
        return str(v).strip()

    @field_validator("type", mode="before")
    @classmethod
    def check_type(cls, v):
        v = str(v or "").strip().lower()
        if v not in EntryType.ALL:
            raise ValueError("Type must be income or expense")
        return v

    @field_validator("color", mode="before")
    @classmethod
    def check_color(cls, v):
        v = str(v or "").strip()
        if not COLOR_RE.match(v):
            raise ValueError("Color must be a hex value like #EF4444")
        return v.upper()


class CategoryUpdate(CategoryIn):
    category_id: int


class CategoryRef(Schema):
    category_id: int


class CategoryQuery(Schema):
    type: Optional[Literal["income", "expense"]] = None

    @field_validator("type", mode="before")
    @classmethod
    def empty_means_unset(cls, v):
        return _blank_to_none(v)


class UserCreate(Schema):
    username: str
    role: str

    @field_validator("username", mode="before")
    @classmethod
    def check_username(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("Username is required")
        return str(v).strip()

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        v = str(v or "").strip().lower()
        if v not in UserRole.ALL:
            raise ValueError("Role must be one of: " + ", ".join(UserRole.ALL))
        return v


class UserUpdate(Schema):
    user_id: int
    role: Optional[str] = None
    is_active: Optional[bool] = None
    reset_password: bool = False

    @field_validator("role", mode="before")
    @classmethod
    def check_role(cls, v):
        v = _blank_to_none(v)
        if v is None:
            return None
        v = str(v).strip().lower()
        if v not in UserRole.ALL:
            raise ValueError("Role must be one of: " + ", ".join(UserRole.ALL))
        return v


class UserRef(Schema):
    user_id: int


class ReportQuery(Schema):
    month: int = Field(ge=1, le=12)
    # month_bounds needs the first day of the following month
    year: int = Field(ge=1900, le=9998)


class DashboardQuery(Schema):
    period: Literal["week", "month", "year"] = "month"


class RestoreRequest(Schema):
    backup_path: str

    @field_validator("backup_path", mode="before")
    @classmethod
    def check_path(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("Backup file is required")
        return str(v).strip()


# -------------------------------------------------------------------
# Outputs
# -------------------------------------------------------------------

class UserOut(Schema):
    """User snapshot without the password hash."""

    id: int
    username: str
    role: str
    is_active: bool
    must_change_password: bool
    created_at: Optional[datetime] = None
    created_by_id: Optional[int] = None


class CategoryOut(Schema):
    id: int
    name: str
    type: str
    color: str
    created_by_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TransactionOut(Schema):
    id: int
    date: date
    type: str
    amount: float
    category_id: int
    category: Optional[CategoryOut] = None
    description: str
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    created_by_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuditLogOut(Schema):
    id: int
    user_id: int
    username: Optional[str] = None
    action: str
    entity: str
    entity_id: Optional[int] = None
    details: Optional[str] = None
    timestamp: datetime


# -------------------------------------------------------------------
# Result envelope
# -------------------------------------------------------------------

def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if isinstance(value, dict):
        return {to_camel(k) if isinstance(k, str) else k: _dump(v) for k, v in value.items()}
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class CommandResult(BaseModel):
    """
    Outcome of one dispatched command.

    `data` holds the payload (e.g. {"transactions": [...]});
    to_dict() flattens it into {success, message?, ...payload}.
    """

    success: bool
    message: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, message: str | None = None, **data: Any) -> "CommandResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str) -> "CommandResult":
        return cls(success=False, message=message)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success}
        if self.message:
            out["message"] = self.message
        for key, value in self.data.items():
            out[to_camel(key)] = _dump(value)
        return out
