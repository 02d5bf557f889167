"""Pydantic schemas for the session and submitted forms."""
from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

USER_ROLES = ("admin", "manager", "influencer")
REPORT_FREQUENCIES = ("daily", "weekly", "biweekly", "bi-weekly", "monthly")
REMINDER_THRESHOLDS = ("3days", "5days", "7days", "14days")
_COUPON_PATTERN = re.compile(r"^[A-Z0-9_-]{3,30}$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _strip_required(value: Any, info: ValidationInfo) -> str:
    label = info.field_name.replace("_", " ").capitalize()
    if value is None:
        raise ValueError(f"{label} é obrigatório.")
    value_str = str(value).strip()
    if not value_str:
        raise ValueError(f"{label} não pode ficar vazio.")
    return value_str


def _validate_email(value: Any) -> str:
    text = str(value or "").strip().lower()
    if not _EMAIL_PATTERN.match(text):
        raise ValueError("Informe um email válido.")
    return text


class SessionUser(BaseModel):
    """Identity stored in the ``user`` cookie."""

    id: str
    name: str
    email: str
    role: str

    model_config = ConfigDict(extra="ignore")

    @field_validator("id", mode="before")
    def coerce_id(cls, value: Any) -> str:
        return str(value)


class UserForm(BaseModel):
    name: str = Field(..., max_length=200)
    email: str
    role: str
    password: Optional[str] = None
    whatsapp_number: Optional[str] = Field(None, max_length=30)
    manager_id: Optional[str] = None
    coupon_code: Optional[str] = None
    is_active: bool = True

    @field_validator("name", mode="before")
    def strip_required_strings(cls, value: Any, info: ValidationInfo) -> str:
        return _strip_required(value, info)

    @field_validator("email", mode="before")
    def validate_email(cls, value: Any) -> str:
        return _validate_email(value)

    @field_validator("role")
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in USER_ROLES:
            raise ValueError("Papel deve ser admin, manager ou influencer.")
        return normalized

    @field_validator("password", "whatsapp_number", "manager_id", "coupon_code", mode="before")
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    def validate_password(cls, value: str | None) -> str | None:
        if value is not None and len(value) < 6:
            raise ValueError("A senha deve ter pelo menos 6 caracteres.")
        return value

    def to_api(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "isActive": self.is_active,
        }
        if self.password:
            body["password"] = self.password
        if self.whatsapp_number:
            body["whatsappNumber"] = self.whatsapp_number
        if self.role != "influencer":
            return body
        if self.manager_id:
            body["managerId"] = self.manager_id
        if self.coupon_code:
            body["couponCode"] = self.coupon_code.upper()
        return body


class InfluencerForm(BaseModel):
    name: str = Field(..., max_length=200)
    email: str
    whatsapp_number: str = Field(..., max_length=30)
    coupon: Optional[str] = None
    instagram: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = None

    @field_validator("name", "whatsapp_number", mode="before")
    def strip_required_strings(cls, value: Any, info: ValidationInfo) -> str:
        return _strip_required(value, info)

    @field_validator("email", mode="before")
    def validate_email(cls, value: Any) -> str:
        return _validate_email(value)

    @field_validator("coupon", "instagram", "status", mode="before")
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("coupon")
    def validate_coupon(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.upper()
        if not _COUPON_PATTERN.match(normalized):
            raise ValueError("Cupom deve ter de 3 a 30 letras, números, hífen ou sublinhado.")
        return normalized

    def to_api(self, creating: bool = True) -> dict[str, Any]:
        body: dict[str, Any] = {"name": self.name, "email": self.email}
        if creating:
            body["whatsappNumber"] = self.whatsapp_number
        else:
            body["phone"] = self.whatsapp_number
        if self.coupon:
            body["coupon"] = self.coupon
        if self.instagram:
            body["instagram"] = self.instagram
        if self.status:
            body["status"] = self.status
        return body


class NotificationSettingsForm(BaseModel):
    welcome: bool = False
    report: bool = False
    reminder: bool = False
    report_frequency: Optional[str] = None
    reminder_threshold: Optional[str] = None

    @field_validator("report_frequency")
    def validate_frequency(cls, value: str | None) -> str | None:
        if value in (None, ""):
            return None
        if value not in REPORT_FREQUENCIES:
            raise ValueError("Frequência de relatório inválida.")
        return value

    @field_validator("reminder_threshold")
    def validate_threshold(cls, value: str | None) -> str | None:
        if value in (None, ""):
            return None
        if value not in REMINDER_THRESHOLDS:
            raise ValueError("Prazo de lembrete inválido.")
        return value

    def to_api(self) -> dict[str, Any]:
        body: dict[str, Any] = {"welcome": self.welcome, "report": self.report, "reminder": self.reminder}
        if self.report_frequency:
            body["reportFrequency"] = self.report_frequency
        if self.reminder_threshold:
            body["reminderThreshold"] = self.reminder_threshold
        return body


class PasswordChangeForm(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    def validate_length(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("A nova senha deve ter pelo menos 6 caracteres.")
        return value

    @field_validator("confirm_password")
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if value != info.data.get("new_password"):
            raise ValueError("As senhas não coincidem.")
        return value


class PanelRequest(BaseModel):
    """Body posted by the WhatsApp panel script on every transition."""

    snapshot: dict[str, Any] = Field(default_factory=dict)
    generation: Optional[int] = None


def first_error(exc: Exception) -> str:
    """First human-readable message of a pydantic ``ValidationError``."""
    errors = getattr(exc, "errors", None)
    if callable(errors):
        for error in errors():
            message = str(error.get("msg", ""))
            return message.removeprefix("Value error, ")
    return str(exc)
