"""
schoolfin/models/schemas.py
Pydantic schemas for the SchoolFin API

Storage columns are snake_case; the JSON contract is camelCase. Every model
accepts both spellings on input and serialises by alias.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Dict
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


def _parse_date_value(value):
    """Accept 'YYYY-MM-DD' or a full ISO datetime, keeping only the date."""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if "T" in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    if isinstance(value, datetime):
        return value.date()
    return value


# Bounds of the numeric(12, 2) amount column
MIN_AMOUNT = 0.01
MAX_AMOUNT = 9_999_999_999.99


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================
# ENUMS
# ============================================

class UserRole(str, Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    TEACHER = "TEACHER"


class StudentStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    GRADUATED = "Graduated"
    TRANSFERRED = "Transferred"


class FeeFrequency(str, Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    ANNUALLY = "Annually"
    ONE_TIME = "One-time"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


# ============================================
# AUTH MODELS
# ============================================

class UserLogin(BaseModel):
    email: EmailStr
    password: str


class TokenPayload(BaseModel):
    sub: str
    role: UserRole
    exp: datetime


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class SessionResponse(CamelModel):
    sub: str
    role: UserRole
    expires_at: datetime


# ============================================
# STUDENT MODELS
# ============================================

class StudentFields(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[EmailStr] = None
    parent_name: Optional[str] = None
    parent_contact: Optional[str] = None
    class_name: Optional[str] = Field(None, alias="class")
    section: Optional[str] = None
    status: Optional[StudentStatus] = None
    admission_date: Optional[date] = None

    @field_validator("date_of_birth", "admission_date", mode="before")
    @classmethod
    def parse_dates(cls, value):
        return _parse_date_value(value)

    @field_validator("email", "status", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        return _blank_to_none(value)


class StudentCreate(StudentFields):
    # Presence is checked by the endpoint so that a missing field and an
    # empty one produce the same error.
    student_id: Optional[str] = None


class StudentUpdate(StudentFields):
    student_id: Optional[str] = None


class StudentResponse(CamelModel):
    id: str
    student_id: str
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    parent_name: Optional[str] = None
    parent_contact: Optional[str] = None
    class_name: Optional[str] = Field(None, alias="class")
    section: Optional[str] = None
    status: StudentStatus
    admission_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================
# FEE CATEGORY MODELS
# ============================================

class FeeCategoryCreate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = Field(None, ge=MIN_AMOUNT, le=MAX_AMOUNT, allow_inf_nan=False)
    frequency: Optional[FeeFrequency] = None

    @field_validator("amount", "frequency", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        return _blank_to_none(value)


class FeeCategoryUpdate(FeeCategoryCreate):
    pass


class FeeCategoryResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    amount: float
    frequency: FeeFrequency
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================
# FEE PAYMENT MODELS
# ============================================

class FeePaymentResponse(CamelModel):
    id: str
    student_id: str
    fee_category_id: str
    amount: float
    due_date: date
    payment_date: Optional[date] = None
    status: PaymentStatus = PaymentStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("payment_date", mode="before")
    @classmethod
    def parse_dates(cls, value):
        return _parse_date_value(value)


class FeePaymentWithCategory(FeePaymentResponse):
    fee_category: Optional[FeeCategoryResponse] = None


class FeePaymentWithStudent(FeePaymentResponse):
    student: Optional[StudentResponse] = None


class StudentDetailResponse(StudentResponse):
    fee_payments: List[FeePaymentWithCategory] = []


class FeeCategoryDetailResponse(FeeCategoryResponse):
    fee_payments: List[FeePaymentWithStudent] = []


class DeleteResponse(BaseModel):
    success: bool = True


# ============================================
# SCHOOL PROFILE
# ============================================

class SchoolProfile(CamelModel):
    app_name: str
    name: str
    tagline: str
    address: str
    phone: str
    email: str
    website: str
    logo_url: str


# ============================================
# DASHBOARD
# ============================================

class StudentSummary(CamelModel):
    total: int = 0
    by_status: Dict[str, int] = {}


class FeeCategorySummary(CamelModel):
    total: int = 0


class PaymentSummary(CamelModel):
    total: int = 0
    by_status: Dict[str, int] = {}
    total_due: float = 0
    total_collected: float = 0
    outstanding: float = 0


class DashboardSummary(CamelModel):
    students: StudentSummary
    fee_categories: FeeCategorySummary
    payments: PaymentSummary


# ============================================
# EXPORTS
# ============================================

__all__ = [
    # Enums
    "UserRole",
    "StudentStatus",
    "FeeFrequency",
    "PaymentStatus",
    # Auth
    "UserLogin",
    "TokenPayload",
    "Token",
    "SessionResponse",
    # Student
    "StudentCreate",
    "StudentUpdate",
    "StudentResponse",
    "StudentDetailResponse",
    # Fee category
    "FeeCategoryCreate",
    "FeeCategoryUpdate",
    "FeeCategoryResponse",
    "FeeCategoryDetailResponse",
    # Fee payment
    "FeePaymentResponse",
    "FeePaymentWithCategory",
    "FeePaymentWithStudent",
    # Misc
    "DeleteResponse",
    "SchoolProfile",
    "DashboardSummary",
    "StudentSummary",
    "FeeCategorySummary",
    "PaymentSummary",
]
