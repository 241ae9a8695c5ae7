"""
schoolfin/api/v1/endpoints/students.py
Student record endpoints
"""
from fastapi import APIRouter, status, Depends, Query
from typing import List, Optional
from datetime import date
from pydantic.alias_generators import to_camel
from schoolfin.models.schemas import (
    StudentCreate, StudentUpdate, StudentResponse, StudentDetailResponse,
    StudentStatus, FeePaymentWithCategory, DeleteResponse, TokenPayload
)
from schoolfin.core.config import Settings
from schoolfin.core.dependencies import get_app_settings, get_db, require_admin, require_session
from schoolfin.core.errors import (
    AppError, ConflictError, NotFoundError, UnexpectedError, ValidationError
)
from schoolfin.db.supabase import (
    SupabaseQueries, UniqueViolationError, ReferenceViolationError, utc_now_iso
)
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

# Fields that may be changed but never cleared
NON_NULLABLE_FIELDS = ("student_id", "first_name", "last_name", "status")

DUPLICATE_STUDENT_ID = "Student ID already exists"
HAS_FEE_PAYMENTS = "Cannot delete student with fee payments. Consider marking as inactive instead."


def _apply_update_rules(update_data: dict) -> dict:
    """
    Turn the fields a client sent into column changes.

    Absent fields never reach here. An empty dateOfBirth clears it, an empty
    admissionDate keeps the stored one, and the identifying fields cannot be
    blanked.
    """
    changes = dict(update_data)

    for field in NON_NULLABLE_FIELDS:
        if field in changes and not changes[field]:
            raise ValidationError(f"{to_camel(field)} cannot be empty")

    if "admission_date" in changes and not changes["admission_date"]:
        del changes["admission_date"]

    return changes


@router.get("", response_model=List[StudentResponse])
async def get_students(
    status_filter: Optional[str] = Query(None, alias="status"),
    class_name: Optional[str] = Query(None, alias="class"),
    section: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    current_user: TokenPayload = Depends(require_session),
    db: SupabaseQueries = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
):
    """
    List students, newest first.
    - `status=All` is the same as no status filter
    """
    try:
        filters = {}

        if status_filter and status_filter != "All":
            try:
                filters["status"] = StudentStatus(status_filter).value
            except ValueError:
                raise ValidationError(f"Invalid status: {status_filter}")
        if class_name:
            filters["class_name"] = class_name
        if section:
            filters["section"] = section

        students = await db.select_all(
            "students",
            filters,
            order_by="created_at",
            ascending=False,
            limit=min(limit, settings.MAX_LIST_LIMIT) if limit else None
        )

        return [StudentResponse(**student) for student in students]

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get students error: {e}")
        raise UnexpectedError("Failed to fetch students")


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    current_user: TokenPayload = Depends(require_session),
    db: SupabaseQueries = Depends(get_db)
):
    """
    Create a new student.
    - `studentId`, `firstName` and `lastName` are required
    - `status` defaults to Active, `admissionDate` to today
    """
    try:
        if not student_data.first_name or not student_data.last_name or not student_data.student_id:
            raise ValidationError("Missing required fields")

        if await db.exists("students", {"student_id": student_data.student_id}):
            raise ConflictError(DUPLICATE_STUDENT_ID, duplicateField="studentId")

        student_dict = student_data.model_dump(mode="json")
        student_dict["status"] = student_dict.get("status") or StudentStatus.ACTIVE.value
        student_dict["admission_date"] = student_dict.get("admission_date") or date.today().isoformat()

        new_student = await db.insert_one("students", student_dict)

        logger.info(f"Student created: {new_student['student_id']} by {current_user.sub}")

        return StudentResponse(**new_student)

    except UniqueViolationError:
        # Lost a race with a concurrent create
        raise ConflictError(DUPLICATE_STUDENT_ID, duplicateField="studentId")
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Create student error: {e}")
        raise UnexpectedError("Failed to create student")


@router.get("/{id}", response_model=StudentDetailResponse)
async def get_student(
    id: str,
    current_user: TokenPayload = Depends(require_session),
    db: SupabaseQueries = Depends(get_db)
):
    """
    Get a student with their fee payments, latest due date first
    """
    try:
        student = await db.select_by_id("students", "id", id)

        if not student:
            raise NotFoundError("Student not found")

        payments = await db.select_all(
            "fee_payments",
            {"student_id": id},
            order_by="due_date",
            ascending=False
        )
        categories = await db.select_in(
            "fee_categories", "id", [p["fee_category_id"] for p in payments]
        )
        categories_by_id = {category["id"]: category for category in categories}

        fee_payments = [
            FeePaymentWithCategory(
                **payment,
                fee_category=categories_by_id.get(payment["fee_category_id"])
            )
            for payment in payments
        ]

        return StudentDetailResponse(**student, fee_payments=fee_payments)

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get student error: {e}")
        raise UnexpectedError("Failed to fetch student")


@router.put("/{id}", response_model=StudentResponse)
async def update_student(
    id: str,
    student_data: StudentUpdate,
    current_user: TokenPayload = Depends(require_session),
    db: SupabaseQueries = Depends(get_db)
):
    """
    Partially update a student. Fields left out of the body are unchanged.
    """
    try:
        existing = await db.select_by_id("students", "id", id)
        if not existing:
            raise NotFoundError("Student not found")

        update_data = student_data.model_dump(mode="json", exclude_unset=True)
        if not update_data:
            raise ValidationError("No fields to update")

        changes = _apply_update_rules(update_data)
        if not changes:
            return StudentResponse(**existing)

        new_student_id = changes.get("student_id")
        if new_student_id and new_student_id != existing["student_id"]:
            if await db.exists("students", {"student_id": new_student_id}):
                raise ConflictError(DUPLICATE_STUDENT_ID, duplicateField="studentId")

        changes["updated_at"] = utc_now_iso()

        updated_student = await db.update_by_id("students", "id", id, changes)
        if not updated_student:
            # Deleted between the lookup and the write
            raise NotFoundError("Student not found")

        logger.info(f"Student updated: {id} by {current_user.sub}")

        return StudentResponse(**updated_student)

    except UniqueViolationError:
        raise ConflictError(DUPLICATE_STUDENT_ID, duplicateField="studentId")
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Update student error: {e}")
        raise UnexpectedError("Failed to update student")


@router.delete("/{id}", response_model=DeleteResponse)
async def delete_student(
    id: str,
    current_user: TokenPayload = Depends(require_admin("delete students")),
    db: SupabaseQueries = Depends(get_db)
):
    """
    Delete a student (Admin only). Students with fee payments are kept.
    """
    try:
        existing = await db.select_by_id("students", "id", id)
        if not existing:
            raise NotFoundError("Student not found")

        payment_count = await db.count("fee_payments", {"student_id": id})
        if payment_count > 0:
            raise ConflictError(
                HAS_FEE_PAYMENTS,
                hasFeePayments=True,
                paymentCount=payment_count
            )

        await db.delete_by_id("students", "id", id)

        logger.info(f"Student deleted: {id} by {current_user.sub}")

        return DeleteResponse()

    except ReferenceViolationError:
        # A payment was linked after the count
        raise ConflictError(HAS_FEE_PAYMENTS, hasFeePayments=True)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Delete student error: {e}")
        raise UnexpectedError("Failed to delete student")
