"""
schoolfin/api/v1/endpoints/fees.py
Fee category endpoints
"""
from fastapi import APIRouter, status, Depends, Query
from typing import List, Optional
from schoolfin.models.schemas import (
    FeeCategoryCreate, FeeCategoryUpdate, FeeCategoryResponse,
    FeeCategoryDetailResponse, FeeFrequency, FeePaymentWithStudent,
    DeleteResponse, TokenPayload
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

DUPLICATE_NAME = "Fee category with this name already exists"
HAS_PAYMENTS = "Cannot delete fee category with associated payments."


@router.get("/categories", response_model=List[FeeCategoryResponse])
async def get_fee_categories(
    frequency: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    current_user: TokenPayload = Depends(require_session),
    db: SupabaseQueries = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
):
    """
    List fee categories, newest first.
    - `frequency=All` is the same as no frequency filter
    """
    try:
        filters = {}

        if frequency and frequency != "All":
            try:
                filters["frequency"] = FeeFrequency(frequency).value
            except ValueError:
                raise ValidationError(f"Invalid frequency: {frequency}")

        categories = await db.select_all(
            "fee_categories",
            filters,
            order_by="created_at",
            ascending=False,
            limit=min(limit, settings.MAX_LIST_LIMIT) if limit else None
        )

        return [FeeCategoryResponse(**category) for category in categories]

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get fee categories error: {e}")
        raise UnexpectedError("Failed to fetch fee categories")


@router.post("/categories", response_model=FeeCategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_fee_category(
    category_data: FeeCategoryCreate,
    current_user: TokenPayload = Depends(require_admin("create fee categories")),
    db: SupabaseQueries = Depends(get_db)
):
    """
    Create a fee category (Admin only)
    """
    try:
        if not category_data.name or category_data.amount is None or category_data.frequency is None:
            raise ValidationError(
                "Missing required fields: name, amount, and frequency are required"
            )

        if await db.exists("fee_categories", {"name": category_data.name}):
            raise ConflictError(DUPLICATE_NAME, duplicateField="name")

        new_category = await db.insert_one(
            "fee_categories",
            category_data.model_dump(mode="json")
        )

        logger.info(f"Fee category created: {new_category['name']} by {current_user.sub}")

        return FeeCategoryResponse(**new_category)

    except UniqueViolationError:
        raise ConflictError(DUPLICATE_NAME, duplicateField="name")
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Create fee category error: {e}")
        raise UnexpectedError("Failed to create fee category")


@router.get("/categories/{id}", response_model=FeeCategoryDetailResponse)
async def get_fee_category(
    id: str,
    current_user: TokenPayload = Depends(require_session),
    db: SupabaseQueries = Depends(get_db)
):
    """
    Get a fee category with its payments, latest due date first
    """
    try:
        category = await db.select_by_id("fee_categories", "id", id)

        if not category:
            raise NotFoundError("Fee category not found")

        payments = await db.select_all(
            "fee_payments",
            {"fee_category_id": id},
            order_by="due_date",
            ascending=False
        )
        students = await db.select_in(
            "students", "id", [p["student_id"] for p in payments]
        )
        students_by_id = {student["id"]: student for student in students}

        fee_payments = [
            FeePaymentWithStudent(
                **payment,
                student=students_by_id.get(payment["student_id"])
            )
            for payment in payments
        ]

        return FeeCategoryDetailResponse(**category, fee_payments=fee_payments)

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get fee category error: {e}")
        raise UnexpectedError("Failed to fetch fee category")


@router.put("/categories/{id}", response_model=FeeCategoryResponse)
async def update_fee_category(
    id: str,
    category_data: FeeCategoryUpdate,
    current_user: TokenPayload = Depends(require_admin("update fee categories")),
    db: SupabaseQueries = Depends(get_db)
):
    """
    Partially update a fee category (Admin only).
    - a null `amount` keeps the stored amount
    - a null `description` clears it
    """
    try:
        existing = await db.select_by_id("fee_categories", "id", id)
        if not existing:
            raise NotFoundError("Fee category not found")

        changes = category_data.model_dump(mode="json", exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")

        for field in ("name", "frequency"):
            if field in changes and not changes[field]:
                raise ValidationError(f"{field} cannot be empty")

        if "amount" in changes and changes["amount"] is None:
            del changes["amount"]

        if not changes:
            return FeeCategoryResponse(**existing)

        new_name = changes.get("name")
        if new_name and new_name != existing["name"]:
            if await db.exists("fee_categories", {"name": new_name}):
                raise ConflictError(DUPLICATE_NAME, duplicateField="name")

        changes["updated_at"] = utc_now_iso()

        updated_category = await db.update_by_id("fee_categories", "id", id, changes)
        if not updated_category:
            raise NotFoundError("Fee category not found")

        logger.info(f"Fee category updated: {id} by {current_user.sub}")

        return FeeCategoryResponse(**updated_category)

    except UniqueViolationError:
        raise ConflictError(DUPLICATE_NAME, duplicateField="name")
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Update fee category error: {e}")
        raise UnexpectedError("Failed to update fee category")


@router.delete("/categories/{id}", response_model=DeleteResponse)
async def delete_fee_category(
    id: str,
    current_user: TokenPayload = Depends(require_admin("delete fee categories")),
    db: SupabaseQueries = Depends(get_db)
):
    """
    Delete a fee category (Admin only). Categories with payments are kept.
    """
    try:
        existing = await db.select_by_id("fee_categories", "id", id)
        if not existing:
            raise NotFoundError("Fee category not found")

        payment_count = await db.count("fee_payments", {"fee_category_id": id})
        if payment_count > 0:
            raise ConflictError(
                HAS_PAYMENTS,
                hasPayments=True,
                paymentCount=payment_count
            )

        await db.delete_by_id("fee_categories", "id", id)

        logger.info(f"Fee category deleted: {id} by {current_user.sub}")

        return DeleteResponse()

    except ReferenceViolationError:
        raise ConflictError(HAS_PAYMENTS, hasPayments=True)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Delete fee category error: {e}")
        raise UnexpectedError("Failed to delete fee category")
