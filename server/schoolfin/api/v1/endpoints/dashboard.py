"""
schoolfin/api/v1/endpoints/dashboard.py
Dashboard statistics endpoints
"""
from collections import Counter
from fastapi import APIRouter, Depends
from schoolfin.models.schemas import (
    DashboardSummary, StudentSummary, FeeCategorySummary, PaymentSummary,
    PaymentStatus, StudentStatus, TokenPayload
)
from schoolfin.core.dependencies import get_db, require_session
from schoolfin.core.errors import UnexpectedError
from schoolfin.db.supabase import SupabaseQueries
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    current_user: TokenPayload = Depends(require_session),
    db: SupabaseQueries = Depends(get_db)
):
    """
    School financial overview: head counts and fee collection
    """
    try:
        total_students = await db.count("students")
        students_by_status = {}
        for student_status in StudentStatus:
            n = await db.count("students", {"status": student_status.value})
            if n:
                students_by_status[student_status.value] = n

        total_categories = await db.count("fee_categories")
        payments = await db.select_pages("fee_payments", "amount,status")

        total_due = sum(float(p.get("amount") or 0) for p in payments)
        total_collected = sum(
            float(p.get("amount") or 0)
            for p in payments
            if p.get("status") == PaymentStatus.PAID.value
        )

        return DashboardSummary(
            students=StudentSummary(
                total=total_students,
                by_status=students_by_status
            ),
            fee_categories=FeeCategorySummary(total=total_categories),
            payments=PaymentSummary(
                total=len(payments),
                by_status=dict(Counter(p.get("status") for p in payments)),
                total_due=round(total_due, 2),
                total_collected=round(total_collected, 2),
                outstanding=round(total_due - total_collected, 2)
            )
        )

    except Exception as e:
        logger.error(f"Dashboard summary error: {e}")
        raise UnexpectedError("Failed to build dashboard summary")
