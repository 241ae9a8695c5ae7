"""
schoolfin/api/v1/endpoints/settings.py
Read-only school profile
"""
from fastapi import APIRouter, Depends
from schoolfin.models.schemas import SchoolProfile, TokenPayload
from schoolfin.core.config import Settings
from schoolfin.core.dependencies import get_app_settings, require_session

router = APIRouter()


@router.get("/school", response_model=SchoolProfile)
async def get_school_profile(
    current_user: TokenPayload = Depends(require_session),
    settings: Settings = Depends(get_app_settings)
):
    return SchoolProfile(
        app_name=settings.APP_NAME,
        name=settings.SCHOOL_NAME,
        tagline=settings.SCHOOL_TAGLINE,
        address=settings.SCHOOL_ADDRESS,
        phone=settings.SCHOOL_PHONE,
        email=settings.SCHOOL_EMAIL,
        website=settings.SCHOOL_WEBSITE,
        logo_url=settings.SCHOOL_LOGO_URL
    )
