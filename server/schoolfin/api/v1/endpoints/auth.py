from fastapi import APIRouter, Depends
from schoolfin.models.schemas import UserLogin, Token, TokenPayload, SessionResponse, UserRole
from schoolfin.core.config import Settings
from schoolfin.core.dependencies import get_app_settings, get_db, require_session
from schoolfin.core.errors import AppError, AuthError, UnexpectedError
from schoolfin.core.security import verify_password, create_access_token
from schoolfin.db.supabase import SupabaseQueries
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/login", response_model=Token)
async def login(
    credentials: UserLogin,
    db: SupabaseQueries = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
):
    """
    Login endpoint - returns a JWT access token
    """
    try:
        user = await db.select_one("users", {"email": credentials.email})

        if not user or not verify_password(credentials.password, user["password_hash"]):
            logger.warning(f"Failed login for {credentials.email}")
            raise AuthError("Invalid email or password")

        if not user.get("is_active", True):
            raise AuthError("Account is inactive")

        token_data = {
            "sub": str(user["id"]),
            "role": UserRole(user["role"]).value
        }
        access_token = create_access_token(token_data, settings)

        logger.info(f"User logged in: {credentials.email}")

        return Token(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        )

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise UnexpectedError("Login failed")


@router.get("/me", response_model=SessionResponse)
async def get_session(current_user: TokenPayload = Depends(require_session)):
    """
    Describe the current session
    """
    return SessionResponse(
        sub=current_user.sub,
        role=current_user.role,
        expires_at=current_user.exp
    )
