"""
schoolfin/core/dependencies.py
Request-scoped dependencies: settings, database access and the
authorization gate shared by every route
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client
from schoolfin.core.config import Settings
from schoolfin.core.errors import AuthError
from schoolfin.core.security import verify_token
from schoolfin.db.supabase import get_supabase_client, SupabaseQueries
from schoolfin.models.schemas import TokenPayload, UserRole
import logging

logger = logging.getLogger(__name__)

# Missing credentials are reported through AuthError, not FastAPI's own 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings value the application was created with"""
    return request.app.state.settings


def get_client(settings: Settings = Depends(get_app_settings)) -> Client:
    return get_supabase_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


def get_db(client: Client = Depends(get_client)) -> SupabaseQueries:
    return SupabaseQueries(client)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings)
) -> TokenPayload:
    """Resolve the session from the bearer token, or reject with 401"""
    if credentials is None or not credentials.credentials:
        raise AuthError()
    return verify_token(credentials.credentials, settings)


def require_role(*roles: UserRole, action: str = "perform this action"):
    """
    Build a dependency that admits any authenticated session when no roles
    are given, and only the listed roles otherwise.

    Example:
        >>> @router.delete("/{id}")
        ... async def delete_thing(
        ...     current_user: TokenPayload = Depends(require_role(UserRole.ADMIN, action="delete things"))
        ... ): ...
    """
    allowed = set(roles)
    audience = " or ".join(f"{role.value.lower()}s" for role in roles)

    async def role_checker(current_user: TokenPayload = Depends(get_current_user)) -> TokenPayload:
        if allowed and current_user.role not in allowed:
            logger.warning(
                f"Denied {current_user.role.value} user {current_user.sub}: cannot {action}"
            )
            raise AuthError(f"Unauthorized. Only {audience} can {action}.")
        return current_user

    return role_checker


def require_admin(action: str):
    """Require the ADMIN role"""
    return require_role(UserRole.ADMIN, action=action)


require_session = require_role()
