from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from sfms.auth.schemas import SchoolContext
from sfms.core.config import settings
from sfms.core.models import School
from sfms.db.session import get_db


bearer_scheme = HTTPBearer(auto_error=False)


def _claim_school_id(payload: Dict[str, Any]) -> Optional[str]:
    """school_id lives at the top level or inside the provider's app_metadata."""
    school_id = payload.get("school_id")
    if not school_id:
        app_metadata = payload.get("app_metadata") or {}
        school_id = app_metadata.get("school_id")
    return school_id


async def get_school_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> SchoolContext:
    """Verify the hosted auth provider's access token and resolve the caller's school."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    decode_options = {"verify_aud": settings.auth_jwt_audience is not None}
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options=decode_options,
        )
    except JWTError:
        raise credentials_exception

    school_id_str = _claim_school_id(payload)
    if not school_id_str:
        raise credentials_exception
    try:
        school_id = UUID(str(school_id_str))
    except ValueError:
        raise credentials_exception

    user_id: Optional[UUID] = None
    sub = payload.get("sub")
    if sub:
        try:
            user_id = UUID(str(sub))
        except ValueError:
            pass

    school = await db.get(School, school_id)
    if not school:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"School {school_id} not found")

    return SchoolContext(
        school_id=school.id,
        user_id=user_id,
        timezone=school.timezone or settings.default_timezone,
    )
