from __future__ import annotations

import logging
from typing import Annotated, NoReturn

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from course_engine.core.config import SETTINGS
from course_engine.models.principal import Principal
from course_engine.models.user import Role, User
from course_engine.repos.store import Store, build_store
from course_engine.services import token_service
from course_engine.services.errors import CourseEngineError

logger = logging.getLogger(__name__)

# Tokens are minted by the identity service; tokenUrl only feeds the docs UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# One store per process; InMemoryStore unless DATABASE_URL is set
store: Store = build_store(SETTINGS)

_STATUS_BY_KIND = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "unauthorized": status.HTTP_403_FORBIDDEN,
    "already_submitted": status.HTTP_409_CONFLICT,
    "invalid_state": status.HTTP_409_CONFLICT,
    "invalid": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def get_store() -> Store:
    return store


def http_error(exc: CourseEngineError) -> NoReturn:
    """Translate a core error into the matching HTTPException."""
    code = _STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    logger.warning("Request failed kind=%s: %s", exc.kind, exc.message)
    raise HTTPException(status_code=code, detail=exc.message) from exc


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
    store: Annotated[Store, Depends(get_store)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    The principal is mirrored into the user repo so the core can resolve
    the acting student or teacher.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
        principal = token_service.principal_from_claims(claims)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    with store.transaction() as repos:
        repos.users.upsert(
            User(
                id=principal.user_id,
                email=principal.email,
                name=principal.name,
                role=principal.role,
            )
        )
    logger.debug(
        "Token validated for user=%s role=%s", principal.user_id, principal.role
    )
    return principal


def require_role(role: Role):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role(Role.TEACHER))
    Returns the Principal if the role matches, else 403.
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s role=%s required=%s",
                principal.user_id,
                principal.role,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


StoreDep = Annotated[Store, Depends(get_store)]
CurrentUser = Annotated[Principal, Depends(require_user)]
CurrentStudent = Annotated[Principal, Depends(require_role(Role.STUDENT))]
CurrentTeacher = Annotated[Principal, Depends(require_role(Role.TEACHER))]

