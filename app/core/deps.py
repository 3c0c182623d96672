from fastapi import Request, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.auth.models import User
from app.core.errors import AuthenticationError, PermissionDeniedError
from app.core.security import bearer_token_from_header, decode_access_token

import logging

logger = logging.getLogger(__name__)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    token = bearer_token_from_header(request.headers.get("authorization"))

    if not token:
        logger.info("[AUTH] reject reason=missing_bearer path=%s", request.url.path)
        raise AuthenticationError()

    payload = decode_access_token(token)
    if not payload:
        logger.info("[AUTH] reject reason=invalid_token path=%s", request.url.path)
        raise AuthenticationError()

    user_id = payload.get("sub")
    if not user_id:
        logger.info("[AUTH] reject reason=no_subject path=%s", request.url.path)
        raise AuthenticationError()

    user = db.get(User, user_id)

    if not user:
        logger.info("[AUTH] reject reason=user_not_found sub=%s path=%s", user_id, request.url.path)
        raise AuthenticationError("Usuário não encontrado")

    return user


def get_admin(
    user: User = Depends(get_current_user)
) -> User:
    """Dependency to ensure the caller has the admin role."""
    if not user.is_admin:
        raise PermissionDeniedError("Acesso negado. Apenas administradores.")

    return user
