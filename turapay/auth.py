"""
Bearer-token authentication.

Tokens are issued by the identity provider and stored on the profile; this
module only resolves `Authorization: Bearer <token>` to a Profile.
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from turapay import models
from turapay.database import get_db
from turapay.errors import Forbidden, Unauthorized


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_optional_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Optional[models.Profile]:
    token = _bearer_token(authorization)
    if token is None:
        return None
    return db.query(models.Profile).filter(models.Profile.access_token == token).first()


def get_current_user(user: Optional[models.Profile] = Depends(get_optional_user)) -> models.Profile:
    if user is None:
        raise Unauthorized()
    return user


def require_admin(user: models.Profile = Depends(get_current_user)) -> models.Profile:
    if not user.is_admin:
        raise Forbidden()
    return user
