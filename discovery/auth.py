"""
Bearer token validation
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from pydantic import BaseModel, ConfigDict

from discovery.config import Settings, settings as default_settings
from discovery.errors import (
    ERROR_AUTH_INVALID_OR_EXPIRED_TOKEN, ERROR_AUTH_MISSING_TOKEN,
    ERROR_AUTH_SUBJECT_MISSING, AuthError,
)

logger = logging.getLogger(__name__)


class Claims(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject: str
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def validate_token(token: Optional[str], config: Optional[Settings] = None) -> Claims:
    """Decode and verify an HS256 token; the subject is the requester's profile id"""
    cfg = config or default_settings
    if not token:
        raise AuthError(ERROR_AUTH_MISSING_TOKEN, message="Missing bearer token")

    try:
        payload: Dict[str, Any] = jwt.decode(token, cfg.jwt_secret, algorithms=[cfg.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthError(ERROR_AUTH_INVALID_OR_EXPIRED_TOKEN, message="Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise AuthError(ERROR_AUTH_INVALID_OR_EXPIRED_TOKEN, message="Invalid token")

    subject = payload.get("sub")
    if not subject:
        raise AuthError(ERROR_AUTH_SUBJECT_MISSING, message="Token has no subject")

    return Claims(
        subject=str(subject),
        issued_at=_timestamp(payload.get("iat")),
        expires_at=_timestamp(payload.get("exp")),
    )


def issue_token(subject: str, config: Optional[Settings] = None,
                expires_in: timedelta = timedelta(hours=24)) -> str:
    cfg = config or default_settings
    now = datetime.now(timezone.utc)
    payload = {"sub": subject, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, cfg.jwt_secret, algorithm=cfg.jwt_algorithm)
