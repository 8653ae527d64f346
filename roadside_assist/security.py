from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from . import config, models
from .database import get_db
from .errors import Forbidden, Unauthenticated

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def create_jwt(data: dict, expires_minutes: Optional[int] = None) -> str:
    to_encode = data.copy()
    minutes = expires_minutes if expires_minutes is not None else config.token_expire_minutes()
    expire = datetime.utcnow() + timedelta(minutes=minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.secret_key(), algorithm=config.algorithm())


def token_for(user: models.User) -> str:
    return create_jwt({"sub": str(user.id), "role": user.role})


def decode_jwt(token: str) -> dict:
    try:
        payload = jwt.decode(token, config.secret_key(), algorithms=[config.algorithm()])
    except JWTError:
        raise Unauthenticated()
    if payload.get("sub") is None:
        raise Unauthenticated()
    return payload


# ────────────────────────────── DEPENDENCIES ──────────────────────────────

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    payload = decode_jwt(credentials.credentials)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise Unauthenticated()
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if user is None:
        raise Unauthenticated()
    return user


def require_roles(*roles):
    def checker(user: models.User = Depends(get_current_user)) -> models.User:
        if user.role not in roles:
            raise Forbidden()
        return user

    return checker
