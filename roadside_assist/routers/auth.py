# roadside_assist/routers/auth.py

import hmac
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import config, models, schemas
from ..database import get_db
from ..errors import Conflict, Forbidden, Unauthenticated
from ..repository import UserRepository
from ..security import get_current_user, hash_password, token_for, verify_password

router = APIRouter(prefix="/auth", tags=["Auth"])


# ────────────────────────────── HELPERS ──────────────────────────────

def _admin_secret_ok(given) -> bool:
    expected = config.admin_signup_secret()
    if not expected or not given:
        return False
    return hmac.compare_digest(str(given).encode(), expected.encode())


# ────────────────────────────── ENDPOINTS ──────────────────────────────

@router.post("/signup", response_model=schemas.AuthOut)
def signup(req: schemas.SignupIn, db: Session = Depends(get_db)):
    users = UserRepository(db)
    if users.get_by_phone(req.phone):
        raise Conflict("Phone already registered")

    role = req.role or "user"
    if role == "admin" and not _admin_secret_ok(req.admin_secret):
        logging.warning("Rejected admin signup for %s", req.phone)
        raise Forbidden("Admin signup not allowed")

    user = users.create(
        phone=req.phone,
        name=req.name,
        email=req.email,
        role=role,
        password_hash=hash_password(req.password),
    )
    logging.info("New %s account %s", role, user.id)
    return {"token": token_for(user), "user": user}


@router.post("/signin", response_model=schemas.AuthOut)
def signin(req: schemas.SigninIn, db: Session = Depends(get_db)):
    user = UserRepository(db).get_by_phone(req.phone)
    if user is None or not verify_password(req.password, user.password_hash):
        logging.info("Failed signin for %s", req.phone)
        raise Unauthenticated("Invalid credentials")
    if req.role and user.role != req.role:
        raise Forbidden("Role mismatch")
    return {"token": token_for(user), "user": user}


@router.get("/me", response_model=schemas.DataResponse[schemas.UserOut])
def me(user: models.User = Depends(get_current_user)):
    return {"data": user}
