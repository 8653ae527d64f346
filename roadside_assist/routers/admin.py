import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..errors import ValidationError
from ..matching import MatchingService
from ..repository import UserRepository, WorkerAssignmentRepository, WorkshopRepository
from ..security import require_roles

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_only = require_roles("admin")


@router.get("/stats", response_model=schemas.DataResponse[schemas.StatsOut])
def stats(_: models.User = Depends(admin_only), db: Session = Depends(get_db)):
    return {"data": MatchingService(db).stats()}


# ────────────────────────────── USERS ──────────────────────────────

@router.get("/users", response_model=schemas.DataResponse[List[schemas.UserOut]])
def list_users(
    role: Optional[str] = None,
    _: models.User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    return {"data": UserRepository(db).list(role=role or None)}


@router.patch("/users/{user_id}", response_model=schemas.DataResponse[schemas.UserOut])
def update_user(
    user_id: int,
    body: schemas.UserUpdate,
    _: models.User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    patch = body.model_dump(exclude_unset=True, exclude_none=True)
    return {"data": UserRepository(db).update(user_id, patch)}


@router.delete("/users/{user_id}", status_code=204)
def delete_user(user_id: int, admin: models.User = Depends(admin_only), db: Session = Depends(get_db)):
    if user_id == admin.id:
        raise ValidationError("Admins cannot delete their own account")
    UserRepository(db).delete(user_id)
    logging.info("User %s deleted by admin %s", user_id, admin.id)


# ────────────────────────────── WORKSHOPS ──────────────────────────────

@router.post("/workshops", status_code=201, response_model=schemas.DataResponse[schemas.WorkshopOut])
def create_workshop(
    body: schemas.WorkshopCreate,
    _: models.User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    return {"data": WorkshopRepository(db).create(**body.model_dump())}


@router.patch("/workshops/{workshop_id}", response_model=schemas.DataResponse[schemas.WorkshopOut])
def update_workshop(
    workshop_id: int,
    body: schemas.WorkshopUpdate,
    _: models.User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    patch = body.model_dump(exclude_unset=True, exclude_none=True)
    return {"data": WorkshopRepository(db).update(workshop_id, patch)}


@router.delete("/workshops/{workshop_id}", status_code=204)
def delete_workshop(workshop_id: int, admin: models.User = Depends(admin_only), db: Session = Depends(get_db)):
    WorkshopRepository(db).delete(workshop_id)
    logging.info("Workshop %s deleted by admin %s", workshop_id, admin.id)


# ────────────────────────────── ASSIGNMENTS ──────────────────────────────

@router.get("/assignments", response_model=schemas.DataResponse[List[schemas.AssignmentOut]])
def list_assignments(
    user_id: Optional[int] = Query(None, alias="userId"),
    workshop_id: Optional[int] = Query(None, alias="workshopId"),
    active: Optional[bool] = None,
    _: models.User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    found = WorkerAssignmentRepository(db).list(user_id=user_id, workshop_id=workshop_id, active=active)
    return {"data": found}


@router.post("/assignments", status_code=201, response_model=schemas.DataResponse[schemas.AssignmentOut])
def create_assignment(
    body: schemas.AssignmentCreate,
    _: models.User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    worker = UserRepository(db).get(body.user_id)
    if worker.role != "worker":
        raise ValidationError("Only workers can be assigned to workshops")
    WorkshopRepository(db).get(body.workshop_id)
    return {"data": WorkerAssignmentRepository(db).create(**body.model_dump())}


@router.delete("/assignments/{assignment_id}", response_model=schemas.DataResponse[schemas.AssignmentOut])
def end_assignment(
    assignment_id: int,
    _: models.User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    return {"data": WorkerAssignmentRepository(db).end(assignment_id)}
