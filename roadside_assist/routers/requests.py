from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..lifecycle import RequestLifecycle
from ..matching import MatchingService
from ..security import get_current_user, require_roles

router = APIRouter(prefix="/requests", tags=["Requests"])


@router.get("")
def list_requests(
    user_id: Optional[int] = Query(None, alias="userId"),
    workshop_id: Optional[int] = Query(None, alias="workshopId"),
    status: Optional[str] = None,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, alias="radiusKm", ge=0),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    found = MatchingService(db).search_requests(
        user,
        user_id=user_id,
        workshop_id=workshop_id,
        status=status or None,
        lat=lat,
        lng=lng,
        radius_km=radius_km,
    )
    return {"data": [schemas.with_distance(schemas.RequestOut, r, d) for r, d in found]}


@router.post("", status_code=201, response_model=schemas.DataResponse[schemas.RequestOut])
def create_request(
    req: schemas.RequestCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"data": RequestLifecycle(db).create(req, user)}


@router.get("/{request_id}", response_model=schemas.DataResponse[schemas.RequestOut])
def get_request(
    request_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"data": RequestLifecycle(db).get(request_id, user)}


@router.patch("/{request_id}/status", response_model=schemas.DataResponse[schemas.RequestOut])
def update_status(
    request_id: int,
    body: schemas.StatusUpdate,
    user: models.User = Depends(require_roles("worker", "admin")),
    db: Session = Depends(get_db),
):
    return {"data": RequestLifecycle(db).transition(request_id, body.status, user, notes=body.notes)}


@router.get("/{request_id}/history", response_model=schemas.DataResponse[List[schemas.HistoryOut]])
def get_history(
    request_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"data": RequestLifecycle(db).status_history(request_id, user)}


@router.post("/{request_id}/review", status_code=201, response_model=schemas.DataResponse[schemas.ReviewOut])
def review_request(
    request_id: int,
    body: schemas.ReviewCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"data": RequestLifecycle(db).review(request_id, body, user)}
