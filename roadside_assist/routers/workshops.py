from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..matching import MatchingService
from ..repository import WorkshopRepository

router = APIRouter(prefix="/workshops", tags=["Workshops"])


@router.get("")
def list_workshops(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, alias="radiusKm", ge=0),
    service: Optional[str] = None,
    db: Session = Depends(get_db),
):
    found = MatchingService(db).search_workshops(lat=lat, lng=lng, radius_km=radius_km, service=service)
    return {"data": [schemas.with_distance(schemas.WorkshopOut, w, d) for w, d in found]}


@router.get("/{workshop_id}", response_model=schemas.DataResponse[schemas.WorkshopOut])
def get_workshop(workshop_id: int, db: Session = Depends(get_db)):
    return {"data": WorkshopRepository(db).get(workshop_id)}
