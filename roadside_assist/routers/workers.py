from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..matching import MatchingService
from ..security import require_roles

router = APIRouter(prefix="/workers", tags=["Workers"])


@router.get("/me/workshop", response_model=schemas.DataResponse[Optional[schemas.WorkshopOut]])
def my_workshop(
    user: models.User = Depends(require_roles("worker", "admin")),
    db: Session = Depends(get_db),
):
    """Primary (or most recently assigned) active workshop of the caller, or null."""
    return {"data": MatchingService(db).worker_workshop(user)}
