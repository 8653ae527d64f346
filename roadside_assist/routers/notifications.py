from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from .. import config, models, notify, schemas
from ..database import get_db
from ..policy import AccessPolicy
from ..repository import NotificationRepository, UserRepository
from ..security import get_current_user, require_roles

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=schemas.DataResponse[List[schemas.NotificationOut]])
def list_notifications(
    user_id: Optional[int] = Query(None, alias="userId"),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user.role != "admin":
        user_id = user.id
    return {"data": NotificationRepository(db).for_user(user_id)}


@router.post("", status_code=201, response_model=schemas.DataResponse[schemas.NotificationOut])
def create_notification(
    body: schemas.NotificationCreate,
    background_tasks: BackgroundTasks,
    _: models.User = Depends(require_roles("admin")),
    db: Session = Depends(get_db),
):
    recipient = UserRepository(db).get(body.user_id)
    notification = NotificationRepository(db).create(
        user_id=recipient.id, title=body.title, body=body.body, type=body.type
    )
    if config.notify_via_sms() and recipient.phone:
        background_tasks.add_task(notify.send_sms, recipient.phone, notify.notification_text(body.title, body.body))
    return {"data": notification}


@router.post("/{notification_id}/read", response_model=schemas.DataResponse[schemas.NotificationOut])
def mark_read(
    notification_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notifications = NotificationRepository(db)
    notification = notifications.get(notification_id)
    AccessPolicy(db).ensure_view(user, notification)
    return {"data": notifications.mark_read(notification)}
