from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models
from .database import atomic
from .errors import NotFound


class Repository:
    """CRUD over one table, bound to the session it was constructed with."""

    model = None
    filterable = ()
    label = "Record"

    def __init__(self, db: Session):
        self.db = db

    def query(self):
        return self.db.query(self.model)

    def create(self, **values):
        obj = self.model(**values)
        with atomic(self.db):
            self.db.add(obj)
            self.db.flush()
        return obj

    def find(self, obj_id: int):
        return self.query().filter(self.model.id == obj_id).first()

    def get(self, obj_id: int):
        obj = self.find(obj_id)
        if obj is None:
            raise NotFound(f"{self.label} not found")
        return obj

    def list(self, order_by=None, **filters):
        q = self.query()
        for column, value in filters.items():
            if column not in self.filterable:
                raise ValueError(f"cannot filter {self.model.__tablename__} on {column!r}")
            if value is not None:
                q = q.filter(getattr(self.model, column) == value)
        if order_by is not None:
            q = q.order_by(*order_by)
        else:
            q = q.order_by(self.model.id)
        return q.all()

    def update(self, obj_id: int, patch: dict):
        obj = self.get(obj_id)
        with atomic(self.db):
            for column, value in patch.items():
                setattr(obj, column, value)
            self.db.flush()
        return obj

    def delete(self, obj_id: int):
        obj = self.get(obj_id)
        with atomic(self.db):
            self.db.delete(obj)

    def count(self) -> int:
        return self.db.query(func.count(self.model.id)).scalar() or 0


class UserRepository(Repository):
    model = models.User
    filterable = ("role",)
    label = "User"

    def get_by_phone(self, phone: str) -> Optional[models.User]:
        return self.query().filter(models.User.phone == phone).first()


class WorkshopRepository(Repository):
    model = models.Workshop
    filterable = ("is_open",)
    label = "Workshop"


class WorkerAssignmentRepository(Repository):
    model = models.WorkerAssignment
    filterable = ("user_id", "workshop_id", "active")
    label = "Assignment"

    def active_for(self, user_id: int, workshop_id: int) -> Optional[models.WorkerAssignment]:
        return (
            self.query()
            .filter(
                models.WorkerAssignment.user_id == user_id,
                models.WorkerAssignment.workshop_id == workshop_id,
                models.WorkerAssignment.active.is_(True),
            )
            .first()
        )

    def primary_workshop_for(self, user_id: int) -> Optional[models.Workshop]:
        assignment = (
            self.query()
            .filter(models.WorkerAssignment.user_id == user_id, models.WorkerAssignment.active.is_(True))
            .order_by(
                models.WorkerAssignment.is_primary.desc(),
                models.WorkerAssignment.assigned_at.desc(),
                models.WorkerAssignment.id.desc(),
            )
            .first()
        )
        return assignment.workshop if assignment else None

    def end(self, assignment_id: int) -> models.WorkerAssignment:
        assignment = self.get(assignment_id)
        if assignment.active:
            with atomic(self.db):
                assignment.active = False
                assignment.ended_at = datetime.utcnow()
        return assignment


class ServiceRequestRepository(Repository):
    model = models.ServiceRequest
    filterable = ("user_id", "workshop_id", "status")
    label = "Request"

    def newest_first(self, **filters):
        return self.list(
            order_by=(models.ServiceRequest.created_at.desc(), models.ServiceRequest.id.desc()),
            **filters,
        )

    def update_status_if(self, request_id: int, expected: str, status: str, **extra) -> bool:
        """Set the status only if it is still `expected`. Returns False when another writer got there first."""
        values = {"status": status, "updated_at": func.now()}
        values.update(extra)
        with atomic(self.db):
            updated = (
                self.query()
                .filter(models.ServiceRequest.id == request_id, models.ServiceRequest.status == expected)
                .update(values, synchronize_session=False)
            )
        return updated == 1

    def counts_by_status(self) -> dict:
        rows = (
            self.db.query(models.ServiceRequest.status, func.count(models.ServiceRequest.id))
            .group_by(models.ServiceRequest.status)
            .all()
        )
        return {status: int(cnt) for status, cnt in rows}

    def recent(self, limit: int = 10):
        return (
            self.db.query(models.ServiceRequest, models.User.phone, models.Workshop.name)
            .outerjoin(models.User, models.User.id == models.ServiceRequest.user_id)
            .outerjoin(models.Workshop, models.Workshop.id == models.ServiceRequest.workshop_id)
            .order_by(models.ServiceRequest.created_at.desc(), models.ServiceRequest.id.desc())
            .limit(limit)
            .all()
        )


class StatusHistoryRepository(Repository):
    model = models.RequestStatusHistory
    filterable = ("request_id",)
    label = "History entry"

    def append(self, request_id: int, from_status, to_status: str, actor_id=None, notes=None):
        return self.create(
            request_id=request_id,
            from_status=from_status,
            to_status=to_status,
            changed_by_user_id=actor_id,
            notes=notes,
        )

    def for_request(self, request_id: int):
        return self.list(request_id=request_id)

    def update(self, obj_id, patch):
        raise TypeError("status history is append-only")

    def delete(self, obj_id):
        raise TypeError("status history is append-only")


class ReviewRepository(Repository):
    model = models.Review
    filterable = ("request_id", "workshop_id", "user_id")
    label = "Review"


class NotificationRepository(Repository):
    model = models.Notification
    filterable = ("user_id", "is_read")
    label = "Notification"

    def for_user(self, user_id=None):
        return self.list(
            order_by=(models.Notification.created_at.desc(), models.Notification.id.desc()),
            user_id=user_id,
        )

    def mark_read(self, notification: models.Notification) -> models.Notification:
        if not notification.is_read:
            with atomic(self.db):
                notification.is_read = True
                notification.read_at = datetime.utcnow()
        return notification
