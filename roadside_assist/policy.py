"""Role- and assignment-based access rules.

The policy only reads; it never changes state. Every mutating operation asks
it before touching the repositories.
"""

from sqlalchemy.orm import Session

from . import models
from .errors import Forbidden
from .repository import WorkerAssignmentRepository

STAFF_ROLES = ("worker", "admin")


class AccessPolicy:
    def __init__(self, db: Session):
        self.assignments = WorkerAssignmentRepository(db)

    # ── status transitions ──

    def can_transition(self, actor: models.User, request: models.ServiceRequest, target_status: str) -> bool:
        if actor.role == "admin":
            return True
        if actor.role != "worker":
            return False
        if request.workshop_id is None:
            return False
        return self.assignments.active_for(actor.id, request.workshop_id) is not None

    def ensure_transition(self, actor, request, target_status):
        if actor.role not in STAFF_ROLES:
            raise Forbidden()
        if actor.role == "worker" and request.workshop_id is None:
            raise Forbidden("Request not linked to any workshop")
        if not self.can_transition(actor, request, target_status):
            raise Forbidden()

    # ── visibility ──

    def can_view(self, actor: models.User, entity) -> bool:
        if actor.role == "admin":
            return True
        if isinstance(entity, models.ServiceRequest):
            return actor.role == "worker" or entity.user_id == actor.id
        if isinstance(entity, (models.Notification, models.Review)):
            return entity.user_id == actor.id
        if isinstance(entity, models.User):
            return entity.id == actor.id
        if isinstance(entity, models.Workshop):
            return True
        return False

    def ensure_view(self, actor, entity):
        if not self.can_view(actor, entity):
            raise Forbidden()

    def ensure_owner(self, actor, user_id):
        """Users act only on their own records; staff may act for anyone."""
        if actor.role == "user" and user_id != actor.id:
            raise Forbidden()

    def ensure_admin(self, actor):
        if actor.role != "admin":
            raise Forbidden()

    def scoped_user_id(self, actor, requested_user_id=None):
        """The user filter a listing must use for this actor."""
        if actor.role == "user":
            return actor.id
        return requested_user_id
