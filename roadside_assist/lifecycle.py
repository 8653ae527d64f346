"""Service request lifecycle: creation, status transitions, history and reviews."""

import logging

from sqlalchemy.orm import Session

from . import config, models, schemas
from .database import atomic
from .errors import Conflict, Forbidden, InvalidStatus, InvalidTransition, ValidationError
from .policy import AccessPolicy
from .repository import (
    ReviewRepository,
    ServiceRequestRepository,
    StatusHistoryRepository,
    WorkshopRepository,
)

STATUSES = ("pending", "accepted", "in_progress", "completed", "cancelled")

TRANSITIONS = {
    "pending": {"accepted", "cancelled"},
    "accepted": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

TERMINAL = {status for status, targets in TRANSITIONS.items() if not targets}


def is_allowed(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, ())


class RequestLifecycle:
    def __init__(self, db: Session):
        self.db = db
        self.requests = ServiceRequestRepository(db)
        self.history = StatusHistoryRepository(db)
        self.workshops = WorkshopRepository(db)
        self.reviews = ReviewRepository(db)
        self.policy = AccessPolicy(db)

    def create(self, payload: schemas.RequestCreate, actor: models.User) -> models.ServiceRequest:
        user_id = payload.user_id or actor.id
        self.policy.ensure_owner(actor, user_id)
        if payload.workshop_id is not None:
            self.workshops.get(payload.workshop_id)

        values = payload.model_dump(exclude={"user_id"})
        # callers never choose the initial state
        request = self.requests.create(user_id=user_id, status="pending", **values)
        logging.info("Request %s created by user %s (%s)", request.id, actor.id, request.service)
        return request

    def get(self, request_id: int, actor: models.User) -> models.ServiceRequest:
        request = self.requests.get(request_id)
        self.policy.ensure_view(actor, request)
        return request

    def transition(self, request_id: int, target: str, actor: models.User, notes=None) -> models.ServiceRequest:
        if target not in STATUSES:
            raise InvalidStatus()
        request = self.requests.get(request_id)
        self.policy.ensure_transition(actor, request, target)

        current = request.status
        if current == target:
            return request
        if config.enforce_status_transitions() and not is_allowed(current, target):
            raise InvalidTransition(f"Cannot move request from {current} to {target}")

        extra = {}
        if target == "accepted" and actor.role == "worker" and request.assigned_worker_id is None:
            extra["assigned_worker_id"] = actor.id

        with atomic(self.db):
            if not self.requests.update_status_if(request.id, current, target, **extra):
                logging.warning("Request %s changed underneath %s -> %s", request.id, current, target)
                raise Conflict("Request status changed, reload and retry")
            self.history.append(request.id, current, target, actor_id=actor.id, notes=notes)

        logging.info("Request %s: %s -> %s by user %s", request.id, current, target, actor.id)
        return self.requests.get(request.id)

    def status_history(self, request_id: int, actor: models.User):
        request = self.get(request_id, actor)
        return self.history.for_request(request.id)

    def review(self, request_id: int, payload: schemas.ReviewCreate, actor: models.User) -> models.Review:
        request = self.requests.get(request_id)
        if request.user_id != actor.id:
            raise Forbidden("Only the requester can review")
        if request.status not in TERMINAL:
            raise ValidationError("Request is not finished yet")
        if request.workshop_id is None:
            raise ValidationError("Request is not linked to a workshop")
        if self.reviews.list(request_id=request.id, user_id=actor.id):
            raise Conflict("Review already submitted")
        return self.reviews.create(
            request_id=request.id,
            workshop_id=request.workshop_id,
            user_id=actor.id,
            rating=payload.rating,
            comment=payload.comment,
        )
