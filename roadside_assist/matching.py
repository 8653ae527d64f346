from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from . import models
from .errors import ValidationError
from .geo import distance_km
from .policy import AccessPolicy
from .repository import (
    ServiceRequestRepository,
    UserRepository,
    WorkerAssignmentRepository,
    WorkshopRepository,
)


def _point(lat, lng):
    if (lat is None) != (lng is None):
        raise ValidationError("lat and lng must be given together")
    return (lat, lng) if lat is not None else None


def _within(items, point, radius_km, coords):
    """Pair each item with its distance from `point`, dropping those outside the radius."""
    out = []
    for item in items:
        lat, lng = coords(item)
        if lat is None or lng is None:
            if radius_km is not None:
                continue
            out.append((item, None))
            continue
        d = distance_km(point[0], point[1], lat, lng)
        if radius_km is not None and d > radius_km:
            continue
        out.append((item, d))
    return out


class MatchingService:
    def __init__(self, db: Session):
        self.workshops = WorkshopRepository(db)
        self.requests = ServiceRequestRepository(db)
        self.assignments = WorkerAssignmentRepository(db)
        self.users = UserRepository(db)
        self.policy = AccessPolicy(db)

    def search_workshops(
        self,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius_km: Optional[float] = None,
        service: Optional[str] = None,
    ) -> List[Tuple[models.Workshop, Optional[float]]]:
        """Workshops offering `service`, nearest first when a point is given.

        The distance is None for every entry when no point was supplied.
        """
        point = _point(lat, lng)
        if radius_km is not None and radius_km < 0:
            raise ValidationError("radiusKm must not be negative")

        found = self.workshops.list()
        if service:
            found = [w for w in found if w.offers(service)]
        if point is None:
            return [(w, None) for w in found]

        ranked = _within(found, point, radius_km, lambda w: (w.lat, w.lng))
        ranked.sort(key=lambda pair: pair[1])
        return ranked

    def search_requests(
        self,
        actor: models.User,
        user_id: Optional[int] = None,
        workshop_id: Optional[int] = None,
        status: Optional[str] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius_km: Optional[float] = None,
    ) -> List[Tuple[models.ServiceRequest, Optional[float]]]:
        point = _point(lat, lng)
        user_id = self.policy.scoped_user_id(actor, user_id)
        found = self.requests.newest_first(user_id=user_id, workshop_id=workshop_id, status=status)
        if point is None:
            return [(r, None) for r in found]
        # keeps newest-first order
        return _within(found, point, radius_km, lambda r: (r.lat, r.lng))

    def worker_workshop(self, actor: models.User) -> Optional[models.Workshop]:
        return self.assignments.primary_workshop_for(actor.id)

    def stats(self) -> dict:
        by_status = self.requests.counts_by_status()
        recent = [
            {
                "id": request.id,
                "service": request.service,
                "status": request.status,
                "created_at": request.created_at,
                "user_phone": phone,
                "workshop_name": workshop_name,
            }
            for request, phone, workshop_name in self.requests.recent(10)
        ]
        return {
            "totals": {
                "users": self.users.count(),
                "workshops": self.workshops.count(),
                "requests": sum(by_status.values()),
            },
            "requests_by_status": by_status,
            "recent_requests": recent,
        }
