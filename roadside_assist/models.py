from sqlalchemy import (
    Column, Integer, String, Boolean, Float, Text, DateTime, ForeignKey, JSON,
    UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from .database import Base

ROLES = ("user", "worker", "admin")
URGENCIES = ("low", "normal", "high")


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(60), nullable=True)
    email = Column(String(120), nullable=True)
    role = Column(String(20), default="user", nullable=False, index=True)  # user / worker / admin
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    service_requests = relationship(
        "ServiceRequest",
        back_populates="user",
        foreign_keys="ServiceRequest.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    assignments = relationship(
        "WorkerAssignment", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


class Workshop(Base):
    __tablename__ = "workshops"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    address = Column(String(255), nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    rating = Column(Float, default=4.2, nullable=False)
    reviews = Column(Integer, default=0, nullable=False)
    is_open = Column(Boolean, default=True, nullable=False, index=True)
    open_time = Column(String(5), default="09:00", nullable=False)
    close_time = Column(String(5), default="21:00", nullable=False)
    services = Column(JSON, default=list, nullable=False)
    image_url = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    assignments = relationship(
        "WorkerAssignment", back_populates="workshop", cascade="all, delete-orphan", passive_deletes=True
    )

    def offers(self, service: str) -> bool:
        return service in (self.services or [])


class WorkerAssignment(Base):
    __tablename__ = "worker_assignments"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    workshop_id = Column(Integer, ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False, index=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False, index=True)
    assigned_at = Column(DateTime, server_default=func.now())
    ended_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="assignments")
    workshop = relationship("Workshop", back_populates="assignments")


class ServiceRequest(Base):
    __tablename__ = "service_requests"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    workshop_id = Column(Integer, ForeignKey("workshops.id", ondelete="SET NULL"), nullable=True, index=True)
    assigned_worker_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    service = Column(String(100), nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)
    vehicle_make = Column(String(50), nullable=True)
    vehicle_model = Column(String(50), nullable=True)
    vehicle_year = Column(String(10), nullable=True)
    registration_number = Column(String(30), nullable=True)
    location_address = Column(String(255), nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    urgency = Column(String(20), default="normal", nullable=False)
    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="service_requests", foreign_keys=[user_id])
    workshop = relationship("Workshop")
    history = relationship(
        "RequestStatusHistory",
        back_populates="request",
        order_by="RequestStatusHistory.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def workshop_name(self):
        return self.workshop.name if self.workshop is not None else None


class RequestStatusHistory(Base):
    __tablename__ = "request_status_history"
    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(
        Integer, ForeignKey("service_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    changed_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    request = relationship("ServiceRequest", back_populates="history")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("request_id", "user_id", name="uniq_review_user_request"),)
    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(Integer, ForeignKey("service_requests.id", ondelete="CASCADE"), nullable=False)
    workshop_id = Column(Integer, ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(150), nullable=False)
    body = Column(Text, nullable=True)
    type = Column(String(30), default="general", server_default="general", nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="notifications")
