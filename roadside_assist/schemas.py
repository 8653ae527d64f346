from datetime import datetime
from typing import Annotated, Generic, List, Literal, Optional, TypeVar

from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

Role = Literal["user", "worker", "admin"]
Urgency = Literal["low", "normal", "high"]

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"

EMAIL_MAX = 120


def _email_length(v: str) -> str:
    if len(v) > EMAIL_MAX:
        raise ValueError(f"email must be at most {EMAIL_MAX} characters")
    return v


Email = Annotated[EmailStr, AfterValidator(_email_length)]


class CamelModel(BaseModel):
    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel


def _blank_to_none(v):
    if isinstance(v, str) and v.strip() == "":
        return None
    return v


class DataResponse(BaseModel, Generic[T]):
    data: T


# ────────────────────────────── AUTH ──────────────────────────────

class SignupIn(CamelModel):
    phone: str = Field(..., min_length=8, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=60)
    email: Optional[Email] = None
    password: str = Field(..., min_length=6, max_length=100)
    role: Optional[Role] = None
    admin_secret: Optional[str] = None


class SigninIn(CamelModel):
    phone: str = Field(..., min_length=8, max_length=20)
    password: str = Field(..., min_length=6, max_length=100)
    role: Optional[Role] = None


class UserOut(CamelModel):
    id: int
    phone: str
    name: Optional[str]
    email: Optional[str]
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthOut(BaseModel):
    token: str
    user: UserOut


class UserUpdate(CamelModel):
    phone: Optional[str] = Field(None, min_length=8, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=60)
    email: Optional[Email] = None


# ────────────────────────────── WORKSHOPS ──────────────────────────────

class WorkshopOut(CamelModel):
    id: int
    name: str
    address: str
    lat: float
    lng: float
    rating: Optional[float]
    reviews: int
    is_open: bool
    open_time: str
    close_time: str
    services: List[str]
    image_url: Optional[str] = None

    @field_validator("rating")
    @classmethod
    def one_decimal(cls, v):
        return round(v, 1) if v is not None else v

    @field_validator("services", mode="before")
    @classmethod
    def services_list(cls, v):
        return list(v or [])


def _unique_services(v):
    if v is None:
        return v
    seen = []
    for name in v:
        if name not in seen:
            seen.append(name)
    return seen


class WorkshopCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    address: str = Field(..., min_length=1, max_length=255)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    rating: float = Field(4.2, ge=0, le=5)
    reviews: int = Field(0, ge=0)
    is_open: bool = True
    open_time: str = Field("09:00", pattern=HHMM)
    close_time: str = Field("21:00", pattern=HHMM)
    services: List[str] = Field(default_factory=list)
    image_url: Optional[str] = Field(None, max_length=255)

    @field_validator("services")
    @classmethod
    def dedupe_services(cls, v):
        return _unique_services(v)


class WorkshopUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    rating: Optional[float] = Field(None, ge=0, le=5)
    reviews: Optional[int] = Field(None, ge=0)
    is_open: Optional[bool] = None
    open_time: Optional[str] = Field(None, pattern=HHMM)
    close_time: Optional[str] = Field(None, pattern=HHMM)
    services: Optional[List[str]] = None
    image_url: Optional[str] = Field(None, max_length=255)

    @field_validator("services")
    @classmethod
    def dedupe_services(cls, v):
        return _unique_services(v)


# ────────────────────────────── ASSIGNMENTS ──────────────────────────────

class AssignmentCreate(CamelModel):
    user_id: int = Field(..., gt=0)
    workshop_id: int = Field(..., gt=0)
    is_primary: bool = False


class AssignmentOut(CamelModel):
    id: int
    user_id: int
    workshop_id: int
    is_primary: bool
    active: bool
    assigned_at: Optional[datetime]
    ended_at: Optional[datetime]


# ────────────────────────────── REQUESTS ──────────────────────────────

class RequestCreate(CamelModel):
    user_id: Optional[int] = Field(None, gt=0)
    workshop_id: Optional[int] = Field(None, gt=0)
    service: str = Field(..., min_length=2, max_length=100)
    vehicle_make: Optional[str] = Field(None, max_length=50)
    vehicle_model: Optional[str] = Field(None, max_length=50)
    vehicle_year: Optional[str] = Field(None, max_length=10)
    registration_number: Optional[str] = Field(None, max_length=30)
    location_address: Optional[str] = Field(None, max_length=255)
    lat: Optional[float] = Field(None, ge=-90, le=90, allow_inf_nan=False)
    lng: Optional[float] = Field(None, ge=-180, le=180, allow_inf_nan=False)
    notes: Optional[str] = None
    urgency: Urgency = "normal"

    @field_validator("user_id", "workshop_id", "lat", "lng", mode="before")
    @classmethod
    def empty_number(cls, v):
        return _blank_to_none(v)

    @field_validator("vehicle_make", "vehicle_model", "vehicle_year", "registration_number", mode="before")
    @classmethod
    def text_field(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("urgency", mode="before")
    @classmethod
    def default_urgency(cls, v):
        return _blank_to_none(v) or "normal"


class StatusUpdate(CamelModel):
    status: str
    notes: Optional[str] = None


class RequestOut(CamelModel):
    id: int
    user_id: int
    workshop_id: Optional[int]
    workshop_name: Optional[str]
    assigned_worker_id: Optional[int]
    service: str
    status: str
    vehicle_make: Optional[str]
    vehicle_model: Optional[str]
    vehicle_year: Optional[str]
    registration_number: Optional[str]
    location_address: Optional[str]
    lat: Optional[float]
    lng: Optional[float]
    notes: Optional[str]
    urgency: str = "normal"
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class HistoryOut(CamelModel):
    id: int
    request_id: int
    from_status: Optional[str]
    to_status: str
    changed_by_user_id: Optional[int]
    notes: Optional[str]
    created_at: Optional[datetime]


class ReviewCreate(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class ReviewOut(CamelModel):
    id: int
    request_id: int
    workshop_id: int
    user_id: int
    rating: int
    comment: Optional[str]
    created_at: Optional[datetime]


# ────────────────────────────── NOTIFICATIONS ──────────────────────────────

class NotificationCreate(CamelModel):
    user_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=150)
    body: Optional[str] = None
    type: str = Field("general", min_length=1, max_length=30)


class NotificationOut(CamelModel):
    id: int
    user_id: int
    title: str
    body: Optional[str]
    type: str
    is_read: bool
    read_at: Optional[datetime]
    created_at: Optional[datetime]


# ────────────────────────────── ADMIN ──────────────────────────────

class RecentRequest(CamelModel):
    id: int
    service: str
    status: str
    created_at: Optional[datetime]
    user_phone: Optional[str]
    workshop_name: Optional[str]


class Totals(CamelModel):
    users: int
    workshops: int
    requests: int


class StatsOut(CamelModel):
    totals: Totals
    requests_by_status: dict
    recent_requests: List[RecentRequest]


def with_distance(schema, obj, distance=None) -> dict:
    """Serialise `obj`, adding `distanceKm` only when a distance was computed."""
    item = schema.model_validate(obj).model_dump(by_alias=True)
    if distance is not None:
        item["distanceKm"] = round(distance, 2)
    return item
