from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import ClubJoinStatus
from .time_utils import to_naive_utc


def _strip_non_empty(value) -> str:
    cleaned = value.strip() if isinstance(value, str) else ""
    if not cleaned:
        raise ValueError("must not be empty")
    return cleaned


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=8)

    @field_validator("name", "email")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _strip_non_empty(value)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str):
        if "@" not in value:
            raise ValueError("email must contain @")
        return value.lower()


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class CityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class ClubCreate(BaseModel):
    title: str
    description: str
    max_people: int = Field(ge=1)
    member_ids: list[int] = Field(min_length=1)

    @field_validator("title", "description")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _strip_non_empty(value)


class ClubUpdate(BaseModel):
    """Partial update. A field sent as ``null`` is different from a field left out."""

    title: Optional[str] = None
    description: Optional[str] = None
    leader_id: Optional[int] = None
    max_people: Optional[int] = Field(default=None, ge=1)

    @field_validator("title", "description")
    @classmethod
    def must_not_be_empty(cls, value: Optional[str]):
        # null is left for the service to reject
        return _strip_non_empty(value) if value is not None else None


class ClubMemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    status: ClubJoinStatus


class ClubOut(BaseModel):
    id: int
    title: str
    description: str
    leader_id: int
    max_people: int
    members: list[ClubMemberOut]


class ApplicantDecision(str, Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


class HandleApplicantRequest(BaseModel):
    decision: ApplicantDecision


class EventCreate(BaseModel):
    title: str
    description: str
    category_id: int
    city_ids: list[int] = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    max_people: int = Field(ge=1)
    club_id: Optional[int] = None

    @field_validator("title", "description")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _strip_non_empty(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_time(cls, value: datetime):
        return to_naive_utc(value)


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    city_ids: Optional[list[int]] = Field(default=None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    max_people: Optional[int] = Field(default=None, ge=1)

    @field_validator("title", "description")
    @classmethod
    def must_not_be_empty(cls, value: Optional[str]):
        return _strip_non_empty(value) if value is not None else None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_time(cls, value: Optional[datetime]):
        return to_naive_utc(value) if value is not None else None


class EventListQuery(BaseModel):
    category_id: Optional[int] = None
    city_id: Optional[int] = None
    host_id: Optional[int] = None
    club_id: Optional[int] = None


class EventOut(BaseModel):
    id: int
    title: str
    description: str
    host_id: int
    category_id: int
    city_ids: list[int]
    start_time: datetime
    end_time: datetime
    max_people: int
    club_id: Optional[int] = None
    archived: bool = False


class ReviewCreate(BaseModel):
    event_id: int
    score: int = Field(ge=1, le=5)
    title: str
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _strip_non_empty(value)


class ReviewPut(BaseModel):
    score: int = Field(ge=1, le=5)
    title: str
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _strip_non_empty(value)


class ReviewPatch(BaseModel):
    score: Optional[int] = Field(default=None, ge=1, le=5)
    title: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def must_not_be_empty(cls, value: Optional[str]):
        return _strip_non_empty(value) if value is not None else None


class ReviewListQuery(BaseModel):
    event_id: Optional[int] = None
    user_id: Optional[int] = None


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    event_id: int
    score: int
    title: str
    description: Optional[str] = None
