"""
Database Schemas for RoomBuddy

Each collection document is described by a Pydantic model. Documents are
stored with camelCase keys (the aliases) while Python code uses the
snake_case attribute names.

Collections:
- user: accounts (ordinary users and administrators)
- hostel: hostel / PG / apartment listings with embedded reviews
- roommate: roommate profiles, at most one per user
"""

from datetime import date, datetime, timezone
from typing import List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

HostelType = Literal["hostel", "pg", "apartment"]
HostelGender = Literal["male", "female", "coed"]
Gender = Literal["male", "female", "other"]
Occupation = Literal["student", "working", "other"]
StayDuration = Literal["less than 3 months", "3-6 months", "6-12 months", "more than 12 months"]
ContactPreference = Literal["email", "phone", "both"]

HOSTEL_TYPES = ["hostel", "pg", "apartment"]
HOSTEL_GENDERS = ["male", "female", "coed"]
GENDERS = ["male", "female", "other"]
OCCUPATIONS = ["student", "working", "other"]
STAY_DURATIONS = ["less than 3 months", "3-6 months", "6-12 months", "more than 12 months"]
CONTACT_PREFERENCES = ["email", "phone", "both"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, arbitrary_types_allowed=True)


# ---------- Embedded parts ----------

class Address(CamelModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class GeoPoint(CamelModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[longitude, latitude]")

    @field_validator("coordinates")
    @classmethod
    def check_range(cls, v: List[float]) -> List[float]:
        lng, lat = v
        if not -180 <= lng <= 180 or not -90 <= lat <= 90:
            raise ValueError("coordinates must be [longitude, latitude] within range")
        return v


class Budget(CamelModel):
    min: float = Field(..., ge=0)
    max: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min > self.max:
            raise ValueError("budget min must not exceed max")
        return self


class PreferredLocation(CamelModel):
    city: str = Field(..., min_length=1)
    areas: List[str] = Field(default_factory=list)


class Lifestyle(CamelModel):
    smoking: bool = False
    drinking: bool = False
    pets: bool = False
    cooking: bool = False
    early_riser: bool = False
    night_owl: bool = False


# ---------- Collection documents ----------

class User(DocumentModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password_hash: str = Field(..., description="BCrypt hash of password")
    is_admin: bool = False
    phone: Optional[str] = None
    bio: Optional[str] = None
    profile_image: Optional[str] = None


class Review(DocumentModel):
    user: ObjectId
    name: str = Field(..., description="Reviewer display name at submission time")
    rating: int = Field(..., ge=1, le=5)
    comment: str
    created_at: datetime = Field(default_factory=_utcnow)


class HostelBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field(..., min_length=1)
    address: Address
    location: GeoPoint
    price: float = Field(0, ge=0)
    images: List[str] = Field(default_factory=list)
    type: HostelType
    gender: HostelGender
    amenities: List[str] = Field(default_factory=list)
    rules: List[str] = Field(default_factory=list)
    vacancies: int = Field(0, ge=0)
    contact_phone: str = Field(..., min_length=1)
    contact_email: EmailStr


class Hostel(HostelBase, DocumentModel):
    owner: ObjectId
    reviews: List[Review] = Field(default_factory=list)
    rating: float = Field(0, ge=0, le=5)
    num_reviews: int = Field(0, ge=0)
    is_verified: bool = False


class RoommateBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=16, le=100)
    gender: Gender
    occupation: Occupation
    budget: Budget
    location: GeoPoint
    preferred_location: PreferredLocation
    stay_duration: StayDuration
    lifestyle: Lifestyle = Field(default_factory=Lifestyle)
    bio: str = Field(..., min_length=1)
    profile_image: Optional[str] = None
    contact_preference: ContactPreference
    phone: Optional[str] = None


class Roommate(RoommateBase, DocumentModel):
    user: ObjectId
    move_in_date: datetime
    is_active: bool = True


# ---------- Requests ----------

class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    profile_image: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)


class HostelCreate(HostelBase):
    pass


class HostelUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, min_length=1)
    address: Optional[Address] = None
    location: Optional[GeoPoint] = None
    price: Optional[float] = Field(None, ge=0)
    images: Optional[List[str]] = None
    type: Optional[HostelType] = None
    gender: Optional[HostelGender] = None
    amenities: Optional[List[str]] = None
    rules: Optional[List[str]] = None
    vacancies: Optional[int] = Field(None, ge=0)
    contact_phone: Optional[str] = Field(None, min_length=1)
    contact_email: Optional[EmailStr] = None


class ReviewCreate(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)


class RoommateCreate(RoommateBase):
    move_in_date: date


class RoommateUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    age: Optional[int] = Field(None, ge=16, le=100)
    gender: Optional[Gender] = None
    occupation: Optional[Occupation] = None
    budget: Optional[Budget] = None
    location: Optional[GeoPoint] = None
    preferred_location: Optional[PreferredLocation] = None
    move_in_date: Optional[date] = None
    stay_duration: Optional[StayDuration] = None
    lifestyle: Optional[Lifestyle] = None
    bio: Optional[str] = Field(None, min_length=1)
    profile_image: Optional[str] = None
    contact_preference: Optional[ContactPreference] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None


def first_error(errors) -> str:
    """Human readable text for the first pydantic error."""
    if not errors:
        return "Invalid request"
    err = errors[0]
    loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
    msg = err.get("msg", "Invalid value")
    return f"{loc}: {msg}" if loc else msg
