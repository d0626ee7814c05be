"""
Search parameter translation for hostel and roommate listings.

Query-string parameters are validated into filter models and turned into
MongoDB query documents. All predicates are AND-combined; a keyword adds an
OR of two substring matches.
"""

import math
import re
from datetime import date, datetime, time
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from fastapi import HTTPException, Request
from pydantic import Field, ValidationError, field_validator
from pymongo import DESCENDING
from pymongo.collection import Collection

from schemas import CamelModel, Gender, HostelGender, HostelType, Occupation, StayDuration, first_error

PAGE_SIZE = 10
EARTH_RADIUS_METERS = 6378100.0
MAX_PAGE = 100000
MAX_COUNT = 1000000

F = TypeVar("F", bound="SearchFilters")


class SearchFilters(CamelModel):
    keyword: Optional[str] = None
    city: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    max_distance: Optional[float] = Field(None, ge=0, description="Radius in kilometers")
    page_number: int = Field(1, le=MAX_PAGE)

    @field_validator("*", mode="before")
    @classmethod
    def blank_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("page_number", mode="before")
    @classmethod
    def clamp_page(cls, v):
        try:
            return max(int(v), 1)
        except (TypeError, ValueError):
            return 1


class HostelFilters(SearchFilters):
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    type: Optional[HostelType] = None
    gender: Optional[HostelGender] = None
    amenities: Optional[str] = Field(None, description="Comma separated, all must be present")
    vacancies: Optional[int] = Field(None, ge=0, le=MAX_COUNT)


class RoommateFilters(SearchFilters):
    min_age: Optional[int] = Field(None, ge=0, le=150)
    max_age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[Gender] = None
    occupation: Optional[Occupation] = None
    min_budget: Optional[float] = None
    max_budget: Optional[float] = None
    areas: Optional[str] = Field(None, description="Comma separated, any may match")
    move_in_date: Optional[date] = None
    stay_duration: Optional[StayDuration] = None
    smoking: Optional[bool] = None
    drinking: Optional[bool] = None
    pets: Optional[bool] = None
    early_riser: Optional[bool] = None
    night_owl: Optional[bool] = None


def parse_filters(model: Type[F], params: Mapping[str, Any]) -> F:
    try:
        return model.model_validate(dict(params))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=first_error(e.errors()))


def hostel_filters(request: Request) -> HostelFilters:
    return parse_filters(HostelFilters, request.query_params)


def roommate_filters(request: Request) -> RoommateFilters:
    return parse_filters(RoommateFilters, request.query_params)


def split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def contains(text: str) -> Dict[str, str]:
    return {"$regex": re.escape(text.strip()), "$options": "i"}


def value_range(low: Optional[float], high: Optional[float]) -> Dict[str, float]:
    bounds: Dict[str, float] = {}
    if low is not None:
        bounds["$gte"] = low
    if high is not None:
        bounds["$lte"] = high
    return bounds


def within_radius(lat: float, lng: float, km: float) -> Dict[str, Any]:
    meters = km * 1000
    return {"$geoWithin": {"$centerSphere": [[lng, lat], meters / EARTH_RADIUS_METERS]}}


def _common(f: SearchFilters, query: Dict[str, Any], text_fields: Tuple[str, str]) -> None:
    if f.keyword:
        query["$or"] = [{field: contains(f.keyword)} for field in text_fields]
    if f.lat is not None and f.lng is not None and f.max_distance is not None:
        query["location"] = within_radius(f.lat, f.lng, f.max_distance)


def build_hostel_query(f: HostelFilters) -> Dict[str, Any]:
    query: Dict[str, Any] = {}

    price = value_range(f.min_price, f.max_price)
    if price:
        query["price"] = price
    if f.type:
        query["type"] = f.type
    if f.gender:
        query["gender"] = f.gender
    if f.city:
        query["address.city"] = contains(f.city)
    amenities = split_list(f.amenities)
    if amenities:
        query["amenities"] = {"$all": amenities}
    if f.vacancies is not None:
        query["vacancies"] = {"$gte": f.vacancies}

    _common(f, query, ("name", "description"))
    return query


def build_roommate_query(f: RoommateFilters) -> Dict[str, Any]:
    query: Dict[str, Any] = {"isActive": True}

    age = value_range(f.min_age, f.max_age)
    if age:
        query["age"] = age
    if f.gender:
        query["gender"] = f.gender
    if f.occupation:
        query["occupation"] = f.occupation

    # overlap of [budget.min, budget.max] with the requested window
    if f.min_budget is not None:
        query["budget.max"] = {"$gte": f.min_budget}
    if f.max_budget is not None:
        query["budget.min"] = {"$lte": f.max_budget}

    if f.city:
        query["preferredLocation.city"] = contains(f.city)
    areas = split_list(f.areas)
    if areas:
        query["preferredLocation.areas"] = {"$in": areas}
    if f.move_in_date is not None:
        query["moveInDate"] = {"$lte": datetime.combine(f.move_in_date, time.min)}
    if f.stay_duration:
        query["stayDuration"] = f.stay_duration

    for attr, key in (
        ("smoking", "smoking"),
        ("drinking", "drinking"),
        ("pets", "pets"),
        ("early_riser", "earlyRiser"),
        ("night_owl", "nightOwl"),
    ):
        flag = getattr(f, attr)
        if flag is not None:
            query[f"lifestyle.{key}"] = flag

    _common(f, query, ("name", "bio"))
    return query


def search(collection: Collection, query: Dict[str, Any], page: int) -> Tuple[List[Dict], int]:
    total = collection.count_documents(query)
    cursor = (
        collection.find(query)
        .sort("createdAt", DESCENDING)
        .skip(PAGE_SIZE * (page - 1))
        .limit(PAGE_SIZE)
    )
    return list(cursor), total


def page_count(total: int) -> int:
    return math.ceil(total / PAGE_SIZE)
