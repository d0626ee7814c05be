"""
Server-rendered client pages.

The pages reuse the same search and store functions as the JSON API. The
session is the API token kept in an HTTP-only cookie.
"""

import logging
import os
from typing import Dict, List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from pymongo.database import Database

from config import Settings, get_settings
from database import HOSTELS, ROOMMATES, get_db, to_public
from filters import HostelFilters, RoommateFilters, parse_filters, split_list
from hostels import add_review, create_hostel, hostel_detail, search_hostels
from roommates import create_roommate, roommate_detail, search_roommates
from schemas import (
    CONTACT_PREFERENCES,
    GENDERS,
    HOSTEL_GENDERS,
    HOSTEL_TYPES,
    OCCUPATIONS,
    STAY_DURATIONS,
    HostelCreate,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    ReviewCreate,
    RoommateCreate,
    first_error,
)
from security import SESSION_COOKIE, create_access_token, get_optional_user
from users import authenticate, register_user, update_profile

logger = logging.getLogger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
templates = Jinja2Templates(directory=TEMPLATE_DIR)

router = APIRouter(include_in_schema=False)

AMENITIES = [
    "WiFi", "AC", "Parking", "Laundry", "TV", "Kitchen", "Hot Water",
    "Security", "Gym", "Study Room", "Power Backup",
]
LIFESTYLE_LABELS = {
    "smoking": "Smoking",
    "drinking": "Drinking",
    "pets": "Pets",
    "cooking": "Cooking",
    "earlyRiser": "Early riser",
    "nightOwl": "Night owl",
}


def render(request: Request, name: str, user: Optional[Dict], status_code: int = 200, **context):
    context.update(
        user=user,
        notice=request.query_params.get("notice"),
        error=context.get("error") or request.query_params.get("error"),
    )
    return templates.TemplateResponse(request, name, context, status_code=status_code)


def redirect(path: str, **params) -> RedirectResponse:
    url = f"{path}?{urlencode(params)}" if params else path
    return RedirectResponse(url, status_code=303)


def login_redirect(next_path: str) -> RedirectResponse:
    return redirect("/login", next=next_path, error="Please login to continue")


def start_session(response: RedirectResponse, user: Dict, settings: Settings) -> RedirectResponse:
    token = create_access_token(user["_id"], settings)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.token_expire_days * 24 * 3600,
        httponly=True,
        samesite="lax",
    )
    return response


def safe_next(next_path: Optional[str]) -> str:
    if next_path and next_path.startswith("/") and not next_path.startswith("//"):
        return next_path
    return "/"


def page_links(request: Request, page: int, pages: int) -> List[Dict]:
    return [
        {"number": n, "url": str(request.url.include_query_params(pageNumber=n)), "current": n == page}
        for n in range(1, pages + 1)
    ]


# ---------- Home ----------

@router.get("/")
def home(request: Request, db: Database = Depends(get_db), user=Depends(get_optional_user)):
    hostels = search_hostels(db, HostelFilters())["hostels"][:3]
    roommates = search_roommates(db, RoommateFilters())["roommates"][:3]
    return render(request, "home.html", user, hostels=hostels, roommates=roommates)


# ---------- Hostels ----------

@router.get("/hostels")
def hostel_search_page(request: Request, db: Database = Depends(get_db), user=Depends(get_optional_user)):
    params = dict(request.query_params)
    selected = request.query_params.getlist("amenity")
    if selected:
        params["amenities"] = ",".join(selected)
    try:
        filters = parse_filters(HostelFilters, params)
    except HTTPException as e:
        filters, error = HostelFilters(), e.detail
    else:
        error = None
    result = search_hostels(db, filters)
    return render(
        request,
        "hostels.html",
        user,
        error=error,
        result=result,
        filters=params,
        selected_amenities=split_list(params.get("amenities")),
        amenities=AMENITIES,
        types=HOSTEL_TYPES,
        genders=HOSTEL_GENDERS,
        pagination=page_links(request, result["page"], result["pages"]),
    )


@router.get("/hostels/{hostel_id}")
def hostel_page(hostel_id: str, request: Request, db: Database = Depends(get_db), user=Depends(get_optional_user)):
    try:
        hostel = hostel_detail(db, hostel_id)
    except HTTPException as e:
        return render(request, "error.html", user, status_code=e.status_code, message=e.detail)
    reviewed = bool(user) and any(r.get("user") == str(user["_id"]) for r in hostel.get("reviews", []))
    return render(request, "hostel_detail.html", user, hostel=hostel, already_reviewed=reviewed)


@router.post("/hostels/{hostel_id}/reviews")
def hostel_review_form(
    hostel_id: str,
    rating: str = Form(""),
    comment: str = Form(""),
    db: Database = Depends(get_db),
    user=Depends(get_optional_user),
):
    back = f"/hostels/{hostel_id}"
    if not user:
        return login_redirect(back)
    try:
        payload = ReviewCreate(rating=rating, comment=comment)
        add_review(db, hostel_id, user, payload)
    except ValidationError as e:
        return redirect(back, error=first_error(e.errors()))
    except HTTPException as e:
        return redirect(back, error=e.detail)
    return redirect(back, notice="Review added")


@router.get("/register-hostel")
def register_hostel_page(request: Request, user=Depends(get_optional_user)):
    if not user:
        return login_redirect("/register-hostel")
    return render(request, "register_hostel.html", user, form={}, amenities=AMENITIES, types=HOSTEL_TYPES, genders=HOSTEL_GENDERS)


def hostel_from_form(form) -> HostelCreate:
    return HostelCreate.model_validate({
        "name": form.get("name", ""),
        "description": form.get("description", ""),
        "address": {
            "street": form.get("street", ""),
            "city": form.get("city", ""),
            "state": form.get("state", ""),
            "zipCode": form.get("zipCode", ""),
            "country": form.get("country", ""),
        },
        "location": {"type": "Point", "coordinates": [form.get("lng") or None, form.get("lat") or None]},
        "price": form.get("price") or 0,
        "images": split_list(form.get("images")),
        "type": form.get("type", ""),
        "gender": form.get("gender", ""),
        "amenities": form.getlist("amenity"),
        "rules": [r.strip() for r in form.get("rules", "").splitlines() if r.strip()],
        "vacancies": form.get("vacancies") or 0,
        "contactPhone": form.get("contactPhone", ""),
        "contactEmail": form.get("contactEmail", ""),
    })


@router.post("/register-hostel")
async def register_hostel_submit(request: Request, db: Database = Depends(get_db), user=Depends(get_optional_user)):
    if not user:
        return login_redirect("/register-hostel")
    form = await request.form()
    try:
        payload = hostel_from_form(form)
    except ValidationError as e:
        return render(
            request, "register_hostel.html", user, status_code=400, error=first_error(e.errors()),
            form=dict(form), amenities=AMENITIES, types=HOSTEL_TYPES, genders=HOSTEL_GENDERS,
        )
    hostel = create_hostel(db, user, payload)
    return redirect(f"/hostels/{hostel['_id']}", notice="Listing created")


# ---------- Roommates ----------

@router.get("/roommates")
def roommate_search_page(request: Request, db: Database = Depends(get_db), user=Depends(get_optional_user)):
    params = dict(request.query_params)
    try:
        filters = parse_filters(RoommateFilters, params)
    except HTTPException as e:
        filters, error = RoommateFilters(), e.detail
    else:
        error = None
    result = search_roommates(db, filters)
    return render(
        request,
        "roommates.html",
        user,
        error=error,
        result=result,
        filters=params,
        genders=GENDERS,
        occupations=OCCUPATIONS,
        durations=STAY_DURATIONS,
        lifestyle_labels=LIFESTYLE_LABELS,
        pagination=page_links(request, result["page"], result["pages"]),
    )


@router.get("/roommates/{roommate_id}")
def roommate_page(roommate_id: str, request: Request, db: Database = Depends(get_db), user=Depends(get_optional_user)):
    try:
        roommate = roommate_detail(db, roommate_id)
    except HTTPException as e:
        return render(request, "error.html", user, status_code=e.status_code, message=e.detail)
    return render(request, "roommate_detail.html", user, roommate=roommate, lifestyle_labels=LIFESTYLE_LABELS)


@router.get("/register-roommate")
def register_roommate_page(request: Request, user=Depends(get_optional_user)):
    if not user:
        return login_redirect("/register-roommate")
    return render(
        request, "register_roommate.html", user, form={}, genders=GENDERS, occupations=OCCUPATIONS,
        durations=STAY_DURATIONS, contact_preferences=CONTACT_PREFERENCES, lifestyle_labels=LIFESTYLE_LABELS,
    )


def roommate_from_form(form) -> RoommateCreate:
    return RoommateCreate.model_validate({
        "name": form.get("name", ""),
        "age": form.get("age", ""),
        "gender": form.get("gender", ""),
        "occupation": form.get("occupation", ""),
        "budget": {"min": form.get("budgetMin", ""), "max": form.get("budgetMax", "")},
        "location": {"type": "Point", "coordinates": [form.get("lng") or None, form.get("lat") or None]},
        "preferredLocation": {"city": form.get("city", ""), "areas": split_list(form.get("areas"))},
        "moveInDate": form.get("moveInDate", ""),
        "stayDuration": form.get("stayDuration", ""),
        "lifestyle": {key: key in form for key in LIFESTYLE_LABELS},
        "bio": form.get("bio", ""),
        "profileImage": form.get("profileImage") or None,
        "contactPreference": form.get("contactPreference", ""),
        "phone": form.get("phone") or None,
    })


@router.post("/register-roommate")
async def register_roommate_submit(request: Request, db: Database = Depends(get_db), user=Depends(get_optional_user)):
    if not user:
        return login_redirect("/register-roommate")
    form = await request.form()
    error = None
    try:
        roommate = create_roommate(db, user, roommate_from_form(form))
    except ValidationError as e:
        error = first_error(e.errors())
    except HTTPException as e:
        error = e.detail
    if error:
        return render(
            request, "register_roommate.html", user, status_code=400, error=error, form=dict(form),
            genders=GENDERS, occupations=OCCUPATIONS, durations=STAY_DURATIONS,
            contact_preferences=CONTACT_PREFERENCES, lifestyle_labels=LIFESTYLE_LABELS,
        )
    return redirect(f"/roommates/{roommate['_id']}", notice="Roommate profile created")


# ---------- Accounts ----------

@router.get("/login")
def login_page(request: Request, user=Depends(get_optional_user)):
    return render(request, "login.html", user, next=request.query_params.get("next", "/"))


@router.post("/login")
def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next: str = Form("/"),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    try:
        payload = LoginRequest(email=email.strip(), password=password)
    except ValidationError as e:
        return render(request, "login.html", None, status_code=400, error=first_error(e.errors()), next=next, email=email)
    user = authenticate(db, payload.email, payload.password)
    if not user:
        return render(request, "login.html", None, status_code=401, error="Invalid email or password", next=next, email=email)
    return start_session(redirect(safe_next(next), notice=f"Welcome back, {user['name']}"), user, settings)


@router.get("/register")
def register_page(request: Request, user=Depends(get_optional_user)):
    return render(request, "register.html", user, form={})


@router.post("/register")
def register_submit(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    form = {"name": name, "email": email}
    if password != confirm_password:
        return render(request, "register.html", None, status_code=400, error="Passwords do not match", form=form)
    try:
        user = register_user(db, RegisterRequest(name=name, email=email, password=password))
    except ValidationError as e:
        return render(request, "register.html", None, status_code=400, error=first_error(e.errors()), form=form)
    except HTTPException as e:
        return render(request, "register.html", None, status_code=e.status_code, error=e.detail, form=form)
    return start_session(redirect("/", notice="Registration successful"), user, settings)


@router.get("/logout")
def logout():
    response = redirect("/", notice="Logged out")
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/profile")
def profile_page(request: Request, db: Database = Depends(get_db), user=Depends(get_optional_user)):
    if not user:
        return login_redirect("/profile")
    listings = [to_public(h) for h in db[HOSTELS].find({"owner": user["_id"]})]
    roommate = to_public(db[ROOMMATES].find_one({"user": user["_id"]}))
    return render(request, "profile.html", user, profile=to_public(user), listings=listings, roommate=roommate)


@router.post("/profile")
async def profile_submit(request: Request, db: Database = Depends(get_db), user=Depends(get_optional_user)):
    if not user:
        return login_redirect("/profile")
    form = await request.form()
    fields = {k: form.get(k) for k in ("name", "email", "phone", "bio", "profileImage", "password") if form.get(k)}
    try:
        update_profile(db, user, ProfileUpdate.model_validate(fields))
    except ValidationError as e:
        return redirect("/profile", error=first_error(e.errors()))
    except HTTPException as e:
        return redirect("/profile", error=e.detail)
    return redirect("/profile", notice="Profile updated")
