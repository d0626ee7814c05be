import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import Settings, get_settings
from database import USERS, create_document, get_db, to_public, utcnow
from schemas import LoginRequest, ProfileUpdate, RegisterRequest, User
from security import create_access_token, get_current_user, hash_password, require_admin, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def user_summary(user: Dict) -> Dict:
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "isAdmin": bool(user.get("isAdmin")),
    }


def token_response(user: Dict, settings: Settings) -> Dict:
    return {"token": create_access_token(user["_id"], settings), "user": user_summary(user)}


def register_user(db: Database, payload: RegisterRequest) -> Dict:
    if db[USERS].find_one({"email": payload.email}):
        raise HTTPException(status_code=400, detail="User already exists")
    doc = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
    ).model_dump(by_alias=True)
    try:
        uid = create_document(db, USERS, doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User already exists")
    logger.info("Registered user %s", uid)
    return db[USERS].find_one({"email": payload.email})


def authenticate(db: Database, email: str, password: str) -> Optional[Dict]:
    user = db[USERS].find_one({"email": email})
    if not user or not verify_password(password, user.get("passwordHash", "")):
        return None
    return user


def update_profile(db: Database, user: Dict, payload: ProfileUpdate) -> Dict:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True, by_alias=True)
    if "email" in changes and changes["email"] != user.get("email"):
        if db[USERS].find_one({"email": changes["email"], "_id": {"$ne": user["_id"]}}):
            raise HTTPException(status_code=400, detail="Email already registered by another user")
    password = changes.pop("password", None)
    if password:
        changes["passwordHash"] = hash_password(password)
    changes["updatedAt"] = utcnow()
    try:
        db[USERS].update_one({"_id": user["_id"]}, {"$set": changes})
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email already registered by another user")
    return db[USERS].find_one({"_id": user["_id"]})


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = register_user(db, payload)
    return token_response(user, settings)


@router.post("/login")
def login(payload: LoginRequest, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = authenticate(db, payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return token_response(user, settings)


@router.get("/profile")
def get_profile(current_user=Depends(get_current_user)):
    return to_public(current_user)


@router.put("/profile")
def put_profile(payload: ProfileUpdate, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    updated = update_profile(db, current_user, payload)
    return to_public(updated)


@router.get("")
def list_users(db: Database = Depends(get_db), admin=Depends(require_admin)):
    return [to_public(u) for u in db[USERS].find({})]
