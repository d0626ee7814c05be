import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

from config import Settings, get_settings
from database import USERS, get_db

logger = logging.getLogger(__name__)

SESSION_COOKIE = "token"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/users/login", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def create_access_token(user_id: Any, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.token_expire_days))
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def resolve_token(token: str, db: Database, settings: Settings) -> Optional[Dict]:
    """Return the user document a token belongs to, or None if the token is unusable."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.debug("Rejected token: %s", e)
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    try:
        oid = ObjectId(user_id)
    except (InvalidId, TypeError):
        return None
    return db[USERS].find_one({"_id": oid})


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Dict:
    if not token:
        raise HTTPException(status_code=401, detail="Not authorized, no token", headers={"WWW-Authenticate": "Bearer"})
    user = resolve_token(token, db, settings)
    if not user:
        raise HTTPException(status_code=401, detail="Not authorized, token failed", headers={"WWW-Authenticate": "Bearer"})
    return user


def require_admin(current_user: Dict = Depends(get_current_user)) -> Dict:
    if not current_user.get("isAdmin"):
        raise HTTPException(status_code=403, detail="Not authorized as an admin")
    return current_user


def get_optional_user(
    request: Request,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[Dict]:
    """Session user for the client views; the JWT lives in an HTTP-only cookie."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    return resolve_token(token, db, settings)


def check_owner(doc: Dict, field: str, user: Dict, detail: str) -> None:
    if str(doc.get(field)) != str(user["_id"]):
        raise HTTPException(status_code=403, detail=detail)
