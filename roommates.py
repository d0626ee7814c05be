import logging
from datetime import datetime, time
from typing import Dict

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.database import Database

from database import ROOMMATES, create_document, get_db, to_obj_id, to_public, utcnow
from filters import RoommateFilters, build_roommate_query, page_count, roommate_filters, search
from hostels import attach_users
from schemas import Roommate, RoommateCreate, RoommateUpdate
from security import check_owner, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/roommates", tags=["roommates"])


def search_roommates(db: Database, filters: RoommateFilters) -> Dict:
    query = build_roommate_query(filters)
    docs, total = search(db[ROOMMATES], query, filters.page_number)
    return {
        "roommates": attach_users(db, docs, "user"),
        "page": filters.page_number,
        "pages": page_count(total),
        "totalCount": total,
    }


def find_roommate(db: Database, roommate_id: str) -> Dict:
    doc = db[ROOMMATES].find_one({"_id": to_obj_id(roommate_id, "Roommate profile not found")})
    if not doc:
        raise HTTPException(status_code=404, detail="Roommate profile not found")
    return doc


def roommate_detail(db: Database, roommate_id: str) -> Dict:
    return attach_users(db, [find_roommate(db, roommate_id)], "user", ("name", "email"))[0]


def create_roommate(db: Database, user: Dict, payload: RoommateCreate) -> Dict:
    if db[ROOMMATES].find_one({"user": user["_id"]}):
        raise HTTPException(status_code=400, detail="You already have a roommate profile")
    data = payload.model_dump()
    data["move_in_date"] = datetime.combine(payload.move_in_date, time.min)
    doc = Roommate(user=user["_id"], is_active=True, **data).model_dump(by_alias=True)
    rid = create_document(db, ROOMMATES, doc)
    logger.info("User %s created roommate profile %s", user["_id"], rid)
    return db[ROOMMATES].find_one({"_id": ObjectId(rid)})


def roommate_changes(payload: RoommateUpdate) -> Dict:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True, by_alias=True)
    if payload.move_in_date is not None:
        changes["moveInDate"] = datetime.combine(payload.move_in_date, time.min)
    changes["updatedAt"] = utcnow()
    return changes


@router.get("")
def list_roommates(filters: RoommateFilters = Depends(roommate_filters), db: Database = Depends(get_db)):
    return search_roommates(db, filters)


@router.get("/{roommate_id}")
def get_roommate(roommate_id: str, db: Database = Depends(get_db)):
    return roommate_detail(db, roommate_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def post_roommate(payload: RoommateCreate, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    return to_public(create_roommate(db, current_user, payload))


@router.put("/{roommate_id}")
def put_roommate(roommate_id: str, payload: RoommateUpdate, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    roommate = find_roommate(db, roommate_id)
    check_owner(roommate, "user", current_user, "You are not authorized to update this profile")
    db[ROOMMATES].update_one({"_id": roommate["_id"]}, {"$set": roommate_changes(payload)})
    logger.info("User %s updated roommate profile %s", current_user["_id"], roommate_id)
    return to_public(db[ROOMMATES].find_one({"_id": roommate["_id"]}))


@router.delete("/{roommate_id}")
def delete_roommate(roommate_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    roommate = find_roommate(db, roommate_id)
    check_owner(roommate, "user", current_user, "You are not authorized to delete this profile")
    db[ROOMMATES].delete_one({"_id": roommate["_id"]})
    logger.info("User %s deleted roommate profile %s", current_user["_id"], roommate_id)
    return {"message": "Roommate profile removed"}
