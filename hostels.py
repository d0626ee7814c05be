import logging
from typing import Dict, List

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.database import Database

from database import HOSTELS, USERS, create_document, get_db, to_obj_id, to_public, utcnow
from filters import HostelFilters, build_hostel_query, hostel_filters, page_count, search
from schemas import Hostel, HostelCreate, HostelUpdate, Review, ReviewCreate
from security import check_owner, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/hostels", tags=["hostels"])

REVIEW_ATTEMPTS = 3


def attach_users(db: Database, docs: List[Dict], field: str, fields=("name",)) -> List[Dict]:
    """Replace the user reference in `field` with a small public user object."""
    ids = {d[field] for d in docs if isinstance(d.get(field), ObjectId)}
    projection = {f: 1 for f in fields}
    user_map = {u["_id"]: u for u in db[USERS].find({"_id": {"$in": list(ids)}}, projection)} if ids else {}
    out = []
    for d in docs:
        pub = to_public(d)
        u = user_map.get(d.get(field))
        if u:
            pub[field] = {"id": str(u["_id"]), **{f: u.get(f) for f in fields}}
        out.append(pub)
    return out


def search_hostels(db: Database, filters: HostelFilters) -> Dict:
    query = build_hostel_query(filters)
    docs, total = search(db[HOSTELS], query, filters.page_number)
    return {
        "hostels": attach_users(db, docs, "owner"),
        "page": filters.page_number,
        "pages": page_count(total),
        "totalCount": total,
    }


def find_hostel(db: Database, hostel_id: str) -> Dict:
    doc = db[HOSTELS].find_one({"_id": to_obj_id(hostel_id, "Hostel not found")})
    if not doc:
        raise HTTPException(status_code=404, detail="Hostel not found")
    return doc


def hostel_detail(db: Database, hostel_id: str) -> Dict:
    return attach_users(db, [find_hostel(db, hostel_id)], "owner", ("name", "email"))[0]


def create_hostel(db: Database, user: Dict, payload: HostelCreate) -> Dict:
    doc = Hostel(owner=user["_id"], **payload.model_dump()).model_dump(by_alias=True)
    hid = create_document(db, HOSTELS, doc)
    logger.info("User %s created hostel %s", user["_id"], hid)
    return db[HOSTELS].find_one({"_id": ObjectId(hid)})


def add_review(db: Database, hostel_id: str, user: Dict, payload: ReviewCreate) -> Dict:
    """Append a review and recompute the aggregate rating in one conditional update.

    The update only applies while `numReviews` still has the value that was read
    and the caller has no review yet; a concurrent writer makes it miss, in which
    case the listing is re-read and the append retried.
    """
    for _ in range(REVIEW_ATTEMPTS):
        hostel = find_hostel(db, hostel_id)
        reviews = hostel.get("reviews", [])
        if any(str(r.get("user")) == str(user["_id"]) for r in reviews):
            raise HTTPException(status_code=400, detail="Hostel already reviewed")

        review = Review(user=user["_id"], name=user["name"], rating=payload.rating, comment=payload.comment)
        ratings = [r.get("rating", 0) for r in reviews] + [review.rating]
        res = db[HOSTELS].update_one(
            {"_id": hostel["_id"], "numReviews": len(reviews), "reviews.user": {"$ne": user["_id"]}},
            {
                "$push": {"reviews": review.model_dump(by_alias=True)},
                "$set": {
                    "rating": sum(ratings) / len(ratings),
                    "numReviews": len(ratings),
                    "updatedAt": utcnow(),
                },
            },
        )
        if res.modified_count == 1:
            logger.info("User %s reviewed hostel %s (%d stars)", user["_id"], hostel_id, payload.rating)
            return db[HOSTELS].find_one({"_id": hostel["_id"]})
        logger.warning("Review on hostel %s raced with another write, retrying", hostel_id)
    raise HTTPException(status_code=409, detail="Hostel was modified concurrently, please try again")


@router.get("")
def list_hostels(filters: HostelFilters = Depends(hostel_filters), db: Database = Depends(get_db)):
    return search_hostels(db, filters)


@router.get("/{hostel_id}")
def get_hostel(hostel_id: str, db: Database = Depends(get_db)):
    return hostel_detail(db, hostel_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def post_hostel(payload: HostelCreate, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    return to_public(create_hostel(db, current_user, payload))


@router.put("/{hostel_id}")
def put_hostel(hostel_id: str, payload: HostelUpdate, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    hostel = find_hostel(db, hostel_id)
    check_owner(hostel, "owner", current_user, "You are not authorized to update this hostel")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True, by_alias=True)
    changes["updatedAt"] = utcnow()
    db[HOSTELS].update_one({"_id": hostel["_id"]}, {"$set": changes})
    logger.info("User %s updated hostel %s", current_user["_id"], hostel_id)
    return to_public(db[HOSTELS].find_one({"_id": hostel["_id"]}))


@router.delete("/{hostel_id}")
def delete_hostel(hostel_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    hostel = find_hostel(db, hostel_id)
    check_owner(hostel, "owner", current_user, "You are not authorized to delete this hostel")
    db[HOSTELS].delete_one({"_id": hostel["_id"]})
    logger.info("User %s deleted hostel %s", current_user["_id"], hostel_id)
    return {"message": "Hostel removed"}


@router.post("/{hostel_id}/reviews", status_code=status.HTTP_201_CREATED)
def post_review(hostel_id: str, payload: ReviewCreate, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    add_review(db, hostel_id, current_user, payload)
    return {"message": "Review added"}
