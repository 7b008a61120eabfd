"""
Admin dashboard and moderation routes.

Every route here sits behind ``require_admin`` at the router level, so a
valid token with the ``user`` role always gets a 403.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from pymongo import DESCENDING
from pymongo.database import Database

from auth import require_admin
from database import get_db, paginate, sanitize, to_obj_id, utcnow
from recipes import delete_recipe_cascade, get_recipe_or_404, text_search
from reviews import delete_review, get_review_or_404, join_recipes, join_users

router = APIRouter(dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]
GROWTH_MONTHS = 6

# users written before roles existed carry no usable role and count as "user"
MISSING_ROLE = [{"role": {"$exists": False}}, {"role": None}, {"role": ""}]


class UserStatusUpdate(BaseModel):
    is_active: bool


def month_starts(now: datetime, count: int = GROWTH_MONTHS) -> List[datetime]:
    """First instant of each of the last ``count`` calendar months, oldest first (naive UTC)."""
    year, month = now.year, now.month
    starts = []
    for _ in range(count):
        starts.append(datetime(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return starts[::-1]


def next_month(start: datetime) -> datetime:
    if start.month == 12:
        return datetime(start.year + 1, 1, 1)
    return datetime(start.year, start.month + 1, 1)


def count_between(db: Database, collection: str, start: datetime, end: datetime) -> int:
    return db[collection].count_documents({"created_at": {"$gte": start, "$lt": end}})


def get_user_or_404(db: Database, user_id: str) -> Dict:
    user = db["user"].find_one({"_id": to_obj_id(user_id)})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/dashboard/stats")
def dashboard_stats(db: Database = Depends(get_db)):
    now = utcnow().replace(tzinfo=None)
    thirty_days_ago = now - timedelta(days=30)
    recent = {"created_at": {"$gte": thirty_days_ago}}

    stats = {
        "total_users": db["user"].count_documents({}),
        "total_recipes": db["recipe"].count_documents({}),
        "total_reviews": db["review"].count_documents({}),
        "active_users": db["user"].count_documents({"is_active": True}),
        "new_users_this_month": db["user"].count_documents(recent),
        "new_recipes_this_month": db["recipe"].count_documents(recent),
        "new_reviews_this_month": db["review"].count_documents(recent),
    }

    top_recipes = [
        sanitize(r)
        for r in db["recipe"]
        .find({}, {"title": 1, "average_rating": 1, "review_count": 1, "images": 1})
        .sort([("average_rating", DESCENDING), ("review_count", DESCENDING)])
        .limit(5)
    ]
    recent_users = [
        sanitize(u)
        for u in db["user"]
        .find({}, {"full_name": 1, "email": 1, "created_at": 1, "is_active": 1})
        .sort(NEWEST_FIRST)
        .limit(5)
    ]
    recent_recipes = join_users(
        db,
        [
            sanitize(r)
            for r in db["recipe"]
            .find({}, {"title": 1, "category": 1, "images": 1, "created_at": 1, "user_id": 1})
            .sort(NEWEST_FIRST)
            .limit(5)
        ],
        fields=("full_name",),
    )

    user_growth = []
    monthly_activity = []
    for start in month_starts(now):
        end = next_month(start)
        label = start.strftime("%b %Y")
        user_growth.append({"month": label, "users": count_between(db, "user", start, end)})
        monthly_activity.append({
            "month": label,
            "recipes": count_between(db, "recipe", start, end),
            "reviews": count_between(db, "review", start, end),
        })

    recipe_categories = list(db["recipe"].aggregate([
        {"$group": {"_id": "$category", "count": {"$sum": 1}}},
        {"$project": {"category": "$_id", "count": 1, "_id": 0}},
        {"$sort": {"count": -1}},
        {"$limit": 8},
    ]))
    ratings_distribution = list(db["review"].aggregate([
        {"$group": {"_id": "$rating", "count": {"$sum": 1}}},
        {"$project": {"rating": "$_id", "count": 1, "_id": 0}},
        {"$sort": {"rating": 1}},
    ]))

    return {
        "stats": stats,
        "top_recipes": top_recipes,
        "recent_users": recent_users,
        "recent_recipes": recent_recipes,
        "charts": {
            "user_growth": user_growth,
            "recipe_categories": recipe_categories,
            "ratings_distribution": ratings_distribution,
            "monthly_activity": monthly_activity,
        },
    }


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[str] = None,
    db: Database = Depends(get_db),
):
    clauses: List[Dict[str, Any]] = []
    if search:
        clauses.append(text_search(search, "full_name", "email"))
    if role == "user":
        clauses.append({"$or": [{"role": "user"}, *MISSING_ROLE]})
    elif role:
        clauses.append({"role": role})
    q = {"$and": clauses} if clauses else {}

    docs, total, pages = paginate(db["user"], q, page, limit, NEWEST_FIRST, {"password_hash": 0})
    users = []
    for doc in docs:
        user = sanitize(doc)
        user["recipe_count"] = db["recipe"].count_documents({"user_id": user["id"]})
        user["review_count"] = db["review"].count_documents({"user_id": user["id"]})
        users.append(user)
    return {"users": users, "total_users": total, "current_page": page, "total_pages": pages}


@router.get("/recipes")
def list_recipes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    db: Database = Depends(get_db),
):
    q: Dict[str, Any] = {}
    if search:
        q.update(text_search(search, "title", "description"))
    if category:
        q["category"] = category
    docs, total, pages = paginate(db["recipe"], q, page, limit, NEWEST_FIRST)
    recipes = join_users(db, [sanitize(d) for d in docs], fields=("full_name", "email"))
    return {"recipes": recipes, "total_recipes": total, "current_page": page, "total_pages": pages}


@router.get("/reviews")
def list_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    rating: Optional[int] = Query(None, ge=1, le=5),
    db: Database = Depends(get_db),
):
    q: Dict[str, Any] = {}
    if search:
        q["comment"] = {"$regex": search, "$options": "i"}
    if rating:
        q["rating"] = rating
    docs, total, pages = paginate(db["review"], q, page, limit, NEWEST_FIRST)
    reviews = join_users(db, [sanitize(d) for d in docs], fields=("full_name", "email"))
    reviews = join_recipes(db, reviews, fields=("title", "images"))
    return {"reviews": reviews, "total_reviews": total, "current_page": page, "total_pages": pages}


@router.put("/users/{user_id}/status")
def update_user_status(user_id: str, payload: UserStatusUpdate, db: Database = Depends(get_db)):
    user = get_user_or_404(db, user_id)
    db["user"].update_one(
        {"_id": user["_id"]}, {"$set": {"is_active": payload.is_active, "updated_at": utcnow()}}
    )
    logger.info("User %s %s", user_id, "activated" if payload.is_active else "deactivated")
    return {
        "message": f"User {'activated' if payload.is_active else 'deactivated'} successfully",
        "user": {
            "id": str(user["_id"]),
            "full_name": user.get("full_name"),
            "email": user.get("email"),
            "is_active": payload.is_active,
        },
    }


@router.put("/users/{user_id}/admin")
def make_user_admin(user_id: str, db: Database = Depends(get_db)):
    user = get_user_or_404(db, user_id)
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"role": "admin", "updated_at": utcnow()}})
    logger.info("User %s promoted to admin", user_id)
    return {
        "message": "User promoted to admin successfully",
        "user": {
            "id": str(user["_id"]),
            "full_name": user.get("full_name"),
            "email": user.get("email"),
            "role": "admin",
        },
    }


@router.delete("/recipes/{recipe_id}")
def delete_recipe(recipe_id: str, db: Database = Depends(get_db)):
    recipe = get_recipe_or_404(db, recipe_id)
    delete_recipe_cascade(db, recipe)
    return {"message": "Recipe and associated reviews deleted successfully"}


@router.delete("/reviews/{review_id}")
def delete_review_admin(review_id: str, db: Database = Depends(get_db)):
    review = get_review_or_404(db, review_id)
    delete_review(db, review)
    return {"message": "Review deleted successfully"}
