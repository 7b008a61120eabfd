import logging
from typing import Dict, List, Optional, Tuple

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import get_current_user
from database import fetch_by_ids, get_db, paginate, parse_sort, sanitize, to_obj_id, utcnow
from schemas import Review as ReviewSchema

router = APIRouter()
logger = logging.getLogger(__name__)

REVIEW_SORT_FIELDS = ("created_at", "updated_at", "rating", "helpful")
AUTHOR_FIELDS = ("full_name", "avatar")
RECIPE_FIELDS = ("title", "images", "category")


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=1000)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1, max_length=1000)


def refresh_recipe_rating(db: Database, recipe_id: str) -> Tuple[float, int]:
    """
    Re-derive a recipe's rating aggregates from its reviews.

    Every review write goes through here, so ``average_rating``,
    ``rating_count``, ``review_count`` and the ``reviews`` id list are always
    written together from the same scan. The read and the write are not
    atomic: two concurrent writers may each store an aggregate that misses the
    other's review until the next write recomputes it.
    """
    reviews = list(
        db["review"].find({"recipe_id": recipe_id}, {"rating": 1}).sort("created_at", 1)
    )
    count = len(reviews)
    average = sum(r["rating"] for r in reviews) / count if count else 0
    db["recipe"].update_one(
        {"_id": ObjectId(recipe_id)},
        {"$set": {
            "average_rating": average,
            "rating_count": count,
            "review_count": count,
            "reviews": [str(r["_id"]) for r in reviews],
        }},
    )
    return average, count


def delete_review(db: Database, review: Dict) -> None:
    """Remove a review and recompute its recipe's aggregates."""
    db["review"].delete_one({"_id": review["_id"]})
    recipe_id = review["recipe_id"]
    db["recipe"].update_one(
        {"_id": ObjectId(recipe_id)}, {"$pull": {"reviews": str(review["_id"])}}
    )
    refresh_recipe_rating(db, recipe_id)


def find_existing_review(db: Database, user_id: str, recipe_id: str) -> Optional[Dict]:
    return db["review"].find_one({"user_id": user_id, "recipe_id": recipe_id}, {"_id": 1})


def get_review_or_404(db: Database, review_id: str) -> Dict:
    review = db["review"].find_one({"_id": to_obj_id(review_id)})
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


def join_users(db: Database, docs: List[Dict], fields=AUTHOR_FIELDS) -> List[Dict]:
    users = fetch_by_ids(db, "user", [d["user_id"] for d in docs], fields)
    return [{**d, "user": users.get(d["user_id"])} for d in docs]


def join_recipes(db: Database, docs: List[Dict], fields=RECIPE_FIELDS) -> List[Dict]:
    recipes = fetch_by_ids(db, "recipe", [d["recipe_id"] for d in docs], fields)
    return [{**d, "recipe": recipes.get(d["recipe_id"])} for d in docs]


@router.post("/{recipe_id}", status_code=status.HTTP_201_CREATED)
def add_review(
    recipe_id: str,
    payload: ReviewCreate,
    db: Database = Depends(get_db),
    current_user=Depends(get_current_user),
):
    recipe = db["recipe"].find_one({"_id": to_obj_id(recipe_id)}, {"_id": 1})
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")
    recipe_id = str(recipe["_id"])
    user_id = current_user["id"]

    if find_existing_review(db, user_id, recipe_id):
        raise HTTPException(status_code=400, detail="You have already reviewed this recipe")

    doc = ReviewSchema(
        user_id=user_id, recipe_id=recipe_id, rating=payload.rating, comment=payload.comment
    ).model_dump()
    try:
        res = db["review"].insert_one(doc)
    except DuplicateKeyError:
        # lost a race with a concurrent submission from the same user
        raise HTTPException(status_code=400, detail="You have already reviewed this recipe")
    doc["_id"] = res.inserted_id

    db["recipe"].update_one({"_id": recipe["_id"]}, {"$push": {"reviews": str(res.inserted_id)}})
    refresh_recipe_rating(db, recipe_id)
    logger.info("User %s reviewed recipe %s (%d stars)", user_id, recipe_id, payload.rating)

    review = join_users(db, [sanitize(doc)])[0]
    return {"message": "Review added successfully", "review": review}


@router.get("/recipe/{recipe_id}")
def get_recipe_reviews(
    recipe_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: str = Query("-created_at"),
    db: Database = Depends(get_db),
):
    to_obj_id(recipe_id)
    docs, total, pages = paginate(
        db["review"],
        {"recipe_id": recipe_id},
        page,
        limit,
        parse_sort(sort, REVIEW_SORT_FIELDS),
    )
    return {
        "reviews": join_users(db, [sanitize(d) for d in docs]),
        "total_reviews": total,
        "current_page": page,
        "total_pages": pages,
    }


@router.get("/user/{user_id}")
def get_user_reviews(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Database = Depends(get_db),
):
    to_obj_id(user_id)
    docs, total, pages = paginate(
        db["review"],
        {"user_id": user_id},
        page,
        limit,
        [("created_at", DESCENDING), ("_id", DESCENDING)],
    )
    return {
        "reviews": join_recipes(db, [sanitize(d) for d in docs]),
        "total_reviews": total,
        "current_page": page,
        "total_pages": pages,
    }


@router.put("/{review_id}")
def update_review(
    review_id: str,
    payload: ReviewUpdate,
    db: Database = Depends(get_db),
    current_user=Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    if review["user_id"] != current_user["id"]:
        raise HTTPException(status_code=403, detail="Not authorized to update this review")

    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")
    changes["updated_at"] = utcnow()
    db["review"].update_one({"_id": review["_id"]}, {"$set": changes})
    refresh_recipe_rating(db, review["recipe_id"])

    updated = db["review"].find_one({"_id": review["_id"]})
    return {"message": "Review updated successfully", "review": join_users(db, [sanitize(updated)])[0]}


@router.delete("/{review_id}")
def delete_own_review(
    review_id: str,
    db: Database = Depends(get_db),
    current_user=Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    if review["user_id"] != current_user["id"]:
        raise HTTPException(status_code=403, detail="Not authorized to delete this review")
    delete_review(db, review)
    return {"message": "Review deleted successfully"}


@router.post("/{review_id}/helpful")
def mark_helpful(
    review_id: str,
    db: Database = Depends(get_db),
    current_user=Depends(get_current_user),
):
    review = get_review_or_404(db, review_id)
    user_id = current_user["id"]
    already_marked = user_id in review.get("helpful_by", [])

    # the membership condition keeps the counter in step with the voter set
    if already_marked:
        db["review"].update_one(
            {"_id": review["_id"], "helpful_by": user_id},
            {"$pull": {"helpful_by": user_id}, "$inc": {"helpful": -1}},
        )
    else:
        db["review"].update_one(
            {"_id": review["_id"], "helpful_by": {"$ne": user_id}},
            {"$addToSet": {"helpful_by": user_id}, "$inc": {"helpful": 1}},
        )
    updated = db["review"].find_one({"_id": review["_id"]}, {"helpful": 1})
    return {
        "message": "Helpful mark removed" if already_marked else "Marked as helpful",
        "helpful": updated["helpful"],
        "is_marked_helpful": not already_marked,
    }
