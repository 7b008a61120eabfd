import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from auth import get_current_user
from database import get_db, paginate, sanitize, to_obj_id, utcnow
from reviews import join_users
from schemas import Recipe as RecipeSchema

router = APIRouter()
logger = logging.getLogger(__name__)


class RecipeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    image: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    prep_time: int = Field(..., ge=0)
    difficulty: str
    category: str
    cuisine: str
    diet: str
    serves: int = Field(..., ge=1)
    calories: Optional[int] = Field(None, ge=0)
    ingredients: List[str] = Field(..., min_length=1)
    instructions: List[str] = Field(..., min_length=1)


class RecipeUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = None
    images: Optional[List[str]] = None
    prep_time: Optional[int] = Field(None, ge=0)
    difficulty: Optional[str] = None
    category: Optional[str] = None
    cuisine: Optional[str] = None
    diet: Optional[str] = None
    serves: Optional[int] = Field(None, ge=1)
    calories: Optional[int] = Field(None, ge=0)
    ingredients: Optional[List[str]] = Field(None, min_length=1)
    instructions: Optional[List[str]] = Field(None, min_length=1)


def text_search(term: str, *fields: str) -> Dict:
    return {"$or": [{f: {"$regex": term, "$options": "i"}} for f in fields]}


def delete_recipe_cascade(db: Database, recipe: Dict) -> int:
    """
    Delete a recipe together with every review that references it.

    Reviews go first, then the recipe. Both steps are idempotent, so if the
    process dies in between, repeating the delete finishes the job.
    """
    recipe_id = str(recipe["_id"])
    removed = db["review"].delete_many({"recipe_id": recipe_id}).deleted_count
    db["recipe"].delete_one({"_id": recipe["_id"]})
    logger.info("Deleted recipe %s and %d reviews", recipe_id, removed)
    return removed


def get_recipe_or_404(db: Database, recipe_id: str) -> Dict:
    recipe = db["recipe"].find_one({"_id": to_obj_id(recipe_id)})
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return recipe


@router.post("", status_code=status.HTTP_201_CREATED)
def create_recipe(
    payload: RecipeCreate,
    db: Database = Depends(get_db),
    current_user=Depends(get_current_user),
):
    data = payload.model_dump()
    images = data.pop("images")
    image = data.pop("image") or (images[0] if images else None)
    if not image:
        raise HTTPException(status_code=400, detail="At least one image is required")
    if image not in images:
        images.insert(0, image)
    doc = RecipeSchema(**data, image=image, images=images, user_id=current_user["id"]).model_dump()
    res = db["recipe"].insert_one(doc)
    doc["_id"] = res.inserted_id
    return {"message": "Recipe created successfully", "recipe": sanitize(doc)}


@router.get("")
def list_recipes(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    cuisine: Optional[str] = None,
    diet: Optional[str] = None,
    db: Database = Depends(get_db),
):
    q: Dict = {}
    if search:
        q.update(text_search(search, "title", "description"))
    if category:
        q["category"] = category
    if cuisine:
        q["cuisine"] = cuisine
    if diet:
        q["diet"] = diet
    docs, total, pages = paginate(
        db["recipe"], q, page, limit, [("created_at", DESCENDING), ("_id", DESCENDING)]
    )
    return {
        "recipes": join_users(db, [sanitize(d) for d in docs]),
        "total_recipes": total,
        "current_page": page,
        "total_pages": pages,
    }


@router.get("/{recipe_id}")
def get_recipe(recipe_id: str, db: Database = Depends(get_db)):
    recipe = db["recipe"].find_one_and_update(
        {"_id": to_obj_id(recipe_id)},
        {"$inc": {"views": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return join_users(db, [sanitize(recipe)])[0]


@router.put("/{recipe_id}")
def update_recipe(
    recipe_id: str,
    payload: RecipeUpdate,
    db: Database = Depends(get_db),
    current_user=Depends(get_current_user),
):
    recipe = get_recipe_or_404(db, recipe_id)
    if recipe["user_id"] != current_user["id"]:
        raise HTTPException(status_code=403, detail="Not authorized to update this recipe")
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")
    changes["updated_at"] = utcnow()
    updated = db["recipe"].find_one_and_update(
        {"_id": recipe["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    return {"message": "Recipe updated successfully", "recipe": sanitize(updated)}


@router.delete("/{recipe_id}")
def delete_own_recipe(
    recipe_id: str,
    db: Database = Depends(get_db),
    current_user=Depends(get_current_user),
):
    recipe = get_recipe_or_404(db, recipe_id)
    if recipe["user_id"] != current_user["id"]:
        raise HTTPException(status_code=403, detail="Not authorized to delete this recipe")
    delete_recipe_cascade(db, recipe)
    return {"message": "Recipe deleted successfully"}


@router.post("/{recipe_id}/like")
def toggle_like(
    recipe_id: str,
    db: Database = Depends(get_db),
    current_user=Depends(get_current_user),
):
    recipe = get_recipe_or_404(db, recipe_id)
    user_id = current_user["id"]
    liked = user_id in recipe.get("liked_by", [])
    if liked:
        db["recipe"].update_one(
            {"_id": recipe["_id"], "liked_by": user_id},
            {"$pull": {"liked_by": user_id}, "$inc": {"likes": -1}},
        )
    else:
        db["recipe"].update_one(
            {"_id": recipe["_id"], "liked_by": {"$ne": user_id}},
            {"$addToSet": {"liked_by": user_id}, "$inc": {"likes": 1}},
        )
    updated = db["recipe"].find_one({"_id": recipe["_id"]}, {"likes": 1})
    return {"likes": updated["likes"], "is_liked": not liked}
