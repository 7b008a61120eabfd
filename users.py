from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import get_current_user
from database import get_db, sanitize, to_obj_id, utcnow
from schemas import SocialLinks

router = APIRouter()

PUBLIC_FIELDS = ("full_name", "avatar", "bio", "location", "social_links", "role", "created_at")


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=120)
    avatar: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = None
    social_links: Optional[SocialLinks] = None


@router.get("/{user_id}")
def get_profile(user_id: str, db: Database = Depends(get_db)):
    user = db["user"].find_one({"_id": to_obj_id(user_id)}, {f: 1 for f in PUBLIC_FIELDS})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    profile = sanitize(user)
    profile["recipe_count"] = db["recipe"].count_documents({"user_id": profile["id"]})
    profile["review_count"] = db["review"].count_documents({"user_id": profile["id"]})
    return profile


@router.put("/me")
def update_profile(
    payload: ProfileUpdate,
    db: Database = Depends(get_db),
    current_user=Depends(get_current_user),
):
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")
    if "full_name" in changes:
        changes["full_name"] = changes["full_name"].strip()
    changes["updated_at"] = utcnow()
    updated = db["user"].find_one_and_update(
        {"_id": to_obj_id(current_user["id"])},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    return {"message": "Profile updated successfully", "user": sanitize(updated)}
