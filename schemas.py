"""
Database Schemas for the Recipe Box API

MongoDB collections are defined below using Pydantic models. Each class name is
converted to lowercase for the collection name (User -> "user").

We will use these collections:
- user: registered accounts (role "user" or "admin")
- recipe: recipes shared by users, with denormalized rating aggregates
- review: one rating + comment per user per recipe

References between collections are stored as the string form of the target
ObjectId (e.g. Review.recipe_id).

The embedded User.ratings and Recipe.ratings lists are declared for the
record shape only; no route writes them. Ratings live in the review collection.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Role = Literal["user", "admin"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SocialLinks(BaseModel):
    website: str = ""
    instagram: str = ""
    youtube: str = ""


class RecipeRating(BaseModel):
    recipe_id: str
    rating: int = Field(..., ge=1, le=5)


class UserRating(BaseModel):
    user_id: str
    rating: int = Field(..., ge=1, le=5)


class User(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr = Field(..., description="Unique, stored lowercase")
    password_hash: str = Field(..., description="BCrypt hash of password")
    role: Role = Field("user")
    avatar: Optional[str] = None
    bio: str = Field("", max_length=500)
    location: str = ""
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    is_active: bool = True
    last_login: datetime = Field(default_factory=_now)
    ratings: List[RecipeRating] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Recipe(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    image: str = Field(..., description="Primary image URL")
    images: List[str] = Field(default_factory=list)
    prep_time: int = Field(..., ge=0, description="Minutes")
    difficulty: str
    category: str
    cuisine: str
    diet: str
    serves: int = Field(..., ge=1)
    calories: Optional[int] = Field(None, ge=0)
    ingredients: List[str] = Field(..., min_length=1)
    instructions: List[str] = Field(..., min_length=1)
    user_id: str = Field(..., description="Reference to user _id (owner)")
    likes: int = 0
    liked_by: List[str] = Field(default_factory=list)
    views: int = 0
    average_rating: float = 0
    rating_count: int = 0
    ratings: List[UserRating] = Field(default_factory=list)
    reviews: List[str] = Field(default_factory=list, description="Review _ids")
    review_count: int = 0
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Review(BaseModel):
    user_id: str = Field(..., description="Reference to user _id (author)")
    recipe_id: str = Field(..., description="Reference to recipe _id")
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=1000)
    helpful: int = 0
    helpful_by: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
