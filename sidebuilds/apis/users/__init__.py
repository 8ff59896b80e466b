"""Users API - the settings page profile."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from sidebuilds.auth import AuthorizedUser
from sidebuilds.libs.database import get_db_connection
from sidebuilds.libs.models import ProfileUpdate

router = APIRouter()


class Profile(BaseModel):
    """User profile"""
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    github_url: Optional[str] = None
    twitter_url: Optional[str] = None
    updated_at: Optional[datetime] = None


@router.get("/users/me", response_model=Profile)
async def get_profile(user: AuthorizedUser):
    """
    Get the caller's profile.

    Users who have never saved their settings have no row yet; their profile
    is built from the session's user metadata instead.
    """
    conn = await get_db_connection()
    try:
        row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user.sub)
    finally:
        await conn.close()

    if not row:
        return Profile(
            id=user.sub,
            email=user.email,
            full_name=user.user_metadata.get("full_name"),
            avatar_url=user.user_metadata.get("avatar_url"),
        )

    return Profile(
        id=row["id"],
        email=row["email"] or user.email,
        full_name=row["full_name"],
        avatar_url=row["avatar_url"],
        bio=row["bio"],
        website=row["website"],
        github_url=row["github_url"],
        twitter_url=row["twitter_url"],
        updated_at=row["updated_at"],
    )


@router.put("/users/me", response_model=Profile)
async def update_profile(update: ProfileUpdate, user: AuthorizedUser):
    """Save the settings page profile form."""
    conn = await get_db_connection()
    try:
        row = await conn.fetchrow(
            """
            INSERT INTO users (id, email, full_name, avatar_url, bio, website, github_url, twitter_url)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            ON CONFLICT (id)
            DO UPDATE SET
                full_name = EXCLUDED.full_name,
                avatar_url = EXCLUDED.avatar_url,
                bio = EXCLUDED.bio,
                website = EXCLUDED.website,
                github_url = EXCLUDED.github_url,
                twitter_url = EXCLUDED.twitter_url,
                updated_at = NOW()
            RETURNING *
            """,
            user.sub,
            user.email,
            update.full_name,
            update.avatar_url,
            update.bio,
            update.website,
            update.github_url,
            update.twitter_url,
        )
    finally:
        await conn.close()

    return Profile(**dict(row))
