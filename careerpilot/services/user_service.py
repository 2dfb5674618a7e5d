"""
Accounts, profiles and the XP leaderboard.
"""
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careerpilot.config import get_settings
from careerpilot.models.user import User
from careerpilot.schemas.user import ProfileUpdate
from careerpilot.services.cache import cache_delete, cache_delete_prefix, cache_get, cache_set
from careerpilot.services.xp_service import get_xp_service

# API field -> column
PROFILE_FIELDS = {
    "name": "name",
    "photoURL": "photo_url",
    "bio": "bio",
    "location": "location",
    "skills": "skills",
    "experience": "experience",
    "preferredRoles": "preferred_roles",
}


async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[Dict[str, Any]]:
    """Public profile, cached briefly."""
    cache_key = f"user:{user_id}"
    cached = await cache_get(cache_key)
    if cached is not None:
        return cached

    user = await db.get(User, user_id)
    if user is None:
        return None

    data = user.to_dict()
    data["level"] = get_xp_service().calculate_level(user.experience_points or 0)
    await cache_set(cache_key, data, ttl=get_settings().user_cache_ttl_seconds)
    return data


async def update_user_profile(db: AsyncSession, user: User, changes: ProfileUpdate) -> User:
    updates = changes.model_dump(exclude_unset=True)
    for field, column in PROFILE_FIELDS.items():
        if field in updates and updates[field] is not None:
            value = updates[field]
            if isinstance(value, list):
                value = [v.strip() for v in value if v and v.strip()]
            setattr(user, column, value)

    await db.commit()
    await db.refresh(user)

    await cache_delete(f"user:{user.id}")
    await cache_delete_prefix("leaderboard:")
    return user


async def register_account(db: AsyncSession, email: str, name: str) -> Optional[Tuple[User, str]]:
    """
    Create an account and return it with its plaintext API key, or None
    when the email is taken. Only the bcrypt hash of the key is stored.
    """
    email = email.strip().lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.first() is not None:
        return None

    user = User.create_user(email=email, name=name.strip())
    plaintext_key = user._plaintext_api_key
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user, plaintext_key


async def rotate_api_key(db: AsyncSession, user: User) -> str:
    new_key = user.set_new_api_key()
    await db.commit()
    await cache_delete(f"user:{user.id}")
    return new_key


async def get_leaderboard(db: AsyncSession, limit: int = 50) -> List[Dict[str, Any]]:
    cache_key = f"leaderboard:{limit}"
    cached = await cache_get(cache_key)
    if cached is not None:
        return cached

    result = await db.execute(
        select(User)
        .where(User.is_active.is_(True))
        .order_by(User.experience_points.desc(), User.created_at.asc())
        .limit(limit)
    )
    xp_service = get_xp_service()
    entries = []
    for rank, user in enumerate(result.scalars().all(), start=1):
        xp = user.experience_points or 0
        entries.append({
            "rank": rank,
            "id": user.id,
            "name": user.name,
            "photoURL": user.photo_url,
            "experiencePoints": xp,
            "level": xp_service.calculate_level(xp),
            "badges": len(user.badges or []),
        })

    await cache_set(cache_key, entries, ttl=get_settings().user_cache_ttl_seconds)
    return entries
