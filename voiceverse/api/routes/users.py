"""
User API Routes

Profiles, avatars, visibility, follows and per-user content lists.
"""

import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Path, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import (
    NotFoundError,
    ValidationError,
    paginated_response,
    success_response,
)
from ..dependencies import (
    get_current_user,
    get_db_session,
    get_optional_user,
    get_storage,
    parse_uuid,
)
from ..serializers import iso, post_to_response, user_summary
from ...database.models import User
from ...database.repositories import (
    ChallengeRepository,
    FeedPostRepository,
    FollowRepository,
    UserRepository,
)
from ...storage import PROFILE_IMAGE_DIR, LocalStorage


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


AVATAR_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
MAX_AVATAR_BYTES = 5 * 1024 * 1024


# =============================================================================
# Request Models
# =============================================================================

class UpdateProfileRequest(BaseModel):
    displayName: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)


# =============================================================================
# Helper Functions
# =============================================================================

async def profile_to_response(
    db: AsyncSession,
    user: User,
    viewer: Optional[User] = None,
) -> Dict[str, Any]:
    """Public profile, with email only when the viewer owns it."""
    is_own = viewer is not None and viewer.id == user.id
    is_following = False
    if viewer is not None and not is_own:
        is_following = await FollowRepository(db).is_following(viewer.id, user.id)

    profile = {
        "id": user.id,
        "username": user.username,
        "displayName": user.display_name,
        "avatar": user.avatar,
        "bio": user.bio,
        "followers": user.followers_count,
        "following": user.following_count,
        "isVerified": user.is_verified,
        "isPublic": user.is_public,
        "isPro": user.is_pro,
        "joined": iso(user.created_at),
        "isFollowing": is_following,
        "stats": {
            "voicePosts": await FeedPostRepository(db).count_by_user(user.id),
            "challengesWon": await ChallengeRepository(db).count_joined(user.id),
            "totalPlays": 0,
        },
    }
    if is_own:
        profile["email"] = user.email
    return profile


async def load_user(db: AsyncSession, user_id: str) -> User:
    user_id = parse_uuid(user_id, "Invalid user ID format")
    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


def _local_avatar_key(storage: LocalStorage, avatar: Optional[str]) -> Optional[str]:
    prefix = f"{storage.base_url}/"
    if avatar and avatar.startswith(prefix):
        return avatar[len(prefix):]
    return None


async def _list_posts(db: AsyncSession, user: User, viewer: Optional[User], page: int, limit: int):
    posts = FeedPostRepository(db)
    items = await posts.list_latest(skip=(page - 1) * limit, limit=limit, user_ids=[user.id])
    total = await posts.count_by_user(user.id)
    viewer_id = viewer.id if viewer else None
    return paginated_response(
        [await post_to_response(posts, post, viewer_id) for post in items],
        page,
        limit,
        total,
    )


async def _list_top_recordings(db: AsyncSession, user: User, viewer: Optional[User], limit: int):
    posts = FeedPostRepository(db)
    items = await posts.list_trending(limit=limit, user_id=user.id)
    viewer_id = viewer.id if viewer else None
    return success_response([await post_to_response(posts, post, viewer_id) for post in items])


async def _list_followers(db: AsyncSession, user: User, page: int, limit: int):
    follows = FollowRepository(db)
    items = await follows.list_followers(user.id, skip=(page - 1) * limit, limit=limit)
    total = await follows.count_followers(user.id)
    return paginated_response([user_summary(u) for u in items], page, limit, total)


async def _list_following(db: AsyncSession, user: User, page: int, limit: int):
    follows = FollowRepository(db)
    items = await follows.list_following(user.id, skip=(page - 1) * limit, limit=limit)
    total = await follows.count_following(user.id)
    return paginated_response([user_summary(u) for u in items], page, limit, total)


# =============================================================================
# Own Profile
# =============================================================================

@router.get("/profile", summary="Get own profile")
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return success_response(await profile_to_response(db, user, viewer=user))


@router.put("/profile", summary="Update own profile")
async def update_profile(
    request: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    if request.displayName is not None:
        user.display_name = request.displayName
    if request.bio is not None:
        user.bio = request.bio
    await db.commit()

    logger.info(f"Profile updated for user {user.id}")
    return success_response(await profile_to_response(db, user, viewer=user))


@router.post("/avatar", summary="Upload avatar")
async def upload_avatar(
    avatar: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage),
):
    extension = AVATAR_TYPES.get(avatar.content_type or "")
    if extension is None:
        raise ValidationError(
            "Only image files (JPEG, PNG, GIF, WEBP) are allowed",
            field="avatar",
        )

    content = await avatar.read()
    if len(content) > MAX_AVATAR_BYTES:
        raise ValidationError("File too large. Maximum size is 5MB", field="avatar")

    key = f"{PROFILE_IMAGE_DIR}/profile-{user.id}-{secrets.token_hex(8)}.{extension}"
    stored = await storage.upload(content, key, avatar.content_type)

    previous = _local_avatar_key(storage, user.avatar)
    if previous:
        await storage.delete(previous)

    user.avatar = stored.url
    await db.commit()

    logger.info(f"Avatar uploaded for user {user.id}")
    return success_response({"avatar": user.avatar}, message="Avatar updated")


@router.delete("/avatar", summary="Remove avatar")
async def delete_avatar(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage),
):
    previous = _local_avatar_key(storage, user.avatar)
    if previous:
        await storage.delete(previous)
    user.avatar = None
    await db.commit()
    return success_response({"avatar": None}, message="Avatar removed")


@router.put("/visibility", summary="Set profile visibility")
async def update_visibility(
    body: Dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    is_public = body.get("isPublic")
    if not isinstance(is_public, bool):
        raise ValidationError("isPublic must be a boolean value", field="isPublic")

    user.is_public = is_public
    await db.commit()
    return success_response({"isPublic": user.is_public})


# =============================================================================
# Own Lists
# =============================================================================

@router.get("/posts", summary="List own posts")
async def list_own_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await _list_posts(db, user, user, page, limit)


@router.get("/followers", summary="List own followers")
async def list_own_followers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await _list_followers(db, user, page, limit)


@router.get("/following", summary="List users followed")
async def list_own_following(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await _list_following(db, user, page, limit)


@router.get("/top-recordings", summary="Own most liked posts")
async def list_own_top_recordings(
    limit: int = Query(5, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await _list_top_recordings(db, user, user, limit)


@router.get("/activity")
async def get_activity(user: User = Depends(get_current_user)):
    return success_response([])


@router.get("/badges")
async def get_badges(user: User = Depends(get_current_user)):
    return success_response([])


@router.get("/achievements")
async def get_achievements(user: User = Depends(get_current_user)):
    return success_response([])


# =============================================================================
# Other Users
# =============================================================================

@router.get("/{user_id}", summary="Get a user profile")
async def get_user(
    user_id: str = Path(...),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    user = await load_user(db, user_id)
    return success_response(await profile_to_response(db, user, viewer=viewer))


@router.post("/{user_id}/follow", summary="Follow or unfollow a user")
async def toggle_follow(
    user_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    user_id = parse_uuid(user_id, "Invalid user ID format")
    if user_id == user.id:
        raise ValidationError("You cannot follow yourself")

    target = await load_user(db, user_id)
    follows = FollowRepository(db)
    existing = await follows.get_pair(user.id, target.id)

    if existing:
        await db.delete(existing)
        user.following_count = max(0, user.following_count - 1)
        target.followers_count = max(0, target.followers_count - 1)
        is_following = False
        message = f"You unfollowed {target.username}"
    else:
        await follows.create(follower_id=user.id, following_id=target.id)
        user.following_count += 1
        target.followers_count += 1
        is_following = True
        message = f"You are now following {target.username}"

    await db.commit()

    logger.info(f"User {user.id} {'followed' if is_following else 'unfollowed'} {target.id}")
    return success_response({"isFollowing": is_following, "message": message}, message=message)


@router.get("/{user_id}/posts", summary="List a user's posts")
async def list_user_posts(
    user_id: str = Path(...),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    user = await load_user(db, user_id)
    return await _list_posts(db, user, viewer, page, limit)


@router.get("/{user_id}/followers", summary="List a user's followers")
async def list_user_followers(
    user_id: str = Path(...),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
):
    user = await load_user(db, user_id)
    return await _list_followers(db, user, page, limit)


@router.get("/{user_id}/following", summary="List users a user follows")
async def list_user_following(
    user_id: str = Path(...),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
):
    user = await load_user(db, user_id)
    return await _list_following(db, user, page, limit)


@router.get("/{user_id}/top-recordings", summary="A user's most liked posts")
async def list_user_top_recordings(
    user_id: str = Path(...),
    limit: int = Query(5, ge=1, le=50),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    user = await load_user(db, user_id)
    return await _list_top_recordings(db, user, viewer, limit)


@router.get("/{user_id}/activity")
async def get_user_activity(user_id: str = Path(...)):
    parse_uuid(user_id, "Invalid user ID format")
    return success_response([])


@router.get("/{user_id}/badges")
async def get_user_badges(user_id: str = Path(...)):
    parse_uuid(user_id, "Invalid user ID format")
    return success_response([])


@router.get("/{user_id}/achievements")
async def get_user_achievements(user_id: str = Path(...)):
    parse_uuid(user_id, "Invalid user ID format")
    return success_response([])
