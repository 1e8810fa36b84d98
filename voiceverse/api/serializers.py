"""
Response Serializers

Conversions from ORM rows to the camelCase payloads shared by several
route modules.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from ..database.models import AudioFile, FeedPost, User
from ..database.repositories import FeedPostRepository


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def audio_url(audio_id: Optional[str]) -> Optional[str]:
    return f"/api/audio/{audio_id}" if audio_id else None


def user_to_response(user: User) -> Dict[str, Any]:
    """Full account payload for the authenticated user."""
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "displayName": user.display_name,
        "avatar": user.avatar,
        "bio": user.bio,
        "isVerified": user.is_verified,
        "isPublic": user.is_public,
        "isPro": user.is_pro,
        "preferredLanguage": user.preferred_language,
        "followers": user.followers_count,
        "following": user.following_count,
        "createdAt": iso(user.created_at),
    }


def user_summary(user: Optional[User]) -> Optional[Dict[str, Any]]:
    """Author/creator block embedded in posts, comments and NFTs."""
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "displayName": user.display_name,
        "avatar": user.avatar,
        "isVerified": user.is_verified,
    }


def audio_file_to_response(audio: Optional[AudioFile]) -> Optional[Dict[str, Any]]:
    if audio is None:
        return None
    return {
        "id": audio.id,
        "filename": audio.filename,
        "originalName": audio.original_name,
        "mimetype": audio.mimetype,
        "size": audio.size,
        "duration": audio.duration,
        "url": audio_url(audio.id),
        "createdAt": iso(audio.created_at),
    }


async def post_to_response(
    posts: FeedPostRepository,
    post: FeedPost,
    viewer_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Feed post with interaction counts and the viewer's like/save state."""
    counts = await posts.interaction_counts(post.id)
    is_liked = is_saved = False
    if viewer_id:
        is_liked = await posts.get_like(post.id, viewer_id) is not None
        is_saved = await posts.get_saved(post.id, viewer_id) is not None

    return {
        "id": post.id,
        "user": user_summary(post.user),
        "audioFile": audio_file_to_response(post.audio_file),
        "audioUrl": audio_url(post.audio_file_id),
        "caption": post.caption,
        "description": post.description,
        "tags": [tag.tag for tag in post.tags],
        "likes": counts["likes"],
        "comments": counts["comments"],
        "shares": counts["shares"],
        "isLiked": is_liked,
        "isSaved": is_saved,
        "createdAt": iso(post.created_at),
    }


__all__ = [
    "iso",
    "audio_url",
    "user_to_response",
    "user_summary",
    "audio_file_to_response",
    "post_to_response",
]
