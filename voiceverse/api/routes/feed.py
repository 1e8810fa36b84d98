"""
Feed API Routes

Voice posts with likes, saves, shares and comments.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import NotFoundError, ValidationError, paginated_response, success_response
from ..dependencies import (
    get_current_user,
    get_db_session,
    get_optional_user,
    load_owned_audio,
)
from ..serializers import iso, post_to_response, user_summary
from ...database.models import Comment, FeedPost, User
from ...database.repositories import FeedPostRepository, FollowRepository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feed", tags=["Feed"])


FEED_FILTERS = ("trending", "latest", "following")


# =============================================================================
# Request Models
# =============================================================================

class CreatePostRequest(BaseModel):
    audioFileId: str = Field(..., validation_alias=AliasChoices("audioFileId", "audioId"))
    caption: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class ShareRequest(BaseModel):
    platform: str = "other"


class CommentRequest(BaseModel):
    content: Optional[str] = None


# =============================================================================
# Helpers
# =============================================================================

async def load_post(posts: FeedPostRepository, post_id: str) -> FeedPost:
    post = await posts.get_by_id(post_id)
    if not post:
        raise NotFoundError("Post", post_id)
    return post


async def comment_to_response(
    posts: FeedPostRepository,
    comment: Comment,
    viewer_id: Optional[str] = None,
) -> Dict[str, Any]:
    is_liked = False
    if viewer_id:
        is_liked = await posts.get_comment_like(comment.id, viewer_id) is not None
    return {
        "id": comment.id,
        "postId": comment.post_id,
        "user": user_summary(comment.user),
        "content": comment.content,
        "likes": await posts.comment_like_count(comment.id),
        "isLiked": is_liked,
        "createdAt": iso(comment.created_at),
    }


def _clean_tags(tags: List[str]) -> List[str]:
    seen = []
    for tag in tags:
        tag = tag.strip().lstrip("#").lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# =============================================================================
# Posts
# =============================================================================

@router.get("", summary="List feed posts")
async def list_feed(
    filter: str = Query("trending"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    """
    ``trending`` orders by likes, ``latest`` by date and ``following``
    limits to followed users (anonymous viewers fall back to trending).
    """
    if filter not in FEED_FILTERS:
        raise ValidationError(f"Invalid filter: {filter}", field="filter")

    posts = FeedPostRepository(db)
    skip = (page - 1) * limit

    if filter == "following" and viewer is not None:
        followed = await FollowRepository(db).following_ids(viewer.id)
        items = await posts.list_latest(skip=skip, limit=limit, user_ids=followed)
    elif filter == "latest":
        items = await posts.list_latest(skip=skip, limit=limit)
    else:
        items = await posts.list_trending(skip=skip, limit=limit)

    viewer_id = viewer.id if viewer else None
    return paginated_response(
        [await post_to_response(posts, post, viewer_id) for post in items],
        page,
        limit,
    )


@router.post("", status_code=201, summary="Create a post")
async def create_post(
    request: CreatePostRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    audio = await load_owned_audio(db, request.audioFileId, user)

    posts = FeedPostRepository(db)
    post = await posts.create(
        user_id=user.id,
        audio_file_id=audio.id,
        caption=request.caption,
        description=request.description,
    )
    await posts.add_tags(post, _clean_tags(request.tags))
    await db.commit()
    await db.refresh(post, ["user", "audio_file", "tags"])

    logger.info(f"User {user.id} created post {post.id}")
    return success_response(await post_to_response(posts, post, user.id), message="Post created")


@router.get("/saved", summary="List saved posts")
async def list_saved(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    posts = FeedPostRepository(db)
    items = await posts.list_saved(user.id, skip=(page - 1) * limit, limit=limit)
    return paginated_response(
        [await post_to_response(posts, post, user.id) for post in items],
        page,
        limit,
    )


@router.post("/comments/{comment_id}/like", summary="Like or unlike a comment")
async def toggle_comment_like(
    comment_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    posts = FeedPostRepository(db)
    comment = await posts.get_comment(comment_id)
    if not comment:
        raise NotFoundError("Comment", comment_id)

    liked = await posts.toggle_comment_like(comment.id, user.id)
    await db.commit()
    return success_response({
        "isLiked": liked,
        "likes": await posts.comment_like_count(comment.id),
    })


@router.get("/{post_id}", summary="Get a post")
async def get_post(
    post_id: str = Path(...),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    posts = FeedPostRepository(db)
    post = await load_post(posts, post_id)
    return success_response(await post_to_response(posts, post, viewer.id if viewer else None))


# =============================================================================
# Interactions
# =============================================================================

@router.post("/{post_id}/like", summary="Like or unlike a post")
async def toggle_like(
    post_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    posts = FeedPostRepository(db)
    post = await load_post(posts, post_id)

    liked = await posts.toggle_like(post.id, user.id)
    await db.commit()

    counts = await posts.interaction_counts(post.id)
    return success_response({"isLiked": liked, "likes": counts["likes"]})


@router.post("/{post_id}/save", summary="Save or unsave a post")
async def toggle_save(
    post_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    posts = FeedPostRepository(db)
    post = await load_post(posts, post_id)

    saved = await posts.toggle_save(post.id, user.id)
    await db.commit()
    return success_response({"isSaved": saved})


@router.post("/{post_id}/share", summary="Record a share")
async def share_post(
    request: ShareRequest,
    post_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    posts = FeedPostRepository(db)
    post = await load_post(posts, post_id)

    await posts.add_share(post.id, user.id, request.platform or "other")
    await db.commit()

    counts = await posts.interaction_counts(post.id)
    return success_response({"shares": counts["shares"], "platform": request.platform})


@router.get("/{post_id}/comments", summary="List comments")
async def list_comments(
    post_id: str = Path(...),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    posts = FeedPostRepository(db)
    post = await load_post(posts, post_id)

    comments = await posts.list_comments(post.id, skip=(page - 1) * limit, limit=limit)
    viewer_id = viewer.id if viewer else None
    return paginated_response(
        [await comment_to_response(posts, comment, viewer_id) for comment in comments],
        page,
        limit,
    )


@router.post("/{post_id}/comments", status_code=201, summary="Add a comment")
async def add_comment(
    request: CommentRequest,
    post_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    content = (request.content or "").strip()
    if not content:
        raise ValidationError("Comment content is required", field="content")

    posts = FeedPostRepository(db)
    post = await load_post(posts, post_id)

    comment = await posts.add_comment(post.id, user.id, content)
    await db.commit()

    return success_response(await comment_to_response(posts, comment, user.id), message="Comment added")
