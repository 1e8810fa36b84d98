"""
Challenge API Routes

Voice challenges: listing, creation, joining and audio submissions.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import AliasChoices, BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import NotFoundError, ValidationError, paginated_response, success_response
from ..dependencies import (
    get_current_user,
    get_db_session,
    get_optional_user,
    load_owned_audio,
)
from ..serializers import audio_file_to_response, iso, user_summary
from ...database.models import Challenge, ChallengeSubmission, Difficulty, User
from ...database.repositories import ChallengeRepository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/challenges", tags=["Challenges"])


CHALLENGE_FILTERS = ("trending", "featured", "newest", "ending-soon")
USER_CHALLENGE_STATUSES = ("joined", "created", "completed")
TRENDING_PARTICIPANTS = 10


# =============================================================================
# Request Models
# =============================================================================

class CreateChallengeRequest(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    endDate: Optional[datetime] = None
    startDate: Optional[datetime] = None
    difficulty: Optional[str] = None
    reward: Optional[str] = None
    rules: Optional[str] = None
    imageUrl: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class JoinChallengeRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    agreeToTerms: bool = False


class SubmitRequest(BaseModel):
    audioFileId: str = Field(..., validation_alias=AliasChoices("audioFileId", "audioId"))
    description: Optional[str] = None


# =============================================================================
# Helpers
# =============================================================================

async def challenge_to_response(
    challenges: ChallengeRepository,
    challenge: Challenge,
    viewer_id: Optional[str] = None,
    is_joined: Optional[bool] = None,
) -> Dict[str, Any]:
    participants = await challenges.participant_count(challenge.id)
    if is_joined is None:
        is_joined = bool(viewer_id) and await challenges.get_participant(challenge.id, viewer_id) is not None

    return {
        "id": challenge.id,
        "title": challenge.title,
        "description": challenge.description,
        "creatorId": challenge.creator_id,
        "creator": user_summary(challenge.creator),
        "participants": participants,
        "submissions": await challenges.submission_count(challenge.id),
        "reward": challenge.reward,
        "rules": challenge.rules,
        "imageUrl": challenge.image_url,
        "startDate": iso(challenge.start_date),
        "endDate": iso(challenge.end_date),
        "difficulty": (challenge.difficulty or "").lower(),
        "tags": [tag.name for tag in challenge.tags],
        "isJoined": is_joined,
        "trending": participants > TRENDING_PARTICIPANTS,
        "featured": bool(challenge.reward),
    }


def submission_to_response(submission: ChallengeSubmission) -> Dict[str, Any]:
    return {
        "id": submission.id,
        "challengeId": submission.challenge_id,
        "user": user_summary(submission.user),
        "audioFile": audio_file_to_response(submission.audio_file),
        "description": submission.description,
        "createdAt": iso(submission.created_at),
    }


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


async def load_challenge(challenges: ChallengeRepository, challenge_id: str) -> Challenge:
    challenge = await challenges.get_by_id(challenge_id)
    if not challenge:
        raise NotFoundError("Challenge", challenge_id)
    return challenge


# =============================================================================
# Routes
# =============================================================================

@router.get("", summary="List challenges")
async def list_challenges(
    filter: str = Query("trending"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    if filter not in CHALLENGE_FILTERS:
        raise ValidationError(f"Invalid filter: {filter}", field="filter")

    challenges = ChallengeRepository(db)
    items, total = await challenges.list_filtered(
        filter=filter,
        search=search,
        skip=(page - 1) * limit,
        limit=limit,
    )
    viewer_id = viewer.id if viewer else None
    return paginated_response(
        [await challenge_to_response(challenges, c, viewer_id) for c in items],
        page,
        limit,
        total,
    )


@router.post("", status_code=201, summary="Create a challenge")
async def create_challenge(
    request: CreateChallengeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    if not (request.title and request.description and request.endDate and request.difficulty):
        raise ValidationError("Title, description, end date, and difficulty are required")

    difficulty = request.difficulty.upper()
    if difficulty not in {d.value for d in Difficulty}:
        raise ValidationError("Difficulty must be one of: easy, medium, hard", field="difficulty")

    challenges = ChallengeRepository(db)
    challenge = await challenges.create(
        title=request.title,
        description=request.description,
        creator_id=user.id,
        start_date=naive_utc(request.startDate) or datetime.utcnow(),
        end_date=naive_utc(request.endDate),
        difficulty=difficulty,
        reward=request.reward,
        rules=request.rules,
        image_url=request.imageUrl,
    )
    await challenges.set_tags(challenge, request.tags)
    await db.commit()
    await db.refresh(challenge, ["creator", "tags"])

    logger.info(f"User {user.id} created challenge {challenge.id}")
    return success_response(
        await challenge_to_response(challenges, challenge, user.id),
        message="Challenge created",
    )


@router.get("/user/challenges", summary="Challenges for the current user")
async def list_user_challenges(
    status: str = Query("joined"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    if status not in USER_CHALLENGE_STATUSES:
        raise ValidationError("Invalid status parameter", field="status")

    challenges = ChallengeRepository(db)
    if status == "created":
        items = await challenges.list_created(user.id)
        return success_response([await challenge_to_response(challenges, c, user.id) for c in items])

    if status == "completed":
        items = await challenges.list_submitted(user.id)
    else:
        items = await challenges.list_joined(user.id)
    return success_response([
        await challenge_to_response(challenges, c, is_joined=True) for c in items
    ])


@router.get("/{challenge_id}", summary="Get a challenge")
async def get_challenge(
    challenge_id: str = Path(...),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    challenges = ChallengeRepository(db)
    challenge = await load_challenge(challenges, challenge_id)
    return success_response(
        await challenge_to_response(challenges, challenge, viewer.id if viewer else None)
    )


@router.post("/{challenge_id}/join", summary="Join a challenge")
async def join_challenge(
    request: JoinChallengeRequest,
    challenge_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    challenges = ChallengeRepository(db)
    challenge = await load_challenge(challenges, challenge_id)

    if await challenges.get_participant(challenge.id, user.id):
        raise ValidationError("You have already joined this challenge")

    if not (request.name and request.email and request.agreeToTerms):
        raise ValidationError("Name, email, and agreement to terms are required")

    await challenges.add_participant(challenge.id, user.id, request.name, request.email)
    await db.commit()

    logger.info(f"User {user.id} joined challenge {challenge.id}")
    return success_response(
        await challenge_to_response(challenges, challenge, is_joined=True),
        message="Successfully joined the challenge",
    )


@router.post("/{challenge_id}/submit", summary="Submit to a challenge")
async def submit_to_challenge(
    request: SubmitRequest,
    challenge_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    challenges = ChallengeRepository(db)
    challenge = await load_challenge(challenges, challenge_id)

    if not await challenges.get_participant(challenge.id, user.id):
        raise ValidationError("You must join the challenge before submitting")
    if await challenges.get_submission(challenge.id, user.id):
        raise ValidationError("You have already submitted to this challenge")

    audio = await load_owned_audio(db, request.audioFileId, user)
    submission = await challenges.add_submission(
        challenge_id=challenge.id,
        user_id=user.id,
        audio_file_id=audio.id,
        description=request.description,
    )
    await db.commit()

    logger.info(f"User {user.id} submitted to challenge {challenge.id}")
    return success_response(
        submission_to_response(submission),
        message="Successfully submitted to the challenge",
    )


@router.get("/{challenge_id}/submissions", summary="List submissions")
async def list_submissions(
    challenge_id: str = Path(...),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
):
    challenges = ChallengeRepository(db)
    challenge = await load_challenge(challenges, challenge_id)

    submissions = await challenges.list_submissions(challenge.id, skip=(page - 1) * limit, limit=limit)
    total = await challenges.submission_count(challenge.id)
    return paginated_response([submission_to_response(s) for s in submissions], page, limit, total)
