"""
Database Repositories

Repository pattern implementation for data access.
"""

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import select, update, func, and_, or_, desc, asc
from sqlalchemy.ext.asyncio import AsyncSession

from .base import Base
from .models import (
    User,
    Follow,
    AudioFile,
    VoiceEffect,
    VoiceModel,
    VoiceTransformation,
    SavedVoiceCreation,
    Translation,
    VoiceClone,
    VoiceTranslateBatch,
    VoiceTranslateOperation,
    FeedPost,
    FeedPostTag,
    Like,
    SavedPost,
    Share,
    Comment,
    CommentLike,
    Challenge,
    ChallengeTag,
    ChallengeParticipant,
    ChallengeSubmission,
    AlgorandWallet,
    NFT,
    NFTTag,
    NFTLike,
    NFTMarketplaceListing,
    NFTTransaction,
    AlgorandTransaction,
    ListingStatus,
    Subscription,
    Invoice,
    PaymentMethod,
    BillingInfo,
    PromoCode,
    PromoCodeUsage,
    ContactMessage,
    AssistantChat,
    CalendlyEvent,
)


# =============================================================================
# Generic Type Variable
# =============================================================================


ModelType = TypeVar("ModelType", bound=Base)


# =============================================================================
# Base Repository
# =============================================================================


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations."""

    model: Type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """Get entity by ID."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ModelType]:
        """Get all entities with pagination."""
        result = await self.session.execute(
            select(self.model)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def create(self, **kwargs) -> ModelType:
        """Create a new entity."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, id: str, **kwargs) -> Optional[ModelType]:
        """Update an entity."""
        instance = await self.get_by_id(id)
        if not instance:
            return None

        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)

        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, id: str) -> bool:
        """Delete an entity."""
        instance = await self.get_by_id(id)
        if not instance:
            return False

        await self.session.delete(instance)
        await self.session.flush()
        return True

    async def count(self) -> int:
        """Count all entities."""
        result = await self.session.execute(
            select(func.count()).select_from(self.model)
        )
        return result.scalar_one()

    async def _count_where(self, *criteria) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(self.model).where(*criteria)
        )
        return result.scalar_one()


# =============================================================================
# User Repositories
# =============================================================================


class UserRepository(BaseRepository[User]):
    """Repository for User entities."""

    model = User

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        result = await self.session.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()

    async def get_by_firebase_uid(self, firebase_uid: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.firebase_uid == firebase_uid)
        )
        return result.scalar_one_or_none()

    async def get_by_stripe_customer(self, stripe_customer_id: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.stripe_customer_id == stripe_customer_id)
        )
        return result.scalars().first()

    async def get_by_reset_token(self, token_hash: str) -> Optional[User]:
        """Get user holding an unexpired password reset token."""
        result = await self.session.execute(
            select(User).where(
                and_(
                    User.reset_password_token == token_hash,
                    User.reset_password_expires > datetime.utcnow(),
                )
            )
        )
        return result.scalar_one_or_none()

    async def available_username(self, base: str) -> str:
        """Return ``base`` or the first free ``base<n>`` variant."""
        candidate = base
        suffix = 1
        while await self.get_by_username(candidate):
            candidate = f"{base}{suffix}"
            suffix += 1
        return candidate


class FollowRepository(BaseRepository[Follow]):
    """Repository for follower relationships."""

    model = Follow

    async def get_pair(self, follower_id: str, following_id: str) -> Optional[Follow]:
        result = await self.session.execute(
            select(Follow).where(
                and_(
                    Follow.follower_id == follower_id,
                    Follow.following_id == following_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def is_following(self, follower_id: str, following_id: str) -> bool:
        return await self.get_pair(follower_id, following_id) is not None

    async def list_followers(self, user_id: str, skip: int = 0, limit: int = 20) -> List[User]:
        result = await self.session.execute(
            select(Follow)
            .where(Follow.following_id == user_id)
            .order_by(desc(Follow.created_at))
            .offset(skip)
            .limit(limit)
        )
        return [f.follower for f in result.scalars().all()]

    async def count_followers(self, user_id: str) -> int:
        return await self._count_where(Follow.following_id == user_id)

    async def list_following(self, user_id: str, skip: int = 0, limit: int = 20) -> List[User]:
        result = await self.session.execute(
            select(Follow)
            .where(Follow.follower_id == user_id)
            .order_by(desc(Follow.created_at))
            .offset(skip)
            .limit(limit)
        )
        return [f.following for f in result.scalars().all()]

    async def count_following(self, user_id: str) -> int:
        return await self._count_where(Follow.follower_id == user_id)

    async def following_ids(self, user_id: str) -> List[str]:
        result = await self.session.execute(
            select(Follow.following_id).where(Follow.follower_id == user_id)
        )
        return list(result.scalars().all())


# =============================================================================
# Audio & Voice Repositories
# =============================================================================


class AudioFileRepository(BaseRepository[AudioFile]):
    """Repository for AudioFile entities."""

    model = AudioFile


class VoiceEffectRepository(BaseRepository[VoiceEffect]):
    """Repository for VoiceEffect entities."""

    model = VoiceEffect

    async def list_by_popularity(self, category: Optional[str] = None) -> List[VoiceEffect]:
        query = select(VoiceEffect)
        if category:
            query = query.where(VoiceEffect.category == category)
        result = await self.session.execute(
            query.order_by(desc(VoiceEffect.popularity))
        )
        return list(result.scalars().all())

    async def get_by_effect_id(self, effect_id: str) -> Optional[VoiceEffect]:
        result = await self.session.execute(
            select(VoiceEffect).where(VoiceEffect.effect_id == effect_id)
        )
        return result.scalar_one_or_none()

    async def increment_popularity(self, effect_id: str) -> None:
        await self.session.execute(
            update(VoiceEffect)
            .where(VoiceEffect.effect_id == effect_id)
            .values(popularity=VoiceEffect.popularity + 1)
        )

    async def upsert(self, effect_id: str, **fields) -> VoiceEffect:
        """Create or update an effect keyed by ``effect_id``."""
        effect = await self.get_by_effect_id(effect_id)
        if effect is None:
            return await self.create(effect_id=effect_id, **fields)
        return await self.update(effect.id, **fields)


class VoiceModelRepository(BaseRepository[VoiceModel]):
    """Repository for VoiceModel entities."""

    model = VoiceModel

    async def list_available(self, user_id: str) -> List[VoiceModel]:
        """List the user's own models and all public models."""
        result = await self.session.execute(
            select(VoiceModel)
            .where(or_(VoiceModel.user_id == user_id, VoiceModel.is_public == True))  # noqa: E712
            .order_by(desc(VoiceModel.created_at))
        )
        return list(result.scalars().all())


class VoiceTransformationRepository(BaseRepository[VoiceTransformation]):
    """Repository for VoiceTransformation entities."""

    model = VoiceTransformation

    async def list_by_user(
        self,
        user_id: str,
        kind: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> List[VoiceTransformation]:
        query = select(VoiceTransformation).where(VoiceTransformation.user_id == user_id)
        if kind:
            query = query.where(VoiceTransformation.kind == kind)
        result = await self.session.execute(
            query.order_by(desc(VoiceTransformation.created_at)).offset(skip).limit(limit)
        )
        return list(result.scalars().all())


class SavedVoiceCreationRepository(BaseRepository[SavedVoiceCreation]):
    """Repository for saved voice creations."""

    model = SavedVoiceCreation

    @staticmethod
    def _filters(category: Optional[str], search: Optional[str]) -> List[Any]:
        criteria = []
        if category:
            criteria.append(SavedVoiceCreation.category == category)
        if search:
            criteria.append(
                or_(
                    SavedVoiceCreation.name.ilike(f"%{search}%"),
                    SavedVoiceCreation.description.ilike(f"%{search}%"),
                )
            )
        return criteria

    async def list_by_user(
        self,
        user_id: str,
        category: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[SavedVoiceCreation], int]:
        criteria = [SavedVoiceCreation.user_id == user_id] + self._filters(category, search)
        result = await self.session.execute(
            select(SavedVoiceCreation)
            .where(*criteria)
            .order_by(desc(SavedVoiceCreation.created_at))
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), await self._count_where(*criteria)

    async def list_public(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[SavedVoiceCreation], int]:
        criteria = [SavedVoiceCreation.is_public == True] + self._filters(category, search)  # noqa: E712
        result = await self.session.execute(
            select(SavedVoiceCreation)
            .where(*criteria)
            .order_by(desc(SavedVoiceCreation.created_at))
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), await self._count_where(*criteria)


# =============================================================================
# Translation Repositories
# =============================================================================


class TranslationRepository(BaseRepository[Translation]):
    """Repository for Translation entities."""

    model = Translation

    async def list_by_user(self, user_id: str, skip: int = 0, limit: int = 20) -> List[Translation]:
        result = await self.session.execute(
            select(Translation)
            .where(Translation.user_id == user_id)
            .order_by(desc(Translation.created_at))
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_translated_audio_id(self, audio_id: str) -> Optional[Translation]:
        result = await self.session.execute(
            select(Translation).where(Translation.translated_audio_id == audio_id)
        )
        return result.scalars().first()


class VoiceCloneRepository(BaseRepository[VoiceClone]):
    model = VoiceClone

    async def list_by_user(self, user_id: str) -> List[VoiceClone]:
        result = await self.session.execute(
            select(VoiceClone)
            .where(VoiceClone.user_id == user_id)
            .order_by(desc(VoiceClone.created_at))
        )
        return list(result.scalars().all())


class VoiceTranslateOperationRepository(BaseRepository[VoiceTranslateOperation]):
    """Repository for voice translation pipeline runs."""

    model = VoiceTranslateOperation

    async def list_by_user(
        self,
        user_id: str,
        status: Optional[str] = None,
        language: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VoiceTranslateOperation], int]:
        criteria = [VoiceTranslateOperation.user_id == user_id]
        if status:
            criteria.append(VoiceTranslateOperation.status == status.upper())
        if language:
            criteria.append(VoiceTranslateOperation.target_language == language)
        result = await self.session.execute(
            select(VoiceTranslateOperation)
            .where(*criteria)
            .order_by(desc(VoiceTranslateOperation.created_at))
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), await self._count_where(*criteria)

    async def list_by_batch(self, batch_id: str) -> List[VoiceTranslateOperation]:
        result = await self.session.execute(
            select(VoiceTranslateOperation)
            .where(VoiceTranslateOperation.batch_id == batch_id)
            .order_by(asc(VoiceTranslateOperation.created_at))
        )
        return list(result.scalars().all())


class VoiceTranslateBatchRepository(BaseRepository[VoiceTranslateBatch]):
    model = VoiceTranslateBatch


# =============================================================================
# Feed Repository
# =============================================================================


class FeedPostRepository(BaseRepository[FeedPost]):
    """Repository for feed posts and their interactions."""

    model = FeedPost

    async def list_latest(
        self,
        skip: int = 0,
        limit: int = 10,
        user_ids: Optional[Sequence[str]] = None,
    ) -> List[FeedPost]:
        query = select(FeedPost)
        if user_ids is not None:
            query = query.where(FeedPost.user_id.in_(list(user_ids)))
        result = await self.session.execute(
            query.order_by(desc(FeedPost.created_at)).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def list_trending(
        self,
        skip: int = 0,
        limit: int = 10,
        user_id: Optional[str] = None,
    ) -> List[FeedPost]:
        """List posts ordered by like count."""
        like_count = func.count(Like.id)
        query = (
            select(FeedPost)
            .outerjoin(Like, Like.post_id == FeedPost.id)
            .group_by(FeedPost.id)
        )
        if user_id:
            query = query.where(FeedPost.user_id == user_id)
        result = await self.session.execute(
            query.order_by(desc(like_count), desc(FeedPost.created_at)).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_user(self, user_id: str) -> int:
        return await self._count_where(FeedPost.user_id == user_id)

    async def interaction_counts(self, post_id: str) -> Dict[str, int]:
        likes = await self.session.execute(
            select(func.count()).select_from(Like).where(Like.post_id == post_id)
        )
        comments = await self.session.execute(
            select(func.count()).select_from(Comment).where(Comment.post_id == post_id)
        )
        shares = await self.session.execute(
            select(func.count()).select_from(Share).where(Share.post_id == post_id)
        )
        return {
            "likes": likes.scalar_one(),
            "comments": comments.scalar_one(),
            "shares": shares.scalar_one(),
        }

    async def get_like(self, post_id: str, user_id: str) -> Optional[Like]:
        result = await self.session.execute(
            select(Like).where(and_(Like.post_id == post_id, Like.user_id == user_id))
        )
        return result.scalar_one_or_none()

    async def get_saved(self, post_id: str, user_id: str) -> Optional[SavedPost]:
        result = await self.session.execute(
            select(SavedPost).where(and_(SavedPost.post_id == post_id, SavedPost.user_id == user_id))
        )
        return result.scalar_one_or_none()

    async def toggle_like(self, post_id: str, user_id: str) -> bool:
        """Toggle a like, returning whether the post is now liked."""
        existing = await self.get_like(post_id, user_id)
        if existing:
            await self.session.delete(existing)
            await self.session.flush()
            return False
        self.session.add(Like(post_id=post_id, user_id=user_id))
        await self.session.flush()
        return True

    async def toggle_save(self, post_id: str, user_id: str) -> bool:
        """Toggle a save, returning whether the post is now saved."""
        existing = await self.get_saved(post_id, user_id)
        if existing:
            await self.session.delete(existing)
            await self.session.flush()
            return False
        self.session.add(SavedPost(post_id=post_id, user_id=user_id))
        await self.session.flush()
        return True

    async def add_share(self, post_id: str, user_id: str, platform: str) -> Share:
        share = Share(post_id=post_id, user_id=user_id, platform=platform)
        self.session.add(share)
        await self.session.flush()
        return share

    async def add_tags(self, post: FeedPost, tags: Sequence[str]) -> None:
        for tag in tags:
            post.tags.append(FeedPostTag(tag=tag))
        await self.session.flush()

    async def list_saved(self, user_id: str, skip: int = 0, limit: int = 10) -> List[FeedPost]:
        result = await self.session.execute(
            select(SavedPost)
            .where(SavedPost.user_id == user_id)
            .order_by(desc(SavedPost.created_at))
            .offset(skip)
            .limit(limit)
        )
        return [saved.post for saved in result.scalars().all()]

    # Comments

    async def get_comment(self, comment_id: str) -> Optional[Comment]:
        result = await self.session.execute(
            select(Comment).where(Comment.id == comment_id)
        )
        return result.scalar_one_or_none()

    async def list_comments(self, post_id: str, skip: int = 0, limit: int = 10) -> List[Comment]:
        result = await self.session.execute(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(desc(Comment.created_at))
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def add_comment(self, post_id: str, user_id: str, content: str) -> Comment:
        comment = Comment(post_id=post_id, user_id=user_id, content=content)
        self.session.add(comment)
        await self.session.flush()
        await self.session.refresh(comment)
        return comment

    async def comment_like_count(self, comment_id: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(CommentLike).where(CommentLike.comment_id == comment_id)
        )
        return result.scalar_one()

    async def get_comment_like(self, comment_id: str, user_id: str) -> Optional[CommentLike]:
        result = await self.session.execute(
            select(CommentLike).where(
                and_(CommentLike.comment_id == comment_id, CommentLike.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    async def toggle_comment_like(self, comment_id: str, user_id: str) -> bool:
        existing = await self.get_comment_like(comment_id, user_id)
        if existing:
            await self.session.delete(existing)
            await self.session.flush()
            return False
        self.session.add(CommentLike(comment_id=comment_id, user_id=user_id))
        await self.session.flush()
        return True


# =============================================================================
# Challenge Repository
# =============================================================================


class ChallengeRepository(BaseRepository[Challenge]):
    """Repository for challenges, participants and submissions."""

    model = Challenge

    async def list_filtered(
        self,
        filter: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Challenge], int]:
        """List active challenges for a filter: trending, featured, newest or ending-soon."""
        now = datetime.utcnow()
        criteria: List[Any] = [Challenge.is_active == True]  # noqa: E712
        if search:
            criteria.append(
                or_(
                    Challenge.title.ilike(f"%{search}%"),
                    Challenge.description.ilike(f"%{search}%"),
                )
            )
        if filter == "featured":
            criteria.append(Challenge.reward.is_not(None))
        elif filter == "ending-soon":
            criteria.append(Challenge.end_date > now)

        query = select(Challenge).where(*criteria)
        if filter == "trending":
            participant_count = func.count(ChallengeParticipant.id)
            query = (
                query.outerjoin(ChallengeParticipant, ChallengeParticipant.challenge_id == Challenge.id)
                .group_by(Challenge.id)
                .order_by(desc(participant_count), desc(Challenge.created_at))
            )
        elif filter == "ending-soon":
            query = query.order_by(asc(Challenge.end_date))
        else:
            query = query.order_by(desc(Challenge.created_at))

        result = await self.session.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all()), await self._count_where(*criteria)

    async def set_tags(self, challenge: Challenge, names: Sequence[str]) -> None:
        existing = {tag.name for tag in challenge.tags}
        for name in names:
            name = name.strip()
            if name and name not in existing:
                challenge.tags.append(ChallengeTag(name=name))
                existing.add(name)
        await self.session.flush()

    async def participant_count(self, challenge_id: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(ChallengeParticipant)
            .where(ChallengeParticipant.challenge_id == challenge_id)
        )
        return result.scalar_one()

    async def submission_count(self, challenge_id: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(ChallengeSubmission)
            .where(ChallengeSubmission.challenge_id == challenge_id)
        )
        return result.scalar_one()

    async def get_participant(self, challenge_id: str, user_id: str) -> Optional[ChallengeParticipant]:
        result = await self.session.execute(
            select(ChallengeParticipant).where(
                and_(
                    ChallengeParticipant.challenge_id == challenge_id,
                    ChallengeParticipant.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def add_participant(self, challenge_id: str, user_id: str, name: str, email: str) -> ChallengeParticipant:
        participant = ChallengeParticipant(
            challenge_id=challenge_id, user_id=user_id, name=name, email=email
        )
        self.session.add(participant)
        await self.session.flush()
        return participant

    async def get_submission(self, challenge_id: str, user_id: str) -> Optional[ChallengeSubmission]:
        result = await self.session.execute(
            select(ChallengeSubmission).where(
                and_(
                    ChallengeSubmission.challenge_id == challenge_id,
                    ChallengeSubmission.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def add_submission(self, **kwargs) -> ChallengeSubmission:
        submission = ChallengeSubmission(**kwargs)
        self.session.add(submission)
        await self.session.flush()
        await self.session.refresh(submission)
        return submission

    async def list_submissions(self, challenge_id: str, skip: int = 0, limit: int = 20) -> List[ChallengeSubmission]:
        result = await self.session.execute(
            select(ChallengeSubmission)
            .where(ChallengeSubmission.challenge_id == challenge_id)
            .order_by(desc(ChallengeSubmission.created_at))
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_joined(self, user_id: str) -> List[Challenge]:
        result = await self.session.execute(
            select(ChallengeParticipant)
            .where(ChallengeParticipant.user_id == user_id)
            .order_by(desc(ChallengeParticipant.created_at))
        )
        return [p.challenge for p in result.scalars().all()]

    async def count_joined(self, user_id: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(ChallengeParticipant)
            .where(ChallengeParticipant.user_id == user_id)
        )
        return result.scalar_one()

    async def list_created(self, user_id: str) -> List[Challenge]:
        result = await self.session.execute(
            select(Challenge)
            .where(Challenge.creator_id == user_id)
            .order_by(desc(Challenge.created_at))
        )
        return list(result.scalars().all())

    async def list_submitted(self, user_id: str) -> List[Challenge]:
        """Challenges the user has submitted an entry to."""
        result = await self.session.execute(
            select(Challenge)
            .join(ChallengeSubmission, ChallengeSubmission.challenge_id == Challenge.id)
            .where(ChallengeSubmission.user_id == user_id)
            .order_by(desc(ChallengeSubmission.created_at))
        )
        return list(result.scalars().all())


# =============================================================================
# Algorand Repositories
# =============================================================================


class AlgorandWalletRepository(BaseRepository[AlgorandWallet]):
    model = AlgorandWallet

    async def get_by_user(self, user_id: str) -> Optional[AlgorandWallet]:
        result = await self.session.execute(
            select(AlgorandWallet).where(AlgorandWallet.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert(self, user_id: str, address: str) -> AlgorandWallet:
        wallet = await self.get_by_user(user_id)
        if wallet is None:
            return await self.create(user_id=user_id, address=address)
        wallet.address = address
        await self.session.flush()
        return wallet


class NFTRepository(BaseRepository[NFT]):
    """Repository for NFTs, their listings, likes and transactions."""

    model = NFT

    async def list_marketplace(
        self,
        filter: Optional[str] = None,
        sort_by: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> List[NFT]:
        query = select(NFT).where(NFT.is_for_sale == True)  # noqa: E712
        if filter == "trending":
            query = query.where(NFT.likes_count >= 100)
        elif filter == "featured":
            query = query.where(NFT.blockchain_status == "MINTED")

        if sort_by == "priceAsc":
            query = query.order_by(asc(NFT.price))
        elif sort_by == "priceDesc":
            query = query.order_by(desc(NFT.price))
        elif sort_by == "newest":
            query = query.order_by(desc(NFT.created_at))
        else:
            query = query.order_by(desc(NFT.likes_count), desc(NFT.created_at))

        result = await self.session.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def list_owned(self, user_id: str) -> List[NFT]:
        result = await self.session.execute(
            select(NFT).where(NFT.owner_id == user_id).order_by(desc(NFT.created_at))
        )
        return list(result.scalars().all())

    async def list_created(self, user_id: str) -> List[NFT]:
        result = await self.session.execute(
            select(NFT).where(NFT.creator_id == user_id).order_by(desc(NFT.created_at))
        )
        return list(result.scalars().all())

    async def add_tags(self, nft: NFT, names: Sequence[str]) -> None:
        for name in names:
            nft.tags.append(NFTTag(name=name))
        await self.session.flush()

    async def toggle_like(self, nft: NFT, user_id: str) -> bool:
        result = await self.session.execute(
            select(NFTLike).where(and_(NFTLike.nft_id == nft.id, NFTLike.user_id == user_id))
        )
        existing = result.scalar_one_or_none()
        if existing:
            await self.session.delete(existing)
            nft.likes_count = max(0, nft.likes_count - 1)
            await self.session.flush()
            return False
        self.session.add(NFTLike(nft_id=nft.id, user_id=user_id))
        nft.likes_count += 1
        await self.session.flush()
        return True

    async def add_listing(self, nft_id: str, seller_id: str, price: float) -> NFTMarketplaceListing:
        listing = NFTMarketplaceListing(nft_id=nft_id, seller_id=seller_id, price=price)
        self.session.add(listing)
        await self.session.flush()
        return listing

    async def close_active_listings(self, nft_id: str) -> None:
        await self.session.execute(
            update(NFTMarketplaceListing)
            .where(
                and_(
                    NFTMarketplaceListing.nft_id == nft_id,
                    NFTMarketplaceListing.status == ListingStatus.ACTIVE.value,
                )
            )
            .values(status=ListingStatus.SOLD.value, completed_at=datetime.utcnow())
        )

    async def add_sale(self, **kwargs) -> NFTTransaction:
        sale = NFTTransaction(**kwargs)
        self.session.add(sale)
        await self.session.flush()
        return sale


class AlgorandTransactionRepository(BaseRepository[AlgorandTransaction]):
    model = AlgorandTransaction

    async def list_by_nft(self, nft_id: str) -> List[AlgorandTransaction]:
        result = await self.session.execute(
            select(AlgorandTransaction)
            .where(AlgorandTransaction.nft_id == nft_id)
            .order_by(desc(AlgorandTransaction.created_at))
        )
        return list(result.scalars().all())

    async def get_pending(self, nft_id: str, type: str) -> Optional[AlgorandTransaction]:
        result = await self.session.execute(
            select(AlgorandTransaction).where(
                and_(
                    AlgorandTransaction.nft_id == nft_id,
                    AlgorandTransaction.type == type,
                    AlgorandTransaction.status == "PENDING",
                )
            )
        )
        return result.scalars().first()


# =============================================================================
# Billing Repositories
# =============================================================================


class SubscriptionRepository(BaseRepository[Subscription]):
    """Repository for Subscription entities."""

    model = Subscription

    async def get_by_user(self, user_id: str) -> Optional[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(Subscription.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_stripe_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(Subscription.stripe_subscription_id == stripe_subscription_id)
        )
        return result.scalar_one_or_none()

    async def get_by_customer(self, stripe_customer_id: str) -> Optional[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(Subscription.stripe_customer_id == stripe_customer_id)
        )
        return result.scalars().first()

    async def upsert_for_user(self, user_id: str, **fields) -> Subscription:
        """Create or replace the subscription row held by a user."""
        subscription = await self.get_by_user(user_id)
        if subscription is None:
            return await self.create(user_id=user_id, **fields)
        for key, value in fields.items():
            setattr(subscription, key, value)
        await self.session.flush()
        return subscription


class InvoiceRepository(BaseRepository[Invoice]):
    model = Invoice

    async def get_by_stripe_id(self, stripe_invoice_id: str) -> Optional[Invoice]:
        result = await self.session.execute(
            select(Invoice).where(Invoice.stripe_invoice_id == stripe_invoice_id)
        )
        return result.scalar_one_or_none()

    async def upsert(self, stripe_invoice_id: str, **fields) -> Invoice:
        invoice = await self.get_by_stripe_id(stripe_invoice_id)
        if invoice is None:
            return await self.create(stripe_invoice_id=stripe_invoice_id, **fields)
        for key, value in fields.items():
            setattr(invoice, key, value)
        await self.session.flush()
        return invoice

    async def list_by_user(self, user_id: str) -> List[Invoice]:
        result = await self.session.execute(
            select(Invoice).where(Invoice.user_id == user_id).order_by(desc(Invoice.created_at))
        )
        return list(result.scalars().all())


class PaymentMethodRepository(BaseRepository[PaymentMethod]):
    model = PaymentMethod

    async def list_by_user(self, user_id: str) -> List[PaymentMethod]:
        result = await self.session.execute(
            select(PaymentMethod)
            .where(PaymentMethod.user_id == user_id)
            .order_by(desc(PaymentMethod.is_default), desc(PaymentMethod.created_at))
        )
        return list(result.scalars().all())

    async def clear_default(self, user_id: str, keep_id: str) -> None:
        await self.session.execute(
            update(PaymentMethod)
            .where(and_(PaymentMethod.user_id == user_id, PaymentMethod.id != keep_id))
            .values(is_default=False)
        )


class BillingInfoRepository(BaseRepository[BillingInfo]):
    model = BillingInfo

    async def get_by_user(self, user_id: str) -> Optional[BillingInfo]:
        result = await self.session.execute(
            select(BillingInfo).where(BillingInfo.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert(self, user_id: str, **fields) -> BillingInfo:
        info = await self.get_by_user(user_id)
        if info is None:
            return await self.create(user_id=user_id, **fields)
        for key, value in fields.items():
            setattr(info, key, value)
        await self.session.flush()
        return info


class PromoCodeRepository(BaseRepository[PromoCode]):
    """Repository for promo codes and their redemptions."""

    model = PromoCode

    async def get_by_code(self, code: str) -> Optional[PromoCode]:
        result = await self.session.execute(
            select(PromoCode).where(
                and_(PromoCode.code == code.upper(), PromoCode.is_active == True)  # noqa: E712
            )
        )
        return result.scalar_one_or_none()

    async def upsert(self, code: str, **fields) -> PromoCode:
        result = await self.session.execute(select(PromoCode).where(PromoCode.code == code))
        promo = result.scalar_one_or_none()
        if promo is None:
            return await self.create(code=code, **fields)
        for key, value in fields.items():
            setattr(promo, key, value)
        await self.session.flush()
        return promo

    async def has_used(self, promo_code_id: str, user_id: str) -> bool:
        result = await self.session.execute(
            select(func.count()).select_from(PromoCodeUsage).where(
                and_(PromoCodeUsage.promo_code_id == promo_code_id, PromoCodeUsage.user_id == user_id)
            )
        )
        return result.scalar_one() > 0

    async def record_usage(self, promo: PromoCode, user_id: str, subscription_id: Optional[str]) -> None:
        self.session.add(
            PromoCodeUsage(promo_code_id=promo.id, user_id=user_id, subscription_id=subscription_id)
        )
        promo.times_redeemed += 1
        await self.session.flush()


# =============================================================================
# Contact Repository
# =============================================================================


class ContactMessageRepository(BaseRepository[ContactMessage]):
    model = ContactMessage


class AssistantChatRepository(BaseRepository[AssistantChat]):
    """Repository for help assistant conversations."""

    model = AssistantChat

    async def get_by_session(self, session_id: str) -> Optional[AssistantChat]:
        result = await self.session.execute(
            select(AssistantChat).where(AssistantChat.session_id == session_id)
        )
        return result.scalar_one_or_none()

    async def append_messages(self, chat: AssistantChat, *messages: Dict[str, Any]) -> AssistantChat:
        # JSON columns only notice reassignment
        chat.messages = [*(chat.messages or []), *messages]
        await self.session.flush()
        return chat


class CalendlyEventRepository(BaseRepository[CalendlyEvent]):
    model = CalendlyEvent


# =============================================================================
# Exports
# =============================================================================


__all__ = [
    "BaseRepository",
    "UserRepository",
    "FollowRepository",
    "AudioFileRepository",
    "VoiceEffectRepository",
    "VoiceModelRepository",
    "VoiceTransformationRepository",
    "SavedVoiceCreationRepository",
    "TranslationRepository",
    "VoiceCloneRepository",
    "VoiceTranslateOperationRepository",
    "VoiceTranslateBatchRepository",
    "FeedPostRepository",
    "ChallengeRepository",
    "AlgorandWalletRepository",
    "NFTRepository",
    "AlgorandTransactionRepository",
    "SubscriptionRepository",
    "InvoiceRepository",
    "PaymentMethodRepository",
    "BillingInfoRepository",
    "PromoCodeRepository",
    "ContactMessageRepository",
    "AssistantChatRepository",
    "CalendlyEventRepository",
]
